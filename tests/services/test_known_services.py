"""
Unit tests for the known services registry and matcher.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from models.subscription import (
    BillingFrequency,
    DetectionMethod,
    KnownService,
    SubscriptionStatus,
)
from services.recurring_charges.config import DetectionConfig
from services.recurring_charges.known_services import (
    KNOWN_SERVICES,
    KnownServiceMatcher,
    detect_known_services,
    get_known_service,
)
from tests.fixtures.transaction_fixtures import (
    FIXED_NOW,
    create_netflix_scenario,
    create_recurring_series,
    create_subscription,
    create_transaction,
)


class TestRegistry:
    """Registry contents."""

    def test_ids_are_unique(self):
        ids = [service.id for service in KNOWN_SERVICES]
        assert len(ids) == len(set(ids))

    def test_lookup(self):
        assert get_known_service("netflix").name == "Netflix"
        assert get_known_service("amazon-prime").default_frequency == BillingFrequency.ANNUAL
        assert get_known_service("does-not-exist") is None


class TestKnownServiceMatcher:
    """Test suite for KnownServiceMatcher."""

    @pytest.fixture
    def matcher(self):
        return KnownServiceMatcher()

    def test_netflix_candidate(self, matcher):
        candidates = matcher.detect_known_services(create_netflix_scenario(), [], [], now=FIXED_NOW)

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.id.startswith("sub-netflix-")
        assert candidate.name == "Netflix"
        assert candidate.known_service_id == "netflix"
        assert candidate.merchant_pattern == "NETFLIX.COM"
        assert candidate.frequency == BillingFrequency.MONTHLY
        assert candidate.amount == Decimal("15.99")
        assert candidate.amount_variance == Decimal("0.00")
        assert candidate.confidence == 0.95
        assert candidate.status == SubscriptionStatus.ACTIVE
        assert candidate.detection_method == DetectionMethod.KNOWN_SERVICE
        assert candidate.category_id == "entertainment"
        assert candidate.last_charge_date == date(2024, 4, 14)
        assert candidate.next_expected_date == date(2024, 5, 14)
        assert candidate.expected_billing_day == 14
        assert candidate.created_at == FIXED_NOW
        assert candidate.transaction_ids == ["netflix-0", "netflix-1", "netflix-2", "netflix-3"]

    def test_matching_is_case_insensitive(self, matcher):
        transactions = create_recurring_series("Spotify P0123456789", "11.99", date(2024, 1, 3), 30, 2)
        candidates = matcher.detect_known_services(transactions, [], [])
        assert [c.known_service_id for c in candidates] == ["spotify"]

    def test_service_already_tracked_by_id_is_skipped(self, matcher):
        existing = create_subscription(merchant_pattern="SOMETHING ELSE", known_service_id="netflix")
        assert matcher.detect_known_services(create_netflix_scenario(), [existing], []) == []

    def test_service_already_tracked_by_pattern_is_skipped(self, matcher):
        existing = create_subscription(merchant_pattern="netflix.com")
        assert matcher.detect_known_services(create_netflix_scenario(), [existing], []) == []

    def test_ignored_pattern_is_skipped(self, matcher):
        assert matcher.detect_known_services(create_netflix_scenario(), [], ["NETFLIX.COM"]) == []

    def test_below_minimum_occurrences(self, matcher):
        transactions = create_netflix_scenario()[:1]
        assert matcher.detect_known_services(transactions, [], []) == []
        assert len(matcher.detect_known_services(transactions, [], [], minimum_occurrences=1)) == 1

    def test_annual_service_forecast(self, matcher):
        transactions = create_recurring_series("AMAZON PRIME*AB12", "139.00", date(2023, 2, 1), 365, 2)
        candidate = matcher.detect_known_services(transactions, [], [])[0]

        assert candidate.known_service_id == "amazon-prime"
        assert candidate.frequency == BillingFrequency.ANNUAL
        assert candidate.last_charge_date == date(2024, 2, 1)
        assert candidate.next_expected_date == date(2024, 2, 1) + timedelta(days=365)

    def test_amount_statistics(self, matcher):
        transactions = [
            create_transaction(date(2024, 1, 5), "SPOTIFY USA", "10.00", txn_id="s1"),
            create_transaction(date(2024, 2, 5), "SPOTIFY USA", "12.00", txn_id="s2"),
        ]
        candidate = matcher.detect_known_services(transactions, [], [])[0]
        assert candidate.amount == Decimal("11.00")
        assert candidate.amount_variance == Decimal("1.00")

    def test_pattern_is_most_common_identity(self, matcher):
        transactions = [
            create_transaction(date(2024, 1, 5), "OPENAI *CHATGPT SUBSCR", "20", txn_id="o1"),
            create_transaction(date(2024, 2, 5), "OPENAI *CHATGPT SUBSCR", "20", txn_id="o2"),
        ]
        candidates = matcher.detect_known_services(transactions, [], [])
        chatgpt = next(c for c in candidates if c.known_service_id == "chatgpt")
        assert chatgpt.merchant_pattern == "OPENAI"

    def test_matches_canonical_identity(self):
        service = KnownService(
            id="claude-pro",
            name="Claude Pro",
            patterns=[r"^Anthropic$"],
            default_frequency=BillingFrequency.MONTHLY,
            default_category_id="work-ai",
        )
        matcher = KnownServiceMatcher(services=[service])
        txn = create_transaction(date(2024, 1, 1), "CLAUDE.AI SUBSCRIPTION", "20")
        assert matcher.matches(service, txn)

    def test_low_confidence_candidate_is_pending(self):
        matcher = KnownServiceMatcher(config=DetectionConfig(auto_confirm_confidence=0.99))
        candidate = matcher.detect_known_services(create_netflix_scenario(), [], [])[0]
        assert candidate.status == SubscriptionStatus.PENDING

    def test_defaults_to_current_time(self, matcher):
        before = datetime.now(timezone.utc)
        candidate = matcher.detect_known_services(create_netflix_scenario(), [], [])[0]
        assert candidate.created_at >= before


def test_module_function_accepts_config():
    config = DetectionConfig(default_currency="EUR")
    candidate = detect_known_services(create_netflix_scenario(), [], [], config=config)[0]
    assert candidate.currency == "EUR"
