"""
Unit tests for subscription models.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from models.subscription import (
    BillingFrequency,
    DetectionMethod,
    Subscription,
    SubscriptionSettings,
    SubscriptionStatus,
    SubscriptionUpdate,
)


class TestSubscription:
    """Test suite for Subscription."""

    def test_defaults(self):
        sub = Subscription(name="Netflix", merchant_pattern="NETFLIX.COM", amount="15.99")
        assert sub.id.startswith("sub-")
        assert sub.status == SubscriptionStatus.PENDING
        assert sub.frequency == BillingFrequency.MONTHLY
        assert sub.detection_method == DetectionMethod.USER_CONFIRMED
        assert sub.amount == Decimal("15.99")
        assert sub.currency == "USD"

    def test_generated_ids_are_unique(self):
        first = Subscription(name="A", merchant_pattern="A", amount="1")
        second = Subscription(name="A", merchant_pattern="A", amount="1")
        assert first.id != second.id

    @pytest.mark.parametrize("day", [0, 32])
    def test_billing_day_out_of_range_rejected(self, day):
        with pytest.raises(ValidationError):
            Subscription(name="A", merchant_pattern="A", amount="1", expected_billing_day=day)

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            Subscription(name="A", merchant_pattern="A", amount="1", confidence=1.5)

    def test_settings_document_round_trip(self):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        sub = Subscription(
            id="sub-1",
            name="Netflix",
            merchant_pattern="NETFLIX.COM",
            amount="15.99",
            status=SubscriptionStatus.ACTIVE,
            next_expected_date=date(2024, 2, 14),
            created_at=created,
            updated_at=created,
        )
        settings = SubscriptionSettings(subscriptions=[sub], ignored_patterns=["UBER"])

        data = settings.to_dict()
        assert data["subscriptions"][0]["merchantPattern"] == "NETFLIX.COM"
        assert data["subscriptions"][0]["status"] == "active"
        assert data["subscriptions"][0]["nextExpectedDate"] == "2024-02-14"
        assert data["ignoredPatterns"] == ["UBER"]

        restored = SubscriptionSettings.from_dict(data)
        assert restored == settings


class TestSubscriptionSettings:
    """Test suite for SubscriptionSettings."""

    def test_defaults(self):
        settings = SubscriptionSettings()
        assert settings.enable_auto_detection is True
        assert settings.minimum_occurrences == 2
        assert settings.confidence_threshold == 0.7
        assert settings.default_notify_days_before == 3
        assert settings.subscriptions == []
        assert settings.ignored_patterns == []

    def test_find_subscription(self):
        sub = Subscription(id="sub-1", name="A", merchant_pattern="A", amount="1")
        settings = SubscriptionSettings(subscriptions=[sub])
        assert settings.find_subscription("sub-1") == sub
        assert settings.find_subscription("missing") is None

    def test_confidence_threshold_bounds(self):
        with pytest.raises(ValidationError):
            SubscriptionSettings(confidence_threshold=1.2)


class TestSubscriptionUpdate:
    """Test suite for the edit DTO."""

    def test_only_set_fields_are_dumped(self):
        update = SubscriptionUpdate(name="Renamed")
        assert update.model_dump(exclude_unset=True) == {"name": "Renamed"}

    def test_accepts_camel_case(self):
        update = SubscriptionUpdate(**{"categoryId": "personal"})
        assert update.category_id == "personal"
