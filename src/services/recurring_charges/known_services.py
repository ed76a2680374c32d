"""
Known subscription services registry and matcher.

The registry is a curated list of services whose statement descriptors are
recognizable; matching them bootstraps the subscription list with high
confidence before any pattern analysis has enough history.
"""

import datetime
import logging
import re
import uuid
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Pattern, Sequence

from models.subscription import (
    BillingFrequency,
    DetectionMethod,
    KnownService,
    Subscription,
    SubscriptionStatus,
)
from models.transaction import Transaction
from services.merchant_normalizer import MerchantNormalizer
from services.recurring_charges.config import DEFAULT_CONFIG, NOMINAL_INTERVAL_DAYS, DetectionConfig
from utils.statistics import calculate_standard_deviation, find_mode, to_money

logger = logging.getLogger(__name__)


def _service(
    service_id: str,
    name: str,
    patterns: List[str],
    category_id: str,
    frequency: BillingFrequency = BillingFrequency.MONTHLY,
    icon: Optional[str] = None,
    website: Optional[str] = None
) -> KnownService:
    return KnownService(
        id=service_id,
        name=name,
        patterns=patterns,
        default_frequency=frequency,
        default_category_id=category_id,
        icon=icon,
        website=website,
    )


KNOWN_SERVICES: List[KnownService] = [
    # Streaming and entertainment
    _service("netflix", "Netflix", [r"NETFLIX"], "entertainment", icon="Tv", website="netflix.com"),
    _service("spotify", "Spotify", [r"SPOTIFY"], "entertainment", icon="Music", website="spotify.com"),
    _service("disney-plus", "Disney+", [r"DISNEY PLUS", r"DISNEY\+", r"DISNEYPLUS"], "entertainment", icon="Tv"),
    _service("hbo-max", "HBO Max", [r"HBOMAX", r"HBO MAX", r"HBO"], "entertainment", icon="Tv"),
    _service(
        "youtube-premium", "YouTube Premium",
        [r"YOUTUBE PREMIUM", r"GOOGLE\*YOUTUBE", r"YOUTUBE TV"], "entertainment", icon="Youtube",
    ),
    _service(
        "amazon-prime", "Amazon Prime", [r"AMAZONPRIME", r"PRIME VIDEO", r"AMAZON PRIME"],
        "entertainment", frequency=BillingFrequency.ANNUAL, icon="Package",
    ),
    _service(
        "paramount-plus", "Paramount+", [r"PARAMNTPLUS", r"PARAMOUNT\+", r"PARAMOUNT PLUS"],
        "entertainment", icon="Tv",
    ),
    _service("apple-tv", "Apple TV+", [r"APPLE TV", r"APPLE\.COM.*TV"], "entertainment", icon="Apple"),
    _service("peacock", "Peacock", [r"PEACOCK"], "entertainment", icon="Tv"),

    # AI and work tools
    _service(
        "chatgpt", "ChatGPT Plus", [r"CHATGPT", r"OPENAI"], "work-ai",
        icon="Bot", website="chat.openai.com",
    ),
    _service(
        "claude-ai", "Claude Pro", [r"CLAUDE\.AI", r"ANTHROPIC"], "work-ai",
        icon="Bot", website="claude.ai",
    ),
    _service("perplexity", "Perplexity Pro", [r"PERPLEXITY"], "work-ai", icon="Search"),
    _service("github-copilot", "GitHub Copilot", [r"GITHUB", r"COPILOT"], "work-ai", icon="Github"),
    _service("vercel", "Vercel", [r"VERCEL"], "work-ai", icon="Cloud"),
    _service("supabase", "Supabase", [r"SUPABASE"], "work-ai", icon="Database"),
    _service("notion", "Notion", [r"NOTION"], "work-ai", icon="FileText"),
    _service("linear", "Linear", [r"LINEAR"], "work-ai", icon="ListTodo"),

    # Cloud storage
    _service(
        "google-one", "Google One", [r"GOOGLE ONE", r"GOOGLE\*GOOGLE ONE", r"GOOGLE\*DRIVE"],
        "personal", icon="Cloud",
    ),
    _service(
        "icloud", "iCloud+", [r"APPLE\.COM.*BILL", r"ICLOUD", r"APPLE\.COM/BILL"],
        "personal", icon="Cloud",
    ),
    _service("dropbox", "Dropbox", [r"DROPBOX"], "personal", icon="FolderSync"),

    # Health and fitness
    _service("whoop", "WHOOP", [r"WHOOP"], "health-sports", icon="Heart"),
    _service("strava", "Strava", [r"STRAVA"], "health-sports", icon="Bike"),
    _service("peloton", "Peloton", [r"PELOTON"], "health-sports", icon="Dumbbell"),

    # Food delivery and transportation
    _service(
        "doordash", "DoorDash DashPass", [r"DOORDASH.*DASHPASS", r"DASHPASS"], "personal",
        icon="UtensilsCrossed",
    ),
    _service("uber-one", "Uber One", [r"UBER ONE", r"UBER\*ONE"], "transportation", icon="Car"),

    # Music and audio
    _service("apple-music", "Apple Music", [r"APPLE MUSIC"], "entertainment", icon="Music"),
    _service("audible", "Audible", [r"AUDIBLE"], "entertainment", icon="Headphones"),
    _service("splice", "Splice", [r"SPLICE"], "entertainment", icon="Music"),

    # News and reading
    _service("nyt", "New York Times", [r"NYT", r"NEW YORK TIMES", r"NYTIMES"], "entertainment", icon="Newspaper"),
    _service("medium", "Medium", [r"MEDIUM\.COM", r"MEDIUM MEMBERSHIP"], "entertainment", icon="BookOpen"),
]

_KNOWN_SERVICES_BY_ID: Dict[str, KnownService] = {service.id: service for service in KNOWN_SERVICES}


def get_known_service(service_id: str) -> Optional[KnownService]:
    """Look up a registry entry by id."""
    return _KNOWN_SERVICES_BY_ID.get(service_id)


class KnownServiceMatcher:
    """
    Matches transactions against the known services registry.

    A transaction matches a service when any of the service's patterns is
    found, case-insensitively, in either the raw merchant text or the merchant
    identity produced by the normalizer.
    """

    def __init__(
        self,
        services: Optional[Sequence[KnownService]] = None,
        config: Optional[DetectionConfig] = None,
        normalizer: Optional[MerchantNormalizer] = None
    ):
        self.services = list(KNOWN_SERVICES if services is None else services)
        self.config = config or DEFAULT_CONFIG
        self.normalizer = normalizer or MerchantNormalizer()
        self._compiled: Dict[str, List[Pattern[str]]] = {
            service.id: [re.compile(p, re.IGNORECASE) for p in service.patterns]
            for service in self.services
        }

    def matches(self, service: KnownService, transaction: Transaction) -> bool:
        """True when the transaction's merchant text or identity matches the service."""
        identity = self.normalizer.canonicalize(transaction.merchant)
        return any(
            pattern.search(transaction.merchant) or (identity and pattern.search(identity))
            for pattern in self._compiled[service.id]
        )

    def is_known_service(self, transaction: Transaction) -> bool:
        """True when the transaction matches any service in the registry."""
        return any(self.matches(service, transaction) for service in self.services)

    def detect_known_services(
        self,
        transactions: Sequence[Transaction],
        existing_subscriptions: Iterable[Subscription],
        ignored_patterns: Iterable[str],
        minimum_occurrences: int = 2,
        now: Optional[datetime.datetime] = None
    ) -> List[Subscription]:
        """
        Find subscription candidates for registry services present in the transactions.

        Args:
            transactions: Transactions in any order
            existing_subscriptions: Subscriptions already tracked; their services are skipped
            ignored_patterns: Merchant patterns the user dismissed
            minimum_occurrences: Matching charges required before proposing a service
            now: Timestamp for created_at/updated_at (defaults to the current UTC time)

        Returns:
            One candidate Subscription per detected service, in registry order
        """
        existing = list(existing_subscriptions)
        claimed_service_ids = {s.known_service_id for s in existing if s.known_service_id}
        claimed_patterns = {s.merchant_pattern.upper() for s in existing}
        ignored = {p.upper() for p in ignored_patterns}
        timestamp = now or datetime.datetime.now(datetime.timezone.utc)

        candidates: List[Subscription] = []
        for service in self.services:
            if service.id in claimed_service_ids:
                continue

            matching = sorted(
                (txn for txn in transactions if self.matches(service, txn)),
                key=lambda t: (t.date, t.id)
            )
            if not matching or len(matching) < minimum_occurrences:
                continue

            merchant_pattern = find_mode(
                [self.normalizer.canonicalize(txn.merchant).upper() for txn in matching]
            )
            if merchant_pattern in ignored:
                logger.debug(f"Known service {service.id} skipped: pattern {merchant_pattern} is ignored")
                continue
            if merchant_pattern in claimed_patterns:
                logger.debug(f"Known service {service.id} skipped: pattern {merchant_pattern} already tracked")
                continue

            candidates.append(self._build_candidate(service, merchant_pattern, matching, timestamp))

        logger.info(f"Known service matching found {len(candidates)} candidates")
        return candidates

    def _build_candidate(
        self,
        service: KnownService,
        merchant_pattern: str,
        matching: List[Transaction],
        timestamp: datetime.datetime
    ) -> Subscription:
        amounts = [txn.amount for txn in matching]
        last_charge = matching[-1]
        confidence = self.config.known_service_confidence
        status = (
            SubscriptionStatus.ACTIVE
            if confidence >= self.config.auto_confirm_confidence
            else SubscriptionStatus.PENDING
        )

        return Subscription(
            id=f"sub-{service.id}-{uuid.uuid4().hex[:8]}",
            name=service.name,
            merchant_pattern=merchant_pattern,
            known_service_id=service.id,
            frequency=service.default_frequency,
            amount=to_money(sum(amounts, Decimal("0")) / len(amounts)),
            amount_variance=to_money(calculate_standard_deviation(amounts)),
            currency=self.config.default_currency,
            expected_billing_day=last_charge.date.day,
            last_charge_date=last_charge.date,
            next_expected_date=last_charge.date + datetime.timedelta(
                days=NOMINAL_INTERVAL_DAYS[service.default_frequency]
            ),
            status=status,
            detection_method=DetectionMethod.KNOWN_SERVICE,
            confidence=confidence,
            category_id=service.default_category_id,
            created_at=timestamp,
            updated_at=timestamp,
            transaction_ids=[txn.id for txn in matching],
        )


def detect_known_services(
    transactions: Sequence[Transaction],
    existing_subscriptions: Iterable[Subscription],
    ignored_patterns: Iterable[str],
    minimum_occurrences: int = 2,
    config: Optional[DetectionConfig] = None,
    now: Optional[datetime.datetime] = None
) -> List[Subscription]:
    """Match transactions against the default registry."""
    return KnownServiceMatcher(config=config).detect_known_services(
        transactions, existing_subscriptions, ignored_patterns, minimum_occurrences, now
    )
