"""
Detection run orchestration.

`run_detection` is the single caller-invoked entry point that reconciles a
transaction set with a settings snapshot: it matches known services, adds
high-confidence matches to a new snapshot, analyzes recurring patterns that
are not yet tracked, and forecasts renewals. How often to call it (for
example only when the transaction count grows) is up to the caller.
"""

import datetime
import logging
from typing import List, Optional, Sequence

from models.subscription import (
    DetectionResult,
    RecurringPattern,
    Subscription,
    SubscriptionSettings,
)
from models.transaction import Transaction
from services.recurring_charges.config import DEFAULT_CONFIG, DetectionConfig
from services.recurring_charges.detection_service import RecurringPatternDetectionService
from services.recurring_charges.known_services import KnownServiceMatcher
from services.recurring_charges.subscription_service import (
    add_subscription,
    get_upcoming_renewals,
    summarize_subscriptions,
)
from utils.performance import DetectionPerformanceTracker

logger = logging.getLogger(__name__)


def _untracked_patterns(
    patterns: Sequence[RecurringPattern],
    transactions: Sequence[Transaction],
    subscriptions: Sequence[Subscription],
    ignored_patterns: Sequence[str],
    confidence_threshold: float,
    matcher: KnownServiceMatcher
) -> List[RecurringPattern]:
    """
    Drop patterns that are already accounted for or below the confidence threshold.

    A pattern is accounted for when its merchant is tracked or dismissed, when
    every one of its charges is attached to a subscription, or when any of its
    charges belongs to a known service. Known services are reported through
    known-service matching only, whatever descriptor the statement uses.
    """
    known = {sub.merchant_pattern.upper() for sub in subscriptions}
    known.update(p.upper() for p in ignored_patterns)
    claimed_ids = {txn_id for sub in subscriptions for txn_id in sub.transaction_ids}
    by_id = {txn.id: txn for txn in transactions}

    untracked = []
    for pattern in patterns:
        if pattern.merchant_pattern.upper() in known:
            continue
        if all(txn_id in claimed_ids for txn_id in pattern.transaction_ids):
            logger.debug(f"Pattern {pattern.merchant_pattern} skipped: charges already tracked")
            continue
        if any(matcher.is_known_service(by_id[txn_id]) for txn_id in pattern.transaction_ids):
            logger.debug(f"Pattern {pattern.merchant_pattern} skipped: known service")
            continue
        if pattern.frequency_confidence < confidence_threshold:
            continue
        untracked.append(pattern)
    return untracked


def run_detection(
    transactions: Sequence[Transaction],
    settings: SubscriptionSettings,
    config: Optional[DetectionConfig] = None,
    now: Optional[datetime.datetime] = None
) -> DetectionResult:
    """
    Run one detection pass over a transaction set.

    Args:
        transactions: Transactions in any order
        settings: Current settings snapshot (not modified)
        config: Detection configuration (uses DEFAULT_CONFIG if None)
        now: Reference time for timestamps and renewal forecasts

    Returns:
        DetectionResult carrying the replacement snapshot, every known-service
        candidate found, the untracked patterns for review, upcoming renewals
        and the spend summary
    """
    config = config or DEFAULT_CONFIG
    now = now or datetime.datetime.now(datetime.timezone.utc)

    if not settings.enable_auto_detection:
        logger.info("Auto-detection disabled; skipping detection run")
        return DetectionResult(
            settings=settings,
            upcoming_renewals=get_upcoming_renewals(
                settings.subscriptions, config.renewal_horizon_days, now
            ),
            summary=summarize_subscriptions(settings.subscriptions),
        )

    matcher = KnownServiceMatcher(config=config)
    detection_service = RecurringPatternDetectionService(config=config)

    with DetectionPerformanceTracker("run_detection") as tracker:
        tracker.set_transaction_count(len(transactions))

        with tracker.stage("known_services"):
            candidates = matcher.detect_known_services(
                transactions,
                settings.subscriptions,
                settings.ignored_patterns,
                minimum_occurrences=settings.minimum_occurrences,
                now=now,
            )
        tracker.set_known_services_detected(len(candidates))

        updated = settings
        for candidate in candidates:
            if candidate.confidence >= config.auto_confirm_confidence:
                updated = add_subscription(updated, candidate)
                logger.info(f"Auto-added known service {candidate.known_service_id} as {candidate.id}")

        with tracker.stage("pattern_analysis"):
            patterns = detection_service.analyze_recurring_patterns(transactions, settings)
            patterns = _untracked_patterns(
                patterns,
                transactions,
                updated.subscriptions,
                settings.ignored_patterns,
                settings.confidence_threshold,
                matcher,
            )
        tracker.set_patterns_detected(len(patterns))

        with tracker.stage("renewals"):
            renewals = get_upcoming_renewals(updated.subscriptions, config.renewal_horizon_days, now)

    return DetectionResult(
        settings=updated,
        known_services=candidates,
        patterns=patterns,
        upcoming_renewals=renewals,
        summary=summarize_subscriptions(updated.subscriptions),
    )
