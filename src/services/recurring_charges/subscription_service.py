"""
Subscription Lifecycle Service.

Reads subscription history out of a transaction set and applies user actions
(confirm, dismiss, cancel, pause, resume, edit, remove) to a settings snapshot.

Every action takes the current SubscriptionSettings and returns a new one; the
input snapshot is never modified. Committing the replacement is the caller's
job.

Status transitions:
    pending  --confirm-->  active
    active   --cancel-->   cancelled
    paused   --cancel-->   cancelled
    active   --pause-->    paused
    paused   --resume-->   active
    any      --remove-->   (deleted)

Nothing leaves cancelled; re-subscribing creates a new subscription.
"""

import datetime
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from models.subscription import (
    BillingFrequency,
    DetectionMethod,
    PriceChange,
    RecurringPattern,
    Subscription,
    SubscriptionAnalytics,
    SubscriptionSettings,
    SubscriptionStatus,
    SubscriptionSummary,
    SubscriptionUpdate,
    UpcomingRenewal,
)
from models.transaction import DEFAULT_CATEGORY_ID, Transaction
from services.merchant_normalizer import canonicalize_merchant
from services.recurring_charges.config import DEFAULT_CONFIG, NOMINAL_INTERVAL_DAYS, DetectionConfig
from services.recurring_charges.known_services import get_known_service
from utils.statistics import calculate_standard_deviation, clamp, to_money
from utils.temporal_utils import days_between, days_until, start_of_day_utc

logger = logging.getLogger(__name__)

MONTHLY_MULTIPLIERS: Dict[BillingFrequency, Decimal] = {
    BillingFrequency.WEEKLY: Decimal("4.33"),
    BillingFrequency.BIWEEKLY: Decimal("2.17"),
    BillingFrequency.MONTHLY: Decimal("1"),
    BillingFrequency.QUARTERLY: Decimal("1") / Decimal("3"),
    BillingFrequency.SEMI_ANNUAL: Decimal("1") / Decimal("6"),
    BillingFrequency.ANNUAL: Decimal("1") / Decimal("12"),
    BillingFrequency.IRREGULAR: Decimal("1"),
}

FREQUENCY_LABELS: Dict[BillingFrequency, str] = {
    BillingFrequency.WEEKLY: "week",
    BillingFrequency.BIWEEKLY: "2 weeks",
    BillingFrequency.MONTHLY: "month",
    BillingFrequency.QUARTERLY: "quarter",
    BillingFrequency.SEMI_ANNUAL: "6 months",
    BillingFrequency.ANNUAL: "year",
    BillingFrequency.IRREGULAR: "irregular",
}

CANCELLABLE_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED)


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _chronological(transactions: Iterable[Transaction]) -> List[Transaction]:
    return sorted(transactions, key=lambda t: (t.date, t.id))


# --- Pure Helpers ---

def normalize_to_monthly(amount: Decimal, frequency: BillingFrequency) -> Decimal:
    """Convert a per-charge amount to its monthly equivalent."""
    return Decimal(amount) * MONTHLY_MULTIPLIERS[frequency]


def format_frequency(frequency: BillingFrequency) -> str:
    """Display label for a billing frequency, e.g. 'month' or '2 weeks'."""
    return FREQUENCY_LABELS[frequency]


def get_expected_interval_days(frequency: BillingFrequency) -> int:
    """Nominal number of days between charges (30 for irregular)."""
    return NOMINAL_INTERVAL_DAYS[frequency]


def calculate_next_expected_date(
    last_charge_date: datetime.date,
    frequency: BillingFrequency
) -> datetime.date:
    """Forecast the next charge date from the last one."""
    return last_charge_date + datetime.timedelta(days=get_expected_interval_days(frequency))


def format_duration(days: int) -> str:
    """
    Format a duration in days for display.

    Under 30 days reads as days, under a year as whole 30-day months, and
    longer as years with leftover months ("1y 3mo").
    """
    if days < 30:
        return f"{days} day{'s' if days != 1 else ''}"
    months = days // 30
    if months < 12:
        return f"{months} month{'s' if months != 1 else ''}"
    years, remaining_months = divmod(months, 12)
    if remaining_months == 0:
        return f"{years} year{'s' if years != 1 else ''}"
    return f"{years}y {remaining_months}mo"


def get_days_until_renewal(
    subscription: Subscription,
    now: Optional[datetime.datetime] = None
) -> Optional[int]:
    """Days until the next expected charge, or None when no date is known."""
    if subscription.next_expected_date is None:
        return None
    return days_until(subscription.next_expected_date, now or _utc_now())


def calculate_monthly_spend(subscriptions: Iterable[Subscription]) -> Decimal:
    """Monthly-normalized spend across active subscriptions, rounded to cents."""
    total = sum(
        (
            normalize_to_monthly(sub.amount, sub.frequency)
            for sub in subscriptions
            if sub.status == SubscriptionStatus.ACTIVE
        ),
        Decimal("0"),
    )
    return to_money(total)


def summarize_subscriptions(subscriptions: Sequence[Subscription]) -> SubscriptionSummary:
    """Monthly spend, annual projection and count of active subscriptions."""
    monthly = calculate_monthly_spend(subscriptions)
    return SubscriptionSummary(
        total_monthly_spend=monthly,
        annual_projection=to_money(monthly * 12),
        active_count=sum(1 for sub in subscriptions if sub.status == SubscriptionStatus.ACTIVE),
    )


def get_detection_explanation(subscription: Subscription) -> str:
    """Human readable explanation of how a subscription was identified."""
    if subscription.detection_method == DetectionMethod.KNOWN_SERVICE:
        service = get_known_service(subscription.known_service_id) if subscription.known_service_id else None
        if service:
            return f'Matched against known service "{service.name}" using pattern recognition.'
        return "Identified as a known subscription service."

    if subscription.detection_method == DetectionMethod.PATTERN_ANALYSIS:
        return (
            f"Detected through recurring charge analysis. {len(subscription.transaction_ids)} "
            f'transactions match the pattern "{subscription.merchant_pattern}" with '
            f"{subscription.frequency.value} frequency."
        )

    return "Manually confirmed by user as a recurring subscription."


# --- History Analysis ---

def _matches_pattern(pattern: str, merchant: str) -> bool:
    return pattern in merchant.upper() or canonicalize_merchant(merchant).upper() == pattern


def get_subscription_transactions(
    subscription: Subscription,
    transactions: Iterable[Transaction]
) -> List[Transaction]:
    """
    Find the charges that belong to a subscription.

    A transaction belongs to the subscription when its id is attached to the
    subscription, when the subscription's merchant pattern appears in the
    transaction's merchant text (case-insensitive), or when the pattern equals
    the transaction's merchant identity. Matching by text and identity picks up
    charges that arrived after the subscription was created, including those
    whose pattern is an alias name such as "AT&T" for "ATT MOB 12345".

    Args:
        subscription: Subscription to look up
        transactions: Transactions in any order

    Returns:
        Matching transactions without duplicates, newest first (ties by id)
    """
    pattern = subscription.merchant_pattern.upper()
    id_set = set(subscription.transaction_ids)

    matches: Dict[str, Transaction] = {}
    for txn in transactions:
        if txn.id in id_set or (pattern and _matches_pattern(pattern, txn.merchant)):
            matches.setdefault(txn.id, txn)

    by_id = sorted(matches.values(), key=lambda t: t.id)
    return sorted(by_id, key=lambda t: t.date, reverse=True)


def calculate_subscription_analytics(
    subscription: Subscription,
    transactions: Iterable[Transaction]
) -> SubscriptionAnalytics:
    """
    Calculate the lifetime financial summary of a subscription.

    A subscription without matching charges reports zero spend and projections
    based on its nominal amount, with a perfect stability score.

    Args:
        subscription: Subscription to analyze
        transactions: Transactions in any order

    Returns:
        SubscriptionAnalytics for the subscription
    """
    charges = _chronological(get_subscription_transactions(subscription, transactions))

    if not charges:
        monthly = normalize_to_monthly(subscription.amount, subscription.frequency)
        return SubscriptionAnalytics(
            total_lifetime_spend=Decimal("0"),
            average_amount=subscription.amount,
            amount_std_dev=Decimal("0"),
            monthly_projection=to_money(monthly),
            annual_projection=to_money(monthly * 12),
            charge_count=0,
            subscription_duration_days=0,
            price_stability_score=1.0,
        )

    amounts = [txn.amount for txn in charges]
    total = sum(amounts, Decimal("0"))
    average = total / len(amounts)
    std_dev = calculate_standard_deviation(amounts)
    stability = clamp(1.0 - std_dev / float(average)) if average > 0 else 1.0
    monthly = normalize_to_monthly(average, subscription.frequency)

    return SubscriptionAnalytics(
        total_lifetime_spend=total,
        average_amount=to_money(average),
        amount_std_dev=to_money(std_dev),
        monthly_projection=to_money(monthly),
        annual_projection=to_money(monthly * 12),
        charge_count=len(charges),
        subscription_duration_days=days_between(charges[0].date, charges[-1].date),
        price_stability_score=stability,
        first_charge_date=charges[0].date,
        last_charge_date=charges[-1].date,
    )


def detect_price_changes(
    subscription: Subscription,
    transactions: Iterable[Transaction],
    threshold_percent: float = 5.0
) -> List[PriceChange]:
    """
    Flag significant price changes between consecutive charges.

    Each consecutive chronological pair is compared on its own, so gradual
    drift below the threshold is not reported. Pairs whose earlier charge is
    zero have no defined percent change and are skipped.

    Args:
        subscription: Subscription to inspect
        transactions: Transactions in any order
        threshold_percent: Minimum absolute percent change to report

    Returns:
        One PriceChange per qualifying transition, oldest first
    """
    charges = _chronological(get_subscription_transactions(subscription, transactions))
    if len(charges) < 2:
        return []

    changes = []
    for previous, current in zip(charges, charges[1:]):
        if previous.amount == 0:
            continue
        percent_change = float((current.amount - previous.amount) / previous.amount * 100)
        if abs(percent_change) >= threshold_percent:
            changes.append(PriceChange(
                date=current.date,
                previous_amount=previous.amount,
                new_amount=current.amount,
                percent_change=percent_change,
                transaction_id=current.id,
            ))

    if changes:
        logger.debug(f"Subscription {subscription.id}: {len(changes)} price changes")
    return changes


def get_upcoming_renewals(
    subscriptions: Iterable[Subscription],
    horizon_days: int = 30,
    now: Optional[datetime.datetime] = None
) -> List[UpcomingRenewal]:
    """
    Forecast renewals of active subscriptions within a horizon.

    A renewal whose date, read as midnight UTC, is already behind the
    reference time is dropped, so a charge due today drops out once the day
    has started.

    Args:
        subscriptions: Subscriptions of any status
        horizon_days: Look-ahead window in days
        now: Reference time (defaults to the current UTC time)

    Returns:
        Renewals sorted by days until renewal, then subscription name
    """
    reference = now or _utc_now()
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=datetime.timezone.utc)
    renewals = []
    for sub in subscriptions:
        if sub.status != SubscriptionStatus.ACTIVE or sub.next_expected_date is None:
            continue
        if start_of_day_utc(sub.next_expected_date) < reference:
            continue
        remaining = days_until(sub.next_expected_date, reference)
        if remaining > horizon_days:
            continue
        renewals.append(UpcomingRenewal(
            subscription_id=sub.id,
            subscription_name=sub.name,
            expected_date=sub.next_expected_date,
            expected_amount=sub.amount,
            days_until=remaining,
            category_id=sub.category_id,
        ))

    return sorted(renewals, key=lambda r: (r.days_until, r.subscription_name))


# --- Settings Snapshot Transformations ---

def _require_subscription(settings: SubscriptionSettings, subscription_id: str) -> Subscription:
    subscription = settings.find_subscription(subscription_id)
    if subscription is None:
        raise ValueError(f"Subscription {subscription_id} not found")
    return subscription


def _replace_subscription(settings: SubscriptionSettings, updated: Subscription) -> SubscriptionSettings:
    return settings.model_copy(update={
        'subscriptions': [updated if sub.id == updated.id else sub for sub in settings.subscriptions]
    })


def _transition(
    settings: SubscriptionSettings,
    subscription_id: str,
    allowed_from: Sequence[SubscriptionStatus],
    target: SubscriptionStatus,
    action: str,
    now: Optional[datetime.datetime]
) -> SubscriptionSettings:
    subscription = _require_subscription(settings, subscription_id)
    if subscription.status not in allowed_from:
        raise ValueError(
            f"Subscription {subscription_id} with status {subscription.status.value} cannot be {action}. "
            f"Only {', '.join(s.value for s in allowed_from)} subscriptions can be {action}."
        )

    updated = subscription.model_copy(update={'status': target, 'updated_at': now or _utc_now()})
    logger.info(f"Subscription {subscription_id} {action}: {subscription.status.value} -> {target.value}")
    return _replace_subscription(settings, updated)


def add_subscription(settings: SubscriptionSettings, subscription: Subscription) -> SubscriptionSettings:
    """
    Append a subscription to the snapshot.

    Raises:
        ValueError: If a subscription with the same id already exists
    """
    if settings.find_subscription(subscription.id) is not None:
        raise ValueError(f"Subscription {subscription.id} already exists")
    return settings.model_copy(update={'subscriptions': [*settings.subscriptions, subscription]})


def pattern_to_subscription(
    pattern: RecurringPattern,
    category_id: str = DEFAULT_CATEGORY_ID,
    notify_days_before: int = 3,
    config: Optional[DetectionConfig] = None,
    now: Optional[datetime.datetime] = None
) -> Subscription:
    """
    Build an active subscription from a detected recurring pattern.

    Args:
        pattern: Pattern the user accepted
        category_id: Category to file the subscription under
        notify_days_before: Days of renewal notice
        config: Detection configuration providing the currency label
        now: Creation timestamp (defaults to the current UTC time)

    Returns:
        New Subscription detected by pattern analysis
    """
    config = config or DEFAULT_CONFIG
    timestamp = now or _utc_now()
    return Subscription(
        name=pattern.merchant_pattern,
        merchant_pattern=pattern.merchant_pattern,
        frequency=pattern.frequency,
        amount=pattern.average_amount,
        amount_variance=pattern.amount_std_dev,
        currency=config.default_currency,
        expected_billing_day=pattern.day_of_month_mode,
        last_charge_date=pattern.last_date,
        next_expected_date=calculate_next_expected_date(pattern.last_date, pattern.frequency),
        status=SubscriptionStatus.ACTIVE,
        detection_method=DetectionMethod.PATTERN_ANALYSIS,
        confidence=pattern.frequency_confidence,
        category_id=category_id,
        notify_days_before=notify_days_before,
        created_at=timestamp,
        updated_at=timestamp,
        transaction_ids=list(pattern.transaction_ids),
    )


def confirm_pattern(
    settings: SubscriptionSettings,
    pattern: RecurringPattern,
    category_id: str = DEFAULT_CATEGORY_ID,
    config: Optional[DetectionConfig] = None,
    now: Optional[datetime.datetime] = None
) -> SubscriptionSettings:
    """Accept a detected pattern as an active subscription."""
    subscription = pattern_to_subscription(
        pattern,
        category_id=category_id,
        notify_days_before=settings.default_notify_days_before,
        config=config,
        now=now,
    )
    logger.info(f"Pattern {pattern.merchant_pattern} confirmed as subscription {subscription.id}")
    return add_subscription(settings, subscription)


def confirm_subscription(
    settings: SubscriptionSettings,
    subscription: Union[str, Subscription],
    now: Optional[datetime.datetime] = None
) -> SubscriptionSettings:
    """
    Confirm a subscription.

    A stored pending subscription moves to active. A candidate that is not
    yet in the snapshot (for example a known-service match below the
    auto-confirm floor) is added as active.

    Args:
        settings: Current snapshot
        subscription: Id of a stored subscription, or a candidate Subscription
        now: Timestamp for updated_at

    Returns:
        New snapshot

    Raises:
        ValueError: If the id is unknown or the stored subscription is not pending
    """
    if isinstance(subscription, Subscription):
        if settings.find_subscription(subscription.id) is None:
            candidate = subscription.model_copy(update={
                'status': SubscriptionStatus.ACTIVE,
                'updated_at': now or _utc_now(),
            })
            logger.info(f"Candidate {candidate.id} ({candidate.name}) confirmed and added")
            return add_subscription(settings, candidate)
        subscription_id = subscription.id
    else:
        subscription_id = subscription

    return _transition(
        settings, subscription_id,
        (SubscriptionStatus.PENDING,), SubscriptionStatus.ACTIVE, "confirmed", now,
    )


def dismiss_pattern(settings: SubscriptionSettings, pattern: str) -> SubscriptionSettings:
    """
    Add a merchant pattern to the ignore list.

    Patterns are stored upper-cased and trimmed. Dismissing a pattern that is
    already ignored returns the snapshot unchanged.
    """
    normalized = pattern.upper().strip()
    if normalized in settings.ignored_patterns:
        return settings
    logger.info(f"Pattern {normalized} dismissed")
    return settings.model_copy(update={'ignored_patterns': [*settings.ignored_patterns, normalized]})


def cancel_subscription(
    settings: SubscriptionSettings,
    subscription_id: str,
    now: Optional[datetime.datetime] = None
) -> SubscriptionSettings:
    """Mark an active or paused subscription as cancelled, keeping its history."""
    return _transition(
        settings, subscription_id,
        CANCELLABLE_STATUSES, SubscriptionStatus.CANCELLED, "cancelled", now,
    )


def pause_subscription(
    settings: SubscriptionSettings,
    subscription_id: str,
    now: Optional[datetime.datetime] = None
) -> SubscriptionSettings:
    """Mark an active subscription as paused."""
    return _transition(
        settings, subscription_id,
        (SubscriptionStatus.ACTIVE,), SubscriptionStatus.PAUSED, "paused", now,
    )


def resume_subscription(
    settings: SubscriptionSettings,
    subscription_id: str,
    now: Optional[datetime.datetime] = None
) -> SubscriptionSettings:
    """Return a paused subscription to active."""
    return _transition(
        settings, subscription_id,
        (SubscriptionStatus.PAUSED,), SubscriptionStatus.ACTIVE, "resumed", now,
    )


def update_subscription(
    settings: SubscriptionSettings,
    subscription_id: str,
    update: SubscriptionUpdate,
    now: Optional[datetime.datetime] = None
) -> SubscriptionSettings:
    """
    Apply user edits to a subscription.

    Only fields explicitly set on the update are changed. Status is not
    editable here; use the lifecycle actions.

    Raises:
        ValueError: If the subscription does not exist
    """
    subscription = _require_subscription(settings, subscription_id)
    changes = update.model_dump(exclude_unset=True)
    if not changes:
        return settings

    data = subscription.model_dump()
    data.update(changes)
    data['updated_at'] = now or _utc_now()
    updated = Subscription.model_validate(data)

    logger.info(f"Subscription {subscription_id} updated: {', '.join(sorted(changes))}")
    return _replace_subscription(settings, updated)


def remove_subscription(settings: SubscriptionSettings, subscription_id: str) -> SubscriptionSettings:
    """
    Delete a subscription from the snapshot.

    Raises:
        ValueError: If the subscription does not exist
    """
    _require_subscription(settings, subscription_id)
    logger.info(f"Subscription {subscription_id} removed")
    return settings.model_copy(update={
        'subscriptions': [sub for sub in settings.subscriptions if sub.id != subscription_id]
    })


def record_charge(
    settings: SubscriptionSettings,
    subscription_id: str,
    transaction: Transaction,
    now: Optional[datetime.datetime] = None
) -> SubscriptionSettings:
    """
    Attach a new charge to a subscription and roll its forecast forward.

    The last charge date only moves forward; a back-dated charge is attached
    without changing the forecast.

    Raises:
        ValueError: If the subscription does not exist or is cancelled
    """
    subscription = _require_subscription(settings, subscription_id)
    if subscription.status == SubscriptionStatus.CANCELLED:
        raise ValueError(f"Subscription {subscription_id} is cancelled and cannot record charges")

    changes = {'updated_at': now or _utc_now()}
    if transaction.id not in subscription.transaction_ids:
        changes['transaction_ids'] = [*subscription.transaction_ids, transaction.id]

    if subscription.last_charge_date is None or transaction.date > subscription.last_charge_date:
        changes['last_charge_date'] = transaction.date
        changes['next_expected_date'] = calculate_next_expected_date(transaction.date, subscription.frequency)

    logger.debug(f"Subscription {subscription_id}: recorded charge {transaction.id}")
    return _replace_subscription(settings, subscription.model_copy(update=changes))
