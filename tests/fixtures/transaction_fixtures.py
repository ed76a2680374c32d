"""
Test fixtures and factory functions for spending analytics and recurring charge detection.

Provides factory functions for transactions, subscriptions and common
recurring charge scenarios.
"""

import itertools
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from models.subscription import (
    BillingFrequency,
    DetectionMethod,
    Subscription,
    SubscriptionSettings,
    SubscriptionStatus,
)
from models.transaction import Transaction

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


def create_transaction(
    txn_date: date,
    merchant: str,
    amount: Union[str, Decimal],
    category_id: str = "uncategorized",
    txn_id: Optional[str] = None
) -> Transaction:
    """
    Create a single test transaction.

    Args:
        txn_date: Posting date
        merchant: Merchant descriptor as it appears on the statement
        amount: Spend amount (positive)
        category_id: Category id
        txn_id: Optional id (generates a sequential one if None)

    Returns:
        Transaction object
    """
    return Transaction(
        id=txn_id or f"txn-{next(_ids):05d}",
        date=txn_date,
        merchant=merchant,
        category_id=category_id,
        amount=Decimal(str(amount)),
    )


def create_recurring_series(
    merchant: str,
    amount: Union[str, Decimal],
    start: date,
    interval_days: int,
    count: int,
    category_id: str = "uncategorized",
    id_prefix: Optional[str] = None
) -> List[Transaction]:
    """Create `count` charges spaced exactly `interval_days` apart."""
    prefix = id_prefix or merchant.lower().replace(" ", "-")
    return [
        create_transaction(
            start + timedelta(days=interval_days * i),
            merchant,
            amount,
            category_id=category_id,
            txn_id=f"{prefix}-{i}",
        )
        for i in range(count)
    ]


def create_dated_series(
    merchant: str,
    amounts: Sequence[Union[str, Decimal]],
    dates: Sequence[date],
    id_prefix: str
) -> List[Transaction]:
    """Create one charge per (date, amount) pair."""
    return [
        create_transaction(d, merchant, amount, txn_id=f"{id_prefix}-{i}")
        for i, (d, amount) in enumerate(zip(dates, amounts))
    ]


def create_netflix_scenario() -> List[Transaction]:
    """Four monthly Netflix charges of 15.99, 30 days apart."""
    return create_recurring_series(
        "NETFLIX.COM", "15.99", date(2024, 1, 15), 30, 4,
        category_id="entertainment", id_prefix="netflix",
    )


def create_subscription(
    sub_id: str = "sub-test",
    name: str = "Test Service",
    merchant_pattern: str = "TEST SERVICE",
    amount: Union[str, Decimal] = "10.00",
    frequency: BillingFrequency = BillingFrequency.MONTHLY,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    next_expected_date: Optional[date] = None,
    last_charge_date: Optional[date] = None,
    transaction_ids: Optional[List[str]] = None,
    known_service_id: Optional[str] = None,
    detection_method: DetectionMethod = DetectionMethod.USER_CONFIRMED,
    category_id: str = "uncategorized"
) -> Subscription:
    """Create a subscription with sensible defaults."""
    return Subscription(
        id=sub_id,
        name=name,
        merchant_pattern=merchant_pattern,
        known_service_id=known_service_id,
        frequency=frequency,
        amount=Decimal(str(amount)),
        status=status,
        detection_method=detection_method,
        next_expected_date=next_expected_date,
        last_charge_date=last_charge_date,
        transaction_ids=transaction_ids or [],
        category_id=category_id,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def create_settings(
    subscriptions: Optional[List[Subscription]] = None,
    ignored_patterns: Optional[List[str]] = None,
    **overrides
) -> SubscriptionSettings:
    """Create a settings snapshot with defaults and optional overrides."""
    return SubscriptionSettings(
        subscriptions=subscriptions or [],
        ignored_patterns=ignored_patterns or [],
        **overrides
    )
