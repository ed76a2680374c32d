"""
Subscription and recurring-pattern models.

This module provides Pydantic models for recurring charge detection and
subscription tracking, including the settings snapshot that the settings
store persists as a JSON document.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing_extensions import Self

logger = logging.getLogger(__name__)

DAY_OF_MONTH_ERROR_MESSAGE = "day_of_month must be between 1 and 31"


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class BillingFrequency(str, Enum):
    """Billing frequency of a subscription or recurring pattern."""
    WEEKLY = "weekly"              # ~7 day intervals
    BIWEEKLY = "biweekly"          # ~14 day intervals
    MONTHLY = "monthly"            # ~30 day intervals
    QUARTERLY = "quarterly"        # ~91 day intervals
    SEMI_ANNUAL = "semi-annual"    # ~182 day intervals
    ANNUAL = "annual"              # ~365 day intervals
    IRREGULAR = "irregular"        # No clear cadence


class DetectionMethod(str, Enum):
    """How a subscription was identified."""
    KNOWN_SERVICE = "known-service"          # Matched against the known services registry
    PATTERN_ANALYSIS = "pattern-analysis"    # Found by the recurring pattern analyzer
    USER_CONFIRMED = "user-confirmed"        # Marked manually by the user


class SubscriptionStatus(str, Enum):
    """Lifecycle status of a subscription."""
    ACTIVE = "active"          # Currently being charged
    PAUSED = "paused"          # No recent charges, but not cancelled
    CANCELLED = "cancelled"    # Marked cancelled by the user, history kept
    PENDING = "pending"        # Detected, awaiting confirmation


class KnownService(BaseModel):
    """A curated subscription service used to bootstrap detection."""
    id: str
    name: str
    patterns: List[str]  # Regex sources, matched case-insensitively
    default_frequency: BillingFrequency = Field(alias="defaultFrequency")
    default_category_id: str = Field(alias="defaultCategoryId")
    icon: Optional[str] = None
    website: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Subscription(BaseModel):
    """
    A detected or confirmed subscription owned by the settings store.

    Instances are treated as values: lifecycle operations return updated
    copies instead of mutating the stored subscription.
    """
    id: str = Field(default_factory=lambda: f"sub-{uuid.uuid4().hex[:12]}")

    # Service identification
    name: str
    merchant_pattern: str = Field(alias="merchantPattern")
    known_service_id: Optional[str] = Field(default=None, alias="knownServiceId")

    # Billing details
    frequency: BillingFrequency = BillingFrequency.MONTHLY
    amount: Decimal = Field(ge=0)
    amount_variance: Decimal = Field(default=Decimal("0"), alias="amountVariance", ge=0)
    currency: str = "USD"

    # Timing
    expected_billing_day: Optional[int] = Field(default=None, alias="expectedBillingDay")
    next_expected_date: Optional[datetime.date] = Field(default=None, alias="nextExpectedDate")
    last_charge_date: Optional[datetime.date] = Field(default=None, alias="lastChargeDate")

    # Status and tracking
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    detection_method: DetectionMethod = Field(
        default=DetectionMethod.USER_CONFIRMED, alias="detectionMethod"
    )
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    # User preferences
    category_id: str = Field(default="uncategorized", alias="categoryId")
    notify_before_renewal: bool = Field(default=True, alias="notifyBeforeRenewal")
    notify_days_before: int = Field(default=3, alias="notifyDaysBefore", ge=0)

    # Metadata
    created_at: datetime.datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: datetime.datetime = Field(default_factory=_utc_now, alias="updatedAt")
    transaction_ids: List[str] = Field(default_factory=list, alias="transactionIds")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        use_enum_values=False  # Preserve enum objects (not strings) for type safety
    )

    @field_validator('amount', 'amount_variance', mode='before')
    @classmethod
    def ensure_decimal(cls, v: Any) -> Decimal:
        if not isinstance(v, Decimal):
            try:
                return Decimal(str(v))
            except Exception as e:
                raise ValueError(f"Invalid amount value: {v}. Could not convert to Decimal.") from e
        return v

    @field_validator('expected_billing_day')
    @classmethod
    def validate_billing_day(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not (1 <= v <= 31):
            raise ValueError(DAY_OF_MONTH_ERROR_MESSAGE)
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the settings document shape (camelCase, ISO-8601 strings)."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Deserialize a subscription from the settings document."""
        return cls.model_validate(data)


class SubscriptionUpdate(BaseModel):
    """DTO for editing a subscription. Only explicitly set fields are applied."""
    name: Optional[str] = None
    merchant_pattern: Optional[str] = Field(default=None, alias="merchantPattern")
    frequency: Optional[BillingFrequency] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    amount_variance: Optional[Decimal] = Field(default=None, alias="amountVariance", ge=0)
    currency: Optional[str] = None
    expected_billing_day: Optional[int] = Field(default=None, alias="expectedBillingDay", ge=1, le=31)
    next_expected_date: Optional[datetime.date] = Field(default=None, alias="nextExpectedDate")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    notify_before_renewal: Optional[bool] = Field(default=None, alias="notifyBeforeRenewal")
    notify_days_before: Optional[int] = Field(default=None, alias="notifyDaysBefore", ge=0)
    transaction_ids: Optional[List[str]] = Field(default=None, alias="transactionIds")

    model_config = ConfigDict(populate_by_name=True)


class RecurringPattern(BaseModel):
    """
    A recurring charge pattern found in the current transaction set.

    Patterns are recomputed on every detection pass and never persisted.
    """
    merchant_pattern: str = Field(alias="merchantPattern")
    transaction_ids: List[str] = Field(alias="transactionIds")
    average_amount: Decimal = Field(alias="averageAmount")
    amount_std_dev: Decimal = Field(alias="amountStdDev")
    frequency: BillingFrequency
    frequency_confidence: float = Field(alias="frequencyConfidence", ge=0.0, le=1.0)
    day_of_month_mode: Optional[int] = Field(default=None, alias="dayOfMonthMode", ge=1, le=31)
    interval_days: float = Field(alias="intervalDays")
    interval_std_dev: float = Field(alias="intervalStdDev")
    first_date: datetime.date = Field(alias="firstDate")
    last_date: datetime.date = Field(alias="lastDate")
    occurrence_count: int = Field(alias="occurrenceCount", ge=0)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class UpcomingRenewal(BaseModel):
    """A forecast charge for an active subscription."""
    subscription_id: str = Field(alias="subscriptionId")
    subscription_name: str = Field(alias="subscriptionName")
    expected_date: datetime.date = Field(alias="expectedDate")
    expected_amount: Decimal = Field(alias="expectedAmount")
    days_until: int = Field(alias="daysUntil")
    category_id: str = Field(alias="categoryId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PriceChange(BaseModel):
    """A significant change in charge amount between two consecutive charges."""
    date: datetime.date
    previous_amount: Decimal = Field(alias="previousAmount")
    new_amount: Decimal = Field(alias="newAmount")
    percent_change: float = Field(alias="percentChange")
    transaction_id: str = Field(alias="transactionId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubscriptionAnalytics(BaseModel):
    """Lifetime financial summary of one subscription."""
    total_lifetime_spend: Decimal = Field(alias="totalLifetimeSpend")
    average_amount: Decimal = Field(alias="averageAmount")
    amount_std_dev: Decimal = Field(alias="amountStdDev")
    monthly_projection: Decimal = Field(alias="monthlyProjection")
    annual_projection: Decimal = Field(alias="annualProjection")
    charge_count: int = Field(alias="chargeCount")
    subscription_duration_days: int = Field(alias="subscriptionDurationDays")
    price_stability_score: float = Field(alias="priceStabilityScore", ge=0.0, le=1.0)
    first_charge_date: Optional[datetime.date] = Field(default=None, alias="firstChargeDate")
    last_charge_date: Optional[datetime.date] = Field(default=None, alias="lastChargeDate")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubscriptionSummary(BaseModel):
    """Aggregate cost of the active subscriptions."""
    total_monthly_spend: Decimal = Field(alias="totalMonthlySpend")
    annual_projection: Decimal = Field(alias="annualProjection")
    active_count: int = Field(alias="activeCount")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubscriptionSettings(BaseModel):
    """
    Snapshot of the subscription section of the user's settings.

    The settings store owns the only mutable reference; engine operations
    take a snapshot and return a replacement.
    """
    enable_auto_detection: bool = Field(default=True, alias="enableAutoDetection")
    minimum_occurrences: int = Field(default=2, alias="minimumOccurrences", ge=1)
    confidence_threshold: float = Field(default=0.7, alias="confidenceThreshold", ge=0.0, le=1.0)
    enable_renewal_notifications: bool = Field(default=True, alias="enableRenewalNotifications")
    default_notify_days_before: int = Field(default=3, alias="defaultNotifyDaysBefore", ge=0)
    subscriptions: List[Subscription] = Field(default_factory=list)
    ignored_patterns: List[str] = Field(default_factory=list, alias="ignoredPatterns")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def find_subscription(self, subscription_id: str) -> Optional[Subscription]:
        """Return the subscription with the given id, if any."""
        for subscription in self.subscriptions:
            if subscription.id == subscription_id:
                return subscription
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON settings document shape."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Deserialize from the JSON settings document."""
        return cls.model_validate(data)


class DetectionResult(BaseModel):
    """Outcome of one explicit detection run."""
    settings: SubscriptionSettings
    known_services: List[Subscription] = Field(default_factory=list, alias="knownServices")
    patterns: List[RecurringPattern] = Field(default_factory=list)
    upcoming_renewals: List[UpcomingRenewal] = Field(default_factory=list, alias="upcomingRenewals")
    summary: SubscriptionSummary

    model_config = ConfigDict(populate_by_name=True, frozen=True)
