"""
Configuration classes for recurring charge detection.

Centralizes all configuration parameters, thresholds, and weights used
in the detection pipeline.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from models.subscription import BillingFrequency


@dataclass(frozen=True)
class FrequencyBand:
    """Reference interval for one billing frequency."""

    center: float
    """Nominal number of days between charges."""

    tolerance: float
    """Maximum distance of the mean interval from the center, in days."""

    def contains(self, mean_interval: float) -> bool:
        return abs(mean_interval - self.center) <= self.tolerance


@dataclass
class FrequencyBands:
    """
    Interval bands for frequency classification.

    Bands are checked in declaration order; the first band whose tolerance
    window contains the mean interval wins.
    """

    weekly: FrequencyBand = field(default_factory=lambda: FrequencyBand(7, 1.5))
    """Weekly recurrence: 5.5 to 8.5 days between charges."""

    biweekly: FrequencyBand = field(default_factory=lambda: FrequencyBand(14, 2.5))
    """Bi-weekly recurrence: 11.5 to 16.5 days between charges."""

    monthly: FrequencyBand = field(default_factory=lambda: FrequencyBand(30, 5))
    """Monthly recurrence: 25 to 35 days between charges."""

    quarterly: FrequencyBand = field(default_factory=lambda: FrequencyBand(91, 8))
    """Quarterly recurrence: 83 to 99 days between charges."""

    semi_annual: FrequencyBand = field(default_factory=lambda: FrequencyBand(182, 12))
    """Semi-annual recurrence: 170 to 194 days between charges."""

    annual: FrequencyBand = field(default_factory=lambda: FrequencyBand(365, 15))
    """Annual recurrence: 350 to 380 days between charges."""

    def to_dict(self) -> Dict[BillingFrequency, FrequencyBand]:
        """
        Convert bands to a dictionary mapping frequency enum to band.

        Returns:
            Ordered dictionary from BillingFrequency to FrequencyBand
        """
        return {
            BillingFrequency.WEEKLY: self.weekly,
            BillingFrequency.BIWEEKLY: self.biweekly,
            BillingFrequency.MONTHLY: self.monthly,
            BillingFrequency.QUARTERLY: self.quarterly,
            BillingFrequency.SEMI_ANNUAL: self.semi_annual,
            BillingFrequency.ANNUAL: self.annual,
        }


@dataclass
class ConfidenceWeights:
    """
    Weights for multi-factor confidence score calculation.

    All weights must sum to 1.0 for proper normalization.
    """

    interval_regularity: float = 0.5
    """Weight for interval regularity score (how close gaps are to the band center)."""

    amount_regularity: float = 0.3
    """Weight for amount regularity score (how consistent are amounts)."""

    sample_size: float = 0.2
    """Weight for sample size score (how many intervals were observed)."""

    def __post_init__(self):
        """Validate that weights sum to 1.0."""
        total = self.interval_regularity + self.amount_regularity + self.sample_size
        if abs(total - 1.0) > 0.001:
            raise ValueError(
                f"Confidence weights must sum to 1.0, got {total}. "
                f"Weights: interval={self.interval_regularity}, "
                f"amount={self.amount_regularity}, "
                f"sample_size={self.sample_size}"
            )


# Days added to a last charge to forecast the next one
NOMINAL_INTERVAL_DAYS: Dict[BillingFrequency, int] = {
    BillingFrequency.WEEKLY: 7,
    BillingFrequency.BIWEEKLY: 14,
    BillingFrequency.MONTHLY: 30,
    BillingFrequency.QUARTERLY: 91,
    BillingFrequency.SEMI_ANNUAL: 182,
    BillingFrequency.ANNUAL: 365,
    BillingFrequency.IRREGULAR: 30,
}


class DetectionConfig:
    """
    Master configuration for recurring charge detection.

    Aggregates all configuration classes into a single configuration object.
    """

    def __init__(
        self,
        frequency_bands: Optional[FrequencyBands] = None,
        confidence_weights: Optional[ConfidenceWeights] = None,
        max_interval_cv: float = 0.35,
        max_amount_cv: float = 0.3,
        irregular_penalty: float = 0.5,
        full_confidence_intervals: int = 3,
        known_service_confidence: float = 0.95,
        auto_confirm_confidence: float = 0.9,
        renewal_horizon_days: int = 30,
        price_change_threshold_percent: float = 5.0,
        default_currency: str = "USD"
    ):
        """
        Initialize detection configuration.

        Args:
            frequency_bands: Frequency bands config (creates default if None)
            confidence_weights: Confidence weights config (creates default if None)
            max_interval_cv: Interval coefficient of variation above which a group is irregular
            max_amount_cv: Amount coefficient of variation above which confidence is scaled down
            irregular_penalty: Multiplier applied to the interval score of irregular groups
            full_confidence_intervals: Interval count at which the sample size score saturates
            known_service_confidence: Confidence assigned to known-service candidates
            auto_confirm_confidence: Confidence at or above which candidates are added as active
            renewal_horizon_days: Look-ahead window for upcoming renewals
            price_change_threshold_percent: Minimum absolute percent change reported as a price change
            default_currency: Currency label stamped on new subscriptions
        """
        self.frequency_bands = frequency_bands or FrequencyBands()
        self.confidence_weights = confidence_weights or ConfidenceWeights()
        self.max_interval_cv = max_interval_cv
        self.max_amount_cv = max_amount_cv
        self.irregular_penalty = irregular_penalty
        self.full_confidence_intervals = full_confidence_intervals
        self.known_service_confidence = known_service_confidence
        self.auto_confirm_confidence = auto_confirm_confidence
        self.renewal_horizon_days = renewal_horizon_days
        self.price_change_threshold_percent = price_change_threshold_percent
        self.default_currency = default_currency

    @classmethod
    def from_environment(cls) -> 'DetectionConfig':
        """
        Create configuration from environment variables with fallback to defaults.

        Environment variables:
        - RECURRING_MAX_INTERVAL_CV
        - RECURRING_MAX_AMOUNT_CV
        - RECURRING_IRREGULAR_PENALTY
        - RECURRING_FULL_CONFIDENCE_INTERVALS
        - RECURRING_KNOWN_SERVICE_CONFIDENCE
        - RECURRING_AUTO_CONFIRM_CONFIDENCE
        - RECURRING_RENEWAL_HORIZON_DAYS
        - RECURRING_PRICE_CHANGE_THRESHOLD
        - RECURRING_DEFAULT_CURRENCY
        """
        return cls(
            max_interval_cv=float(os.getenv('RECURRING_MAX_INTERVAL_CV', 0.35)),
            max_amount_cv=float(os.getenv('RECURRING_MAX_AMOUNT_CV', 0.3)),
            irregular_penalty=float(os.getenv('RECURRING_IRREGULAR_PENALTY', 0.5)),
            full_confidence_intervals=int(os.getenv('RECURRING_FULL_CONFIDENCE_INTERVALS', 3)),
            known_service_confidence=float(os.getenv('RECURRING_KNOWN_SERVICE_CONFIDENCE', 0.95)),
            auto_confirm_confidence=float(os.getenv('RECURRING_AUTO_CONFIRM_CONFIDENCE', 0.9)),
            renewal_horizon_days=int(os.getenv('RECURRING_RENEWAL_HORIZON_DAYS', 30)),
            price_change_threshold_percent=float(os.getenv('RECURRING_PRICE_CHANGE_THRESHOLD', 5.0)),
            default_currency=os.getenv('RECURRING_DEFAULT_CURRENCY', 'USD')
        )


# Default configuration instance
DEFAULT_CONFIG = DetectionConfig()

FREQUENCY_BANDS = DEFAULT_CONFIG.frequency_bands.to_dict()
