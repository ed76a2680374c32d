"""
Recurring Pattern Detection Service.

This module finds subscription-like recurring charges in a transaction set
without being told which merchants are subscriptions.

## Detection Pipeline

```mermaid
graph TD
    A[Transactions] --> B[MerchantPatternAnalyzer]
    B --> C{>= minimum occurrences?}
    C -->|No| X[Dropped]
    C -->|Yes| D[Chronological sort + intervals]
    D --> E[FrequencyAnalyzer]
    E --> F[DayOfMonthAnalyzer]
    E --> G[ConfidenceScoreCalculator]
    F --> H[RecurringPattern]
    G --> H
    H --> I[Sort by confidence, merchant]
```

Confidence thresholds are not applied here; the detection run filters
patterns against the user's configured threshold.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from models.subscription import RecurringPattern, SubscriptionSettings
from models.transaction import Transaction
from services.merchant_normalizer import MerchantNormalizer
from services.recurring_charges.analyzers import (
    ConfidenceScoreCalculator,
    DayOfMonthAnalyzer,
    FrequencyAnalyzer,
    MerchantPatternAnalyzer,
)
from services.recurring_charges.config import DEFAULT_CONFIG, DetectionConfig
from utils.statistics import calculate_standard_deviation, to_money

logger = logging.getLogger(__name__)


class RecurringPatternDetectionService:
    """
    Orchestrates recurring pattern detection using specialized analyzers.

    Groups transactions by merchant identity, then applies the analyzers to
    classify frequency, score confidence and find the billing day.
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        normalizer: Optional[MerchantNormalizer] = None
    ):
        """
        Initialize the detection service.

        Args:
            config: Optional detection configuration. If None, uses DEFAULT_CONFIG.
            normalizer: Optional merchant normalizer. If None, uses the default alias table.
        """
        self.config = config or DEFAULT_CONFIG

        self.merchant_analyzer = MerchantPatternAnalyzer(normalizer)

        self.frequency_analyzer = FrequencyAnalyzer(
            frequency_bands=self.config.frequency_bands.to_dict(),
            max_interval_cv=self.config.max_interval_cv
        )

        self.day_of_month_analyzer = DayOfMonthAnalyzer()

        self.confidence_calculator = ConfidenceScoreCalculator(
            weights=self.config.confidence_weights,
            irregular_penalty=self.config.irregular_penalty,
            full_confidence_intervals=self.config.full_confidence_intervals,
            max_amount_cv=self.config.max_amount_cv
        )

    def analyze_recurring_patterns(
        self,
        transactions: Sequence[Transaction],
        settings: SubscriptionSettings
    ) -> List[RecurringPattern]:
        """
        Detect recurring charge patterns in transaction history.

        Args:
            transactions: Transactions in any order
            settings: Settings snapshot providing minimum_occurrences

        Returns:
            One RecurringPattern per qualifying merchant, sorted by confidence
            descending then merchant pattern
        """
        min_occurrences = settings.minimum_occurrences
        if len(transactions) < min_occurrences:
            logger.info(f"Insufficient transactions ({len(transactions)}) for pattern detection")
            return []

        groups = self.merchant_analyzer.group_by_merchant(transactions)
        logger.info(
            f"Starting pattern analysis of {len(transactions)} transactions "
            f"across {len(groups)} merchants"
        )

        patterns = []
        for merchant, group in groups.items():
            if len(group) < min_occurrences:
                continue
            patterns.append(self._analyze_pattern(merchant, group))

        patterns.sort(key=lambda p: (-p.frequency_confidence, p.merchant_pattern))

        logger.info(f"Pattern analysis complete: found {len(patterns)} patterns")
        return patterns

    def _analyze_pattern(
        self,
        merchant: str,
        group: List[Transaction]
    ) -> RecurringPattern:
        """
        Analyze one merchant group using specialized analyzers.

        Args:
            merchant: Merchant identity of the group
            group: Transactions of the group, any order

        Returns:
            RecurringPattern for the group
        """
        ordered = sorted(group, key=lambda t: (t.date, t.id))

        intervals = self.frequency_analyzer.calculate_intervals(ordered)
        frequency = self.frequency_analyzer.detect_frequency(intervals)
        interval_stats = self.frequency_analyzer.get_interval_statistics(intervals)

        amounts = [txn.amount for txn in ordered]
        average_amount = sum(amounts, Decimal("0")) / len(amounts)
        amount_std = calculate_standard_deviation(amounts)

        confidence = self.confidence_calculator.calculate(
            intervals, amounts, self.frequency_analyzer.get_band(frequency)
        )

        day_of_month = self.day_of_month_analyzer.analyze(ordered, frequency)

        logger.debug(
            f"Merchant {merchant}: {len(ordered)} charges, mean interval "
            f"{interval_stats['mean']:.1f}d, frequency {frequency.value}, confidence {confidence}"
        )

        return RecurringPattern(
            merchant_pattern=merchant,
            transaction_ids=[txn.id for txn in ordered],
            average_amount=to_money(average_amount),
            amount_std_dev=to_money(amount_std),
            frequency=frequency,
            frequency_confidence=confidence,
            day_of_month_mode=day_of_month,
            interval_days=interval_stats['mean'],
            interval_std_dev=interval_stats['std'],
            first_date=ordered[0].date,
            last_date=ordered[-1].date,
            occurrence_count=len(ordered)
        )


def analyze_recurring_patterns(
    transactions: Sequence[Transaction],
    settings: SubscriptionSettings,
    config: Optional[DetectionConfig] = None
) -> List[RecurringPattern]:
    """Detect recurring patterns with a service built from the given configuration."""
    return RecurringPatternDetectionService(config).analyze_recurring_patterns(transactions, settings)
