"""
Confidence score calculator for recurring charge detection.

Calculates multi-factor confidence scores for recurring charge patterns.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from services.recurring_charges.config import ConfidenceWeights, FrequencyBand
from utils.statistics import (
    Number,
    calculate_coefficient_of_variation,
    calculate_mean,
    calculate_standard_deviation,
    clamp,
)

logger = logging.getLogger(__name__)


class ConfidenceScoreCalculator:
    """
    Calculates multi-factor confidence scores for recurring charge patterns.

    Considers:
    - Interval regularity (how close the intervals are to the band center)
    - Amount regularity (how consistent are the amounts)
    - Sample size (more intervals = higher confidence)

    Groups whose amount coefficient of variation exceeds max_amount_cv have
    the weighted score scaled by their amount regularity.
    """

    def __init__(
        self,
        weights: Optional[ConfidenceWeights] = None,
        irregular_penalty: float = 0.5,
        full_confidence_intervals: int = 3,
        max_amount_cv: float = 0.3
    ):
        """
        Initialize the confidence score calculator.

        Args:
            weights: Optional custom weights for scoring factors.
                    If None, uses default weights (50%, 30%, 20%)
            irregular_penalty: Multiplier applied to the interval score of irregular groups
            full_confidence_intervals: Interval count at which the sample size score reaches 1.0
            max_amount_cv: Amount coefficient of variation above which the score is scaled down
        """
        self.weights = weights or ConfidenceWeights()
        self.irregular_penalty = irregular_penalty
        self.full_confidence_intervals = max(1, full_confidence_intervals)
        self.max_amount_cv = max_amount_cv

    def calculate(
        self,
        intervals: Sequence[int],
        amounts: Sequence[Number],
        band: Optional[FrequencyBand]
    ) -> float:
        """
        Calculate confidence score (0.0-1.0).

        Args:
            intervals: Day intervals between consecutive charges
            amounts: Charge amounts of the group
            band: Reference band of the detected frequency, None when irregular

        Returns:
            Confidence score between 0.0 and 1.0, rounded to 4 places
        """
        interval_regularity = self._calculate_interval_regularity(intervals, band)
        amount_regularity = self._calculate_amount_regularity(amounts)
        sample_size_score = self._calculate_sample_size_score(intervals)

        confidence = (
            self.weights.interval_regularity * interval_regularity +
            self.weights.amount_regularity * amount_regularity +
            self.weights.sample_size * sample_size_score
        )

        if calculate_coefficient_of_variation(amounts) > self.max_amount_cv:
            confidence *= amount_regularity

        return round(clamp(confidence), 4)

    def _calculate_interval_regularity(
        self,
        intervals: Sequence[int],
        band: Optional[FrequencyBand]
    ) -> float:
        """
        Calculate how regular the intervals are between transactions.

        For a banded frequency this is the root-mean-square distance of each
        interval from the band center, relative to the band tolerance. Irregular
        groups fall back to the inverted coefficient of variation, penalized.

        Args:
            intervals: Day intervals
            band: Reference band, or None for irregular

        Returns:
            Regularity score (0.0-1.0)
        """
        if len(intervals) == 0:
            return 0.0

        if band is None:
            cv = calculate_coefficient_of_variation(intervals)
            return clamp(1.0 - cv) * self.irregular_penalty

        deviations = np.asarray(intervals, dtype=float) - band.center
        rms = float(np.sqrt(np.mean(deviations ** 2)))
        return clamp(1.0 - rms / band.tolerance)

    def _calculate_amount_regularity(self, amounts: Sequence[Number]) -> float:
        """
        Calculate how regular the amounts are across transactions.

        Uses coefficient of variation (std/mean) inverted to [0,1] range.
        A group of zero amounts is perfectly regular.

        Args:
            amounts: Charge amounts

        Returns:
            Regularity score (0.0-1.0)
        """
        mean_amount = calculate_mean(amounts)
        if mean_amount == 0:
            return 1.0
        return clamp(1.0 - calculate_standard_deviation(amounts) / mean_amount)

    def _calculate_sample_size_score(self, intervals: Sequence[int]) -> float:
        """
        Calculate score based on number of observed intervals.

        Args:
            intervals: Day intervals

        Returns:
            Sample size score (0.0-1.0)
        """
        return min(1.0, len(intervals) / self.full_confidence_intervals)
