"""
Frequency analyzer for recurring charge detection.

Analyzes transaction intervals to detect billing frequency.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from models.subscription import BillingFrequency
from models.transaction import Transaction
from services.recurring_charges.config import FREQUENCY_BANDS, FrequencyBand
from utils.statistics import calculate_coefficient_of_variation
from utils.temporal_utils import calculate_intervals

logger = logging.getLogger(__name__)


class FrequencyAnalyzer:
    """
    Analyzes transaction intervals to detect billing frequency.

    Calculates the mean interval between charges and matches it to the
    reference frequency bands (weekly, monthly, etc.). Groups whose intervals
    vary too much are classified as irregular regardless of their mean.
    """

    def __init__(
        self,
        frequency_bands: Optional[Dict[BillingFrequency, FrequencyBand]] = None,
        max_interval_cv: float = 0.35
    ):
        """
        Initialize the frequency analyzer.

        Args:
            frequency_bands: Ordered mapping from BillingFrequency to FrequencyBand
            max_interval_cv: Interval coefficient of variation above which a group is irregular
        """
        self.frequency_bands = frequency_bands or FREQUENCY_BANDS
        self.max_interval_cv = max_interval_cv

    def detect_frequency(self, intervals: Sequence[int]) -> BillingFrequency:
        """
        Detect billing frequency from day intervals between consecutive charges.

        Args:
            intervals: Whole-day intervals in chronological order

        Returns:
            BillingFrequency enum indicating the detected frequency
        """
        if len(intervals) == 0:
            return BillingFrequency.IRREGULAR

        cv = calculate_coefficient_of_variation(intervals)
        if cv > self.max_interval_cv:
            logger.debug(f"Interval CV {cv:.3f} exceeds {self.max_interval_cv}; irregular")
            return BillingFrequency.IRREGULAR

        return self._match_to_frequency(float(np.mean(intervals)))

    def calculate_intervals(self, transactions: Sequence[Transaction]) -> List[int]:
        """
        Calculate day intervals between consecutive transactions.

        Args:
            transactions: Chronologically sorted list of transactions

        Returns:
            List of intervals in whole days
        """
        return calculate_intervals([txn.date for txn in transactions])

    def get_band(self, frequency: BillingFrequency) -> Optional[FrequencyBand]:
        """Return the reference band for a frequency, None for irregular."""
        return self.frequency_bands.get(frequency)

    def _match_to_frequency(self, mean_interval: float) -> BillingFrequency:
        """
        Match mean interval to frequency category.

        Args:
            mean_interval: Mean interval in days

        Returns:
            BillingFrequency that best matches the interval
        """
        for frequency, band in self.frequency_bands.items():
            if band.contains(mean_interval):
                return frequency

        return BillingFrequency.IRREGULAR

    def get_interval_statistics(self, intervals: Sequence[int]) -> Dict[str, float]:
        """
        Calculate detailed interval statistics.

        Args:
            intervals: Day intervals between consecutive charges

        Returns:
            Dictionary with mean, std, min, max intervals
        """
        if len(intervals) == 0:
            return {
                'mean': 0.0,
                'std': 0.0,
                'min': 0.0,
                'max': 0.0
            }

        return {
            'mean': float(np.mean(intervals)),
            'std': float(np.std(intervals)),
            'min': float(min(intervals)),
            'max': float(max(intervals))
        }
