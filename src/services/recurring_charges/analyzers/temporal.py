"""
Temporal pattern analyzer for recurring charge detection.

Finds the billing day of month for charges that recur monthly or less often.
"""

import logging
from typing import Optional, Sequence

from models.subscription import BillingFrequency
from models.transaction import Transaction
from utils.statistics import find_mode

logger = logging.getLogger(__name__)

# Frequencies for which a day of month is meaningful
DAY_OF_MONTH_FREQUENCIES = frozenset({
    BillingFrequency.MONTHLY,
    BillingFrequency.QUARTERLY,
    BillingFrequency.SEMI_ANNUAL,
    BillingFrequency.ANNUAL,
})


class DayOfMonthAnalyzer:
    """Detects the modal day of month a recurring charge lands on."""

    def analyze(
        self,
        cluster_transactions: Sequence[Transaction],
        frequency: BillingFrequency
    ) -> Optional[int]:
        """
        Find the most common day of month among the charges.

        Args:
            cluster_transactions: Chronologically sorted transactions
            frequency: Detected billing frequency

        Returns:
            Day of month (1-31) or None for weekly, biweekly and irregular charges
        """
        if frequency not in DAY_OF_MONTH_FREQUENCIES or not cluster_transactions:
            return None
        return find_mode([txn.date.day for txn in cluster_transactions])
