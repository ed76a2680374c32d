"""
Overall analytics service.

Combines the spending aggregator and the statistics toolkit into the
all-time summary consumed by dashboards.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from models.analytics import CategoryTotal, OverallAnalytics
from models.transaction import Transaction
from services.spending_aggregator import SpendingAggregator
from utils.statistics import (
    calculate_mean,
    calculate_median,
    calculate_moving_average,
    calculate_standard_deviation,
    find_peak_periods,
    to_money,
)

# Configure logging
logger = logging.getLogger(__name__)

TREND_WINDOW_MONTHS = 3


class OverallAnalyticsService:
    """Computes the all-time spending summary of a transaction set."""

    def __init__(
        self,
        aggregator: Optional[SpendingAggregator] = None,
        trend_window_months: int = TREND_WINDOW_MONTHS
    ):
        self.aggregator = aggregator or SpendingAggregator()
        self.trend_window_months = trend_window_months

    def compute_overall_analytics(self, transactions: Sequence[Transaction]) -> OverallAnalytics:
        """
        Compute the all-time summary.

        Monthly statistics are taken over monthly bucket totals, so months
        without spending do not pull the average down. Category monthly
        averages divide by the number of months with any spending.

        Args:
            transactions: Transactions in any order

        Returns:
            OverallAnalytics; all zero or empty for an empty transaction set
        """
        if not transactions:
            logger.info("No transactions supplied; returning empty analytics")
            return OverallAnalytics()

        total_spending = sum((txn.amount for txn in transactions), Decimal("0"))
        date_range = self.aggregator.get_date_range(transactions)
        monthly_data = self.aggregator.calculate_monthly_data(transactions)
        monthly_totals = [bucket.total for bucket in monthly_data]

        analytics = OverallAnalytics(
            total_spending=total_spending,
            transaction_count=len(transactions),
            date_range=date_range,
            monthly_average=calculate_mean(monthly_totals),
            median_monthly=calculate_median(monthly_totals),
            standard_deviation=calculate_standard_deviation(monthly_totals),
            average_transaction=to_money(total_spending / len(transactions)),
            peak_periods=find_peak_periods(transactions),
            monthly_data=monthly_data,
            yearly_data=self.aggregator.calculate_yearly_data(transactions),
            category_totals=self._calculate_category_totals(
                transactions, total_spending, date_range.month_count
            ),
            merchant_rankings=self.aggregator.aggregate_merchants(transactions),
            monthly_trend=calculate_moving_average(monthly_totals, self.trend_window_months),
            month_over_month=self.aggregator.calculate_month_over_month(monthly_data),
        )

        logger.info(
            f"Computed overall analytics: {len(transactions)} transactions, "
            f"{len(monthly_data)} months, total {total_spending}"
        )
        return analytics

    def _calculate_category_totals(
        self,
        transactions: Sequence[Transaction],
        total_spending: Decimal,
        month_count: int
    ) -> List[CategoryTotal]:
        """Per-category totals sorted by total descending, ties by category id."""
        totals: Dict[str, Decimal] = defaultdict(Decimal)
        counts: Dict[str, int] = defaultdict(int)
        for txn in transactions:
            totals[txn.category_id] += txn.amount
            counts[txn.category_id] += 1

        category_totals = [
            CategoryTotal(
                id=category_id,
                total=total,
                count=counts[category_id],
                percent_of_total=float(total / total_spending * 100) if total_spending > 0 else 0.0,
                monthly_average=to_money(total / month_count) if month_count > 0 else Decimal("0"),
            )
            for category_id, total in totals.items()
        ]
        category_totals.sort(key=lambda c: (-c.total, c.id))
        return category_totals


def compute_overall_analytics(transactions: Sequence[Transaction]) -> OverallAnalytics:
    """Compute the all-time summary with a default service."""
    return OverallAnalyticsService().compute_overall_analytics(transactions)
