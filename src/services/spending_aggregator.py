"""
Time-bucketed spending aggregation.

Groups transactions into calendar month, year and day buckets, and rolls up
category and merchant totals. Buckets partition the input: every transaction
lands in exactly one monthly bucket, so monthly totals sum to total spend.
"""
import datetime
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from models.analytics import DateRange, MerchantRanking, MonthlyBucket, MonthOverMonthChange, YearlyBucket
from models.transaction import Transaction
from services.merchant_normalizer import MerchantNormalizer
from utils.statistics import to_money
from utils.temporal_utils import days_between, month_key, month_label, month_start_from_key

# Configure logging
logger = logging.getLogger(__name__)


def _total(transactions: Iterable[Transaction]) -> Decimal:
    return sum((txn.amount for txn in transactions), Decimal("0"))


class SpendingAggregator:
    """Aggregates transactions into time buckets and rankings."""

    def __init__(self, normalizer: Optional[MerchantNormalizer] = None):
        self.normalizer = normalizer or MerchantNormalizer()

    def group_by_month(self, transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
        """Group transactions by YYYY-MM, keys in chronological order."""
        groups: Dict[str, List[Transaction]] = defaultdict(list)
        for txn in transactions:
            groups[month_key(txn.date)].append(txn)
        return {key: groups[key] for key in sorted(groups)}

    def group_by_year(self, transactions: Iterable[Transaction]) -> Dict[int, List[Transaction]]:
        """Group transactions by calendar year, keys in chronological order."""
        groups: Dict[int, List[Transaction]] = defaultdict(list)
        for txn in transactions:
            groups[txn.date.year].append(txn)
        return {key: groups[key] for key in sorted(groups)}

    def group_by_day(self, transactions: Iterable[Transaction]) -> Dict[datetime.date, List[Transaction]]:
        """Group transactions by posting date, keys in chronological order."""
        groups: Dict[datetime.date, List[Transaction]] = defaultdict(list)
        for txn in transactions:
            groups[txn.date].append(txn)
        return {key: groups[key] for key in sorted(groups)}

    def calculate_monthly_data(self, transactions: Sequence[Transaction]) -> List[MonthlyBucket]:
        """
        Build one bucket per calendar month that has transactions.

        Months without transactions are not synthesized. Each bucket carries
        per-category subtotals keyed by category id.
        """
        buckets = []
        for period, txns in self.group_by_month(transactions).items():
            categories: Dict[str, Decimal] = defaultdict(Decimal)
            for txn in txns:
                categories[txn.category_id] += txn.amount
            buckets.append(MonthlyBucket(
                period=period,
                month_start=month_start_from_key(period),
                label=month_label(period),
                total=_total(txns),
                count=len(txns),
                categories=dict(categories),
            ))
        return buckets

    def calculate_yearly_data(self, transactions: Sequence[Transaction]) -> List[YearlyBucket]:
        """Build one bucket per calendar year, averaging over the distinct months present."""
        buckets = []
        for year, txns in self.group_by_year(transactions).items():
            total = _total(txns)
            month_count = len({txn.date.month for txn in txns})
            buckets.append(YearlyBucket(
                year=year,
                total=total,
                monthly_average=to_money(total / month_count),
                month_count=month_count,
            ))
        return buckets

    def calculate_category_evolution(
        self,
        transactions: Sequence[Transaction],
        category_ids: Sequence[str]
    ) -> List[Dict[str, Any]]:
        """
        Build stacked-chart rows: one per monthly bucket with a value for every category.

        Args:
            transactions: Transactions in any order
            category_ids: Categories to include; missing ones report 0

        Returns:
            Rows with 'period', 'label' and one Decimal entry per category id
        """
        rows = []
        for bucket in self.calculate_monthly_data(transactions):
            row: Dict[str, Any] = {'period': bucket.period, 'label': bucket.label}
            for category_id in category_ids:
                row[category_id] = bucket.categories.get(category_id, Decimal("0"))
            rows.append(row)
        return rows

    def calculate_month_over_month(self, buckets: Sequence[MonthlyBucket]) -> List[MonthOverMonthChange]:
        """
        Percent change of each monthly bucket against the bucket before it.

        The first bucket has nothing to compare to and is omitted. A previous
        total of 0 yields a change of 0.
        """
        changes = []
        for previous, current in zip(buckets, buckets[1:]):
            percent = (
                float((current.total - previous.total) / previous.total * 100)
                if previous.total > 0 else 0.0
            )
            changes.append(MonthOverMonthChange(
                period=current.period,
                total=current.total,
                previous_total=previous.total,
                percent_change=percent,
            ))
        return changes

    def aggregate_merchants(self, transactions: Sequence[Transaction]) -> List[MerchantRanking]:
        """
        Rank merchants by total spend.

        Transactions are grouped by merchant identity; the category reported
        for a merchant is the one on its most recent transaction.

        Returns:
            Rankings sorted by total descending, ties by merchant name
        """
        total_spending = _total(transactions)

        groups: Dict[str, List[Transaction]] = defaultdict(list)
        for txn in transactions:
            groups[self.normalizer.canonicalize(txn.merchant)].append(txn)

        rankings = []
        for merchant, txns in groups.items():
            latest = max(txns, key=lambda t: (t.date, t.id))
            total = _total(txns)
            rankings.append(MerchantRanking(
                merchant=merchant,
                total_spent=total,
                transaction_count=len(txns),
                average_transaction=to_money(total / len(txns)),
                category_id=latest.category_id,
                last_transaction=latest.date,
                percent_of_total=float(total / total_spending * 100) if total_spending > 0 else 0.0,
            ))

        rankings.sort(key=lambda r: (-r.total_spent, r.merchant))
        logger.debug(f"Aggregated {len(transactions)} transactions into {len(rankings)} merchants")
        return rankings

    def get_date_range(self, transactions: Sequence[Transaction]) -> Optional[DateRange]:
        """
        Span of the transaction set.

        Duration is inclusive of both ends; the month count is the number of
        distinct calendar months that have a transaction.
        """
        if not transactions:
            return None

        dates = [txn.date for txn in transactions]
        start, end = min(dates), max(dates)
        return DateRange(
            start=start,
            end=end,
            duration_days=days_between(start, end) + 1,
            month_count=len({month_key(d) for d in dates}),
        )
