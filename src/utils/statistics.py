"""
Statistics toolkit for spending analytics.

Generic numeric helpers shared by the aggregator, the recurring pattern
analyzer and the subscription lifecycle manager. All functions accept floats,
ints or Decimals, return plain floats and never raise on empty input.
"""

import logging
from collections import Counter, defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar, Union

import numpy as np

from models.analytics import LowestMonth, PeakDay, PeakMonth, PeakPeriods
from models.transaction import Transaction
from utils.temporal_utils import month_key

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]
H = TypeVar('H', bound=Hashable)

CENTS = Decimal("0.01")


def _as_array(values: Iterable[Number]) -> np.ndarray:
    return np.asarray([float(v) for v in values], dtype=float)


def calculate_mean(values: Sequence[Number]) -> float:
    """Arithmetic mean, 0.0 for empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(_as_array(values)))


def calculate_median(values: Sequence[Number]) -> float:
    """
    Median of the values, 0.0 for empty input.

    Even-length input averages the two middle values.
    """
    if len(values) == 0:
        return 0.0
    return float(np.median(_as_array(values)))


def calculate_standard_deviation(values: Sequence[Number]) -> float:
    """
    Population standard deviation (divides by n, not n - 1).

    Returns 0.0 when fewer than two values are given.
    """
    if len(values) < 2:
        return 0.0
    return float(np.std(_as_array(values), ddof=0))


def calculate_coefficient_of_variation(values: Sequence[Number]) -> float:
    """Standard deviation relative to the mean, 0.0 when the mean is 0."""
    mean = calculate_mean(values)
    if mean == 0:
        return 0.0
    return calculate_standard_deviation(values) / abs(mean)


def calculate_moving_average(values: Sequence[Number], window: int) -> List[float]:
    """
    Trailing moving average with the same length as the input.

    Positions before a full window is available average over the points seen
    so far, so there are no leading gaps.
    """
    window = max(1, window)
    series = _as_array(values)
    result: List[float] = []
    for i in range(len(series)):
        start = max(0, i - window + 1)
        result.append(float(np.mean(series[start:i + 1])))
    return result


def find_mode(values: Sequence[H]) -> Optional[H]:
    """Most frequent value; ties go to the value seen first. None for empty input."""
    if len(values) == 0:
        return None
    # Counter preserves insertion order, most_common is stable for ties
    return Counter(values).most_common(1)[0][0]


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp a value into [lower, upper]."""
    return max(lower, min(upper, value))


def to_money(value: Number) -> Decimal:
    """Round an amount to cents."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def percent_deviation(amount: Number, mean: float) -> float:
    """(amount - mean) / mean * 100, or 0.0 when the mean is 0."""
    if mean == 0:
        return 0.0
    return (float(amount) - mean) / mean * 100


def find_peak_periods(transactions: Sequence[Transaction]) -> PeakPeriods:
    """
    Find the peak spending periods of a transaction set.

    Computes the month with the highest total, the month with the lowest
    non-zero total and the single calendar day with the highest total. Months
    are compared against the mean monthly total, the day against the mean
    daily total over days that have spending.

    Args:
        transactions: Transactions in any order

    Returns:
        PeakPeriods with None entries when there is no data
    """
    if not transactions:
        return PeakPeriods()

    monthly_totals: Dict[str, Decimal] = defaultdict(Decimal)
    daily_totals: Dict[date, Decimal] = defaultdict(Decimal)
    daily_counts: Dict[date, int] = defaultdict(int)

    for txn in transactions:
        monthly_totals[month_key(txn.date)] += txn.amount
        daily_totals[txn.date] += txn.amount
        daily_counts[txn.date] += 1

    months = sorted(monthly_totals.items())
    monthly_mean = calculate_mean([total for _, total in months])

    # Earliest period wins ties
    peak_period, peak_amount = max(months, key=lambda item: item[1])
    peak_month = PeakMonth(
        period=peak_period,
        amount=peak_amount,
        percent_above_average=percent_deviation(peak_amount, monthly_mean),
    )

    lowest_month = None
    non_zero = [(period, total) for period, total in months if total > 0]
    if non_zero:
        low_period, low_amount = min(non_zero, key=lambda item: item[1])
        lowest_month = LowestMonth(
            period=low_period,
            amount=low_amount,
            percent_below_average=-percent_deviation(low_amount, monthly_mean),
        )

    days = sorted(daily_totals.items())
    daily_mean = calculate_mean([total for _, total in days])
    peak_date, peak_day_amount = max(days, key=lambda item: item[1])
    peak_day = PeakDay(
        date=peak_date,
        amount=peak_day_amount,
        transaction_count=daily_counts[peak_date],
        percent_above_average=percent_deviation(peak_day_amount, daily_mean),
    )

    logger.debug(
        f"Peak periods over {len(months)} months and {len(days)} days: "
        f"peak month {peak_period}, peak day {peak_date.isoformat()}"
    )

    return PeakPeriods(month=peak_month, lowest_month=lowest_month, day=peak_day)
