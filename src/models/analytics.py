"""
Analytics models for the spending-analytics engine.

All models here are derived, read-only summaries built fresh from a
transaction snapshot.
"""
import datetime
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict

# Configure logging
logger = logging.getLogger(__name__)


class MonthlyBucket(BaseModel):
    """Spending for one calendar month that has at least one transaction."""
    period: str  # YYYY-MM
    month_start: datetime.date = Field(alias="monthStart")
    label: str  # e.g. "Jan 2024"
    total: Decimal
    count: int
    categories: Dict[str, Decimal] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class YearlyBucket(BaseModel):
    """Spending for one calendar year."""
    year: int
    total: Decimal
    monthly_average: Decimal = Field(alias="monthlyAverage")
    month_count: int = Field(alias="monthCount")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class DateRange(BaseModel):
    """Span of a transaction set."""
    start: datetime.date
    end: datetime.date
    duration_days: int = Field(alias="durationDays")
    month_count: int = Field(alias="monthCount")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PeakMonth(BaseModel):
    period: str
    amount: Decimal
    percent_above_average: float = Field(alias="percentAboveAverage")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class LowestMonth(BaseModel):
    period: str
    amount: Decimal
    percent_below_average: float = Field(alias="percentBelowAverage")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PeakDay(BaseModel):
    date: datetime.date
    amount: Decimal
    transaction_count: int = Field(alias="transactionCount")
    percent_above_average: float = Field(alias="percentAboveAverage")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PeakPeriods(BaseModel):
    """Highest month, lowest non-zero month and highest single day."""
    month: Optional[PeakMonth] = None
    lowest_month: Optional[LowestMonth] = Field(default=None, alias="lowestMonth")
    day: Optional[PeakDay] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CategoryTotal(BaseModel):
    """All-time totals for one category id."""
    id: str
    total: Decimal
    count: int
    percent_of_total: float = Field(alias="percentOfTotal")
    monthly_average: Decimal = Field(alias="monthlyAverage")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MerchantRanking(BaseModel):
    """All-time totals for one canonical merchant."""
    merchant: str
    total_spent: Decimal = Field(alias="totalSpent")
    transaction_count: int = Field(alias="transactionCount")
    average_transaction: Decimal = Field(alias="averageTransaction")
    category_id: str = Field(alias="categoryId")
    last_transaction: datetime.date = Field(alias="lastTransaction")
    percent_of_total: float = Field(alias="percentOfTotal")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MonthOverMonthChange(BaseModel):
    """Change of a monthly bucket against the previous bucket."""
    period: str
    total: Decimal
    previous_total: Decimal = Field(alias="previousTotal")
    percent_change: float = Field(alias="percentChange")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class OverallAnalytics(BaseModel):
    """All-time summary consumed by presentation layers."""
    total_spending: Decimal = Field(default=Decimal("0"), alias="totalSpending")
    transaction_count: int = Field(default=0, alias="transactionCount")
    date_range: Optional[DateRange] = Field(default=None, alias="dateRange")

    monthly_average: float = Field(default=0.0, alias="monthlyAverage")
    median_monthly: float = Field(default=0.0, alias="medianMonthly")
    standard_deviation: float = Field(default=0.0, alias="standardDeviation")
    average_transaction: Decimal = Field(default=Decimal("0"), alias="averageTransaction")

    peak_periods: PeakPeriods = Field(default_factory=PeakPeriods, alias="peakPeriods")
    monthly_data: List[MonthlyBucket] = Field(default_factory=list, alias="monthlyData")
    yearly_data: List[YearlyBucket] = Field(default_factory=list, alias="yearlyData")
    category_totals: List[CategoryTotal] = Field(default_factory=list, alias="categoryTotals")
    merchant_rankings: List[MerchantRanking] = Field(default_factory=list, alias="merchantRankings")

    monthly_trend: List[float] = Field(default_factory=list, alias="monthlyTrend")
    month_over_month: List[MonthOverMonthChange] = Field(default_factory=list, alias="monthOverMonth")

    model_config = ConfigDict(populate_by_name=True, frozen=True)
