"""
Models package for the spending-analytics engine.
"""

from .transaction import (
    Transaction,
    DEFAULT_CATEGORY_ID,
)

from .subscription import (
    BillingFrequency,
    DetectionMethod,
    SubscriptionStatus,
    KnownService,
    Subscription,
    SubscriptionUpdate,
    RecurringPattern,
    UpcomingRenewal,
    PriceChange,
    SubscriptionAnalytics,
    SubscriptionSummary,
    SubscriptionSettings,
    DetectionResult,
)

from .analytics import (
    MonthlyBucket,
    YearlyBucket,
    DateRange,
    PeakMonth,
    LowestMonth,
    PeakDay,
    PeakPeriods,
    CategoryTotal,
    MerchantRanking,
    MonthOverMonthChange,
    OverallAnalytics,
)

__all__ = [
    'Transaction',
    'DEFAULT_CATEGORY_ID',
    'BillingFrequency',
    'DetectionMethod',
    'SubscriptionStatus',
    'KnownService',
    'Subscription',
    'SubscriptionUpdate',
    'RecurringPattern',
    'UpcomingRenewal',
    'PriceChange',
    'SubscriptionAnalytics',
    'SubscriptionSummary',
    'SubscriptionSettings',
    'DetectionResult',
    'MonthlyBucket',
    'YearlyBucket',
    'DateRange',
    'PeakMonth',
    'LowestMonth',
    'PeakDay',
    'PeakPeriods',
    'CategoryTotal',
    'MerchantRanking',
    'MonthOverMonthChange',
    'OverallAnalytics',
]
