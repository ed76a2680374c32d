"""
Pattern analyzers for recurring charge detection.

This package provides specialized analyzers that extract different aspects
of recurring charge patterns from merchant-grouped transactions.
"""

from services.recurring_charges.analyzers.frequency import FrequencyAnalyzer
from services.recurring_charges.analyzers.temporal import DayOfMonthAnalyzer
from services.recurring_charges.analyzers.merchant import MerchantPatternAnalyzer
from services.recurring_charges.analyzers.confidence import ConfidenceScoreCalculator

__all__ = [
    'FrequencyAnalyzer',
    'DayOfMonthAnalyzer',
    'MerchantPatternAnalyzer',
    'ConfidenceScoreCalculator',
]
