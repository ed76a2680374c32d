"""
Recurring Charge Detection and Subscription Services.

This package finds subscription-like recurring charges, matches known
subscription services and manages the subscription lifecycle.

Public API:
    - run_detection: One explicit detection pass over a transaction set
    - RecurringPatternDetectionService: Groups by merchant and classifies frequency and confidence
    - KnownServiceMatcher: Matches transactions against the KNOWN_SERVICES registry
    - DetectionConfig: Configuration for detection parameters
    - DEFAULT_CONFIG: Default configuration instance
"""

from services.recurring_charges.config import (
    DetectionConfig,
    DEFAULT_CONFIG,
    ConfidenceWeights,
    FrequencyBand,
    FrequencyBands,
    NOMINAL_INTERVAL_DAYS,
)
from services.recurring_charges.analyzers import (
    FrequencyAnalyzer,
    DayOfMonthAnalyzer,
    MerchantPatternAnalyzer,
    ConfidenceScoreCalculator,
)
from services.recurring_charges.detection_service import (
    RecurringPatternDetectionService,
    analyze_recurring_patterns,
)
from services.recurring_charges.known_services import (
    KNOWN_SERVICES,
    KnownServiceMatcher,
    detect_known_services,
    get_known_service,
)
from services.recurring_charges.orchestrator import run_detection

__all__ = [
    'DetectionConfig',
    'DEFAULT_CONFIG',
    'ConfidenceWeights',
    'FrequencyBand',
    'FrequencyBands',
    'NOMINAL_INTERVAL_DAYS',
    'FrequencyAnalyzer',
    'DayOfMonthAnalyzer',
    'MerchantPatternAnalyzer',
    'ConfidenceScoreCalculator',
    'RecurringPatternDetectionService',
    'analyze_recurring_patterns',
    'KNOWN_SERVICES',
    'KnownServiceMatcher',
    'detect_known_services',
    'get_known_service',
    'run_detection',
]
