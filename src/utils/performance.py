"""
Performance monitoring utilities for detection runs.

This module provides a context manager for monitoring the performance
of recurring charge detection, including:
- Known-service matching time
- Pattern analysis time
- Renewal forecasting time
- Total execution time
"""

import time
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

SLOW_OPERATION_MS = 5000
VERY_SLOW_OPERATION_MS = 15000


@dataclass
class DetectionPerformanceMetrics:
    """Container for detection run performance metrics."""
    operation_name: str
    start_time: float = field(default_factory=time.perf_counter)
    end_time: Optional[float] = None
    elapsed_ms: Optional[float] = None
    transaction_count: int = 0
    stage_ms: Dict[str, float] = field(default_factory=dict)
    patterns_detected: int = 0
    known_services_detected: int = 0

    def finish(self):
        """Mark the operation as finished and calculate elapsed time."""
        self.end_time = time.perf_counter()
        self.elapsed_ms = (self.end_time - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for logging."""
        return {
            'operation_name': self.operation_name,
            'elapsed_ms': self.elapsed_ms,
            'transaction_count': self.transaction_count,
            'stage_ms': dict(self.stage_ms),
            'patterns_detected': self.patterns_detected,
            'known_services_detected': self.known_services_detected,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

    def log_metrics(self):
        """Log the performance metrics."""
        metrics = self.to_dict()
        elapsed = self.elapsed_ms or 0.0

        if elapsed > VERY_SLOW_OPERATION_MS:
            logger.error(
                f"SLOW DETECTION RUN: {self.operation_name} took {elapsed:.2f}ms",
                extra={'detection_metrics': metrics}
            )
        elif elapsed > SLOW_OPERATION_MS:
            logger.warning(
                f"Slow detection run: {self.operation_name} took {elapsed:.2f}ms",
                extra={'detection_metrics': metrics}
            )
        else:
            logger.info(
                f"Detection run completed: {self.operation_name} in {elapsed:.2f}ms "
                f"({self.transaction_count} transactions, {self.known_services_detected} known services, "
                f"{self.patterns_detected} patterns)",
                extra={'detection_metrics': metrics}
            )

        if self.stage_ms:
            breakdown = ", ".join(f"{stage}: {ms:.2f}ms" for stage, ms in self.stage_ms.items())
            logger.debug(
                f"Detection breakdown for {self.operation_name}: {breakdown}",
                extra={'detection_metrics': metrics}
            )


class StageTimer:
    """Context manager that records the duration of one stage on the metrics."""

    def __init__(self, metrics: DetectionPerformanceMetrics, stage: str):
        self.metrics = metrics
        self.stage = stage
        self.start_time: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        logger.debug(f"Starting stage: {self.stage}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = (time.perf_counter() - self.start_time) * 1000
        self.metrics.stage_ms[self.stage] = elapsed_ms
        logger.debug(f"Completed stage {self.stage} in {elapsed_ms:.2f}ms")


class DetectionPerformanceTracker:
    """
    Context manager for detection run performance tracking.

    Usage:
        with DetectionPerformanceTracker("run_detection") as tracker:
            tracker.set_transaction_count(len(transactions))

            with tracker.stage('known_services'):
                candidates = matcher.detect_known_services(...)
            tracker.set_known_services_detected(len(candidates))

            with tracker.stage('pattern_analysis'):
                patterns = service.analyze_recurring_patterns(...)
            tracker.set_patterns_detected(len(patterns))
    """

    def __init__(self, operation_name: str):
        self.metrics = DetectionPerformanceMetrics(operation_name=operation_name)

    def __enter__(self):
        logger.debug(f"Starting detection run: {self.metrics.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.metrics.finish()
        self.metrics.log_metrics()

    def stage(self, stage_name: str) -> StageTimer:
        """Create a context manager for tracking a stage."""
        return StageTimer(self.metrics, stage_name)

    def set_transaction_count(self, count: int):
        """Set the number of transactions being processed."""
        self.metrics.transaction_count = count

    def set_patterns_detected(self, count: int):
        """Set the number of patterns detected."""
        self.metrics.patterns_detected = count

    def set_known_services_detected(self, count: int):
        """Set the number of known-service candidates detected."""
        self.metrics.known_services_detected = count
