"""
Unit tests for detection performance tracking.
"""

import logging

from utils.performance import DetectionPerformanceMetrics, DetectionPerformanceTracker


def test_tracker_records_stages_and_counts():
    with DetectionPerformanceTracker("run_detection") as tracker:
        tracker.set_transaction_count(12)
        with tracker.stage("known_services"):
            pass
        with tracker.stage("pattern_analysis"):
            pass
        tracker.set_known_services_detected(1)
        tracker.set_patterns_detected(2)

    metrics = tracker.metrics
    assert metrics.elapsed_ms is not None
    assert metrics.elapsed_ms >= 0
    assert list(metrics.stage_ms) == ["known_services", "pattern_analysis"]
    assert metrics.transaction_count == 12
    assert metrics.known_services_detected == 1
    assert metrics.patterns_detected == 2


def test_metrics_to_dict():
    metrics = DetectionPerformanceMetrics(operation_name="run_detection", transaction_count=3)
    metrics.finish()
    data = metrics.to_dict()

    assert data["operation_name"] == "run_detection"
    assert data["transaction_count"] == 3
    assert "timestamp" in data


def test_completed_run_is_logged(caplog):
    with caplog.at_level(logging.INFO, logger="utils.performance"):
        with DetectionPerformanceTracker("run_detection"):
            pass

    assert any("Detection run completed: run_detection" in record.message for record in caplog.records)


def test_slow_run_is_logged_as_warning(caplog):
    metrics = DetectionPerformanceMetrics(operation_name="run_detection")
    metrics.elapsed_ms = 6000.0

    with caplog.at_level(logging.INFO, logger="utils.performance"):
        metrics.log_metrics()

    assert caplog.records[0].levelno == logging.WARNING
