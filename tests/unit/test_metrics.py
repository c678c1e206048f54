"""Test metrics collector."""

import time

import pytest

from autoseg_supervisor.shared.metrics import MetricsCollector


def test_metrics_timer():
    """Test timer functionality."""
    metrics = MetricsCollector()

    metrics.start_timer('bootstrap')
    time.sleep(0.05)
    elapsed = metrics.stop_timer('bootstrap')

    assert elapsed >= 0.05
    assert metrics.get_metric('bootstrap_duration') == [elapsed]


def test_stop_unstarted_timer_raises():
    """Test stopping a timer that was never started."""
    metrics = MetricsCollector()

    with pytest.raises(KeyError):
        metrics.stop_timer('missing')


def test_timed_records_on_exception():
    """Test the timed block is recorded even when it raises."""
    metrics = MetricsCollector()

    with pytest.raises(RuntimeError):
        with metrics.timed('publish'):
            raise RuntimeError("upload broke")

    assert 'publish' in metrics.get_summary()['phases']


def test_metrics_summary_keeps_phase_order():
    """Test summary lists phases in the order they finished."""
    metrics = MetricsCollector()

    for name in ('bootstrap', 'worker_start', 'acquisition'):
        with metrics.timed(name):
            pass

    summary = metrics.get_summary()
    assert list(summary['phases']) == ['bootstrap', 'worker_start', 'acquisition']
    assert summary['total_elapsed'] >= 0

    lines = metrics.summary_lines()
    assert lines[0].startswith('bootstrap: ')
    assert lines[-1].startswith('total: ')
