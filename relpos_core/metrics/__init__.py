"""
Metrics Module: pipeline counters, drop reasons, distance histograms.

The resolver takes its collector from the PositioningContext. get_metrics()
only supplies a process-default collector to components built without one.
"""

from .counters import MetricsCollector, CounterSnapshot

_default_metrics = None


def get_metrics() -> MetricsCollector:
    """Process-default collector, created on first use."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = MetricsCollector()
    return _default_metrics


__all__ = ['MetricsCollector', 'CounterSnapshot', 'get_metrics']
