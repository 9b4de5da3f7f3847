"""
Pipeline counters, drop reasons and distance histograms.

One MetricsCollector is owned by each PositioningContext. The resolver
writes it on the transport thread; the host reads it (print_summary, tests)
from wherever it likes, so every access is serialized by one lock.

Every dropped snapshot or player entry is recorded under a reason code from
DROP_REASONS.
"""

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass
from typing import Deque, Dict, List

import numpy as np

logger = logging.getLogger(__name__)

# Counters reported even when they never moved
PIPELINE_COUNTERS = (
    'snapshots_in',
    'snapshots_processed',
    'player_updates',
    'player_removals',
    'players_created',
    'calibration_samples',
    'calibrations_completed',
    'origin_resets',
)


@dataclass
class CounterSnapshot:
    """Copy of the collector state, safe to read without the lock."""

    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    histograms: Dict[str, List[float]]

    def total_dropped(self) -> int:
        return sum(self.drop_reasons.values())


class MetricsCollector:
    """
    Thread-safe counters for the relative positioning pipeline.

    Usage:
        metrics = MetricsCollector()
        metrics.increment('snapshots_in')
        metrics.increment_drop('missing_heading')
        metrics.record_histogram('relative_distance_m', 4.2)
    """

    DROP_REASONS = {
        'parse_error': 'Message envelope could not be parsed',
        'unknown_message': 'Message type not recognised',
        'missing_heading': 'No local heading available for the snapshot',
        'missing_local_player': 'Snapshot has no usable entry for the local player',
        'malformed_player_entry': 'Player entry missing fields or out of range',
        'non_finite_result': 'Relative position evaluated to NaN/inf',
    }

    def __init__(self, histogram_size: int = 5000):
        self.histogram_size = histogram_size
        self._lock = threading.Lock()
        self._counters = Counter({name: 0 for name in PIPELINE_COUNTERS})
        self._drops = Counter({reason: 0 for reason in self.DROP_REASONS})
        self._histograms: Dict[str, Deque[float]] = {}

    def increment(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] += value

    def increment_drop(self, reason: str, value: int = 1):
        """
        Count a drop under a reason code.

        Unregistered codes are still counted but logged, so a new drop path
        never goes unnoticed.
        """
        if reason not in self.DROP_REASONS:
            logger.warning(f"Unregistered drop reason '{reason}'")

        with self._lock:
            self._drops[reason] += value
            self._counters['items_dropped'] += value

    def get_counter(self, counter_name: str) -> int:
        with self._lock:
            return self._counters[counter_name]

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drops[reason]

    def record_histogram(self, histogram_name: str, value: float):
        """Append a sample; only the newest histogram_size samples are kept."""
        with self._lock:
            samples = self._histograms.get(histogram_name)
            if samples is None:
                samples = deque(maxlen=self.histogram_size)
                self._histograms[histogram_name] = samples
            samples.append(value)

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(
                counters=dict(self._counters),
                drop_reasons=dict(self._drops),
                histograms={name: list(s) for name, s in self._histograms.items()},
            )

    def print_summary(self):
        """Print counters, non-zero drops and histogram percentiles."""
        snap = self.snapshot()

        print("\n" + "=" * 60)
        print("  RELATIVE POSITIONING METRICS")
        print("=" * 60)

        for name, value in sorted(snap.counters.items()):
            print(f"  {name:28s} {value:8d}")

        total = snap.total_dropped()
        if total:
            print("\n  drops:")
            for reason, count in sorted(snap.drop_reasons.items()):
                if count:
                    print(f"  {reason:28s} {count:8d} ({100.0 * count / total:5.1f}%)")

        for name, samples in sorted(snap.histograms.items()):
            if not samples:
                continue
            p50, p95, p99 = np.percentile(samples, [50, 95, 99])
            print(f"\n  {name}: n={len(samples)} mean={np.mean(samples):.3f} "
                  f"p50={p50:.3f} p95={p95:.3f} p99={p99:.3f}")

        print("=" * 60 + "\n")
