"""
Origin Calibrator.

Estimates the local device's GPS bias against its declared origin by
averaging the first N self-measurements of an origin epoch, then freezes it.
The bias is only recomputed when the origin itself changes (a new OriginKey).

This is a lock-in estimate, not a rolling filter: once calibrated, later
samples are ignored until the next origin change.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from .geodetic import zero_vector, as_tuple
from relpos_core.proto.snapshot import GeodeticFix
from relpos_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OriginKey:
    """
    Quantized origin fix, used only for equality checks.

    Latitude/longitude are stored in micro-degrees, altitude in centimeters.
    Never use this for distance math.
    """

    lat_e6: int
    lon_e6: int
    alt_cm: int

    LAT_LON_SCALE = 1e6
    ALT_SCALE = 100.0

    @classmethod
    def from_fix(cls, fix: GeodeticFix) -> 'OriginKey':
        """Quantize an origin fix (~1e-6 deg, ~1 cm)."""
        return cls(
            lat_e6=int(round(fix.latitude * cls.LAT_LON_SCALE)),
            lon_e6=int(round(fix.longitude * cls.LAT_LON_SCALE)),
            alt_cm=int(round(fix.altitude * cls.ALT_SCALE)),
        )


@dataclass
class CalibrationConfig:
    """
    Configuration for the origin calibrator.

    Attributes:
        required_samples: Self-measurements averaged before the bias is frozen
    """

    required_samples: int = 15

    def __post_init__(self):
        if self.required_samples < 1:
            raise ValueError(f"required_samples must be >= 1: {self.required_samples}")


@dataclass
class CalibrationState:
    """Running calibration for one origin epoch."""

    required_samples: int = 15
    sample_count: int = 0
    sample_sum: np.ndarray = field(default_factory=zero_vector)
    calibrated: bool = False

    def reset(self):
        """Discard all samples."""
        self.sample_count = 0
        self.sample_sum = zero_vector()
        self.calibrated = False


class OriginCalibrator:
    """
    Local-player bias estimator.

    Usage:
        calibrator = OriginCalibrator()
        calibrator.observe_origin_key(OriginKey.from_fix(origin))
        calibrator.accumulate(geodetic_to_local(fix, origin))
        corrected = local_vector - calibrator.bias
    """

    def __init__(
        self,
        config: Optional[CalibrationConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or CalibrationConfig()
        self.metrics = metrics or get_metrics()

        self.state = CalibrationState(required_samples=self.config.required_samples)
        self.origin_key: Optional[OriginKey] = None
        self._bias = zero_vector()

    @property
    def calibrated(self) -> bool:
        return self.state.calibrated

    @property
    def sample_count(self) -> int:
        return self.state.sample_count

    @property
    def bias(self) -> np.ndarray:
        """
        Effective bias (east, up, north).

        Zero until calibration completes; partial averages are never exposed.
        """
        return self._bias.copy()

    def observe_origin_key(self, key: OriginKey) -> bool:
        """
        Register the origin the local player currently reports.

        A different key starts a new origin epoch: samples and bias are
        discarded and calibration restarts.

        Args:
            key: Quantized local origin

        Returns:
            True if the origin changed and calibration was reset
        """
        if key == self.origin_key:
            return False

        if self.origin_key is not None:
            logger.info(f"Origin changed {self.origin_key} -> {key}, recalibrating")
        else:
            logger.info(f"Origin set to {key}, calibrating")

        self.origin_key = key
        self.state.reset()
        self._bias = zero_vector()
        self.metrics.increment('origin_resets')
        return True

    def accumulate(self, local_vector: Sequence[float]):
        """
        Add one self-measurement (local player's vector to its own origin).

        No-op once calibrated.

        Args:
            local_vector: (east, up, north) in meters
        """
        if self.state.calibrated:
            return

        self.state.sample_sum = self.state.sample_sum + np.asarray(local_vector, dtype=float)
        self.state.sample_count += 1
        self.metrics.increment('calibration_samples')

        if self.state.sample_count >= self.state.required_samples:
            self._bias = self.state.sample_sum / self.state.sample_count
            self.state.calibrated = True
            self.metrics.increment('calibrations_completed')
            e, u, n = as_tuple(self._bias)
            logger.info(f"Calibrated after {self.state.sample_count} samples: "
                        f"bias=({e:.2f}, {u:.2f}, {n:.2f}) m")
        else:
            logger.debug(f"Calibration sample {self.state.sample_count}/"
                         f"{self.state.required_samples}")
