"""
Unit tests for OriginCalibrator and OriginKey.

Tests cover:
- OriginKey quantization (micro-degrees, centimeters)
- Bias lock-in after the required number of samples
- No partial averages before calibration completes
- Reset on origin change, regardless of prior state
- Metrics for samples, completions and resets
"""

import random

import numpy as np
import pytest

from relpos_core.metrics import MetricsCollector
from relpos_core.proto import GeodeticFix
from relpos_core.localization import (
    OriginCalibrator,
    OriginKey,
    CalibrationConfig,
)


@pytest.fixture
def calibrator(metrics: MetricsCollector) -> OriginCalibrator:
    """Calibrator with the default 15-sample requirement."""
    return OriginCalibrator(metrics=metrics)


@pytest.fixture
def samples():
    """Fifteen distinct (east, up, north) self-measurements."""
    rng = np.random.default_rng(42)
    return [tuple(v) for v in rng.normal(0.0, 3.0, size=(15, 3))]


class TestOriginKey:
    """Tests for origin quantization."""

    def test_from_fix_quantizes(self):
        key = OriginKey.from_fix(GeodeticFix(40.1234567, -83.7654321, 212.347))

        assert key == OriginKey(lat_e6=40123457, lon_e6=-83765432, alt_cm=21235)

    def test_sub_quantum_jitter_is_same_key(self, origin_fix: GeodeticFix):
        jittered = GeodeticFix(
            latitude=origin_fix.latitude + 2e-8,
            longitude=origin_fix.longitude - 2e-8,
            altitude=origin_fix.altitude + 0.003,
        )

        assert OriginKey.from_fix(jittered) == OriginKey.from_fix(origin_fix)

    def test_latitude_change_is_new_key(self, origin_fix: GeodeticFix):
        moved = GeodeticFix(origin_fix.latitude + 1e-5, origin_fix.longitude, origin_fix.altitude)

        assert OriginKey.from_fix(moved) != OriginKey.from_fix(origin_fix)

    def test_altitude_change_is_new_key(self, origin_fix: GeodeticFix):
        raised = GeodeticFix(origin_fix.latitude, origin_fix.longitude, origin_fix.altitude + 0.02)

        assert OriginKey.from_fix(raised) != OriginKey.from_fix(origin_fix)

    def test_key_is_hashable(self, origin_fix: GeodeticFix):
        keys = {OriginKey.from_fix(origin_fix), OriginKey.from_fix(origin_fix)}

        assert len(keys) == 1


class TestCalibrationConfig:
    """Tests for calibration configuration."""

    def test_default_required_samples(self):
        assert CalibrationConfig().required_samples == 15

    def test_rejects_zero_samples(self):
        with pytest.raises(ValueError, match="required_samples"):
            CalibrationConfig(required_samples=0)


class TestAccumulate:
    """Tests for bias accumulation and lock-in."""

    def test_initial_state(self, calibrator: OriginCalibrator):
        assert not calibrator.calibrated
        assert calibrator.sample_count == 0
        assert calibrator.origin_key is None
        assert np.array_equal(calibrator.bias, np.zeros(3))

    def test_no_partial_bias_before_required_samples(self, calibrator, samples):
        """Fourteen samples leave the bias at zero."""
        for sample in samples[:14]:
            calibrator.accumulate(sample)

        assert not calibrator.calibrated
        assert calibrator.sample_count == 14
        assert np.array_equal(calibrator.bias, np.zeros(3))

    def test_calibrates_on_15th_sample(self, calibrator, samples):
        for sample in samples:
            calibrator.accumulate(sample)

        assert calibrator.calibrated
        assert calibrator.sample_count == 15
        assert np.allclose(calibrator.bias, np.mean(samples, axis=0))

    def test_bias_independent_of_order(self, metrics, samples):
        """Pure sum/count: shuffled input gives the same bias."""
        shuffled = list(samples)
        random.Random(7).shuffle(shuffled)

        a = OriginCalibrator(metrics=metrics)
        b = OriginCalibrator(metrics=metrics)
        for sample in samples:
            a.accumulate(sample)
        for sample in shuffled:
            b.accumulate(sample)

        assert np.allclose(a.bias, b.bias, atol=1e-12)

    def test_bias_frozen_after_calibration(self, calibrator, samples):
        """Later samples do not drift the bias."""
        for sample in samples:
            calibrator.accumulate(sample)
        frozen = calibrator.bias

        for _ in range(20):
            calibrator.accumulate((100.0, -100.0, 50.0))

        assert calibrator.sample_count == 15
        assert np.array_equal(calibrator.bias, frozen)

    def test_bias_returns_copy(self, calibrator, samples):
        for sample in samples:
            calibrator.accumulate(sample)

        bias = calibrator.bias
        bias[0] = 1e6

        assert calibrator.bias[0] != 1e6

    def test_custom_required_samples(self, metrics):
        calibrator = OriginCalibrator(CalibrationConfig(required_samples=3), metrics)

        calibrator.accumulate((1.0, 0.0, 0.0))
        calibrator.accumulate((2.0, 0.0, 0.0))
        assert not calibrator.calibrated

        calibrator.accumulate((3.0, 3.0, -3.0))
        assert calibrator.calibrated
        assert np.allclose(calibrator.bias, (2.0, 1.0, -1.0))

    def test_metrics_recorded(self, calibrator, metrics, samples):
        for sample in samples:
            calibrator.accumulate(sample)
        calibrator.accumulate(samples[0])

        assert metrics.get_counter('calibration_samples') == 15
        assert metrics.get_counter('calibrations_completed') == 1


class TestObserveOriginKey:
    """Tests for origin epoch handling."""

    def test_first_key_starts_epoch(self, calibrator, origin_fix):
        key = OriginKey.from_fix(origin_fix)

        assert calibrator.observe_origin_key(key) is True
        assert calibrator.origin_key == key

    def test_same_key_keeps_progress(self, calibrator, origin_fix, samples):
        key = OriginKey.from_fix(origin_fix)
        calibrator.observe_origin_key(key)
        for sample in samples[:5]:
            calibrator.accumulate(sample)

        assert calibrator.observe_origin_key(OriginKey.from_fix(origin_fix)) is False
        assert calibrator.sample_count == 5

    def test_new_key_resets_calibrated_state(self, calibrator, origin_fix, second_origin_fix, samples):
        calibrator.observe_origin_key(OriginKey.from_fix(origin_fix))
        for sample in samples:
            calibrator.accumulate(sample)
        assert calibrator.calibrated

        assert calibrator.observe_origin_key(OriginKey.from_fix(second_origin_fix)) is True

        assert not calibrator.calibrated
        assert calibrator.sample_count == 0
        assert np.array_equal(calibrator.state.sample_sum, np.zeros(3))
        assert np.array_equal(calibrator.bias, np.zeros(3))

    def test_new_key_resets_partial_state(self, calibrator, origin_fix, second_origin_fix, samples):
        calibrator.observe_origin_key(OriginKey.from_fix(origin_fix))
        for sample in samples[:9]:
            calibrator.accumulate(sample)

        calibrator.observe_origin_key(OriginKey.from_fix(second_origin_fix))

        assert calibrator.sample_count == 0
        assert not calibrator.calibrated

    def test_recalibrates_from_scratch(self, calibrator, origin_fix, second_origin_fix, samples):
        """Bias after a reset reflects only the new epoch's samples."""
        calibrator.observe_origin_key(OriginKey.from_fix(origin_fix))
        for sample in samples:
            calibrator.accumulate(sample)

        calibrator.observe_origin_key(OriginKey.from_fix(second_origin_fix))
        for _ in range(15):
            calibrator.accumulate((1.0, 2.0, 3.0))

        assert calibrator.calibrated
        assert np.allclose(calibrator.bias, (1.0, 2.0, 3.0))

    def test_reset_counted(self, calibrator, metrics, origin_fix, second_origin_fix):
        calibrator.observe_origin_key(OriginKey.from_fix(origin_fix))
        calibrator.observe_origin_key(OriginKey.from_fix(origin_fix))
        calibrator.observe_origin_key(OriginKey.from_fix(second_origin_fix))

        assert metrics.get_counter('origin_resets') == 2
