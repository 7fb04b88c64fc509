"""
Unit tests for detrending and peak detection.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from vitalscan.signal_conditioner import detect_peaks, detrend, find_local_maxima

from conftest import make_samples


class TestDetrend:

    @pytest.mark.parametrize("n", [0, 1, 5, 10])
    def test_short_input_returns_empty(self, n):
        assert detrend(np.ones(n)).size == 0

    @pytest.mark.parametrize("n", [11, 12, 50, 451])
    def test_output_length(self, n):
        assert detrend(np.random.default_rng(0).normal(size=n)).size == n - 10

    def test_constant_series_is_zero(self):
        out = detrend(np.full(40, 123.0))
        assert np.allclose(out, 0.0)

    def test_linear_drift_removed(self):
        out = detrend(np.linspace(0.0, 50.0, 60))
        assert np.allclose(out, 0.0, atol=1e-9)

    def test_centre_minus_window_mean(self):
        values = [0.0] * 5 + [11.0] + [0.0] * 5
        out = detrend(values)
        assert out.tolist() == pytest.approx([10.0])

    def test_custom_half_window(self):
        out = detrend([1.0, 4.0, 1.0], half_window=1)
        assert out.tolist() == pytest.approx([2.0])

    def test_negative_half_window_rejected(self):
        with pytest.raises(ValueError):
            detrend([1.0, 2.0], half_window=-1)


class TestLocalMaxima:

    def test_strict_peaks(self):
        assert find_local_maxima([0, 2, 0, 3, 0]).tolist() == [1, 3]

    def test_plateau_not_a_peak(self):
        assert find_local_maxima([0, 1, 1, 0]).size == 0

    def test_endpoints_never_peaks(self):
        assert find_local_maxima([5, 1, 5]).size == 0

    def test_too_short(self):
        assert find_local_maxima([1, 2]).size == 0


class TestDetectPeaks:

    def test_peak_timestamps_map_back_to_samples(self):
        green = np.zeros(40)
        green[12] = 10.0
        green[25] = 10.0
        samples = make_samples(green, fps=10.0)   # 100 ms spacing
        assert detect_peaks(samples).tolist() == [1200.0, 2500.0]

    def test_no_peaks_for_short_window(self):
        samples = make_samples(np.arange(8.0))
        assert detect_peaks(samples).size == 0
