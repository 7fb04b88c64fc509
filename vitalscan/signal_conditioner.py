"""
Signal conditioning for the forehead intensity series.

Algorithm
---------
1. Subtract a centred moving average over ``2w + 1`` points from every
   sample.  This removes slow drift caused by ambient lighting changes and
   head translation while keeping the faster pulsatile component.
2. Samples within ``w`` of either end have no full averaging window and are
   dropped rather than padded, so the output is ``2w`` shorter than the
   input.
3. Local maxima of the detrended series (strictly greater than both
   neighbours) are taken as pulse peaks.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy.signal import convolve

from vitalscan.config import DETREND_HALF_WINDOW
from vitalscan.models import BiometricSample


def detrend(values: Sequence[float], half_window: int = DETREND_HALF_WINDOW) -> np.ndarray:
    """
    Return ``values`` minus their centred moving average.

    Parameters
    ----------
    values:
        Ordered scalar series of length *n*.
    half_window:
        Half-width *w* of the averaging window.

    Returns
    -------
    numpy.ndarray
        Array of length ``n - 2w``; empty when ``n <= 2w``.
    """
    if half_window < 0:
        raise ValueError(f"half_window must be >= 0, got {half_window}")

    signal = np.asarray(values, dtype=np.float64)
    span = 2 * half_window + 1
    if signal.size < span:
        return np.array([], dtype=np.float64)

    kernel = np.full(span, 1.0 / span)
    baseline = convolve(signal, kernel, mode="valid", method="direct")
    return signal[half_window:signal.size - half_window] - baseline


def find_local_maxima(series: Sequence[float]) -> np.ndarray:
    """Indices of samples strictly greater than both neighbours."""
    s = np.asarray(series, dtype=np.float64)
    if s.size < 3:
        return np.array([], dtype=np.intp)
    centre = s[1:-1]
    is_peak = (centre > s[:-2]) & (centre > s[2:])
    return np.flatnonzero(is_peak) + 1


def detect_peaks(
    samples: Sequence[BiometricSample],
    half_window: int = DETREND_HALF_WINDOW,
) -> np.ndarray:
    """
    Detrend the green-channel series of *samples* and return the
    timestamps (ms) of its local maxima.
    """
    green = [s.green_channel_mean for s in samples]
    detrended = detrend(green, half_window)
    peak_idx = find_local_maxima(detrended)
    if peak_idx.size == 0:
        return np.array([], dtype=np.float64)
    # detrended[i] corresponds to samples[i + half_window]
    timestamps = np.array([s.timestamp_ms for s in samples], dtype=np.float64)
    return timestamps[peak_idx + half_window]
