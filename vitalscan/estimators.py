"""
Vital-sign estimators over a completed sampling window.

Every estimator degrades to a resting-state constant when the window holds
too little data; a gap in one metric never fails the scan as a whole.

Heart rate
    Detrended forehead green channel, peak count per minute, clamped to
    the profile's range (rPPG peak counting over short windows can produce
    implausible values).
Respiration
    Mean crossings of the raw nose-tip height; two crossings per breath.
Blink rate
    Counted incrementally during sampling by
    :class:`vitalscan.session.BlinkDetector`; converted to a rate here.
HRV proxy
    Population standard deviation of inter-peak intervals.  This is a
    proxy, not a clinical R-R based metric.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from vitalscan.config import (
    HR_FALLBACK_BPM,
    HR_MIN_SAMPLES,
    HRV_FALLBACK_MS,
    HRV_MIN_PEAKS,
    RESP_FALLBACK_BRPM,
    RESP_MIN_SAMPLES,
    STANDARD,
    ScanProfile,
)
from vitalscan.models import BiometricSample, VitalsResult
from vitalscan.signal_conditioner import detect_peaks

logger = logging.getLogger(__name__)


def estimate_heart_rate(
    samples: Sequence[BiometricSample],
    window_seconds: float,
    hr_min: int = STANDARD.hr_min_bpm,
    hr_max: int = STANDARD.hr_max_bpm,
) -> int:
    """Return heart rate in BPM, or 72 with fewer than 20 samples."""
    if len(samples) < HR_MIN_SAMPLES:
        logger.debug("Heart rate: %d samples < %d, using fallback.",
                     len(samples), HR_MIN_SAMPLES)
        return HR_FALLBACK_BPM

    peaks = detect_peaks(samples)
    bpm = round(len(peaks) / window_seconds * 60)
    return max(hr_min, min(hr_max, bpm))


def estimate_respiration_rate(
    samples: Sequence[BiometricSample],
    window_seconds: float,
) -> int:
    """Return breaths per minute, or 16 with fewer than 50 samples."""
    if len(samples) < RESP_MIN_SAMPLES:
        logger.debug("Respiration: %d samples < %d, using fallback.",
                     len(samples), RESP_MIN_SAMPLES)
        return RESP_FALLBACK_BRPM

    nose = np.array([s.nose_vertical_position for s in samples], dtype=np.float64)
    centred = nose - nose.mean()
    # A zero-valued sample is treated as positive so that a crossing
    # through exactly the mean counts once.
    positive = centred >= 0
    crossings = int(np.count_nonzero(positive[1:] != positive[:-1]))
    return round(crossings / 2 / window_seconds * 60)


def blink_rate(blink_count: int, window_seconds: float) -> int:
    return round(blink_count / window_seconds * 60)


def estimate_hrv(samples: Sequence[BiometricSample]) -> float:
    """Return the inter-peak interval standard deviation in ms, or 45."""
    peaks = detect_peaks(samples)
    if len(peaks) < HRV_MIN_PEAKS:
        logger.debug("HRV: %d peaks < %d, using fallback.", len(peaks), HRV_MIN_PEAKS)
        return HRV_FALLBACK_MS
    intervals = np.diff(peaks)
    return float(np.std(intervals))


def estimate_vitals(
    samples: Sequence[BiometricSample],
    blink_count: int,
    profile: ScanProfile = STANDARD,
) -> VitalsResult:
    """Run all four estimators over one completed window."""
    window_s = profile.window_seconds
    result = VitalsResult(
        heart_rate_bpm=estimate_heart_rate(
            samples, window_s, profile.hr_min_bpm, profile.hr_max_bpm
        ),
        respiration_rate_brpm=estimate_respiration_rate(samples, window_s),
        blink_rate_per_min=blink_rate(blink_count, window_s),
        hrv_ms=estimate_hrv(samples),
    )
    logger.info(
        "Vitals (%s, %d samples): HR=%d RR=%d blinks=%d/min HRV=%.1fms",
        profile.name, len(samples), result.heart_rate_bpm,
        result.respiration_rate_brpm, result.blink_rate_per_min, result.hrv_ms,
    )
    return result
