"""Shared fixtures: synthetic 68-point landmark sets and samplers."""

from __future__ import annotations

import numpy as np
import pytest

from vitalscan.models import BiometricSample


def make_landmarks(nose_y: float = 0.6, eye_gap: float = 0.03) -> list:
    """68 normalised points with brows, nose tip and eyelids placed."""
    pts = [[0.5, 0.5] for _ in range(68)]
    pts[21] = [0.45, 0.35]
    pts[22] = [0.55, 0.35]
    pts[30] = [0.5, nose_y]
    for upper, lower, x in ((37, 41, 0.38), (38, 40, 0.42), (43, 47, 0.58), (44, 46, 0.62)):
        pts[upper] = [x, 0.40]
        pts[lower] = [x, 0.40 + eye_gap]
    return pts


def constant_sampler(value: float = 100.0):
    return lambda cx, cy, size: value


def make_samples(green, fps: float = 30.0, nose=None, eye=None):
    """Build BiometricSamples at *fps* from per-sample series."""
    n = len(green)
    nose = nose if nose is not None else [0.6] * n
    eye = eye if eye is not None else [0.03] * n
    return [
        BiometricSample(
            timestamp_ms=int(round(i * 1000.0 / fps)),
            green_channel_mean=float(green[i]),
            nose_vertical_position=float(nose[i]),
            eye_aspect_distance=float(eye[i]),
        )
        for i in range(n)
    ]


def sine(freq_hz: float, seconds: float, fps: float = 30.0,
         mean: float = 100.0, amplitude: float = 5.0) -> np.ndarray:
    t = np.arange(int(fps * seconds) + 1) / fps
    return mean + amplitude * np.sin(2 * np.pi * freq_hz * t)


@pytest.fixture
def landmarks():
    return make_landmarks()
