"""
Per-frame feature extraction from 68-point facial landmarks.

Landmarks arrive from the external tracker as normalised ``(x, y)`` pairs
(0 – 1 relative to frame width/height) in the iBUG 68-point layout:

* 17 – 26  eyebrows (21 / 22 are the inner ends)
* 30       nose tip
* 36 – 41  right eye, 42 – 47 left eye (upper lid 37, 38 / 43, 44;
  lower lid 41, 40 / 47, 46)

The 68-point layout has no forehead point, so one is synthesised above the
inner brows.
"""

from __future__ import annotations

from typing import Callable, Sequence, Tuple

import numpy as np

from vitalscan.config import FOREHEAD_REGION_PX
from vitalscan.models import BiometricSample

Point = Tuple[float, float]
# sampler(cx, cy, size) -> mean green intensity of a size × size region
# centred on the normalised point (cx, cy)
RegionSampler = Callable[[float, float, int], float]

N_LANDMARKS = 68

_INNER_BROWS = (21, 22)
_NOSE_TIP = 30
_EYELID_PAIRS = ((37, 41), (38, 40), (43, 47), (44, 46))

FOREHEAD_RAISE = 0.5    # fraction of the brow → nose-tip distance


def _as_array(landmarks: Sequence[Point]) -> np.ndarray:
    pts = np.asarray(landmarks, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2 or pts.shape[0] < N_LANDMARKS:
        raise ValueError(
            f"Expected {N_LANDMARKS} (x, y) landmarks, got shape {pts.shape}"
        )
    return pts


def forehead_point(landmarks: Sequence[Point]) -> Point:
    """Synthesised forehead centre above the inner brow ends."""
    pts = _as_array(landmarks)
    brow = pts[list(_INNER_BROWS)].mean(axis=0)
    nose = pts[_NOSE_TIP]
    raise_by = FOREHEAD_RAISE * abs(nose[1] - brow[1])
    x = float(np.clip(brow[0], 0.0, 1.0))
    y = float(np.clip(brow[1] - raise_by, 0.0, 1.0))
    return x, y


def nose_vertical_position(landmarks: Sequence[Point]) -> float:
    pts = _as_array(landmarks)
    return float(np.clip(pts[_NOSE_TIP, 1], 0.0, 1.0))


def eye_aspect_distance(landmarks: Sequence[Point]) -> float:
    """Mean vertical eyelid separation over both eyes (normalised units)."""
    pts = _as_array(landmarks)
    gaps = [abs(pts[lower, 1] - pts[upper, 1]) for upper, lower in _EYELID_PAIRS]
    return float(np.mean(gaps))


def extract_sample(
    timestamp_ms: int,
    landmarks: Sequence[Point],
    sampler: RegionSampler,
    region_size: int = FOREHEAD_REGION_PX,
) -> BiometricSample:
    """Build a :class:`BiometricSample` for one tracked frame."""
    fx, fy = forehead_point(landmarks)
    return BiometricSample(
        timestamp_ms=int(timestamp_ms),
        green_channel_mean=float(sampler(fx, fy, region_size)),
        nose_vertical_position=nose_vertical_position(landmarks),
        eye_aspect_distance=eye_aspect_distance(landmarks),
    )


def frame_region_sampler(frame: np.ndarray) -> RegionSampler:
    """
    Return a sampler reading the green channel of a BGR *frame*.

    The region is clipped to the frame bounds; a region that falls entirely
    outside yields ``0.0``.
    """
    h, w = frame.shape[:2]

    def sample(cx: float, cy: float, size: int) -> float:
        px, py = int(round(cx * (w - 1))), int(round(cy * (h - 1)))
        half = max(size // 2, 1)
        x0, x1 = max(px - half, 0), min(px + half, w)
        y0, y1 = max(py - half, 0), min(py + half, h)
        if x1 <= x0 or y1 <= y0:
            return 0.0
        return float(np.mean(frame[y0:y1, x0:x1, 1]))  # channel 1 = Green in BGR

    return sample
