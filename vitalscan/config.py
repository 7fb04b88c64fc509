"""
Scan profiles and fixed calibration constants.

The heart-rate clamp range differs between scan profiles: the full
15-second scan tolerates a wider range than the short heart-rate-only
profile, whose shorter window produces noisier peak counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

# ---------------------------------------------------------------------------
# Signal conditioning
# ---------------------------------------------------------------------------
DETREND_HALF_WINDOW = 5

# ---------------------------------------------------------------------------
# Estimator thresholds and fallbacks
# ---------------------------------------------------------------------------
HR_MIN_SAMPLES = 20
HR_FALLBACK_BPM = 72

RESP_MIN_SAMPLES = 50
RESP_FALLBACK_BRPM = 16

HRV_MIN_PEAKS = 5
HRV_FALLBACK_MS = 45.0

BLINK_THRESHOLD = 0.015     # normalised eyelid separation

# ---------------------------------------------------------------------------
# History / percentile
# ---------------------------------------------------------------------------
HISTORY_CAPACITY = 1000
PERCENTILE_MIN_RECORDS = 5
PERCENTILE_DEFAULT = 85

# ---------------------------------------------------------------------------
# Forehead sampling
# ---------------------------------------------------------------------------
FOREHEAD_REGION_PX = 20


@dataclass(frozen=True)
class ScanProfile:
    """
    Timing and clamp parameters for one kind of scan.

    Parameters
    ----------
    name:
        Profile identifier used on the command line.
    window_ms:
        Sampling window length.  Estimators convert counts to per-minute
        rates against this duration.
    hr_min_bpm, hr_max_bpm:
        Heart-rate clamp range.
    debounce_ms:
        How long a face must be continuously reported before calibration
        starts.
    calibration_ms:
        Settling delay between face confirmation and sampling.
    """

    name: str
    window_ms: int = 15000
    hr_min_bpm: int = 50
    hr_max_bpm: int = 110
    debounce_ms: int = 200
    calibration_ms: int = 1000

    def __post_init__(self) -> None:
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {self.window_ms}")
        if self.hr_min_bpm > self.hr_max_bpm:
            raise ValueError(
                f"hr_min_bpm ({self.hr_min_bpm}) exceeds hr_max_bpm ({self.hr_max_bpm})"
            )
        if self.debounce_ms < 0 or self.calibration_ms < 0:
            raise ValueError("debounce_ms and calibration_ms must be non-negative")

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000.0


STANDARD = ScanProfile(name="standard")
HEART_RATE = ScanProfile(name="heart_rate", window_ms=6000, hr_min_bpm=55, hr_max_bpm=100)
EXTENDED = ScanProfile(name="extended", hr_min_bpm=55, hr_max_bpm=105)

PROFILES: Dict[str, ScanProfile] = {p.name: p for p in (STANDARD, HEART_RATE, EXTENDED)}


def get_profile(name: str) -> ScanProfile:
    """Look up a built-in profile by name."""
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(
            f"Unknown scan profile {name!r}; choose one of {sorted(PROFILES)}"
        ) from None
