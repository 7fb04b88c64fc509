"""
Value types shared across the scan pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class ScanState(Enum):
    IDLE        = "idle"
    CALIBRATING = "calibrating"
    SAMPLING    = "sampling"
    COMPLETED   = "completed"


class EdgeState(Enum):
    OPEN   = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class BiometricSample:
    """
    One observation per processed frame.

    Attributes
    ----------
    timestamp_ms:
        Milliseconds since sampling started.
    green_channel_mean:
        Mean green intensity of the forehead region (0 – 255).
    nose_vertical_position:
        Normalised y-coordinate of the nose tip (0 – 1).
    eye_aspect_distance:
        Normalised vertical eyelid separation.
    """

    timestamp_ms: int
    green_channel_mean: float
    nose_vertical_position: float
    eye_aspect_distance: float

    def __post_init__(self) -> None:
        if self.timestamp_ms < 0:
            raise ValueError(f"timestamp_ms must be >= 0, got {self.timestamp_ms}")
        if self.eye_aspect_distance < 0:
            raise ValueError(
                f"eye_aspect_distance must be >= 0, got {self.eye_aspect_distance}"
            )


@dataclass(frozen=True)
class VitalsResult:
    heart_rate_bpm: int
    respiration_rate_brpm: int
    blink_rate_per_min: int
    hrv_ms: float

    def as_biometrics(self) -> Dict[str, Any]:
        """Plain key/value form embedded in the external analysis request."""
        return {
            "heartRate": self.heart_rate_bpm,
            "respirationRate": self.respiration_rate_brpm,
            "blinkRate": self.blink_rate_per_min,
            "hrv": round(self.hrv_ms, 1),
        }


@dataclass(frozen=True)
class HistoryRecord:
    age_bucket: str
    wellness_index: int
    recorded_at: float          # UNIX seconds

    def __post_init__(self) -> None:
        if not 1 <= self.wellness_index <= 100:
            raise ValueError(
                f"wellness_index must be within [1, 100], got {self.wellness_index}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ageBucket": self.age_bucket,
            "wellnessIndex": self.wellness_index,
            "recordedAt": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        return cls(
            age_bucket=str(data["ageBucket"]),
            wellness_index=int(data["wellnessIndex"]),
            recorded_at=float(data["recordedAt"]),
        )


@dataclass(frozen=True)
class PercentileResult:
    percentile: int
    sample_size: int
    is_default: bool = False
