"""
Recorded frame source.

Replays a video file through OpenCV together with the landmark track the
external face tracker produced for it.  Each step yields the
``(timestamp_ms, landmarks, sampler)`` triple consumed by
:meth:`vitalscan.session.ScanSession.process_frame`.

Landmark track format (JSON, one entry per video frame, in order)::

    [
      {"timestamp_ms": 0,  "landmarks": [[x0, y0], ..., [x67, y67]]},
      {"timestamp_ms": 33, "landmarks": null},
      ...
    ]

``landmarks: null`` marks a frame where the tracker found no face.  When an
entry has no ``timestamp_ms`` the decoder's position is used instead.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

import cv2

from vitalscan.landmarks import Point, RegionSampler, frame_region_sampler

logger = logging.getLogger(__name__)

Frame = Tuple[int, Optional[Sequence[Point]], RegionSampler]


def load_landmark_track(path: "str | Path") -> List[Dict[str, Any]]:
    """Read and minimally validate a landmark track file."""
    with open(path, "r", encoding="utf-8") as fh:
        track = json.load(fh)
    if not isinstance(track, list):
        raise ValueError(f"Landmark track {path} must be a JSON list")
    for index, entry in enumerate(track):
        if not isinstance(entry, dict):
            raise ValueError(
                f"Landmark track {path} entry {index} must be an object, "
                f"got {type(entry).__name__}"
            )
    return track


class RecordedFrameSource:
    """
    Iterate a recorded video in lock-step with its landmark track.

    Parameters
    ----------
    video_path:
        Any container OpenCV can decode.
    landmarks_path:
        JSON landmark track (see module docstring).
    """

    def __init__(self, video_path: "str | Path", landmarks_path: "str | Path") -> None:
        self.video_path = Path(video_path)
        self.track = load_landmark_track(landmarks_path)
        self._cap: "cv2.VideoCapture | None" = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        cap = cv2.VideoCapture(str(self.video_path))
        if not cap.isOpened():
            raise RuntimeError(f"Cannot open video {self.video_path}")
        self._cap = cap
        logger.info(
            "Replaying %s (%d tracked frames, %.1f fps)",
            self.video_path, len(self.track), cap.get(cv2.CAP_PROP_FPS),
        )

    def close(self) -> None:
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None

    def __enter__(self) -> "RecordedFrameSource":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame acquisition
    # ------------------------------------------------------------------

    def frames(self) -> Generator[Frame, None, None]:
        """
        Yield ``(timestamp_ms, landmarks, sampler)`` until either the video
        or the landmark track runs out.
        """
        if self._cap is None:
            raise RuntimeError("Frame source is not open.  Call open() first.")

        for index, entry in enumerate(self.track):
            ok, frame = self._cap.read()
            if not ok:
                logger.warning(
                    "Video ended after %d frames; track has %d entries.",
                    index, len(self.track),
                )
                return
            ts = entry.get("timestamp_ms")
            if ts is None:
                ts = self._cap.get(cv2.CAP_PROP_POS_MSEC)
            yield int(ts), entry.get("landmarks"), frame_region_sampler(frame)
