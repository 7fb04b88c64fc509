"""
Scan session state machine.

States
------
``IDLE``
    No face, or the face has not yet been reported continuously for the
    profile's debounce interval.
``CALIBRATING``
    Short settling delay so exposure / autofocus can stabilise.  Frames are
    not recorded.
``SAMPLING``
    Every accepted frame produces exactly one :class:`BiometricSample`.
    The session completes once the elapsed time reaches the window length.
``COMPLETED``
    Terminal.  Estimators have run exactly once and :attr:`ScanSession.result`
    holds the vitals.  Start a new :class:`ScanSession` for another attempt.

Losing the face (``landmarks is None``) or calling :meth:`ScanSession.cancel`
aborts the attempt: every buffered sample is discarded and the session
returns to ``IDLE``.  Partial windows bias the frequency estimates, so they
are never evaluated.

The session is not reentrant.  Callers that dispatch frames from several
threads must serialise them.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional, Sequence

from vitalscan.config import BLINK_THRESHOLD, FOREHEAD_REGION_PX, STANDARD, ScanProfile
from vitalscan.estimators import estimate_vitals
from vitalscan.landmarks import Point, RegionSampler, extract_sample
from vitalscan.models import BiometricSample, EdgeState, ScanState, VitalsResult

logger = logging.getLogger(__name__)


class SampleBuffer:
    """Ordered, timestamp-monotonic sequence of samples for one window."""

    def __init__(self) -> None:
        self._samples: List[BiometricSample] = []

    def ingest(self, sample: BiometricSample) -> bool:
        """
        Append *sample* if its timestamp is strictly later than the last one.

        Returns *False* (and leaves the buffer unchanged) for duplicate or
        out-of-order timestamps.
        """
        if self._samples and sample.timestamp_ms <= self._samples[-1].timestamp_ms:
            logger.debug(
                "Rejected sample at %d ms (last accepted %d ms).",
                sample.timestamp_ms, self._samples[-1].timestamp_ms,
            )
            return False
        self._samples.append(sample)
        return True

    def clear(self) -> None:
        self._samples.clear()

    @property
    def samples(self) -> Sequence[BiometricSample]:
        return tuple(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[BiometricSample]:
        return iter(self._samples)


class BlinkDetector:
    """
    Two-state eyelid edge detector.

    A blink is counted on each ``OPEN → CLOSED`` transition only, so a run of
    consecutive closed frames counts as a single blink.
    """

    def __init__(self, threshold: float = BLINK_THRESHOLD) -> None:
        self.threshold = threshold
        self.state = EdgeState.OPEN
        self.count = 0

    def update(self, eye_aspect_distance: float) -> bool:
        """Feed one frame; return *True* if it started a new blink."""
        if eye_aspect_distance < self.threshold:
            if self.state is EdgeState.OPEN:
                self.state = EdgeState.CLOSED
                self.count += 1
                return True
            return False
        self.state = EdgeState.OPEN
        return False

    def reset(self) -> None:
        self.state = EdgeState.OPEN
        self.count = 0


class ScanSession:
    """
    One scan attempt driven by an external frame source.

    Parameters
    ----------
    profile:
        Window length, heart-rate clamp and timing parameters.
    on_complete:
        Optional callback invoked exactly once with the :class:`VitalsResult`.
    region_size:
        Side length in pixels of the forehead region passed to the sampler.
    """

    def __init__(
        self,
        profile: ScanProfile = STANDARD,
        on_complete: Optional[Callable[[VitalsResult], None]] = None,
        region_size: int = FOREHEAD_REGION_PX,
    ) -> None:
        self.profile = profile
        self.on_complete = on_complete
        self.region_size = region_size

        self._state = ScanState.IDLE
        self._buffer = SampleBuffer()
        self._blinks = BlinkDetector()
        self._result: Optional[VitalsResult] = None
        self._busy = False

        self._face_since: Optional[int] = None          # tracker clock, ms
        self._calibration_start: Optional[int] = None
        self.start_timestamp: Optional[int] = None      # tracker clock at sampling start
        self._elapsed_ms = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def result(self) -> Optional[VitalsResult]:
        return self._result

    @property
    def sample_count(self) -> int:
        return len(self._buffer)

    @property
    def samples(self) -> Sequence[BiometricSample]:
        return self._buffer.samples

    @property
    def blink_count(self) -> int:
        return self._blinks.count

    @property
    def blink_edge_state(self) -> EdgeState:
        return self._blinks.state

    @property
    def elapsed_fraction(self) -> float:
        """Progress through the sampling window (0 – 1)."""
        if self._state is ScanState.COMPLETED:
            return 1.0
        if self._state is not ScanState.SAMPLING:
            return 0.0
        return min(1.0, self._elapsed_ms / self.profile.window_ms)

    def process_frame(
        self,
        timestamp_ms: int,
        landmarks: Optional[Sequence[Point]],
        sampler: RegionSampler,
    ) -> Optional[VitalsResult]:
        """
        Advance the state machine with one tracker frame.

        Parameters
        ----------
        timestamp_ms:
            Frame time on the tracker's monotonic clock.
        landmarks:
            68 normalised ``(x, y)`` points, or *None* when no face was found.
        sampler:
            Callback returning the mean green intensity of a forehead region.

        Returns
        -------
        VitalsResult or None
            The vitals on the frame that completes the window, else *None*.
        """
        self._check_not_busy()

        if self._state is ScanState.COMPLETED:
            logger.debug("Frame at %d ms ignored: session already completed.", timestamp_ms)
            return None

        if landmarks is None:
            if self._state is ScanState.IDLE:
                self._face_since = None
            else:
                self._abort("face lost")
            return None

        if self._state is ScanState.IDLE:
            self._handle_idle(timestamp_ms)
        if self._state is ScanState.CALIBRATING:
            self._handle_calibrating(timestamp_ms)
        if self._state is ScanState.SAMPLING:
            elapsed = timestamp_ms - self.start_timestamp
            if elapsed < 0:
                logger.debug("Frame at %d ms predates sampling start.", timestamp_ms)
                return None
            sample = extract_sample(elapsed, landmarks, sampler, self.region_size)
            self.ingest(sample)
            return self._result
        return None

    def ingest(self, sample: BiometricSample) -> bool:
        """
        Append a pre-built sample while ``SAMPLING``.

        ``sample.timestamp_ms`` is measured from the sampling start.  Returns
        *False* when the sample was not accepted (wrong state, duplicate or
        out-of-order timestamp).
        """
        self._check_not_busy()
        if self._state is not ScanState.SAMPLING:
            return False
        if not self._buffer.ingest(sample):
            return False

        self._blinks.update(sample.eye_aspect_distance)
        self._elapsed_ms = sample.timestamp_ms
        if self._elapsed_ms >= self.profile.window_ms:
            self._complete()
        return True

    def begin_sampling(self, timestamp_ms: int = 0) -> None:
        """
        Skip face confirmation and calibration and start sampling at once.

        Used when the caller has already confirmed a stable face, e.g. when
        replaying a pre-recorded sample series.
        """
        if self._state is not ScanState.IDLE:
            raise RuntimeError(f"Cannot start sampling from state {self._state.value}")
        self._enter_sampling(timestamp_ms)

    def cancel(self) -> None:
        """Abandon the attempt and return to ``IDLE``."""
        if self._state is ScanState.COMPLETED:
            logger.debug("cancel() on completed session ignored.")
            return
        self._abort("cancelled")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_not_busy(self) -> None:
        if self._busy:
            raise RuntimeError("ScanSession is not reentrant: estimation in progress.")

    def _handle_idle(self, timestamp_ms: int) -> None:
        if self._face_since is None:
            self._face_since = timestamp_ms
        if timestamp_ms - self._face_since >= self.profile.debounce_ms:
            self._set_state(ScanState.CALIBRATING)
            self._calibration_start = timestamp_ms

    def _handle_calibrating(self, timestamp_ms: int) -> None:
        if timestamp_ms - self._calibration_start >= self.profile.calibration_ms:
            self._enter_sampling(timestamp_ms)

    def _enter_sampling(self, timestamp_ms: int) -> None:
        self.start_timestamp = timestamp_ms
        self._elapsed_ms = 0
        self._set_state(ScanState.SAMPLING)

    def _complete(self) -> None:
        self._busy = True
        try:
            self._result = estimate_vitals(
                self._buffer.samples, self._blinks.count, self.profile
            )
        finally:
            self._busy = False
        self._set_state(ScanState.COMPLETED)
        if self.on_complete is not None:
            self.on_complete(self._result)

    def _abort(self, reason: str) -> None:
        if self._state is not ScanState.IDLE:
            logger.info(
                "Scan aborted (%s) in state %s – discarding %d samples.",
                reason, self._state.value, len(self._buffer),
            )
        self._buffer.clear()
        self._blinks.reset()
        self._face_since = None
        self._calibration_start = None
        self.start_timestamp = None
        self._elapsed_ms = 0
        self._state = ScanState.IDLE

    def _set_state(self, state: ScanState) -> None:
        logger.info("Scan state %s → %s", self._state.value, state.value)
        self._state = state
