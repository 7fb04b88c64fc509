"""
Outcome history and population percentile ranking.

The store keeps the most recent ``capacity`` outcomes in memory behind a
single lock and rewrites the JSON file in full after every append.  The
file is written to a temporary sibling and moved into place, so a crash
mid-write leaves the previous history intact.

On-disk format: a JSON list of ``{"ageBucket", "wellnessIndex",
"recordedAt"}`` objects, oldest first.  A missing or unreadable file is an
empty history, never an error.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional

from vitalscan.config import HISTORY_CAPACITY, PERCENTILE_DEFAULT, PERCENTILE_MIN_RECORDS
from vitalscan.models import HistoryRecord, PercentileResult

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Bounded, append-only ledger of past scan outcomes.

    Parameters
    ----------
    path:
        JSON file backing the store.  *None* keeps the history in memory only.
    capacity:
        Maximum number of records; the oldest are evicted first.
    clock:
        Returns the current time in UNIX seconds (injectable for tests).
    """

    def __init__(
        self,
        path: "str | Path | None" = None,
        capacity: int = HISTORY_CAPACITY,
        clock=time.time,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.path = Path(path) if path is not None else None
        self.capacity = capacity
        self._clock = clock
        self._lock = threading.RLock()
        self._records: Deque[HistoryRecord] = deque(self._load(), maxlen=capacity)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def lock(self) -> threading.RLock:
        """Held by callers that need a read-then-append to be atomic."""
        return self._lock

    def record_outcome(self, age_bucket: str, wellness_index: int) -> HistoryRecord:
        """Append a new record stamped with the current time and flush."""
        with self._lock:
            record = HistoryRecord(
                age_bucket=age_bucket,
                wellness_index=int(wellness_index),
                recorded_at=self._clock(),
            )
            self._records.append(record)   # deque(maxlen) evicts the oldest
            self._flush()
        return record

    def snapshot(self, age_bucket: Optional[str] = None) -> List[HistoryRecord]:
        """Copy of the stored records, optionally filtered to one bucket."""
        with self._lock:
            records = list(self._records)
        if age_bucket is None:
            return records
        return [r for r in records if r.age_bucket == age_bucket]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> List[HistoryRecord]:
        if self.path is None:
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            if not isinstance(raw, list):
                raise ValueError(f"expected a JSON list, got {type(raw).__name__}")
            records = [HistoryRecord.from_dict(item) for item in raw]
        except FileNotFoundError:
            logger.info("No history at %s – starting empty.", self.path)
            return []
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("History at %s unreadable (%s) – starting empty.", self.path, exc)
            return []
        logger.info("Loaded %d history records from %s.", len(records), self.path)
        return records[-self.capacity:]

    def _flush(self) -> None:
        if self.path is None:
            return
        payload = [r.to_dict() for r in self._records]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name, suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh)
                os.replace(tmp, self.path)
            except BaseException:
                os.unlink(tmp)
                raise
        except OSError as exc:
            logger.warning("Could not write history to %s: %s", self.path, exc)


class PercentileRanker:
    """
    Ranks a wellness index against stored outcomes in the same age bucket.

    Parameters
    ----------
    store:
        History to rank against.
    min_records:
        Buckets with fewer matching records return ``default_percentile``.
    default_percentile:
        Value reported when the bucket is too small to be meaningful.
    """

    def __init__(
        self,
        store: HistoryStore,
        min_records: int = PERCENTILE_MIN_RECORDS,
        default_percentile: int = PERCENTILE_DEFAULT,
    ) -> None:
        self.store = store
        self.min_records = min_records
        self.default_percentile = default_percentile

    def percentile(self, age_bucket: str, wellness_index: int) -> PercentileResult:
        """Share of the bucket's stored indices that are ``<= wellness_index``."""
        matching = self.store.snapshot(age_bucket)
        n = len(matching)
        if n < self.min_records:
            return PercentileResult(self.default_percentile, n, is_default=True)
        at_or_below = sum(1 for r in matching if r.wellness_index <= wellness_index)
        return PercentileResult(round(100 * at_or_below / n), n)

    def rank_and_record(self, age_bucket: str, wellness_index: int) -> PercentileResult:
        """
        Rank against the history as it stood before this outcome, then
        append the outcome.  Both steps run under the store lock so that
        concurrent completions neither lose records nor see each other
        half-way.
        """
        with self.store.lock:
            result = self.percentile(age_bucket, wellness_index)
            self.store.record_outcome(age_bucket, wellness_index)
        logger.info(
            "Wellness %d in bucket %s → percentile %d (n=%d%s)",
            wellness_index, age_bucket, result.percentile, result.sample_size,
            ", default" if result.is_default else "",
        )
        return result
