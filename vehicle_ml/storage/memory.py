"""
In-Memory Sample Store — Bounded Process-Local Data Source

Keeps the most recent samples in a bounded buffer and answers the same
queries as the InfluxDB reader. Used when no database is configured and as
the data source in tests.
"""

import logging
from bisect import insort
from datetime import datetime, timezone
from threading import Lock
from typing import Iterable, List, Optional

from vehicle_ml.generator.schemas import RawSample

from .base import TimeBound


logger = logging.getLogger(__name__)

DEFAULT_MAX_SAMPLES = 100_000


def to_epoch_ms(value: TimeBound) -> Optional[int]:
    """Normalize a time bound to epoch milliseconds."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp() * 1000))
    return int(value)


class InMemorySampleStore:
    """
    Bounded, time-ordered sample buffer.

    Oldest samples are dropped once max_samples is exceeded.
    """

    def __init__(self, samples: Iterable[RawSample] = (), max_samples: int = DEFAULT_MAX_SAMPLES):
        if max_samples <= 0:
            raise ValueError("max_samples must be positive")
        self.max_samples = max_samples
        self._samples: List[RawSample] = []
        self._lock = Lock()
        self.extend(samples)

    def __len__(self) -> int:
        return len(self._samples)

    def add(self, sample: RawSample) -> None:
        """Insert one sample, keeping timestamp order."""
        with self._lock:
            insort(self._samples, sample, key=lambda s: s.timestamp_ms)
            self._trim()

    def extend(self, samples: Iterable[RawSample]) -> int:
        """Insert many samples. Returns the number inserted."""
        incoming = list(samples)
        if not incoming:
            return 0
        with self._lock:
            self._samples.extend(incoming)
            self._samples.sort(key=lambda s: s.timestamp_ms)
            self._trim()
        logger.debug(f"[MemoryStore] Stored {len(incoming)} samples ({len(self._samples)} total)")
        return len(incoming)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def _trim(self) -> None:
        if len(self._samples) > self.max_samples:
            self._samples = self._samples[-self.max_samples:]

    def query_historical(
        self,
        limit: int,
        start_time: TimeBound = None,
        end_time: TimeBound = None,
    ) -> List[RawSample]:
        """Most recent `limit` samples within [start_time, end_time], oldest first."""
        if limit <= 0:
            return []
        start_ms = to_epoch_ms(start_time)
        end_ms = to_epoch_ms(end_time)
        with self._lock:
            matching = [
                s for s in self._samples
                if (start_ms is None or s.timestamp_ms >= start_ms)
                and (end_ms is None or s.timestamp_ms <= end_ms)
            ]
        return matching[-limit:]

    def query_recent(self, window_size: int) -> List[RawSample]:
        """Most recent `window_size` samples, oldest first."""
        if window_size <= 0:
            return []
        with self._lock:
            return self._samples[-window_size:]

    def close(self) -> None:
        """Nothing to release; present for interface parity."""
        return None
