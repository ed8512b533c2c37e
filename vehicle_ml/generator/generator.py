"""
Synthetic Sample Generator — Training Set Augmentation

Produces RawSample runs drawn from the scenario ranges in config.py. Used
by the pipeline when the data store holds too little history to fit
normalization statistics on.

Runs are chronological and end strictly before a caller-supplied
timestamp, so a synthetic run can be placed in front of real history
without breaking sequence order.
"""

import logging
import random
import time
from typing import Iterator, List, Optional

from .config import (
    DEFAULT_SAMPLE_INTERVAL_MS,
    FAULT_PROBABILITY,
    FAULTS,
    MODES,
    SIGNAL_RANGES,
    VEHICLE_CLASSES,
)
from .schemas import FaultScenario, RawSample


logger = logging.getLogger(__name__)


class SyntheticSampleGenerator:
    """
    Seeded generator of synthetic vehicle telemetry.

    Usage:
        generator = SyntheticSampleGenerator(seed=42)
        samples = generator.generate_batch(2000, end_ms=first_real_ms)
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        interval_ms: int = DEFAULT_SAMPLE_INTERVAL_MS,
    ):
        """
        Initialize the generator.

        Args:
            seed: Random seed for deterministic output (None for random)
            interval_ms: Spacing between consecutive samples
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.seed = seed
        self.interval_ms = interval_ms
        self._rng = random.Random(seed)
        self._sample_count = 0

    @property
    def sample_count(self) -> int:
        """Number of samples produced since the last reset."""
        return self._sample_count

    def _draw_sample(self, timestamp_ms: int) -> RawSample:
        signals = {
            name: self._rng.uniform(bounds.low, bounds.high)
            for name, bounds in SIGNAL_RANGES.items()
        }
        mode = self._rng.choice(MODES)
        vehicle_type = self._rng.choice(VEHICLE_CLASSES)
        if self._rng.random() < FAULT_PROBABILITY:
            fault = self._rng.choice(FAULTS)
        else:
            fault = FaultScenario.NORMAL

        self._sample_count += 1
        return RawSample(
            timestamp_ms=timestamp_ms,
            mode=mode.value,
            vehicle_type=vehicle_type.value,
            fault_scenario=fault.value,
            **signals,
        )

    def generate(self, count: int, end_ms: Optional[int] = None) -> Iterator[RawSample]:
        """
        Generate a chronological run of samples.

        Args:
            count: Number of samples to generate
            end_ms: Exclusive upper bound for the last timestamp
                    (default: now)

        Timestamps never go below 0. When end_ms leaves too little room for
        count samples at interval_ms, the spacing shrinks to fit; below 1 ms
        spacing the run is capped at end_ms samples.

        Yields:
            RawSample instances, oldest first
        """
        if end_ms is None:
            end_ms = int(time.time() * 1000)
        interval = self.interval_ms
        if count > 0 and end_ms < count * interval:
            interval = end_ms // count
            if interval < 1:
                interval = 1
                capped = max(end_ms, 0)
                logger.warning(f"[Generator] Capping run at {capped} of {count} samples to end before {end_ms}")
                count = capped
            else:
                logger.warning(f"[Generator] Interval reduced to {interval} ms to end before {end_ms}")
        if count <= 0:
            return

        start_ms = end_ms - count * interval
        for i in range(count):
            yield self._draw_sample(start_ms + i * interval)

    def generate_batch(self, count: int, end_ms: Optional[int] = None) -> List[RawSample]:
        """Same as generate() but returns a list."""
        return list(self.generate(count, end_ms=end_ms))

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the generator state.

        Args:
            seed: New random seed (uses original if None)
        """
        if seed is not None:
            self.seed = seed
        self._rng = random.Random(self.seed)
        self._sample_count = 0
