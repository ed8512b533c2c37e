"""
Data Source Protocol — What the pipeline needs from a data store

Both queries return RawSamples in chronological (ascending) order.
Numeric fields may have been null in the store; RawSample has already
coerced them to 0.0.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Union, runtime_checkable

from vehicle_ml.generator.schemas import RawSample


TimeBound = Union[datetime, int, None]


@runtime_checkable
class SensorDataSource(Protocol):
    """Read-only view of a vehicle telemetry store."""

    def query_historical(
        self,
        limit: int,
        start_time: TimeBound = None,
        end_time: TimeBound = None,
    ) -> List[RawSample]:
        """Return up to `limit` of the most recent samples inside the time range."""
        ...

    def query_recent(self, window_size: int) -> List[RawSample]:
        """Return the `window_size` most recent samples."""
        ...
