"""
InfluxDB Reader — Time-Series Source for Vehicle Metrics

Read-only client over the vehicle_metrics measurement. Rows are pivoted so
each timestamp becomes one record, then converted to RawSample (null or
non-numeric signals become 0.0 there).

Results are always returned oldest first. Queries fetch the newest N
points (ungroup + sort desc + limit) and flip them back into chronological
order. Tag columns split pivoted rows into one table per tag set, so the
query ungroups before limiting.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from influxdb_client import InfluxDBClient
from influxdb_client.client.exceptions import InfluxDBError

from vehicle_ml.generator.schemas import RawSample

from .base import TimeBound
from .config import FIELDS, TAGS, InfluxDBConfig, load_config
from .memory import to_epoch_ms


logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = "-30d"


class StorageClientError(Exception):
    """Raised when the telemetry store cannot be reached or queried."""
    pass


def _flux_time(value: TimeBound) -> Optional[str]:
    """Render a time bound as an RFC3339 Flux literal."""
    epoch_ms = to_epoch_ms(value)
    if epoch_ms is None:
        return None
    moment = datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class VehicleMetricsReader:
    """
    InfluxDB client wrapper implementing SensorDataSource.

    Handles connection management and converts Flux records to RawSample.
    """

    def __init__(self, config: Optional[InfluxDBConfig] = None):
        """
        Initialize the reader.

        Args:
            config: InfluxDB configuration. If None, loads from environment.
        """
        self.config = config or load_config()
        self._client: Optional[InfluxDBClient] = None

    def connect(self) -> None:
        """
        Establish connection to InfluxDB.

        Raises:
            StorageClientError: If connection fails
        """
        try:
            self._client = InfluxDBClient(
                url=self.config.url,
                token=self.config.token,
                org=self.config.org,
                timeout=self.config.timeout_ms,
            )
            if not self._client.ping():
                raise StorageClientError("Failed to ping InfluxDB")
        except StorageClientError:
            self.disconnect()
            raise
        except Exception as e:
            self.disconnect()
            raise StorageClientError(f"Connection failed: {e}") from e
        logger.info(f"[InfluxReader] Connected to {self.config.url}")

    def disconnect(self) -> None:
        """Close the connection."""
        if self._client:
            self._client.close()
            self._client = None

    close = disconnect

    @contextmanager
    def connection(self):
        """Context manager for connection handling."""
        try:
            self.connect()
            yield self
        finally:
            self.disconnect()

    def _ensure_connected(self) -> None:
        if self._client is None:
            raise StorageClientError("Not connected. Call connect() first.")

    def _build_query(
        self,
        limit: int,
        start_time: TimeBound = None,
        end_time: TimeBound = None,
    ) -> str:
        start = _flux_time(start_time) or DEFAULT_LOOKBACK
        stop = _flux_time(end_time)
        range_clause = f"range(start: {start}, stop: {stop})" if stop else f"range(start: {start})"
        return f'''
        from(bucket: "{self.config.bucket}")
            |> {range_clause}
            |> filter(fn: (r) => r._measurement == "{self.config.measurement}")
            |> pivot(rowKey:["_time"], columnKey: ["_field"], valueColumn: "_value")
            |> group()
            |> sort(columns: ["_time"], desc: true)
            |> limit(n: {int(limit)})
        '''

    def _run_query(self, query: str, limit: int) -> List[RawSample]:
        self._ensure_connected()
        try:
            tables = self._client.query_api().query(query, org=self.config.org)
        except InfluxDBError as e:
            raise StorageClientError(f"Query failed: {e}") from e

        samples = []
        skipped = 0
        for table in tables:
            for record in table.records:
                try:
                    samples.append(RawSample.from_record(self._record_to_row(record)))
                except ValueError as e:
                    skipped += 1
                    logger.debug(f"[InfluxReader] Skipped record: {e}")
        if skipped:
            logger.warning(f"[InfluxReader] Skipped {skipped} unreadable records")

        samples.sort(key=lambda s: s.timestamp_ms)
        samples = samples[-limit:]
        logger.debug(f"[InfluxReader] Query returned {len(samples)} samples")
        return samples

    @staticmethod
    def _record_to_row(record) -> Dict[str, Any]:
        row: Dict[str, Any] = {"timestamp": record.get_time()}
        for name in FIELDS + TAGS:
            row[name] = record.values.get(name)
        return row

    def query_historical(
        self,
        limit: int,
        start_time: TimeBound = None,
        end_time: TimeBound = None,
    ) -> List[RawSample]:
        """
        Query up to `limit` of the newest samples within a time range.

        Raises:
            StorageClientError: If the query fails
        """
        if limit <= 0:
            return []
        return self._run_query(self._build_query(limit, start_time, end_time), limit)

    def query_recent(self, window_size: int) -> List[RawSample]:
        """
        Query the `window_size` newest samples.

        Raises:
            StorageClientError: If the query fails
        """
        if window_size <= 0:
            return []
        return self._run_query(self._build_query(window_size), window_size)

    def health_check(self) -> bool:
        """
        Check if InfluxDB is healthy and accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            if self._client is None:
                self.connect()
            return self._client.ping()
        except (StorageClientError, InfluxDBError) as e:
            logger.warning(f"[InfluxReader] Health check failed: {e}")
            return False
