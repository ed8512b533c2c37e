"""
Storage Tests

Tests verify:
- In-memory store ordering, limits, time filters and bounding
- Stores satisfy the SensorDataSource protocol
- InfluxDB reader query building and record conversion (client mocked)
- Reader error wrapping and connection lifecycle
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from influxdb_client.client.exceptions import InfluxDBError

from vehicle_ml.generator import RawSample
from vehicle_ml.storage import (
    InfluxDBConfig,
    InMemorySampleStore,
    SensorDataSource,
    StorageClientError,
    VehicleMetricsReader,
    load_config,
)


def create_samples(n: int = 10, start_ms: int = 1_000_000, interval_ms: int = 2000):
    return [RawSample(timestamp_ms=start_ms + i * interval_ms, rpm=1000.0 + i) for i in range(n)]


def create_config() -> InfluxDBConfig:
    return InfluxDBConfig(
        url="http://localhost:8086",
        org="test-org",
        bucket="vehicle_data",
        token="test-token",
        measurement="vehicle_metrics",
    )


def create_record(moment: datetime, rpm):
    record = MagicMock()
    record.get_time.return_value = moment
    record.values = {"rpm": rpm, "speed": 40.0, "mode": "city", "result": "_result"}
    return record


class _QueryFailure(InfluxDBError):
    def __init__(self):
        Exception.__init__(self, "query failed")
        self.response = None
        self.message = "query failed"


class TestInMemorySampleStore:
    """Test the bounded in-process store."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemorySampleStore(), SensorDataSource)

    def test_historical_is_chronological(self):
        samples = create_samples(10)
        store = InMemorySampleStore(reversed(samples))
        result = store.query_historical(100)
        assert [s.timestamp_ms for s in result] == [s.timestamp_ms for s in samples]

    def test_historical_limit_keeps_newest(self):
        samples = create_samples(10)
        store = InMemorySampleStore(samples)
        assert store.query_historical(3) == samples[-3:]

    def test_historical_time_filter(self):
        samples = create_samples(10)
        store = InMemorySampleStore(samples)
        result = store.query_historical(100, start_time=samples[2].timestamp_ms, end_time=samples[5].timestamp_ms)
        assert result == samples[2:6]

    def test_historical_datetime_bounds(self):
        samples = create_samples(5)
        store = InMemorySampleStore(samples)
        start = datetime.fromtimestamp(samples[3].timestamp_ms / 1000, tz=timezone.utc)
        assert store.query_historical(100, start_time=start) == samples[3:]

    def test_recent_window(self):
        samples = create_samples(10)
        store = InMemorySampleStore(samples)
        assert store.query_recent(4) == samples[-4:]
        assert store.query_recent(0) == []

    def test_add_keeps_order(self):
        samples = create_samples(3)
        store = InMemorySampleStore([samples[0], samples[2]])
        store.add(samples[1])
        assert store.query_recent(10) == samples

    def test_bounded(self):
        store = InMemorySampleStore(create_samples(10), max_samples=4)
        assert len(store) == 4
        assert store.query_recent(10)[0].rpm == 1006.0

    def test_clear(self):
        store = InMemorySampleStore(create_samples(5))
        store.clear()
        assert store.query_historical(10) == []


class TestInfluxConfig:
    """Test environment-driven configuration."""

    def test_config_loads_from_environment(self, monkeypatch):
        monkeypatch.setenv("INFLUXDB_URL", "http://influx.example:9999")
        monkeypatch.setenv("INFLUXDB_BUCKET", "cars")
        config = load_config()
        assert config.url == "http://influx.example:9999"
        assert config.bucket == "cars"

    def test_host_and_port(self, monkeypatch):
        monkeypatch.delenv("INFLUXDB_URL", raising=False)
        monkeypatch.setenv("INFLUXDB_HOST", "db")
        monkeypatch.setenv("INFLUXDB_PORT", "8087")
        assert load_config().url == "http://db:8087"


class TestVehicleMetricsReader:
    """Test the InfluxDB reader with a mocked client."""

    @pytest.fixture
    def client(self):
        with patch("vehicle_ml.storage.client.InfluxDBClient") as client_cls:
            instance = client_cls.return_value
            instance.ping.return_value = True
            yield instance

    def test_satisfies_protocol(self):
        assert isinstance(VehicleMetricsReader(create_config()), SensorDataSource)

    def test_not_connected_raises_error(self):
        reader = VehicleMetricsReader(create_config())
        with pytest.raises(StorageClientError, match="Not connected"):
            reader.query_recent(5)

    def test_failed_ping_raises_error(self, client):
        client.ping.return_value = False
        reader = VehicleMetricsReader(create_config())
        with pytest.raises(StorageClientError):
            reader.connect()

    def test_records_become_chronological_samples(self, client):
        """Newest-first query rows come back oldest first."""
        t0 = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        t1 = datetime(2024, 1, 1, 0, 0, 2, tzinfo=timezone.utc)
        table = MagicMock()
        table.records = [create_record(t1, 2000.0), create_record(t0, None)]
        client.query_api.return_value.query.return_value = [table]

        with VehicleMetricsReader(create_config()).connection() as reader:
            samples = reader.query_recent(2)

        assert [s.timestamp for s in samples] == [t0, t1]
        assert samples[0].rpm == 0.0
        assert samples[1].rpm == 2000.0
        assert samples[1].mode == "city"
        client.close.assert_called_once()

    def test_limit_holds_across_tag_tables(self, client):
        """Rows split over several tag tables are cut to the newest `limit` overall."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp()
        city, highway = MagicMock(), MagicMock()
        city.records = [
            create_record(datetime.fromtimestamp(base + s, tz=timezone.utc), 1000.0 + s)
            for s in (10, 6, 2)
        ]
        highway.records = [
            create_record(datetime.fromtimestamp(base + s, tz=timezone.utc), 1000.0 + s)
            for s in (8, 4, 0)
        ]
        client.query_api.return_value.query.return_value = [city, highway]
        reader = VehicleMetricsReader(create_config())
        reader.connect()

        samples = reader.query_recent(4)
        assert [s.rpm for s in samples] == [1004.0, 1006.0, 1008.0, 1010.0]
        query = client.query_api.return_value.query.call_args[0][0]
        assert query.index("group()") < query.index("sort(")

    def test_query_contains_range_and_limit(self, client):
        client.query_api.return_value.query.return_value = []
        reader = VehicleMetricsReader(create_config())
        reader.connect()
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        reader.query_historical(25, start_time=start)

        query = client.query_api.return_value.query.call_args[0][0]
        assert 'from(bucket: "vehicle_data")' in query
        assert "range(start: 2024-01-01T00:00:00.000Z)" in query
        assert 'r._measurement == "vehicle_metrics"' in query
        assert "limit(n: 25)" in query

    def test_default_lookback(self, client):
        client.query_api.return_value.query.return_value = []
        reader = VehicleMetricsReader(create_config())
        reader.connect()
        reader.query_recent(5)
        query = client.query_api.return_value.query.call_args[0][0]
        assert "range(start: -30d)" in query

    def test_query_error_is_wrapped(self, client):
        client.query_api.return_value.query.side_effect = _QueryFailure()
        reader = VehicleMetricsReader(create_config())
        reader.connect()
        with pytest.raises(StorageClientError, match="Query failed"):
            reader.query_recent(5)

    def test_unreadable_records_skipped(self, client):
        table = MagicMock()
        bad = create_record(None, 1000.0)
        table.records = [bad, create_record(datetime(2024, 1, 1, tzinfo=timezone.utc), 1500.0)]
        client.query_api.return_value.query.return_value = [table]
        reader = VehicleMetricsReader(create_config())
        reader.connect()
        samples = reader.query_recent(2)
        assert len(samples) == 1
        assert samples[0].rpm == 1500.0

    def test_health_check(self, client):
        reader = VehicleMetricsReader(create_config())
        assert reader.health_check() is True
        client.ping.return_value = False
        assert reader.health_check() is False
