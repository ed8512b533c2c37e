"""
Storage Module — Telemetry Data Sources

Public API:
- SensorDataSource: Protocol the pipeline reads through
- InMemorySampleStore: Bounded in-process store
- VehicleMetricsReader: InfluxDB-backed reader
- InfluxDBConfig / load_config: Reader configuration
"""

from .base import SensorDataSource
from .client import StorageClientError, VehicleMetricsReader
from .config import InfluxDBConfig, load_config
from .memory import InMemorySampleStore

__all__ = [
    "SensorDataSource",
    "InMemorySampleStore",
    "VehicleMetricsReader",
    "StorageClientError",
    "InfluxDBConfig",
    "load_config",
]
