"""
InfluxDB Configuration — Environment-Driven Settings

Loads connection settings for the telemetry store. Supports both local
InfluxDB (host:port) and InfluxDB Cloud (full URL).
"""

import os
from dataclasses import dataclass

from vehicle_ml.config import settings


@dataclass(frozen=True)
class InfluxDBConfig:
    """
    InfluxDB connection configuration.
    
    Set INFLUXDB_URL for cloud, or INFLUXDB_HOST + INFLUXDB_PORT for local.
    Falls back to the application settings when neither is present.
    """
    url: str
    org: str
    bucket: str
    token: str
    measurement: str
    timeout_ms: int = 10_000


def load_config() -> InfluxDBConfig:
    """
    Load InfluxDB configuration from environment variables.
    
    Environment Variables:
        INFLUXDB_URL: Full InfluxDB URL (takes precedence)
        INFLUXDB_HOST / INFLUXDB_PORT: Used if URL not set
        INFLUXDB_ORG, INFLUXDB_BUCKET, INFLUXDB_TOKEN
        INFLUXDB_MEASUREMENT: Measurement holding vehicle metrics
        INFLUXDB_TIMEOUT_MS: Read timeout (default: 10000)
    
    Returns:
        InfluxDBConfig instance with loaded values
    """
    url = os.getenv("INFLUXDB_URL")
    if not url:
        host = os.getenv("INFLUXDB_HOST")
        if host:
            url = f"http://{host}:{os.getenv('INFLUXDB_PORT', '8086')}"
        else:
            url = settings.INFLUX_URL
    
    return InfluxDBConfig(
        url=url,
        org=os.getenv("INFLUXDB_ORG", settings.INFLUX_ORG),
        bucket=os.getenv("INFLUXDB_BUCKET", settings.INFLUX_BUCKET),
        token=os.getenv("INFLUXDB_TOKEN", settings.INFLUX_TOKEN),
        measurement=os.getenv("INFLUXDB_MEASUREMENT", settings.INFLUX_MEASUREMENT),
        timeout_ms=int(os.getenv("INFLUXDB_TIMEOUT_MS", "10000")),
    )


# Tags: low-cardinality categorical fields
TAGS = ["mode", "vehicle_type", "fault_scenario"]

# Fields: numeric signals
FIELDS = [
    "rpm",
    "speed",
    "coolant_temp",
    "intake_air_temp",
    "throttle_pos",
    "engine_load",
    "fuel_pressure",
    "intake_manifold_pressure",
]
