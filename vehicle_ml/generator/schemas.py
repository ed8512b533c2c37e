"""
Raw Sample Schema — Pydantic Models

One RawSample is one periodic reading from the vehicle bus. Numeric fields
are coerced to floats at construction: missing, non-numeric and non-finite
values become 0.0 before any feature is computed. Samples are immutable
once produced.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Numeric signal columns, in storage order
RAW_NUMERIC_FIELDS: List[str] = [
    "rpm",
    "speed",
    "coolant_temp",
    "intake_air_temp",
    "throttle_pos",
    "engine_load",
    "fuel_pressure",
    "intake_manifold_pressure",
]

# Optional categorical tags
CATEGORICAL_FIELDS: List[str] = ["mode", "vehicle_type", "fault_scenario"]


class DrivingMode(str, Enum):
    """Operating mode reported with each sample."""
    CITY = "city"
    HIGHWAY = "highway"
    SPORT = "sport"


class VehicleClass(str, Enum):
    """Vehicle classes with known weight estimates."""
    SEDAN = "sedan"
    SUV = "suv"
    TRUCK = "truck"


class FaultScenario(str, Enum):
    """Fault labels attached to recorded or simulated runs."""
    NORMAL = "normal"
    OVERHEAT = "overheat"
    LOW_OIL = "low_oil"
    SENSOR_FAULT = "sensor_fault"


def _to_epoch_ms(value: Any) -> int:
    """Convert datetime, ISO-8601 string or number to epoch milliseconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp() * 1000))
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            parsed = pd.Timestamp(value)
            if parsed.tzinfo is None:
                parsed = parsed.tz_localize("UTC")
            return int(parsed.value // 1_000_000)
    return int(value)


def coerce_numeric(value: Any) -> float:
    """Coerce a raw field to a finite float; anything unusable becomes 0.0."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


class RawSample(BaseModel):
    """
    One sensor reading.

    timestamp_ms is epoch milliseconds (UTC). Categorical tags are free
    strings; unknown values are tolerated and encode as 0 downstream.
    """
    model_config = ConfigDict(frozen=True)

    timestamp_ms: int = Field(..., ge=0, description="Sample time, epoch milliseconds (UTC)")

    rpm: float = 0.0
    speed: float = 0.0
    coolant_temp: float = 0.0
    intake_air_temp: float = 0.0
    throttle_pos: float = 0.0
    engine_load: float = 0.0
    fuel_pressure: float = 0.0
    intake_manifold_pressure: float = 0.0

    mode: Optional[str] = None
    vehicle_type: Optional[str] = None
    fault_scenario: Optional[str] = None

    @field_validator("timestamp_ms", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> int:
        return _to_epoch_ms(v)

    @field_validator(*RAW_NUMERIC_FIELDS, mode="before")
    @classmethod
    def coerce_signal(cls, v: Any) -> float:
        """Missing or non-numeric readings become 0.0."""
        return coerce_numeric(v)

    @field_validator(*CATEGORICAL_FIELDS, mode="before")
    @classmethod
    def normalize_tag(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, Enum):
            v = v.value
        text = str(v).strip().lower()
        return text or None

    @property
    def timestamp(self) -> datetime:
        """Timestamp as a timezone-aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000.0, tz=timezone.utc)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "RawSample":
        """
        Build a sample from a data store row.

        Accepts 'timestamp' or 'timestamp_ms' and ignores unknown columns.
        """
        timestamp = record.get("timestamp_ms", record.get("timestamp"))
        if timestamp is None:
            raise ValueError("record has no timestamp")
        values = {name: record.get(name) for name in RAW_NUMERIC_FIELDS}
        tags = {name: record.get(name) for name in CATEGORICAL_FIELDS}
        return cls(timestamp_ms=timestamp, **values, **tags)


def samples_to_frame(samples: Sequence[RawSample]) -> pd.DataFrame:
    """
    Convert a Sequence to a DataFrame with one row per sample.

    Row order and positional index follow the input order.
    """
    columns = ["timestamp_ms"] + RAW_NUMERIC_FIELDS + CATEGORICAL_FIELDS
    if not samples:
        return pd.DataFrame(columns=columns)
    frame = pd.DataFrame([s.model_dump() for s in samples], columns=columns)
    frame[RAW_NUMERIC_FIELDS] = frame[RAW_NUMERIC_FIELDS].astype("float64")
    return frame
