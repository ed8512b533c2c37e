"""
Feature Registry — The Fixed, Ordered Feature Schema

Every feature the pipeline can emit is declared here once: its name, the
raw fields it depends on, and the function that computes it. Names are
resolved when the schema is built, never while features are computed, so
any two vectors from the same schema share key set and key order.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from vehicle_ml.generator.schemas import CATEGORICAL_FIELDS, RAW_NUMERIC_FIELDS

from . import calculator


logger = logging.getLogger(__name__)

# Rate-of-change output names; coolant keeps its historical short name
RATE_FEATURE_NAMES: Dict[str, str] = {
    "rpm": "rpm_rate_of_change",
    "speed": "speed_rate_of_change",
    "coolant_temp": "temp_rate_of_change",
}

_KNOWN_INPUTS = frozenset(RAW_NUMERIC_FIELDS) | frozenset(CATEGORICAL_FIELDS) | {"timestamp_ms"}


class FeatureScope(str, Enum):
    """Where a feature is evaluated."""
    SEQUENCE = "sequence"  # Needs neighbouring samples (WindowEngine)
    SAMPLE = "sample"      # One RawSample is enough (DerivedIndexCalculator)


class FeatureKind(str, Enum):
    RAW = "raw"
    CATEGORICAL = "categorical"
    ROLLING_MEAN = "rolling_mean"
    ROLLING_STD = "rolling_std"
    RATE_OF_CHANGE = "rate_of_change"
    LAG = "lag"
    MOVING_AVERAGE = "moving_average"
    DERIVED = "derived"
    TIME = "time"


@dataclass(frozen=True)
class FeatureDefinition:
    """
    One schema entry.

    compute signature depends on scope:
    - SEQUENCE: (frame: DataFrame) -> Series
    - SAMPLE: (sample: RawSample, constants: DerivedConstants) -> float
    """
    name: str
    kind: FeatureKind
    scope: FeatureScope
    depends_on: Tuple[str, ...]
    compute: Callable = field(compare=False, repr=False)


@dataclass(frozen=True)
class FeatureConfig:
    """Which windowed features to declare, and their parameters."""
    window_size: int = 10
    sample_interval_s: float = 2.0
    rolling_fields: Tuple[str, ...] = ("rpm", "speed")
    rate_fields: Tuple[str, ...] = ("rpm", "speed", "coolant_temp")
    lag_fields: Tuple[str, ...] = ("rpm", "speed")
    lag_steps: Tuple[int, ...] = (1, 2, 3)
    ma_fields: Tuple[str, ...] = ("rpm", "speed")
    ma_windows: Tuple[int, ...] = (5, 10)

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError("window_size must be >= 1")
        if self.sample_interval_s <= 0:
            raise ValueError("sample_interval_s must be positive")
        if any(step < 1 for step in self.lag_steps):
            raise ValueError("lag steps must be >= 1")
        if any(window < 1 for window in self.ma_windows):
            raise ValueError("moving average windows must be >= 1")

    @classmethod
    def from_settings(cls, settings) -> "FeatureConfig":
        return cls(
            window_size=settings.WINDOW_SIZE,
            sample_interval_s=settings.SAMPLE_INTERVAL_S,
            rolling_fields=tuple(settings.ROLLING_FIELDS),
            rate_fields=tuple(settings.RATE_FIELDS),
            lag_fields=tuple(settings.LAG_FIELDS),
            lag_steps=tuple(settings.LAG_STEPS),
            ma_fields=tuple(settings.MA_FIELDS),
            ma_windows=tuple(settings.MA_WINDOWS),
        )


class FeatureSchema:
    """
    Immutable, ordered collection of FeatureDefinitions.

    Raises:
        ValueError: On duplicate names or dependencies on unknown inputs
    """

    def __init__(self, definitions: Iterable[FeatureDefinition], config: Optional[FeatureConfig] = None):
        self.config = config or FeatureConfig()
        self._definitions: Tuple[FeatureDefinition, ...] = tuple(definitions)
        self._index: Dict[str, FeatureDefinition] = {}

        for definition in self._definitions:
            if definition.name in self._index:
                raise ValueError(f"Duplicate feature name: {definition.name}")
            unknown = [dep for dep in definition.depends_on if dep not in _KNOWN_INPUTS]
            if unknown:
                raise ValueError(f"Feature '{definition.name}' depends on unknown inputs: {unknown}")
            self._index[definition.name] = definition

        self._names: Tuple[str, ...] = tuple(d.name for d in self._definitions)

    @property
    def names(self) -> Tuple[str, ...]:
        """Feature identifiers in declared order."""
        return self._names

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[FeatureDefinition]:
        return iter(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __getitem__(self, name: str) -> FeatureDefinition:
        return self._index[name]

    def by_scope(self, scope: FeatureScope) -> List[FeatureDefinition]:
        return [d for d in self._definitions if d.scope == scope]

    def resolve(self, names: Optional[Iterable[str]] = None) -> List[FeatureDefinition]:
        """
        Map requested names to definitions, in schema order.

        Unknown names are logged and skipped. None selects every feature.
        """
        if names is None:
            return list(self._definitions)
        requested = set()
        for name in names:
            if name in self._index:
                requested.add(name)
            else:
                logger.warning(f"[FeatureSchema] Unknown feature '{name}' skipped")
        return [d for d in self._definitions if d.name in requested]


def _sequence(name, kind, source, func, **params) -> FeatureDefinition:
    return FeatureDefinition(
        name=name,
        kind=kind,
        scope=FeatureScope.SEQUENCE,
        depends_on=(source,),
        compute=partial(func, source=source, **params),
    )


def _sample(name, kind, depends_on, func) -> FeatureDefinition:
    return FeatureDefinition(
        name=name,
        kind=kind,
        scope=FeatureScope.SAMPLE,
        depends_on=tuple(depends_on),
        compute=func,
    )


def build_feature_schema(config: Optional[FeatureConfig] = None) -> FeatureSchema:
    """
    Declare the full feature set in its fixed order:
    raw signals, categorical codes, rolling stats, rates of change,
    derived indices, time features, lags, moving averages.
    """
    config = config or FeatureConfig()
    definitions: List[FeatureDefinition] = []

    for source in RAW_NUMERIC_FIELDS:
        definitions.append(_sample(
            source, FeatureKind.RAW, [source],
            partial(calculator.raw_value, source=source),
        ))

    definitions.append(_sample("mode_code", FeatureKind.CATEGORICAL, ["mode"], calculator.mode_code))
    definitions.append(_sample(
        "vehicle_type_code", FeatureKind.CATEGORICAL, ["vehicle_type"], calculator.vehicle_type_code,
    ))

    for source in config.rolling_fields:
        definitions.append(_sequence(
            f"rolling_mean_{source}", FeatureKind.ROLLING_MEAN, source,
            calculator.rolling_mean, window=config.window_size,
        ))
        definitions.append(_sequence(
            f"rolling_std_{source}", FeatureKind.ROLLING_STD, source,
            calculator.rolling_std, window=config.window_size,
        ))

    for source in config.rate_fields:
        definitions.append(_sequence(
            RATE_FEATURE_NAMES.get(source, f"{source}_rate_of_change"),
            FeatureKind.RATE_OF_CHANGE, source,
            calculator.rate_of_change, interval_s=config.sample_interval_s,
        ))

    derived = [
        ("power_to_weight_ratio", ["rpm", "engine_load", "vehicle_type"], calculator.power_to_weight_ratio),
        ("fuel_efficiency_index", ["speed", "engine_load", "throttle_pos"], calculator.fuel_efficiency_index),
        ("engine_stress_index", ["rpm", "engine_load", "coolant_temp"], calculator.engine_stress_index),
        ("cooling_system_health", ["coolant_temp"], calculator.cooling_system_health),
        ("fuel_system_health", ["fuel_pressure", "intake_manifold_pressure"], calculator.fuel_system_health),
        ("engine_power_estimate", ["rpm", "intake_manifold_pressure", "engine_load"], calculator.engine_power_estimate),
        ("transmission_load", ["rpm", "speed", "throttle_pos"], calculator.transmission_load),
        ("ambient_temp_difference", ["intake_air_temp", "coolant_temp"], calculator.ambient_temp_difference),
        ("throttle_response", ["engine_load", "throttle_pos"], calculator.throttle_response),
    ]
    for name, depends_on, func in derived:
        definitions.append(_sample(name, FeatureKind.DERIVED, depends_on, func))

    for name, func in (
        ("hour_of_day", calculator.hour_of_day),
        ("is_peak_hour", calculator.is_peak_hour),
        ("is_weekend", calculator.is_weekend),
    ):
        definitions.append(_sample(name, FeatureKind.TIME, ["timestamp_ms"], func))

    for source in config.lag_fields:
        for steps in config.lag_steps:
            definitions.append(_sequence(
                f"{source}_lag_{steps}", FeatureKind.LAG, source,
                calculator.lag, steps=steps,
            ))

    for source in config.ma_fields:
        for window in config.ma_windows:
            definitions.append(_sequence(
                f"{source}_ma_{window}", FeatureKind.MOVING_AVERAGE, source,
                calculator.moving_average, window=window,
            ))

    return FeatureSchema(definitions, config=config)
