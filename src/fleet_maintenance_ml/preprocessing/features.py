from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import Tuple


@dataclass(frozen=True)
class FeatureRange:
    name: str
    lo: float
    hi: float


def normalize(value: float, lo: float, hi: float) -> float:
    """
    Map value from [lo, hi] to [0, 1], clamping out-of-range values.
    A degenerate range (hi == lo) maps to 0.5.
    """
    if hi == lo:
        return 0.5
    x = (float(value) - lo) / (hi - lo)
    return max(0.0, min(1.0, x))


def denormalize(x: float, lo: float, hi: float) -> float:
    return lo + float(x) * (hi - lo)


def normalize_features(values: Tuple[float, ...], table: Tuple[FeatureRange, ...]) -> Tuple[float, ...]:
    if len(values) != len(table):
        raise ValueError(f"expected {len(table)} feature values, got {len(values)}")
    return tuple(normalize(v, f.lo, f.hi) for v, f in zip(values, table))


# --- Raw readings per predictor (field order == network input order) ---

@dataclass(frozen=True)
class EngineReadings:
    engine_temp: float        # °C
    oil_pressure: float       # psi
    mileage: float            # km
    vehicle_age: float        # years
    avg_load: float           # [0..1]
    engine_hours: float       # h


@dataclass(frozen=True)
class BrakeReadings:
    brake_usage_intensity: float   # [0..1]
    mileage_since_service: float   # km
    avg_load: float                # [0..1]
    terrain_type: float            # 0 flat .. 1 mountainous
    last_brake_service: float      # km since last brake service


@dataclass(frozen=True)
class BatteryReadings:
    voltage: float            # V
    temperature: float        # °C
    battery_age: float        # years
    charge_cycles: float
    avg_draw: float           # [0..1]


@dataclass(frozen=True)
class TireReadings:
    tire_pressure: float      # psi
    mileage_on_tires: float   # km
    avg_load_weight: float    # [0..1]
    terrain_roughness: float  # [0..1]
    alignment_score: float    # [0..1]


@dataclass(frozen=True)
class FuelReadings:
    avg_speed: float          # km/h
    load_factor: float        # [0..1]
    terrain_grade: float      # 0..0.15
    ambient_temp: float       # °C
    tire_condition: float     # [0..1]
    engine_efficiency: float  # [0..1]


def readings_vector(readings) -> Tuple[float, ...]:
    return tuple(float(v) for v in astuple(readings))


ENGINE_FEATURES = (
    FeatureRange("engine_temp", 70.0, 140.0),
    FeatureRange("oil_pressure", 10.0, 60.0),
    FeatureRange("mileage", 0.0, 300_000.0),
    FeatureRange("vehicle_age", 0.0, 15.0),
    FeatureRange("avg_load", 0.0, 1.0),
    FeatureRange("engine_hours", 0.0, 10_000.0),
)

BRAKE_FEATURES = (
    FeatureRange("brake_usage_intensity", 0.0, 1.0),
    FeatureRange("mileage_since_service", 0.0, 100_000.0),
    FeatureRange("avg_load", 0.0, 1.0),
    FeatureRange("terrain_type", 0.0, 1.0),
    FeatureRange("last_brake_service", 0.0, 50_000.0),
)

BATTERY_FEATURES = (
    FeatureRange("voltage", 11.0, 14.0),
    FeatureRange("temperature", -10.0, 50.0),
    FeatureRange("battery_age", 0.0, 7.0),
    FeatureRange("charge_cycles", 0.0, 1000.0),
    FeatureRange("avg_draw", 0.0, 1.0),
)

TIRE_FEATURES = (
    FeatureRange("tire_pressure", 25.0, 40.0),
    FeatureRange("mileage_on_tires", 0.0, 80_000.0),
    FeatureRange("avg_load_weight", 0.0, 1.0),
    FeatureRange("terrain_roughness", 0.0, 1.0),
    FeatureRange("alignment_score", 0.0, 1.0),
)

FUEL_FEATURES = (
    FeatureRange("avg_speed", 30.0, 130.0),
    FeatureRange("load_factor", 0.0, 1.0),
    FeatureRange("terrain_grade", 0.0, 0.15),
    FeatureRange("ambient_temp", -10.0, 40.0),
    FeatureRange("tire_condition", 0.0, 1.0),
    FeatureRange("engine_efficiency", 0.0, 1.0),
)

# km/L range of the fuel-efficiency output
FUEL_EFFICIENCY_RANGE = (5.0, 15.0)
