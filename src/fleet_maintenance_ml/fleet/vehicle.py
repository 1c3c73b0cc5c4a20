from __future__ import annotations

from dataclasses import dataclass
from typing import List

from fleet_maintenance_ml.preprocessing.features import (
    BatteryReadings,
    BrakeReadings,
    EngineReadings,
    TireReadings,
)

# Assumed values for inputs a vehicle snapshot does not carry
DEFAULT_AVG_LOAD = 0.6
DEFAULT_BRAKE_USAGE = 0.5
DEFAULT_TERRAIN = 0.3
DEFAULT_BATTERY_TEMP_C = 25.0
DEFAULT_BATTERY_DRAW = 0.4
DEFAULT_TIRE_LOAD = 0.5
DEFAULT_ALIGNMENT = 0.85

BRAKE_SERVICE_INTERVAL_KM = 30_000.0
BRAKE_PAD_INTERVAL_KM = 50_000.0
TIRE_INTERVAL_KM = 60_000.0
KM_PER_CHARGE_CYCLE = 500.0


@dataclass(frozen=True)
class VehicleSnapshot:
    """Sensor state of one vehicle at prediction time."""
    vehicle_id: str
    engine_temp: float      # °C
    oil_pressure: float     # psi
    mileage: float          # km
    vehicle_age: float      # years
    battery_voltage: float  # V
    tire_pressure: float    # psi, average of the four wheels
    engine_hours: float     # h

    def engine_readings(self) -> EngineReadings:
        return EngineReadings(
            engine_temp=self.engine_temp,
            oil_pressure=self.oil_pressure,
            mileage=self.mileage,
            vehicle_age=self.vehicle_age,
            avg_load=DEFAULT_AVG_LOAD,
            engine_hours=self.engine_hours,
        )

    def brake_readings(self) -> BrakeReadings:
        return BrakeReadings(
            brake_usage_intensity=DEFAULT_BRAKE_USAGE,
            mileage_since_service=self.mileage % BRAKE_SERVICE_INTERVAL_KM,
            avg_load=DEFAULT_AVG_LOAD,
            terrain_type=DEFAULT_TERRAIN,
            last_brake_service=self.mileage % BRAKE_PAD_INTERVAL_KM,
        )

    def battery_readings(self) -> BatteryReadings:
        return BatteryReadings(
            voltage=self.battery_voltage,
            temperature=DEFAULT_BATTERY_TEMP_C,
            battery_age=self.vehicle_age * 0.5,
            charge_cycles=self.mileage / KM_PER_CHARGE_CYCLE,
            avg_draw=DEFAULT_BATTERY_DRAW,
        )

    def tire_readings(self) -> TireReadings:
        return TireReadings(
            tire_pressure=self.tire_pressure,
            mileage_on_tires=self.mileage % TIRE_INTERVAL_KM,
            avg_load_weight=DEFAULT_TIRE_LOAD,
            terrain_roughness=DEFAULT_TERRAIN,
            alignment_score=DEFAULT_ALIGNMENT,
        )


@dataclass
class Fleet:
    vehicles: List[VehicleSnapshot]
