"""
Synthetic training sets for the component predictors.

Each generator samples raw sensor values over the predictor's feature
ranges, labels them with a closed-form risk formula (weighted sum of
risk factors, capped at 0.95) and normalizes the inputs with the same
feature table the predictor uses at inference time.

They are only used when no persisted model is available.
"""
from __future__ import annotations

from typing import List

import numpy as np

from fleet_maintenance_ml.preprocessing.features import (
    BATTERY_FEATURES,
    BRAKE_FEATURES,
    ENGINE_FEATURES,
    FUEL_EFFICIENCY_RANGE,
    FUEL_FEATURES,
    TIRE_FEATURES,
    BatteryReadings,
    BrakeReadings,
    EngineReadings,
    FuelReadings,
    TireReadings,
    normalize,
    normalize_features,
    readings_vector,
)
from fleet_maintenance_ml.preprocessing.schema import TrainingData

MAX_FAILURE_PROBABILITY = 0.95


def _check_n(n: int) -> None:
    if n < 1:
        raise ValueError("n_samples must be >= 1")


def engine_failure_probability(r: EngineReadings) -> float:
    temp_risk = max(0.0, r.engine_temp - 100.0) / 20.0
    oil_risk = max(0.0, 30.0 - r.oil_pressure) / 20.0
    mileage_risk = r.mileage / 400_000.0
    age_risk = r.vehicle_age / 20.0
    load_risk = r.avg_load * 0.3
    hours_risk = r.engine_hours / 15_000.0
    p = (
        temp_risk * 0.25
        + oil_risk * 0.2
        + mileage_risk * 0.2
        + age_risk * 0.15
        + load_risk * 0.1
        + hours_risk * 0.1
    )
    return min(MAX_FAILURE_PROBABILITY, p)


def generate_engine_data(n_samples: int, rng: np.random.Generator) -> List[TrainingData]:
    _check_n(n_samples)
    data: List[TrainingData] = []
    for _ in range(n_samples):
        r = EngineReadings(
            engine_temp=rng.uniform(70.0, 140.0),
            oil_pressure=rng.uniform(10.0, 60.0),
            mileage=rng.uniform(0.0, 300_000.0),
            vehicle_age=rng.uniform(0.0, 15.0),
            avg_load=rng.uniform(0.0, 1.0),
            engine_hours=rng.uniform(0.0, 10_000.0),
        )
        p = engine_failure_probability(r)
        urgency = 1.0 if p > 0.6 else 0.5 if p > 0.3 else 0.2
        data.append(TrainingData(
            inputs=normalize_features(readings_vector(r), ENGINE_FEATURES),
            outputs=(p, urgency),
        ))
    return data


def brake_wear_probability(r: BrakeReadings) -> float:
    p = (
        r.brake_usage_intensity * 0.25
        + (r.mileage_since_service / 120_000.0) * 0.25
        + r.avg_load * 0.2
        + r.terrain_type * 0.15
        + (r.last_brake_service / 60_000.0) * 0.15
    )
    return min(MAX_FAILURE_PROBABILITY, p)


def generate_brake_data(n_samples: int, rng: np.random.Generator) -> List[TrainingData]:
    _check_n(n_samples)
    data: List[TrainingData] = []
    for _ in range(n_samples):
        r = BrakeReadings(
            brake_usage_intensity=rng.uniform(0.0, 1.0),
            mileage_since_service=rng.uniform(0.0, 100_000.0),
            avg_load=rng.uniform(0.0, 1.0),
            terrain_type=rng.uniform(0.0, 1.0),
            last_brake_service=rng.uniform(0.0, 50_000.0),
        )
        p = brake_wear_probability(r)
        data.append(TrainingData(
            inputs=normalize_features(readings_vector(r), BRAKE_FEATURES),
            outputs=(p, 1.0 if p > 0.7 else 0.3),
        ))
    return data


def battery_failure_probability(r: BatteryReadings) -> float:
    voltage_risk = max(0.0, 12.2 - r.voltage) / 1.2
    temp_risk = abs(r.temperature - 20.0) / 40.0
    age_risk = r.battery_age / 8.0
    cycle_risk = r.charge_cycles / 1200.0
    p = (
        voltage_risk * 0.3
        + temp_risk * 0.15
        + age_risk * 0.3
        + cycle_risk * 0.15
        + r.avg_draw * 0.1
    )
    return min(MAX_FAILURE_PROBABILITY, p)


def generate_battery_data(n_samples: int, rng: np.random.Generator) -> List[TrainingData]:
    _check_n(n_samples)
    data: List[TrainingData] = []
    for _ in range(n_samples):
        r = BatteryReadings(
            voltage=rng.uniform(11.0, 14.0),
            temperature=rng.uniform(-10.0, 50.0),
            battery_age=rng.uniform(0.0, 7.0),
            charge_cycles=rng.uniform(0.0, 1000.0),
            avg_draw=rng.uniform(0.0, 1.0),
        )
        p = battery_failure_probability(r)
        data.append(TrainingData(
            inputs=normalize_features(readings_vector(r), BATTERY_FEATURES),
            outputs=(p, 1.0 if p > 0.5 else 0.2),
        ))
    return data


def tire_wear_probability(r: TireReadings) -> float:
    pressure_risk = abs(r.tire_pressure - 32.0) / 10.0
    mileage_risk = r.mileage_on_tires / 100_000.0
    p = (
        pressure_risk * 0.2
        + mileage_risk * 0.35
        + r.avg_load_weight * 0.15
        + r.terrain_roughness * 0.15
        + (1.0 - r.alignment_score) * 0.15
    )
    return min(MAX_FAILURE_PROBABILITY, p)


def generate_tire_data(n_samples: int, rng: np.random.Generator) -> List[TrainingData]:
    _check_n(n_samples)
    data: List[TrainingData] = []
    for _ in range(n_samples):
        r = TireReadings(
            tire_pressure=rng.uniform(25.0, 40.0),
            mileage_on_tires=rng.uniform(0.0, 80_000.0),
            avg_load_weight=rng.uniform(0.0, 1.0),
            terrain_roughness=rng.uniform(0.0, 1.0),
            alignment_score=rng.uniform(0.5, 1.0),
        )
        p = tire_wear_probability(r)
        data.append(TrainingData(
            inputs=normalize_features(readings_vector(r), TIRE_FEATURES),
            outputs=(p, 1.0 if p > 0.6 else 0.3),
        ))
    return data


def fuel_efficiency_kml(r: FuelReadings) -> float:
    # best consumption around 70 km/h
    speed_factor = 1.0 - abs(r.avg_speed - 70.0) / 100.0
    return (
        speed_factor * 0.25
        + (1.0 - r.load_factor) * 0.2
        + (1.0 - r.terrain_grade / 0.15) * 0.2
        + r.tire_condition * 0.15
        + r.engine_efficiency * 0.2
    ) * 15.0


def generate_fuel_data(n_samples: int, rng: np.random.Generator) -> List[TrainingData]:
    _check_n(n_samples)
    lo, hi = FUEL_EFFICIENCY_RANGE
    data: List[TrainingData] = []
    for _ in range(n_samples):
        r = FuelReadings(
            avg_speed=rng.uniform(30.0, 130.0),
            load_factor=rng.uniform(0.0, 1.0),
            terrain_grade=rng.uniform(0.0, 0.15),
            ambient_temp=rng.uniform(-10.0, 40.0),
            tire_condition=rng.uniform(0.5, 1.0),
            engine_efficiency=rng.uniform(0.6, 1.0),
        )
        data.append(TrainingData(
            inputs=normalize_features(readings_vector(r), FUEL_FEATURES),
            outputs=(normalize(fuel_efficiency_kml(r), lo, hi),),
        ))
    return data
