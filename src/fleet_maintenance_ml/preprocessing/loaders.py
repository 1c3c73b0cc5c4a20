from __future__ import annotations

import json
from pathlib import Path
from typing import List

from fleet_maintenance_ml.fleet.vehicle import Fleet, VehicleSnapshot
from fleet_maintenance_ml.preprocessing.schema import EngineConfig


def load_json(path: str | Path) -> dict:
    path = Path(path)
    with open(path, "r") as f:
        return json.load(f)


def load_fleet_from_json(path: str | Path) -> Fleet:
    data = load_json(path)

    vehicles_data = data.get("vehicles", [])
    vehicles: List[VehicleSnapshot] = []

    for v in vehicles_data:
        tp = v["tire_pressure"]
        # per-wheel readings are averaged
        if isinstance(tp, dict):
            tp = sum(float(x) for x in tp.values()) / len(tp)

        vehicle = VehicleSnapshot(
            vehicle_id=str(v["vehicle_id"]),
            engine_temp=float(v.get("engine_temp", 80.0)),
            oil_pressure=float(v.get("oil_pressure", 40.0)),
            mileage=float(v.get("mileage", 0.0)),
            vehicle_age=float(v["vehicle_age"]),
            battery_voltage=float(v.get("battery_voltage", 12.5)),
            tire_pressure=float(tp),
            engine_hours=float(v.get("engine_hours", float(v.get("mileage", 0.0)) / 40.0)),
        )

        # Basic validation
        if vehicle.mileage < 0 or vehicle.vehicle_age < 0 or vehicle.engine_hours < 0:
            raise ValueError(f"mileage, age and engine hours must be >= 0 for {vehicle.vehicle_id}")

        vehicles.append(vehicle)

    return Fleet(vehicles=vehicles)


def load_engine_config(path: str | Path) -> EngineConfig:
    """
    Load engine configuration. All keys are optional:
        - training_epochs
        - training_samples
        - seed
        - key_prefix
    """
    data = load_json(path)
    defaults = EngineConfig()

    epochs = int(data.get("training_epochs", defaults.training_epochs))
    samples = int(data.get("training_samples", defaults.training_samples))
    if epochs < 1 or samples < 1:
        raise ValueError("training_epochs and training_samples must be >= 1")

    seed = data.get("seed", defaults.seed)
    if seed is not None:
        seed = int(seed)

    prefix = str(data.get("key_prefix", defaults.key_prefix))
    if not prefix:
        raise ValueError("key_prefix must not be empty")

    return EngineConfig(
        training_epochs=epochs,
        training_samples=samples,
        seed=seed,
        key_prefix=prefix,
    )
