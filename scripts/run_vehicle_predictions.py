import logging

from fleet_maintenance_ml.orchestration.ml_engine import FleetMLEngine
from fleet_maintenance_ml.preprocessing.features import FuelReadings
from fleet_maintenance_ml.preprocessing.loaders import load_engine_config, load_fleet_from_json
from fleet_maintenance_ml.storage.model_store import FileModelStore


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = load_engine_config("data/v1/engine_config.json")
    fleet = load_fleet_from_json("data/v1/fleet.json")

    engine = FleetMLEngine(store=FileModelStore("artifacts/models"), config=config)
    engine.initialize()

    for v in fleet.vehicles:
        print("Vehicle:", v.vehicle_id)
        for p in engine.get_vehicle_predictions(v):
            print(
                f"  {p.component:8s} p={p.probability:3d}%  conf={p.confidence:3d}%  "
                f"days={p.days_until_failure:3d}  {p.severity:8s} {p.recommendation}"
            )

    kml = engine.predict_fuel_efficiency(FuelReadings(
        avg_speed=75.0,
        load_factor=0.5,
        terrain_grade=0.03,
        ambient_temp=18.0,
        tire_condition=0.9,
        engine_efficiency=0.85,
    ))
    print()
    print(f"Fuel efficiency at 75 km/h, half load: {kml:.2f} km/L")


if __name__ == "__main__":
    main()
