from __future__ import annotations

from fleet_maintenance_ml.predictors.base import ComponentPredictor, ThresholdRecommendations
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
    denormalize,
)
from fleet_maintenance_ml.simulation.synthetic import (
    generate_battery_data,
    generate_brake_data,
    generate_engine_data,
    generate_fuel_data,
    generate_tire_data,
)

# Raw thresholds used by the engine recommendation rules
ENGINE_HOT_TEMP_C = 100.0
ENGINE_LOW_OIL_PSI = 30.0


class EngineFailurePredictor(ComponentPredictor):
    name = "engine"
    component = "Engine"
    features = ENGINE_FEATURES
    hidden_sizes = (12, 8)
    horizon_days = 180
    generator = staticmethod(generate_engine_data)

    def recommend(self, probability: float, readings: EngineReadings) -> str:
        if probability > 0.7:
            return "Critical: Schedule immediate engine inspection. Check oil levels and cooling system."
        if probability > 0.5:
            if readings.engine_temp > ENGINE_HOT_TEMP_C:
                return "High engine temperature detected. Check cooling system."
            if readings.oil_pressure < ENGINE_LOW_OIL_PSI:
                return "Low oil pressure. Check oil levels and filter."
            return "Schedule engine maintenance within 2 weeks."
        if probability > 0.3:
            return "Monitor engine performance. Next service due in 30 days."
        return "Engine operating within normal parameters."


class BrakeWearPredictor(ComponentPredictor):
    name = "brake"
    component = "Brakes"
    features = BRAKE_FEATURES
    hidden_sizes = (10, 6)
    horizon_days = 90
    generator = staticmethod(generate_brake_data)

    _texts = ThresholdRecommendations(
        urgent="Schedule brake inspection immediately",
        service="Plan brake service within 30 days",
        good="Brakes in good condition",
    )

    def recommend(self, probability: float, readings: BrakeReadings) -> str:
        return self._texts(probability)


class BatteryHealthPredictor(ComponentPredictor):
    name = "battery"
    component = "Battery"
    features = BATTERY_FEATURES
    hidden_sizes = (10, 6)
    horizon_days = 120
    generator = staticmethod(generate_battery_data)

    _texts = ThresholdRecommendations(
        urgent="Battery replacement recommended soon",
        service="Monitor battery voltage regularly",
        good="Battery health is good",
    )

    def recommend(self, probability: float, readings: BatteryReadings) -> str:
        return self._texts(probability)


class TireWearPredictor(ComponentPredictor):
    name = "tire"
    component = "Tires"
    features = TIRE_FEATURES
    hidden_sizes = (10, 6)
    horizon_days = 60
    generator = staticmethod(generate_tire_data)

    _texts = ThresholdRecommendations(
        urgent="Tire replacement needed soon",
        service="Check tire tread depth and pressure",
        good="Tires in good condition",
    )

    def recommend(self, probability: float, readings: TireReadings) -> str:
        return self._texts(probability)


class FuelEfficiencyPredictor(ComponentPredictor):
    """
    Single continuous output mapped back to km/L. No failure semantics:
    predict() returns a float instead of a PredictionResult.
    """

    name = "fuel"
    component = "Fuel"
    features = FUEL_FEATURES
    hidden_sizes = (12, 8)
    n_outputs = 1
    generator = staticmethod(generate_fuel_data)

    def predict(self, readings: FuelReadings) -> float:  # type: ignore[override]
        lo, hi = FUEL_EFFICIENCY_RANGE
        return denormalize(float(self.raw_output(readings)[0]), lo, hi)


def build_predictors(rng) -> dict:
    """All five predictors keyed by name, sharing one random generator."""
    return {
        cls.name: cls(rng=rng)
        for cls in (
            EngineFailurePredictor,
            BrakeWearPredictor,
            BatteryHealthPredictor,
            TireWearPredictor,
            FuelEfficiencyPredictor,
        )
    }
