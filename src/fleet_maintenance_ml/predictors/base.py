from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import numpy as np

from fleet_maintenance_ml.network.feedforward import FeedforwardNetwork
from fleet_maintenance_ml.preprocessing.features import (
    FeatureRange,
    normalize_features,
    readings_vector,
)
from fleet_maintenance_ml.preprocessing.schema import PredictionResult, TrainingData
from fleet_maintenance_ml.storage.model_store import ModelStore

logger = logging.getLogger(__name__)

DataGenerator = Callable[[int, np.random.Generator], List[TrainingData]]


def severity_for(probability: float) -> str:
    if probability > 0.7:
        return "critical"
    if probability > 0.5:
        return "high"
    if probability > 0.3:
        return "medium"
    return "low"


def confidence_for(probability: float) -> int:
    return int(round((1.0 - abs(probability - 0.5) * 0.5) * 100))


def days_until_failure(probability: float, horizon_days: int) -> int:
    return max(1, int(round((1.0 - probability) * horizon_days)))


class ComponentPredictor:
    """
    A feedforward network bound to a feature table, a synthetic-data
    generator and a policy for turning network output into a result.

    Subclasses set the class attributes and implement `recommend`.
    """

    name: str = ""
    component: str = ""
    features: Tuple[FeatureRange, ...] = ()
    hidden_sizes: Tuple[int, ...] = ()
    n_outputs: int = 2
    horizon_days: int = 0
    learning_rate: float = 0.05
    generator: Optional[DataGenerator] = None

    def __init__(self, rng: Optional[np.random.Generator] = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.network = FeedforwardNetwork(
            self.layer_sizes, learning_rate=self.learning_rate, rng=self.rng
        )

    @property
    def layer_sizes(self) -> List[int]:
        return [len(self.features), *self.hidden_sizes, self.n_outputs]

    def normalize(self, readings) -> Tuple[float, ...]:
        return normalize_features(readings_vector(readings), self.features)

    def generate_training_data(self, n_samples: int) -> List[TrainingData]:
        if self.generator is None:
            raise NotImplementedError(f"{type(self).__name__} has no data generator")
        return self.generator(n_samples, self.rng)

    def fit(self, n_samples: int = 200, epochs: int = 500) -> float:
        data = self.generate_training_data(n_samples)
        logger.info("Training %s predictor on %d samples for %d epochs", self.name, len(data), epochs)
        error = self.network.train(data, epochs)
        logger.info("Trained %s predictor, final error %.6f", self.name, error)
        return error

    def raw_output(self, readings) -> np.ndarray:
        return self.network.forward(self.normalize(readings))

    def predict(self, readings) -> PredictionResult:
        p = float(self.raw_output(readings)[0])
        return PredictionResult(
            probability=int(round(p * 100)),
            confidence=confidence_for(p),
            days_until_failure=days_until_failure(p, self.horizon_days),
            component=self.component,
            severity=severity_for(p),
            recommendation=self.recommend(p, readings),
        )

    def recommend(self, probability: float, readings) -> str:
        raise NotImplementedError

    def save(self, key: str, store: ModelStore) -> None:
        self.network.save(key, store)

    def load(self, key: str, store: ModelStore) -> bool:
        return self.network.load(key, store)


class ThresholdRecommendations:
    """Three-tier recommendation text shared by brake, battery and tire predictors."""

    def __init__(self, urgent: str, service: str, good: str) -> None:
        self.urgent = urgent
        self.service = service
        self.good = good

    def __call__(self, probability: float) -> str:
        if probability > 0.6:
            return self.urgent
        if probability > 0.3:
            return self.service
        return self.good

