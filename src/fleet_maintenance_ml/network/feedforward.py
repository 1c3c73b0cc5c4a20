from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from fleet_maintenance_ml.network.activations import (
    relu,
    relu_derivative,
    sigmoid,
    sigmoid_derivative,
)
from fleet_maintenance_ml.network.errors import InvalidInputShape, ModelFormatError
from fleet_maintenance_ml.preprocessing.schema import TrainingData
from fleet_maintenance_ml.storage.model_store import ModelStore

logger = logging.getLogger(__name__)


class FeedforwardNetwork:
    """
    Multi-layer perceptron: ReLU hidden layers, sigmoid output layer.

    weights[l] has shape (layer_sizes[l+1], layer_sizes[l]),
    biases[l] has shape (layer_sizes[l+1],).

    Training is per-example stochastic gradient descent: parameters are
    updated right after each example, so example order matters.
    """

    def __init__(
        self,
        layer_sizes: Sequence[int],
        learning_rate: float = 0.1,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> None:
        sizes = [int(n) for n in layer_sizes]
        if len(sizes) < 2:
            raise ValueError("layer_sizes needs at least an input and an output layer")
        if any(n < 1 for n in sizes):
            raise ValueError(f"layer sizes must be >= 1, got {sizes}")
        if not learning_rate > 0:
            raise ValueError("learning_rate must be > 0")

        self.layer_sizes: List[int] = sizes
        self.learning_rate = float(learning_rate)
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.weights: List[np.ndarray] = []
        self.biases: List[np.ndarray] = []
        self._initialize()

    def _initialize(self) -> None:
        # Xavier-style: U(-1, 1) / sqrt(fan_in)
        self.weights = []
        self.biases = []
        for fan_in, fan_out in zip(self.layer_sizes[:-1], self.layer_sizes[1:]):
            w = self.rng.uniform(-1.0, 1.0, size=(fan_out, fan_in)) / np.sqrt(fan_in)
            b = self.rng.uniform(-0.05, 0.05, size=fan_out)
            self.weights.append(w)
            self.biases.append(b)

    @property
    def input_size(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_size(self) -> int:
        return self.layer_sizes[-1]

    def _check_input(self, inputs: Sequence[float]) -> np.ndarray:
        x = np.asarray(inputs, dtype=float)
        if x.ndim != 1 or x.shape[0] != self.input_size:
            raise InvalidInputShape(
                f"expected input of length {self.input_size}, got shape {x.shape}"
            )
        return x

    def _activations(self, x: np.ndarray) -> List[np.ndarray]:
        """All layer activations, input included."""
        acts = [x]
        last = len(self.weights) - 1
        for i, (w, b) in enumerate(zip(self.weights, self.biases)):
            z = w @ acts[-1] + b
            acts.append(sigmoid(z) if i == last else relu(z))
        return acts

    def forward(self, inputs: Sequence[float]) -> np.ndarray:
        return self._activations(self._check_input(inputs))[-1]

    def train(self, data: Sequence[TrainingData], epochs: int = 1000) -> float:
        """
        Backpropagation over `data` for `epochs` passes.

        Returns the last epoch's error: squared output errors summed per
        example, averaged over examples.
        """
        if not data:
            raise ValueError("training data is empty")
        if epochs < 1:
            raise ValueError("epochs must be >= 1")

        samples = []
        for d in data:
            x = self._check_input(d.inputs)
            y = np.asarray(d.outputs, dtype=float)
            if y.shape != (self.output_size,):
                raise InvalidInputShape(
                    f"expected target of length {self.output_size}, got shape {y.shape}"
                )
            samples.append((x, y))

        lr = self.learning_rate
        last = len(self.weights) - 1
        total_error = 0.0

        for _ in range(epochs):
            total_error = 0.0
            for x, y in samples:
                acts = self._activations(x)
                err = y - acts[-1]
                total_error += float(err @ err)

                for i in range(last, -1, -1):
                    a = acts[i + 1]
                    deriv = sigmoid_derivative(a) if i == last else relu_derivative(a)
                    delta = err * deriv
                    self.weights[i] += lr * np.outer(delta, acts[i])
                    self.biases[i] += lr * delta
                    # propagated through the weights just updated
                    err = self.weights[i].T @ delta

        return total_error / len(samples)

    def copy_from(self, other: "FeedforwardNetwork") -> None:
        """Hard copy of another network's parameters into this one."""
        if other.layer_sizes != self.layer_sizes:
            raise ValueError(
                f"layer sizes differ: {other.layer_sizes} vs {self.layer_sizes}"
            )
        self.weights = [w.copy() for w in other.weights]
        self.biases = [b.copy() for b in other.biases]
        self.learning_rate = other.learning_rate

    # ---- persistence ----

    def to_record(self) -> Dict[str, Any]:
        return {
            "weights": [w.tolist() for w in self.weights],
            "biases": [b.tolist() for b in self.biases],
            "layer_sizes": list(self.layer_sizes),
            "learning_rate": self.learning_rate,
        }

    def apply_record(self, record: Dict[str, Any]) -> None:
        """
        Validate `record` and load its parameters. The network is left
        untouched when validation fails.
        """
        weights, biases, lr = validate_record(record, expected_sizes=self.layer_sizes)
        self.weights = weights
        self.biases = biases
        self.learning_rate = lr

    def save(self, key: str, store: ModelStore) -> None:
        store.set(key, encode_record(self.to_record()))
        logger.info("Saved network %s under key %r", self.layer_sizes, key)

    def load(self, key: str, store: ModelStore) -> bool:
        """
        Returns False when no record exists under `key`.
        Raises ModelFormatError when the record is unusable.
        """
        raw = store.get(key)
        if raw is None:
            return False
        self.apply_record(decode_record(raw))
        logger.info("Loaded network %s from key %r", self.layer_sizes, key)
        return True


def encode_record(record: Dict[str, Any]) -> bytes:
    return json.dumps(record, allow_nan=False).encode("utf-8")


def decode_record(raw: bytes) -> Dict[str, Any]:
    try:
        record = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ModelFormatError(f"model record is not valid JSON: {exc}") from exc
    if not isinstance(record, dict):
        raise ModelFormatError("model record must be a JSON object")
    return record


def _as_matrix(value: Any, shape: tuple, what: str) -> np.ndarray:
    try:
        raw = np.asarray(value)
    except (TypeError, ValueError) as exc:
        raise ModelFormatError(f"{what} is ragged or non-numeric") from exc
    # numbers only: no strings or bools
    if raw.dtype.kind not in "iuf":
        raise ModelFormatError(f"{what} is ragged or non-numeric")
    arr = raw.astype(float)
    if arr.shape != shape:
        raise ModelFormatError(f"{what} has shape {arr.shape}, expected {shape}")
    if not np.all(np.isfinite(arr)):
        raise ModelFormatError(f"{what} contains non-finite values")
    return arr


def validate_record(
    record: Dict[str, Any],
    expected_sizes: Optional[Sequence[int]] = None,
) -> tuple:
    """
    Check a network record and return (weights, biases, learning_rate)
    as numpy arrays / float.
    """
    for k in ("weights", "biases", "layer_sizes", "learning_rate"):
        if k not in record:
            raise ModelFormatError(f"model record is missing {k!r}")

    sizes = record["layer_sizes"]
    if (
        not isinstance(sizes, list)
        or len(sizes) < 2
        or not all(isinstance(n, int) and not isinstance(n, bool) and n >= 1 for n in sizes)
    ):
        raise ModelFormatError(f"invalid layer_sizes: {sizes!r}")
    if expected_sizes is not None and list(sizes) != list(expected_sizes):
        raise ModelFormatError(
            f"layer_sizes {sizes} do not match network {list(expected_sizes)}"
        )

    n_layers = len(sizes) - 1
    w_raw, b_raw = record["weights"], record["biases"]
    if not isinstance(w_raw, list) or len(w_raw) != n_layers:
        raise ModelFormatError(f"expected {n_layers} weight matrices")
    if not isinstance(b_raw, list) or len(b_raw) != n_layers:
        raise ModelFormatError(f"expected {n_layers} bias vectors")

    weights = [
        _as_matrix(w_raw[l], (sizes[l + 1], sizes[l]), f"weights[{l}]") for l in range(n_layers)
    ]
    biases = [_as_matrix(b_raw[l], (sizes[l + 1],), f"biases[{l}]") for l in range(n_layers)]

    lr = record["learning_rate"]
    if isinstance(lr, bool) or not isinstance(lr, (int, float)) or not np.isfinite(lr) or lr <= 0:
        raise ModelFormatError(f"invalid learning_rate: {lr!r}")

    return weights, biases, float(lr)
