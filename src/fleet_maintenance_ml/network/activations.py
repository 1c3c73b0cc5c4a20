from __future__ import annotations

import numpy as np

SIGMOID_CLAMP = 500.0


def sigmoid(x: np.ndarray) -> np.ndarray:
    """
    Logistic function with the argument clamped to [-500, 500] so exp()
    never overflows.
    """
    z = np.clip(x, -SIGMOID_CLAMP, SIGMOID_CLAMP)
    return 1.0 / (1.0 + np.exp(-z))


def sigmoid_derivative(a: np.ndarray) -> np.ndarray:
    """Derivative expressed through the activation a = sigmoid(x)."""
    return a * (1.0 - a)


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(0.0, x)


def relu_derivative(a: np.ndarray) -> np.ndarray:
    # a > 0 iff the pre-activation was > 0
    return (a > 0.0).astype(float)
