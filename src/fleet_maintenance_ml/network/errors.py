from __future__ import annotations


class InvalidInputShape(ValueError):
    """Input vector length does not match the network's input layer."""


class ModelFormatError(ValueError):
    """A persisted model record is malformed or built for another architecture."""
