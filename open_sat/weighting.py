"""
Weight curves used to blend predictions of overlapping windows.
"""

from __future__ import annotations

from enum import Enum

import numpy as np


class WeightingType(str, Enum):
    """How logits of overlapping window positions are combined."""

    UNIFORM = "uniform"
    HAT = "hat"

    @classmethod
    def parse(cls, value: WeightingType | str) -> WeightingType:
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unsupported weighting {value!r}; expected one of: {choices}") from exc


def linspace(start: float, end: float, points: int) -> np.ndarray:
    if points == 1:
        return np.array([start], dtype=np.float32)
    return np.linspace(start, end, points, dtype=np.float32)


def hat(points: int) -> np.ndarray:
    """Triangular curve peaking at 1.0 in the middle and staying positive at the edges."""

    edge = 1.0 - 1.0 / points
    weights = linspace(-edge, edge, points)
    return (1.0 - np.abs(weights)).astype(np.float32)


def get_weights(weighting: WeightingType | str, window_size: int) -> np.ndarray:
    """Return one blend weight per intra-window position."""

    if window_size < 1:
        raise ValueError(f"window_size must be at least 1, got {window_size}")

    kind = WeightingType.parse(weighting)
    if kind is WeightingType.UNIFORM:
        return np.ones(window_size, dtype=np.float32)
    return hat(window_size)
