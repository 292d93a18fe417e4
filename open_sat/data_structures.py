"""
Data structures shared by the windowing, extraction and splitting stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from .weighting import WeightingType


@dataclass(frozen=True)
class Token:
    """
    A single token produced by a tokenizer.

    Attributes:
        id: Vocabulary id of the token
        start: Inclusive start character offset in the encoded text
        end: Exclusive end character offset in the encoded text
    """

    id: int
    start: int
    end: int


@dataclass(frozen=True)
class WindowLocation:
    """Position of one window inside the token sequence of its source text."""

    text_index: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class WindowBatch:
    """
    Fixed-width model inputs for every window of an outer batch.

    Attributes:
        input_ids: Token ids framed with BOS/EOS [num_windows, block_size + 2]
        attention_mask: 1 for populated positions, 0 for padding [num_windows, block_size + 2]
        locations: Source location of each row
        block_size: Number of token positions between the sentinels
    """

    input_ids: np.ndarray  # int64 [num_windows, block_size + 2]
    attention_mask: np.ndarray  # float16 [num_windows, block_size + 2]
    locations: list[WindowLocation]
    block_size: int

    @property
    def num_windows(self) -> int:
        return len(self.locations)

    @property
    def block_width(self) -> int:
        return self.block_size + 2


@dataclass
class TokenLogits:
    """Averaged per-token label scores for one text together with its tokens."""

    logits: np.ndarray  # float32 [num_tokens, num_labels]
    tokens: list[Token]


@dataclass
class SaTConfig:
    """Default tuning parameters for probability prediction and splitting."""

    # Thresholds
    threshold: float | None = None  # None falls back to the model default
    paragraph_threshold: float = 0.5

    # Windowing
    stride: int = 64
    predict_stride: int = 256  # stride used by bare probability calls
    block_size: int = 512

    # Batching
    batch_size: int = 32
    pad_last_batch: bool = False
    outer_batch_size: int = 1000

    # Aggregation and preprocessing
    weighting: WeightingType | str = WeightingType.UNIFORM
    remove_whitespace_before_inference: bool = False

    # Output shaping
    strip_whitespace: bool = False
    split_on_input_newlines: bool = True

    def __post_init__(self) -> None:
        self.weighting = WeightingType.parse(self.weighting)

    def validate(self) -> SaTConfig:
        """Raise ``ValueError`` for settings that can never produce windows."""

        for name in ("stride", "predict_stride", "block_size", "batch_size", "outer_batch_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        for name in ("threshold", "paragraph_threshold"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise TypeError(f"{name} must be numeric when provided, got {value!r}")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary format for serialization."""
        result: dict[str, Any] = {}
        for key, value in self.__dict__.items():
            if isinstance(value, WeightingType):
                result[key] = value.value
            else:
                result[key] = value
        return result
