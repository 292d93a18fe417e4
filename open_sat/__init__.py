"""
Sentence and paragraph segmentation from character-level boundary probabilities.

This package tiles tokenized text into overlapping model windows, blends the
window predictions back onto characters, and splits text wherever the boundary
probability rises above a threshold.
"""

from __future__ import annotations

from .config import load_config, parse_config_file
from .data_structures import SaTConfig, Token, TokenLogits, WindowBatch, WindowLocation
from .extraction import (
    disable_progress_bar,
    enable_progress_bar,
    extract_token_logits,
    is_progress_bar_enabled,
)
from .models import ScoringModel, TokenClassifierScoringModel
from .probabilities import predict_proba
from .sat import SaT, get_default_threshold
from .tokenizer import Tokenizer, TransformersTokenizer
from .weighting import WeightingType, get_weights

__all__ = [
    "SaT",
    "SaTConfig",
    "ScoringModel",
    "Token",
    "TokenClassifierScoringModel",
    "TokenLogits",
    "Tokenizer",
    "TransformersTokenizer",
    "WeightingType",
    "WindowBatch",
    "WindowLocation",
    "disable_progress_bar",
    "enable_progress_bar",
    "extract_token_logits",
    "get_default_threshold",
    "get_weights",
    "is_progress_bar_enabled",
    "load_config",
    "parse_config_file",
    "predict_proba",
]
