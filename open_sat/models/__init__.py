"""
Scoring models for open_sat.
"""

from __future__ import annotations

from .token_classifier import (
    ScoringModel,
    TokenClassifierScoringModel,
    XLMTokenConfig,
    XLMTokenForTokenClassification,
    register_sat_architectures,
)

__all__ = [
    "ScoringModel",
    "TokenClassifierScoringModel",
    "XLMTokenConfig",
    "XLMTokenForTokenClassification",
    "register_sat_architectures",
]
