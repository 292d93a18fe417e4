"""
Character-level boundary probabilities for batches of texts.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterator, Sequence

import numpy as np

from .data_structures import Token
from .extraction import extract_token_logits
from .models.token_classifier import ScoringModel
from .tokenizer import Tokenizer, special_token_ids
from .weighting import WeightingType

logger = logging.getLogger(__name__)

NEWLINE_INDEX = 0  # label column carrying the boundary (newline) logit


def blank_probabilities() -> np.ndarray:
    """Probabilities assigned to texts that never reach the model."""

    return np.array([-np.inf], dtype=np.float32)


def token_to_char_logits(
    text: str,
    tokens: Sequence[Token],
    token_logits: np.ndarray,
    special_ids: Collection[int] = (),
) -> np.ndarray:
    """
    Place each token's logits on the last character it covers.

    Characters not ending any token keep ``-inf``.
    """

    char_logits = np.full((len(text), token_logits.shape[1]), -np.inf, dtype=np.float32)
    for index, token in enumerate(tokens):
        if token.id in special_ids:
            continue
        char_logits[max(token.end - 1, 0)] = token_logits[index]
    return char_logits


def sigmoid(values: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return (1.0 / (1.0 + np.exp(-values))).astype(np.float32)


def newline_probability(char_logits: np.ndarray) -> np.ndarray:
    return sigmoid(char_logits[:, NEWLINE_INDEX])


def remove_spaces(text: str) -> tuple[str, list[int]]:
    """Drop every space character and return the kept text with the removed positions."""

    positions = [index for index, char in enumerate(text) if char == " "]
    return text.replace(" ", ""), positions


def restore_spaces(probs: np.ndarray, text_length: int, space_positions: Sequence[int]) -> np.ndarray:
    """
    Re-expand ``probs`` computed on space-free text to ``text_length`` entries.

    Space positions get probability 0 so they never start a segment.
    """

    if not space_positions:
        return probs

    expected = text_length - len(space_positions)
    if len(probs) != expected:
        raise ValueError(
            f"Cannot restore {len(space_positions)} spaces: got {len(probs)} probabilities "
            f"for a text of {text_length} characters"
        )

    restored = np.zeros(text_length, dtype=np.float32)
    keep = np.ones(text_length, dtype=bool)
    keep[np.asarray(space_positions, dtype=np.int64)] = False
    restored[keep] = probs
    return restored


def predict_proba(
    texts: Sequence[str],
    model: ScoringModel,
    tokenizer: Tokenizer,
    *,
    stride: int = 256,
    block_size: int = 512,
    batch_size: int = 32,
    pad_last_batch: bool = False,
    weighting: WeightingType | str = WeightingType.UNIFORM,
    remove_whitespace_before_inference: bool = False,
    outer_batch_size: int = 1000,
    show_progress: bool = False,
) -> Iterator[np.ndarray]:
    """
    Yield the per-character boundary probability of every text, in input order.

    Texts are scored ``outer_batch_size`` at a time; each outer batch is computed
    in full before its first result is yielded. Empty or whitespace-only texts
    skip the model and yield ``[-inf]``.
    """

    if outer_batch_size < 1:
        raise ValueError(f"outer_batch_size must be positive, got {outer_batch_size}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    weighting = WeightingType.parse(weighting)
    special_ids = special_token_ids(tokenizer)

    for outer_start in range(0, len(texts), outer_batch_size):
        outer_texts = list(texts[outer_start : outer_start + outer_batch_size])

        if remove_whitespace_before_inference:
            stripped = [remove_spaces(text) for text in outer_texts]
            input_texts = [text for text, _ in stripped]
            space_positions = [positions for _, positions in stripped]
        else:
            input_texts = outer_texts
            space_positions = [[] for _ in outer_texts]

        scored_indices = [idx for idx, text in enumerate(input_texts) if text.strip()]
        if len(scored_indices) < len(input_texts):
            logger.debug(
                "Skipping %d blank texts in outer batch starting at %d",
                len(input_texts) - len(scored_indices),
                outer_start,
            )

        char_probs: dict[int, np.ndarray] = {}
        if scored_indices:
            scored_texts = [input_texts[idx] for idx in scored_indices]
            token_logits = extract_token_logits(
                scored_texts,
                model,
                tokenizer,
                stride=stride,
                block_size=block_size,
                batch_size=batch_size,
                pad_last_batch=pad_last_batch,
                weighting=weighting,
                show_progress=show_progress,
            )
            for idx, text, result in zip(scored_indices, scored_texts, token_logits):
                char_logits = token_to_char_logits(text, result.tokens, result.logits, special_ids)
                char_probs[idx] = newline_probability(char_logits)

        for idx, text in enumerate(outer_texts):
            probs = char_probs.get(idx)
            if probs is None:
                yield blank_probabilities()
                continue
            yield restore_spaces(probs, len(text), space_positions[idx])
