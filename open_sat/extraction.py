"""
Run the scoring model over windows and blend overlapping predictions per token.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from time import perf_counter
from typing import Any

import numpy as np

from .data_structures import TokenLogits, WindowBatch, WindowLocation
from .models.token_classifier import ScoringModel
from .tokenizer import Tokenizer
from .weighting import WeightingType, get_weights
from .windowing import build_windows, ceil_divide, resolve_block_size

logger = logging.getLogger(__name__)

_PROGRESS_BAR_ENABLED = True


def enable_progress_bar() -> None:
    """Enable progress output for inference helpers."""

    global _PROGRESS_BAR_ENABLED
    _PROGRESS_BAR_ENABLED = True


def disable_progress_bar() -> None:
    """Disable progress output for inference helpers."""

    global _PROGRESS_BAR_ENABLED
    _PROGRESS_BAR_ENABLED = False


def is_progress_bar_enabled() -> bool:
    """Return True when progress output should be shown."""

    return _PROGRESS_BAR_ENABLED


class LogitAccumulator:
    """Weighted overlap-add buffers for the tokens of each source text."""

    def __init__(self, token_counts: Sequence[int], num_labels: int):
        self.logit_sums = [np.zeros((count, num_labels), dtype=np.float32) for count in token_counts]
        self.weight_sums = [np.zeros(count, dtype=np.float32) for count in token_counts]

    def add(self, location: WindowLocation, logits: np.ndarray, weights: np.ndarray) -> None:
        """Add one stripped window output ``[>= length, num_labels]`` at its source location."""

        size = location.length
        window_weights = weights[:size]
        self.logit_sums[location.text_index][location.start : location.end] += (
            logits[:size].astype(np.float32) * window_weights[:, None]
        )
        self.weight_sums[location.text_index][location.start : location.end] += window_weights

    def average(self, text_index: int) -> np.ndarray:
        weight_sum = self.weight_sums[text_index]
        if np.any(weight_sum <= 0):
            missing = int(np.count_nonzero(weight_sum <= 0))
            raise RuntimeError(f"{missing} tokens of text {text_index} were not covered by any window")
        return self.logit_sums[text_index] / weight_sum[:, None]


def _slice_batch(
    windows: WindowBatch,
    start: int,
    end: int,
    *,
    batch_size: int,
    pad_last_batch: bool,
    pad_id: int,
) -> tuple[np.ndarray, np.ndarray]:
    size = end - start
    if pad_last_batch and size < batch_size:
        batch_input_ids = np.full((batch_size, windows.block_width), pad_id, dtype=np.int64)
        batch_attention_mask = np.zeros((batch_size, windows.block_width), dtype=np.float16)
        batch_input_ids[:size] = windows.input_ids[start:end]
        batch_attention_mask[:size] = windows.attention_mask[start:end]
        return batch_input_ids, batch_attention_mask

    return (
        np.array(windows.input_ids[start:end], copy=True),
        np.array(windows.attention_mask[start:end], copy=True),
    )


def _check_output_shape(logits: np.ndarray, rows: int, block_width: int, num_labels: int) -> None:
    expected = (rows, block_width, num_labels)
    if logits.ndim != 3 or tuple(logits.shape) != expected:
        raise ValueError(
            f"Scoring model returned logits of shape {tuple(logits.shape)}; expected {expected}"
        )


def extract_token_logits(
    texts: Sequence[str],
    model: ScoringModel,
    tokenizer: Tokenizer,
    *,
    stride: int,
    block_size: int,
    batch_size: int,
    pad_last_batch: bool = False,
    weighting: WeightingType | str = WeightingType.UNIFORM,
    show_progress: bool = False,
) -> list[TokenLogits]:
    """
    Score every token of ``texts`` with ``model``.

    Args:
        texts: Non-empty input texts
        model: Scoring model returning ``[batch, block_size + 2, num_labels]`` logits
        tokenizer: Tokenizer producing ids and character offsets
        stride: Tokens between consecutive window starts
        block_size: Requested maximum tokens per window (sentinels excluded)
        batch_size: Windows per model call
        pad_last_batch: Pad a short final batch up to ``batch_size`` rows
        weighting: Blend weights for overlapping windows
        show_progress: Display a tqdm bar over batches

    Returns:
        One ``TokenLogits`` per text, in input order
    """

    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if stride < 1:
        raise ValueError(f"stride must be positive, got {stride}")

    input_tokens = [tokenizer.encode(text) for text in texts]
    token_counts = [len(tokens) for tokens in input_tokens]

    resolved_block_size = resolve_block_size(block_size, token_counts, model.downsampling_rate)
    if resolved_block_size + 2 > model.max_length:
        raise ValueError(
            f"block_size {resolved_block_size} (+2 sentinel tokens) exceeds the scoring model's "
            f"maximum context of {model.max_length} tokens"
        )

    windows = build_windows(
        [[token.id for token in tokens] for tokens in input_tokens],
        resolved_block_size,
        stride,
        bos_id=tokenizer.bos_id,
        eos_id=tokenizer.eos_id,
        pad_id=tokenizer.pad_id,
    )

    num_labels = int(model.num_labels)
    weights = get_weights(weighting, resolved_block_size)
    accumulator = LogitAccumulator(token_counts, num_labels)

    num_windows = windows.num_windows
    total_batches = ceil_divide(num_windows, batch_size)
    batch_starts: Iterable[int] = range(0, num_windows, batch_size)
    progress_bar: Any | None = None
    if show_progress and is_progress_bar_enabled() and total_batches > 1:
        from tqdm import tqdm  # inline import to avoid the cost when unused

        progress_bar = tqdm(
            batch_starts,
            total=total_batches,
            desc="Model inference",
            unit="batch",
            leave=False,
        )
        batch_starts = progress_bar

    inference_time = 0.0
    try:
        for start in batch_starts:
            end = min(num_windows, start + batch_size)
            size = end - start
            batch_input_ids, batch_attention_mask = _slice_batch(
                windows,
                start,
                end,
                batch_size=batch_size,
                pad_last_batch=pad_last_batch,
                pad_id=tokenizer.pad_id,
            )

            infer_start = perf_counter()
            logits = np.asarray(model(batch_input_ids, batch_attention_mask))
            inference_time += perf_counter() - infer_start

            _check_output_shape(logits, len(batch_input_ids), windows.block_width, num_labels)

            for row in range(size):
                # Cut off BOS and EOS positions
                accumulator.add(windows.locations[start + row], logits[row, 1:-1], weights)
    finally:
        if progress_bar is not None:
            progress_bar.close()

    logger.debug(
        "Model inference took %.2fs (%d windows, %d batches)",
        inference_time,
        num_windows,
        total_batches,
    )

    return [
        TokenLogits(logits=accumulator.average(idx), tokens=tokens)
        for idx, tokens in enumerate(input_tokens)
    ]
