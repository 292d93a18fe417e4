"""
Tile token sequences into overlapping, fixed-width model windows.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence

import numpy as np

from .data_structures import WindowBatch, WindowLocation

logger = logging.getLogger(__name__)

MAX_BLOCK_SIZE = 512  # absolute cap on tokens per window, sentinels excluded


def ceil_divide(x: int, y: int) -> int:
    return (x + y - 1) // y


def resolve_block_size(
    block_size: int,
    token_counts: Sequence[int],
    downsampling_rate: int = 1,
    max_block_size: int = MAX_BLOCK_SIZE,
) -> int:
    """
    Shrink ``block_size`` to what the inputs need and align it to the model.

    The block is capped at ``max_block_size`` and at the longest token sequence,
    then rounded up to a multiple of ``downsampling_rate``.
    """

    if block_size < 1:
        raise ValueError(f"block_size must be positive, got {block_size}")
    if downsampling_rate < 1:
        raise ValueError(f"downsampling_rate must be positive, got {downsampling_rate}")

    longest = max(token_counts, default=0)
    resolved = min(max_block_size, block_size, max(longest, 1))
    resolved = ceil_divide(resolved, downsampling_rate) * downsampling_rate
    logger.debug(
        "Resolved block size %d (requested=%d, longest=%d, downsampling=%d)",
        resolved,
        block_size,
        longest,
        downsampling_rate,
    )
    return resolved


def count_windows(token_counts: Sequence[int], block_size: int, stride: int) -> int:
    """Number of windows ``iter_window_spans`` yields across all sequences."""

    return sum(ceil_divide(max(length - block_size, 0), stride) + 1 for length in token_counts)


def iter_window_spans(length: int, block_size: int, stride: int) -> Iterator[tuple[int, int]]:
    """
    Yield ``(start, end)`` token spans covering ``range(length)``.

    The last span is shifted left so it ends exactly at ``length``.
    """

    if stride < 1:
        raise ValueError(f"stride must be positive, got {stride}")

    for start in range(0, max(length, 1), stride):
        end = start + block_size
        if end >= length:
            end = length
            yield max(end - block_size, 0), end
            return
        yield start, end


def build_windows(
    token_ids: Sequence[Sequence[int]],
    block_size: int,
    stride: int,
    *,
    bos_id: int,
    eos_id: int,
    pad_id: int,
) -> WindowBatch:
    """
    Build framed input rows for every window of every token sequence.

    Each row holds BOS, the window tokens, EOS, then ``pad_id`` up to
    ``block_size + 2``. The attention mask covers BOS through EOS.
    """

    if stride < 1:
        raise ValueError(f"stride must be positive, got {stride}")

    lengths = [len(ids) for ids in token_ids]
    if stride > block_size and any(length > block_size for length in lengths):
        raise ValueError(
            f"stride ({stride}) must not exceed block_size ({block_size}); "
            "tokens between windows would never be scored"
        )
    num_windows = count_windows(lengths, block_size, stride)
    block_width = block_size + 2

    input_ids = np.full((num_windows, block_width), pad_id, dtype=np.int64)
    attention_mask = np.zeros((num_windows, block_width), dtype=np.float16)
    locations: list[WindowLocation] = []

    row = 0
    for text_index, ids in enumerate(token_ids):
        ids_array = np.asarray(ids, dtype=np.int64)
        for start, end in iter_window_spans(len(ids_array), block_size, stride):
            size = end - start
            input_ids[row, 0] = bos_id
            input_ids[row, 1 : size + 1] = ids_array[start:end]
            input_ids[row, size + 1] = eos_id
            attention_mask[row, : size + 2] = 1
            locations.append(WindowLocation(text_index, start, end))
            row += 1

    if row != num_windows:
        raise RuntimeError(f"Window count mismatch: expected {num_windows}, built {row}")

    logger.debug(
        "Built %d windows for %d sequences (block_size=%d, stride=%d)",
        num_windows,
        len(lengths),
        block_size,
        stride,
    )
    return WindowBatch(
        input_ids=input_ids,
        attention_mask=attention_mask,
        locations=locations,
        block_size=block_size,
    )
