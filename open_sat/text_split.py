"""
Turn character-level boundary probabilities into sentences and paragraphs.

All splitters are generators, so a consumer that stops early never segments the
rest of the text.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence

import numpy as np

SplitMethod = Callable[[str, Sequence[float], float], Iterator[str]]


def next_boundary(text: str, probs: Sequence[float], threshold: float, start: int = 0) -> int:
    """
    Length of the segment beginning at ``start``.

    The segment ends after the first character whose probability is strictly
    above ``threshold``, plus any whitespace that follows it. Without such a
    character the segment runs to the end of the text.
    """

    length = len(text)
    limit = min(length, len(probs))
    index = start
    while index < limit:
        prob = probs[index]
        index += 1
        if prob <= threshold:
            continue
        while index < length and text[index].isspace():
            index += 1
        return index - start
    return length - start


def _split(text: str, probs: Sequence[float], threshold: float) -> Iterator[str]:
    index = 0
    while index < len(text):
        count = next_boundary(text, probs, threshold, index)
        if count > 0:
            yield text[index : index + count]
        index += count


def _split_on_newlines(segments: Iterable[str]) -> Iterator[str]:
    for segment in segments:
        for piece in segment.split("\n"):
            if piece:
                yield piece


def _trim(segments: Iterable[str]) -> Iterator[str]:
    for segment in segments:
        trimmed = segment.strip()
        if trimmed:
            yield trimmed


def _split_with_trim(text: str, probs: Sequence[float], threshold: float) -> Iterator[str]:
    return _trim(_split(text, probs, threshold))


def _split_with_newline(text: str, probs: Sequence[float], threshold: float) -> Iterator[str]:
    return _split_on_newlines(_split(text, probs, threshold))


def _split_with_newline_trim(text: str, probs: Sequence[float], threshold: float) -> Iterator[str]:
    return _trim(_split_with_newline(text, probs, threshold))


def get_split(strip_whitespace: bool, split_on_input_newlines: bool) -> SplitMethod:
    """Select the sentence splitter for the requested output shaping."""

    if split_on_input_newlines:
        return _split_with_newline_trim if strip_whitespace else _split_with_newline
    return _split_with_trim if strip_whitespace else _split


def split_sentences(
    split: SplitMethod,
    text: str,
    probs: Sequence[float] | np.ndarray,
    threshold: float,
) -> Iterator[str]:
    if not text.strip():
        return
    if isinstance(probs, np.ndarray):
        probs = probs.tolist()
    yield from split(text, probs, threshold)


def split_paragraphs(
    split: SplitMethod,
    text: str,
    probs: Sequence[float] | np.ndarray,
    paragraph_threshold: float,
    sentence_threshold: float,
) -> Iterator[Iterator[str]]:
    """Yield one sentence generator per paragraph."""

    if not text.strip():
        return
    if isinstance(probs, np.ndarray):
        probs = probs.tolist()

    index = 0
    while index < len(text):
        count = next_boundary(text, probs, paragraph_threshold, index)
        end = index + count
        yield split(text[index:end], probs[index:end], sentence_threshold)
        index = end
