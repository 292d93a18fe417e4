"""
SaT (Segment any Text): sentence and paragraph segmentation from boundary probabilities.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any, overload

import numpy as np
import torch

from .config import load_config
from .data_structures import SaTConfig
from .models.token_classifier import ScoringModel, TokenClassifierScoringModel
from .probabilities import predict_proba
from .text_split import SplitMethod, get_split, split_paragraphs, split_sentences
from .tokenizer import Tokenizer, TransformersTokenizer
from .weighting import WeightingType

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.025
SMALL_MODEL_THRESHOLD = 0.25
NO_LOOKAHEAD_THRESHOLD = 0.01


def get_default_threshold(model_name: str | None) -> float:
    """Sentence threshold the named checkpoint was calibrated for."""

    if model_name:
        if "sm" in model_name:
            return SMALL_MODEL_THRESHOLD
        if "no-limited-lookahead" in model_name:
            return NO_LOOKAHEAD_THRESHOLD
    return DEFAULT_THRESHOLD


def _resolve_model_reference(model_name_or_path: str | Path) -> str:
    path = Path(model_name_or_path).expanduser()
    if path.exists():
        return str(path.resolve())

    reference = str(model_name_or_path)
    looks_like_hub_id = (
        reference.count("/") <= 1
        and not reference.startswith((".", "/", "~"))
        and "\\" not in reference
    )
    if not looks_like_hub_id:
        raise FileNotFoundError(f"Model not found at '{path}'")
    return reference


def _as_threshold(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise TypeError(f"Resolved {name} must be numeric, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise TypeError(f"Resolved {name} must be numeric, got {value!r}") from exc


class SaT:
    """
    Segments text with a boundary-scoring model.

    Args:
        model_name: Checkpoint name; selects the default sentence threshold
        model: Scoring model producing per-token logits
        tokenizer: Tokenizer matching ``model``'s vocabulary
        config: Default tuning parameters for every call
    """

    def __init__(
        self,
        model_name: str,
        model: ScoringModel,
        tokenizer: Tokenizer,
        *,
        config: SaTConfig | None = None,
    ):
        self.model_name = model_name
        self.model = model
        self.tokenizer = tokenizer
        self.config = (config or SaTConfig()).validate()
        self.default_threshold = get_default_threshold(model_name)
        self._closed = False

    @classmethod
    def from_pretrained(
        cls,
        model_name_or_path: str | Path,
        *,
        tokenizer_name_or_path: str | Path | None = None,
        device: str | torch.device | None = None,
        torch_dtype: torch.dtype | str | None = None,
        trust_remote_code: bool = False,
        config: SaTConfig | str | Path | None = None,
    ) -> SaT:
        """Load tokenizer and scoring model from a local directory or the Hugging Face Hub."""

        model_reference = _resolve_model_reference(model_name_or_path)
        tokenizer_reference = (
            _resolve_model_reference(tokenizer_name_or_path)
            if tokenizer_name_or_path is not None
            else model_reference
        )
        resolved_config = config if isinstance(config, SaTConfig) else load_config(config)

        tokenizer = TransformersTokenizer.from_pretrained(tokenizer_reference)
        model = TokenClassifierScoringModel.from_pretrained(
            model_reference,
            device=device,
            torch_dtype=torch_dtype,
            trust_remote_code=trust_remote_code,
        )
        logger.info("Loaded SaT model %s (tokenizer=%s)", model_reference, tokenizer_reference)
        return cls(str(model_name_or_path), model, tokenizer, config=resolved_config)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the scoring model. Safe to call more than once."""

        if self._closed:
            return
        self._closed = True
        self.model.close()

    def __enter__(self) -> SaT:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("SaT instance has been closed.")

    def _resolve_threshold(self, threshold: float | None) -> float:
        resolved = threshold
        if resolved is None:
            resolved = self.config.threshold
        if resolved is None:
            resolved = self.default_threshold
        return _as_threshold(resolved, "threshold")

    def _resolve_paragraph_threshold(self, paragraph_threshold: float | None) -> float:
        resolved = self.config.paragraph_threshold if paragraph_threshold is None else paragraph_threshold
        return _as_threshold(resolved, "paragraph_threshold")

    def _inference_kwargs(
        self,
        *,
        stride: int | None,
        default_stride: int,
        block_size: int | None,
        batch_size: int | None,
        pad_last_batch: bool | None,
        weighting: WeightingType | str | None,
        remove_whitespace_before_inference: bool | None,
        outer_batch_size: int | None,
        show_progress: bool,
    ) -> dict[str, Any]:
        config = self.config
        return {
            "stride": default_stride if stride is None else stride,
            "block_size": config.block_size if block_size is None else block_size,
            "batch_size": config.batch_size if batch_size is None else batch_size,
            "pad_last_batch": config.pad_last_batch if pad_last_batch is None else pad_last_batch,
            "weighting": WeightingType.parse(config.weighting if weighting is None else weighting),
            "remove_whitespace_before_inference": (
                config.remove_whitespace_before_inference
                if remove_whitespace_before_inference is None
                else remove_whitespace_before_inference
            ),
            "outer_batch_size": (
                config.outer_batch_size if outer_batch_size is None else outer_batch_size
            ),
            "show_progress": show_progress,
        }

    def _splitter(
        self, strip_whitespace: bool | None, split_on_input_newlines: bool | None
    ) -> SplitMethod:
        return get_split(
            self.config.strip_whitespace if strip_whitespace is None else strip_whitespace,
            (
                self.config.split_on_input_newlines
                if split_on_input_newlines is None
                else split_on_input_newlines
            ),
        )

    def _iter_proba(
        self, texts: Sequence[str], inference_kwargs: dict[str, Any]
    ) -> Iterator[np.ndarray]:
        self._ensure_open()
        return predict_proba(texts, self.model, self.tokenizer, **inference_kwargs)

    @overload
    def predict_proba(self, text_or_texts: str, **kwargs: Any) -> np.ndarray: ...

    @overload
    def predict_proba(self, text_or_texts: Sequence[str], **kwargs: Any) -> Iterator[np.ndarray]: ...

    def predict_proba(
        self,
        text_or_texts: str | Sequence[str],
        *,
        stride: int | None = None,
        block_size: int | None = None,
        batch_size: int | None = None,
        pad_last_batch: bool | None = None,
        weighting: WeightingType | str | None = None,
        remove_whitespace_before_inference: bool | None = None,
        outer_batch_size: int | None = None,
        show_progress: bool = False,
    ) -> np.ndarray | Iterator[np.ndarray]:
        """
        Predict the boundary probability of every character.

        A single string returns one array; a sequence of strings returns a
        generator yielding one array per text. ``stride`` defaults to
        ``config.predict_stride`` (256).
        """

        inference_kwargs = self._inference_kwargs(
            stride=stride,
            default_stride=self.config.predict_stride,
            block_size=block_size,
            batch_size=batch_size,
            pad_last_batch=pad_last_batch,
            weighting=weighting,
            remove_whitespace_before_inference=remove_whitespace_before_inference,
            outer_batch_size=outer_batch_size,
            show_progress=show_progress,
        )
        if isinstance(text_or_texts, str):
            return next(self._iter_proba([text_or_texts], inference_kwargs))
        return self._iter_proba(list(text_or_texts), inference_kwargs)

    @overload
    def split(self, text_or_texts: str, **kwargs: Any) -> Iterator[str]: ...

    @overload
    def split(self, text_or_texts: Sequence[str], **kwargs: Any) -> Iterator[Iterator[str]]: ...

    def split(
        self,
        text_or_texts: str | Sequence[str],
        *,
        threshold: float | None = None,
        stride: int | None = None,
        block_size: int | None = None,
        batch_size: int | None = None,
        pad_last_batch: bool | None = None,
        weighting: WeightingType | str | None = None,
        remove_whitespace_before_inference: bool | None = None,
        outer_batch_size: int | None = None,
        strip_whitespace: bool | None = None,
        split_on_input_newlines: bool | None = None,
        show_progress: bool = False,
    ) -> Iterator[str] | Iterator[Iterator[str]]:
        """
        Split text into sentences.

        A single string yields sentences; a sequence of strings yields one
        sentence generator per text. Nothing is computed until iteration starts.
        """

        sentence_threshold = self._resolve_threshold(threshold)
        inference_kwargs = self._inference_kwargs(
            stride=stride,
            default_stride=self.config.stride,
            block_size=block_size,
            batch_size=batch_size,
            pad_last_batch=pad_last_batch,
            weighting=weighting,
            remove_whitespace_before_inference=remove_whitespace_before_inference,
            outer_batch_size=outer_batch_size,
            show_progress=show_progress,
        )
        splitter = self._splitter(strip_whitespace, split_on_input_newlines)

        if isinstance(text_or_texts, str):
            text = text_or_texts

            def _sentences() -> Iterator[str]:
                probs = next(self._iter_proba([text], inference_kwargs))
                yield from split_sentences(splitter, text, probs, sentence_threshold)

            return _sentences()

        texts = list(text_or_texts)

        def _per_text() -> Iterator[Iterator[str]]:
            for text, probs in zip(texts, self._iter_proba(texts, inference_kwargs)):
                yield split_sentences(splitter, text, probs, sentence_threshold)

        return _per_text()

    @overload
    def split_paragraphs(self, text_or_texts: str, **kwargs: Any) -> Iterator[Iterator[str]]: ...

    @overload
    def split_paragraphs(
        self, text_or_texts: Sequence[str], **kwargs: Any
    ) -> Iterator[Iterator[Iterator[str]]]: ...

    def split_paragraphs(
        self,
        text_or_texts: str | Sequence[str],
        *,
        threshold: float | None = None,
        paragraph_threshold: float | None = None,
        stride: int | None = None,
        block_size: int | None = None,
        batch_size: int | None = None,
        pad_last_batch: bool | None = None,
        weighting: WeightingType | str | None = None,
        remove_whitespace_before_inference: bool | None = None,
        outer_batch_size: int | None = None,
        strip_whitespace: bool | None = None,
        split_on_input_newlines: bool | None = None,
        show_progress: bool = False,
    ) -> Iterator[Iterator[str]] | Iterator[Iterator[Iterator[str]]]:
        """
        Split text into paragraphs, each a generator of sentences.

        Paragraph boundaries use ``paragraph_threshold`` (default 0.5); sentences
        inside each paragraph use the sentence ``threshold``.
        """

        sentence_threshold = self._resolve_threshold(threshold)
        resolved_paragraph_threshold = self._resolve_paragraph_threshold(paragraph_threshold)
        inference_kwargs = self._inference_kwargs(
            stride=stride,
            default_stride=self.config.stride,
            block_size=block_size,
            batch_size=batch_size,
            pad_last_batch=pad_last_batch,
            weighting=weighting,
            remove_whitespace_before_inference=remove_whitespace_before_inference,
            outer_batch_size=outer_batch_size,
            show_progress=show_progress,
        )
        splitter = self._splitter(strip_whitespace, split_on_input_newlines)

        if isinstance(text_or_texts, str):
            text = text_or_texts

            def _paragraphs() -> Iterator[Iterator[str]]:
                probs = next(self._iter_proba([text], inference_kwargs))
                yield from split_paragraphs(
                    splitter, text, probs, resolved_paragraph_threshold, sentence_threshold
                )

            return _paragraphs()

        texts = list(text_or_texts)

        def _per_text() -> Iterator[Iterator[Iterator[str]]]:
            for text, probs in zip(texts, self._iter_proba(texts, inference_kwargs)):
                yield split_paragraphs(
                    splitter, text, probs, resolved_paragraph_threshold, sentence_threshold
                )

        return _per_text()
