"""
Tokenizer interface consumed by the windowing pipeline and a transformers adapter.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol, cast, runtime_checkable

from transformers import AutoTokenizer, PreTrainedTokenizerBase

from .data_structures import Token

logger = logging.getLogger(__name__)


@runtime_checkable
class Tokenizer(Protocol):
    """Anything that maps text to tokens with character offsets."""

    @property
    def bos_id(self) -> int: ...

    @property
    def eos_id(self) -> int: ...

    @property
    def pad_id(self) -> int: ...

    def encode(self, text: str) -> list[Token]: ...


def special_token_ids(tokenizer: Tokenizer) -> frozenset[int]:
    return frozenset((tokenizer.bos_id, tokenizer.eos_id, tokenizer.pad_id))


def _resolve_special_token_id(*candidates: Any) -> int | None:
    for candidate in candidates:
        if isinstance(candidate, int):
            return candidate
    return None


class TransformersTokenizer:
    """
    Adapter exposing a fast Hugging Face tokenizer through the ``Tokenizer`` protocol.

    Special tokens are never added by ``encode``; the window builder frames each
    window itself.
    """

    def __init__(self, tokenizer: PreTrainedTokenizerBase):
        if not getattr(tokenizer, "is_fast", False):
            raise ValueError(
                "A fast tokenizer is required to obtain character offsets "
                f"(got {type(tokenizer).__name__})."
            )

        self.tokenizer = tokenizer
        special_map = cast(Mapping[str, Any], getattr(tokenizer, "special_tokens_map", {}) or {})

        bos_id = _resolve_special_token_id(
            getattr(tokenizer, "cls_token_id", None),
            getattr(tokenizer, "bos_token_id", None),
            special_map.get("cls_token_id"),
        )
        eos_id = _resolve_special_token_id(
            getattr(tokenizer, "sep_token_id", None),
            getattr(tokenizer, "eos_token_id", None),
            special_map.get("sep_token_id"),
        )
        pad_id = _resolve_special_token_id(getattr(tokenizer, "pad_token_id", None))

        if bos_id is None or eos_id is None:
            raise ValueError("Tokenizer must define CLS/BOS and SEP/EOS token ids.")
        if pad_id is None:
            logger.warning("Tokenizer has no pad token; falling back to the EOS id for padding")
            pad_id = eos_id

        self._bos_id = bos_id
        self._eos_id = eos_id
        self._pad_id = pad_id

    @classmethod
    def from_pretrained(cls, name_or_path: str, **kwargs: Any) -> TransformersTokenizer:
        try:
            tokenizer = AutoTokenizer.from_pretrained(name_or_path, use_fast=True, **kwargs)
        except Exception as exc:  # pragma: no cover - surface failure to caller
            raise RuntimeError(f"Failed to initialize tokenizer from '{name_or_path}'.") from exc
        return cls(tokenizer)

    @property
    def bos_id(self) -> int:
        return self._bos_id

    @property
    def eos_id(self) -> int:
        return self._eos_id

    @property
    def pad_id(self) -> int:
        return self._pad_id

    def encode(self, text: str) -> list[Token]:
        encoding = self.tokenizer(
            text,
            add_special_tokens=False,
            return_offsets_mapping=True,
            return_attention_mask=False,
            verbose=False,
        )
        return [
            Token(int(token_id), int(start), int(end))
            for token_id, (start, end) in zip(encoding["input_ids"], encoding["offset_mapping"])
        ]
