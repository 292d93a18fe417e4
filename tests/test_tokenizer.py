"""Tests for ``open_sat.tokenizer``."""

from __future__ import annotations

import logging

import pytest
from open_sat.data_structures import Token
from open_sat.tokenizer import Tokenizer, TransformersTokenizer, special_token_ids


class _StubHFTokenizer:
    """Whitespace tokenizer mimicking the fast tokenizer call signature."""

    is_fast = True

    def __init__(self, *, cls_token_id=101, sep_token_id=102, pad_token_id=0, **extra):
        self.cls_token_id = cls_token_id
        self.sep_token_id = sep_token_id
        self.pad_token_id = pad_token_id
        self.bos_token_id = extra.get("bos_token_id")
        self.eos_token_id = extra.get("eos_token_id")
        self.special_tokens_map = {}
        self.calls: list[dict] = []

    def __call__(self, text, **kwargs):
        self.calls.append(kwargs)
        input_ids: list[int] = []
        offsets: list[tuple[int, int]] = []
        position = 0
        for word in text.split():
            start = text.index(word, position)
            end = start + len(word)
            input_ids.append(1000 + len(word))
            offsets.append((start, end))
            position = end
        return {"input_ids": input_ids, "offset_mapping": offsets}


def test_encode_returns_tokens_with_offsets() -> None:
    stub = _StubHFTokenizer()
    tokenizer = TransformersTokenizer(stub)  # type: ignore[arg-type]

    tokens = tokenizer.encode("Hi  there")

    assert tokens == [Token(1002, 0, 2), Token(1005, 4, 9)]
    assert stub.calls[0]["add_special_tokens"] is False
    assert stub.calls[0]["return_offsets_mapping"] is True
    assert isinstance(tokenizer, Tokenizer)


def test_special_ids_prefer_cls_and_sep() -> None:
    tokenizer = TransformersTokenizer(_StubHFTokenizer(bos_token_id=1, eos_token_id=2))  # type: ignore[arg-type]

    assert (tokenizer.bos_id, tokenizer.eos_id, tokenizer.pad_id) == (101, 102, 0)
    assert special_token_ids(tokenizer) == frozenset({0, 101, 102})


def test_bos_and_eos_are_used_without_cls_and_sep() -> None:
    stub = _StubHFTokenizer(cls_token_id=None, sep_token_id=None, bos_token_id=0, eos_token_id=2)

    tokenizer = TransformersTokenizer(stub)  # type: ignore[arg-type]

    assert (tokenizer.bos_id, tokenizer.eos_id) == (0, 2)


def test_missing_pad_falls_back_to_eos(caplog) -> None:
    stub = _StubHFTokenizer(pad_token_id=None)

    with caplog.at_level(logging.WARNING, logger="open_sat.tokenizer"):
        tokenizer = TransformersTokenizer(stub)  # type: ignore[arg-type]

    assert tokenizer.pad_id == 102
    assert "pad token" in caplog.text


def test_missing_sentinels_are_rejected() -> None:
    with pytest.raises(ValueError, match="CLS/BOS"):
        TransformersTokenizer(_StubHFTokenizer(cls_token_id=None))  # type: ignore[arg-type]


def test_slow_tokenizer_is_rejected() -> None:
    stub = _StubHFTokenizer()
    stub.is_fast = False

    with pytest.raises(ValueError, match="fast tokenizer"):
        TransformersTokenizer(stub)  # type: ignore[arg-type]
