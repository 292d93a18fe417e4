from __future__ import annotations

import numpy as np
import pytest
from open_sat.data_structures import Token

BOS_ID = 0
PAD_ID = 1
EOS_ID = 2


class CharTokenizer:
    """One token per character; ids are Unicode codepoints."""

    bos_id = BOS_ID
    eos_id = EOS_ID
    pad_id = PAD_ID

    def __init__(self) -> None:
        self.encoded: list[str] = []

    def encode(self, text: str) -> list[Token]:
        self.encoded.append(text)
        return [Token(ord(ch), idx, idx + 1) for idx, ch in enumerate(text)]


class PeriodModel:
    """Scores a high boundary logit on '.' tokens and a low one everywhere else."""

    num_labels = 2
    max_length = 514
    downsampling_rate = 1

    def __init__(self, boundary_chars: str = ".") -> None:
        self.boundary_ids = {ord(ch) for ch in boundary_chars}
        self.calls: list[tuple[np.ndarray, np.ndarray]] = []
        self.close_count = 0

    def __call__(self, input_ids: np.ndarray, attention_mask: np.ndarray) -> np.ndarray:
        self.calls.append((input_ids.copy(), attention_mask.copy()))
        logits = np.full((*input_ids.shape, self.num_labels), -10.0, dtype=np.float32)
        hits = np.isin(input_ids, list(self.boundary_ids))
        logits[..., 0][hits] = 10.0
        return logits.astype(np.float16)

    def close(self) -> None:
        self.close_count += 1


class PositionModel:
    """Boundary logit equals the position inside the window, sentinels excluded."""

    num_labels = 2
    max_length = 514
    downsampling_rate = 1

    def __init__(self) -> None:
        self.calls: list[tuple[np.ndarray, np.ndarray]] = []

    def __call__(self, input_ids: np.ndarray, attention_mask: np.ndarray) -> np.ndarray:
        self.calls.append((input_ids.copy(), attention_mask.copy()))
        batch, width = input_ids.shape
        positions = np.arange(width, dtype=np.float32) - 1.0
        logits = np.zeros((batch, width, self.num_labels), dtype=np.float32)
        logits[..., 0] = positions
        logits[..., 1] = -positions
        return logits

    def close(self) -> None:
        pass


@pytest.fixture
def char_tokenizer() -> CharTokenizer:
    return CharTokenizer()


@pytest.fixture
def period_model() -> PeriodModel:
    return PeriodModel()


@pytest.fixture
def position_model() -> PositionModel:
    return PositionModel()
