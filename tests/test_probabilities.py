"""Tests for ``open_sat.probabilities``."""

from __future__ import annotations

import numpy as np
import pytest
from open_sat.data_structures import Token
from open_sat.probabilities import (
    newline_probability,
    predict_proba,
    remove_spaces,
    restore_spaces,
    token_to_char_logits,
)


def test_token_logits_land_on_last_character() -> None:
    tokens = [Token(0, 0, 0), Token(10, 0, 3), Token(11, 3, 5), Token(2, 5, 5)]
    token_logits = np.array([[9.0, 9.0], [1.0, 2.0], [3.0, 4.0], [9.0, 9.0]], dtype=np.float32)

    char_logits = token_to_char_logits("Hello", tokens, token_logits, special_ids={0, 1, 2})

    assert char_logits.shape == (5, 2)
    np.testing.assert_array_equal(char_logits[2], [1.0, 2.0])
    np.testing.assert_array_equal(char_logits[4], [3.0, 4.0])
    for index in (0, 1, 3):
        assert np.all(np.isneginf(char_logits[index]))


def test_zero_width_token_at_start_is_clamped_to_first_character() -> None:
    char_logits = token_to_char_logits("ab", [Token(10, 0, 0)], np.array([[5.0]], dtype=np.float32))

    assert char_logits[0, 0] == 5.0
    assert np.isneginf(char_logits[1, 0])


def test_newline_probability_uses_first_label_column() -> None:
    char_logits = np.array([[0.0, 7.0], [-np.inf, 7.0], [40.0, -7.0]], dtype=np.float32)

    probs = newline_probability(char_logits)

    np.testing.assert_allclose(probs, [0.5, 0.0, 1.0], atol=1e-6)
    assert probs.dtype == np.float32


def test_remove_and_restore_spaces_round_trip() -> None:
    stripped, positions = remove_spaces("a  b c")

    assert stripped == "abc"
    assert positions == [1, 2, 4]

    restored = restore_spaces(np.array([0.9, 0.8, 0.7], dtype=np.float32), 6, positions)
    np.testing.assert_allclose(restored, [0.9, 0.0, 0.0, 0.8, 0.0, 0.7], rtol=1e-6)


def test_restore_spaces_handles_leading_and_trailing_runs() -> None:
    _, positions = remove_spaces("  ab  ")

    restored = restore_spaces(np.array([0.4, 0.6], dtype=np.float32), 6, positions)

    assert restored.shape == (6,)
    np.testing.assert_allclose(restored, [0.0, 0.0, 0.4, 0.6, 0.0, 0.0], rtol=1e-6)


def test_restore_spaces_rejects_mismatched_lengths() -> None:
    with pytest.raises(ValueError, match="restore"):
        restore_spaces(np.zeros(4, dtype=np.float32), 6, [1, 2, 3])


def test_empty_input_yields_negative_infinity(char_tokenizer, period_model) -> None:
    (probs,) = list(predict_proba([""], period_model, char_tokenizer))

    assert probs.shape == (1,)
    assert np.isneginf(probs[0])
    assert period_model.calls == []


def test_blank_texts_skip_the_model_and_keep_order(char_tokenizer, period_model) -> None:
    results = list(predict_proba(["a.", "   ", "b.c"], period_model, char_tokenizer))

    assert [len(probs) for probs in results] == [2, 1, 3]
    assert np.isneginf(results[1][0])
    assert results[0][1] > 0.99
    assert results[2][1] > 0.99
    assert results[2][0] < 0.01
    assert char_tokenizer.encoded == ["a.", "b.c"]


def test_outer_batches_are_computed_lazily(char_tokenizer, period_model) -> None:
    generator = predict_proba(["a.", "b.", "c."], period_model, char_tokenizer, outer_batch_size=1)

    assert period_model.calls == []
    next(generator)
    assert len(period_model.calls) == 1
    list(generator)
    assert len(period_model.calls) == 3


def test_whitespace_removal_restores_original_length(char_tokenizer, period_model) -> None:
    (probs,) = list(
        predict_proba(
            ["a  b"],
            period_model,
            char_tokenizer,
            remove_whitespace_before_inference=True,
        )
    )

    assert probs.shape == (4,)
    assert probs[1] == 0.0
    assert probs[2] == 0.0
    assert char_tokenizer.encoded == ["ab"]
    ((input_ids, _),) = period_model.calls
    assert ord(" ") not in input_ids


def test_space_only_text_with_whitespace_removal_is_blank(char_tokenizer, period_model) -> None:
    (probs,) = list(
        predict_proba(["   "], period_model, char_tokenizer, remove_whitespace_before_inference=True)
    )

    assert np.isneginf(probs).all()
    assert period_model.calls == []


@pytest.mark.parametrize("kwargs", [{"outer_batch_size": 0}, {"batch_size": 0}])
def test_invalid_batch_sizes_are_rejected(char_tokenizer, period_model, kwargs) -> None:
    with pytest.raises(ValueError):
        next(predict_proba(["a."], period_model, char_tokenizer, **kwargs))
