"""Tests for ``open_sat.config`` and ``SaTConfig``."""

from __future__ import annotations

import pytest
from open_sat.config import config_from_dict, load_config, parse_config_file
from open_sat.data_structures import SaTConfig
from open_sat.weighting import WeightingType


def test_load_config_without_file_returns_defaults() -> None:
    config = load_config(None)

    assert config == SaTConfig()
    assert config.stride == 64
    assert config.predict_stride == 256
    assert config.threshold is None
    assert config.paragraph_threshold == 0.5


def test_parse_config_file_reads_split_args_section(tmp_path) -> None:
    path = tmp_path / "split.yaml"
    path.write_text(
        "split_args:\n  threshold: 0.3\n  stride: 128\n  weighting: hat\n  strip_whitespace: true\n",
        encoding="utf-8",
    )

    config = parse_config_file(path)

    assert config.threshold == 0.3
    assert config.stride == 128
    assert config.weighting is WeightingType.HAT
    assert config.strip_whitespace is True
    assert config.block_size == 512


def test_parse_config_file_accepts_flat_layout(tmp_path) -> None:
    path = tmp_path / "flat.yaml"
    path.write_text("batch_size: 4\npad_last_batch: true\n", encoding="utf-8")

    config = load_config(path)

    assert config.batch_size == 4
    assert config.pad_last_batch is True


def test_empty_file_yields_defaults(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert parse_config_file(path) == SaTConfig()


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown configuration keys: learning_rate"):
        config_from_dict({"learning_rate": 1e-4, "stride": 32})


@pytest.mark.parametrize("content", ["- 1\n- 2\n", "split_args: 3\n"])
def test_non_mapping_content_is_rejected(tmp_path, content: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        parse_config_file(path)


@pytest.mark.parametrize("field", ["stride", "predict_stride", "block_size", "batch_size", "outer_batch_size"])
def test_non_positive_sizes_are_rejected(field: str) -> None:
    with pytest.raises(ValueError, match=field):
        config_from_dict({field: 0})


def test_non_numeric_threshold_is_rejected() -> None:
    with pytest.raises(TypeError, match="threshold"):
        SaTConfig(threshold="low").validate()  # type: ignore[arg-type]


def test_unsupported_weighting_is_rejected() -> None:
    with pytest.raises(ValueError, match="weighting"):
        SaTConfig(weighting="triangle")


def test_to_dict_serializes_weighting() -> None:
    result = SaTConfig(weighting=WeightingType.HAT, threshold=0.1).to_dict()

    assert result["weighting"] == "hat"
    assert result["threshold"] == 0.1
    assert config_from_dict(result) == SaTConfig(weighting="hat", threshold=0.1)


@pytest.mark.parametrize("field", ["batch_size", "stride", "outer_batch_size"])
def test_boolean_sizes_are_rejected(tmp_path, field: str) -> None:
    path = tmp_path / "bool.yaml"
    path.write_text(f"split_args:\n  {field}: true\n", encoding="utf-8")

    with pytest.raises(ValueError, match=field):
        parse_config_file(path)


def test_boolean_threshold_is_rejected() -> None:
    with pytest.raises(TypeError, match="paragraph_threshold"):
        SaTConfig(paragraph_threshold=True).validate()
