"""
Load ``SaTConfig`` defaults from YAML files.

Accepted layouts::

    split_args:
      threshold: 0.3
      stride: 128

or the same keys at the top level.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from .data_structures import SaTConfig

logger = logging.getLogger(__name__)

CONFIG_SECTION = "split_args"


def config_from_dict(values: dict[str, Any]) -> SaTConfig:
    known = {item.name for item in fields(SaTConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
    return SaTConfig(**values).validate()


def parse_config_file(config_file: str | Path) -> SaTConfig:
    """Parse a YAML configuration file into ``SaTConfig``."""

    path = Path(config_file)
    with open(path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration root in {path} must be a mapping")

    section = config.get(CONFIG_SECTION, config)
    if not isinstance(section, dict):
        raise ValueError(f"'{CONFIG_SECTION}' in {path} must be a mapping")

    logger.info("Loaded split configuration from %s", path)
    return config_from_dict(section)


def load_config(config_file: str | Path | None = None) -> SaTConfig:
    if config_file is None:
        return SaTConfig()
    return parse_config_file(config_file)
