"""
Scoring model interface and a transformers token-classification implementation.

The pipeline only relies on the tensor contract: a batch of fixed-width token id
rows plus attention masks goes in, ``[batch, width, num_labels]`` logits come out.
"""

from __future__ import annotations

import gc
import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import numpy as np
import torch
import transformers.utils.logging as hf_logging
from transformers import (
    AutoConfig,
    AutoModelForTokenClassification,
    PretrainedConfig,
    PreTrainedModel,
    XLMRobertaConfig,
    XLMRobertaForTokenClassification,
)

from ..utils.device import resolve_device, resolve_dtype

logger = logging.getLogger(__name__)

DEFAULT_DOWNSAMPLING_RATE = 1

# Model types whose position ids start after the padding index.
_OFFSET_POSITION_MODEL_TYPES = {"roberta", "xlm-roberta", "camembert", "xlm-token"}

_LOGGING_CONFIGURED = False


def _ensure_transformers_logging_configured() -> None:
    """Configure transformers logging once to suppress noisy load-time warnings."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    hf_logging.set_verbosity_error()
    _LOGGING_CONFIGURED = True


class XLMTokenConfig(XLMRobertaConfig):
    """Config of the published SaT checkpoints (``model_type: xlm-token``)."""

    model_type = "xlm-token"


class XLMTokenForTokenClassification(XLMRobertaForTokenClassification):
    """XLM-R token classifier; SaT checkpoints share its weight layout."""

    config_class = XLMTokenConfig


_SAT_ARCHITECTURES_REGISTERED = False


def register_sat_architectures() -> None:
    """Make ``xlm-token`` checkpoints loadable through the transformers Auto classes."""

    global _SAT_ARCHITECTURES_REGISTERED
    if _SAT_ARCHITECTURES_REGISTERED:
        return

    AutoConfig.register(XLMTokenConfig.model_type, XLMTokenConfig, exist_ok=True)
    AutoModelForTokenClassification.register(
        XLMTokenConfig, XLMTokenForTokenClassification, exist_ok=True
    )
    _SAT_ARCHITECTURES_REGISTERED = True


@runtime_checkable
class ScoringModel(Protocol):
    """Per-token label scorer with a bounded context."""

    num_labels: int
    max_length: int  # maximum row width including BOS/EOS
    downsampling_rate: int

    def __call__(self, input_ids: np.ndarray, attention_mask: np.ndarray) -> np.ndarray: ...

    def close(self) -> None: ...


def resolve_max_length(config: PretrainedConfig, fallback: int) -> int:
    max_positions = getattr(config, "max_position_embeddings", None)
    if not isinstance(max_positions, int) or max_positions <= 0:
        return fallback

    model_type = str(getattr(config, "model_type", "") or "").lower()
    if model_type in _OFFSET_POSITION_MODEL_TYPES:
        pad_token_id = getattr(config, "pad_token_id", None)
        offset = (pad_token_id if isinstance(pad_token_id, int) else 1) + 1
        return max_positions - offset
    return max_positions


def _extract_logits(outputs: Any) -> torch.Tensor:
    candidate: torch.Tensor | None = None
    if isinstance(outputs, Mapping):
        candidate = outputs.get("logits")
    if candidate is None:
        candidate = getattr(outputs, "logits", None)
    if candidate is None and isinstance(outputs, (tuple, list)) and outputs:
        candidate = outputs[0]
    if candidate is None:
        raise KeyError("logits not found in model outputs")
    return candidate


class TokenClassifierScoringModel:
    """
    Runs a ``PreTrainedModel`` token classifier on numpy batches.

    Args:
        model: Loaded token-classification model
        device: Target device ("cpu", "cuda:1", ...); "auto" or None picks CUDA when available
        torch_dtype: Optional dtype override; defaults to float16 on CUDA
        downsampling_rate: Override for the block-size alignment factor
    """

    def __init__(
        self,
        model: PreTrainedModel,
        *,
        device: str | torch.device | None = None,
        torch_dtype: torch.dtype | str | None = None,
        downsampling_rate: int | None = None,
    ):
        resolved_device = resolve_device(device)
        dtype = resolve_dtype(torch_dtype, resolved_device)

        self.model: PreTrainedModel | None = model
        self.device = resolved_device
        self.dtype = dtype

        config = model.config
        self.num_labels = int(config.num_labels)
        self.max_length = resolve_max_length(config, fallback=np.iinfo(np.int32).max)
        self.downsampling_rate = int(
            downsampling_rate
            or getattr(config, "downsampling_rate", None)
            or DEFAULT_DOWNSAMPLING_RATE
        )

        if dtype is not None:
            model.to(device=resolved_device, dtype=dtype)
        else:
            model.to(device=resolved_device)
        model.eval()

        logger.info(
            "Scoring model ready on %s (dtype=%s, num_labels=%d, max_length=%d, downsampling=%d)",
            resolved_device,
            dtype or model.dtype,
            self.num_labels,
            self.max_length,
            self.downsampling_rate,
        )

    @classmethod
    def from_pretrained(
        cls,
        model_name_or_path: str,
        *,
        device: str | torch.device | None = None,
        torch_dtype: torch.dtype | str | None = None,
        trust_remote_code: bool = False,
        **model_kwargs: Any,
    ) -> TokenClassifierScoringModel:
        _ensure_transformers_logging_configured()
        register_sat_architectures()
        try:
            model = AutoModelForTokenClassification.from_pretrained(
                model_name_or_path,
                trust_remote_code=trust_remote_code,
                **model_kwargs,
            )
        except Exception as exc:  # pragma: no cover - surface failure to caller
            raise RuntimeError(f"Failed to load scoring model from '{model_name_or_path}'.") from exc
        return cls(model, device=device, torch_dtype=torch_dtype)

    def __call__(self, input_ids: np.ndarray, attention_mask: np.ndarray) -> np.ndarray:
        if self.model is None:
            raise RuntimeError("Scoring model has been closed.")

        ids_tensor = torch.from_numpy(np.ascontiguousarray(input_ids, dtype=np.int64))
        mask_tensor = torch.from_numpy(np.ascontiguousarray(attention_mask, dtype=np.float32))

        with torch.inference_mode():
            outputs = self.model(
                input_ids=ids_tensor.to(self.device),
                attention_mask=mask_tensor.to(self.device, dtype=torch.long),
            )
            logits = _extract_logits(outputs)

        return logits.detach().to(dtype=torch.float32).cpu().numpy()

    def close(self) -> None:
        if self.model is None:
            return
        self.model = None
        gc.collect()
        if self.device.type == "cuda" and torch.cuda.is_available():
            torch.cuda.empty_cache()
        logger.debug("Released scoring model on %s", self.device)
