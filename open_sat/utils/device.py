"""
Placement of the scoring model: target device and floating point precision.
"""

from __future__ import annotations

import torch

# Shorthands accepted in configs and CLI-style arguments.
_DTYPE_SHORTHANDS = {
    "fp32": "float32",
    "fp16": "float16",
    "half": "float16",
    "bf16": "bfloat16",
}


def resolve_device(device: str | torch.device | None) -> torch.device:
    """``None`` or ``"auto"`` selects CUDA when available and CPU otherwise."""

    if isinstance(device, str):
        device = device.strip().lower()
    if device is None or device in ("", "auto"):
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")

    try:
        resolved = torch.device(device)
    except RuntimeError as exc:
        raise ValueError(f"Unsupported device specification: {device!r}") from exc

    if resolved.type == "cuda" and not torch.cuda.is_available():
        raise ValueError(f"{resolved} requested but CUDA is not available.")
    return resolved


def resolve_dtype(torch_dtype: torch.dtype | str | None, device: torch.device) -> torch.dtype | None:
    """
    Precision to run the scoring model in.

    An explicit floating point dtype (or its name) wins. Otherwise CUDA runs in
    float16 and every other device keeps the checkpoint's dtype (``None``).
    """

    if isinstance(torch_dtype, torch.dtype):
        return torch_dtype

    name = "" if torch_dtype is None else str(torch_dtype).strip().lower()
    if name in ("", "auto"):
        return torch.float16 if device.type == "cuda" else None

    candidate = getattr(torch, _DTYPE_SHORTHANDS.get(name, name), None)
    if not isinstance(candidate, torch.dtype) or not candidate.is_floating_point:
        raise TypeError(f"Unsupported dtype value: {torch_dtype!r}")
    return candidate
