"""Runtime settings read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEVICE_ENV = "STRIDEGRAD_DEVICE"
INDEX_MODE_ENV = "STRIDEGRAD_INDEX_MODE"
LOG_LEVEL_ENV = "STRIDEGRAD_LOG_LEVEL"
DIAG_ENV = "STRIDEGRAD_DIAG"

INDEX_MODES = ("wrap", "clip", "raise")
DIAG_LEVELS = ("concise", "auto", "verbose")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class StridegradConfig:
    """Settings shared by devices, diagnostics and the logger."""

    default_device: str = "native:0"
    index_mode: str = "wrap"  # out-of-range policy for take/add_at kernels
    log_level: str = "WARNING"
    diag_level: str = "auto"


def _choice(environ: Mapping[str, str], var: str, default: str, choices, *, upper: bool = False) -> str:
    raw = environ.get(var)
    if raw is None or raw == "":
        return default
    value = raw.upper() if upper else raw.lower()
    if value not in choices:
        raise ValueError(f"Unknown value for {var}: {raw!r} (expected one of {', '.join(choices)})")
    return value


def load_config(environ: Optional[Mapping[str, str]] = None) -> StridegradConfig:
    """Build a :class:`StridegradConfig` from ``environ`` (defaults to ``os.environ``).

    Unset or empty variables fall back to the dataclass defaults. Values
    outside the accepted set raise ``ValueError`` naming the variable.
    """
    if environ is None:
        environ = os.environ
    device = environ.get(DEVICE_ENV) or StridegradConfig.default_device
    if ":" not in device:
        device = f"{device}:0"
    return StridegradConfig(
        default_device=device,
        index_mode=_choice(environ, INDEX_MODE_ENV, StridegradConfig.index_mode, INDEX_MODES),
        log_level=_choice(environ, LOG_LEVEL_ENV, StridegradConfig.log_level, LOG_LEVELS, upper=True),
        diag_level=_choice(environ, DIAG_ENV, StridegradConfig.diag_level, DIAG_LEVELS),
    )


CONFIG = load_config()
