"""Exception types raised by stridegrad."""
from __future__ import annotations

from dataclasses import dataclass

from .config import CONFIG


class StridegradError(Exception):
    """Base class for all stridegrad errors."""


class DimensionError(StridegradError, ValueError):
    """Axis, rank or index-count problem."""


class BoundsError(DimensionError, IndexError):
    """Element index outside ``[-dim, dim)``."""


class DtypeError(StridegradError, TypeError):
    pass


class GradientError(StridegradError, RuntimeError):
    pass


# ---- diagnostics ------------------------------------------------------------

@dataclass
class Diag:
    op: str | None = None          # e.g., "add_at"
    operand: str | None = None     # e.g., "b"
    expected: str | None = None    # e.g., "(2, 4)"
    actual: str | None = None      # e.g., "(4,)"
    hint: str | None = None


class ShapeError(StridegradError, ValueError):
    def __init__(self, message: str, diag: Diag | None = None):
        self._message = message
        self._diag = diag
        super().__init__(str(self))

    @property
    def diag(self) -> Diag | None:
        return self._diag

    def __str__(self) -> str:
        d = self._diag
        if d is None or CONFIG.diag_level == "concise":
            return self._message
        parts = []
        if d.op:      parts.append(d.op)
        if d.operand: parts.append(d.operand)
        prefix = f"{' in '.join(parts)}: " if parts else ""
        line1 = f"{prefix}expected {d.expected}, got {d.actual}."
        want_hint = (CONFIG.diag_level == "verbose") or (CONFIG.diag_level == "auto" and d.hint)
        if want_hint and d.hint:
            return self._message + "\n" + line1 + f"\nHint: {d.hint}"
        return self._message + "\n" + line1
