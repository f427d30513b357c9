from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Slice:
    """``start:stop:step`` selector with Python slice normalization.

    Omitted bounds default to the ends of the axis in the direction of
    ``step``; negative bounds count from the end; ``step`` may be negative
    but never zero.
    """

    start: Optional[int] = None
    stop: Optional[int] = None
    step: int = 1

    def __post_init__(self) -> None:
        # frozen: normalize NumPy integers to int, reject floats and the like
        for name in ("start", "stop"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, operator.index(value))
        object.__setattr__(self, "step", operator.index(self.step))
        if self.step == 0:
            raise ValueError("Slice step cannot be zero")

    @classmethod
    def from_slice(cls, s: slice) -> "Slice":
        return cls(s.start, s.stop, 1 if s.step is None else s.step)

    def _bounds(self, dim: int) -> tuple[int, int, int]:
        return slice(self.start, self.stop, self.step).indices(dim)

    def get_start(self, dim: int) -> int:
        """First selected position on an axis of length ``dim``."""
        return self._bounds(dim)[0]

    def get_length(self, dim: int) -> int:
        """Number of selected positions on an axis of length ``dim`` (never negative)."""
        return len(range(*self._bounds(dim)))

    def __repr__(self) -> str:
        start = "" if self.start is None else self.start
        stop = "" if self.stop is None else self.stop
        return f"Slice({start}:{stop}:{self.step})"
