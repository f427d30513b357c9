from __future__ import annotations

import numbers
from typing import Iterable, Optional, Sequence, Tuple

from .errors import Diag, DimensionError, ShapeError

Shape = Tuple[int, ...]
Strides = Tuple[int, ...]


def make_shape(shape: int | Iterable[int]) -> Shape:
    """Normalize an int or iterable of ints into a shape tuple."""
    if isinstance(shape, numbers.Integral):
        shape = (shape,)
    out = tuple(int(d) for d in shape)
    for d in out:
        if d < 0:
            raise DimensionError(f"Negative dimensions are not allowed: {out}")
    return out


def shape_size(shape: Sequence[int]) -> int:
    size = 1
    for d in shape:
        size *= d
    return size


def contiguous_strides(shape: Sequence[int], itemsize: int) -> Strides:
    """Byte strides of a C-contiguous array of ``shape``."""
    strides = []
    step = itemsize
    for d in reversed(shape):
        strides.append(step)
        step *= max(d, 1)
    return tuple(reversed(strides))


def normalize_axis(axis: int, ndim: int) -> int:
    if axis < -ndim or ndim <= axis:
        raise DimensionError(f"Axis {axis} is out of bounds for array of dimension {ndim}")
    return axis % ndim


def check_equal_shape(
    expected: Sequence[int],
    actual: Sequence[int],
    *,
    op: Optional[str] = None,
    operand: Optional[str] = None,
) -> None:
    expected = tuple(expected)
    actual = tuple(actual)
    if expected == actual:
        return
    raise ShapeError(
        f"Shape mismatched: {expected} != {actual}",
        Diag(
            op=op,
            operand=operand,
            expected=str(expected),
            actual=str(actual),
            hint="broadcasting is not supported here; reshape the operand to the target shape",
        ),
    )
