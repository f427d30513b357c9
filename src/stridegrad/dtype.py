"""Element types supported by stridegrad arrays."""
from __future__ import annotations

from enum import Enum
from typing import Any

import numpy as np

from .errors import DtypeError


class Dtype(Enum):
    """Element dtype. Values are the matching NumPy dtype names."""

    bool_ = "bool"
    int8 = "int8"
    int16 = "int16"
    int32 = "int32"
    int64 = "int64"
    uint8 = "uint8"
    float16 = "float16"
    float32 = "float32"
    float64 = "float64"

    def __str__(self) -> str:
        return self.value

    @property
    def numpy(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def itemsize(self) -> int:
        return self.numpy.itemsize

    @property
    def kind(self) -> str:
        return self.numpy.kind

    @property
    def is_float(self) -> bool:
        return self.kind == "f"


def get_dtype(value: Any) -> Dtype:
    """Return the :class:`Dtype` for ``value``.

    Accepts a ``Dtype``, a dtype name such as ``"float32"``, a NumPy dtype, or
    a NumPy/Python scalar type.
    """
    if isinstance(value, Dtype):
        return value
    try:
        name = np.dtype(value).name
    except TypeError as exc:
        raise DtypeError(f"Unknown dtype: {value!r}") from exc
    try:
        return Dtype(name)
    except ValueError as exc:
        raise DtypeError(f"Unsupported dtype: {name}") from exc


def check_equal_dtype(lhs: Dtype, rhs: Dtype) -> None:
    if lhs != rhs:
        raise DtypeError(f"Dtype mismatched: {lhs} != {rhs}")


bool_ = Dtype.bool_
int8 = Dtype.int8
int16 = Dtype.int16
int32 = Dtype.int32
int64 = Dtype.int64
uint8 = Dtype.uint8
float16 = Dtype.float16
float32 = Dtype.float32
float64 = Dtype.float64
