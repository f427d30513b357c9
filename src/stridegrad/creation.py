"""Array creation routines. Every result is C-contiguous with offset 0."""
from __future__ import annotations

from typing import Any, Optional

import numpy as np

from .array import Array
from .device import Device, get_device
from .dtype import Dtype, float32, get_dtype, int64
from .shape import contiguous_strides, make_shape, shape_size


def empty(shape: Any, dtype: Any = float32, device: Device | str | None = None) -> Array:
    shape = make_shape(shape)
    dtype = get_dtype(dtype)
    device = get_device(device)
    data = device.allocate(shape_size(shape) * dtype.itemsize)
    return Array(shape, contiguous_strides(shape, dtype.itemsize), dtype, device, data)


def empty_like(a: Array, device: Device | str | None = None) -> Array:
    return empty(a.shape, a.dtype, a.device if device is None else device)


def full(shape: Any, fill_value: Any, dtype: Any = float32, device: Device | str | None = None) -> Array:
    out = empty(shape, dtype, device)
    out.device.fill(out, fill_value)
    return out


def zeros(shape: Any, dtype: Any = float32, device: Device | str | None = None) -> Array:
    return full(shape, 0, dtype, device)


def ones(shape: Any, dtype: Any = float32, device: Device | str | None = None) -> Array:
    return full(shape, 1, dtype, device)


def zeros_like(a: Array, device: Device | str | None = None) -> Array:
    return zeros(a.shape, a.dtype, a.device if device is None else device)


def ones_like(a: Array, device: Device | str | None = None) -> Array:
    return ones(a.shape, a.dtype, a.device if device is None else device)


def array(obj: Any, dtype: Any = None, device: Device | str | None = None) -> Array:
    """Copy ``obj`` (an :class:`Array`, NumPy array, scalar or nested list) into a new array.

    Without ``dtype`` the NumPy-inferred dtype is kept, except that Python
    floats become ``float32`` and Python ints become ``int64``.
    """
    if isinstance(obj, Array):
        obj = obj.to_numpy()
    if dtype is not None:
        value = np.asarray(obj, dtype=get_dtype(dtype).numpy)
    elif isinstance(obj, np.ndarray):
        value = obj
    else:
        value = np.asarray(obj)
        if value.dtype.kind == "f":
            value = value.astype(np.float32)
        elif value.dtype.kind == "i":
            value = value.astype(np.int64)
    out = empty(value.shape, get_dtype(value.dtype), device)
    out.device.from_native(value, out)
    return out


def arange(
    start: Any,
    stop: Any = None,
    step: Any = 1,
    dtype: Optional[Dtype | str] = None,
    device: Device | str | None = None,
) -> Array:
    if stop is None:
        start, stop = 0, start
    if dtype is None:
        is_int = all(isinstance(v, (int, np.integer)) for v in (start, stop, step))
        dtype = int64 if is_int else float32
    return array(np.arange(start, stop, step), dtype=dtype, device=device)
