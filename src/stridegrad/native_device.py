"""NumPy implementation of :class:`~stridegrad.device.Device`."""

# Buffers are flat ``uint8`` NumPy arrays. Every Array over a buffer is
# materialized on demand as an ``numpy.ndarray`` that aliases the buffer with
# the Array's byte offset and byte strides, so kernels writing through one
# view are visible through every other view of the same buffer.

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from .config import CONFIG, INDEX_MODES
from .device import Device, register_backend
from .errors import BoundsError

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .array import Array


class NativeDevice(Device):
    backend_name = "native"

    def __init__(self, index: int = 0, index_mode: Optional[str] = None) -> None:
        super().__init__(index)
        index_mode = index_mode or CONFIG.index_mode
        if index_mode not in INDEX_MODES:
            raise ValueError(f"Unknown index mode: {index_mode!r}")
        self.index_mode = index_mode

    def allocate(self, nbytes: int) -> np.ndarray:
        return np.empty(nbytes, dtype=np.uint8)

    def native(self, array: "Array") -> np.ndarray:
        dtype = array.dtype.numpy
        if array.size == 0:
            # Nothing to address; offsets of empty views may point past the buffer.
            return np.empty(array.shape, dtype=dtype)
        return np.ndarray(
            array.shape,
            dtype=dtype,
            buffer=array.data,
            offset=array.offset,
            strides=array.strides,
        )

    def from_native(self, value: Any, out: "Array") -> None:
        self.native(out)[...] = value

    def fill(self, out: "Array", value: Any) -> None:
        self.native(out)[...] = value

    def copy(self, a: "Array", out: "Array") -> None:
        self.native(out)[...] = self.native(a)

    def add(self, x1: "Array", x2: "Array", out: "Array") -> None:
        np.add(self.native(x1), self.native(x2), out=self.native(out))

    def _positions(self, indices: "Array", axis: int, dim: int) -> np.ndarray:
        idx = self.native(indices)
        if idx.size == 0:
            return idx
        if dim == 0:
            raise BoundsError(f"Cannot index into axis {axis} with size 0")
        if self.index_mode == "clip":
            return np.clip(idx, 0, dim - 1)
        if self.index_mode == "raise":
            bad = (idx < -dim) | (idx >= dim)
            if bad.any():
                first = int(idx[bad].flat[0])
                raise BoundsError(f"Index {first} is out of bounds for axis {axis} with size {dim}")
        return np.mod(idx, dim)

    def take(self, a: "Array", indices: "Array", axis: int, out: "Array") -> None:
        positions = self._positions(indices, axis, a.shape[axis])
        self.native(out)[...] = np.take(self.native(a), positions, axis=axis)

    def add_at(self, a: "Array", indices: "Array", axis: int, b: "Array", out: "Array") -> None:
        positions = self._positions(indices, axis, a.shape[axis])
        result = self.native(out)
        result[...] = self.native(a)
        key = (slice(None),) * axis + (positions,)
        # ufunc.at is unbuffered: repeated positions accumulate
        np.add.at(result, key, self.native(b))


register_backend("native", NativeDevice)
