"""Strided N-dimensional array over a device-owned buffer."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional, Sequence

import numpy as np

from .device import Device, get_device
from .dtype import Dtype, get_dtype
from .errors import DimensionError, DtypeError, GradientError
from .shape import Shape, Strides, contiguous_strides, shape_size

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .array_index import ArrayIndex
    from .autograd import ArrayNode


class Array:
    """An array is a view: ``shape``, byte ``strides`` and byte ``offset`` into ``data``.

    Any number of arrays may share one buffer. Constructing an ``Array``
    never copies; use :meth:`as_constant` with ``copy=True`` or the creation
    routines to get a fresh buffer.

    Parameters
    ----------
    shape, strides:
        Sequences of equal length. Strides are in bytes and may be zero or
        negative.
    dtype:
        Anything :func:`~stridegrad.dtype.get_dtype` accepts.
    device:
        A :class:`~stridegrad.device.Device` or device name.
    data:
        The flat buffer, as returned by ``device.allocate``.
    offset:
        Byte offset of element ``(0, ..., 0)`` within ``data``.
    """

    def __init__(
        self,
        shape: Sequence[int],
        strides: Sequence[int],
        dtype: Any,
        device: Device | str | None,
        data: Any,
        offset: int = 0,
    ) -> None:
        shape = tuple(int(d) for d in shape)
        strides = tuple(int(s) for s in strides)
        if len(shape) != len(strides):
            raise DimensionError(f"Shape {shape} and strides {strides} must have the same length")
        self._shape: Shape = shape
        self._strides: Strides = strides
        self._dtype: Dtype = get_dtype(dtype)
        self._device: Device = get_device(device)
        self._data = data
        self._offset = int(offset)
        self._node: Optional["ArrayNode"] = None

    # --- geometry -------------------------------------------------------------
    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def strides(self) -> Strides:
        return self._strides

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def dtype(self) -> Dtype:
        return self._dtype

    @property
    def device(self) -> Device:
        return self._device

    @property
    def data(self) -> Any:
        return self._data

    @property
    def ndim(self) -> int:
        return len(self._shape)

    @property
    def size(self) -> int:
        return shape_size(self._shape)

    @property
    def itemsize(self) -> int:
        return self._dtype.itemsize

    @property
    def nbytes(self) -> int:
        return self.size * self.itemsize

    @property
    def is_contiguous(self) -> bool:
        if self.size == 0:
            return True
        expected = contiguous_strides(self._shape, self.itemsize)
        return all(d == 1 or s == e for d, s, e in zip(self._shape, self._strides, expected))

    def __len__(self) -> int:
        if not self._shape:
            raise TypeError("len() of unsized object")
        return self._shape[0]

    # --- indexing ---------------------------------------------------------------
    def at(self, indices: Sequence["ArrayIndex"]) -> "Array":
        from .routines.indexing import at

        return at(self, indices)

    def __getitem__(self, key: Any) -> "Array":
        from .array_index import to_array_indices
        from .routines.indexing import at

        return at(self, to_array_indices(key))

    def take(self, indices: "Array", axis: int = 0) -> "Array":
        from .routines.indexing import take

        return take(self, indices, axis)

    def __add__(self, other: "Array") -> "Array":
        from .routines.math import add

        if not isinstance(other, Array):
            return NotImplemented
        return add(self, other)

    # --- autograd ---------------------------------------------------------------
    def require_grad(self) -> "Array":
        """Start tracking gradients for this array. Returns ``self``."""
        from .autograd import autograd

        if not self._dtype.is_float:
            raise DtypeError(f"Array with dtype {self._dtype} cannot require gradient")
        if self._node is not None:
            raise GradientError("Array already requires gradient")
        self._node = autograd.tape.create_array_node(self)
        return self

    @property
    def requires_grad(self) -> bool:
        return self._node is not None

    @property
    def is_constant(self) -> bool:
        return self._node is None

    def is_backprop_required(self) -> bool:
        from .autograd import autograd

        return self._node is not None and autograd.is_grad_enabled()

    @property
    def grad(self) -> Optional["Array"]:
        return None if self._node is None else self._node.grad

    def cleargrad(self) -> None:
        if self._node is not None:
            self._node.grad = None

    def backward(
        self,
        grad_output: Optional["Array"] = None,
        *,
        retain_graph: bool = False,
        enable_double_backprop: bool = False,
    ) -> None:
        from .autograd import autograd

        autograd.backward(
            self,
            grad_output,
            retain_graph=retain_graph,
            enable_double_backprop=enable_double_backprop,
        )

    def as_constant(self, copy: bool = False) -> "Array":
        """Return an array cut off from the graph.

        Without ``copy`` the result shares this array's buffer and geometry;
        with ``copy`` it is a fresh contiguous array holding the same values.
        """
        if not copy:
            return Array(self._shape, self._strides, self._dtype, self._device, self._data, self._offset)
        from .creation import empty_like

        out = empty_like(self)
        self._device.copy(self, out)
        return out

    # --- conversion -------------------------------------------------------------
    def to_numpy(self) -> np.ndarray:
        return np.array(self._device.native(self), copy=True)

    def tolist(self) -> List[Any]:
        return self.to_numpy().tolist()

    def __repr__(self) -> str:
        body = np.array2string(self.to_numpy(), separator=", ", prefix="array(")
        extra = ", requires_grad=True" if self.requires_grad else ""
        return f"array({body}, shape={self._shape}, dtype={self._dtype}, device={self._device.name!r}{extra})"
