"""View indexing, gather and scatter-accumulate with their backward rules.

``at`` and ``take`` are the public routines. The two ``add_at`` variants are
the adjoints used by their backward closures and are differentiable
themselves, so gradients of gradients flow as well:

* ``at(a, idx)``: ``a`` gets ``add_at(zeros, idx, g)``.
* ``add_at(a, idx, b)``: ``a`` gets ``g``, ``b`` gets ``at(g, idx)``.
* ``take(a, ind, axis)``: ``a`` gets ``add_at_axis(zeros, ind, axis, g)``.
* ``add_at_axis(a, ind, axis, b)``: ``a`` gets ``g``, ``b`` gets ``take(g, ind, axis)``.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ..array import Array
from ..array_index import ArrayIndex, ArrayIndexTag
from ..backward import BackwardBuilder, BackwardContext
from ..creation import empty, empty_like, zeros
from ..dtype import check_equal_dtype, int64
from ..errors import BoundsError, DimensionError, DtypeError
from ..logger import get_stridegrad_logger
from ..shape import check_equal_shape, normalize_axis

logger = get_stridegrad_logger()


def _count_consumed(indices: Sequence[ArrayIndex]) -> int:
    return sum(1 for index in indices if index.tag is not ArrayIndexTag.NEW_AXIS)


def _view(a: Array, indices: Sequence[ArrayIndex]) -> Array:
    """Strided view of ``a`` selected by ``indices``; no data is copied."""
    consumed = _count_consumed(indices)
    if consumed > a.ndim:
        raise DimensionError(
            f"Too many indices for array: array is {a.ndim}-dimensional, but {consumed} were indexed"
        )

    out_shape: List[int] = []
    out_strides: List[int] = []
    out_offset = a.offset
    i_in = 0
    for index in indices:
        tag = index.tag
        if tag is ArrayIndexTag.SINGLE_ELEMENT:
            dim = a.shape[i_in]
            i = index.index
            if i < -dim or dim <= i:
                raise BoundsError(f"Index {i} is out of bounds for axis {i_in} with size {dim}")
            out_offset += a.strides[i_in] * ((i + dim) % dim)
            i_in += 1
        elif tag is ArrayIndexTag.SLICE:
            s = index.get_slice()
            dim = a.shape[i_in]
            out_offset += a.strides[i_in] * s.get_start(dim)
            out_shape.append(s.get_length(dim))
            out_strides.append(a.strides[i_in] * s.step)
            i_in += 1
        elif tag is ArrayIndexTag.NEW_AXIS:
            out_shape.append(1)
            out_strides.append(0)
        else:  # pragma: no cover - closed variant
            raise TypeError(f"Unknown index tag: {tag}")
    out_shape.extend(a.shape[i_in:])
    out_strides.extend(a.strides[i_in:])

    logger.debug(f"at: {a.shape} {list(indices)} -> shape={tuple(out_shape)} offset={out_offset}")
    return Array(out_shape, out_strides, a.dtype, a.device, a.data, out_offset)


def at(a: Array, indices: Sequence[ArrayIndex]) -> Array:
    """Return the view of ``a`` selected by ``indices``.

    The result shares ``a``'s buffer. Raises :class:`BoundsError` for a single
    element index outside ``[-dim, dim)`` and :class:`DimensionError` when
    more axes are indexed than ``a`` has.
    """
    indices = tuple(indices)
    out = _view(a, indices)

    with BackwardBuilder("get_item", out) as bb:
        if a.is_backprop_required():
            a_shape = a.shape
            a_dtype = a.dtype

            def backward_a(bctx: BackwardContext) -> None:
                gout = bctx.output_grad()
                gin = zeros(a_shape, a_dtype, gout.device)
                bctx.input_grad = add_at(gin, indices, gout)

            bb.define(a, backward_a)

    return out


def add_at(a: Array, indices: Sequence[ArrayIndex], b: Array) -> Array:
    """Return a copy of ``a`` with ``b`` added into the view selected by ``indices``.

    Neither input is modified. ``b`` must have exactly the shape of the
    selected view; there is no broadcasting.
    """
    check_equal_dtype(a.dtype, b.dtype)
    indices = tuple(indices)

    out = a.as_constant(copy=True)
    out_view = _view(out, indices)
    check_equal_shape(out_view.shape, b.shape, op="add_at", operand="b")

    a.device.add(b, out_view, out_view)

    with BackwardBuilder("add_at", out) as bb:
        if a.is_backprop_required():
            def backward_a(bctx: BackwardContext) -> None:
                bctx.input_grad = bctx.output_grad()

            bb.define(a, backward_a)
        if b.is_backprop_required():
            def backward_b(bctx: BackwardContext) -> None:
                bctx.input_grad = at(bctx.output_grad(), indices)

            bb.define(b, backward_b)

    return out


def _check_indices_dtype(indices: Array) -> None:
    if indices.dtype != int64:
        raise DtypeError(f"Only {int64} is supported as indices, but given {indices.dtype}")


def _take_shape(a_shape: Tuple[int, ...], indices_shape: Tuple[int, ...], axis: int) -> Tuple[int, ...]:
    return a_shape[:axis] + indices_shape + a_shape[axis + 1:]


def add_at_axis(a: Array, indices: Array, axis: int, b: Array) -> Array:
    """Return a copy of ``a`` with ``b`` accumulated along ``axis`` at ``indices``.

    Used by the backward of :func:`take`. Repeated indices accumulate.
    """
    if not 0 <= axis < a.ndim:
        raise DimensionError(f"Axis {axis} is out of bounds for array of dimension {a.ndim}")
    if b.ndim != indices.ndim + a.ndim - 1:
        raise DimensionError(
            f"Addend must have {indices.ndim + a.ndim - 1} dimensions, but has {b.ndim}"
        )
    check_equal_dtype(a.dtype, b.dtype)
    _check_indices_dtype(indices)
    check_equal_shape(_take_shape(a.shape, indices.shape, axis), b.shape, op="add_at", operand="b")

    out = empty_like(a)
    logger.debug(f"add_at: axis={axis} indices={indices.shape} b={b.shape} -> {out.shape}")
    a.device.add_at(a, indices, axis, b, out)

    with BackwardBuilder("add_at", out) as bb:
        if a.is_backprop_required():
            def backward_a(bctx: BackwardContext) -> None:
                bctx.input_grad = bctx.output_grad()

            bb.define(a, backward_a)
        if b.is_backprop_required():
            def backward_b(bctx: BackwardContext) -> None:
                bctx.input_grad = take(bctx.output_grad(), indices, axis)

            bb.define(b, backward_b)

    return out


def take(a: Array, indices: Array, axis: int = 0) -> Array:
    """Gather slices of ``a`` along ``axis`` at positions ``indices``.

    The result has shape ``a.shape[:axis] + indices.shape + a.shape[axis+1:]``.
    ``indices`` must be ``int64``. Index values outside the axis follow the
    device's index mode.
    """
    _check_indices_dtype(indices)
    axis_norm = normalize_axis(axis, a.ndim)

    out_shape = _take_shape(a.shape, indices.shape, axis_norm)
    out = empty(out_shape, a.dtype, a.device)
    logger.debug(f"take: axis={axis_norm} indices={indices.shape} -> {out_shape}")
    a.device.take(a, indices, axis_norm, out)

    with BackwardBuilder("take", out) as bb:
        if a.is_backprop_required():
            a_shape = a.shape

            def backward_a(bctx: BackwardContext) -> None:
                gout = bctx.output_grad()
                gin = zeros(a_shape, gout.dtype, gout.device)
                bctx.input_grad = add_at_axis(gin, indices, axis_norm, gout)

            bb.define(a, backward_a)

    return out
