from __future__ import annotations

from ..array import Array
from ..backward import BackwardBuilder, BackwardContext
from ..creation import empty
from ..dtype import check_equal_dtype
from ..shape import check_equal_shape


def add(x1: Array, x2: Array) -> Array:
    """Elementwise ``x1 + x2`` for arrays of identical shape and dtype."""
    check_equal_dtype(x1.dtype, x2.dtype)
    check_equal_shape(x1.shape, x2.shape, op="add", operand="x2")

    out = empty(x1.shape, x1.dtype, x1.device)
    x1.device.add(x1, x2, out)

    def backward_identity(bctx: BackwardContext) -> None:
        bctx.input_grad = bctx.output_grad()

    with BackwardBuilder("add", out) as bb:
        if x1.is_backprop_required():
            bb.define(x1, backward_identity)
        if x2.is_backprop_required():
            bb.define(x2, backward_identity)

    return out
