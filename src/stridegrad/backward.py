"""Registration of backward closures for differentiable routines.

A routine opens a :class:`BackwardBuilder` on the array it produced and
defines one closure per input that requires gradient::

    with BackwardBuilder("take", out) as bb:
        if a.is_backprop_required():
            def backward_a(bctx):
                bctx.input_grad = ...  # computed from bctx.output_grad()
            bb.define(a, backward_a)

Closures run later, during :meth:`Autograd.backward`. They must only use
values captured at definition time (shapes, dtypes, axes, index lists,
constant index arrays) plus the output gradient.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from .autograd import ArrayNode, OpNode, autograd
from .errors import GradientError

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .array import Array


class BackwardContext:
    """What a backward closure sees: the output gradient and a slot for the input gradient."""

    def __init__(self, op_name: str, input_node: ArrayNode, output_grad: "Array") -> None:
        self._op_name = op_name
        self._input_node = input_node
        self._output_grad = output_grad
        self._input_grad: Optional["Array"] = None

    @property
    def op_name(self) -> str:
        return self._op_name

    @property
    def input_node(self) -> ArrayNode:
        return self._input_node

    def output_grad(self) -> "Array":
        return self._output_grad

    @property
    def input_grad(self) -> Optional["Array"]:
        return self._input_grad

    @input_grad.setter
    def input_grad(self, value: "Array") -> None:
        if self._input_grad is not None:
            raise GradientError(f"Input gradient of {self._op_name} is already set")
        node = self._input_node
        if value.shape != node.shape:
            raise GradientError(
                f"Gradient shape {value.shape} of {self._op_name} does not match input shape {node.shape}"
            )
        if value.dtype != node.dtype:
            raise GradientError(
                f"Gradient dtype {value.dtype} of {self._op_name} does not match input dtype {node.dtype}"
            )
        self._input_grad = value


def _summed(
    first: Callable[[BackwardContext], None],
    second: Callable[[BackwardContext], None],
) -> Callable[[BackwardContext], None]:
    def backward_sum(bctx: BackwardContext) -> None:
        from .routines.math import add

        grads = []
        for fn in (first, second):
            sub = BackwardContext(bctx.op_name, bctx.input_node, bctx.output_grad())
            fn(sub)
            if sub.input_grad is None:
                raise GradientError(f"Backward of {bctx.op_name} did not assign an input gradient")
            grads.append(sub.input_grad)
        bctx.input_grad = add(grads[0], grads[1])

    return backward_sum


class BackwardBuilder:
    """Collects backward closures for ``output`` and records them on exit."""

    def __init__(self, op_name: str, output: "Array") -> None:
        self._op_name = op_name
        self._output = output
        self._functions: List[Tuple[ArrayNode, Callable[[BackwardContext], None]]] = []

    def __enter__(self) -> "BackwardBuilder":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.finalize()
        return False

    def define(self, x: "Array", fn: Callable[[BackwardContext], None]) -> None:
        """Register ``fn`` as the backward closure for input ``x``."""
        node = x._node
        if node is None or not x.is_backprop_required():
            raise GradientError(f"{self._op_name}: input does not require gradient")
        for i, (existing, prev) in enumerate(self._functions):
            if existing is node:
                # same array passed twice: keep one closure that sums both
                self._functions[i] = (node, _summed(prev, fn))
                return
        self._functions.append((node, fn))

    def finalize(self) -> None:
        if not self._functions:
            return
        out = self._output
        if out._node is not None:
            raise GradientError(f"{self._op_name}: output is already part of a graph")
        node = ArrayNode(out.shape, out.dtype, out.device)
        op = OpNode(self._op_name, node, list(self._functions))
        node.creator = op
        out._node = node
        autograd.tape.record(op)
        autograd.tape.track(out, node)
