"""Reverse-mode autodiff over recorded backward closures.

The implementation has two pieces:

* ``GradTape`` records a bipartite graph: array nodes feed op nodes, op
  nodes produce array nodes. Each op node carries one backward closure per
  differentiable input, registered by :class:`~stridegrad.backward.BackwardBuilder`.
* ``Autograd`` walks the tape from an output in reverse topological order,
  calls each closure with the gradient of the op's output and accumulates
  the gradients it assigns.
"""

from __future__ import annotations

import weakref
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Generator, Iterable, List, Optional, Tuple

import networkx as nx

from .device import Device
from .dtype import Dtype
from .errors import GradientError
from .logger import get_stridegrad_logger
from .shape import Shape

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .array import Array
    from .backward import BackwardContext

logger = get_stridegrad_logger()


@dataclass(eq=False)
class ArrayNode:
    """Graph-side record of an array that requires gradient."""

    shape: Shape
    dtype: Dtype
    device: Device
    creator: Optional["OpNode"] = None
    grad: Optional["Array"] = None

    @property
    def is_leaf(self) -> bool:
        return self.creator is None


@dataclass(eq=False)
class OpNode:
    """Single operation in the backward graph."""

    name: str
    output: ArrayNode
    backward_functions: List[Tuple[ArrayNode, Callable[["BackwardContext"], None]]] = field(default_factory=list)

    @property
    def inputs(self) -> List[ArrayNode]:
        return [node for node, _ in self.backward_functions]


class GradTape:
    """Graph of array and op nodes recorded while gradients are enabled."""

    def __init__(self) -> None:
        self.graph = nx.DiGraph()
        self._op_index = 0

    def __len__(self) -> int:
        return sum(1 for _, kind in self.graph.nodes(data="kind") if kind == "op")

    def create_array_node(self, array: "Array") -> ArrayNode:
        """Register ``array`` as a leaf node in the graph."""
        node = ArrayNode(array.shape, array.dtype, array.device)
        self.graph.add_node(node, kind="array")
        self.track(array, node)
        return node

    def track(self, array: "Array", node: ArrayNode) -> None:
        """Discard ``node`` once ``array`` is garbage collected."""
        finalizer = weakref.finalize(array, self.discard, node)
        finalizer.atexit = False

    def discard(self, node: ArrayNode) -> None:
        """Mark ``node`` as belonging to a dead array and prune what it kept alive.

        The node stays while an op still consumes it, so backward from a live
        output can still pass through it.
        """
        if not self.graph.has_node(node):
            return
        self.graph.nodes[node]["alive"] = False
        self._prune([node])

    def _prune(self, nodes: Iterable[ArrayNode]) -> None:
        # a node goes once nothing consumes it and it is either a leaf or dead;
        # a dead node takes its creator op with it
        stack = list(nodes)
        while stack:
            node = stack.pop()
            if not self.graph.has_node(node) or self.graph.out_degree(node):
                continue
            creators = list(self.graph.predecessors(node))
            if creators and self.graph.nodes[node].get("alive", True):
                continue
            self.graph.remove_node(node)
            for op in creators:
                stack.extend(op.inputs)
                self.graph.remove_node(op)

    def record(self, op: OpNode) -> None:
        """Append ``op`` with edges from its inputs and to its output."""
        self.graph.add_node(op, kind="op", index=self._op_index, op=op.name)
        self._op_index += 1
        for inp in op.inputs:
            if not self.graph.has_node(inp):
                self.graph.add_node(inp, kind="array")
            self.graph.add_edge(inp, op)
        self.graph.add_node(op.output, kind="array")
        self.graph.add_edge(op, op.output)

    def traverse(self, node: ArrayNode) -> List[OpNode]:
        """Return the op nodes ``node`` depends on, in reverse topological order.

        An op appears only after every op consuming its output, so the
        gradient of that output is complete by the time the op is visited.
        """
        if not self.graph.has_node(node):
            return []
        reachable = nx.ancestors(self.graph, node)
        reachable.add(node)
        order = list(nx.topological_sort(self.graph.subgraph(reachable)))
        return [n for n in reversed(order) if isinstance(n, OpNode)]

    def release(self, ops: Iterable[OpNode]) -> None:
        """Drop ``ops`` from the graph; their outputs become leaves.

        Array nodes left without edges are dropped as well.
        """
        ops = list(ops)
        for op in ops:
            if self.graph.has_node(op):
                self.graph.remove_node(op)
            op.output.creator = None
        for op in ops:
            self._prune([op.output, *op.inputs])

    def clear(self) -> None:
        self.graph.clear()
        self._op_index = 0


class Autograd:
    """Reverse-mode autodiff engine."""

    def __init__(self) -> None:
        self.tape = GradTape()
        self._no_grad_depth = 0

    @contextmanager
    def no_grad(self) -> Generator[None, None, None]:
        """Context manager to temporarily disable gradient recording."""
        self._no_grad_depth += 1
        try:
            yield
        finally:
            self._no_grad_depth -= 1

    def is_grad_enabled(self) -> bool:
        return self._no_grad_depth == 0

    # ------------------------------------------------------------------
    # traversal
    # ------------------------------------------------------------------
    def _run(
        self,
        output: "Array",
        grad_output: Optional["Array"],
        enable_double_backprop: bool,
    ) -> Tuple[Dict[ArrayNode, "Array"], List[OpNode]]:
        from .backward import BackwardContext
        from .creation import ones_like
        from .routines.math import add
        from .shape import check_equal_shape
        from .dtype import check_equal_dtype

        root = output._node
        if root is None:
            raise GradientError("Cannot backprop from an array that does not require gradient")
        if grad_output is None:
            grad_output = ones_like(output)
        else:
            check_equal_shape(output.shape, grad_output.shape, op="backward", operand="grad_output")
            check_equal_dtype(output.dtype, grad_output.dtype)

        ops = self.tape.traverse(root)
        grads: Dict[ArrayNode, "Array"] = {root: grad_output}
        scope = nullcontext() if enable_double_backprop else self.no_grad()
        with scope:
            for op in ops:
                gout = grads.get(op.output)
                if gout is None:
                    continue
                logger.debug(f"backward: {op.name} -> {len(op.backward_functions)} input(s)")
                for input_node, fn in op.backward_functions:
                    bctx = BackwardContext(op.name, input_node, gout)
                    fn(bctx)
                    gin = bctx.input_grad
                    if gin is None:
                        raise GradientError(f"Backward of {op.name} did not assign an input gradient")
                    if input_node in grads:
                        grads[input_node] = add(grads[input_node], gin)
                    else:
                        grads[input_node] = gin
        return grads, ops

    def backward(
        self,
        output: "Array",
        grad_output: Optional["Array"] = None,
        *,
        retain_graph: bool = False,
        enable_double_backprop: bool = False,
    ) -> None:
        """Accumulate gradients of ``output`` into every leaf it depends on.

        Leaf gradients add up across calls until ``cleargrad``. Unless
        ``retain_graph`` is set, the traversed ops are released from the tape.
        """
        from .routines.math import add

        grads, ops = self._run(output, grad_output, enable_double_backprop)
        scope = nullcontext() if enable_double_backprop else self.no_grad()
        with scope:
            for node, g in grads.items():
                if not node.is_leaf:
                    continue
                node.grad = g if node.grad is None else add(node.grad, g)
        if not retain_graph:
            self.tape.release(ops)

    def grad(
        self,
        output: "Array",
        inputs: "Array" | Iterable["Array"],
        grad_output: Optional["Array"] = None,
        *,
        retain_graph: bool = False,
        allow_unused: bool = False,
        enable_double_backprop: bool = False,
    ) -> List[Optional["Array"]]:
        """Return gradients of ``output`` with respect to ``inputs``.

        Leaf ``.grad`` attributes are left untouched.
        """
        from .array import Array

        if isinstance(inputs, Array):
            inputs = [inputs]
        else:
            inputs = list(inputs)
        for idx, inp in enumerate(inputs):
            if inp._node is None:
                raise GradientError(f"Input at index {idx} does not require gradient")
        grads, ops = self._run(output, grad_output, enable_double_backprop)
        results: List[Optional["Array"]] = []
        for idx, inp in enumerate(inputs):
            g = grads.get(inp._node)
            if g is None and not allow_unused:
                raise GradientError(f"No gradient found for input at index {idx}")
            results.append(g)
        if not retain_graph:
            self.tape.release(ops)
        return results


autograd = Autograd()
no_grad = autograd.no_grad
