"""Per-axis selectors used by view indexing.

An index expression is a sequence of :class:`ArrayIndex` values, each one of
three kinds:

* ``SINGLE_ELEMENT`` picks one position and drops the axis,
* ``SLICE`` keeps the axis, restricted to a :class:`~stridegrad.slice.Slice`,
* ``NEW_AXIS`` inserts a length-1 axis without consuming an input axis.
"""
from __future__ import annotations

import enum
import numbers
import operator
from typing import Any, List, Optional

from .slice import Slice

newaxis = None


class ArrayIndexTag(enum.Enum):
    SINGLE_ELEMENT = 1
    SLICE = 2
    NEW_AXIS = 3


class ArrayIndex:
    __slots__ = ("_tag", "_index", "_slice")

    def __init__(self, tag: ArrayIndexTag, index: int = 0, slice_: Optional[Slice] = None) -> None:
        self._tag = tag
        self._index = index
        self._slice = slice_

    @classmethod
    def single_element(cls, index: int) -> "ArrayIndex":
        return cls(ArrayIndexTag.SINGLE_ELEMENT, index=operator.index(index))

    @classmethod
    def slice(cls, start: Optional[int] = None, stop: Optional[int] = None, step: int = 1) -> "ArrayIndex":
        return cls(ArrayIndexTag.SLICE, slice_=Slice(start, stop, step))

    @classmethod
    def new_axis(cls) -> "ArrayIndex":
        return cls(ArrayIndexTag.NEW_AXIS)

    @property
    def tag(self) -> ArrayIndexTag:
        return self._tag

    @property
    def index(self) -> int:
        if self._tag is not ArrayIndexTag.SINGLE_ELEMENT:
            raise AttributeError(f"{self!r} has no element index")
        return self._index

    def get_slice(self) -> Slice:
        if self._tag is not ArrayIndexTag.SLICE:
            raise AttributeError(f"{self!r} has no slice")
        return self._slice

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArrayIndex):
            return NotImplemented
        return (self._tag, self._index, self._slice) == (other._tag, other._index, other._slice)

    def __hash__(self) -> int:
        return hash((self._tag, self._index, self._slice))

    def __repr__(self) -> str:
        if self._tag is ArrayIndexTag.SINGLE_ELEMENT:
            return f"SingleElement({self._index})"
        if self._tag is ArrayIndexTag.SLICE:
            return repr(self._slice)
        return "NewAxis"


def SingleElement(index: int) -> ArrayIndex:
    return ArrayIndex.single_element(index)


def NewAxis() -> ArrayIndex:
    return ArrayIndex.new_axis()


def _to_array_index(item: Any) -> ArrayIndex:
    if isinstance(item, ArrayIndex):
        return item
    if item is None:
        return ArrayIndex.new_axis()
    if isinstance(item, Slice):
        return ArrayIndex(ArrayIndexTag.SLICE, slice_=item)
    if isinstance(item, slice):
        try:
            return ArrayIndex(ArrayIndexTag.SLICE, slice_=Slice.from_slice(item))
        except TypeError as exc:
            raise IndexError(f"Slice bounds must be integers or None, got {item!r}") from exc
    # bool is an Integral but would read as a mask in NumPy
    if isinstance(item, numbers.Integral) and not isinstance(item, bool):
        return ArrayIndex.single_element(int(item))
    raise IndexError(
        "Only integers, slices (`:`), and stridegrad.newaxis (`None`) are valid indices, "
        f"got {type(item).__name__}"
    )


def to_array_indices(key: Any) -> List[ArrayIndex]:
    """Convert a ``__getitem__`` key into a list of :class:`ArrayIndex`."""
    if isinstance(key, tuple):
        return [_to_array_index(item) for item in key]
    return [_to_array_index(key)]
