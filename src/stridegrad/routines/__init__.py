"""Differentiable routines."""
from .indexing import add_at, add_at_axis, at, take
from .math import add

__all__ = ["at", "take", "add_at", "add_at_axis", "add"]
