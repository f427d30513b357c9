"""Differentiable strided arrays with view indexing, gather and scatter-accumulate."""
from __future__ import annotations

from .config import CONFIG, StridegradConfig, load_config
from .errors import (
    BoundsError,
    DimensionError,
    DtypeError,
    GradientError,
    ShapeError,
    StridegradError,
)
from .dtype import (
    Dtype,
    bool_,
    float16,
    float32,
    float64,
    get_dtype,
    int8,
    int16,
    int32,
    int64,
    uint8,
)
from .slice import Slice
from .array_index import ArrayIndex, ArrayIndexTag, NewAxis, SingleElement, newaxis
from .device import Device, get_default_device, get_device, register_backend
from .native_device import NativeDevice
from .array import Array
from .creation import (
    arange,
    array,
    empty,
    empty_like,
    full,
    ones,
    ones_like,
    zeros,
    zeros_like,
)
from .autograd import autograd, no_grad
from .backward import BackwardBuilder, BackwardContext
from .routines import add, add_at, add_at_axis, at, take

__version__ = "0.1.0"
