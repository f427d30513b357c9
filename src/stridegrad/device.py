"""Device abstraction and backend registry.

A device owns array buffers and runs the kernels the routines delegate to.
Routines never touch buffers directly; they call the kernel methods below on
``array.device``.
"""

# DEVICE IMPLEMENTATION GUIDELINES:
# ---------------------------------
# - Implement every kernel of :class:`Device`; the base raises
#   ``NotImplementedError``.
# - Kernels write into ``out`` and return nothing. ``out`` is always
#   allocated by the caller with the right shape and dtype.
# - Kernels do not record gradients; the routines do.
# - Register the backend class with :func:`register_backend` after its
#   definition.

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from .config import CONFIG

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .array import Array


class Device:
    backend_name: str = "abstract"

    def __init__(self, index: int = 0) -> None:
        self.index = index

    @property
    def name(self) -> str:
        return f"{self.backend_name}:{self.index}"

    def __repr__(self) -> str:
        return f"Device({self.name!r})"

    # --- memory -------------------------------------------------------------
    def allocate(self, nbytes: int) -> Any:
        """Return a fresh flat buffer of ``nbytes`` bytes."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement allocate()")

    def native(self, array: "Array") -> Any:
        """Return a backend-native strided view of ``array`` (no copy)."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement native()")

    def from_native(self, value: Any, out: "Array") -> None:
        """Copy a backend-native value into ``out``."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement from_native()")

    # --- kernels ------------------------------------------------------------
    def fill(self, out: "Array", value: Any) -> None:
        raise NotImplementedError(f"{self.__class__.__name__} must implement fill()")

    def copy(self, a: "Array", out: "Array") -> None:
        raise NotImplementedError(f"{self.__class__.__name__} must implement copy()")

    def add(self, x1: "Array", x2: "Array", out: "Array") -> None:
        """``out = x1 + x2``; ``out`` may alias either operand."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement add()")

    def take(self, a: "Array", indices: "Array", axis: int, out: "Array") -> None:
        """Gather ``a`` along ``axis`` at ``indices`` into ``out``."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement take()")

    def add_at(self, a: "Array", indices: "Array", axis: int, b: "Array", out: "Array") -> None:
        """``out = a`` with ``b`` accumulated along ``axis`` at ``indices``."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement add_at()")


# --- Backend Registry Pattern ---
# Each backend module registers itself here at import time.
BACKEND_REGISTRY: Dict[str, type] = {}
_DEVICES: Dict[str, Device] = {}


def register_backend(name: str, backend_cls: type) -> None:
    """Register a device class under a backend name such as ``"native"``."""
    BACKEND_REGISTRY[name] = backend_cls


def get_device(name: Optional[str | Device] = None) -> Device:
    """Return the device called ``name`` (``"<backend>:<index>"`` or ``"<backend>"``).

    ``None`` returns the configured default device. Devices are created once
    per name and reused afterwards.
    """
    if isinstance(name, Device):
        return name
    if name is None:
        name = CONFIG.default_device
    backend_name, _, index = name.partition(":")
    index = int(index) if index else 0
    key = f"{backend_name}:{index}"
    device = _DEVICES.get(key)
    if device is None:
        if backend_name == "native" and backend_name not in BACKEND_REGISTRY:
            from . import native_device  # noqa: F401  registers itself
        backend_cls = BACKEND_REGISTRY.get(backend_name)
        if backend_cls is None:
            raise ValueError(f"Unknown backend: {backend_name!r}")
        device = backend_cls(index)
        _DEVICES[key] = device
    return device


def get_default_device() -> Device:
    return get_device(None)
