"""
Kernel Primitives

Common functions and types for dotgrid kernels.
Kernels should import from this module.

Example usage:
    from dotgrid.kernel import DeviceArray, f32, get_global_id

    def my_kernel(a: DeviceArray[f32], out: DeviceArray[f32]):
        idx = get_global_id()
        out[idx] = a[idx]

The global id handed to a kernel is either an ``int`` (a single execution
unit) or a contiguous ``slice`` (a thread group executed as one vectorized
batch). Kernel bodies written with plain indexing work unchanged for both.
"""

import threading
from typing import Any, Callable, Sequence, Union

GlobalId = Union[int, slice]


# Type aliases for kernel signatures
class DeviceArray:
    """Device array type annotation for buffers bound to a kernel"""
    def __class_getitem__(cls, item):
        return cls


f32 = float  # 32-bit floating point
u32 = int    # 32-bit unsigned integer

_state = threading.local()


def get_global_id() -> GlobalId:
    """
    Get global thread ID of the running execution unit.

    Returns the index (or the index slice of a thread group) assigned by
    the executor. Each worker thread sees only its own id.
    """
    try:
        return _state.global_id
    except AttributeError:
        raise RuntimeError(
            "get_global_id() called outside of a kernel dispatch"
        ) from None


def invoke(kernel: Callable[..., Any], args: Sequence[Any], global_id: GlobalId) -> None:
    """Run one execution unit of ``kernel`` with ``global_id`` bound."""
    previous = getattr(_state, "global_id", None)
    _state.global_id = global_id
    try:
        kernel(*args)
    finally:
        if previous is None:
            del _state.global_id
        else:
            _state.global_id = previous
