"""
Vector Multiplication (Hadamard) - Element-wise multiplication

Operation: result[i] = a[i] * b[i]

First stage of a dot product. Summing ``result`` is a separate stage
(see ``dotgrid.ops.reduce_sum``).
"""

from ..kernel import DeviceArray, f32, get_global_id


def elementwise_mul(idx, a, b):
    """Product of ``a`` and ``b`` at ``idx``"""
    return a[idx] * b[idx]


def vector_mul(a: DeviceArray[f32], b: DeviceArray[f32], result: DeviceArray[f32]):
    """Multiply two vectors element-wise: result = a * b"""
    # No bounds check: the grid never produces an index past len(result).
    idx = get_global_id()
    result[idx] = elementwise_mul(idx, a, b)
