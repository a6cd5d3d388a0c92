"""
Operation wrappers.

A dot product runs in two stages: ``vector_mul`` dispatches the elementwise
kernel over the grid, then ``reduce_sum`` sums the products on the host once
the dispatch has completed.

Example:
    >>> with dotgrid.Executor(backend="cpu") as exec:
    ...     a = exec.allocate_from(np.array([1, 2, 3], dtype=np.float32))
    ...     b = exec.allocate_from(np.array([4, 5, 6], dtype=np.float32))
    ...     float(dotgrid.ops.dot(exec, a, b))
    32.0
"""

import math
from typing import Iterable, Optional

import numpy as np

from .buffer import Buffer
from .executor import Executor
from .kernels import mul

SUMMATION_ORDERS = ("sequential", "pairwise", "exact")


def _check_sizes(*buffers: Buffer) -> None:
    sizes = [buf.size for buf in buffers]
    if len(set(sizes)) != 1:
        raise ValueError(f"Buffer sizes must match: {sizes}")


def vector_mul(
    executor: Executor,
    a: Buffer,
    b: Buffer,
    c: Buffer,
    indices: Optional[Iterable[int]] = None,
) -> None:
    """
    Element-wise multiplication: c[i] = a[i] * b[i]

    Binds a, b, c to slots 0, 1, 2 (a and b read-only) and dispatches one
    execution unit per index of ``c``.

    Args:
        executor: Executor owning the buffers
        a: First input buffer
        b: Second input buffer
        c: Output buffer
        indices: Compute only these indices; others are left untouched

    Raises:
        ValueError: If buffer sizes differ
    """
    _check_sizes(a, b, c)
    executor.dispatch(
        mul.vector_mul,
        [a, b, c],
        grid=executor.grid(c.size),
        indices=indices,
        read_only=(0, 1),
    )


def _sum(values: np.ndarray, order: str) -> np.float32:
    if order not in SUMMATION_ORDERS:
        raise ValueError(
            f"Invalid summation order '{order}'. "
            f"Must be one of: {', '.join(SUMMATION_ORDERS)}"
        )
    if values.size == 0:
        return np.float32(0.0)

    if order == "sequential":
        # ufunc.accumulate adds strictly left to right
        return np.add.accumulate(values, dtype=np.float32)[-1]
    elif order == "pairwise" or not np.isfinite(values).all():
        # fsum rejects inf - inf; NaN and Inf propagate as in IEEE-754
        return np.float32(np.sum(values, dtype=np.float32))
    return np.float32(math.fsum(values.astype(np.float64)))


def reduce_sum(executor: Executor, buf: Buffer, order: str = "sequential") -> np.float32:
    """
    Sum reduction on the host: result = sum(buf)

    Float addition is not associative, so the order is fixed:
    "sequential" (left to right in float32), "pairwise" (NumPy's pairwise
    float32 sum) or "exact" (correctly rounded fsum, cast to float32).

    Returns:
        The sum as numpy.float32; 0.0 for an empty buffer
    """
    executor._check_owned(buf)
    executor.synchronize()
    with np.errstate(all="ignore"):
        return _sum(buf.to_numpy(), order)


def dot(
    executor: Executor,
    a: Buffer,
    b: Buffer,
    out: Optional[Buffer] = None,
    order: str = "sequential",
) -> np.float32:
    """
    Dot product: sum(a[i] * b[i])

    Args:
        executor: Executor owning the buffers
        a: First input buffer
        b: Second input buffer
        out: Optional buffer for the elementwise products (kept after return)
        order: Summation order for the reduction stage

    Returns:
        The dot product as numpy.float32
    """
    if order not in SUMMATION_ORDERS:
        raise ValueError(
            f"Invalid summation order '{order}'. "
            f"Must be one of: {', '.join(SUMMATION_ORDERS)}"
        )

    products = out if out is not None else executor.allocate(a.size)
    try:
        vector_mul(executor, a, b, products)
        return reduce_sum(executor, products, order)
    finally:
        if out is None:
            products.free()


def cpu_dot(a: np.ndarray, b: np.ndarray) -> np.float32:
    """
    Reference dot product on the host.

    Accumulates float32 products left to right, matching ``dot`` with
    ``order="sequential"`` bit for bit.
    """
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    if a.shape != b.shape:
        raise ValueError(f"Input shapes must match: {a.shape} != {b.shape}")
    with np.errstate(all="ignore"):
        return _sum(np.multiply(a, b, dtype=np.float32).reshape(-1), "sequential")
