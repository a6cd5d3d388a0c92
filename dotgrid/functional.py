"""
Functional API for PyTorch tensors.

Runs the elementwise multiply kernel and the dot product on PyTorch tensors.
Results come back on the device of the first input.

Example:
    >>> import torch
    >>> import dotgrid
    >>> from dotgrid import functional
    >>>
    >>> exec = dotgrid.Executor(backend="cpu")
    >>> a = torch.tensor([1.0, 2.0, 3.0])
    >>> b = torch.tensor([4.0, 5.0, 6.0])
    >>> functional.mul(exec, a, b)
    tensor([ 4., 10., 18.])
"""

import torch
from typing import Optional

from . import ops
from .executor import Executor
from .utils import tensor_to_buffer, buffer_to_tensor, validate_tensor_compatible


def _check_pair(input1: torch.Tensor, input2: torch.Tensor) -> None:
    validate_tensor_compatible(input1)
    validate_tensor_compatible(input2)

    if input1.shape != input2.shape:
        raise ValueError(f"Input shapes must match: {input1.shape} != {input2.shape}")


def mul(
    executor: Executor,
    input1: torch.Tensor,
    input2: torch.Tensor,
    out: Optional[torch.Tensor] = None
) -> torch.Tensor:
    """
    Element-wise multiplication: result = input1 * input2

    Args:
        executor: dotgrid executor
        input1: First input tensor
        input2: Second input tensor
        out: Optional output tensor (must match input shape)

    Returns:
        Result tensor with the shape of the inputs
    """
    _check_pair(input1, input2)

    buf_a, flat_a = tensor_to_buffer(executor, input1)
    buf_b, _ = tensor_to_buffer(executor, input2)
    buf_c = executor.allocate(flat_a.numel())

    try:
        ops.vector_mul(executor, buf_a, buf_b, buf_c)
        result = buffer_to_tensor(buf_c, input1.shape, device=input1.device)
    finally:
        for buf in (buf_a, buf_b, buf_c):
            buf.free()

    if out is not None:
        out.copy_(result)
        return out

    return result


def dot(
    executor: Executor,
    input1: torch.Tensor,
    input2: torch.Tensor,
    order: str = "sequential"
) -> torch.Tensor:
    """Dot product of two equal-shape tensors as a 0-d float32 tensor"""
    _check_pair(input1, input2)

    buf_a, _ = tensor_to_buffer(executor, input1)
    buf_b, _ = tensor_to_buffer(executor, input2)

    try:
        value = ops.dot(executor, buf_a, buf_b, order=order)
    finally:
        buf_a.free()
        buf_b.free()

    return torch.tensor(float(value), dtype=torch.float32, device=input1.device)
