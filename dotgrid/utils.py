"""
Utility functions for PyTorch tensor conversions.

Provides helper functions for converting between PyTorch tensors and dotgrid
buffers. Requires the ``torch`` extra.
"""

import torch
import numpy as np
from typing import Tuple, Optional

from .buffer import Buffer
from .executor import Executor


def tensor_to_buffer(
    executor: Executor,
    tensor: torch.Tensor,
    existing_buffer: Optional[Buffer] = None
) -> Tuple[Buffer, torch.Tensor]:
    """
    Convert PyTorch tensor to a dotgrid buffer.

    Args:
        executor: dotgrid executor
        tensor: PyTorch float32 tensor (any shape, any device)
        existing_buffer: Optional existing buffer to reuse

    Returns:
        Tuple of (buffer, flattened_tensor)

    Raises:
        ValueError: If tensor is not compatible
    """
    validate_tensor_compatible(tensor)

    flat_tensor = tensor.contiguous().view(-1)
    size = flat_tensor.numel()

    if existing_buffer is None:
        buffer = executor.allocate(size)
    else:
        if existing_buffer.size != size:
            raise ValueError(
                f"Existing buffer size {existing_buffer.size} doesn't match tensor size {size}"
            )
        buffer = existing_buffer

    buffer.from_numpy(flat_tensor.detach().cpu().numpy())

    return buffer, flat_tensor


def buffer_to_tensor(
    buffer: Buffer,
    shape: Tuple[int, ...],
    device: torch.device = torch.device('cpu'),
    requires_grad: bool = False
) -> torch.Tensor:
    """
    Convert a dotgrid buffer to a PyTorch tensor.

    Args:
        buffer: dotgrid buffer
        shape: Desired tensor shape
        device: PyTorch device for the result
        requires_grad: Whether tensor should require gradients

    Returns:
        PyTorch tensor with specified shape

    Raises:
        ValueError: If shape doesn't match buffer size
    """
    numel = int(np.prod(shape))
    if numel != buffer.size:
        raise ValueError(
            f"Shape {tuple(shape)} (numel={numel}) doesn't match buffer size {buffer.size}"
        )

    tensor = torch.from_numpy(buffer.to_numpy()).reshape(shape).to(device)

    if requires_grad:
        tensor = tensor.requires_grad_(True)

    return tensor


def validate_tensor_compatible(tensor: torch.Tensor) -> None:
    """
    Validate that tensor is compatible with dotgrid operations.

    Raises:
        TypeError: If tensor is not a torch.Tensor
        ValueError: If tensor is not float32
    """
    if not isinstance(tensor, torch.Tensor):
        raise TypeError(f"Expected torch.Tensor, got {type(tensor)}")

    if tensor.dtype != torch.float32:
        raise ValueError(
            f"Only float32 tensors supported, got {tensor.dtype}. "
            f"Convert with: tensor.float()"
        )


def match_device(
    tensor: torch.Tensor,
    backend: Optional[str] = None
) -> str:
    """
    Match PyTorch tensor device to a dotgrid backend.

    Args:
        tensor: PyTorch tensor
        backend: Optional backend override

    Returns:
        Backend string ('cpu', 'metal', 'cuda')
    """
    if backend is not None:
        return backend

    if tensor.device.type == 'cuda':
        return 'cuda'
    elif tensor.device.type == 'mps':  # Apple Metal Performance Shaders
        return 'metal'
    else:
        return 'cpu'


def create_executor_for_tensor(
    tensor: torch.Tensor,
    backend: Optional[str] = None
) -> Executor:
    """
    Create a dotgrid executor matching the PyTorch tensor's device.

    Example:
        >>> tensor = torch.randn(100).cuda()
        >>> exec = create_executor_for_tensor(tensor)  # CUDA executor
    """
    return Executor(backend=match_device(tensor, backend))
