"""
dotgrid

Grid-dispatched elementwise multiply kernel and the two-stage dot product
built on it, with NumPy buffers on the CPU and optional PyTorch devices
(CUDA, Metal).

Example:
    >>> import dotgrid
    >>> import numpy as np
    >>>
    >>> with dotgrid.Executor() as exec:
    ...     buf_a = exec.allocate(1024)
    ...     buf_b = exec.allocate(1024)
    ...     buf_c = exec.allocate(1024)
    ...
    ...     buf_a.from_numpy(np.random.randn(1024).astype(np.float32))
    ...     buf_b.from_numpy(np.random.randn(1024).astype(np.float32))
    ...
    ...     dotgrid.ops.vector_mul(exec, buf_a, buf_b, buf_c)
    ...     total = dotgrid.ops.reduce_sum(exec, buf_c)
"""

__version__ = "0.1.0"

# Core components
from .executor import Executor
from .buffer import Buffer
from .grid import Grid, size_1d
from . import kernels
from . import ops
from . import backend

# Re-export backend utilities for convenience
from .backend import BackendType, is_metal_available, is_cuda_available, get_default_backend

__all__ = [
    # Core classes
    "Executor",
    "Buffer",
    "Grid",
    "size_1d",
    # Modules
    "kernels",
    "ops",
    "backend",
    # Backend utilities
    "BackendType",
    "is_metal_available",
    "is_cuda_available",
    "get_default_backend",
    # Metadata
    "__version__",
]
