"""
Backend utilities for dotgrid execution.

Provides backend type enumeration and detection utilities.
"""

import os
from enum import Enum


class BackendType(Enum):
    """Backend types for dotgrid execution."""

    CPU = "cpu"
    SERIAL = "serial"
    METAL = "metal"
    CUDA = "cuda"
    AUTO = "auto"

    def __str__(self) -> str:
        return self.value


VALID_BACKENDS = {"cpu", "serial", "metal", "cuda"}
GPU_BACKENDS = {"metal", "cuda"}


def is_metal_available() -> bool:
    """
    Check if Metal backend is available (Apple Silicon).

    Returns:
        True if on macOS with Apple Silicon and PyTorch reports MPS, False otherwise.
    """
    import platform
    import sys

    if not (sys.platform == "darwin" and platform.machine() == "arm64"):
        return False

    try:
        import torch
    except ImportError:
        return False

    return bool(torch.backends.mps.is_available())


def is_cuda_available() -> bool:
    """
    Check if CUDA backend is available (NVIDIA GPU).

    Returns:
        True if PyTorch is installed and sees a CUDA device, False otherwise.
    """
    try:
        import torch
    except ImportError:
        return False

    return bool(torch.cuda.is_available())


def get_default_backend() -> str:
    """
    Get the default backend based on configuration and available hardware.

    Returns, in order:
    1. $DOTGRID_BACKEND (if set)
    2. Metal (if on Apple Silicon)
    3. CUDA (if NVIDIA GPU available)
    4. CPU (fallback, always available)

    Returns:
        Backend string: "cpu", "serial", "metal", or "cuda"
    """
    configured = os.environ.get("DOTGRID_BACKEND", "").strip()
    if configured and configured.lower() != "auto":
        return validate_backend(configured)

    if is_metal_available():
        return "metal"
    elif is_cuda_available():
        return "cuda"
    else:
        return "cpu"


def validate_backend(backend) -> str:
    """
    Validate and normalize backend string.

    Args:
        backend: Backend string or BackendType ("cpu", "serial", "metal", "cuda", "auto")

    Returns:
        Normalized backend string

    Raises:
        ValueError: If backend is invalid
    """
    if isinstance(backend, BackendType):
        backend = backend.value

    backend_lower = str(backend).lower()

    if backend_lower == "auto":
        return get_default_backend()

    if backend_lower not in VALID_BACKENDS:
        raise ValueError(
            f"Invalid backend '{backend}'. "
            f"Must be one of: {', '.join(sorted(VALID_BACKENDS))}, or 'auto'"
        )

    return backend_lower


def torch_device(backend: str):
    """
    Map a GPU backend to its torch device.

    Raises:
        RuntimeError: If PyTorch or the device is not available
    """
    try:
        import torch
    except ImportError:
        raise RuntimeError(
            f"Backend '{backend}' is not available: PyTorch is not installed. "
            "Install with: pip install dotgrid[torch]"
        ) from None

    if backend == "cuda":
        if not torch.cuda.is_available():
            raise RuntimeError("Backend 'cuda' is not available: no CUDA device found")
        return torch.device("cuda")
    elif backend == "metal":
        if not is_metal_available():
            raise RuntimeError("Backend 'metal' is not available: MPS not supported here")
        return torch.device("mps")

    raise ValueError(f"Backend '{backend}' has no torch device")
