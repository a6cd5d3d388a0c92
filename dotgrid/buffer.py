"""
Fixed-length float32 buffers owned by an executor.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class Buffer:
    """
    A fixed-length, index-addressable float32 buffer.

    Storage is a 1-D ``numpy.ndarray`` on host backends and a ``torch.Tensor``
    on the executor's device for GPU backends. Buffers are created with
    ``Executor.allocate()``, not directly.
    """

    dtype = np.float32

    def __init__(self, executor, size: int, storage):
        self.executor = executor
        self.size = size
        self._data = storage
        self._freed = False

    @property
    def nbytes(self) -> int:
        return self.size * np.dtype(self.dtype).itemsize

    @property
    def on_device(self) -> bool:
        return not isinstance(self._data, np.ndarray)

    def _check_freed(self):
        if self._freed:
            raise RuntimeError("Buffer has been freed")

    def from_numpy(self, array: np.ndarray) -> None:
        """
        Copy a float32 NumPy array into the buffer.

        Raises:
            TypeError: If array is not a NumPy array
            ValueError: If dtype is not float32 or the size doesn't match
        """
        self._check_freed()

        if not isinstance(array, np.ndarray):
            raise TypeError(f"Expected numpy.ndarray, got {type(array)}")
        if array.dtype != np.float32:
            raise ValueError(
                f"Only float32 arrays supported, got dtype {array.dtype}. "
                f"Convert with: array.astype(np.float32)"
            )
        if array.size != self.size:
            raise ValueError(
                f"Array size {array.size} doesn't match buffer size {self.size}"
            )

        flat = np.ascontiguousarray(array).reshape(-1)
        if self.on_device:
            import torch

            self._data.copy_(torch.from_numpy(flat.copy()))
        else:
            self._data[:] = flat

    def to_numpy(self) -> np.ndarray:
        """Return a host copy of the buffer contents."""
        self._check_freed()
        if self.on_device:
            return self._data.detach().cpu().numpy().copy()
        return self._data.copy()

    def fill(self, value: float) -> None:
        self._check_freed()
        if self.on_device:
            self._data.fill_(float(value))
        else:
            self._data.fill(np.float32(value))

    def copy_from(self, other: "Buffer") -> None:
        """Copy the contents of another buffer of the same size."""
        self._check_freed()
        other._check_freed()
        if other.size != self.size:
            raise ValueError(
                f"Source buffer size {other.size} doesn't match buffer size {self.size}"
            )
        self.from_numpy(other.to_numpy())

    def bind(self, read_only: bool = False):
        """
        Storage handed to a kernel.

        Host buffers bound read-only are passed as non-writeable views, so a
        kernel writing an input slot raises instead of mutating it.
        """
        self._check_freed()
        if read_only and not self.on_device:
            view = self._data.view()
            view.flags.writeable = False
            return view
        return self._data

    def free(self) -> None:
        if not self._freed:
            self._data = None
            self._freed = True
            logger.debug("Freed buffer of %d elements", self.size)

    def __len__(self) -> int:
        return self.size

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.free()
        return False

    def __repr__(self) -> str:
        state = "freed" if self._freed else ("device" if self.on_device else "host")
        return f"Buffer(size={self.size}, dtype=float32, {state})"
