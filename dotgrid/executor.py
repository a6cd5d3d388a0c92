"""
Executor: buffer allocation and kernel dispatch.

An executor owns the buffers it allocates and runs kernels over a flat
grid, one execution unit per index:

- ``serial``: each index in grid order on the calling thread
- ``cpu``: thread groups split across a thread pool, each group run as one
  vectorized batch
- ``cuda`` / ``metal``: the whole grid as one fused torch launch on the device
"""

import itertools
import logging
import operator
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from .backend import GPU_BACKENDS, torch_device, validate_backend
from .buffer import Buffer
from .grid import Grid, cdiv, default_threads_per_group, env_int
from .kernel import invoke

logger = logging.getLogger(__name__)

_handles = itertools.count(1)


class Executor:
    """
    Allocates buffers and dispatches kernels on one backend.

    Example:
        >>> with Executor(backend="cpu") as exec:
        ...     a = exec.allocate_from(np.array([1, 2, 3], dtype=np.float32))
        ...     b = exec.allocate_from(np.array([4, 5, 6], dtype=np.float32))
        ...     c = exec.allocate(3)
        ...     dotgrid.ops.vector_mul(exec, a, b, c)
        ...     c.to_numpy()
        array([ 4., 10., 18.], dtype=float32)
    """

    def __init__(
        self,
        backend="auto",
        threads_per_group: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        self.backend = validate_backend(backend)
        self.device = torch_device(self.backend) if self.backend in GPU_BACKENDS else None

        if threads_per_group is None:
            threads_per_group = default_threads_per_group()
        if threads_per_group < 1:
            raise ValueError(
                f"threads_per_group must be at least 1, got {threads_per_group}"
            )
        if max_workers is None:
            max_workers = env_int("DOTGRID_MAX_WORKERS", os.cpu_count() or 1)
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.threads_per_group = threads_per_group
        self.max_workers = max_workers
        self.handle = next(_handles)
        self._buffers = []
        self._pool = None
        self._pool_lock = threading.Lock()
        self._freed = False

        logger.debug(
            "Executor %d created: backend=%s threads_per_group=%d max_workers=%d",
            self.handle, self.backend, threads_per_group, max_workers,
        )

    def _check_freed(self):
        if self._freed:
            raise RuntimeError("Executor has been freed")

    def _check_owned(self, buf: Buffer):
        if not isinstance(buf, Buffer):
            raise TypeError(f"Expected dotgrid.Buffer, got {type(buf)}")
        if buf.executor is not self:
            raise ValueError("Buffer belongs to another executor")
        buf._check_freed()

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate(self, size: int) -> Buffer:
        """Allocate a zero-filled float32 buffer of ``size`` elements."""
        self._check_freed()
        size = operator.index(size)
        if size < 0:
            raise ValueError(f"Buffer size must be non-negative, got {size}")

        if self.device is None:
            storage = np.zeros(size, dtype=np.float32)
        else:
            import torch

            storage = torch.zeros(size, dtype=torch.float32, device=self.device)

        buf = Buffer(self, size, storage)
        self._buffers = [b for b in self._buffers if not b._freed]
        self._buffers.append(buf)
        logger.debug("Executor %d allocated buffer of %d elements", self.handle, size)
        return buf

    def allocate_from(self, array: np.ndarray) -> Buffer:
        """Allocate a buffer holding a copy of ``array``."""
        if not isinstance(array, np.ndarray):
            raise TypeError(f"Expected numpy.ndarray, got {type(array)}")
        buf = self.allocate(array.size)
        try:
            buf.from_numpy(array)
        except (TypeError, ValueError):
            buf.free()
            raise
        return buf

    def grid(self, n: int) -> Grid:
        return Grid(n, self.threads_per_group)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(
        self,
        kernel: Callable,
        buffers: Sequence[Buffer],
        grid: Optional[Grid] = None,
        indices: Optional[Iterable[int]] = None,
        read_only: Iterable[int] = (),
    ) -> None:
        """
        Run ``kernel`` once per grid index with ``buffers`` bound in slot order.

        Args:
            kernel: Kernel function reading its index from ``get_global_id()``
            buffers: Buffers bound positionally to the kernel's parameters
            grid: Execution grid (defaults to the length of the last buffer)
            indices: Run only these indices, in this order
            read_only: Slots bound as non-writeable inputs

        Raises:
            ValueError: If an explicit index is out of range or repeated
        """
        self._check_freed()
        for buf in buffers:
            self._check_owned(buf)

        if grid is None:
            grid = self.grid(buffers[-1].size if buffers else 0)

        name = getattr(kernel, "__name__", repr(kernel))
        read_only = set(read_only)
        args = [buf.bind(read_only=slot in read_only) for slot, buf in enumerate(buffers)]

        if indices is not None:
            order = self._check_indices(indices, grid.n)
            logger.debug(
                "Executor %d dispatching %s over %d explicit indices",
                self.handle, name, len(order),
            )
            self._run_serial(kernel, args, order)
            if self.device is not None:
                self.synchronize()
            return

        logger.debug("Executor %d dispatching %s over %r", self.handle, name, grid)

        if grid.n == 0:
            return
        if self.backend == "serial":
            self._run_serial(kernel, args, grid.indices())
        elif self.backend == "cpu":
            self._run_groups(kernel, args, grid)
        else:
            invoke(kernel, args, slice(0, grid.n))
            self.synchronize()

    @staticmethod
    def _check_indices(indices: Iterable[int], n: int) -> list:
        order = [operator.index(i) for i in indices]
        for i in order:
            if not 0 <= i < n:
                raise ValueError(f"Index {i} out of range [0, {n})")
        if len(set(order)) != len(order):
            raise ValueError("An index was dispatched more than once")
        return order

    @staticmethod
    def _run_serial(kernel: Callable, args: list, order: Iterable[int]) -> None:
        # NaN/Inf results are defined IEEE-754 outcomes, not errors.
        with np.errstate(all="ignore"):
            for i in order:
                invoke(kernel, args, i)

    @staticmethod
    def _run_batch(kernel: Callable, args: list, groups: Sequence[slice]) -> None:
        with np.errstate(all="ignore"):
            for group in groups:
                invoke(kernel, args, group)

    def _run_groups(self, kernel: Callable, args: list, grid: Grid) -> None:
        groups = list(grid.groups())
        workers = min(self.max_workers, len(groups))

        if workers == 1:
            self._run_batch(kernel, args, groups)
            return

        per_worker = cdiv(len(groups), workers)
        batches = [groups[k:k + per_worker] for k in range(0, len(groups), per_worker)]

        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix=f"dotgrid-{self.handle}",
                )
            pool = self._pool

        futures = [pool.submit(self._run_batch, kernel, args, batch) for batch in batches]
        for future in futures:
            future.result()

    def synchronize(self) -> None:
        """Block until all device work has completed."""
        self._check_freed()
        if self.backend == "cuda":
            import torch

            torch.cuda.synchronize(self.device)
        elif self.backend == "metal":
            import torch

            torch.mps.synchronize()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """Free all buffers and worker threads. Safe to call more than once."""
        if self._freed:
            return
        for buf in self._buffers:
            buf.free()
        self._buffers = []
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=True)
        self._freed = True
        logger.debug("Executor %d cleaned up", self.handle)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
        return False

    def __repr__(self) -> str:
        state = "freed" if self._freed else f"{len(self._buffers)} buffers"
        return f"Executor(handle={self.handle}, backend='{self.backend}', {state})"
