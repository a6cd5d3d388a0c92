"""
Execution grid sizing.

A grid covers the index range ``[0, n)`` with ``cdiv(n, threads_per_group)``
thread groups. The last group is clipped to ``n`` so no index ``>= n`` is
ever produced.
"""

import os
from collections import namedtuple
from typing import Iterator, Optional

DEFAULT_THREADS_PER_GROUP = 64

GridSize = namedtuple("GridSize", ["width", "height", "depth"])


def cdiv(n: int, d: int) -> int:
    """Ceiling division for non-negative ``n`` and positive ``d``."""
    return -(-n // d)


def size_1d(width: int) -> GridSize:
    """One-dimensional grid size (height and depth are 1)."""
    return GridSize(width, 1, 1)


def env_int(name: str, default: Optional[int]) -> Optional[int]:
    """
    Read a positive integer from the environment.

    Raises:
        ValueError: If the variable is set but not a positive integer
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}")
    return value


def default_threads_per_group() -> int:
    return env_int("DOTGRID_THREADS_PER_GROUP", DEFAULT_THREADS_PER_GROUP)


class Grid:
    """Flat 1-D execution grid over ``[0, n)``."""

    def __init__(self, n: int, threads_per_group: Optional[int] = None):
        if threads_per_group is None:
            threads_per_group = default_threads_per_group()
        if n < 0:
            raise ValueError(f"Grid length must be non-negative, got {n}")
        if threads_per_group < 1:
            raise ValueError(
                f"threads_per_group must be at least 1, got {threads_per_group}"
            )
        self.n = n
        self.threads_per_group = threads_per_group

    @property
    def num_groups(self) -> int:
        return cdiv(self.n, self.threads_per_group)

    @property
    def threadgroups(self) -> GridSize:
        return size_1d(self.num_groups)

    @property
    def threads(self) -> GridSize:
        return size_1d(self.threads_per_group)

    def group(self, g: int) -> slice:
        """Index range of thread group ``g``, clipped to the grid length."""
        if not 0 <= g < self.num_groups:
            raise IndexError(f"Thread group {g} out of range [0, {self.num_groups})")
        start = g * self.threads_per_group
        return slice(start, min(start + self.threads_per_group, self.n))

    def groups(self) -> Iterator[slice]:
        for g in range(self.num_groups):
            yield self.group(g)

    def indices(self) -> range:
        return range(self.n)

    def __len__(self) -> int:
        return self.n

    def __repr__(self) -> str:
        return (
            f"Grid(n={self.n}, threads_per_group={self.threads_per_group}, "
            f"groups={self.num_groups})"
        )
