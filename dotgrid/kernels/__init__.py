"""Kernels dispatched by ``dotgrid.Executor``."""

from .mul import elementwise_mul, vector_mul

__all__ = ["elementwise_mul", "vector_mul"]
