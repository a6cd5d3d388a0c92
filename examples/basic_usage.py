#!/usr/bin/env python3
"""
Basic usage example for dotgrid.

Demonstrates:
- Executor context manager
- Buffer allocation
- Elementwise multiply on the grid
- Two-stage dot product against the CPU reference
"""

import numpy as np
import dotgrid


def main():
    print("=" * 60)
    print("dotgrid - Basic Usage Example")
    print("=" * 60)
    print()

    print("Available backends:")
    print(f"  CPU: Always available")
    print(f"  Metal: {dotgrid.is_metal_available()}")
    print(f"  CUDA: {dotgrid.is_cuda_available()}")
    print(f"  Default: {dotgrid.get_default_backend()}")
    print()

    with dotgrid.Executor(backend='auto') as exec:
        print(f"Executor created: {exec}")
        print()

        size = 1000
        data_a = np.linspace(-1, 1, size, dtype=np.float32)
        data_b = np.linspace(2, -2, size, dtype=np.float32)

        buf_a = exec.allocate_from(data_a)
        buf_b = exec.allocate_from(data_b)
        buf_c = exec.allocate(size)
        print(f"Grid: {exec.grid(size)}")

        dotgrid.ops.vector_mul(exec, buf_a, buf_b, buf_c)
        products = buf_c.to_numpy()
        print(f"  products[:5] = {products[:5]}")
        np.testing.assert_array_equal(products, data_a * data_b)
        print("  ✓ Matches NumPy")
        print()

        total = dotgrid.ops.reduce_sum(exec, buf_c)
        reference = dotgrid.ops.cpu_dot(data_a, data_b)
        print(f"Dot product: {total}")
        print(f"CPU dot    : {reference}")
        assert total == reference
        print("  ✓ Matches CPU reference")

    print()
    print("Done.")


if __name__ == "__main__":
    main()
