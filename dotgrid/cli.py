#!/usr/bin/env python3
"""
Dot Product Benchmark CLI

Times the grid-dispatched dot product against the host reference on random
vectors and checks that both agree.
Usage: dotgrid-bench [--size N] [--iterations K] [--backend NAME] [-v]
"""

import argparse
import logging
import sys
import time

import numpy as np

from .executor import Executor
from .grid import default_threads_per_group
from .ops import SUMMATION_ORDERS, cpu_dot, dot


def _format_elapsed(seconds: float) -> str:
    if seconds >= 1.0:
        return f"{seconds:.3f}s"
    return f"{seconds * 1000:.3f}ms"


def run_iteration(executor: Executor, rng: np.random.Generator, size: int, order: str) -> bool:
    """Run one benchmark iteration and print its report. Returns True on agreement."""
    rand_start = time.perf_counter()
    a = rng.uniform(-1.0, 1.0, size).astype(np.float32)
    b = rng.uniform(-1.0, 1.0, size).astype(np.float32)
    rand_elapsed = time.perf_counter() - rand_start

    grid_start = time.perf_counter()
    buf_a = executor.allocate_from(a)
    buf_b = executor.allocate_from(b)
    try:
        result = dot(executor, buf_a, buf_b, order=order)
    finally:
        buf_a.free()
        buf_b.free()
    grid_elapsed = time.perf_counter() - grid_start

    cpu_start = time.perf_counter()
    cpu_result = cpu_dot(a, b)
    cpu_elapsed = time.perf_counter() - cpu_start

    print(f"Vector time : {_format_elapsed(rand_elapsed)}")
    print()
    print(f"Grid dot    : {result}")
    print(f"Grid time   : {_format_elapsed(grid_elapsed)}")
    print()
    print(f"CPU dot     : {cpu_result}")
    print(f"CPU time    : {_format_elapsed(cpu_elapsed)}")

    return bool(result == cpu_result)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='dotgrid - Benchmark grid dot product against the CPU',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One million elements, once
  dotgrid-bench

  # Loop forever on the CUDA backend
  dotgrid-bench --size 100000000 --iterations 0 --backend cuda

  # Reproducible run with debug logging
  dotgrid-bench --seed 42 -v
        """
    )

    parser.add_argument('--size', type=int, default=1_000_000, help='Vector length')
    parser.add_argument('--iterations', type=int, default=1,
                        help='Number of iterations (0 loops forever)')
    parser.add_argument('--backend', default='auto',
                        help='Backend: cpu, serial, metal, cuda or auto')
    parser.add_argument('--threads-per-group', type=int, default=None,
                        help=f'Units per thread group (default: {default_threads_per_group()})')
    parser.add_argument('--seed', type=int, default=None, help='Random seed')
    parser.add_argument('--order', choices=SUMMATION_ORDERS, default='sequential',
                        help='Summation order of the reduction stage')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    if args.size < 0:
        print(f"❌ --size must be non-negative, got {args.size}", file=sys.stderr)
        return 1
    if args.iterations < 0:
        print(f"❌ --iterations must be non-negative, got {args.iterations}", file=sys.stderr)
        return 1

    try:
        executor = Executor(backend=args.backend, threads_per_group=args.threads_per_group)
    except (ValueError, RuntimeError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    rng = np.random.default_rng(args.seed)

    with executor:
        if args.verbose:
            print(f"🔄 {executor!r}, size={args.size}, order={args.order}")

        iteration = 0
        while args.iterations == 0 or iteration < args.iterations:
            iteration += 1
            agreed = run_iteration(executor, rng, args.size, args.order)
            print()

            if agreed:
                continue
            if args.order == "sequential":
                print("❌ Grid and CPU dot products differ", file=sys.stderr)
                return 1
            print(f"⚠️  Grid ({args.order}) and CPU (sequential) dot products differ in rounding")

    print(f"✅ {iteration} iteration(s) completed")
    return 0


if __name__ == '__main__':
    sys.exit(main())
