"""
Integration tests for dotgrid.

Tests the two-stage dot product end-to-end: allocate, transfer, multiply,
reduce, read.
"""

import warnings

import pytest
import numpy as np

import dotgrid as dg


class TestIntegrationWorkflows:
    """Test complete workflows end-to-end."""

    def test_complete_dot_product_workflow(self):
        """Test workflow: allocate, transfer, multiply, reduce."""
        with dg.Executor(backend='cpu') as exec:
            buf_a = exec.allocate(3)
            buf_b = exec.allocate(3)
            buf_c = exec.allocate(3)

            buf_a.from_numpy(np.array([1, 2, 3], dtype=np.float32))
            buf_b.from_numpy(np.array([4, 5, 6], dtype=np.float32))

            dg.ops.vector_mul(exec, buf_a, buf_b, buf_c)
            np.testing.assert_array_equal(buf_c.to_numpy(), [4, 10, 18])

            assert dg.ops.reduce_sum(exec, buf_c) == np.float32(32.0)

    @pytest.mark.parametrize("backend", ["serial", "cpu"])
    def test_dot_matches_cpu_reference(self, backend):
        """Test grid dot equals the sequential CPU dot bit for bit."""
        rng = np.random.default_rng(2024)
        data_a = rng.uniform(-1, 1, 5000).astype(np.float32)
        data_b = rng.uniform(-1, 1, 5000).astype(np.float32)

        with dg.Executor(backend=backend, threads_per_group=64, max_workers=4) as exec:
            buf_a = exec.allocate_from(data_a)
            buf_b = exec.allocate_from(data_b)
            result = dg.ops.dot(exec, buf_a, buf_b)

        expected = dg.ops.cpu_dot(data_a, data_b)
        assert isinstance(result, np.float32)
        assert result == expected

    def test_dot_keeps_products_in_out_buffer(self):
        """Test dot writes products to a caller-supplied buffer."""
        with dg.Executor(backend='cpu') as exec:
            buf_a = exec.allocate_from(np.array([-1.5, 0, 2], dtype=np.float32))
            buf_b = exec.allocate_from(np.array([2, 100, -3], dtype=np.float32))
            out = exec.allocate(3)

            result = dg.ops.dot(exec, buf_a, buf_b, out=out)

            np.testing.assert_array_equal(out.to_numpy(), [-3, 0, -6])
            assert result == np.float32(-9.0)
            assert not out._freed

    def test_empty_dot(self):
        """Test dot of empty vectors is zero."""
        with dg.Executor(backend='cpu') as exec:
            buf_a = exec.allocate(0)
            buf_b = exec.allocate(0)
            assert dg.ops.dot(exec, buf_a, buf_b) == np.float32(0.0)

    def test_large_scale_operation(self):
        """Test large-scale operation (100K elements)."""
        size = 100000
        data_a = np.random.randn(size).astype(np.float32)
        data_b = np.random.randn(size).astype(np.float32)

        with dg.Executor(backend='cpu') as exec:
            buf_a = exec.allocate_from(data_a)
            buf_b = exec.allocate_from(data_b)
            buf_c = exec.allocate(size)

            dg.ops.vector_mul(exec, buf_a, buf_b, buf_c)

            np.testing.assert_array_equal(buf_c.to_numpy(), data_a * data_b)

    def test_chained_dispatches(self):
        """Test the output of one dispatch feeding the next."""
        data = np.linspace(-2, 2, 300, dtype=np.float32)
        with dg.Executor(backend='cpu', threads_per_group=32) as exec:
            buf_x = exec.allocate_from(data)
            buf_sq = exec.allocate(300)
            buf_cube = exec.allocate(300)

            dg.ops.vector_mul(exec, buf_x, buf_x, buf_sq)
            dg.ops.vector_mul(exec, buf_sq, buf_x, buf_cube)

            np.testing.assert_array_equal(buf_cube.to_numpy(), (data * data) * data)


class TestReduction:
    """Test the reduction stage."""

    @pytest.mark.parametrize("order", ["sequential", "pairwise", "exact"])
    def test_reduce_sum_exact_integers(self, order):
        """Test all orders agree where float32 sums are exact."""
        with dg.Executor(backend='cpu') as exec:
            buf = exec.allocate_from(np.arange(100, dtype=np.float32))
            assert dg.ops.reduce_sum(exec, buf, order=order) == np.float32(4950.0)

    def test_summation_order_matters(self):
        """Test sequential and exact orders differ under cancellation."""
        data = np.array([1e8, 1.0, -1e8], dtype=np.float32)
        with dg.Executor(backend='cpu') as exec:
            buf = exec.allocate_from(data)
            assert dg.ops.reduce_sum(exec, buf, order="sequential") == np.float32(0.0)
            assert dg.ops.reduce_sum(exec, buf, order="exact") == np.float32(1.0)

    def test_reduce_empty_buffer(self):
        """Test an empty buffer sums to zero."""
        with dg.Executor(backend='cpu') as exec:
            assert dg.ops.reduce_sum(exec, exec.allocate(0)) == np.float32(0.0)

    def test_invalid_order(self):
        """Test unknown summation orders raise."""
        with dg.Executor(backend='cpu') as exec:
            buf = exec.allocate(4)
            with pytest.raises(ValueError, match="Invalid summation order"):
                dg.ops.reduce_sum(exec, buf, order="random")
            with pytest.raises(ValueError, match="Invalid summation order"):
                dg.ops.dot(exec, buf, buf, order="random")

    @pytest.mark.parametrize("order", ["sequential", "pairwise", "exact"])
    def test_opposite_infinities_sum_to_nan(self, order):
        """Test inf + -inf gives NaN in every order, without warnings."""
        data = np.array([np.inf, -np.inf], dtype=np.float32)
        with dg.Executor(backend='cpu') as exec:
            buf = exec.allocate_from(data)
            with warnings.catch_warnings():
                warnings.simplefilter("error")
                result = dg.ops.reduce_sum(exec, buf, order=order)
        assert isinstance(result, np.float32)
        assert np.isnan(result)

    @pytest.mark.parametrize("order", ["sequential", "pairwise", "exact"])
    def test_special_values_propagate(self, order):
        """Test NaN and a single infinity propagate through the sum."""
        with dg.Executor(backend='cpu') as exec:
            buf_nan = exec.allocate_from(np.array([1.0, np.nan, 2.0], dtype=np.float32))
            buf_inf = exec.allocate_from(np.array([1.0, -np.inf, 2.0], dtype=np.float32))
            assert np.isnan(dg.ops.reduce_sum(exec, buf_nan, order=order))
            assert dg.ops.reduce_sum(exec, buf_inf, order=order) == np.float32(-np.inf)

    def test_exact_dot_with_opposite_infinities(self):
        """Test dot products of inf and -inf terms give NaN."""
        with dg.Executor(backend='cpu') as exec:
            buf_a = exec.allocate_from(np.array([np.inf, np.inf], dtype=np.float32))
            buf_b = exec.allocate_from(np.array([1.0, -1.0], dtype=np.float32))
            assert np.isnan(dg.ops.dot(exec, buf_a, buf_b, order="exact"))


class TestCpuDot:
    """Test the host reference dot product."""

    def test_simple(self):
        """Test [1,2,3] . [4,5,6] = 32."""
        assert dg.ops.cpu_dot([1, 2, 3], [4, 5, 6]) == np.float32(32.0)

    def test_matches_python_loop(self):
        """Test sequential float32 accumulation."""
        rng = np.random.default_rng(3)
        a = rng.uniform(-1, 1, 200).astype(np.float32)
        b = rng.uniform(-1, 1, 200).astype(np.float32)

        expected = np.float32(0.0)
        for x, y in zip(a, b):
            expected = np.float32(expected + np.float32(x * y))

        assert dg.ops.cpu_dot(a, b) == expected

    def test_shape_mismatch(self):
        """Test mismatched shapes raise."""
        with pytest.raises(ValueError, match="shapes must match"):
            dg.ops.cpu_dot(np.ones(3), np.ones(4))


@pytest.mark.skipif(not dg.is_cuda_available(), reason="CUDA not available")
class TestCudaBackend:
    """Test the CUDA backend against the serial reference."""

    def test_dot_matches_cpu_reference(self):
        """Test CUDA products and dot match the host exactly."""
        rng = np.random.default_rng(11)
        data_a = rng.uniform(-1, 1, 10000).astype(np.float32)
        data_b = rng.uniform(-1, 1, 10000).astype(np.float32)

        with dg.Executor(backend='cuda') as exec:
            buf_a = exec.allocate_from(data_a)
            buf_b = exec.allocate_from(data_b)
            buf_c = exec.allocate(10000)
            dg.ops.vector_mul(exec, buf_a, buf_b, buf_c)
            np.testing.assert_array_equal(buf_c.to_numpy(), data_a * data_b)
            assert dg.ops.dot(exec, buf_a, buf_b) == dg.ops.cpu_dot(data_a, data_b)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
