"""
Tests for the Wendland quintic kernel.

Covers:
- Kernel values at the support ends
- Gradient cutoff outside 0 < q < 2
- Agreement between scalar, batched and numba evaluation
"""

import numpy as np
import pytest

from wcsph.core.kernel_vectorized import (WendlandQuinticKernel, kernel_value,
                                          kernel_gradient_factor, kernel_gradient_scaled)
from wcsph.core.kernel_numba import wendland_value, wendland_gradient_factor


class TestKernelValue:

    def test_value_at_origin_is_alpha_d(self):
        assert kernel_value(2.5, 0.0) == pytest.approx(2.5)

    def test_value_vanishes_at_support_edge(self):
        assert kernel_value(2.5, 2.0) == pytest.approx(0.0, abs=1e-15)

    def test_monotonically_decreasing(self):
        q = np.linspace(0.0, 2.0, 101)
        w = kernel_value(1.0, q)
        assert np.all(np.diff(w) <= 0.0)
        assert np.all(w >= 0.0)

    @pytest.mark.parametrize("dim", [2, 3])
    def test_normalization_integrates_to_one(self, dim):
        """∫W dV over the support should be 1 for the tabulated αD."""
        h = 0.7
        kernel = WendlandQuinticKernel(dim)
        r = np.linspace(0.0, 2.0 * h, 20001)
        w = kernel.W_vectorized(r, h)
        shell = 2.0 * np.pi * r if dim == 2 else 4.0 * np.pi * r ** 2
        f = w * shell
        integral = np.sum(0.5 * (f[1:] + f[:-1]) * np.diff(r))
        assert integral == pytest.approx(1.0, rel=1e-6)

    def test_zero_outside_support(self):
        kernel = WendlandQuinticKernel(2)
        assert kernel.W_vectorized(np.array([2.5]), 1.0)[0] == 0.0

    def test_self_contribution(self):
        kernel = WendlandQuinticKernel(2)
        assert kernel.W_self(0.5) == pytest.approx(7.0 / (4.0 * np.pi * 0.25))

    def test_unsupported_dimension(self):
        with pytest.raises(ValueError):
            WendlandQuinticKernel(1)


class TestKernelGradient:

    @pytest.mark.parametrize("q", [0.0, -0.1, 2.0, 2.5])
    def test_zero_outside_open_support(self, q):
        grad = kernel_gradient_scaled(1.0, q, np.array([0.3, -0.4]), 1.0)
        np.testing.assert_array_equal(grad, [0.0, 0.0])

    def test_matches_finite_difference(self):
        """∇W along xᵢⱼ equals dW/dr (up to the ε regularization)."""
        alpha_d, h = 1.3, 0.8
        for r in [0.1, 0.5, 1.0, 1.5]:
            q = r / h
            xij = np.array([r, 0.0])
            grad = kernel_gradient_scaled(alpha_d, q, xij, h)
            dr = 1e-7
            dwdr = (kernel_value(alpha_d, (r + dr) / h) - kernel_value(alpha_d, (r - dr) / h)) / (2 * dr)
            assert grad[0] == pytest.approx(dwdr, rel=1e-4)
            assert grad[1] == 0.0

    def test_points_toward_neighbor(self):
        """Inside the support W decreases with distance, so ∇ᵢW is antiparallel to xᵢⱼ."""
        xij = np.array([0.6, 0.8])
        grad = kernel_gradient_scaled(1.0, 1.0, xij, 1.0)
        assert np.dot(grad, xij) < 0.0

    def test_batched_matches_single(self):
        rng = np.random.default_rng(0)
        xij = rng.uniform(-1.0, 1.0, size=(20, 2))
        h = 0.6
        q = np.linalg.norm(xij, axis=1) / h
        batched = kernel_gradient_scaled(2.0, q, xij, h)
        for k in range(len(q)):
            np.testing.assert_allclose(batched[k], kernel_gradient_scaled(2.0, q[k], xij[k], h))

    def test_scalar_factor_returns_float(self):
        assert isinstance(kernel_gradient_factor(1.0, 1.0, 1.0), float)

    def test_numba_pointwise_agrees(self):
        for q in [0.0, 0.3, 1.0, 1.7, 2.0, 2.2]:
            assert wendland_value(1.7, q) == pytest.approx(kernel_value(1.7, q), rel=1e-14, abs=1e-15)
            assert wendland_gradient_factor(1.7, q, 0.5) == pytest.approx(
                kernel_gradient_factor(1.7, q, 0.5), rel=1e-14, abs=1e-15)
