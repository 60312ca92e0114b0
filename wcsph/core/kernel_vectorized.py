"""
Vectorized Wendland quintic kernel for weakly-compressible SPH.

Implements with numpy broadcasting:
- Kernel evaluation W(q)
- Kernel gradient ∇ᵢW scaled onto the separation vector
- Single pairs and whole interaction lists alike
"""

import numpy as np

# Regularization of q·h in the gradient denominator
GRADIENT_EPS = 1e-6


def kernel_value(alpha_d, q):
    """Wendland quintic kernel value.

    W(q) = αD (1 - q/2)⁴ (2q + 1)

    Only meaningful for q in [0, 2]; the neighbor list guarantees it.

    Args:
        alpha_d: Kernel normalization αD
        q: Normalized distance r/h, scalar or array

    Returns:
        Kernel value(s) with the shape of q
    """
    return alpha_d * (1.0 - q / 2.0) ** 4 * (2.0 * q + 1.0)


def kernel_gradient_factor(alpha_d, q, h):
    """Scalar factor F so that ∇ᵢWᵢⱼ = xᵢⱼ · F.

    F = αD 5 (q-2)³ q / (8h (qh + ε)) for 0 < q < 2, else exactly 0.
    """
    q = np.asarray(q, dtype=np.float64)
    inside = (q > 0.0) & (q < 2.0)
    fac = alpha_d * 5.0 * (q - 2.0) ** 3 * q / (8.0 * h * (q * h + GRADIENT_EPS))
    fac = np.where(inside, fac, 0.0)
    return fac if fac.ndim else float(fac)


def kernel_gradient_scaled(alpha_d, q, xij, h):
    """Kernel gradient with respect to particle i.

    Args:
        alpha_d: Kernel normalization αD
        q: Normalized distance, scalar or shape (M,)
        xij: Separation xᵢ - xⱼ, shape (D,) or (M, D)
        h: Smoothing length

    Returns:
        Gradient with the shape of xij
    """
    fac = kernel_gradient_factor(alpha_d, q, h)
    xij = np.asarray(xij, dtype=np.float64)
    if np.ndim(fac) == 0:
        return xij * fac
    return xij * fac[:, np.newaxis]


class WendlandQuinticKernel:
    """Wendland quintic (C2) kernel with support radius 2h.

    W(q) = αD (1 - q/2)⁴ (2q + 1),  0 ≤ q ≤ 2

    where q = r/h and αD = 7/(4πh²) in 2D or 21/(16πh³) in 3D.
    """

    def __init__(self, dim: int = 2):
        """Initialize kernel with dimension-specific normalization.

        Args:
            dim: Spatial dimension (2 or 3)
        """
        self.dim = dim
        if dim == 2:
            self.norm_factor = 7.0 / (4.0 * np.pi)
        elif dim == 3:
            self.norm_factor = 21.0 / (16.0 * np.pi)
        else:
            raise ValueError(f"Unsupported dimension: {dim}")

    def normalization(self, h: float) -> float:
        """αD for smoothing length h."""
        return self.norm_factor / (h ** self.dim)

    def W_vectorized(self, r: np.ndarray, h: float) -> np.ndarray:
        """Kernel value from distances, zero outside the 2h support."""
        r = np.asarray(r, dtype=np.float64)
        q = r / h
        w = kernel_value(self.normalization(h), q)
        return np.where(q <= 2.0, w, 0.0)

    def gradW_vectorized(self, xij: np.ndarray, r: np.ndarray, h: float) -> np.ndarray:
        """Kernel gradients from separations and distances.

        Args:
            xij: Separations xᵢ - xⱼ, shape (M, D)
            r: Distances, shape (M,)
            h: Smoothing length

        Returns:
            Gradients, shape (M, D)
        """
        r = np.asarray(r, dtype=np.float64)
        return kernel_gradient_scaled(self.normalization(h), r / h, xij, h)

    def W_self(self, h: float) -> float:
        """Kernel value at r=0 (self-contribution)."""
        return self.normalization(h)
