"""Pytest configuration and shared fixtures for wcsph tests."""
import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_configure(config):
    """Make the workspace root importable without an installed package."""
    workspace_root = Path(__file__).parent.parent.parent
    if str(workspace_root) not in sys.path:
        sys.path.insert(0, str(workspace_root))


@pytest.fixture(params=['cpu', 'numba'])
def backend(request):
    """Parametrize tests over both backends, restoring the global choice."""
    import wcsph

    original_backend = wcsph.get_backend()
    wcsph.set_backend(request.param)
    yield request.param
    wcsph.set_backend(original_backend)


@pytest.fixture
def closed_system():
    """Random 2D cloud of particles with no boundaries or external forces.

    Returns a dict with position, velocity, density, the pair list and the
    constants the terms need.
    """
    from wcsph.core.spatial_hash_vectorized import find_neighbor_pairs
    from wcsph.core.kernel_vectorized import WendlandQuinticKernel

    rng = np.random.default_rng(1234)
    n = 60
    h = 0.12
    position = rng.uniform(0.0, 1.0, size=(n, 2))
    velocity = rng.uniform(-1.0, 1.0, size=(n, 2))
    density = 1000.0 * (1.0 + rng.uniform(-0.01, 0.01, size=n))
    nlist = find_neighbor_pairs(position, 2.0 * h)

    return dict(
        n=n, h=h, position=position, velocity=velocity, density=density, nlist=nlist,
        alpha_d=WendlandQuinticKernel(2).normalization(h),
        c0=20.0, gamma=7.0, rho0=1000.0, m0=1000.0 * 0.06 ** 2,
        alpha=0.1, delta=0.1, g=9.81,
    )
