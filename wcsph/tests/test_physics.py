"""
Physics validation tests for the pairwise terms.

Tests physical correctness including:
- Equation of state
- Conservation (antisymmetric pair contributions)
- Fluid at rest
- Density diffusion gating by the motion limiter
- Direction of pressure and viscous forces
"""

import numpy as np
import pytest

import wcsph
from wcsph import DomainViolation, NeighborList, ShapeMismatch


def kernel_gradients(system):
    _, grad_list = wcsph.sum_kernel_gradient(system['nlist'], system['position'],
                                             system['alpha_d'], system['h'])
    return grad_list


def pair_system(xj, vi=None, vj=None, rho=(1000.0, 1000.0), h=1.0):
    """Two particles, i at the origin and j at xj (2D or 3D)."""
    dim = len(xj)
    position = np.array([[0.0] * dim, list(xj)])
    velocity = np.zeros((2, dim))
    if vi is not None:
        velocity[0] = vi
    if vj is not None:
        velocity[1] = vj
    nlist = NeighborList.from_pairs([(0, 1, float(np.linalg.norm(xj)))])
    return dict(position=position, velocity=velocity, density=np.array(rho, dtype=np.float64),
                nlist=nlist, h=h, alpha_d=1.0)


class TestEquationOfState:

    def test_zero_at_reference_density(self):
        assert wcsph.pressure(1000.0, 10.0, 7.0, 1000.0) == 0.0

    def test_sign_follows_compression(self):
        p = wcsph.pressure(np.array([990.0, 1000.0, 1010.0]), 10.0, 7.0, 1000.0)
        assert p[0] < 0.0 < p[2]
        assert p[1] == 0.0

    def test_tait_formula(self):
        expected = (10.0 ** 2 * 1000.0 / 7.0) * ((1.01) ** 7 - 1.0)
        assert wcsph.pressure(1010.0, 10.0, 7.0, 1000.0) == pytest.approx(expected)

    @pytest.mark.parametrize("rho", [0.0, -1.0, np.nan, np.inf])
    def test_rejects_invalid_density(self, rho):
        with pytest.raises(DomainViolation):
            wcsph.pressure(np.array([1000.0, rho]), 10.0, 7.0, 1000.0)

    def test_domain_violation_is_value_error(self):
        with pytest.raises(ValueError):
            wcsph.pressure(0.0, 10.0, 7.0, 1000.0)


class TestConservation:
    """Every pair adds equal and opposite contributions to its two particles."""

    def test_kernel_gradient_sum_cancels(self, backend, closed_system):
        s = closed_system
        sum_grad, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'],
                                                        s['alpha_d'], s['h'])
        scale = np.abs(grad_list).sum()
        assert np.abs(sum_grad.sum(axis=0)).max() <= 1e-12 * scale

    def test_momentum_conserved(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        dvdt, dvdt_list = wcsph.momentum_rate(s['nlist'], s['position'], s['m0'], s['density'],
                                              grad_list, s['c0'], s['gamma'], s['rho0'])
        total = dvdt.sum(axis=0)
        assert np.abs(total).max() <= 1e-12 * np.abs(dvdt_list).sum()

    def test_viscosity_conserves_momentum(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        visc, visc_list = wcsph.artificial_viscosity(
            s['nlist'], s['position'], s['h'], s['density'], s['alpha'], s['velocity'],
            s['c0'], s['m0'], grad_list)
        assert np.abs(visc_list).sum() > 0.0
        assert np.abs(visc.sum(axis=0)).max() <= 1e-12 * np.abs(visc_list).sum()

    def test_kernel_sum_counts_each_pair_twice(self, backend, closed_system):
        s = closed_system
        sum_w, w_list = wcsph.sum_kernel(s['nlist'], s['n'], s['alpha_d'], s['h'])
        assert sum_w.sum() == pytest.approx(2.0 * w_list.sum())
        assert np.all(sum_w >= 0.0)

    def test_3d_momentum_and_viscosity_conserved(self, backend):
        from wcsph.core.spatial_hash_vectorized import find_neighbor_pairs

        rng = np.random.default_rng(5)
        n, h = 50, 0.1
        position = rng.uniform(0.0, 0.5, size=(n, 3))
        velocity = rng.uniform(-1.0, 1.0, size=(n, 3))
        density = 1000.0 * (1.0 + rng.uniform(-0.01, 0.01, size=n))
        nlist = find_neighbor_pairs(position, 2.0 * h)
        alpha_d = wcsph.WendlandQuinticKernel(3).normalization(h)
        _, grad_list = wcsph.sum_kernel_gradient(nlist, position, alpha_d, h)

        dvdt, dvdt_list = wcsph.momentum_rate(nlist, position, 0.1, density, grad_list,
                                              20.0, 7.0, 1000.0)
        visc, visc_list = wcsph.artificial_viscosity(nlist, position, h, density, 0.1,
                                                     velocity, 20.0, 0.1, grad_list)
        assert dvdt.shape == (n, 3)
        assert np.abs(dvdt.sum(axis=0)).max() <= 1e-12 * np.abs(dvdt_list).sum()
        assert np.abs(visc.sum(axis=0)).max() <= 1e-12 * np.abs(visc_list).sum()


class TestFluidAtRest:

    def test_density_rate_zero_without_motion(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        still = np.zeros_like(s['velocity'])
        drhodt, _ = wcsph.density_rate(s['nlist'], s['position'], s['m0'], s['density'],
                                       still, grad_list)
        np.testing.assert_array_equal(drhodt, 0.0)

    def test_viscosity_zero_without_motion(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        visc, _ = wcsph.artificial_viscosity(
            s['nlist'], s['position'], s['h'], s['density'], s['alpha'],
            np.zeros_like(s['velocity']), s['c0'], s['m0'], grad_list)
        np.testing.assert_array_equal(visc, 0.0)

    def test_uniform_translation_has_no_density_rate(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        drift = np.tile([0.3, -0.2], (s['n'], 1))
        drhodt, _ = wcsph.density_rate(s['nlist'], s['position'], s['m0'], s['density'],
                                       drift, grad_list)
        np.testing.assert_allclose(drhodt, 0.0, atol=1e-12)

    def test_two_particles_at_rest(self, backend):
        """Two particles at reference density, one smoothing length apart."""
        s = pair_system((1.0, 0.0))
        c0, gamma, rho0 = 10.0, 7.0, 1000.0
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)

        assert wcsph.pressure(s['density'], c0, gamma, rho0).tolist() == [0.0, 0.0]

        drhodt, _ = wcsph.density_rate(s['nlist'], s['position'], 1.0, s['density'],
                                       s['velocity'], grad_list)
        np.testing.assert_array_equal(drhodt, 0.0)

        drhodt, _ = wcsph.density_rate_ddt(s['nlist'], s['position'], 1.0, 1.0, 0.1, c0, gamma,
                                           9.81, rho0, s['density'], s['velocity'], grad_list,
                                           np.ones(2))
        np.testing.assert_allclose(drhodt, 0.0, atol=1e-12)

        dvdt, _ = wcsph.momentum_rate(s['nlist'], s['position'], 1.0, s['density'], grad_list,
                                      c0, gamma, rho0)
        np.testing.assert_array_equal(dvdt, 0.0)


class TestForceDirections:

    def test_compressed_pair_repels(self, backend):
        s = pair_system((0.5, 0.0), rho=(1010.0, 1010.0))
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        dvdt, dvdt_list = wcsph.momentum_rate(s['nlist'], s['position'], 1.0, s['density'],
                                              grad_list, 10.0, 7.0, 1000.0)
        assert dvdt[0, 0] < 0.0 < dvdt[1, 0]
        np.testing.assert_allclose(dvdt_list[0], dvdt[0])

    def test_viscosity_opposes_approach(self, backend):
        s = pair_system((0.5, 0.0), vi=(1.0, 0.0), vj=(-1.0, 0.0))
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        visc, visc_list = wcsph.artificial_viscosity(
            s['nlist'], s['position'], 1.0, s['density'], 0.1, s['velocity'], 10.0, 1.0,
            grad_list)
        assert visc[0, 0] < 0.0 < visc[1, 0]
        np.testing.assert_allclose(visc_list[0], visc[0])

    def test_viscosity_off_when_receding(self, backend):
        s = pair_system((0.5, 0.0), vi=(-1.0, 0.0), vj=(1.0, 0.0))
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        visc, _ = wcsph.artificial_viscosity(
            s['nlist'], s['position'], 1.0, s['density'], 0.1, s['velocity'], 10.0, 1.0,
            grad_list)
        np.testing.assert_array_equal(visc, 0.0)

    def test_approaching_pair_compresses(self, backend):
        s = pair_system((0.5, 0.0), vi=(1.0, 0.0), vj=(-1.0, 0.0))
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        drhodt, drhodt_list = wcsph.density_rate(s['nlist'], s['position'], 1.0, s['density'],
                                                 s['velocity'], grad_list)
        assert np.all(drhodt > 0.0)
        assert drhodt_list[0] == pytest.approx(drhodt[0])


class TestDensityDiffusion:

    def ddt(self, s, grad_list, motion_limiter, delta=0.1):
        drhodt, _ = wcsph.density_rate_ddt(
            s['nlist'], s['position'], s['h'], s['m0'], delta, s['c0'], s['gamma'], s['g'],
            s['rho0'], s['density'], s['velocity'], grad_list, motion_limiter)
        return drhodt

    def test_limiter_disables_diffusion_for_one_particle(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        k = int(s['nlist'].i[0])

        full = self.ddt(s, grad_list, np.ones(s['n']))
        limiter = np.ones(s['n'])
        limiter[k] = 0.0
        gated = self.ddt(s, grad_list, limiter)
        plain = self.ddt(s, grad_list, np.ones(s['n']), delta=0.0)

        # Particle k keeps only the continuity term
        assert gated[k] == pytest.approx(plain[k], rel=1e-12, abs=1e-12)
        assert full[k] != pytest.approx(plain[k], rel=1e-12, abs=1e-12)

        # Other particles are untouched
        others = np.arange(s['n']) != k
        np.testing.assert_allclose(gated[others], full[others], rtol=1e-12, atol=1e-12)

    def test_diffusion_reduces_density_contrast(self, backend):
        """A denser particle loses density to a lighter horizontal neighbor."""
        s = dict(pair_system((0.5, 0.0), rho=(1010.0, 1000.0)),
                 m0=1.0, c0=10.0, gamma=7.0, g=9.81, rho0=1000.0)
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        drhodt = self.ddt(s, grad_list, np.ones(2))
        assert drhodt[0] < 0.0 < drhodt[1]

    def test_still_water_has_no_vertical_diffusion(self, backend):
        """A vertical pair at its hydrostatic density offset does not diffuse."""
        rho0, c0, gamma, g = 1000.0, 10.0, 7.0, 9.81
        cb = c0 ** 2 * rho0 / gamma
        # i sits 0.5 below j: ρⱼ - ρᵢ equals the hydrostatic offset seen from i
        drz = -0.5
        rho_i = 1000.0
        rho_j = rho_i + rho0 * (1.0 + rho0 * g / cb * drz) ** (1.0 / gamma) - rho0
        s = dict(pair_system((0.0, 0.5), rho=(rho_i, rho_j)),
                 m0=1.0, c0=c0, gamma=gamma, g=g, rho0=rho0)
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        _, drhodt_list = wcsph.density_rate_ddt(
            s['nlist'], s['position'], 1.0, 1.0, 0.1, c0, gamma, g, rho0, s['density'],
            s['velocity'], grad_list, np.ones(2))
        assert drhodt_list[0] == pytest.approx(0.0, abs=1e-12)

    def test_vertical_axis_override(self, backend):
        """With x as the vertical axis, a horizontal pair gets the hydrostatic correction."""
        s = dict(pair_system((0.5, 0.0)), m0=1.0, c0=10.0, gamma=7.0, g=9.81, rho0=1000.0)
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        default, _ = wcsph.density_rate_ddt(
            s['nlist'], s['position'], 1.0, 1.0, 0.1, 10.0, 7.0, 9.81, 1000.0, s['density'],
            s['velocity'], grad_list, np.ones(2))
        along_x, _ = wcsph.density_rate_ddt(
            s['nlist'], s['position'], 1.0, 1.0, 0.1, 10.0, 7.0, 9.81, 1000.0, s['density'],
            s['velocity'], grad_list, np.ones(2), vertical_axis=0)
        np.testing.assert_allclose(default, 0.0, atol=1e-12)
        assert np.all(np.abs(along_x) > 0.0)

    def test_separation_beyond_hydrostatic_range_raises(self, backend):
        """1 - DDTgz·drz turns negative past c0²/(γ g); the term must fail, not return NaN."""
        c0, gamma, g = 10.0, 7.0, 9.81
        assert 1.5 > c0 ** 2 / (gamma * g)
        s = pair_system((0.0, 1.5))
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        with pytest.raises(DomainViolation):
            wcsph.density_rate_ddt(s['nlist'], s['position'], 1.0, 1.0, 0.1, c0, gamma, g,
                                   1000.0, s['density'], s['velocity'], grad_list, np.ones(2))

    def test_separation_inside_hydrostatic_range_is_finite(self, backend):
        c0, gamma, g = 10.0, 7.0, 9.81
        s = pair_system((0.0, 1.4))
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        drhodt, drhodt_list = wcsph.density_rate_ddt(
            s['nlist'], s['position'], 1.0, 1.0, 0.1, c0, gamma, g, 1000.0, s['density'],
            s['velocity'], grad_list, np.ones(2))
        assert np.all(np.isfinite(drhodt)) and np.all(np.isfinite(drhodt_list))

    def test_3d_default_vertical_axis_is_z(self, backend):
        """In 3D the hydrostatic correction acts along z; a y-separated pair is horizontal."""
        along_y = pair_system((0.0, 0.5, 0.0))
        along_z = pair_system((0.0, 0.0, 0.5))
        rates = {}
        for name, s in (('y', along_y), ('z', along_z)):
            _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
            rates[name], _ = wcsph.density_rate_ddt(
                s['nlist'], s['position'], 1.0, 1.0, 0.1, 10.0, 7.0, 9.81, 1000.0,
                s['density'], s['velocity'], grad_list, np.ones(2))
        np.testing.assert_allclose(rates['y'], 0.0, atol=1e-12)
        assert np.all(np.abs(rates['z']) > 0.0)
        # Equal densities leave the lower particle i lighter than hydrostatics
        # requires, so i gains density and j loses it
        assert rates['z'][0] > 0.0 > rates['z'][1]

    def test_3d_still_water_column(self, backend):
        """A z-aligned pair at its hydrostatic offset does not diffuse in 3D."""
        rho0, c0, gamma, g = 1000.0, 10.0, 7.0, 9.81
        cb = c0 ** 2 * rho0 / gamma
        rho_j = rho0 * (1.0 + rho0 * g / cb * -0.5) ** (1.0 / gamma)
        s = pair_system((0.0, 0.0, 0.5), rho=(rho0, rho_j))
        _, grad_list = wcsph.sum_kernel_gradient(s['nlist'], s['position'], 1.0, 1.0)
        _, drhodt_list = wcsph.density_rate_ddt(
            s['nlist'], s['position'], 1.0, 1.0, 0.1, c0, gamma, g, rho0, s['density'],
            s['velocity'], grad_list, np.ones(2))
        assert drhodt_list[0] == pytest.approx(0.0, abs=1e-12)


class TestInterfaceChecks:

    def test_mismatched_density_length(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        with pytest.raises(ShapeMismatch):
            wcsph.density_rate(s['nlist'], s['position'], s['m0'], s['density'][:-1],
                               s['velocity'], grad_list)

    def test_mismatched_gradient_list(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        with pytest.raises(ShapeMismatch):
            wcsph.momentum_rate(s['nlist'], s['position'], s['m0'], s['density'],
                                grad_list[:-1], s['c0'], s['gamma'], s['rho0'])

    def test_out_of_range_pair(self, backend):
        nlist = NeighborList.from_pairs([(0, 5, 0.1)])
        with pytest.raises(ShapeMismatch):
            wcsph.sum_kernel(nlist, 2, 1.0, 1.0)

    def test_writes_into_supplied_buffers(self, backend, closed_system):
        s = closed_system
        sum_w = np.full(s['n'], 99.0)
        w_list = np.full(len(s['nlist']), 99.0)
        result = wcsph.sum_kernel(s['nlist'], s['n'], s['alpha_d'], s['h'], out=(sum_w, w_list))
        assert result[0] is sum_w and result[1] is w_list
        expected, _ = wcsph.sum_kernel(s['nlist'], s['n'], s['alpha_d'], s['h'])
        np.testing.assert_allclose(sum_w, expected)

    def test_wrong_buffer_length(self, backend, closed_system):
        s = closed_system
        with pytest.raises(ShapeMismatch):
            wcsph.sum_kernel(s['nlist'], s['n'], s['alpha_d'], s['h'],
                             out=(np.zeros(s['n'] + 1), np.zeros(len(s['nlist']))))

    def test_scalar_buffer_for_vector_term(self, backend, closed_system):
        s = closed_system
        with pytest.raises(ShapeMismatch):
            wcsph.sum_kernel_gradient(s['nlist'], s['position'], s['alpha_d'], s['h'],
                                      out=(np.zeros(s['n']), np.zeros((len(s['nlist']), 2))))

    def test_wrong_buffer_dimension(self, backend, closed_system):
        s = closed_system
        grad_list = kernel_gradients(s)
        with pytest.raises(ShapeMismatch):
            wcsph.momentum_rate(s['nlist'], s['position'], s['m0'], s['density'], grad_list,
                                s['c0'], s['gamma'], s['rho0'],
                                out=(np.zeros((s['n'], 3)), np.zeros((len(s['nlist']), 2))))

    def test_wrong_buffer_dtype(self, backend, closed_system):
        s = closed_system
        with pytest.raises(ShapeMismatch):
            wcsph.sum_kernel(s['nlist'], s['n'], s['alpha_d'], s['h'],
                             out=(np.zeros(s['n'], dtype=np.float32),
                                  np.zeros(len(s['nlist']))))

    def test_empty_pair_list(self, backend):
        position = np.zeros((3, 2))
        nlist = NeighborList.empty()
        sum_w, w_list = wcsph.sum_kernel(nlist, 3, 1.0, 1.0)
        np.testing.assert_array_equal(sum_w, 0.0)
        assert len(w_list) == 0
        dvdt, _ = wcsph.momentum_rate(nlist, position, 1.0, np.full(3, 1000.0),
                                      np.zeros((0, 2)), 10.0, 7.0, 1000.0)
        np.testing.assert_array_equal(dvdt, 0.0)
