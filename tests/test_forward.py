"""Tests for the polarized forward model and its Jacobian."""

import dataclasses

import numpy as np
import pytest
from scipy.linalg import expm

from polrad.absorption import AbsorptionLine, Band, Zeeman
from polrad.atmosphere import TabulatedAtmosphere
from polrad.core.constants import BOLTZMANN_CONSTANT, SPEED_OF_LIGHT
from polrad.geometry import WGS84, Los, Nav, Path, Position, trace_path
from polrad.rte import (
    Results,
    StokesComponent,
    Target,
    TargetKind,
    compute,
    compute_on_grid,
    cosmic_background,
    dplanck_dt,
    planck,
    propagation_matrix,
    segment_transmission,
    transmission_derivative,
)
from polrad.rte.jacobian import resolve_polarization

F0 = 118.750343e9
FIELD = (1e-5, 2e-5, -4e-5)


def upward_path(atmosphere, step_length=10e3):
    sensor = Nav.from_state(
        Position.ellipsoidal(10e3, 0.0, 0.0, 0.0), Los.spherical(0.0, 0.0), WGS84
    )
    return trace_path(sensor, atmosphere, top_altitude=100e3, step_length=step_length)


def replace_point(path, index, **changes):
    points = list(path)
    points[index] = dataclasses.replace(points[index], **changes)
    return Path(points)


@pytest.fixture
def frequencies():
    return F0 + np.linspace(-3e6, 3e6, 7)


@pytest.fixture
def atmosphere():
    """Isothermal, constant low pressure so Zeeman splitting is resolved."""
    return TabulatedAtmosphere(
        [0.0, 100e3], [250.0, 250.0], [100.0, 100.0], magnetic_fields=[FIELD, FIELD]
    )


@pytest.fixture
def path(atmosphere):
    return upward_path(atmosphere)


@pytest.fixture
def band():
    line = AbsorptionLine(f0=F0, intensity=1e-18, gamma=1e9, Ju=1, Jl=0,
                          zeeman=Zeeman(gu=2.0, gl=0.0))
    return Band([line], vmr=1e-3)


class TestPlanck:
    """Tests for the Planck source function."""

    def test_rayleigh_jeans_limit(self):
        f, T = 1e9, 300.0
        expected = 2 * f ** 2 * BOLTZMANN_CONSTANT * T / SPEED_OF_LIGHT ** 2
        assert np.isclose(planck(f, T)[0], expected, rtol=1e-3)

    def test_non_positive_temperature(self):
        assert planck([F0], 0.0)[0] == 0.0
        assert dplanck_dt([F0], -1.0)[0] == 0.0

    @pytest.mark.parametrize("T", [2.7, 150.0, 300.0])
    def test_derivative(self, T):
        f = np.array([1e9, F0, 1e12])
        h = 1e-4 * T
        numeric = (planck(f, T + h) - planck(f, T - h)) / (2 * h)
        assert np.allclose(dplanck_dt(f, T), numeric, rtol=1e-6)

    def test_cosmic_background(self):
        f = np.array([50e9, F0, 200e9])
        rad0 = cosmic_background(f, 4)
        assert rad0.shape == (3, 4)
        assert np.allclose(rad0[:, 0], planck(f, 2.735))
        assert np.all(rad0[:, 1:] == 0.0)

    def test_cosmic_background_stokes_dim(self):
        with pytest.raises(ValueError):
            cosmic_background([F0], 5)


class TestPropagationMatrix:
    """Tests for the Stokes propagation matrix and transmission."""

    def test_structure(self):
        K = propagation_matrix(np.array([1.0, 2.0, 3.0, 4.0]), 4)
        expected = np.array([
            [1, 2, 3, 4],
            [2, 1, 0, 0],
            [3, 0, 1, 0],
            [4, 0, 0, 1],
        ], dtype=float)
        assert np.array_equal(K, expected)

    @pytest.mark.parametrize("N", [1, 2, 3, 4])
    def test_reduced_dimension(self, N):
        v = np.array([[1.0, 2.0, 3.0, 4.0], [5.0, 6.0, 7.0, 8.0]])
        K = propagation_matrix(v, N)
        assert K.shape == (2, N, N)
        assert np.array_equal(K[1], propagation_matrix(v[1], 4)[:N, :N])

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            propagation_matrix(np.zeros(4), 0)

    def test_unpolarized_transmission(self):
        K = propagation_matrix(np.array([2e-5, 0.0, 0.0, 0.0]), 4)
        T = segment_transmission(K, 1e4)
        assert np.allclose(T, np.exp(-0.2) * np.eye(4))

    def test_transmission_derivative(self):
        K = propagation_matrix(np.array([2e-5, 3e-6, -1e-6, 5e-6]), 4)
        dK = propagation_matrix(np.array([1e-6, -2e-6, 4e-7, 1e-6]), 4)
        r, eps = 1e4, 1e-3
        numeric = (expm(-(K + eps * dK) * r) - expm(-(K - eps * dK) * r)) / (2 * eps)
        assert np.allclose(transmission_derivative(K, dK, r), numeric, rtol=1e-6, atol=1e-12)


class TestTargets:
    """Tests for retrieval targets."""

    def test_vmr_needs_band(self):
        with pytest.raises(ValueError):
            Target(TargetKind.VMR)

    def test_band_only_for_vmr(self):
        with pytest.raises(ValueError):
            Target(TargetKind.TEMPERATURE, band=0)

    def test_default_perturbations(self):
        assert Target(TargetKind.TEMPERATURE).perturbation == 0.1
        assert Target(TargetKind.VMR, band=0).perturbation == 1e-6
        assert Target(TargetKind.MAGNETIC_W).perturbation == 1e-7

    def test_invalid_perturbation(self):
        with pytest.raises(ValueError):
            Target(TargetKind.TEMPERATURE, perturbation=0.0)

    def test_names(self):
        assert Target(TargetKind.VMR, band=2).name == "vmr[2]"
        assert Target(TargetKind.MAGNETIC_U).name == "magnetic_u"

    def test_field_component(self):
        assert TargetKind.MAGNETIC_V.field_component == 1
        assert TargetKind.TEMPERATURE.field_component is None

    def test_resolve_polarization(self):
        assert resolve_polarization(None, 2) == [StokesComponent.I, StokesComponent.Q]
        assert resolve_polarization([3, 0], 4) == [StokesComponent.V, StokesComponent.I]
        with pytest.raises(ValueError):
            resolve_polarization([StokesComponent.V], 1)


class TestResults:
    """Tests for the Results container."""

    def test_single_point(self, path):
        single = Path([path.sensor])
        results = compute_on_grid([2.7], single, [], [F0])
        assert np.array_equal(results.x, [[[2.7]]])
        assert np.array_equal(results.sensor_results(), [[2.7]])

    def test_broadcast_rad0(self, path, frequencies):
        results = Results([1.0, 0.5], [], path, frequencies)
        assert results.x.shape == (len(path), len(frequencies), 2)
        assert np.all(results.x[-1] == [1.0, 0.5])
        assert results.stokes_dim == 2

    def test_rad0_shape_mismatch(self, path, frequencies):
        with pytest.raises(ValueError):
            Results(np.zeros((3, 1)), [], path, frequencies)
        with pytest.raises(ValueError):
            Results(np.zeros(5), [], path, frequencies)

    def test_read_only_after_integration(self, path, band, frequencies):
        rad0 = cosmic_background(frequencies, 4)
        results = compute_on_grid(rad0, path, [band], frequencies, [Target(TargetKind.TEMPERATURE)])
        with pytest.raises(ValueError):
            results.x[0, 0, 0] = 0.0
        with pytest.raises(ValueError):
            results.dx.data[0, 0, 0, 0] = 0.0
        # A copy is still writable
        radiance = results.sensor_results()
        radiance[0, 0] = 0.0

    def test_jacobian_shape(self, path, frequencies):
        targets = [Target(TargetKind.TEMPERATURE), Target(TargetKind.VMR, band=0)]
        results = Results(np.zeros(4), targets, path, frequencies, [StokesComponent.V])
        assert results.dx.shape == (2, len(path), len(frequencies), 1)
        assert results.dx.for_target(targets[1]).shape == (len(path), len(frequencies), 1)


class TestForward:
    """Tests for the forward integration."""

    def test_transparent_path(self, path, frequencies):
        rad0 = cosmic_background(frequencies, 4)
        results = compute_on_grid(rad0, path, [], frequencies)
        assert np.array_equal(results.sensor_results(), rad0)

    def test_optically_thick_isothermal(self, atmosphere, frequencies):
        """Test an opaque isothermal path radiates as a blackbody."""
        thick = Band([AbsorptionLine(f0=F0, intensity=1e-18, gamma=1e9)], vmr=1.0)
        f = F0 + np.array([-1e5, 0.0, 1e5])
        results = compute_on_grid(cosmic_background(f, 1), upward_path(atmosphere), [thick], f)
        assert np.allclose(results.sensor_results()[:, 0], planck(f, 250.0), rtol=1e-6)

    def test_radiance_between_background_and_source(self, path, band, frequencies):
        rad0 = cosmic_background(frequencies, 1)
        I = compute_on_grid(rad0, path, [band], frequencies).sensor_results()[:, 0]
        assert np.all(I > rad0[:, 0])
        assert np.all(I < planck(frequencies, 250.0))

    def test_scalar_matches_full_stokes_without_field(self, frequencies):
        atmosphere = TabulatedAtmosphere([0.0, 100e3], [250.0, 250.0], [100.0, 100.0])
        path = upward_path(atmosphere)
        line = AbsorptionLine(f0=F0, intensity=1e-18, gamma=1e9, Ju=1, Jl=0,
                              zeeman=Zeeman(gu=2.0))
        band = Band([line], vmr=1e-3)
        scalar = compute_on_grid(cosmic_background(frequencies, 1), path, [band], frequencies)
        full = compute_on_grid(cosmic_background(frequencies, 4), path, [band], frequencies)
        assert np.allclose(scalar.x[..., 0], full.x[..., 0], rtol=1e-12)
        assert np.all(full.x[..., 1:] == 0.0)

    @pytest.mark.parametrize("stokes_dim", [1, 2, 3])
    def test_reduced_dimension_without_field(self, frequencies, stokes_dim):
        """Test lower Stokes dimensions are a block of the full one when B, C and D vanish."""
        atmosphere = TabulatedAtmosphere([0.0, 100e3], [250.0, 250.0], [100.0, 100.0])
        path = upward_path(atmosphere)
        band = Band([AbsorptionLine(f0=F0, intensity=1e-18, gamma=1e9)], vmr=1e-3)
        targets = [Target(TargetKind.TEMPERATURE), Target(TargetKind.VMR, band=0)]

        rad0 = cosmic_background(frequencies, 4)
        rad0[:, 1:] = [1e-20, -2e-20, 3e-20]
        full = compute_on_grid(rad0, path, [band], frequencies, targets)
        reduced = compute_on_grid(rad0[:, :stokes_dim], path, [band], frequencies, targets)

        assert reduced.stokes_dim == stokes_dim
        assert np.allclose(reduced.x, full.x[..., :stokes_dim], rtol=1e-12, atol=0.0)
        assert np.allclose(reduced.dx.data, full.dx.data[..., :stokes_dim], rtol=1e-12, atol=0.0)

    def test_field_polarizes(self, path, band, frequencies):
        results = compute_on_grid(cosmic_background(frequencies, 4), path, [band], frequencies)
        V = results.sensor_results()[:, 3]
        assert np.abs(V).max() > 0.0
        assert np.all(np.abs(V) < results.sensor_results()[:, 0])

    def test_compute_grid(self, path, band):
        results = compute(np.zeros(1), path, [band], F0 - 1e6, F0 + 1e6, 5)
        assert np.allclose(results.frequencies, np.linspace(F0 - 1e6, F0 + 1e6, 5))

    def test_threads(self, path, band, frequencies):
        targets = [Target(TargetKind.TEMPERATURE), Target(TargetKind.MAGNETIC_W)]
        rad0 = cosmic_background(frequencies, 4)
        serial = compute_on_grid(rad0, path, [band], frequencies, targets)
        threaded = compute_on_grid(rad0, path, [band], frequencies, targets, num_threads=3)
        assert np.allclose(serial.x, threaded.x)
        assert np.allclose(serial.dx.data, threaded.dx.data)

    def test_uncovered_grid_warns(self, path, band, caplog):
        f = np.array([F0 + 2 * band.cutoff])
        compute_on_grid(np.zeros(1), path, [band], f)
        assert "No band reaches" in caplog.text

    def test_errors(self, path, band, frequencies):
        rad0 = np.zeros(1)
        with pytest.raises(ValueError, match="missing band"):
            compute_on_grid(rad0, path, [band], frequencies, [Target(TargetKind.VMR, band=1)])
        with pytest.raises(ValueError):
            compute_on_grid(rad0, path, [band], frequencies, num_threads=0)
        with pytest.raises(ValueError):
            compute(rad0, path, [band], F0, F0 + 1e6, 0)
        with pytest.raises(ValueError):
            compute(rad0, path, [band], F0 + 1e6, F0, 3)
        with pytest.raises(ValueError):
            compute_on_grid(np.zeros(5), path, [band], frequencies)
        with pytest.raises(ValueError):
            compute_on_grid(rad0, path, [band], frequencies, polarization=[StokesComponent.Q])


class TestJacobian:
    """Tests for analytic Jacobians against finite differences."""

    @pytest.fixture
    def rad0(self, frequencies):
        return cosmic_background(frequencies, 4)

    @staticmethod
    def assert_matches(analytic, numeric):
        scale = np.abs(analytic).max()
        assert scale > 0.0
        assert np.allclose(analytic, numeric, rtol=1e-3, atol=1e-3 * scale)

    @pytest.mark.parametrize("stokes_dim", [1, 2, 3, 4])
    @pytest.mark.parametrize("point", [0, 4, 9])
    def test_temperature(self, path, band, frequencies, point, stokes_dim):
        rad0 = cosmic_background(frequencies, stokes_dim)
        target = Target(TargetKind.TEMPERATURE)
        results = compute_on_grid(rad0, path, [band], frequencies, [target])

        h = 0.01
        T = path[point].temperature
        up = compute_on_grid(rad0, replace_point(path, point, temperature=T + h), [band], frequencies)
        down = compute_on_grid(rad0, replace_point(path, point, temperature=T - h), [band], frequencies)
        numeric = (up.sensor_results() - down.sensor_results()) / (2 * h)

        self.assert_matches(results.dx[0, point], numeric)

    def test_vmr(self, path, band, frequencies, rad0):
        """Test the point derivatives add up to a change of the whole band."""
        target = Target(TargetKind.VMR, band=0)
        results = compute_on_grid(rad0, path, [band], frequencies, [target])

        h = 1e-3 * band.vmr
        up = compute_on_grid(rad0, path, [band.with_vmr(band.vmr + h)], frequencies)
        down = compute_on_grid(rad0, path, [band.with_vmr(band.vmr - h)], frequencies)
        numeric = (up.sensor_results() - down.sensor_results()) / (2 * h)

        self.assert_matches(results.dx[0].sum(axis=0), numeric)

    @pytest.mark.parametrize("kind", [TargetKind.MAGNETIC_U, TargetKind.MAGNETIC_V, TargetKind.MAGNETIC_W])
    @pytest.mark.parametrize("stokes_dim", [1, 2, 3, 4])
    def test_magnetic(self, path, band, frequencies, kind, stokes_dim):
        rad0 = cosmic_background(frequencies, stokes_dim)
        point = 3
        results = compute_on_grid(rad0, path, [band], frequencies, [Target(kind)])

        h = 1e-8
        k = kind.field_component
        up, down = list(FIELD), list(FIELD)
        up[k] += h
        down[k] -= h
        I_up = compute_on_grid(
            rad0, replace_point(path, point, magnetic_field=tuple(up)), [band], frequencies
        ).sensor_results()
        I_down = compute_on_grid(
            rad0, replace_point(path, point, magnetic_field=tuple(down)), [band], frequencies
        ).sensor_results()

        self.assert_matches(results.dx[0, point], (I_up - I_down) / (2 * h))

    def test_polarization_subset(self, path, band, frequencies, rad0):
        targets = [Target(TargetKind.TEMPERATURE)]
        full = compute_on_grid(rad0, path, [band], frequencies, targets)
        subset = compute_on_grid(rad0, path, [band], frequencies, targets,
                                 polarization=[StokesComponent.I, StokesComponent.V])
        assert subset.dx.shape[-1] == 2
        assert np.allclose(subset.dx.data, full.dx.data[..., [0, 3]])

    def test_no_targets(self, path, band, frequencies, rad0):
        results = compute_on_grid(rad0, path, [band], frequencies)
        assert results.dx.shape == (0, len(path), len(frequencies), 4)
