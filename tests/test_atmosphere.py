"""Tests for atmospheric profile models."""

import numpy as np
import pytest

from polrad.atmosphere import AtmosphericState, StandardAtmosphere, TabulatedAtmosphere


class TestStandardAtmosphere:
    """Tests for US Standard Atmosphere 1976."""

    @pytest.fixture
    def atmosphere(self):
        return StandardAtmosphere()

    def test_surface_temperature(self, atmosphere):
        """Test temperature at sea level."""
        T = atmosphere.temperature(np.array([0.0]))
        assert np.isclose(T[0], 288.15, rtol=1e-3)

    def test_surface_pressure(self, atmosphere):
        """Test pressure at sea level."""
        P = atmosphere.pressure(np.array([0.0]))
        assert np.isclose(P[0], 101325, rtol=1e-3)

    def test_tropopause(self, atmosphere):
        """Test temperature and pressure at the tropopause (11 km)."""
        assert np.isclose(atmosphere.temperature(np.array([11000.0]))[0], 216.65, rtol=1e-3)
        assert np.isclose(atmosphere.pressure(np.array([11000.0]))[0], 22632.0, rtol=1e-3)

    def test_stratopause(self, atmosphere):
        assert np.isclose(atmosphere.temperature(np.array([47000.0]))[0], 270.65, rtol=1e-3)
        assert np.isclose(atmosphere.pressure(np.array([47000.0]))[0], 110.9, rtol=1e-2)

    def test_temperature_decreases_in_troposphere(self, atmosphere):
        """Test that temperature decreases in troposphere."""
        altitudes = np.array([0, 5000, 10000])
        T = atmosphere.temperature(altitudes)
        assert T[0] > T[1] > T[2]

    def test_pressure_decreases_with_altitude(self, atmosphere):
        """Test that pressure decreases with altitude."""
        altitudes = np.linspace(0, 120e3, 25)
        P = atmosphere.pressure(altitudes)
        assert np.all(np.diff(P) < 0)
        assert np.all(P > 0)

    def test_pressure_continuous_at_layer_bases(self, atmosphere):
        for base in (11000.0, 20000.0, 32000.0, 47000.0, 51000.0, 71000.0, 86000.0):
            below, above = atmosphere.pressure(np.array([base - 1e-3, base + 1e-3]))
            assert np.isclose(below, above, rtol=1e-6)

    def test_isothermal_above_86km(self, atmosphere):
        T = atmosphere.temperature(np.array([86e3, 100e3, 500e3]))
        assert np.allclose(T, 186.95)

    def test_constant_field(self):
        atmosphere = StandardAtmosphere(magnetic_field=(1e-5, 0, -3e-5))
        assert atmosphere.magnetic_field(0.0) == (1e-5, 0.0, -3e-5)
        assert atmosphere.magnetic_field(80e3) == (1e-5, 0.0, -3e-5)

    def test_state(self, atmosphere):
        state = atmosphere.state(11000.0)
        assert isinstance(state, AtmosphericState)
        assert np.isclose(state.temperature, 216.65, rtol=1e-3)
        assert state.field_strength == 0.0


class TestTabulatedAtmosphere:
    """Tests for user supplied profiles."""

    @pytest.fixture
    def atmosphere(self):
        return TabulatedAtmosphere(
            [0.0, 10e3, 20e3],
            [280.0, 220.0, 230.0],
            [1e5, 1e4, 1e3],
            magnetic_fields=[[0, 0, 0], [0, 2e-5, 0], [0, 4e-5, 0]],
        )

    def test_grid_values(self, atmosphere):
        assert np.allclose(atmosphere.temperature(np.array([0.0, 10e3, 20e3])), [280, 220, 230])
        assert np.allclose(atmosphere.pressure(np.array([0.0, 10e3, 20e3])), [1e5, 1e4, 1e3])

    def test_interpolation(self, atmosphere):
        assert np.isclose(atmosphere.temperature(np.array([5e3]))[0], 250.0)
        # Log-linear pressure
        assert np.isclose(atmosphere.pressure(np.array([5e3]))[0], np.sqrt(1e5 * 1e4))
        assert np.allclose(atmosphere.magnetic_field(15e3), (0.0, 3e-5, 0.0))

    def test_held_outside_grid(self, atmosphere):
        assert np.isclose(atmosphere.temperature(np.array([50e3]))[0], 230.0)
        assert np.isclose(atmosphere.pressure(np.array([-1e3]))[0], 1e5)

    def test_state(self, atmosphere):
        state = atmosphere.state(20e3)
        assert np.isclose(state.field_strength, 4e-5)

    @pytest.mark.parametrize("altitudes, temperatures, pressures", [
        ([0.0], [250.0], [1e5]),
        ([0.0, 0.0], [250.0, 250.0], [1e5, 1e4]),
        ([0.0, 1e3], [250.0], [1e5, 1e4]),
        ([0.0, 1e3], [250.0, 250.0], [1e5, 0.0]),
    ])
    def test_invalid(self, altitudes, temperatures, pressures):
        with pytest.raises(ValueError):
            TabulatedAtmosphere(altitudes, temperatures, pressures)
