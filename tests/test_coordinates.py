"""Tests for the ellipsoid and the position/line-of-sight conversions."""

import numpy as np
import pytest

from polrad.geometry import (
    Ellipsoid,
    WGS84,
    Los,
    LosType,
    Position,
    PosType,
    POSITION_CONVERSIONS,
    LOS_CONVERSIONS,
    UnsupportedConversionError,
    convert_position,
)


class TestEllipsoid:
    """Tests for the Ellipsoid value type."""

    def test_polar_radius(self):
        ell = Ellipsoid(6378137.0, 0.0818191908426)
        assert np.isclose(ell.b, 6356752.314, atol=1e-3)

    def test_sphere(self):
        ell = Ellipsoid(1000.0, 0.0)
        assert ell.b == 1000.0
        assert ell.N(30.0) == 1000.0

    def test_radius_of_curvature(self):
        assert np.isclose(WGS84.N(0.0), WGS84.a)
        assert np.isclose(WGS84.N(90.0), WGS84.a / np.sqrt(1 - WGS84.e2))

    @pytest.mark.parametrize("a, e", [(0.0, 0.1), (-1.0, 0.1), (1.0, 1.0), (1.0, -0.1)])
    def test_invalid(self, a, e):
        with pytest.raises(ValueError):
            Ellipsoid(a, e)

    def test_value_semantics(self):
        assert Ellipsoid(6378137.0, 0.0818) == Ellipsoid(6378137.0, 0.0818)


class TestPositionConversions:
    """Tests for the position conversion matrix."""

    @pytest.fixture
    def ellipsoid(self):
        return Ellipsoid(6378137.0, 0.0818)

    def test_all_pairs_registered(self):
        assert len(POSITION_CONVERSIONS) == 9
        assert len(LOS_CONVERSIONS) == 4

    def test_geodetic_round_trip_end_to_end(self, ellipsoid):
        """45 deg N, 0 deg E, 10 km survives Cartesian and back."""
        p = Position.ellipsoidal(10000.0, 45.0, 0.0)
        back = p.to(PosType.CARTESIAN, ellipsoid).to(PosType.ELLIPSOIDAL, ellipsoid)

        assert back.kind is PosType.ELLIPSOIDAL
        assert np.isclose(back.lat, 45.0, rtol=1e-6)
        assert np.isclose(back.lon, 0.0, atol=1e-9)
        assert np.isclose(back.h, 10000.0, rtol=1e-6)

    @pytest.mark.parametrize("lat", [-89.9, -60.0, -1e-3, 0.0, 12.5, 45.0, 89.9])
    @pytest.mark.parametrize("lon", [-179.0, -45.0, 0.0, 90.0, 179.0])
    @pytest.mark.parametrize("h", [-1000.0, 0.0, 35e3, 800e3])
    def test_geodetic_round_trip(self, ellipsoid, lat, lon, h):
        p = Position.ellipsoidal(h, lat, lon)
        back = p.to(PosType.CARTESIAN, ellipsoid).to(PosType.ELLIPSOIDAL, ellipsoid)
        assert np.isclose(back.lat, lat, rtol=1e-6, atol=1e-9)
        assert np.isclose(back.lon, lon, rtol=1e-6, atol=1e-9)
        assert np.isclose(back.h, h, rtol=1e-6, atol=1e-4)

    def test_equator_cartesian(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 0.0, 90.0).to(PosType.CARTESIAN, ellipsoid)
        assert np.allclose(p.arr(), [0.0, ellipsoid.a, 0.0], atol=1e-6)

    def test_pole_cartesian(self, ellipsoid):
        p = Position.ellipsoidal(100.0, 90.0, 0.0).to(PosType.CARTESIAN, ellipsoid)
        assert np.allclose(p.arr(), [0.0, 0.0, ellipsoid.b + 100.0], atol=1e-6)

    def test_polar_axis_branch(self, ellipsoid):
        north = Position.cartesian(0.0, 0.0, ellipsoid.b + 5000.0)
        g = north.to(PosType.ELLIPSOIDAL, ellipsoid)
        assert g.lat == 90.0
        assert g.lon == 0.0
        assert np.isclose(g.h, 5000.0)

        south = Position.cartesian(0.0, 0.0, -ellipsoid.b - 5000.0)
        assert south.to(PosType.ELLIPSOIDAL, ellipsoid).lat == -90.0

    def test_centre_branch(self, ellipsoid):
        g = Position.cartesian(0.0, 0.0, 0.0).to(PosType.ELLIPSOIDAL, ellipsoid)
        assert (g.h, g.lat, g.lon) == (-ellipsoid.a, 0.0, 180.0)

    def test_spherical_round_trip(self, ellipsoid):
        p = Position.spherical(7000e3, -33.0, 151.0)
        back = p.to(PosType.CARTESIAN, ellipsoid).to(PosType.SPHERICAL, ellipsoid)
        assert np.allclose(back.arr(), p.arr(), rtol=1e-12)

    def test_spherical_ellipsoidal_round_trip(self, ellipsoid):
        p = Position.spherical(6500e3, 20.0, -70.0)
        back = p.to(PosType.ELLIPSOIDAL, ellipsoid).to(PosType.SPHERICAL, ellipsoid)
        assert np.allclose(back.arr(), p.arr(), rtol=1e-9)

    def test_sphere_geodetic_equals_geocentric(self):
        sphere = Ellipsoid(6371e3, 0.0)
        p = Position.spherical(6371e3 + 1000.0, 30.0, 10.0)
        g = p.to(PosType.ELLIPSOIDAL, sphere)
        assert np.isclose(g.lat, 30.0)
        assert np.isclose(g.h, 1000.0, atol=1e-6)

    def test_time_is_kept(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 10.0, 10.0, time=42.5)
        assert p.to(PosType.CARTESIAN, ellipsoid).time == 42.5
        assert p.to(PosType.SPHERICAL, ellipsoid).time == 42.5

    def test_tagged_accessors(self):
        p = Position.cartesian(1.0, 2.0, 3.0)
        assert (p.x, p.y, p.z) == (1.0, 2.0, 3.0)
        with pytest.raises(AttributeError):
            p.lat
        with pytest.raises(AttributeError):
            Position.spherical(1.0, 2.0, 3.0).h

    def test_missing_conversion_raises(self, ellipsoid, monkeypatch):
        monkeypatch.delitem(
            POSITION_CONVERSIONS, (PosType.SPHERICAL, PosType.ELLIPSOIDAL)
        )
        with pytest.raises(UnsupportedConversionError, match="not yet supported"):
            convert_position(Position.spherical(7e6, 0.0, 0.0), PosType.ELLIPSOIDAL, ellipsoid)

    def test_offset(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 0.0, 0.0, time=3.0)
        moved = p.offset(Position.cartesian(1000.0, 0.0, 0.0), ellipsoid)
        assert moved.kind is PosType.ELLIPSOIDAL
        assert np.isclose(moved.h, 1000.0)
        assert moved.time == 3.0

    def test_advance_time(self):
        p = Position.cartesian(0.0, 0.0, 0.0, time=1.0)
        assert p.advance_time(-300.0, speed=100.0).time == 4.0


class TestLosConversions:
    """Tests for line-of-sight conversions."""

    @pytest.fixture
    def ellipsoid(self):
        return WGS84

    def test_zenith_at_equator(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 0.0, 0.0)
        los = Los.spherical(0.0, 0.0).to(LosType.CARTESIAN, p, ellipsoid)
        assert np.allclose(los.arr(), [1.0, 0.0, 0.0], atol=1e-12)

    def test_east_at_equator(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 0.0, 0.0)
        los = Los.spherical(90.0, 90.0).to(LosType.CARTESIAN, p, ellipsoid)
        assert np.allclose(los.arr(), [0.0, 1.0, 0.0], atol=1e-12)

    def test_north_at_equator(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 0.0, 0.0)
        los = Los.spherical(90.0, 0.0).to(LosType.CARTESIAN, p, ellipsoid)
        assert np.allclose(los.arr(), [0.0, 0.0, 1.0], atol=1e-12)

    @pytest.mark.parametrize("direction", [
        (0.3, -0.5, 0.8),
        (-1.0, 0.2, 0.1),
        (0.0, 0.0, -2.0),
        (5.0, 5.0, 0.0),
    ])
    def test_cartesian_round_trip(self, ellipsoid, direction):
        p = Position.ellipsoidal(400e3, 30.0, 40.0)
        los = Los.cartesian(*direction)
        s = los.to(LosType.SPHERICAL, p, ellipsoid)
        back = s.to(LosType.CARTESIAN, p, ellipsoid)
        assert np.isclose(s.rate, los.norm)
        assert np.allclose(back.arr(), los.arr(), atol=1e-9)

    def test_pole_branch(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 90.0, 0.0)
        up = Los.spherical(0.0, 0.0).to(LosType.CARTESIAN, p, ellipsoid)
        assert np.allclose(up.arr(), [0.0, 0.0, 1.0], atol=1e-12)

        s = Los.cartesian(1.0, 0.0, 1.0).to(LosType.SPHERICAL, p, ellipsoid)
        assert np.isclose(s.zenith, 45.0)
        assert np.isclose(s.azimuth, 0.0)

    def test_vertical_direction_azimuth(self, ellipsoid):
        p = Position.ellipsoidal(0.0, 0.0, 0.0)
        s = Los.cartesian(-1.0, 0.0, 0.0).to(LosType.SPHERICAL, p, ellipsoid)
        assert np.isclose(s.zenith, 180.0)
        assert s.azimuth in (0.0, 180.0)

    def test_reversed_spherical(self):
        r = Los.spherical(30.0, 100.0, 2.0).reversed()
        assert np.isclose(r.zenith, 150.0)
        assert np.isclose(r.azimuth, -80.0)
        assert r.rate == 2.0

    def test_reversed_cartesian(self):
        assert Los.cartesian(1.0, -2.0, 3.0).reversed() == Los.cartesian(-1.0, 2.0, -3.0)

    def test_spherical_needs_position(self):
        with pytest.raises(UnsupportedConversionError, match="not yet supported"):
            Los.spherical(10.0, 20.0).unit()
        with pytest.raises(UnsupportedConversionError):
            Los.spherical(10.0, 20.0).as_offset()

    def test_zero_length(self):
        with pytest.raises(ValueError):
            Los.cartesian(0.0, 0.0, 0.0).unit()
