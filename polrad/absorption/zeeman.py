"""
Zeeman Effect
=============

Splitting of a rotational transition into polarized sublines in a magnetic
field. A transition between upper/lower angular momenta ``Ju``/``Jl`` splits
into three polarization classes, each a set of sublines indexed by the
upper-state magnetic quantum number ``Mu``:

- sigma-: Ml = Mu - 1
- pi:     Ml = Mu
- sigma+: Ml = Mu + 1

``NONE`` is the unsplit line. The caller guarantees that ``(Ju, Jl)`` is a
valid dipole transition (|Ju - Jl| <= 1, not both zero); this is not checked.

References
----------
- Larsson, R., Lankhaar, B., Eriksson, P. (2019). Updated Zeeman effect
  splitting coefficients for molecular oxygen in planetary applications.
  JQSRT 224, 431-438.
- Lenoir, W. B. (1968). Microwave spectrum of molecular oxygen in the
  mesosphere. J. Geophys. Res. 73, 361-376.
"""

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import List, NamedTuple

import numpy as np

from polrad.absorption.wigner import Momentum, as_momentum, wigner3j
from polrad.core.constants import BOHR_MAGNETON_OVER_PLANCK


class Polarization(Enum):
    """Zeeman polarization class."""
    SIGMA_MINUS = "sigma-"
    PI = "pi"
    SIGMA_PLUS = "sigma+"
    NONE = "none"


SPLIT_POLARIZATIONS = (Polarization.SIGMA_MINUS, Polarization.PI, Polarization.SIGMA_PLUS)

_POLARIZATION_FACTORS = {
    Polarization.SIGMA_MINUS: 0.75,
    Polarization.PI: 1.5,
    Polarization.SIGMA_PLUS: 0.75,
    Polarization.NONE: 1.0,
}


def dM(type: Polarization) -> int:
    """Change of M from the upper to the lower state."""
    if type is Polarization.SIGMA_MINUS:
        return -1
    if type is Polarization.SIGMA_PLUS:
        return 1
    return 0


def start(Ju: Momentum, Jl: Momentum, type: Polarization) -> Fraction:
    """First upper-state M of the polarization class."""
    Ju, Jl = as_momentum(Ju), as_momentum(Jl)
    if type is Polarization.SIGMA_MINUS:
        if Ju < Jl:
            return -Ju
        elif Ju == Jl:
            return -Ju + 1
        else:
            return -Ju + 2
    if type is Polarization.PI:
        return -min(Ju, Jl)
    if type is Polarization.SIGMA_PLUS:
        return -Ju
    return Fraction(0)


def end(Ju: Momentum, Jl: Momentum, type: Polarization) -> Fraction:
    """
    One past the last upper-state M of the polarization class.

    The range is half-open, ``start <= Mu < end``, like ``range``.
    """
    Ju, Jl = as_momentum(Ju), as_momentum(Jl)
    if type is Polarization.SIGMA_MINUS:
        return Ju + 1
    if type is Polarization.PI:
        return min(Ju, Jl) + 1
    if type is Polarization.SIGMA_PLUS:
        if Ju < Jl:
            return Ju + 1
        elif Ju == Jl:
            return Ju
        else:
            return Jl
    return Fraction(1)


def count(Ju: Momentum, Jl: Momentum, type: Polarization) -> int:
    """Number of sublines in the polarization class."""
    return int(end(Ju, Jl, type) - start(Ju, Jl, type))


def Mu(Ju: Momentum, Jl: Momentum, type: Polarization, n: int) -> Fraction:
    """Upper-state M of subline ``n``."""
    return start(Ju, Jl, type) + n


def Ml(Ju: Momentum, Jl: Momentum, type: Polarization, n: int) -> Fraction:
    """Lower-state M of subline ``n``."""
    return Mu(Ju, Jl, type, n) + dM(type)


def polarization_factor(type: Polarization) -> float:
    """
    Renormalization of a polarization class.

    With these factors the sigma-, pi and sigma+ strengths of a transition
    add up to one.
    """
    return _POLARIZATION_FACTORS[type]


class Subline(NamedTuple):
    """One Zeeman component."""
    Mu: Fraction
    Ml: Fraction
    strength: float
    splitting: float


@dataclass(frozen=True)
class Zeeman:
    """
    Zeeman coefficients of a transition.

    Attributes
    ----------
    gu : float
        Lande g-factor of the upper state
    gl : float
        Lande g-factor of the lower state
    """

    gu: float = 0.0
    gl: float = 0.0

    @property
    def is_active(self) -> bool:
        """True if the transition splits in a field."""
        return self.gu != 0 or self.gl != 0

    def strength(self, Ju: Momentum, Jl: Momentum, type: Polarization, n: int) -> float:
        """
        Strength of subline ``n``: polarization factor times the squared
        Wigner 3j symbol.
        """
        if type is Polarization.NONE:
            return 1.0
        mu = Mu(Ju, Jl, type, n)
        ml = Ml(Ju, Jl, type, n)
        w = wigner3j(Jl, 1, Ju, ml, -dM(type), -mu)
        return polarization_factor(type) * w * w

    def relative_strength(self, Ju: Momentum, Jl: Momentum, type: Polarization, n: int) -> float:
        """Strength of subline ``n`` normalized within its polarization class."""
        if type is Polarization.NONE:
            return 1.0
        mu = Mu(Ju, Jl, type, n)
        ml = Ml(Ju, Jl, type, n)
        w = wigner3j(Jl, 1, Ju, ml, -dM(type), -mu)
        return 3.0 * w * w

    def splitting(self, Ju: Momentum, Jl: Momentum, type: Polarization, n: int) -> float:
        """Frequency shift of subline ``n`` per unit field [Hz/T]."""
        if type is Polarization.NONE:
            return 0.0
        return BOHR_MAGNETON_OVER_PLANCK * (
            float(Ml(Ju, Jl, type, n)) * self.gl - float(Mu(Ju, Jl, type, n)) * self.gu
        )

    def sublines(self, Ju: Momentum, Jl: Momentum, type: Polarization) -> List[Subline]:
        return [
            Subline(
                Mu(Ju, Jl, type, n),
                Ml(Ju, Jl, type, n),
                self.strength(Ju, Jl, type, n),
                self.splitting(Ju, Jl, type, n),
            )
            for n in range(count(Ju, Jl, type))
        ]


# =============================================================================
# Field geometry
# =============================================================================

class Angles(NamedTuple):
    """Magnetic field angles in degrees."""
    theta: float
    eta: float


def _los_xyz_by_za(za: float, aa: float) -> np.ndarray:
    z, a = np.radians(za), np.radians(aa)
    return np.array([np.cos(a) * np.sin(z), np.sin(a) * np.sin(z), np.cos(z)])


def _ev_xyz_by_za(za: float, aa: float) -> np.ndarray:
    z, a = np.radians(za), np.radians(aa)
    return np.array([np.cos(a) * np.cos(z), np.sin(a) * np.cos(z), -np.sin(z)])


def angles(u: float, v: float, w: float, za: float, aa: float) -> Angles:
    """
    Angles between the magnetic field and the line of sight.

    Parameters
    ----------
    u, v, w : float
        Local east, north and up field components
    za, aa : float
        Zenith and azimuth of the line of sight in degrees

    Returns
    -------
    Angles
        ``theta`` between field and line of sight, ``eta`` of the field
        projected onto the plane orthogonal to the line of sight; both zero
        when there is no field
    """
    H = np.sqrt(u * u + v * v + w * w)
    if H == 0:
        return Angles(0.0, 0.0)

    # Local frame is (north, east, up)
    n = _los_xyz_by_za(za, aa)
    ev = _ev_xyz_by_za(za, aa)
    nH = np.array([v, u, w]) / H
    inplane = nH - nH.dot(n) * n

    theta = np.degrees(np.arccos(np.clip(n.dot(nH), -1.0, 1.0)))
    eta = np.degrees(np.arctan2(ev.dot(inplane), np.cross(ev, inplane).dot(n)))
    return Angles(float(theta), float(eta))


def angles_from_zenith_azimuth(
    strength: float, field_za: float, field_aa: float, za: float, aa: float
) -> Angles:
    """Same as :func:`angles` with the field given as strength and direction."""
    fz, fa = np.radians(field_za), np.radians(field_aa)
    u = strength * np.sin(fz) * np.sin(fa)
    v = strength * np.sin(fz) * np.cos(fa)
    w = strength * np.cos(fz)
    return angles(u, v, w, za, aa)


def polarization_vector(type: Polarization, theta: float, eta: float) -> np.ndarray:
    """
    Absorption pattern [A, B, C, D] of a polarization class.

    A scales intensity extinction, B and C linear polarization and D
    circular polarization. Weighted by the subline strengths, the sum over
    all sublines of a transition is [1, 0, 0, 0].
    """
    if type is Polarization.NONE:
        return np.array([1.0, 0.0, 0.0, 0.0])

    t, e = np.radians(theta), np.radians(eta)
    s2 = np.sin(t) ** 2
    c2 = np.cos(t) ** 2
    c2eta, s2eta = np.cos(2 * e), np.sin(2 * e)

    if type is Polarization.PI:
        return np.array([s2, s2 * c2eta, s2 * s2eta, 0.0])

    circular = 2 * np.cos(t) if type is Polarization.SIGMA_MINUS else -2 * np.cos(t)
    return np.array([1 + c2, -s2 * c2eta, -s2 * s2eta, circular])
