"""
Absorption lines and bands.

A Band is a read-only collection of lines of one absorbing species sharing a
volume mixing ratio. It produces the absorption coefficient and, with a
magnetic field, the polarized propagation coefficients [A, B, C, D] that
fill the Stokes propagation matrix.

The line shape is Lorentzian with pressure broadening:

    alpha(f) = vmr * n * S(T) * phi(f)
    phi(f) = gamma / (pi * ((f - f0)^2 + gamma^2))
    S(T) = S0 * (T0/T)^q * exp(-E'' / k * (1/T - 1/T0))
    gamma = gamma0 * (p/p0) * (T0/T)^n

with n = p / (k T) the air number density.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from numba import jit

from polrad.absorption.wigner import Momentum
from polrad.absorption.zeeman import (
    Polarization,
    SPLIT_POLARIZATIONS,
    Zeeman,
    angles,
    polarization_vector,
)
from polrad.core.constants import (
    BOLTZMANN_CONSTANT,
    LINE_CUTOFF_HZ,
    REFERENCE_PRESSURE,
    REFERENCE_TEMPERATURE,
)

logger = logging.getLogger(__name__)

Field = Tuple[float, float, float]


# =============================================================================
# Numba-accelerated line shape
# =============================================================================

@jit(nopython=True, cache=True)
def lorentz_sum(
    frequencies: np.ndarray,
    centers: np.ndarray,
    strengths: np.ndarray,
    widths: np.ndarray,
    cutoff: float,
) -> np.ndarray:
    """Sum of Lorentz profiles weighted by line strength.

    Args:
        frequencies: Spectral grid [Hz]
        centers: Line center frequencies [Hz]
        strengths: Integrated line strengths
        widths: Half-widths at half-maximum [Hz]; lines with width <= 0 are skipped
        cutoff: Distance from line center beyond which a line is ignored [Hz]

    Returns:
        Strength-weighted line shape sum [strength / Hz]
    """
    n = len(frequencies)
    result = np.zeros(n)

    for j in range(len(centers)):
        gamma = widths[j]
        if gamma <= 0.0:
            continue
        for i in range(n):
            df = frequencies[i] - centers[j]
            if np.abs(df) <= cutoff:
                result[i] += strengths[j] * gamma / (np.pi * (df * df + gamma * gamma))

    return result


@dataclass(frozen=True)
class AbsorptionLine:
    """
    One rotational transition.

    Attributes
    ----------
    f0 : float
        Line center frequency [Hz]
    intensity : float
        Line strength at the reference temperature [m^2 Hz per molecule]
    gamma : float
        Pressure broadening half-width at the reference pressure and
        temperature [Hz]
    n : float
        Temperature exponent of the broadening
    lower_energy : float
        Lower state energy [J]
    Ju, Jl : Momentum, optional
        Upper and lower angular momentum; required for Zeeman splitting
    zeeman : Zeeman
        Lande factors, all zero for a line that does not split
    """

    f0: float
    intensity: float
    gamma: float
    n: float = 0.75
    lower_energy: float = 0.0
    Ju: Optional[Momentum] = None
    Jl: Optional[Momentum] = None
    zeeman: Zeeman = field(default_factory=Zeeman)

    @property
    def splits(self) -> bool:
        return self.Ju is not None and self.Jl is not None and self.zeeman.is_active


@dataclass(frozen=True)
class Band:
    """
    Read-only set of absorption lines of one species.

    Parameters
    ----------
    lines : sequence of AbsorptionLine
        Lines of the band
    vmr : float
        Volume mixing ratio of the absorber
    reference_temperature : float
        Temperature of the tabulated line data [K]
    reference_pressure : float
        Pressure of the tabulated broadening [Pa]
    cutoff : float
        Lines are ignored further than this from their center [Hz]
    partition_exponent : float
        Exponent q of the rotational partition function ratio (T0/T)^q;
        1 for linear molecules
    """

    lines: Tuple[AbsorptionLine, ...]
    vmr: float = 1.0
    reference_temperature: float = REFERENCE_TEMPERATURE
    reference_pressure: float = REFERENCE_PRESSURE
    cutoff: float = LINE_CUTOFF_HZ
    partition_exponent: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))
        if self.vmr < 0:
            raise ValueError(f"vmr must be non-negative, got {self.vmr}")
        if self.cutoff <= 0:
            raise ValueError(f"cutoff must be positive, got {self.cutoff}")
        for line in self.lines:
            if line.zeeman.is_active and not line.splits:
                logger.warning(
                    f"Line at {line.f0:.6g} Hz has Lande factors but no Ju/Jl, "
                    "it will not split"
                )

        arrays = {
            "_f0": [line.f0 for line in self.lines],
            "_s0": [line.intensity for line in self.lines],
            "_gamma0": [line.gamma for line in self.lines],
            "_n": [line.n for line in self.lines],
            "_elow": [line.lower_energy for line in self.lines],
        }
        for name, values in arrays.items():
            a = np.array(values, dtype=float)
            a.setflags(write=False)
            object.__setattr__(self, name, a)

    def __len__(self) -> int:
        return len(self.lines)

    def with_vmr(self, vmr: float) -> "Band":
        return Band(self.lines, vmr, self.reference_temperature,
                    self.reference_pressure, self.cutoff, self.partition_exponent)

    @property
    def frequency_range(self) -> Tuple[float, float]:
        """Frequencies the band can contribute to [Hz]."""
        if not self.lines:
            return (0.0, 0.0)
        return (float(self._f0.min()) - self.cutoff, float(self._f0.max()) + self.cutoff)

    def covers(self, frequencies) -> bool:
        """True if any of the frequencies is within reach of a line."""
        if not self.lines:
            return False
        f = np.asarray(frequencies, dtype=float)
        lo, hi = self.frequency_range
        return bool(np.any((f >= lo) & (f <= hi)))

    def line_strength(self, temperature: float) -> np.ndarray:
        """Line strengths at the given temperature."""
        T0 = self.reference_temperature
        return (
            self._s0
            * (T0 / temperature) ** self.partition_exponent
            * np.exp(-self._elow / BOLTZMANN_CONSTANT * (1.0 / temperature - 1.0 / T0))
        )

    def line_width(self, temperature: float, pressure: float) -> np.ndarray:
        """Pressure broadened half-widths [Hz]."""
        return (
            self._gamma0
            * (pressure / self.reference_pressure)
            * (self.reference_temperature / temperature) ** self._n
        )

    def _scale(self, temperature: float, pressure: float, vmr: Optional[float]) -> float:
        """Absorber number density [1/m^3]."""
        x = self.vmr if vmr is None else vmr
        return x * pressure / (BOLTZMANN_CONSTANT * temperature)

    def absorption(
        self,
        frequencies: np.ndarray,
        temperature: float,
        pressure: float,
        vmr: Optional[float] = None,
    ) -> np.ndarray:
        """
        Unpolarized absorption coefficient.

        Parameters
        ----------
        frequencies : array_like
            Frequency grid [Hz]
        temperature : float
            Temperature [K]
        pressure : float
            Pressure [Pa]
        vmr : float, optional
            Override of the band mixing ratio

        Returns
        -------
        alpha : ndarray
            Absorption coefficient [1/m]
        """
        f = np.ascontiguousarray(frequencies, dtype=float)
        if not self.lines or pressure <= 0:
            return np.zeros(len(f))
        shape = lorentz_sum(
            f,
            np.ascontiguousarray(self._f0),
            self.line_strength(temperature),
            self.line_width(temperature, pressure),
            self.cutoff,
        )
        return self._scale(temperature, pressure, vmr) * shape

    def propagation_vector(
        self,
        frequencies: np.ndarray,
        temperature: float,
        pressure: float,
        magnetic_field: Field = (0.0, 0.0, 0.0),
        zenith: float = 0.0,
        azimuth: float = 0.0,
        vmr: Optional[float] = None,
    ) -> np.ndarray:
        """
        Polarized propagation coefficients along a line of sight.

        Lines with Zeeman data are split into their sublines when the field
        is non-zero; all other lines contribute to A only.

        Parameters
        ----------
        frequencies : array_like
            Frequency grid [Hz]
        temperature : float
            Temperature [K]
        pressure : float
            Pressure [Pa]
        magnetic_field : tuple of float
            Local (east, north, up) field [T]
        zenith, azimuth : float
            Viewing direction at the point [deg]
        vmr : float, optional
            Override of the band mixing ratio

        Returns
        -------
        vector : ndarray
            (n_freq, 4) coefficients [A, B, C, D] in 1/m
        """
        f = np.ascontiguousarray(frequencies, dtype=float)
        result = np.zeros((len(f), 4))
        if not self.lines or pressure <= 0:
            return result

        u, v, w = magnetic_field
        field_strength = float(np.sqrt(u * u + v * v + w * w))
        strengths = self.line_strength(temperature)
        widths = self.line_width(temperature, pressure)

        split = np.array([line.splits for line in self.lines], dtype=bool)
        if field_strength == 0:
            split[:] = False

        if np.any(~split):
            keep = ~split
            result[:, 0] += lorentz_sum(
                f,
                np.ascontiguousarray(self._f0[keep]),
                np.ascontiguousarray(strengths[keep]),
                np.ascontiguousarray(widths[keep]),
                self.cutoff,
            )

        if np.any(split):
            theta, eta = angles(u, v, w, zenith, azimuth)
            for pol in SPLIT_POLARIZATIONS:
                centers, weights, gammas = self._sublines(
                    pol, np.flatnonzero(split), strengths, widths, field_strength
                )
                if not centers:
                    continue
                shape = lorentz_sum(
                    f, np.array(centers), np.array(weights), np.array(gammas), self.cutoff
                )
                result += np.outer(shape, polarization_vector(pol, theta, eta))

        return self._scale(temperature, pressure, vmr) * result

    def _sublines(
        self,
        pol: Polarization,
        indices: Iterable[int],
        strengths: np.ndarray,
        widths: np.ndarray,
        field_strength: float,
    ):
        centers, weights, gammas = [], [], []
        for i in indices:
            line = self.lines[i]
            for sub in line.zeeman.sublines(line.Ju, line.Jl, pol):
                centers.append(line.f0 + sub.splitting * field_strength)
                weights.append(strengths[i] * sub.strength)
                gammas.append(widths[i])
        return centers, weights, gammas


def total_propagation(
    bands: Sequence[Band],
    frequencies: np.ndarray,
    temperature: float,
    pressure: float,
    magnetic_field: Field = (0.0, 0.0, 0.0),
    zenith: float = 0.0,
    azimuth: float = 0.0,
) -> np.ndarray:
    """Propagation coefficients summed over bands, shape (n_freq, 4)."""
    result = np.zeros((len(frequencies), 4))
    for band in bands:
        result += band.propagation_vector(
            frequencies, temperature, pressure, magnetic_field, zenith, azimuth
        )
    return result
