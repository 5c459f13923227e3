"""
Retrieval targets and Jacobian storage.

The Jacobian holds the derivative of the radiance observed at the sensor
with respect to a parameter at each path point, for each frequency and
reported Stokes component.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional, Sequence

import numpy as np

from polrad.rte.propagation import transmission_derivative

_DEFAULT_PERTURBATIONS = {
    "temperature": 0.1,
    "vmr": 1e-6,
    "magnetic_u": 1e-7,
    "magnetic_v": 1e-7,
    "magnetic_w": 1e-7,
}


class TargetKind(Enum):
    """Parameter a Jacobian row differentiates against."""
    TEMPERATURE = "temperature"
    VMR = "vmr"
    MAGNETIC_U = "magnetic_u"
    MAGNETIC_V = "magnetic_v"
    MAGNETIC_W = "magnetic_w"

    @property
    def field_component(self) -> Optional[int]:
        """Index into the (east, north, up) field vector, None for other kinds."""
        return {
            TargetKind.MAGNETIC_U: 0,
            TargetKind.MAGNETIC_V: 1,
            TargetKind.MAGNETIC_W: 2,
        }.get(self)


class StokesComponent(IntEnum):
    I = 0
    Q = 1
    U = 2
    V = 3


@dataclass(frozen=True)
class Target:
    """
    A retrieval target.

    Attributes
    ----------
    kind : TargetKind
        Parameter type
    band : int, optional
        Index of the band whose mixing ratio is retrieved; VMR targets only
    perturbation : float, optional
        Step of the central differences for temperature and field targets;
        a per-kind default when not given
    """

    kind: TargetKind
    band: Optional[int] = None
    perturbation: Optional[float] = None

    def __post_init__(self):
        if self.kind is TargetKind.VMR and self.band is None:
            raise ValueError("VMR targets need a band index")
        if self.kind is not TargetKind.VMR and self.band is not None:
            raise ValueError(f"{self.kind.value} targets do not take a band index")
        if self.perturbation is None:
            object.__setattr__(self, "perturbation", _DEFAULT_PERTURBATIONS[self.kind.value])
        elif self.perturbation <= 0:
            raise ValueError(f"perturbation must be positive, got {self.perturbation}")

    @property
    def name(self) -> str:
        if self.kind is TargetKind.VMR:
            return f"vmr[{self.band}]"
        return self.kind.value


def resolve_polarization(
    polarization: Optional[Sequence[StokesComponent]], stokes_dim: int
) -> List[StokesComponent]:
    """Reported Stokes components; all of them when none are given."""
    if polarization is None:
        return [StokesComponent(k) for k in range(stokes_dim)]
    components = [StokesComponent(p) for p in polarization]
    for c in components:
        if c >= stokes_dim:
            raise ValueError(
                f"Stokes component {c.name} is not available with Stokes dimension {stokes_dim}"
            )
    return components


class Jacobian:
    """
    Derivatives of the sensor radiance.

    Parameters
    ----------
    targets : sequence of Target
        Retrieval targets, one row each
    n_points : int
        Number of path points
    frequencies : array_like
        Frequency grid [Hz]
    polarization : sequence of StokesComponent
        Reported Stokes components

    Attributes
    ----------
    data : ndarray
        (n_targets, n_points, n_freq, n_pol)
    """

    def __init__(self, targets, n_points, frequencies, polarization):
        self.targets = tuple(targets)
        self.frequencies = np.asarray(frequencies, dtype=float)
        self.polarization = tuple(polarization)
        self._indices = np.array([int(p) for p in self.polarization], dtype=int)
        self.data = np.zeros(
            (len(self.targets), n_points, len(self.frequencies), len(self.polarization))
        )

    @property
    def shape(self):
        return self.data.shape

    def __getitem__(self, key):
        return self.data[key]

    def for_target(self, target: Target) -> np.ndarray:
        """(n_points, n_freq, n_pol) block of one target."""
        return self.data[self.targets.index(target)]

    def add(self, target_index: int, point: int, frequency_index: int, dI: np.ndarray) -> None:
        self.data[target_index, point, frequency_index, :] += dI[self._indices]


class JacobianAccumulator:
    """
    Jacobian bookkeeping of one frequency.

    Walks the path from the sensor outwards carrying the transmission
    product from the sensor to the current point. Each instance writes only
    its own frequency slice of the Jacobian.
    """

    def __init__(self, jacobian: Jacobian, frequency_index: int, stokes_dim: int):
        self.jacobian = jacobian
        self.frequency_index = frequency_index
        self.stokes_dim = stokes_dim
        self.phi = np.eye(stokes_dim)
        self._e1 = np.zeros(stokes_dim)
        self._e1[0] = 1.0

    def add_segment(self, segment, K, T, distance, I_far, J, dK, dB) -> None:
        """
        Add the contributions of one segment and move past it.

        Parameters
        ----------
        segment : int
            Index i of the segment between points i and i + 1
        K, T : ndarray
            (N, N) mean propagation matrix and transmission of the segment
        distance : float
            Segment length [m]
        I_far : ndarray
            (N,) radiance entering the segment at point i + 1
        J : ndarray
            (N,) mean source of the segment
        dK : ndarray
            (n_targets, 2, N, N) derivatives of the point propagation
            matrices at points i and i + 1
        dB : ndarray
            (n_targets, 2) derivatives of the point Planck radiance
        """
        N = self.stokes_dim
        residual = I_far - J
        emission = np.eye(N) - T

        for t in range(len(self.jacobian.targets)):
            for side in (0, 1):
                dk = 0.5 * dK[t, side]
                db = 0.5 * dB[t, side]
                has_dk = bool(np.any(dk))
                if not has_dk and db == 0:
                    continue

                dI = emission @ (db * self._e1)
                if has_dk:
                    dI = dI + transmission_derivative(K, dk, distance) @ residual
                self.jacobian.add(t, segment + side, self.frequency_index, self.phi @ dI)

        self.phi = self.phi @ T
