"""
Forward Radiative Transfer
==========================

Integrates the polarized radiative transfer equation along a path, from the
far boundary (last index) to the sensor (index 0), and propagates the
derivatives of the sensor radiance with respect to the retrieval targets.

For the segment i between points i and i + 1, with the propagation matrix
and Planck source averaged over its end points:

    T_i = expm(-K_i r_i)
    I_i = T_i I_{i+1} + (Id - T_i) J_i,    J_i = B_i e1

Frequencies are independent and may run on a thread pool; each worker only
writes its own frequency slice of the results.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import numpy as np

from polrad.absorption.band import Band, total_propagation
from polrad.geometry.paths import Path
from polrad.rte.jacobian import (
    Jacobian,
    JacobianAccumulator,
    StokesComponent,
    Target,
    TargetKind,
    resolve_polarization,
)
from polrad.rte.propagation import (
    check_stokes_dim,
    dplanck_dt,
    planck,
    propagation_matrix,
    segment_transmission,
)

logger = logging.getLogger(__name__)


class Results:
    """
    Radiance along the path and its Jacobian.

    Parameters
    ----------
    rad0 : array_like
        Boundary radiance, (n_freq, N), or (N,) for the same Stokes vector
        at every frequency
    targets : sequence of Target
        Retrieval targets
    path : Path or sequence
        The path; only its length is used
    frequencies : array_like
        Frequency grid [Hz]
    polarization : sequence of StokesComponent, optional
        Stokes components reported in the Jacobian; all by default

    Attributes
    ----------
    x : ndarray
        (n_points, n_freq, N) radiance arriving at each point, the boundary
        radiance at the last index
    dx : Jacobian
        Derivatives of the sensor radiance
    """

    def __init__(self, rad0, targets, path, frequencies, polarization=None):
        self.frequencies = np.atleast_1d(np.asarray(frequencies, dtype=float))
        n_freq = len(self.frequencies)
        n_points = len(path)
        if n_points < 1:
            raise ValueError("A path needs at least one point")

        rad0 = np.asarray(rad0, dtype=float)
        if rad0.ndim == 1:
            rad0 = np.broadcast_to(rad0, (n_freq, len(rad0)))
        if rad0.ndim != 2 or rad0.shape[0] != n_freq:
            raise ValueError(
                f"Boundary radiance of shape {rad0.shape} does not match "
                f"{n_freq} frequencies"
            )
        check_stokes_dim(rad0.shape[1])

        self.x = np.zeros((n_points, n_freq, rad0.shape[1]))
        self.x[-1] = rad0
        self.dx = Jacobian(
            targets, n_points, self.frequencies,
            resolve_polarization(polarization, rad0.shape[1]),
        )

    @property
    def stokes_dim(self) -> int:
        return self.x.shape[2]

    @property
    def n_points(self) -> int:
        return self.x.shape[0]

    def sensor_results(self) -> np.ndarray:
        """Radiance at the sensor, (n_freq, N)."""
        return self.x[0].copy()

    def freeze(self) -> None:
        """Make the radiance and the Jacobian read-only."""
        self.x.setflags(write=False)
        self.dx.data.setflags(write=False)


class _PathOptics:
    """Per-point propagation coefficients, source and their derivatives."""

    def __init__(self, path: Path, bands: Sequence[Band], frequencies, targets):
        n_points, n_freq = len(path), len(frequencies)
        self.distances = path.distances
        self.vector = np.zeros((n_points, n_freq, 4))
        self.source = np.zeros((n_points, n_freq))
        self.dvector = np.zeros((len(targets), n_points, n_freq, 4))
        self.dsource = np.zeros((len(targets), n_points, n_freq))

        for p, point in enumerate(path):
            zenith, azimuth = point.viewing_angles()
            T, pres, field = point.temperature, point.pressure, point.magnetic_field

            def vector_at(temperature=T, magnetic_field=field):
                return total_propagation(
                    bands, frequencies, temperature, pres, magnetic_field, zenith, azimuth
                )

            self.vector[p] = vector_at()
            self.source[p] = planck(frequencies, T)

            for t, target in enumerate(targets):
                h = target.perturbation
                if target.kind is TargetKind.TEMPERATURE:
                    self.dvector[t, p] = (vector_at(temperature=T + h)
                                          - vector_at(temperature=T - h)) / (2 * h)
                    self.dsource[t, p] = dplanck_dt(frequencies, T)
                elif target.kind is TargetKind.VMR:
                    self.dvector[t, p] = bands[target.band].propagation_vector(
                        frequencies, T, pres, field, zenith, azimuth, vmr=1.0
                    )
                else:
                    k = target.kind.field_component
                    up, down = list(field), list(field)
                    up[k] += h
                    down[k] -= h
                    self.dvector[t, p] = (vector_at(magnetic_field=tuple(up))
                                          - vector_at(magnetic_field=tuple(down))) / (2 * h)


def _integrate_frequency(results: Results, optics: _PathOptics, fi: int) -> None:
    N = results.stokes_dim
    n_points = results.n_points
    n_targets = len(results.dx.targets)
    Id = np.eye(N)
    e1 = Id[0]

    K_points = propagation_matrix(optics.vector[:, fi], N)
    segments = []
    for i in reversed(range(n_points - 1)):
        K = 0.5 * (K_points[i] + K_points[i + 1])
        J = 0.5 * (optics.source[i, fi] + optics.source[i + 1, fi]) * e1
        T = segment_transmission(K, optics.distances[i])
        results.x[i, fi] = T @ results.x[i + 1, fi] + (Id - T) @ J
        segments.append((K, T, J))

    if n_targets == 0 or n_points < 2:
        return

    segments.reverse()
    accumulator = JacobianAccumulator(results.dx, fi, N)
    for i, (K, T, J) in enumerate(segments):
        dK = propagation_matrix(
            optics.dvector[:, i:i + 2, fi].reshape(-1, 4), N
        ).reshape(n_targets, 2, N, N)
        dB = optics.dsource[:, i:i + 2, fi]
        accumulator.add_segment(i, K, T, optics.distances[i], results.x[i + 1, fi], J, dK, dB)


def compute_on_grid(
    rad0,
    path: Path,
    bands: Sequence[Band],
    frequencies,
    targets: Sequence[Target] = (),
    polarization: Optional[Sequence[StokesComponent]] = None,
    num_threads: int = 1,
) -> Results:
    """
    Forward calculation on an explicit frequency grid.

    Parameters
    ----------
    rad0 : array_like
        Boundary radiance at the last path point, (n_freq, N) or (N,)
    path : Path
        Propagation path, sensor at index 0
    bands : sequence of Band
        Absorbers; read-only during the calculation
    frequencies : array_like
        Frequency grid [Hz]
    targets : sequence of Target
        Retrieval targets for the Jacobian
    polarization : sequence of StokesComponent, optional
        Stokes components reported in the Jacobian
    num_threads : int
        Worker threads over frequencies

    Returns
    -------
    results : Results
    """
    frequencies = np.atleast_1d(np.asarray(frequencies, dtype=float))
    targets = tuple(targets)
    bands = tuple(bands)
    for target in targets:
        if target.kind is TargetKind.VMR and not 0 <= target.band < len(bands):
            raise ValueError(f"Target {target.name} refers to a missing band")
    if num_threads < 1:
        raise ValueError(f"num_threads must be at least 1, got {num_threads}")

    results = Results(rad0, targets, path, frequencies, polarization)
    if bands and not any(band.covers(frequencies) for band in bands):
        logger.warning(
            f"No band reaches {frequencies.min():.6g}-{frequencies.max():.6g} Hz, "
            "the path is transparent"
        )

    logger.info(
        f"Forward calculation: {len(path)} points, {len(frequencies)} frequencies, "
        f"Stokes dimension {results.stokes_dim}, {len(targets)} targets"
    )
    optics = _PathOptics(path, bands, frequencies, targets)

    if num_threads == 1:
        for fi in range(len(frequencies)):
            _integrate_frequency(results, optics, fi)
    else:
        with ThreadPoolExecutor(max_workers=num_threads) as executor:
            list(executor.map(
                lambda fi: _integrate_frequency(results, optics, fi),
                range(len(frequencies)),
            ))

    results.freeze()
    return results


def compute(
    rad0,
    path: Path,
    bands: Sequence[Band],
    flow: float,
    fupp: float,
    size: int,
    targets: Sequence[Target] = (),
    polarization: Optional[Sequence[StokesComponent]] = None,
    num_threads: int = 1,
) -> Results:
    """
    Forward calculation on ``size`` equidistant frequencies from ``flow`` to
    ``fupp``.

    See :func:`compute_on_grid` for the other parameters.
    """
    if size < 1:
        raise ValueError(f"size must be at least 1, got {size}")
    if fupp < flow:
        raise ValueError(f"Upper frequency {fupp} is below lower frequency {flow}")
    return compute_on_grid(
        rad0, path, bands, np.linspace(flow, fupp, size),
        targets, polarization, num_threads,
    )
