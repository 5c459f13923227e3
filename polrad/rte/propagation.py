"""
Stokes propagation building blocks.

Planck source function, the absorption-only Stokes propagation matrix and
the transmission through a homogeneous segment:

    K = | A  B  C  D |
        | B  A  0  0 |
        | C  0  A  0 |
        | D  0  0  A |

    T(r) = expm(-K r)

Stokes dimension N uses the upper-left N x N block of K.
"""

import numpy as np
from numba import jit
from scipy.linalg import expm, expm_frechet

from polrad.core.constants import (
    BOLTZMANN_CONSTANT,
    COSMIC_BACKGROUND_TEMPERATURE,
    PLANCK_CONSTANT,
    SPEED_OF_LIGHT,
)

MAX_STOKES_DIM = 4

_C1 = 2.0 * PLANCK_CONSTANT / SPEED_OF_LIGHT ** 2
_C2 = PLANCK_CONSTANT / BOLTZMANN_CONSTANT


# =============================================================================
# Numba-accelerated source functions
# =============================================================================

@jit(nopython=True, cache=True)
def _planck(frequency: np.ndarray, temperature: float) -> np.ndarray:
    n = len(frequency)
    result = np.zeros(n)
    if temperature <= 0:
        return result
    for i in range(n):
        f = frequency[i]
        if f > 0:
            x = _C2 * f / temperature
            if x < 700:
                result[i] = _C1 * f ** 3 / np.expm1(x)
    return result


@jit(nopython=True, cache=True)
def _dplanck_dt(frequency: np.ndarray, temperature: float) -> np.ndarray:
    n = len(frequency)
    result = np.zeros(n)
    if temperature <= 0:
        return result
    for i in range(n):
        f = frequency[i]
        if f > 0:
            x = _C2 * f / temperature
            if x < 350:
                em1 = np.expm1(x)
                result[i] = _C1 * f ** 3 * x * (em1 + 1.0) / (temperature * em1 * em1)
    return result


def planck(frequency, temperature: float) -> np.ndarray:
    """Blackbody radiance B(f, T).

    Args:
        frequency: Frequencies [Hz]
        temperature: Temperature [K]

    Returns:
        Spectral radiance [W m^-2 sr^-1 Hz^-1]
    """
    return _planck(np.atleast_1d(np.asarray(frequency, dtype=float)), float(temperature))


def dplanck_dt(frequency, temperature: float) -> np.ndarray:
    """Temperature derivative of the Planck radiance [W m^-2 sr^-1 Hz^-1 K^-1]."""
    return _dplanck_dt(np.atleast_1d(np.asarray(frequency, dtype=float)), float(temperature))


def cosmic_background(frequency, stokes_dim: int = 1) -> np.ndarray:
    """
    Unpolarized cosmic microwave background radiance.

    Returns
    -------
    rad0 : ndarray
        (n_freq, stokes_dim), the intensity in the first column
    """
    check_stokes_dim(stokes_dim)
    f = np.atleast_1d(np.asarray(frequency, dtype=float))
    rad0 = np.zeros((len(f), stokes_dim))
    rad0[:, 0] = planck(f, COSMIC_BACKGROUND_TEMPERATURE)
    return rad0


def check_stokes_dim(stokes_dim: int) -> None:
    if not 1 <= stokes_dim <= MAX_STOKES_DIM:
        raise ValueError(f"Stokes dimension must be in 1..4, got {stokes_dim}")


def propagation_matrix(vector: np.ndarray, stokes_dim: int) -> np.ndarray:
    """
    Build Stokes propagation matrices from [A, B, C, D] coefficients.

    Parameters
    ----------
    vector : ndarray
        (4,) or (n_freq, 4) coefficients in 1/m
    stokes_dim : int
        Stokes dimension N

    Returns
    -------
    K : ndarray
        (N, N) or (n_freq, N, N)
    """
    check_stokes_dim(stokes_dim)
    v = np.asarray(vector, dtype=float)
    single = v.ndim == 1
    v = np.atleast_2d(v)

    K = np.zeros((len(v), MAX_STOKES_DIM, MAX_STOKES_DIM))
    for k in range(MAX_STOKES_DIM):
        K[:, k, k] = v[:, 0]
    for k in range(1, MAX_STOKES_DIM):
        K[:, 0, k] = v[:, k]
        K[:, k, 0] = v[:, k]

    K = K[:, :stokes_dim, :stokes_dim]
    return K[0] if single else K


def segment_transmission(K: np.ndarray, distance: float) -> np.ndarray:
    """Transmission matrix expm(-K r) of a homogeneous segment."""
    return expm(-K * distance)


def transmission_derivative(K: np.ndarray, dK: np.ndarray, distance: float) -> np.ndarray:
    """Change of expm(-K r) in the direction dK of the propagation matrix."""
    return expm_frechet(-K * distance, -dK * distance, compute_expm=False)
