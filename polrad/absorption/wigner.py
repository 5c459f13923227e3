"""
Wigner 3j symbols.

Exact evaluation of the Racah formula on rational arithmetic so integer and
half-integer angular momenta are handled alike.
"""

from fractions import Fraction
from math import factorial, sqrt
from typing import Union

Momentum = Union[int, float, Fraction]


def as_momentum(value: Momentum) -> Fraction:
    """
    Convert an angular momentum quantum number to a Fraction.

    Raises
    ------
    ValueError
        If the value is not a multiple of 1/2
    """
    exact = Fraction(value)
    f = exact.limit_denominator(2)
    if abs(f - exact) > Fraction(1, 10 ** 9):
        raise ValueError(f"{value} is not an integer or half-integer")
    return f


def _is_integer(f: Fraction) -> bool:
    return f.denominator == 1


def _fact(f: Fraction) -> int:
    return factorial(int(f))


def wigner3j(j1: Momentum, j2: Momentum, j3: Momentum,
             m1: Momentum, m2: Momentum, m3: Momentum) -> float:
    """
    Wigner 3j symbol (j1 j2 j3; m1 m2 m3).

    Returns 0 for combinations violating the selection rules.

    References
    ----------
    Racah, G. (1942). Theory of complex spectra II. Phys. Rev. 62, 438.
    """
    j1, j2, j3 = as_momentum(j1), as_momentum(j2), as_momentum(j3)
    m1, m2, m3 = as_momentum(m1), as_momentum(m2), as_momentum(m3)

    if m1 + m2 + m3 != 0:
        return 0.0
    if abs(m1) > j1 or abs(m2) > j2 or abs(m3) > j3:
        return 0.0
    if not (_is_integer(j1 - m1) and _is_integer(j2 - m2) and _is_integer(j3 - m3)):
        return 0.0
    if not _is_integer(j1 + j2 + j3):
        return 0.0
    if j3 > j1 + j2 or j3 < abs(j1 - j2):
        return 0.0

    triangle = Fraction(
        _fact(j1 + j2 - j3) * _fact(j1 - j2 + j3) * _fact(-j1 + j2 + j3),
        _fact(j1 + j2 + j3 + 1),
    )
    prefactor = triangle * (
        _fact(j1 + m1) * _fact(j1 - m1)
        * _fact(j2 + m2) * _fact(j2 - m2)
        * _fact(j3 + m3) * _fact(j3 - m3)
    )

    k_min = int(max(0, j2 - j3 - m1, j1 - j3 + m2))
    k_max = int(min(j1 + j2 - j3, j1 - m1, j2 + m2))

    total = Fraction(0)
    for k in range(k_min, k_max + 1):
        denominator = (
            factorial(k)
            * _fact(j3 - j2 + k + m1)
            * _fact(j3 - j1 + k - m2)
            * _fact(j1 + j2 - j3 - k)
            * _fact(j1 - k - m1)
            * _fact(j2 - k + m2)
        )
        total += Fraction((-1) ** k, denominator)

    if total == 0:
        return 0.0

    phase = -1 if int(j1 - j2 - m3) % 2 else 1
    sign = phase * (1 if total > 0 else -1)
    return sign * sqrt(float(total * total * prefactor))
