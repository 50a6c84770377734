"""
Real and complex spherical harmonics with gradients.

Real spherical harmonics are evaluated through the recursion for the
real solid harmonics ``r^l Y_lm`` on Cartesian components, so that no
trigonometric functions are called:

    Q_m^m     = -(2m - 1) Q_{m-1}^{m-1}
    Q_{m+1}^m = (2m + 1) z Q_m^m
    Q_l^m     = ((2l - 1) z Q_{l-1}^m - (l + m - 1) r^2 Q_{l-2}^m) / (l - m)

    C_m + i S_m = (x + i y)^m

    Y_l0 = F_l^0 Q_l^0,  Y_lm = F_l^m Q_l^m C_m,  Y_l-m = F_l^m Q_l^m S_m

The real harmonics are orthonormal on the sphere and follow the usual
convention without Condon-Shortley phase, e.g. ``Y_1,-1 ~ y``,
``Y_10 ~ z``, ``Y_11 ~ x``.  The complex harmonics (with Condon-Shortley
phase) are obtained from the real ones by a unitary transformation per
``l`` (`real_to_complex_matrix`).

Indices are flattened as ``lm_index(l, m) = l^2 + l + m``.

"""

import math
from typing import Tuple

import numpy as np

from .exceptions import ConfigurationError, DomainError

__author__ = "The acebasis developers"
__date__ = "2026-08-10"

__all__ = ['lm_index', 'sh_length', 'real_to_complex_matrix',
           'RSHBasis', 'SHBasis']


def lm_index(l: int, m: int) -> int:
    return l * l + l + m


def sh_length(maxl: int) -> int:
    return (maxl + 1)**2


def real_to_complex_matrix(l: int) -> np.ndarray:
    """
    Unitary matrix U with ``Y^C_lm = sum_mu U[m, mu] Y^R_lmu``.

    Rows and columns are ordered ``m = -l..l``.
    """
    U = np.zeros((2 * l + 1, 2 * l + 1), dtype=np.complex128)
    U[l, l] = 1.0
    s = 1.0 / math.sqrt(2.0)
    for m in range(1, l + 1):
        sign = (-1)**m
        U[l + m, l + m] = sign * s
        U[l + m, l - m] = 1j * sign * s
        U[l - m, l + m] = s
        U[l - m, l - m] = -1j * s
    return U


def _normalization(maxl: int) -> np.ndarray:
    F = np.zeros((maxl + 1, maxl + 1))
    for l in range(maxl + 1):
        F[l, 0] = math.sqrt((2 * l + 1) / (4.0 * math.pi))
        for m in range(1, l + 1):
            F[l, m] = (-1)**m * math.sqrt(2.0) * math.sqrt(
                (2 * l + 1) / (4.0 * math.pi)
                * math.factorial(l - m) / math.factorial(l + m))
    return F


def _unit_vectors(R) -> Tuple[np.ndarray, np.ndarray]:
    R = np.asarray(R, dtype=np.float64)
    if R.ndim == 1:
        R = R[None, :]
    if R.ndim != 2 or R.shape[1] != 3:
        raise ValueError(
            "Expected vectors of shape (J, 3), got {}".format(R.shape))
    r = np.linalg.norm(R, axis=1)
    if np.any(r == 0.0):
        raise DomainError(
            "Spherical harmonics are undefined for zero-length vectors.")
    return R / r[:, None], r


class RSHBasis(object):
    """
    Real spherical harmonics up to degree ``maxl``.

    Parameters
    ----------
    maxl : int
        Maximum angular momentum

    Examples
    --------
    >>> rsh = RSHBasis(2)
    >>> Y = rsh.evaluate([[0.0, 0.0, 1.0]])   # shape (1, 9)
    """

    def __init__(self, maxl: int):
        if maxl < 0:
            raise ConfigurationError(
                "maxl must be non-negative, got {}".format(maxl))
        self.maxl = maxl
        self.F = _normalization(maxl)

    def __len__(self):
        return sh_length(self.maxl)

    def _legendre(self, z):
        L = self.maxl
        # Q[:, l, m], with one extra column so that Q[l-1, m+1] exists
        Q = np.zeros(z.shape + (L + 1, L + 2))
        Q[:, 0, 0] = 1.0
        for m in range(1, L + 1):
            Q[:, m, m] = -(2 * m - 1) * Q[:, m - 1, m - 1]
        for m in range(0, L):
            Q[:, m + 1, m] = (2 * m + 1) * z * Q[:, m, m]
        for m in range(0, L + 1):
            for l in range(m + 2, L + 1):
                Q[:, l, m] = ((2 * l - 1) * z * Q[:, l - 1, m]
                              - (l + m - 1) * Q[:, l - 2, m]) / (l - m)
        return Q

    def _cos_sin(self, x, y):
        L = self.maxl
        C = np.zeros(x.shape + (L + 1,))
        S = np.zeros(x.shape + (L + 1,))
        C[:, 0] = 1.0
        for m in range(1, L + 1):
            C[:, m] = x * C[:, m - 1] - y * S[:, m - 1]
            S[:, m] = x * S[:, m - 1] + y * C[:, m - 1]
        return C, S

    def evaluate(self, R) -> np.ndarray:
        Rhat, _ = _unit_vectors(R)
        x, y, z = Rhat[:, 0], Rhat[:, 1], Rhat[:, 2]
        Q = self._legendre(z)
        C, S = self._cos_sin(x, y)
        Y = np.zeros((len(Rhat), len(self)))
        F = self.F
        for l in range(self.maxl + 1):
            Y[:, lm_index(l, 0)] = F[l, 0] * Q[:, l, 0]
            for m in range(1, l + 1):
                Y[:, lm_index(l, m)] = F[l, m] * Q[:, l, m] * C[:, m]
                Y[:, lm_index(l, -m)] = F[l, m] * Q[:, l, m] * S[:, m]
        return Y

    def evaluate_d(self, R) -> Tuple[np.ndarray, np.ndarray]:
        """
        Real spherical harmonics and their gradients.

        Parameters
        ----------
        R : array_like
            Vectors, shape (J, 3); none may be zero

        Returns
        -------
        Y : np.ndarray
            Shape (J, (maxl+1)^2)
        dY : np.ndarray
            Gradients with respect to R, shape (J, (maxl+1)^2, 3)

        Raises
        ------
        DomainError
            For zero-length vectors.
        """
        Rhat, r = _unit_vectors(R)
        x, y, z = Rhat[:, 0], Rhat[:, 1], Rhat[:, 2]
        Q = self._legendre(z)
        C, S = self._cos_sin(x, y)
        nJ = len(Rhat)
        Y = np.zeros((nJ, len(self)))
        # gradient of the solid harmonic at the unit vector
        g = np.zeros((nJ, len(self), 3))
        F = self.F

        def Qm1(l, m):
            if l < 1 or m > l - 1:
                return 0.0
            return Q[:, l - 1, m]

        for l in range(self.maxl + 1):
            i0 = lm_index(l, 0)
            Y[:, i0] = F[l, 0] * Q[:, l, 0]
            g[:, i0, 0] = F[l, 0] * x * Qm1(l, 1)
            g[:, i0, 1] = F[l, 0] * y * Qm1(l, 1)
            g[:, i0, 2] = F[l, 0] * l * Qm1(l, 0)
            for m in range(1, l + 1):
                ip, im = lm_index(l, m), lm_index(l, -m)
                f = F[l, m]
                Qlm = Q[:, l, m]
                Qx = Qm1(l, m + 1)
                Qz = (l + m) * Qm1(l, m)
                Y[:, ip] = f * Qlm * C[:, m]
                Y[:, im] = f * Qlm * S[:, m]
                g[:, ip, 0] = f * (x * Qx * C[:, m] + Qlm * m * C[:, m - 1])
                g[:, ip, 1] = f * (y * Qx * C[:, m] - Qlm * m * S[:, m - 1])
                g[:, ip, 2] = f * Qz * C[:, m]
                g[:, im, 0] = f * (x * Qx * S[:, m] + Qlm * m * S[:, m - 1])
                g[:, im, 1] = f * (y * Qx * S[:, m] + Qlm * m * C[:, m - 1])
                g[:, im, 2] = f * Qz * S[:, m]

        # Y(R/r): project out the radial component and rescale
        radial = np.einsum('jkd,jd->jk', g, Rhat)
        dY = (g - radial[:, :, None] * Rhat[:, None, :]) / r[:, None, None]
        return Y, dY


class SHBasis(object):
    """
    Complex spherical harmonics (Condon-Shortley phase) up to ``maxl``,
    obtained from `RSHBasis` by the unitary change of basis.
    """

    def __init__(self, maxl: int):
        self.rsh = RSHBasis(maxl)
        self.maxl = maxl
        self.U = [real_to_complex_matrix(l) for l in range(maxl + 1)]

    def __len__(self):
        return len(self.rsh)

    def _to_complex(self, Yr, axis_last=False):
        Yc = np.zeros(Yr.shape, dtype=np.complex128)
        for l in range(self.maxl + 1):
            block = slice(l * l, (l + 1)**2)
            if axis_last:
                Yc[:, block, :] = np.einsum('mk,jkd->jmd', self.U[l],
                                            Yr[:, block, :])
            else:
                Yc[:, block] = Yr[:, block] @ self.U[l].T
        return Yc

    def evaluate(self, R) -> np.ndarray:
        return self._to_complex(self.rsh.evaluate(R))

    def evaluate_d(self, R) -> Tuple[np.ndarray, np.ndarray]:
        Y, dY = self.rsh.evaluate_d(R)
        return self._to_complex(Y), self._to_complex(dY, axis_last=True)
