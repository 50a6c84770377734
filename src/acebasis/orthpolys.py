"""
Orthogonal polynomials in a transformed distance coordinate.

The radial basis functions are

    R_n(r) = P_n(y(r)) (1 - y)^pcut (1 + y)^pin,     n = 1..N

where ``y`` is the transformed distance mapped onto ``[-1, 1]`` such that
``y(rin) = -1`` and ``y(rcut) = 1``, and ``P_n`` are generated by a
three-term recurrence.  The recurrence coefficients are obtained with a
discrete Stieltjes procedure so that the ``R_n`` are orthonormal with
respect to a Jacobi weight on ``[-1, 1]``.

"""

from typing import Optional, Tuple

import numpy as np
from scipy.special import roots_jacobi

from .exceptions import ConfigurationError
from .transforms import DistanceTransform, MultiTransform

__author__ = "The acebasis developers"
__date__ = "2026-08-06"

__all__ = ['OrthPolyBasis', 'TransformedPolys', 'discrete_jacobi',
           'transformed_jacobi']


class OrthPolyBasis(object):
    """
    Polynomials defined by a three-term recurrence, multiplied by the
    envelope ``(1 - y)^pr (1 + y)^pl``.

        P_0 = A_0 env(y)
        P_1 = (A_1 y + B_1) P_0
        P_k = (A_k y + B_k) P_{k-1} + C_k P_{k-2}

    Parameters
    ----------
    A, B, C : array_like
        Recurrence coefficients, all of length N
    pl : int
        Envelope exponent at y = -1
    pr : int
        Envelope exponent at y = +1
    """

    def __init__(self, A, B, C, pl: int = 0, pr: int = 0):
        self.A = np.asarray(A, dtype=np.float64)
        self.B = np.asarray(B, dtype=np.float64)
        self.C = np.asarray(C, dtype=np.float64)
        if not (len(self.A) == len(self.B) == len(self.C)):
            raise ConfigurationError(
                "Recurrence coefficients must have equal length.")
        self.pl = pl
        self.pr = pr

    def __len__(self):
        return len(self.A)

    def envelope(self, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Envelope function and its derivative."""
        fr = (1.0 - y)**self.pr
        fl = (1.0 + y)**self.pl
        dfr = (-self.pr * (1.0 - y)**(self.pr - 1) if self.pr > 0
               else np.zeros_like(y))
        dfl = (self.pl * (1.0 + y)**(self.pl - 1) if self.pl > 0
               else np.zeros_like(y))
        return fr * fl, dfr * fl + fr * dfl

    def evaluate(self, y) -> np.ndarray:
        P, _ = self.evaluate_d(y)
        return P

    def evaluate_d(self, y) -> Tuple[np.ndarray, np.ndarray]:
        """
        Evaluate polynomials and derivatives with respect to y.

        Parameters
        ----------
        y : array_like
            Points in [-1, 1], shape (J,)

        Returns
        -------
        P : np.ndarray
            Shape (J, N)
        dP : np.ndarray
            Shape (J, N)
        """
        y = np.asarray(y, dtype=np.float64)
        N = len(self)
        P = np.zeros(y.shape + (N,))
        dP = np.zeros(y.shape + (N,))
        if N == 0:
            return P, dP
        env, denv = self.envelope(y)
        P[..., 0] = self.A[0] * env
        dP[..., 0] = self.A[0] * denv
        if N > 1:
            P[..., 1] = (self.A[1] * y + self.B[1]) * P[..., 0]
            dP[..., 1] = (self.A[1] * P[..., 0]
                          + (self.A[1] * y + self.B[1]) * dP[..., 0])
        for k in range(2, N):
            P[..., k] = ((self.A[k] * y + self.B[k]) * P[..., k - 1]
                         + self.C[k] * P[..., k - 2])
            dP[..., k] = (self.A[k] * P[..., k - 1]
                          + (self.A[k] * y + self.B[k]) * dP[..., k - 1]
                          + self.C[k] * dP[..., k - 2])
        return P, dP


def discrete_jacobi(N: int, pcut: int = 2, pin: int = 0,
                    alpha: float = 0.0, beta: float = 0.0,
                    nquad: Optional[int] = None) -> OrthPolyBasis:
    """
    Orthonormal polynomials with envelope, generated by the Stieltjes
    procedure on a Gauss-Jacobi quadrature rule.

    The resulting functions ``P_k(y) (1-y)^pcut (1+y)^pin`` are
    orthonormal with respect to the weight ``(1-y)^alpha (1+y)^beta``.

    Parameters
    ----------
    N : int
        Number of polynomials
    pcut : int
        Envelope exponent at y = +1 (outer cutoff)
    pin : int
        Envelope exponent at y = -1 (inner cutoff)
    alpha, beta : float
        Jacobi weight parameters (default: Legendre weight)
    nquad : int, optional
        Number of quadrature nodes (default: N + pcut + pin + 20)
    """
    if N < 1:
        raise ConfigurationError(
            "At least one radial function is required, got N={}".format(N))
    if int(pcut) != pcut or int(pin) != pin or pcut < 0 or pin < 0:
        raise ConfigurationError(
            "pcut and pin must be non-negative integers, got "
            "pcut={}, pin={}".format(pcut, pin))
    if alpha <= -1 or beta <= -1:
        raise ConfigurationError("Jacobi weights require alpha, beta > -1.")
    pcut, pin = int(pcut), int(pin)
    if nquad is None:
        nquad = N + pcut + pin + 20
    y, w = roots_jacobi(nquad, alpha, beta)
    w = w * ((1.0 - y)**pcut * (1.0 + y)**pin)**2

    A = np.zeros(N)
    B = np.zeros(N)
    C = np.zeros(N)

    q_prev = np.zeros_like(y)
    A[0] = 1.0 / np.sqrt(np.sum(w))
    q = np.full_like(y, A[0])
    b_prev = 0.0
    for k in range(1, N):
        a = np.sum(w * y * q * q)
        r = (y - a) * q - b_prev * q_prev
        b = np.sqrt(np.sum(w * r * r))
        A[k] = 1.0 / b
        B[k] = -a / b
        C[k] = -b_prev / b
        q_prev, q = q, r / b
        b_prev = b
    return OrthPolyBasis(A, B, C, pl=pin, pr=pcut)


class TransformedPolys(object):
    """
    Radial basis ``R_n(r)``: orthogonal polynomials in the transformed
    and rescaled distance ``y(r)``.

    Parameters
    ----------
    J : OrthPolyBasis
        Polynomials on [-1, 1]
    trans : DistanceTransform
        Distance transform
    rin : float
        Inner cutoff, mapped to y = -1
    rcut : float
        Outer cutoff, mapped to y = +1

    Notes
    -----
    If ``trans`` is a `MultiTransform` with per-pair cutoffs, the
    transform already maps onto [-1, 1] and the cutoffs are looked up per
    species pair; ``rin`` and ``rcut`` are then the extrema over all
    pairs.
    """

    def __init__(self, J: OrthPolyBasis, trans: DistanceTransform,
                 rin: float, rcut: float):
        if not 0 <= rin < rcut:
            raise ConfigurationError(
                "Cutoffs must satisfy 0 <= rin < rcut, got rin={}, "
                "rcut={}".format(rin, rcut))
        self.J = J
        self.trans = trans
        self.rin = float(rin)
        self.rcut = float(rcut)
        self._unit = (isinstance(trans, MultiTransform)
                      and trans.has_cutoffs)
        if self._unit:
            return
        if isinstance(trans, MultiTransform):
            pairs = [t for row in trans.transforms for t in row]
        else:
            pairs = [trans]
        for t in pairs:
            if t.transform(self.rin) == t.transform(self.rcut):
                raise ConfigurationError(
                    "The distance transform {} maps rin and rcut onto the "
                    "same value.".format(t))

    def __len__(self):
        return len(self.J)

    def _cutoffs(self, z, z0, shape):
        if self._unit:
            return self.trans.pair_cutoffs(z, z0)
        return np.full(shape, self.rin), np.full(shape, self.rcut)

    def _unit_coordinate(self, r, z, z0):
        if self._unit:
            return (self.trans.transform(r, z, z0),
                    self.trans.transform_d(r, z, z0))
        xin = self.trans.transform(np.full(r.shape, self.rin), z, z0)
        xcut = self.trans.transform(np.full(r.shape, self.rcut), z, z0)
        x = self.trans.transform(r, z, z0)
        dx = self.trans.transform_d(r, z, z0)
        scal = 2.0 / (xcut - xin)
        return -1.0 + (x - xin) * scal, dx * scal

    def evaluate_d(self, r, z=None, z0=None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Radial functions and their derivatives with respect to r.

        Parameters
        ----------
        r : array_like
            Distances, shape (J,)
        z : array_like, optional
            Neighbor species indices, shape (J,); required for
            species-pair transforms
        z0 : int, optional
            Center species index

        Returns
        -------
        R : np.ndarray
            Shape (J, N); zero outside [rin, rcut]
        dR : np.ndarray
            Shape (J, N)
        """
        r = np.atleast_1d(np.asarray(r, dtype=np.float64))
        if isinstance(self.trans, MultiTransform) and (
                z is None or z0 is None):
            raise ValueError(
                "Species-pair transforms require the neighbor species z "
                "and the center species z0.")
        if z is not None:
            z = np.broadcast_to(np.asarray(z, dtype=int), r.shape)
        R = np.zeros(r.shape + (len(self),))
        dR = np.zeros(r.shape + (len(self),))
        rin, rcut = self._cutoffs(z, z0, r.shape)
        inside = (r >= rin) & (r <= rcut)
        if not np.any(inside):
            return R, dR
        zi = None if z is None else z[inside]
        y, dy = self._unit_coordinate(r[inside], zi, z0)
        P, dP = self.J.evaluate_d(y)
        R[inside] = P
        dR[inside] = dP * dy[:, None]
        return R, dR

    def evaluate(self, r, z=None, z0=None) -> np.ndarray:
        R, _ = self.evaluate_d(r, z, z0)
        return R


def transformed_jacobi(maxn: int, trans: DistanceTransform, rcut: float,
                       rin: float = 0.0, pcut: int = 2, pin: int = 0,
                       alpha: float = 0.0, beta: float = 0.0
                       ) -> TransformedPolys:
    """
    Radial basis of ``maxn`` orthonormal polynomials in the transformed
    coordinate, vanishing at ``rcut`` with order ``pcut`` and at ``rin``
    with order ``pin``.
    """
    J = discrete_jacobi(maxn, pcut=pcut, pin=pin, alpha=alpha, beta=beta)
    if isinstance(trans, MultiTransform) and trans.has_cutoffs:
        rin, rcut = trans.cutoff_extrema()
    return TransformedPolys(J, trans, rin, rcut)
