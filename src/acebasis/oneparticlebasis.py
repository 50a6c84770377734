"""
One-particle basis of products of radial functions and real spherical
harmonics,

    phi_v(R, Z) = delta(Z == z_v) R_{n_v}(r) Y_{l_v m_v}(R / r)

for every one-particle function ``v = (n, l, m, z)``.

"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import ConfigurationError, DomainError
from .orthpolys import TransformedPolys
from .species import SpeciesList
from .sphericalharmonics import RSHBasis, lm_index
from .transforms import MultiTransform

__author__ = "The acebasis developers"
__date__ = "2026-08-12"

__all__ = ['PSH1pBasisFcn', 'NLZ', 'BasicPSH1pBasis', 'basic_1p_basis']


@dataclass(frozen=True)
class PSH1pBasisFcn:
    """
    Identifier of a one-particle basis function.

    Attributes
    ----------
    n : int
        Radial channel, starting at 1
    l : int
        Angular momentum
    m : int
        Magnetic quantum number, ``-l <= m <= l``
    z : int
        Compact species index of the neighbor
    """
    n: int
    l: int
    m: int
    z: int

    def __post_init__(self):
        if self.n < 1:
            raise ConfigurationError(
                "Radial channels start at n=1, got n={}".format(self.n))
        if self.l < 0 or abs(self.m) > self.l:
            raise ConfigurationError(
                "Invalid angular channel (l={}, m={})".format(self.l, self.m))

    @property
    def shape(self) -> 'NLZ':
        return NLZ(self.n, self.l, self.z)


@dataclass(frozen=True)
class NLZ:
    """A one-particle function with its ``m`` index dropped."""
    n: int
    l: int
    z: int


class BasicPSH1pBasis(object):
    """
    Radial functions times real spherical harmonics, one block per
    neighbor species.

    Parameters
    ----------
    J : TransformedPolys
        Radial basis; ``n`` runs over ``1..len(J)``
    species : SpeciesList
        Neighbor species
    spec : list of PSH1pBasisFcn
        The one-particle functions, in the order of the basis indices

    Notes
    -----
    Use `basic_1p_basis` to select the one-particle functions from a
    degree bound.
    """

    def __init__(self, J: TransformedPolys, species: SpeciesList,
                 spec: Sequence[PSH1pBasisFcn]):
        spec = list(spec)
        if len(spec) == 0:
            raise ConfigurationError("The one-particle basis is empty.")
        if len(set(spec)) != len(spec):
            raise ConfigurationError(
                "Duplicate functions in one-particle basis.")
        maxn = max(b.n for b in spec)
        if maxn > len(J):
            raise ConfigurationError(
                "One-particle function with n={} requested but the radial "
                "basis has only {} functions.".format(maxn, len(J)))
        if max(b.z for b in spec) >= len(species) or min(
                b.z for b in spec) < 0:
            raise ConfigurationError(
                "One-particle function refers to an unknown species index.")
        if isinstance(J.trans, MultiTransform) and J.trans.species != species:
            raise ConfigurationError(
                "The species-pair transform is tabulated for {} but the "
                "basis uses {}; see MultiTransform.reorder.".format(
                    J.trans.species.species, species.species))
        self.J = J
        self.species = species
        self.spec = spec
        self.maxl = max(b.l for b in spec)
        self.SH = RSHBasis(self.maxl)
        self._iz = np.array([b.z for b in spec], dtype=int)
        self._iR = np.array([b.n - 1 for b in spec], dtype=int)
        self._iY = np.array([lm_index(b.l, b.m) for b in spec], dtype=int)
        self._index = {b: i for i, b in enumerate(spec)}

    def __len__(self):
        return len(self.spec)

    def index(self, b: PSH1pBasisFcn) -> int:
        return self._index[b]

    def shapes(self) -> List[NLZ]:
        """Distinct ``(n, l, z)`` shapes, in order of first appearance."""
        seen = {}
        for b in self.spec:
            seen.setdefault(b.shape, None)
        return list(seen)

    def _check_input(self, Rs, iZs):
        Rs = np.asarray(Rs, dtype=np.float64).reshape(-1, 3)
        iZs = self.species.check_indices(np.atleast_1d(iZs))
        if len(iZs) != len(Rs):
            raise ValueError(
                "Got {} positions but {} species.".format(len(Rs), len(iZs)))
        return Rs, iZs

    def evaluate_d(self, Rs, iZs, iz0: Optional[int] = None
                   ) -> Tuple[np.ndarray, np.ndarray]:
        """
        One-particle functions of all neighbors and their gradients.

        Parameters
        ----------
        Rs : array_like
            Relative neighbor positions, shape (J, 3)
        iZs : array_like
            Compact species indices of the neighbors, shape (J,)
        iz0 : int, optional
            Compact species index of the center atom; required for
            species-pair transforms

        Returns
        -------
        phi : np.ndarray
            Shape (J, nA)
        dphi : np.ndarray
            Gradients with respect to the neighbor positions,
            shape (J, nA, 3)

        Raises
        ------
        DomainError
            If any neighbor sits at zero distance.
        ValueError
            If ``iz0`` is missing for a species-pair transform.
        """
        Rs, iZs = self._check_input(Rs, iZs)
        if iz0 is None and isinstance(self.J.trans, MultiTransform):
            raise ValueError(
                "The center species iz0 is required for species-pair "
                "transforms.")
        nJ = len(Rs)
        if nJ == 0:
            return np.zeros((0, len(self))), np.zeros((0, len(self), 3))
        r = np.linalg.norm(Rs, axis=1)
        if np.any(r == 0.0):
            raise DomainError(
                "Neighbor at zero distance; the direction is undefined.")
        Rhat = Rs / r[:, None]
        Y, dY = self.SH.evaluate_d(Rs)
        R, dR = self.J.evaluate_d(r, iZs, iz0)

        mask = (iZs[:, None] == self._iz[None, :]).astype(np.float64)
        Rv = R[:, self._iR] * mask
        dRv = dR[:, self._iR] * mask
        Yv = Y[:, self._iY]
        dYv = dY[:, self._iY, :]
        phi = Rv * Yv
        dphi = ((dRv * Yv)[:, :, None] * Rhat[:, None, :]
                + Rv[:, :, None] * dYv)
        return phi, dphi

    def evaluate(self, Rs, iZs, iz0: Optional[int] = None) -> np.ndarray:
        phi, _ = self.evaluate_d(Rs, iZs, iz0)
        return phi

    def evaluate_A_d(self, Rs, iZs, iz0: Optional[int] = None
                     ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Neighbor sums ``A[v] = sum_j phi_v(R_j)`` with gradients.

        Since ``A`` is a sum over neighbors, the gradient with respect to
        the position of neighbor ``j`` is ``dphi[j]``.
        """
        phi, dphi = self.evaluate_d(Rs, iZs, iz0)
        return phi.sum(axis=0), dphi


def basic_1p_basis(J: TransformedPolys, species: SpeciesList, degree,
                   maxdeg: float, maxl: Optional[int] = None
                   ) -> BasicPSH1pBasis:
    """
    One-particle basis of all ``(n, l, m, z)`` with
    ``degree.degree1(n, l, z) <= maxdeg``.

    Parameters
    ----------
    J : TransformedPolys
        Radial basis
    species : SpeciesList
        Neighbor species
    degree : SparsePSHDegree or SparsePSHDegreeM
        Degree function
    maxdeg : float
        Largest degree of a single one-particle function
    maxl : int, optional
        Additional bound on the angular momentum
    """
    spec = []
    for iz in range(len(species)):
        for n in range(1, len(J) + 1):
            l = 0
            while degree.degree1(n, l, iz) <= maxdeg:
                if maxl is not None and l > maxl:
                    break
                for m in range(-l, l + 1):
                    spec.append(PSH1pBasisFcn(n, l, m, iz))
                l += 1
    if len(spec) == 0:
        raise ConfigurationError(
            "No one-particle function satisfies maxdeg={}".format(maxdeg))
    return BasicPSH1pBasis(J, species, spec)
