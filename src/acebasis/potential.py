"""
Linear site potentials on top of an RPI basis,

    E_i = sum_k c_k B_k(R_i1, ..., R_iJ; z_i),

with forces ``F_j = -dE_i/dR_j`` on the neighbors of site ``i``, and
diagonal regularisers for fitting the coefficients ``c``.

"""

from typing import Optional, Sequence, Tuple

import numpy as np

from .exceptions import ConfigurationError
from .rpibasis import RPIBasis

__author__ = "The acebasis developers"
__date__ = "2026-10-16"

__all__ = ['RPIPotential', 'combine', 'diagonal_regulariser']


class RPIPotential(object):
    """
    Linear combination of the functions of an RPI basis.

    Parameters
    ----------
    basis : RPIBasis
        The basis
    coeffs : array_like
        One coefficient per basis function, shape (len(basis),)

    Raises
    ------
    ConfigurationError
        If the number of coefficients does not match the basis.
    """

    def __init__(self, basis: RPIBasis, coeffs):
        coeffs = np.asarray(coeffs, dtype=np.float64)
        if coeffs.shape != (len(basis),):
            raise ConfigurationError(
                "Expected {} coefficients, got shape {}".format(
                    len(basis), coeffs.shape))
        if not np.all(np.isfinite(coeffs)):
            raise ConfigurationError("Coefficients must be finite.")
        self.basis = basis
        self.coeffs = coeffs

    def __len__(self):
        return len(self.coeffs)

    def __repr__(self):
        return "RPIPotential({} functions)".format(len(self))

    @property
    def species(self):
        return self.basis.species

    def site_energy(self, Rs, Zs, z0, ws=None) -> float:
        """
        Energy of one site.

        Parameters
        ----------
        Rs : array_like
            Relative neighbor positions, shape (J, 3)
        Zs : sequence
            Neighbor species labels
        z0 : species label
            Species of the center atom
        ws : list of GraphWorkspace, optional
            Scratch buffers from ``basis.workspaces()``
        """
        return float(self.coeffs @ self.basis.evaluate(Rs, Zs, z0, ws))

    def site_energy_d(self, Rs, Zs, z0, ws=None
                      ) -> Tuple[float, np.ndarray]:
        """
        Energy of one site and its gradient with respect to the neighbor
        positions, shape (J, 3).
        """
        B, dB = self.basis.evaluate_d(Rs, Zs, z0, ws)
        return float(self.coeffs @ B), np.einsum('k,jkd->jd', self.coeffs,
                                                 dB)

    def forces(self, Rs, Zs, z0, ws=None) -> np.ndarray:
        """Forces ``-dE/dR_j`` on the neighbors, shape (J, 3)."""
        _, dE = self.site_energy_d(Rs, Zs, z0, ws)
        return -dE

    def site_energies(self, environments: Sequence,
                      cores: int = 1) -> np.ndarray:
        """
        Energies of a batch of ``(Rs, Zs, z0)`` environments, evaluated
        with `RPIBasis.evaluate_many`.
        """
        environments = list(environments)
        if len(environments) == 0:
            return np.zeros(0)
        B = self.basis.evaluate_many(environments, cores=cores)
        return B @ self.coeffs


def combine(basis: RPIBasis, coeffs) -> RPIPotential:
    """
    The potential with basis function coefficients ``coeffs``.

    Examples
    --------
    >>> pot = combine(basis, np.ones(len(basis)))
    >>> E, dE = pot.site_energy_d(Rs, Zs, 'Si')
    """
    return RPIPotential(basis, coeffs)


def diagonal_regulariser(basis: RPIBasis, diff: Optional[int] = 0
                         ) -> np.ndarray:
    """
    Diagonal of a smoothness regulariser for the basis coefficients.

    With ``diff=0`` the entry of a basis function is the degree of its
    shape tuple.  Otherwise it is ``sum_i n_i^diff + l_i^diff (l_i+1)^diff``
    over the one-particle functions, which penalizes radial and angular
    derivatives of order ``diff``.  The constant function has entry 0.

    Parameters
    ----------
    basis : RPIBasis
        The basis
    diff : int
        Order of the penalized derivatives

    Returns
    -------
    np.ndarray
        Shape (len(basis),)
    """
    if diff is None or int(diff) != diff or diff < 0:
        raise ConfigurationError(
            "diff must be a non-negative integer, got {}".format(diff))
    degree = basis.spec.degree
    gamma = np.zeros(len(basis))
    i = 0
    for block in basis.info:
        for rec in block:
            shape = rec["shape"]
            if diff == 0:
                gamma[i] = degree.degree(shape)
            else:
                gamma[i] = sum(u.n**diff + (u.l * (u.l + 1))**diff
                               for u in shape)
            i += 1
    return gamma
