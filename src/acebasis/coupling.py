"""
Generalized Clebsch-Gordan coefficients.

For angular momenta ``ll = (l_1, ..., l_N)`` the tensor product of the
spherical harmonics is coupled pairwise from left to right,

    l_1 x l_2 -> L_2,  L_2 x l_3 -> L_3,  ...,  L_{N-1} x l_N -> 0,

and every admissible sequence of intermediate momenta (coupling path)
yields one rotation invariant

    sum_m C(m) Y_{l_1 m_1} ... Y_{l_N m_N},
    C(m) = prod_k <L_{k-1} M_{k-1}; l_k m_k | L_k M_k>.

The coefficients refer to complex spherical harmonics; use
`CouplingCoefficients.real_coefficients` for the real harmonics of
`acebasis.sphericalharmonics.RSHBasis`.

"""

import itertools
from collections import defaultdict
from typing import Dict, List, Sequence, Tuple

import numpy as np
from sympy.physics.wigner import clebsch_gordan

from .exceptions import ConfigurationError, InternalConsistencyError
from .sphericalharmonics import real_to_complex_matrix

__author__ = "The acebasis developers"
__date__ = "2026-08-20"

__all__ = ['CouplingCoefficients']

MTuple = Tuple[int, ...]


class CouplingCoefficients(object):
    """
    Cache of coupling coefficients, keyed by the tuple of angular
    momenta.

    Each basis owns one instance; the tables it returns must be treated
    as read-only.

    Parameters
    ----------
    tol : float
        Coefficients with magnitude below ``tol`` are dropped.

    Examples
    --------
    >>> cc = CouplingCoefficients()
    >>> cc.coefficients((1, 1))        # one path
    [{(-1, 1): 0.577..., (0, 0): -0.577..., (1, -1): 0.577...}]
    """

    def __init__(self, tol: float = 1e-12):
        self.tol = tol
        self._cg: Dict[Tuple[int, ...], float] = {}
        self._states = {}
        self._complex = {}
        self._real = {}
        self._U = {}
        self._in_progress = set()

    def cg(self, l1: int, m1: int, l2: int, m2: int, L: int, M: int
           ) -> float:
        """Clebsch-Gordan coefficient ``<l1 m1; l2 m2 | L M>``."""
        if (m1 + m2 != M or abs(m1) > l1 or abs(m2) > l2 or abs(M) > L
                or not abs(l1 - l2) <= L <= l1 + l2):
            return 0.0
        key = (l1, m1, l2, m2, L, M)
        if key not in self._cg:
            self._cg[key] = float(clebsch_gordan(l1, l2, L, m1, m2, M))
        return self._cg[key]

    def _coupled_states(self, ll: Tuple[int, ...], budget: int):
        """
        Coupled states of the prefix ``ll`` as a dictionary
        ``{(path, M): {m_tuple: coefficient}}``, where ``path`` lists the
        intermediate momenta ``(L_1, ..., L_k)``.  Momenta larger than
        ``budget`` cannot be coupled back to zero by the remaining
        factors and are skipped.
        """
        key = (ll, budget)
        if key in self._states:
            return self._states[key]
        if key in self._in_progress:
            raise InternalConsistencyError(
                "Re-entrant request for coupled states of {}".format(ll))
        self._in_progress.add(key)
        try:
            l = ll[-1]
            if len(ll) == 1:
                states = {}
                if l <= budget:
                    for m in range(-l, l + 1):
                        states[((l,), m)] = {(m,): 1.0}
            else:
                prev = self._coupled_states(ll[:-1], budget + l)
                states = {}
                for (path, M), table in prev.items():
                    Lp = path[-1]
                    for L in range(abs(Lp - l), min(Lp + l, budget) + 1):
                        for m in range(-l, l + 1):
                            c = self.cg(Lp, M, l, m, L, M + m)
                            if abs(c) < self.tol:
                                continue
                            target = states.setdefault(
                                (path + (L,), M + m), defaultdict(float))
                            for mm, v in table.items():
                                target[mm + (m,)] += v * c
                states = {k: self._prune(v) for k, v in states.items()}
                states = {k: v for k, v in states.items() if v}
            self._states[key] = states
        finally:
            self._in_progress.discard(key)
        return states

    def _prune(self, table):
        return {mm: c for mm, c in table.items() if abs(c) >= self.tol}

    def _coupled(self, ll: Tuple[int, ...]):
        ll = tuple(int(l) for l in ll)
        if any(l < 0 for l in ll):
            raise ConfigurationError(
                "Angular momenta must be non-negative, got {}".format(ll))
        if ll in self._complex:
            return self._complex[ll]
        if len(ll) == 0:
            result = [((), {(): 1.0})]
        else:
            states = self._coupled_states(ll, 0)
            result = sorted((path[1:-1], table)
                            for (path, M), table in states.items())
        self._complex[ll] = result
        return result

    def paths(self, ll: Sequence[int]) -> List[Tuple[int, ...]]:
        """Intermediate momenta ``(L_2, ..., L_{N-1})`` of every path."""
        return [path for path, _ in self._coupled(tuple(ll))]

    def coefficients(self, ll: Sequence[int]) -> List[Dict[MTuple, float]]:
        """
        Coupling coefficients for complex spherical harmonics.

        Parameters
        ----------
        ll : sequence of int
            Angular momenta ``(l_1, ..., l_N)``

        Returns
        -------
        list of dict
            One table ``{m_tuple: coefficient}`` per coupling path, in the
            order of `paths`.  Every ``m_tuple`` sums to zero.
        """
        return [table for _, table in self._coupled(tuple(ll))]

    def _unitary(self, l):
        if l not in self._U:
            U = real_to_complex_matrix(l)
            rows = []
            for m in range(-l, l + 1):
                rows.append([(mu, U[l + m, l + mu])
                             for mu in range(-l, l + 1)
                             if U[l + m, l + mu] != 0])
            self._U[l] = rows
        return self._U[l]

    def real_coefficients(self, ll: Sequence[int]
                          ) -> List[Dict[MTuple, float]]:
        """
        Coupling coefficients for the real spherical harmonics.

        With ``Y^C_lm = sum_mu U[m, mu] Y^R_lmu`` the invariant
        ``sum_m C(m) prod_i Y^C`` equals ``sum_mu c(mu) prod_i Y^R``.
        For even ``sum(ll)`` the invariant is real and ``c`` is replaced
        by its real part; for odd ``sum(ll)`` it is purely imaginary and
        no real table is returned.  Tables that vanish are dropped, so
        the result may be shorter than `coefficients`.
        """
        ll = tuple(int(l) for l in ll)
        if ll in self._real:
            return self._real[ll]
        Us = [self._unitary(l) for l in ll]
        result = []
        for table in self.coefficients(ll):
            real = defaultdict(complex)
            for mm, c in table.items():
                rows = [Us[i][ll[i] + m] for i, m in enumerate(mm)]
                for entries in itertools.product(*rows):
                    mu = tuple(e[0] for e in entries)
                    real[mu] += c * np.prod([e[1] for e in entries])
            real = self._prune({mu: float(v.real) for mu, v in real.items()})
            if real:
                result.append(real)
        self._real[ll] = result
        return result

    def __len__(self):
        return len(self._complex)
