"""
Permutation invariant basis.

For every correlation tuple ``t`` of one-particle indices,

    AA[t] = prod_{v in t} A[v],     A[v] = sum_j phi_v(R_j, Z_j),

is invariant under permutations of the neighbors.  The functions are
arranged in blocks, one per center species.

"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .degree import BasisSpec
from .exceptions import ConfigurationError
from .graph import EvaluationGraph, GraphWorkspace
from .oneparticlebasis import BasicPSH1pBasis

__author__ = "The acebasis developers"
__date__ = "2026-08-31"

__all__ = ['PIBasis', 'pi_basis']


class PIBasis(object):
    """
    Products of neighbor sums of a one-particle basis.

    Parameters
    ----------
    basis1p : BasicPSH1pBasis
        One-particle basis
    tuples : dict
        ``{iz0: [tuple, ...]}`` correlation tuples of one-particle indices
        per compact center species index; the empty tuple is the constant
        function 1.
    use_graph : bool
        If False, every product is recomputed independently.  Only useful
        as a reference for the graph evaluation.

    Raises
    ------
    InternalConsistencyError
        If a tuple refers to an index outside the one-particle basis.
    """

    def __init__(self, basis1p: BasicPSH1pBasis,
                 tuples: Mapping[int, Sequence[Tuple[int, ...]]],
                 use_graph: bool = True):
        self.basis1p = basis1p
        self.species = basis1p.species
        self.use_graph = use_graph
        nz = len(self.species)
        self.tuples: List[List[Tuple[int, ...]]] = []
        self.graphs: List[EvaluationGraph] = []
        for iz0 in range(nz):
            block = [tuple(sorted(t)) for t in tuples.get(iz0, [])]
            graph = EvaluationGraph(len(basis1p), block)
            self.tuples.append(graph.tuples)
            self.graphs.append(graph)
        unknown = set(tuples) - set(range(nz))
        if unknown:
            raise ConfigurationError(
                "Unknown center species indices {}".format(sorted(unknown)))
        self.block_sizes = [len(t) for t in self.tuples]
        self.block_offsets = list(np.cumsum([0] + self.block_sizes[:-1]))

    def __len__(self):
        return sum(self.block_sizes)

    def block(self, iz0: int) -> slice:
        o = int(self.block_offsets[iz0])
        return slice(o, o + self.block_sizes[iz0])

    def maxorder(self) -> int:
        return max((len(t) for block in self.tuples for t in block),
                   default=0)

    def workspace(self, iz0: int) -> GraphWorkspace:
        return self.graphs[iz0].workspace()

    # ------------------------------------------------------------------
    # evaluation of one block, compact species indices

    def evaluate_block(self, Rs, iZs, iz0: int,
                       ws: Optional[GraphWorkspace] = None) -> np.ndarray:
        phi = self.basis1p.evaluate(Rs, iZs, iz0)
        A = phi.sum(axis=0)
        if self.use_graph:
            return self.graphs[iz0].evaluate(A, ws)
        return np.array([np.prod(A[list(t)]) for t in self.tuples[iz0]])

    def evaluate_block_d(self, Rs, iZs, iz0: int,
                         ws: Optional[GraphWorkspace] = None
                         ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Correlations of center species ``iz0`` with gradients.

        Returns
        -------
        AA : np.ndarray
            Shape (nblock,)
        dAA : np.ndarray
            Shape (nblock, J, 3)
        """
        A, dA = self.basis1p.evaluate_A_d(Rs, iZs, iz0)
        if self.use_graph:
            return self.graphs[iz0].evaluate_d(A, dA, ws)
        return self._brute_force_d(A, dA, self.tuples[iz0])

    @staticmethod
    def _brute_force_d(A, dA, tuples):
        nJ = dA.shape[0]
        AA = np.zeros(len(tuples))
        dAA = np.zeros((len(tuples), nJ, 3))
        for i, t in enumerate(tuples):
            AA[i] = np.prod(A[list(t)])
            for k, v in enumerate(t):
                rest = np.prod(A[list(t[:k] + t[k + 1:])])
                dAA[i] += rest * dA[:, v, :]
        return AA, dAA

    # ------------------------------------------------------------------
    # public interface, species labels

    def _indices(self, Zs, z0):
        return self.species.indices(np.atleast_1d(Zs)), self.species.index(z0)

    def evaluate(self, Rs, Zs, z0) -> np.ndarray:
        """
        All correlations; entries outside the block of ``z0`` are zero.

        Parameters
        ----------
        Rs : array_like
            Relative neighbor positions, shape (J, 3)
        Zs : sequence
            Neighbor species labels, shape (J,)
        z0 : species label
            Species of the center atom

        Returns
        -------
        np.ndarray
            Shape (len(self),)
        """
        iZs, iz0 = self._indices(Zs, z0)
        AA = np.zeros(len(self))
        AA[self.block(iz0)] = self.evaluate_block(Rs, iZs, iz0)
        return AA

    def evaluate_d(self, Rs, Zs, z0) -> Tuple[np.ndarray, np.ndarray]:
        """
        All correlations and their gradients, shape (len(self),) and
        (J, len(self), 3).
        """
        iZs, iz0 = self._indices(Zs, z0)
        nJ = len(iZs)
        AA = np.zeros(len(self))
        dAA = np.zeros((nJ, len(self), 3))
        AAb, dAAb = self.evaluate_block_d(Rs, iZs, iz0)
        b = self.block(iz0)
        AA[b] = AAb
        dAA[:, b, :] = np.transpose(dAAb, (1, 0, 2))
        return AA, dAA

    def to_dataframe(self) -> pd.DataFrame:
        """Table of all correlations, one row per basis function."""
        rows = []
        for iz0, block in enumerate(self.tuples):
            for t in block:
                fcns = [self.basis1p.spec[v] for v in t]
                rows.append({
                    "z0": self.species.label(iz0),
                    "order": len(t),
                    "n": tuple(b.n for b in fcns),
                    "l": tuple(b.l for b in fcns),
                    "m": tuple(b.m for b in fcns),
                    "z": tuple(self.species.label(b.z) for b in fcns)})
        return pd.DataFrame(rows, columns=["z0", "order", "n", "l", "m", "z"])


def pi_basis(basis1p: BasicPSH1pBasis, spec: BasisSpec,
             constants: bool = False, use_graph: bool = True) -> PIBasis:
    """
    Permutation invariant basis of all admissible correlations.

    Parameters
    ----------
    basis1p : BasicPSH1pBasis
        One-particle basis
    spec : BasisSpec
        Admissibility rule; the one-particle functions are the units
    constants : bool
        Include the constant function in every block
    """
    tuples: Dict[int, List[Tuple[int, ...]]] = {}
    for iz0 in range(len(basis1p.species)):
        block = spec.enumerate(basis1p.spec, iz0)
        tuples[iz0] = ([()] if constants else []) + block
    return PIBasis(basis1p, tuples, use_graph=use_graph)
