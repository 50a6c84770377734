"""
Evaluation graph for products of neighbor sums.

Every correlation ``AA[t] = prod_{v in t} A[v]`` is computed as the
product of one already computed node and one neighbor sum,

    AA[t] = AA[t \\ {v}] * A[v],

so that sub-products shared between correlations are evaluated once.
Nodes are integer handles into flat arrays:

    0 .. nA-1         neighbor sums A[v]
    nA                the constant 1 (empty tuple)
    nA+1 ..           products, each with a (left, right) pair

Gradients with respect to the neighbor positions are propagated forward
with the product rule in the same pass.

"""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import InternalConsistencyError

__author__ = "The acebasis developers"
__date__ = "2026-08-27"

__all__ = ['EvaluationGraph', 'GraphWorkspace']


class GraphWorkspace(object):
    """
    Scratch buffers of one evaluation.

    A workspace may be reused by consecutive evaluations of the same
    graph but must not be shared between concurrent evaluations.  The
    gradient buffer grows with the number of neighbors.
    """

    def __init__(self, nnodes: int):
        self.nnodes = nnodes
        self.AA = np.zeros(nnodes)
        self.dAA = np.zeros((nnodes, 0, 3))

    def gradient_buffer(self, nJ: int) -> np.ndarray:
        if self.dAA.shape[1] < nJ:
            self.dAA = np.zeros((self.nnodes, nJ, 3))
        return self.dAA[:, :nJ, :]


class EvaluationGraph(object):
    """
    Static topology of the products needed for a list of correlation
    tuples.

    Parameters
    ----------
    nA : int
        Number of neighbor sums (one-particle functions)
    tuples : sequence of tuple
        Correlation tuples of one-particle indices; the empty tuple
        denotes the constant 1.

    Raises
    ------
    InternalConsistencyError
        If a tuple refers to an index outside ``0..nA-1``.
    """

    def __init__(self, nA: int, tuples: Sequence[Tuple[int, ...]]):
        self.nA = nA
        self.one = nA
        self.left: List[int] = []
        self.right: List[int] = []
        self.order: List[int] = []
        self._handles: Dict[Tuple[int, ...], int] = {(): self.one}
        for v in range(nA):
            self._handles[(v,)] = v

        canonical = []
        for t in tuples:
            t = tuple(sorted(int(v) for v in t))
            if any(v < 0 or v >= nA for v in t):
                raise InternalConsistencyError(
                    "Correlation {} refers to a one-particle function "
                    "outside 0..{}".format(t, nA - 1))
            canonical.append(t)
        for t in sorted(set(canonical), key=lambda t: (len(t), t)):
            self._insert(t)
        self.outputs = np.array([self._handles[t] for t in canonical],
                                dtype=int)
        self.tuples = canonical
        self._build_levels()

    @property
    def nnodes(self) -> int:
        return self.nA + 1 + len(self.left)

    def _insert(self, t: Tuple[int, ...]) -> int:
        if t in self._handles:
            return self._handles[t]
        left = None
        for i in range(len(t) - 1, -1, -1):
            sub = t[:i] + t[i + 1:]
            if sub in self._handles:
                left, right = self._handles[sub], t[i]
                break
        if left is None:
            left, right = self._insert(t[:-1]), t[-1]
        h = self.nnodes
        self.left.append(left)
        self.right.append(right)
        self.order.append(len(t))
        self._handles[t] = h
        return h

    def _build_levels(self):
        order = np.array(self.order, dtype=int)
        left = np.array(self.left, dtype=int)
        right = np.array(self.right, dtype=int)
        handles = np.arange(self.nA + 1, self.nnodes, dtype=int)
        self.levels = []
        for N in (sorted(set(self.order)) if len(order) else []):
            sel = order == N
            self.levels.append((handles[sel], left[sel], right[sel]))

    def workspace(self) -> GraphWorkspace:
        return GraphWorkspace(self.nnodes)

    def evaluate(self, A: np.ndarray,
                 ws: Optional[GraphWorkspace] = None) -> np.ndarray:
        """
        Products for all output tuples.

        Parameters
        ----------
        A : np.ndarray
            Neighbor sums, shape (nA,)
        ws : GraphWorkspace, optional
            Scratch buffers to reuse

        Returns
        -------
        np.ndarray
            Shape (ntuples,)
        """
        if ws is None:
            ws = self.workspace()
        AA = ws.AA
        AA[:self.nA] = A
        AA[self.one] = 1.0
        for h, l, r in self.levels:
            AA[h] = AA[l] * AA[r]
        return AA[self.outputs].copy()

    def evaluate_d(self, A: np.ndarray, dA: np.ndarray,
                   ws: Optional[GraphWorkspace] = None
                   ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Products and their gradients for all output tuples.

        Parameters
        ----------
        A : np.ndarray
            Neighbor sums, shape (nA,)
        dA : np.ndarray
            Gradients of the neighbor sums with respect to the neighbor
            positions, shape (J, nA, 3)
        ws : GraphWorkspace, optional
            Scratch buffers to reuse

        Returns
        -------
        AA : np.ndarray
            Shape (ntuples,)
        dAA : np.ndarray
            Shape (ntuples, J, 3)
        """
        if ws is None:
            ws = self.workspace()
        nJ = dA.shape[0]
        AA = ws.AA
        dAA = ws.gradient_buffer(nJ)
        AA[:self.nA] = A
        AA[self.one] = 1.0
        dAA[:self.nA] = np.transpose(dA, (1, 0, 2))
        dAA[self.one] = 0.0
        for h, l, r in self.levels:
            AA[h] = AA[l] * AA[r]
            dAA[h] = (dAA[l] * AA[r][:, None, None]
                      + AA[l][:, None, None] * dAA[r])
        return AA[self.outputs].copy(), dAA[self.outputs].copy()
