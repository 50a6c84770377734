"""
Rotation and permutation invariant (RPI) basis.

For a shape tuple ``((n_1, l_1, z_1), ..., (n_N, l_N, z_N))`` and a
coupling path with real coupling coefficients ``c(mu)``, the basis
function is

    B = sum_mu c(mu) prod_i A[n_i, l_i, mu_i, z_i]
      = sum_mu c(mu) AA[sort(v(mu))],

i.e., a linear combination of the permutation invariant correlations
`acebasis.pibasis.PIBasis`.  All ``mu`` assignments that lead to the same
sorted correlation are merged into one coefficient, and the rows
obtained for the coupling paths of one shape are reduced to a linearly
independent set.  Hence ``B = C @ AA`` with a sparse matrix ``C``.

"""

import functools
import multiprocessing as mp
import warnings
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import sparse

from .config import ACEBasisConfig
from .coupling import CouplingCoefficients
from .degree import BasisSpec, SparsePSHDegree, SparsePSHDegreeM
from .exceptions import ConfigurationError
from .oneparticlebasis import (BasicPSH1pBasis, PSH1pBasisFcn,
                               basic_1p_basis)
from .orthpolys import transformed_jacobi
from .pibasis import PIBasis
from .species import SpeciesList
from .transforms import MultiTransform, transform_from_dict

__author__ = "The acebasis developers"
__date__ = "2026-09-07"

__all__ = ['RPIBasis', 'rpi_basis']


class RPIBasis(object):
    """
    Rotation and permutation invariant basis.

    Parameters
    ----------
    basis1p : BasicPSH1pBasis
        One-particle basis; must contain all ``m`` for each ``(n, l, z)``
    spec : BasisSpec
        Admissibility of shape tuples
    constants : bool
        Include the constant function at the start of every block
    coupling : CouplingCoefficients, optional
        Coefficient cache; a new one is created by default
    use_graph : bool
        Evaluate the correlations with the evaluation graph (default) or
        by recomputing every product
    verbose : bool
        Print a summary of the construction

    Notes
    -----
    Only shape tuples with even ``sum(l)`` are used; for odd ``sum(l)``
    the coupled products are not real.
    """

    def __init__(self, basis1p: BasicPSH1pBasis, spec: BasisSpec,
                 constants: bool = False,
                 coupling: Optional[CouplingCoefficients] = None,
                 use_graph: bool = True, verbose: bool = False):
        self.basis1p = basis1p
        self.species = basis1p.species
        self.spec = spec
        self.constants = constants
        self.coupling = CouplingCoefficients() if coupling is None \
            else coupling
        self.shapes = basis1p.shapes()
        self._ndropped = 0

        self.C: List[sparse.csr_matrix] = []
        self.info: List[List[Dict]] = []
        pi_tuples = {}
        for iz0 in range(len(self.species)):
            keys, rows, info = self._block(iz0)
            if len(rows) == 0:
                warnings.warn(
                    "The basis for center species {} is empty.".format(
                        self.species.label(iz0)), RuntimeWarning)
            self.C.append(self._sparse(rows, keys))
            self.info.append(info)
            pi_tuples[iz0] = keys
        if self._ndropped > 0:
            warnings.warn(
                "Rank reduction removed {} linearly dependent coupling "
                "rows.".format(self._ndropped), RuntimeWarning)

        self.pibasis = PIBasis(basis1p, pi_tuples, use_graph=use_graph)
        self.block_sizes = [C.shape[0] for C in self.C]
        self.block_offsets = list(np.cumsum([0] + self.block_sizes[:-1]))
        if verbose:
            print(self.summary())

    # ------------------------------------------------------------------
    # construction

    def _block(self, iz0):
        shapes = self.shapes

        def even(t):
            return sum(shapes[i].l for i in t) % 2 == 0

        shape_tuples = self.spec.enumerate(shapes, iz0, select=even)
        keys: Dict[Tuple[int, ...], int] = {}
        rows = []
        info = []
        if self.constants:
            keys[()] = 0
            rows.append({0: 1.0})
            info.append(dict(z0=iz0, shape=(), path=0))
        for st in shape_tuples:
            units = [shapes[i] for i in st]
            block_rows = self._shape_rows(units)
            for ipath, row in enumerate(block_rows):
                for k in row:
                    keys.setdefault(k, len(keys))
                rows.append({keys[k]: c for k, c in row.items()})
                info.append(dict(z0=iz0, shape=tuple(units), path=ipath))
        return list(keys), rows, info

    def _shape_rows(self, units):
        ll = tuple(u.l for u in units)
        rows = []
        for table in self.coupling.real_coefficients(ll):
            row = defaultdict(float)
            for mu, c in table.items():
                try:
                    v = [self.basis1p.index(PSH1pBasisFcn(u.n, u.l, m, u.z))
                         for u, m in zip(units, mu)]
                except KeyError:
                    raise ConfigurationError(
                        "The one-particle basis must contain all m for "
                        "(n, l, z) = {}".format(units))
                row[tuple(sorted(v))] += c
            rows.append({k: c for k, c in row.items()
                         if abs(c) >= self.coupling.tol})
        return self._reduce(rows)

    def _reduce(self, rows, rtol=1e-10):
        """Linearly independent span of the coefficient rows."""
        if len(rows) == 0:
            return rows
        cols = sorted(set(k for row in rows for k in row))
        if len(cols) == 0:
            self._ndropped += len(rows)
            return []
        icol = {k: i for i, k in enumerate(cols)}
        M = np.zeros((len(rows), len(cols)))
        for i, row in enumerate(rows):
            for k, c in row.items():
                M[i, icol[k]] = c
        S = np.linalg.svd(M, compute_uv=False)
        rank = int(np.sum(S > rtol * max(S[0], 1.0)))
        if rank == len(rows):
            return rows
        self._ndropped += len(rows) - rank
        if rank == 0:
            return []
        _, S, Vt = np.linalg.svd(M, full_matrices=False)
        reduced = S[:rank, None] * Vt[:rank]
        tol = self.coupling.tol
        return [{cols[j]: c for j, c in enumerate(r) if abs(c) >= tol}
                for r in reduced]

    @staticmethod
    def _sparse(rows, keys):
        data, ii, jj = [], [], []
        for i, row in enumerate(rows):
            for j, c in row.items():
                ii.append(i)
                jj.append(j)
                data.append(c)
        return sparse.csr_matrix((data, (ii, jj)),
                                 shape=(len(rows), len(keys)))

    # ------------------------------------------------------------------
    # bookkeeping

    def __len__(self):
        return sum(self.block_sizes)

    def block(self, iz0: int) -> slice:
        o = int(self.block_offsets[iz0])
        return slice(o, o + self.block_sizes[iz0])

    def workspaces(self):
        """Fresh scratch buffers, one per center species block."""
        return [self.pibasis.workspace(iz0)
                for iz0 in range(len(self.species))]

    def get_basis_spec(self, z0) -> List[Tuple[Tuple[int, int], ...]]:
        """
        ``(n, l)`` tuples of all basis functions of center species ``z0``;
        the constant function is the empty tuple.
        """
        iz0 = self.species.index(z0)
        return [tuple((u.n, u.l) for u in rec["shape"])
                for rec in self.info[iz0]]

    def summary(self) -> str:
        lines = ["RPIBasis: {} functions, {} correlations, "
                 "{} one-particle functions".format(
                     len(self), len(self.pibasis), len(self.basis1p))]
        for iz0 in range(len(self.species)):
            orders = defaultdict(int)
            for rec in self.info[iz0]:
                orders[len(rec["shape"])] += 1
            lines.append("  z0 = {}: {} functions, per order {}".format(
                self.species.label(iz0), self.block_sizes[iz0],
                dict(sorted(orders.items()))))
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        """Table of all basis functions in the order of evaluation."""
        rows = []
        for iz0, block in enumerate(self.info):
            for rec in block:
                shape = rec["shape"]
                rows.append({
                    "z0": self.species.label(iz0),
                    "order": len(shape),
                    "n": tuple(u.n for u in shape),
                    "l": tuple(u.l for u in shape),
                    "z": tuple(self.species.label(u.z) for u in shape),
                    "path": rec["path"],
                    "degree": self.spec.degree.degree(shape)})
        return pd.DataFrame(
            rows, columns=["z0", "order", "n", "l", "z", "path", "degree"])

    # ------------------------------------------------------------------
    # evaluation

    def _indices(self, Zs, z0):
        return self.species.indices(np.atleast_1d(Zs)), self.species.index(z0)

    def evaluate(self, Rs, Zs, z0, ws=None) -> np.ndarray:
        """
        Basis values of one atomic environment.

        Parameters
        ----------
        Rs : array_like
            Relative neighbor positions, shape (J, 3)
        Zs : sequence
            Neighbor species labels, shape (J,)
        z0 : species label
            Species of the center atom
        ws : list of GraphWorkspace, optional
            Scratch buffers from `workspaces`

        Returns
        -------
        np.ndarray
            Shape (len(self),); only the block of ``z0`` is nonzero
        """
        iZs, iz0 = self._indices(Zs, z0)
        w = None if ws is None else ws[iz0]
        AA = self.pibasis.evaluate_block(Rs, iZs, iz0, w)
        B = np.zeros(len(self))
        B[self.block(iz0)] = self.C[iz0] @ AA
        return B

    def evaluate_d(self, Rs, Zs, z0, ws=None
                   ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Basis values and gradients of one atomic environment.

        Returns
        -------
        B : np.ndarray
            Shape (len(self),)
        dB : np.ndarray
            Gradients with respect to the neighbor positions,
            shape (J, len(self), 3)

        Raises
        ------
        DomainError
            If a neighbor is at zero distance or outside the domain of
            the distance transform.
        """
        iZs, iz0 = self._indices(Zs, z0)
        nJ = len(iZs)
        w = None if ws is None else ws[iz0]
        AA, dAA = self.pibasis.evaluate_block_d(Rs, iZs, iz0, w)
        C = self.C[iz0]
        B = np.zeros(len(self))
        dB = np.zeros((nJ, len(self), 3))
        b = self.block(iz0)
        B[b] = C @ AA
        dBb = C @ dAA.reshape(len(AA), nJ * 3)
        dB[:, b, :] = np.transpose(
            np.asarray(dBb).reshape(C.shape[0], nJ, 3), (1, 0, 2))
        return B, dB

    def evaluate_many(self, environments: Sequence, cores: int = 1,
                      gradients: bool = False):
        """
        Evaluate a batch of atomic environments.

        Parameters
        ----------
        environments : sequence
            ``(Rs, Zs, z0)`` triples
        cores : int
            Number of processes to use
        gradients : bool
            Also compute gradients

        Returns
        -------
        np.ndarray or list
            Values with shape (nenv, len(self)); with ``gradients=True``
            a list of ``(B, dB)`` tuples instead.
        """
        eval_chunk = functools.partial(_evaluate_chunk, self, gradients)
        environments = list(environments)
        if cores == 1 or len(environments) <= 1:
            results = eval_chunk(environments)
        else:
            chunks = [environments[i::cores] for i in range(cores)]
            with mp.Pool(processes=cores) as pool:
                parts = pool.map(eval_chunk, chunks)
            results = [None] * len(environments)
            for i, part in enumerate(parts):
                results[i::cores] = part
        if gradients:
            return results
        return np.array(results).reshape(len(environments), len(self))


def _evaluate_chunk(basis, gradients, environments):
    """
    Evaluate environments sequentially with one set of scratch buffers.

    """
    ws = basis.workspaces()
    if gradients:
        return [basis.evaluate_d(Rs, Zs, z0, ws)
                for (Rs, Zs, z0) in environments]
    return [basis.evaluate(Rs, Zs, z0, ws) for (Rs, Zs, z0) in environments]


def _species_weights(w, species: SpeciesList):
    """Map a weight dictionary keyed by labels to compact indices."""
    if not isinstance(w, dict):
        return {"default": w}
    out = {}
    for key, val in w.items():
        if key == "default":
            out["default"] = val
            continue
        matches = [i for i, s in enumerate(species)
                   if s == key or str(s) == str(key)]
        if not matches:
            raise ConfigurationError(
                "Degree weight for unknown species {}".format(key))
        out[matches[0]] = val
    return out


def rpi_basis(config: ACEBasisConfig, use_graph: bool = True,
              verbose: bool = False) -> RPIBasis:
    """
    Construct an RPI basis from a configuration.

    Parameters
    ----------
    config : ACEBasisConfig
        Basis parameters
    use_graph : bool
        Use the evaluation graph for the correlations
    verbose : bool
        Print a summary of the construction

    Returns
    -------
    RPIBasis

    Raises
    ------
    ConfigurationError
        For invalid parameters.

    Examples
    --------
    >>> config = ACEBasisConfig(species=['Si'], maxorder=3, maxdeg=8,
    ...                         rcut=5.0)
    >>> basis = rpi_basis(config)
    >>> B, dB = basis.evaluate_d(Rs, ['Si'] * len(Rs), 'Si')
    """
    species = SpeciesList(config.species)
    maxdeg = ({N: config.maxdeg_for(N)
               for N in range(1, config.maxorder + 1)}
              if isinstance(config.maxdeg, dict) else config.maxdeg)
    if config.species_dependent_degree:
        Dd = maxdeg if isinstance(maxdeg, dict) else {
            N: maxdeg for N in range(1, config.maxorder + 1)}
        degree = SparsePSHDegreeM(_species_weights(config.wn, species),
                                  _species_weights(config.wl, species), Dd)
        spec = BasisSpec(degree, config.maxorder)
    else:
        degree = SparsePSHDegree(config.wn, config.wl)
        spec = BasisSpec(degree, config.maxorder, maxdeg)

    maxdeg1 = max(spec.maxdeg(1, iz0) for iz0 in range(len(species)))
    maxn = config.maxn
    if maxn is None:
        maxn = max(int(np.floor(maxdeg1 / degree.degree1(1, 0, iz) + 1e-12))
                   for iz in range(len(species)))
        if maxn < 1:
            raise ConfigurationError(
                "maxdeg={} admits no radial function".format(maxdeg1))

    trans = transform_from_dict(config.transform_dict())
    if isinstance(trans, MultiTransform):
        trans = trans.reorder(species)
    J = transformed_jacobi(maxn, trans, config.rcut, rin=config.rin,
                           pcut=config.pcut, pin=config.pin)
    basis1p = basic_1p_basis(J, species, degree, maxdeg1, maxl=config.maxl)
    if verbose:
        print("Radial basis: {} functions, transform {}".format(maxn, trans))
    return RPIBasis(basis1p, spec, constants=config.constants,
                    use_graph=use_graph, verbose=verbose)
