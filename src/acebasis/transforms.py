"""
Distance transforms for the radial basis.

A distance transform maps a physical interatomic distance ``r`` to a
coordinate ``x(r)`` in which the radial polynomials are expanded.  All
transforms implement the same three operations

    transform(r)        x(r)
    transform_d(r)      dx/dr
    inv_transform(x)    r(x)

and accept scalar or array arguments.  Species-pair dependent transforms
(`MultiTransform`) additionally take the compact species indices of the
neighbor ``z`` and of the center ``z0``; all other transforms ignore
them.

"""

from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import sympy

from .exceptions import ConfigurationError, DomainError
from .species import SpeciesList

__author__ = "The acebasis developers"
__date__ = "2026-08-04"

__all__ = [
    'DistanceTransform',
    'IdTransform',
    'PolyTransform',
    'MorseTransform',
    'AgnesiTransform',
    'AnalyticTransform',
    'AffineT',
    'MultiTransform',
    'multitransform',
    'transform_from_dict',
]


def _as_float_array(r):
    return np.asarray(r, dtype=np.float64)


def _unwrap(x, scalar):
    return float(x) if scalar else x


class DistanceTransform(object):
    """Base class of all distance transforms."""

    type_name = None

    def transform(self, r, z=None, z0=None):
        raise NotImplementedError

    def transform_d(self, r, z=None, z0=None):
        raise NotImplementedError

    def inv_transform(self, x, z=None, z0=None):
        raise NotImplementedError

    def __call__(self, r, z=None, z0=None):
        return self.transform(r, z, z0)

    def to_dict(self) -> Dict:
        raise NotImplementedError

    def __eq__(self, other):
        if not isinstance(other, DistanceTransform):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(repr(self.to_dict()))

    def __repr__(self):
        args = ", ".join("{}={}".format(k, v) for k, v in
                         self.to_dict().items() if k != "type")
        return "{}({})".format(self.__class__.__name__, args)


class IdTransform(DistanceTransform):
    """The identity ``x(r) = r``."""

    type_name = "identity"

    def transform(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        return _unwrap(_as_float_array(r).copy(), scalar)

    def transform_d(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        return _unwrap(np.ones_like(_as_float_array(r)), scalar)

    def inv_transform(self, x, z=None, z0=None):
        scalar = np.ndim(x) == 0
        return _unwrap(_as_float_array(x).copy(), scalar)

    def to_dict(self):
        return {"type": self.type_name}


class PolyTransform(DistanceTransform):
    r"""
    Polynomial distance transform

        x(r) = ((1 + r0) / (1 + r))^p

    Parameters
    ----------
    p : float
        Exponent (default: 2)
    r0 : float
        Reference distance, usually the nearest-neighbor distance
        (default: 2.5)
    """

    type_name = "poly"

    def __init__(self, p: float = 2, r0: float = 2.5):
        if p <= 0:
            raise ConfigurationError(
                "PolyTransform requires p > 0, got {}".format(p))
        if r0 <= -1:
            raise ConfigurationError(
                "PolyTransform requires r0 > -1, got {}".format(r0))
        self.p = p
        self.r0 = r0

    def transform(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        r = _as_float_array(r)
        if np.any(r <= -1.0):
            raise DomainError("PolyTransform is undefined for r <= -1.")
        return _unwrap(((1.0 + self.r0) / (1.0 + r))**self.p, scalar)

    def transform_d(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        r = _as_float_array(r)
        if np.any(r <= -1.0):
            raise DomainError("PolyTransform is undefined for r <= -1.")
        dx = (-self.p / (1.0 + self.r0)) * (
            (1.0 + self.r0) / (1.0 + r))**(self.p + 1)
        return _unwrap(dx, scalar)

    def inv_transform(self, x, z=None, z0=None):
        scalar = np.ndim(x) == 0
        x = _as_float_array(x)
        if np.any(x <= 0.0):
            raise DomainError(
                "PolyTransform can only be inverted for x > 0.")
        return _unwrap((1.0 + self.r0) / x**(1.0 / self.p) - 1.0, scalar)

    def to_dict(self):
        return {"type": self.type_name, "p": self.p, "r0": self.r0}


class MorseTransform(DistanceTransform):
    r"""
    Morse-type distance transform

        x(r) = exp(-lambda r / r0)
    """

    type_name = "morse"

    def __init__(self, lam: float = 1.0, r0: float = 2.5):
        if r0 <= 0:
            raise ConfigurationError(
                "MorseTransform requires r0 > 0, got {}".format(r0))
        if lam == 0:
            raise ConfigurationError("MorseTransform requires lambda != 0")
        self.lam = lam
        self.r0 = r0

    def transform(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        r = _as_float_array(r)
        return _unwrap(np.exp(-self.lam * (r / self.r0)), scalar)

    def transform_d(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        r = _as_float_array(r)
        return _unwrap((-self.lam / self.r0)
                       * np.exp(-self.lam * (r / self.r0)), scalar)

    def inv_transform(self, x, z=None, z0=None):
        scalar = np.ndim(x) == 0
        x = _as_float_array(x)
        if np.any(x <= 0.0):
            raise DomainError(
                "MorseTransform can only be inverted for x > 0.")
        return _unwrap(-self.r0 / self.lam * np.log(x), scalar)

    def to_dict(self):
        return {"type": self.type_name, "lambda": self.lam, "r0": self.r0}


class AgnesiTransform(DistanceTransform):
    r"""
    Agnesi (rational) distance transform

        x(r) = 1 / (1 + a (r/r0)^p)

    The default ``a = (p-1)/(p+1)`` maximizes ``|x'(r)|`` at ``r = r0``.
    Any ``p > 1`` is permitted.
    """

    type_name = "agnesi"

    def __init__(self, r0: float, p: float = 2, a: Optional[float] = None):
        if p <= 1:
            raise ConfigurationError(
                "AgnesiTransform requires p > 1, got {}".format(p))
        if r0 <= 0:
            raise ConfigurationError(
                "AgnesiTransform requires r0 > 0, got {}".format(r0))
        if a is None:
            a = (p - 1.0) / (p + 1.0)
        if a <= 0:
            raise ConfigurationError(
                "AgnesiTransform requires a > 0, got {}".format(a))
        self.r0 = r0
        self.p = p
        self.a = a
        self.c = -a * p / r0

    def _check(self, r):
        if np.any(r < 0.0):
            raise DomainError("AgnesiTransform is undefined for r < 0.")

    def transform(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        r = _as_float_array(r)
        self._check(r)
        return _unwrap(1.0 / (1.0 + self.a * (r / self.r0)**self.p), scalar)

    def transform_d(self, r, z=None, z0=None):
        scalar = np.ndim(r) == 0
        r = _as_float_array(r)
        self._check(r)
        s1 = r / self.r0
        s2 = s1**(self.p - 1)
        return _unwrap(self.c * s2 / (1.0 + self.a * s2 * s1)**2, scalar)

    def inv_transform(self, x, z=None, z0=None):
        scalar = np.ndim(x) == 0
        x = _as_float_array(x)
        if np.any(x <= 0.0) or np.any(x > 1.0):
            raise DomainError(
                "AgnesiTransform can only be inverted for 0 < x <= 1.")
        return _unwrap(
            self.r0 * ((1.0 / x - 1.0) / self.a)**(1.0 / self.p), scalar)

    def to_dict(self):
        return {"type": self.type_name, "r0": self.r0, "p": self.p,
                "a": self.a}


class AnalyticTransform(DistanceTransform):
    """
    Distance transform given by analytic expressions.

    The forward map is an expression in ``r`` and the inverse map an
    expression in ``x``.  The derivative is obtained symbolically.

    Parameters
    ----------
    f : str
        Forward map, e.g. ``"exp(-2*r)"``
    finv : str
        Inverse map, e.g. ``"-0.5*log(x)"``

    Raises
    ------
    ConfigurationError
        If either expression cannot be parsed or depends on symbols other
        than its argument.
    """

    type_name = "analytic"

    def __init__(self, f: str, finv: str):
        self.str_f = f
        self.str_finv = finv
        self._build()

    @staticmethod
    def _parse(expr: str, var: sympy.Symbol):
        if not isinstance(expr, str):
            raise ConfigurationError(
                "Analytic transforms expect expression strings, "
                "got {!r}".format(expr))
        try:
            ex = sympy.sympify(expr, locals={var.name: var})
        except (sympy.SympifyError, SyntaxError, TypeError) as e:
            raise ConfigurationError(
                "Malformed transform expression `{}': {}".format(expr, e))
        if not isinstance(ex, sympy.Expr):
            raise ConfigurationError(
                "Transform expression `{}' is not a scalar "
                "expression.".format(expr))
        extra = ex.free_symbols - {var}
        if extra:
            raise ConfigurationError(
                "Transform expression `{}' depends on unknown symbols "
                "{}".format(expr, sorted(str(s) for s in extra)))
        return ex

    def _build(self):
        r = sympy.Symbol("r", real=True)
        x = sympy.Symbol("x", real=True)
        ex_f = self._parse(self.str_f, r)
        ex_finv = self._parse(self.str_finv, x)
        self._f = sympy.lambdify(r, ex_f, modules="numpy")
        self._df = sympy.lambdify(r, sympy.diff(ex_f, r), modules="numpy")
        self._finv = sympy.lambdify(x, ex_finv, modules="numpy")

    def __getstate__(self):
        return {"str_f": self.str_f, "str_finv": self.str_finv}

    def __setstate__(self, state):
        self.str_f = state["str_f"]
        self.str_finv = state["str_finv"]
        self._build()

    @staticmethod
    def _apply(fun, arg, what):
        scalar = np.ndim(arg) == 0
        arg = _as_float_array(arg)
        with np.errstate(all="ignore"):
            val = np.broadcast_to(fun(arg), arg.shape).astype(np.float64)
        if not np.all(np.isfinite(val)):
            raise DomainError(
                "AnalyticTransform: {} is not finite for the given "
                "argument.".format(what))
        return _unwrap(val, scalar)

    def transform(self, r, z=None, z0=None):
        return self._apply(self._f, r, "f(r)")

    def transform_d(self, r, z=None, z0=None):
        return self._apply(self._df, r, "f'(r)")

    def inv_transform(self, x, z=None, z0=None):
        return self._apply(self._finv, x, "finv(x)")

    def to_dict(self):
        return {"type": self.type_name, "f": self.str_f,
                "finv": self.str_finv}

    def __repr__(self):
        return "AnalyticTransform({})".format(self.str_f)


class AffineT(DistanceTransform):
    """
    Wraps another transform and maps its output affinely, ``x1 -> y1``
    and ``x2 -> y2``.
    """

    type_name = "affine"

    def __init__(self, t: DistanceTransform, x1: float, x2: float,
                 y1: float, y2: float):
        if x1 == x2 or y1 == y2:
            raise ConfigurationError(
                "AffineT requires x1 != x2 and y1 != y2.")
        self.t = t
        self.x1 = float(x1)
        self.x2 = float(x2)
        self.y1 = float(y1)
        self.y2 = float(y2)

    @property
    def slope(self):
        return (self.y2 - self.y1) / (self.x2 - self.x1)

    def transform(self, r, z=None, z0=None):
        return self.y1 + (self.t.transform(r) - self.x1) * self.slope

    def transform_d(self, r, z=None, z0=None):
        return self.slope * self.t.transform_d(r)

    def inv_transform(self, y, z=None, z0=None):
        return self.t.inv_transform(self.x1 + (y - self.y1) / self.slope)

    def to_dict(self):
        return {"type": self.type_name, "t": self.t.to_dict(),
                "xy": [self.x1, self.x2, self.y1, self.y2]}


class MultiTransform(DistanceTransform):
    """
    Species-pair dependent distance transform.

    Holds an ``nspecies x nspecies`` table of transforms indexed by the
    compact species indices of neighbor ``z`` and center ``z0``, and
    optionally a matching table of ``(rin, rcut)`` cutoffs.  When cutoffs
    are given, every entry is an `AffineT` mapping ``[rin, rcut]`` onto
    ``[-1, 1]``.

    Use `multitransform` to construct instances from a dictionary keyed by
    species pairs.
    """

    type_name = "multi"

    def __init__(self, species: SpeciesList,
                 transforms: Sequence[Sequence[DistanceTransform]],
                 cutoffs: Optional[Sequence[Sequence[Tuple[float, float]]]]
                 = None):
        nz = len(species)
        if (len(transforms) != nz
                or any(len(row) != nz for row in transforms)):
            raise ConfigurationError(
                "MultiTransform requires an {0} x {0} table of "
                "transforms.".format(nz))
        if cutoffs is not None and (
                len(cutoffs) != nz or any(len(row) != nz for row in cutoffs)):
            raise ConfigurationError(
                "MultiTransform requires an {0} x {0} table of "
                "cutoffs.".format(nz))
        self.species = species
        self.transforms = [list(row) for row in transforms]
        self.cutoffs = (None if cutoffs is None else
                        [[(float(a), float(b)) for (a, b) in row]
                         for row in cutoffs])

    @property
    def has_cutoffs(self):
        return self.cutoffs is not None

    def _dispatch(self, method, r, z, z0):
        if z is None or z0 is None:
            raise ValueError(
                "MultiTransform requires species indices z and z0.")
        scalar = np.ndim(r) == 0
        r = _as_float_array(r)
        z = np.broadcast_to(np.asarray(z, dtype=int), r.shape)
        z0 = np.broadcast_to(np.asarray(z0, dtype=int), r.shape)
        out = np.empty_like(r)
        for iz in np.unique(z):
            for iz0 in np.unique(z0):
                mask = (z == iz) & (z0 == iz0)
                if not np.any(mask):
                    continue
                t = self.transforms[iz][iz0]
                out[mask] = getattr(t, method)(r[mask])
        return _unwrap(out, scalar)

    def transform(self, r, z=None, z0=None):
        return self._dispatch("transform", r, z, z0)

    def transform_d(self, r, z=None, z0=None):
        return self._dispatch("transform_d", r, z, z0)

    def inv_transform(self, x, z=None, z0=None):
        return self._dispatch("inv_transform", x, z, z0)

    def pair_cutoffs(self, z, z0) -> Tuple[np.ndarray, np.ndarray]:
        """Per-entry (rin, rcut) arrays for arrays of species indices."""
        if not self.has_cutoffs:
            raise ConfigurationError(
                "MultiTransform was constructed without cutoffs.")
        z = np.asarray(z, dtype=int)
        z0 = np.broadcast_to(np.asarray(z0, dtype=int), z.shape)
        table = np.array(self.cutoffs, dtype=np.float64)
        return table[z, z0, 0], table[z, z0, 1]

    def reorder(self, species) -> 'MultiTransform':
        """
        The same table with rows and columns in the order of ``species``.

        Raises
        ------
        ConfigurationError
            If ``species`` is not a permutation of the species of the
            table.
        """
        zlist = species if isinstance(species, SpeciesList) else \
            SpeciesList(species)
        if zlist == self.species:
            return self
        if (len(zlist) != len(self.species)
                or set(zlist) != set(self.species)):
            raise ConfigurationError(
                "Species {} do not match the species {} of the "
                "MultiTransform.".format(zlist.species, self.species.species))
        perm = [self.species.index(s) for s in zlist]
        transforms = [[self.transforms[i][j] for j in perm] for i in perm]
        cutoffs = None if self.cutoffs is None else \
            [[self.cutoffs[i][j] for j in perm] for i in perm]
        return MultiTransform(zlist, transforms, cutoffs)

    def cutoff_extrema(self) -> Tuple[float, float]:
        """
        Smallest inner and largest outer cutoff over all species pairs,
        i.e., the images of -1 and +1 under the inverse transforms.
        """
        if self.has_cutoffs:
            table = np.array(self.cutoffs, dtype=np.float64)
            return float(table[..., 0].min()), float(table[..., 1].max())
        ts = [t for row in self.transforms for t in row]
        return (min(float(t.inv_transform(-1.0)) for t in ts),
                max(float(t.inv_transform(1.0)) for t in ts))

    def to_dict(self):
        d = {"type": self.type_name,
             "species": self.species.species,
             "transforms": [[t.to_dict() for t in row]
                            for row in self.transforms]}
        if self.cutoffs is not None:
            d["cutoffs"] = [[list(c) for c in row] for row in self.cutoffs]
        return d


def multitransform(D: Mapping[Tuple[Hashable, Hashable], DistanceTransform],
                   species: Optional[Sequence[Hashable]] = None,
                   rin: Optional[float] = None,
                   rcut: Optional[float] = None,
                   cutoffs: Optional[Mapping] = None) -> MultiTransform:
    """
    Build a `MultiTransform` from a dictionary keyed by species pairs.

    Parameters
    ----------
    D : dict
        ``{(s1, s2): transform}``; a missing ``(s1, s2)`` entry falls back
        to ``(s2, s1)``.
    species : list, optional
        Order of the species; defaults to the order of first appearance
        in the keys of ``D``.
    rin, rcut : float, optional
        Common cutoffs for all pairs.
    cutoffs : dict, optional
        ``{(s1, s2): (rin, rcut)}``, overrides ``rin``/``rcut``.

    Returns
    -------
    MultiTransform
    """
    if rin is not None and rcut is not None and cutoffs is None:
        cutoffs = {key: (rin, rcut) for key in D}

    if species is None:
        species = []
        for key in D:
            for s in key:
                if s not in species:
                    species.append(s)
    zlist = species if isinstance(species, SpeciesList) else \
        SpeciesList(species)

    def lookup(table, si, sj):
        if (si, sj) in table:
            return table[(si, sj)]
        if (sj, si) in table:
            return table[(sj, si)]
        raise ConfigurationError(
            "No entry for species pair ({}, {}).".format(si, sj))

    nz = len(zlist)
    transforms: List[List[DistanceTransform]] = []
    pair_cutoffs = None if cutoffs is None else []
    for i in range(nz):
        row = []
        crow = []
        for j in range(nz):
            si, sj = zlist.label(i), zlist.label(j)
            t = lookup(D, si, sj)
            if cutoffs is not None:
                r_in, r_cut = lookup(cutoffs, si, sj)
                if not 0 <= r_in < r_cut:
                    raise ConfigurationError(
                        "Invalid cutoffs ({}, {}) for pair ({}, {})".format(
                            r_in, r_cut, si, sj))
                t = AffineT(t, t.transform(r_in), t.transform(r_cut),
                            -1.0, 1.0)
                crow.append((r_in, r_cut))
            row.append(t)
        transforms.append(row)
        if pair_cutoffs is not None:
            pair_cutoffs.append(crow)
    return MultiTransform(zlist, transforms, pair_cutoffs)


def transform_from_dict(d: Mapping) -> DistanceTransform:
    """
    Construct a transform from its dictionary representation (see
    ``DistanceTransform.to_dict``).
    """
    try:
        kind = d["type"]
    except (KeyError, TypeError):
        raise ConfigurationError(
            "Transform specification requires a `type' entry: {}".format(d))
    try:
        if kind == IdTransform.type_name:
            return IdTransform()
        elif kind == PolyTransform.type_name:
            return PolyTransform(p=d.get("p", 2), r0=d.get("r0", 2.5))
        elif kind == MorseTransform.type_name:
            return MorseTransform(lam=d.get("lambda", 1.0),
                                  r0=d.get("r0", 2.5))
        elif kind == AgnesiTransform.type_name:
            return AgnesiTransform(d["r0"], p=d.get("p", 2), a=d.get("a"))
        elif kind == AnalyticTransform.type_name:
            return AnalyticTransform(d["f"], d["finv"])
        elif kind == AffineT.type_name:
            return AffineT(transform_from_dict(d["t"]), *d["xy"])
        elif kind == MultiTransform.type_name:
            zlist = SpeciesList(d["species"])
            transforms = [[transform_from_dict(t) for t in row]
                          for row in d["transforms"]]
            cutoffs = d.get("cutoffs")
            if cutoffs is not None:
                cutoffs = [[tuple(c) for c in row] for row in cutoffs]
            return MultiTransform(zlist, transforms, cutoffs)
    except KeyError as e:
        raise ConfigurationError(
            "Missing parameter {} for transform `{}'".format(e, kind))
    raise ConfigurationError("Unknown transform type: {}".format(kind))
