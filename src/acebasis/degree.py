"""
Degree functions and enumeration of admissible correlation tuples.

A correlation tuple is a sorted tuple of unit indices.  Units are any
objects with attributes ``n``, ``l`` and ``z`` (one-particle functions
`PSH1pBasisFcn` or their ``(n, l, z)`` shapes `NLZ`).  A tuple of order
``N`` is admissible if its degree does not exceed the maximal degree of
order ``N``.

"""

from numbers import Real
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .exceptions import ConfigurationError

__author__ = "The acebasis developers"
__date__ = "2026-08-17"

__all__ = ['SparsePSHDegree', 'SparsePSHDegreeM', 'BasisSpec']


def _check_weight(w, name):
    if not isinstance(w, Real) or w <= 0:
        raise ConfigurationError(
            "Degree weight {} must be positive, got {}".format(name, w))
    return float(w)


class SparsePSHDegree(object):
    """
    Total degree ``deg(n, l) = wn * n + wl * l`` of a one-particle
    function; the degree of a tuple is the sum over its units.

    Parameters
    ----------
    wn : float
        Weight of the radial channel
    wl : float
        Weight of the angular momentum
    """

    def __init__(self, wn: float = 1.0, wl: float = 1.5):
        self.wn = _check_weight(wn, "wn")
        self.wl = _check_weight(wl, "wl")

    def degree1(self, n: int, l: int, z: Optional[int] = None) -> float:
        return self.wn * n + self.wl * l

    def degree(self, units) -> float:
        return sum(self.degree1(b.n, b.l, b.z) for b in units)

    def __repr__(self):
        return "SparsePSHDegree(wn={}, wl={})".format(self.wn, self.wl)


class SparsePSHDegreeM(object):
    """
    Species dependent degree

        deg(n, l, z) = Dn[z] * n + Dl[z] * l

    with maximal degrees per correlation order and, optionally, per
    center species.

    Parameters
    ----------
    Dn, Dl : dict
        Weights keyed by compact species index; the key ``"default"``
        is used for species without an entry.
    Dd : dict
        Maximal degrees keyed by correlation order ``N`` or by
        ``(N, z0)``; entries for ``(N, z0)`` take precedence.

    Examples
    --------
    >>> D = SparsePSHDegreeM({"default": 1.0}, {"default": 1.5, 1: 2.0},
    ...                      {1: 10, 2: 8, (2, 1): 6})
    """

    def __init__(self, Dn: Mapping, Dl: Mapping, Dd: Mapping):
        self.Dn = {k: _check_weight(v, "Dn[{}]".format(k))
                   for k, v in Dn.items()}
        self.Dl = {k: _check_weight(v, "Dl[{}]".format(k))
                   for k, v in Dl.items()}
        self.Dd = dict(Dd)
        if len(self.Dd) == 0:
            raise ConfigurationError("Dd must define at least one order.")

    @staticmethod
    def _lookup(D, z, name):
        if z in D:
            return D[z]
        if "default" in D:
            return D["default"]
        raise ConfigurationError(
            "No weight {} for species {} and no default.".format(name, z))

    def degree1(self, n: int, l: int, z: Optional[int] = None) -> float:
        return (self._lookup(self.Dn, z, "Dn") * n
                + self._lookup(self.Dl, z, "Dl") * l)

    def degree(self, units) -> float:
        return sum(self.degree1(b.n, b.l, b.z) for b in units)

    def maxdeg(self, order: int, z0: Optional[int] = None) -> float:
        if (order, z0) in self.Dd:
            return self.Dd[(order, z0)]
        if order in self.Dd:
            return self.Dd[order]
        raise ConfigurationError(
            "Dd has no maximal degree for order {} (z0={}).".format(
                order, z0))

    def __repr__(self):
        return "SparsePSHDegreeM(Dn={}, Dl={}, Dd={})".format(
            self.Dn, self.Dl, self.Dd)


class BasisSpec(object):
    """
    Admissibility rule and enumerator of correlation tuples.

    Parameters
    ----------
    degree : SparsePSHDegree or SparsePSHDegreeM
        Degree function
    maxorder : int
        Maximal correlation order
    maxdeg : float or dict, optional
        Maximal degree, either one value for all orders or a mapping
        ``{order: maxdeg}``.  If omitted, the maximal degrees are taken
        from ``degree`` (`SparsePSHDegreeM`).

    Raises
    ------
    ConfigurationError
        If a maximal degree is not positive or increases with the order.
    """

    def __init__(self, degree, maxorder: int, maxdeg=None):
        if not isinstance(maxorder, int) or maxorder < 1:
            raise ConfigurationError(
                "maxorder must be a positive integer, got {}".format(
                    maxorder))
        self.degree = degree
        self.maxorder = maxorder
        if isinstance(maxdeg, Mapping):
            maxdeg = {int(k): v for k, v in maxdeg.items()}
            missing = [N for N in range(1, maxorder + 1) if N not in maxdeg]
            if missing:
                raise ConfigurationError(
                    "maxdeg has no entry for orders {}".format(missing))
        self._maxdeg = maxdeg
        self.check(None)

    def maxdeg(self, order: int, z0: Optional[int] = None) -> float:
        if self._maxdeg is None:
            return self.degree.maxdeg(order, z0)
        if isinstance(self._maxdeg, Mapping):
            return self._maxdeg[order]
        return self._maxdeg

    def check(self, z0: Optional[int] = None):
        """
        Validate the maximal degrees for center species ``z0``.

        Without explicit ``maxdeg`` and with per-species bounds only, the
        check is deferred until the center species is known.
        """
        if self._maxdeg is None:
            if not isinstance(self.degree, SparsePSHDegreeM):
                raise ConfigurationError(
                    "BasisSpec requires `maxdeg' for {}".format(self.degree))
            if z0 is None and not all(N in self.degree.Dd
                                      for N in range(1, self.maxorder + 1)):
                return
        bounds = [self.maxdeg(N, z0) for N in range(1, self.maxorder + 1)]
        for N, D in enumerate(bounds, start=1):
            if not isinstance(D, Real) or D <= 0:
                raise ConfigurationError(
                    "Maximal degree of order {} must be positive, "
                    "got {}".format(N, D))
        for N in range(1, len(bounds)):
            if bounds[N] > bounds[N - 1]:
                raise ConfigurationError(
                    "Maximal degrees must not increase with the correlation "
                    "order, got {}".format(bounds))

    def admissible(self, units: Sequence, z0: Optional[int] = None) -> bool:
        """
        Whether a tuple of units (one-particle functions or shapes) is
        admissible.  The empty tuple is always admissible.
        """
        N = len(units)
        if N == 0:
            return True
        if N > self.maxorder:
            return False
        return self.degree.degree(units) <= self.maxdeg(N, z0)

    def enumerate(self, units: Sequence, z0: Optional[int] = None,
                  select: Optional[Callable[[Tuple[int, ...]], bool]] = None
                  ) -> List[Tuple[int, ...]]:
        """
        All admissible sorted tuples of indices into ``units``.

        Tuples are grown order by order; every admissible tuple of order
        N is extended by indices not smaller than its last element, and
        the extension is kept if it is admissible.

        Parameters
        ----------
        units : sequence
            Units with attributes ``n``, ``l``, ``z``
        z0 : int, optional
            Center species index
        select : callable, optional
            Filter applied to the result only; tuples rejected by
            ``select`` are still extended.

        Returns
        -------
        list of tuple
            Sorted tuples ordered by correlation order, then
            lexicographically.
        """
        self.check(z0)
        deg1 = [self.degree.degree(units[i:i + 1]) for i in range(len(units))]
        bounds = {N: self.maxdeg(N, z0) for N in range(1, self.maxorder + 1)}

        level: Dict[Tuple[int, ...], float] = {
            (i,): deg1[i] for i in range(len(units)) if deg1[i] <= bounds[1]}
        tuples = list(level)
        for N in range(2, self.maxorder + 1):
            nxt = {}
            for t, d in level.items():
                for i in range(t[-1], len(units)):
                    dd = d + deg1[i]
                    if dd <= bounds[N]:
                        nxt[t + (i,)] = dd
            level = nxt
            tuples.extend(sorted(level))
            if not level:
                break
        tuples = sorted(tuples, key=lambda t: (len(t), t))
        if select is not None:
            tuples = [t for t in tuples if select(t)]
        return tuples
