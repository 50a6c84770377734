"""
Tests for degree functions and the enumeration of correlation tuples.

"""

import itertools

import pytest

from acebasis.degree import BasisSpec, SparsePSHDegree, SparsePSHDegreeM
from acebasis.exceptions import ConfigurationError
from acebasis.oneparticlebasis import NLZ


@pytest.fixture
def units():
    return [NLZ(n, l, z) for z in range(2) for n in range(1, 6)
            for l in range(4)]


def brute_force(spec, units, z0=None):
    out = set()
    for N in range(1, spec.maxorder + 1):
        for t in itertools.combinations_with_replacement(
                range(len(units)), N):
            if spec.admissible([units[i] for i in t], z0):
                out.add(t)
    return out


class TestDegree:

    def test_sparse_psh_degree(self):
        D = SparsePSHDegree(wn=1.0, wl=1.5)
        assert D.degree1(2, 1) == pytest.approx(3.5)
        assert D.degree([NLZ(1, 0, 0), NLZ(2, 2, 0)]) == pytest.approx(6.0)

    def test_invalid_weights(self):
        with pytest.raises(ConfigurationError):
            SparsePSHDegree(wn=0.0)
        with pytest.raises(ConfigurationError):
            SparsePSHDegree(wl=-1.0)
        with pytest.raises(ConfigurationError):
            SparsePSHDegreeM({"default": 1.0}, {"default": 0.0}, {1: 5})

    def test_species_weights(self):
        D = SparsePSHDegreeM({"default": 1.0, 1: 2.0}, {"default": 1.5},
                             {1: 10, 2: 8, (2, 1): 6})
        assert D.degree1(2, 1, 0) == pytest.approx(3.5)
        assert D.degree1(2, 1, 1) == pytest.approx(5.5)
        assert D.maxdeg(2, 0) == 8
        assert D.maxdeg(2, 1) == 6
        with pytest.raises(ConfigurationError):
            D.maxdeg(3, 0)

    def test_missing_species_weight(self):
        D = SparsePSHDegreeM({0: 1.0}, {0: 1.0}, {1: 5})
        with pytest.raises(ConfigurationError):
            D.degree1(1, 0, 1)


class TestBasisSpec:

    def test_invalid_maxdeg(self):
        D = SparsePSHDegree()
        with pytest.raises(ConfigurationError):
            BasisSpec(D, 2, 0.0)
        with pytest.raises(ConfigurationError):
            BasisSpec(D, 2, -3)
        with pytest.raises(ConfigurationError):
            BasisSpec(D, 3, {1: 10, 2: 12, 3: 8})
        with pytest.raises(ConfigurationError):
            BasisSpec(D, 3, {1: 10, 2: 8})
        with pytest.raises(ConfigurationError):
            BasisSpec(D, 0, 10)
        with pytest.raises(ConfigurationError):
            BasisSpec(D, 2)

    def test_invalid_species_maxdeg(self, units):
        D = SparsePSHDegreeM({"default": 1.0}, {"default": 1.5},
                             {1: 8, 2: 6, (2, 1): 9})
        spec = BasisSpec(D, 2)
        spec.enumerate(units, 0)
        with pytest.raises(ConfigurationError):
            spec.enumerate(units, 1)

    def test_admissible(self):
        spec = BasisSpec(SparsePSHDegree(), 2, {1: 6, 2: 5})
        assert spec.admissible([])
        assert spec.admissible([NLZ(3, 2, 0)])
        assert not spec.admissible([NLZ(3, 3, 0)])
        assert spec.admissible([NLZ(1, 1, 0), NLZ(2, 0, 0)])
        assert not spec.admissible([NLZ(3, 2, 0), NLZ(1, 0, 0)])
        assert not spec.admissible([NLZ(1, 0, 0)] * 3)

    @pytest.mark.parametrize("maxorder,maxdeg", [
        (1, 6), (2, 6), (3, 7), (4, {1: 8, 2: 7, 3: 6, 4: 5})])
    def test_enumeration_matches_brute_force(self, units, maxorder, maxdeg):
        spec = BasisSpec(SparsePSHDegree(), maxorder, maxdeg)
        tuples = spec.enumerate(units)
        assert len(tuples) == len(set(tuples))
        assert set(tuples) == brute_force(spec, units)

    def test_sorted_and_ordered(self, units):
        spec = BasisSpec(SparsePSHDegree(), 3, 7)
        tuples = spec.enumerate(units)
        assert all(list(t) == sorted(t) for t in tuples)
        assert tuples == sorted(tuples, key=lambda t: (len(t), t))

    def test_downward_closed(self, units):
        spec = BasisSpec(SparsePSHDegree(), 4, {1: 9, 2: 8, 3: 7, 4: 6})
        tuples = set(spec.enumerate(units))
        for t in tuples:
            if len(t) == 1:
                continue
            for i in range(len(t)):
                assert t[:i] + t[i + 1:] in tuples

    def test_nesting(self, units):
        small = BasisSpec(SparsePSHDegree(), 2, 7).enumerate(units)
        large = BasisSpec(SparsePSHDegree(), 3, 7).enumerate(units)
        assert set(small) == {t for t in large if len(t) <= 2}
        assert large[:len(small)] == small

    def test_select(self, units):
        spec = BasisSpec(SparsePSHDegree(), 3, 7)

        def even(t):
            return sum(units[i].l for i in t) % 2 == 0

        selected = spec.enumerate(units, select=even)
        assert selected == [t for t in spec.enumerate(units) if even(t)]
        # tuples with odd-l prefixes are still reached
        assert any(len(t) == 3 and units[t[0]].l % 2 == 1
                   for t in selected)

    def test_species_dependent_maxdeg(self, units):
        D = SparsePSHDegreeM({"default": 1.0}, {"default": 1.5},
                             {1: 8, 2: 6, (1, 1): 5, (2, 1): 4})
        spec = BasisSpec(D, 2)
        t0 = spec.enumerate(units, 0)
        t1 = spec.enumerate(units, 1)
        assert set(t1) < set(t0)
        assert set(t1) == brute_force(spec, units, 1)
