"""
Tests for the generalized Clebsch-Gordan coefficients.

"""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from acebasis.coupling import CouplingCoefficients
from acebasis.exceptions import InternalConsistencyError
from acebasis.sphericalharmonics import RSHBasis, SHBasis, lm_index


def coupled_value(table, ll, Y):
    """sum_m C(m) prod_i Y_i[l_i, m_i] for harmonics Y of N vectors."""
    val = 0.0
    for mm, c in table.items():
        p = c
        for i, (l, m) in enumerate(zip(ll, mm)):
            p = p * Y[i, lm_index(l, m)]
        val = val + p
    return val


@pytest.fixture
def cc():
    return CouplingCoefficients()


@pytest.fixture
def vectors():
    rng = np.random.default_rng(42)
    return rng.normal(size=(4, 3))


class TestCouplingCoefficients:

    def test_clebsch_gordan(self, cc):
        assert cc.cg(1, 0, 1, 0, 0, 0) == pytest.approx(-1 / np.sqrt(3))
        assert cc.cg(1, 1, 1, -1, 2, 0) == pytest.approx(1 / np.sqrt(6))
        assert cc.cg(1, 1, 1, 1, 0, 0) == 0.0
        assert cc.cg(1, 0, 1, 0, 3, 0) == 0.0

    def test_pair(self, cc):
        tables = cc.coefficients((1, 1))
        assert len(tables) == 1
        s = 1 / np.sqrt(3)
        assert tables[0] == pytest.approx({(-1, 1): s, (0, 0): -s,
                                           (1, -1): s})

    def test_trivial(self, cc):
        assert cc.coefficients(()) == [{(): 1.0}]
        assert cc.coefficients((0,)) == [{(0,): 1.0}]
        assert cc.coefficients((1,)) == []
        assert cc.coefficients((1, 2)) == []

    @pytest.mark.parametrize("ll,npaths", [
        ((1, 1, 2), 1),
        ((2, 2, 2), 1),
        ((1, 1, 1), 1),
        ((1, 1, 1, 1), 3),
        ((2, 1, 1, 2), 3),
        ((0, 2, 2), 1),
    ])
    def test_number_of_paths(self, cc, ll, npaths):
        assert len(cc.coefficients(ll)) == npaths
        assert len(cc.paths(ll)) == npaths

    @pytest.mark.parametrize("ll", [(1, 1, 2), (2, 3, 1), (1, 1, 1, 1),
                                    (2, 2, 2, 2)])
    def test_selection_rule(self, cc, ll):
        for table in cc.coefficients(ll):
            assert len(table) > 0
            for mm in table:
                assert sum(mm) == 0
                assert all(abs(m) <= l for m, l in zip(mm, ll))

    @pytest.mark.parametrize("ll", [(1, 1), (1, 1, 2), (2, 2, 2),
                                    (1, 1, 1, 1), (1, 2, 3, 2)])
    def test_complex_invariance(self, cc, vectors, ll):
        sh = SHBasis(max(ll))
        N = len(ll)
        R = vectors[:N]
        Q = Rotation.from_rotvec([0.3, -1.2, 0.7]).as_matrix()
        Y = sh.evaluate(R)
        Yrot = sh.evaluate(R @ Q.T)
        for table in cc.coefficients(ll):
            f = coupled_value(table, ll, Y)
            assert abs(f) > 1e-6
            assert coupled_value(table, ll, Yrot) == pytest.approx(
                f, abs=1e-12)

    @pytest.mark.parametrize("ll", [(1, 1), (0, 2, 2), (1, 1, 2),
                                    (2, 2, 2), (1, 1, 1, 1), (2, 1, 3, 2)])
    def test_real_invariance(self, cc, vectors, ll):
        rsh = RSHBasis(max(ll))
        N = len(ll)
        R = vectors[:N]
        Q = Rotation.from_euler("zyz", [0.4, 2.1, -0.9]).as_matrix()
        Y = rsh.evaluate(R)
        Yrot = rsh.evaluate(R @ Q.T)
        tables = cc.real_coefficients(ll)
        assert len(tables) == len(cc.coefficients(ll))
        for table in tables:
            f = coupled_value(table, ll, Y)
            assert abs(f) > 1e-6
            assert coupled_value(table, ll, Yrot) == pytest.approx(
                f, abs=1e-12)

    def test_real_matches_complex(self, cc, vectors):
        ll = (1, 2, 1)
        Yc = SHBasis(2).evaluate(vectors[:3])
        Yr = RSHBasis(2).evaluate(vectors[:3])
        for table_c, table_r in zip(cc.coefficients(ll),
                                    cc.real_coefficients(ll)):
            fc = coupled_value(table_c, ll, Yc)
            fr = coupled_value(table_r, ll, Yr)
            assert fc.imag == pytest.approx(0.0, abs=1e-12)
            assert fr == pytest.approx(fc.real, abs=1e-12)

    def test_odd_sum_has_no_real_invariant(self, cc):
        assert len(cc.coefficients((1, 1, 1))) == 1
        assert cc.real_coefficients((1, 1, 1)) == []

    def test_cache(self, cc):
        t1 = cc.coefficients((1, 1, 2))
        n = len(cc)
        t2 = cc.coefficients((1, 1, 2))
        assert len(cc) == n
        assert t1[0] is t2[0]
        assert cc.real_coefficients((2, 2)) is cc.real_coefficients((2, 2))

    def test_independent_instances(self):
        a = CouplingCoefficients()
        b = CouplingCoefficients()
        a.coefficients((1, 1))
        assert len(a) == 1
        assert len(b) == 0

    def test_reentrant_request(self, cc):
        cc._in_progress.add(((1, 1), 0))
        with pytest.raises(InternalConsistencyError):
            cc.coefficients((1, 1))
