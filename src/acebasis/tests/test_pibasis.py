"""
Tests for the permutation invariant basis.

"""

import numpy as np
import pytest

from acebasis.degree import BasisSpec, SparsePSHDegree
from acebasis.exceptions import (
    ConfigurationError,
    DomainError,
    InternalConsistencyError,
)
from acebasis.oneparticlebasis import basic_1p_basis
from acebasis.orthpolys import transformed_jacobi
from acebasis.pibasis import PIBasis, pi_basis
from acebasis.species import SpeciesList
from acebasis.transforms import PolyTransform


@pytest.fixture
def basis1p():
    J = transformed_jacobi(4, PolyTransform(2, 1.5), 4.0, rin=0.5)
    return basic_1p_basis(J, SpeciesList(["Si", "O"]),
                          SparsePSHDegree(1.0, 1.5), 4.0)


@pytest.fixture
def spec():
    return BasisSpec(SparsePSHDegree(1.0, 1.5), 3, {1: 5.0, 2: 5.0, 3: 4.0})


@pytest.fixture
def environment():
    rng = np.random.default_rng(3)
    Rs = rng.normal(size=(6, 3))
    Rs *= (rng.uniform(1.0, 3.5, size=6)
           / np.linalg.norm(Rs, axis=1))[:, None]
    Zs = ["Si", "O", "O", "Si", "O", "Si"]
    return Rs, Zs


class TestPIBasis:

    def test_products(self, basis1p, spec, environment):
        Rs, Zs = environment
        basis = pi_basis(basis1p, spec)
        iZs = basis1p.species.indices(Zs)
        A = basis1p.evaluate(Rs, iZs).sum(axis=0)
        AA = basis.evaluate(Rs, Zs, "O")
        b = basis.block(1)
        expected = [np.prod(A[list(t)]) for t in basis.tuples[1]]
        np.testing.assert_allclose(AA[b], expected, rtol=1e-13)
        # entries of the other center species vanish
        np.testing.assert_array_equal(AA[basis.block(0)], 0.0)

    def test_blocks(self, basis1p, spec):
        basis = pi_basis(basis1p, spec)
        assert len(basis.tuples) == 2
        assert basis.block_sizes == [len(t) for t in basis.tuples]
        assert len(basis) == sum(basis.block_sizes)
        assert basis.block(1).start == basis.block_sizes[0]
        assert basis.maxorder() == 3

    def test_permutation_invariance(self, basis1p, spec, environment):
        Rs, Zs = environment
        basis = pi_basis(basis1p, spec)
        perm = np.array([3, 0, 5, 1, 4, 2])
        AA, dAA = basis.evaluate_d(Rs, Zs, "Si")
        AAp, dAAp = basis.evaluate_d(Rs[perm], [Zs[i] for i in perm], "Si")
        np.testing.assert_allclose(AAp, AA, rtol=1e-12, atol=1e-14)
        np.testing.assert_allclose(dAAp, dAA[perm], rtol=1e-12, atol=1e-14)

    def test_graph_matches_brute_force(self, basis1p, spec, environment):
        Rs, Zs = environment
        fast = pi_basis(basis1p, spec, constants=True)
        slow = pi_basis(basis1p, spec, constants=True, use_graph=False)
        for z0 in ["Si", "O"]:
            AA, dAA = fast.evaluate_d(Rs, Zs, z0)
            AA0, dAA0 = slow.evaluate_d(Rs, Zs, z0)
            np.testing.assert_allclose(AA, AA0, rtol=1e-12, atol=1e-14)
            np.testing.assert_allclose(dAA, dAA0, rtol=1e-12, atol=1e-13)
            np.testing.assert_allclose(slow.evaluate(Rs, Zs, z0), AA0)

    def test_gradient(self, basis1p, spec, environment):
        Rs, Zs = environment
        basis = pi_basis(basis1p, spec)
        _, dAA = basis.evaluate_d(Rs, Zs, "O")
        eps = 1e-6
        for j in [0, 2]:
            for d in range(3):
                Rp = Rs.copy()
                Rm = Rs.copy()
                Rp[j, d] += eps
                Rm[j, d] -= eps
                num = (basis.evaluate(Rp, Zs, "O")
                       - basis.evaluate(Rm, Zs, "O")) / (2 * eps)
                np.testing.assert_allclose(dAA[j, :, d], num, atol=1e-6)

    def test_constants(self, basis1p, spec, environment):
        Rs, Zs = environment
        basis = pi_basis(basis1p, spec, constants=True)
        for iz0, z0 in enumerate(["Si", "O"]):
            assert basis.tuples[iz0][0] == ()
            AA, dAA = basis.evaluate_d(Rs, Zs, z0)
            assert AA[basis.block(iz0).start] == 1.0
            np.testing.assert_array_equal(dAA[:, basis.block(iz0).start], 0.0)

    def test_no_neighbors(self, basis1p, spec):
        basis = pi_basis(basis1p, spec, constants=True)
        AA, dAA = basis.evaluate_d(np.zeros((0, 3)), [], "Si")
        assert dAA.shape == (0, len(basis), 3)
        assert AA[0] == 1.0
        np.testing.assert_array_equal(AA[1:], 0.0)

    def test_dataframe(self, basis1p, spec):
        basis = pi_basis(basis1p, spec)
        df = basis.to_dataframe()
        assert len(df) == len(basis)
        assert list(df.columns) == ["z0", "order", "n", "l", "m", "z"]
        assert set(df["z0"]) == {"Si", "O"}
        assert df["order"].max() == 3
        assert all(len(n) == N for n, N in zip(df["n"], df["order"]))

    def test_invalid_tuples(self, basis1p):
        with pytest.raises(InternalConsistencyError):
            PIBasis(basis1p, {0: [(0, len(basis1p))]})
        with pytest.raises(ConfigurationError):
            PIBasis(basis1p, {2: [(0,)]})

    def test_unknown_species(self, basis1p, spec, environment):
        Rs, Zs = environment
        basis = pi_basis(basis1p, spec)
        with pytest.raises(DomainError):
            basis.evaluate(Rs, Zs, "C")
