"""
Tests for the product evaluation graph.

"""

import numpy as np
import pytest

from acebasis.exceptions import InternalConsistencyError
from acebasis.graph import EvaluationGraph


@pytest.fixture
def tuples():
    return [(0,), (2,), (0, 1), (1, 0), (0, 1, 2), (1, 1, 2), (0, 1, 1, 2),
            (3, 3, 3), (), (2, 3, 0, 1)]


def products(A, tuples):
    return np.array([np.prod(A[list(t)]) for t in tuples])


class TestEvaluationGraph:

    def test_matches_direct_products(self, tuples):
        rng = np.random.default_rng(0)
        A = rng.normal(size=4)
        graph = EvaluationGraph(4, tuples)
        np.testing.assert_allclose(graph.evaluate(A), products(A, tuples),
                                   rtol=1e-14)

    def test_canonical_tuples(self, tuples):
        graph = EvaluationGraph(4, tuples)
        assert len(graph.tuples) == len(tuples)
        assert graph.tuples[2] == graph.tuples[3] == (0, 1)
        assert graph.outputs[2] == graph.outputs[3]
        assert graph.outputs[8] == graph.one

    def test_shared_nodes(self):
        """Each distinct product of order >= 2 is one node."""
        tuples = [(0, 1), (0, 1, 2), (0, 1, 2, 3), (0, 1, 3), (1, 3),
                  (1, 1, 3)]
        graph = EvaluationGraph(4, tuples)
        assert graph.nnodes == 4 + 1 + len(tuples)
        for (h, l, r) in graph.levels:
            assert np.all(l < h)
            assert np.all(r < 4)

    def test_intermediate_nodes(self):
        """Missing sub-products are inserted as auxiliary nodes."""
        graph = EvaluationGraph(3, [(0, 1, 2)])
        assert graph.nnodes == 3 + 1 + 2
        A = np.array([2.0, 3.0, 5.0])
        np.testing.assert_allclose(graph.evaluate(A), [30.0])

    def test_gradient(self, tuples):
        rng = np.random.default_rng(1)
        nJ = 3
        A = rng.normal(size=4)
        dA = rng.normal(size=(nJ, 4, 3))
        graph = EvaluationGraph(4, tuples)
        AA, dAA = graph.evaluate_d(A, dA)
        np.testing.assert_allclose(AA, products(A, tuples), rtol=1e-14)
        assert dAA.shape == (len(tuples), nJ, 3)
        # A depends linearly on a parameter s along dA
        eps = 1e-6
        for j in range(nJ):
            for d in range(3):
                Ap = A + eps * dA[j, :, d]
                Am = A - eps * dA[j, :, d]
                num = (products(Ap, tuples) - products(Am, tuples)) / (
                    2 * eps)
                # d AA / d s = sum_v dAA/dA_v dA_v/ds
                exact = np.array([
                    sum(np.prod(A[list(t[:k] + t[k + 1:])]) * dA[j, v, d]
                        for k, v in enumerate(t)) for t in tuples])
                np.testing.assert_allclose(dAA[:, j, d], exact, atol=1e-12)
                np.testing.assert_allclose(exact, num, atol=1e-6)

    def test_constant_has_zero_gradient(self):
        graph = EvaluationGraph(2, [(), (0, 1)])
        AA, dAA = graph.evaluate_d(np.array([2.0, 3.0]), np.ones((4, 2, 3)))
        np.testing.assert_allclose(AA, [1.0, 6.0])
        np.testing.assert_allclose(dAA[0], 0.0)
        np.testing.assert_allclose(dAA[1], 5.0)

    def test_workspace_reuse(self, tuples):
        rng = np.random.default_rng(2)
        graph = EvaluationGraph(4, tuples)
        ws = graph.workspace()
        for nJ in [5, 2, 7, 0]:
            A = rng.normal(size=4)
            dA = rng.normal(size=(nJ, 4, 3))
            AA, dAA = graph.evaluate_d(A, dA, ws)
            AA0, dAA0 = graph.evaluate_d(A, dA)
            np.testing.assert_array_equal(AA, AA0)
            np.testing.assert_array_equal(dAA, dAA0)
        assert ws.dAA.shape[1] == 7

    def test_results_do_not_alias_workspace(self):
        graph = EvaluationGraph(2, [(0, 1)])
        ws = graph.workspace()
        AA1 = graph.evaluate(np.array([1.0, 2.0]), ws)
        graph.evaluate(np.array([3.0, 4.0]), ws)
        np.testing.assert_allclose(AA1, [2.0])

    def test_out_of_range(self):
        with pytest.raises(InternalConsistencyError):
            EvaluationGraph(3, [(0, 3)])
        with pytest.raises(InternalConsistencyError):
            EvaluationGraph(3, [(-1,)])

    def test_empty(self):
        graph = EvaluationGraph(3, [])
        assert graph.evaluate(np.ones(3)).shape == (0,)
        AA, dAA = graph.evaluate_d(np.ones(3), np.ones((2, 3, 3)))
        assert AA.shape == (0,)
        assert dAA.shape == (0, 2, 3)
