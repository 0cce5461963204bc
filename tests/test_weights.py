import numpy as np
import pytest

from starima.data.weights import WeightSet
from starima.errors import DimensionMismatchError

from conftest import path_adjacency


def test_higher_order_contiguity_on_a_path():
    ws = WeightSet.from_adjacency(path_adjacency(4), max_order=3)
    assert ws.max_order == 3
    assert ws.n_spatial_lags == 4
    np.testing.assert_allclose(ws.matrix(0), np.eye(4))
    np.testing.assert_allclose(
        ws.matrix(1),
        [[0, 1, 0, 0], [0.5, 0, 0.5, 0], [0, 0.5, 0, 0.5], [0, 0, 1, 0]],
    )
    np.testing.assert_allclose(
        ws.matrix(2),
        [[0, 0, 1, 0], [0, 0, 0, 1], [1, 0, 0, 0], [0, 1, 0, 0]],
    )
    # only the end points are 3 steps apart; the middle rows stay empty
    np.testing.assert_allclose(ws.matrix(3)[0], [0, 0, 0, 1])
    np.testing.assert_allclose(ws.matrix(3)[1], [0, 0, 0, 0])


def test_raw_adjacency_kept_without_standardizing():
    ws = WeightSet.from_adjacency(path_adjacency(3), row_standardize=False)
    np.testing.assert_allclose(ws.matrix(1), path_adjacency(3))


def test_identity_set_has_only_order_zero():
    ws = WeightSet.identity(3, ids=["a", "b", "c"])
    assert ws.max_order == 0
    assert len(ws.matrices()) == 1
    ws.check(["a", "b", "c"])
    with pytest.raises(DimensionMismatchError):
        ws.check(["a", "c", "b"])
    with pytest.raises(IndexError):
        ws.matrix(1)


def test_shape_validation():
    with pytest.raises(DimensionMismatchError):
        WeightSet([np.ones((3, 3)), np.ones((4, 4))])
    with pytest.raises(DimensionMismatchError):
        WeightSet([np.ones((3, 3))], ids=["a", "b"])
    with pytest.raises(ValueError):
        WeightSet([-np.ones((2, 2))])
    with pytest.raises(DimensionMismatchError):
        WeightSet([np.ones((4, 4))]).check(list("abcde"))


def test_matrices_are_copied_and_read_only():
    m = np.ones((2, 2))
    ws = WeightSet([m])
    m[0, 0] = 5.0
    assert ws.matrix(1)[0, 0] == 1.0
    with pytest.raises(ValueError):
        ws.matrix(1)[0, 0] = 2.0


def test_to_libpysal_neighbours():
    ws = WeightSet.from_adjacency(path_adjacency(3), ids=["x", "y", "z"])
    w = ws.to_libpysal(1)
    assert w.n == 3
    assert sorted(w.neighbors["y"]) == ["x", "z"]
