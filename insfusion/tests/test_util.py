import numpy as np
import pandas as pd
from numpy.testing import assert_allclose, assert_almost_equal
from insfusion import util


def test_mm_prod():
    np.random.seed(0)
    a = np.random.randn(3, 4)
    b = np.random.randn(4, 3)
    assert_allclose(util.mm_prod(a, b), a @ b)
    assert_allclose(util.mm_prod(a, b, at=True, bt=True), a.T @ b.T)

    a = np.random.randn(10, 3, 4)
    at = a.transpose((0, 2, 1))
    assert_allclose(util.mm_prod(a, b), a @ b)
    assert_allclose(util.mm_prod(a, b, at=True, bt=True), at @ b.T)

    b = np.random.randn(10, 4, 3)
    bt = b.transpose((0, 2, 1))
    assert_allclose(util.mm_prod(a, b), a @ b)
    assert_allclose(util.mm_prod(a, b, at=True, bt=True), at @ bt)


def test_mm_prod_symmetric():
    np.random.seed(0)
    a = np.random.randn(3, 3)
    b = np.random.randn(3, 3)
    assert_allclose(util.mm_prod_symmetric(a, b), a @ b @ a.T)

    a = np.random.randn(10, 3, 3)
    at = a.transpose((0, 2, 1))
    b = np.random.randn(3, 3)
    assert_allclose(util.mm_prod_symmetric(a, b), a @ b @ at)

    b = np.random.randn(10, 3, 3)
    assert_allclose(util.mm_prod_symmetric(a, b), a @ b @ at)


def test_mv_prod():
    np.random.seed(0)
    a = np.random.randn(3, 3)
    b = np.random.randn(3)
    assert_allclose(util.mv_prod(a, b), a @ b)
    assert_allclose(util.mv_prod(a, b, at=True), a.T @ b)

    a = np.random.randn(10, 3, 3)
    b = np.random.randn(3)
    at = a.transpose((0, 2, 1))
    assert_allclose(util.mv_prod(a, b), a @ b)
    assert_allclose(util.mv_prod(a, b, at=True), at @ b)

    b = np.random.randn(10, 3)
    assert_allclose(util.mv_prod(a, b), (a @ b[:, :, None]).reshape(10, 3))
    assert_allclose(util.mv_prod(a, b, at=True),
                    (at @ b[:, :, None]).reshape(10, 3))


def test_skew_matrix():
    vec = np.array([
        [0, 1, 2],
        [-2, 3, 5]
    ])
    check = np.array([
        [-2, 3, 6],
        [0, -2, 3]
    ])
    assert_allclose(util.skew_matrix(vec[0]) @ check[0],
                    np.cross(vec[0], check[0]))
    assert_allclose(util.skew_matrix(vec[1]) @ check[1],
                    np.cross(vec[1], check[1]))
    assert_allclose(util.mv_prod(util.skew_matrix(vec), check),
                    np.cross(vec, check))


def test_symmetrize():
    np.random.seed(1)
    P = np.random.randn(15, 15)
    result = util.symmetrize(P)
    assert_allclose(result, result.T, rtol=0, atol=0)
    assert_allclose(np.diag(result), np.diag(P))

    P = np.random.randn(5, 4, 4)
    result = util.symmetrize(P)
    assert_allclose(result, result.transpose((0, 2, 1)), rtol=0, atol=0)


def test_compute_rms():
    a = np.zeros(10)
    assert_allclose(util.compute_rms(a), 0)
    a[::2] = 2
    assert_allclose(util.compute_rms(a), 2**0.5)
    a[1::2] = -2
    assert_allclose(util.compute_rms(a), 2)


def test_to_pi_range():
    assert util.to_pi_range(1.0) == 1.0
    assert_almost_equal(util.to_pi_range(2 * np.pi + 0.5), 0.5, 13)
    assert_almost_equal(util.to_pi_range(-3.5), 2 * np.pi - 3.5, 13)
    data = [-2 * np.pi - 0.7, 0.0, 0.25, 4 * np.pi + 0.1]
    correct_result = np.array([-0.7, 0.0, 0.25, 0.1])
    assert_allclose(util.to_pi_range(data), correct_result, rtol=1e-12)

    result_series = util.to_pi_range(pd.Series(data))
    assert isinstance(result_series, pd.Series)
    assert_allclose(result_series, correct_result, rtol=1e-12)

    result_data_frame = util.to_pi_range(pd.DataFrame(data))
    assert isinstance(result_data_frame, pd.DataFrame)
    assert_allclose(result_data_frame, correct_result.reshape(-1, 1), rtol=1e-12)


def test_bunch():
    dict = {'a': 1, 'b': None, 'c': 3 * np.ones(3)}
    bunch = util.Bunch(dict)
    assert(bunch.a == 1)
    assert(bunch.b is None)
    assert((bunch.c == 3).all())

    assert(dir(bunch) == ['a', 'b', 'c'])
    assert(isinstance(repr(bunch), str))
