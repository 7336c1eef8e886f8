import numpy as np

from trajfit.spline.fill import fill_missing, fill_summary


def _poly(s: np.ndarray) -> np.ndarray:
    s = np.asarray(s, dtype=float)
    return np.stack([s**3 - 2.0 * s, 0.5 * s**2 + 1.0, -s], axis=-1)


def _poly_d1(s: np.ndarray) -> np.ndarray:
    s = np.asarray(s, dtype=float)
    return np.stack([3.0 * s**2 - 2.0, s, -np.ones_like(s)], axis=-1)


def test_single_interior_gap_is_interpolated() -> None:
    r = np.array([[0.0, 0.0, 0.0], [99.0, 99.0, 99.0], [2.0, 4.0, -2.0]])
    v = np.zeros((3, 3))
    missing = np.array([False, True, False])

    assert fill_missing(r, v, missing, block_duration=0.5)

    np.testing.assert_allclose(r[1], [1.0, 2.0, -1.0])
    assert np.all(r[1] >= np.minimum(r[0], r[2]))
    assert np.all(r[1] <= np.maximum(r[0], r[2]))
    np.testing.assert_allclose(v[1], [2.0, 4.0, -2.0])
    np.testing.assert_array_equal(missing, [False, True, False])


def test_leading_gap_extrapolates_from_first_two_known_nodes() -> None:
    r = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 5.0], [2.0, 0.5, 5.0], [7.0, 7.0, 7.0]])
    v = np.zeros((4, 3))
    missing = np.array([True, False, False, False])

    assert fill_missing(r, v, missing, block_duration=1.0)

    np.testing.assert_allclose(r[0], [0.0, -0.5, 5.0])
    np.testing.assert_allclose(v[0], [1.0, 0.5, 0.0])
    assert missing[0]


def test_trailing_gap_extrapolates_from_last_two_known_nodes() -> None:
    r = np.array([[0.0, 0.0], [1.0, 2.0], [0.0, 0.0], [0.0, 0.0]])
    v = np.zeros((4, 2))
    missing = np.array([False, False, True, True])

    assert fill_missing(r, v, missing, block_duration=2.0)

    np.testing.assert_allclose(r[2], [2.0, 4.0])
    np.testing.assert_allclose(r[3], [3.0, 6.0])
    np.testing.assert_allclose(v[3], [0.5, 1.0])


def test_cubic_fill_reproduces_cubic_motion() -> None:
    h = 0.5
    s = np.arange(6) * h
    r = _poly(s)
    v = _poly_d1(s)
    truth_r, truth_v = r.copy(), v.copy()
    missing = np.array([True, False, True, False, False, True])
    r[missing] = 0.0
    v[missing] = 0.0

    assert fill_missing(r, v, missing, block_duration=h, linear_fit=False)

    np.testing.assert_allclose(r, truth_r, atol=1e-12)
    np.testing.assert_allclose(v, truth_v, atol=1e-12)


def test_single_known_node_uses_its_velocity() -> None:
    r = np.zeros((4, 3))
    v = np.zeros((4, 3))
    r[1] = [10.0, 0.0, 1.0]
    v[1] = [2.0, -1.0, 0.0]
    missing = np.array([True, False, True, True])

    assert fill_missing(r, v, missing, block_duration=0.5)

    np.testing.assert_allclose(r[0], [9.0, 0.5, 1.0])
    np.testing.assert_allclose(r[3], [12.0, -1.0, 1.0])
    np.testing.assert_allclose(v, np.tile(v[1], (4, 1)))


def test_all_missing_is_reported_and_leaves_data_untouched() -> None:
    r = np.full((3, 3), 4.0)
    v = np.full((3, 3), -1.0)
    missing = np.ones(3, dtype=bool)

    assert not fill_missing(r, v, missing, block_duration=1.0)

    np.testing.assert_array_equal(r, 4.0)
    np.testing.assert_array_equal(v, -1.0)


def test_fully_observed_is_a_no_op() -> None:
    r = np.arange(9, dtype=float).reshape(3, 3)
    v = np.ones((3, 3))
    before = r.copy()
    assert fill_missing(r, v, np.zeros(3, dtype=bool), block_duration=1.0)
    np.testing.assert_array_equal(r, before)


def test_fill_summary_lists_gap_runs() -> None:
    summary = fill_summary(np.array([True, False, True, True, False, True]))
    assert summary == {"nodes": 6, "missing": 4, "gaps": [(0, 1), (2, 4), (5, 6)]}
