import numpy as np
import pytest

from trajfit.core.errors import ConfigurationError
from trajfit.spline.constraints import (
    AccelJumpConstraint,
    ClampConstraint,
    ConstraintPolicy,
    undetermined_gaps,
    wire_constraints,
)
from trajfit.spline.cubic import endpoint_coefficients, endpoint_cubic


def _random_nodes(rng: np.random.Generator, dim: int = 3):
    return [rng.normal(size=dim) for _ in range(6)]


def test_accel_jump_matches_cubic_acceleration_jump() -> None:
    rng = np.random.default_rng(3)
    h = 0.5
    ra, va, rb, vb, rc, vc = _random_nodes(rng)
    _, _, acc_left = endpoint_cubic(ra, va, rb, vb, 0.5, order=2)
    _, _, acc_right = endpoint_cubic(rb, vb, rc, vc, -0.5, order=2)
    expected = (acc_right - acc_left) / h**2
    np.testing.assert_allclose(AccelJumpConstraint(h)(ra, va, vb, rc, vc), expected, atol=1e-12)


def test_clamp_matches_third_derivative_jump() -> None:
    rng = np.random.default_rng(4)
    h = 2.0
    ra, va, rb, vb, rc, vc = _random_nodes(rng)
    jerk_left = 6.0 * endpoint_coefficients(ra, va, rb, vb)[3] / h**3
    jerk_right = 6.0 * endpoint_coefficients(rb, vb, rc, vc)[3] / h**3
    residual = ClampConstraint(h)(ra, va, rb, rc, vc)
    np.testing.assert_allclose(6.0 * residual, jerk_right - jerk_left, atol=1e-12)


def test_single_cubic_has_zero_residuals() -> None:
    # x(s) = s^3 - s sampled at s = 0, 1, 2 with per-block velocities (h = 1)
    r = [0.0, 0.0, 6.0]
    v = [-1.0, 2.0, 11.0]
    assert AccelJumpConstraint(1.0)(r[0], v[0], v[1], r[2], v[2]) == pytest.approx(0.0)
    assert ClampConstraint(1.0)(r[0], v[0], r[1], r[2], v[2]) == pytest.approx(0.0)


def test_scales() -> None:
    assert AccelJumpConstraint(0.5).scale == pytest.approx(8.0)
    assert ClampConstraint(0.5).scale == pytest.approx(8.0)
    assert ClampConstraint(2.0).scale == pytest.approx(0.125)


@pytest.mark.parametrize("functor", [AccelJumpConstraint(0.7), ClampConstraint(0.7)])
def test_partials_match_finite_differences(functor) -> None:
    rng = np.random.default_rng(9)
    args = [rng.normal(size=3) for _ in range(5)]
    base = functor(*args)
    step = np.array([1.0, -2.0, 0.5])
    for k, coef in enumerate(functor.partials):
        moved = list(args)
        moved[k] = args[k] + step
        np.testing.assert_allclose(functor(*moved) - base, coef * step, atol=1e-9)


@pytest.mark.parametrize("cls", [AccelJumpConstraint, ClampConstraint])
@pytest.mark.parametrize("duration", [0.0, -1.0, float("nan")])
def test_rejects_bad_block_duration(cls, duration: float) -> None:
    with pytest.raises(ConfigurationError):
        cls(duration)


def test_wiring_policies() -> None:
    missing = np.array([False, False, True, False, False, False])

    accel, clamp = wire_constraints(missing, ConstraintPolicy.ACCEL_ONLY)
    np.testing.assert_array_equal(accel, [1, 2, 3, 4])
    assert clamp.size == 0

    accel, clamp = wire_constraints(missing, "clamp_at_gaps")
    np.testing.assert_array_equal(accel, [4])
    np.testing.assert_array_equal(clamp, [1, 2, 3])

    accel, clamp = wire_constraints(missing, ConstraintPolicy.BOTH_AT_GAPS)
    np.testing.assert_array_equal(accel, [1, 2, 3, 4])
    np.testing.assert_array_equal(clamp, [1, 2, 3])


def test_missing_end_node_clamps_its_neighbour() -> None:
    missing = np.array([True, False, False, False])
    _, clamp = wire_constraints(missing)
    np.testing.assert_array_equal(clamp, [1])


def test_wiring_needs_an_interior_node() -> None:
    with pytest.raises(ConfigurationError):
        wire_constraints(np.array([False, False]))


def _missing(num_nodes: int, *nodes: int) -> np.ndarray:
    flags = np.zeros(num_nodes, dtype=bool)
    flags[list(nodes)] = True
    return flags


@pytest.mark.parametrize("policy", ["accel_only", "clamp_at_gaps"])
@pytest.mark.parametrize("end", [0, 6])
def test_missing_end_node_is_undetermined_with_one_constraint(policy: str, end: int) -> None:
    with pytest.raises(ConfigurationError):
        wire_constraints(_missing(7, end), policy)
    accel, clamp = wire_constraints(_missing(7, end), "both_at_gaps")
    assert undetermined_gaps(_missing(7, end), accel, clamp) == []


def test_accel_only_bridges_at_most_two_missing_nodes() -> None:
    wire_constraints(_missing(8, 3, 4), "accel_only")
    with pytest.raises(ConfigurationError):
        wire_constraints(_missing(9, 3, 4, 5), "accel_only")
    accel, clamp = wire_constraints(_missing(9, 3, 4, 5), "both_at_gaps")
    assert undetermined_gaps(_missing(9, 3, 4, 5), accel, np.zeros(0, dtype=np.int64)) == [(3, 6)]


def test_long_gap_is_determined_with_both_constraints() -> None:
    missing = _missing(10, *range(2, 8))
    accel, clamp = wire_constraints(missing)
    assert undetermined_gaps(missing, accel, clamp) == []


def test_single_observed_node_cannot_determine_its_neighbours() -> None:
    missing = _missing(3, 0, 2)
    accel = np.array([1])
    assert undetermined_gaps(missing, accel, accel) == [(0, 3)]
    with pytest.raises(ConfigurationError):
        wire_constraints(missing)
