import numpy as np
import pytest

from trajfit.core.errors import ConfigurationError
from trajfit.motion.pose import Pose, rotation_from_rpy
from trajfit.motion.trajectory import SplineTrajectory
from trajfit.spline.fit import SplineFit


def _straight_north_fit(speed: float = 2.0) -> SplineFit:
    fit = SplineFit(4, block_duration=1.0, start_time=0.0)
    for i, t in enumerate(fit.node_times):
        fit.set_sample(i, [0.0, speed * t, 5.0], [0.0, speed, 0.0])
    fit.solve()
    return fit


def test_pose_from_xyz_rpy_yaw() -> None:
    pose = Pose.from_xyz_rpy((1.0, 2.0, 3.0), (0.0, 0.0, 90.0))
    np.testing.assert_allclose(pose.apply(np.array([[1.0, 0.0, 0.0]])), [[1.0, 3.0, 3.0]], atol=1e-12)


def test_batched_rotation_matches_single() -> None:
    rpy = np.deg2rad(np.array([[10.0, -20.0, 30.0], [0.0, 45.0, -90.0]]))
    batched = rotation_from_rpy(rpy)
    assert batched.shape == (2, 3, 3)
    for k in range(2):
        np.testing.assert_allclose(batched[k], rotation_from_rpy(rpy[k]))
        np.testing.assert_allclose(batched[k] @ batched[k].T, np.eye(3), atol=1e-12)


def test_spline_trajectory_sample_heading() -> None:
    traj = SplineTrajectory(_straight_north_fit())
    pose = traj.sample(1.5)
    np.testing.assert_allclose(pose.t, [0.0, 3.0, 5.0], atol=1e-9)
    np.testing.assert_allclose(pose.R @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-9)


def test_spline_trajectory_timeline_covers_nodes() -> None:
    timeline = list(SplineTrajectory(_straight_north_fit()).timeline())
    assert [t for t, _ in timeline] == [0.0, 1.0, 2.0, 3.0, 4.0]
    np.testing.assert_allclose(timeline[-1][1].t, [0.0, 8.0, 5.0], atol=1e-9)


def test_georeference_uses_pose_per_point() -> None:
    traj = SplineTrajectory(_straight_north_fit())
    body = np.array([[1.0, 0.0, 0.0], [0.0, 0.0, -5.0], [1.0, 0.0, 0.0]])
    times = np.array([0.0, 1.0, 3.5])
    world = traj.georeference(body, times)
    expected = np.array([[0.0, 1.0, 5.0], [0.0, 2.0, 0.0], [0.0, 8.0, 5.0]])
    np.testing.assert_allclose(world, expected, atol=1e-9)


def test_georeference_with_lever_arm() -> None:
    traj = SplineTrajectory(_straight_north_fit())
    world = traj.georeference(np.zeros((1, 3)), [2.0], lever_arm=(0.0, 0.0, 1.0))
    np.testing.assert_allclose(world, [[0.0, 4.0, 6.0]], atol=1e-9)


def test_spline_trajectory_requires_solved_3d_fit() -> None:
    unsolved = SplineFit(3)
    with pytest.raises(ConfigurationError):
        SplineTrajectory(unsolved)

    planar = SplineFit(2, dim=2)
    for i in range(3):
        planar.set_sample(i, [float(i), 0.0], [1.0, 0.0])
    planar.solve()
    with pytest.raises(ConfigurationError):
        SplineTrajectory(planar)
