from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np

from ..core.errors import ConfigurationError
from ..spline.fit import FitState, SplineFit
from .pose import Pose, rotation_from_rpy


class Trajectory:
    """Base interface for platform motion."""

    def sample(self, t: float) -> Pose:
        raise NotImplementedError

    def timeline(self) -> Iterable[tuple[float, Pose]]:
        raise NotImplementedError


class SplineTrajectory(Trajectory):
    """Platform poses read from a solved 3-D :class:`SplineFit`.

    Position comes from the spline. Orientation is yaw-only, aligned with the
    horizontal velocity, and 0 while the horizontal speed is below
    ``min_speed_mps``.
    """

    def __init__(self, fit: SplineFit, heading_from_velocity: bool = True, min_speed_mps: float = 1e-6) -> None:
        if fit.state is not FitState.SOLVED:
            raise ConfigurationError("SplineTrajectory requires a solved fit.")
        if fit.dim != 3:
            raise ConfigurationError(f"SplineTrajectory requires a 3-D fit, got {fit.dim}-D.")
        self.fit = fit
        self.heading_from_velocity = bool(heading_from_velocity)
        self.min_speed_mps = float(min_speed_mps)

    def _yaw(self, velocity: np.ndarray) -> np.ndarray:
        vel = np.asarray(velocity, dtype=np.float64)
        if not self.heading_from_velocity:
            return np.zeros(vel.shape[:-1])
        speed = np.hypot(vel[..., 0], vel[..., 1])
        yaw = np.arctan2(vel[..., 1], vel[..., 0])
        return np.where(speed > self.min_speed_mps, yaw, 0.0)

    def sample(self, t: float) -> Pose:
        pos, vel = self.fit.position_velocity(float(t))
        yaw = float(self._yaw(vel))
        return Pose.from_xyz_rpy(tuple(pos), (0.0, 0.0, np.degrees(yaw)))

    def timeline(self) -> Iterable[tuple[float, Pose]]:
        for t in self.fit.node_times:
            yield (float(t), self.sample(t))

    def georeference(
        self,
        body_xyz: np.ndarray,
        times: Sequence[float],
        lever_arm: Optional[Sequence[float]] = None,
    ) -> np.ndarray:
        """Map body-frame points to world coordinates using the pose at each point's time."""
        pts = np.asarray(body_xyz, dtype=np.float64)
        t = np.asarray(times, dtype=np.float64).reshape(-1)
        if pts.ndim != 2 or pts.shape[1] != 3 or pts.shape[0] != t.size:
            raise ConfigurationError("body_xyz must be (M, 3) with one timestamp per point.")
        if lever_arm is not None:
            pts = pts + np.asarray(lever_arm, dtype=np.float64)
        pos, vel = self.fit.position_velocity(t)
        rpy = np.zeros((t.size, 3))
        rpy[:, 2] = self._yaw(vel)
        R = rotation_from_rpy(rpy)
        return np.einsum("mij,mj->mi", R, pts) + pos
