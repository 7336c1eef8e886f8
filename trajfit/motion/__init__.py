from .pose import Pose, rotation_from_rpy
from .trajectory import SplineTrajectory, Trajectory

__all__ = ["Pose", "SplineTrajectory", "Trajectory", "rotation_from_rpy"]
