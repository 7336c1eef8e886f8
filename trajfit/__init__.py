"""trajfit – trajectory spline fitting for point-cloud processing.

This package contains the trajectory fitting engine and its surroundings:
- Endpoint cubic evaluator and block index mapping (spline.cubic, spline.blocks)
- Acceleration-jump and clamp continuity residuals (spline.constraints)
- Missing-node filling (spline.fill)
- SplineFit driver, least-squares refinement and queries (spline.fit)
- Pose/georeferencing adapters for downstream consumers (motion)
- YAML configuration and a config-driven SDK entry point (config, sdk)
"""

from .core.errors import (
    ConfigurationError, ConvergenceError, ConvergenceWarning, FitStateError,
    InsufficientDataError, QueryError, TrajectoryError
)
from .spline import (
    AccelJumpConstraint, ClampConstraint, ConstraintPolicy,
    FitOptions, FitResult, FitState, SplineFit, TrajectorySample,
    block_index, endpoint_cubic, fill_missing,
    samples_from_mapping, samples_from_observations,
)
from .motion.pose import Pose
from .motion.trajectory import SplineTrajectory, Trajectory
from .config import FitConfig, load_config
from .sdk import FitRunResult, fit_from_config
