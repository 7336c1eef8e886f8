"""Piecewise-cubic trajectory fitting on a uniform block grid."""

from .blocks import block_index, node_times
from .constraints import (
    AccelJumpConstraint,
    ClampConstraint,
    ConstraintPolicy,
    undetermined_gaps,
    wire_constraints,
)
from .cubic import endpoint_cubic
from .fill import fill_missing
from .fit import FitOptions, FitResult, FitState, SplineFit
from .problem import FitProblem
from .samples import TrajectorySample, samples_from_mapping, samples_from_observations

__all__ = [
    "AccelJumpConstraint",
    "ClampConstraint",
    "ConstraintPolicy",
    "FitOptions",
    "FitProblem",
    "FitResult",
    "FitState",
    "SplineFit",
    "TrajectorySample",
    "block_index",
    "endpoint_cubic",
    "fill_missing",
    "node_times",
    "samples_from_mapping",
    "samples_from_observations",
    "undetermined_gaps",
    "wire_constraints",
]
