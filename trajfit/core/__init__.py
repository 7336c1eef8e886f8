from .errors import (
    ConfigurationError,
    ConvergenceError,
    ConvergenceWarning,
    FitStateError,
    InsufficientDataError,
    QueryError,
    TrajectoryError,
)
from .utils import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "ConvergenceError",
    "ConvergenceWarning",
    "FitStateError",
    "InsufficientDataError",
    "QueryError",
    "TrajectoryError",
    "configure_logging",
    "get_logger",
]
