from __future__ import annotations


class TrajectoryError(Exception):
    """Base class for trajectory fitting failures."""


class ConfigurationError(TrajectoryError, ValueError):
    """Invalid block grid, dimension or sample layout."""


class InsufficientDataError(TrajectoryError):
    """No observed node is available to anchor the fit."""


class FitStateError(TrajectoryError, RuntimeError):
    """Operation not allowed in the current fit state."""


class QueryError(TrajectoryError, ValueError):
    """Query time is not a finite number."""


class ConvergenceError(TrajectoryError):
    """Raised when a converged fit was required but the solver stopped early."""


class ConvergenceWarning(UserWarning):
    """The solver terminated before reaching its tolerance; the fit is approximate."""
