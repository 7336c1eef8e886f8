from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from ..config import FitConfig, load_config
from ..core.errors import ConvergenceError
from ..core.utils import get_logger
from ..runtime.builders import build_fit_options, build_spline_fit
from ..spline.fit import FitResult, SplineFit

_log = get_logger()


@dataclass(frozen=True)
class FitRunResult:
    """Summary of a trajectory fit driven by a configuration file."""

    fit: SplineFit
    result: FitResult
    config: FitConfig


def fit_from_config(
    config: Union[str, Path, FitConfig],
    times: Sequence[float],
    positions: Sequence[Sequence[float]],
    velocities: Optional[Sequence[Sequence[float]]] = None,
) -> FitRunResult:
    """Fit a trajectory to timestamped observations as described by a configuration.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~trajfit.config.schema.FitConfig`.
    times:
        Observation timestamps, one per row of ``positions``.
    positions:
        ``(M, N)`` observed positions.
    velocities:
        Optional ``(M, N)`` observed velocities. Estimated from the positions
        when omitted.

    Returns
    -------
    FitRunResult
        The solved fit (ready for queries), the solver summary, and the
        resolved configuration object used for the run.
    """

    cfg = load_config(config) if not isinstance(config, FitConfig) else config.model_copy(deep=True)

    fit = build_spline_fit(cfg, times, positions, velocities)
    result = fit.solve(build_fit_options(cfg))

    if cfg.require_convergence and not result.converged:
        raise ConvergenceError(f"Trajectory fit did not converge: {result.message}")
    _log.info("Fitted %d blocks from %s to %s", fit.num_blocks, fit.start_time, fit.end_time)
    return FitRunResult(fit=fit, result=result, config=cfg)
