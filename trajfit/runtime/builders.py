from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from ..config import FitConfig
from ..core.errors import ConfigurationError
from ..spline.fit import FitOptions, SplineFit
from ..spline.samples import samples_from_observations


def build_fit_options(cfg: FitConfig) -> FitOptions:
    return FitOptions(
        position_sigma=cfg.observations.position_sigma,
        velocity_sigma=cfg.observations.velocity_sigma,
        accel_jump_weight=cfg.constraints.accel_jump_weight,
        clamp_weight=cfg.constraints.clamp_weight,
        policy=cfg.constraints.policy,
        linear_fill=cfg.solver.linear_fill,
        loss=cfg.solver.loss,
        f_scale=cfg.solver.f_scale,
        max_nfev=cfg.solver.max_nfev,
        ftol=cfg.solver.ftol,
        xtol=cfg.solver.xtol,
        gtol=cfg.solver.gtol,
        dense_limit=cfg.solver.dense_limit,
        constraint_tol=cfg.solver.constraint_tol,
        max_passes=cfg.solver.max_passes,
    )


def resolve_grid(cfg: FitConfig, times: np.ndarray) -> tuple[float, int]:
    """Start time and block count, derived from the observation span where not configured."""
    grid = cfg.grid
    finite = times[np.isfinite(times)]
    if (grid.start_time is None or grid.num_blocks is None) and finite.size == 0:
        raise ConfigurationError("Cannot derive the block grid without finite observation times.")
    start = float(finite.min()) if grid.start_time is None else float(grid.start_time)
    if grid.num_blocks is not None:
        return start, int(grid.num_blocks)
    span = float(finite.max()) - start
    return start, max(2, int(math.ceil(span / grid.block_duration - 1e-9)))


def build_spline_fit(
    cfg: FitConfig,
    times: Sequence[float],
    positions: Sequence[Sequence[float]],
    velocities: Optional[Sequence[Sequence[float]]] = None,
) -> SplineFit:
    t = np.asarray(times, dtype=np.float64).reshape(-1)
    xyz = np.asarray(positions, dtype=np.float64)
    if xyz.ndim != 2 or xyz.shape[1] != cfg.grid.dimension:
        raise ConfigurationError(
            f"positions must be (M, {cfg.grid.dimension}), got shape {xyz.shape}."
        )
    start, num_blocks = resolve_grid(cfg, t)
    samples = samples_from_observations(
        t,
        xyz,
        velocities,
        block_duration=cfg.grid.block_duration,
        start_time=start,
        num_blocks=num_blocks,
        tolerance=cfg.observations.match_tolerance,
    )
    return SplineFit.from_samples(samples, block_duration=cfg.grid.block_duration, start_time=start)
