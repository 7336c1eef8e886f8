from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


class GridConfig(BaseModel):
    block_duration: float = Field(gt=0.0)
    start_time: Optional[float] = None
    num_blocks: Optional[int] = None
    dimension: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def _validate_blocks(self) -> "GridConfig":
        if self.num_blocks is not None and self.num_blocks < 2:
            raise ValueError("num_blocks must be at least 2")
        return self


class ObservationConfig(BaseModel):
    position_sigma: float = Field(default=0.01, gt=0.0)
    velocity_sigma: float = Field(default=0.01, gt=0.0)
    match_tolerance: float = Field(default=0.25, ge=0.0, le=0.5)


class ConstraintConfig(BaseModel):
    policy: Literal["accel_only", "clamp_at_gaps", "both_at_gaps"] = "both_at_gaps"
    accel_jump_weight: float = Field(default=100.0, gt=0.0)
    clamp_weight: float = Field(default=100.0, gt=0.0)


class SolverConfig(BaseModel):
    loss: Literal["linear", "soft_l1", "huber", "cauchy", "arctan"] = "linear"
    f_scale: float = Field(default=1.0, gt=0.0)
    max_nfev: Optional[int] = None
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10
    dense_limit: int = 3000
    constraint_tol: float = Field(default=1e-10, gt=0.0)
    max_passes: int = Field(default=25, ge=1)
    linear_fill: bool = True


class FitConfig(BaseModel):
    grid: GridConfig
    observations: ObservationConfig = ObservationConfig()
    constraints: ConstraintConfig = ConstraintConfig()
    solver: SolverConfig = SolverConfig()
    require_convergence: bool = False


def load_config(path: str | Path) -> FitConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    return FitConfig.model_validate(data)
