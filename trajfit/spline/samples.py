from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import ConfigurationError
from ..core.utils import get_logger
from .blocks import node_times

_log = get_logger()


@dataclass
class TrajectorySample:
    """Position/velocity at one block node; ``missing`` marks unobserved nodes."""

    position: np.ndarray   # (N,)
    velocity: np.ndarray   # (N,)
    missing: bool = False

    def __post_init__(self) -> None:
        self.position = np.array(self.position, dtype=np.float64).reshape(-1)
        self.velocity = np.array(self.velocity, dtype=np.float64).reshape(-1)
        if self.position.shape != self.velocity.shape:
            raise ConfigurationError(
                f"position has {self.position.size} components but velocity has {self.velocity.size}"
            )
        self.missing = bool(self.missing)

    @property
    def dim(self) -> int:
        return int(self.position.size)

    @classmethod
    def absent(cls, dim: int) -> "TrajectorySample":
        return cls(np.zeros(dim), np.zeros(dim), missing=True)


def samples_from_mapping(
    mapping: Mapping[int, Tuple[Sequence[float], Sequence[float]]],
    num_blocks: int,
    dim: int = 3,
) -> List[TrajectorySample]:
    """Build the ``num_blocks + 1`` node samples from ``{index: (position, velocity)}``."""
    samples = [TrajectorySample.absent(dim) for _ in range(num_blocks + 1)]
    for key, (pos, vel) in mapping.items():
        idx = int(key)
        if idx < 0 or idx > num_blocks:
            raise ConfigurationError(f"Node index {idx} outside 0..{num_blocks}.")
        sample = TrajectorySample(pos, vel)
        if sample.dim != dim:
            raise ConfigurationError(f"Node {idx} has {sample.dim} components, expected {dim}.")
        samples[idx] = sample
    return samples


def samples_from_observations(
    times: Sequence[float],
    positions: Sequence[Sequence[float]],
    velocities: Optional[Sequence[Sequence[float]]] = None,
    *,
    block_duration: float,
    start_time: float,
    num_blocks: int,
    tolerance: float = 0.25,
) -> List[TrajectorySample]:
    """Resample timestamped records onto the uniform node grid.

    Each node takes the nearest record lying within ``tolerance * block_duration``
    of the node time, shifted to the node time along the record velocity.
    Nodes without such a record are flagged missing. When ``velocities`` is
    omitted it is estimated from the positions by finite differences.
    """
    t = np.asarray(times, dtype=np.float64).reshape(-1)
    xyz = np.asarray(positions, dtype=np.float64)
    if xyz.ndim != 2 or xyz.shape[0] != t.size:
        raise ConfigurationError("positions must be an (M, N) array matching times.")
    dim = xyz.shape[1]

    if velocities is None:
        vel = np.full_like(xyz, np.nan)
    else:
        vel = np.asarray(velocities, dtype=np.float64)
        if vel.shape != xyz.shape:
            raise ConfigurationError("velocities must have the same shape as positions.")

    keep = np.isfinite(t) & np.all(np.isfinite(xyz), axis=1)
    if velocities is not None:
        keep &= np.all(np.isfinite(vel), axis=1)
    if not np.all(keep):
        _log.warning("Dropping %d non-finite trajectory records.", int((~keep).sum()))
    t, xyz, vel = t[keep], xyz[keep], vel[keep]

    order = np.argsort(t, kind="stable")
    t, xyz, vel = t[order], xyz[order], vel[order]
    if velocities is None:
        vel = _estimate_velocities(t, xyz)

    nodes = node_times(num_blocks, block_duration, start_time)
    samples = [TrajectorySample.absent(dim) for _ in range(num_blocks + 1)]
    if t.size == 0:
        return samples

    right = np.clip(np.searchsorted(t, nodes), 0, t.size - 1)
    left = np.clip(right - 1, 0, t.size - 1)
    nearest = np.where(np.abs(t[left] - nodes) <= np.abs(t[right] - nodes), left, right)
    offset = nodes - t[nearest]
    max_offset = tolerance * block_duration
    for i, (j, dt) in enumerate(zip(nearest, offset)):
        if abs(dt) <= max_offset:
            samples[i] = TrajectorySample(xyz[j] + dt * vel[j], vel[j])
    return samples


def _estimate_velocities(t: np.ndarray, xyz: np.ndarray) -> np.ndarray:
    if t.size < 2:
        return np.zeros_like(xyz)
    return np.gradient(xyz, t, axis=0)
