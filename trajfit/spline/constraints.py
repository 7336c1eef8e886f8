"""Continuity residuals between neighbouring spline blocks.

Both functors look at three consecutive nodes ``a``, ``b``, ``c`` and return
one residual per spatial axis. Velocities are per-block (physical velocity
times the block duration), matching :mod:`trajfit.spline.cubic`. The
residuals are linear in their arguments; ``partials`` lists the coefficient of
each argument so callers can assemble the Jacobian without differentiating.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Tuple

import numpy as np

from ..core.errors import ConfigurationError
from ..core.utils import gap_runs


class _ScaledConstraint:
    power: int = 1
    factor: float = 1.0

    def __init__(self, block_duration: float = 1.0) -> None:
        if not np.isfinite(block_duration) or block_duration <= 0.0:
            raise ConfigurationError("block_duration must be positive.")
        self.block_duration = float(block_duration)
        self.scale = self.factor / self.block_duration ** self.power


class AccelJumpConstraint(_ScaledConstraint):
    """Jump in acceleration at ``b`` between blocks a-b and b-c.

    The jump is ``8/tblock^2 * ((3*(rc-ra) - (vc+va))/4 - vb)``; with
    ``scale = 2/tblock^2`` the residual is
    ``scale * (3*(rc-ra) - (vc+va) - 4*vb)``. It does not depend on ``rb``.
    """

    power = 2
    factor = 2.0

    def __call__(self, ra, va, vb, rc, vc):
        return self.scale * (3.0 * (rc - ra) - (vc + va) - 4.0 * vb)

    @property
    def partials(self) -> Tuple[float, float, float, float, float]:
        s = self.scale
        return (-3.0 * s, -s, -4.0 * s, 3.0 * s, -s)


class ClampConstraint(_ScaledConstraint):
    """Jump in the third derivative at ``b`` (up to a factor of 6).

    ``scale * (4*rb - 2*(rc+ra) + (vc-va))`` with ``scale = 1/tblock^3``. It does
    not depend on ``vb``, so it pins the position of a node that has no
    observation of its own.
    """

    power = 3
    factor = 1.0

    def __call__(self, ra, va, rb, rc, vc):
        return self.scale * (4.0 * rb - 2.0 * (rc + ra) + (vc - va))

    @property
    def partials(self) -> Tuple[float, float, float, float, float]:
        s = self.scale
        return (-2.0 * s, -s, 4.0 * s, -2.0 * s, s)


class ConstraintPolicy(str, Enum):
    """Which residuals are attached to each interior node.

    A node is a gap node when it, or one of its two neighbours, is missing.
    """

    ACCEL_ONLY = "accel_only"
    CLAMP_AT_GAPS = "clamp_at_gaps"
    BOTH_AT_GAPS = "both_at_gaps"


def gap_nodes(missing: np.ndarray) -> np.ndarray:
    flags = np.asarray(missing, dtype=bool)
    interior = np.arange(1, len(flags) - 1)
    near_gap = flags[interior] | flags[interior - 1] | flags[interior + 1]
    return interior[near_gap]


# (node offset, 0 for position or 1 for velocity) of each functor argument
_ACCEL_SLOTS = ((-1, 0), (-1, 1), (0, 1), (1, 0), (1, 1))
_CLAMP_SLOTS = ((-1, 0), (-1, 1), (0, 0), (1, 0), (1, 1))


def undetermined_gaps(
    missing: np.ndarray,
    accel_nodes: np.ndarray,
    clamp_nodes: np.ndarray,
) -> List[Tuple[int, int]]:
    """Gap spans whose missing nodes the wired constraints cannot pin down.

    Observed nodes are fixed by their data, so a span is determined exactly
    when the constraint rows restricted to its missing nodes have full column
    rank. Runs separated by a single observed node share a constraint and are
    checked together; spans are reported as half-open ``(start, stop)``.
    """
    flags = np.asarray(missing, dtype=bool)
    last = len(flags) - 2
    wired = (
        (set(int(i) for i in accel_nodes), AccelJumpConstraint().partials, _ACCEL_SLOTS),
        (set(int(i) for i in clamp_nodes), ClampConstraint().partials, _CLAMP_SLOTS),
    )

    spans: List[Tuple[int, int]] = []
    for start, stop in gap_runs(flags):
        if spans and start - spans[-1][1] <= 1:
            spans[-1] = (spans[-1][0], stop)
        else:
            spans.append((start, stop))

    bad = []
    for start, stop in spans:
        nodes = np.flatnonzero(flags[start:stop]) + start
        column = {int(k): 2 * j for j, k in enumerate(nodes)}
        rows = []
        for center in range(max(1, start - 1), min(last, stop) + 1):
            for wired_nodes, coefs, slots in wired:
                if center not in wired_nodes:
                    continue
                row = np.zeros(2 * nodes.size)
                for (offset, kind), coef in zip(slots, coefs):
                    col = column.get(center + offset)
                    if col is not None:
                        row[col + kind] += coef
                if row.any():
                    rows.append(row)
        if not rows or np.linalg.matrix_rank(np.array(rows)) < 2 * nodes.size:
            bad.append((start, stop))
    return bad


def wire_constraints(
    missing: np.ndarray,
    policy: ConstraintPolicy | str = ConstraintPolicy.BOTH_AT_GAPS,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(accel_nodes, clamp_nodes)`` for the interior nodes 1..n-1.

    Raises :class:`ConfigurationError` when the policy leaves a missing node's
    position or velocity free, e.g. a missing end node under ``accel_only``.
    """
    policy = ConstraintPolicy(policy)
    flags = np.asarray(missing, dtype=bool)
    if flags.ndim != 1 or len(flags) < 3:
        raise ConfigurationError("At least three nodes are required to wire constraints.")
    interior = np.arange(1, len(flags) - 1)
    if policy is ConstraintPolicy.ACCEL_ONLY:
        accel, clamp = interior, np.zeros(0, dtype=np.int64)
    else:
        gaps = gap_nodes(flags)
        if policy is ConstraintPolicy.CLAMP_AT_GAPS:
            accel, clamp = np.setdiff1d(interior, gaps), gaps
        else:
            accel, clamp = interior, gaps

    bad = undetermined_gaps(flags, accel, clamp)
    if bad:
        raise ConfigurationError(
            f"Policy '{policy.value}' leaves the missing nodes in {bad} undetermined; "
            "observe more nodes or use 'both_at_gaps'."
        )
    return accel, clamp
