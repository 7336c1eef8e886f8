from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares

from ..core.errors import (
    ConfigurationError,
    ConvergenceWarning,
    FitStateError,
    InsufficientDataError,
)
from ..core.utils import as_vector, get_logger
from .blocks import block_index, node_times
from .constraints import AccelJumpConstraint, ClampConstraint, ConstraintPolicy, wire_constraints
from .cubic import endpoint_cubic
from .fill import fill_missing, fill_summary
from .problem import FitProblem
from .samples import TrajectorySample

_log = get_logger()

LOSSES = ("linear", "soft_l1", "huber", "cauchy", "arctan")


class FitState(str, Enum):
    UNBUILT = "unbuilt"
    FILLED = "filled"
    SOLVED = "solved"


@dataclass
class FitOptions:
    position_sigma: float = 0.01
    velocity_sigma: float = 0.01
    accel_jump_weight: float = 100.0
    clamp_weight: float = 100.0
    policy: ConstraintPolicy = ConstraintPolicy.BOTH_AT_GAPS
    linear_fill: bool = True
    loss: str = "linear"
    f_scale: float = 1.0
    max_nfev: Optional[int] = None
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10
    dense_limit: int = 3000
    constraint_tol: float = 1e-10
    max_passes: int = 25

    def __post_init__(self) -> None:
        self.policy = ConstraintPolicy(self.policy)
        if self.loss not in LOSSES:
            raise ConfigurationError(f"loss must be one of {LOSSES}, got '{self.loss}'.")
        for name in ("position_sigma", "velocity_sigma", "f_scale", "accel_jump_weight", "clamp_weight",
                     "constraint_tol"):
            if not getattr(self, name) > 0.0:
                raise ConfigurationError(f"{name} must be positive.")
        if self.max_passes < 1:
            raise ConfigurationError("max_passes must be at least 1.")


@dataclass(frozen=True)
class FitResult:
    """Outcome of :meth:`SplineFit.solve`.

    ``cost`` and ``initial_cost`` are half the sum of squared data residuals.
    ``constraint_violation`` is the largest continuity residual in position
    units; ``passes`` counts the least-squares solves it took to reach it.
    """

    converged: bool
    status: int
    message: str
    cost: float
    initial_cost: float
    nfev: int
    accel_nodes: Tuple[int, ...]
    clamp_nodes: Tuple[int, ...]
    max_accel_jump: float
    constraint_violation: float = 0.0
    passes: int = 1


class SplineFit:
    """C2 piecewise-cubic fit of a uniformly blocked trajectory.

    ``num_blocks`` cubic blocks of ``block_duration`` seconds starting at
    ``start_time`` share ``num_blocks + 1`` nodes. Each node holds a position,
    a velocity and a missing flag. The fit goes through three states:
    samples are set (UNBUILT), missing nodes are filled (FILLED), and the
    least-squares refinement runs (SOLVED). A solved fit is read-only and can
    be queried at any time; times outside the grid extrapolate the end blocks.
    """

    def __init__(self, num_blocks: int, block_duration: float = 1.0, start_time: float = 0.0, dim: int = 3) -> None:
        if isinstance(num_blocks, bool) or int(num_blocks) != num_blocks:
            raise ConfigurationError("num_blocks must be an integer.")
        if num_blocks < 2:
            raise ConfigurationError("A trajectory fit needs at least 2 blocks.")
        if not math.isfinite(block_duration) or block_duration <= 0.0:
            raise ConfigurationError("block_duration must be positive and finite.")
        if not math.isfinite(start_time):
            raise ConfigurationError("start_time must be finite.")
        if int(dim) != dim or dim < 1:
            raise ConfigurationError("dim must be a positive integer.")

        self.num_blocks = int(num_blocks)
        self.block_duration = float(block_duration)
        self.start_time = float(start_time)
        self.dim = int(dim)

        self._r = np.zeros((self.num_blocks + 1, self.dim), dtype=np.float64)
        self._v = np.zeros((self.num_blocks + 1, self.dim), dtype=np.float64)
        self._missing = np.ones(self.num_blocks + 1, dtype=bool)
        self._observed_r = self._r.copy()
        self._observed_v = self._v.copy()
        self.state = FitState.UNBUILT
        self.result: Optional[FitResult] = None

    @classmethod
    def from_samples(
        cls,
        samples: Sequence[TrajectorySample],
        block_duration: float = 1.0,
        start_time: float = 0.0,
    ) -> "SplineFit":
        if len(samples) < 3:
            raise ConfigurationError("At least 3 node samples (2 blocks) are required.")
        fit = cls(len(samples) - 1, block_duration, start_time, dim=samples[0].dim)
        fit.set_samples(samples)
        return fit

    # ------------------------------------------------------------------
    # population
    def _require_mutable(self) -> None:
        if self.state is FitState.SOLVED:
            raise FitStateError("A solved trajectory is read-only.")

    def _check_index(self, i: int) -> int:
        if not 0 <= int(i) <= self.num_blocks:
            raise ConfigurationError(f"Node index {i} outside 0..{self.num_blocks}.")
        return int(i)

    def set_sample(self, i: int, position: Iterable[float], velocity: Iterable[float]) -> None:
        self._require_mutable()
        i = self._check_index(i)
        r = as_vector(position, self.dim, "position")
        v = as_vector(velocity, self.dim, "velocity")
        self._r[i] = self._observed_r[i] = r
        self._v[i] = self._observed_v[i] = v
        self._missing[i] = False
        self.state = FitState.UNBUILT

    def mark_missing(self, i: int) -> None:
        self._require_mutable()
        i = self._check_index(i)
        self._missing[i] = True
        self.state = FitState.UNBUILT

    def set_samples(self, samples: Sequence[TrajectorySample]) -> None:
        """Replace every node at once; nothing is written unless all samples are valid."""
        self._require_mutable()
        if len(samples) != self.num_blocks + 1:
            raise ConfigurationError(f"Expected {self.num_blocks + 1} node samples, got {len(samples)}.")
        staged = []
        for i, sample in enumerate(samples):
            if sample.dim != self.dim:
                raise ConfigurationError(f"Node {i} has {sample.dim} components, expected {self.dim}.")
            if sample.missing:
                staged.append(None)
            else:
                staged.append((
                    as_vector(sample.position, self.dim, f"node {i} position"),
                    as_vector(sample.velocity, self.dim, f"node {i} velocity"),
                ))
        for i, values in enumerate(staged):
            if values is None:
                self.mark_missing(i)
            else:
                self.set_sample(i, *values)

    # ------------------------------------------------------------------
    # filling
    def fill_missing(self, linear_fit: bool = True) -> bool:
        """Seed missing nodes from their observed neighbours; ``False`` if nothing is observed."""
        self._require_mutable()
        return fill_missing(self._r, self._v, self._missing, self.block_duration, linear_fit)

    def fill(self, linear_fit: bool = True) -> "SplineFit":
        if self.state is not FitState.UNBUILT:
            return self
        _log.debug("Fill summary: %s", fill_summary(self._missing))
        if not self.fill_missing(linear_fit):
            raise InsufficientDataError("All trajectory nodes are missing; nothing to extrapolate from.")
        self.state = FitState.FILLED
        return self

    # ------------------------------------------------------------------
    # solving
    def build_problem(self, options: Optional[FitOptions] = None) -> FitProblem:
        opts = options or FitOptions()
        accel_nodes, clamp_nodes = wire_constraints(self._missing, opts.policy)
        return FitProblem(
            observed_r=self._observed_r,
            observed_v=self._observed_v,
            missing=self._missing,
            block_duration=self.block_duration,
            accel_nodes=accel_nodes,
            clamp_nodes=clamp_nodes,
            position_sigma=opts.position_sigma,
            velocity_sigma=opts.velocity_sigma,
            accel_jump_weight=opts.accel_jump_weight,
            clamp_weight=opts.clamp_weight,
        )

    def solve(self, options: Optional[FitOptions] = None) -> FitResult:
        """Fit node positions/velocities to the data with the continuity constraints enforced.

        Missing nodes are filled first when that has not happened yet; the fill
        is the starting point. Each pass runs ``least_squares`` with the
        constraint rows shifted by the constraint residuals accumulated so far
        (augmented Lagrangian), until the constraints hold to
        ``constraint_tol`` relative to the parameter magnitude.

        A solver that stops early, or constraints still violated after
        ``max_passes``, emit a :class:`~trajfit.core.errors.ConvergenceWarning`;
        the last iterate is kept and ``FitResult.converged`` is ``False``.
        """
        self._require_mutable()
        opts = options or FitOptions()
        self.fill(opts.linear_fill)

        problem = self.build_problem(opts)
        x0 = problem.pack(self._r, self._v)
        jac = problem.jacobian()
        if problem.num_params <= opts.dense_limit:
            jac = jac.toarray()
            tr_solver = "exact"
        else:
            tr_solver = "lsmr"

        _log.info(
            "Solving trajectory fit: %d blocks, %d missing nodes, %d accel-jump and %d clamp constraints.",
            self.num_blocks,
            int(self._missing.sum()),
            problem.accel_nodes.size,
            problem.clamp_nodes.size,
        )
        x = x0
        shift = np.zeros(problem.num_constraint_residuals)
        nfev = 0
        for passes in range(1, opts.max_passes + 1):
            sol = least_squares(
                problem.residuals,
                x,
                jac=lambda x, shift: jac.copy(),
                args=(shift,),
                method="trf",
                tr_solver=tr_solver,
                loss=opts.loss,
                f_scale=opts.f_scale,
                ftol=opts.ftol,
                xtol=opts.xtol,
                gtol=opts.gtol,
                max_nfev=opts.max_nfev,
            )
            x = sol.x
            nfev += int(sol.nfev)
            violation = problem.constraint_violation(x)
            tolerance = opts.constraint_tol * max(1.0, float(np.abs(x).max()))
            _log.debug("Pass %d: %d evaluations, constraint violation %.3g.", passes, sol.nfev, violation)
            if sol.status <= 0 or violation <= tolerance:
                break
            shift = shift + problem.weighted_constraints(x)

        if sol.status > 0 and violation > tolerance:
            status = 0
            message = f"Continuity constraints still violated by {violation:.3g} after {passes} passes."
        else:
            status = int(sol.status)
            message = str(sol.message)

        r, v = problem.unpack(x)
        self._r = r.copy()
        self._v = v.copy()
        self.state = FitState.SOLVED

        jumps = self.continuity_residuals()["accel_jump"]
        self.result = FitResult(
            converged=status > 0,
            status=status,
            message=message,
            cost=float(0.5 * np.sum(problem.data_residuals(x) ** 2)),
            initial_cost=float(0.5 * np.sum(problem.data_residuals(x0) ** 2)),
            nfev=nfev,
            accel_nodes=tuple(int(i) for i in problem.accel_nodes),
            clamp_nodes=tuple(int(i) for i in problem.clamp_nodes),
            max_accel_jump=float(np.abs(jumps).max()) if jumps.size else 0.0,
            constraint_violation=violation,
            passes=passes,
        )
        if not self.result.converged:
            msg = f"Trajectory fit did not converge after {nfev} evaluations: {message}"
            _log.warning(msg)
            warnings.warn(msg, ConvergenceWarning, stacklevel=2)
        else:
            _log.info("Trajectory fit converged: cost %.6g -> %.6g (%d evaluations).",
                      self.result.initial_cost, self.result.cost, self.result.nfev)
        return self.result

    # ------------------------------------------------------------------
    # queries
    def _require_solved(self) -> None:
        if self.state is not FitState.SOLVED:
            raise FitStateError("Trajectory must be solved before it can be queried.")

    def _evaluate(self, t, order: int):
        self._require_solved()
        i, tf = block_index(t, self.block_duration, self.start_time, self.num_blocks)
        i = np.asarray(i)
        tf = np.asarray(tf, dtype=np.float64)[..., None]
        h = self.block_duration
        out = endpoint_cubic(self._r[i], h * self._v[i], self._r[i + 1], h * self._v[i + 1], tf, order=order)
        if order == 0:
            return out
        scaled = [out[0]] + [d / h ** k for k, d in enumerate(out[1:], start=1)]
        return tuple(scaled)

    def position(self, t) -> np.ndarray:
        """Position at ``t``; shape ``(N,)`` for scalar ``t`` or ``(M, N)`` for ``M`` times."""
        return self._evaluate(t, 0)

    def position_velocity(self, t) -> Tuple[np.ndarray, np.ndarray]:
        return self._evaluate(t, 1)

    def position_velocity_acceleration(self, t) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self._evaluate(t, 2)

    # ------------------------------------------------------------------
    # accessors
    @property
    def positions(self) -> np.ndarray:
        return self._r.copy()

    @property
    def velocities(self) -> np.ndarray:
        return self._v.copy()

    @property
    def missing(self) -> np.ndarray:
        return self._missing.copy()

    @property
    def node_times(self) -> np.ndarray:
        return node_times(self.num_blocks, self.block_duration, self.start_time)

    @property
    def end_time(self) -> float:
        return self.start_time + self.num_blocks * self.block_duration

    @property
    def samples(self) -> List[TrajectorySample]:
        return [TrajectorySample(r, v, m) for r, v, m in zip(self._r, self._v, self._missing)]

    def continuity_residuals(self) -> Dict[str, np.ndarray]:
        """Unweighted accel-jump and clamp residuals at every interior node, ``(n-1, N)`` each."""
        r = self._r
        V = self._v * self.block_duration
        b = np.arange(1, self.num_blocks)
        accel = AccelJumpConstraint(self.block_duration)
        clamp = ClampConstraint(self.block_duration)
        return {
            "accel_jump": accel(r[b - 1], V[b - 1], V[b], r[b + 1], V[b + 1]),
            "clamp": clamp(r[b - 1], V[b - 1], r[b], r[b + 1], V[b + 1]),
        }
