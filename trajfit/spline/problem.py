from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import sparse

from .constraints import AccelJumpConstraint, ClampConstraint


@dataclass
class FitProblem:
    """Least-squares problem over node positions and per-block velocities.

    The parameter vector is ``[r.ravel(), V.ravel()]`` where ``r`` holds node
    positions and ``V`` node velocities multiplied by the block duration.
    Residual blocks, in order: position observations, velocity observations,
    acceleration-jump constraints, clamp constraints.

    Constraint rows are the functor residuals converted back to position units
    and weighted against the position data (``weight / position_sigma``). They
    are equality constraints: the solver drives them to zero by re-solving with
    ``shift`` set to the previous constraint residuals (augmented Lagrangian),
    so the weights only affect how fast that happens.
    """

    observed_r: np.ndarray          # (n+1, N), rows of missing nodes ignored
    observed_v: np.ndarray          # (n+1, N), physical units
    missing: np.ndarray             # (n+1,)
    block_duration: float
    accel_nodes: np.ndarray
    clamp_nodes: np.ndarray
    position_sigma: float = 0.01
    velocity_sigma: float = 0.01
    accel_jump_weight: float = 100.0
    clamp_weight: float = 100.0
    _jacobian: sparse.csr_matrix = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.missing = np.asarray(self.missing, dtype=bool)
        self.accel_nodes = np.asarray(self.accel_nodes, dtype=np.int64)
        self.clamp_nodes = np.asarray(self.clamp_nodes, dtype=np.int64)
        self.observed = np.flatnonzero(~self.missing)
        self.accel = AccelJumpConstraint(self.block_duration)
        self.clamp = ClampConstraint(self.block_duration)
        self.accel_row_weight = self.accel_jump_weight / (self.position_sigma * self.accel.scale)
        self.clamp_row_weight = self.clamp_weight / (self.position_sigma * self.clamp.scale)
        self._jacobian = self._build_jacobian()

    @property
    def num_nodes(self) -> int:
        return int(self.missing.size)

    @property
    def dim(self) -> int:
        return int(self.observed_r.shape[1])

    @property
    def num_params(self) -> int:
        return 2 * self.num_nodes * self.dim

    @property
    def num_data_residuals(self) -> int:
        return 2 * self.observed.size * self.dim

    @property
    def num_constraint_residuals(self) -> int:
        return (self.accel_nodes.size + self.clamp_nodes.size) * self.dim

    @property
    def num_residuals(self) -> int:
        return self.num_data_residuals + self.num_constraint_residuals

    def pack(self, r: np.ndarray, v: np.ndarray) -> np.ndarray:
        return np.concatenate([np.ravel(r), np.ravel(v) * self.block_duration])

    def unpack(self, x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        shape = (self.num_nodes, self.dim)
        half = self.num_nodes * self.dim
        r = x[:half].reshape(shape)
        v = x[half:].reshape(shape) / self.block_duration
        return r, v

    def _split(self, x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        half = self.num_nodes * self.dim
        return x[:half].reshape(self.num_nodes, self.dim), x[half:].reshape(self.num_nodes, self.dim)

    def data_residuals(self, x: np.ndarray) -> np.ndarray:
        r, V = self._split(x)
        obs = self.observed
        parts = [
            (r[obs] - self.observed_r[obs]) / self.position_sigma,
            (V[obs] / self.block_duration - self.observed_v[obs]) / self.velocity_sigma,
        ]
        return np.concatenate([p.ravel() for p in parts])

    def constraint_residuals(self, x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Unweighted functor values ``(accel (A, N), clamp (C, N))`` at the wired nodes."""
        r, V = self._split(x)
        a = self.accel_nodes
        c = self.clamp_nodes
        return (
            self.accel(r[a - 1], V[a - 1], V[a], r[a + 1], V[a + 1]),
            self.clamp(r[c - 1], V[c - 1], r[c], r[c + 1], V[c + 1]),
        )

    def weighted_constraints(self, x: np.ndarray) -> np.ndarray:
        accel, clamp = self.constraint_residuals(x)
        return np.concatenate([(self.accel_row_weight * accel).ravel(), (self.clamp_row_weight * clamp).ravel()])

    def constraint_violation(self, x: np.ndarray) -> float:
        """Largest constraint residual expressed in position units."""
        accel, clamp = self.constraint_residuals(x)
        worst = 0.0
        if accel.size:
            worst = max(worst, float(np.abs(accel).max()) / self.accel.scale)
        if clamp.size:
            worst = max(worst, float(np.abs(clamp).max()) / self.clamp.scale)
        return worst

    def residuals(self, x: np.ndarray, shift: Optional[np.ndarray] = None) -> np.ndarray:
        constraints = self.weighted_constraints(x)
        if shift is not None:
            constraints = constraints + shift
        return np.concatenate([self.data_residuals(x), constraints])

    def jacobian(self, x: np.ndarray | None = None) -> sparse.csr_matrix:
        return self._jacobian

    def _r_cols(self, nodes: np.ndarray) -> np.ndarray:
        return nodes[:, None] * self.dim + np.arange(self.dim)

    def _v_cols(self, nodes: np.ndarray) -> np.ndarray:
        return self.num_nodes * self.dim + self._r_cols(nodes)

    def _build_jacobian(self) -> sparse.csr_matrix:
        rows: List[np.ndarray] = []
        cols: List[np.ndarray] = []
        vals: List[np.ndarray] = []
        offset = 0

        def add(count: int, columns: Sequence[np.ndarray], coefs: Sequence[float]) -> None:
            nonlocal offset
            block_rows = offset + np.arange(count * self.dim).reshape(count, self.dim)
            for col, coef in zip(columns, coefs):
                if coef == 0.0:
                    continue
                rows.append(block_rows.ravel())
                cols.append(col.ravel())
                vals.append(np.full(block_rows.size, coef))
            offset += count * self.dim

        obs = self.observed
        add(obs.size, [self._r_cols(obs)], [1.0 / self.position_sigma])
        add(obs.size, [self._v_cols(obs)], [1.0 / (self.block_duration * self.velocity_sigma)])

        a = self.accel_nodes
        add(
            a.size,
            [self._r_cols(a - 1), self._v_cols(a - 1), self._v_cols(a), self._r_cols(a + 1), self._v_cols(a + 1)],
            [self.accel_row_weight * p for p in self.accel.partials],
        )
        c = self.clamp_nodes
        add(
            c.size,
            [self._r_cols(c - 1), self._v_cols(c - 1), self._r_cols(c), self._r_cols(c + 1), self._v_cols(c + 1)],
            [self.clamp_row_weight * p for p in self.clamp.partials],
        )

        if rows:
            data = (np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols)))
        else:
            data = (np.zeros(0), (np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64)))
        return sparse.coo_matrix(data, shape=(offset, self.num_params)).tocsr()
