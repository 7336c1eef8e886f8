from __future__ import annotations

from typing import Dict, Sequence

import numpy as np

from ..core.utils import gap_runs, get_logger
from .cubic import endpoint_cubic

_log = get_logger()


def _span_cubic(r: np.ndarray, v: np.ndarray, a: int, b: int, nodes: Sequence[int], block_duration: float):
    """Position/velocity at ``nodes`` on the Hermite cubic spanning known nodes ``a`` and ``b``."""
    span = (b - a) * block_duration
    t = (np.asarray(nodes, dtype=np.float64) - a) / (b - a) - 0.5
    pos, vel = endpoint_cubic(r[a], span * v[a], r[b], span * v[b], t[:, None], order=1)
    return pos, vel / span


def _span_linear(r: np.ndarray, a: int, b: int, nodes: Sequence[int], block_duration: float):
    slope = (r[b] - r[a]) / ((b - a) * block_duration)
    steps = (np.asarray(nodes, dtype=np.float64) - a) * block_duration
    pos = r[a] + steps[:, None] * slope
    return pos, np.broadcast_to(slope, pos.shape)


def fill_missing(
    r: np.ndarray,
    v: np.ndarray,
    missing: np.ndarray,
    block_duration: float,
    linear_fit: bool = True,
) -> bool:
    """Interpolate/extrapolate the rows of ``r`` and ``v`` flagged in ``missing``.

    Gaps between two observed nodes are interpolated; gaps at either end are
    extrapolated from the two nearest observed nodes (or from the single
    observed node's own velocity when there is only one). ``linear_fit``
    selects straight-line fills; otherwise the Hermite cubic through the
    bracketing nodes is used. ``missing`` is left untouched so that callers can
    still treat the filled nodes as unobserved. Returns ``False`` when no node
    is observed.
    """
    flags = np.asarray(missing, dtype=bool)
    known = np.flatnonzero(~flags)
    if known.size == 0:
        _log.warning("Cannot fill trajectory: all %d nodes are missing.", flags.size)
        return False
    if known.size == flags.size:
        return True

    def fill_from(a: int, b: int, nodes: np.ndarray) -> None:
        if linear_fit:
            pos, vel = _span_linear(r, a, b, nodes, block_duration)
        else:
            pos, vel = _span_cubic(r, v, a, b, nodes, block_duration)
        r[nodes] = pos
        v[nodes] = vel

    for a, b in zip(known[:-1], known[1:]):
        if b - a > 1:
            fill_from(a, b, np.arange(a + 1, b))

    leading = np.arange(0, known[0])
    trailing = np.arange(known[-1] + 1, flags.size)
    if known.size == 1:
        k = known[0]
        for nodes in (leading, trailing):
            if nodes.size:
                r[nodes] = r[k] + ((nodes - k) * block_duration)[:, None] * v[k]
                v[nodes] = v[k]
    else:
        if leading.size:
            fill_from(known[0], known[1], leading)
        if trailing.size:
            fill_from(known[-2], known[-1], trailing)

    _log.info("Filled %d missing nodes in %d gaps.", int(flags.sum()), len(gap_runs(flags)))
    return True


def fill_summary(missing: np.ndarray) -> Dict[str, object]:
    flags = np.asarray(missing, dtype=bool)
    return {
        "nodes": int(flags.size),
        "missing": int(flags.sum()),
        "gaps": gap_runs(flags),
    }
