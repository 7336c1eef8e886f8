from __future__ import annotations

import math
from typing import Tuple, Union

import numpy as np

from ..core.errors import QueryError

TimeLike = Union[float, np.ndarray]


def block_index(
    t: TimeLike,
    block_duration: float,
    start_time: float,
    num_blocks: int,
) -> Tuple[Union[int, np.ndarray], TimeLike]:
    """Map absolute time to ``(block, normalised offset)``.

    The block index is clamped to ``[0, num_blocks - 1]`` so that times before
    the start or after the end extrapolate the nearest boundary cubic. The
    offset is measured from the block midpoint in units of block duration.
    """
    if np.ndim(t) == 0:
        t = float(t)
        if not math.isfinite(t):
            raise QueryError(f"Query time must be finite, got {t!r}.")
        u = (t - start_time) / block_duration
        i = min(num_blocks - 1, max(0, int(math.floor(u))))
        return i, u - (i + 0.5)

    times = np.asarray(t, dtype=np.float64)
    if not np.all(np.isfinite(times)):
        raise QueryError("Query times must be finite.")
    u = (times - start_time) / block_duration
    idx = np.clip(np.floor(u), 0, num_blocks - 1).astype(np.int64)
    return idx, u - (idx + 0.5)


def node_times(num_blocks: int, block_duration: float, start_time: float) -> np.ndarray:
    return start_time + block_duration * np.arange(num_blocks + 1, dtype=np.float64)
