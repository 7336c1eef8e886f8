from __future__ import annotations
import numpy as np
import logging

from .errors import ConfigurationError

def get_logger(name: str = "trajfit") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def configure_logging(level: str | int = "INFO") -> None:
    numeric = level if isinstance(level, int) else getattr(logging, str(level).upper(), logging.INFO)
    get_logger().setLevel(numeric)

def as_vector(value, dim: int, name: str = "value") -> np.ndarray:
    arr = np.array(value, dtype=np.float64).reshape(-1)
    if arr.shape != (dim,):
        raise ConfigurationError(f"{name} must have {dim} components, got {arr.size}.")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} must be finite.")
    return arr

def gap_runs(missing: np.ndarray) -> list[tuple[int, int]]:
    """Half-open (start, stop) index ranges of consecutive missing nodes."""
    flags = np.asarray(missing, dtype=bool)
    padded = np.concatenate([[False], flags, [False]]).astype(np.int8)
    edges = np.flatnonzero(np.diff(padded))
    return [(int(a), int(b)) for a, b in zip(edges[0::2], edges[1::2])]
