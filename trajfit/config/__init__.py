"""Configuration loading utilities for trajfit."""

from .schema import (
    FitConfig,
    load_config,
)

__all__ = ["FitConfig", "load_config"]
