from .run import FitRunResult, fit_from_config

__all__ = ["FitRunResult", "fit_from_config"]
