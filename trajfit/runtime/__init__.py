from .builders import build_fit_options, build_spline_fit, resolve_grid

__all__ = ["build_fit_options", "build_spline_fit", "resolve_grid"]
