"""Figures for SVAR-IV impulse responses."""

from .irf_figures import grid_shape, plot_irf_grid, plot_selected_irfs

__all__ = ["grid_shape", "plot_irf_grid", "plot_selected_irfs"]
