"""IRF figures: SVAR-IV estimate, MSW set and delta-method band."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend for saving figures
import matplotlib.pyplot as plt
import numpy as np

from svariv.eval.msw import MSWInference

MSW_FILL = (204 / 255, 204 / 255, 204 / 255)


def grid_shape(n_panels: int) -> tuple[int, int]:
    """Near-square subplot grid: ceil(sqrt(n)) rows, floor or ceil columns."""
    hi = math.ceil(math.sqrt(n_panels))
    lo = math.floor(math.sqrt(n_panels))
    return (hi, hi) if n_panels > hi * lo else (hi, lo)


def _finite_fill_bounds(lower, upper, reference: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    # Infinite MSW endpoints are drawn up to the plotted range of the other series.
    finite = reference[np.isfinite(reference)]
    span = float(finite.max() - finite.min()) if finite.size else 1.0
    pad = max(span, 1e-8)
    top = (finite.max() if finite.size else 0.0) + pad
    bottom = (finite.min() if finite.size else 0.0) - pad
    return np.clip(lower, bottom, top), np.clip(upper, bottom, top)


def _draw_irf(
    ax,
    inference: MSWInference,
    var_idx: int,
    confidence: float,
    cumulative: bool,
    show_cholesky: bool,
) -> None:
    plugin = inference.plugin
    robust = inference.robust_cum if cumulative else inference.robust
    irf = (plugin.irf_cum if cumulative else plugin.irf)[var_idx]
    dm_lower, dm_upper = plugin.delta_method_band(confidence, cumulative=cumulative)
    horizons = np.arange(len(irf))

    reference = np.concatenate([irf, dm_lower[var_idx], dm_upper[var_idx]])
    msw_lower, msw_upper = _finite_fill_bounds(robust.lower[var_idx], robust.upper[var_idx], reference)

    ax.plot(horizons, irf, "b", label="SVAR-IV Estimator")
    ax.fill_between(
        horizons,
        msw_lower,
        msw_upper,
        where=~robust.is_empty[var_idx],
        color=MSW_FILL,
        alpha=0.5,
        label=f"MSW C.I. ({100 * confidence:.0f}%)",
    )
    ax.plot(horizons, dm_upper[var_idx], "--b", label="D-Method C.I.")
    ax.plot(horizons, dm_lower[var_idx], "--b")
    if show_cholesky and inference.cholesky is not None:
        chol = inference.cholesky.irf_cum if cumulative else inference.cholesky.irf
        ax.plot(horizons, chol[var_idx], ":r", label="Cholesky")
    ax.axhline(0.0, color="black", linewidth=0.8)
    ax.set_xlim(0, max(len(irf) - 1, 1))


def plot_irf_grid(
    inference: MSWInference,
    var_names: Sequence[str],
    confidence: float,
    output_path: Optional[Path] = None,
    time_label: str = "period",
    select: Optional[Sequence[int]] = None,
    cumulative: bool = False,
    show_cholesky: bool = False,
):
    """One subplot per variable (or per selected 0-based index)."""
    indices = list(range(len(var_names))) if select is None else list(select)
    rows, cols = grid_shape(len(indices))
    fig, axes = plt.subplots(rows, cols, figsize=(4 * cols, 3 * rows), squeeze=False)
    flat_axes = axes.ravel()

    for pos, var_idx in enumerate(indices):
        ax = flat_axes[pos]
        _draw_irf(ax, inference, var_idx, confidence, cumulative, show_cholesky)
        ax.set_title(var_names[var_idx])
        ax.set_xlabel(time_label)
        if pos == 0:
            ax.legend(loc="lower right", fontsize=8, frameon=False)
    for ax in flat_axes[len(indices):]:
        ax.set_visible(False)

    fig.tight_layout()
    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
    return fig


def plot_selected_irfs(
    inference: MSWInference,
    var_names: Sequence[str],
    confidence: float,
    select: Sequence[int],
    output_dir: Path,
    label: str,
    time_label: str = "period",
    figure_format: str = "png",
) -> list[Path]:
    """Separate figure per selected variable, saved as IRF_SVAR_<label>_<index>."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for var_idx in select:
        fig, ax = plt.subplots(figsize=(6, 4))
        _draw_irf(ax, inference, var_idx, confidence, cumulative=False, show_cholesky=False)
        ax.set_title(var_names[var_idx])
        ax.set_xlabel(time_label)
        ax.legend(loc="lower right", fontsize=8, frameon=False)
        fig.tight_layout()
        path = output_dir / f"IRF_SVAR_{label}_{var_idx + 1}.{figure_format}"
        fig.savefig(path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        paths.append(path)
    return paths


__all__ = ["grid_shape", "plot_irf_grid", "plot_selected_irfs"]
