#!/usr/bin/env python3
"""Run SVAR-IV estimation with weak-IV robust (MSW) inference."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd

from svariv.config.paths import OUTPUT_DIR
from svariv.config.settings import (
    DEFAULT_CONFIDENCE,
    DEFAULT_DATASET_NAME,
    DEFAULT_FIGURE_FORMAT,
    DEFAULT_HORIZONS,
    DEFAULT_LAGS,
    DEFAULT_NW_LAGS,
    DEFAULT_SCALE,
    DEFAULT_TIME_LABEL,
    InferenceConfig,
)
from svariv.data.loader import load_svariv_data
from svariv.errors import InvalidInputError
from svariv.eval.hac import AsymptoticCovariance, covariance_from_reduced_form
from svariv.eval.msw import MSWInference, msw_inference
from svariv.eval.reporting import inference_diagnostics, irf_results_to_long_df
from svariv.models.reduced_form import (
    ReducedForm,
    estimate_reduced_form,
    load_reduced_form,
    reduced_form_from_mapping,
    save_reduced_form,
)
from svariv.utils.run_manifest import fingerprint_arrays, json_ready, write_latest_pointer, write_run_manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EstimateReducedForm:
    """Estimate the reduced form from a panel and an instrument."""

    panel: Any
    instrument: Any
    p: int


@dataclass(frozen=True)
class UseSuppliedReducedForm:
    """Use a previously estimated reduced form (object or field mapping)."""

    reduced_form: Union[ReducedForm, Mapping[str, Any]]


ReducedFormSource = Union[EstimateReducedForm, UseSuppliedReducedForm]


@dataclass(frozen=True)
class SVARIVResult:
    config: InferenceConfig
    reduced_form: ReducedForm
    covariance: AsymptoticCovariance
    inference: MSWInference
    var_names: list

    def to_long_df(self) -> pd.DataFrame:
        return irf_results_to_long_df(self.inference, self.var_names, self.config.confidence)

    def diagnostics(self) -> dict:
        out = inference_diagnostics(self.reduced_form, self.covariance, self.inference)
        out["var_names"] = list(self.var_names)
        out["norm"] = int(self.config.norm)
        out["scale"] = float(self.config.scale)
        out["horizons"] = int(self.config.horizons)
        return out


def resolve_reduced_form(source: Optional[ReducedFormSource]) -> ReducedForm:
    """Return the reduced form for either source: estimated or supplied."""
    if source is None:
        raise InvalidInputError("A reduced-form source is required (estimate or supplied).")
    if isinstance(source, EstimateReducedForm):
        logger.info("Estimating reduced-form VAR(%d)", source.p)
        return estimate_reduced_form(source.panel, source.instrument, source.p)
    if isinstance(source, UseSuppliedReducedForm):
        supplied = source.reduced_form
        if isinstance(supplied, ReducedForm):
            return supplied
        if supplied is None:
            raise InvalidInputError("Supplied reduced form is empty.")
        logger.info("Using supplied reduced form")
        return reduced_form_from_mapping(supplied)
    raise InvalidInputError(f"Unknown reduced-form source: {type(source).__name__}")


def run_svariv(
    source: ReducedFormSource,
    config: InferenceConfig,
    var_names: Optional[Sequence[str]] = None,
) -> SVARIVResult:
    """Reduced form, HAC covariance, then plug-in, MSW and Cholesky IRFs."""
    reduced_form = resolve_reduced_form(source)
    config.validate(reduced_form.n)
    if var_names is None:
        panel = getattr(source, "panel", None)
        var_names = list(panel.columns) if isinstance(panel, pd.DataFrame) else None
    if var_names is None:
        var_names = [f"y{i + 1}" for i in range(reduced_form.n)]
    if len(var_names) != reduced_form.n:
        raise InvalidInputError(f"Expected {reduced_form.n} variable names, got {len(var_names)}.")

    covariance = covariance_from_reduced_form(reduced_form, config.nw_lags)
    inference = msw_inference(
        reduced_form,
        covariance,
        confidence=config.confidence,
        norm=config.norm,
        scale=config.scale,
        horizons=config.horizons,
        cholesky=config.cholesky,
    )
    return SVARIVResult(
        config=config,
        reduced_form=reduced_form,
        covariance=covariance,
        inference=inference,
        var_names=list(var_names),
    )


def output_label(p: int, dataset_name: str, confidence: float) -> str:
    return f"p={p}_{dataset_name}_{int(round(100 * confidence))}"


def _parse_list(value: Optional[str]) -> Optional[list[str]]:
    if not value:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def _parse_norm(value: str, var_names: Sequence[str]) -> int:
    """1-based position, or the name of the normalizing variable."""
    if value in var_names:
        return list(var_names).index(value) + 1
    try:
        return int(value)
    except ValueError:
        raise InvalidInputError(f"--norm must be a 1-based index or one of {list(var_names)}, got {value!r}") from None


def _parse_select(value: Optional[str], var_names: Sequence[str]) -> Optional[list[int]]:
    items = _parse_list(value)
    if items is None:
        return None
    return [_parse_norm(item, var_names) - 1 for item in items]


def main():
    parser = argparse.ArgumentParser(description="Run SVAR-IV estimation with weak-IV robust inference.")
    parser.add_argument("--data", default=None, help="CSV with endogenous variables and the instrument.")
    parser.add_argument("--instrument", default="z", help="Instrument column in --data.")
    parser.add_argument("--variables", default=None, help="Comma-separated VAR variables, in order.")
    parser.add_argument("--date-col", default=None)
    parser.add_argument("--lags", type=int, default=DEFAULT_LAGS)
    parser.add_argument("--reduced-form", default=None, help="Saved reduced form (.npz); skips estimation.")
    parser.add_argument("--confidence", type=float, default=DEFAULT_CONFIDENCE)
    parser.add_argument("--nw-lags", type=int, default=DEFAULT_NW_LAGS)
    parser.add_argument("--norm", default="1", help="1-based index or name of the normalizing variable.")
    parser.add_argument("--scale", type=float, default=DEFAULT_SCALE)
    parser.add_argument("--horizons", type=int, default=DEFAULT_HORIZONS)
    parser.add_argument("--no-cholesky", action="store_true", help="Skip the Cholesky benchmark IRFs.")
    parser.add_argument("--dataset-name", default=DEFAULT_DATASET_NAME)
    parser.add_argument("--time-label", default=DEFAULT_TIME_LABEL)
    parser.add_argument("--irf-select", default=None, help="Comma-separated variables for separate figures.")
    parser.add_argument("--figure-format", default=DEFAULT_FIGURE_FORMAT)
    parser.add_argument("--no-figures", action="store_true")
    parser.add_argument("--output-dir", default=str(OUTPUT_DIR / "svariv"))
    parser.add_argument("--run-id", default=None, help="Optional run ID to nest outputs in output/runs/<run-id>/.")
    parser.add_argument("--output-root", default=None, help="Optional output root (overrides --run-id).")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    if args.data is None and args.reduced_form is None:
        parser.error("one of --data or --reduced-form is required")

    output_root = None
    if args.output_root:
        output_root = Path(args.output_root)
    elif args.run_id:
        output_root = OUTPUT_DIR / "runs" / args.run_id

    output_dir = Path(args.output_dir)
    if output_root is not None:
        output_dir = output_root / "svariv"
    output_dir.mkdir(parents=True, exist_ok=True)

    var_names = _parse_list(args.variables)
    if args.reduced_form:
        if args.data:
            logger.warning("Both --data and --reduced-form given; using the supplied reduced form")
        reduced_form = load_reduced_form(Path(args.reduced_form))
        source = UseSuppliedReducedForm(reduced_form)
        if var_names is None:
            var_names = [f"y{i + 1}" for i in range(reduced_form.n)]
    else:
        panel, instrument = load_svariv_data(
            Path(args.data),
            instrument=args.instrument,
            variables=var_names,
            date_col=args.date_col,
        )
        var_names = list(panel.columns)
        source = EstimateReducedForm(panel=panel, instrument=instrument, p=args.lags)

    config = InferenceConfig(
        confidence=args.confidence,
        nw_lags=args.nw_lags,
        norm=_parse_norm(args.norm, var_names),
        scale=args.scale,
        horizons=args.horizons,
        cholesky=not args.no_cholesky,
    )
    result = run_svariv(source, config, var_names=var_names)
    rf = result.reduced_form
    label = output_label(rf.p, args.dataset_name, config.confidence)

    long_df = result.to_long_df()
    long_df.to_csv(output_dir / f"irf_svar_{label}.csv", index=False)

    diagnostics = result.diagnostics()
    diagnostics.update(
        {
            "dataset_name": args.dataset_name,
            "data": args.data,
            "reduced_form_input": args.reduced_form,
            "label": label,
        }
    )
    with open(output_dir / f"irf_svar_{label}_diagnostics.json", "w") as f:
        json.dump(json_ready(diagnostics), f, indent=2, allow_nan=False)

    save_reduced_form(rf, output_dir / f"reduced_form_{label}.npz")

    if not args.no_figures:
        from svariv.viz.irf_figures import plot_irf_grid, plot_selected_irfs

        plot_irf_grid(
            result.inference,
            var_names,
            config.confidence,
            output_path=output_dir / f"IRF_SVAR_{label}.{args.figure_format}",
            time_label=args.time_label,
            show_cholesky=config.cholesky,
        )
        plot_irf_grid(
            result.inference,
            var_names,
            config.confidence,
            output_path=output_dir / f"IRF_SVAR_CUM_{label}.{args.figure_format}",
            time_label=args.time_label,
            cumulative=True,
        )
        select = _parse_select(args.irf_select, var_names)
        if select:
            plot_selected_irfs(
                result.inference,
                var_names,
                config.confidence,
                select=select,
                output_dir=output_dir,
                label=label,
                time_label=args.time_label,
                figure_format=args.figure_format,
            )

    run_config = {
        "data": args.data,
        "instrument": args.instrument,
        "variables": var_names,
        "date_col": args.date_col,
        "lags": int(rf.p),
        "reduced_form": args.reduced_form,
        "dataset_name": args.dataset_name,
        "no_figures": bool(args.no_figures),
        "output_dir": str(output_dir),
        **config.to_dict(),
    }
    write_run_manifest(
        output_dir,
        run_config,
        extra={
            "n_obs": int(rf.n_obs),
            "n_usable": int(rf.n_usable),
            "first_stage_wald": float(result.inference.wald_statistic),
        },
        data_fingerprint=fingerprint_arrays([rf.Y, rf.X, rf.external_iv]),
    )
    if args.run_id and output_root is not None:
        write_latest_pointer(OUTPUT_DIR / "runs", args.run_id, output_root)

    print(f"Saved SVAR-IV outputs in {output_dir}")


if __name__ == "__main__":
    main()
