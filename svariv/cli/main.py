#!/usr/bin/env python3
"""Unified CLI entry point for SVAR-IV inference.

Usage:
    svariv <command> [options]

Commands:
    estimate    Estimate an SVAR-IV and write plug-in, MSW and Cholesky IRFs
    simulate    Write a synthetic SVAR-IV dataset to CSV

Examples:
    svariv simulate --n-obs 300 --strength 1.0 --output data/sim.csv
    svariv estimate --data data/sim.csv --instrument z --lags 2 --nw-lags 4
    svariv estimate --reduced-form output/svariv/reduced_form_p=2_sim_95.npz
"""

from __future__ import annotations

import argparse
import sys


def cmd_estimate(args: argparse.Namespace) -> int:
    """Run SVAR-IV estimation and inference."""
    from svariv.pipelines.run_svariv_analysis import main

    sys.argv = ["svariv-estimate"]
    if args.data:
        sys.argv.append(f"--data={args.data}")
    if args.instrument:
        sys.argv.append(f"--instrument={args.instrument}")
    if args.variables:
        sys.argv.append(f"--variables={args.variables}")
    if args.date_col:
        sys.argv.append(f"--date-col={args.date_col}")
    if args.lags is not None:
        sys.argv.append(f"--lags={args.lags}")
    if args.reduced_form:
        sys.argv.append(f"--reduced-form={args.reduced_form}")
    if args.confidence is not None:
        sys.argv.append(f"--confidence={args.confidence}")
    if args.nw_lags is not None:
        sys.argv.append(f"--nw-lags={args.nw_lags}")
    if args.norm:
        sys.argv.append(f"--norm={args.norm}")
    if args.scale is not None:
        sys.argv.append(f"--scale={args.scale}")
    if args.horizons is not None:
        sys.argv.append(f"--horizons={args.horizons}")
    if args.dataset_name:
        sys.argv.append(f"--dataset-name={args.dataset_name}")
    if args.time_label:
        sys.argv.append(f"--time-label={args.time_label}")
    if args.irf_select:
        sys.argv.append(f"--irf-select={args.irf_select}")
    if args.figure_format:
        sys.argv.append(f"--figure-format={args.figure_format}")
    if args.no_cholesky:
        sys.argv.append("--no-cholesky")
    if args.no_figures:
        sys.argv.append("--no-figures")
    if args.output_dir:
        sys.argv.append(f"--output-dir={args.output_dir}")
    if args.run_id:
        sys.argv.append(f"--run-id={args.run_id}")
    if args.output_root:
        sys.argv.append(f"--output-root={args.output_root}")
    main()
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    """Write a synthetic SVAR-IV dataset."""
    from svariv.pipelines.simulate_data import main

    sys.argv = ["svariv-simulate"]
    if args.n_obs is not None:
        sys.argv.append(f"--n-obs={args.n_obs}")
    if args.strength is not None:
        sys.argv.append(f"--strength={args.strength}")
    if args.noise is not None:
        sys.argv.append(f"--noise={args.noise}")
    if args.seed is not None:
        sys.argv.append(f"--seed={args.seed}")
    if args.output:
        sys.argv.append(f"--output={args.output}")
    main()
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="svariv",
        description="SVAR-IV inference with weak-instrument robust confidence sets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  svariv simulate --strength 0.2 --output data/weak.csv
  svariv estimate --data data/weak.csv --lags 2 --horizons 12
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # estimate
    p_est = subparsers.add_parser("estimate", help="Estimate SVAR-IV IRFs with MSW confidence sets")
    p_est.add_argument("--data", default=None)
    p_est.add_argument("--instrument", default=None)
    p_est.add_argument("--variables", default=None)
    p_est.add_argument("--date-col", default=None)
    p_est.add_argument("--lags", type=int, default=None)
    p_est.add_argument("--reduced-form", default=None)
    p_est.add_argument("--confidence", type=float, default=None)
    p_est.add_argument("--nw-lags", type=int, default=None)
    p_est.add_argument("--norm", default=None)
    p_est.add_argument("--scale", type=float, default=None)
    p_est.add_argument("--horizons", type=int, default=None)
    p_est.add_argument("--dataset-name", default=None)
    p_est.add_argument("--time-label", default=None)
    p_est.add_argument("--irf-select", default=None)
    p_est.add_argument("--figure-format", default=None)
    p_est.add_argument("--no-cholesky", action="store_true")
    p_est.add_argument("--no-figures", action="store_true")
    p_est.add_argument("--output-dir", default=None)
    p_est.add_argument("--run-id", default=None)
    p_est.add_argument("--output-root", default=None)
    p_est.set_defaults(func=cmd_estimate)

    # simulate
    p_sim = subparsers.add_parser("simulate", help="Write a synthetic SVAR-IV dataset")
    p_sim.add_argument("--n-obs", type=int, default=None)
    p_sim.add_argument("--strength", type=float, default=None)
    p_sim.add_argument("--noise", type=float, default=None)
    p_sim.add_argument("--seed", type=int, default=None)
    p_sim.add_argument("--output", default=None)
    p_sim.set_defaults(func=cmd_simulate)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
