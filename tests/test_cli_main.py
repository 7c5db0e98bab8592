"""CLI wiring tests for main command handlers."""

from __future__ import annotations

import argparse
import sys

import svariv.cli.main as cli_main
import svariv.pipelines.run_svariv_analysis as pipeline_estimate
import svariv.pipelines.simulate_data as pipeline_simulate


def _estimate_args(**overrides) -> argparse.Namespace:
    values = dict(
        data="data/sim.csv",
        instrument="z",
        variables=None,
        date_col=None,
        lags=2,
        reduced_form=None,
        confidence=0.9,
        nw_lags=4,
        norm="y1",
        scale=None,
        horizons=12,
        dataset_name="sim",
        time_label=None,
        irf_select=None,
        figure_format=None,
        no_cholesky=False,
        no_figures=True,
        output_dir=None,
        run_id="demo_run",
        output_root="/tmp/custom_out",
    )
    values.update(overrides)
    return argparse.Namespace(**values)


def test_cmd_estimate_forwards_args(monkeypatch):
    captured = {}

    def _fake_main():
        captured["argv"] = list(sys.argv)

    monkeypatch.setattr(pipeline_estimate, "main", _fake_main)

    ret = cli_main.cmd_estimate(_estimate_args())

    assert ret == 0
    argv = captured["argv"]
    assert argv[0] == "svariv-estimate"
    assert "--data=data/sim.csv" in argv
    assert "--lags=2" in argv
    assert "--confidence=0.9" in argv
    assert "--nw-lags=4" in argv
    assert "--norm=y1" in argv
    assert "--no-figures" in argv
    assert "--run-id=demo_run" in argv
    assert "--output-root=/tmp/custom_out" in argv
    assert not any(a.startswith("--scale") for a in argv)
    assert "--no-cholesky" not in argv


def test_cmd_estimate_forwards_reduced_form(monkeypatch):
    captured = {}

    def _fake_main():
        captured["argv"] = list(sys.argv)

    monkeypatch.setattr(pipeline_estimate, "main", _fake_main)

    args = _estimate_args(data=None, reduced_form="rf.npz", no_cholesky=True, scale=-1.0)
    cli_main.cmd_estimate(args)

    argv = captured["argv"]
    assert "--reduced-form=rf.npz" in argv
    assert "--scale=-1.0" in argv
    assert "--no-cholesky" in argv
    assert not any(a.startswith("--data=") for a in argv)
    assert "--dataset-name=sim" in argv


def test_cmd_estimate_forwards_figure_options(monkeypatch):
    captured = {}

    def _fake_main():
        captured["argv"] = list(sys.argv)

    monkeypatch.setattr(pipeline_estimate, "main", _fake_main)

    cli_main.cmd_estimate(_estimate_args(time_label="time", figure_format="pdf", no_figures=False))

    argv = captured["argv"]
    assert "--time-label=time" in argv
    assert "--figure-format=pdf" in argv
    assert "--no-figures" not in argv


def test_estimate_subcommand_accepts_figure_options(monkeypatch):
    captured = {}

    def _fake_cmd(args):
        captured["args"] = args
        return 0

    monkeypatch.setattr(cli_main, "cmd_estimate", _fake_cmd)
    monkeypatch.setattr("sys.argv", ["svariv", "estimate", "--data=d.csv", "--time-label=time", "--figure-format=svg"])

    assert cli_main.main() == 0
    assert captured["args"].time_label == "time"
    assert captured["args"].figure_format == "svg"


def test_cmd_simulate_forwards_args(monkeypatch):
    captured = {}

    def _fake_main():
        captured["argv"] = list(sys.argv)

    monkeypatch.setattr(pipeline_simulate, "main", _fake_main)

    args = argparse.Namespace(n_obs=250, strength=0.1, noise=None, seed=9, output="out.csv")
    ret = cli_main.cmd_simulate(args)

    assert ret == 0
    assert captured["argv"] == [
        "svariv-simulate",
        "--n-obs=250",
        "--strength=0.1",
        "--seed=9",
        "--output=out.csv",
    ]


def test_main_without_command_prints_help(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["svariv"])
    assert cli_main.main() == 1
    assert "estimate" in capsys.readouterr().out


def test_simulate_then_estimate_end_to_end(tmp_path, monkeypatch):
    data_path = tmp_path / "sim.csv"
    out_dir = tmp_path / "out"

    monkeypatch.setattr("sys.argv", ["svariv", "simulate", "--n-obs=200", "--seed=4", f"--output={data_path}"])
    assert cli_main.main() == 0
    assert data_path.exists()

    monkeypatch.setattr(
        "sys.argv",
        [
            "svariv",
            "estimate",
            f"--data={data_path}",
            "--lags=1",
            "--horizons=4",
            "--dataset-name=e2e",
            "--no-figures",
            f"--output-dir={out_dir}",
        ],
    )
    assert cli_main.main() == 0
    assert (out_dir / "irf_svar_p=1_e2e_95.csv").exists()
