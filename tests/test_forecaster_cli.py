"""
Integration Tests for the forecaster.py CLI

Runs main() end to end on temporary rate files and checks exit codes,
exported files and console output.
"""

import json
import logging

import numpy as np
import pandas as pd
import pytest

import forecaster


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def payload_file(tmp_path):
    """Rate-service payload with 40 days of USD->EUR and USD->GBP."""
    rng = np.random.default_rng(8)
    dates = pd.date_range("2024-02-01", periods=40, freq="D")
    eur = 0.92 + np.cumsum(rng.normal(0, 0.002, 40))
    gbp = 0.79 + np.cumsum(rng.normal(0, 0.002, 40))
    payload = {
        "base": "USD",
        "rates": {
            str(d.date()): {"EUR": float(e), "GBP": float(g)}
            for d, e, g in zip(dates, eur, gbp)
        },
    }
    path = tmp_path / "usd_rates.json"
    path.write_text(json.dumps(payload))
    return path


@pytest.fixture
def short_csv(tmp_path):
    path = tmp_path / "short.csv"
    path.write_text("date,rate\n2024-01-01,1.10\n2024-01-02,1.11\n2024-01-03,1.12\n")
    return path


def run(*argv):
    return forecaster.main(["--log-level", "ERROR", *map(str, argv)])


# ============================================================================
# SUCCESSFUL RUNS
# ============================================================================

class TestSuccessfulRuns:

    def test_csv_export(self, payload_file, tmp_path):
        output = tmp_path / "out" / "forecast.csv"

        exit_code = run("--input", payload_file, "--quote", "EUR", "--horizon", 3, "--output", output)

        assert exit_code == 0
        lines = output.read_text().splitlines()
        assert lines[0] == "date,predicted_rate"
        assert lines[1].startswith("2024-03-12,"), "First forecast day follows the last observation"
        assert len(lines) == 4

    def test_json_export(self, payload_file, tmp_path):
        output = tmp_path / "forecast.json"

        exit_code = run(
            "--input", payload_file, "--base", "USD", "--quote", "GBP",
            "--strategy", "arima", "--horizon", 5, "--output", output
        )

        assert exit_code == 0
        data = json.loads(output.read_text())
        assert data['pair'] == "USD/GBP"
        assert data['strategy'] == "autoregressive"
        assert len(data['forecast']) == 5
        assert data['model_params']['autoregressive.p'] == '2'

    def test_stdout_summary(self, payload_file, capsys):
        exit_code = run("--input", payload_file, "--quote", "EUR", "--horizon", 2)

        assert exit_code == 0
        assert "FX RATE FORECAST SUMMARY" in capsys.readouterr().out

    def test_default_horizon_from_config(self, payload_file, tmp_path):
        config = tmp_path / "params.yml"
        config.write_text("engine:\n  default_horizon: 4\n")
        output = tmp_path / "forecast.json"

        exit_code = run("--input", payload_file, "--quote", "EUR", "--config", config, "--output", output)

        assert exit_code == 0
        assert json.loads(output.read_text())['horizon'] == 4

    def test_evaluate_adds_metrics(self, payload_file, tmp_path):
        output = tmp_path / "forecast.csv"

        exit_code = run(
            "--input", payload_file, "--quote", "EUR", "--horizon", 3,
            "--evaluate", "--output", output
        )

        assert exit_code == 0
        content = output.read_text()
        assert "# rmse:" in content and "# mae:" in content

    def test_insufficient_data_reported_not_failed(self, short_csv, capsys):
        exit_code = run("--input", short_csv, "--horizon", 3)

        assert exit_code == 0, "A forecast that is not possible is a valid outcome"
        assert "Prediction not possible" in capsys.readouterr().err

    def test_blank_rate_column_reported_not_failed(self, tmp_path, capsys):
        path = tmp_path / "blank.csv"
        path.write_text("date,rate\n2024-01-01,\n2024-01-02,\n2024-01-03,\n")
        output = tmp_path / "forecast.csv"

        exit_code = run("--input", path, "--horizon", 2, "--evaluate", "--output", output)

        assert exit_code == 0, "Rows without a finite rate leave nothing to forecast from"
        assert "Prediction not possible" in capsys.readouterr().err
        assert not output.exists()


# ============================================================================
# FAILURES
# ============================================================================

class TestFailures:

    def test_missing_input_file(self, tmp_path, capsys):
        assert run("--input", tmp_path / "missing.json", "--horizon", 3) == 1
        assert "File Error" in capsys.readouterr().err

    def test_non_positive_horizon(self, payload_file):
        assert run("--input", payload_file, "--quote", "EUR", "--horizon", 0) == 1

    def test_unknown_strategy(self, payload_file):
        assert run("--input", payload_file, "--quote", "EUR", "--strategy", "prophet") == 1

    def test_unknown_quote_currency(self, payload_file, capsys):
        assert run("--input", payload_file, "--quote", "JPY") == 1
        assert "JPY" in capsys.readouterr().err

    def test_unsupported_output_extension(self, payload_file, tmp_path):
        assert run("--input", payload_file, "--quote", "EUR", "--output", tmp_path / "out.xlsx") == 1

    def test_missing_config_file(self, payload_file, tmp_path):
        assert run("--input", payload_file, "--quote", "EUR", "--config", tmp_path / "nope.yml") == 1

    def test_misspelled_config_parameter(self, payload_file, tmp_path, capsys):
        config = tmp_path / "params.yml"
        config.write_text("sequence:\n  epoch: 2\n")

        exit_code = run("--input", payload_file, "--quote", "EUR", "--strategy", "lstm", "--config", config)

        assert exit_code == 1
        err = capsys.readouterr().err
        assert "Validation Error" in err and "epoch" in err


class TestArgumentParser:

    def test_defaults(self):
        args = forecaster.create_argument_parser().parse_args(["--input", "rates.json"])

        assert args.output == 'stdout'
        assert args.strategy is None and args.horizon is None
        assert args.evaluate is False
        assert args.log_level == 'INFO'

    def test_log_level_case_insensitive(self):
        args = forecaster.create_argument_parser().parse_args(["--input", "r.csv", "--log-level", "debug"])

        assert args.log_level == 'DEBUG'
