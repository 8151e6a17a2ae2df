"""Tests for the nrf-score command-line interface."""

import json
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

import pandas as pd
import pytest

from nrf_index.cli import (
    EXIT_LOAD_ERROR,
    EXIT_SHAPE_MISMATCH,
    EXIT_UNKNOWN_PROFILE,
    build_parser,
    main,
)
from nrf_index.data_layer.models import Nutrient
from nrf_index.ingestion.column_mapping import default_nutrient_columns

HEADERS = ["food_name"] + list(default_nutrient_columns().values()) + ["energy_kcal"]


def _row(name, energy, **amounts):
    return [name] + [amounts.get(n.value, 0) for n in Nutrient] + [energy]


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep CLI runs from attaching handlers to captured streams."""
    with patch("nrf_index.cli.configure_logging"):
        yield


@pytest.fixture
def workdir():
    with TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def foods_csv(workdir):
    path = workdir / "foods.csv"
    pd.DataFrame([
        _row("example food", 200, protein=10, fiber=5, saturated_fat=2, sodium=200),
        _row("water", 0),
        _row("orange juice", 100, vitamin_c=150),
        _row("bad data", 150, iron=-2),
    ], columns=HEADERS).to_csv(path, index=False)
    return str(path)


@pytest.fixture
def label_config(workdir):
    path = workdir / "scoring.yaml"
    path.write_text("table:\n  columns:\n    label: food_name\n")
    return str(path)


class TestBuildParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(["foods.csv"])
        assert args.input == "foods.csv"
        assert args.output == "markdown"
        assert args.header_row is None
        assert args.workers is None
        assert not args.breakdown

    def test_rejects_unknown_output(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["foods.csv", "--output", "xml"])


class TestMain:
    """Tests for full CLI runs."""

    def test_markdown_output(self, foods_csv, label_config, capsys):
        exit_code = main([foods_csv, "--config", label_config])
        captured = capsys.readouterr()

        assert exit_code == 0
        assert "# NRF9.3 Scores" in captured.out
        assert "| 0 | example food | 20.0 | 9.2 | 10.8 |" in captured.out
        assert "| 1 | orange juice | 100.0 | 0.0 | 100.0 |" in captured.out
        assert "Skipped 1 rows" in captured.err
        assert "1 rows could not be scored" in captured.err
        assert "Row 2 (bad data): [INVALID_INPUT]" in captured.err

    def test_json_output(self, foods_csv, label_config, capsys):
        exit_code = main([foods_csv, "--config", label_config, "--output", "json"])
        data = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert data["summary"] == {"total_rows": 3, "scored": 2, "rejected": 1}
        assert data["reference_profile"] == "nrf93_2009"
        assert data["scores"][0]["label"] == "example food"

    def test_csv_output_file(self, foods_csv, workdir):
        output_path = workdir / "scored.csv"
        exit_code = main([foods_csv, "--output", "csv", "--output-file", str(output_path)])

        assert exit_code == 0
        scored = pd.read_csv(output_path)
        assert list(scored.columns) == HEADERS + ["NR100kcal", "LIM100kcal", "NRFscore"]
        assert scored["food_name"].tolist() == ["example food", "orange juice", "bad data"]
        assert scored.loc[0, "NRFscore"] == 10.8
        assert pd.isna(scored.loc[2, "NRFscore"])

    def test_breakdown(self, foods_csv, label_config, capsys):
        main([foods_csv, "--config", label_config, "--breakdown"])
        out = capsys.readouterr().out

        assert "## Nutrient Breakdown" in out
        assert "- vitamin c: 100.0% (capped from 250.0%)" in out

    def test_profile_flag(self, foods_csv, capsys):
        exit_code = main([foods_csv, "--profile", "fda_2016", "--output", "json"])
        data = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert data["reference_profile"] == "fda_2016"
        assert data["reference_intakes"]["sodium"] == 2300.0

    def test_parallel_workers_match_sequential(self, foods_csv, capsys):
        main([foods_csv, "--output", "json"])
        sequential = json.loads(capsys.readouterr().out)
        main([foods_csv, "--output", "json", "--workers", "3"])
        parallel = json.loads(capsys.readouterr().out)

        assert parallel == sequential

    def test_header_row_flag(self, workdir, capsys):
        path = workdir / "titled.csv"
        lines = ["Food composition table" + "," * (len(HEADERS) - 1),
                 ",".join(HEADERS),
                 ",".join(str(v) for v in _row("oats", 389, protein=16.9))]
        path.write_text("\n".join(lines) + "\n")

        exit_code = main([str(path), "--header-row", "1", "--output", "json"])
        data = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert data["summary"]["scored"] == 1


class TestMainErrors:
    """Tests for CLI exit codes."""

    def test_missing_input_file(self, workdir, capsys):
        exit_code = main([str(workdir / "missing.csv")])
        assert exit_code == EXIT_LOAD_ERROR
        assert "not found" in capsys.readouterr().err

    def test_unknown_profile(self, foods_csv, capsys):
        exit_code = main([foods_csv, "--profile", "nope"])
        assert exit_code == EXIT_UNKNOWN_PROFILE
        assert "nope" in capsys.readouterr().err

    def test_missing_column(self, workdir, capsys):
        path = workdir / "short.csv"
        pd.DataFrame([[1, 2]], columns=["protein_g", "energy_kcal"]).to_csv(path, index=False)

        exit_code = main([str(path)])
        err = capsys.readouterr().err

        assert exit_code == EXIT_SHAPE_MISMATCH
        assert "sodium_mg" in err
        assert "Hint" in err

    def test_missing_config_file(self, foods_csv, workdir):
        exit_code = main([foods_csv, "--config", str(workdir / "missing.yaml")])
        assert exit_code == EXIT_LOAD_ERROR

    def test_invalid_config(self, foods_csv, workdir, capsys):
        path = workdir / "bad.yaml"
        path.write_text("output: 5\n")

        exit_code = main([foods_csv, "--config", str(path)])
        assert exit_code == EXIT_LOAD_ERROR
        assert "Invalid config" in capsys.readouterr().err

    def test_config_with_unknown_nutrient(self, foods_csv, workdir):
        path = workdir / "zinc.yaml"
        path.write_text("table:\n  columns:\n    nutrients:\n      zinc: zinc_mg\n")

        assert main([foods_csv, "--config", str(path)]) == EXIT_SHAPE_MISMATCH

    def test_missing_reference_file(self, foods_csv, workdir):
        exit_code = main([foods_csv, "--reference", str(workdir / "missing.json")])
        assert exit_code == EXIT_LOAD_ERROR

    def test_invalid_reference_override(self, foods_csv, workdir, capsys):
        path = workdir / "override.yaml"
        path.write_text("reference:\n  overrides:\n    sodium: -5\n")

        exit_code = main([foods_csv, "--config", str(path)])
        assert exit_code == EXIT_LOAD_ERROR
        assert "INVALID_INPUT" in capsys.readouterr().err

    def test_conflicting_number_separators(self, foods_csv, workdir, capsys):
        path = workdir / "separators.yaml"
        path.write_text('table:\n  decimal: ","\n  thousands: ","\n')

        exit_code = main([foods_csv, "--config", str(path)])
        assert exit_code == EXIT_LOAD_ERROR
        assert "decimal mark" in capsys.readouterr().err
