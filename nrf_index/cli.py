#!/usr/bin/env python3
"""Command-line interface for NRF9.3 food scoring."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from nrf_index.app_logging import configure_logging
from nrf_index.config import ScoringConfig, ScoringConfigLoader
from nrf_index.data_layer.exceptions import ScoringError, ShapeMismatchError
from nrf_index.data_layer.reference_intakes import (
    DEFAULT_REFERENCE_PATH,
    ReferenceIntakeLoader,
    resolve_reference_intakes,
)
from nrf_index.ingestion.table_loader import FoodTableLoader, TableLoadError
from nrf_index.output.formatters import (
    attach_scores,
    format_rejections,
    format_scores_json_string,
    format_scores_markdown,
)
from nrf_index.scoring.nrf_scorer import NRFScorer

logger = logging.getLogger(__name__)

EXIT_LOAD_ERROR = 1
EXIT_SHAPE_MISMATCH = 2
EXIT_UNKNOWN_PROFILE = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nrf-score",
        description="Score foods in a composition table with the NRF9.3 nutrient density index"
    )
    parser.add_argument(
        "input",
        help="Food table: path or http(s) URL to a .csv, .xlsx or .xls file"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to scoring config YAML (column names, reference profile, etc.)"
    )
    parser.add_argument(
        "--reference",
        type=str,
        help="Path to reference intake JSON (default: packaged daily values)"
    )
    parser.add_argument(
        "--profile",
        type=str,
        help="Reference intake profile (default: the reference file's default)"
    )
    parser.add_argument(
        "--sheet",
        type=str,
        help="Excel sheet name (default: first sheet)"
    )
    parser.add_argument(
        "--header-row",
        type=int,
        help="Zero-based row holding the column headers (default: 0)"
    )
    parser.add_argument(
        "--output",
        choices=["markdown", "json", "csv"],
        default="markdown",
        help="Output format: markdown (default), json, or csv (input table with scores appended)"
    )
    parser.add_argument(
        "--output-file",
        type=str,
        help="Optional file path to save output (default: print to stdout)"
    )
    parser.add_argument(
        "--breakdown",
        action="store_true",
        help="Include per-nutrient percentages in markdown output"
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Score rows on this many threads"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def apply_overrides(config: ScoringConfig, args: argparse.Namespace) -> ScoringConfig:
    """Let command-line flags take precedence over the config file."""
    if args.reference:
        config.reference_path = args.reference
    if args.profile:
        config.reference_profile = args.profile
    if args.sheet:
        config.sheet_name = args.sheet
    if args.header_row is not None:
        config.header_row = args.header_row
    if args.workers is not None:
        config.max_workers = args.workers
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = ScoringConfig()
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            return EXIT_LOAD_ERROR
        try:
            config = ScoringConfigLoader(str(config_path)).load()
        except ShapeMismatchError as e:
            print(f"Error: {config_path}: {e}", file=sys.stderr)
            return EXIT_SHAPE_MISMATCH
        except (ValueError, yaml.YAMLError) as e:
            print(f"Error: Invalid config {config_path}: {e}", file=sys.stderr)
            return EXIT_LOAD_ERROR
    config = apply_overrides(config, args)

    try:
        reference_loader = ReferenceIntakeLoader(config.reference_path or DEFAULT_REFERENCE_PATH)
        reference_intakes = resolve_reference_intakes(
            reference_loader, config.reference_profile, config.reference_overrides
        )
    except KeyError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return EXIT_UNKNOWN_PROFILE
    except ShapeMismatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_SHAPE_MISMATCH
    except (FileNotFoundError, ScoringError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR
    logger.info("Using reference intakes '%s'", reference_intakes.name)

    try:
        table_loader = FoodTableLoader(
            config.columns,
            header_row=config.header_row,
            sheet_name=config.sheet_name,
            delimiter=config.delimiter,
            decimal=config.decimal,
            thousands=config.thousands
        )
        table = table_loader.load(args.input)
    except (FileNotFoundError, TableLoadError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_LOAD_ERROR
    except ShapeMismatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Hint: map the table's headers under table.columns in a --config file", file=sys.stderr)
        return EXIT_SHAPE_MISMATCH

    if table.dropped:
        print(f"Skipped {table.dropped} rows with missing or non-positive energy", file=sys.stderr)

    scorer = NRFScorer(reference_intakes, max_workers=config.max_workers)
    batch = scorer.score_batch(table.rows)

    if args.output == "markdown":
        breakdowns = None
        if args.breakdown:
            breakdowns = {i: scorer.nutrient_percents(table.rows[i]) for i in batch.scores}
        output = format_scores_markdown(
            batch, decimals=config.decimals,
            reference_intakes=reference_intakes, breakdowns=breakdowns
        )
    elif args.output == "json":
        output = format_scores_json_string(
            batch, decimals=config.decimals, reference_intakes=reference_intakes
        )
    else:
        output = attach_scores(table.frame, batch, decimals=config.decimals).to_csv(index=False)

    if args.output_file:
        output_path = Path(args.output_file)
        output_path.write_text(output)
        print(f"Output saved to {output_path}", file=sys.stderr)
    else:
        print(output)

    if batch.rejections:
        print(f"\n⚠️  {len(batch.rejections)} rows could not be scored:", file=sys.stderr)
        print(format_rejections(batch.rejections), file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
