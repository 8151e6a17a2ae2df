"""Run configuration for NRF scoring, loaded from YAML.

Example (all sections optional)::

    reference:
      path: data/reference/daily_values.json
      profile: nrf93_2009
      overrides:
        sodium: 2300
    table:
      header_row: 2
      sheet: Foods
      delimiter: ";"
      decimal: ","
      thousands: "."
      columns:
        label: Food name
        energy: Energy (kcal/100 g)
        nutrients:
          protein: Protein (g/100 g)
    output:
      decimals: 1
    scoring:
      max_workers: 4
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from nrf_index.ingestion.column_mapping import ColumnMapping


@dataclass
class ScoringConfig:
    """Everything a scoring run needs besides the input table itself."""

    reference_path: Optional[str] = None  # None: packaged daily values
    reference_profile: Optional[str] = None  # None: file's default profile
    reference_overrides: Dict[str, Optional[float]] = field(default_factory=dict)
    columns: ColumnMapping = field(default_factory=ColumnMapping)
    header_row: int = 0
    sheet_name: Union[str, int] = 0
    delimiter: str = ","
    decimal: str = "."
    thousands: Optional[str] = ","
    decimals: int = 1
    max_workers: Optional[int] = None


class ScoringConfigLoader:
    """Loader for scoring configuration from YAML."""

    def __init__(self, yaml_path: str):
        """Initialize config loader from YAML file.

        Args:
            yaml_path: Path to YAML configuration file
        """
        self.yaml_path = Path(yaml_path)

    def load(self) -> ScoringConfig:
        """Load configuration from YAML file.

        Returns:
            ScoringConfig object; absent keys keep their defaults

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If a section has the wrong type
        """
        with open(self.yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        reference = self._section(data, "reference")
        table = self._section(data, "table")
        output = self._section(data, "output")
        scoring = self._section(data, "scoring")

        overrides = {
            str(name): (None if value is None else float(value))
            for name, value in (reference.get("overrides") or {}).items()
        }

        max_workers = scoring.get("max_workers")

        return ScoringConfig(
            reference_path=reference.get("path"),
            reference_profile=reference.get("profile"),
            reference_overrides=overrides,
            columns=ColumnMapping.from_dict(table.get("columns")),
            header_row=int(table.get("header_row", 0)),
            sheet_name=table.get("sheet", 0),
            delimiter=str(table.get("delimiter", ",")),
            decimal=str(table.get("decimal", ".")),
            thousands=table.get("thousands", ","),
            decimals=int(output.get("decimals", 1)),
            max_workers=int(max_workers) if max_workers is not None else None,
        )

    def _section(self, data: dict, name: str) -> dict:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Config section '{name}' in {self.yaml_path} must be a mapping")
        return section
