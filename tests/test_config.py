"""Tests for YAML scoring configuration."""

from pathlib import Path
from tempfile import NamedTemporaryFile

import pytest

from nrf_index.config import ScoringConfig, ScoringConfigLoader
from nrf_index.data_layer.exceptions import ShapeMismatchError
from nrf_index.data_layer.models import Nutrient


@pytest.fixture
def write_yaml():
    paths = []

    def _write(text):
        with NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(text)
            paths.append(f.name)
            return f.name

    yield _write
    for path in paths:
        Path(path).unlink()


class TestScoringConfigLoader:
    """Tests for ScoringConfigLoader."""

    def test_load_full_config(self, write_yaml):
        path = write_yaml("""
reference:
  path: custom/daily_values.json
  profile: fda_2016
  overrides:
    sodium: 2300
    fiber: null
table:
  header_row: 2
  sheet: Foods
  delimiter: ";"
  decimal: ","
  thousands: null
  columns:
    label: Food name
    energy: Energy (kcal)
    nutrients:
      protein: Protein (g)
output:
  decimals: 2
scoring:
  max_workers: 4
""")
        config = ScoringConfigLoader(path).load()

        assert config.reference_path == "custom/daily_values.json"
        assert config.reference_profile == "fda_2016"
        assert config.reference_overrides == {"sodium": 2300.0, "fiber": None}
        assert config.header_row == 2
        assert config.sheet_name == "Foods"
        assert config.delimiter == ";"
        assert config.decimal == ","
        assert config.thousands is None
        assert config.columns.label == "Food name"
        assert config.columns.energy == "Energy (kcal)"
        assert config.columns.nutrients[Nutrient.PROTEIN] == "Protein (g)"
        assert config.columns.nutrients[Nutrient.FIBER] == "fiber_g"
        assert config.decimals == 2
        assert config.max_workers == 4

    def test_empty_file_gives_defaults(self, write_yaml):
        path = write_yaml("")
        assert ScoringConfigLoader(path).load() == ScoringConfig()

    def test_partial_config(self, write_yaml):
        path = write_yaml("output:\n  decimals: 0\n")
        config = ScoringConfigLoader(path).load()

        assert config.decimals == 0
        assert config.reference_profile is None
        assert config.max_workers is None

    def test_section_must_be_mapping(self, write_yaml):
        path = write_yaml("table: [1, 2]\n")
        with pytest.raises(ValueError) as exc_info:
            ScoringConfigLoader(path).load()
        assert "table" in str(exc_info.value)

    def test_unknown_nutrient_column_raises(self, write_yaml):
        path = write_yaml("table:\n  columns:\n    nutrients:\n      zinc: Zn\n")
        with pytest.raises(ShapeMismatchError):
            ScoringConfigLoader(path).load()

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            ScoringConfigLoader("/nonexistent/scoring.yaml").load()

    def test_example_config_loads(self):
        """Test that the shipped example config is valid."""
        example = Path(__file__).parent.parent / "config" / "scoring.yaml.example"
        config = ScoringConfigLoader(str(example)).load()

        assert config.reference_profile == "nrf93_2009"
        assert config.columns.label == "food_name"
        assert config.max_workers == 1
