"""Food table ingestion: reading, column selection and cleaning."""

from nrf_index.ingestion.column_mapping import (
    ColumnMapping,
    DEFAULT_ENERGY_COLUMN,
    default_nutrient_columns,
)
from nrf_index.ingestion.table_loader import (
    FoodTable,
    FoodTableLoader,
    TableLoadError,
)

__all__ = [
    "ColumnMapping",
    "DEFAULT_ENERGY_COLUMN",
    "default_nutrient_columns",
    "FoodTable",
    "FoodTableLoader",
    "TableLoadError",
]
