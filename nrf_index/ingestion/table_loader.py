"""Food composition table loader.

Turns a spreadsheet or CSV (local path or http(s) URL) into clean FoodRows:

1. Read every cell as raw text, with no header
2. Promote the configured header row (tables often carry title rows above it)
3. Select the 12 nutrient columns and the energy column by name
4. Coerce cells to numbers; blanks and non-numeric markers become missing
5. Drop rows whose energy is missing or not positive

The cleaned DataFrame keeps every source column so scores can be joined
back onto the full table.
"""

import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

import pandas as pd
import requests
from xlrd import XLRDError
from xlrd.compdoc import CompDocError

from nrf_index.data_layer.models import FoodRow, Nutrient
from nrf_index.ingestion.column_mapping import ColumnMapping

logger = logging.getLogger(__name__)


class TableLoadError(Exception):
    """Raised when a source table cannot be read."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot load table from {source}: {reason}")


@dataclass
class FoodTable:
    """A cleaned food table.

    Attributes:
        frame: Source table after header promotion and energy filtering;
            mapped columns hold numbers (NaN for missing)
        rows: One FoodRow per frame row, same order
        dropped: Rows removed for missing or non-positive energy
        source: Where the table came from
    """
    frame: pd.DataFrame
    rows: List[FoodRow] = field(default_factory=list)
    dropped: int = 0
    source: str = ""


def _clean_cell(value: Any, decimal: str = ".", thousands: Optional[str] = ",") -> Any:
    """Normalize a text cell before numeric coercion.

    With the defaults "1,200" -> "1200" and "1,234.5" -> "1234.5"; with
    decimal="," and thousands="." "1.234,5" -> "1234.5" and "2,5" -> "2.5".
    Non-text cells pass through unchanged.
    """
    if not isinstance(value, str):
        return value
    text = value.strip().replace(" ", "")
    if thousands:
        text = text.replace(thousands, "")
    if decimal != ".":
        text = text.replace(decimal, ".")
    return text


def _is_url(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


class FoodTableLoader:
    """Loads and cleans food composition tables.

    Usage:
        loader = FoodTableLoader(ColumnMapping(label="name"))
        table = loader.load("data/foods.csv")
        scores = scorer.score(table.rows)
    """

    FORMATS = {
        ".csv": "csv",
        ".txt": "csv",
        ".xlsx": "excel",
        ".xls": "excel",
    }

    def __init__(self,
                 mapping: Optional[ColumnMapping] = None,
                 header_row: int = 0,
                 sheet_name: Union[str, int] = 0,
                 delimiter: str = ",",
                 decimal: str = ".",
                 thousands: Optional[str] = ",",
                 timeout: int = 30):
        """Initialize loader.

        Args:
            mapping: Header names for nutrients, energy and label
            header_row: Zero-based row holding the column headers
            sheet_name: Excel sheet name or index
            delimiter: CSV field separator
            decimal: Decimal mark used in text cells ("." or ",")
            thousands: Digit-group separator in text cells; None if unused
            timeout: HTTP timeout in seconds for URL sources
        """
        if header_row < 0:
            raise ValueError(f"header_row must be non-negative, got {header_row}")
        if not decimal or decimal == thousands:
            raise ValueError(
                f"decimal mark {decimal!r} must be set and differ from thousands {thousands!r}"
            )
        self.mapping = mapping or ColumnMapping()
        self.header_row = header_row
        self.sheet_name = sheet_name
        self.delimiter = delimiter
        self.decimal = decimal
        self.thousands = thousands or None
        self.timeout = timeout

    def load(self, source: Union[str, Path], file_format: Optional[str] = None) -> FoodTable:
        """Read and clean a table.

        Args:
            source: Local path or http(s) URL
            file_format: "csv" or "excel"; inferred from the extension if None

        Raises:
            FileNotFoundError: If a local path does not exist
            TableLoadError: If the source cannot be fetched or parsed
            ShapeMismatchError: If a mapped column is missing
        """
        source = str(source)
        raw = self.read(source, file_format)
        return self.prepare(raw, source)

    def read(self, source: str, file_format: Optional[str] = None) -> pd.DataFrame:
        """Read a table with its header row promoted; all cells left as read."""
        file_format = file_format or self._infer_format(source)
        content = self._fetch(source)

        try:
            if file_format == "csv":
                raw = pd.read_csv(io.BytesIO(content), header=None, dtype=str,
                                  sep=self.delimiter, skip_blank_lines=False)
            elif file_format == "excel":
                raw = pd.read_excel(io.BytesIO(content), header=None, dtype=object,
                                    sheet_name=self.sheet_name)
            else:
                raise TableLoadError(source, f"unsupported format '{file_format}'")
        except (ValueError, pd.errors.ParserError) as e:
            raise TableLoadError(source, str(e))
        except ImportError as e:
            raise TableLoadError(source, f"missing spreadsheet engine: {e}")
        except (zipfile.BadZipFile, XLRDError, CompDocError) as e:
            raise TableLoadError(source, f"corrupt spreadsheet: {e}")

        return self._promote_header(raw, source)

    def prepare(self, frame: pd.DataFrame, source: str = "") -> FoodTable:
        """Select, coerce and filter an already-read table.

        Raises:
            ShapeMismatchError: If a mapped column is missing
        """
        columns = self.mapping.resolve(frame.columns)
        frame = frame.copy()

        numeric_roles = [n.value for n in Nutrient] + ["energy"]
        for role in numeric_roles:
            header = columns[role]
            cleaned = frame[header].map(
                lambda value: _clean_cell(value, self.decimal, self.thousands)
            )
            frame[header] = pd.to_numeric(cleaned, errors="coerce")

        energy = frame[columns["energy"]]
        keep = energy > 0
        dropped = int((~keep).sum())
        if dropped:
            logger.info("Dropped %d rows with missing or non-positive energy", dropped)

        frame = frame.loc[keep].reset_index(drop=True)
        rows = [self._build_row(record, columns) for record in frame.to_dict("records")]

        logger.info("Loaded %d food rows from %s", len(rows), source or "frame")
        return FoodTable(frame=frame, rows=rows, dropped=dropped, source=source)

    def _build_row(self, record: Dict[Any, Any], columns: Dict[str, Any]) -> FoodRow:
        nutrients = {n: record[columns[n.value]] for n in Nutrient}
        label = None
        if "label" in columns:
            raw_label = record[columns["label"]]
            label = None if pd.isna(raw_label) else str(raw_label).strip()
        return FoodRow(nutrients, record[columns["energy"]], label)

    def _promote_header(self, raw: pd.DataFrame, source: str) -> pd.DataFrame:
        if self.header_row >= len(raw):
            raise TableLoadError(
                source, f"header row {self.header_row} is beyond the table's {len(raw)} rows"
            )
        header = [
            f"column_{i}" if pd.isna(value) else str(value).strip()
            for i, value in enumerate(raw.iloc[self.header_row])
        ]
        body = raw.iloc[self.header_row + 1:].reset_index(drop=True)
        body.columns = header
        return body.dropna(how="all").reset_index(drop=True)

    def _infer_format(self, source: str) -> str:
        path = urlparse(source).path if _is_url(source) else source
        suffix = Path(path).suffix.lower()
        if suffix not in self.FORMATS:
            raise TableLoadError(
                source,
                f"cannot infer format from extension '{suffix}'. "
                f"Supported: {', '.join(sorted(self.FORMATS))}"
            )
        return self.FORMATS[suffix]

    def _fetch(self, source: str) -> bytes:
        if _is_url(source):
            return self._download(source)
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Food table not found: {path}")
        return path.read_bytes()

    def _download(self, url: str) -> bytes:
        logger.info("Downloading food table from %s", url)
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise TableLoadError(url, "request timed out")
        except requests.exceptions.ConnectionError:
            raise TableLoadError(url, "connection failed")
        except requests.exceptions.RequestException as e:
            raise TableLoadError(url, f"request failed: {e}")

        if response.status_code != 200:
            raise TableLoadError(url, f"server returned status {response.status_code}")
        return response.content
