"""Column mapping from source-table headers to scored nutrients.

Columns are bound by header name, never by position, so a source table may
list its nutrients in any order and carry any number of extra columns.
Header matching ignores case and surrounding whitespace.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from nrf_index.data_layer.exceptions import ShapeMismatchError
from nrf_index.data_layer.models import Nutrient

DEFAULT_ENERGY_COLUMN = "energy_kcal"


def default_nutrient_columns() -> Dict[Nutrient, str]:
    """Header per nutrient, e.g. "protein_g", "vitamin_a_ug", "sodium_mg"."""
    return {nutrient: f"{nutrient.value}_{nutrient.unit}" for nutrient in Nutrient}


def _header_key(header: Any) -> str:
    return str(header).strip().lower()


@dataclass
class ColumnMapping:
    """Which source column holds each nutrient, the energy and the food label.

    Nutrients left out of ``nutrients`` keep their default header.
    """

    nutrients: Dict[Nutrient, str] = field(default_factory=default_nutrient_columns)
    energy: str = DEFAULT_ENERGY_COLUMN
    label: Optional[str] = None

    def __post_init__(self):
        columns = default_nutrient_columns()
        unexpected = []
        duplicated = []
        seen = set()
        for key, header in self.nutrients.items():
            nutrient = key if isinstance(key, Nutrient) else Nutrient.from_string(key)
            if nutrient is None:
                unexpected.append(str(key))
                continue
            if nutrient in seen:
                duplicated.append(nutrient.value)
                continue
            seen.add(nutrient)
            columns[nutrient] = str(header)
        if unexpected or duplicated:
            raise ShapeMismatchError("column mapping", unexpected=unexpected,
                                     duplicated=duplicated)
        self.nutrients = columns

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ColumnMapping":
        """Build a mapping from a config section.

        Expected shape::

            {"energy": "Energy (kcal/100 g)",
             "label": "Food name",
             "nutrients": {"protein": "Protein (g/100 g)", ...}}
        """
        data = data or {}
        return cls(
            nutrients=dict(data.get("nutrients") or {}),
            energy=str(data.get("energy", DEFAULT_ENERGY_COLUMN)),
            label=data.get("label"),
        )

    def required_columns(self) -> List[str]:
        """Headers that must exist: the 12 nutrients then energy."""
        return [self.nutrients[n] for n in Nutrient] + [self.energy]

    def resolve(self, headers: Iterable[Any]) -> Dict[str, Any]:
        """Match mapped headers against a table's actual headers.

        Returns:
            Dict from nutrient value (plus "energy" and, if configured,
            "label") to the table's header object

        Raises:
            ShapeMismatchError: If any mapped column is absent from the table
        """
        actual = {}
        for header in headers:
            actual.setdefault(_header_key(header), header)

        wanted = {nutrient.value: self.nutrients[nutrient] for nutrient in Nutrient}
        wanted["energy"] = self.energy
        if self.label:
            wanted["label"] = self.label

        resolved = {}
        missing = []
        for role, header in wanted.items():
            key = _header_key(header)
            if key in actual:
                resolved[role] = actual[key]
            else:
                missing.append(header)

        if missing:
            raise ShapeMismatchError("source table", missing=missing)
        return resolved
