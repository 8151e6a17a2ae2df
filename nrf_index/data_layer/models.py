"""Data models for NRF9.3 scoring."""
import math
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from nrf_index.data_layer.exceptions import InvalidInputError, ShapeMismatchError


class NutrientGroup(Enum):
    """Which subscore a nutrient feeds."""

    ENCOURAGE = "encourage"  # NR100kcal
    LIMIT = "limit"  # LIM100kcal


class Nutrient(Enum):
    """The 12 nutrients scored by NRF9.3, in canonical order.

    Canonical order only matters for positional constructors; everything
    else is keyed by member.
    """

    PROTEIN = "protein"
    FIBER = "fiber"
    VITAMIN_A = "vitamin_a"
    VITAMIN_C = "vitamin_c"
    VITAMIN_E = "vitamin_e"
    CALCIUM = "calcium"
    IRON = "iron"
    MAGNESIUM = "magnesium"
    POTASSIUM = "potassium"
    SATURATED_FAT = "saturated_fat"
    TOTAL_SUGAR = "total_sugar"
    SODIUM = "sodium"

    @property
    def group(self) -> NutrientGroup:
        if self in _LIMIT_NUTRIENTS:
            return NutrientGroup.LIMIT
        return NutrientGroup.ENCOURAGE

    @property
    def unit(self) -> str:
        """Unit the amount (per 100 g of food) is expected in."""
        return NUTRIENT_UNITS[self]

    @classmethod
    def from_string(cls, name: str) -> Optional["Nutrient"]:
        """Look up a nutrient by name.

        Accepts "vitamin_a", "Vitamin A", "vitamin-a", "VITAMIN_A" and
        "VitaminA". Returns None for unknown names.
        """
        key = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", str(name).strip())
        key = re.sub(r"[\s\-]+", "_", key).lower()
        for nutrient in cls:
            if nutrient.value == key:
                return nutrient
        return None

    @classmethod
    def encouraged(cls) -> Tuple["Nutrient", ...]:
        return tuple(n for n in cls if n.group is NutrientGroup.ENCOURAGE)

    @classmethod
    def limited(cls) -> Tuple["Nutrient", ...]:
        return tuple(n for n in cls if n.group is NutrientGroup.LIMIT)


_LIMIT_NUTRIENTS = frozenset({
    Nutrient.SATURATED_FAT,
    Nutrient.TOTAL_SUGAR,
    Nutrient.SODIUM,
})

NUTRIENT_UNITS: Dict[Nutrient, str] = {
    Nutrient.PROTEIN: "g",
    Nutrient.FIBER: "g",
    Nutrient.VITAMIN_A: "ug",  # RAE
    Nutrient.VITAMIN_C: "mg",
    Nutrient.VITAMIN_E: "mg",
    Nutrient.CALCIUM: "mg",
    Nutrient.IRON: "mg",
    Nutrient.MAGNESIUM: "mg",
    Nutrient.POTASSIUM: "mg",
    Nutrient.SATURATED_FAT: "g",
    Nutrient.TOTAL_SUGAR: "g",
    Nutrient.SODIUM: "mg",
}

NutrientKey = Union[Nutrient, str]

SCORE_COLUMNS = ("NR100kcal", "LIM100kcal", "NRFscore")


def is_missing(value: Any) -> bool:
    """True for None and NaN (the two ways a blank cell arrives)."""
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return False


def _coerce_number(value: Any, field_name: str) -> Optional[float]:
    """Convert a cell value to float, keeping missing values as None."""
    if is_missing(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(field_name, value, "not a number")


def _key_by_nutrient(values: Mapping[NutrientKey, Any], source: str) -> Dict[Nutrient, Any]:
    """Re-key a mapping by Nutrient and check it covers each of the 12 nutrients once."""
    keyed: Dict[Nutrient, Any] = {}
    unexpected = []
    duplicated = []
    for key, value in values.items():
        nutrient = key if isinstance(key, Nutrient) else Nutrient.from_string(key)
        if nutrient is None:
            unexpected.append(str(key))
            continue
        if nutrient in keyed:
            duplicated.append(nutrient.value)
            continue
        keyed[nutrient] = value

    missing = [n.value for n in Nutrient if n not in keyed]
    if missing or unexpected or duplicated:
        raise ShapeMismatchError(source, missing=missing, unexpected=unexpected,
                                 duplicated=duplicated)
    return keyed


@dataclass(frozen=True)
class FoodRow:
    """One food: an amount per 100 g for each nutrient, plus energy density.

    Every nutrient must be present as a key; a value of None (or NaN) marks
    the amount as unknown.
    """

    nutrients: Mapping[Nutrient, Optional[float]]
    energy_kcal: Optional[float]  # kcal per 100 g
    label: Optional[str] = None

    def __post_init__(self):
        keyed = _key_by_nutrient(self.nutrients, "food row")
        normalized = {
            nutrient: _coerce_number(keyed[nutrient], nutrient.value)
            for nutrient in Nutrient
        }
        object.__setattr__(self, "nutrients", MappingProxyType(normalized))
        object.__setattr__(
            self, "energy_kcal", _coerce_number(self.energy_kcal, "energy_kcal")
        )

    @classmethod
    def from_sequence(
        cls,
        values: Sequence[Optional[float]],
        energy_kcal: Optional[float],
        label: Optional[str] = None
    ) -> "FoodRow":
        """Build a row from 12 amounts in canonical Nutrient order."""
        nutrients = list(Nutrient)
        if len(values) != len(nutrients):
            raise ShapeMismatchError(
                "food row",
                expected_count=len(nutrients),
                actual_count=len(values)
            )
        return cls(dict(zip(nutrients, values)), energy_kcal, label)

    def value(self, nutrient: Nutrient) -> Optional[float]:
        return self.nutrients[nutrient]


@dataclass(frozen=True)
class ReferenceIntakeTable:
    """Daily reference intake (DV) for each of the 12 nutrients.

    Immutable once built. Values must be positive and finite; they are the
    denominators of every nutrient percentage.
    """

    intakes: Mapping[Nutrient, float]
    name: str = "custom"

    def __post_init__(self):
        keyed = _key_by_nutrient(self.intakes, "reference intakes")
        normalized = {}
        for nutrient in Nutrient:
            field_name = f"reference intake for {nutrient.value}"
            value = _coerce_number(keyed[nutrient], field_name)
            if value is None or not math.isfinite(value) or value <= 0:
                raise InvalidInputError(
                    field_name, keyed[nutrient], "must be a positive finite number"
                )
            normalized[nutrient] = value
        object.__setattr__(self, "intakes", MappingProxyType(normalized))

    @classmethod
    def from_sequence(cls, values: Sequence[float], name: str = "custom") -> "ReferenceIntakeTable":
        """Build a table from 12 values in canonical Nutrient order."""
        nutrients = list(Nutrient)
        if len(values) != len(nutrients):
            raise ShapeMismatchError(
                "reference intakes",
                expected_count=len(nutrients),
                actual_count=len(values)
            )
        return cls(dict(zip(nutrients, values)), name=name)

    def __getitem__(self, nutrient: Nutrient) -> float:
        return self.intakes[nutrient]

    def as_dict(self) -> Dict[str, float]:
        """Nutrient name -> reference intake, in canonical order."""
        return {nutrient.value: self.intakes[nutrient] for nutrient in Nutrient}


@dataclass(frozen=True)
class NutrientPercent:
    """A nutrient's share of its reference intake per 100 kcal of food."""

    nutrient: Nutrient
    raw_percent: Optional[float]  # None when the amount is unknown
    capped_percent: float  # min(raw_percent, 100); 0 when unknown

    @property
    def missing(self) -> bool:
        return self.raw_percent is None


@dataclass(frozen=True)
class ScoreRow:
    """NRF9.3 scores for one food."""

    nr100kcal: float
    lim100kcal: float
    nrf_score: float

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(SCORE_COLUMNS, (self.nr100kcal, self.lim100kcal, self.nrf_score)))
