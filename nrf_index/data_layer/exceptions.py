"""Structured error types for NRF scoring.

Two failure modes exist:

- INVALID_INPUT: a value the score cannot be computed from (energy that is
  missing, zero, negative or infinite; a negative or infinite nutrient
  amount; a non-positive reference intake).
- SHAPE_MISMATCH: the nutrient set carried by a food row, a reference intake
  table or a source table does not match the 12 scored nutrients.

Missing individual nutrient values are NOT errors: they contribute 0 to
their subscore.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional


class ScoringErrorCode(Enum):
    """Error codes for the scoring pipeline.

    Codes are string values for easy serialization.
    """

    INVALID_INPUT = "INVALID_INPUT"
    SHAPE_MISMATCH = "SHAPE_MISMATCH"


class ScoringError(Exception):
    """Base exception for all scoring errors.

    Attributes:
        code: ScoringErrorCode identifying the error type
        message: Human-readable error description
        context: Dictionary of relevant error context (row index, nutrient, etc.)
    """

    def __init__(
        self,
        code: ScoringErrorCode,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.context = context or {}
        super().__init__(f"[{code.value}] {message}")

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code!r}, "
            f"message={self.message!r}, "
            f"context={self.context!r})"
        )

    @property
    def row_index(self) -> Optional[int]:
        """Index of the offending input row, if the error is tied to one."""
        return self.context.get("row_index")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "context": self.context
        }


class InvalidInputError(ScoringError):
    """Raised when a value makes the score undefined or misleading.

    Context includes:
        - field: "energy_kcal", a nutrient name, or "reference_intake"
        - value: the rejected value
        - row_index / label: the offending row, when known
    """

    def __init__(
        self,
        field: str,
        value: Any,
        reason: str,
        row_index: Optional[int] = None,
        label: Optional[str] = None
    ):
        context: Dict[str, Any] = {"field": field, "value": value}
        if row_index is not None:
            context["row_index"] = row_index
        if label is not None:
            context["label"] = label

        message = f"Invalid {field} {value!r}: {reason}"
        if row_index is not None:
            message = f"Row {row_index}: {message}"

        super().__init__(
            code=ScoringErrorCode.INVALID_INPUT,
            message=message,
            context=context
        )

        self.field = field
        self.value = value
        self.reason = reason


class ShapeMismatchError(ScoringError):
    """Raised when a nutrient set does not match the 12 scored nutrients.

    Context includes:
        - source: what carried the wrong shape ("food row", "reference intakes",
          "source table")
        - missing: expected nutrients/columns that were absent
        - unexpected: names that are not scored nutrients
        - duplicated: nutrients given under more than one alias
        - expected_count / actual_count: for positional inputs
    """

    def __init__(
        self,
        source: str,
        missing: Iterable[str] = (),
        unexpected: Iterable[str] = (),
        expected_count: Optional[int] = None,
        actual_count: Optional[int] = None,
        row_index: Optional[int] = None,
        duplicated: Iterable[str] = ()
    ):
        missing = sorted(missing)
        unexpected = sorted(unexpected)
        duplicated = sorted(set(duplicated))
        context: Dict[str, Any] = {
            "source": source,
            "missing": missing,
            "unexpected": unexpected,
        }
        if duplicated:
            context["duplicated"] = duplicated
        parts = []
        if expected_count is not None:
            context["expected_count"] = expected_count
            context["actual_count"] = actual_count
            parts.append(f"expected {expected_count} values, got {actual_count}")
        if missing:
            parts.append(f"missing: {', '.join(missing)}")
        if unexpected:
            parts.append(f"unexpected: {', '.join(unexpected)}")
        if duplicated:
            parts.append(f"given more than once: {', '.join(duplicated)}")
        if row_index is not None:
            context["row_index"] = row_index

        message = f"Shape mismatch in {source}"
        if parts:
            message += f" ({'; '.join(parts)})"
        if row_index is not None:
            message = f"Row {row_index}: {message}"

        super().__init__(
            code=ScoringErrorCode.SHAPE_MISMATCH,
            message=message,
            context=context
        )

        self.source = source
        self.missing = missing
        self.unexpected = unexpected
        self.duplicated = duplicated
