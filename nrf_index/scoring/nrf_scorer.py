"""NRF9.3 (Nutrient Rich Foods) scoring.

For each food and each nutrient:

    percent = (amount / energy_kcal * 100) / reference_intake * 100
    capped  = min(percent, 100)

NR100kcal sums the capped percents of the 9 nutrients to encourage,
LIM100kcal those of the 3 nutrients to limit, and
NRFscore = NR100kcal - LIM100kcal.

Unknown amounts contribute 0. Energy is never defaulted: a row without a
positive, finite energy density cannot be scored.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from nrf_index.data_layer.exceptions import InvalidInputError, ScoringError
from nrf_index.data_layer.models import (
    FoodRow,
    Nutrient,
    NutrientPercent,
    ReferenceIntakeTable,
    ScoreRow,
)

logger = logging.getLogger(__name__)

PERCENT_CAP = 100.0
KCAL_BASIS = 100.0


@dataclass
class RowRejection:
    """A row that could not be scored, and why."""
    index: int
    label: Optional[str]
    code: str  # ScoringErrorCode value
    message: str


@dataclass
class BatchResult:
    """Outcome of scoring a table row by row.

    ``scores`` maps input row index to its ScoreRow, in input order.
    Rejected rows appear only in ``rejections``.
    """
    scores: Dict[int, ScoreRow] = field(default_factory=dict)
    rejections: List[RowRejection] = field(default_factory=list)
    labels: Dict[int, Optional[str]] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return len(self.scores) + len(self.rejections)

    @property
    def success(self) -> bool:
        return not self.rejections

    def reject(self, index: int, label: Optional[str], error: ScoringError) -> None:
        """Record a row that could not be scored."""
        logger.warning("Rejected row %d (%s): %s", index, label or "unlabeled", error.message)
        self.labels[index] = label
        self.rejections.append(RowRejection(
            index=index,
            label=label,
            code=error.code.value,
            message=error.message
        ))


def _check_row(row: FoodRow, row_index: Optional[int]) -> float:
    """Validate energy and amounts; return the energy density."""
    energy = row.energy_kcal
    if energy is None:
        raise InvalidInputError("energy_kcal", energy, "energy is missing",
                                row_index=row_index, label=row.label)
    if not math.isfinite(energy) or energy <= 0:
        raise InvalidInputError("energy_kcal", energy, "energy must be positive and finite",
                                row_index=row_index, label=row.label)

    for nutrient in Nutrient:
        amount = row.value(nutrient)
        if amount is None:
            continue
        if amount < 0:
            raise InvalidInputError(nutrient.value, amount, "amount cannot be negative",
                                    row_index=row_index, label=row.label)
        if math.isinf(amount):
            raise InvalidInputError(nutrient.value, amount, "amount must be finite",
                                    row_index=row_index, label=row.label)
    return energy


def _percents(row: FoodRow, energy: float,
              reference_intakes: ReferenceIntakeTable) -> Dict[Nutrient, NutrientPercent]:
    percents = {}
    for nutrient in Nutrient:
        amount = row.value(nutrient)
        if amount is None:
            percents[nutrient] = NutrientPercent(nutrient, None, 0.0)
            continue
        per_basis = amount / energy * KCAL_BASIS
        raw = per_basis / reference_intakes[nutrient] * 100
        percents[nutrient] = NutrientPercent(nutrient, raw, min(raw, PERCENT_CAP))
    return percents


def nutrient_percents(row: FoodRow,
                      reference_intakes: ReferenceIntakeTable) -> Dict[Nutrient, NutrientPercent]:
    """Per-nutrient breakdown of a row's score, keyed in canonical order.

    Raises:
        InvalidInputError: If energy or an amount is invalid
    """
    energy = _check_row(row, None)
    return _percents(row, energy, reference_intakes)


def _combine(percents: Dict[Nutrient, NutrientPercent]) -> ScoreRow:
    nr = sum(percents[n].capped_percent for n in Nutrient.encouraged())
    lim = sum(percents[n].capped_percent for n in Nutrient.limited())
    return ScoreRow(nr100kcal=nr, lim100kcal=lim, nrf_score=nr - lim)


class NRFScorer:
    """Scores food rows against a fixed reference intake table.

    Stateless apart from its configuration; safe to share between threads.
    """

    def __init__(self,
                 reference_intakes: ReferenceIntakeTable,
                 max_workers: Optional[int] = None):
        """Initialize scorer.

        Args:
            reference_intakes: Daily reference intakes for the 12 nutrients
            max_workers: Thread count for whole-table scoring; None or 1
                scores sequentially
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.reference_intakes = reference_intakes
        self.max_workers = max_workers

    def nutrient_percents(self, row: FoodRow) -> Dict[Nutrient, NutrientPercent]:
        return nutrient_percents(row, self.reference_intakes)

    def score_row(self, row: FoodRow, row_index: Optional[int] = None) -> ScoreRow:
        """Score a single food.

        Args:
            row: Food to score
            row_index: Position of the row in its table, reported in errors

        Raises:
            InvalidInputError: If energy is missing, non-positive or
                non-finite, or an amount is negative or infinite
        """
        energy = _check_row(row, row_index)
        return _combine(_percents(row, energy, self.reference_intakes))

    def _score_indexed(self, indexed_row) -> ScoreRow:
        index, row = indexed_row
        return self.score_row(row, row_index=index)

    def _score_or_error(self, indexed_row) -> Union[ScoreRow, ScoringError]:
        try:
            return self._score_indexed(indexed_row)
        except ScoringError as e:
            return e

    def _map(self, func, rows: Sequence[FoodRow]) -> list:
        """Apply ``func`` to (index, row) pairs, in input order."""
        indexed = list(enumerate(rows))
        if self.max_workers and self.max_workers > 1 and len(indexed) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                return list(executor.map(func, indexed))
        return [func(item) for item in indexed]

    def score(self, rows: Sequence[FoodRow]) -> List[ScoreRow]:
        """Score every row; output row i belongs to input row i.

        All or nothing: the first invalid row fails the whole call and no
        scores are returned.

        Raises:
            InvalidInputError: For the first row that cannot be scored
        """
        scores = self._map(self._score_indexed, rows)
        logger.debug("Scored %d rows", len(scores))
        return scores

    def score_into(self, batch: BatchResult, index: int, row: FoodRow) -> None:
        """Score one row into ``batch``, recording a rejection on failure."""
        try:
            score_row = self.score_row(row, row_index=index)
        except ScoringError as e:
            batch.reject(index, row.label, e)
            return
        batch.labels[index] = row.label
        batch.scores[index] = score_row

    def score_batch(self, rows: Sequence[FoodRow]) -> BatchResult:
        """Score every valid row and record the rows that fail.

        Unlike :meth:`score`, one bad row does not abort the table.
        """
        result = BatchResult()
        outcomes = self._map(self._score_or_error, rows)
        for index, (row, outcome) in enumerate(zip(rows, outcomes)):
            if isinstance(outcome, ScoringError):
                result.reject(index, row.label, outcome)
            else:
                result.labels[index] = row.label
                result.scores[index] = outcome

        logger.info(
            "Scored %d of %d rows (%d rejected)",
            len(result.scores), result.total_rows, len(result.rejections)
        )
        return result


def score(rows: Sequence[FoodRow], reference_intakes: ReferenceIntakeTable) -> List[ScoreRow]:
    """Score a table of foods sequentially. See :meth:`NRFScorer.score`."""
    return NRFScorer(reference_intakes).score(rows)
