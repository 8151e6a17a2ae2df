"""Formatters for NRF score output (DataFrame, Markdown and JSON).

Scores are kept at full precision by the scorer; rounding happens here.
"""

import json
from typing import Any, Dict, List, Optional

import pandas as pd

from nrf_index.data_layer.models import (
    Nutrient,
    NutrientGroup,
    NutrientPercent,
    ReferenceIntakeTable,
    SCORE_COLUMNS,
)
from nrf_index.scoring.nrf_scorer import BatchResult, RowRejection


def _round(value: float, decimals: Optional[int]) -> float:
    return value if decimals is None else round(value, decimals)


def attach_scores(frame: pd.DataFrame, batch: BatchResult,
                  decimals: Optional[int] = 1) -> pd.DataFrame:
    """Append NR100kcal, LIM100kcal and NRFscore columns to a table.

    Batch indices are row positions in ``frame``. Rejected rows get NaN.

    Args:
        frame: The table the batch was scored from
        batch: Result of NRFScorer.score_batch
        decimals: Digits to round to; None keeps full precision

    Returns:
        A new DataFrame; ``frame`` is not modified
    """
    result = frame.copy()
    for column in SCORE_COLUMNS:
        values = []
        for position in range(len(frame)):
            score_row = batch.scores.get(position)
            if score_row is None:
                values.append(float("nan"))
            else:
                values.append(_round(score_row.as_dict()[column], decimals))
        result[column] = values
    return result


def format_rejection(rejection: RowRejection) -> str:
    """Format a rejected row (e.g., "Row 3 (Water): [INVALID_INPUT] ...")."""
    label = f" ({rejection.label})" if rejection.label else ""
    return f"Row {rejection.index}{label}: [{rejection.code}] {rejection.message}"


def format_rejections(rejections: List[RowRejection]) -> str:
    return "\n".join(format_rejection(r) for r in rejections)


def format_nutrient_breakdown(percents: Dict[Nutrient, NutrientPercent],
                              decimals: int = 1,
                              indent: str = "") -> str:
    """Format per-nutrient percentages, one line per nutrient.

    Capped values are marked so the reader sees why a subscore stops at 100.
    """
    lines = []
    for group, title in ((NutrientGroup.ENCOURAGE, "Encourage"), (NutrientGroup.LIMIT, "Limit")):
        lines.append(f"{indent}**{title}:**")
        for nutrient in Nutrient:
            if nutrient.group is not group:
                continue
            percent = percents[nutrient]
            name = nutrient.value.replace("_", " ")
            if percent.missing:
                lines.append(f"{indent}- {name}: n/a")
                continue
            line = f"{indent}- {name}: {percent.capped_percent:.{decimals}f}%"
            if percent.raw_percent > percent.capped_percent:
                line += f" (capped from {percent.raw_percent:.{decimals}f}%)"
            lines.append(line)
    return "\n".join(lines)


def format_breakdown_json(percents: Dict[Nutrient, NutrientPercent],
                          decimals: Optional[int] = 1) -> Dict[str, Dict[str, Any]]:
    """Per-nutrient percentages as a JSON-ready dict keyed by nutrient name."""
    return {
        nutrient.value: {
            "group": nutrient.group.value,
            "raw_percent": None if p.raw_percent is None else _round(p.raw_percent, decimals),
            "capped_percent": _round(p.capped_percent, decimals),
        }
        for nutrient, p in percents.items()
    }


def format_scores_markdown(batch: BatchResult,
                           decimals: int = 1,
                           reference_intakes: Optional[ReferenceIntakeTable] = None,
                           breakdowns: Optional[Dict[int, Dict[Nutrient, NutrientPercent]]] = None) -> str:
    """Format a batch of scores as a Markdown report.

    Args:
        batch: Result of NRFScorer.score_batch
        decimals: Digits shown for scores
        reference_intakes: Shown as a table when given
        breakdowns: Row index -> per-nutrient percentages, shown per food
    """
    lines = ["# NRF9.3 Scores\n"]

    if batch.success:
        lines.append(f"✅ **Scored {len(batch.scores)} of {batch.total_rows} foods**\n")
    else:
        lines.append(
            f"⚠️ **Scored {len(batch.scores)} of {batch.total_rows} foods "
            f"({len(batch.rejections)} rejected)**\n"
        )

    if reference_intakes is not None:
        lines.append(f"## Reference Intakes ({reference_intakes.name})\n")
        lines.append("| Nutrient | Daily value |")
        lines.append("|---|---|")
        for nutrient in Nutrient:
            lines.append(f"| {nutrient.value} | {reference_intakes[nutrient]:g} {nutrient.unit} |")
        lines.append("")

    lines.append("## Scores\n")
    lines.append("| # | Food | " + " | ".join(SCORE_COLUMNS) + " |")
    lines.append("|---|---|---|---|---|")
    for index, score_row in batch.scores.items():
        label = batch.labels.get(index) or ""
        values = " | ".join(f"{v:.{decimals}f}" for v in score_row.as_dict().values())
        lines.append(f"| {index} | {label} | {values} |")
    lines.append("")

    if breakdowns:
        lines.append("## Nutrient Breakdown\n")
        for index, percents in breakdowns.items():
            label = batch.labels.get(index) or f"Row {index}"
            lines.append(f"### {label}")
            lines.append(format_nutrient_breakdown(percents, decimals))
            lines.append("")

    if batch.rejections:
        lines.append("## Rejected Rows\n")
        for rejection in batch.rejections:
            lines.append(f"- {format_rejection(rejection)}")
        lines.append("")

    return "\n".join(lines)


def format_scores_json(batch: BatchResult,
                       decimals: Optional[int] = 1,
                       reference_intakes: Optional[ReferenceIntakeTable] = None) -> Dict[str, Any]:
    """Format a batch of scores as a JSON-ready dict (for API usage)."""
    scores_json = []
    for index, score_row in batch.scores.items():
        entry: Dict[str, Any] = {"index": index, "label": batch.labels.get(index)}
        for column, value in score_row.as_dict().items():
            entry[column] = _round(value, decimals)
        scores_json.append(entry)

    rejections_json = [
        {
            "index": r.index,
            "label": r.label,
            "error_code": r.code,
            "message": r.message
        }
        for r in batch.rejections
    ]

    result: Dict[str, Any] = {
        "success": batch.success,
        "summary": {
            "total_rows": batch.total_rows,
            "scored": len(batch.scores),
            "rejected": len(batch.rejections)
        },
        "scores": scores_json,
        "rejections": rejections_json
    }
    if reference_intakes is not None:
        result["reference_profile"] = reference_intakes.name
        result["reference_intakes"] = reference_intakes.as_dict()
    return result


def format_scores_json_string(batch: BatchResult, indent: int = 2, **kwargs) -> str:
    """Format a batch of scores as a JSON string.

    Keyword arguments are passed to :func:`format_scores_json`.
    """
    return json.dumps(format_scores_json(batch, **kwargs), indent=indent)
