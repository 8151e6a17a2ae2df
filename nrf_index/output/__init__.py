"""Output formatting for NRF scores."""

from nrf_index.output.formatters import (
    attach_scores,
    format_breakdown_json,
    format_nutrient_breakdown,
    format_rejection,
    format_rejections,
    format_scores_json,
    format_scores_json_string,
    format_scores_markdown
)

__all__ = [
    "attach_scores",
    "format_breakdown_json",
    "format_nutrient_breakdown",
    "format_rejection",
    "format_rejections",
    "format_scores_json",
    "format_scores_json_string",
    "format_scores_markdown"
]
