"""Scoring module for NRF9.3 nutrient density."""

from .nrf_scorer import (
    NRFScorer,
    BatchResult,
    RowRejection,
    nutrient_percents,
    score
)

__all__ = [
    "NRFScorer",
    "BatchResult",
    "RowRejection",
    "nutrient_percents",
    "score"
]
