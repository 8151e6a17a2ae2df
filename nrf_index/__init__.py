"""NRF9.3 nutrient density scoring for food composition tables."""

__version__ = "0.1.0"
