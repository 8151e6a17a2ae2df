"""Shared test fixtures."""

import pytest

from nrf_index.data_layer.models import FoodRow, Nutrient, ReferenceIntakeTable

# protein ... sodium, canonical order
REFERENCE_VALUES = [50, 25, 800, 60, 20, 1000, 18, 400, 3500, 20, 125, 2400]


def make_row(energy_kcal=200.0, label=None, **amounts):
    """Food row with every nutrient at 0 except the given amounts."""
    nutrients = {nutrient: 0.0 for nutrient in Nutrient}
    for name, value in amounts.items():
        nutrients[Nutrient.from_string(name)] = value
    return FoodRow(nutrients, energy_kcal, label)


@pytest.fixture
def reference_intakes():
    """Reference intakes from the NRF9.3 example."""
    return ReferenceIntakeTable.from_sequence(REFERENCE_VALUES, name="nrf93_2009")


@pytest.fixture
def example_row():
    """Protein 10 g, fiber 5 g, saturated fat 2 g, sodium 200 mg at 200 kcal."""
    return make_row(
        energy_kcal=200.0,
        label="example food",
        protein=10.0,
        fiber=5.0,
        saturated_fat=2.0,
        sodium=200.0,
    )
