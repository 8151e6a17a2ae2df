"""FastAPI server for NRF9.3 food scoring."""

import os
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from nrf_index.data_layer.exceptions import ScoringError
from nrf_index.data_layer.models import FoodRow, Nutrient, ReferenceIntakeTable
from nrf_index.data_layer.reference_intakes import (
    DEFAULT_REFERENCE_PATH,
    ReferenceIntakeLoader,
    resolve_reference_intakes,
)
from nrf_index.output.formatters import format_breakdown_json, format_scores_json
from nrf_index.scoring.nrf_scorer import BatchResult, NRFScorer


reference_path = os.getenv("NRF_REFERENCE_PATH", str(DEFAULT_REFERENCE_PATH))

app = FastAPI(title="NRF Index API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Local development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class FoodItem(BaseModel):
    label: Optional[str] = None
    energy_kcal: Optional[float] = None
    nutrients: Dict[str, Optional[float]] = Field(default_factory=dict)


class ScoreRequest(BaseModel):
    profile: Optional[str] = None
    overrides: Dict[str, Optional[float]] = Field(default_factory=dict)
    decimals: Optional[int] = None
    include_breakdown: bool = False
    foods: List[FoodItem]


def _resolve_reference(profile: Optional[str],
                       overrides: Optional[Dict[str, Optional[float]]] = None) -> ReferenceIntakeTable:
    loader = ReferenceIntakeLoader(reference_path)
    try:
        return resolve_reference_intakes(loader, profile, overrides)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc
    except ScoringError as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict()) from exc
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=500, detail=f"Reference data unavailable: {exc}") from exc


@app.post("/api/score")
def score_foods(request: ScoreRequest) -> Dict[str, Any]:
    reference_intakes = _resolve_reference(request.profile, request.overrides)
    scorer = NRFScorer(reference_intakes)

    batch = BatchResult()
    rows: Dict[int, FoodRow] = {}
    for index, item in enumerate(request.foods):
        try:
            row = FoodRow(item.nutrients, item.energy_kcal, item.label)
        except ScoringError as exc:
            batch.reject(index, item.label, exc)
            continue
        rows[index] = row
        scorer.score_into(batch, index, row)

    result = format_scores_json(batch, decimals=request.decimals,
                                reference_intakes=reference_intakes)
    if request.include_breakdown:
        for entry in result["scores"]:
            percents = scorer.nutrient_percents(rows[entry["index"]])
            entry["breakdown"] = format_breakdown_json(percents, decimals=request.decimals)
    return result


@app.get("/api/reference-intakes")
def list_reference_profiles() -> Dict[str, Any]:
    loader = ReferenceIntakeLoader(reference_path)
    try:
        return {
            "default_profile": loader.default_profile,
            "profiles": loader.get_available_profiles()
        }
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=500, detail=f"Reference data unavailable: {exc}") from exc


@app.get("/api/reference-intakes/{profile}")
def get_reference_intakes(profile: str) -> Dict[str, Any]:
    reference_intakes = _resolve_reference(profile)
    return {
        "profile": reference_intakes.name,
        "intakes": reference_intakes.as_dict(),
        "units": {nutrient.value: nutrient.unit for nutrient in Nutrient}
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
