from __future__ import annotations

import os
import logging
from typing import Any, Dict

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from smart_budget import config
from smart_budget.engine.ranker import recommend
from smart_budget.engine.trip_context import derive_user_params
from smart_budget.engine.tuning import SettingsValidationError, rebalance, save_settings
from smart_budget.schemas import (
    AlgorithmSettings,
    AlgorithmSettingsWrite,
    RebalanceRequest,
    RecommendationRequest,
    RecommendationResponse,
    SettingsResponse,
    TripRecommendationRequest,
)
from smart_budget.tools.store import DataStore, StoreError

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("SMART_BUDGET_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

app = FastAPI(title="Smart Budget Recommendation API")

# Operators can narrow this via SMART_BUDGET_ALLOWED_ORIGINS.
raw_origins = os.getenv("SMART_BUDGET_ALLOWED_ORIGINS") or "*"
allowed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def build_store() -> DataStore:
    return DataStore()

def _validate(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False)) from exc

@app.post("/api/recommendations", response_model=RecommendationResponse)
async def api_recommendations(payload: Dict[str, Any] = Body(...)) -> RecommendationResponse:
    """Rank venues of one category for explicit user parameters."""
    req = _validate(RecommendationRequest, payload)
    try:
        ranked = await recommend(build_store(), req.user_params, req.category, req.current_spend)
    except Exception as exc:
        logger.error("Get recommendations error", exc_info=True)
        return RecommendationResponse(success=False, error=str(exc) or "Failed to get recommendations")
    return RecommendationResponse(success=True, data=ranked)

@app.post("/api/trips/recommendations", response_model=RecommendationResponse)
async def api_trip_recommendations(payload: Dict[str, Any] = Body(...)) -> RecommendationResponse:
    """Rank venues for a trip snapshot, deriving budget, anchor and spend from it."""
    req = _validate(TripRecommendationRequest, payload)
    try:
        params, spend = derive_user_params(req.trip)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        ranked = await recommend(build_store(), params, req.category, spend)
    except Exception as exc:
        logger.error("Get trip recommendations error", exc_info=True)
        return RecommendationResponse(success=False, error=str(exc) or "Failed to get recommendations")
    return RecommendationResponse(success=True, data=ranked)

@app.get("/api/admin/algorithm", response_model=SettingsResponse)
async def api_get_algorithm() -> SettingsResponse:
    result = await config.fetch_settings(build_store())
    if not result.ok:
        logger.info("Serving default algorithm settings (%s)", result.error)
    return SettingsResponse(
        settings=result.unwrap_or_default(),
        source="store" if result.ok else "default",
    )

@app.put("/api/admin/algorithm", response_model=SettingsResponse)
async def api_put_algorithm(payload: Dict[str, Any] = Body(...)) -> SettingsResponse:
    settings = _validate(AlgorithmSettingsWrite, payload)
    try:
        saved = await save_settings(build_store(), settings)
    except SettingsValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"invariant": exc.invariant, "total": round(exc.total, 4), "message": str(exc)},
        ) from exc
    except StoreError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to update algorithm settings: {exc}") from exc
    return SettingsResponse(settings=saved, source="store")

@app.post("/api/admin/algorithm/rebalance", response_model=AlgorithmSettings)
async def api_rebalance_algorithm(payload: Dict[str, Any] = Body(...)) -> AlgorithmSettings:
    """Apply one slider change and renormalise its group; nothing is persisted."""
    req = _validate(RebalanceRequest, payload)
    return rebalance(req.settings, req.field, req.value)
