"""Budget-aware venue ranking."""
from __future__ import annotations

from typing import Any, Iterable, List, Optional
import logging
import os

from pydantic import ValidationError

from smart_budget import config
from smart_budget.engine.affinity import affinity
from smart_budget.engine.budget import allocate
from smart_budget.engine.geo import distance_km
from smart_budget.engine.pricing import estimated_price
from smart_budget.schemas import AlgorithmSettings, Candidate, Category, RankedLocation, UserParams
from smart_budget.tools.store import StoreError

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("SMART_BUDGET_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

MAX_RESULTS = 20


def price_score(estimate: float, bucket: float, weight_price_fit: float) -> float:
    if estimate <= bucket:
        return 100.0
    if bucket <= 0:
        # nothing left to spend; any positive price is a full miss
        return 0.0
    overage = estimate - bucket
    penalty = (overage / bucket) * 100 * weight_price_fit
    return max(0.0, 100 - penalty)


def score_candidate(
    settings: AlgorithmSettings,
    params: UserParams,
    category: Category,
    candidate: Candidate,
    bucket: float,
) -> RankedLocation:
    """Score a single candidate that has both coordinates.

    Each component weight is applied inside its sub-score and again in the
    final sum. Tuned values in the store were calibrated against this exact
    formula, so the compounding stays.
    """
    estimate = estimated_price(candidate, category, params.group_size, params.days)
    p_score = price_score(estimate, bucket, settings.weight_price_fit)

    km = distance_km(params.anchor_coords, candidate.point)
    d_score = max(0.0, 100 - km * settings.penalty_per_km * settings.weight_distance)

    a_score = affinity(params.preferences, candidate.tags) * settings.weight_affinity

    r_score = (candidate.rating or 0) / 5 * 100 * settings.weight_rating

    final = (
        p_score * settings.weight_price_fit
        + d_score * settings.weight_distance
        + a_score * settings.weight_affinity
        + r_score * settings.weight_rating
    )
    return RankedLocation(
        candidate=candidate,
        score=final,
        price_score=p_score,
        distance_score=d_score,
        affinity_score=a_score,
        rating_score=r_score,
        distance_km=km,
        estimated_price=estimate,
    )


def rank_candidates(
    settings: AlgorithmSettings,
    params: UserParams,
    category: Category,
    candidates: Iterable[Candidate],
    current_spend: float = 0.0,
    limit: int = MAX_RESULTS,
) -> List[RankedLocation]:
    """Score, order and truncate ``candidates`` using the injected ``settings``."""
    bucket = allocate(settings, params, category, current_spend)
    scored = [
        score_candidate(settings, params, category, candidate, bucket)
        for candidate in candidates
        if candidate.has_coordinates
    ]
    # sorted() is stable, so equal scores keep their input order
    ranked = sorted(scored, key=lambda r: r.score, reverse=True)[:limit]
    logger.debug(
        "Ranked %d of %d scored %s candidates against bucket %.2f",
        len(ranked),
        len(scored),
        category,
        bucket,
    )
    return ranked


def _coerce_candidates(rows: Iterable[Any]) -> List[Candidate]:
    candidates: List[Candidate] = []
    for row in rows:
        if isinstance(row, Candidate):
            candidates.append(row)
            continue
        try:
            candidates.append(Candidate.model_validate(row))
        except ValidationError:
            logger.warning("Skipping malformed candidate record %r", row if not isinstance(row, dict) else row.get("id"))
    return candidates


async def recommend(
    store: Any,
    params: UserParams,
    category: Category,
    current_spend: float = 0.0,
    settings: Optional[AlgorithmSettings] = None,
) -> List[RankedLocation]:
    """Fetch candidates for ``category`` and return them ranked.

    Settings are loaded from ``store`` unless the caller injects them. A failed
    or empty candidate fetch yields an empty list.
    """
    if settings is None:
        settings = await config.load(store)

    try:
        rows = await store.fetch_candidates(category)
    except StoreError:
        logger.warning("Candidate fetch for %s failed; returning no recommendations", category)
        return []
    if not rows:
        logger.info("No %s candidates available", category)
        return []

    ranked = rank_candidates(settings, params, category, _coerce_candidates(rows), current_spend)
    logger.info(
        "Recommended %d %s venues for budget %.2f (group %d, %d days); top score %.2f",
        len(ranked),
        category,
        params.total_budget,
        params.group_size,
        params.days,
        ranked[0].score if ranked else 0.0,
    )
    return ranked
