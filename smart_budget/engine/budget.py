"""Per-category budget buckets."""
from __future__ import annotations

import logging
import os

from smart_budget.schemas import AlgorithmSettings, Category, UserParams

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("SMART_BUDGET_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


def allocate(
    settings: AlgorithmSettings,
    params: UserParams,
    category: Category,
    current_spend: float = 0.0,
) -> float:
    """Return the spending allowance for ``category``.

    Hotels take a fixed share of the whole budget. Food and activities split
    whatever is left after ``current_spend`` in proportion to their ratios
    within the non-hotel share. The result may be negative when the trip is
    already over budget.
    """
    if category == "hotel":
        return params.total_budget * settings.split_ratio_hotel

    remaining = params.total_budget - current_spend
    category_ratio = settings.split_ratio_food if category == "restaurant" else settings.split_ratio_activity
    non_hotel_ratio = 1.0 - settings.split_ratio_hotel
    if non_hotel_ratio <= 0:
        logger.warning("Hotel split is %.2f; no budget left for %s", settings.split_ratio_hotel, category)
        return 0.0
    return remaining * (category_ratio / non_hotel_ratio)
