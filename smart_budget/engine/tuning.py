"""Admin-side tuning of the algorithm settings."""
from __future__ import annotations

from typing import Any, Dict, Tuple
import logging
import os

from smart_budget.config import SETTINGS_ROW_ID, SUM_TOLERANCE, parse_settings
from smart_budget.schemas import AlgorithmSettings

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("SMART_BUDGET_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

SPLIT_FIELDS: Tuple[str, ...] = ("split_ratio_hotel", "split_ratio_food", "split_ratio_activity")
WEIGHT_FIELDS: Tuple[str, ...] = ("weight_price_fit", "weight_distance", "weight_affinity", "weight_rating")

SPLIT_INVARIANT = "check_split_ratios_sum"
WEIGHT_INVARIANT = "check_weights_sum"


class SettingsValidationError(ValueError):
    def __init__(self, invariant: str, total: float):
        self.invariant = invariant
        self.total = total
        super().__init__(f"{invariant}: values must sum to 1.0 (±{SUM_TOLERANCE}), got {total:.4f}")


def validate_settings(settings: AlgorithmSettings) -> None:
    """Raise ``SettingsValidationError`` unless both groups sum to one."""
    if abs(settings.split_total - 1.0) > SUM_TOLERANCE:
        raise SettingsValidationError(SPLIT_INVARIANT, settings.split_total)
    if abs(settings.weight_total - 1.0) > SUM_TOLERANCE:
        raise SettingsValidationError(WEIGHT_INVARIANT, settings.weight_total)


def rebalance_split(settings: AlgorithmSettings, field: str, value: float) -> AlgorithmSettings:
    """Set one split ratio and share the remainder across the other two.

    The others keep their relative proportions; when both are zero the
    remainder is split evenly.
    """
    if field not in SPLIT_FIELDS:
        raise ValueError(f"unknown split field: {field}")
    others = [name for name in SPLIT_FIELDS if name != field]
    remaining = 1.0 - value
    other_sum = sum(getattr(settings, name) for name in others)

    updates: Dict[str, float] = {field: value}
    for name in others:
        if other_sum > 0:
            updates[name] = getattr(settings, name) / other_sum * remaining
        else:
            updates[name] = remaining / len(others)
    return settings.model_copy(update=updates)


def rebalance_weight(settings: AlgorithmSettings, field: str, value: float) -> AlgorithmSettings:
    """Set one weight, then scale all four so they sum to one."""
    if field not in WEIGHT_FIELDS:
        raise ValueError(f"unknown weight field: {field}")
    values = {name: getattr(settings, name) for name in WEIGHT_FIELDS}
    values[field] = value
    total = sum(values.values())
    if total > 0:
        values = {name: v / total for name, v in values.items()}
    return settings.model_copy(update=values)


def rebalance(settings: AlgorithmSettings, field: str, value: float) -> AlgorithmSettings:
    if field in SPLIT_FIELDS:
        return rebalance_split(settings, field, value)
    return rebalance_weight(settings, field, value)


async def save_settings(store: Any, settings: AlgorithmSettings) -> AlgorithmSettings:
    """Validate and upsert the singleton settings row.

    Nothing is written when validation fails. Store errors propagate to the
    caller.
    """
    validate_settings(settings)
    record = await store.upsert_settings(SETTINGS_ROW_ID, settings.model_dump())
    logger.info(
        "Saved algorithm settings: splits %.2f/%.2f/%.2f, weights %.2f/%.2f/%.2f/%.2f, penalty %.2f/km",
        settings.split_ratio_hotel,
        settings.split_ratio_food,
        settings.split_ratio_activity,
        settings.weight_price_fit,
        settings.weight_distance,
        settings.weight_affinity,
        settings.weight_rating,
        settings.penalty_per_km,
    )
    persisted = parse_settings(record)
    return persisted.unwrap_or_default(settings)
