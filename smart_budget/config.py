"""Loading of the algorithm tuning record.

The settings row lives in the hosted store and is edited through the admin
tuner. Reads never fail from the caller's point of view: ``fetch_settings``
returns a ``SettingsLoad`` result and ``load`` unwraps it onto
``DEFAULT_SETTINGS`` when the row is missing, malformed or unreachable.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import os

from pydantic import ValidationError

from smart_budget.schemas import AlgorithmSettings
from smart_budget.tools.store import StoreError

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("SMART_BUDGET_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

SETTINGS_ROW_ID = 1
SUM_TOLERANCE = 0.01

SETTINGS_FIELDS = (
    "split_ratio_hotel",
    "split_ratio_food",
    "split_ratio_activity",
    "weight_price_fit",
    "weight_distance",
    "weight_affinity",
    "weight_rating",
    "penalty_per_km",
)

DEFAULT_SETTINGS = AlgorithmSettings(
    split_ratio_hotel=0.4,
    split_ratio_food=0.3,
    split_ratio_activity=0.3,
    weight_price_fit=0.3,
    weight_distance=0.2,
    weight_affinity=0.3,
    weight_rating=0.2,
    penalty_per_km=10.0,
)


@dataclass(frozen=True)
class SettingsLoad:
    settings: Optional[AlgorithmSettings] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.settings is not None

    def unwrap_or_default(self, default: AlgorithmSettings = DEFAULT_SETTINGS) -> AlgorithmSettings:
        return self.settings if self.settings is not None else default


def parse_settings(record: Any) -> SettingsLoad:
    """Turn a raw store row into a ``SettingsLoad`` without raising."""
    if not isinstance(record, dict):
        return SettingsLoad(error="settings record is not an object")

    values: Dict[str, float] = {}
    for name in SETTINGS_FIELDS:
        raw = record.get(name)
        if raw is None or isinstance(raw, bool):
            return SettingsLoad(error=f"settings record is missing {name}")
        # numeric columns come back from the REST layer as strings
        try:
            values[name] = float(raw)
        except (TypeError, ValueError):
            return SettingsLoad(error=f"settings field {name} is not numeric: {raw!r}")

    try:
        settings = AlgorithmSettings(**values)
    except ValidationError as exc:
        return SettingsLoad(error=f"settings out of range: {exc.errors()[0].get('msg')}")

    if abs(settings.split_total - 1.0) > SUM_TOLERANCE:
        return SettingsLoad(error=f"split ratios sum to {settings.split_total:.4f}")
    if abs(settings.weight_total - 1.0) > SUM_TOLERANCE:
        return SettingsLoad(error=f"weights sum to {settings.weight_total:.4f}")
    return SettingsLoad(settings=settings)


async def fetch_settings(store: Any, row_id: int = SETTINGS_ROW_ID) -> SettingsLoad:
    try:
        record = await store.fetch_settings(row_id)
    except StoreError as exc:
        return SettingsLoad(error=str(exc))
    return parse_settings(record)


async def load(store: Any) -> AlgorithmSettings:
    result = await fetch_settings(store)
    if not result.ok:
        logger.warning("Using default algorithm settings (%s)", result.error)
    return result.unwrap_or_default()
