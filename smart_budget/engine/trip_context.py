"""Turn a trip snapshot from the itinerary builder into ranking inputs."""
from __future__ import annotations

from datetime import datetime
from math import ceil
from typing import Any, Dict, List, Tuple

from smart_budget.schemas import Coordinates, Dates, UserParams


def derive_user_params(trip: Dict[str, Any]) -> Tuple[UserParams, float]:
    """Return ``(UserParams, current_spend)`` for a trip snapshot.

    The snapshot mirrors what the planning UI keeps in its store: ``startDate``,
    ``endDate``, ``guests``, ``budget`` (a number or ``{"total": ...}``),
    ``metadata`` (``preferences`` and optionally ``hotelCoords``), the itinerary
    ``items`` already chosen and the current ``city``. Snake-case keys are
    accepted as well.
    """
    if not isinstance(trip, dict):
        raise TypeError("Unsupported trip snapshot type")

    start = str(trip.get("startDate") or trip.get("start_date") or "")
    end = str(trip.get("endDate") or trip.get("end_date") or start)
    metadata = _mapping(trip.get("metadata"))
    items: List[Dict[str, Any]] = [i for i in (trip.get("items") or []) if isinstance(i, dict)]

    budget = trip.get("budget")
    if isinstance(budget, dict):
        budget = budget.get("total")
    total_budget = float(budget or 0.0)

    group_size = max(1, int(trip.get("guests") or 1))

    params = UserParams(
        total_budget=total_budget,
        group_size=group_size,
        days=_trip_days(start, end),
        dates=Dates(start=start, end=end),
        preferences=_preferences(metadata.get("preferences")),
        anchor_coords=_anchor(metadata, items, _mapping(trip.get("city"))),
    )
    return params, current_spend(items)


def current_spend(items: List[Dict[str, Any]]) -> float:
    return float(sum(float(item.get("estimated_cost") or 0) for item in items))


def _trip_days(start: str, end: str) -> int:
    start_dt, end_dt = _safe_parse(start), _safe_parse(end)
    if not start_dt or not end_dt:
        return 1
    if (start_dt.tzinfo is None) != (end_dt.tzinfo is None):
        start_dt, end_dt = start_dt.replace(tzinfo=None), end_dt.replace(tzinfo=None)
    days = ceil((end_dt - start_dt).total_seconds() / 86400)
    return max(1, days)


def _mapping(raw: Any) -> Dict[str, Any]:
    return raw if isinstance(raw, dict) else {}


def _preferences(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [p for p in raw if isinstance(p, str)]
    if isinstance(raw, dict):
        return [v for v in raw.values() if isinstance(v, str)]
    return []


def _anchor(metadata: Dict[str, Any], items: List[Dict[str, Any]], city: Dict[str, Any]) -> Coordinates:
    has_hotel = any("hotel" in str(item.get("business_category") or "").lower() for item in items)
    hotel_coords = _mapping(metadata.get("hotelCoords"))
    if has_hotel and hotel_coords.get("lat") is not None and hotel_coords.get("lng") is not None:
        return Coordinates(lat=hotel_coords["lat"], lng=hotel_coords["lng"])

    # 0.0 counts as unset for city coordinates
    if city.get("center_lat") and city.get("center_lng"):
        return Coordinates(lat=city["center_lat"], lng=city["center_lng"])
    if city.get("latitude") and city.get("longitude"):
        return Coordinates(lat=city["latitude"], lng=city["longitude"])
    return Coordinates(lat=0.0, lng=0.0)


def _safe_parse(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        try:
            return datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            return None
