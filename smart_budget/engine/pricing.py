"""Heuristic cost estimates.

These are not price lookups. A venue's ``price_level`` tier (1-4) is used as a
linear multiplier over a flat per-category base rate so candidates can be
compared against a budget bucket before real quotes exist.
"""
from __future__ import annotations

from math import ceil

from smart_budget.schemas import Candidate

DEFAULT_PRICE_LEVEL = 2
HOTEL_RATE_PER_ROOM_NIGHT = 50.0
RESTAURANT_RATE_PER_PERSON = 30.0
ACTIVITY_RATE_PER_PERSON = 20.0
GUESTS_PER_ROOM = 2


def estimated_price(candidate: Candidate, category: str, group_size: int, days: int) -> float:
    price_level = candidate.price_level or DEFAULT_PRICE_LEVEL
    if category == "hotel":
        rooms = ceil(group_size / GUESTS_PER_ROOM)
        return float(price_level * HOTEL_RATE_PER_ROOM_NIGHT * days * rooms)
    if category == "restaurant":
        return float(price_level * RESTAURANT_RATE_PER_PERSON * group_size)
    return float(price_level * ACTIVITY_RATE_PER_PERSON * group_size)
