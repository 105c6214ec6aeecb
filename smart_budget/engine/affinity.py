"""Lexical preference matching."""
from __future__ import annotations

from typing import Iterable, List, Optional

NEUTRAL_AFFINITY = 50.0


def _matches(tag: str, preferences: List[str]) -> bool:
    return any(tag in pref or pref in tag for pref in preferences)


def affinity(preferences: Iterable[str], tags: Optional[List[str]]) -> float:
    """Return a 0-100 overlap score between user preferences and venue tags.

    A tag counts once when any preference is a case-insensitive substring of it
    or vice versa. The count is divided by the larger of the two list sizes, so
    a venue with many unrelated tags is diluted as much as a user with many
    unmatched preferences.
    """
    if not tags:
        return 0.0
    prefs = [p.lower() for p in preferences]
    if not prefs:
        return NEUTRAL_AFFINITY

    matched = sum(1 for tag in tags if _matches(tag.lower(), prefs))
    return matched / max(len(prefs), len(tags)) * 100
