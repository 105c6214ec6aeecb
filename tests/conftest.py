from typing import Any, Dict, List, Optional

import pytest

from smart_budget.tools.store import StoreError


class FakeStore:
    """In-memory stand-in for ``DataStore`` with the same async surface."""

    def __init__(
        self,
        settings_row: Optional[Dict[str, Any]] = None,
        candidates: Optional[List[Dict[str, Any]]] = None,
        *,
        fail_candidates: bool = False,
        fail_upsert: bool = False,
    ):
        self.settings_row = settings_row
        self.candidates = candidates or []
        self.fail_candidates = fail_candidates
        self.fail_upsert = fail_upsert
        self.categories: List[str] = []
        self.upserts: List[Dict[str, Any]] = []

    async def fetch_settings(self, row_id: int) -> Dict[str, Any]:
        if self.settings_row is None:
            raise StoreError("algorithm_settings: no rows", status_code=406, code="PGRST116")
        return self.settings_row

    async def fetch_candidates(self, category: str) -> List[Dict[str, Any]]:
        self.categories.append(category)
        if self.fail_candidates:
            raise StoreError("businesses: connection refused")
        return list(self.candidates)

    async def upsert_settings(self, row_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail_upsert:
            raise StoreError("algorithm_settings: permission denied", status_code=401)
        row = {"id": row_id, **values}
        self.upserts.append(row)
        self.settings_row = row
        return row


@pytest.fixture
def fake_store():
    return FakeStore
