from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import os

import httpx
from dotenv import load_dotenv

import logging

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("SMART_BUDGET_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

load_dotenv()

# PostgREST answers a single-object request with no matching row using this code.
NOT_FOUND_CODE = "PGRST116"

class StoreError(RuntimeError):
    """Raised when the hosted data service cannot serve a request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    @property
    def not_found(self) -> bool:
        return self.code == NOT_FOUND_CODE

class DataStore:
    """
    Thin async client over the REST interface of the hosted relational store.
    Only the two tables the recommendation engine touches are exposed.
    """
    SETTINGS_TABLE = "algorithm_settings"
    CANDIDATE_TABLE = "businesses"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.base_url = (base_url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.api_key = api_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
        self.timeout = timeout

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        headers.update(extra)
        return headers

    def _endpoint(self, table: str) -> str:
        if not self.base_url or not self.api_key:
            raise StoreError("SUPABASE_URL and a service or anon key must be configured")
        return f"{self.base_url}/rest/v1/{table}"

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> Any:
        url = self._endpoint(table)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, params=params, headers=headers, json=json)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Request to %s failed", table, exc_info=True)
            raise StoreError(f"{table}: {exc}") from exc

        if response.status_code >= 400:
            code: Optional[str] = None
            message = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                code = body.get("code")
                message = body.get("message") or message
            if code == NOT_FOUND_CODE:
                logger.info("No row in %s matched %s", table, params)
            else:
                logger.error("Store returned %s for %s: %s", response.status_code, table, message)
            raise StoreError(f"{table}: {message}", status_code=response.status_code, code=code)

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Store returned a non-JSON body for %s", table)
            raise StoreError(f"{table}: invalid JSON body") from exc

    async def fetch_settings(self, row_id: int) -> Dict[str, Any]:
        """Return the settings row keyed by ``row_id``; raise ``StoreError`` when absent."""
        data = await self._request(
            "GET",
            self.SETTINGS_TABLE,
            params={"id": f"eq.{row_id}", "select": "*"},
            headers=self._headers(Accept="application/vnd.pgrst.object+json"),
        )
        if not isinstance(data, dict):
            raise StoreError(f"{self.SETTINGS_TABLE}: expected a single object", code=NOT_FOUND_CODE)
        return data

    async def fetch_candidates(self, category: str) -> List[Dict[str, Any]]:
        """List venues of ``category`` that carry both coordinates."""
        data = await self._request(
            "GET",
            self.CANDIDATE_TABLE,
            params={
                "select": "*",
                "type": f"eq.{category}",
                "latitude": "not.is.null",
                "longitude": "not.is.null",
            },
            headers=self._headers(),
        )
        if not isinstance(data, list):
            raise StoreError(f"{self.CANDIDATE_TABLE}: expected a list of rows")
        logger.debug("Fetched %d %s candidates", len(data), category)
        return data

    async def upsert_settings(self, row_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            "id": row_id,
            **values,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        data = await self._request(
            "POST",
            self.SETTINGS_TABLE,
            json=payload,
            headers=self._headers(
                Prefer="resolution=merge-duplicates,return=representation",
                **{"Content-Type": "application/json"},
            ),
        )
        if isinstance(data, list):
            data = data[0] if data else payload
        logger.info("Upserted %s row %s", self.SETTINGS_TABLE, row_id)
        return data
