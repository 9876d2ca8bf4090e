"""
REST Row Source

Serves collections from a PostgREST-style HTTP endpoint (the hosted store's
``/rest/v1`` interface). Requests are blocking and run in a worker thread so
the event loop keeps serving sibling queries.
"""

import asyncio
import datetime as dt
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import requests
import structlog

from aquametrics.sources.base import OrderBy, QueryResult, as_row_list

logger = structlog.get_logger(__name__)


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _json_ready(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, (dt.date, dt.datetime)) else value
        for key, value in row.items()
    }


def build_params(
    eq: Optional[Mapping[str, Any]] = None,
    order: Optional[OrderBy] = None,
    limit: Optional[int] = None,
) -> List[Tuple[str, str]]:
    """Translate a fetch call into PostgREST query parameters"""
    params: List[Tuple[str, str]] = [("select", "*")]
    for column, value in (eq or {}).items():
        params.append((column, f"eq.{_filter_value(value)}"))
    if order is not None:
        params.append(("order", f"{order.column}.{'asc' if order.ascending else 'desc'}"))
    if limit is not None:
        params.append(("limit", str(limit)))
    return params


class RestRowSource:
    """
    Row source backed by the store's REST interface.

    Credentials are checked per call: a source built without them still
    answers, with a failed QueryResult.
    """

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _url(self, collection: str) -> str:
        return f"{self.base_url}/rest/v1/{collection}"

    async def fetch(
        self,
        collection: str,
        eq: Optional[Mapping[str, Any]] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> QueryResult:
        """Fetch one page of rows"""
        if not self.configured:
            return self._fail(collection, "Row source credentials are not configured")

        return await asyncio.to_thread(
            self._request,
            "GET",
            collection,
            params=build_params(eq, order, limit),
        )

    async def insert(
        self,
        collection: str,
        payload: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
    ) -> QueryResult:
        """Insert one or many rows and return them as stored"""
        if not self.configured:
            return self._fail(collection, "Row source credentials are not configured")

        rows = as_row_list(payload)
        if not rows:
            return self._fail(collection, "Nothing to insert")

        return await asyncio.to_thread(
            self._request,
            "POST",
            collection,
            json=[_json_ready(row) for row in rows],
            extra_headers={"Prefer": "return=representation"},
        )

    def _request(
        self,
        method: str,
        collection: str,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Optional[Any] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> QueryResult:
        headers = self._headers()
        headers.update(extra_headers or {})

        try:
            response = self.session.request(
                method,
                self._url(collection),
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return self._fail(collection, str(e))

        if not 200 <= response.status_code < 300:
            return self._fail(collection, f"Store error {response.status_code}: {response.text}")

        try:
            body = response.json() if response.content else []
        except ValueError as e:
            return self._fail(collection, f"Invalid JSON from store: {e}")

        rows = [body] if isinstance(body, dict) else list(body or [])
        logger.debug("Rows fetched", backend="rest", collection=collection, rows=len(rows))
        return QueryResult.success(rows)

    async def close(self) -> None:
        self.session.close()

    @staticmethod
    def _fail(collection: str, error: str) -> QueryResult:
        logger.error("Row source query failed", backend="rest", collection=collection, error=error)
        return QueryResult.failure(error)
