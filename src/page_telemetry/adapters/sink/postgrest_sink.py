"""HTTP data sink for PostgREST-compatible REST endpoints.

Talks to `<base_url>/rest/v1/<collection>` the way Supabase exposes tables.
Filters are sent as `column=op.value` query parameters.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

import aiohttp

from page_telemetry.adapters.api_request_logger import log_sink_request
from page_telemetry.domain.models.error_details import ErrorDetails, SinkError
from page_telemetry.domain.models.fetch_result import Failed, FetchResult, Found, NotFound
from page_telemetry.domain.models.sink_query import SinkQuery
from page_telemetry.domain.ports.data_sink import DataSink

if TYPE_CHECKING:
    from multidict import CIMultiDictProxy

logger = logging.getLogger(__name__)

NO_ROWS_CODE = "PGRST116"
SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _query_params(query: SinkQuery, *, include_shape: bool = True) -> list[tuple[str, str]]:
    """Translate a SinkQuery into PostgREST query parameters."""
    params: list[tuple[str, str]] = []
    if include_shape:
        params.append(("select", ",".join(query.columns)))
    for f in query.filters:
        if f.value is None and f.operator == "eq":
            params.append((f.column, "is.null"))
        else:
            params.append((f.column, f"{f.operator}.{_format_value(f.value)}"))
    if include_shape and query.order_by:
        direction = "desc" if query.descending else "asc"
        params.append(("order", f"{query.order_by}.{direction}"))
    if include_shape and query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


def _extract_error_details(status: int, body: str) -> ErrorDetails:
    """Build error details from a PostgREST error response."""
    code: str | None = None
    parts: list[str] = []
    try:
        data = json.loads(body) if body else {}
    except ValueError:
        data = {}
    if isinstance(data, dict):
        code = data.get("code")
        parts = [str(data[k]) for k in ("message", "details", "hint") if data.get(k)]

    if parts:
        reason = "; ".join(parts)
    elif status == 429:
        reason = "Rate limit exceeded"
    elif status == 502:
        reason = "Bad gateway (server error)"
    elif status == 503:
        reason = "Service unavailable"
    elif status == 504:
        reason = "Gateway timeout"
    else:
        reason = f"HTTP {status}"

    return ErrorDetails(status_code=status, code=code, reason=reason)


def _is_no_rows(error: SinkError) -> bool:
    """Return True if a single-object request failed only because nothing matched."""
    if error.code != NO_ROWS_CODE and error.status_code != 406:
        return False
    match = re.search(r"contains (\d+) rows", error.details.reason)
    return match is None or int(match.group(1)) == 0


def _parse_content_range(headers: CIMultiDictProxy[str]) -> int:
    """Parse the total from a `Content-Range: 0-24/25` header."""
    content_range = headers.get("Content-Range", "")
    _, _, total = content_range.partition("/")
    if total == "*" or not total:
        raise SinkError(ErrorDetails(reason=f"Missing row count in Content-Range '{content_range}'"))
    return int(total)


class PostgrestDataSink(DataSink):
    """Data sink that writes to and reads from a PostgREST API."""

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        beacon_timeout_seconds: float = 2.0,
    ) -> None:
        """Initialize the sink.

        Args:
            base_url: Base URL of the project, without the /rest/v1 suffix.
            session: Shared aiohttp session.
            api_key: Optional API key, sent as 'apikey' header and bearer token.
            timeout_seconds: Total timeout for awaited requests.
            beacon_timeout_seconds: Upper bound for dispatched requests.
        """
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._api_key = api_key
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._beacon_timeout_seconds = beacon_timeout_seconds
        self._pending: set[asyncio.Task[None]] = set()

    def _url(self, collection: str) -> str:
        return f"{self._base_url}/rest/v1/{collection}"

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        collection: str,
        *,
        params: list[tuple[str, str]] | None = None,
        payload: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> tuple[Any, CIMultiDictProxy[str]]:
        """Send one request and return the decoded body and response headers."""
        url = self._url(collection)
        headers = self._headers(extra_headers)
        body = json.dumps(payload, default=_json_default) if payload is not None else None
        log_sink_request(
            method, collection, url, params=params, headers=headers, payload=payload
        )

        try:
            async with self._session.request(
                method, url, params=params, data=body, headers=headers, timeout=self._timeout
            ) as response:
                text = await response.text() if method != "HEAD" else ""
                if response.status >= 400:
                    raise SinkError(_extract_error_details(response.status, text))
                data = json.loads(text) if text else None
                return data, response.headers
        except SinkError:
            raise
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            raise SinkError(ErrorDetails(reason=f"Sink request failed: {e!r}")) from e

    async def insert(self, collection: str, records: list[dict[str, Any]]) -> None:
        if not records:
            return
        await self._request(
            "POST", collection, payload=records, extra_headers={"Prefer": "return=minimal"}
        )

    async def upsert(self, collection: str, record: dict[str, Any], on_conflict: str) -> None:
        await self._request(
            "POST",
            collection,
            params=[("on_conflict", on_conflict)],
            payload=record,
            extra_headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def update(self, collection: str, values: dict[str, Any], query: SinkQuery) -> None:
        if not query.filters:
            raise SinkError(ErrorDetails(reason="Refusing to update without filters"))
        await self._request(
            "PATCH",
            collection,
            params=_query_params(query, include_shape=False),
            payload=values,
            extra_headers={"Prefer": "return=minimal"},
        )

    async def select(self, collection: str, query: SinkQuery) -> list[dict[str, Any]]:
        data, _ = await self._request("GET", collection, params=_query_params(query))
        if not isinstance(data, list):
            raise SinkError(ErrorDetails(reason=f"Expected a list of rows from {collection}"))
        return data

    async def count(self, collection: str, query: SinkQuery) -> int:
        _, headers = await self._request(
            "HEAD",
            collection,
            params=_query_params(query, include_shape=False),
            extra_headers={"Prefer": "count=exact"},
        )
        return _parse_content_range(headers)

    async def fetch_single(self, collection: str, query: SinkQuery) -> FetchResult:
        try:
            data, _ = await self._request(
                "GET",
                collection,
                params=_query_params(query),
                extra_headers={"Accept": SINGLE_OBJECT_MEDIA_TYPE},
            )
        except SinkError as e:
            if _is_no_rows(e):
                return NotFound()
            return Failed(e)
        if not isinstance(data, dict):
            return Failed(SinkError(ErrorDetails(reason=f"Expected one row from {collection}")))
        return Found(data)

    async def _deliver(
        self,
        collection: str,
        records: list[dict[str, Any]],
        on_conflict: str | None,
    ) -> None:
        try:
            async with asyncio.timeout(self._beacon_timeout_seconds):
                if on_conflict is None:
                    await self.insert(collection, records)
                else:
                    for record in records:
                        await self.upsert(collection, record, on_conflict)
        except (SinkError, TimeoutError) as e:
            logger.debug(f"Dispatched write to {collection} not delivered: {e}")

    def dispatch(
        self,
        collection: str,
        records: list[dict[str, Any]],
        on_conflict: str | None = None,
    ) -> None:
        if not records:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, dropping dispatched write to {collection}")
            return
        task = loop.create_task(self._deliver(collection, list(records), on_conflict))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self, timeout: float) -> int:
        if not self._pending:
            return 0
        pending = set(self._pending)
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.info(f"Abandoned {len(not_done)} dispatched write(s) at shutdown")
        return len(not_done)
