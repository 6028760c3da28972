"""Async ServiceNow Table API client with retries and client-side rate limiting."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from cmdbwalk.config import Settings
from cmdbwalk.utils.exceptions import NotFoundError, RemoteQueryError
from cmdbwalk.utils.logging import get_logger
from cmdbwalk.utils.rate_limiter import TokenBucketRateLimiter
from cmdbwalk.utils.retry import async_retry

logger = get_logger(__name__)

_TABLE_PATH = "/api/now/table/{}"


class RecordQuery(Protocol):
    """The record-query capability the traversal engine depends on."""

    async def query(
        self,
        table: str,
        filter_expression: str,
        fields: Sequence[str],
        limit: int,
        display_value: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def get(
        self,
        table: str,
        sys_id: str,
        fields: Sequence[str],
        display_value: str | None = None,
    ) -> dict[str, Any]: ...


def _error_from_response(response: httpx.Response) -> RemoteQueryError:
    """Build a RemoteQueryError from a ServiceNow error envelope."""
    message = f"Request failed with HTTP {response.status_code}"
    detail: str | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
        if response.text:
            message = response.text[:500]

    if isinstance(body, dict) and body.get("error"):
        error = body["error"]
        if isinstance(error, dict):
            message = error.get("message") or message
            detail = error.get("detail") or None
        else:
            message = str(error)

    return RemoteQueryError(message, detail=detail, status=response.status_code)


class ServiceNowClient:
    """Manages an ``httpx.AsyncClient`` bound to one ServiceNow instance.

    Implements :class:`RecordQuery` on top of the Table API. Every request
    waits on the shared token bucket and is retried with backoff on
    transport errors, 429 and 5xx responses. Callers only ever see
    :class:`NotFoundError` or :class:`RemoteQueryError`.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._limiter = TokenBucketRateLimiter(
            rate=settings.SN_RATE_LIMIT_PER_SEC,
            capacity=settings.SN_RATE_LIMIT_BURST,
        )

    async def __aenter__(self) -> ServiceNowClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._settings.SN_INSTANCE,
            auth=(self._settings.SN_USER, self._settings.SN_PASSWORD),
            headers={"Accept": "application/json"},
            timeout=self._settings.SN_TIMEOUT,
            transport=self._transport,
        )
        logger.info("servicenow_connected", instance=self._settings.SN_INSTANCE)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("servicenow_disconnected")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("ServiceNow client not initialized; call connect() first")
        return self._client

    async def query(
        self,
        table: str,
        filter_expression: str,
        fields: Sequence[str],
        limit: int,
        display_value: str | None = None,
    ) -> list[dict[str, Any]]:
        params = {
            "sysparm_query": filter_expression,
            "sysparm_fields": ",".join(fields),
            "sysparm_limit": str(limit),
            "sysparm_display_value": display_value or self._settings.SN_DISPLAY_VALUE,
        }
        body = await self._get_json(_TABLE_PATH.format(table), params)
        result = body.get("result") or []
        if not isinstance(result, list):
            raise RemoteQueryError(f"Unexpected result payload for table {table}")
        return result

    async def get(
        self,
        table: str,
        sys_id: str,
        fields: Sequence[str],
        display_value: str | None = None,
    ) -> dict[str, Any]:
        params = {
            "sysparm_fields": ",".join(fields),
            "sysparm_display_value": display_value or self._settings.SN_DISPLAY_VALUE,
        }
        try:
            body = await self._get_json(
                f"{_TABLE_PATH.format(table)}/{quote(sys_id, safe='')}", params
            )
        except RemoteQueryError as exc:
            if exc.status == 404:
                raise NotFoundError(f"No {table} record with sys_id: {sys_id}") from exc
            raise
        result = body.get("result")
        if not result or not isinstance(result, dict):
            raise NotFoundError(f"No {table} record with sys_id: {sys_id}")
        return result

    async def _get_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        params = {k: v for k, v in params.items() if v}
        send = async_retry(
            max_attempts=self._settings.SN_MAX_RETRIES,
            base_delay=self._settings.SN_RETRY_BASE_DELAY,
            retryable_exceptions=(httpx.TransportError, httpx.HTTPStatusError),
        )(self._send)

        try:
            response = await send(path, params)
        except httpx.HTTPStatusError as exc:
            raise _error_from_response(exc.response) from exc
        except httpx.RequestError as exc:
            # transport failures plus undecodable bodies and redirect loops
            raise RemoteQueryError(f"{type(exc).__name__}: {exc}") from exc

        if response.status_code == 204 or not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteQueryError(
                "Response body is not JSON", status=response.status_code
            ) from exc
        return body if isinstance(body, dict) else {}

    async def _send(self, path: str, params: dict[str, str]) -> httpx.Response:
        waited = await self._limiter.acquire()
        if waited:
            logger.debug("request_throttled", path=path, waited_ms=round(waited * 1000))
        response = await self.client.get(path, params=params)
        response.raise_for_status()
        return response
