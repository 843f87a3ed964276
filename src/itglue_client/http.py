"""
Request executor for the IT Glue API.

Async HTTP layer with:
- Sliding-window rate limiting before every request
- Retry with exponential backoff for rate-limit (429) and server (5xx) errors
- Status code to error kind mapping
- JSON:API encoding of writes and decoding of responses
- Request/response logging
"""

import time
from typing import Any

import httpx
import structlog

from itglue_client.config import ClientConfig
from itglue_client.errors import (
    ITGlueError,
    ITGlueNetworkError,
    ITGlueNotFoundError,
    ITGlueTimeoutError,
    error_from_response,
    is_retryable_error,
)
from itglue_client.jsonapi import (
    ResourceList,
    decode_response,
    encode_bulk_request,
    encode_request,
)
from itglue_client.models import Page, PaginationMeta
from itglue_client.query import build_query_params
from itglue_client.rate_limiter import SlidingWindowRateLimiter, retry_with_backoff

logger = structlog.get_logger(__name__)


class HttpClient:
    """
    Executes one logical API operation per call.

    Example:
        async with HttpClient(ClientConfig(api_key="ITG.xxx")) as http:
            page = await http.list("/organizations", {"page": {"size": 50}})
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
    ):
        self.config = config
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(config.rate_limiter)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        # Request counters for observability
        self._request_count = 0
        self._error_count = 0

        self._log = logger.bind(base_url=config.base_url)

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, creating if needed."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                "base_url": self.config.base_url,
                "headers": self.config.headers(),
                "timeout": self.config.timeout,
                "limits": httpx.Limits(max_keepalive_connections=5, max_connections=10),
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    @staticmethod
    def _normalize_path(path: str) -> str:
        return path if path.startswith("/") else f"/{path}"

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a single rate-limited request.

        Returns the parsed JSON body, or ``None`` for 204 No Content.
        """
        path = self._normalize_path(path)
        url = f"{self.config.base_url}{path}"
        log = self._log.bind(method=method, path=path)

        await self.rate_limiter.wait_if_needed()
        self.rate_limiter.record_request()

        self._request_count += 1
        request_id = self._request_count
        log.debug("API request", request_id=request_id)

        query = build_query_params(params) if params else None
        start_time = time.monotonic()
        try:
            response = await self.client.request(
                method,
                path,
                params=query,
                json=body if method in ("POST", "PATCH") else None,
            )
        except httpx.TimeoutException as e:
            self._error_count += 1
            raise ITGlueTimeoutError(
                f"Request timed out after {self.config.timeout}s",
                timeout=self.config.timeout,
                url=url,
                method=method,
            ) from e
        except httpx.TransportError as e:
            self._error_count += 1
            raise ITGlueNetworkError(
                f"Network error occurred: {e}", cause=e, url=url, method=method
            ) from e

        elapsed = time.monotonic() - start_time
        log.debug(
            "API response",
            request_id=request_id,
            status_code=response.status_code,
            elapsed_ms=round(elapsed * 1000),
        )

        if not response.is_success:
            self._error_count += 1
            raise error_from_response(
                response.status_code,
                self._safe_json(response),
                url=url,
                method=method,
                headers=response.headers,
            )

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ITGlueError(
                f"Invalid JSON response: {e}",
                response.status_code,
                response.text[:500],
                url,
                method,
            ) from e

    @staticmethod
    def _safe_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text[:500] or None

    async def request_with_retry(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """``request`` with backoff; only rate-limit and server errors retry."""
        return await retry_with_backoff(
            lambda: self.request(method, path, params=params, body=body),
            max_retries=self.config.rate_limiter.max_retries,
            base_delay=self.config.rate_limiter.retry_after_seconds,
            max_delay=self.config.max_retry_delay,
            should_retry=is_retryable_error,
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request_with_retry("GET", path, params=params)

    async def list(self, path: str, params: dict[str, Any] | None = None) -> Page:
        """GET a collection; meta is always present on the returned page."""
        payload = await self.get(path, params)
        if payload is None:
            return Page(data=[], meta=PaginationMeta(total_count=0))

        document = decode_response(payload)
        data = document.data if isinstance(document.data, list) else [document.data]
        meta = document.meta
        if meta is None:
            meta = PaginationMeta(total_count=len(data))
        return Page(data=data, meta=meta, included=document.included)

    async def get_one(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        payload = await self.get(path, params)
        return self._single(payload, path)

    async def create(
        self,
        path: str,
        resource_type: str,
        data: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        body = encode_request(resource_type, data)
        payload = await self.request_with_retry("POST", path, params=params, body=body)
        return self._single(payload, path) if payload is not None else None

    async def update(
        self,
        path: str,
        resource_type: str,
        resource_id: str | int,
        data: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        body = encode_request(resource_type, data, resource_id)
        payload = await self.request_with_retry("PATCH", path, params=params, body=body)
        return self._single(payload, path) if payload is not None else None

    async def update_many(
        self,
        path: str,
        resource_type: str,
        items: ResourceList,
    ) -> ResourceList:
        """PATCH several resources at once; returns whatever the service echoes."""
        body = encode_bulk_request(resource_type, items)
        payload = await self.request_with_retry("PATCH", path, body=body)
        if payload is None:
            return []
        data = decode_response(payload).data
        return data if isinstance(data, list) else [data]

    async def delete(self, path: str) -> None:
        await self.request_with_retry("DELETE", path)

    def _single(self, payload: Any, path: str) -> dict[str, Any]:
        if payload is None:
            raise ITGlueNotFoundError(f"Resource not found: {path}", 404)
        document = decode_response(payload)
        if isinstance(document.data, list):
            if not document.data:
                raise ITGlueNotFoundError(f"Resource not found: {path}", 404)
            return document.data[0]
        return document.data

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Get client statistics for monitoring."""
        return {
            "base_url": self.config.base_url,
            "request_count": self._request_count,
            "error_count": self._error_count,
            "error_rate": round(self._error_count / max(1, self._request_count), 4),
            "rate_limiter": self.rate_limiter.get_stats(),
        }
