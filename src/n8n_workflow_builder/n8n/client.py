"""Async client for the n8n public REST API."""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any

import httpx

from n8n_workflow_builder.utilities.logging import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "X-N8N-API-KEY"


class N8nApiError(Exception):
    """Raised when a call to the n8n API fails.

    Attributes:
        status_code: HTTP status returned by n8n, or None when no response was received
        detail: Error body returned by n8n, if any
    """

    def __init__(self, message: str, *, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail


def create_n8n_http_client(base_url: str, api_key: str, **kwargs: Any) -> httpx.AsyncClient:
    """Create an httpx AsyncClient preconfigured for the n8n API.

    Defaults:
    - follow_redirects=True
    - 30 second timeout unless ``timeout`` is given
    - ``X-N8N-API-KEY`` and JSON content-type headers

    Any keyword argument accepted by ``httpx.AsyncClient`` overrides the defaults,
    e.g. ``transport=httpx.MockTransport(handler)`` in tests.
    """
    default_kwargs: dict[str, Any] = {
        "base_url": base_url,
        "follow_redirects": True,
        "timeout": httpx.Timeout(30.0),
        "headers": {API_KEY_HEADER: api_key, "Content-Type": "application/json"},
    }
    default_kwargs.update(kwargs)
    return httpx.AsyncClient(**default_kwargs)


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


class N8nClient:
    """Thin wrapper over the n8n REST API that returns decoded JSON bodies.

    Every transport or HTTP status failure is raised as :class:`N8nApiError`.

    Example:
        async with N8nClient("http://localhost:5678/api/v1", api_key) as client:
            workflows = await client.get("/workflows")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url
        self._http = http_client or create_n8n_http_client(base_url, api_key, timeout=httpx.Timeout(timeout))

    async def __aenter__(self) -> N8nClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None for an empty body)."""
        query = {key: value for key, value in (params or {}).items() if value is not None}
        logger.debug(f"n8n API {method} {path}")
        try:
            response = await self._http.request(method, path, params=query or None, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise N8nApiError(
                f"Request failed with status code {status}",
                status_code=status,
                detail=_error_detail(e.response),
            ) from e
        except httpx.HTTPError as e:
            raise N8nApiError(f"Request to n8n failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise N8nApiError("n8n returned a response that is not valid JSON") from e

    async def get(self, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
