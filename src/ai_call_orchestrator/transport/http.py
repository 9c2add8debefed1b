"""HTTP transport using httpx for async requests.

Maps network failures to ``TransportError`` (keeping the httpx exception as
the cause so timeouts still classify as TIMEOUT) and error statuses to
``RemoteError``.
"""

from __future__ import annotations

import os
from contextlib import suppress
from typing import Any

import httpx

from ai_call_orchestrator.errors import RemoteError, TransportError

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_CONNECT_TIMEOUT = 10.0
_USER_AGENT = "ai-call-orchestrator/0.1.0"


def _trust_env_enabled() -> bool:
    """Use env proxy settings only when explicitly enabled."""
    return os.getenv("AI_ORCH_HTTP_TRUST_ENV", "0") == "1"


class HttpTransport:
    """HTTP transport for provider APIs.

    Example:
        >>> transport = HttpTransport("https://api.assemblyai.com/v2", headers=auth)
        >>> response = await transport.get("/transcript/abc")
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        proxy: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            base_url: Base URL of the provider API
            headers: Headers sent with every request (auth included)
            timeout: Request timeout in seconds
            proxy: Proxy URL
            client: Pre-built httpx client, mainly for tests
        """
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})

        self._timeout = timeout
        if self._timeout is None:
            env_timeout = os.getenv("AI_ORCH_HTTP_TIMEOUT_SECS")
            if env_timeout:
                with suppress(ValueError):
                    self._timeout = float(env_timeout)
        if self._timeout is None:
            self._timeout = _DEFAULT_TIMEOUT

        self._proxy = proxy
        self._client = client

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout, connect=_DEFAULT_CONNECT_TIMEOUT),
                proxy=self._proxy,
                trust_env=_trust_env_enabled(),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_headers(self, extra_headers: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": _USER_AGENT,
        }
        headers.update(self._headers)
        if extra_headers:
            headers.update(extra_headers)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request.

        Raises:
            TransportError: On network/connection errors
            RemoteError: On API errors (4xx, 5xx)
        """
        client = self._get_client()
        url = f"{self._base_url}{path}"

        try:
            response = await client.request(
                method=method,
                url=url,
                json=json,
                content=content,
                headers=self._build_headers(headers),
                params=params,
            )
        except httpx.ConnectError as e:
            raise TransportError(f"Connection failed: {e}", url=url, cause=e) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {e}", url=url, cause=e) from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error: {e}", url=url, cause=e) from e

        if response.status_code >= 400:
            body = None
            with suppress(ValueError):
                parsed = response.json()
                if isinstance(parsed, dict):
                    body = parsed

            raise RemoteError.from_response(
                status_code=response.status_code,
                body=body,
                headers=dict(response.headers),
            )

        return response

    async def post(
        self,
        path: str,
        json: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a JSON POST request."""
        return await self.request("POST", path, json=json, headers=headers)

    async def post_bytes(
        self,
        path: str,
        data: bytes,
        *,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST a raw binary body."""
        merged = {"Content-Type": "application/octet-stream", **(headers or {})}
        return await self.request("POST", path, content=data, headers=merged)

    async def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, params=params, headers=headers)

    async def delete(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a DELETE request."""
        return await self.request("DELETE", path, headers=headers)

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
