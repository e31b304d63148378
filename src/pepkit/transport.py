"""Transports carrying one wire request to the PDP and one response back.

The clients only depend on the ``Transport`` / ``AsyncTransport``
protocols; the httpx implementations here POST the JSON payload to the
configured check path. Any failure is raised as ``TransportError`` with the
original exception chained, never turned into a decision.
"""

from typing import Any, Optional, Protocol

import httpx
from pydantic import ValidationError

from .config import AZConfig
from .exceptions import TransportError
from .wire import AuthorizationCheckRequest, AuthorizationCheckResponse


class Transport(Protocol):
    """Blocking request/response transport."""

    def send(self, request: AuthorizationCheckRequest) -> AuthorizationCheckResponse: ...

    def close(self) -> None: ...


class AsyncTransport(Protocol):
    """Asyncio request/response transport."""

    async def send(self, request: AuthorizationCheckRequest) -> AuthorizationCheckResponse: ...

    async def close(self) -> None: ...


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or body)
    return str(body)


def _parse_response(response: httpx.Response) -> AuthorizationCheckResponse:
    """
    Turn an HTTP response into a wire response.

    Raises:
        TransportError: error status, undecodable body, or unexpected shape
    """
    if response.status_code >= 400:
        raise TransportError(
            f"PDP returned {response.status_code}: {_error_detail(response)}",
            status_code=response.status_code,
        )
    try:
        data: Any = response.json()
    except ValueError as e:
        raise TransportError(f"Malformed PDP response: {e}", status_code=response.status_code) from e
    try:
        return AuthorizationCheckResponse.from_payload(data)
    except ValidationError as e:
        raise TransportError(f"Unexpected PDP response shape: {e}", status_code=response.status_code) from e


class HttpTransport:
    """
    Blocking httpx transport.

    One ``httpx.Client`` (and its connection pool) is shared by all calls
    and is safe to use from several threads.
    """

    def __init__(self, config: AZConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._client = client or httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def send(self, request: AuthorizationCheckRequest) -> AuthorizationCheckResponse:
        try:
            response = self._client.post(self.config.check_path, json=request.to_payload())
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error: {e}") from e
        except RuntimeError as e:
            # httpx raises RuntimeError once the client has been closed
            raise TransportError(f"Transport unavailable: {e}") from e
        return _parse_response(response)

    def close(self) -> None:
        self._client.close()


class AsyncHttpTransport:
    """Asyncio httpx transport."""

    def __init__(self, config: AZConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client or httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout)

    async def send(self, request: AuthorizationCheckRequest) -> AuthorizationCheckResponse:
        try:
            response = await self._client.post(self.config.check_path, json=request.to_payload())
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error: {e}") from e
        except RuntimeError as e:
            raise TransportError(f"Transport unavailable: {e}") from e
        return _parse_response(response)

    async def close(self) -> None:
        await self._client.aclose()
