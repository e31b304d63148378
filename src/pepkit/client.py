"""Asyncio client for the pepkit SDK."""

import asyncio
import logging
from typing import Any, Optional

from .config import AZConfig
from .exceptions import ClientClosed, PepError, TransportError
from .mapper import from_wire, to_wire
from .models import AZRequest, AZResponse
from .transport import AsyncHttpTransport, AsyncTransport

logger = logging.getLogger(__name__)


class AsyncAZClient:
    """
    Asyncio Policy Enforcement Point client.

    Usage:
        async with AsyncAZClient(AZConfig(host="pdp.internal", use_tls=True)) as client:
            response = await client.check(request)

    Concurrent ``check`` calls share one transport session. Cancelling a
    call cancels the in-flight exchange and raises ``asyncio.CancelledError``.
    """

    def __init__(self, config: Optional[AZConfig] = None, transport: Optional[AsyncTransport] = None):
        """
        Initialize the client.

        Args:
            config: PDP endpoint settings (default: AZConfig())
            transport: Transport to use instead of the httpx one; closed on shutdown
        """
        self.config = config or AZConfig()
        self._transport = transport
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

    async def __aenter__(self) -> "AsyncAZClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.shutdown()

    @property
    def closed(self) -> bool:
        return self._closed

    def _acquire(self) -> AsyncTransport:
        if self._closed:
            raise ClientClosed()
        if self._transport is None:
            self._transport = AsyncHttpTransport(self.config)
        self._in_flight += 1
        self._idle.clear()
        return self._transport

    def _release(self) -> None:
        self._in_flight -= 1
        if self._in_flight == 0:
            self._idle.set()

    async def check(self, request: AZRequest) -> AZResponse:
        """
        Ask the PDP for a decision.

        Args:
            request: Atomic or batch request, usually from a builder

        Returns:
            The decoded response. A denial is ``decision=False``, not an error.

        Raises:
            ClientClosed: shutdown() has been called
            InvalidRequestShape: the request cannot be serialized
            TransportError: the exchange with the PDP failed
        """
        transport = self._acquire()
        try:
            wire_request = to_wire(request)
            logger.debug(
                "Sending authorization check %r with %d evaluation(s)",
                wire_request.request_id,
                len(wire_request.evaluations),
            )
            try:
                wire_response = await transport.send(wire_request)
            except PepError as e:
                logger.warning("Authorization check %r failed: %s", wire_request.request_id, e)
                raise
            except Exception as e:
                logger.warning("Authorization check %r failed: %s", wire_request.request_id, e)
                raise TransportError(f"Transport failure: {e}") from e
        finally:
            self._release()

        response = from_wire(wire_response)
        logger.debug("Authorization check %r decision: %s", response.request_id, response.decision)
        return response

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting calls and release the transport.

        In-flight calls are awaited (up to ``timeout`` seconds if given)
        before the transport is closed. Safe to call more than once.
        """
        self._closed = True
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Closing transport with %d call(s) still in flight", self._in_flight)
        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()
            logger.debug("Transport closed")
