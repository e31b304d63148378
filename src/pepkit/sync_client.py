"""Synchronous client for the pepkit SDK."""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Generator, Optional

from .config import AZConfig
from .exceptions import ClientClosed, PepError, TransportError
from .mapper import from_wire, to_wire
from .models import AZRequest, AZResponse
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)


class AZClient:
    """
    Blocking Policy Enforcement Point client.

    One transport session is shared by every ``check`` call, including
    calls made concurrently from several threads. Calls are independent:
    nothing is batched, reordered or deduplicated.

    Usage:
        with AZClient(AZConfig(host="localhost", port=9094)) as client:
            response = client.check(request)
            if not response.decision:
                for scope, reason in response.reasons():
                    print(scope, reason.message)
    """

    def __init__(self, config: Optional[AZConfig] = None, transport: Optional[Transport] = None):
        """
        Initialize the client.

        Args:
            config: PDP endpoint settings (default: AZConfig())
            transport: Transport to use instead of the httpx one; the client
                takes ownership and closes it on shutdown
        """
        self.config = config or AZConfig()
        self._transport = transport
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._in_flight = 0
        self._closed = False

    def __enter__(self) -> "AZClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.shutdown()

    @property
    def closed(self) -> bool:
        return self._closed

    def _acquire(self) -> Transport:
        with self._lock:
            if self._closed:
                raise ClientClosed()
            if self._transport is None:
                self._transport = HttpTransport(self.config)
            self._in_flight += 1
            return self._transport

    def _release(self) -> None:
        with self._lock:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.notify_all()

    def check(self, request: AZRequest) -> AZResponse:
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
                wire_response = transport.send(wire_request)
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

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting calls and release the transport.

        Calls already in flight are waited for (up to ``timeout`` seconds if
        given) before the transport is closed. Safe to call more than once.
        """
        with self._lock:
            self._closed = True
            if not self._idle.wait_for(lambda: self._in_flight == 0, timeout=timeout):
                logger.warning("Closing transport with %d call(s) still in flight", self._in_flight)
            transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
            logger.debug("Transport closed")


@contextmanager
def sync_client(
    config: Optional[AZConfig] = None,
    transport: Optional[Transport] = None,
) -> Generator[AZClient, None, None]:
    """
    Context manager for the synchronous client.

    Args:
        config: PDP endpoint settings (default: AZConfig())
        transport: Optional custom transport

    Yields:
        AZClient instance, shut down on exit

    Example:
        with sync_client(AZConfig.from_env()) as client:
            response = client.check(request)
    """
    client = AZClient(config=config, transport=transport)
    with client:
        yield client
