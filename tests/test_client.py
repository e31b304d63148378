"""Unit tests for the asyncio client."""

import asyncio
import json
from typing import Optional

import pytest
import respx
from httpx import Response

from pepkit import (
    AsyncAZClient,
    AZAtomicRequestBuilder,
    AZConfig,
    AZRequest,
    ClientClosed,
    PrincipalBuilder,
    TransportError,
)
from pepkit.wire import AuthorizationCheckRequest, AuthorizationCheckResponse

ZONE_ID = 634601921829
POLICY_STORE_ID = "417b278c0d024cf789e3d3c2bc9854c6"
PRINCIPAL_ID = "spiffe://edge.example.com/workload/64ad91fec7b0403eaf5d37e56c14ba42"


class FakeAsyncTransport:
    """Async transport that waits on an event before answering."""

    def __init__(self, response: Optional[AuthorizationCheckResponse] = None):
        self.response = response or AuthorizationCheckResponse(decision=True)
        self.sent: list[AuthorizationCheckRequest] = []
        self.closed = False
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.release.set()

    async def send(self, request: AuthorizationCheckRequest) -> AuthorizationCheckResponse:
        self.sent.append(request)
        self.entered.set()
        await self.release.wait()
        return self.response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> AZConfig:
    """Test PDP endpoint."""
    return AZConfig(host="pdp.test", port=9094)


@pytest.fixture
def check_url(config: AZConfig) -> str:
    """Full check URL."""
    return f"{config.base_url}{config.check_path}"


@pytest.fixture
def atomic_request() -> AZRequest:
    """Atomic request with a workload principal."""
    return (
        AZAtomicRequestBuilder(
            ZONE_ID,
            POLICY_STORE_ID,
            "role/branch-owner",
            "PharmaAuthZFlow::Platform::Branch",
            "PharmaAuthZFlow::Platform::Action::assign-role",
        )
        .with_request_id("atomic-request-001")
        .with_principal(PrincipalBuilder(PRINCIPAL_ID).build())
        .build()
    )


@pytest.mark.asyncio
@respx.mock
async def test_check(config: AZConfig, check_url: str, atomic_request: AZRequest) -> None:
    """Test an atomic check end to end."""
    # Mock response
    route = respx.post(check_url).mock(
        return_value=Response(200, json={"decision": True, "requestID": "atomic-request-001"})
    )

    # Test
    async with AsyncAZClient(config) as client:
        response = await client.check(atomic_request)

    # Verify
    assert response.decision is True
    assert response.request_id == "atomic-request-001"
    assert response.context is None
    sent = json.loads(route.calls.last.request.content)
    assert sent["authorizationModel"]["principal"]["id"] == PRINCIPAL_ID


@pytest.mark.asyncio
@respx.mock
async def test_transport_error(config: AZConfig, check_url: str, atomic_request: AZRequest) -> None:
    """Test HTTP failures surface as TransportError."""
    respx.post(check_url).mock(return_value=Response(504, json={"detail": "deadline exceeded"}))

    async with AsyncAZClient(config) as client:
        with pytest.raises(TransportError) as exc_info:
            await client.check(atomic_request)

    assert exc_info.value.status_code == 504


@pytest.mark.asyncio
async def test_check_after_shutdown(atomic_request: AZRequest) -> None:
    """Test check after shutdown fails with ClientClosed and sends nothing."""
    transport = FakeAsyncTransport()
    client = AsyncAZClient(transport=transport)

    await client.shutdown()

    with pytest.raises(ClientClosed):
        await client.check(atomic_request)
    assert transport.sent == []
    assert transport.closed is True


@pytest.mark.asyncio
async def test_shutdown_waits_for_in_flight(atomic_request: AZRequest) -> None:
    """Test shutdown lets an in-flight call complete first."""
    transport = FakeAsyncTransport()
    transport.release.clear()
    client = AsyncAZClient(transport=transport)

    call = asyncio.create_task(client.check(atomic_request))
    await transport.entered.wait()
    stopping = asyncio.create_task(client.shutdown())
    await asyncio.sleep(0.05)

    assert not stopping.done()
    assert transport.closed is False
    with pytest.raises(ClientClosed):
        await client.check(atomic_request)

    transport.release.set()
    response = await call
    await stopping

    assert response.decision is True
    assert transport.closed is True


@pytest.mark.asyncio
async def test_cancellation_propagates(atomic_request: AZRequest) -> None:
    """Test cancelling a call raises CancelledError rather than a decision."""
    transport = FakeAsyncTransport()
    transport.release.clear()
    client = AsyncAZClient(transport=transport)

    call = asyncio.create_task(client.check(atomic_request))
    await transport.entered.wait()
    call.cancel()

    with pytest.raises(asyncio.CancelledError):
        await call

    # The cancelled call no longer counts as in flight
    await asyncio.wait_for(client.shutdown(), timeout=1)
    assert transport.closed is True


@pytest.mark.asyncio
async def test_concurrent_checks(atomic_request: AZRequest) -> None:
    """Test concurrent calls are independent exchanges."""
    transport = FakeAsyncTransport()

    async with AsyncAZClient(transport=transport) as client:
        responses = await asyncio.gather(*(client.check(atomic_request) for _ in range(5)))

    assert len(transport.sent) == 5
    assert all(response.decision for response in responses)
