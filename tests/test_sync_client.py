"""Unit tests for the synchronous client."""

import json
import threading
from typing import Optional

import pytest
import respx
from httpx import Response

from pepkit import (
    ActionBuilder,
    AZAtomicRequestBuilder,
    AZClient,
    AZConfig,
    AZRequest,
    AZRequestBuilder,
    ClientClosed,
    EvaluationBuilder,
    InvalidRequestShape,
    PrincipalBuilder,
    ResourceBuilder,
    SubjectBuilder,
    TransportError,
    sync_client,
)
from pepkit.wire import AuthorizationCheckRequest, AuthorizationCheckResponse

ZONE_ID = 634601921829
POLICY_STORE_ID = "417b278c0d024cf789e3d3c2bc9854c6"
PRINCIPAL_ID = "spiffe://edge.example.com/workload/64ad91fec7b0403eaf5d37e56c14ba42"
SUBJECT_ID = "role/branch-owner"
RESOURCE_TYPE = "PharmaAuthZFlow::Platform::Branch"
ACTION_NAME = "PharmaAuthZFlow::Platform::Action::assign-role"


class FakeTransport:
    """Transport returning a canned response, optionally blocking until released."""

    def __init__(self, response: Optional[AuthorizationCheckResponse] = None, error: Optional[Exception] = None):
        self.response = response or AuthorizationCheckResponse(decision=True)
        self.error = error
        self.sent: list[AuthorizationCheckRequest] = []
        self.closed = False
        self.entered = threading.Event()
        self.release = threading.Event()
        self.release.set()

    def send(self, request: AuthorizationCheckRequest) -> AuthorizationCheckResponse:
        self.sent.append(request)
        self.entered.set()
        self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.response

    def close(self) -> None:
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
    principal = PrincipalBuilder(PRINCIPAL_ID).with_type("workload").with_source("spire").build()
    return (
        AZAtomicRequestBuilder(ZONE_ID, POLICY_STORE_ID, SUBJECT_ID, RESOURCE_TYPE, ACTION_NAME)
        .with_request_id("atomic-request-001")
        .with_principal(principal)
        .with_subject_type("attribute")
        .with_resource_id("fb008a600df04b21841c4fb5ad27ddf7")
        .with_context_property("time", "2025-01-23T16:17:46+00:00")
        .build()
    )


@respx.mock
def test_check_atomic(config: AZConfig, check_url: str, atomic_request: AZRequest) -> None:
    """Test an atomic request end to end."""
    # Mock response
    route = respx.post(check_url).mock(
        return_value=Response(200, json={"decision": True, "requestID": "atomic-request-001"})
    )

    # Test
    with AZClient(config) as client:
        response = client.check(atomic_request)

    # Verify
    assert response.decision is True
    assert response.request_id == "atomic-request-001"
    assert response.context is None
    assert response.reasons() == []
    sent = json.loads(route.calls.last.request.content)
    assert sent["authorizationModel"]["principal"]["id"] == PRINCIPAL_ID
    assert sent["subject"]["id"] == SUBJECT_ID
    assert sent["subject"]["properties"] == {}
    assert sent["context"] == {"time": "2025-01-23T16:17:46+00:00"}
    assert sent["evaluations"] == []


@respx.mock
def test_check_denied_with_reason(config: AZConfig, check_url: str, atomic_request: AZRequest) -> None:
    """Test a denial is a normal response carrying the reason."""
    respx.post(check_url).mock(
        return_value=Response(
            200,
            json={"decision": False, "context": {"reasonUser": {"code": "E403", "message": "not permitted"}}},
        )
    )

    with AZClient(config) as client:
        response = client.check(atomic_request)

    assert response.decision is False
    assert response.context.reason_user.message == "not permitted"


@respx.mock
def test_check_batch(config: AZConfig, check_url: str) -> None:
    """Test a batch request keeps evaluation order both ways."""
    subject = SubjectBuilder(SUBJECT_ID).with_type("attribute").build()
    resource = ResourceBuilder(RESOURCE_TYPE).build()
    request = (
        AZRequestBuilder(ZONE_ID, POLICY_STORE_ID)
        .with_request_id("batch-eval-001")
        .with_evaluation(
            EvaluationBuilder(subject, resource, ActionBuilder(ACTION_NAME).build())
            .with_request_id("eval-assign-role")
            .build()
        )
        .with_evaluation(
            EvaluationBuilder(subject, resource, ActionBuilder("PharmaAuthZFlow::Platform::Action::view").build())
            .with_request_id("eval-view")
            .build()
        )
        .build()
    )
    route = respx.post(check_url).mock(
        return_value=Response(
            200,
            json={
                "decision": False,
                "requestID": "batch-eval-001",
                "evaluations": [
                    {"decision": False, "requestID": "eval-assign-role"},
                    {"decision": True, "requestID": "eval-view"},
                ],
            },
        )
    )

    with AZClient(config) as client:
        response = client.check(request)

    sent = json.loads(route.calls.last.request.content)
    assert [e["requestID"] for e in sent["evaluations"]] == ["eval-assign-role", "eval-view"]
    assert [e.request_id for e in response.evaluations] == ["eval-assign-role", "eval-view"]
    assert [e.decision for e in response.evaluations] == [False, True]


@respx.mock
def test_transport_error_not_a_denial(config: AZConfig, check_url: str, atomic_request: AZRequest) -> None:
    """Test transport failures raise instead of returning a decision."""
    respx.post(check_url).mock(return_value=Response(502, json={"detail": "bad gateway"}))

    with AZClient(config) as client:
        with pytest.raises(TransportError) as exc_info:
            client.check(atomic_request)

    assert exc_info.value.status_code == 502


def test_foreign_transport_error_wrapped(atomic_request: AZRequest) -> None:
    """Test arbitrary transport exceptions are wrapped with their cause."""
    transport = FakeTransport(error=ConnectionRefusedError("refused"))

    with AZClient(transport=transport) as client:
        with pytest.raises(TransportError) as exc_info:
            client.check(atomic_request)

    assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)


def test_invalid_shape_not_sent() -> None:
    """Test a structurally invalid request never reaches the transport."""
    transport = FakeTransport()
    request = AZRequest.model_construct(authorization_model=None)

    with AZClient(transport=transport) as client:
        with pytest.raises(InvalidRequestShape):
            client.check(request)

    assert transport.sent == []


def test_check_after_shutdown(atomic_request: AZRequest) -> None:
    """Test check after shutdown fails with ClientClosed and sends nothing."""
    transport = FakeTransport()
    client = AZClient(transport=transport)

    client.shutdown()

    with pytest.raises(ClientClosed):
        client.check(atomic_request)
    assert transport.sent == []
    assert transport.closed is True
    assert client.closed is True


def test_shutdown_idempotent() -> None:
    """Test shutdown can be called repeatedly."""
    transport = FakeTransport()
    client = AZClient(transport=transport)

    client.shutdown()
    client.shutdown()

    assert transport.closed is True


def test_shutdown_waits_for_in_flight(atomic_request: AZRequest) -> None:
    """Test shutdown lets an in-flight call finish before closing the transport."""
    transport = FakeTransport()
    transport.release.clear()
    client = AZClient(transport=transport)
    results = []

    caller = threading.Thread(target=lambda: results.append(client.check(atomic_request)))
    caller.start()
    assert transport.entered.wait(timeout=5)

    stopper = threading.Thread(target=client.shutdown)
    stopper.start()
    stopper.join(timeout=0.2)

    # Shutdown is blocked on the in-flight call, and new calls are refused
    assert stopper.is_alive()
    assert transport.closed is False
    with pytest.raises(ClientClosed):
        client.check(atomic_request)

    transport.release.set()
    caller.join(timeout=5)
    stopper.join(timeout=5)

    assert results[0].decision is True
    assert transport.closed is True
    assert len(transport.sent) == 1


def test_shutdown_timeout(atomic_request: AZRequest) -> None:
    """Test a bounded shutdown closes the transport even if a call is stuck."""
    transport = FakeTransport()
    transport.release.clear()
    client = AZClient(transport=transport)

    caller = threading.Thread(target=lambda: client.check(atomic_request))
    caller.start()
    assert transport.entered.wait(timeout=5)

    client.shutdown(timeout=0.05)

    assert transport.closed is True
    transport.release.set()
    caller.join(timeout=5)


def test_concurrent_checks_share_transport(atomic_request: AZRequest) -> None:
    """Test concurrent calls each get their own exchange over one transport."""
    transport = FakeTransport()
    client = AZClient(transport=transport)

    threads = [threading.Thread(target=client.check, args=(atomic_request,)) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)
    client.shutdown()

    assert len(transport.sent) == 8


@respx.mock
def test_sync_client_context_manager(config: AZConfig, check_url: str, atomic_request: AZRequest) -> None:
    """Test the sync_client helper shuts the client down on exit."""
    respx.post(check_url).mock(return_value=Response(200, json={"decision": True}))

    with sync_client(config) as client:
        assert client.check(atomic_request).decision is True

    assert client.closed is True
