"""Authorization check examples for the pepkit SDK.

Runs three checks against a PDP configured through the PEPKIT_PDP_*
environment variables: a request loaded from JSON, an atomic request and a
request with multiple evaluations.
"""

import logging
import time
from pathlib import Path

from pepkit import (
    ActionBuilder,
    AZAtomicRequestBuilder,
    AZClient,
    AZConfig,
    AZRequest,
    AZRequestBuilder,
    AZResponse,
    EvaluationBuilder,
    PepError,
    PrincipalBuilder,
    ResourceBuilder,
    SubjectBuilder,
    sync_client,
)

JSON_FILE_PATH = Path(__file__).parent / "requests" / "ok_onlyone1.json"

ZONE_ID = 634601921829
POLICY_STORE_ID = "417b278c0d024cf789e3d3c2bc9854c6"

PRINCIPAL_ID = "spiffe://edge.example.com/workload/64ad91fec7b0403eaf5d37e56c14ba42"
PRINCIPAL_TYPE = "workload"
PRINCIPAL_SOURCE = "spire"

SUBJECT_ID = "role/branch-owner"
SUBJECT_TYPE = "attribute"

RESOURCE_ID = "fb008a600df04b21841c4fb5ad27ddf7"
RESOURCE_TYPE = "PharmaAuthZFlow::Platform::Branch"

ACTION_NAME = "PharmaAuthZFlow::Platform::Action::assign-role"


def print_authorization_result(response: AZResponse) -> None:
    """Print the decision and any reasons."""
    if response.decision:
        print("Authorization Permitted")
        return

    print("Authorization Denied")
    for scope, reason in response.reasons():
        print(f"-> Reason {scope} [{reason.code}]: {reason.message}")
    for evaluation in response.evaluations:
        if evaluation.decision:
            print(f"-> Evaluation RequestID {evaluation.request_id}: Single Authorization Permitted")


def timed_check(client: AZClient, request: AZRequest) -> None:
    start = time.perf_counter()
    try:
        response = client.check(request)
    except PepError as e:
        print(f"Authorization check failed: {e}")
        return
    print(f"Request execution time: {(time.perf_counter() - start) * 1000:.0f} ms")
    print_authorization_result(response)


def check_json_request(client: AZClient) -> None:
    """Load a request from a JSON file and check it."""
    request = AZRequest.model_validate_json(JSON_FILE_PATH.read_text())
    timed_check(client, request)


def check_atomic_request(client: AZClient) -> None:
    """Check a single subject/resource/action triple."""
    principal = PrincipalBuilder(PRINCIPAL_ID).with_type(PRINCIPAL_TYPE).with_source(PRINCIPAL_SOURCE).build()

    request = (
        AZAtomicRequestBuilder(ZONE_ID, POLICY_STORE_ID, SUBJECT_ID, RESOURCE_TYPE, ACTION_NAME)
        .with_request_id("atomic-request-001")
        .with_principal(principal)
        .with_subject_type(SUBJECT_TYPE)
        .with_resource_id(RESOURCE_ID)
        .build()
    )
    timed_check(client, request)


def check_multiple_evaluations_request(client: AZClient) -> None:
    """Check two actions on the same resource in one request."""
    principal = PrincipalBuilder(PRINCIPAL_ID).with_type(PRINCIPAL_TYPE).with_source(PRINCIPAL_SOURCE).build()
    subject = SubjectBuilder(SUBJECT_ID).with_type(SUBJECT_TYPE).build()
    resource = ResourceBuilder(RESOURCE_TYPE).with_id(RESOURCE_ID).build()

    assign_role = ActionBuilder(ACTION_NAME).build()
    view = ActionBuilder("PharmaAuthZFlow::Platform::Action::view").build()

    request = (
        AZRequestBuilder(ZONE_ID, POLICY_STORE_ID)
        .with_request_id("batch-eval-001")
        .with_principal(principal)
        .with_evaluation(EvaluationBuilder(subject, resource, assign_role).with_request_id("eval-assign-role").build())
        .with_evaluation(EvaluationBuilder(subject, resource, view).with_request_id("eval-view").build())
        .build()
    )
    timed_check(client, request)


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    with sync_client(AZConfig.from_env()) as client:
        print("\nRunning check_json_request()")
        check_json_request(client)

        print("\nRunning check_atomic_request()")
        check_atomic_request(client)

        print("\nRunning check_multiple_evaluations_request()")
        check_multiple_evaluations_request(client)


if __name__ == "__main__":
    main()
