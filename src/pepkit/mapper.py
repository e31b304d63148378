"""Mapping between the domain model and the wire messages.

Pure and stateless: no I/O, safe to call from any thread. Whatever is
populated on a request is serialized as given. A request carrying both a
top-level subject/resource/action and evaluations is sent with both.
"""

from typing import Optional

from .exceptions import InvalidRequestShape
from .models import (
    MAX_ZONE_ID,
    Action,
    AZModel,
    AZRequest,
    AZResponse,
    ContextResponse,
    Entities,
    Evaluation,
    EvaluationResponse,
    PolicyStore,
    Principal,
    ReasonResponse,
    Resource,
    Subject,
)
from .values import StructValue
from .wire import (
    ActionMessage,
    AuthorizationCheckRequest,
    AuthorizationCheckResponse,
    AuthorizationModelMessage,
    ContextResponseMessage,
    EntitiesMessage,
    EvaluationRequest,
    EvaluationResponseMessage,
    PolicyStoreMessage,
    PrincipalMessage,
    ReasonResponseMessage,
    ResourceMessage,
    SubjectMessage,
)


def to_wire(request: AZRequest) -> AuthorizationCheckRequest:
    """
    Convert a domain request into the wire request.

    Args:
        request: Request to send

    Returns:
        Wire request; evaluations keep their insertion order

    Raises:
        InvalidRequestShape: the authorization model, zone id or policy
            store is missing, or an evaluation lacks subject/resource/action
    """
    return AuthorizationCheckRequest(
        request_id=request.request_id or "",
        authorization_model=_map_authorization_model(getattr(request, "authorization_model", None)),
        subject=_map_subject(request.subject) if request.subject is not None else None,
        resource=_map_resource(request.resource) if request.resource is not None else None,
        action=_map_action(request.action) if request.action is not None else None,
        context=_map_struct(request.context),
        evaluations=[_map_evaluation(index, evaluation) for index, evaluation in enumerate(request.evaluations)],
    )


def from_wire(response: AuthorizationCheckResponse) -> AZResponse:
    """
    Convert a wire response into a domain response.

    Optional parts (context, reasons) are only populated when present on the
    wire; the request id defaults to an empty string.
    """
    return AZResponse(
        decision=response.decision,
        request_id=response.request_id or "",
        context=_map_context_response(response.context),
        evaluations=tuple(_map_evaluation_response(evaluation) for evaluation in response.evaluations),
    )


# Request helpers


def _map_struct(fields: Optional[dict]) -> Optional[StructValue]:
    if fields is None:
        return None
    return StructValue(fields=fields)


def _map_authorization_model(model: Optional[AZModel]) -> AuthorizationModelMessage:
    if model is None:
        raise InvalidRequestShape("Request has no authorization model")
    zone_id = getattr(model, "zone_id", None)
    if not isinstance(zone_id, int) or isinstance(zone_id, bool) or not 0 < zone_id <= MAX_ZONE_ID:
        raise InvalidRequestShape(f"Zone id must be a positive int64, got {zone_id!r}")
    return AuthorizationModelMessage(
        zone_id=zone_id,
        policy_store=_map_policy_store(getattr(model, "policy_store", None)),
        principal=_map_principal(model.principal) if model.principal is not None else None,
        entities=_map_entities(model.entities) if model.entities is not None else None,
    )


def _map_policy_store(store: Optional[PolicyStore]) -> PolicyStoreMessage:
    if store is None or not getattr(store, "id", None):
        raise InvalidRequestShape("Request has no policy store id")
    return PolicyStoreMessage(kind=store.kind, id=store.id)


def _map_principal(principal: Principal) -> PrincipalMessage:
    return PrincipalMessage(type=principal.type, id=principal.id, source=principal.source)


def _map_entities(entities: Entities) -> EntitiesMessage:
    return EntitiesMessage(schema_name=entities.schema_name, items=list(entities.items))


def _map_subject(subject: Subject) -> SubjectMessage:
    return SubjectMessage(
        type=subject.type,
        id=subject.id,
        source=subject.source,
        properties=StructValue(fields=subject.properties),
    )


def _map_resource(resource: Resource) -> ResourceMessage:
    return ResourceMessage(
        type=resource.type,
        id=resource.id,
        properties=StructValue(fields=resource.properties),
    )


def _map_action(action: Action) -> ActionMessage:
    return ActionMessage(name=action.name, properties=StructValue(fields=action.properties))


def _map_evaluation(index: int, evaluation: Evaluation) -> EvaluationRequest:
    subject = getattr(evaluation, "subject", None)
    resource = getattr(evaluation, "resource", None)
    action = getattr(evaluation, "action", None)
    if subject is None or resource is None or action is None:
        raise InvalidRequestShape(f"Evaluation {index} needs a subject, a resource and an action")
    return EvaluationRequest(
        request_id=evaluation.request_id or "",
        subject=_map_subject(subject),
        resource=_map_resource(resource),
        action=_map_action(action),
        context=_map_struct(getattr(evaluation, "context", None)),
    )


# Response helpers


def _map_evaluation_response(response: EvaluationResponseMessage) -> EvaluationResponse:
    return EvaluationResponse(
        decision=response.decision,
        request_id=response.request_id or "",
        context=_map_context_response(response.context),
    )


def _map_context_response(context: Optional[ContextResponseMessage]) -> Optional[ContextResponse]:
    if context is None:
        return None
    return ContextResponse(
        id=context.id,
        reason_admin=_map_reason(context.reason_admin),
        reason_user=_map_reason(context.reason_user),
    )


def _map_reason(reason: Optional[ReasonResponseMessage]) -> Optional[ReasonResponse]:
    if reason is None:
        return None
    return ReasonResponse(code=reason.code, message=reason.message)
