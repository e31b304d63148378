"""Pydantic models for the pepkit SDK.

Request side: the authorization model (zone, policy store, principal,
entities) plus either a single subject/resource/action triple or an
ordered list of evaluations. Response side: the decision, optional reasons
and per-evaluation results.

Property and context maps accept native data and are normalized into
``Value``s on construction, so requests can be loaded straight from JSON.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .types import PolicyStoreKind
from .values import StructValue, Value, decode_map, encode_fields, encode_map


class _DomainModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


def _normalize_fields(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, StructValue):
        return dict(value.fields)
    return encode_fields(value)


# Request models


class _PropertiesModel(_DomainModel):
    properties: dict[str, Value] = Field(default_factory=dict)

    @field_validator("properties", mode="before")
    @classmethod
    def _normalize_properties(cls, value: Any) -> Any:
        return _normalize_fields(value) or {}

    def native_properties(self) -> dict[str, Any]:
        return decode_map(StructValue(fields=self.properties))


class Principal(_DomainModel):
    """The calling identity, e.g. a workload."""

    id: str
    type: Optional[str] = None
    source: Optional[str] = None


class Subject(_PropertiesModel):
    """The entity on whose behalf the action is requested."""

    id: str
    type: Optional[str] = None
    source: Optional[str] = None


class Resource(_PropertiesModel):
    """The resource being acted on."""

    type: str
    id: Optional[str] = None


class Action(_PropertiesModel):
    """The action to authorize."""

    name: str


class PolicyStore(_DomainModel):
    """Which policy set to evaluate against."""

    kind: str = PolicyStoreKind.LEDGER.value
    id: str


class Entities(_DomainModel):
    """Schema reference and entity items for the authorization model."""

    schema_name: str = Field(alias="schema")
    items: tuple[StructValue, ...] = ()

    @field_validator("items", mode="before")
    @classmethod
    def _normalize_items(cls, value: Any) -> Any:
        if value is None:
            return ()
        return tuple(item if isinstance(item, StructValue) else encode_map(item) for item in value)


# zoneID is an int64 on the wire
MAX_ZONE_ID = 2**63 - 1


class AZModel(_DomainModel):
    """Shared authorization context of a request."""

    zone_id: int
    policy_store: PolicyStore
    principal: Optional[Principal] = None
    entities: Optional[Entities] = None


class Evaluation(_DomainModel):
    """One authorization question inside a batch request."""

    request_id: Optional[str] = None
    subject: Subject
    resource: Resource
    action: Action
    context: Optional[dict[str, Value]] = None

    @field_validator("context", mode="before")
    @classmethod
    def _normalize_context(cls, value: Any) -> Any:
        return _normalize_fields(value)

    def native_context(self) -> Optional[dict[str, Any]]:
        if self.context is None:
            return None
        return decode_map(StructValue(fields=self.context))


class AZRequest(_DomainModel):
    """
    An authorization check request.

    Either atomic (top-level subject, resource and action, no evaluations)
    or batch (one or more evaluations, no top-level triple). Builders choose
    one shape; the mapper serializes whatever is populated.
    """

    request_id: Optional[str] = None
    authorization_model: AZModel = Field(validation_alias=AliasChoices("authorization_model", "model"))
    subject: Optional[Subject] = None
    resource: Optional[Resource] = None
    action: Optional[Action] = None
    context: Optional[dict[str, Value]] = None
    evaluations: tuple[Evaluation, ...] = ()

    @field_validator("context", mode="before")
    @classmethod
    def _normalize_context(cls, value: Any) -> Any:
        return _normalize_fields(value)

    def is_atomic(self) -> bool:
        """True if this request asks one question through the top-level triple."""
        return (
            not self.evaluations
            and self.subject is not None
            and self.resource is not None
            and self.action is not None
        )

    def native_context(self) -> Optional[dict[str, Any]]:
        if self.context is None:
            return None
        return decode_map(StructValue(fields=self.context))


# Response models


class ReasonResponse(_DomainModel):
    """Why a decision was taken."""

    code: str = ""
    message: str = ""


class ContextResponse(_DomainModel):
    """Decision context. Reasons are None when the PDP did not send them."""

    id: str = ""
    reason_admin: Optional[ReasonResponse] = None
    reason_user: Optional[ReasonResponse] = None


class EvaluationResponse(_DomainModel):
    """Result of a single evaluation, positionally matching the request."""

    decision: bool = False
    request_id: str = ""
    context: Optional[ContextResponse] = None


class AZResponse(_DomainModel):
    """Result of an authorization check. A denial is a normal response."""

    decision: bool = False
    request_id: str = ""
    context: Optional[ContextResponse] = None
    evaluations: tuple[EvaluationResponse, ...] = ()

    def reasons(self) -> list[tuple[str, ReasonResponse]]:
        """
        Collect every reason the PDP sent.

        Returns:
            (scope, reason) pairs in response order. Scope is ``admin`` or
            ``user`` for top-level reasons and ``evaluations[i].admin`` /
            ``evaluations[i].user`` for per-evaluation ones.
        """
        found = _context_reasons("", self.context)
        for index, evaluation in enumerate(self.evaluations):
            found.extend(_context_reasons(f"evaluations[{index}].", evaluation.context))
        return found


def _context_reasons(prefix: str, context: Optional[ContextResponse]) -> list[tuple[str, ReasonResponse]]:
    if context is None:
        return []
    found = []
    if context.reason_admin is not None:
        found.append((f"{prefix}admin", context.reason_admin))
    if context.reason_user is not None:
        found.append((f"{prefix}user", context.reason_user))
    return found
