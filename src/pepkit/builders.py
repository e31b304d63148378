"""Builders for authorization requests.

Builders are immutable: every ``with_*`` call returns a new builder and
leaves the original untouched, so a partially configured builder can be
shared and specialised freely. Property values are normalized into
``Value``s as soon as they are given, and ``build()`` copies them out.

Usage:
    principal = PrincipalBuilder("spiffe://edge.example.com/workload/1").with_type("workload").build()

    request = (
        AZAtomicRequestBuilder(zone_id, store_id, "role/branch-owner", "Branch", "assign-role")
        .with_request_id("atomic-request-001")
        .with_principal(principal)
        .with_resource_id("fb008a600df04b21841c4fb5ad27ddf7")
        .build()
    )
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .exceptions import MissingRequiredField, UnsupportedValueType
from .models import (
    MAX_ZONE_ID,
    Action,
    AZModel,
    AZRequest,
    Entities,
    Evaluation,
    PolicyStore,
    Principal,
    Resource,
    Subject,
)
from .types import PolicyStoreKind
from .values import encode, encode_fields


def _require(value: Any, name: str) -> None:
    if not isinstance(value, str) or not value:
        raise MissingRequiredField(name)


def _put(properties: Optional[Mapping[str, Any]], key: str, value: Any) -> dict[str, Any]:
    """Copy properties with key set to the encoded value (last write wins)."""
    if not isinstance(key, str):
        raise UnsupportedValueType(key, f"Property keys must be strings, got {type(key).__name__}")
    updated = dict(properties or {})
    updated[key] = encode(value)
    return updated


def _merge(properties: Optional[Mapping[str, Any]], extra: Mapping[str, Any]) -> dict[str, Any]:
    updated = dict(properties or {})
    updated.update(encode_fields(extra))
    return updated


@dataclass(frozen=True)
class PrincipalBuilder:
    """Builds a Principal from its required id."""

    id: str
    type: Optional[str] = None
    source: Optional[str] = None

    def with_type(self, type: str) -> "PrincipalBuilder":
        return replace(self, type=type)

    def with_source(self, source: str) -> "PrincipalBuilder":
        return replace(self, source=source)

    def build(self) -> Principal:
        _require(self.id, "principal.id")
        return Principal(id=self.id, type=self.type, source=self.source)


@dataclass(frozen=True)
class SubjectBuilder:
    """Builds a Subject from its required id."""

    id: str
    type: Optional[str] = None
    source: Optional[str] = None
    properties: Mapping[str, Any] = field(default_factory=dict)

    def with_type(self, type: str) -> "SubjectBuilder":
        return replace(self, type=type)

    def with_source(self, source: str) -> "SubjectBuilder":
        return replace(self, source=source)

    def with_property(self, key: str, value: Any) -> "SubjectBuilder":
        return replace(self, properties=_put(self.properties, key, value))

    def with_properties(self, properties: Mapping[str, Any]) -> "SubjectBuilder":
        return replace(self, properties=_merge(self.properties, properties))

    def build(self) -> Subject:
        _require(self.id, "subject.id")
        return Subject(id=self.id, type=self.type, source=self.source, properties=dict(self.properties))


@dataclass(frozen=True)
class ResourceBuilder:
    """Builds a Resource from its required type."""

    type: str
    id: Optional[str] = None
    properties: Mapping[str, Any] = field(default_factory=dict)

    def with_id(self, id: str) -> "ResourceBuilder":
        return replace(self, id=id)

    def with_property(self, key: str, value: Any) -> "ResourceBuilder":
        return replace(self, properties=_put(self.properties, key, value))

    def with_properties(self, properties: Mapping[str, Any]) -> "ResourceBuilder":
        return replace(self, properties=_merge(self.properties, properties))

    def build(self) -> Resource:
        _require(self.type, "resource.type")
        return Resource(type=self.type, id=self.id, properties=dict(self.properties))


@dataclass(frozen=True)
class ActionBuilder:
    """Builds an Action from its required name."""

    name: str
    properties: Mapping[str, Any] = field(default_factory=dict)

    def with_property(self, key: str, value: Any) -> "ActionBuilder":
        return replace(self, properties=_put(self.properties, key, value))

    def with_properties(self, properties: Mapping[str, Any]) -> "ActionBuilder":
        return replace(self, properties=_merge(self.properties, properties))

    def build(self) -> Action:
        _require(self.name, "action.name")
        return Action(name=self.name, properties=dict(self.properties))


@dataclass(frozen=True)
class EvaluationBuilder:
    """Builds one Evaluation of a batch request."""

    subject: Optional[Subject]
    resource: Optional[Resource]
    action: Optional[Action]
    request_id: Optional[str] = None
    context: Optional[Mapping[str, Any]] = None

    def with_request_id(self, request_id: str) -> "EvaluationBuilder":
        return replace(self, request_id=request_id)

    def with_context(self, context: Mapping[str, Any]) -> "EvaluationBuilder":
        """Replace the context. An empty mapping is sent as an empty context."""
        return replace(self, context=encode_fields(context))

    def with_context_property(self, key: str, value: Any) -> "EvaluationBuilder":
        return replace(self, context=_put(self.context, key, value))

    def build(self) -> Evaluation:
        for name in ("subject", "resource", "action"):
            if getattr(self, name) is None:
                raise MissingRequiredField(name)
        return Evaluation(
            request_id=self.request_id,
            subject=self.subject,
            resource=self.resource,
            action=self.action,
            context=dict(self.context) if self.context is not None else None,
        )


@dataclass(frozen=True)
class AZRequestBuilder:
    """
    Builds a general request.

    Evaluations are appended in order; responses are matched back to them
    by position and request id.
    """

    zone_id: int
    policy_store_id: str
    policy_store_kind: str = PolicyStoreKind.LEDGER.value
    request_id: Optional[str] = None
    principal: Optional[Principal] = None
    entities: Optional[Entities] = None
    subject: Optional[Subject] = None
    resource: Optional[Resource] = None
    action: Optional[Action] = None
    context: Optional[Mapping[str, Any]] = None
    evaluations: tuple[Evaluation, ...] = ()

    def with_request_id(self, request_id: str) -> "AZRequestBuilder":
        return replace(self, request_id=request_id)

    def with_principal(self, principal: Principal) -> "AZRequestBuilder":
        return replace(self, principal=principal)

    def with_entities(self, entities: Entities) -> "AZRequestBuilder":
        return replace(self, entities=entities)

    def with_entities_items(self, schema: str, items: Iterable[Mapping[str, Any]] = ()) -> "AZRequestBuilder":
        return replace(self, entities=Entities(schema_name=schema, items=tuple(items)))

    def with_subject(self, subject: Subject) -> "AZRequestBuilder":
        return replace(self, subject=subject)

    def with_resource(self, resource: Resource) -> "AZRequestBuilder":
        return replace(self, resource=resource)

    def with_action(self, action: Action) -> "AZRequestBuilder":
        return replace(self, action=action)

    def with_context(self, context: Mapping[str, Any]) -> "AZRequestBuilder":
        """Replace the context. An empty mapping is sent as an empty context."""
        return replace(self, context=encode_fields(context))

    def with_context_property(self, key: str, value: Any) -> "AZRequestBuilder":
        return replace(self, context=_put(self.context, key, value))

    def with_evaluation(self, evaluation: Evaluation) -> "AZRequestBuilder":
        if evaluation is None:
            raise MissingRequiredField("evaluation")
        return replace(self, evaluations=self.evaluations + (evaluation,))

    def with_evaluations(self, evaluations: Iterable[Evaluation]) -> "AZRequestBuilder":
        builder = self
        for evaluation in evaluations:
            builder = builder.with_evaluation(evaluation)
        return builder

    def build(self) -> AZRequest:
        zone_id = self.zone_id
        if not isinstance(zone_id, int) or isinstance(zone_id, bool) or not 0 < zone_id <= MAX_ZONE_ID:
            raise MissingRequiredField("zone_id", f"Zone id must be a positive int64, got {zone_id!r}")
        _require(self.policy_store_id, "policy_store_id")

        return AZRequest(
            request_id=self.request_id,
            authorization_model=AZModel(
                zone_id=zone_id,
                policy_store=PolicyStore(kind=self.policy_store_kind, id=self.policy_store_id),
                principal=self.principal,
                entities=self.entities,
            ),
            subject=self.subject,
            resource=self.resource,
            action=self.action,
            context=dict(self.context) if self.context is not None else None,
            evaluations=self.evaluations,
        )


@dataclass(frozen=True)
class AZAtomicRequestBuilder:
    """
    Builds a single-question request from flat parameters.

    Subject, resource and action are composed with their own builders at
    build() time and set at the top level of the request; the evaluations
    list stays empty.
    """

    zone_id: int
    policy_store_id: str
    subject_id: str
    resource_type: str
    action_name: str
    request_id: Optional[str] = None
    principal: Optional[Principal] = None
    entities: Optional[Entities] = None
    subject_type: Optional[str] = None
    subject_source: Optional[str] = None
    resource_id: Optional[str] = None
    subject_properties: Mapping[str, Any] = field(default_factory=dict)
    resource_properties: Mapping[str, Any] = field(default_factory=dict)
    action_properties: Mapping[str, Any] = field(default_factory=dict)
    context: Optional[Mapping[str, Any]] = None

    def with_request_id(self, request_id: str) -> "AZAtomicRequestBuilder":
        return replace(self, request_id=request_id)

    def with_principal(self, principal: Principal) -> "AZAtomicRequestBuilder":
        return replace(self, principal=principal)

    def with_entities(self, entities: Entities) -> "AZAtomicRequestBuilder":
        return replace(self, entities=entities)

    def with_entities_items(self, schema: str, items: Iterable[Mapping[str, Any]] = ()) -> "AZAtomicRequestBuilder":
        return replace(self, entities=Entities(schema_name=schema, items=tuple(items)))

    def with_subject_type(self, type: str) -> "AZAtomicRequestBuilder":
        return replace(self, subject_type=type)

    def with_subject_source(self, source: str) -> "AZAtomicRequestBuilder":
        return replace(self, subject_source=source)

    def with_subject_property(self, key: str, value: Any) -> "AZAtomicRequestBuilder":
        return replace(self, subject_properties=_put(self.subject_properties, key, value))

    def with_resource_id(self, resource_id: str) -> "AZAtomicRequestBuilder":
        return replace(self, resource_id=resource_id)

    def with_resource_property(self, key: str, value: Any) -> "AZAtomicRequestBuilder":
        return replace(self, resource_properties=_put(self.resource_properties, key, value))

    def with_action_property(self, key: str, value: Any) -> "AZAtomicRequestBuilder":
        return replace(self, action_properties=_put(self.action_properties, key, value))

    def with_context(self, context: Mapping[str, Any]) -> "AZAtomicRequestBuilder":
        return replace(self, context=encode_fields(context))

    def with_context_property(self, key: str, value: Any) -> "AZAtomicRequestBuilder":
        return replace(self, context=_put(self.context, key, value))

    def build(self) -> AZRequest:
        subject = SubjectBuilder(
            self.subject_id,
            type=self.subject_type,
            source=self.subject_source,
            properties=self.subject_properties,
        ).build()
        resource = ResourceBuilder(self.resource_type, id=self.resource_id, properties=self.resource_properties).build()
        action = ActionBuilder(self.action_name, properties=self.action_properties).build()

        builder = AZRequestBuilder(
            self.zone_id,
            self.policy_store_id,
            request_id=self.request_id,
            principal=self.principal,
            entities=self.entities,
            subject=subject,
            resource=resource,
            action=action,
        )
        if self.context is not None:
            builder = builder.with_context(self.context)
        return builder.build()
