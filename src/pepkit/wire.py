"""Wire message shapes exchanged with the PDP.

Field aliases are the wire names. Optional fields left as ``None`` are
omitted from the payload, so "not provided" stays distinct from "provided
empty" (an empty struct is still sent). Structs travel as plain JSON
objects, the JSON form of a ``google.protobuf.Struct``.
"""

from collections.abc import Mapping
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from .values import StructValue, decode_map, encode_map


def _as_struct(value: Any) -> Any:
    if isinstance(value, Mapping):
        return encode_map(value)
    return value


WireStruct = Annotated[
    StructValue,
    BeforeValidator(_as_struct),
    PlainSerializer(decode_map, return_type=dict[str, Any]),
]


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PolicyStoreMessage(_WireModel):
    kind: str = ""
    id: str = ""


class PrincipalMessage(_WireModel):
    type: Optional[str] = None
    id: str = ""
    source: Optional[str] = None


class EntitiesMessage(_WireModel):
    schema_name: str = Field("", alias="schema")
    items: list[WireStruct] = Field(default_factory=list)


class AuthorizationModelMessage(_WireModel):
    zone_id: int = Field(0, alias="zoneID")
    policy_store: Optional[PolicyStoreMessage] = Field(None, alias="policyStore")
    principal: Optional[PrincipalMessage] = None
    entities: Optional[EntitiesMessage] = None


class SubjectMessage(_WireModel):
    type: Optional[str] = None
    id: str = ""
    source: Optional[str] = None
    properties: WireStruct = Field(default_factory=StructValue)


class ResourceMessage(_WireModel):
    type: str = ""
    id: Optional[str] = None
    properties: WireStruct = Field(default_factory=StructValue)


class ActionMessage(_WireModel):
    name: str = ""
    properties: WireStruct = Field(default_factory=StructValue)


class EvaluationRequest(_WireModel):
    request_id: str = Field("", alias="requestID")
    subject: Optional[SubjectMessage] = None
    resource: Optional[ResourceMessage] = None
    action: Optional[ActionMessage] = None
    context: Optional[WireStruct] = None


class AuthorizationCheckRequest(_WireModel):
    request_id: str = Field("", alias="requestID")
    authorization_model: AuthorizationModelMessage = Field(
        default_factory=AuthorizationModelMessage, alias="authorizationModel"
    )
    subject: Optional[SubjectMessage] = None
    resource: Optional[ResourceMessage] = None
    action: Optional[ActionMessage] = None
    context: Optional[WireStruct] = None
    evaluations: list[EvaluationRequest] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict using wire names, absent fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReasonResponseMessage(_WireModel):
    code: str = ""
    message: str = ""


class ContextResponseMessage(_WireModel):
    id: str = ""
    reason_admin: Optional[ReasonResponseMessage] = Field(None, alias="reasonAdmin")
    reason_user: Optional[ReasonResponseMessage] = Field(None, alias="reasonUser")


class EvaluationResponseMessage(_WireModel):
    decision: bool = False
    request_id: Optional[str] = Field(None, alias="requestID")
    context: Optional[ContextResponseMessage] = None


class AuthorizationCheckResponse(_WireModel):
    decision: bool = False
    request_id: Optional[str] = Field(None, alias="requestID")
    context: Optional[ContextResponseMessage] = None
    evaluations: list[EvaluationResponseMessage] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Any) -> "AuthorizationCheckResponse":
        """Parse a decoded JSON payload. Raises pydantic ValidationError on bad shape."""
        return cls.model_validate(data)
