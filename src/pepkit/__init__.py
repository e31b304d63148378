"""pepkit - Policy Enforcement Point SDK for remote Policy Decision Points."""

from .builders import (
    ActionBuilder,
    AZAtomicRequestBuilder,
    AZRequestBuilder,
    EvaluationBuilder,
    PrincipalBuilder,
    ResourceBuilder,
    SubjectBuilder,
)
from .client import AsyncAZClient
from .config import AZConfig
from .exceptions import (
    ClientClosed,
    CyclicValueGraph,
    InvalidRequestShape,
    MissingRequiredField,
    PepError,
    TransportError,
    UnsupportedValueType,
)
from .mapper import from_wire, to_wire
from .models import (
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
from .sync_client import AZClient, sync_client
from .transport import AsyncHttpTransport, AsyncTransport, HttpTransport, Transport
from .types import EntitiesSchema, PolicyStoreKind
from .values import (
    BoolValue,
    ListValue,
    NullValue,
    NumberValue,
    StringValue,
    StructValue,
    Value,
    decode,
    decode_map,
    encode,
    encode_map,
)

__version__ = "0.1.0"

__all__ = [
    # Clients
    "AZClient",
    "AsyncAZClient",
    "sync_client",
    "AZConfig",
    # Transports
    "Transport",
    "AsyncTransport",
    "HttpTransport",
    "AsyncHttpTransport",
    # Builders
    "PrincipalBuilder",
    "SubjectBuilder",
    "ResourceBuilder",
    "ActionBuilder",
    "EvaluationBuilder",
    "AZRequestBuilder",
    "AZAtomicRequestBuilder",
    # Models
    "Principal",
    "Subject",
    "Resource",
    "Action",
    "PolicyStore",
    "Entities",
    "AZModel",
    "Evaluation",
    "AZRequest",
    "AZResponse",
    "EvaluationResponse",
    "ContextResponse",
    "ReasonResponse",
    # Mapping
    "to_wire",
    "from_wire",
    # Values
    "Value",
    "NullValue",
    "BoolValue",
    "NumberValue",
    "StringValue",
    "ListValue",
    "StructValue",
    "encode",
    "decode",
    "encode_map",
    "decode_map",
    # Types
    "PolicyStoreKind",
    "EntitiesSchema",
    # Exceptions
    "PepError",
    "MissingRequiredField",
    "InvalidRequestShape",
    "UnsupportedValueType",
    "CyclicValueGraph",
    "TransportError",
    "ClientClosed",
]
