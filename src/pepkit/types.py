"""Type definitions and enums for the pepkit SDK."""

from enum import Enum


class PolicyStoreKind(str, Enum):
    """Kinds of policy store a zone can evaluate against."""

    LEDGER = "ledger"


class EntitiesSchema(str, Enum):
    """Schemas understood for the entities attached to an authorization model."""

    CEDAR = "cedar"

