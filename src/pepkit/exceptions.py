"""Custom exceptions for the pepkit SDK."""

from typing import Any, Optional


class PepError(Exception):
    """Base exception for all pepkit errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingRequiredField(PepError):
    """Raised by a builder when a required field was never set."""

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Missing required field: {field}")
        self.field = field


class InvalidRequestShape(PepError):
    """Raised when a request is structurally incomplete at serialization time."""

    def __init__(self, message: str = "Invalid request shape") -> None:
        super().__init__(message)


class UnsupportedValueType(PepError):
    """Raised when a native value cannot be encoded as a generic Value."""

    def __init__(self, value: Any, message: Optional[str] = None) -> None:
        super().__init__(message or f"Unsupported value type: {type(value).__name__}")
        self.value = value


class CyclicValueGraph(UnsupportedValueType):
    """Raised when a native value graph contains a reference cycle."""

    def __init__(self, value: Any) -> None:
        super().__init__(value, f"Cyclic value graph through {type(value).__name__}")


class TransportError(PepError):
    """Raised when the transport fails (connection, timeout, protocol error).

    The underlying exception, if any, is chained as ``__cause__``.
    """

    def __init__(self, message: str = "Transport error", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClientClosed(PepError):
    """Raised when a call is attempted after shutdown()."""

    def __init__(self, message: str = "Client is closed") -> None:
        super().__init__(message)
