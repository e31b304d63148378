"""Generic Value codec for property and context data.

Native Python data (``None``, ``bool``, ``int``, ``float``, ``str``,
mappings with string keys, lists and tuples) is normalized into the
``Value`` tagged union, which is what the domain model stores. Structs are
sent over the wire as plain JSON objects (see ``pepkit.wire``).

Both directions walk the graph with an explicit stack, so nesting depth is
bounded by memory rather than by the interpreter recursion limit.
"""

import math
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import CyclicValueGraph, UnsupportedValueType


class _ValueModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class NullValue(_ValueModel):
    """Explicit null, distinct from an absent key."""

    kind: Literal["null"] = "null"


class BoolValue(_ValueModel):
    kind: Literal["bool"] = "bool"
    value: bool


class NumberValue(_ValueModel):
    """A float64 number. Integers are carried as numbers too."""

    kind: Literal["number"] = "number"
    value: float


class StringValue(_ValueModel):
    kind: Literal["string"] = "string"
    value: str


class ListValue(_ValueModel):
    kind: Literal["list"] = "list"
    values: tuple["Value", ...] = ()


class StructValue(_ValueModel):
    """An ordered string-keyed map of Values (the wire struct)."""

    kind: Literal["struct"] = "struct"
    fields: dict[str, "Value"] = Field(default_factory=dict)


Value = Annotated[
    Union[NullValue, BoolValue, NumberValue, StringValue, ListValue, StructValue],
    Field(discriminator="kind"),
]

ListValue.model_rebuild()
StructValue.model_rebuild()

_VALUE_TYPES = (NullValue, BoolValue, NumberValue, StringValue, ListValue, StructValue)


def is_value(obj: Any) -> bool:
    """Return True if obj is already an encoded Value."""
    return isinstance(obj, _VALUE_TYPES)


def _encode_scalar(obj: Any) -> Any:
    """Encode a leaf, or return None if obj is a container."""
    if obj is None:
        return NullValue()
    if is_value(obj):
        return obj
    # bool is an int subclass, check it first
    if isinstance(obj, bool):
        return BoolValue(value=obj)
    if isinstance(obj, (int, float)):
        try:
            number = float(obj)
        except OverflowError as e:
            raise UnsupportedValueType(obj, "Integer too large for a float64 number") from e
        if not math.isfinite(number):
            raise UnsupportedValueType(obj, f"Non-finite number: {obj!r}")
        if isinstance(obj, int) and int(number) != obj:
            raise UnsupportedValueType(obj, "Integer not exactly representable as a float64 number")
        return NumberValue(value=number)
    if isinstance(obj, str):
        return StringValue(value=obj)
    if isinstance(obj, (Mapping, list, tuple)):
        return None
    raise UnsupportedValueType(obj)


class _Frame:
    """A container being encoded; children are collected in source order."""

    __slots__ = ("source", "items", "key", "children")

    def __init__(self, source: Any) -> None:
        self.source = source
        self.key = None
        if isinstance(source, Mapping):
            self.items = iter(source.items())
            self.children: Any = {}
        else:
            self.items = enumerate(source)
            self.children = []

    def add(self, value: Any) -> None:
        if isinstance(self.children, dict):
            self.children[self.key] = value
        else:
            self.children.append(value)

    def finish(self) -> Any:
        if isinstance(self.children, dict):
            return StructValue(fields=self.children)
        return ListValue(values=tuple(self.children))


def encode(obj: Any) -> Any:
    """
    Encode a native Python value as a Value.

    Args:
        obj: None, bool, int, float, str, a str-keyed mapping, a list or a
            tuple, nested arbitrarily. Values already encoded pass through.
            Tuples are one-way: both tuples and lists decode as lists.
            Integers must be exactly representable as float64.

    Returns:
        The equivalent Value

    Raises:
        UnsupportedValueType: obj (or something nested in it) has no Value form
        CyclicValueGraph: a container contains itself
    """
    leaf = _encode_scalar(obj)
    if leaf is not None:
        return leaf

    stack = [_Frame(obj)]
    on_path = {id(obj)}
    while True:
        frame = stack[-1]
        try:
            key, item = next(frame.items)
        except StopIteration:
            stack.pop()
            on_path.discard(id(frame.source))
            value = frame.finish()
            if not stack:
                return value
            stack[-1].add(value)
            continue

        if isinstance(frame.children, dict):
            if not isinstance(key, str):
                raise UnsupportedValueType(key, f"Mapping keys must be strings, got {type(key).__name__}")
            frame.key = key

        leaf = _encode_scalar(item)
        if leaf is not None:
            frame.add(leaf)
            continue
        if id(item) in on_path:
            raise CyclicValueGraph(item)
        on_path.add(id(item))
        stack.append(_Frame(item))


def encode_map(mapping: Mapping[str, Any]) -> StructValue:
    """Encode a str-keyed mapping as a struct. An empty mapping gives an empty struct."""
    if not isinstance(mapping, Mapping):
        raise UnsupportedValueType(mapping, f"Expected a mapping, got {type(mapping).__name__}")
    return encode(mapping)


def _decode_scalar(value: Any) -> Any:
    if isinstance(value, NullValue):
        return None
    if isinstance(value, (BoolValue, NumberValue, StringValue)):
        return value.value
    raise UnsupportedValueType(value, f"Not a Value: {type(value).__name__}")


def decode(value: Any) -> Any:
    """
    Decode a Value back to native Python data.

    Structs become dicts, lists become lists, numbers become floats.
    """
    if not isinstance(value, (ListValue, StructValue)):
        return _decode_scalar(value)

    root: Any = {} if isinstance(value, StructValue) else []
    pending = [(value, root)]
    while pending:
        source, target = pending.pop()
        items = source.fields.items() if isinstance(source, StructValue) else enumerate(source.values)
        for key, item in items:
            if isinstance(item, StructValue):
                native: Any = {}
                pending.append((item, native))
            elif isinstance(item, ListValue):
                native = []
                pending.append((item, native))
            else:
                native = _decode_scalar(item)
            if isinstance(target, dict):
                target[key] = native
            else:
                target.append(native)
    return root


def decode_map(struct: StructValue) -> dict[str, Any]:
    """Decode a struct back to a plain dict."""
    return decode(struct)


def encode_fields(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a property/context mapping into a dict of Values."""
    return dict(encode_map(mapping).fields)
