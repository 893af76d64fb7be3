"""Typed field envelope used by the document store.

Plain values are lifted into one of six variants and each variant knows its
own envelope, e.g. ``{"integerValue": "3"}`` or
``{"mapValue": {"fields": {...}}}``. ``DoubleValue`` is only ever decoded.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class NullValue:
    def to_field(self) -> dict[str, Any]:
        return {"nullValue": None}

    def to_python(self) -> None:
        return None


@dataclass(frozen=True)
class StringValue:
    value: str

    def to_field(self) -> dict[str, Any]:
        return {"stringValue": self.value}

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class IntegerValue:
    value: int

    def to_field(self) -> dict[str, Any]:
        # int64 travels as a decimal string
        return {"integerValue": str(self.value)}

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class BooleanValue:
    value: bool

    def to_field(self) -> dict[str, Any]:
        return {"booleanValue": self.value}

    def to_python(self) -> bool:
        return self.value


@dataclass(frozen=True)
class ArrayValue:
    items: tuple["Value", ...]

    def to_field(self) -> dict[str, Any]:
        return {"arrayValue": {"values": [item.to_field() for item in self.items]}}

    def to_python(self) -> list[Any]:
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class MapValue:
    fields: tuple[tuple[str, "Value"], ...]

    def to_field(self) -> dict[str, Any]:
        return {"mapValue": {"fields": {key: value.to_field() for key, value in self.fields}}}

    def to_python(self) -> dict[str, Any]:
        return {key: value.to_python() for key, value in self.fields}


@dataclass(frozen=True)
class DoubleValue:
    # Decoded from other producers only; from_python never builds one.
    value: float

    def to_field(self) -> dict[str, Any]:
        return {"doubleValue": self.value}

    def to_python(self) -> float:
        return self.value


Value = Union[NullValue, StringValue, IntegerValue, BooleanValue, ArrayValue, MapValue, DoubleValue]


def from_python(value: Any) -> Value | None:
    """Lift a plain value, or return None when the type is not supported."""
    if value is None:
        return NullValue()
    if isinstance(value, str):
        return StringValue(value)
    if isinstance(value, bool):
        return BooleanValue(value)
    if isinstance(value, int):
        return IntegerValue(value)
    if isinstance(value, float):
        if value.is_integer():
            return IntegerValue(int(value))
        return None
    if isinstance(value, Mapping):
        return MapValue(tuple(_lift_fields(value).items()))
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        items = (from_python(item) for item in value)
        return ArrayValue(tuple(item for item in items if item is not None))
    return None


def _lift_fields(mapping: Mapping[str, Any]) -> dict[str, Value]:
    lifted: dict[str, Value] = {}
    for key, raw in mapping.items():
        value = from_python(raw)
        if value is not None:
            lifted[str(key)] = value
    return lifted


def _decode_null(raw: Any) -> Value:
    return NullValue()


def _decode_string(raw: Any) -> Value:
    return StringValue(str(raw))


def _decode_integer(raw: Any) -> Value:
    return IntegerValue(int(str(raw)))


def _decode_boolean(raw: Any) -> Value:
    return BooleanValue(bool(raw))


def _decode_double(raw: Any) -> DoubleValue:
    return DoubleValue(float(raw))


def _decode_array(raw: Any) -> Value:
    values = (raw or {}).get("values") or []
    return ArrayValue(tuple(_decode_item(item) for item in values))


def _decode_map(raw: Any) -> Value:
    fields = (raw or {}).get("fields") or {}
    return MapValue(tuple((key, from_field(value)) for key, value in fields.items()))


_DECODERS = {
    "nullValue": _decode_null,
    "stringValue": _decode_string,
    "timestampValue": _decode_string,
    "integerValue": _decode_integer,
    "doubleValue": _decode_double,
    "booleanValue": _decode_boolean,
    "arrayValue": _decode_array,
    "mapValue": _decode_map,
}


def from_field(envelope: Mapping[str, Any]) -> Value:
    for marker, decoder in _DECODERS.items():
        if marker in envelope:
            return decoder(envelope[marker])
    raise ValueError(f"Unknown field envelope: {sorted(envelope)}")


def _decode_item(item: Any) -> Value:
    if not isinstance(item, Mapping):
        raise ValueError(f"Array item must be an object, got {type(item).__name__}")
    if any(marker in item for marker in _DECODERS):
        return from_field(item)
    # Unwrapped record: either {"fields": {...}} or the field map itself.
    if set(item) == {"fields"} and isinstance(item["fields"], Mapping):
        return _decode_map(item)
    return _decode_map({"fields": item})


def encode_fields(mapping: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value.to_field() for key, value in _lift_fields(mapping).items()}


def decode_fields(fields: Mapping[str, Any] | None) -> dict[str, Any]:
    return {key: from_field(envelope).to_python() for key, envelope in (fields or {}).items()}
