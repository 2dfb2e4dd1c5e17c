from __future__ import annotations

import json
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from contextvars import Token
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from inspect import isclass
from pathlib import PurePath
from types import GeneratorType
from typing import Any, Protocol, cast, runtime_checkable
from uuid import UUID

from monkay import TransparentCage


@runtime_checkable
class EncoderProtocol(Protocol):
    def is_type(self, value: Any) -> bool:
        """Check if encoder is applicable for values this type"""

    def serialize(self, value: Any) -> Any:
        """Prepare for serialization."""


class Encoder:
    """
    The base class for any custom encoder added to the system.
    """

    name: str | None = None
    __type__: type | tuple[type, ...] | None = None

    def is_type(self, value: Any) -> bool:
        return isinstance(value, self.__type__)

    def serialize(self, value: Any) -> Any:
        raise NotImplementedError("`serialize()` must be implemented in subclasses.")


class DataclassEncoder(Encoder):
    name = "DataclassEncoder"

    def is_type(self, value: Any) -> bool:
        return is_dataclass(value) and not isclass(value)

    def serialize(self, obj: Any) -> Any:
        return asdict(obj)


class NamedTupleEncoder(Encoder):
    name = "NamedTupleEncoder"

    def is_type(self, value: Any) -> bool:
        return isinstance(value, tuple) and hasattr(value, "_asdict")

    def serialize(self, obj: Any) -> dict:
        return cast(dict, obj._asdict())


class ModelDumpEncoder(Encoder):
    name = "ModelDumpEncoder"

    # pydantic style models
    def is_type(self, value: Any) -> bool:
        return hasattr(value, "model_dump") and not isclass(value)

    def serialize(self, value: Any) -> Any:
        return value.model_dump()


class ToDictEncoder(Encoder):
    """
    Objects exposing `to_dict()`, the usual shape of entities and DTOs.
    """

    name = "ToDictEncoder"

    def is_type(self, value: Any) -> bool:
        return callable(getattr(value, "to_dict", None)) and not isclass(value)

    def serialize(self, value: Any) -> Any:
        return value.to_dict()


class EnumEncoder(Encoder):
    name = "EnumEncoder"
    __type__ = Enum

    def serialize(self, obj: Enum) -> Any:
        return obj.value


class PurePathEncoder(Encoder):
    name = "PurePathEncoder"
    __type__ = PurePath

    def serialize(self, obj: PurePath) -> str:
        return str(obj)


class DateEncoder(Encoder):
    name = "DateEncoder"
    __type__ = date

    def serialize(self, obj: date | datetime) -> str:
        return obj.isoformat()


class StructureEncoder(Encoder):
    name = "StructureEncoder"
    __type__ = (set, frozenset, GeneratorType, tuple, deque)

    def serialize(self, obj: Iterable) -> list:
        return list(obj)


class UUIDEncoder(Encoder):
    name = "UUIDEncoder"
    __type__ = UUID

    def serialize(self, obj: UUID) -> str:
        return str(obj)


class DecimalEncoder(Encoder):
    name = "DecimalEncoder"
    __type__ = Decimal

    def serialize(self, obj: Decimal) -> str:
        return str(obj)


class TimedeltaEncoder(Encoder):
    name = "TimedeltaEncoder"
    __type__ = timedelta

    def serialize(self, obj: timedelta) -> float:
        return obj.total_seconds()


DEFAULT_ENCODER_TYPES: deque[EncoderProtocol] = deque(
    (
        DataclassEncoder(),
        NamedTupleEncoder(),
        ModelDumpEncoder(),
        ToDictEncoder(),
        EnumEncoder(),
        PurePathEncoder(),
        DateEncoder(),
        StructureEncoder(),
        UUIDEncoder(),
        DecimalEncoder(),
        TimedeltaEncoder(),
    )
)

_ENCODER_TYPES_TYPE_BASE = Sequence[EncoderProtocol]


class ENCODER_TYPES_TYPE(_ENCODER_TYPES_TYPE_BASE):
    # ContextVar interface
    name: str

    def set(self, value: _ENCODER_TYPES_TYPE_BASE) -> Token: ...

    def get(
        self, default: _ENCODER_TYPES_TYPE_BASE | None = None
    ) -> _ENCODER_TYPES_TYPE_BASE | None: ...

    def reset(self, token: Token) -> None: ...


# TransparentCage gives the sequence a ContextVar interface, so a single
# call can swap the encoders without touching the global registry.
ENCODER_TYPES: ENCODER_TYPES_TYPE = DEFAULT_ENCODER_TYPES  # type: ignore
TransparentCage(globals(), name="ENCODER_TYPES")


def get_encoder_name(encoder: Any) -> str:
    if getattr(encoder, "name", None):
        return cast(str, encoder.name)
    return type(encoder).__name__


def register_encoder(encoder: EncoderProtocol | type[EncoderProtocol]) -> None:
    """
    Registers an encoder ahead of the existing ones. An encoder with the
    same name replaces the previous registration.
    """
    if isclass(encoder):
        encoder = encoder()
    if not isinstance(encoder, EncoderProtocol):
        raise RuntimeError(f'"{encoder}" is not implementing the EncoderProtocol.')

    encoder_types = ENCODER_TYPES.get()
    if not isinstance(encoder_types, deque):
        raise TypeError(
            f'For registering a new encoder a "deque" is required as set "ENCODER_TYPES" value. Found: {encoder_types!r}'
        )
    encoder_name = get_encoder_name(encoder)
    for value in list(encoder_types):
        if get_encoder_name(value) == encoder_name:
            encoder_types.remove(value)
            break
    encoder_types.appendleft(encoder)


def is_encodable(value: Any) -> bool:
    """
    Whether any registered encoder knows how to serialize the value.
    """
    return any(encoder.is_type(value) for encoder in ENCODER_TYPES.get())


def json_encode_default(value: Any) -> Any:
    """
    Encode a value to a JSON-compatible format using the registered encoders.

    Raises:
        ValueError: If the value is not serializable by any encoder.
    """
    for encoder in ENCODER_TYPES.get():
        if encoder.is_type(value):
            return encoder.serialize(value)
    raise ValueError(f"Object of type '{type(value).__name__}' is not JSON serializable.")


def json_encode(
    value: Any,
    *,
    json_encode_fn: Callable[..., Any] = json.dumps,
    post_transform_fn: Callable[[Any], Any] | None = json.loads,
    with_encoders: Sequence[EncoderProtocol] | None = None,
) -> Any:
    """
    Encode a value to a JSON-compatible format.

    Args:
        value: The value to encode.
        json_encode_fn: The callable used for encoding the object as json.
            Must support the `default` keyword argument.
        post_transform_fn: Applied to the encoded string. `None` returns the
            JSON string itself.
        with_encoders: Encoders used for this call only.

    Raises:
        ValueError: If the value is not serializable by any encoder.
    """
    if with_encoders is None:
        result = json_encode_fn(value, default=json_encode_default)
        if post_transform_fn is None:
            return result
        return post_transform_fn(result)

    token = ENCODER_TYPES.set(with_encoders)
    try:
        return json_encode(
            value, json_encode_fn=json_encode_fn, post_transform_fn=post_transform_fn
        )
    finally:
        ENCODER_TYPES.reset(token)
