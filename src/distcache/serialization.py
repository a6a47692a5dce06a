"""Value <-> bytes codec.

Values are stored as compact JSON produced by orjson. Decoding into a
concrete type (dataclass, pydantic model, TypedDict, ``list[Model]``...)
goes through a pydantic TypeAdapter so the caller gets back an instance
equal to the one that was stored.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol, TypeVar, overload

import orjson
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from distcache.errors import DeserializationError, SerializationError, ValidationError

T = TypeVar("T")

ORJSON_OPTIONS = orjson.OPT_NON_STR_KEYS | orjson.OPT_UTC_Z


class Serializer(Protocol):
    """Codec contract used by the accessors."""

    def encode(self, value: Any) -> bytes: ...

    def decode(self, payload: bytes, type_: Any = None) -> Any: ...


@lru_cache(maxsize=256)
def _adapter(type_: Any) -> TypeAdapter[Any]:
    return TypeAdapter(type_)


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True)
    if isinstance(obj, (set, frozenset)):
        # Iteration order depends on hash seeds; sort for stable output
        try:
            return sorted(obj)
        except TypeError:
            raise TypeError("set elements are not mutually comparable") from None
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


class JsonSerializer:
    """orjson-backed serializer with pydantic-driven typed decoding."""

    def __init__(self, option: int = ORJSON_OPTIONS) -> None:
        self.option = option

    def encode(self, value: Any) -> bytes:
        """Encode a value to JSON bytes.

        Raises:
            ValidationError: value is None
            SerializationError: unsupported type, cyclic graph, integer overflow
        """
        if value is None:
            raise ValidationError("cannot encode None")
        try:
            return orjson.dumps(value, default=_default, option=self.option)
        except orjson.JSONEncodeError as exc:
            raise SerializationError(
                f"cannot serialize {type(value).__name__}: {exc}"
            ) from exc

    @overload
    def decode(self, payload: bytes, type_: type[T]) -> T: ...

    @overload
    def decode(self, payload: bytes, type_: None = None) -> Any: ...

    def decode(self, payload: bytes, type_: Any = None) -> Any:
        """Decode JSON bytes, optionally validating into ``type_``.

        Raises:
            DeserializationError: malformed bytes or schema mismatch
        """
        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError as exc:
            raise DeserializationError(f"malformed payload: {exc}") from exc

        if type_ is None:
            return data

        try:
            return _adapter(type_).validate_python(data)
        except PydanticValidationError as exc:
            raise DeserializationError(
                f"payload does not match {getattr(type_, '__name__', type_)!s}: "
                f"{exc.error_count()} error(s)"
            ) from exc


DEFAULT_SERIALIZER = JsonSerializer()
