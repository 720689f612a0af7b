from __future__ import annotations

import pickle
import struct
from typing import Any, Protocol, runtime_checkable

from ..core.utils import dumps, loads

__all__ = [
    "Codec",
    "CodecsRegistry",
    "get_default_codecs",
    "IntCodec",
    "FloatCodec",
    "StrCodec",
    "BytesCodec",
    "BoolCodec",
    "JsonCodec",
    "PickleCodec",
]


@runtime_checkable
class Codec(Protocol):
    """Serialized-form descriptor of one payload type.

    Codecs must be pure (no side effects), thread-safe and picklable: they are
    shipped to every worker as part of the wire schema.
    """

    name: str

    def encode(self, value: Any) -> bytes: ...
    def decode(self, data: bytes) -> Any: ...


class IntCodec:
    """Arbitrary-precision signed integer, big-endian two's complement."""

    name = "int"

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"int codec: expected int, got {type(value).__name__}")
        length = (value.bit_length() + 8) // 8
        return value.to_bytes(length, "big", signed=True)

    def decode(self, data: bytes) -> int:
        return int.from_bytes(data, "big", signed=True)


class FloatCodec:
    name = "float"
    _fmt = struct.Struct(">d")

    def encode(self, value: Any) -> bytes:
        return self._fmt.pack(float(value))

    def decode(self, data: bytes) -> float:
        return self._fmt.unpack(data)[0]


class StrCodec:
    name = "str"

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, str):
            raise TypeError(f"str codec: expected str, got {type(value).__name__}")
        return value.encode("utf-8")

    def decode(self, data: bytes) -> str:
        return data.decode("utf-8")


class BytesCodec:
    name = "bytes"

    def encode(self, value: Any) -> bytes:
        return bytes(value)

    def decode(self, data: bytes) -> bytes:
        return bytes(data)


class BoolCodec:
    name = "bool"

    def encode(self, value: Any) -> bytes:
        return b"\x01" if value else b"\x00"

    def decode(self, data: bytes) -> bool:
        if data not in (b"\x00", b"\x01"):
            raise ValueError(f"bool codec: invalid payload {data!r}")
        return data == b"\x01"


class JsonCodec:
    """Compact UTF-8 JSON; round-trips JSON-native values (tuples come back as lists)."""

    name = "json"

    def encode(self, value: Any) -> bytes:
        return dumps(value)

    def decode(self, data: bytes) -> Any:
        return loads(data)


class PickleCodec:
    """Fallback for arbitrary Python objects shared between trusted processes."""

    name = "pickle"

    def encode(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def decode(self, data: bytes) -> Any:
        return pickle.loads(data)


class CodecsRegistry:
    """Named codec lookup used when synthesizing the per-job wire schema."""

    def __init__(self) -> None:
        self._codecs: dict[str, Codec] = {}

    def register(self, codec: Codec) -> None:
        if not codec.name or codec.name.strip() != codec.name:
            raise ValueError(f"invalid codec name: {codec.name!r}")
        # last-wins: re-registering a name replaces the codec
        self._codecs[codec.name] = codec

    def get(self, name: str) -> Codec:
        try:
            return self._codecs[name]
        except KeyError as e:
            raise LookupError(f"no codec registered under name={name!r}") from e

    def __contains__(self, name: object) -> bool:
        return name in self._codecs

    def names(self) -> list[str]:
        return sorted(self._codecs)


_default_registry: CodecsRegistry | None = None


def get_default_codecs() -> CodecsRegistry:
    global _default_registry
    if _default_registry is None:
        reg = CodecsRegistry()
        for codec in (IntCodec(), FloatCodec(), StrCodec(), BytesCodec(), BoolCodec(), JsonCodec(), PickleCodec()):
            reg.register(codec)
        _default_registry = reg
    return _default_registry
