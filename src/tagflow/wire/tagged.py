# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Tagged wire types: the single key type and single value type of the shuffle.

A record is `(tag, payload)`. Encoding writes the tag as a fixed-width
unsigned prefix followed by the payload encoded with the codec registered for
that tag; decoding reads the tag first and dispatches on it. Keys sort by tag
first, then by the tag's own key order, so each tag occupies one contiguous
run of the sorted stream.
"""

import struct
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any

from .registry import WireSchema

__all__ = ["TaggedKey", "TaggedValue", "TaggedKeyCodec", "TaggedValueCodec", "TAG_PREFIX"]

TAG_PREFIX = struct.Struct(">I")


@dataclass(frozen=True)
class TaggedKey:
    tag: int
    key: Any


@dataclass(frozen=True)
class TaggedValue:
    tag: int
    value: Any


def _split(data: bytes) -> tuple[int, bytes]:
    if len(data) < TAG_PREFIX.size:
        raise ValueError(f"tagged record too short: {len(data)} bytes")
    (tag,) = TAG_PREFIX.unpack_from(data)
    return tag, data[TAG_PREFIX.size :]


class TaggedKeyCodec:
    """Key wire type; also provides the shuffle sort order."""

    def __init__(self, schema: WireSchema) -> None:
        self.schema = schema

    def encode(self, tk: TaggedKey) -> bytes:
        entry = self.schema.entry(tk.tag)
        return TAG_PREFIX.pack(tk.tag) + entry.key_codec.encode(tk.key)

    def decode(self, data: bytes) -> TaggedKey:
        tag, payload = _split(data)
        return TaggedKey(tag, self.schema.entry(tag).key_codec.decode(payload))

    def compare(self, a: TaggedKey, b: TaggedKey) -> int:
        if a.tag != b.tag:
            return -1 if a.tag < b.tag else 1
        order = self.schema.entry(a.tag).key_order
        ka, kb = (order(a.key), order(b.key)) if order is not None else (a.key, b.key)
        if ka < kb:
            return -1
        if kb < ka:
            return 1
        return 0

    def same_group(self, a: TaggedKey, b: TaggedKey) -> bool:
        return self.compare(a, b) == 0

    def sort_key(self):
        """`key=` function for sorted()/list.sort() implementing compare()."""
        return cmp_to_key(self.compare)


class TaggedValueCodec:
    def __init__(self, schema: WireSchema) -> None:
        self.schema = schema

    def encode(self, tv: TaggedValue) -> bytes:
        entry = self.schema.entry(tv.tag)
        return TAG_PREFIX.pack(tv.tag) + entry.value_codec.encode(tv.value)

    def decode(self, data: bytes) -> TaggedValue:
        tag, payload = _split(data)
        return TaggedValue(tag, self.schema.entry(tag).value_codec.decode(payload))
