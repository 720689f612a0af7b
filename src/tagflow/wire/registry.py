# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Per-tag type registry.

Records, for every tag, the key codec and key order used by the shuffle sort
and the value codec. Once every tag has been registered the registry is frozen
into a `WireSchema`: a fixed table indexed by tag that the tagged wire codecs
and the partitioner dispatch on.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from ..api.errors import TypeConflict, UnresolvedTag
from ..api.functions import KVType
from ..codec.registry import Codec, CodecsRegistry, get_default_codecs
from ..core.log import get_logger

__all__ = ["TagEntry", "TypeRegistry", "WireSchema"]

_log = get_logger("wire.registry")


@dataclass(frozen=True)
class TagEntry:
    tag: int
    kv_type: KVType
    key_codec: Codec
    value_codec: Codec

    @property
    def key_order(self) -> Callable[[Any], Any] | None:
        return self.kv_type.key_order

    def describe(self) -> dict[str, Any]:
        order = self.key_order
        return {
            "tag": self.tag,
            "key": self.key_codec.name,
            "value": self.value_codec.name,
            "key_order": getattr(order, "__qualname__", repr(order)) if order is not None else None,
        }


class TypeRegistry:
    """
    Mutable accumulator of per-tag wire types, used only while compiling.

    Registering the same tag twice is allowed when both registrations agree
    (several nodes flattened into one channel each register its tag); any
    disagreement raises TypeConflict.
    """

    def __init__(self, codecs: CodecsRegistry | None = None) -> None:
        self._codecs = codecs or get_default_codecs()
        self._entries: dict[int, TagEntry] = {}

    def register(self, tag: int, kv_type: KVType) -> TagEntry:
        if tag < 0:
            raise ValueError(f"tag must be non-negative, got {tag}")
        existing = self._entries.get(tag)
        if existing is not None:
            if existing.kv_type != kv_type:
                raise TypeConflict(tag, existing.kv_type, kv_type)
            return existing
        entry = TagEntry(
            tag=tag,
            kv_type=kv_type,
            key_codec=self._codecs.get(kv_type.key),
            value_codec=self._codecs.get(kv_type.value),
        )
        self._entries[tag] = entry
        return entry

    def __contains__(self, tag: object) -> bool:
        return tag in self._entries

    def tags(self) -> list[int]:
        return sorted(self._entries)

    def freeze(self, expected_tags: Iterable[int]) -> WireSchema:
        """
        Produce the immutable schema. Every expected tag must be registered,
        otherwise the reduce side would receive a tag it cannot decode.
        """
        expected = sorted(set(expected_tags))
        missing = [t for t in expected if t not in self._entries]
        if missing:
            raise UnresolvedTag(f"no wire type registered for tag(s) {missing}", tag=missing[0])
        size = max([*expected, *self._entries], default=-1) + 1
        table = tuple(self._entries.get(t) for t in range(size))
        _log.debug("wire schema frozen", event="compile.registry", tags=len(self._entries))
        return WireSchema(table)


class WireSchema:
    """Immutable tag -> TagEntry table shared by all wire codecs of one job."""

    __slots__ = ("_table",)

    def __init__(self, table: tuple[TagEntry | None, ...]) -> None:
        self._table = table

    def entry(self, tag: int) -> TagEntry:
        entry = self._table[tag] if 0 <= tag < len(self._table) else None
        if entry is None:
            raise UnresolvedTag(f"tag {tag} has no wire type in this job", tag=tag)
        return entry

    def tags(self) -> list[int]:
        return [e.tag for e in self._table if e is not None]

    def __len__(self) -> int:
        return sum(1 for e in self._table if e is not None)

    def describe(self) -> list[dict[str, Any]]:
        return [e.describe() for e in self._table if e is not None]

    def __getstate__(self):
        return {"table": self._table}

    def __setstate__(self, state) -> None:
        self._table = state["table"]
