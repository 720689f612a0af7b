# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
User function capability interfaces (public, stable).

Mapping, combining and reducing functions are opaque to the compiler: it only
reads their declared wire types and invokes them through these protocols from
the generic dispatcher tasks. Implementations must be picklable (module-level
classes/functions) because they are shipped to every worker.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "KVType",
    "Mapper",
    "Combiner",
    "Reducer",
    "FnMapper",
    "FnCombiner",
    "FnReducer",
]


@dataclass(frozen=True)
class KVType:
    """
    Declared key/value wire types of a record stream.

    Attributes:
        key: codec name of the key.
        value: codec name of the value.
        key_order: optional sort-key function defining the total order of keys
            within one tag (natural ordering of the decoded key when None).
            Keys with equal order keys form one group; the order key is also
            what the partitioner hashes, so it must be a plain value (str,
            int, bytes or tuples of those).
    """

    key: str
    value: str
    key_order: Callable[[Any], Any] | None = None


@runtime_checkable
class Mapper(Protocol):
    """
    Map-side function.

    `input_codec` is the decoding type of the source records it consumes;
    `output_type` declares the (key, value) stream it emits.
    """

    input_codec: str
    output_type: KVType

    def apply(self, record: Any) -> Iterable[tuple[Any, Any]]: ...


@runtime_checkable
class Combiner(Protocol):
    """Associative merge of grouped values; the result has the channel's value type."""

    def merge(self, key: Any, values: Iterable[Any]) -> Any: ...


@runtime_checkable
class Reducer(Protocol):
    """Reduce-side function; `output_codec` is the value type written to every sink."""

    output_codec: str

    def apply(self, key: Any, values: Iterable[Any]) -> Iterable[Any]: ...


@dataclass(frozen=True)
class FnMapper:
    fn: Callable[[Any], Iterable[tuple[Any, Any]]]
    output_type: KVType
    input_codec: str = "str"

    def apply(self, record: Any) -> Iterable[tuple[Any, Any]]:
        return self.fn(record)


@dataclass(frozen=True)
class FnCombiner:
    fn: Callable[[Any, Any], Any]  # binary fold: (acc, value) -> acc

    def merge(self, key: Any, values: Iterable[Any]) -> Any:
        it = iter(values)
        try:
            acc = next(it)
        except StopIteration:
            raise ValueError(f"combiner invoked with no values for key={key!r}") from None
        for v in it:
            acc = self.fn(acc, v)
        return acc


@dataclass(frozen=True)
class FnReducer:
    fn: Callable[[Any, Iterable[Any]], Iterable[Any]]
    output_codec: str = "json"

    def apply(self, key: Any, values: Iterable[Any]) -> Iterable[Any]:
        return self.fn(key, values)
