# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Dispatch table builder.

Wraps each opaque user function together with the tag(s) it serves and builds
the three tables the generic worker tasks look up at execution time:

  - map:     input channel index -> tagged mappers reading that channel
  - combine: tag -> tagged combiner (only channels with combiner semantics)
  - reduce:  tag -> (number of sinks, tagged reducer)

The wire schema is populated from the map table: every tag a mapper emits
registers that mapper's declared key/value types.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from ..api.errors import GraphError
from ..api.functions import Combiner, KVType, Mapper, Reducer
from ..codec.registry import CodecsRegistry
from ..core.log import get_logger
from ..graph.spec import ChannelGraph, OutputChannel
from ..wire.registry import TypeRegistry, WireSchema
from ..wire.tagged import TaggedKey, TaggedValue
from .tagging import ChannelTags

__all__ = [
    "TaggedMapper",
    "TaggedCombiner",
    "TaggedReducer",
    "ReduceEntry",
    "DispatchTables",
    "build_map_table",
    "build_schema",
    "build_dispatch",
]

_log = get_logger("compiler.dispatch")

ReducerKind = Literal["reducer", "combiner", "group", "identity"]

# Codecs whose payloads survive a JSON round trip.
_JSON_FRIENDLY = frozenset({"int", "float", "str", "bool", "json"})


@dataclass(frozen=True)
class TaggedMapper:
    """A mapping function (or the identity, for bypass nodes) bound to its output tags."""

    node_id: str
    tags: tuple[int, ...]
    output_type: KVType
    input_codec: str
    mapper: Mapper | None = None

    def run(self, record: Any) -> Iterator[tuple[TaggedKey, TaggedValue]]:
        pairs = self.mapper.apply(record) if self.mapper is not None else (record,)
        for key, value in pairs:
            for tag in self.tags:
                yield TaggedKey(tag, key), TaggedValue(tag, value)


@dataclass(frozen=True)
class TaggedCombiner:
    tag: int
    combiner: Combiner

    def combine(self, key: Any, values: Iterable[Any]) -> Any:
        return self.combiner.merge(key, values)


@dataclass(frozen=True)
class TaggedReducer:
    """
    Reduce-side function of one output channel.

    kind:
      - reducer: user reducer output
      - combiner: combiner used as reducer, emits (key, merged)
      - group: plain group-by-key, emits (key, [values])
      - identity: bypass channel, emits every value unchanged
    """

    tag: int
    kind: ReducerKind
    output_codec: str
    reducer: Reducer | None = None
    combiner: Combiner | None = None

    def reduce(self, key: Any, values: Iterable[Any]) -> Iterable[Any]:
        if self.kind == "reducer":
            return self.reducer.apply(key, values)
        if self.kind == "combiner":
            return ((key, self.combiner.merge(key, values)),)
        if self.kind == "group":
            return ((key, list(values)),)
        return values


@dataclass(frozen=True)
class ReduceEntry:
    num_outputs: int
    reducer: TaggedReducer


@dataclass(frozen=True)
class DispatchTables:
    """Read-only dispatch tables broadcast to every worker."""

    mappers: Mapping[int, tuple[TaggedMapper, ...]] = field(default_factory=dict)
    combiners: Mapping[int, TaggedCombiner] = field(default_factory=dict)
    reducers: Mapping[int, ReduceEntry] = field(default_factory=dict)

    @property
    def has_combiners(self) -> bool:
        return bool(self.combiners)


# -------------------------------
# Builders
# -------------------------------


def build_map_table(graph: ChannelGraph, tags: ChannelTags) -> dict[int, tuple[TaggedMapper, ...]]:
    """Bind every input-channel node to the tags it feeds."""
    known = graph.node_ids()
    for tag, oc in enumerate(graph.output_channels):
        unknown = [n for n in oc.origin_nodes() if n not in known]
        if unknown:
            raise GraphError(f"output channel {tag} references unknown node(s) {unknown}")

    table: dict[int, tuple[TaggedMapper, ...]] = {}
    for ix, ic in enumerate(graph.input_channels):
        if ic.bypass is not None:
            b = ic.bypass
            table[ix] = (
                TaggedMapper(
                    node_id=b.node_id,
                    tags=tuple(sorted(tags.tags_for(b.node_id))),
                    output_type=b.output_type,
                    input_codec=b.input_codec,
                ),
            )
            continue

        input_codecs = {m.mapper.input_codec for m in ic.mappers}
        if len(input_codecs) > 1:
            # only the first mapper's type decodes the source
            _log.warning(
                "mappers disagree on source value type",
                event="compile.input_type",
                channel=ix,
                codecs=sorted(input_codecs),
            )
        table[ix] = tuple(
            TaggedMapper(
                node_id=m.node_id,
                tags=tuple(sorted(tags.tags_for(m.node_id))),
                output_type=m.mapper.output_type,
                input_codec=m.mapper.input_codec,
                mapper=m.mapper,
            )
            for m in ic.mappers
        )
    return table


def build_schema(
    map_table: Mapping[int, tuple[TaggedMapper, ...]],
    tags: ChannelTags,
    codecs: CodecsRegistry | None = None,
) -> WireSchema:
    registry = TypeRegistry(codecs)
    for ix in sorted(map_table):
        for tm in map_table[ix]:
            for tag in tm.tags:
                registry.register(tag, tm.output_type)
    return registry.freeze(range(tags.num_channels))


def _pair_codec(kv: KVType) -> str:
    return "json" if kv.key in _JSON_FRIENDLY and kv.value in _JSON_FRIENDLY else "pickle"


def _tagged_reducer(tag: int, oc: OutputChannel, kv: KVType) -> TaggedReducer:
    role = oc.role
    if oc.origin.kind == "bypass":
        return TaggedReducer(tag=tag, kind="identity", output_codec=kv.value)
    if role.kind in ("reducer", "combiner_reducer"):
        return TaggedReducer(tag=tag, kind="reducer", output_codec=role.reducer.output_codec, reducer=role.reducer)
    if role.kind == "combiner":
        return TaggedReducer(tag=tag, kind="combiner", output_codec=_pair_codec(kv), combiner=role.combiner)
    return TaggedReducer(tag=tag, kind="group", output_codec=_pair_codec(kv))


def build_dispatch(
    graph: ChannelGraph,
    map_table: Mapping[int, tuple[TaggedMapper, ...]],
    schema: WireSchema,
) -> DispatchTables:
    combiners: dict[int, TaggedCombiner] = {}
    reducers: dict[int, ReduceEntry] = {}
    for tag, oc in enumerate(graph.output_channels):
        kv = schema.entry(tag).kv_type
        if oc.role.has_combiner:
            combiners[tag] = TaggedCombiner(tag=tag, combiner=oc.role.combiner)
        reducers[tag] = ReduceEntry(num_outputs=len(oc.sinks), reducer=_tagged_reducer(tag, oc, kv))

    _log.debug(
        "dispatch tables built",
        event="compile.dispatch",
        input_channels=len(map_table),
        combiners=len(combiners),
        reducers=len(reducers),
    )
    return DispatchTables(mappers=dict(map_table), combiners=combiners, reducers=reducers)
