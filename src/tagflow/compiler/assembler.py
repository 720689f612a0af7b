# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Compiler: ChannelGraph -> CompiledJob (JobConf + dispatch tables + wire schema).

The compile pipeline is a sequence of pure steps, each consuming the previous
step's immutable result:

    assign_tags -> build_map_table -> build_schema -> build_dispatch -> assemble_conf

The resulting JobConf is the only thing the execution engine reads directly;
dispatch tables and the wire schema travel through the distribution cache.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from ..codec.registry import CodecsRegistry
from ..core.config import CompilerConfig
from ..core.log import get_logger
from ..core.utils import new_job_id
from ..graph.spec import ChannelGraph, DataSink
from ..job.naming import named_output
from ..wire.registry import WireSchema
from .dispatch import DispatchTables, build_dispatch, build_map_table, build_schema
from .tagging import ChannelTags, assign_tags

__all__ = [
    "InputRegistration",
    "NamedOutput",
    "RoleBindings",
    "JobConf",
    "CompiledJob",
    "assemble_conf",
    "compile_job",
]

_log = get_logger("compiler.assembler")

GENERIC_MAPPER = "tagflow.runtime.tasks.ChannelMapper"
GENERIC_COMBINER = "tagflow.runtime.tasks.ChannelCombiner"
GENERIC_REDUCER = "tagflow.runtime.tasks.ChannelReducer"
TAGGED_KEY_TYPE = "tagflow.wire.tagged.TaggedKey"
TAGGED_VALUE_TYPE = "tagflow.wire.tagged.TaggedValue"
TAGGED_PARTITIONER = "tagflow.wire.partitioner.TaggedPartitioner"

# -------------------------------
# JobConf models
# -------------------------------


class InputRegistration(BaseModel):
    """One input channel as seen by the engine's split assignment."""

    index: int
    path: str
    format: str
    value_codec: str


class NamedOutput(BaseModel):
    """One physical output per (output channel tag, sink index)."""

    name: str
    tag: int
    sink_index: int
    format: str
    value_codec: str
    destination: str


class RoleBindings(BaseModel):
    mapper: str = GENERIC_MAPPER
    combiner: str | None = None
    reducer: str = GENERIC_REDUCER


class JobConf(BaseModel):
    """Physical job configuration handed to the execution engine."""

    job_id: str
    inputs: list[InputRegistration]

    map_output_key_type: str = TAGGED_KEY_TYPE
    map_output_value_type: str = TAGGED_VALUE_TYPE
    wire_types: list[dict[str, Any]] = Field(default_factory=list)
    partitioner: str = TAGGED_PARTITIONER

    compress_map_output: bool = True
    map_output_codec: str | None = None

    roles: RoleBindings = Field(default_factory=RoleBindings)
    named_outputs: list[NamedOutput] = Field(default_factory=list)
    output_dir: str
    num_reduce_tasks: int = 1

    # role -> distribution cache key ("mappers", "combiners", "reducers", "schema")
    cache_keys: dict[str, str] = Field(default_factory=dict)

    def named_output(self, tag: int, sink_index: int) -> NamedOutput:
        for no in self.named_outputs:
            if no.tag == tag and no.sink_index == sink_index:
                return no
        raise KeyError(named_output(tag, sink_index))


@dataclass(frozen=True)
class CompiledJob:
    """Everything produced by one compilation; scoped to a single run."""

    job_id: str
    graph: ChannelGraph
    tags: ChannelTags
    schema: WireSchema
    dispatch: DispatchTables
    conf: JobConf
    config: CompilerConfig

    def sinks(self) -> list[tuple[int, tuple[DataSink, ...]]]:
        return [(tag, oc.sinks) for tag, oc in enumerate(self.graph.output_channels)]


# -------------------------------
# Assembly
# -------------------------------


def assemble_conf(
    job_id: str,
    graph: ChannelGraph,
    schema: WireSchema,
    dispatch: DispatchTables,
    config: CompilerConfig,
) -> JobConf:
    inputs = []
    for ix, ic in enumerate(graph.input_channels):
        # all mappers of a channel read the same source type; the first one decodes it
        first = dispatch.mappers[ix][0]
        inputs.append(
            InputRegistration(index=ix, path=ic.source.path, format=ic.source.format, value_codec=first.input_codec)
        )

    named: list[NamedOutput] = []
    for tag, oc in enumerate(graph.output_channels):
        entry = dispatch.reducers[tag]
        for sink_ix, sink in enumerate(oc.sinks):
            named.append(
                NamedOutput(
                    name=named_output(tag, sink_ix),
                    tag=tag,
                    sink_index=sink_ix,
                    format=sink.format,
                    value_codec=entry.reducer.output_codec,
                    destination=sink.path,
                )
            )

    cache_keys = {
        "mappers": config.cache_key_mappers,
        "reducers": config.cache_key_reducers,
        "schema": config.cache_key_schema,
    }
    roles = RoleBindings()
    if dispatch.has_combiners:
        cache_keys["combiners"] = config.cache_key_combiners
        roles = RoleBindings(combiner=GENERIC_COMBINER)

    return JobConf(
        job_id=job_id,
        inputs=inputs,
        wire_types=schema.describe(),
        compress_map_output=config.compress_map_output,
        map_output_codec=config.map_output_codec if config.compress_map_output else None,
        roles=roles,
        named_outputs=named,
        output_dir=str(config.staging_dir(job_id)),
        num_reduce_tasks=config.num_reduce_tasks,
        cache_keys=cache_keys,
    )


def compile_job(
    graph: ChannelGraph,
    config: CompilerConfig | None = None,
    *,
    codecs: CodecsRegistry | None = None,
    job_id: str | None = None,
) -> CompiledJob:
    """Compile a finalized channel graph into one physical map/shuffle/reduce job."""
    cfg = config or CompilerConfig.load()
    jid = job_id or new_job_id()

    tags = assign_tags(graph.output_channels)
    map_table = build_map_table(graph, tags)
    schema = build_schema(map_table, tags, codecs)
    dispatch = build_dispatch(graph, map_table, schema)
    conf = assemble_conf(jid, graph, schema, dispatch, cfg)

    _log.info(
        "job assembled",
        event="job.assembled",
        job_id=jid,
        input_channels=len(conf.inputs),
        output_channels=tags.num_channels,
        named_outputs=len(conf.named_outputs),
        combine_stage=conf.roles.combiner is not None,
    )
    return CompiledJob(job_id=jid, graph=graph, tags=tags, schema=schema, dispatch=dispatch, conf=conf, config=cfg)
