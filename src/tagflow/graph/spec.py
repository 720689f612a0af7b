# src/tagflow/graph/spec.py
from __future__ import annotations

"""
Channel graph models: the finalized output of the logical-graph optimizer.

The optimizer groups mapping, combining and reducing functions into input and
output channels; this module only validates the shape of what it hands over.
User functions are carried as opaque objects implementing the capability
protocols from `tagflow.api.functions`.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..api.functions import Combiner, KVType, Mapper, Reducer

ReduceKind = Literal["reducer", "combiner", "combiner_reducer", "identity"]

_MODEL_CONFIG = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)


def _nonempty(v: str, what: str) -> str:
    if not v or not v.strip():
        raise ValueError(f"{what} must be a non-empty string")
    return v


# -------------------------------
# Sources / sinks
# -------------------------------


class DataSource(BaseModel):
    path: str
    format: str = "text"
    model_config = _MODEL_CONFIG

    @field_validator("path", "format")
    @classmethod
    def _check(cls, v: str) -> str:
        return _nonempty(v, "data source path/format")


class DataSink(BaseModel):
    path: str
    format: str = "text"
    model_config = _MODEL_CONFIG

    @field_validator("path", "format")
    @classmethod
    def _check(cls, v: str) -> str:
        return _nonempty(v, "data sink path/format")


# -------------------------------
# Output channel origins
# -------------------------------


class GroupedOrigin(BaseModel):
    """Group-by-key over a single upstream node."""

    kind: Literal["grouped"] = "grouped"
    node: str
    model_config = _MODEL_CONFIG


class FlattenOrigin(BaseModel):
    """Group-by-key over the union of several upstream nodes."""

    kind: Literal["flatten"] = "flatten"
    nodes: tuple[str, ...]
    model_config = _MODEL_CONFIG

    @field_validator("nodes")
    @classmethod
    def _nonempty_nodes(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("flatten origin must list at least one node")
        return v


class BypassOrigin(BaseModel):
    """Records of one node routed through the shuffle unchanged."""

    kind: Literal["bypass"] = "bypass"
    node: str
    model_config = _MODEL_CONFIG


Origin = Annotated[Union[GroupedOrigin, FlattenOrigin, BypassOrigin], Field(discriminator="kind")]


class ReduceRole(BaseModel):
    """
    Reduce-side semantics of an output channel:
      - reducer: plain reducer
      - combiner: combiner only (also used as the reducer)
      - combiner_reducer: combiner in the combine stage, then the reducer
      - identity: no function; grouped channels emit (key, values), bypass emits values
    """

    kind: ReduceKind = "identity"
    combiner: Any = None
    reducer: Any = None
    model_config = _MODEL_CONFIG

    @model_validator(mode="after")
    def _consistent(self) -> ReduceRole:
        needs_combiner = self.kind in ("combiner", "combiner_reducer")
        needs_reducer = self.kind in ("reducer", "combiner_reducer")
        if needs_combiner != (self.combiner is not None):
            raise ValueError(f"reduce role '{self.kind}': combiner must be {'set' if needs_combiner else 'unset'}")
        if needs_reducer != (self.reducer is not None):
            raise ValueError(f"reduce role '{self.kind}': reducer must be {'set' if needs_reducer else 'unset'}")
        if self.combiner is not None and not isinstance(self.combiner, Combiner):
            raise ValueError("combiner must implement Combiner.merge(key, values)")
        if self.reducer is not None and not isinstance(self.reducer, Reducer):
            raise ValueError("reducer must implement Reducer.apply(key, values) and declare output_codec")
        return self

    @property
    def has_combiner(self) -> bool:
        return self.combiner is not None


class OutputChannel(BaseModel):
    origin: Origin
    sinks: tuple[DataSink, ...]
    role: ReduceRole = Field(default_factory=ReduceRole)
    model_config = _MODEL_CONFIG

    @model_validator(mode="after")
    def _sanity(self) -> OutputChannel:
        if not self.sinks:
            raise ValueError("output channel must declare at least one sink")
        if self.origin.kind == "bypass" and self.role.kind != "identity":
            raise ValueError("bypass output channels only support the identity reduce role")
        return self

    def origin_nodes(self) -> tuple[str, ...]:
        """Upstream logical nodes whose records flow into this channel."""
        if isinstance(self.origin, FlattenOrigin):
            return tuple(dict.fromkeys(self.origin.nodes))
        return (self.origin.node,)


# -------------------------------
# Input channels
# -------------------------------


class MapperNode(BaseModel):
    node_id: str
    mapper: Any
    model_config = _MODEL_CONFIG

    @field_validator("mapper")
    @classmethod
    def _is_mapper(cls, v: Any) -> Any:
        if not isinstance(v, Mapper):
            raise ValueError("mapper must implement Mapper.apply(record) and declare input_codec/output_type")
        return v


class BypassNode(BaseModel):
    """A node whose (key, value) records are forwarded by an identity mapper."""

    node_id: str
    output_type: Any
    input_codec: str = "pickle"
    model_config = _MODEL_CONFIG

    @field_validator("output_type")
    @classmethod
    def _is_kv_type(cls, v: Any) -> Any:
        if not isinstance(v, KVType):
            raise ValueError("bypass node output_type must be a KVType")
        return v


class InputChannel(BaseModel):
    source: DataSource
    mappers: tuple[MapperNode, ...] = ()
    bypass: BypassNode | None = None
    model_config = _MODEL_CONFIG

    @model_validator(mode="after")
    def _one_kind(self) -> InputChannel:
        if bool(self.mappers) == (self.bypass is not None):
            raise ValueError("input channel must declare either mappers or a bypass node (exactly one)")
        return self

    def node_ids(self) -> tuple[str, ...]:
        if self.bypass is not None:
            return (self.bypass.node_id,)
        return tuple(m.node_id for m in self.mappers)


class ChannelGraph(BaseModel):
    """Finalized channel graph: ordered output channels plus input channels."""

    input_channels: tuple[InputChannel, ...]
    output_channels: tuple[OutputChannel, ...]
    model_config = _MODEL_CONFIG

    @model_validator(mode="after")
    def _unique_nodes(self) -> ChannelGraph:
        if not self.input_channels:
            raise ValueError("channel graph must have at least one input channel")
        if not self.output_channels:
            raise ValueError("channel graph must have at least one output channel")
        seen: set[str] = set()
        for ic in self.input_channels:
            for nid in ic.node_ids():
                if nid in seen:
                    raise ValueError(f"duplicate node id across input channels: {nid}")
                seen.add(nid)
        return self

    def node_ids(self) -> set[str]:
        return {nid for ic in self.input_channels for nid in ic.node_ids()}
