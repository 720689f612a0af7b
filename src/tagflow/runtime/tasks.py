# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Generic dispatcher tasks installed as the job's single mapper, combiner and
reducer classes.

Their only logic is: look up the dispatch table entry for the input channel
(map) or the tag (combine/reduce), invoke the user function and re-tag its
output. A tag missing from a reduce-side table means tagging and registration
went out of sync; it is raised as UnresolvedTag and never recovered from.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from ..api.errors import UnresolvedTag
from ..compiler.dispatch import ReduceEntry, TaggedCombiner, TaggedMapper
from ..job.naming import named_output
from ..wire.tagged import TaggedKey, TaggedValue
from .cache import DistributedCache, pull_object

if TYPE_CHECKING:
    from ..compiler.assembler import JobConf

__all__ = ["ChannelMapper", "ChannelCombiner", "ChannelReducer"]


def _detag(tag: int, values: Iterable[TaggedValue]) -> Iterator[Any]:
    for tv in values:
        if tv.tag != tag:
            raise UnresolvedTag(f"value tagged {tv.tag} grouped under key tag {tag}", tag=tv.tag)
        yield tv.value


class ChannelMapper:
    """Runs every mapper registered for an input channel against each record."""

    def __init__(self, table: Mapping[int, tuple[TaggedMapper, ...]]) -> None:
        self._table = table

    @classmethod
    async def load(cls, cache: DistributedCache, conf: JobConf) -> ChannelMapper:
        return cls(await pull_object(cache, conf.cache_keys["mappers"]))

    def map(self, channel: int, record: Any) -> Iterator[tuple[TaggedKey, TaggedValue]]:
        mappers = self._table.get(channel)
        if not mappers:
            raise UnresolvedTag(f"input channel {channel} has no registered mappers")
        for tm in mappers:
            yield from tm.run(record)


class ChannelCombiner:
    """
    Combines one group of values for a tagged key. Tags without a combiner
    pass through unchanged: the combine stage is shared by all channels.
    """

    def __init__(self, table: Mapping[int, TaggedCombiner]) -> None:
        self._table = table

    @classmethod
    async def load(cls, cache: DistributedCache, conf: JobConf) -> ChannelCombiner:
        return cls(await pull_object(cache, conf.cache_keys["combiners"]))

    def combine(self, tk: TaggedKey, values: Iterable[TaggedValue]) -> Iterator[TaggedValue]:
        tc = self._table.get(tk.tag)
        vals = _detag(tk.tag, values)
        if tc is None:
            for v in vals:
                yield TaggedValue(tk.tag, v)
            return
        yield TaggedValue(tk.tag, tc.combine(tk.key, vals))


class ChannelReducer:
    """Reduces one tag-contiguous group and routes results to the channel's named outputs."""

    def __init__(self, table: Mapping[int, ReduceEntry]) -> None:
        self._table = table

    @classmethod
    async def load(cls, cache: DistributedCache, conf: JobConf) -> ChannelReducer:
        return cls(await pull_object(cache, conf.cache_keys["reducers"]))

    def reduce(self, tk: TaggedKey, values: Iterable[TaggedValue]) -> Iterator[tuple[str, Any]]:
        entry = self._table.get(tk.tag)
        if entry is None:
            raise UnresolvedTag(f"tag {tk.tag} has no reducer in this job", tag=tk.tag)
        outputs = [named_output(tk.tag, ix) for ix in range(entry.num_outputs)]
        for out in entry.reducer.reduce(tk.key, _detag(tk.tag, values)):
            for name in outputs:
                yield name, out
