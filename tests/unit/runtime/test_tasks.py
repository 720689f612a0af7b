"""Generic dispatcher tasks: table lookups and re-tagging."""

from __future__ import annotations

import pytest

from tagflow.api.errors import UnresolvedTag
from tagflow.compiler import compile_job
from tagflow.graph.spec import ChannelGraph, DataSink, OutputChannel
from tagflow.runtime.cache import push_object
from tagflow.runtime.tasks import ChannelCombiner, ChannelMapper, ChannelReducer
from tagflow.wire.tagged import TaggedKey, TaggedValue
from tests.helpers import fan_out_graph, two_mappers_and_bypass

pytestmark = pytest.mark.unit


@pytest.fixture
def compiled(config):
    return compile_job(two_mappers_and_bypass(), config, job_id="tasks")


def test_mapper_runs_every_mapper_of_the_channel(compiled):
    mapper = ChannelMapper(compiled.dispatch.mappers)

    out = list(mapper.map(0, "hi"))

    assert out == [(TaggedKey(0, "hi"), TaggedValue(0, 1)), (TaggedKey(1, "h"), TaggedValue(1, "hi"))]
    assert list(mapper.map(1, (5, "five"))) == [(TaggedKey(2, 5), TaggedValue(2, "five"))]


def test_mapper_unknown_channel(compiled):
    with pytest.raises(UnresolvedTag):
        list(ChannelMapper(compiled.dispatch.mappers).map(7, "x"))


def test_combiner_merges_and_passes_through(compiled):
    combiner = ChannelCombiner(compiled.dispatch.combiners)

    merged = list(combiner.combine(TaggedKey(0, "a"), [TaggedValue(0, 2), TaggedValue(0, 3)]))
    passed = list(combiner.combine(TaggedKey(1, "a"), [TaggedValue(1, "ant"), TaggedValue(1, "axe")]))

    assert merged == [TaggedValue(0, 5)]
    assert passed == [TaggedValue(1, "ant"), TaggedValue(1, "axe")]


def test_reducer_routes_to_named_outputs(compiled):
    reducer = ChannelReducer(compiled.dispatch.reducers)

    out = list(reducer.reduce(TaggedKey(1, "c"), [TaggedValue(1, "cow"), TaggedValue(1, "cat")]))

    assert out == [("ch1out0", "c:cat,cow")]


def test_reducer_writes_every_sink_of_a_channel(config):
    base = fan_out_graph()
    first = base.output_channels[0]
    graph = ChannelGraph(
        input_channels=base.input_channels,
        output_channels=(
            OutputChannel(origin=first.origin, sinks=(DataSink(path="/a"), DataSink(path="/b")), role=first.role),
            *base.output_channels[1:],
        ),
    )
    reducer = ChannelReducer(compile_job(graph, config).dispatch.reducers)

    out = list(reducer.reduce(TaggedKey(0, "w"), [TaggedValue(0, 1), TaggedValue(0, 4)]))

    assert out == [("ch0out0", ("w", 5)), ("ch0out1", ("w", 5))]


def test_reducer_unknown_tag(compiled):
    with pytest.raises(UnresolvedTag) as ei:
        list(ChannelReducer(compiled.dispatch.reducers).reduce(TaggedKey(9, "k"), [TaggedValue(9, 1)]))
    assert ei.value.tag == 9


def test_values_must_carry_the_key_tag(compiled):
    reducer = ChannelReducer(compiled.dispatch.reducers)
    with pytest.raises(UnresolvedTag):
        list(reducer.reduce(TaggedKey(1, "c"), [TaggedValue(2, "cat")]))


@pytest.mark.asyncio
async def test_tasks_load_from_cache(compiled, cache):
    keys = compiled.conf.cache_keys
    await push_object(cache, keys["mappers"], dict(compiled.dispatch.mappers))
    await push_object(cache, keys["combiners"], dict(compiled.dispatch.combiners))
    await push_object(cache, keys["reducers"], dict(compiled.dispatch.reducers))

    mapper = await ChannelMapper.load(cache, compiled.conf)
    combiner = await ChannelCombiner.load(cache, compiled.conf)
    reducer = await ChannelReducer.load(cache, compiled.conf)

    assert list(mapper.map(0, "ok"))[0] == (TaggedKey(0, "ok"), TaggedValue(0, 1))
    assert list(combiner.combine(TaggedKey(0, "ok"), [TaggedValue(0, 1)])) == [TaggedValue(0, 1)]
    assert list(reducer.reduce(TaggedKey(0, "ok"), [TaggedValue(0, 3)])) == [("ch0out0", "ok\t3")]
