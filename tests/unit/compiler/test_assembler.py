"""
Job assembly: ChannelGraph -> JobConf.

  - one named output per (tag, sink), named ch<tag>out<sink>
  - generic task roles; the combine stage only when some channel combines
  - inputs registered with the first mapper's source codec
  - output directory is the per-job staging dir, never a final sink
"""

from __future__ import annotations

import json

import pytest

from tagflow.compiler import compile_job
from tagflow.compiler.assembler import (
    GENERIC_COMBINER,
    GENERIC_MAPPER,
    GENERIC_REDUCER,
    TAGGED_KEY_TYPE,
    TAGGED_PARTITIONER,
    TAGGED_VALUE_TYPE,
)
from tagflow.core.config import CompilerConfig
from tagflow.graph.spec import ChannelGraph, DataSink, DataSource, GroupedOrigin, InputChannel, MapperNode, OutputChannel
from tests.helpers import two_mappers_and_bypass
from tests.helpers.functions import WORDS

pytestmark = [pytest.mark.unit, pytest.mark.compiler]


def test_named_outputs_and_destinations(config):
    job = compile_job(two_mappers_and_bypass("/final"), config, job_id="job-1")
    conf = job.conf

    assert [(n.name, n.tag, n.sink_index, n.destination) for n in conf.named_outputs] == [
        ("ch0out0", 0, 0, "/final/counts"),
        ("ch1out0", 1, 0, "/final/letters"),
        ("ch2out0", 2, 0, "/final/copy"),
    ]
    assert conf.named_output(2, 0).value_codec == "str"
    with pytest.raises(KeyError):
        conf.named_output(2, 1)


def test_roles_types_and_partitioner(config):
    conf = compile_job(two_mappers_and_bypass(), config, job_id="job-1").conf

    assert conf.roles.mapper == GENERIC_MAPPER
    assert conf.roles.combiner == GENERIC_COMBINER
    assert conf.roles.reducer == GENERIC_REDUCER
    assert conf.map_output_key_type == TAGGED_KEY_TYPE
    assert conf.map_output_value_type == TAGGED_VALUE_TYPE
    assert conf.partitioner == TAGGED_PARTITIONER
    assert [w["tag"] for w in conf.wire_types] == [0, 1, 2]
    assert conf.wire_types[2]["key"] == "int"


def test_inputs_registered_in_order(config):
    conf = compile_job(two_mappers_and_bypass(), config, job_id="job-1").conf

    assert [(i.index, i.path, i.format, i.value_codec) for i in conf.inputs] == [
        (0, "in/a.txt", "text", "str"),
        (1, "in/b.seq", "sequence", "pickle"),
    ]


def test_staging_output_dir(config):
    conf = compile_job(two_mappers_and_bypass(), config, job_id="job-1").conf
    assert conf.output_dir == str(config.staging_dir("job-1"))
    assert conf.output_dir.endswith("job-1/tmp-out")


def test_cache_keys_include_combiners_only_when_needed(config):
    with_comb = compile_job(two_mappers_and_bypass(), config, job_id="a").conf
    assert set(with_comb.cache_keys) == {"mappers", "combiners", "reducers", "schema"}

    graph = ChannelGraph(
        input_channels=(InputChannel(source=DataSource(path="in"), mappers=(MapperNode(node_id="w", mapper=WORDS),)),),
        output_channels=(OutputChannel(origin=GroupedOrigin(node="w"), sinks=(DataSink(path="/o"),)),),
    )
    without = compile_job(graph, config, job_id="b").conf
    assert set(without.cache_keys) == {"mappers", "reducers", "schema"}
    assert without.roles.combiner is None


def test_compression_settings(tmp_path):
    cfg = CompilerConfig(working_dir=str(tmp_path), compress_map_output=False)
    conf = compile_job(two_mappers_and_bypass(), cfg, job_id="j").conf
    assert conf.compress_map_output is False
    assert conf.map_output_codec is None

    cfg = CompilerConfig(working_dir=str(tmp_path), num_reduce_tasks=4)
    conf = compile_job(two_mappers_and_bypass(), cfg, job_id="j").conf
    assert conf.compress_map_output is True
    assert conf.map_output_codec == "gzip"
    assert conf.num_reduce_tasks == 4


def test_job_ids_are_unique(config):
    a = compile_job(two_mappers_and_bypass(), config)
    b = compile_job(two_mappers_and_bypass(), config)
    assert a.job_id != b.job_id
    assert a.conf.output_dir != b.conf.output_dir


def test_conf_serializes_to_json(config):
    job = compile_job(two_mappers_and_bypass(), config, job_id="job-1")
    payload = json.loads(job.conf.model_dump_json())
    assert payload["job_id"] == "job-1"
    assert len(payload["named_outputs"]) == 3
    assert job.sinks()[0][0] == 0
