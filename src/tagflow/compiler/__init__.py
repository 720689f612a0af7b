# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .assembler import CompiledJob, JobConf, NamedOutput, compile_job
from .dispatch import DispatchTables, ReduceEntry, TaggedCombiner, TaggedMapper, TaggedReducer
from .tagging import ChannelTags, assign_tags

__all__ = [
    "ChannelTags",
    "CompiledJob",
    "DispatchTables",
    "JobConf",
    "NamedOutput",
    "ReduceEntry",
    "TaggedCombiner",
    "TaggedMapper",
    "TaggedReducer",
    "assign_tags",
    "compile_job",
]
