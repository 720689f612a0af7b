# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Named output grammar.

Every (output channel tag, sink index) pair gets its own named output
`ch<tag>out<sink>`. The execution engine appends a split suffix when it
writes files, giving names such as `ch3out0-r-00002` (or `ch3out0-00002`):

    file   := "ch" TAG "out" SINK "-" [ ROLE "-" ] SPLIT
    TAG    := digit+
    SINK   := digit+
    ROLE   := [a-z]          (engine task role, e.g. "m" or "r")
    SPLIT  := digit+
"""

import re
from dataclasses import dataclass

__all__ = ["OutputFileName", "named_output", "parse_output_file"]

_FILE_RE = re.compile(r"^ch(?P<tag>\d+)out(?P<sink>\d+)-(?:(?P<role>[a-z])-)?(?P<split>\d+)$")


@dataclass(frozen=True)
class OutputFileName:
    tag: int
    sink: int
    split: int
    role: str | None = None


def named_output(tag: int, sink: int) -> str:
    if tag < 0 or sink < 0:
        raise ValueError(f"tag and sink index must be non-negative (tag={tag}, sink={sink})")
    return f"ch{tag}out{sink}"


def parse_output_file(name: str) -> OutputFileName | None:
    """Parse a staging file name; None when it does not follow the grammar."""
    m = _FILE_RE.match(name)
    if m is None:
        return None
    return OutputFileName(
        tag=int(m.group("tag")),
        sink=int(m.group("sink")),
        split=int(m.group("split")),
        role=m.group("role"),
    )
