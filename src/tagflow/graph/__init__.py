# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Public exports for the channel graph package.

Callers owning the optimizer output build a ChannelGraph and hand it to
`tagflow.compiler.compile_job`.
"""

from .spec import (
    BypassNode,
    BypassOrigin,
    ChannelGraph,
    DataSink,
    DataSource,
    FlattenOrigin,
    GroupedOrigin,
    InputChannel,
    MapperNode,
    OutputChannel,
    ReduceRole,
)

__all__ = [
    "BypassNode",
    "BypassOrigin",
    "ChannelGraph",
    "DataSink",
    "DataSource",
    "FlattenOrigin",
    "GroupedOrigin",
    "InputChannel",
    "MapperNode",
    "OutputChannel",
    "ReduceRole",
]
