# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Worker-side runtime: distribution cache, engine collaborators and the generic
dispatcher tasks.
"""

from .cache import CacheError, DistributedCache, InMemoryCache, pull_object, push_object
from .engine import EngineResult, ExecutionEngine, FileSystem, LocalFileSystem
from .tasks import ChannelCombiner, ChannelMapper, ChannelReducer

__all__ = [
    "CacheError",
    "DistributedCache",
    "InMemoryCache",
    "push_object",
    "pull_object",
    "EngineResult",
    "ExecutionEngine",
    "FileSystem",
    "LocalFileSystem",
    "ChannelMapper",
    "ChannelCombiner",
    "ChannelReducer",
]
