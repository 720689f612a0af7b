# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .partitioner import TaggedPartitioner
from .registry import TagEntry, TypeRegistry, WireSchema
from .tagged import TaggedKey, TaggedKeyCodec, TaggedValue, TaggedValueCodec

__all__ = [
    "TagEntry",
    "TypeRegistry",
    "WireSchema",
    "TaggedKey",
    "TaggedValue",
    "TaggedKeyCodec",
    "TaggedValueCodec",
    "TaggedPartitioner",
]
