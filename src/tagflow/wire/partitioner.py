# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import pickle

from ..core.utils import stable_hash_int
from .registry import WireSchema
from .tagged import TAG_PREFIX, TaggedKey

__all__ = ["TaggedPartitioner"]

# fixed so every worker interpreter produces the same bytes for an order key
_ORDER_KEY_PROTOCOL = 4


class TaggedPartitioner:
    """
    Route shuffled records to reduce tasks by (tag, key).

    The partition is a hash of the tag plus the key's wire encoding, modulo the
    number of partitions. When the tag registers a `key_order`, the order key
    is hashed instead, so keys the shuffle groups together (e.g. "Apple" and
    "apple" under `str.lower`) always meet in the same reduce task. The hash
    is computed over bytes, not Python's salted `hash()`, so every worker
    process agrees on the routing.
    """

    def __init__(self, schema: WireSchema) -> None:
        self.schema = schema

    def partition(self, tk: TaggedKey, num_partitions: int) -> int:
        if num_partitions <= 0:
            raise ValueError(f"num_partitions must be > 0, got {num_partitions}")
        entry = self.schema.entry(tk.tag)
        if entry.key_order is None:
            key_bytes = entry.key_codec.encode(tk.key)
        else:
            key_bytes = pickle.dumps(entry.key_order(tk.key), protocol=_ORDER_KEY_PROTOCOL)
        return stable_hash_int(TAG_PREFIX.pack(tk.tag) + key_bytes) % num_partitions
