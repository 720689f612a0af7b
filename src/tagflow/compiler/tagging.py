# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Channel tagging.

Output channels are tagged with their position in the channel graph (dense
0..N-1). Each tag is then propagated backward to every node in the channel's
origin set; a node feeding several channels ends up with several tags and
emits one tagged record stream per tag.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ..api.errors import UnresolvedTag
from ..core.log import get_logger
from ..graph.spec import OutputChannel

__all__ = ["ChannelTags", "assign_tags"]

_log = get_logger("compiler.tagging")


@dataclass(frozen=True)
class ChannelTags:
    """Result of tag assignment: node id -> tags it must emit."""

    by_node: Mapping[str, frozenset[int]] = field(default_factory=dict)
    num_channels: int = 0

    def tags_for(self, node_id: str) -> frozenset[int]:
        tags = self.by_node.get(node_id)
        if not tags:
            raise UnresolvedTag(f"node '{node_id}' feeds no output channel")
        return tags

    def all_tags(self) -> frozenset[int]:
        return frozenset(t for tags in self.by_node.values() for t in tags)

    def nodes_for(self, tag: int) -> list[str]:
        return sorted(nid for nid, tags in self.by_node.items() if tag in tags)


def assign_tags(output_channels: Iterable[OutputChannel]) -> ChannelTags:
    """Assign tag = channel index and collect each node's tag set."""
    acc: dict[str, set[int]] = {}
    num = 0
    for tag, oc in enumerate(output_channels):
        for node_id in oc.origin_nodes():
            acc.setdefault(node_id, set()).add(tag)
        num = tag + 1

    by_node = {nid: frozenset(tags) for nid, tags in acc.items()}
    _log.debug("output channels tagged", event="compile.tags", channels=num, nodes=len(by_node))
    return ChannelTags(by_node=by_node, num_channels=num)
