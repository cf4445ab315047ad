"""
Grouping — turning a selection into a group card and back.

    ungrouped selection (2+ cards) --group_selected_nodes--> group card + children
    group card + children          --ungroup_node---------> cards (group removed)

Reparenting always keeps cards where they are on screen: positions are
converted through absolute canvas space (see ``transform``).
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .geometry import bounds_of
from .graph import GraphModel
from .models import GROUP_TYPE, CanvasNode, Position, Size
from .settings import EngineSettings
from .transform import absolute_rect, is_ancestor, to_absolute, to_relative

logger = logging.getLogger(__name__)


class GroupingEngine:
    """Group/ungroup and containment operations on a ``GraphModel``."""

    def __init__(self, graph: GraphModel, settings: Optional[EngineSettings] = None):
        self.graph = graph
        self.settings = settings or graph.settings

    def _top_most(self, node_ids: Iterable[str]) -> list[CanvasNode]:
        """Selected nodes that do not have a selected ancestor, in graph order."""
        node_map = self.graph.node_map
        wanted = {nid for nid in node_ids if nid in node_map}
        depth = self.settings.max_parent_depth
        return [
            node for node in self.graph.nodes
            if node.id in wanted
            and not any(is_ancestor(other, node.id, node_map, depth) for other in wanted)
        ]

    def group_selected_nodes(
        self,
        selected_ids: Iterable[str],
        contain: Optional[bool] = None,
        label: str = "Group",
    ) -> Optional[CanvasNode]:
        """Wrap two or more nodes in a new group card.

        The group covers the union of the nodes' absolute bounds plus padding
        (with extra room on top for the label).  When every node shares the
        same parent, the group is created inside that parent; otherwise at
        the top level.  Nodes nested under another selected node move with
        it and are not reparented themselves.

        Args:
            selected_ids: Ids of the nodes to group.
            contain:      Whether children get ``extent="parent"``; defaults
                          to ``settings.contain_grouped_nodes``.
            label:        Group label stored in the group's data.

        Returns:
            The new group node, or None for fewer than two valid nodes.
        """
        members = self._top_most(selected_ids)
        if len(members) < 2:
            logger.debug("group_selected_nodes: need at least two nodes")
            return None

        node_map = self.graph.node_map
        depth = self.settings.max_parent_depth

        parents = {node.parent_id for node in members}
        common_parent = parents.pop() if len(parents) == 1 else None

        bounds = bounds_of(absolute_rect(node, node_map, depth) for node in members)
        if bounds is None:
            return None

        padding = self.settings.group_padding
        header = self.settings.group_header_height
        group_origin = Position(x=bounds.x - padding, y=bounds.y - padding - header)

        group = self.graph.create_node(
            GROUP_TYPE,
            to_relative(group_origin, common_parent, node_map, depth),
            {"label": label, "childNodeIds": [node.id for node in members]},
            size=Size(
                width=bounds.width + padding * 2,
                height=bounds.height + padding * 2 + header,
            ),
            parent_id=common_parent,
        )

        if contain is None:
            contain = self.settings.contain_grouped_nodes

        node_map = self.graph.node_map
        changes = {}
        for node in members:
            absolute = to_absolute(node, node_map, depth)
            changes[node.id] = {
                "parent_id": group.id,
                "position": to_relative(absolute, group.id, node_map, depth),
                "extent": "parent" if contain else None,
            }
        self.graph.update_nodes(changes)
        self.graph.set_selected_nodes([group.id])

        logger.debug("Grouped %d nodes into %s", len(members), group.id)
        return self.graph.get_node(group.id)

    def ungroup_node(self, group_id: str) -> list[str]:
        """Dissolve a group, moving its children to the group's own parent.

        Children keep their on-screen position and lose ``extent``.  The group
        card (and its edges) is deleted and the former children become the
        selection.  Returns the former children's ids; empty for an unknown
        id or a node that is not a group.
        """
        node_map = self.graph.node_map
        group = node_map.get(group_id)
        if group is None or group.type != GROUP_TYPE:
            logger.debug("ungroup_node: %s is not a group", group_id)
            return []

        depth = self.settings.max_parent_depth
        children = self.graph.get_child_nodes(group_id)
        changes = {}
        for child in children:
            absolute = to_absolute(child, node_map, depth)
            changes[child.id] = {
                "parent_id": group.parent_id,
                "position": to_relative(absolute, group.parent_id, node_map, depth),
                "extent": None,
            }
        if changes:
            self.graph.update_nodes(changes)

        self.graph.delete_node(group_id)
        child_ids = [child.id for child in children]
        self.graph.set_selected_nodes(child_ids)
        return child_ids

    def set_node_contained(self, node_id: str, contained: bool) -> Optional[CanvasNode]:
        """Toggle ``extent`` between "parent" and unset.

        Only nodes inside a group can be contained; position and parent are
        left untouched.
        """
        node = self.graph.get_node(node_id)
        if node is None or node.parent_id is None:
            logger.debug("set_node_contained: %s has no parent", node_id)
            return None
        return self.graph.update_node(node_id, {"extent": "parent" if contained else None})

    def move_into_group(
        self,
        node_id: str,
        group_id: str,
        contain: Optional[bool] = None,
    ) -> Optional[CanvasNode]:
        """Reparent a node into a group without moving it on screen."""
        node = self.graph.get_node(node_id)
        if node is None or not self.graph.can_reparent(node_id, group_id):
            logger.debug("move_into_group: cannot move %s into %s", node_id, group_id)
            return None

        if contain is None:
            contain = self.settings.contain_grouped_nodes
        node_map = self.graph.node_map
        depth = self.settings.max_parent_depth
        absolute = to_absolute(node, node_map, depth)
        return self.graph.update_node(node_id, {
            "parent_id": group_id,
            "position": to_relative(absolute, group_id, node_map, depth),
            "extent": "parent" if contain else None,
        })

    def remove_from_group(self, node_id: str) -> Optional[CanvasNode]:
        """Move a node out of its group into the group's parent, keeping it in place."""
        node = self.graph.get_node(node_id)
        if node is None or node.parent_id is None:
            return None

        node_map = self.graph.node_map
        parent = node_map.get(node.parent_id)
        new_parent = parent.parent_id if parent is not None else None
        depth = self.settings.max_parent_depth
        absolute = to_absolute(node, node_map, depth)
        return self.graph.update_node(node_id, {
            "parent_id": new_parent,
            "position": to_relative(absolute, new_parent, node_map, depth),
            "extent": None,
        })
