"""
GraphModel — the authoritative store of canvas nodes and edges.

The store is an explicitly constructed object (one per canvas).  Every
mutation builds new node/edge models and replaces the node and edge tuples
wholesale, bumps ``version`` and notifies subscribers with a fresh
``GraphSnapshot``.  Consumers detect change by identity or version.

Invalid input never raises: unknown ids, self-loop edges and similar are
no-ops (logged at DEBUG).  Invariant violations such as a parent cycle are
rejected at this boundary (logged at WARNING) so the layout algorithms never
see them.

Node order is z-order (later draws on top).  Whenever parentage changes the
order is rearranged so each group comes before its children.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from .geometry import Rect
from .models import (
    GROUP_TYPE,
    CanvasDocument,
    CanvasEdge,
    CanvasNode,
    Position,
    Size,
    Viewport,
    WorkspaceSettings,
)
from .registry import get_default_data, get_node_dimensions
from .settings import EngineSettings
from .spatial_index import SpatialIndex
from .transform import absolute_rect, ancestors, fit_viewport, to_absolute, to_relative

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphSnapshot:
    """An immutable view of the graph at one version."""
    nodes: tuple[CanvasNode, ...]
    edges: tuple[CanvasEdge, ...]
    version: int


Listener = Callable[[GraphSnapshot], None]


def _new_id() -> str:
    return str(uuid.uuid4())


def order_for_subflows(nodes: Sequence[CanvasNode]) -> list[CanvasNode]:
    """Reorder nodes so every parent precedes its children.

    Top-level groups come first, each followed by its subtree, then the
    remaining top-level nodes.  Relative order is otherwise preserved.
    """
    ids = {n.id for n in nodes}
    children: dict[str, list[CanvasNode]] = {}
    top: list[CanvasNode] = []
    for node in nodes:
        if node.parent_id is not None and node.parent_id in ids and node.parent_id != node.id:
            children.setdefault(node.parent_id, []).append(node)
        else:
            top.append(node)

    ordered: list[CanvasNode] = []
    emitted: set[str] = set()

    def emit(node: CanvasNode) -> None:
        stack = [node]
        while stack:
            current = stack.pop()
            if current.id in emitted:
                continue
            emitted.add(current.id)
            ordered.append(current)
            stack.extend(reversed(children.get(current.id, [])))

    for node in top:
        if node.is_group:
            emit(node)
    for node in top:
        if not node.is_group:
            emit(node)

    # Anything left sits on a parent cycle; keep it rather than drop it
    for node in nodes:
        if node.id not in emitted:
            emitted.add(node.id)
            ordered.append(node)

    return ordered


class GraphModel:
    """In-memory node/edge store with invariant enforcement.

    Args:
        settings:   Engine tunables; defaults to ``EngineSettings()``.
        id_factory: Callable producing new node/edge ids (uuid4 by default).
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.settings = settings or EngineSettings()
        self._new_id = id_factory or _new_id

        self.name = "Untitled Workspace"
        self.description = ""
        self.viewport = Viewport()
        self.workspace_settings = WorkspaceSettings()

        self._nodes: tuple[CanvasNode, ...] = ()
        self._edges: tuple[CanvasEdge, ...] = ()
        self._node_map: dict[str, CanvasNode] = {}
        self._selected: tuple[str, ...] = ()
        self._version = 0
        self._listeners: list[Listener] = []

        self._index = SpatialIndex()
        self._index_version = -1

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> tuple[CanvasNode, ...]:
        return self._nodes

    @property
    def edges(self) -> tuple[CanvasEdge, ...]:
        return self._edges

    @property
    def version(self) -> int:
        return self._version

    @property
    def node_map(self) -> Mapping[str, CanvasNode]:
        return MappingProxyType(self._node_map)

    @property
    def selected_node_ids(self) -> tuple[str, ...]:
        return self._selected

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(nodes=self._nodes, edges=self._edges, version=self._version)

    def get_node(self, node_id: str) -> Optional[CanvasNode]:
        return self._node_map.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[CanvasEdge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def get_child_nodes(self, group_id: str) -> list[CanvasNode]:
        return [n for n in self._nodes if n.parent_id == group_id]

    def absolute_position(self, node_id: str) -> Optional[Position]:
        node = self._node_map.get(node_id)
        if node is None:
            return None
        return to_absolute(node, self._node_map, self.settings.max_parent_depth)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a new snapshot after every effective mutation.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(
        self,
        nodes: Optional[Iterable[CanvasNode]] = None,
        edges: Optional[Iterable[CanvasEdge]] = None,
        reorder: bool = False,
    ) -> None:
        if nodes is not None:
            node_list = list(nodes)
            if reorder:
                node_list = order_for_subflows(node_list)
            self._nodes = tuple(node_list)
            self._node_map = {n.id: n for n in self._nodes}
        if edges is not None:
            self._edges = tuple(edges)
        self._version += 1

        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def can_reparent(self, node_id: str, parent_id: Optional[str]) -> bool:
        """True if ``node_id`` may be placed inside ``parent_id``.

        The parent must exist, be a group, and not be the node itself or one
        of its descendants.
        """
        return self._valid_parent(node_id, parent_id, self._node_map)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def create_node(
        self,
        node_type: str,
        position: Position,
        data: Optional[Mapping[str, Any]] = None,
        *,
        size: Optional[Size] = None,
        parent_id: Optional[str] = None,
    ) -> CanvasNode:
        """Create a node with a generated id and type defaults merged with ``data``.

        An invalid ``parent_id`` is dropped and the node is created at the
        top level.
        """
        if parent_id is not None:
            parent = self._node_map.get(parent_id)
            if parent is None or not parent.is_group:
                logger.debug("create_node: ignoring invalid parent %s", parent_id)
                parent_id = None

        dims = get_node_dimensions(node_type)
        payload = get_default_data(node_type, self.workspace_settings.default_node_color)
        payload.update(copy.deepcopy(dict(data or {})))

        node = CanvasNode(
            id=self._new_id(),
            type=node_type,
            position=position,
            size=size or Size(width=dims.default_width, height=dims.default_height),
            parent_id=parent_id,
            data=payload,
        )
        self._commit(nodes=[*self._nodes, node], reorder=parent_id is not None)
        logger.debug("Created %s node %s", node_type, node.id)
        return node

    def update_node(self, node_id: str, changes: Mapping[str, Any]) -> Optional[CanvasNode]:
        """Shallow-merge ``changes`` into a node.

        Returns the updated node, or None when nothing changed: unknown id,
        a rejected reparent (missing parent, non-group parent, cycle) or
        values that do not validate.
        """
        node = self._node_map.get(node_id)
        if node is None:
            logger.debug("update_node: unknown node %s", node_id)
            return None

        changes = dict(changes)
        if changes.pop("id", node_id) != node_id:
            logger.warning("update_node: node ids cannot be changed (%s)", node_id)

        parent_changed = "parent_id" in changes and changes["parent_id"] != node.parent_id
        if parent_changed and not self.can_reparent(node_id, changes["parent_id"]):
            logger.warning(
                "update_node: rejected parent %s for node %s", changes["parent_id"], node_id,
            )
            return None

        if self._orphans_children(node, changes, self._node_map):
            logger.warning("update_node: group %s still has children; type kept", node_id)
            return None

        merged = node.model_dump()
        merged["selected"] = node.selected
        merged.update(changes)
        try:
            updated = CanvasNode.model_validate(merged)
        except ValidationError as e:
            logger.warning("update_node: invalid changes for %s: %s", node_id, e)
            return None

        self._commit(
            nodes=[updated if n.id == node_id else n for n in self._nodes],
            reorder=parent_changed,
        )
        return updated

    def update_nodes(self, changes: Mapping[str, Mapping[str, Any]]) -> list[CanvasNode]:
        """Apply ``update_node`` to several nodes with a single commit.

        Changes are validated in order against the graph as updated so far;
        invalid entries are skipped.  Returns the nodes that were updated.
        """
        working = dict(self._node_map)
        updated: list[CanvasNode] = []
        parent_changed = False

        for node_id, node_changes in changes.items():
            node = working.get(node_id)
            if node is None:
                logger.debug("update_nodes: unknown node %s", node_id)
                continue
            node_changes = dict(node_changes)
            node_changes.pop("id", None)
            if "parent_id" in node_changes and node_changes["parent_id"] != node.parent_id:
                if not self._valid_parent(node_id, node_changes["parent_id"], working):
                    logger.warning(
                        "update_nodes: rejected parent %s for node %s",
                        node_changes["parent_id"], node_id,
                    )
                    continue
                parent_changed = True
            if self._orphans_children(node, node_changes, working):
                logger.warning("update_nodes: group %s still has children; type kept", node_id)
                continue
            merged = node.model_dump()
            merged["selected"] = node.selected
            merged.update(node_changes)
            try:
                new_node = CanvasNode.model_validate(merged)
            except ValidationError as e:
                logger.warning("update_nodes: invalid changes for %s: %s", node_id, e)
                continue
            working[node_id] = new_node
            updated.append(new_node)

        if updated:
            self._commit(nodes=[working[n.id] for n in self._nodes], reorder=parent_changed)
        return updated

    def _valid_parent(
        self,
        node_id: str,
        parent_id: Optional[str],
        node_map: Mapping[str, CanvasNode],
    ) -> bool:
        if parent_id is None:
            return True
        parent = node_map.get(parent_id)
        if parent is None or not parent.is_group or parent_id == node_id:
            return False
        # Unbounded walk: the seen set ends it even on a corrupted chain
        seen = {parent_id}
        current = parent.parent_id
        while current is not None and current not in seen:
            if current == node_id:
                return False
            seen.add(current)
            ancestor = node_map.get(current)
            if ancestor is None:
                break
            current = ancestor.parent_id
        return True

    @staticmethod
    def _orphans_children(
        node: CanvasNode,
        changes: Mapping[str, Any],
        node_map: Mapping[str, CanvasNode],
    ) -> bool:
        """True if ``changes`` retype a group that still has children."""
        if not node.is_group or changes.get("type", GROUP_TYPE) == GROUP_TYPE:
            return False
        return any(n.parent_id == node.id for n in node_map.values())

    def update_node_data(self, node_id: str, updates: Mapping[str, Any]) -> Optional[CanvasNode]:
        """Shallow-merge ``updates`` into a node's ``data`` payload."""
        node = self._node_map.get(node_id)
        if node is None:
            logger.debug("update_node_data: unknown node %s", node_id)
            return None
        updated = node.model_copy(update={"data": {**node.data, **copy.deepcopy(dict(updates))}})
        self._commit(nodes=[updated if n.id == node_id else n for n in self._nodes])
        return updated

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and its edges.

        Deleting a group applies ``settings.group_delete_policy`` to its
        children.  Returns False when the id is unknown.
        """
        return self.delete_nodes([node_id])

    def delete_nodes(self, node_ids: Iterable[str]) -> bool:
        """Delete several nodes at once (see ``delete_node``)."""
        removed = {nid for nid in node_ids if nid in self._node_map}
        if not removed:
            logger.debug("delete_nodes: no known ids")
            return False

        depth = self.settings.max_parent_depth

        if self.settings.group_delete_policy == "cascade":
            for node in self._nodes:
                if any(a.id in removed for a in ancestors(node, self._node_map, depth)):
                    removed.add(node.id)

        survivors: list[CanvasNode] = []
        for node in self._nodes:
            if node.id in removed:
                continue
            if node.parent_id in removed:
                node = self._reparent_to_surviving_ancestor(node, removed)
            survivors.append(node)

        edges = [
            e for e in self._edges
            if e.source not in removed and e.target not in removed
        ]
        self._selected = tuple(i for i in self._selected if i not in removed)
        self._commit(nodes=survivors, edges=edges, reorder=True)
        logger.debug("Deleted %d node(s)", len(removed))
        return True

    def _reparent_to_surviving_ancestor(
        self, node: CanvasNode, removed: set[str],
    ) -> CanvasNode:
        """Move a child of a deleted group to the nearest surviving ancestor,
        keeping its absolute position."""
        depth = self.settings.max_parent_depth
        new_parent = next(
            (a.id for a in ancestors(node, self._node_map, depth) if a.id not in removed),
            None,
        )
        absolute = to_absolute(node, self._node_map, depth)
        position = to_relative(absolute, new_parent, self._node_map, depth)
        return node.model_copy(update={
            "position": position,
            "parent_id": new_parent,
            "extent": node.extent if new_parent is not None else None,
        })

    def duplicate_nodes(self, node_ids: Iterable[str]) -> list[CanvasNode]:
        """Copy nodes (type, size, data) at an offset; returns the copies."""
        wanted = set(node_ids)
        sources = [n for n in self._nodes if n.id in wanted]
        if not sources:
            return []

        offset = self.settings.duplicate_offset
        copies = [
            node.model_copy(update={
                "id": self._new_id(),
                "position": Position(x=node.position.x + offset, y=node.position.y + offset),
                "data": copy.deepcopy(node.data),
                "selected": False,
            })
            for node in sources
        ]
        self._commit(nodes=[*self._nodes, *copies], reorder=True)
        return copies

    def set_nodes(self, nodes: Iterable[CanvasNode]) -> None:
        """Replace every node (bulk load).

        Duplicate ids keep the first occurrence.  Parent references that are
        missing, not groups, or on a cycle are cleared.  Edges whose
        endpoints disappear are dropped.
        """
        unique: dict[str, CanvasNode] = {}
        for node in nodes:
            if node.id in unique:
                logger.warning("set_nodes: duplicate node id %s dropped", node.id)
                continue
            unique[node.id] = node

        for node_id, node in list(unique.items()):
            if node.parent_id is None:
                continue
            parent = unique.get(node.parent_id)
            if parent is None or not parent.is_group or parent.id == node_id:
                logger.warning("set_nodes: clearing invalid parent of %s", node_id)
                unique[node_id] = node.model_copy(update={"parent_id": None, "extent": None})

        for node_id in list(unique):
            if self._on_parent_cycle(node_id, unique):
                logger.warning("set_nodes: breaking parent cycle at %s", node_id)
                unique[node_id] = unique[node_id].model_copy(
                    update={"parent_id": None, "extent": None},
                )

        edges = [e for e in self._edges if e.source in unique and e.target in unique]
        self._selected = tuple(i for i in self._selected if i in unique)
        self._commit(nodes=unique.values(), edges=edges, reorder=True)

    def _on_parent_cycle(self, node_id: str, node_map: Mapping[str, CanvasNode]) -> bool:
        seen = {node_id}
        parent_id = node_map[node_id].parent_id
        steps = 0
        while parent_id is not None and steps < self.settings.max_parent_depth:
            if parent_id == node_id:
                return True
            if parent_id in seen or parent_id not in node_map:
                return False
            seen.add(parent_id)
            parent_id = node_map[parent_id].parent_id
            steps += 1
        return steps >= self.settings.max_parent_depth

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def create_edge(
        self,
        source: str,
        target: str,
        label: Optional[str] = None,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[CanvasEdge]:
        """Connect two nodes.  Self-loops and unknown endpoints are no-ops.

        Parallel edges are not de-duplicated.
        """
        if source == target:
            logger.debug("create_edge: self-loop on %s ignored", source)
            return None
        if source not in self._node_map or target not in self._node_map:
            logger.debug("create_edge: unknown endpoint %s -> %s", source, target)
            return None

        color = self.workspace_settings.default_edge_color
        edge = CanvasEdge(
            id=self._new_id(),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            label=label,
            data={"color": color, "strokeWidth": 2, "animated": False},
        )
        self._commit(edges=[*self._edges, edge])
        return edge

    def update_edge(self, edge_id: str, changes: Mapping[str, Any]) -> Optional[CanvasEdge]:
        """Shallow-merge ``changes`` into an edge; ``data`` is merged key-wise.

        Endpoints must keep referencing existing, distinct nodes.
        """
        edge = self.get_edge(edge_id)
        if edge is None:
            logger.debug("update_edge: unknown edge %s", edge_id)
            return None

        changes = dict(changes)
        changes.pop("id", None)
        merged = edge.model_dump()
        if "data" in changes:
            merged["data"] = {**edge.data, **dict(changes.pop("data") or {})}
        merged.update(changes)
        try:
            updated = CanvasEdge.model_validate(merged)
        except ValidationError as e:
            logger.warning("update_edge: invalid changes for %s: %s", edge_id, e)
            return None

        if (
            updated.source == updated.target
            or updated.source not in self._node_map
            or updated.target not in self._node_map
        ):
            logger.debug("update_edge: invalid endpoints for %s", edge_id)
            return None

        self._commit(edges=[updated if e.id == edge_id else e for e in self._edges])
        return updated

    def delete_edge(self, edge_id: str) -> bool:
        if self.get_edge(edge_id) is None:
            logger.debug("delete_edge: unknown edge %s", edge_id)
            return False
        self._commit(edges=[e for e in self._edges if e.id != edge_id])
        return True

    def set_edges(self, edges: Iterable[CanvasEdge]) -> None:
        """Replace every edge, dropping duplicates, self-loops and dangling ones."""
        kept: list[CanvasEdge] = []
        seen: set[str] = set()
        for edge in edges:
            if edge.id in seen:
                logger.warning("set_edges: duplicate edge id %s dropped", edge.id)
                continue
            if (
                edge.source == edge.target
                or edge.source not in self._node_map
                or edge.target not in self._node_map
            ):
                logger.warning("set_edges: dropping invalid edge %s", edge.id)
                continue
            seen.add(edge.id)
            kept.append(edge)
        self._commit(edges=kept)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_selected_nodes(self, node_ids: Iterable[str]) -> None:
        """Select exactly ``node_ids`` (unknown ids are ignored)."""
        selected = tuple(dict.fromkeys(i for i in node_ids if i in self._node_map))
        wanted = set(selected)
        if selected == self._selected and all(n.selected == (n.id in wanted) for n in self._nodes):
            return
        nodes = [
            n if n.selected == (n.id in wanted) else n.model_copy(update={"selected": n.id in wanted})
            for n in self._nodes
        ]
        self._selected = selected
        self._commit(nodes=nodes)

    # ------------------------------------------------------------------
    # Spatial queries
    # ------------------------------------------------------------------

    def query_region(self, region: Rect) -> list[CanvasNode]:
        """Nodes whose absolute rectangle intersects ``region``, in z-order."""
        if self._index_version != self._version:
            depth = self.settings.max_parent_depth
            self._index.rebuild(
                (n.id, absolute_rect(n, self._node_map, depth)) for n in self._nodes
            )
            self._index_version = self._version
        hits = set(self._index.query(region))
        return [n for n in self._nodes if n.id in hits]

    def fit_view(self, canvas_width: float, canvas_height: float, padding: float = 50) -> Viewport:
        """Set and return a viewport showing every node."""
        self.viewport = fit_viewport(
            self._nodes, self._node_map, canvas_width, canvas_height, padding,
        )
        return self.viewport

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @classmethod
    def from_document(
        cls,
        document: CanvasDocument,
        settings: Optional[EngineSettings] = None,
    ) -> GraphModel:
        graph = cls(settings=settings)
        graph.load_document(document)
        return graph

    def load_document(self, document: CanvasDocument) -> None:
        """Replace the whole graph with a document's contents."""
        self.name = document.name
        self.description = document.description
        self.viewport = document.viewport
        self.workspace_settings = document.settings
        self._selected = ()
        self._edges = ()
        self.set_nodes(document.nodes)
        self.set_edges(document.edges)

    def to_document(self) -> CanvasDocument:
        return CanvasDocument(
            name=self.name,
            description=self.description,
            nodes=list(self._nodes),
            edges=list(self._edges),
            viewport=self.viewport,
            settings=self.workspace_settings,
        )
