"""canonical node/edge state and change-batch application.

GraphStore owns the current Snapshot. every operation builds a new snapshot
and reports it in a StoreUpdate; rejected operations log a warning, keep the
current snapshot and carry the error on the update instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union

from . import connections
from .connections import ConnectionRequest
from .errors import EditorError, InvalidConnection, InvalidNodeType, InvalidPayload, UnknownTarget
from .factory import create_node
from .models import DiagramEdge, DiagramNode, Position, Size, Snapshot

logger = logging.getLogger(__name__)


# --- node changes ---

@dataclass(frozen=True)
class NodePositionChange:
    id: str
    position: Position
    dragging: bool = True  # False marks the last event of a drag gesture


@dataclass(frozen=True)
class NodeDimensionsChange:
    id: str
    size: Size


@dataclass(frozen=True)
class NodeAdd:
    item: DiagramNode


@dataclass(frozen=True)
class NodeRemove:
    id: str


@dataclass(frozen=True)
class NodeSelect:
    id: str
    selected: bool


NodeChange = Union[NodePositionChange, NodeDimensionsChange, NodeAdd, NodeRemove, NodeSelect]


# --- edge changes ---

@dataclass(frozen=True)
class EdgeAdd:
    item: DiagramEdge


@dataclass(frozen=True)
class EdgeRemove:
    id: str


@dataclass(frozen=True)
class EdgeSelect:
    id: str
    selected: bool


EdgeChange = Union[EdgeAdd, EdgeRemove, EdgeSelect]


def node_change_from_dict(d: dict) -> NodeChange:
    """build a node change from its tagged dict form (``{"type": "position", ...}``)."""
    kind = d.get("type")
    if kind == "position":
        return NodePositionChange(
            id=d["id"],
            position=Position.from_dict(d.get("position")),
            dragging=d.get("dragging", True),
        )
    if kind == "dimensions":
        return NodeDimensionsChange(id=d["id"], size=Size.from_dict(d.get("size") or d["dimensions"]))
    if kind == "add":
        return NodeAdd(item=DiagramNode.from_dict(d["item"]))
    if kind == "remove":
        return NodeRemove(id=d["id"])
    if kind == "select":
        return NodeSelect(id=d["id"], selected=bool(d.get("selected", True)))
    raise ValueError(f"unknown node change type: {kind!r}")


def edge_change_from_dict(d: dict) -> EdgeChange:
    """build an edge change from its tagged dict form."""
    kind = d.get("type")
    if kind == "add":
        return EdgeAdd(item=DiagramEdge.from_dict(d["item"]))
    if kind == "remove":
        return EdgeRemove(id=d["id"])
    if kind == "select":
        return EdgeSelect(id=d["id"], selected=bool(d.get("selected", True)))
    raise ValueError(f"unknown edge change type: {kind!r}")


@dataclass(frozen=True)
class StoreUpdate:
    """result of one store operation."""

    snapshot: Snapshot
    changed: bool = False
    history_worthy: bool = False
    has_position_changes: bool = False
    drag_ended: bool = False
    structural: bool = False  # batch added, removed or resized a node
    errors: tuple[EditorError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> Optional[EditorError]:
        return self.errors[0] if self.errors else None


class GraphStore:
    """owns the current snapshot; never mutates it in place."""

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self._snapshot = snapshot if snapshot is not None else Snapshot.empty()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def _commit(self, new: Snapshot, errors: Iterable[EditorError] = (), **flags) -> StoreUpdate:
        old = self._snapshot
        self._snapshot = new
        return StoreUpdate(snapshot=new, changed=new != old, errors=tuple(errors), **flags)

    def _reject(self, error: EditorError) -> StoreUpdate:
        logger.warning(str(error))
        return StoreUpdate(snapshot=self._snapshot, errors=(error,))

    # --- batches ---

    def apply_node_changes(self, changes: Iterable[NodeChange]) -> StoreUpdate:
        """apply a batch of node changes; unknown ids are skipped with a warning."""
        nodes: dict[str, DiagramNode] = {n.id: n for n in self._snapshot.nodes}
        errors: list[EditorError] = []
        removed: set[str] = set()
        worthy = False
        structural = False
        has_position = False
        drag_ended = False

        def missing(node_id: str) -> bool:
            if node_id in nodes:
                return False
            error = UnknownTarget(node_id)
            logger.warning(str(error))
            errors.append(error)
            return True

        for change in changes:
            if isinstance(change, NodeAdd):
                if change.item.id in nodes:
                    logger.warning(f"node id already present, add ignored: {change.item.id!r}")
                    continue
                nodes[change.item.id] = change.item
                worthy = structural = True
            elif isinstance(change, NodeRemove):
                if missing(change.id):
                    continue
                del nodes[change.id]
                removed.add(change.id)
                worthy = structural = True
            elif isinstance(change, NodePositionChange):
                if missing(change.id):
                    continue
                nodes[change.id] = replace(nodes[change.id], position=change.position)
                has_position = True
                drag_ended = drag_ended or not change.dragging
                worthy = True
            elif isinstance(change, NodeDimensionsChange):
                if missing(change.id):
                    continue
                nodes[change.id] = replace(nodes[change.id], size=change.size)
                worthy = structural = True
            elif isinstance(change, NodeSelect):
                if missing(change.id):
                    continue
                nodes[change.id] = replace(nodes[change.id], selected=change.selected)
            else:
                raise TypeError(f"not a node change: {change!r}")

        # removing a node removes every edge touching it, even if the id is re-added
        edges = tuple(
            e for e in self._snapshot.edges
            if e.source in nodes and e.target in nodes
            and e.source not in removed and e.target not in removed
        )
        return self._commit(
            Snapshot(nodes=tuple(nodes.values()), edges=edges),
            errors,
            history_worthy=worthy,
            has_position_changes=has_position,
            drag_ended=drag_ended,
            structural=structural,
        )

    def apply_edge_changes(self, changes: Iterable[EdgeChange]) -> StoreUpdate:
        """apply a batch of edge changes; additions go through connection validation."""
        current = self._snapshot
        errors: list[EditorError] = []
        worthy = False

        for change in changes:
            if isinstance(change, EdgeAdd):
                edge = change.item
                request = ConnectionRequest(
                    edge.source, edge.target, edge.source_handle, edge.target_handle, edge.label
                )
                try:
                    normalized = connections.resolve(request, current)
                except InvalidConnection as e:
                    logger.warning(str(e))
                    errors.append(e)
                    continue
                current = replace(current, edges=current.edges + (normalized.to_edge(edge.id),))
                worthy = True
            elif isinstance(change, EdgeRemove):
                if current.edge(change.id) is None:
                    error = UnknownTarget(change.id, kind="edge")
                    logger.warning(str(error))
                    errors.append(error)
                    continue
                current = replace(current, edges=tuple(e for e in current.edges if e.id != change.id))
                worthy = True
            elif isinstance(change, EdgeSelect):
                if current.edge(change.id) is None:
                    error = UnknownTarget(change.id, kind="edge")
                    logger.warning(str(error))
                    errors.append(error)
                    continue
                current = replace(current, edges=tuple(
                    replace(e, selected=change.selected) if e.id == change.id else e
                    for e in current.edges
                ))
            else:
                raise TypeError(f"not an edge change: {change!r}")

        return self._commit(current, errors, history_worthy=worthy)

    # --- single operations ---

    def add_node(self, token: str, position: Union[Position, dict, None] = None) -> StoreUpdate:
        """create a node of the requested type and append it."""
        try:
            node = create_node(token, position)
        except InvalidNodeType as e:
            return self._reject(e)
        logger.debug(f"added node {node.id}")
        current = self._snapshot
        return self._commit(replace(current, nodes=current.nodes + (node,)), history_worthy=True)

    def connect(self, request: Union[ConnectionRequest, dict]) -> StoreUpdate:
        """validate and materialize a connection as a new edge."""
        if isinstance(request, dict):
            request = ConnectionRequest.from_dict(request)
        current = self._snapshot
        try:
            normalized = connections.resolve(request, current)
        except InvalidConnection as e:
            return self._reject(e)
        edge = normalized.to_edge()
        logger.debug(f"connected {edge.source} -> {edge.target} as {edge.id}")
        return self._commit(replace(current, edges=current.edges + (edge,)), history_worthy=True)

    def update_node_data(self, node_id: str, patch: dict) -> StoreUpdate:
        """merge ``patch`` into the payload of ``node_id``."""
        current = self._snapshot
        node = current.node(node_id)
        if node is None:
            return self._reject(UnknownTarget(node_id))
        try:
            updated = replace(node, data=node.data.merged(patch))
        except InvalidPayload as e:
            return self._reject(e)
        nodes = tuple(updated if n.id == node_id else n for n in current.nodes)
        return self._commit(replace(current, nodes=nodes), history_worthy=True)

    def clear(self) -> StoreUpdate:
        return self._commit(Snapshot.empty(), history_worthy=True)

    def replace(self, snapshot: Snapshot) -> StoreUpdate:
        """swap in a whole snapshot (undo/redo, templates, imports)."""
        return self._commit(snapshot)
