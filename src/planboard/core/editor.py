"""editor session: store + history + templates behind one api.

this is the only mutation path for a diagram. callers send operations
(add, connect, update, change batches) and read back snapshots; nothing
outside holds a live reference into the graph.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from .connections import ConnectionRequest
from .extractor import ExtractedContent, extract_content
from .history import DEBOUNCE_SECONDS, HISTORY_LIMIT, HistoryManager
from .models import Position, Snapshot
from .store import EdgeChange, GraphStore, NodeChange, StoreUpdate
from .templates import TemplateLoader, TemplateRegistry
from .timers import SchedulerProtocol

logger = logging.getLogger(__name__)


class DiagramEditor:
    """one editing session over one diagram.

    history policy:
    - add, remove, connect, resize, data edits: committed immediately
    - node drags: debounced, flushed when the drag ends
    - a batch mixing drags with add/remove/resize counts as structural
    - selection only: not recorded
    """

    def __init__(
        self,
        initial: Optional[Snapshot] = None,
        registry: Optional[TemplateRegistry] = None,
        scheduler: Optional[SchedulerProtocol] = None,
        history_limit: int = HISTORY_LIMIT,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ):
        self.store = GraphStore(initial)
        self.history = HistoryManager(
            initial=self.store.snapshot,
            limit=history_limit,
            debounce_seconds=debounce_seconds,
            scheduler=scheduler,
        )
        self.templates = TemplateLoader(self.store, self.history, registry)
        self._dragging = False

    @property
    def snapshot(self) -> Snapshot:
        return self.store.snapshot

    # --- history policy ---

    def _record(self, update: StoreUpdate) -> StoreUpdate:
        if update.structural:
            # a drag in flight keeps its own entry ahead of the structural one
            if self._dragging:
                self.history.flush()
            self._dragging = update.has_position_changes and not update.drag_ended
            if update.changed:
                self.history.commit(update.snapshot, immediate=True)
            return update
        if update.has_position_changes:
            self._dragging = not update.drag_ended
            self.history.commit(update.snapshot, immediate=update.drag_ended)
            return update
        if self._dragging:
            # the gesture ended without a final position event
            self._dragging = False
            self.history.flush()
        if update.history_worthy and update.changed:
            self.history.commit(update.snapshot, immediate=True)
        return update

    # --- operations ---

    def add_node(self, type_token: str, position: Union[Position, dict, None] = None) -> StoreUpdate:
        return self._record(self.store.add_node(type_token, position))

    def connect(self, request: Union[ConnectionRequest, dict]) -> StoreUpdate:
        return self._record(self.store.connect(request))

    def update_node_data(self, node_id: str, patch: dict) -> StoreUpdate:
        return self._record(self.store.update_node_data(node_id, patch))

    def apply_node_changes(self, changes: Iterable[NodeChange]) -> StoreUpdate:
        return self._record(self.store.apply_node_changes(changes))

    def apply_edge_changes(self, changes: Iterable[EdgeChange]) -> StoreUpdate:
        return self._record(self.store.apply_edge_changes(changes))

    def clear(self) -> StoreUpdate:
        """empty the diagram; always recorded immediately."""
        self._dragging = False
        self.history.cancel_pending()
        update = self.store.clear()
        self.history.commit(update.snapshot, immediate=True)
        return update

    # --- undo/redo ---

    def undo(self) -> bool:
        """step back in history. returns True if the graph changed."""
        self._dragging = False
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.store.replace(snapshot)
        return True

    def redo(self) -> bool:
        """step forward in history. returns True if the graph changed."""
        self._dragging = False
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self.store.replace(snapshot)
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    # --- wholesale replacement ---

    def load_template(self, name: str) -> bool:
        """replace the diagram with a named template. returns False if unknown."""
        self._dragging = False
        return self.templates.load(name) is not None

    def load_graph(self, payload: dict) -> Snapshot:
        """replace the diagram with an exported ``{nodes, edges}`` payload."""
        self._dragging = False
        snapshot = Snapshot.from_dict(payload)
        self.templates.install(snapshot)
        logger.debug(f"graph loaded: {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges")
        return snapshot

    # --- read side ---

    def export_graph(self) -> dict:
        """persisted ``{nodes, edges}`` form of the current diagram."""
        return self.store.snapshot.to_dict()

    def extract_content(self) -> ExtractedContent:
        return extract_content(self.store.snapshot)

    def dispose(self) -> None:
        """end the session: no debounced commit fires after this."""
        self.history.dispose()
