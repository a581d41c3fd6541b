"""tests for GraphStore change application."""

import pytest

from planboard.core.errors import InvalidConnection, InvalidNodeType, InvalidPayload, UnknownTarget
from planboard.core.models import DiagramEdge, DiagramNode, NodeVariant, Position, Size, TextData
from planboard.core.store import (
    EdgeAdd,
    EdgeRemove,
    EdgeSelect,
    GraphStore,
    NodeAdd,
    NodeDimensionsChange,
    NodePositionChange,
    NodeRemove,
    NodeSelect,
    edge_change_from_dict,
    node_change_from_dict,
)

from conftest import make_snapshot


@pytest.fixture
def store():
    """store with nodes a, b, c and edge a -> b."""
    s = GraphStore(make_snapshot("a", "b", "c"))
    s.connect({"source": "a", "target": "b"})
    return s


class TestAddNode:
    """tests for add_node."""

    def test_appends(self):
        store = GraphStore()
        update = store.add_node("text", {"x": 1, "y": 2})
        assert update.ok
        assert update.changed
        assert update.history_worthy
        assert len(store.snapshot.nodes) == 1
        assert store.snapshot.nodes[0].position == Position(1, 2)

    def test_invalid_type_rejected(self):
        """unknown types leave the graph untouched."""
        store = GraphStore()
        before = store.snapshot
        update = store.add_node("hologram")
        assert isinstance(update.error, InvalidNodeType)
        assert not update.changed
        assert store.snapshot is before


class TestConnect:
    """tests for connect."""

    def test_normalizes_handles(self):
        store = GraphStore(make_snapshot("a", "b"))
        update = store.connect({
            "source": "a", "target": "b",
            "sourceHandle": "source-top", "targetHandle": "target-bottom",
        })
        assert update.ok
        edge = store.snapshot.edges[0]
        assert edge.source_handle == "handle-top"
        assert edge.target_handle == "handle-bottom"

    def test_idempotent(self, store):
        """connecting the same pair twice leaves one edge."""
        update = store.connect({"source": "a", "target": "b"})
        assert isinstance(update.error, InvalidConnection)
        assert len(store.snapshot.edges) == 1

    def test_self_loop_rejected(self, store):
        update = store.connect({"source": "c", "target": "c"})
        assert not update.ok
        assert len(store.snapshot.edges) == 1


class TestNodeChanges:
    """tests for apply_node_changes."""

    def test_position(self, store):
        update = store.apply_node_changes([NodePositionChange("a", Position(50, 60))])
        assert store.snapshot.node("a").position == Position(50, 60)
        assert update.has_position_changes
        assert not update.drag_ended

    def test_drag_end(self, store):
        update = store.apply_node_changes([NodePositionChange("a", Position(5, 5), dragging=False)])
        assert update.drag_ended

    def test_dimensions(self, store):
        update = store.apply_node_changes([NodeDimensionsChange("b", Size(300, 200))])
        assert store.snapshot.node("b").size == Size(300, 200)
        assert update.history_worthy
        assert not update.has_position_changes
        assert update.structural

    def test_remove_cascades_edges(self, store):
        """removing a node removes every edge touching it."""
        update = store.apply_node_changes([NodeRemove("b")])
        assert not store.snapshot.has_node("b")
        assert store.snapshot.edges == ()
        assert update.history_worthy

    def test_position_with_remove_is_structural(self, store):
        """a move batch that also removes a node is flagged as structural."""
        update = store.apply_node_changes([NodePositionChange("a", Position(1, 1)), NodeRemove("c")])
        assert update.has_position_changes
        assert update.structural
        assert not store.snapshot.has_node("c")

    def test_position_only_not_structural(self, store):
        update = store.apply_node_changes([NodePositionChange("a", Position(1, 1))])
        assert not update.structural

    def test_remove_then_readd_drops_edges(self, store):
        """a node re-added in the same batch starts without edges."""
        fresh = DiagramNode(id="b", type=NodeVariant.TEXT, position=Position(), data=TextData())
        store.apply_node_changes([NodeRemove("b"), NodeAdd(fresh)])
        assert store.snapshot.node("b").type is NodeVariant.TEXT
        assert store.snapshot.edges == ()

    def test_selection_not_history_worthy(self, store):
        update = store.apply_node_changes([NodeSelect("a", True)])
        assert store.snapshot.node("a").selected
        assert not update.history_worthy
        assert not update.changed

    def test_unknown_id_skipped(self, store):
        """unknown ids are reported, the rest of the batch applies."""
        update = store.apply_node_changes([
            NodePositionChange("nope", Position(1, 1)),
            NodePositionChange("a", Position(9, 9)),
        ])
        assert store.snapshot.node("a").position == Position(9, 9)
        assert len(update.errors) == 1
        assert isinstance(update.errors[0], UnknownTarget)
        assert update.errors[0].target_id == "nope"

    def test_duplicate_add_ignored(self, store):
        dup = DiagramNode(id="a", type=NodeVariant.TEXT, position=Position(), data=TextData())
        store.apply_node_changes([NodeAdd(dup)])
        assert store.snapshot.node("a").type is NodeVariant.CANVAS
        assert len(store.snapshot.nodes) == 3

    def test_previous_snapshot_untouched(self, store):
        """snapshots are never modified after the fact."""
        before = store.snapshot
        store.apply_node_changes([NodePositionChange("a", Position(77, 77))])
        assert before.node("a").position == Position(0, 0)


class TestEdgeChanges:
    """tests for apply_edge_changes."""

    def test_add_validated(self, store):
        update = store.apply_edge_changes([
            EdgeAdd(DiagramEdge(id="e-bc", source="b", target="c", source_handle="source-right")),
            EdgeAdd(DiagramEdge(id="e-cc", source="c", target="c")),
        ])
        assert store.snapshot.edge("e-bc").source_handle == "handle-right"
        assert store.snapshot.edge("e-cc") is None
        assert len(update.errors) == 1

    def test_remove(self, store):
        edge_id = store.snapshot.edges[0].id
        update = store.apply_edge_changes([EdgeRemove(edge_id)])
        assert store.snapshot.edges == ()
        assert update.history_worthy

    def test_remove_unknown(self, store):
        update = store.apply_edge_changes([EdgeRemove("ghost")])
        assert isinstance(update.error, UnknownTarget)
        assert update.error.kind == "edge"

    def test_select_not_history_worthy(self, store):
        edge_id = store.snapshot.edges[0].id
        update = store.apply_edge_changes([EdgeSelect(edge_id, True)])
        assert store.snapshot.edge(edge_id).selected
        assert not update.history_worthy


class TestUpdateNodeData:
    """tests for update_node_data."""

    def test_merges_patch(self, store):
        update = store.update_node_data("a", {"content": "hello"})
        node = store.snapshot.node("a")
        assert node.data.content == "hello"
        assert node.data.label == "a"
        assert update.history_worthy

    def test_unknown_node(self, store):
        update = store.update_node_data("ghost", {"content": "x"})
        assert isinstance(update.error, UnknownTarget)

    def test_malformed_tables_rejected(self):
        """table entries must be objects; the rejected patch changes nothing."""
        store = GraphStore()
        store.add_node("database")
        node_id = store.snapshot.nodes[0].id
        before = store.snapshot
        update = store.update_node_data(node_id, {"tables": ["users"]})
        assert isinstance(update.error, InvalidPayload)
        assert not update.changed
        assert store.snapshot is before

    def test_null_label_uses_default(self, store):
        update = store.update_node_data("a", {"label": None})
        assert update.ok
        assert store.snapshot.node("a").data.label == ""


class TestClearAndReplace:
    """tests for wholesale operations."""

    def test_clear(self, store):
        update = store.clear()
        assert store.snapshot.nodes == ()
        assert store.snapshot.edges == ()
        assert update.history_worthy

    def test_replace(self, store):
        new = make_snapshot("x")
        update = store.replace(new)
        assert store.snapshot is new
        assert not update.history_worthy


class TestChangeFromDict:
    """tests for tagged change parsing."""

    def test_node_position(self):
        change = node_change_from_dict({"type": "position", "id": "a", "position": {"x": 1, "y": 2}, "dragging": False})
        assert change == NodePositionChange("a", Position(1, 2), dragging=False)

    def test_node_dimensions(self):
        change = node_change_from_dict({"type": "dimensions", "id": "a", "size": {"width": 3, "height": 4}})
        assert change == NodeDimensionsChange("a", Size(3, 4))

    def test_node_add(self):
        change = node_change_from_dict({"type": "add", "item": {"id": "n", "type": "code"}})
        assert change.item.type is NodeVariant.CODE

    def test_edge_remove(self):
        assert edge_change_from_dict({"type": "remove", "id": "e"}) == EdgeRemove("e")

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            node_change_from_dict({"type": "teleport", "id": "a"})
        with pytest.raises(ValueError):
            edge_change_from_dict({"type": "teleport", "id": "e"})
