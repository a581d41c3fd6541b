"""tests for the DiagramEditor facade and its history policy."""

from planboard.core.editor import DiagramEditor
from planboard.core.errors import InvalidConnection, InvalidNodeType, InvalidPayload
from planboard.core.history import HistoryState
from planboard.core.models import Position, Size, Snapshot
from planboard.core.store import (
    NodeDimensionsChange,
    NodePositionChange,
    NodeRemove,
    NodeSelect,
)


class TestStructuralEdits:
    """structural edits commit immediately."""

    def test_add_node_commits(self, editor):
        update = editor.add_node("flow", {"x": 10, "y": 10})
        assert update.ok
        assert len(editor.history) == 2
        assert editor.can_undo()

    def test_invalid_type_no_commit(self, editor):
        update = editor.add_node("hologram")
        assert isinstance(update.error, InvalidNodeType)
        assert len(editor.history) == 1
        assert editor.snapshot == Snapshot.empty()

    def test_connect_idempotent(self, two_nodes):
        """connecting a -> b twice leaves exactly one edge."""
        two_nodes.connect({"source": "a", "target": "b"})
        update = two_nodes.connect({"source": "a", "target": "b"})
        assert isinstance(update.error, InvalidConnection)
        assert len(two_nodes.snapshot.edges) == 1
        assert len(two_nodes.history) == 2

    def test_no_self_loops(self, two_nodes):
        two_nodes.connect({"source": "a", "target": "a"})
        assert two_nodes.snapshot.edges == ()
        assert not two_nodes.can_undo()

    def test_handle_normalization(self, two_nodes):
        two_nodes.connect({
            "source": "a", "target": "b",
            "sourceHandle": "source-top", "targetHandle": "target-bottom",
        })
        edge = two_nodes.snapshot.edges[0]
        assert (edge.source_handle, edge.target_handle) == ("handle-top", "handle-bottom")

    def test_update_node_data(self, two_nodes):
        two_nodes.update_node_data("a", {"content": "notes"})
        assert two_nodes.snapshot.node("a").data.content == "notes"
        assert two_nodes.undo()
        assert two_nodes.snapshot.node("a").data.content == ""

    def test_resize_commits(self, two_nodes):
        two_nodes.apply_node_changes([NodeDimensionsChange("a", Size(10, 10))])
        assert len(two_nodes.history) == 2

    def test_selection_not_recorded(self, two_nodes):
        two_nodes.apply_node_changes([NodeSelect("a", True)])
        assert two_nodes.snapshot.node("a").selected
        assert len(two_nodes.history) == 1

    def test_invalid_data_rejected(self, two_nodes):
        """a patch of the wrong shape is reported and the node is unchanged."""
        update = two_nodes.update_node_data("a", {"content": ["not", "text"]})
        assert isinstance(update.error, InvalidPayload)
        assert two_nodes.snapshot.node("a").data.content == ""
        assert len(two_nodes.history) == 1

    def test_null_label_then_extract(self, two_nodes):
        """a null label falls back to empty and extraction still works."""
        assert two_nodes.update_node_data("a", {"label": None}).ok
        assert two_nodes.snapshot.node("a").data.label == ""
        assert two_nodes.extract_content().goals == []


class TestDragPolicy:
    """node drags are debounced into one entry."""

    def test_rapid_moves_one_entry(self, two_nodes, scheduler):
        """ten position updates inside the window produce one history entry."""
        for i in range(10):
            two_nodes.apply_node_changes([NodePositionChange("a", Position(i, i))])
            scheduler.advance(0.05)
        assert len(two_nodes.history) == 1
        scheduler.advance(1.0)
        assert len(two_nodes.history) == 2
        assert two_nodes.history.current.node("a").position == Position(9, 9)

    def test_drag_end_commits_immediately(self, two_nodes, scheduler):
        two_nodes.apply_node_changes([NodePositionChange("a", Position(1, 1))])
        two_nodes.apply_node_changes([NodePositionChange("a", Position(2, 2), dragging=False)])
        assert len(two_nodes.history) == 2
        assert scheduler.advance(1.0) == 0
        assert len(two_nodes.history) == 2

    def test_non_position_batch_flushes_drag(self, two_nodes):
        """the drag is recorded before the next structural edit."""
        two_nodes.apply_node_changes([NodePositionChange("a", Position(5, 5))])
        two_nodes.add_node("text")
        assert len(two_nodes.history) == 3
        two_nodes.undo()
        assert len(two_nodes.snapshot.nodes) == 2
        assert two_nodes.snapshot.node("a").position == Position(5, 5)

    def test_mixed_batch_with_remove_commits(self, two_nodes, scheduler):
        """a batch that moves one node and removes another is recorded at once."""
        two_nodes.apply_node_changes([NodePositionChange("a", Position(5, 5)), NodeRemove("b")])
        assert len(two_nodes.history) == 2
        assert not two_nodes.history.has_pending
        two_nodes.dispose()
        scheduler.advance(1.0)
        assert two_nodes.history.current.node("b") is None

    def test_mixed_batch_keeps_earlier_drag(self, two_nodes):
        """a drag already in flight gets its own entry before the removal."""
        two_nodes.apply_node_changes([NodePositionChange("a", Position(5, 5))])
        two_nodes.apply_node_changes([NodePositionChange("a", Position(6, 6)), NodeRemove("b")])
        assert len(two_nodes.history) == 3
        assert two_nodes.undo()
        assert two_nodes.snapshot.node("b") is not None
        assert two_nodes.snapshot.node("a").position == Position(5, 5)

    def test_undo_mid_drag(self, two_nodes):
        two_nodes.apply_node_changes([NodePositionChange("b", Position(40, 40))])
        assert two_nodes.undo()
        assert two_nodes.snapshot.node("b").position == Position(100, 0)
        assert two_nodes.redo()
        assert two_nodes.snapshot.node("b").position == Position(40, 40)


class TestUndoRedo:
    """tests for undo/redo through the editor."""

    def test_inverse_law(self, editor):
        """undo then redo returns to the same snapshot."""
        editor.add_node("canvas")
        editor.add_node("code")
        after = editor.snapshot
        assert editor.undo()
        assert editor.snapshot != after
        assert editor.redo()
        assert editor.snapshot == after

    def test_inverse_law_many_steps(self, editor):
        """k undos reach the start, k redos come back to the latest graph."""
        states = [editor.snapshot]
        for token in ("canvas", "flow", "shape:star", "code", "mindmap"):
            editor.add_node(token)
            states.append(editor.snapshot)
        steps = len(states) - 1
        for expected in reversed(states[:-1]):
            assert editor.undo()
            assert editor.snapshot == expected
        assert editor.snapshot == states[0]
        for expected in states[1:]:
            assert editor.redo()
            assert editor.snapshot == expected
        assert len(editor.history) == steps + 1

    def test_undo_to_start(self, editor):
        editor.add_node("canvas")
        assert editor.undo()
        assert editor.snapshot == Snapshot.empty()
        assert not editor.undo()
        assert editor.history.state is HistoryState.AT_START

    def test_redo_at_end(self, editor):
        editor.add_node("canvas")
        assert not editor.redo()

    def test_history_cap(self, editor):
        for _ in range(60):
            editor.add_node("text")
        assert len(editor.history) == 50
        assert len(editor.snapshot.nodes) == 60

    def test_clear_is_undoable(self, two_nodes):
        two_nodes.clear()
        assert two_nodes.snapshot == Snapshot.empty()
        assert two_nodes.undo()
        assert len(two_nodes.snapshot.nodes) == 2

    def test_clear_drops_pending_drag(self, two_nodes, scheduler):
        two_nodes.apply_node_changes([NodePositionChange("a", Position(5, 5))])
        two_nodes.clear()
        scheduler.advance(1.0)
        assert len(two_nodes.history) == 2
        assert two_nodes.snapshot == Snapshot.empty()


class TestWholesaleReplace:
    """tests for templates and imports."""

    def test_load_template_resets_history(self, editor):
        editor.add_node("canvas")
        assert editor.load_template("swot")
        assert len(editor.snapshot.nodes) == 4
        assert len(editor.history) == 1
        assert not editor.can_undo()

    def test_unknown_template_noop(self, two_nodes):
        before = two_nodes.snapshot
        assert not two_nodes.load_template("nope")
        assert two_nodes.snapshot is before

    def test_export_reload_round_trip(self, sample_graph, scheduler):
        """exporting and reloading yields an equal graph."""
        first = DiagramEditor(scheduler=scheduler)
        first.load_graph(sample_graph)
        first.add_node("shape:star", {"x": 3, "y": 4})
        exported = first.export_graph()

        second = DiagramEditor(scheduler=scheduler)
        second.load_graph(exported)
        assert second.snapshot == first.snapshot
        assert second.export_graph() == exported
        assert len(second.history) == 1

    def test_empty_edge_label_round_trip(self, two_nodes, scheduler):
        """an empty label reloads equal to the original edge."""
        two_nodes.connect({"source": "a", "target": "b", "label": ""})
        second = DiagramEditor(scheduler=scheduler)
        second.load_graph(two_nodes.export_graph())
        assert second.snapshot == two_nodes.snapshot

    def test_load_graph_skips_malformed(self, editor):
        editor.load_graph({
            "nodes": [{"type": "canvas"}, {"id": "ok", "type": "text"}, "junk"],
            "edges": [{"id": "e"}],
        })
        assert [n.id for n in editor.snapshot.nodes] == ["ok"]
        assert editor.snapshot.edges == ()

    def test_extract_content(self, sample_graph, editor):
        editor.load_graph(sample_graph)
        content = editor.extract_content()
        assert content.goals == ["Teach kids to code", "Ship MVP"]
        assert content.summary.startswith("## Diagram Content")


class TestDispose:
    """tests for ending a session."""

    def test_no_commit_after_dispose(self, scheduler):
        ed = DiagramEditor(scheduler=scheduler)
        ed.add_node("canvas")
        node_id = ed.snapshot.nodes[0].id
        ed.apply_node_changes([NodePositionChange(node_id, Position(9, 9))])
        ed.dispose()
        scheduler.advance(1.0)
        assert len(ed.history) == 2
