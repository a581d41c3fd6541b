"""pytest fixtures for planboard tests."""

import pytest
import tempfile
from pathlib import Path

from planboard.core.editor import DiagramEditor
from planboard.core.models import CanvasData, DiagramNode, NodeVariant, Position, Snapshot
from planboard.core.timers import ManualScheduler


def make_snapshot(*ids: str) -> Snapshot:
    """snapshot with one canvas node per id, laid out in a row."""
    return Snapshot(nodes=tuple(
        DiagramNode(
            id=node_id,
            type=NodeVariant.CANVAS,
            position=Position(x=100.0 * i, y=0.0),
            data=CanvasData(label=node_id),
        )
        for i, node_id in enumerate(ids)
    ))


@pytest.fixture
def temp_dir():
    """temporary directory that cleans up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def scheduler():
    """virtual clock for debounce timing."""
    return ManualScheduler()


@pytest.fixture
def editor(scheduler):
    """empty editor driven by the manual scheduler."""
    ed = DiagramEditor(scheduler=scheduler)
    yield ed
    ed.dispose()


@pytest.fixture
def two_nodes(scheduler):
    """editor holding canvas nodes "a" and "b"."""
    ed = DiagramEditor(initial=make_snapshot("a", "b"), scheduler=scheduler)
    yield ed
    ed.dispose()


@pytest.fixture
def sample_graph():
    """exported graph with one node of several variants and two edges."""
    return {
        "nodes": [
            {
                "id": "goal",
                "type": "canvas",
                "position": {"x": 0, "y": 0},
                "data": {"label": "Project Goal", "content": "Teach kids to code"},
            },
            {
                "id": "f1",
                "type": "flow",
                "position": {"x": 200, "y": 0},
                "data": {"label": "Collect input", "role": "input", "content": "Survey"},
            },
            {
                "id": "f2",
                "type": "flow",
                "position": {"x": 400, "y": 0},
                "data": {"label": "Output", "role": "output", "content": "Ship MVP"},
            },
            {
                "id": "db",
                "type": "database",
                "position": {"x": 400, "y": 200},
                "data": {
                    "label": "Store",
                    "tables": [{
                        "name": "users",
                        "fields": [
                            {"name": "id", "type": "int", "is_primary_key": True},
                            {"name": "team_id", "type": "int", "is_foreign_key": True},
                        ],
                    }],
                },
            },
        ],
        "edges": [
            {"id": "e1", "source": "f1", "target": "f2", "label": "weekly"},
            {"id": "e2", "source": "f2", "target": "db"},
        ],
    }
