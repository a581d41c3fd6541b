"""fastapi server for planboard.

exposes the diagram editor as REST endpoints for a browser frontend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..core.client import ClaudeClient, ClientProtocol, MockClient
from ..core.editor import DiagramEditor
from ..core.errors import EditorError, UnknownTarget
from ..core.persistence import DiagramRecord, DiagramRepository, FileDiagramRepository
from ..core.prompts import AssistantContext, generate_guidance
from ..core.store import StoreUpdate, edge_change_from_dict, node_change_from_dict
from ..core.extractor import create_json_summary
from ..core.timers import AsyncioScheduler, SchedulerProtocol

logger = logging.getLogger(__name__)


# --- configuration ---

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


# --- pydantic models for api ---

class PositionIn(BaseModel):
    x: float = 0.0
    y: float = 0.0


class NodeCreate(BaseModel):
    """request to add a node, e.g. ``{"type": "shape:circle"}``."""
    type: str
    position: Optional[PositionIn] = None


class NodeDataPatch(BaseModel):
    """fields to merge into a node's payload."""
    data: dict


class ChangeBatch(BaseModel):
    """batch of tagged change dicts, applied in order."""
    changes: list[dict]


class ConnectRequest(BaseModel):
    source: Optional[str] = None
    target: Optional[str] = None
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    label: Optional[str] = None


class GraphPayload(BaseModel):
    """persisted ``{nodes, edges}`` form of a diagram."""
    nodes: list[dict] = []
    edges: list[dict] = []


class SaveRequest(BaseModel):
    project_id: str
    diagram_type: str
    name: str = ""
    description: str = ""


class LoadRequest(BaseModel):
    project_id: str
    diagram_type: str


class AssistantRequest(BaseModel):
    """project context for the planning assistant."""
    topic: Optional[str] = None
    grade: Optional[str] = None
    project_domain: Optional[str] = None
    time_available: Optional[str] = None
    project_id: Optional[str] = None


class DiagramResponse(BaseModel):
    """diagram in api response."""
    nodes: list[dict]
    edges: list[dict]
    can_undo: bool
    can_redo: bool
    history_state: str
    is_dirty: bool = False
    last_saved_at: Optional[str] = None
    errors: list[str] = []

    @classmethod
    def from_editor(
        cls,
        editor: DiagramEditor,
        is_dirty: bool = False,
        last_saved_at: Optional[str] = None,
        errors: Optional[list[str]] = None,
    ) -> "DiagramResponse":
        graph = editor.export_graph()
        return cls(
            nodes=graph["nodes"],
            edges=graph["edges"],
            can_undo=editor.can_undo(),
            can_redo=editor.can_redo(),
            history_state=editor.history.state.value,
            is_dirty=is_dirty,
            last_saved_at=last_saved_at,
            errors=errors or [],
        )


class TemplateInfo(BaseModel):
    """template info for listing."""
    key: str
    name: str
    description: str
    tags: list[str] = []


class ContentResponse(BaseModel):
    summary: str
    goals: list[str]


class SaveResponse(BaseModel):
    success: bool
    path: Optional[str] = None
    error: Optional[str] = None


class DiagramListItem(BaseModel):
    """saved diagram summary for listing."""
    project_id: str
    diagram_type: str
    name: str
    path: str
    node_count: int
    edge_count: int
    updated_at: str
    modified_at: str


class AssistantResponse(BaseModel):
    success: bool
    text: str = ""
    error: Optional[str] = None
    goals: list[str] = []


# --- app state ---

class AppState:
    """shared application state: one editing session plus its collaborators."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        mock: bool = False,
        repository: Optional[DiagramRepository] = None,
        client: Optional[ClientProtocol] = None,
        scheduler: Optional[SchedulerProtocol] = None,
    ):
        self.editor = DiagramEditor(scheduler=scheduler or AsyncioScheduler())
        self.repository: DiagramRepository = repository or FileDiagramRepository(data_dir)
        self.mock = mock
        self._client = client

        # dirty state tracking
        self._dirty = False
        self._last_saved_at: Optional[str] = None

    @property
    def client(self) -> ClientProtocol:
        if self._client is None:
            if self.mock:
                self._client = MockClient()
            else:
                self._client = ClaudeClient()
        return self._client

    @property
    def is_dirty(self) -> bool:
        """check if the diagram has unsaved changes."""
        return self._dirty

    def mark_dirty(self) -> None:
        self._dirty = True

    def mark_clean(self) -> None:
        """mark diagram as saved."""
        self._dirty = False
        self._last_saved_at = datetime.now().isoformat()

    def dispose(self) -> None:
        self.editor.dispose()


state = AppState()


def _diagram_response(errors: Optional[list[str]] = None) -> DiagramResponse:
    """helper to build DiagramResponse with current state info."""
    return DiagramResponse.from_editor(
        state.editor,
        is_dirty=state.is_dirty,
        last_saved_at=state._last_saved_at,
        errors=errors,
    )


def _status_for(error: EditorError) -> int:
    if isinstance(error, UnknownTarget):
        return 404
    return 400


def _apply(update: StoreUpdate, strict: bool = True) -> DiagramResponse:
    """turn a store update into a response.

    single operations (``strict``) fail with an http error when rejected;
    change batches report skipped entries in ``errors`` instead.
    """
    if strict and update.error is not None:
        raise HTTPException(status_code=_status_for(update.error), detail=str(update.error))
    if update.changed:
        state.mark_dirty()
    return _diagram_response([str(e) for e in update.errors])


# --- lifespan ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # shutdown: no debounced commit may fire after the session ends
    state.dispose()


# --- app ---

app = FastAPI(
    title="planboard api",
    description="REST API for the planboard diagram editor",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- endpoints ---

@app.get("/health")
async def health():
    """health check."""
    return {"status": "ok"}


@app.get("/diagram", response_model=DiagramResponse)
async def get_diagram():
    """get current diagram state."""
    return _diagram_response()


@app.post("/diagram/nodes", response_model=DiagramResponse)
async def add_node(req: NodeCreate):
    """add a node of the requested type."""
    position = req.position.model_dump() if req.position else None
    return _apply(state.editor.add_node(req.type, position))


@app.patch("/diagram/nodes/{node_id}", response_model=DiagramResponse)
async def update_node(node_id: str, req: NodeDataPatch):
    """merge fields into a node's payload."""
    return _apply(state.editor.update_node_data(node_id, req.data))


@app.post("/diagram/changes/nodes", response_model=DiagramResponse)
async def apply_node_changes(req: ChangeBatch):
    """apply a batch of node changes (move, resize, add, remove, select)."""
    try:
        changes = [node_change_from_dict(c) for c in req.changes]
    except (KeyError, TypeError, ValueError, EditorError) as e:
        raise HTTPException(status_code=400, detail=f"invalid node change: {e}")
    return _apply(state.editor.apply_node_changes(changes), strict=False)


@app.post("/diagram/changes/edges", response_model=DiagramResponse)
async def apply_edge_changes(req: ChangeBatch):
    """apply a batch of edge changes (add, remove, select)."""
    try:
        changes = [edge_change_from_dict(c) for c in req.changes]
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"invalid edge change: {e}")
    return _apply(state.editor.apply_edge_changes(changes), strict=False)


@app.post("/diagram/connect", response_model=DiagramResponse)
async def connect(req: ConnectRequest):
    """connect two nodes."""
    return _apply(state.editor.connect(req.model_dump()))


@app.post("/diagram/clear", response_model=DiagramResponse)
async def clear_diagram():
    """remove every node and edge."""
    return _apply(state.editor.clear())


@app.post("/diagram/undo", response_model=DiagramResponse)
async def undo():
    """undo last change."""
    if not state.editor.undo():
        raise HTTPException(status_code=400, detail="nothing to undo")
    state.mark_dirty()
    return _diagram_response()


@app.post("/diagram/redo", response_model=DiagramResponse)
async def redo():
    """redo last undone change."""
    if not state.editor.redo():
        raise HTTPException(status_code=400, detail="nothing to redo")
    state.mark_dirty()
    return _diagram_response()


@app.get("/templates", response_model=list[TemplateInfo])
async def get_templates():
    """list available diagram templates."""
    return [
        TemplateInfo(key=t.key, name=t.name, description=t.description, tags=t.tags)
        for t in state.editor.templates.registry.list_templates()
    ]


@app.post("/diagram/template/{name}", response_model=DiagramResponse)
async def load_template(name: str):
    """replace the diagram with a template; history restarts."""
    if not state.editor.load_template(name):
        raise HTTPException(status_code=404, detail=f"template not found: {name}")
    state.mark_dirty()
    return _diagram_response()


@app.get("/diagram/export")
async def export_diagram():
    """persisted {nodes, edges} form of the diagram."""
    return state.editor.export_graph()


@app.post("/diagram/import", response_model=DiagramResponse)
async def import_diagram(req: GraphPayload):
    """replace the diagram with an exported payload; history restarts."""
    state.editor.load_graph(req.model_dump())
    state.mark_dirty()
    return _diagram_response()


@app.get("/diagram/content")
async def get_content(fmt: Literal["markdown", "json"] = Query("markdown", alias="format")):
    """text summary and goals for the assistant."""
    if fmt == "json":
        snapshot = state.editor.snapshot
        return create_json_summary(snapshot.nodes, snapshot.edges)
    content = state.editor.extract_content()
    return ContentResponse(summary=content.summary, goals=content.goals)


@app.post("/diagram/save", response_model=SaveResponse)
async def save_diagram(req: SaveRequest):
    """save the diagram under (project_id, diagram_type), replacing any earlier save."""
    graph = state.editor.export_graph()
    record = DiagramRecord(
        project_id=req.project_id,
        diagram_type=req.diagram_type,
        name=req.name,
        description=req.description,
        nodes=graph["nodes"],
        edges=graph["edges"],
    )
    result = state.repository.save(record)
    if result.success:
        state.mark_clean()
    return SaveResponse(success=result.success, path=result.path, error=result.error)


@app.post("/diagram/load", response_model=DiagramResponse)
async def load_diagram(req: LoadRequest):
    """load a saved diagram; history restarts."""
    record = state.repository.load(req.project_id, req.diagram_type)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail=f"no saved diagram for {req.project_id}/{req.diagram_type}",
        )
    state.editor.load_graph(record.graph)
    state.mark_clean()
    return _diagram_response()


@app.get("/diagrams", response_model=list[DiagramListItem])
async def list_diagrams(project_id: Optional[str] = None):
    """list saved diagrams."""
    return [DiagramListItem(**d) for d in state.repository.list_diagrams(project_id)]


@app.post("/assistant", response_model=AssistantResponse)
async def ask_assistant(req: AssistantRequest):
    """ask the planning assistant about the current diagram."""
    content = state.editor.extract_content()
    context = AssistantContext(**req.model_dump())
    result = await generate_guidance(state.client, content, context)
    return AssistantResponse(
        success=result.success,
        text=result.text,
        error=result.error,
        goals=content.goals,
    )


# --- entrypoint ---

def configure(data_dir: Optional[Path] = None, mock: bool = False) -> AppState:
    """replace the module-level state before serving."""
    global state
    state = AppState(data_dir=data_dir, mock=mock)
    return state


def serve(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    data_dir: Optional[Path] = None,
    mock: bool = False,
    reload: bool = False,
) -> None:
    """run the api server."""
    import uvicorn

    configure(data_dir=data_dir, mock=mock)
    logger.info(f"serving planboard api on {host}:{port}")
    uvicorn.run(
        "planboard.api.server:app",
        host=host,
        port=port,
        reload=reload,
    )


def main():
    """run the api server from the command line."""
    import argparse

    parser = argparse.ArgumentParser(description="planboard api server")
    parser.add_argument("--host", default=DEFAULT_HOST, help="host to bind")
    parser.add_argument("--port", "-p", type=int, default=DEFAULT_PORT, help="port to bind")
    parser.add_argument("--data-dir", "-d", type=Path, help="where saved diagrams live")
    parser.add_argument("--mock", "-m", action="store_true", help="use mock client")
    parser.add_argument("--reload", action="store_true", help="enable auto-reload")
    args = parser.parse_args()
    serve(args.host, args.port, args.data_dir, args.mock, args.reload)


if __name__ == "__main__":
    main()
