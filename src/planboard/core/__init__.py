"""core primitives shared between the api server and the cli."""

from .errors import (
    ConnectionRejection,
    EditorError,
    InvalidConnection,
    InvalidNodeType,
    InvalidPayload,
    UnknownTarget,
    UnknownTemplate,
)
from .models import (
    NodeVariant,
    Position,
    Size,
    DiagramNode,
    DiagramEdge,
    Snapshot,
    FLOW_ROLES,
    SHAPE_KINDS,
)
from .factory import create_node, parse_type_token
from .connections import ConnectionRequest, normalize_handle
from .store import GraphStore, StoreUpdate, node_change_from_dict, edge_change_from_dict
from .history import HistoryManager, HistoryState, HISTORY_LIMIT, DEBOUNCE_SECONDS
from .timers import AsyncioScheduler, ManualScheduler, ThreadingScheduler
from .templates import (
    BUILTIN_TEMPLATES,
    DiagramTemplate,
    TemplateLoader,
    TemplateRegistry,
    get_template,
    list_templates,
)
from .extractor import ExtractedContent, extract_content, extract_diagram_content, extract_goals
from .editor import DiagramEditor
from .persistence import DiagramRecord, FileDiagramRepository, SaveResult, get_data_dir
from .client import ClaudeClient, MockClient, ClientProtocol
from .prompts import AssistantContext, AssistantResult, build_assistant_prompt, generate_guidance

__all__ = [
    # errors
    "ConnectionRejection",
    "EditorError",
    "InvalidConnection",
    "InvalidNodeType",
    "InvalidPayload",
    "UnknownTarget",
    "UnknownTemplate",
    # models
    "NodeVariant",
    "Position",
    "Size",
    "DiagramNode",
    "DiagramEdge",
    "Snapshot",
    "FLOW_ROLES",
    "SHAPE_KINDS",
    # editing
    "create_node",
    "parse_type_token",
    "ConnectionRequest",
    "normalize_handle",
    "GraphStore",
    "StoreUpdate",
    "node_change_from_dict",
    "edge_change_from_dict",
    "HistoryManager",
    "HistoryState",
    "HISTORY_LIMIT",
    "DEBOUNCE_SECONDS",
    "AsyncioScheduler",
    "ManualScheduler",
    "ThreadingScheduler",
    "DiagramEditor",
    # templates
    "BUILTIN_TEMPLATES",
    "DiagramTemplate",
    "TemplateLoader",
    "TemplateRegistry",
    "get_template",
    "list_templates",
    # extraction
    "ExtractedContent",
    "extract_content",
    "extract_diagram_content",
    "extract_goals",
    # persistence
    "DiagramRecord",
    "FileDiagramRepository",
    "SaveResult",
    "get_data_dir",
    # client
    "ClaudeClient",
    "MockClient",
    "ClientProtocol",
    "AssistantContext",
    "AssistantResult",
    "build_assistant_prompt",
    "generate_guidance",
]
