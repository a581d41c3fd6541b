"""core data model for the planboard diagram editor.

a diagram is a set of typed, positioned nodes joined by directed edges.
every value here is frozen: edits produce new objects and the previous
snapshot stays valid as a history entry.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Optional, Union

from .errors import InvalidNodeType, InvalidPayload

logger = logging.getLogger(__name__)


class NodeVariant(Enum):
    CANVAS = "canvas"       # labelled free-text block (business canvas cells)
    FLOW = "flow"           # flowchart step with a role
    SHAPE = "shape"         # geometric shape with text
    TEXT = "text"           # plain text label
    IMAGE = "image"         # image with caption
    CODE = "code"           # code snippet
    DATABASE = "database"   # tables and fields
    MINDMAP = "mindmap"     # recursive item tree

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def resolve(cls, token: str) -> NodeVariant:
        """map a type token (canonical or legacy) to a variant."""
        if isinstance(token, cls):
            return token
        key = (token or "").strip()
        for variant in cls:
            if variant.value == key:
                return variant
        if key in _LEGACY_TOKENS:
            return _LEGACY_TOKENS[key]
        raise InvalidNodeType(token)


_DISPLAY_NAMES = {
    NodeVariant.CANVAS: "Canvas",
    NodeVariant.FLOW: "Flow",
    NodeVariant.SHAPE: "Shape",
    NodeVariant.TEXT: "Text",
    NodeVariant.IMAGE: "Image",
    NodeVariant.CODE: "Code",
    NodeVariant.DATABASE: "Database",
    NodeVariant.MINDMAP: "Mind Map",
}

# tokens written by the older react editor
_LEGACY_TOKENS = {
    "canvasNode": NodeVariant.CANVAS,
    "flowNode": NodeVariant.FLOW,
    "shapeNode": NodeVariant.SHAPE,
    "textNode": NodeVariant.TEXT,
    "imageNode": NodeVariant.IMAGE,
    "codeNode": NodeVariant.CODE,
    "databaseNode": NodeVariant.DATABASE,
    "mindMapNode": NodeVariant.MINDMAP,
}

FLOW_ROLES = ("input", "process", "decision", "output")

SHAPE_KINDS = (
    "rectangle", "circle", "diamond", "triangle", "cylinder",
    "process", "hexagon", "octagon", "star",
)


# --- geometry ---

@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: Union[dict, Position, None]) -> Position:
        if isinstance(d, cls):
            return d
        d = d or {}
        return cls(x=d.get("x", 0.0), y=d.get("y", 0.0))


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, d: Union[dict, Size]) -> Size:
        if isinstance(d, cls):
            return d
        return cls(width=d["width"], height=d["height"])


# --- payloads ---

def _entries(field_name: str, value: Any, kind: type) -> list:
    """validate a list of nested payload entries (dicts or already-built ``kind``)."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise InvalidPayload(field_name, value)
    for entry in value:
        if not isinstance(entry, (dict, kind)):
            raise InvalidPayload(field_name, entry)
    return list(value)


def _plain(value: Any) -> Any:
    """convert nested payload values to json-ready python objects."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


class NodePayload:
    """shared behaviour of the per-variant payload dataclasses.

    known keys map to dataclass fields, anything else is kept in ``extra``
    so that loading and exporting a diagram never drops fields. callables
    are refused: nodes are edited through ``update_node_data`` only.
    """

    label: str
    extra: dict

    def to_dict(self) -> dict:
        d = dict(self.extra)
        for f in fields(self):
            if f.name == "extra":
                continue
            d[f.name] = _plain(getattr(self, f.name))
        return d

    @classmethod
    def from_dict(cls, d: Optional[dict]):
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in (d or {}).items():
            if callable(value):
                logger.warning(f"dropping callable payload field {key!r}")
                continue
            if key in known:
                kwargs[key] = value
            elif key != "extra":
                extra[key] = value
        return cls(**cls._coerce(cls._check_scalars(kwargs)), extra=extra)

    @classmethod
    def _check_scalars(cls, kwargs: dict) -> dict:
        """None falls back to the field default; other wrong types raise InvalidPayload."""
        for f in fields(cls):
            if f.name not in kwargs:
                continue
            value = kwargs[f.name]
            if isinstance(f.default, str):
                if value is None:
                    kwargs[f.name] = f.default
                elif not isinstance(value, str):
                    raise InvalidPayload(f.name, value)
            elif isinstance(f.default, int) and not isinstance(f.default, bool):
                if value is None:
                    kwargs[f.name] = f.default
                elif isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise InvalidPayload(f.name, value)
            elif f.type == "Optional[str]":
                if value is not None and not isinstance(value, str):
                    raise InvalidPayload(f.name, value)
        return kwargs

    @classmethod
    def _coerce(cls, kwargs: dict) -> dict:
        return kwargs

    def merged(self, patch: dict):
        """return a new payload with ``patch`` merged over this one."""
        return type(self).from_dict({**self.to_dict(), **patch})


@dataclass(frozen=True)
class CanvasData(NodePayload):
    label: str = ""
    content: str = ""
    color: Optional[str] = None
    extra: dict = field(default_factory=dict)


@dataclass(frozen=True)
class FlowData(NodePayload):
    label: str = ""
    content: str = ""
    role: Optional[str] = None  # one of FLOW_ROLES, unset for new nodes
    color: Optional[str] = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def _coerce(cls, kwargs: dict) -> dict:
        role = kwargs.get("role")
        if role is not None and role not in FLOW_ROLES:
            logger.warning(f"ignoring unknown flow role {role!r}")
            kwargs["role"] = None
        return kwargs


@dataclass(frozen=True)
class ShapeData(NodePayload):
    label: str = ""
    text: str = ""
    shape: str = "rectangle"
    color: str = "#ffffff"
    border_color: str = "#cccccc"
    font_size: int = 12
    extra: dict = field(default_factory=dict)

    @classmethod
    def _coerce(cls, kwargs: dict) -> dict:
        shape = kwargs.get("shape")
        if shape is not None and shape not in SHAPE_KINDS:
            logger.warning(f"unknown shape kind {shape!r}, using rectangle")
            kwargs["shape"] = "rectangle"
        return kwargs


@dataclass(frozen=True)
class TextData(NodePayload):
    label: str = ""
    text: str = ""
    font_size: int = 14
    text_color: Optional[str] = None
    background_color: Optional[str] = None
    extra: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ImageData(NodePayload):
    label: str = ""
    image_url: str = ""
    alt: str = ""
    caption: str = ""
    background_color: Optional[str] = None
    extra: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CodeData(NodePayload):
    label: str = ""
    code: str = ""
    language: str = "javascript"
    extra: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DatabaseField:
    name: str
    type: str = "text"
    is_primary_key: bool = False
    is_foreign_key: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "is_primary_key": self.is_primary_key,
            "is_foreign_key": self.is_foreign_key,
        }

    @classmethod
    def from_dict(cls, d: Union[dict, DatabaseField]) -> DatabaseField:
        if isinstance(d, cls):
            return d
        return cls(
            name=d.get("name") or "",
            type=d.get("type") or "text",
            is_primary_key=bool(d.get("is_primary_key", False)),
            is_foreign_key=bool(d.get("is_foreign_key", False)),
        )


@dataclass(frozen=True)
class DatabaseTable:
    name: str
    fields: tuple[DatabaseField, ...] = ()

    def to_dict(self) -> dict:
        return {"name": self.name, "fields": [f.to_dict() for f in self.fields]}

    @classmethod
    def from_dict(cls, d: Union[dict, DatabaseTable]) -> DatabaseTable:
        if isinstance(d, cls):
            return d
        return cls(
            name=d.get("name") or "",
            fields=tuple(
                DatabaseField.from_dict(f) for f in _entries("fields", d.get("fields"), DatabaseField)
            ),
        )


@dataclass(frozen=True)
class DatabaseData(NodePayload):
    label: str = ""
    tables: tuple[DatabaseTable, ...] = ()
    color: Optional[str] = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def _coerce(cls, kwargs: dict) -> dict:
        if "tables" in kwargs:
            kwargs["tables"] = tuple(
                DatabaseTable.from_dict(t) for t in _entries("tables", kwargs["tables"], DatabaseTable)
            )
        return kwargs


@dataclass(frozen=True)
class MindMapItem:
    id: str
    text: str = ""
    children: tuple[MindMapItem, ...] = ()
    is_expanded: bool = True
    color: Optional[str] = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "text": self.text,
            "children": [c.to_dict() for c in self.children],
            "is_expanded": self.is_expanded,
        }
        if self.color:
            d["color"] = self.color
        return d

    @classmethod
    def from_dict(cls, d: Union[dict, MindMapItem]) -> MindMapItem:
        if isinstance(d, cls):
            return d
        return cls(
            id=d.get("id") or _generate_id(),
            text=d.get("text") or "",
            children=tuple(cls.from_dict(c) for c in _entries("children", d.get("children"), cls)),
            is_expanded=d.get("is_expanded", True),
            color=d.get("color") or None,
        )


@dataclass(frozen=True)
class MindMapData(NodePayload):
    label: str = ""
    items: tuple[MindMapItem, ...] = ()
    color: Optional[str] = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def _coerce(cls, kwargs: dict) -> dict:
        if "items" in kwargs:
            kwargs["items"] = tuple(
                MindMapItem.from_dict(i) for i in _entries("items", kwargs["items"], MindMapItem)
            )
        return kwargs


PAYLOAD_TYPES: dict[NodeVariant, type] = {
    NodeVariant.CANVAS: CanvasData,
    NodeVariant.FLOW: FlowData,
    NodeVariant.SHAPE: ShapeData,
    NodeVariant.TEXT: TextData,
    NodeVariant.IMAGE: ImageData,
    NodeVariant.CODE: CodeData,
    NodeVariant.DATABASE: DatabaseData,
    NodeVariant.MINDMAP: MindMapData,
}


def payload_from_dict(variant: NodeVariant, d: Optional[dict]) -> NodePayload:
    """build the payload dataclass for ``variant`` from a plain dict."""
    return PAYLOAD_TYPES[variant].from_dict(d)


# --- graph elements ---

@dataclass(frozen=True)
class DiagramNode:
    """single positioned node; ``selected`` is view state and not persisted."""

    id: str
    type: NodeVariant
    position: Position
    data: NodePayload
    size: Optional[Size] = None
    selected: bool = field(default=False, compare=False)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "type": self.type.value,
            "position": self.position.to_dict(),
            "data": self.data.to_dict(),
        }
        if self.size:
            d["size"] = self.size.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> DiagramNode:
        """deserialize from dict; raises InvalidNodeType for unknown types."""
        if not d.get("id"):
            raise ValueError("node has no id")
        variant = NodeVariant.resolve(d.get("type", ""))
        size = None
        if d.get("size"):
            size = Size.from_dict(d["size"])
        elif d.get("width") is not None and d.get("height") is not None:
            # older exports kept dimensions on the node itself
            size = Size(width=d["width"], height=d["height"])
        return cls(
            id=d["id"],
            type=variant,
            position=Position.from_dict(d.get("position")),
            data=payload_from_dict(variant, d.get("data")),
            size=size,
        )


@dataclass(frozen=True)
class DiagramEdge:
    """directed connection between two node handles."""

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    label: Optional[str] = None
    selected: bool = field(default=False, compare=False)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "source_handle": self.source_handle,
            "target_handle": self.target_handle,
        }
        if self.label:
            d["label"] = self.label
        return d

    @classmethod
    def from_dict(cls, d: dict) -> DiagramEdge:
        return cls(
            id=d.get("id") or f"edge-{_generate_id()}",
            source=d["source"],
            target=d["target"],
            source_handle=d.get("source_handle", d.get("sourceHandle")),
            target_handle=d.get("target_handle", d.get("targetHandle")),
            # "" and a missing label serialize the same way
            label=d.get("label") or None,
        )


@dataclass(frozen=True)
class Snapshot:
    """immutable point-in-time copy of the whole graph."""

    nodes: tuple[DiagramNode, ...] = ()
    edges: tuple[DiagramEdge, ...] = ()

    @classmethod
    def empty(cls) -> Snapshot:
        return cls()

    def node(self, node_id: str) -> Optional[DiagramNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def has_node(self, node_id: str) -> bool:
        return self.node(node_id) is not None

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def edge(self, edge_id: str) -> Optional[DiagramEdge]:
        for e in self.edges:
            if e.id == edge_id:
                return e
        return None

    def has_edge_between(self, source: str, target: str) -> bool:
        return any(e.source == source and e.target == target for e in self.edges)

    def to_dict(self) -> dict:
        """serialize to dict for json (view state excluded)."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> Snapshot:
        """deserialize from dict, dropping entries that break graph invariants."""
        if not isinstance(d, dict):
            if d:
                logger.warning(f"expected a graph object, got {type(d).__name__}")
            d = {}
        nodes: list[DiagramNode] = []
        seen: set[str] = set()
        for nd in d.get("nodes") or []:
            if not isinstance(nd, dict):
                logger.warning(f"skipping malformed node entry {nd!r}")
                continue
            try:
                node = DiagramNode.from_dict(nd)
            except (InvalidNodeType, InvalidPayload, AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"skipping node {nd.get('id')!r}: {e!r}")
                continue
            if node.id in seen:
                logger.warning(f"skipping duplicate node id {node.id!r}")
                continue
            seen.add(node.id)
            nodes.append(node)

        edges: list[DiagramEdge] = []
        pairs: set[tuple[str, str]] = set()
        for ed in d.get("edges") or []:
            try:
                edge = DiagramEdge.from_dict(ed)
            except (AttributeError, KeyError, TypeError) as e:
                logger.warning(f"skipping malformed edge {ed!r}: {e!r}")
                continue
            if edge.source not in seen or edge.target not in seen:
                logger.warning(f"skipping edge {edge.id!r} with missing endpoint")
                continue
            if edge.source == edge.target:
                logger.warning(f"skipping self-loop edge {edge.id!r}")
                continue
            if (edge.source, edge.target) in pairs:
                logger.warning(f"skipping duplicate edge {edge.id!r}")
                continue
            pairs.add((edge.source, edge.target))
            edges.append(edge)

        return cls(nodes=tuple(nodes), edges=tuple(edges))


def _generate_id() -> str:
    """generate a short unique id."""
    return uuid.uuid4().hex[:8]
