"""graph-to-text extraction for the planning assistant.

turns the current diagram into a markdown summary and a list of goals the
assistant can work from. output depends only on the graph, so the same
graph always yields the same text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from .models import (
    CanvasData,
    CodeData,
    DatabaseData,
    DiagramEdge,
    DiagramNode,
    FlowData,
    ImageData,
    MindMapData,
    MindMapItem,
    NodeVariant,
    ShapeData,
    Snapshot,
    TextData,
)

EMPTY_DIAGRAM_TEXT = "No diagram content available."
DEFAULT_RELATIONSHIP = "connects to"


@dataclass(frozen=True)
class ExtractedContent:
    summary: str
    goals: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"summary": self.summary, "goals": list(self.goals)}


# --- per-variant rendering ---

def _render_canvas(data: CanvasData) -> str:
    return f"- **{data.label}**: {data.content or '(No content)'}\n"


def _render_flow(data: FlowData) -> str:
    return f"- **{data.label}** ({data.role or 'process'}): {data.content or '(No content)'}\n"


def _render_shape(data: ShapeData) -> str:
    return f"- **{data.label or 'Shape'}** ({data.shape}): {data.text or '(No text)'}\n"


def _render_text(data: TextData) -> str:
    return f"- **{data.label}**: {data.text or '(No text)'}\n"


def _render_image(data: ImageData) -> str:
    return f"- **{data.label or 'Image'}**: {data.caption or '(No caption)'}\n"


def _render_code(data: CodeData) -> str:
    return (
        f"- **{data.label}** ({data.language}):\n"
        f"```{data.language}\n{data.code or '// No code'}\n```\n"
    )


def _render_database(data: DatabaseData) -> str:
    out = f"- **{data.label or 'Database'}**:\n"
    if not data.tables:
        return out + "  (No tables defined)\n"
    for table in data.tables:
        out += f"  - Table: {table.name}\n"
        for f in table.fields:
            markers = []
            if f.is_primary_key:
                markers.append("PK")
            if f.is_foreign_key:
                markers.append("FK")
            marker_text = f" [{', '.join(markers)}]" if markers else ""
            out += f"    - {f.name}: {f.type}{marker_text}\n"
    return out


def render_mindmap_items(items: Iterable[MindMapItem], indent: int = 2) -> str:
    """depth-first bullet list, two extra spaces per level."""
    out = ""
    for item in items:
        out += f"{' ' * indent}- {item.text}\n"
        if item.children:
            out += render_mindmap_items(item.children, indent + 2)
    return out


def _render_mindmap(data: MindMapData) -> str:
    out = f"- **{data.label}**:\n"
    if not data.items:
        return out + "  (No items defined)\n"
    return out + render_mindmap_items(data.items)


RENDERERS: dict[NodeVariant, Callable] = {
    NodeVariant.CANVAS: _render_canvas,
    NodeVariant.FLOW: _render_flow,
    NodeVariant.SHAPE: _render_shape,
    NodeVariant.TEXT: _render_text,
    NodeVariant.IMAGE: _render_image,
    NodeVariant.CODE: _render_code,
    NodeVariant.DATABASE: _render_database,
    NodeVariant.MINDMAP: _render_mindmap,
}


def render_node(node: DiagramNode) -> str:
    return RENDERERS[node.type](node.data)


# --- relationships ---

def choose_relationship_verb(source: Optional[NodeVariant], target: Optional[NodeVariant]) -> str:
    """pick a verb for an edge from its endpoint variants. first match wins."""
    if source is None or target is None:
        return DEFAULT_RELATIONSHIP
    if source is NodeVariant.FLOW and target is NodeVariant.FLOW:
        return "flows to"
    if source is NodeVariant.CODE and target is NodeVariant.CODE:
        return "references"
    if source is NodeVariant.DATABASE:
        return "links to"
    if target is NodeVariant.DATABASE:
        return "stores data in"
    if source is NodeVariant.MINDMAP:
        return "links conceptually to"
    if source is NodeVariant.SHAPE and target is NodeVariant.TEXT:
        return "is described by"
    return DEFAULT_RELATIONSHIP


def node_label(node: DiagramNode) -> str:
    """label for display, falling back to the node id."""
    return node.data.label or node.id


# --- extraction ---

def extract_diagram_content(nodes: Iterable[DiagramNode], edges: Iterable[DiagramEdge]) -> str:
    """markdown summary of the diagram, grouped by node variant."""
    nodes = list(nodes)
    edges = list(edges)
    if not nodes:
        return EMPTY_DIAGRAM_TEXT

    # group in first-seen order
    groups: dict[NodeVariant, list[DiagramNode]] = {}
    for node in nodes:
        groups.setdefault(node.type, []).append(node)

    output = "## Diagram Content\n\n"
    for variant, group in groups.items():
        output += f"### {variant.display_name} ({len(group)})\n\n"
        for node in group:
            output += render_node(node)
        output += "\n"

    by_id = {n.id: n for n in nodes}
    lines = []
    for edge in edges:
        source = by_id.get(edge.source)
        target = by_id.get(edge.target)
        if source is None or target is None:
            continue
        verb = choose_relationship_verb(source.type, target.type)
        line = (
            f"- {node_label(source)} ({source.type.display_name}) {verb} "
            f"{node_label(target)} ({target.type.display_name})"
        )
        if edge.label:
            line += f" for {edge.label}"
        lines.append(line + ".\n")

    if lines:
        output += "### Connections\n\n" + "".join(lines)

    return output


def extract_goals(nodes: Iterable[DiagramNode]) -> list[str]:
    """collect goal text from the diagram, deduplicated in first-seen order.

    canvas and text nodes count when their label mentions "goal"; flow
    nodes count when their role is output.
    """
    goals: list[str] = []
    for node in nodes:
        data = node.data
        text = None
        if isinstance(data, CanvasData) and "goal" in (data.label or "").lower():
            text = data.content
        elif isinstance(data, TextData) and "goal" in (data.label or "").lower():
            text = data.text
        elif isinstance(data, FlowData) and data.role == "output":
            text = data.content
        if text and text.strip() and text not in goals:
            goals.append(text)
    return goals


def extract_content(snapshot: Snapshot) -> ExtractedContent:
    """summary text plus goals for the whole snapshot."""
    return ExtractedContent(
        summary=extract_diagram_content(snapshot.nodes, snapshot.edges),
        goals=extract_goals(snapshot.nodes),
    )


def create_json_summary(nodes: Iterable[DiagramNode], edges: Iterable[DiagramEdge]) -> dict:
    """compact json-ready summary, an alternative to the markdown text."""
    summaries = []
    for node in nodes:
        entry = {"id": node.id, "type": node.type.value, "label": node_label(node)}
        data = node.data
        if isinstance(data, CanvasData):
            entry["content"] = data.content
        elif isinstance(data, TextData):
            entry["text"] = data.text
        elif isinstance(data, FlowData):
            entry["role"] = data.role
            entry["content"] = data.content
        elif isinstance(data, CodeData):
            entry["language"] = data.language
        elif isinstance(data, DatabaseData):
            entry["tables"] = [t.name for t in data.tables]
        summaries.append(entry)
    return {
        "nodes": summaries,
        "connections": [
            {"from": e.source, "to": e.target, "label": e.label} for e in edges
        ],
    }
