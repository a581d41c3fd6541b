"""node instantiation with per-variant defaults."""

from __future__ import annotations

from typing import Optional, Union

from .errors import InvalidNodeType
from .models import (
    SHAPE_KINDS,
    CanvasData,
    CodeData,
    DatabaseData,
    DiagramNode,
    FlowData,
    ImageData,
    MindMapData,
    NodePayload,
    NodeVariant,
    Position,
    ShapeData,
    Size,
    TextData,
    _generate_id,
)


# --- configuration ---

SHAPE_SIZES: dict[str, Size] = {
    "rectangle": Size(120, 80),
    "circle": Size(100, 100),
    "diamond": Size(100, 100),
    "triangle": Size(100, 90),
    "cylinder": Size(100, 120),
    "process": Size(160, 60),
    "hexagon": Size(120, 100),
    "octagon": Size(100, 100),
    "star": Size(100, 100),
}

IMAGE_SIZE = Size(200, 150)


def parse_type_token(token: str) -> tuple[NodeVariant, Optional[str]]:
    """split ``"base"`` or ``"base:sub"`` into a variant and optional sub-type."""
    base, _, sub = (token or "").partition(":")
    variant = NodeVariant.resolve(base)
    sub = sub.strip() or None
    if sub is None:
        return variant, None
    if variant is not NodeVariant.SHAPE:
        raise InvalidNodeType(token, f"sub-type only valid for shapes, got {variant.value}")
    if sub not in SHAPE_KINDS:
        raise InvalidNodeType(token, f"unknown shape kind {sub!r}")
    return variant, sub


def default_payload(variant: NodeVariant, shape: Optional[str] = None) -> NodePayload:
    """fresh payload for a new node of ``variant``."""
    label = f"New {variant.display_name}"
    if variant is NodeVariant.CANVAS:
        return CanvasData(label=label)
    if variant is NodeVariant.FLOW:
        return FlowData(label=label)
    if variant is NodeVariant.SHAPE:
        kind = shape or "rectangle"
        return ShapeData(label=f"New {kind.capitalize()}", shape=kind)
    if variant is NodeVariant.TEXT:
        return TextData(label=label, text="Text")
    if variant is NodeVariant.IMAGE:
        return ImageData(label=label, alt="Image")
    if variant is NodeVariant.CODE:
        return CodeData(label=label, code="// Enter your code here", language="javascript")
    if variant is NodeVariant.DATABASE:
        return DatabaseData(label=label)
    if variant is NodeVariant.MINDMAP:
        return MindMapData(label=label)
    raise InvalidNodeType(variant.value)


def default_size(variant: NodeVariant, shape: Optional[str] = None) -> Optional[Size]:
    if variant is NodeVariant.SHAPE:
        return SHAPE_SIZES[shape or "rectangle"]
    if variant is NodeVariant.IMAGE:
        return IMAGE_SIZE
    return None


def create_node(token: str, position: Union[Position, dict, None] = None) -> DiagramNode:
    """build a new node for a type token such as ``"flow"`` or ``"shape:circle"``.

    raises InvalidNodeType for unknown base types or shape kinds.
    """
    variant, shape = parse_type_token(token)
    return DiagramNode(
        id=f"{variant.value}-{_generate_id()}",
        type=variant,
        position=Position.from_dict(position),
        data=default_payload(variant, shape),
        size=default_size(variant, shape),
    )
