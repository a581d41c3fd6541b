"""connection validation and handle normalization.

handles come in two naming schemes: ``source-top`` / ``target-top`` and
``handle-top``. edges are always stored with the ``handle-`` form.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .errors import ConnectionRejection, InvalidConnection
from .models import DiagramEdge, Snapshot, _generate_id

HANDLE_PREFIX = "handle-"
LEGACY_HANDLE_PREFIXES = ("source-", "target-")


@dataclass(frozen=True)
class ConnectionRequest:
    """raw or normalized request to connect two node handles."""

    source: Optional[str]
    target: Optional[str]
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    label: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> ConnectionRequest:
        return cls(
            source=d.get("source"),
            target=d.get("target"),
            source_handle=d.get("source_handle", d.get("sourceHandle")),
            target_handle=d.get("target_handle", d.get("targetHandle")),
            label=d.get("label") or None,
        )

    def to_edge(self, edge_id: Optional[str] = None) -> DiagramEdge:
        return DiagramEdge(
            id=edge_id or f"edge-{_generate_id()}",
            source=self.source,
            target=self.target,
            source_handle=self.source_handle,
            target_handle=self.target_handle,
            label=self.label or None,
        )


def normalize_handle(handle: Optional[str]) -> Optional[str]:
    """rewrite ``source-{dir}`` / ``target-{dir}`` to ``handle-{dir}``."""
    if handle and handle.startswith(LEGACY_HANDLE_PREFIXES):
        direction = handle.rsplit("-", 1)[-1]
        return f"{HANDLE_PREFIX}{direction}"
    return handle


def resolve(request: ConnectionRequest, snapshot: Snapshot) -> ConnectionRequest:
    """validate ``request`` against the graph and return it normalized.

    raises InvalidConnection for a missing or unknown endpoint, a self loop,
    or a second edge between the same (source, target) pair.
    """
    normalized = replace(
        request,
        source_handle=normalize_handle(request.source_handle),
        target_handle=normalize_handle(request.target_handle),
    )
    source, target = normalized.source, normalized.target

    if not source or not target:
        raise InvalidConnection(ConnectionRejection.MISSING_ENDPOINT, source, target)
    if source == target:
        raise InvalidConnection(ConnectionRejection.SELF_LOOP, source, target)
    if not snapshot.has_node(source) or not snapshot.has_node(target):
        raise InvalidConnection(ConnectionRejection.UNKNOWN_ENDPOINT, source, target)
    if snapshot.has_edge_between(source, target):
        raise InvalidConnection(ConnectionRejection.DUPLICATE, source, target)

    return normalized
