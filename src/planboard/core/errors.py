"""editor error taxonomy.

leaf components raise these; the store and editor catch them at the
operation boundary, log a warning and leave the graph untouched.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ConnectionRejection(Enum):
    MISSING_ENDPOINT = "missing_endpoint"
    UNKNOWN_ENDPOINT = "unknown_endpoint"
    SELF_LOOP = "self_loop"
    DUPLICATE = "duplicate"


class EditorError(Exception):
    """base class for rejected editor operations."""


class InvalidNodeType(EditorError):
    """requested node type (or shape kind) is not one of the known variants."""

    def __init__(self, token: str, detail: Optional[str] = None):
        self.token = token
        message = f"unknown node type: {token!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class InvalidConnection(EditorError):
    """connection request was malformed, a self loop, or a duplicate."""

    def __init__(self, reason: ConnectionRejection, source: Optional[str], target: Optional[str]):
        self.reason = reason
        self.source = source
        self.target = target
        super().__init__(f"connection rejected ({reason.value}): {source!r} -> {target!r}")


class UnknownTarget(EditorError):
    """operation addressed a node or edge id that does not exist."""

    def __init__(self, target_id: str, kind: str = "node"):
        self.target_id = target_id
        self.kind = kind
        super().__init__(f"{kind} not found: {target_id!r}")


class UnknownTemplate(EditorError):
    """no template is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"template not found: {name!r}")


class InvalidPayload(EditorError):
    """node data has a value of the wrong shape for its variant."""

    def __init__(self, field_name: str, value: object):
        self.field_name = field_name
        self.value = value
        super().__init__(f"invalid value for {field_name!r}: {value!r}")
