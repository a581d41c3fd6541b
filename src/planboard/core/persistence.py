"""saved diagrams, one json file per (project, diagram type).

saving is an upsert: writing the same project_id + diagram_type again
replaces the earlier file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


# --- configuration ---

DATA_DIR_NAME = ".planboard"
DIAGRAMS_SUBDIR = "diagrams"


def get_data_dir() -> Path:
    """get the default planboard storage directory."""
    data_dir = Path.home() / DATA_DIR_NAME
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def _safe_name(name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "-" for c in name) or "default"


@dataclass
class DiagramRecord:
    """a stored diagram plus the keys it is filed under."""

    project_id: str
    diagram_type: str
    name: str = ""
    nodes: list[dict] = field(default_factory=list)
    edges: list[dict] = field(default_factory=list)
    description: str = ""
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def graph(self) -> dict:
        return {"nodes": self.nodes, "edges": self.edges}

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "diagram_type": self.diagram_type,
            "name": self.name,
            "description": self.description,
            "nodes": self.nodes,
            "edges": self.edges,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> DiagramRecord:
        return cls(
            project_id=d["project_id"],
            diagram_type=d["diagram_type"],
            name=d.get("name", ""),
            nodes=d.get("nodes", []),
            edges=d.get("edges", []),
            description=d.get("description", ""),
            updated_at=d.get("updated_at", ""),
        )


@dataclass
class SaveResult:
    success: bool
    path: Optional[str] = None
    error: Optional[str] = None


@runtime_checkable
class DiagramRepository(Protocol):
    """protocol for diagram storage backends."""

    def save(self, record: DiagramRecord) -> SaveResult:
        """insert or replace the record for (project_id, diagram_type)."""
        ...

    def load(self, project_id: str, diagram_type: str) -> Optional[DiagramRecord]:
        ...

    def list_diagrams(self, project_id: Optional[str] = None) -> list[dict]:
        ...


class FileDiagramRepository:
    """json files under ``{base_dir}/diagrams/{project_id}/{diagram_type}.json``."""

    def __init__(self, base_dir: Optional[Path] = None):
        self._base_dir = Path(base_dir) if base_dir else None

    @property
    def base_dir(self) -> Path:
        # resolved on first use
        return self._base_dir or get_data_dir()

    @property
    def root(self) -> Path:
        return self.base_dir / DIAGRAMS_SUBDIR

    def path_for(self, project_id: str, diagram_type: str) -> Path:
        return self.root / _safe_name(project_id) / f"{_safe_name(diagram_type)}.json"

    def save(self, record: DiagramRecord) -> SaveResult:
        """write the record, replacing any earlier save under the same keys."""
        path = self.path_for(record.project_id, record.diagram_type)
        record.updated_at = datetime.now().isoformat()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(record.to_dict(), f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"failed to save diagram {record.project_id}/{record.diagram_type}: {e}")
            return SaveResult(success=False, error=str(e))
        logger.debug(f"saved diagram to {path}")
        return SaveResult(success=True, path=str(path))

    def load(self, project_id: str, diagram_type: str) -> Optional[DiagramRecord]:
        """load a saved diagram, or None if absent or unreadable."""
        path = self.path_for(project_id, diagram_type)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                return DiagramRecord.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError, KeyError) as e:
            logger.warning(f"failed to load diagram from {path}: {e}")
            return None

    def list_diagrams(self, project_id: Optional[str] = None) -> list[dict]:
        """list saved diagrams with metadata, most recently modified first."""
        if not self.root.exists():
            return []
        pattern = f"{_safe_name(project_id)}/*.json" if project_id else "*/*.json"
        diagrams = []
        for path in self.root.glob(pattern):
            if path.name.startswith("."):
                continue
            try:
                with open(path) as f:
                    data = json.load(f)
                diagrams.append({
                    "project_id": data["project_id"],
                    "diagram_type": data["diagram_type"],
                    "name": data.get("name", path.stem),
                    "path": str(path),
                    "node_count": len(data.get("nodes", [])),
                    "edge_count": len(data.get("edges", [])),
                    "updated_at": data.get("updated_at", ""),
                    "modified_at": datetime.fromtimestamp(path.stat().st_mtime).isoformat(),
                })
            except (json.JSONDecodeError, KeyError, OSError):
                # skip invalid files
                continue

        diagrams.sort(key=lambda d: d["modified_at"], reverse=True)
        return diagrams
