"""preset diagrams that replace the current graph wholesale."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .errors import UnknownTemplate
from .models import Snapshot

if TYPE_CHECKING:
    from .history import HistoryManager
    from .store import GraphStore

logger = logging.getLogger(__name__)


# --- configuration ---

CELL_WIDTH = 200
CELL_HEIGHT = 120
H_GAP = 30
V_GAP = 30


@dataclass
class DiagramTemplate:
    """named preset graph in serialized ``{nodes, edges}`` form."""

    key: str
    name: str
    description: str
    nodes: list[dict] = field(default_factory=list)
    edges: list[dict] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def to_snapshot(self) -> Snapshot:
        """build a snapshot from a private deep copy of the preset."""
        payload = copy.deepcopy({"nodes": self.nodes, "edges": self.edges})
        return Snapshot.from_dict(payload)


def _cell(node_id: str, label: str, content: str, col: int, row: int,
          col_span: int = 1, row_span: int = 1) -> dict:
    """canvas node laid out on the business-canvas grid."""
    return {
        "id": node_id,
        "type": "canvas",
        "position": {
            "x": H_GAP * (col + 1) + CELL_WIDTH * col,
            "y": V_GAP * (row + 1) + CELL_HEIGHT * row,
        },
        "data": {"label": label, "content": content},
        "size": {
            "width": CELL_WIDTH * col_span + H_GAP * (col_span - 1),
            "height": CELL_HEIGHT * row_span + V_GAP * (row_span - 1),
        },
    }


def _box(node_id: str, label: str, content: str, x: int, y: int,
         width: int, height: int, color: Optional[str] = None) -> dict:
    data = {"label": label, "content": content}
    if color:
        data["color"] = color
    return {
        "id": node_id,
        "type": "canvas",
        "position": {"x": x, "y": y},
        "data": data,
        "size": {"width": width, "height": height},
    }


# built-in templates
BUILTIN_TEMPLATES: dict[str, DiagramTemplate] = {
    "businessModelCanvas": DiagramTemplate(
        key="businessModelCanvas",
        name="Business Model Canvas",
        description="Nine building blocks of how a project creates and delivers value",
        tags=["business", "canvas"],
        nodes=[
            _cell("bmc-kp", "Key Partners", "", 0, 0, row_span=2),
            _cell("bmc-ka", "Key Activities", "", 1, 0),
            _cell("bmc-vp", "Value Propositions", "", 2, 0, row_span=2),
            _cell("bmc-cr", "Customer Relationships", "", 3, 0),
            _cell("bmc-cs", "Customer Segments", "", 4, 0, row_span=2),
            _cell("bmc-kr", "Key Resources", "", 1, 1),
            _cell("bmc-ch", "Channels", "", 3, 1),
            _cell("bmc-cst", "Cost Structure", "", 0, 2, col_span=2),
            _cell("bmc-rs", "Revenue Streams", "", 2, 2, col_span=3),
        ],
    ),
    "leanCanvas": DiagramTemplate(
        key="leanCanvas",
        name="Lean Canvas",
        description="One-page problem/solution plan for early-stage projects",
        tags=["business", "canvas", "startup"],
        nodes=[
            _cell("lc-problem", "Problem", "Top 1-3 problems", 0, 0, row_span=2),
            _cell("lc-solution", "Solution", "Top 3 features", 1, 0),
            _cell("lc-uvp", "Unique Value Proposition", "Single, clear, compelling message", 2, 0, row_span=2),
            _cell("lc-channels", "Channels", "Path to customers", 3, 0),
            _cell("lc-segments", "Customer Segments", "Target customers / early adopters", 4, 0, row_span=2),
            _cell("lc-metrics", "Key Metrics", "Key activities you measure", 1, 1),
            _cell("lc-advantage", "Unfair Advantage", "Cannot be easily copied or bought", 3, 1),
            _cell("lc-cost", "Cost Structure", "List operational & setup costs", 0, 2, col_span=2),
            _cell("lc-revenue", "Revenue Streams", "List sources of revenue", 2, 2, col_span=3),
        ],
    ),
    "swot": DiagramTemplate(
        key="swot",
        name="SWOT Analysis",
        description="Strengths, weaknesses, opportunities and threats",
        tags=["analysis"],
        nodes=[
            _box("strengths", "Strengths", "What do you do well?", 50, 50, 250, 200, "#e6ffee"),
            _box("weaknesses", "Weaknesses", "What could you improve?", 350, 50, 250, 200, "#ffe6e6"),
            _box("opportunities", "Opportunities", "What opportunities are open to you?", 50, 300, 250, 200, "#e6f7ff"),
            _box("threats", "Threats", "What threats could harm you?", 350, 300, 250, 200, "#fff5e6"),
        ],
    ),
    "aiModelCanvas": DiagramTemplate(
        key="aiModelCanvas",
        name="AI Model Canvas",
        description="Plan a machine-learning project from problem to ethics",
        tags=["ai", "canvas"],
        nodes=[
            _box("problem", "Problem", "What problem does your AI solve?", 50, 50, 200, 150),
            _box("data", "Data Sources", "What data will you use?", 300, 50, 200, 150),
            _box("algorithms", "Algorithms", "What AI techniques will you use?", 550, 50, 200, 150),
            _box("metrics", "Metrics", "How will you measure success?", 50, 250, 200, 150),
            _box("implementation", "Implementation", "How will you implement the model?", 300, 250, 200, 150),
            _box("ethics", "Ethics & Risks", "What ethical considerations exist?", 550, 250, 200, 150),
        ],
    ),
}

# page-level diagram types that map onto a template
TEMPLATE_ALIASES = {
    "businessCanvas": "businessModelCanvas",
    "business-model-canvas": "businessModelCanvas",
    "lean-canvas": "leanCanvas",
}


class TemplateRegistry:
    """name -> template lookup."""

    def __init__(self, templates: Optional[dict[str, DiagramTemplate]] = None):
        self._templates: dict[str, DiagramTemplate] = dict(
            BUILTIN_TEMPLATES if templates is None else templates
        )

    def register(self, template: DiagramTemplate) -> None:
        self._templates[template.key] = template

    def resolve(self, name: str) -> str:
        return TEMPLATE_ALIASES.get(name, name)

    def get(self, name: str) -> DiagramTemplate:
        """get a template by name or alias; raises UnknownTemplate."""
        template = self._templates.get(self.resolve(name))
        if template is None:
            raise UnknownTemplate(name)
        return template

    def list_templates(self) -> list[DiagramTemplate]:
        return list(self._templates.values())


class TemplateLoader:
    """replaces the store's graph with a preset and resets history."""

    def __init__(self, store: GraphStore, history: HistoryManager,
                 registry: Optional[TemplateRegistry] = None):
        self.store = store
        self.history = history
        self.registry = registry or TemplateRegistry()

    def load(self, name: str) -> Optional[Snapshot]:
        """load template ``name``. returns the new snapshot, or None if unknown."""
        try:
            template = self.registry.get(name)
        except UnknownTemplate as e:
            logger.warning(str(e))
            return None
        snapshot = template.to_snapshot()
        self.install(snapshot)
        logger.debug(f"template {template.key} loaded, history reset")
        return snapshot

    def install(self, snapshot: Snapshot) -> None:
        """wholesale replace: new graph, single-entry history."""
        self.store.replace(snapshot)
        self.history.reset(snapshot)


def list_templates() -> list[DiagramTemplate]:
    """list all built-in templates."""
    return list(BUILTIN_TEMPLATES.values())


def get_template(name: str) -> Optional[DiagramTemplate]:
    """get a built-in template by name or alias."""
    return BUILTIN_TEMPLATES.get(TEMPLATE_ALIASES.get(name, name))
