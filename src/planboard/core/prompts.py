"""assistant prompt assembly from extracted diagram content.

the prompt embeds the markdown summary, the detected content types, the
goals and whatever project context the caller has. client errors come
back on the AssistantResult rather than as exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .client import ClientProtocol
from .extractor import ExtractedContent

logger = logging.getLogger(__name__)


# keyword found in the summary -> content type shown to the assistant
CONTENT_TYPE_MARKERS = (
    ("mind map", "Mind Map"),
    ("database", "Database Schema"),
    ("canvas", "Canvas"),
    ("flow", "Flowchart"),
    ("code", "Code Snippet"),
)

HELP_OPTIONS_SINGLE = """\
1. **Review Structure:** Assess how the elements are organized.
2. **Fill Gaps:** Point out sections that are empty or thin.
3. **Connections:** Suggest links between related elements.
4. **Next Steps:** Recommend what to work on next."""

HELP_OPTIONS_MIXED = """\
1. **Review Connections:** Analyze how the different parts relate.
2. **Discuss Purpose:** Explain the role of each section in the overall project.
3. **Integration Ideas:** Suggest ways to link the different diagram elements.
4. **Guidance:** Give technical or conceptual advice based on the combined diagram."""


@dataclass
class AssistantContext:
    """project details the caller knows about; all optional."""

    topic: Optional[str] = None
    grade: Optional[str] = None
    project_domain: Optional[str] = None
    time_available: Optional[str] = None
    project_id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> AssistantContext:
        d = d or {}
        return cls(
            topic=d.get("topic"),
            grade=d.get("grade"),
            project_domain=d.get("project_domain"),
            time_available=d.get("time_available"),
            project_id=d.get("project_id"),
        )


@dataclass
class AssistantResult:
    success: bool
    text: str = ""
    error: Optional[str] = None


def detect_content_types(summary: str) -> list[str]:
    lowered = summary.lower()
    return [name for marker, name in CONTENT_TYPE_MARKERS if marker in lowered]


def format_context(content: ExtractedContent, context: AssistantContext) -> str:
    lines = [
        f"**Project:** {context.topic or 'N/A'}",
        f"**Grade Level:** {context.grade or 'N/A'}",
        f"**Domain:** {context.project_domain or 'N/A'}",
    ]
    if context.time_available:
        lines.append(f"**Time Available:** {context.time_available}")
    if content.goals:
        lines.append("**Identified Goals:**")
        lines.extend(f"- {goal}" for goal in content.goals)
    return "\n".join(lines)


def build_assistant_prompt(content: ExtractedContent, context: Optional[AssistantContext] = None) -> str:
    """render the assistant prompt for the current diagram."""
    context = context or AssistantContext()
    topic = context.topic or "your project"
    types = detect_content_types(content.summary)
    mixed = len(types) > 1

    parts = [
        f"# {'Mixed Diagram' if mixed else 'Diagram'} Analysis",
        f"Review the diagram for *{topic}* and help the student improve it.",
        f"### Diagram Content Summary:\n```\n{content.summary}\n```",
    ]
    if types:
        parts.append("### Identified Content Types:\n" + "\n".join(f"- {t}" for t in types))
    parts.append(f"### Project Context:\n{format_context(content, context)}")
    parts.append("### How can I help?\n" + (HELP_OPTIONS_MIXED if mixed else HELP_OPTIONS_SINGLE))
    parts.append("Format your response in markdown, using headings and bullet points where appropriate.")
    return "\n\n".join(parts)


async def generate_guidance(
    client: ClientProtocol,
    content: ExtractedContent,
    context: Optional[AssistantContext] = None,
) -> AssistantResult:
    """ask the client for guidance on the diagram. never raises for client errors."""
    prompt = build_assistant_prompt(content, context)
    try:
        text = await client.complete(prompt)
    except Exception as e:
        logger.error(f"assistant request failed: {e}")
        return AssistantResult(success=False, error=str(e))
    return AssistantResult(success=True, text=text)
