"""Context rendering - per-kind text templates for context blocks.

Each node kind that contributes to AI context has a template turning its
data bag into a text block. Kinds with nothing to say (an empty note, a
conversation without messages) produce no block; action nodes never do.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from canvasgraph.graph.GraphNode import GraphNode, NodeKind

ROLE_LABELS = {
    "reference": "Reference",
    "instruction": "INSTRUCTION - Follow this guidance",
    "example": "Example/Template",
    "background": "Background Context",
    "scope": "Project Scope",
}

RELATIONSHIP_LABELS = {
    "depends-on": "depends on",
    "related-to": "related to",
    "implements": "implements",
    "references": "references",
    "blocks": "blocks/blocked by",
}

DEFAULT_SEPARATOR = "\n\n---\n\n"
TRUNCATION_MARKER = "\n[...truncated]"


@dataclass
class RenderOptions:
    """Tunable limits for rendering.

    Attributes:
        recent_messages: How many trailing conversation messages to include.
        chars_per_token: Character estimate per token for chunked artifacts.
        default_max_injection_tokens: Token budget when an artifact sets none.
        separator: Text placed between blocks.
    """

    recent_messages: int = 5
    chars_per_token: int = 4
    default_max_injection_tokens: int = 2000
    separator: str = DEFAULT_SEPARATOR


def role_label(role: str | None, default: str) -> str:
    """Display label for a context role (unknown roles fall back to `default`)."""
    return ROLE_LABELS.get(role or "", default)


def relationship_label(relationship: str) -> str:
    return RELATIONSHIP_LABELS.get(relationship, relationship)


def format_size(size: int) -> str:
    """Human-readable attachment size: whole KB above 1024 bytes, else bytes."""
    if size > 1024:
        return f"{size / 1024:.0f}KB"
    return f"{size}B"


def format_due_date(due: Any) -> str:
    """Render an epoch-millisecond due date as YYYY-MM-DD (UTC)."""
    if isinstance(due, (int, float)):
        return datetime.fromtimestamp(due / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
    return str(due)


def _metadata(data: dict[str, Any]) -> str:
    parts: list[str] = []
    tags = (data.get("properties") or {}).get("tags") or data.get("tags")
    if tags:
        parts.append(f"Tags: {', '.join(map(str, tags))}")
    key_entities = data.get("keyEntities")
    if key_entities:
        parts.append(f"Key concepts: {', '.join(map(str, key_entities))}")
    relationship = data.get("relationshipType")
    if relationship:
        parts.append(f"Relationship: {relationship_label(relationship)}")
    return f"\nMetadata: {' | '.join(parts)}" if parts else ""


def _priority_marker(data: dict[str, Any]) -> str:
    return " [HIGH PRIORITY]" if data.get("contextPriority") == "high" else ""


def _summary(data: dict[str, Any]) -> str:
    summary = data.get("summary")
    return f"\nSummary: {summary}" if summary else ""


def _header(data: dict[str, Any], default_role: str, default_label: str) -> str:
    role = role_label(data.get("contextRole"), default_role)
    label = data.get("contextLabel") or default_label
    return f"[{role}: {label}]"


def render_note(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    if not node.content:
        return None
    return (
        f"{_header(data, 'Reference', node.title)}{_priority_marker(data)}"
        f"{_metadata(data)}{_summary(data)}\n{node.content}"
    )


def render_project(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    if not data.get("description"):
        return None
    child_count = len(data.get("childNodeIds") or [])
    child_info = f"\nContains {child_count} items" if child_count else ""
    return (
        f"{_header(data, 'Project Scope', node.title)}{_priority_marker(data)}"
        f"{_metadata(data)}{_summary(data)}{child_info}\n{data['description']}"
    )


def render_task(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    due = data.get("dueDate")
    due_info = f"\nDue: {format_due_date(due)}" if due else ""
    return (
        f"[Task: {node.title}]{_metadata(data)}"
        f"\nStatus: {data.get('status', '')}\nPriority: {data.get('priority', '')}"
        f"{due_info}\n{data.get('description') or ''}"
    )


def render_conversation(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    messages = data.get("messages") or []
    recent = messages[-options.recent_messages :] if options.recent_messages > 0 else []
    if not recent:
        return None
    text = "\n".join(f"{m.get('role')}: {m.get('content')}" for m in recent)
    return (
        f"[Related Conversation: {node.title}]{_metadata(data)}"
        f"\nProvider: {data.get('provider', '')}\n{text}"
    )


def _artifact_body(data: dict[str, Any], options: RenderOptions) -> str:
    content = data.get("content") or ""
    injection = data.get("injectionFormat") or "full"
    if injection == "summary":
        return data.get("summary") or f"[{data.get('contentType')} artifact: {data.get('title')}]"
    if injection == "chunked":
        budget = data.get("maxInjectionTokens") or options.default_max_injection_tokens
        max_chars = budget * options.chars_per_token
        if len(content) > max_chars:
            return content[:max_chars] + TRUNCATION_MARKER
        return content
    if injection == "reference-only":
        return f"[Reference: {data.get('title')} ({data.get('contentType')})]"
    return content


def render_artifact(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    language = data.get("language")
    lang_info = f" ({language})" if language else ""
    return (
        f"{_header(data, 'Artifact', node.title)}{lang_info}{_priority_marker(data)}"
        f"{_metadata(data)}\n{_artifact_body(data, options)}"
    )


def render_workspace(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    member_count = len(data.get("includedNodeIds") or [])
    member_info = f"\nMembers: {member_count} nodes included" if member_count else ""

    llm = data.get("llmSettings") or {}
    llm_parts = []
    if llm.get("provider"):
        llm_parts.append(f"Provider: {llm['provider']}")
    if llm.get("model"):
        llm_parts.append(f"Model: {llm['model']}")
    if llm.get("systemPrompt"):
        llm_parts.append(f"System instructions: {llm['systemPrompt']}")
    llm_block = f"\nLLM Configuration: {' | '.join(llm_parts)}" if llm_parts else ""

    rules = data.get("contextRules") or {}
    rule_parts = []
    if rules.get("maxDepth") is not None:
        rule_parts.append(f"Max context depth: {rules['maxDepth']}")
    if rules.get("maxTokens") is not None:
        rule_parts.append(f"Max tokens: {rules['maxTokens']}")
    if rules.get("traversalMode"):
        rule_parts.append(f"Traversal: {rules['traversalMode']}")
    rules_block = f"\nContext rules: {' | '.join(rule_parts)}" if rule_parts else ""

    return (
        f"{_header(data, 'Workspace Configuration', node.title)}{_priority_marker(data)}"
        f"{_metadata(data)}{_summary(data)}{member_info}{llm_block}{rules_block}"
        f"\n{data.get('description') or ''}"
    )


def render_text(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    if not node.content:
        return None
    return (
        f"{_header(data, 'Text', 'Text')}{_priority_marker(data)}"
        f"{_metadata(data)}{_summary(data)}\n{node.content}"
    )


def render_orchestrator(node: GraphNode, options: RenderOptions) -> str | None:
    data = node.data
    return (
        f"{_header(data, 'Orchestrator', node.title)}{_priority_marker(data)}{_metadata(data)}"
        f"\nStrategy: {data.get('strategy', '')}"
        f"\nAgents: {len(data.get('connectedAgents') or [])}"
        f"\n{data.get('description') or ''}"
    )


def render_attachments(node: GraphNode) -> str | None:
    """Separate block listing a node's attached files."""
    attachments = node.data.get("attachments") or []
    if not attachments:
        return None
    lines = "\n".join(
        f"  - {a.get('filename')} ({a.get('mimeType')}, {format_size(a.get('size') or 0)})"
        for a in attachments
    )
    title = node.data.get("title") or node.kind.value or "Node"
    return f"[Attached files: {title}]\n{lines}"


_RENDERERS: dict[NodeKind, Callable[[GraphNode, RenderOptions], str | None]] = {
    NodeKind.NOTE: render_note,
    NodeKind.PROJECT: render_project,
    NodeKind.TASK: render_task,
    NodeKind.CONVERSATION: render_conversation,
    NodeKind.ARTIFACT: render_artifact,
    NodeKind.WORKSPACE: render_workspace,
    NodeKind.TEXT: render_text,
    NodeKind.ORCHESTRATOR: render_orchestrator,
}


def render_node(node: GraphNode, options: RenderOptions | None = None) -> list[str]:
    """Render a node's context blocks (its own block, then attachments)."""
    options = options or RenderOptions()
    blocks: list[str] = []
    renderer = _RENDERERS.get(node.kind)
    if renderer is not None:
        block = renderer(node, options)
        if block is not None:
            blocks.append(block)
    attachments = render_attachments(node)
    if attachments is not None:
        blocks.append(attachments)
    return blocks
