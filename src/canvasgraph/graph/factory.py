"""Node factories - default data and dimensions per node kind.

Each canvas kind has a factory producing a fresh data bag with the fields
a newly created node starts with. Factories never share mutable defaults.
"""

from __future__ import annotations

import time
import uuid
from typing import Any, Callable

from canvasgraph.graph.GraphNode import NodeKind, Size

# Default rendered size per kind (width, height)
DEFAULT_DIMENSIONS: dict[NodeKind, Size] = {
    NodeKind.CONVERSATION: Size(300, 140),
    NodeKind.PROJECT: Size(400, 300),
    NodeKind.NOTE: Size(280, 140),
    NodeKind.TASK: Size(260, 140),
    NodeKind.ARTIFACT: Size(320, 200),
    NodeKind.WORKSPACE: Size(320, 220),
    NodeKind.TEXT: Size(200, 60),
    NodeKind.ACTION: Size(280, 140),
    NodeKind.ORCHESTRATOR: Size(360, 280),
}

FALLBACK_DIMENSIONS = Size(280, 120)

MIN_NODE_WIDTH = 150
MIN_NODE_HEIGHT = 80

DEFAULT_PROJECT_COLOR = "#64748b"

DEFAULT_LLM_SETTINGS: dict[str, Any] = {
    "provider": "anthropic",
    "temperature": 0.7,
    "maxTokens": 4096,
}

DEFAULT_CONTEXT_RULES: dict[str, Any] = {
    "maxTokens": 8000,
    "maxDepth": 2,
    "traversalMode": "all",
    "includeDisabledNodes": False,
}


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    """Generate a fresh opaque id."""
    return uuid.uuid4().hex


def dimensions_for(kind: NodeKind) -> Size:
    """Default dimensions for a node kind."""
    return DEFAULT_DIMENSIONS.get(kind, FALLBACK_DIMENSIONS)


def _stamps() -> dict[str, int]:
    now = now_ms()
    return {"createdAt": now, "updatedAt": now}


def _conversation() -> dict[str, Any]:
    return {"title": "New Conversation", "messages": [], "provider": "anthropic"}


def _project() -> dict[str, Any]:
    return {
        "title": "New Project",
        "description": "",
        "collapsed": False,
        "childNodeIds": [],
        "color": DEFAULT_PROJECT_COLOR,
    }


def _note() -> dict[str, Any]:
    return {"title": "New Note", "content": ""}


def _task() -> dict[str, Any]:
    return {
        "title": "New Task",
        "description": "",
        "status": "todo",
        "priority": "none",
    }


def _artifact() -> dict[str, Any]:
    return {
        "title": "New Artifact",
        "content": "",
        "contentType": "text",
        "source": {"type": "created", "method": "manual"},
        "version": 1,
        "versionHistory": [],
        "versioningMode": "update",
        "injectionFormat": "full",
        "collapsed": False,
        "previewLines": 10,
    }


def _workspace() -> dict[str, Any]:
    return {
        "title": "New Workspace",
        "description": "",
        "showOnCanvas": True,
        "showLinks": False,
        "linkColor": "#ef4444",
        "linkDirection": "to-members",
        "llmSettings": dict(DEFAULT_LLM_SETTINGS),
        "contextRules": dict(DEFAULT_CONTEXT_RULES),
        "themeDefaults": {},
        "includedNodeIds": [],
        "excludedNodeIds": [],
    }


def _text() -> dict[str, Any]:
    return {"content": ""}


def _action() -> dict[str, Any]:
    return {
        "title": "New Action",
        "description": "",
        "enabled": True,
        "trigger": {"type": "manual"},
        "conditions": [],
        "actions": [],
        "runCount": 0,
        "errorCount": 0,
    }


def _orchestrator() -> dict[str, Any]:
    return {
        "title": "New Orchestrator",
        "description": "",
        "strategy": "sequential",
        "connectedAgents": [],
        "runHistory": [],
        "maxHistoryRuns": 20,
    }


_FACTORIES: dict[NodeKind, Callable[[], dict[str, Any]]] = {
    NodeKind.CONVERSATION: _conversation,
    NodeKind.PROJECT: _project,
    NodeKind.NOTE: _note,
    NodeKind.TASK: _task,
    NodeKind.ARTIFACT: _artifact,
    NodeKind.WORKSPACE: _workspace,
    NodeKind.TEXT: _text,
    NodeKind.ACTION: _action,
    NodeKind.ORCHESTRATOR: _orchestrator,
}


def create_node_data(kind: NodeKind | str) -> dict[str, Any]:
    """Build the default data bag for a new node.

    Args:
        kind: Node kind (enum member or its string value).

    Returns:
        Fresh data dict carrying ``type`` and creation timestamps.

    Raises:
        ValueError: If the kind is unknown.
    """
    kind = NodeKind.parse(kind)
    data = _FACTORIES[kind]()
    data["type"] = kind.value
    data.update(_stamps())
    return data


def apply_property_defaults(
    data: dict[str, Any],
    kind: NodeKind,
    property_schema: dict[str, Any] | None,
) -> dict[str, Any]:
    """Fill per-kind schema defaults into a new node's data bag.

    ``property_schema["defaults"]`` maps kind values to ``{property_id: value}``.
    Keys already present on the data bag (built-in fields such as task
    ``status``) are overwritten in place; anything else lands in
    ``data["properties"]``. Empty values (None or "") are ignored.
    """
    if not property_schema:
        return data
    type_defaults = (property_schema.get("defaults") or {}).get(kind.value)
    if not type_defaults:
        return data
    for key, value in type_defaults.items():
        if value is None or value == "":
            continue
        if key in data:
            data[key] = value
        else:
            data.setdefault("properties", {})[key] = value
    return data
