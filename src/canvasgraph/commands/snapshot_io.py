"""
canvasgraph.commands.snapshot_io - Reading workspace snapshot files.

Shared by the commands that operate on a saved workspace.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from canvasgraph.config import get_config
from canvasgraph.workspace import Workspace

logger = logging.getLogger(__name__)


def read_snapshot(path: Path) -> dict[str, Any]:
    """Read a workspace snapshot from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or not a JSON object.
    """
    if not path.exists():
        raise FileNotFoundError(f"Workspace file not found: {path}")
    try:
        snapshot = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid workspace JSON in {path}: {e}") from e
    if not isinstance(snapshot, dict):
        raise ValueError(f"Workspace file {path} must contain a JSON object")
    return snapshot


def open_workspace(args: argparse.Namespace) -> Workspace:
    """Build a configured workspace and load the snapshot named by ``args.file``."""
    config = get_config(getattr(args, "config", None))
    workspace = Workspace.from_config(config)
    workspace.load(read_snapshot(Path(args.file)))
    logger.info("Opened %s (%d nodes)", args.file, workspace.graph.node_count())
    return workspace
