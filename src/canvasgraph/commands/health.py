"""
canvasgraph.commands.health - Diagnose a workspace snapshot.

Provides health checks for:
- Config: the effective configuration loads
- Nodes: known kinds, unique ids
- Edges: dangling endpoints, duplicate pairs, handle roles, legacy weights
- Projects: parent/child membership agrees in both directions

Checks run on the raw snapshot, before load-time repairs hide problems.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from canvasgraph.graph import NodeKind


@dataclass
class HealthCheck:
    """Result of a single health check."""

    name: str
    passed: bool
    message: str
    category: str  # config, nodes, edges, projects
    severity: str = "error"  # error, warning, info
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Aggregated health check results."""

    checks: list[HealthCheck] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.checks if not c.passed and c.severity == "error")

    @property
    def warnings(self) -> int:
        return sum(1 for c in self.checks if not c.passed and c.severity == "warning")

    @property
    def is_healthy(self) -> bool:
        return self.failed == 0

    def add(self, check: HealthCheck) -> None:
        self.checks.append(check)

    def iter_by_category(self, category: str) -> Iterator[HealthCheck]:
        for check in self.checks:
            if check.category == category:
                yield check

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.is_healthy,
            "summary": {
                "passed": self.passed,
                "failed": self.failed,
                "warnings": self.warnings,
            },
            "checks": [
                {
                    "name": c.name,
                    "passed": c.passed,
                    "message": c.message,
                    "category": c.category,
                    "severity": c.severity,
                    "details": c.details,
                }
                for c in self.checks
            ],
        }


# =============================================================================
# Node Checks
# =============================================================================


def _raw_nodes(snapshot: dict[str, Any]) -> list[dict[str, Any]]:
    return [n for n in snapshot.get("nodes") or [] if isinstance(n, dict)]


def _raw_edges(snapshot: dict[str, Any]) -> list[dict[str, Any]]:
    return [e for e in snapshot.get("edges") or [] if isinstance(e, dict)]


def check_node_kinds(snapshot: dict[str, Any]) -> HealthCheck:
    """Check that every node has a known kind."""
    known = {kind.value for kind in NodeKind}
    unknown = [
        {"id": n.get("id"), "type": n.get("type")}
        for n in _raw_nodes(snapshot)
        if n.get("type") not in known
    ]

    if unknown:
        return HealthCheck(
            name="nodes.kinds",
            passed=False,
            message=f"Found {len(unknown)} nodes with unknown kinds",
            category="nodes",
            details={"unknown": unknown},
        )

    return HealthCheck(
        name="nodes.kinds",
        passed=True,
        message=f"All {len(_raw_nodes(snapshot))} nodes have known kinds",
        category="nodes",
    )


def check_node_ids_unique(snapshot: dict[str, Any]) -> HealthCheck:
    """Check for duplicate node ids."""
    seen: dict[str, int] = {}
    for node in _raw_nodes(snapshot):
        node_id = str(node.get("id"))
        seen[node_id] = seen.get(node_id, 0) + 1

    duplicates = sorted(k for k, v in seen.items() if v > 1)

    if duplicates:
        return HealthCheck(
            name="nodes.unique_ids",
            passed=False,
            message=f"Found {len(duplicates)} duplicate node ids",
            category="nodes",
            details={"duplicates": duplicates},
        )

    return HealthCheck(
        name="nodes.unique_ids",
        passed=True,
        message="No duplicate node ids",
        category="nodes",
    )


def run_node_checks(snapshot: dict[str, Any]) -> list[HealthCheck]:
    """Run all node health checks."""
    return [
        check_node_kinds(snapshot),
        check_node_ids_unique(snapshot),
    ]


# =============================================================================
# Edge Checks
# =============================================================================


def check_edges_dangling(snapshot: dict[str, Any]) -> HealthCheck:
    """Check that every edge connects two existing nodes."""
    node_ids = {n.get("id") for n in _raw_nodes(snapshot)}
    dangling = [
        e.get("id")
        for e in _raw_edges(snapshot)
        if e.get("source") not in node_ids or e.get("target") not in node_ids
    ]

    if dangling:
        return HealthCheck(
            name="edges.dangling",
            passed=False,
            message=f"{len(dangling)} edges reference missing nodes (dropped on load)",
            category="edges",
            severity="warning",
            details={"edges": dangling},
        )

    return HealthCheck(
        name="edges.dangling",
        passed=True,
        message="All edges connect existing nodes",
        category="edges",
    )


def check_edges_duplicates(snapshot: dict[str, Any]) -> HealthCheck:
    """Check for more than one edge per (source, target) pair."""
    seen: set[tuple[Any, Any]] = set()
    duplicates = []
    for edge in _raw_edges(snapshot):
        pair = (edge.get("source"), edge.get("target"))
        if pair in seen:
            duplicates.append(edge.get("id"))
        seen.add(pair)

    if duplicates:
        return HealthCheck(
            name="edges.duplicates",
            passed=False,
            message=f"{len(duplicates)} duplicate connections (later ones dropped on load)",
            category="edges",
            severity="warning",
            details={"edges": duplicates},
        )

    return HealthCheck(
        name="edges.duplicates",
        passed=True,
        message="No duplicate connections",
        category="edges",
    )


def check_edges_handles(snapshot: dict[str, Any]) -> HealthCheck:
    """Check that source handles are source-role and target handles target-role."""
    swapped = [
        e.get("id")
        for e in _raw_edges(snapshot)
        if "-target" in (e.get("sourceHandle") or "") or "-source" in (e.get("targetHandle") or "")
    ]

    if swapped:
        return HealthCheck(
            name="edges.handles",
            passed=False,
            message=f"{len(swapped)} edges have swapped handle roles (normalized on load)",
            category="edges",
            severity="warning",
            details={"edges": swapped},
        )

    return HealthCheck(
        name="edges.handles",
        passed=True,
        message="Edge handles are well-formed",
        category="edges",
    )


def check_edges_legacy_weight(snapshot: dict[str, Any]) -> HealthCheck:
    """Report edges still carrying a numeric weight instead of a strength."""
    legacy = [
        e.get("id")
        for e in _raw_edges(snapshot)
        if not (e.get("data") or {}).get("strength")
    ]

    if legacy:
        return HealthCheck(
            name="edges.strength",
            passed=False,
            message=f"{len(legacy)} edges have no strength (migrated on load)",
            category="edges",
            severity="info",
            details={"edges": legacy},
        )

    return HealthCheck(
        name="edges.strength",
        passed=True,
        message="All edges carry a strength",
        category="edges",
    )


def run_edge_checks(snapshot: dict[str, Any]) -> list[HealthCheck]:
    """Run all edge health checks."""
    return [
        check_edges_dangling(snapshot),
        check_edges_duplicates(snapshot),
        check_edges_handles(snapshot),
        check_edges_legacy_weight(snapshot),
    ]


# =============================================================================
# Project Checks
# =============================================================================


def check_project_membership(snapshot: dict[str, Any]) -> HealthCheck:
    """Check that ``parentId`` and ``childNodeIds`` agree."""
    nodes = {n.get("id"): n for n in _raw_nodes(snapshot)}
    problems: list[str] = []

    for node_id, node in nodes.items():
        parent_id = (node.get("data") or {}).get("parentId")
        if not parent_id:
            continue
        parent = nodes.get(parent_id)
        if parent is None or parent.get("type") != NodeKind.PROJECT.value:
            problems.append(f"{node_id}: parent {parent_id} is not a project")
        elif node_id not in ((parent.get("data") or {}).get("childNodeIds") or []):
            problems.append(f"{node_id}: not listed by {parent_id}")

    for project_id, project in nodes.items():
        if project.get("type") != NodeKind.PROJECT.value:
            continue
        for child_id in (project.get("data") or {}).get("childNodeIds") or []:
            child = nodes.get(child_id)
            if child is None:
                problems.append(f"{project_id}: child {child_id} does not exist")
            elif (child.get("data") or {}).get("parentId") != project_id:
                problems.append(f"{project_id}: child {child_id} has another parent")

    if problems:
        return HealthCheck(
            name="projects.membership",
            passed=False,
            message=f"{len(problems)} project membership inconsistencies",
            category="projects",
            severity="warning",
            details={"problems": problems},
        )

    return HealthCheck(
        name="projects.membership",
        passed=True,
        message="Project membership is consistent",
        category="projects",
    )


def run_project_checks(snapshot: dict[str, Any]) -> list[HealthCheck]:
    """Run all project health checks."""
    return [check_project_membership(snapshot)]


# =============================================================================
# Command Entry Point
# =============================================================================


def run(args: argparse.Namespace) -> int:
    """Run the check command."""
    from canvasgraph.commands.snapshot_io import read_snapshot
    from canvasgraph.config import get_config

    report = HealthReport()

    try:
        get_config(getattr(args, "config", None))
        report.add(
            HealthCheck(
                name="config.load",
                passed=True,
                message="Configuration loaded",
                category="config",
            )
        )
    except Exception as e:
        report.add(
            HealthCheck(
                name="config.load",
                passed=False,
                message=f"Failed to load config: {e}",
                category="config",
            )
        )

    try:
        snapshot = read_snapshot(Path(args.file))
    except (OSError, ValueError) as e:
        report.add(
            HealthCheck(
                name="snapshot.read",
                passed=False,
                message=str(e),
                category="config",
            )
        )
        return _output_report(report, args)

    for check in run_node_checks(snapshot):
        report.add(check)
    for check in run_edge_checks(snapshot):
        report.add(check)
    for check in run_project_checks(snapshot):
        report.add(check)

    return _output_report(report, args)


def _output_report(report: HealthReport, args: argparse.Namespace) -> int:
    """Output the health report in the requested format."""
    if getattr(args, "json", False):
        print(json.dumps(report.to_dict(), indent=2))
    else:
        _print_text_report(report, verbose=getattr(args, "verbose", False))

    return 0 if report.is_healthy else 1


def _print_text_report(report: HealthReport, verbose: bool = False) -> None:
    """Print human-readable health report."""
    categories = ["config", "nodes", "edges", "projects"]

    for category in categories:
        checks = list(report.iter_by_category(category))
        if not checks:
            continue

        passed = sum(1 for c in checks if c.passed)
        total = len(checks)
        status = "✓" if passed == total else "✗"
        print(f"\n{status} {category.upper()} ({passed}/{total} checks passed)")
        print("-" * 40)

        for check in checks:
            if check.passed:
                icon = "✓"
            elif check.severity in ("warning", "info"):
                icon = "⚠"
            else:
                icon = "✗"

            print(f"  {icon} {check.name}: {check.message}")

            if verbose and check.details:
                for key, value in check.details.items():
                    if isinstance(value, list) and len(value) > 3:
                        print(f"      {key}: {value[:3]} ... ({len(value)} total)")
                    else:
                        print(f"      {key}: {value}")

    print()
    print("=" * 40)
    if report.is_healthy:
        print(f"✓ HEALTHY: {report.passed} checks passed")
    else:
        print(f"✗ UNHEALTHY: {report.failed} errors, {report.warnings} warnings")
    print("=" * 40)
