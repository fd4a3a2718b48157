"""
canvasgraph.cli - Command-line interface.

Main entry point for the canvasgraph CLI tool.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from canvasgraph import __version__
from canvasgraph.commands import context_cmd, health, info


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="canvasgraph",
        description="Canvas graph state engine: context assembly and workspace checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  canvasgraph context board.json note-1       # Print the AI context for a node
  canvasgraph context board.json note-1 -d 3  # Follow connections three hops out
  canvasgraph info board.json                 # Node and edge counts
  canvasgraph check board.json                # Diagnose a workspace file

Configuration:
  .canvasgraph.toml is searched for from the current directory upwards.
  CANVASGRAPH_<SECTION>_<KEY> environment variables override it.

For detailed command help: canvasgraph <command> --help
        """,
    )

    # Global options
    parser.add_argument(
        "--version",
        action="version",
        version=f"canvasgraph {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file",
        metavar="PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # context command
    context_parser = subparsers.add_parser(
        "context",
        help="Print the assembled context of a node",
    )
    context_parser.add_argument(
        "file",
        type=Path,
        help="Workspace snapshot (JSON)",
    )
    context_parser.add_argument(
        "node_id",
        help="Node whose context to assemble",
    )
    context_parser.add_argument(
        "-d",
        "--depth",
        type=int,
        help="Traversal depth (overrides the workspace setting)",
        metavar="N",
    )

    # info command
    info_parser = subparsers.add_parser(
        "info",
        help="Summarize a workspace snapshot",
    )
    info_parser.add_argument(
        "file",
        type=Path,
        help="Workspace snapshot (JSON)",
    )
    info_parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Diagnose a workspace snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Checks:
  nodes.kinds          Every node has a known kind
  nodes.unique_ids     No node id appears twice
  edges.dangling       Edges connect existing nodes
  edges.duplicates     At most one edge per source/target pair
  edges.handles        Handle roles are not swapped
  edges.strength       Edges carry a strength, not a legacy weight
  projects.membership  parentId and childNodeIds agree
""",
    )
    check_parser.add_argument(
        "file",
        type=Path,
        help="Workspace snapshot (JSON)",
    )
    check_parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()

    # Enable shell tab-completion if argcomplete is installed
    # Install with: pip install canvasgraph[completion]
    try:
        import argcomplete

        argcomplete.autocomplete(parser)
    except ImportError:
        pass

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    _configure_logging(args)

    try:
        if args.command == "context":
            return context_cmd.run(args)
        elif args.command == "info":
            return info.run(args)
        elif args.command == "check":
            return health.run(args)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130
    except Exception as e:
        if args.verbose:
            raise
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
