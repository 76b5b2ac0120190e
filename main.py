"""
Command-line entry point for IVR menu discovery.

Places real calls through the configured calling provider (BLAND_API_KEY)
and keeps one session file per target number under DATA_DIR.

Usage:
    Discover:  python main.py discover +18005551234 --min-calls 2 --max-calls 6
    Tree:      python main.py tree 1-800-555-1234
    History:   python main.py history 1-800-555-1234
    Refine:    python main.py refine 1-800-555-1234 2-1
    Offline:   python main.py console --scenario bank
"""

import argparse
import json
import logging
import sys

from console_demo import SCENARIOS, run_demo
from ivrmap.config import settings
from ivrmap.discovery.report import calculate_session_stats, format_report
from ivrmap.discovery.tree_render import render_tree_as_text
from ivrmap.errors import DiscoveryError
from ivrmap.service import build_service

logger = logging.getLogger(__name__)


def _parse_override(value: str) -> list[str]:
    digits = [d for d in value.split("-") if d]
    if not digits:
        raise argparse.ArgumentTypeError(f"Invalid override path: {value!r}")
    return digits


def _cmd_discover(args: argparse.Namespace) -> int:
    if not settings.provider.api_key:
        logger.error("BLAND_API_KEY is not set; use 'console' for an offline run")
        return 1
    service = build_service(data_dir=args.data_dir)
    run = service.start_discovery(
        args.phone,
        min_calls=args.min_calls,
        max_calls=args.max_calls,
        override_path=args.override,
    )
    sys.stdout.write(run.model_dump_json(indent=2) + "\n")
    if run.status == "failed":
        return 1
    session = service.store.load(run.session_id)
    if session is not None:
        sys.stdout.write(format_report(calculate_session_stats(session)) + "\n")
    return 0


def _cmd_tree(args: argparse.Namespace) -> int:
    service = build_service(data_dir=args.data_dir)
    view = service.get_tree(args.session)
    if args.json:
        sys.stdout.write(view.model_dump_json(indent=2) + "\n")
        return 0
    if view.root is None:
        sys.stdout.write("(no tree yet)\n")
        return 0
    sys.stdout.write(render_tree_as_text(view.root) + "\n")
    sys.stdout.write(f"\nPending paths: {json.dumps(view.pending_paths)}\n")
    sys.stdout.write(f"Visited paths: {json.dumps(view.visited_paths)}\n")
    sys.stdout.write(f"Calls: {view.call_count}  Total cost: ${view.total_cost:.2f}\n")
    return 0


def _cmd_history(args: argparse.Namespace) -> int:
    service = build_service(data_dir=args.data_dir)
    history = service.get_call_history(args.session)
    sys.stdout.write(history.model_dump_json(indent=2) + "\n")
    return 0


def _cmd_refine(args: argparse.Namespace) -> int:
    service = build_service(data_dir=args.data_dir)
    node = service.refine(args.node, args.session)
    sys.stdout.write(render_tree_as_text(node) + "\n")
    return 0


def _cmd_console(args: argparse.Namespace) -> int:
    return run_demo(args.scenario, args.min_calls, args.max_calls)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Map a phone IVR menu by calling it repeatedly."
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help=f"Session directory (default: {settings.discovery.data_dir}).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    discover = sub.add_parser("discover", help="Run discovery against a phone number.")
    discover.add_argument("phone")
    discover.add_argument("--min-calls", type=int, default=None)
    discover.add_argument("--max-calls", type=int, default=None)
    discover.add_argument(
        "--override",
        type=_parse_override,
        default=None,
        help="Digit path to explore first, e.g. 1-2.",
    )
    discover.set_defaults(func=_cmd_discover)

    tree = sub.add_parser("tree", help="Show a session's discovered tree.")
    tree.add_argument("session")
    tree.add_argument("--json", action="store_true", help="Print the raw tree view.")
    tree.set_defaults(func=_cmd_tree)

    history = sub.add_parser("history", help="Show a session's call history.")
    history.add_argument("session")
    history.set_defaults(func=_cmd_history)

    refine = sub.add_parser("refine", help="Re-explore beneath one node.")
    refine.add_argument("session")
    refine.add_argument("node", help="Node id, e.g. ROOT or 2-1.")
    refine.set_defaults(func=_cmd_refine)

    console = sub.add_parser("console", help="Offline demo against a scripted menu.")
    console.add_argument("--scenario", choices=list(SCENARIOS.keys()), default="store")
    console.add_argument("--min-calls", type=int, default=1)
    console.add_argument("--max-calls", type=int, default=None)
    console.set_defaults(func=_cmd_console)
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    try:
        code = args.func(args)
    except DiscoveryError as e:
        logger.error("[%s] %s", e.code, e.message)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
