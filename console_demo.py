"""
Offline console demo: maps a scripted phone menu without any API keys.

Runs the real discovery loop (planner, orchestrator, merger, session
ledger) against the in-process simulated provider. No calling provider,
no LLM, no network calls. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario bank
    python console_demo.py --scenario clinic --max-calls 4
"""

import argparse
import sys
import tempfile
from typing import Any, Optional

from ivrmap.calling.orchestrator import CallOrchestrator
from ivrmap.calling.simulator import SimulatedIVR
from ivrmap.discovery.loop import DiscoveryLoop
from ivrmap.discovery.report import calculate_session_stats, format_report
from ivrmap.discovery.tree_render import render_tree_as_text
from ivrmap.errors import DiscoveryError
from ivrmap.prompts.prompt_templates import format_path
from ivrmap.storage.session_store import SessionStore

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_NUMBER = "+18005550100"

# Pre-scripted menus for the --scenario flag
SCENARIOS: dict[str, dict[str, Any]] = {
    "store": {
        "greeting": "Thank you for calling Acme Supply.",
        "prompt": "For sales, press 1. For support, press 2.",
        "options": {
            "1": {
                "prompt": "Welcome to the sales team. Press 1 for quotes.",
                "options": {
                    "1": {"prompt": "Please hold while we connect you to a sales representative."},
                },
            },
            "2": {"prompt": "Our support hours are 9 to 5, Monday through Friday."},
        },
    },
    "bank": {
        "greeting": "Welcome to First Harbor Bank.",
        "prompt": (
            "For account balances, press 1. To report a lost card, press 2. "
            "For mortgages, press 3."
        ),
        "options": {
            "1": {
                "prompt": "For checking, press 1. For savings, press 2.",
                "options": {
                    "1": {"prompt": "Your checking balance is available in the mobile app."},
                    "2": {"prompt": "Savings rates are listed on our website."},
                },
            },
            "2": {"prompt": "Please hold, we are transferring you to an agent."},
            "3": {"prompt": "Please leave a message after the tone."},
        },
    },
    "clinic": {
        "prompt": (
            "If this is an emergency, hang up and dial 911. "
            "To schedule an appointment, press 1. For prescriptions, press 2. "
            "For billing, press 3."
        ),
        "options": {
            "1": {
                "prompt": (
                    "For a new appointment, press 1. "
                    "To change an existing appointment, press 2."
                ),
                "options": {
                    "1": {"prompt": "Connecting you to the front desk."},
                    "2": {"prompt": "Sorry, online changes are not recognized. Goodbye."},
                },
            },
            "2": {"prompt": "Refill requests take two business days."},
            "3": {"prompt": "Connecting you to an operator."},
        },
    },
}


class ConsoleSession:
    """Runs one simulated discovery and narrates it in the terminal."""

    def __init__(self, scenario: str, data_dir: str) -> None:
        self.scenario = scenario
        self.provider = SimulatedIVR(SCENARIOS[scenario], polls_until_complete=2)
        self.store = SessionStore(data_dir)
        orchestrator = CallOrchestrator(
            self.provider, poll_interval=0.0, min_interval=0.0, sleep=lambda _: None
        )
        self.loop = DiscoveryLoop(orchestrator, self.store)

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show_call(self, call_id: str) -> None:
        call = self.provider.calls[call_id]
        print(f"\n{BOLD}Call {call_id}{RESET} {DIM}(path {format_path(call.path)}){RESET}")
        for entry in call.entries:
            if entry.user == "user":
                print(f"{BLUE}[IVR]   {RESET}{entry.text}")
            else:
                print(f"{GREEN}[Agent] {entry.text}{RESET}")

    def run(self, min_calls: int, max_calls: Optional[int]) -> int:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  IVR MENU DISCOVERY - Scenario: {self.scenario}{RESET}")
        print(f"{BOLD}  Target: {DEMO_NUMBER}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        try:
            result = self.loop.run(
                DEMO_NUMBER,
                min_calls=min_calls,
                max_calls=max_calls if max_calls is not None else 10,
            )
        except DiscoveryError as e:
            print(f"\n{RED}Discovery failed: [{e.code}] {e.message}{RESET}")
            return 1

        for call_id in self.provider.calls:
            self.show_call(call_id)

        print(f"\n{BOLD}Discovered menu{RESET}")
        if result.root is not None:
            print(render_tree_as_text(result.root))

        print()
        print(format_report(calculate_session_stats(result.session)))
        print(f"{YELLOW}  Stop reason: {result.stop_reason.value}{RESET}")
        self.system_log(f"State trace: {' -> '.join(result.state_trace)}")
        return 0


def run_demo(scenario: str = "store", min_calls: int = 1, max_calls: Optional[int] = None) -> int:
    """Discover a scripted menu into a throwaway data directory."""
    with tempfile.TemporaryDirectory(prefix="ivrmap-demo-") as data_dir:
        return ConsoleSession(scenario, data_dir).run(min_calls, max_calls)


def main() -> None:
    parser = argparse.ArgumentParser(description="IVR discovery offline console demo")
    parser.add_argument(
        "--scenario",
        choices=list(SCENARIOS.keys()),
        default="store",
        help="Scripted phone menu to discover.",
    )
    parser.add_argument("--min-calls", type=int, default=1)
    parser.add_argument("--max-calls", type=int, default=None)
    args = parser.parse_args()
    sys.exit(run_demo(args.scenario, args.min_calls, args.max_calls))


if __name__ == "__main__":
    main()
