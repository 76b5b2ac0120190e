"""
In-process calling provider that plays back a scripted phone menu.

Implements the same surface as ``BlandClient`` so the orchestrator and the
discovery loop can run offline (console demo, end-to-end tests). The menu
script is a nested dict::

    {
        "greeting": "Thanks for calling.",          # optional
        "prompt": "For sales, press 1. For support, press 2.",
        "options": {
            "1": {"prompt": "Please hold for the next sales agent."},
            "2": {"prompt": "...", "options": {...}},
        },
    }

A node without ``options`` is terminal. The digits to press are read from
the ``Target path:`` line of the call task.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ivrmap.errors import ProviderCallFailed
from ivrmap.prompts.prompt_templates import parse_target_path
from ivrmap.schemas.transcript_schema import CallDetails, ProviderTranscriptEntry, Utterance

logger = logging.getLogger(__name__)

INVALID_OPTION_MESSAGE = "Sorry, that is not a valid option. Goodbye."


@dataclass
class SimulatedCall:
    call_id: str
    phone_number: str
    task: str
    path: list[str]
    entries: list[ProviderTranscriptEntry]
    polls: int = 0
    options: dict[str, Any] = field(default_factory=dict)


class SimulatedIVR:
    """Scripted stand-in for the calling provider."""

    def __init__(
        self,
        menu: dict[str, Any],
        *,
        polls_until_complete: int = 1,
        price_per_call: float = 0.09,
        answered_by: str = "human",
    ) -> None:
        self.menu = menu
        self.polls_until_complete = polls_until_complete
        self.price_per_call = price_per_call
        self.answered_by = answered_by
        self.calls: dict[str, SimulatedCall] = {}

    def place_call(self, phone_number: str, task: str, **options: Any) -> str:
        call_id = f"SIM-{len(self.calls) + 1:04d}"
        path = parse_target_path(task)
        entries = self._play(path)
        self.calls[call_id] = SimulatedCall(
            call_id=call_id,
            phone_number=phone_number,
            task=task,
            path=path,
            entries=entries,
            options=options,
        )
        logger.info("Simulated call %s following path %s", call_id, path or "ROOT")
        return call_id

    def _play(self, path: list[str]) -> list[ProviderTranscriptEntry]:
        lines: list[tuple[str, str]] = []
        if self.menu.get("greeting"):
            lines.append(("user", self.menu["greeting"]))
        lines.append(("user", self.menu.get("prompt", "")))

        node = self.menu
        for digit in path:
            lines.append(("agent-action", f"Pressed Button: {digit}"))
            child = (node.get("options") or {}).get(digit)
            if child is None:
                lines.append(("user", INVALID_OPTION_MESSAGE))
                node = {}
                break
            lines.append(("user", child.get("prompt", "")))
            node = child

        if node.get("options"):
            lines.append(("assistant", "Thank you, goodbye."))

        return [
            ProviderTranscriptEntry(id=i, created_at=None, text=text, user=user)
            for i, (user, text) in enumerate(lines)
            if text
        ]

    def get_call_details(self, call_id: str) -> CallDetails:
        call = self.calls.get(call_id)
        if call is None:
            raise ProviderCallFailed(f"HTTP 404: call {call_id} not found", status_code=404)
        call.polls += 1
        done = call.polls >= self.polls_until_complete
        return CallDetails(
            call_id=call_id,
            status="completed" if done else "in-progress",
            answered_by=self.answered_by if done else None,
            price=self.price_per_call if done else None,
            concatenated_transcript="\n".join(f"{e.user}: {e.text}" for e in call.entries),
            transcripts=call.entries if done else [],
        )

    def get_corrected_transcript(self, call_id: str) -> Optional[list[Utterance]]:
        return None
