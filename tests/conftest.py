"""Shared test fixtures and helpers."""

import json
from types import SimpleNamespace
from typing import Any, Optional

import pytest

from ivrmap.calling.orchestrator import CallOrchestrator
from ivrmap.calling.simulator import SimulatedIVR
from ivrmap.discovery.loop import DiscoveryLoop
from ivrmap.discovery.state_machine import DiscoveryStateMachine
from ivrmap.errors import ProviderCallFailed
from ivrmap.schemas.transcript_schema import (
    CallDetails,
    ProviderTranscriptEntry,
    Role,
    Utterance,
)
from ivrmap.schemas.tree_schema import Node, Option, node_id_for_path
from ivrmap.service import DiscoveryService
from ivrmap.storage.session_store import SessionStore

PHONE = "+18005551234"
PHONE_KEY = "1-800-555-1234"

# Root menu → sales submenu (one pending option) and a terminal support line
SALES_MENU: dict[str, Any] = {
    "prompt": "Press 1 for sales, press 2 for support.",
    "options": {
        "1": {
            "prompt": "Welcome to the sales team. Press 1 for quotes.",
            "options": {
                "1": {"prompt": "Please hold for the next available representative."},
            },
        },
        "2": {"prompt": "Our support hours are 9 to 5."},
    },
}


def make_utterance(role: str, message: str) -> Utterance:
    """Helper to create an Utterance from a short role name ('user' or 'assistant')."""
    return Utterance(role=Role(role), message=message)


def make_dialogue(lines: list[tuple[str, str]]) -> list[Utterance]:
    """Create utterances from a list of (role, message) tuples."""
    return [make_utterance(role, message) for role, message in lines]


def make_node(
    path: Optional[list[str]] = None,
    prompt_text: str = "",
    options: Optional[list[tuple[str, str, bool]]] = None,
    children: Optional[list[Node]] = None,
    confidence: float = 0.95,
) -> Node:
    """Helper to create a Node.

    ``options`` are (digit, label, linked) tuples; a linked option points at
    the id derived for ``path + [digit]``.
    """
    path = path or []
    parent_id = None if not path else node_id_for_path(path[:-1])
    built = [
        Option(
            digit=digit,
            label=label,
            target_node_id=node_id_for_path(path + [digit]) if linked else None,
        )
        for digit, label, linked in (options or [])
    ]
    return Node(
        id=node_id_for_path(path),
        parent_id=parent_id,
        path=path,
        prompt_text=prompt_text,
        confidence=confidence,
        options=built,
        children=children or [],
    )


def make_sales_tree() -> Node:
    """Root with sales (explored, one pending option) and support (pending)."""
    sales = make_node(
        ["1"], "Welcome to the sales team. Press 1 for quotes.", [("1", "quotes", False)]
    )
    return make_node(
        [],
        "Press 1 for sales, press 2 for support.",
        [("1", "sales", True), ("2", "support", False)],
        children=[sales],
    )


def make_details(
    call_id: str = "CALL-1",
    status: str = "completed",
    lines: Optional[list[tuple[str, str]]] = None,
    price: Optional[float] = 0.12,
    concatenated: Optional[str] = None,
    answered_by: Optional[str] = "human",
) -> CallDetails:
    """Helper to create provider call details with a structured transcript."""
    entries = [
        ProviderTranscriptEntry(id=i, text=text, user=user)
        for i, (user, text) in enumerate(lines or [])
    ]
    return CallDetails(
        call_id=call_id,
        status=status,
        answered_by=answered_by,
        price=price,
        concatenated_transcript=concatenated,
        transcripts=entries,
    )


class FakeProvider:
    """Calling provider returning scripted call details, one item per poll.

    Script items are ``CallDetails`` or exceptions to raise.
    """

    def __init__(
        self,
        script: Optional[list[Any]] = None,
        call_id: str = "CALL-1",
        corrected: Optional[list[Utterance]] = None,
        place_error: Optional[Exception] = None,
    ) -> None:
        self.script = list(script or [])
        self.call_id = call_id
        self.corrected = corrected
        self.place_error = place_error
        self.placed: list[tuple[str, str, dict]] = []
        self.polls = 0

    def place_call(self, phone_number: str, task: str, **options: Any) -> str:
        if self.place_error is not None:
            raise self.place_error
        self.placed.append((phone_number, task, options))
        return self.call_id

    def get_call_details(self, call_id: str) -> CallDetails:
        self.polls += 1
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item

    def get_corrected_transcript(self, call_id: str) -> Optional[list[Utterance]]:
        if isinstance(self.corrected, Exception):
            raise self.corrected
        return self.corrected


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeCompletions:
    """Stands in for ``client.chat.completions`` with queued replies."""

    def __init__(self, replies: list[Any]) -> None:
        self.replies = list(replies)
        self.calls: list[dict] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        content = reply if isinstance(reply, str) else json.dumps(reply)
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_openai_client(replies: list[Any]) -> Any:
    """Fake OpenAI client whose completions return ``replies`` in order."""
    completions = FakeCompletions(replies)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def make_orchestrator(provider: Any, clock: Optional[FakeClock] = None, **kwargs: Any) -> CallOrchestrator:
    clock = clock or FakeClock()
    kwargs.setdefault("poll_interval", 5.0)
    kwargs.setdefault("min_interval", 1.0)
    kwargs.setdefault("max_interval", 20.0)
    kwargs.setdefault("timeout", 360.0)
    return CallOrchestrator(provider, sleep=clock.sleep, clock=clock, **kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def simulator():
    return SimulatedIVR(SALES_MENU)


@pytest.fixture
def loop(simulator, store):
    return DiscoveryLoop(make_orchestrator(simulator), store)


@pytest.fixture
def service(loop, store):
    return DiscoveryService(loop, store)


@pytest.fixture
def state_machine():
    return DiscoveryStateMachine()


@pytest.fixture
def failing_provider():
    return FakeProvider(place_error=ProviderCallFailed("HTTP 500: boom", status_code=500))
