"""
Discovery loop: the Plan → Call → Analyze driver.

Runs strictly sequential iterations against one target number. Each
iteration plans a digit path, places exactly one call, polls it to a
terminal status, merges its transcript into the tree, and persists the
session. The session file is only rewritten after a fully successful
iteration, so a failed run leaves the previously saved tree intact.

Usage:
    loop = DiscoveryLoop(CallOrchestrator(BlandClient()), SessionStore())
    result = loop.run("+18005551234", min_calls=2, max_calls=10)
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence, Union

import pydantic

from ivrmap.calling.orchestrator import CallOrchestrator
from ivrmap.config import settings
from ivrmap.discovery.graph_merger import merge_transcript
from ivrmap.discovery.planner import collect_paths, is_complete, next_path
from ivrmap.discovery.state_machine import DiscoveryStateMachine, DiscoveryTrigger
from ivrmap.discovery.terminal import classify_call
from ivrmap.discovery.tree_render import render_tree_as_text
from ivrmap.errors import ValidationError
from ivrmap.logging_context import clear_call_id, get_call_logger
from ivrmap.prompts.prompt_templates import build_navigation_task, format_path
from ivrmap.schemas.extraction_schema import Enrichment, ExtractedNode
from ivrmap.schemas.session_schema import CallRecord, Session
from ivrmap.schemas.transcript_schema import Utterance
from ivrmap.schemas.tree_schema import Node
from ivrmap.storage.session_store import (
    SessionStore,
    add_snapshot,
    append_call,
    attach_plan,
    recent_planned_paths,
)
from ivrmap.utils import to_e164

logger = get_call_logger(__name__)


class StopReason(str, Enum):
    COMPLETE = "complete"
    MAX_CALLS = "max_calls"
    CANCELLED = "cancelled"


@dataclass
class DiscoveryResult:
    """Outcome of a successful (non-failing) discovery run."""

    session: Session
    root: Optional[Node]
    calls_made: int
    stop_reason: StopReason
    extracted: list[ExtractedNode] = field(default_factory=list)
    state_trace: list[str] = field(default_factory=list)


def _coerce_tree(seed_tree: Union[Node, dict, None]) -> Optional[Node]:
    if seed_tree is None or isinstance(seed_tree, Node):
        return seed_tree
    try:
        return Node.model_validate(seed_tree)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid seed tree: {e}") from e


def _coerce_path(path: Optional[Sequence[str]]) -> Optional[list[str]]:
    if path is None:
        return None
    if isinstance(path, str) or not all(isinstance(d, str) and d for d in path):
        raise ValidationError(f"Override path must be a list of digits, got {path!r}")
    return list(path)


class DiscoveryLoop:
    """Composes planner, orchestrator, merger, and ledger into one run."""

    def __init__(
        self,
        orchestrator: CallOrchestrator,
        store: SessionStore,
        extractor: Optional[Any] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self.extractor = extractor

    def _bounds(self, min_calls: Optional[int], max_calls: Optional[int]) -> tuple[int, int]:
        cfg = settings.discovery
        low = cfg.min_calls if min_calls is None else min_calls
        high = cfg.max_calls if max_calls is None else max_calls
        if isinstance(low, bool) or isinstance(high, bool) or not isinstance(low, int) or not isinstance(high, int):
            raise ValidationError("min_calls and max_calls must be integers")
        if low < 1:
            raise ValidationError(f"min_calls must be >= 1, got {low}")
        if high < low:
            raise ValidationError(f"max_calls must be >= min_calls, got {high} < {low}")
        return low, high

    def run(
        self,
        identity: str,
        *,
        min_calls: Optional[int] = None,
        max_calls: Optional[int] = None,
        seed_tree: Union[Node, dict, None] = None,
        override_path: Optional[Sequence[str]] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> DiscoveryResult:
        """Run discovery until the tree is complete, the call limit is reached, or stopped.

        Raises:
            InvalidIdentity, ValidationError: Before any side effect.
            ProviderCallFailed, PollTimeout, TranscriptUnavailable: Abort the run;
                iterations already persisted are kept.
        """
        phone = to_e164(identity)
        low, high = self._bounds(min_calls, max_calls)
        tree = _coerce_tree(seed_tree)
        override = _coerce_path(override_path)

        session = self.store.ensure(phone, low, high)
        if tree is None:
            tree = session.last_root

        sm = DiscoveryStateMachine()
        extracted: list[ExtractedNode] = []
        calls_made = 0
        logger.info("Discovery started for %s (min=%d, max=%d)", phone, low, high)

        while True:
            if stop_event is not None and stop_event.is_set():
                sm.transition(DiscoveryTrigger.STOP)
                stop_reason = StopReason.CANCELLED
                break

            try:
                session, tree, enrichment = self._iterate(sm, phone, session, tree, override)
            except Exception as e:
                sm.transition(DiscoveryTrigger.ERROR)
                logger.error("Discovery iteration %d failed: %s", calls_made + 1, e)
                raise
            finally:
                clear_call_id()

            calls_made += 1
            extracted.extend(enrichment.extracted)

            reason = self._decide(calls_made, low, high, tree)
            if reason is not None:
                sm.transition(DiscoveryTrigger.STOP)
                stop_reason = reason
                break
            sm.transition(DiscoveryTrigger.CONTINUE)

        logger.info(
            "Discovery stopped for %s after %d call(s): %s",
            phone, calls_made, stop_reason.value,
        )
        return DiscoveryResult(
            session=session,
            root=tree,
            calls_made=calls_made,
            stop_reason=stop_reason,
            extracted=extracted,
            state_trace=sm.get_state_trace(),
        )

    def _decide(
        self, calls_made: int, min_calls: int, max_calls: int, tree: Optional[Node]
    ) -> Optional[StopReason]:
        if calls_made >= min_calls and is_complete(tree):
            return StopReason.COMPLETE
        if calls_made >= max_calls:
            return StopReason.MAX_CALLS
        return None

    def _iterate(
        self,
        sm: DiscoveryStateMachine,
        phone: str,
        session: Session,
        tree: Optional[Node],
        override: Optional[list[str]],
    ) -> tuple[Session, Node, Enrichment]:
        visited, pending = collect_paths(tree)
        path = next_path(tree, visited, pending, recent_planned_paths(session), override)
        tree_text = render_tree_as_text(tree) if tree is not None else None
        instructions = build_navigation_task(path, tree_text, visited, pending)
        logger.info(
            "Planned path %s (%d visited, %d pending)",
            format_path(path), len(visited), len(pending),
        )
        sm.transition(DiscoveryTrigger.PATH_PLANNED)

        handle = self.orchestrator.place_call(phone, instructions)
        sm.transition(DiscoveryTrigger.CALL_PLACED)

        result = self.orchestrator.await_completion(handle)
        sm.transition(DiscoveryTrigger.CALL_FINISHED)

        utterances = self.orchestrator.fetch_transcript(handle, result)
        sm.transition(DiscoveryTrigger.TRANSCRIPT_READY)

        merged = merge_transcript(tree, utterances)
        sm.transition(DiscoveryTrigger.TREE_MERGED)

        enrichment = self._enrich(utterances, merged)
        record = CallRecord(
            call_id=result.call_id,
            status=result.status,
            answered_by=result.answered_by,
            price=result.price,
            started_at=result.started_at,
            ended_at=result.ended_at,
            concatenated_transcript=result.concatenated_transcript,
            transcript=utterances,
            planned_path=path,
            terminal_type=classify_call(utterances, result.answered_by),
        )
        updated = append_call(session, record)
        if enrichment.plan is not None:
            updated = attach_plan(updated, enrichment.plan)
        updated = add_snapshot(updated, merged)
        self.store.save(updated)
        sm.transition(DiscoveryTrigger.SESSION_SAVED)
        logger.info("Session saved (total cost $%.2f)", updated.total_cost)
        return updated, merged, enrichment

    def _enrich(self, utterances: list[Utterance], merged: Node) -> Enrichment:
        if self.extractor is None:
            return Enrichment()
        visited, pending = collect_paths(merged)
        try:
            return self.extractor.enrich(
                utterances, render_tree_as_text(merged), visited, pending
            )
        except Exception as e:
            logger.warning("Enrichment failed, continuing without it: %s", e)
            return Enrichment()
