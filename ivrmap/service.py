"""
Request-router facing API for discovery sessions.

Wraps the discovery loop and the session store behind four operations:
start a discovery run, read a session's tree, refine one node, and read a
session's call history. Input errors are raised to the caller; failures of
a run itself (provider, polling, transcript, storage) are reported on the
returned ``DiscoveryRun`` with a structured error reason, and whatever the
run persisted before failing stays queryable.
"""

import threading
from typing import Optional, Sequence, Union

from ivrmap.calling.client import BlandClient
from ivrmap.calling.orchestrator import CallOrchestrator, CallProvider
from ivrmap.config import settings
from ivrmap.discovery.loop import DiscoveryLoop, StopReason
from ivrmap.discovery.planner import collect_paths, is_complete
from ivrmap.errors import (
    DiscoveryError,
    InvalidIdentity,
    SessionNotFound,
    SessionStoreError,
    ValidationError,
)
from ivrmap.extraction.llm_extractor import LLMExtractor
from ivrmap.logging_context import get_call_logger
from ivrmap.schemas.session_schema import CallHistoryView, DiscoveryRun, Session, TreeView
from ivrmap.schemas.tree_schema import Node, find_node
from ivrmap.storage.session_store import SessionStore
from ivrmap.utils import format_phone_key, to_e164

logger = get_call_logger(__name__)


class DiscoveryService:
    """Public operations over persisted discovery sessions."""

    def __init__(self, loop: DiscoveryLoop, store: SessionStore) -> None:
        self.loop = loop
        self.store = store

    def _load(self, session_id: str) -> Session:
        if not session_id or not isinstance(session_id, str):
            raise ValidationError(f"Invalid session id: {session_id!r}")
        try:
            session = self.store.load(session_id)
        except InvalidIdentity as e:
            raise ValidationError(f"Invalid session id: {session_id!r}") from e
        if session is None:
            raise SessionNotFound(f"No session found for {session_id!r}")
        return session

    def start_discovery(
        self,
        identity: str,
        min_calls: Optional[int] = None,
        max_calls: Optional[int] = None,
        seed_tree: Union[Node, dict, None] = None,
        override_path: Optional[Sequence[str]] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> DiscoveryRun:
        """Run discovery against ``identity`` and report how the run ended.

        Raises:
            InvalidIdentity: If the number cannot be normalized.
            ValidationError: If the call bounds, seed tree, or override are malformed.
        """
        phone = to_e164(identity)
        session_id = format_phone_key(phone)
        before = self._call_count(session_id)
        try:
            result = self.loop.run(
                phone,
                min_calls=min_calls,
                max_calls=max_calls,
                seed_tree=seed_tree,
                override_path=override_path,
                stop_event=stop_event,
            )
        except (InvalidIdentity, ValidationError):
            raise
        except DiscoveryError as e:
            logger.error("Discovery run for %s failed: [%s] %s", session_id, e.code, e.message)
            # Iterations saved before the failure still count
            return DiscoveryRun(
                session_id=session_id,
                status="failed",
                calls_made=max(0, self._call_count(session_id) - before),
                error=e.to_dict(),
            )

        status = "completed" if result.stop_reason == StopReason.COMPLETE else "stopped"
        return DiscoveryRun(
            session_id=session_id,
            status=status,
            calls_made=result.calls_made,
            stop_reason=result.stop_reason.value,
        )

    def _call_count(self, session_id: str) -> int:
        try:
            session = self.store.load(session_id)
        except SessionStoreError:
            return 0
        return len(session.calls) if session is not None else 0

    def get_tree(self, session_id: str) -> TreeView:
        """Return the current tree of a session with its visited and pending paths."""
        session = self._load(session_id)
        visited, pending = collect_paths(session.last_root)
        return TreeView(
            session_id=format_phone_key(session.identity),
            root=session.last_root,
            total_cost=session.total_cost,
            call_count=len(session.calls),
            visited_paths=visited,
            pending_paths=pending,
            updated_at=session.updated_at,
        )

    def refine(self, node_id: str, session_id: str) -> Node:
        """Re-explore beneath ``node_id`` with a short run and return its updated subtree.

        A node with no pending option beneath it is returned as is, without
        placing any call.

        Raises:
            SessionNotFound: If the session does not exist.
            ValidationError: If the session has no tree or no node ``node_id``.
            DiscoveryError: Any failure of the refine run itself.
        """
        session = self._load(session_id)
        if session.last_root is None:
            raise ValidationError(f"Session {session_id!r} has no tree to refine yet")
        node = find_node(session.last_root, node_id)
        if node is None:
            raise ValidationError(f"Unknown node {node_id!r} in session {session_id!r}")
        if is_complete(node):
            logger.info("Node %s has nothing pending beneath it, no calls placed", node.id)
            return node

        logger.info("Refining node %s (path %s)", node.id, node.path or "ROOT")
        result = self.loop.run(
            session.identity,
            min_calls=1,
            max_calls=settings.discovery.refine_max_calls,
            seed_tree=session.last_root,
            override_path=list(node.path),
        )
        updated = find_node(result.root, node.id) if result.root is not None else None
        return updated if updated is not None else node

    def get_call_history(self, session_id: str) -> CallHistoryView:
        """Return every call record of a session with the running total cost."""
        session = self._load(session_id)
        return CallHistoryView(
            session_id=format_phone_key(session.identity),
            calls=list(session.calls),
            total_cost=session.total_cost,
        )


def build_service(
    provider: Optional[CallProvider] = None,
    data_dir: Optional[str] = None,
    extractor: Optional[LLMExtractor] = None,
    orchestrator: Optional[CallOrchestrator] = None,
) -> DiscoveryService:
    """Wire a service with the configured provider, store, and enrichment."""
    store = SessionStore(data_dir)
    if orchestrator is None:
        orchestrator = CallOrchestrator(provider if provider is not None else BlandClient())
    loop = DiscoveryLoop(
        orchestrator,
        store,
        extractor if extractor is not None else LLMExtractor(),
    )
    return DiscoveryService(loop, store)
