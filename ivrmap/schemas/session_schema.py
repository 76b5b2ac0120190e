"""Session ledger models and the read views exposed to the request router."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from ivrmap.schemas.extraction_schema import TerminalType
from ivrmap.schemas.transcript_schema import Utterance
from ivrmap.schemas.tree_schema import Node


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CallRecord(BaseModel):
    """One placed call. Immutable once appended, except for the plan fields."""

    call_id: str
    status: Optional[str] = None
    answered_by: Optional[str] = None
    price: Optional[float] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    concatenated_transcript: Optional[str] = None
    transcript: list[Utterance] = Field(default_factory=list)
    planned_path: list[str] = Field(default_factory=list)
    plan_summary: Optional[str] = None
    plan_next_path: Optional[list[str]] = None
    terminal_type: Optional[TerminalType] = None


class Snapshot(BaseModel):
    """The whole tree as it stood after a call."""

    taken_at: datetime = Field(default_factory=utc_now)
    root: Node


class Session(BaseModel):
    """Durable record of one discovery target's history, tree, and cost."""

    identity: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    min_calls: Optional[int] = None
    max_calls: Optional[int] = None
    calls: list[CallRecord] = Field(default_factory=list)
    snapshots: list[Snapshot] = Field(default_factory=list)
    last_root: Optional[Node] = None
    total_cost: float = 0.0


class TreeView(BaseModel):
    """Response for ``get_tree``."""

    session_id: str
    root: Optional[Node] = None
    total_cost: float = 0.0
    call_count: int = 0
    visited_paths: list[list[str]] = Field(default_factory=list)
    pending_paths: list[list[str]] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class CallHistoryView(BaseModel):
    """Response for ``get_call_history``."""

    session_id: str
    calls: list[CallRecord] = Field(default_factory=list)
    total_cost: float = 0.0


class DiscoveryRun(BaseModel):
    """Outcome of ``start_discovery``."""

    session_id: str
    status: str  # "completed" | "stopped" | "failed"
    calls_made: int = 0
    stop_reason: Optional[str] = None
    error: Optional[dict[str, Any]] = None
