"""
Session ledger persisted as one JSON file per target phone number.

Sessions are append-only histories of calls and tree snapshots plus the
current tree and running cost. Mutators return a new ``Session``; only
``SessionStore.save`` touches disk, writing a temporary file in the same
directory and atomically replacing the previous version.
"""

import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import pydantic

from ivrmap.config import settings
from ivrmap.errors import SessionStoreError
from ivrmap.schemas.extraction_schema import CallPlan
from ivrmap.schemas.session_schema import CallRecord, Session, Snapshot, utc_now
from ivrmap.schemas.tree_schema import Node
from ivrmap.utils import format_phone_key

logger = logging.getLogger(__name__)


def _billable(value: Optional[float]) -> float:
    if value is None or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    return max(0.0, float(value))


def create_empty_session(
    identity: str, min_calls: Optional[int] = None, max_calls: Optional[int] = None
) -> Session:
    now = utc_now()
    return Session(
        identity=identity,
        created_at=now,
        updated_at=now,
        min_calls=min_calls,
        max_calls=max_calls,
    )


def append_call(session: Session, record: CallRecord) -> Session:
    """Append a call record and add its price to the running total."""
    previous = session.total_cost
    if not math.isfinite(previous):
        previous = sum(_billable(c.price) for c in session.calls)
    total = previous + _billable(record.price)
    return session.model_copy(update={
        "calls": [*session.calls, record],
        "updated_at": utc_now(),
        "total_cost": total if math.isfinite(total) else previous,
    })


def add_snapshot(session: Session, root: Node) -> Session:
    """Record the tree as it stands and make it the session's current tree."""
    snapshot = Snapshot(taken_at=utc_now(), root=root)
    return session.model_copy(update={
        "last_root": root,
        "snapshots": [*session.snapshots, snapshot],
        "updated_at": utc_now(),
    })


def attach_plan(session: Session, plan: CallPlan) -> Session:
    """Attach auxiliary plan fields to the most recent call record."""
    if not session.calls:
        return session
    latest = session.calls[-1].model_copy(update={
        "plan_summary": plan.summary,
        "plan_next_path": list(plan.next_path),
        "terminal_type": plan.terminal_type,
    })
    return session.model_copy(update={
        "calls": [*session.calls[:-1], latest],
        "updated_at": utc_now(),
    })


def recent_planned_paths(session: Session, window: Optional[int] = None) -> list[list[str]]:
    """Auxiliary next paths from the newest calls, newest first."""
    limit = settings.discovery.plan_history_window if window is None else window
    if limit <= 0:
        return []
    paths: list[list[str]] = []
    for record in reversed(session.calls[-limit:]):
        if record.plan_next_path:
            paths.append(list(record.plan_next_path))
    return paths


class SessionStore:
    """Reads and rewrites session files under a data directory."""

    def __init__(self, data_dir: Union[str, Path, None] = None) -> None:
        self.data_dir = Path(data_dir if data_dir is not None else settings.discovery.data_dir)

    def session_id(self, identity: str) -> str:
        return format_phone_key(identity)

    def path_for(self, identity_or_key: str) -> Path:
        return self.data_dir / f"{format_phone_key(identity_or_key)}.json"

    def load(self, identity_or_key: str) -> Optional[Session]:
        """Load a session, or ``None`` if none has been saved yet.

        Raises:
            SessionStoreError: If the file exists but cannot be read or parsed.
        """
        path = self.path_for(identity_or_key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Session.model_validate_json(f.read())
        except (OSError, pydantic.ValidationError) as e:
            raise SessionStoreError(f"Cannot read session file {path.name}: {e}") from e

    def save(self, session: Session) -> Path:
        """Atomically rewrite the whole session file."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(session.identity)
        payload = session.model_dump_json(indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise SessionStoreError(f"Cannot write session file {path.name}: {e}") from e
        logger.debug("Session saved: %s (%d calls)", path.name, len(session.calls))
        return path

    def ensure(
        self,
        identity: str,
        min_calls: Optional[int] = None,
        max_calls: Optional[int] = None,
    ) -> Session:
        """Load the session for ``identity``, creating and saving a scaffold if absent."""
        existing = self.load(identity)
        if existing is not None:
            if min_calls is None and max_calls is None:
                return existing
            return existing.model_copy(update={
                "min_calls": min_calls if min_calls is not None else existing.min_calls,
                "max_calls": max_calls if max_calls is not None else existing.max_calls,
            })
        session = create_empty_session(identity, min_calls, max_calls)
        self.save(session)
        logger.info("Created session %s", self.session_id(identity))
        return session
