"""
Keyword classification of how a call ended.

Used to fill ``CallRecord.terminal_type`` when the auxiliary planner is
disabled or unavailable. Checks run in priority order: voicemail, operator,
dead end, informational message.
"""

import logging
import re
from typing import Optional, Sequence

from ivrmap.discovery.option_parser import parse_options
from ivrmap.schemas.extraction_schema import TerminalType
from ivrmap.schemas.transcript_schema import Role, Utterance

logger = logging.getLogger(__name__)


def _compile_patterns(phrases: list[str]) -> re.Pattern[str]:
    """Compile a list of phrases into a single word-boundary regex."""
    escaped = [re.escape(p) for p in phrases]
    return re.compile(r"\b(?:" + "|".join(escaped) + r")\b", re.IGNORECASE)


_VOICEMAIL_PHRASES = [
    "leave a message",
    "leave your message",
    "after the tone",
    "after the beep",
    "voicemail",
    "mailbox",
]
_VOICEMAIL_RE = _compile_patterns(_VOICEMAIL_PHRASES)

_OPERATOR_PHRASES = [
    "connect you",
    "connecting you",
    "transfer you",
    "transferring",
    "next available",
    "representative",
    "please hold",
    "an agent",
    "operator",
    "how can i help",
    "how may i help",
]
_OPERATOR_RE = _compile_patterns(_OPERATOR_PHRASES)

_DEAD_END_PHRASES = [
    "not a valid",
    "invalid",
    "not recognized",
    "didn't understand",
    "did not understand",
    "no longer in service",
    "has been disconnected",
]
_DEAD_END_RE = _compile_patterns(_DEAD_END_PHRASES)

_VOICEMAIL_ANSWERED_BY = {"voicemail", "machine", "answering_machine"}


def classify_terminal_text(text: str) -> TerminalType:
    """Classify a single terminal utterance."""
    if not text or not text.strip():
        return TerminalType.NONE
    if _VOICEMAIL_RE.search(text):
        return TerminalType.VOICEMAIL
    if _OPERATOR_RE.search(text):
        return TerminalType.OPERATOR
    if _DEAD_END_RE.search(text):
        return TerminalType.DEAD_END
    return TerminalType.INFO_PROVIDED


def classify_call(
    utterances: Sequence[Utterance], answered_by: Optional[str] = None
) -> TerminalType:
    """Classify a call from its last far-end utterance and the provider's answer type.

    A call whose last far-end line is itself a menu ended without a terminal.
    """
    if (answered_by or "").strip().lower() in _VOICEMAIL_ANSWERED_BY:
        return TerminalType.VOICEMAIL

    last_user = next(
        (u.message for u in reversed(utterances) if u.role == Role.USER and u.message.strip()),
        None,
    )
    if last_user is None or parse_options(last_user):
        return TerminalType.NONE
    terminal = classify_terminal_text(last_user)
    logger.debug("Classified call ending as %s", terminal.value)
    return terminal
