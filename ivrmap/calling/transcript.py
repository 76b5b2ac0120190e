"""
Transcript normalization.

Turns the provider's per-utterance transcript (or, failing that, its single
concatenated transcript string) into an ordered list of role-tagged
utterances for the graph merger.
"""

import logging
import re
from typing import Iterable, Optional

from ivrmap.schemas.transcript_schema import ProviderTranscriptEntry, Role, Utterance

logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r"^(user|assistant|agent-action|agent)\s*:\s*(.*)$", re.IGNORECASE)
_WAITING_RE = re.compile(r"^\[waiting\]", re.IGNORECASE)

_ROLE_MAP = {
    "user": Role.USER,
    "assistant": Role.ASSISTANT,
    "agent-action": Role.ASSISTANT,
    "agent": Role.ASSISTANT,
}


def map_role(role: Optional[str]) -> Role:
    """Map a provider role tag onto our two roles; unknown tags become assistant."""
    lowered = str(role or "").strip().lower()
    mapped = _ROLE_MAP.get(lowered)
    if mapped is None:
        logger.warning("Unknown transcript role: %r", role)
        return Role.ASSISTANT
    return mapped


def _is_noise(text: str) -> bool:
    return not text or bool(_WAITING_RE.match(text))


def normalize_entries(entries: Iterable[ProviderTranscriptEntry]) -> list[Utterance]:
    """Convert structured provider transcript entries into utterances."""
    utterances: list[Utterance] = []
    for entry in entries:
        text = (entry.text or "").strip()
        if _is_noise(text):
            continue
        utterances.append(Utterance(role=map_role(entry.user), message=text))
    return utterances


def parse_concatenated_transcript(concatenated: Optional[str]) -> list[Utterance]:
    """Parse a flattened ``"user: ...\\nagent-action: ..."`` transcript.

    Lines without a recognized leading role tag, empty lines, and
    ``[waiting]`` markers are discarded.
    """
    if not concatenated:
        return []
    utterances: list[Utterance] = []
    for line in re.split(r"\n+", concatenated):
        line = line.strip()
        if not line:
            continue
        match = _LINE_RE.match(line)
        if not match:
            continue
        text = match.group(2).strip()
        if _is_noise(text):
            continue
        utterances.append(Utterance(role=map_role(match.group(1)), message=text))
    return utterances
