"""Transcript and provider call-status schemas."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Utterance(BaseModel):
    """One role-tagged line of call dialogue.

    ``user`` is the far end (the phone menu); ``assistant`` is our calling
    agent, including its button-press actions.
    """

    role: Role
    message: str


class ProviderTranscriptEntry(BaseModel):
    """A per-utterance transcript entry as returned by the calling provider."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    created_at: Optional[str] = None
    text: str = ""
    user: str = "assistant"


class CallDetails(BaseModel):
    """Call status payload from the calling provider."""

    model_config = ConfigDict(extra="allow")

    call_id: str
    status: Optional[str] = None
    answered_by: Optional[str] = None
    price: Optional[float] = None
    started_at: Optional[str] = None
    end_at: Optional[str] = None
    concatenated_transcript: Optional[str] = None
    transcripts: list[ProviderTranscriptEntry] = Field(default_factory=list)


class CallHandle(BaseModel):
    """A placed call awaiting completion."""

    call_id: str
    identity: str


class CallResult(BaseModel):
    """Terminal state of a placed call."""

    call_id: str
    status: str
    answered_by: Optional[str] = None
    price: float = 0.0
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    concatenated_transcript: Optional[str] = None
    entries: list[ProviderTranscriptEntry] = Field(default_factory=list)
