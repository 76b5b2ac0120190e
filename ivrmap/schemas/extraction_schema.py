"""Schemas for the optional LLM extraction and planning pass."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class TerminalType(str, Enum):
    NONE = "none"
    OPERATOR = "operator"
    VOICEMAIL = "voicemail"
    DEAD_END = "dead_end"
    INFO_PROVIDED = "info_provided"


class ExtractedNode(BaseModel):
    """Flat, parent-linked node returned by the extraction model (confidence 1-100)."""

    id: str = Field(min_length=1)
    type: Literal["menu", "option", "end", "message"]
    content: str = ""
    parent: Optional[str] = None
    digit: Optional[str] = None
    label: Optional[str] = None
    confidence: int = Field(ge=1, le=100)


class ExtractedNodes(BaseModel):
    nodes: list[ExtractedNode] = Field(default_factory=list)


class CallPlan(BaseModel):
    """Short post-call plan from the auxiliary planner."""

    summary: str = ""
    next_path: list[str] = Field(default_factory=list)
    terminal_type: TerminalType = TerminalType.NONE


class Enrichment(BaseModel):
    """Advisory output of the enrichment pass; empty when it is disabled or failed."""

    extracted: list[ExtractedNode] = Field(default_factory=list)
    plan: Optional[CallPlan] = None
