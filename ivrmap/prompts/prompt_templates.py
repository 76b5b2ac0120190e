"""Dynamic prompt construction for call tasks and the enrichment model."""

import json
import re
from typing import Optional, Sequence

from ivrmap.prompts.system_prompts import NAVIGATOR_RULES
from ivrmap.schemas.transcript_schema import Utterance
from ivrmap.schemas.tree_schema import ROOT_ID, node_id_for_path

TARGET_PATH_LABEL = "Target path:"
_TARGET_PATH_RE = re.compile(r"^Target path:\s*(\S+)", re.MULTILINE)


def format_path(path: Sequence[str]) -> str:
    return node_id_for_path(path)


def parse_target_path(task: str) -> list[str]:
    """Recover the target digit path from a call task built by this module."""
    match = _TARGET_PATH_RE.search(task or "")
    if not match or match.group(1) == ROOT_ID:
        return []
    return match.group(1).split("-")


def _format_path_set(paths: Sequence[Sequence[str]]) -> str:
    if not paths:
        return "  (none)"
    return "\n".join(f"  {format_path(p)}" for p in paths)


def build_navigation_task(
    path: Sequence[str],
    tree_text: Optional[str],
    visited: Sequence[Sequence[str]],
    pending: Sequence[Sequence[str]],
) -> str:
    """Build the task given to the provider's voice agent for one call."""
    lines = [NAVIGATOR_RULES.strip(), "", f"{TARGET_PATH_LABEL} {format_path(path)}"]
    if path:
        steps = ", then ".join(f"press {digit}" for digit in path)
        lines.append(f"Steps: {steps}. Then listen to the next prompt in full and hang up.")
    else:
        lines.append("Steps: press nothing. Listen to the main menu in full and hang up.")

    lines.append("")
    lines.append("Menu discovered so far:")
    lines.append(tree_text if tree_text else "  (nothing yet)")
    lines.append("")
    lines.append("Visited paths:")
    lines.append(_format_path_set(visited))
    lines.append("Pending paths:")
    lines.append(_format_path_set(pending))
    return "\n".join(lines)


def _transcript_json(utterances: Sequence[Utterance]) -> str:
    return json.dumps([u.model_dump(mode="json") for u in utterances], indent=2)


def build_extraction_prompt(utterances: Sequence[Utterance], tree_text: Optional[str]) -> str:
    parts = [
        "Transcript (array of role/message objects):",
        _transcript_json(utterances),
    ]
    if tree_text:
        parts += ["", "Menu tree discovered so far:", tree_text]
    parts += [
        "",
        "Output JSON shape:",
        '{ "nodes": [ {"id":"string","type":"menu|option|end|message","content":"string",'
        '"parent":"string|null","digit":"string","label":"string","confidence":1-100} ] }',
    ]
    return "\n".join(parts)


def build_plan_prompt(
    utterances: Sequence[Utterance],
    tree_text: Optional[str],
    visited: Sequence[Sequence[str]],
    pending: Sequence[Sequence[str]],
) -> str:
    parts = [
        "Transcript of the latest call:",
        _transcript_json(utterances),
        "",
        "Menu tree after this call:",
        tree_text or "(empty)",
        "",
        "Visited paths:",
        _format_path_set(visited),
        "Pending paths:",
        _format_path_set(pending),
        "",
        "Output JSON shape:",
        '{ "summary": "string", "next_path": ["digit", ...], '
        '"terminal_type": "none|operator|voicemail|dead_end|info_provided" }',
    ]
    return "\n".join(parts)
