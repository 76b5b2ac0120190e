"""Render the menu tree as indented text for call tasks, prompts, and diagnostics."""

import re
from dataclasses import dataclass
from typing import Optional

from ivrmap.schemas.tree_schema import Node, Option, sorted_options


@dataclass(frozen=True)
class RenderOptions:
    include_node_ids: bool = True
    include_confidence: bool = True
    max_prompt_chars: int = 200


DEFAULT_RENDER_OPTIONS = RenderOptions()


def node_action(node: Node) -> str:
    if not node.options:
        return "END"
    return "ROOT" if node.parent_id is None else "MENU"


def format_confidence(confidence: Optional[float]) -> str:
    if confidence is None:
        return ""
    clamped = max(0.0, min(1.0, confidence))
    return f"conf={clamped:.2f}"


def truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - 1)] + "…"


def format_prompt(prompt: str, max_chars: int) -> str:
    return truncate(re.sub(r"\s+", " ", prompt).strip(), max_chars)


def _header(node: Node, opts: RenderOptions) -> str:
    parts = [f"<{node_action(node)}>"]
    if opts.include_node_ids:
        parts.append(f"id={node.id}")
    if opts.include_confidence:
        parts.append(format_confidence(node.confidence))
    return " ".join(p for p in parts if p)


def _option_line(option: Option, has_child: bool, prefix: str, is_last: bool) -> str:
    branch = prefix + ("└─" if is_last else "├─")
    suffix = "" if has_child else " -> <PENDING>"
    return f"{branch} [{option.digit}] {option.label}{suffix}"


def _render(node: Node, prefix: str, opts: RenderOptions, lines: list[str]) -> None:
    lines.append(f"{prefix}{_header(node, opts)}")
    prompt = format_prompt(node.prompt_text or "", opts.max_prompt_chars)
    if prompt:
        lines.append(f'{prefix}"{prompt}"')

    options = sorted_options(node)
    rendered: set[str] = set()
    for idx, option in enumerate(options):
        is_last = idx == len(options) - 1
        child = node.child(option.target_node_id) if option.target_node_id else None
        line = _option_line(option, child is not None, prefix, is_last)
        if child is not None and child.id in rendered:
            # Options sharing a digit share one child, drawn under its first option
            lines.append(f"{line} -> {child.id}")
            continue
        lines.append(line)
        if child is not None:
            rendered.add(child.id)
            _render(child, prefix + ("  " if is_last else "│ "), opts, lines)


def render_tree_as_text(root: Node, options: Optional[RenderOptions] = None) -> str:
    """Render ``root`` and everything reachable from its options."""
    lines: list[str] = []
    _render(root, "", options or DEFAULT_RENDER_OPTIONS, lines)
    return "\n".join(lines)
