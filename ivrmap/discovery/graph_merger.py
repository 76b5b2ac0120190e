"""
Merge a normalized call transcript into the menu tree.

The merger walks the dialogue with a cursor (current node + digit path) and
a LIFO backtrack stack mirroring the nesting of the conversation:

- a button press by our agent moves the cursor one level down, creating
  the child for the extended path and linking the current node's option;
- a far-end line that parses into options is the current node's prompt;
- a far-end line with no options is terminal: it updates the node at the
  current path, then the cursor pops back.

The input tree is never mutated; a deep copy is updated and returned.
Merging never removes options or nodes and never lowers confidence.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ivrmap.discovery.option_parser import default_label, parse_options
from ivrmap.schemas.transcript_schema import Role, Utterance
from ivrmap.schemas.tree_schema import (
    ROOT_ID,
    ROOT_PLACEHOLDER_PROMPT,
    Node,
    Option,
    node_id_for_path,
)

logger = logging.getLogger(__name__)

ROOT_CONFIDENCE = 0.95
MENU_CONFIDENCE = 0.95
TERMINAL_CONFIDENCE = 0.90

PRESSED_BUTTON_RE = re.compile(r"Pressed\s*Button:\s*([0-9*#])", re.IGNORECASE)


@dataclass
class _Cursor:
    node: Node
    path: list[str]


def pressed_digit(utterance: Utterance) -> Optional[str]:
    """Return the digit if the utterance is our agent pressing a button."""
    if utterance.role != Role.ASSISTANT:
        return None
    match = PRESSED_BUTTON_RE.search(utterance.message)
    return match.group(1) if match else None


def first_greeting(utterances: Sequence[Utterance]) -> str:
    for utterance in utterances:
        if utterance.role == Role.USER and utterance.message.strip():
            return utterance.message.strip()
    return ROOT_PLACEHOLDER_PROMPT


def new_root(prompt_text: str = ROOT_PLACEHOLDER_PROMPT) -> Node:
    return Node(
        id=ROOT_ID,
        parent_id=None,
        path=[],
        prompt_text=prompt_text,
        confidence=ROOT_CONFIDENCE,
    )


def _linked_target(node: Node, digit: str) -> Optional[str]:
    for option in node.options:
        if option.digit == digit and option.target_node_id and node.child(option.target_node_id):
            return option.target_node_id
    return None


def ensure_option(node: Node, digit: str, label: str) -> Option:
    """Add an option unless the same (digit, label) already exists.

    A new option inherits the link of a sibling with the same digit, since
    both lead to the same derived child.
    """
    for option in node.options:
        if option.digit == digit and option.label == label:
            return option
    option = Option(digit=digit, label=label, target_node_id=_linked_target(node, digit))
    node.options.append(option)
    return option


def link_option_target(node: Node, digit: str, target_id: str) -> None:
    """Point every option for ``digit`` at ``target_id``, adding one if none exists."""
    matched = False
    for option in node.options:
        if option.digit == digit:
            option.target_node_id = target_id
            matched = True
    if not matched:
        node.options.append(
            Option(digit=digit, label=default_label(digit), target_node_id=target_id)
        )


def ensure_child(parent: Node, path: list[str]) -> Node:
    """Get or create the child of ``parent`` for ``path``."""
    node_id = node_id_for_path(path)
    existing = parent.child(node_id)
    if existing is not None:
        return existing
    child = Node(
        id=node_id,
        parent_id=parent.id,
        path=list(path),
        prompt_text="",
        confidence=MENU_CONFIDENCE,
    )
    parent.children.append(child)
    logger.debug("Created node %s under %s", node_id, parent.id)
    return child


def update_node(node: Node, prompt_text: str, confidence: float) -> None:
    """Apply merge-on-conflict rules: non-empty prompt wins, confidence never drops."""
    if prompt_text:
        node.prompt_text = prompt_text
    node.confidence = max(node.confidence, confidence)


def merge_transcript(tree: Optional[Node], utterances: Sequence[Utterance]) -> Node:
    """Merge one call's utterances into ``tree`` (or a new tree) and return the result."""
    root = tree.model_copy(deep=True) if tree is not None else new_root(first_greeting(utterances))

    current = _Cursor(node=root, path=[])
    stack: list[_Cursor] = []

    for utterance in utterances:
        digit = pressed_digit(utterance)
        if digit is not None:
            next_path = current.path + [digit]
            child = ensure_child(current.node, next_path)
            link_option_target(current.node, digit, child.id)
            stack.append(current)
            current = _Cursor(node=child, path=next_path)
            continue

        if utterance.role != Role.USER:
            continue

        text = utterance.message.strip()
        options = parse_options(text)
        if options:
            current.node.prompt_text = text
            for parsed in options:
                ensure_option(current.node, parsed.digit, parsed.label)
            continue

        if current.path:
            update_node(current.node, text, TERMINAL_CONFIDENCE)
            logger.debug("Terminal utterance at %s", current.node.id)
        current = stack.pop() if stack else _Cursor(node=root, path=[])

    return root
