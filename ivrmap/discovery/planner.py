"""
Deterministic traversal planner.

Chooses the next digit path to explore. Priority:
    1. a caller-supplied override, if it is still pending
       (or else the first pending path beneath it);
    2. the newest recently-planned path that is still pending;
    3. a depth-first scan in digit order for the first pending option.

The planner is a pure function of its inputs and never returns a path that
has already been visited. An empty result means nothing is left to explore.
"""

import logging
from typing import Iterable, Optional, Sequence

from ivrmap.schemas.tree_schema import Node, node_at_path, sorted_options

logger = logging.getLogger(__name__)

PathKey = tuple[str, ...]


def _dedupe(paths: Iterable[list[str]]) -> list[list[str]]:
    seen: set[PathKey] = set()
    out: list[list[str]] = []
    for path in paths:
        key = tuple(path)
        if key not in seen:
            seen.add(key)
            out.append(path)
    return out


def collect_paths(tree: Optional[Node]) -> tuple[list[list[str]], list[list[str]]]:
    """Walk the whole tree and split option paths into (visited, pending).

    At each node every option is classified, in digit order, before the
    walk descends into the linked children.
    """
    visited: list[list[str]] = []
    pending: list[list[str]] = []
    if tree is None:
        return visited, pending

    def walk(node: Node, prefix: list[str]) -> None:
        descend: list[tuple[Node, list[str]]] = []
        seen_children: set[str] = set()
        for option in sorted_options(node):
            path = prefix + [option.digit]
            child = node.child(option.target_node_id) if option.target_node_id else None
            if option.target_node_id is None:
                pending.append(path)
                continue
            visited.append(path)
            if child is not None and child.id not in seen_children:
                seen_children.add(child.id)
                descend.append((child, path))
        for child, path in descend:
            walk(child, path)

    walk(tree, [])
    return _dedupe(visited), _dedupe(pending)


def is_complete(tree: Optional[Node]) -> bool:
    """True when the tree exists and no option anywhere is pending."""
    if tree is None:
        return False
    _, pending = collect_paths(tree)
    return not pending


def _first_pending(node: Node, prefix: list[str], visited: set[PathKey]) -> Optional[list[str]]:
    seen_children: set[str] = set()
    for option in sorted_options(node):
        path = prefix + [option.digit]
        if option.target_node_id is None:
            if tuple(path) not in visited:
                return path
            continue
        child = node.child(option.target_node_id)
        if child is None or child.id in seen_children:
            continue
        seen_children.add(child.id)
        found = _first_pending(child, path, visited)
        if found is not None:
            return found
    return None


def next_path(
    tree: Optional[Node],
    visited: Sequence[Sequence[str]],
    pending: Sequence[Sequence[str]],
    recently_planned: Sequence[Sequence[str]] = (),
    override: Optional[Sequence[str]] = None,
) -> list[str]:
    """Return the next digit path to explore, or ``[]`` when nothing is pending."""
    if tree is None:
        return []

    visited_keys = {tuple(p) for p in visited}
    pending_keys = {tuple(p) for p in pending} - visited_keys

    if override:
        key = tuple(override)
        if key in pending_keys:
            logger.debug("Planning override path %s", list(key))
            return list(key)
        scope = node_at_path(tree, override)
        if scope is not None:
            found = _first_pending(scope, list(override), visited_keys)
            if found is not None:
                logger.debug("Planning %s beneath override %s", found, list(key))
                return found

    for planned in recently_planned:
        key = tuple(planned)
        if key and key in pending_keys:
            logger.debug("Continuing recently planned path %s", list(key))
            return list(key)

    found = _first_pending(tree, [], visited_keys)
    return found or []
