"""Menu tree data models and id/path helpers."""

from typing import Iterator, Optional, Sequence

from pydantic import BaseModel, Field

ROOT_ID = "ROOT"
ROOT_PLACEHOLDER_PROMPT = "Root"


class Option(BaseModel):
    """A selectable digit at a menu node, optionally linked to a child node."""

    digit: str = Field(min_length=1)
    label: str = Field(min_length=1)
    target_node_id: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.target_node_id is None


class Node(BaseModel):
    """A discovered menu state: a prompt plus its options and resolved children.

    ``path`` is the digit sequence from the root and is persisted explicitly;
    ``id`` is derived from it with :func:`node_id_for_path`.
    """

    id: str = Field(min_length=1)
    parent_id: Optional[str] = None
    path: list[str] = Field(default_factory=list)
    prompt_text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    options: list[Option] = Field(default_factory=list)
    children: list["Node"] = Field(default_factory=list)

    def child(self, node_id: str) -> Optional["Node"]:
        """Return the direct child with the given id, if present."""
        for child in self.children:
            if child.id == node_id:
                return child
        return None


Node.model_rebuild()


def node_id_for_path(path: Sequence[str]) -> str:
    """Derive the stable node id for a digit path."""
    return "-".join(path) if path else ROOT_ID


def _digit_rank(digit: str) -> tuple[int, int, str]:
    try:
        return (0, int(digit), digit)
    except ValueError:
        return (1, 0, digit)


def option_sort_key(option: Option) -> tuple[int, int, str, str]:
    """Numeric digits first in numeric order, then the rest lexicographically."""
    group, number, digit = _digit_rank(option.digit)
    return (group, number, digit, option.label)


def sorted_options(node: Node) -> list[Option]:
    return sorted(node.options, key=option_sort_key)


def iter_nodes(root: Node) -> Iterator[Node]:
    """Yield every node of the tree, parents before children."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node(root: Node, node_id: str) -> Optional[Node]:
    """Find a node anywhere in the tree by id."""
    for node in iter_nodes(root):
        if node.id == node_id:
            return node
    return None


def node_at_path(root: Node, path: Sequence[str]) -> Optional[Node]:
    """Follow linked options from the root along ``path``."""
    node = root
    for digit in path:
        target = next(
            (o.target_node_id for o in node.options if o.digit == digit and o.target_node_id),
            None,
        )
        if target is None:
            return None
        child = node.child(target)
        if child is None:
            return None
        node = child
    return node
