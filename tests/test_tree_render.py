"""Tests for the tree-to-text renderer."""

from ivrmap.discovery.tree_render import (
    RenderOptions,
    format_confidence,
    node_action,
    render_tree_as_text,
    truncate,
)
from tests.conftest import make_node, make_sales_tree


class TestHelpers:
    def test_node_action(self):
        tree = make_sales_tree()
        assert node_action(tree) == "ROOT"
        assert node_action(tree.child("1")) == "MENU"
        assert node_action(make_node(["2"], "Goodbye.")) == "END"

    def test_confidence_is_clamped(self):
        assert format_confidence(1.5) == "conf=1.00"
        assert format_confidence(None) == ""

    def test_truncate_adds_ellipsis(self):
        assert truncate("abcdef", 4) == "abc…"
        assert truncate("abc", 4) == "abc"


class TestRender:
    def test_sales_tree(self):
        text = render_tree_as_text(make_sales_tree())
        assert text.splitlines() == [
            "<ROOT> id=ROOT conf=0.95",
            '"Press 1 for sales, press 2 for support."',
            "├─ [1] sales",
            "│ <MENU> id=1 conf=0.95",
            '│ "Welcome to the sales team. Press 1 for quotes."',
            "│ └─ [1] quotes -> <PENDING>",
            "└─ [2] support -> <PENDING>",
        ]

    def test_without_ids_or_confidence(self):
        opts = RenderOptions(include_node_ids=False, include_confidence=False)
        first = render_tree_as_text(make_sales_tree(), opts).splitlines()[0]
        assert first == "<ROOT>"

    def test_prompt_whitespace_normalized_and_truncated(self):
        node = make_node([], "Hello\n\n   there   " + "x" * 50)
        text = render_tree_as_text(node, RenderOptions(max_prompt_chars=20))
        prompt_line = text.splitlines()[1]
        assert prompt_line.startswith('"Hello there xxxxxx')
        assert prompt_line.endswith('…"')
        assert len(prompt_line) == 22

    def test_shared_digit_child_rendered_once(self):
        account = make_node(["1"], "Goodbye.")
        root = make_node(
            [],
            "Press 1 for billing or payments.",
            [("1", "billing", True), ("1", "payments", True)],
            children=[account],
        )
        assert render_tree_as_text(root).splitlines() == [
            "<ROOT> id=ROOT conf=0.95",
            '"Press 1 for billing or payments."',
            "├─ [1] billing",
            "│ <END> id=1 conf=0.95",
            '│ "Goodbye."',
            "└─ [1] payments -> 1",
        ]
