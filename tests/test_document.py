"""Tests for mindmark.document — the in-memory mind map document.

Covers:
- Listener notification and unsubscribe
- Listener failures are isolated
- update_node / update_nodes field handling
- Node creation, insertion and removal
- Structural edit wrappers notify listeners
"""

import pytest

from mindmark.document import MindMapDocument
from mindmark.errors import ConversionError
from mindmark.markdown.models import NodeType
from mindmark.markdown.parser import parse


@pytest.fixture
def doc():
    result = parse(
        "# Root\n- a\n- [ ] b\n",
        id_factory=iter(["root", "a", "b"]).__next__,
    )
    return MindMapDocument(result.root_nodes)


@pytest.fixture
def events(doc):
    received = []
    doc.subscribe(lambda: received.append(len(doc)))
    return received


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------


class TestNotification:
    """Tests for listener handling."""

    def test_set_root_nodes_notifies(self, doc, events):
        doc.set_root_nodes([])
        assert events == [0]
        assert doc.root_nodes == []

    def test_unsubscribe(self, doc):
        received = []
        unsubscribe = doc.subscribe(lambda: received.append(1))
        unsubscribe()
        unsubscribe()
        doc.update_node("a", text="x")
        assert received == []

    def test_failing_listener_does_not_block_others(self, doc, events, caplog):
        def broken():
            raise RuntimeError("boom")

        doc.subscribe(broken)
        doc.update_node("a", text="x")
        assert events == [3]
        assert "boom" in caplog.text

    def test_iteration_and_length(self, doc):
        assert [n.id for n in doc] == ["root", "a", "b"]
        assert len(doc) == 3


# ---------------------------------------------------------------------------
# Field updates
# ---------------------------------------------------------------------------


class TestUpdates:
    """Tests for in-place field updates."""

    def test_update_node_keeps_identity(self, doc, events):
        before = doc.get("a")
        after = doc.update_node("a", text="renamed", note="body")
        assert after is before
        assert after.text == "renamed"
        assert after.note == "body"
        assert events == [3]

    def test_update_meta_fields(self, doc):
        doc.update_node("b", is_checked=True, line_number=7)
        meta = doc.get("b").markdown_meta
        assert meta.is_checked
        assert meta.line_number == 7

    def test_unsupported_field(self, doc):
        with pytest.raises(ValueError, match="Unsupported node fields: children"):
            doc.update_node("a", children=[])

    def test_unknown_id(self, doc):
        with pytest.raises(KeyError):
            doc.update_node("missing", text="x")

    def test_update_nodes_notifies_once(self, doc, events):
        count = doc.update_nodes([("a", {"text": "1"}), ("b", {"text": "2"})])
        assert count == 2
        assert events == [3]
        assert [doc.get("a").text, doc.get("b").text] == ["1", "2"]

    def test_update_nodes_empty_is_silent(self, doc, events):
        assert doc.update_nodes([]) == 0
        assert events == []

    def test_toggle_collapsed(self, doc):
        assert doc.toggle_collapsed("root").collapsed
        assert not doc.toggle_collapsed("root").collapsed


# ---------------------------------------------------------------------------
# Creation and removal
# ---------------------------------------------------------------------------


class TestCreation:
    """Tests for adding and removing nodes."""

    def test_add_child_copies_sibling_role(self, doc):
        node = doc.add_child_node("root", "c")
        assert doc.get("root").children[-1] is node
        assert node.markdown_meta.type == NodeType.UNORDERED_LIST
        assert node.markdown_meta.is_checkbox

    def test_add_root_to_empty_document(self):
        empty = MindMapDocument()
        node = empty.add_child_node(None, "Title")
        assert node.markdown_meta.type == NodeType.HEADING
        assert node.markdown_meta.level == 1
        assert empty.root_nodes == [node]

    def test_add_root_copies_last_root(self, doc):
        node = doc.add_child_node(None, "Second")
        assert node.markdown_meta.type == NodeType.HEADING
        assert doc.root_nodes[-1] is node

    def test_add_sibling_inserts_after(self, doc, events):
        node = doc.add_sibling_node("a", "between")
        assert [c.text for c in doc.get("root").children] == ["a", "between", "b"]
        assert node.markdown_meta.type == NodeType.UNORDERED_LIST
        assert events == [4]

    def test_remove_node(self, doc, events):
        removed = doc.remove_node("root")
        assert removed.id == "root"
        assert doc.root_nodes == []
        assert events == [0]

    def test_remove_unknown(self, doc):
        with pytest.raises(KeyError):
            doc.remove_node("missing")


# ---------------------------------------------------------------------------
# Structural edits
# ---------------------------------------------------------------------------


class TestStructuralEdits:
    """Edit wrappers delegate to mindmark.markdown.edits and notify."""

    def test_change_node_type(self, doc, events):
        # Only the last list item may become a heading
        doc.change_node_type("b", NodeType.HEADING)
        assert doc.get("b").markdown_meta.level == 2
        assert events == [3]

    def test_change_node_type_refused_without_notification(self, doc, events):
        with pytest.raises(ConversionError):
            doc.change_node_type("a", NodeType.HEADING)
        assert events == []

    def test_change_list_type(self, doc):
        doc.change_list_type("a", NodeType.ORDERED_LIST)
        assert doc.get("a").markdown_meta.type == NodeType.ORDERED_LIST

    def test_change_node_indent(self, doc):
        doc.change_node_indent("root", "increase")
        assert doc.get("root").markdown_meta.level == 2

    def test_toggle_checkbox(self, doc):
        doc.toggle_checkbox("b")
        assert doc.get("b").markdown_meta.is_checked
