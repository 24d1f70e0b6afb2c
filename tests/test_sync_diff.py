"""Tests for mindmark.sync.diff — structural gate and field changes.

Covers:
- flatten() pre-order projection
- structure_matches(): content edits pass, shape changes fail
- field_changes(): text, note and checkbox updates keyed by previous ids
"""

import pytest

from mindmark.markdown.parser import parse
from mindmark.sync.diff import field_changes, flatten, structure_matches


def _flat(text, prefix="p"):
    counter = iter(range(1, 1000))
    return flatten(
        parse(text, id_factory=lambda: f"{prefix}{next(counter)}").root_nodes
    )


class TestFlatten:
    """Tests for flatten()."""

    def test_pre_order(self):
        items = _flat("# A\n- b\n  - c\n# D")
        assert [i.text for i in items] == ["A", "b", "c", "D"]
        assert [i.id for i in items] == ["p1", "p2", "p3", "p4"]
        assert items[2].indent == 2
        assert items[2].level == 2

    def test_checkbox_fields(self):
        (item,) = _flat("- [x] done")
        assert item.is_checkbox
        assert item.is_checked


class TestStructureMatches:
    """Tests for the structural gate."""

    @pytest.mark.parametrize(
        "before,after",
        [
            ("# Root\n- item a\n- item b\n", "# Root\n- item A\n- item b\n"),
            ("# A\nnote", "# A\nchanged note\nover two lines"),
            ("- [ ] task", "- [x] task"),
            ("1. a\n2. b", "1. a\n7. b"),
            ("* a", "- a"),
        ],
    )
    def test_content_edits_match(self, before, after):
        assert structure_matches(_flat(before), _flat(after, "n"))

    @pytest.mark.parametrize(
        "before,after",
        [
            ("# A\n- b", "# A\n- b\n- c"),
            ("# A", "## A"),
            ("- a", "1. a"),
            ("- a\n- b", "- a\n  - b"),
            ("# A\n- b", "- A\n- b"),
        ],
    )
    def test_shape_changes_fail(self, before, after):
        assert not structure_matches(_flat(before), _flat(after, "n"))

    def test_kind_difference_fails(self):
        prev = _flat("# A")
        nxt = [prev[0].model_copy(update={"kind": "table"})]
        assert not structure_matches(prev, nxt)


class TestFieldChanges:
    """Tests for field_changes()."""

    def test_single_text_change(self):
        prev = _flat("# Root\n- item a\n- item b\n")
        nxt = _flat("# Root\n- item A\n- item b\n", "n")
        assert field_changes(prev, nxt) == [
            ("p2", {"text": "item A", "note": None}),
        ]

    def test_note_change_carries_text(self):
        prev = _flat("# A\nold")
        nxt = _flat("# A\nnew", "n")
        assert field_changes(prev, nxt) == [("p1", {"text": "A", "note": "new"})]

    def test_none_note_differs_from_empty(self):
        prev = _flat("# A")
        nxt = _flat("# A\n", "n")
        assert field_changes(prev, nxt) == [("p1", {"text": "A", "note": ""})]

    def test_checkbox_tick(self):
        prev = _flat("- [ ] task")
        nxt = _flat("- [x] task", "n")
        assert field_changes(prev, nxt) == [
            ("p1", {"is_checkbox": True, "is_checked": True}),
        ]

    def test_no_changes(self):
        prev = _flat("# A\n- b")
        assert field_changes(prev, _flat("# A\n- b", "n")) == []
