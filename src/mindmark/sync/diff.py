"""Structural diff between two node forests.

The diff never aligns nodes by content.  Both forests are flattened into
pre-order ``FlatItem`` sequences and compared index by index:

- ``structure_matches`` is the gate: same length, and per index the same
  ``type``, ``level`` and ``kind`` (plus ``indent`` for list items).
  Text, note and id are ignored so pure content edits pass.
- ``field_changes`` lists the text/note updates that turn the previous
  forest into the next one, keyed by the previous forest's ids.

An unordered item becoming ordered fails the gate on purpose: retyping a
node must rebuild the tree.
"""

from __future__ import annotations

from mindmark.markdown.models import Node, walk_nodes

from .models import FlatItem


def flatten(root_nodes: list[Node]) -> list[FlatItem]:
    """Project a forest onto its pre-order structural fingerprint."""
    items: list[FlatItem] = []
    for node in walk_nodes(root_nodes):
        meta = node.markdown_meta
        items.append(
            FlatItem(
                id=node.id,
                text=node.text,
                note=node.note,
                type=meta.type if meta is not None else None,
                level=meta.level if meta is not None else None,
                indent=meta.indent_level if meta is not None else None,
                kind=node.kind,
                is_checkbox=meta.is_checkbox if meta is not None else False,
                is_checked=meta.is_checked if meta is not None else False,
            )
        )
    return items


def structure_matches(prev: list[FlatItem], next: list[FlatItem]) -> bool:
    """Return ``True`` if both sequences have the same shape.

    Args:
        prev: Fingerprint of the current tree.
        next: Fingerprint of the candidate tree.

    Returns:
        ``False`` on any length, type, level or kind difference, or an
        indentation difference between list items.
    """
    if len(prev) != len(next):
        return False
    for old, new in zip(prev, next):
        if old.type != new.type or old.level != new.level:
            return False
        if old.kind != new.kind:
            return False
        if old.type is not None and old.type.is_list:
            if (old.indent or 0) != (new.indent or 0):
                return False
    return True


def field_changes(
    prev: list[FlatItem], next: list[FlatItem]
) -> list[tuple[str, dict[str, object]]]:
    """Return the content updates between two matching sequences.

    Only meaningful when ``structure_matches(prev, next)`` holds.  Notes
    are compared exactly: ``None`` (no trailing lines) differs from ``""``
    (one blank line).  Ticking a checkbox in the editor is a content edit
    too, so checkbox state travels with the text/note update.

    Returns:
        ``[(prev_id, {"text": ..., "note": ...}), ...]`` in pre-order,
        one entry per changed node.  Entries also carry ``is_checkbox`` and
        ``is_checked`` when the checkbox state changed.
    """
    changes: list[tuple[str, dict[str, object]]] = []
    for old, new in zip(prev, next):
        update: dict[str, object] = {}
        if old.text != new.text or old.note != new.note:
            update.update(text=new.text, note=new.note)
        if (old.is_checkbox, old.is_checked) != (
            new.is_checkbox,
            new.is_checked,
        ):
            update.update(
                is_checkbox=new.is_checkbox, is_checked=new.is_checked
            )
        if update:
            changes.append((old.id, update))
    return changes
