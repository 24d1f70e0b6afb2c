"""Structural edits on a node forest.

These are the explicit tree-edit operations the canvas issues: retyping a
node between heading and list, switching list flavour, changing heading
level or list indentation, and choosing metadata for newly created nodes.

All functions mutate the forest in place and return the edited node.
``MarkdownMeta`` is frozen, so metadata is replaced rather than patched.

Retype safety rules (a retype that would produce a shape markdown cannot
express is refused with ``ConversionError`` and the tree is untouched):

- To a list: no child may be a heading, and no elder sibling may be a
  heading (a list item cannot be followed by a sibling heading at the
  same nesting position once serialized).
- To a heading: no younger sibling may be a list item, and the parent
  must not be a list item.

Unknown node ids raise ``KeyError``.
"""

from __future__ import annotations

from typing import Literal

from mindmark.errors import ConversionError

from .common import INDENT_WIDTH, MAX_HEADING_LEVEL, strip_markers
from .models import MarkdownMeta, Node, NodeType, find_with_parent

IndentDirection = Literal["increase", "decrease"]


def _locate(
    nodes: list[Node], node_id: str
) -> tuple[Node, Node | None, list[Node]]:
    found = find_with_parent(nodes, node_id)
    if found is None:
        raise KeyError(node_id)
    return found


def _is_list(node: Node | None) -> bool:
    return (
        node is not None
        and node.markdown_meta is not None
        and node.markdown_meta.type.is_list
    )


def _is_heading(node: Node) -> bool:
    return (
        node.markdown_meta is not None
        and node.markdown_meta.type == NodeType.HEADING
    )


# ---------------------------------------------------------------------------
# Safety checks
# ---------------------------------------------------------------------------


def list_conversion_blocker(nodes: list[Node], node_id: str) -> str | None:
    """Return why *node_id* cannot become a list item, or ``None`` if it can."""
    node, _parent, siblings = _locate(nodes, node_id)
    if any(_is_heading(child) for child in node.children):
        return "node has heading children"
    index = siblings.index(node)
    if any(_is_heading(sibling) for sibling in siblings[:index]):
        return "an elder sibling is a heading"
    return None


def heading_conversion_blocker(
    nodes: list[Node], node_id: str
) -> str | None:
    """Return why *node_id* cannot become a heading, or ``None`` if it can."""
    node, parent, siblings = _locate(nodes, node_id)
    index = siblings.index(node)
    if any(_is_list(sibling) for sibling in siblings[index + 1 :]):
        return "a younger sibling is a list item"
    if _is_list(parent):
        return "parent is a list item"
    return None


# ---------------------------------------------------------------------------
# Retyping
# ---------------------------------------------------------------------------


def change_node_type(
    nodes: list[Node], node_id: str, new_type: NodeType
) -> Node:
    """Retype a node between heading, unordered list and ordered list.

    The target level is derived from the parent: under a heading a new
    heading is one level deeper (capped at 6); under a list item a list
    is nested one level deeper.  Heading/list markers the user may have
    typed into the text are stripped.

    Nodes without markdown metadata (created in the canvas) skip the
    safety checks.

    Args:
        nodes: The forest, mutated in place.
        node_id: Node to retype.
        new_type: ``HEADING``, ``UNORDERED_LIST`` or ``ORDERED_LIST``.

    Returns:
        The retyped node.

    Raises:
        KeyError: Unknown *node_id*.
        ConversionError: The retype would produce an unrepresentable shape.
    """
    if new_type == NodeType.PREFACE:
        raise ConversionError("Cannot retype a node to preface", node_id)

    node, parent, _siblings = _locate(nodes, node_id)
    current = node.markdown_meta

    if current is not None:
        if current.type == NodeType.PREFACE:
            raise ConversionError("Cannot retype the preface", node_id)
        if new_type.is_list:
            reason = list_conversion_blocker(nodes, node_id)
        else:
            reason = heading_conversion_blocker(nodes, node_id)
        if reason is not None:
            raise ConversionError(
                f"Cannot convert '{node.text}' to {new_type.value}: {reason}",
                node_id,
            )

    line_number = current.line_number if current is not None else None

    if new_type == NodeType.HEADING:
        if parent is not None and _is_heading(parent):
            level = min((parent.markdown_meta.level or 1) + 1, MAX_HEADING_LEVEL)
        elif current is not None and current.level:
            level = min(current.level, MAX_HEADING_LEVEL)
        else:
            level = 1
        meta = MarkdownMeta(
            type=NodeType.HEADING,
            level=level,
            indent_level=0,
            line_number=line_number,
        )
    else:
        level = 1
        if _is_list(parent):
            level = max((parent.markdown_meta.level or 1) + 1, 1)
        meta = MarkdownMeta(
            type=new_type,
            level=level,
            indent_level=(level - 1) * INDENT_WIDTH,
            line_number=line_number,
        )

    node.text = strip_markers(node.text)
    node.markdown_meta = meta
    return node


def change_list_type(
    nodes: list[Node], node_id: str, new_type: NodeType
) -> Node:
    """Switch a list item between unordered and ordered.

    Level and indentation are kept.  Switching to ordered drops the
    checkbox state (ordered items have no checkbox form).

    Raises:
        KeyError: Unknown *node_id*.
        ConversionError: *new_type* is not a list type, or the node is not
            a list item.
    """
    if not new_type.is_list:
        raise ConversionError(
            f"{new_type.value} is not a list type", node_id
        )
    node, _parent, _siblings = _locate(nodes, node_id)
    meta = node.markdown_meta
    if meta is None or not meta.type.is_list:
        raise ConversionError(
            f"'{node.text}' is not a list item", node_id
        )

    update: dict = {"type": new_type}
    if new_type == NodeType.ORDERED_LIST:
        update.update(is_checkbox=False, is_checked=False)
    node.markdown_meta = meta.model_copy(update=update)
    return node


def change_node_indent(
    nodes: list[Node], node_id: str, direction: IndentDirection
) -> Node:
    """Shift a heading level or a list indentation by one step.

    Headings move within levels 1..6.  List items move by two spaces (one
    nesting level) and never below indent 0.  Steps beyond the bounds are
    no-ops.

    Raises:
        KeyError: Unknown *node_id*.
    """
    node, _parent, _siblings = _locate(nodes, node_id)
    meta = node.markdown_meta
    if meta is None or meta.type == NodeType.PREFACE:
        return node

    if meta.type == NodeType.HEADING:
        level = meta.level or 1
        if direction == "increase" and level < MAX_HEADING_LEVEL:
            level += 1
        elif direction == "decrease" and level > 1:
            level -= 1
        node.markdown_meta = meta.model_copy(update={"level": level})
        return node

    indent = meta.indent_level or 0
    level = meta.level or 1
    if direction == "increase":
        indent += INDENT_WIDTH
        level += 1
    elif indent >= INDENT_WIDTH:
        indent -= INDENT_WIDTH
        level -= 1
    node.markdown_meta = meta.model_copy(
        update={"indent_level": indent, "level": level}
    )
    return node


def toggle_checkbox(nodes: list[Node], node_id: str) -> Node:
    """Flip ``is_checked`` on a checkbox list item.

    Raises:
        KeyError: Unknown *node_id*.
        ConversionError: The node is not a checkbox item.
    """
    node, _parent, _siblings = _locate(nodes, node_id)
    meta = node.markdown_meta
    if meta is None or not meta.is_checkbox:
        raise ConversionError(f"'{node.text}' is not a checkbox", node_id)
    node.markdown_meta = meta.model_copy(
        update={"is_checked": not meta.is_checked}
    )
    return node


# ---------------------------------------------------------------------------
# Metadata for new nodes
# ---------------------------------------------------------------------------


def child_meta_for(parent: Node) -> MarkdownMeta | None:
    """Return markdown metadata for a new last child of *parent*.

    The new child copies the last non-table sibling's role (a fresh
    checkbox starts unchecked).  Without siblings it derives from the
    parent: under a heading it becomes the next heading level, or a
    top-level unordered list once level 6 is exhausted; under a list item
    it becomes a nested item of the same list type.

    Returns:
        Metadata with no line number, or ``None`` when *parent* itself has
        no markdown metadata.
    """
    siblings = [child for child in parent.children if child.kind != "table"]
    if siblings and siblings[-1].markdown_meta is not None:
        return sibling_meta_for(siblings[-1])

    meta = parent.markdown_meta
    if meta is None or meta.type == NodeType.PREFACE:
        return None

    if meta.type == NodeType.HEADING:
        level = (meta.level or 1) + 1
        if level > MAX_HEADING_LEVEL:
            return MarkdownMeta(
                type=NodeType.UNORDERED_LIST, level=1, indent_level=0
            )
        return MarkdownMeta(type=NodeType.HEADING, level=level, indent_level=0)

    return MarkdownMeta(
        type=meta.type,
        level=(meta.level or 1) + 1,
        indent_level=(meta.indent_level or 0) + INDENT_WIDTH,
        is_checkbox=meta.is_checkbox,
    )


def sibling_meta_for(node: Node) -> MarkdownMeta | None:
    """Return markdown metadata for a new sibling placed after *node*."""
    meta = node.markdown_meta
    if meta is None or meta.type == NodeType.PREFACE:
        return None
    return meta.model_copy(update={"line_number": None, "is_checked": False})
