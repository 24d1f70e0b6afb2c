"""Markdown text -> node tree.

The parser is line based: it does not build a full markdown AST.  Only
headings and list items become nodes; every other line is attached,
verbatim, to the ``note`` of the closest preceding node.  Lines before the
first structural line are kept in a ``preface`` root node so that
``serialize(parse(text))`` never drops content.

Hierarchy rules:

1. A heading pops every heading of the same or deeper level from the
   heading stack, then nests under the remaining top (or becomes a root).
   It also resets the list stack.
2. A list item pops every list item with the same or deeper indentation,
   then nests under the remaining top, else under the current heading,
   else becomes a root.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from mindmark.errors import StructureNotFoundError

from .common import StructureLine, classify_line, detect_line_ending
from .models import MarkdownMeta, Node, NodeType, ParseResult, new_node_id

logger = logging.getLogger(__name__)


def parse(
    markdown_text: str,
    *,
    default_collapse_depth: int | None = None,
    id_factory: Callable[[], str] | None = None,
) -> ParseResult:
    """Parse markdown text into a forest of nodes.

    Args:
        markdown_text: The full document.
        default_collapse_depth: Nodes deeper than this (roots are depth
            0) are marked ``collapsed``.  ``None`` collapses nothing.
        id_factory: Callable producing node ids.  Defaults to random ids.

    Returns:
        ``ParseResult`` with the root nodes and the detected line ending.

    Raises:
        StructureNotFoundError: The text has no heading and no list item.
    """
    make_id = id_factory or new_node_id
    line_ending = detect_line_ending(markdown_text)
    lines = markdown_text.replace("\r\n", "\n").split("\n")

    root_nodes: list[Node] = []
    heading_stack: list[tuple[Node, int]] = []
    list_stack: list[tuple[Node, int]] = []
    current_heading: Node | None = None

    preface_lines: list[str] = []
    current: Node | None = None
    note_lines: list[str] = []
    structure_count = 0

    for line_number, line in enumerate(lines):
        element = classify_line(line)
        if element is None:
            if current is None:
                preface_lines.append(line)
            else:
                note_lines.append(line)
            continue

        if current is not None:
            _attach_note(current, note_lines)
        elif preface_lines:
            root_nodes.append(_make_preface(preface_lines, make_id))
        note_lines = []
        structure_count += 1

        node = _make_node(element, line_number, make_id)

        if element.type == NodeType.HEADING:
            list_stack.clear()
            while heading_stack and heading_stack[-1][1] >= element.level:
                heading_stack.pop()
            if heading_stack:
                heading_stack[-1][0].children.append(node)
            else:
                root_nodes.append(node)
            heading_stack.append((node, element.level))
            current_heading = node
        else:
            indent = element.indent_level
            while list_stack and list_stack[-1][1] >= indent:
                list_stack.pop()
            if list_stack:
                list_stack[-1][0].children.append(node)
            elif current_heading is not None:
                current_heading.children.append(node)
            else:
                root_nodes.append(node)
            list_stack.append((node, indent))

        current = node

    if structure_count == 0:
        raise StructureNotFoundError()

    _attach_note(current, note_lines)

    if default_collapse_depth is not None:
        _apply_collapse(root_nodes, default_collapse_depth)

    logger.debug(
        "Parsed %d lines into %d structural nodes (%d roots)",
        len(lines),
        structure_count,
        len(root_nodes),
    )
    return ParseResult(root_nodes=root_nodes, line_ending=line_ending)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _make_node(
    element: StructureLine, line_number: int, make_id: Callable[[], str]
) -> Node:
    meta = MarkdownMeta(
        type=element.type,
        level=element.level,
        indent_level=element.indent_level,
        line_number=line_number,
        is_checkbox=element.is_checkbox,
        is_checked=element.is_checked,
    )
    return Node(id=make_id(), text=element.text, markdown_meta=meta)


def _make_preface(lines: list[str], make_id: Callable[[], str]) -> Node:
    meta = MarkdownMeta(
        type=NodeType.PREFACE, level=0, indent_level=0, line_number=0
    )
    return Node(
        id=make_id(), text="", note="\n".join(lines), markdown_meta=meta
    )


def _attach_note(node: Node | None, lines: list[str]) -> None:
    if node is not None and lines:
        node.note = "\n".join(lines)


def _apply_collapse(nodes: list[Node], max_depth: int, depth: int = 0) -> None:
    for node in nodes:
        if depth > max_depth:
            node.collapsed = True
        _apply_collapse(node.children, max_depth, depth + 1)
