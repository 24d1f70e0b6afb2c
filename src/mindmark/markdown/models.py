"""Pydantic models for the markdown node tree.

- ``NodeType``: markdown role of a node.
- ``MarkdownMeta``: per-node record of role, level, indent, checkbox
  state and source line.
- ``Node``: one heading or list item plus its note body and children.
- ``ParseResult``: output of ``parse()``.

``MarkdownMeta`` and ``ParseResult`` are frozen.  ``Node`` is mutable:
the document patches ``text``/``note`` in place so node identity (and
with it selection and collapse state) survives content edits.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class NodeType(str, Enum):
    """Markdown role of a node."""

    HEADING = "heading"
    UNORDERED_LIST = "unordered-list"
    ORDERED_LIST = "ordered-list"
    PREFACE = "preface"

    @property
    def is_list(self) -> bool:
        return self in (NodeType.UNORDERED_LIST, NodeType.ORDERED_LIST)


class MarkdownMeta(BaseModel):
    """Markdown structure information for a node.

    Attributes:
        type: Heading, list, or preface.
        level: Heading level (number of ``#``) or list nesting level
            (``indent_level // 2 + 1``).  ``0`` for the preface.
        indent_level: Leading spaces of a list line; ``0`` for headings.
        line_number: 0-based source line, ``None`` for synthesized nodes.
        is_checkbox: List item written as ``- [ ]`` / ``- [x]``.
        is_checked: Checkbox is ticked.
    """

    type: NodeType
    level: int | None = None
    indent_level: int | None = None
    line_number: int | None = None
    is_checkbox: bool = False
    is_checked: bool = False

    model_config = {"frozen": True}


def new_node_id() -> str:
    """Return a fresh opaque node id."""
    return f"node_{uuid4().hex[:16]}"


class Node(BaseModel):
    """A node of the mind map tree.

    Attributes:
        id: Stable opaque identifier, unique within a document session.
        text: Heading/list text with markers stripped.
        note: Non-structural lines following the node, verbatim.
            ``None`` when the node has no trailing lines.
        children: Ordered child nodes.
        markdown_meta: Markdown role; ``None`` for synthesized nodes.
        kind: Optional extension tag (e.g. ``"table"``), opaque here.
        collapsed: Children hidden in the canvas.
    """

    id: str = Field(default_factory=new_node_id)
    text: str = ""
    note: str | None = None
    children: list[Node] = Field(default_factory=list)
    markdown_meta: MarkdownMeta | None = None
    kind: str | None = None
    collapsed: bool = False

    def walk(self) -> Iterator[Node]:
        """Yield this node and all descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def __repr__(self) -> str:
        count = len(self.children)
        suffix = f" ({count} children)" if count else ""
        return f"Node({self.id!r}, {self.text!r}{suffix})"


Node.model_rebuild()


class ParseResult(BaseModel):
    """Result of parsing a markdown document.

    Attributes:
        root_nodes: The parsed forest.
        line_ending: Line ending detected in the input.
    """

    root_nodes: list[Node]
    line_ending: str = "\n"

    model_config = {"frozen": True}


def walk_nodes(nodes: list[Node]) -> Iterator[Node]:
    """Yield every node of a forest in pre-order."""
    for node in nodes:
        yield from node.walk()


def find_node(nodes: list[Node], node_id: str) -> Node | None:
    """Return the node with *node_id*, or ``None``."""
    for node in walk_nodes(nodes):
        if node.id == node_id:
            return node
    return None


def find_with_parent(
    nodes: list[Node], node_id: str, parent: Node | None = None
) -> tuple[Node, Node | None, list[Node]] | None:
    """Locate *node_id* together with its parent and sibling list.

    Returns:
        ``(node, parent, siblings)`` where *siblings* is the list that
        owns the node (a parent's ``children`` or the forest itself),
        or ``None`` if the id is unknown.
    """
    for node in nodes:
        if node.id == node_id:
            return node, parent, nodes
        found = find_with_parent(node.children, node_id, node)
        if found is not None:
            return found
    return None
