"""Node tree -> markdown text.

Serialization is a deterministic pre-order walk:

- Headings emit ``"#" * min(level, 6)`` and the text.
- List items emit ``indent_level`` spaces and their marker (``- ``,
  ``- [ ] ``, ``- [x] `` or ``N. ``).  Ordered items are numbered by their
  position among consecutive ordered siblings.
- Nodes without markdown metadata (created in the canvas, never parsed)
  are emitted as unordered items nested below their parent.
- Notes are emitted verbatim on the following line(s).

For canonical input the round trip ``serialize(parse(text)) == text`` is
exact, blank lines and trailing newline included.
"""

from __future__ import annotations

from mindmark.errors import ConversionError

from .common import INDENT_WIDTH, MAX_HEADING_LEVEL
from .models import Node, NodeType


def serialize(root_nodes: list[Node], *, line_ending: str = "\n") -> str:
    """Serialize a forest to markdown text.

    Args:
        root_nodes: The forest to serialize.
        line_ending: Line separator for the output.

    Returns:
        Markdown text.

    Raises:
        ConversionError: A heading sits below a list item, which markdown
            cannot express.
    """
    text, _ = serialize_with_lines(root_nodes, line_ending=line_ending)
    return text


def serialize_with_lines(
    root_nodes: list[Node], *, line_ending: str = "\n"
) -> tuple[str, dict[str, int]]:
    """Serialize a forest and report where each node landed.

    Returns:
        Tuple of (markdown_text, node_lines) where *node_lines* maps node
        id to its 0-based line in the output.  The preface owns no line
        and is left out.
    """
    writer = _Writer()
    writer.write_siblings(root_nodes, parent=None, parent_indent=0)
    return line_ending.join(writer.lines), writer.node_lines


class _Writer:
    """Accumulates output lines during one serialization pass."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.node_lines: dict[str, int] = {}

    def write_siblings(
        self, nodes: list[Node], parent: Node | None, parent_indent: int
    ) -> None:
        ordinal = 0
        for node in nodes:
            meta = node.markdown_meta
            if meta is not None and meta.type == NodeType.ORDERED_LIST:
                ordinal += 1
            else:
                ordinal = 0
            self.write_node(node, parent, parent_indent, ordinal)

    def write_node(
        self,
        node: Node,
        parent: Node | None,
        parent_indent: int,
        ordinal: int,
    ) -> None:
        meta = node.markdown_meta
        under_list = parent is not None and _is_list_like(parent)
        indent = 0

        if meta is None:
            indent = parent_indent + INDENT_WIDTH if under_list else 0
            self._emit(node, " " * indent + "- " + node.text)
        elif meta.type == NodeType.HEADING:
            if under_list:
                raise ConversionError(
                    f"Heading '{node.text}' cannot be nested under a list item",
                    node_id=node.id,
                )
            level = min(max(meta.level or 1, 1), MAX_HEADING_LEVEL)
            self._emit(node, "#" * level + " " + node.text)
        elif meta.type == NodeType.PREFACE:
            # Emits its note only and owns no line
            pass
        else:
            indent = meta.indent_level or 0
            if under_list and indent <= parent_indent:
                indent = parent_indent + INDENT_WIDTH
            if meta.type == NodeType.ORDERED_LIST:
                marker = f"{ordinal}. "
            elif meta.is_checkbox:
                marker = "- [x] " if meta.is_checked else "- [ ] "
            else:
                marker = "- "
            self._emit(node, " " * indent + marker + node.text)

        if node.note is not None:
            self.lines.extend(node.note.split("\n"))

        if node.children:
            self.write_siblings(node.children, node, indent)

    def _emit(self, node: Node, line: str) -> None:
        self.node_lines[node.id] = len(self.lines)
        self.lines.append(line)


def _is_list_like(node: Node) -> bool:
    meta = node.markdown_meta
    return meta is None or meta.type.is_list
