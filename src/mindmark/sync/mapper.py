"""Line <-> node mapping for editor cursor correlation.

The mapping is a derived lookup index, never authoritative: the tree is.
It is rebuilt after every successful parse and every fresh serialization.

Line numbers stored on ``MarkdownMeta`` are 0-based; the mapping exposes
them 1-based, matching conventional editor numbering.
"""

from __future__ import annotations

from bisect import bisect_right

from mindmark.markdown.models import Node, NodeType, walk_nodes

from .models import LineMapping


def build_line_mapping(root_nodes: list[Node]) -> LineMapping:
    """Collect ``(line_number + 1) <-> id`` for every parsed node.

    Nodes without markdown metadata or without a non-negative line number
    (synthesized in the canvas, never parsed) are omitted, and so is the
    preface: lines before the first heading or list item belong to no node.

    Args:
        root_nodes: The forest to index.

    Returns:
        A fresh ``LineMapping``.
    """
    node_lines: dict[str, int] = {}
    for node in walk_nodes(root_nodes):
        meta = node.markdown_meta
        if meta is None or meta.line_number is None:
            continue
        if meta.type == NodeType.PREFACE:
            continue
        node_lines[node.id] = meta.line_number
    return LineMapping.from_node_lines(node_lines)


def get_node_id_by_line(mapping: LineMapping, line: int) -> str | None:
    """Resolve a 1-based editor line to the node that owns it.

    An exact hit returns that node.  Otherwise the nearest preceding
    structural line wins, so a cursor inside a multi-line note resolves
    to the note's owner.

    Args:
        mapping: The current line mapping.
        line: 1-based line number.

    Returns:
        Node id, or ``None`` when no mapped line is at or before *line*.
    """
    exact = mapping.line_to_node.get(line)
    if exact is not None:
        return exact

    keys = sorted(mapping.line_to_node)
    index = bisect_right(keys, line)
    if index == 0:
        return None
    return mapping.line_to_node[keys[index - 1]]
