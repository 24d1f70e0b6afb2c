"""Pydantic models for the markdown sync engine.

Defines the data contracts shared by the sync modules:

- ``MarkdownOrigin``: Which side produced a markdown update.
- ``SyncOutcome``: What a controller operation did.
- ``FlatItem``: Pre-order structural fingerprint of one node.
- ``LineMapping``: Bidirectional 1-based line <-> node id index.
- ``MemoStats``: Memoizer hit/miss counters.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from mindmark.markdown.models import NodeType


class MarkdownOrigin(str, Enum):
    """Producer of a markdown stream update."""

    EDITOR = "editor"
    NODES = "nodes"
    EXTERNAL = "external"


class SyncOutcome(str, Enum):
    """Result of a single controller operation."""

    PUSHED = "pushed"
    UNCHANGED = "unchanged"
    SUPPRESSED = "suppressed"
    PATCHED = "patched"
    REPLACED = "replaced"
    BASELINE_ADOPTED = "baseline_adopted"
    IGNORED = "ignored"
    PARSE_FAILED = "parse_failed"
    CONVERSION_FAILED = "conversion_failed"


class FlatItem(BaseModel):
    """Structural fingerprint of one node, in pre-order position.

    Attributes:
        id: Node id.
        text: Node text.
        note: Node note, ``None`` when absent.
        type: Markdown type, ``None`` for nodes without metadata.
        level: Heading or list level.
        indent: List indentation in spaces.
        kind: Extension tag.
        is_checkbox: Checkbox list item.
        is_checked: Checkbox is ticked.
    """

    id: str
    text: str
    note: str | None = None
    type: NodeType | None = None
    level: int | None = None
    indent: int | None = None
    kind: str | None = None
    is_checkbox: bool = False
    is_checked: bool = False

    model_config = {"frozen": True}


class LineMapping(BaseModel):
    """Bidirectional index between document lines and node ids.

    Line numbers are 1-based to match editor numbering.

    Attributes:
        line_to_node: Line number -> node id.
        node_to_line: Node id -> line number.
    """

    line_to_node: dict[int, str] = {}
    node_to_line: dict[str, int] = {}

    model_config = {"frozen": True}

    @classmethod
    def from_node_lines(cls, node_lines: dict[str, int]) -> LineMapping:
        """Build a mapping from ``{node_id: 0-based line}``."""
        line_to_node: dict[int, str] = {}
        node_to_line: dict[str, int] = {}
        for node_id, line in node_lines.items():
            if line is None or line < 0:
                continue
            line_to_node[line + 1] = node_id
            node_to_line[node_id] = line + 1
        return cls(line_to_node=line_to_node, node_to_line=node_to_line)

    def rekey(self, id_map: dict[str, str]) -> LineMapping:
        """Return a copy with node ids renamed through *id_map*.

        Ids missing from *id_map* are kept as they are.
        """
        return LineMapping(
            line_to_node={
                line: id_map.get(node_id, node_id)
                for line, node_id in self.line_to_node.items()
            },
            node_to_line={
                id_map.get(node_id, node_id): line
                for node_id, line in self.node_to_line.items()
            },
        )

    def __len__(self) -> int:
        return len(self.line_to_node)


class MemoStats(BaseModel):
    """Memoizer counters.

    Attributes:
        hit_count: Conversions served from the cache.
        miss_count: Conversions that called the serializer.
        hit_rate: ``hit_count / (hit_count + miss_count)``, ``0.0`` when
            nothing has been converted yet.
    """

    hit_count: int = 0
    miss_count: int = 0
    hit_rate: float = 0.0

    model_config = {"frozen": True}
