"""Bidirectional node tree <-> markdown synchronization.

Modules:

- ``models``      -- ``MarkdownOrigin``, ``SyncOutcome``, ``FlatItem``,
  ``LineMapping``, ``MemoStats``: core data contracts.
- ``mapper``      -- 1-based line <-> node id lookup.
- ``diff``        -- ``flatten`` / ``structure_matches``: the shape gate
  deciding patch versus replace.
- ``memo``        -- ``MarkdownMemoizer``: single-entry serialization cache.
- ``window``      -- ``SuppressionWindow``: editor echo suppression.
- ``stream``      -- ``MarkdownStream``: debounced, origin-tagged transport.
- ``controller``  -- ``SyncController``: the orchestrator.
- ``session``     -- ``MapSession``: one open map, wired end to end.

Usage example
-------------
::

    from mindmark.storage import MarkdownFolderStorage
    from mindmark.sync import MapSession

    async with MapSession("ideas", MarkdownFolderStorage("~/maps")) as s:
        s.controller.on_editor_input("# Ideas\\n- first\\n")
        node_id = s.controller.get_node_id_by_markdown_line(2)
"""

from .controller import SyncController
from .diff import field_changes, flatten, structure_matches
from .mapper import build_line_mapping, get_node_id_by_line
from .memo import MarkdownMemoizer
from .models import (
    FlatItem,
    LineMapping,
    MarkdownOrigin,
    MemoStats,
    SyncOutcome,
)
from .session import MapSession
from .stream import MarkdownSink, MarkdownStream
from .window import SuppressionWindow

__all__ = [
    "FlatItem",
    "LineMapping",
    "MapSession",
    "MarkdownMemoizer",
    "MarkdownOrigin",
    "MarkdownSink",
    "MarkdownStream",
    "MemoStats",
    "SuppressionWindow",
    "SyncController",
    "SyncOutcome",
    "build_line_mapping",
    "field_changes",
    "flatten",
    "get_node_id_by_line",
    "structure_matches",
]
