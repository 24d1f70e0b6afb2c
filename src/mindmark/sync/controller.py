"""Synchronization controller between the node tree and markdown text.

The controller is the only component that decides what happens when one
side changes:

``on_tree_changed``
    The tree notified a change.  Unless the suppression window is open,
    serialize it (through the memoizer) and push the result to the stream
    when it differs from the baseline.

``on_markdown_received``
    The stream delivered text.  ``external`` text (initial load, file
    changed on disk) becomes the new baseline.  ``nodes`` text is the
    controller's own push and is ignored.  ``editor`` text arms the
    suppression window, is parsed, and is either patched into the live
    tree (same shape: text/note updates by id) or replaces it (different
    shape: new tree, one auto-layout call).

Parse and serialize failures are caught here and logged; the baseline and
the tree are only committed after the call that produced them succeeded.
Adapter failures are not handled here: they surface from
``flush_markdown_stream``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from mindmark.document import MindMapDocument
from mindmark.errors import StructureNotFoundError
from mindmark.markdown.common import detect_line_ending
from mindmark.markdown.models import Node, walk_nodes
from mindmark.markdown.parser import parse
from mindmark.markdown.serializer import serialize_with_lines

from .diff import field_changes, flatten, structure_matches
from .mapper import build_line_mapping, get_node_id_by_line
from .memo import MarkdownMemoizer
from .models import LineMapping, MarkdownOrigin, SyncOutcome
from .stream import MarkdownStream
from .window import SuppressionWindow

logger = logging.getLogger(__name__)

LayoutFn = Callable[[list[Node]], None]


class SyncController:
    """Keeps one document and one markdown stream consistent.

    Args:
        document: The open map's node tree.
        stream: The open map's markdown stream.
        window: Suppression window; a fresh 300 ms window by default.
        memoizer: Markdown memoizer; a fresh one by default.
        layout: Auto-layout callback invoked once after every tree
            replacement coming from the editor.
        default_collapse_depth: Passed to ``parse`` for editor and load
            input.
    """

    def __init__(
        self,
        document: MindMapDocument,
        stream: MarkdownStream,
        *,
        window: SuppressionWindow | None = None,
        memoizer: MarkdownMemoizer | None = None,
        layout: LayoutFn | None = None,
        default_collapse_depth: int | None = None,
    ) -> None:
        self.document = document
        self.stream = stream
        self.window = window or SuppressionWindow()
        self.memoizer = memoizer or MarkdownMemoizer()
        self._layout = layout
        self._default_collapse_depth = default_collapse_depth

        self._baseline = ""
        self._line_ending = "\n"
        self._line_mapping = LineMapping()
        self._serialized_lines: dict[str, int] = {}
        self._unsubscribers: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to the stream and to document changes."""
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self.stream.subscribe(self._on_stream_update),
            self.document.subscribe(self._on_document_changed),
        ]

    def close(self) -> None:
        """Detach from the stream and document and drop session state."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.window.cancel()
        self.memoizer.invalidate()
        self._serialized_lines = {}

    def _on_stream_update(self, text: str, origin: MarkdownOrigin) -> None:
        self.on_markdown_received(text, origin)

    def _on_document_changed(self) -> None:
        self.on_tree_changed()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def baseline(self) -> str:
        """Markdown last known to be consistent with the tree."""
        return self._baseline

    @property
    def line_mapping(self) -> LineMapping:
        return self._line_mapping

    # ------------------------------------------------------------------
    # Tree -> markdown
    # ------------------------------------------------------------------

    def on_tree_changed(self) -> SyncOutcome:
        """Push the tree's markdown to the stream if it changed.

        Returns:
            ``SUPPRESSED`` while the editor window is open, ``PUSHED`` when
            new markdown was sent, ``UNCHANGED`` when it matched the
            baseline, ``CONVERSION_FAILED`` when serialization raised.
        """
        if self.window.is_active():
            logger.debug("Tree change suppressed while editor is active")
            return SyncOutcome.SUPPRESSED

        try:
            markdown = self.memoizer.convert(
                self.document.root_nodes, self._serialize
            )
        except Exception as e:
            logger.error("Failed to convert nodes to markdown: %s", e)
            return SyncOutcome.CONVERSION_FAILED

        if markdown == self._baseline:
            return SyncOutcome.UNCHANGED

        self._baseline = markdown
        self._line_mapping = LineMapping.from_node_lines(
            self._serialized_lines
        )
        self.stream.set_from_nodes(markdown)
        logger.debug("Pushed %d chars of markdown from nodes", len(markdown))
        return SyncOutcome.PUSHED

    def _serialize(self, root_nodes: list[Node]) -> str:
        text, node_lines = serialize_with_lines(
            root_nodes, line_ending=self._line_ending
        )
        self._serialized_lines = node_lines
        return text

    def _adopt_line_ending(self, line_ending: str) -> None:
        # Cached markdown was joined with the old separator
        if line_ending != self._line_ending:
            self.memoizer.invalidate()
            self._line_ending = line_ending

    # ------------------------------------------------------------------
    # Markdown -> tree
    # ------------------------------------------------------------------

    def on_markdown_received(
        self, text: str, origin: MarkdownOrigin
    ) -> SyncOutcome:
        """Handle a markdown update delivered by the stream.

        Args:
            text: Full document text.
            origin: Which side produced it.

        Returns:
            The outcome of the update (see ``SyncOutcome``).
        """
        if origin == MarkdownOrigin.NODES:
            return SyncOutcome.IGNORED

        if origin == MarkdownOrigin.EXTERNAL:
            self._baseline = text
            self._adopt_line_ending(detect_line_ending(text))
            self._line_mapping = build_line_mapping(self.document.root_nodes)
            logger.debug("Adopted external markdown as baseline")
            return SyncOutcome.BASELINE_ADOPTED

        self.window.arm()

        try:
            result = parse(
                text, default_collapse_depth=self._default_collapse_depth
            )
        except StructureNotFoundError as e:
            logger.warning("%s; keeping existing nodes", e)
            return SyncOutcome.PARSE_FAILED
        except Exception as e:
            logger.error(
                "Failed to parse editor markdown, keeping existing nodes: %s",
                e,
                exc_info=True,
            )
            return SyncOutcome.PARSE_FAILED

        self._adopt_line_ending(result.line_ending)
        current_nodes = self.document.root_nodes
        current = flatten(current_nodes)
        candidate = flatten(result.root_nodes)
        candidate_mapping = build_line_mapping(result.root_nodes)

        if structure_matches(current, candidate):
            id_map = {new.id: old.id for old, new in zip(current, candidate)}
            self._line_mapping = candidate_mapping.rekey(id_map)
            _copy_line_numbers(current_nodes, result.root_nodes)

            changes = field_changes(current, candidate)
            if not changes:
                return SyncOutcome.UNCHANGED
            self.document.update_nodes(changes)
            logger.debug("Patched %d nodes from editor", len(changes))
            return SyncOutcome.PATCHED

        self._line_mapping = candidate_mapping
        self.document.set_root_nodes(result.root_nodes)
        logger.debug(
            "Replaced tree from editor (%d -> %d nodes)",
            len(current),
            len(candidate),
        )
        self._run_layout()
        return SyncOutcome.REPLACED

    def _run_layout(self) -> None:
        if self._layout is None:
            return
        try:
            self._layout(self.document.root_nodes)
        except Exception as e:
            logger.error("Auto-layout failed: %s", e, exc_info=True)

    def load_markdown(self, text: str) -> SyncOutcome:
        """Open *text* as the document: parse, adopt, replace the tree.

        The stream receives the text as ``external`` content, so it becomes
        the baseline and is not written back to storage.  Non-canonical
        input (``*`` markers, odd numbering) is normalized by the push that
        follows the tree replacement.

        Returns:
            ``REPLACED`` on success, ``PARSE_FAILED`` when the text has no
            structure (nothing is changed then).
        """
        try:
            result = parse(
                text, default_collapse_depth=self._default_collapse_depth
            )
        except StructureNotFoundError as e:
            logger.warning("%s; document not loaded", e)
            return SyncOutcome.PARSE_FAILED

        self.window.cancel()
        self.stream.set_markdown(text, MarkdownOrigin.EXTERNAL)
        self._baseline = text
        self._adopt_line_ending(result.line_ending)
        self._line_mapping = build_line_mapping(result.root_nodes)
        self.document.set_root_nodes(result.root_nodes)
        logger.info(
            "Loaded markdown document (%d nodes)",
            len(flatten(result.root_nodes)),
        )
        return SyncOutcome.REPLACED

    # ------------------------------------------------------------------
    # Application API
    # ------------------------------------------------------------------

    def on_editor_input(self, text: str) -> None:
        """Forward editor text into the stream as editor-originated."""
        self.stream.set_from_editor(text)

    def get_node_id_by_markdown_line(self, line: int) -> str | None:
        """Resolve a 1-based editor line to a node id."""
        return get_node_id_by_line(self._line_mapping, line)

    def get_current_markdown_content(self) -> str:
        """Return the current markdown text.

        The stream content wins (it includes unflushed editor text); a
        session that never produced stream content serializes the tree.
        """
        content = self.stream.get_markdown()
        if content:
            return content
        try:
            return self.memoizer.convert(
                self.document.root_nodes, self._serialize
            )
        except Exception as e:
            logger.error("Failed to convert nodes to markdown: %s", e)
            return self._baseline

    async def flush_markdown_stream(self) -> None:
        """Persist buffered markdown now.

        Raises:
            AdapterError: A storage sink failed.
        """
        await self.stream.flush()


def _copy_line_numbers(target: list[Node], source: list[Node]) -> None:
    # Same shape: align pre-order and refresh stale source lines
    for node, fresh in zip(walk_nodes(target), walk_nodes(source)):
        if node.markdown_meta is None or fresh.markdown_meta is None:
            continue
        line = fresh.markdown_meta.line_number
        if node.markdown_meta.line_number != line:
            node.markdown_meta = node.markdown_meta.model_copy(
                update={"line_number": line}
            )
