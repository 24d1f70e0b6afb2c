"""Live HTML preview of the markdown stream using mistune rendering.

The preview is an independent stream subscriber: it renders every
markdown update, whichever side produced it, including the ``nodes``
pushes the sync controller itself ignores.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import mistune

if TYPE_CHECKING:
    from mindmark.sync.models import MarkdownOrigin
    from mindmark.sync.stream import MarkdownStream

logger = logging.getLogger(__name__)

_PLUGINS = ["table", "task_lists", "strikethrough"]


def render_html(markdown_text: str) -> str:
    """Render markdown text to HTML.

    Tables and ``- [ ]`` task items are rendered even though the node tree
    treats them as opaque note content.

    Args:
        markdown_text: Markdown formatted text

    Returns:
        HTML string
    """
    markdown = mistune.create_markdown(plugins=_PLUGINS)
    result: str = markdown(markdown_text)  # type: ignore[assignment]
    return result


class MarkdownPreview:
    """Keeps an HTML rendering of a markdown stream up to date.

    Args:
        stream: The stream to follow.
        on_render: Optional callback receiving each fresh HTML rendering.
    """

    def __init__(
        self,
        stream: MarkdownStream,
        on_render: Callable[[str], None] | None = None,
    ) -> None:
        self._stream = stream
        self._on_render = on_render
        self._unsubscribe: Callable[[], None] | None = None
        self.html = ""
        self.render_count = 0

    def start(self) -> None:
        """Subscribe to the stream and render its current content."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._stream.subscribe(self._handle)
        current = self._stream.get_markdown()
        if current:
            self._render(current)

    def close(self) -> None:
        """Stop following the stream."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle(self, markdown_text: str, origin: MarkdownOrigin) -> None:
        logger.debug("Rendering preview for %s update", origin.value)
        self._render(markdown_text)

    def _render(self, markdown_text: str) -> None:
        self.html = render_html(markdown_text)
        self.render_count += 1
        if self._on_render is not None:
            self._on_render(self.html)
