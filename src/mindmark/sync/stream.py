"""Debounced markdown transport between editor, tree and storage.

``MarkdownStream`` holds the single current markdown value of an open
document.  Every update is tagged with its origin and delivered
synchronously to subscribers; persistence sinks are flushed after a
debounce delay (or on an explicit ``flush()``).

Delivery rules:

* **Dedup** -- an update identical to the current content is dropped
  without notifying anyone.  This is what stops the controller's own
  ``nodes`` push from echoing back as an editor update.
* **Isolation** -- a subscriber that raises is logged and skipped; the
  remaining subscribers still receive the update.
* **Serialized flushes** -- flushes run under an ``asyncio.Lock`` and
  always write the newest content; content already flushed is not
  written twice.
* **Error surfacing** -- a debounced flush logs sink failures.  An
  explicit ``flush()`` tries every sink, then re-raises the first
  ``AdapterError`` so the caller of a save sees it.  Content is only
  marked flushed once every sink succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from mindmark.errors import AdapterError

from .models import MarkdownOrigin

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 200

Subscriber = Callable[[str, MarkdownOrigin], None]


@runtime_checkable
class MarkdownSink(Protocol):
    """Persistence target flushed by the stream."""

    id: str

    async def flush(self, markdown: str) -> None: ...


class MarkdownStream:
    """Single-value markdown buffer with origin tagging.

    Args:
        debounce_ms: Delay between the last update and the automatic sink
            flush.  Automatic flushes are only scheduled while an asyncio
            event loop is running; otherwise callers flush explicitly.
    """

    def __init__(self, debounce_ms: int = DEFAULT_DEBOUNCE_MS) -> None:
        self.debounce_ms = debounce_ms
        self._content = ""
        self._last_flushed = ""
        self._sinks: list[MarkdownSink] = []
        self._subscribers: list[Subscriber] = []
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def get_markdown(self) -> str:
        return self._content

    @property
    def dirty(self) -> bool:
        """``True`` when the content has not reached the sinks yet."""
        return self._content != self._last_flushed

    def set_markdown(
        self, markdown: str, origin: MarkdownOrigin = MarkdownOrigin.EXTERNAL
    ) -> bool:
        """Replace the content and notify subscribers.

        External content comes from storage, so it counts as already
        flushed and schedules no write.

        Args:
            markdown: The new document text.
            origin: Which side produced it.

        Returns:
            ``False`` when the update was dropped as a duplicate.
        """
        if self._closed:
            logger.debug("Ignoring %s update on closed stream", origin.value)
            return False
        if markdown == self._content:
            return False

        self._content = markdown
        if origin == MarkdownOrigin.EXTERNAL:
            self._last_flushed = markdown
        self._notify(markdown, origin)
        if self.dirty:
            self._schedule_flush()
        return True

    def set_from_editor(self, markdown: str) -> bool:
        return self.set_markdown(markdown, MarkdownOrigin.EDITOR)

    def set_from_nodes(self, markdown: str) -> bool:
        return self.set_markdown(markdown, MarkdownOrigin.NODES)

    # ------------------------------------------------------------------
    # Subscribers and sinks
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* and return a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def add_sink(self, sink: MarkdownSink) -> None:
        self._sinks.append(sink)

    def replace_sinks(self, sinks: list[MarkdownSink]) -> None:
        self._sinks = list(sinks)

    def _notify(self, markdown: str, origin: MarkdownOrigin) -> None:
        logger.debug(
            "Stream update from %s (%d chars, %d subscribers)",
            origin.value,
            len(markdown),
            len(self._subscribers),
        )
        for callback in list(self._subscribers):
            try:
                callback(markdown, origin)
            except Exception as e:
                logger.error(
                    "Markdown stream subscriber %r failed: %s",
                    callback,
                    e,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def _schedule_flush(self) -> None:
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timer = loop.call_later(
            self.debounce_ms / 1000.0, self._start_debounced_flush
        )

    def _start_debounced_flush(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self._flush(raise_errors=False))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def flush(self) -> None:
        """Write the current content to every sink now.

        Raises:
            AdapterError: The first adapter failure, after all sinks were
                tried.
        """
        self._cancel_timer()
        await self._flush(raise_errors=True)

    async def _flush(self, raise_errors: bool) -> None:
        async with self._lock:
            snapshot = self._content
            if snapshot == self._last_flushed:
                return

            failures: list[Exception] = []
            for sink in list(self._sinks):
                try:
                    await sink.flush(snapshot)
                except Exception as e:
                    logger.warning(
                        "Markdown sink %s flush failed: %s", sink.id, e
                    )
                    failures.append(e)

            if not failures:
                self._last_flushed = snapshot
                logger.debug(
                    "Flushed %d chars to %d sinks",
                    len(snapshot),
                    len(self._sinks),
                )
                return

        if raise_errors:
            for failure in failures:
                if isinstance(failure, AdapterError):
                    raise failure

    def close(self) -> None:
        """Cancel the pending flush and drop all subscribers and sinks."""
        self._cancel_timer()
        for task in list(self._tasks):
            task.cancel()
        self._subscribers.clear()
        self._sinks.clear()
        self._closed = True
