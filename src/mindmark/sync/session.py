"""One open map: storage, stream, document and controller wired together.

A ``MapSession`` owns every piece of per-document sync state.  Switching
maps means closing one session and opening another: the baseline,
suppression window and memo entry of the old map are discarded with it,
so a stale window can never suppress pushes on the new map.
"""

from __future__ import annotations

import logging

from mindmark.config import Config
from mindmark.core.async_utils import run_sync
from mindmark.document import MindMapDocument
from mindmark.errors import AdapterError
from mindmark.storage import StorageAdapter, StorageSink

from .controller import LayoutFn, SyncController
from .models import SyncOutcome
from .stream import MarkdownStream
from .window import SuppressionWindow

logger = logging.getLogger(__name__)


class MapSession:
    """Sync session for a single map.

    Args:
        map_id: The map to open.
        storage: Where the map's markdown lives.
        config: Timing and parse settings.  Defaults to ``Config()``.
        layout: Auto-layout callback handed to the controller.
    """

    def __init__(
        self,
        map_id: str,
        storage: StorageAdapter,
        config: Config | None = None,
        layout: LayoutFn | None = None,
    ) -> None:
        self.map_id = map_id
        self.storage = storage
        self.config = config or Config()

        self.stream = MarkdownStream(debounce_ms=self.config.debounce_ms)
        self.document = MindMapDocument()
        self.controller = SyncController(
            self.document,
            self.stream,
            window=SuppressionWindow(self.config.suppression_window_ms),
            layout=layout,
            default_collapse_depth=self.config.default_collapse_depth,
        )
        self.stream.add_sink(StorageSink(storage, map_id))
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> SyncOutcome | None:
        """Start syncing and load the stored markdown, if any.

        Returns:
            The load outcome, or ``None`` for a map with no stored text.

        Raises:
            AdapterError: Storage could not be read.
        """
        self.controller.start()
        self._open = True
        text = await run_sync(self.storage.get_map_markdown, self.map_id)
        if text is None:
            logger.info("Opened new map %s", self.map_id)
            return None
        outcome = self.controller.load_markdown(text)
        logger.info("Opened map %s (%s)", self.map_id, outcome.value)
        return outcome

    async def reload_if_changed(self, since: float | None) -> bool:
        """Reload the map when storage reports a newer modification time.

        Args:
            since: Modification time seen at the last load or save.

        Returns:
            ``True`` when the stored text was reloaded.
        """
        modified = await run_sync(
            self.storage.get_map_last_modified, self.map_id
        )
        if modified is None or (since is not None and modified <= since):
            return False
        text = await run_sync(self.storage.get_map_markdown, self.map_id)
        if text is None or text == self.stream.get_markdown():
            return False
        logger.info("Map %s changed on disk, reloading", self.map_id)
        return self.controller.load_markdown(text) == SyncOutcome.REPLACED

    async def save(self) -> None:
        """Flush pending markdown to storage.

        Raises:
            AdapterError: The storage write failed.
        """
        await self.controller.flush_markdown_stream()

    async def close(self, flush: bool = True) -> None:
        """Tear the session down, optionally persisting pending text first.

        A failed final flush is logged; the session is closed regardless.
        """
        if not self._open:
            return
        if flush:
            try:
                await self.save()
            except AdapterError as e:
                logger.error("Final save of map %s failed: %s", self.map_id, e)
        self.controller.close()
        self.stream.close()
        self._open = False
        logger.debug("Closed map %s", self.map_id)

    async def __aenter__(self) -> MapSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
