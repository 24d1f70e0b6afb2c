"""Storage adapters: where map markdown lives.

The sync engine only needs the markdown-text contract of storage, captured
by the ``StorageAdapter`` protocol.  ``MarkdownFolderStorage`` is the local
implementation: one ``<map_id>.md`` file per map in a root directory.

Key design choices:

* **Encoding detection** -- files are read as bytes and decoded with
  charset-normalizer, so maps written by other tools in legacy encodings
  open correctly.  The detected encoding is reused when saving.
* **Atomic writes** -- saves go to a temp file in the same directory and
  then ``os.replace()`` the target, so readers never see partial data.
* **Byte-exact content** -- no newline translation on read or write;
  CRLF documents stay CRLF.

``StorageSink`` adapts a storage adapter to the markdown stream's sink
interface, running the blocking save in a worker thread.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from charset_normalizer import from_bytes

from mindmark.core.async_utils import run_sync
from mindmark.errors import AdapterError

logger = logging.getLogger(__name__)

MAP_SUFFIX = ".md"

_MAP_ID_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\- ]*$")


@runtime_checkable
class StorageAdapter(Protocol):
    """Markdown persistence for maps."""

    def get_map_markdown(self, map_id: str) -> str | None: ...

    def save_map_markdown(self, map_id: str, text: str) -> None: ...

    def get_map_last_modified(self, map_id: str) -> float | None: ...


# =============================================================================
# Encoding-aware file I/O
# =============================================================================


def read_text_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).  Empty files and
        failed detections decode as UTF-8.
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_text_atomic(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write *content* to *path* through a temp file and ``os.replace``.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)


# =============================================================================
# Folder storage
# =============================================================================


class MarkdownFolderStorage:
    """Store each map as ``<root>/<map_id>.md``.

    Args:
        root: Directory holding the map files.  Created on first save.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()
        self._encodings: dict[str, str] = {}

    def map_path(self, map_id: str) -> Path:
        """Return the file path for *map_id*.

        Raises:
            AdapterError: The id is empty, contains path separators, or
                would resolve outside the root.
        """
        if not _MAP_ID_PATTERN.match(map_id) or ".." in map_id:
            raise AdapterError(f"Invalid map id: {map_id!r}", map_id)
        path = self.root / f"{map_id}{MAP_SUFFIX}"
        if not path.resolve().is_relative_to(self.root.resolve()):
            raise AdapterError(
                f"Map path is outside storage root: {map_id!r}", map_id
            )
        return path

    def list_maps(self) -> list[str]:
        """Return the ids of all stored maps, sorted."""
        if not self.root.is_dir():
            return []
        return sorted(p.stem for p in self.root.glob(f"*{MAP_SUFFIX}"))

    def get_map_markdown(self, map_id: str) -> str | None:
        path = self.map_path(map_id)
        if not path.exists():
            return None
        try:
            content, encoding = read_text_with_encoding(path)
        except OSError as e:
            raise AdapterError(
                f"Failed to read map {map_id!r}: {e}", map_id
            ) from e
        self._encodings[map_id] = encoding
        logger.debug("Read map %s (%s, %d chars)", map_id, encoding, len(content))
        return content

    def save_map_markdown(self, map_id: str, text: str) -> None:
        path = self.map_path(map_id)
        encoding = self._encodings.get(map_id, "utf-8")
        try:
            text.encode(encoding)
        except UnicodeEncodeError:
            # New content no longer fits the legacy encoding
            encoding = self._encodings[map_id] = "utf-8"
        try:
            count = write_text_atomic(path, text, encoding)
        except OSError as e:
            raise AdapterError(
                f"Failed to save map {map_id!r}: {e}", map_id
            ) from e
        logger.debug("Saved map %s (%d bytes)", map_id, count)

    def get_map_last_modified(self, map_id: str) -> float | None:
        path = self.map_path(map_id)
        try:
            return path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise AdapterError(
                f"Failed to stat map {map_id!r}: {e}", map_id
            ) from e


class StorageSink:
    """Markdown stream sink persisting one map through a storage adapter.

    Args:
        storage: The adapter to save through.
        map_id: The map this sink writes.
    """

    def __init__(self, storage: StorageAdapter, map_id: str) -> None:
        self.storage = storage
        self.map_id = map_id
        self.id = f"storage:{map_id}"

    async def flush(self, markdown: str) -> None:
        await run_sync(self.storage.save_map_markdown, self.map_id, markdown)
