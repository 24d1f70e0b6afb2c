"""Single-entry cache for tree -> markdown conversion.

Tree-change notifications arrive far more often than the tree's
serializable content actually changes (selection, collapse and position
updates all notify).  The memoizer hashes the structural fingerprint of
the forest and only calls the serializer when the hash moves.

The fingerprint is SHA-256 over the pre-order ``flatten`` projection,
extended with the child count of each node and its checkbox state, since
the serializer reads those too: reparenting a node or ticking a checkbox
must produce fresh markdown.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable

from mindmark.markdown.models import Node, walk_nodes

from .diff import flatten
from .models import MemoStats

logger = logging.getLogger(__name__)


def tree_fingerprint(root_nodes: list[Node]) -> str:
    """Return the SHA-256 hex digest identifying a forest's markdown."""
    child_counts = [len(node.children) for node in walk_nodes(root_nodes)]
    rows = [
        [
            item.id,
            item.text,
            item.note,
            item.type.value if item.type is not None else None,
            item.level,
            item.indent,
            item.kind,
            item.is_checkbox,
            item.is_checked,
            count,
        ]
        for item, count in zip(flatten(root_nodes), child_counts)
    ]
    # Root count separates [A, B] from [A(B)] when child counts agree
    payload = json.dumps([len(root_nodes), rows], ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class MarkdownMemoizer:
    """Most-recent-only cache of ``(fingerprint, markdown)``."""

    def __init__(self) -> None:
        self._fingerprint: str | None = None
        self._markdown: str | None = None
        self._hits = 0
        self._misses = 0

    def convert(
        self,
        root_nodes: list[Node],
        serialize_fn: Callable[[list[Node]], str],
    ) -> str:
        """Return markdown for *root_nodes*, serializing only on change.

        Args:
            root_nodes: The forest to convert.
            serialize_fn: Serializer called on a cache miss.

        Returns:
            The cached markdown when the fingerprint is unchanged since the
            previous call, otherwise ``serialize_fn(root_nodes)``.

        Raises:
            Whatever *serialize_fn* raises; the cache entry is left as it
            was.
        """
        fingerprint = tree_fingerprint(root_nodes)
        if fingerprint == self._fingerprint and self._markdown is not None:
            self._hits += 1
            return self._markdown

        self._misses += 1
        markdown = serialize_fn(root_nodes)
        self._fingerprint = fingerprint
        self._markdown = markdown
        logger.debug("Memo miss: serialized %d chars", len(markdown))
        return markdown

    def invalidate(self) -> None:
        """Drop the cached entry."""
        self._fingerprint = None
        self._markdown = None

    def get_stats(self) -> MemoStats:
        total = self._hits + self._misses
        return MemoStats(
            hit_count=self._hits,
            miss_count=self._misses,
            hit_rate=self._hits / total if total else 0.0,
        )

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0
