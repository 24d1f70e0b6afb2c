"""In-memory mind map document.

``MindMapDocument`` owns the authoritative node forest of one open map and
notifies listeners after every change.  All mutations go through it:

- field updates by id (``update_node`` / ``update_nodes``), which keep
  node identity and therefore selection and collapse state;
- wholesale replacement (``set_root_nodes``);
- the explicit tree edits of :mod:`mindmark.markdown.edits` plus node
  creation and removal.

Listeners take no arguments and read ``root_nodes`` themselves.  A
listener that raises is logged; the others still run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from mindmark.markdown import edits
from mindmark.markdown.models import (
    MarkdownMeta,
    Node,
    NodeType,
    find_node,
    find_with_parent,
    walk_nodes,
)

logger = logging.getLogger(__name__)

Listener = Callable[[], None]

_NODE_FIELDS = frozenset({"text", "note", "collapsed", "kind"})
_META_FIELDS = frozenset({"is_checkbox", "is_checked", "line_number"})


class MindMapDocument:
    """Holds the node forest of one map.

    Args:
        root_nodes: Initial forest.  Defaults to empty.
    """

    def __init__(self, root_nodes: list[Node] | None = None) -> None:
        self._root_nodes: list[Node] = list(root_nodes or [])
        self._listeners: list[Listener] = []

    @property
    def root_nodes(self) -> list[Node]:
        return self._root_nodes

    def __iter__(self):
        return walk_nodes(self._root_nodes)

    def __len__(self) -> int:
        return sum(1 for _ in walk_nodes(self._root_nodes))

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(
                    "Document listener %r failed: %s",
                    listener,
                    e,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, node_id: str) -> Node | None:
        return find_node(self._root_nodes, node_id)

    def get(self, node_id: str) -> Node:
        """Return the node with *node_id*.

        Raises:
            KeyError: Unknown id.
        """
        node = self.find(node_id)
        if node is None:
            raise KeyError(node_id)
        return node

    # ------------------------------------------------------------------
    # Field updates and replacement
    # ------------------------------------------------------------------

    def update_node(self, node_id: str, **fields: object) -> Node:
        """Update fields of one node in place and notify listeners.

        Accepted fields: ``text``, ``note``, ``collapsed``, ``kind`` and
        the metadata fields ``is_checkbox``, ``is_checked`` and
        ``line_number``.

        Raises:
            KeyError: Unknown id.
            ValueError: Unsupported field name.
        """
        node = self._apply(node_id, fields)
        self._emit()
        return node

    def update_nodes(
        self, updates: Iterable[tuple[str, dict[str, object]]]
    ) -> int:
        """Apply several ``(node_id, fields)`` updates, notifying once.

        Returns:
            Number of nodes updated.
        """
        count = 0
        for node_id, fields in updates:
            self._apply(node_id, fields)
            count += 1
        if count:
            self._emit()
        return count

    def _apply(self, node_id: str, fields: dict[str, object]) -> Node:
        unknown = set(fields) - _NODE_FIELDS - _META_FIELDS
        if unknown:
            raise ValueError(
                f"Unsupported node fields: {', '.join(sorted(unknown))}"
            )
        node = self.get(node_id)
        for name in _NODE_FIELDS & fields.keys():
            setattr(node, name, fields[name])
        meta_update = {
            name: fields[name] for name in _META_FIELDS & fields.keys()
        }
        if meta_update and node.markdown_meta is not None:
            node.markdown_meta = node.markdown_meta.model_copy(
                update=meta_update
            )
        return node

    def set_root_nodes(self, root_nodes: list[Node]) -> None:
        """Replace the whole forest and notify listeners."""
        self._root_nodes = list(root_nodes)
        self._emit()

    def toggle_collapsed(self, node_id: str) -> Node:
        node = self.get(node_id)
        return self.update_node(node_id, collapsed=not node.collapsed)

    # ------------------------------------------------------------------
    # Creation and removal
    # ------------------------------------------------------------------

    def add_child_node(self, parent_id: str | None, text: str = "") -> Node:
        """Append a new node as the last child of *parent_id*.

        With ``parent_id=None`` the node becomes the last root and copies
        the role of the last root (a level-1 heading for an empty map).

        Raises:
            KeyError: Unknown parent id.
        """
        if parent_id is None:
            siblings = self._root_nodes
            meta = None
            if siblings:
                meta = edits.sibling_meta_for(siblings[-1])
            if meta is None:
                meta = MarkdownMeta(
                    type=NodeType.HEADING, level=1, indent_level=0
                )
        else:
            parent = self.get(parent_id)
            siblings = parent.children
            meta = edits.child_meta_for(parent)

        node = Node(text=text, markdown_meta=meta)
        siblings.append(node)
        self._emit()
        return node

    def add_sibling_node(self, node_id: str, text: str = "") -> Node:
        """Insert a new node right after *node_id*, with the same role.

        Raises:
            KeyError: Unknown id.
        """
        found = find_with_parent(self._root_nodes, node_id)
        if found is None:
            raise KeyError(node_id)
        node, _parent, siblings = found
        new_node = Node(text=text, markdown_meta=edits.sibling_meta_for(node))
        siblings.insert(siblings.index(node) + 1, new_node)
        self._emit()
        return new_node

    def remove_node(self, node_id: str) -> Node:
        """Remove a node together with its subtree.

        Raises:
            KeyError: Unknown id.
        """
        found = find_with_parent(self._root_nodes, node_id)
        if found is None:
            raise KeyError(node_id)
        node, _parent, siblings = found
        siblings.remove(node)
        self._emit()
        return node

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def change_node_type(self, node_id: str, new_type: NodeType) -> Node:
        node = edits.change_node_type(self._root_nodes, node_id, new_type)
        self._emit()
        return node

    def change_list_type(self, node_id: str, new_type: NodeType) -> Node:
        node = edits.change_list_type(self._root_nodes, node_id, new_type)
        self._emit()
        return node

    def change_node_indent(
        self, node_id: str, direction: edits.IndentDirection
    ) -> Node:
        node = edits.change_node_indent(self._root_nodes, node_id, direction)
        self._emit()
        return node

    def toggle_checkbox(self, node_id: str) -> Node:
        node = edits.toggle_checkbox(self._root_nodes, node_id)
        self._emit()
        return node
