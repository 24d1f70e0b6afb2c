"""Markdown <-> node tree conversion.

Modules:

- ``models``      -- ``Node``, ``MarkdownMeta``, ``NodeType``,
  ``ParseResult``: the tree data contracts.
- ``common``      -- line classification shared by parser and edits.
- ``parser``      -- ``parse()``: markdown text to a node forest.
- ``serializer``  -- ``serialize()``: node forest to markdown text.
- ``edits``       -- structural retype/indent operations on a forest.
- ``preview``     -- HTML rendering of the markdown stream via ``mistune``.
"""

from .models import MarkdownMeta, Node, NodeType, ParseResult
from .parser import parse
from .serializer import serialize, serialize_with_lines

__all__ = [
    "MarkdownMeta",
    "Node",
    "NodeType",
    "ParseResult",
    "parse",
    "serialize",
    "serialize_with_lines",
]
