"""Line classification shared by the parser, serializer and edits.

Recognized structural lines (everything else is note content):

- Headings: ``#`` through ``######`` followed by whitespace.
- Unordered list items: ``-``, ``*`` or ``+`` followed by whitespace.
  ``[ ]`` / ``[x]`` right after the marker makes the item a checkbox.
- Ordered list items: digits and a dot (``1.``).  The numeral carries no
  meaning; the serializer renumbers.

The text after the marker may be empty: ``# `` and ``- `` are nodes with
empty text, which is how the serializer writes them.
"""

import re
from dataclasses import dataclass

from .models import NodeType

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*)$")
LIST_PATTERN = re.compile(r"^(\s*)([-*+]|\d+\.)\s+(.*)$")
CHECKBOX_PATTERN = re.compile(r"^\[([ xX])\](?:\s+(.*))?$")

# Markers removed from a node's text when it is retyped
_MARKER_PATTERNS = (
    re.compile(r"^#+\s*"),
    re.compile(r"^\s*[-*+]\s*"),
    re.compile(r"^\s*\d+\.\s*"),
)

MAX_HEADING_LEVEL = 6
INDENT_WIDTH = 2


@dataclass
class StructureLine:
    """A structural line recognized by ``classify_line``.

    Attributes:
        type: Heading or list type.
        level: Heading level, or list nesting level (1-based).
        text: Line text with markers stripped.
        indent_level: Leading spaces (lists only, ``0`` for headings).
        is_checkbox: Item written as ``- [ ]`` / ``- [x]``.
        is_checked: Checkbox is ticked.
    """

    type: NodeType
    level: int
    text: str
    indent_level: int = 0
    is_checkbox: bool = False
    is_checked: bool = False


def classify_line(line: str) -> StructureLine | None:
    """Classify one line of markdown.

    Args:
        line: A single line without its line ending.

    Returns:
        ``StructureLine`` for headings and list items, ``None`` for note
        content.

    Examples:
        >>> classify_line("## Title").level
        2
        >>> classify_line("  - [x] done").is_checked
        True
        >>> classify_line("plain text") is None
        True
    """
    heading = HEADING_PATTERN.match(line)
    if heading:
        return StructureLine(
            type=NodeType.HEADING,
            level=len(heading.group(1)),
            text=heading.group(2).strip(),
        )

    item = LIST_PATTERN.match(line)
    if not item:
        return None

    indent = len(item.group(1))
    marker = item.group(2)
    text = item.group(3).strip()

    if marker[0].isdigit():
        return StructureLine(
            type=NodeType.ORDERED_LIST,
            level=indent // INDENT_WIDTH + 1,
            text=text,
            indent_level=indent,
        )

    is_checkbox = False
    is_checked = False
    box = CHECKBOX_PATTERN.match(text)
    if box:
        is_checkbox = True
        is_checked = box.group(1) in ("x", "X")
        text = (box.group(2) or "").strip()

    return StructureLine(
        type=NodeType.UNORDERED_LIST,
        level=indent // INDENT_WIDTH + 1,
        text=text,
        indent_level=indent,
        is_checkbox=is_checkbox,
        is_checked=is_checked,
    )


def detect_line_ending(text: str) -> str:
    """Return ``"\\r\\n"`` if the text uses CRLF line endings, else ``"\\n"``."""
    return "\r\n" if "\r\n" in text else "\n"


def strip_markers(text: str) -> str:
    """Remove heading/list markers a user may have typed into a node's text."""
    for pattern in _MARKER_PATTERNS:
        text = pattern.sub("", text)
    return text
