"""Exception taxonomy for the markdown sync engine.

- ``StructureNotFoundError``: parse input has no heading or list anchor.
  Recoverable; callers surface it as a warning and keep the prior tree.
- ``ConversionError``: a retype or serialize request cannot represent the
  requested shape.  The tree is left untouched.
- ``AdapterError``: raised by storage adapters and propagated unchanged
  to whoever asked for the save/load.
"""


class MindmarkError(Exception):
    """Base class for all mindmark errors."""


class StructureNotFoundError(MindmarkError):
    """Markdown text contains no heading and no list item."""

    def __init__(
        self,
        message: str = (
            "No structural elements found: markdown needs at least "
            "one heading or list item"
        ),
    ) -> None:
        super().__init__(message)


class ConversionError(MindmarkError):
    """A node edit or serialization cannot represent the requested shape.

    Attributes:
        node_id: Id of the node the operation targeted, if any.
    """

    def __init__(self, message: str, node_id: str | None = None) -> None:
        super().__init__(message)
        self.node_id = node_id


class AdapterError(MindmarkError):
    """Storage collaborator failure.

    Attributes:
        map_id: The map the storage call was made for.
    """

    def __init__(self, message: str, map_id: str | None = None) -> None:
        super().__init__(message)
        self.map_id = map_id
