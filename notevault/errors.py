"""Exception taxonomy for the note store.

CRUD operations raise these. Import failures on individual entities are
collected into ImportResult.errors instead of being raised.
"""


class NoteVaultError(Exception):
    """Base class for all notevault errors."""


class NotFoundError(NoteVaultError):
    """A referenced folder, file or parent does not exist."""


class InvalidOperationError(NoteVaultError):
    """The requested action is structurally disallowed.

    Examples: deleting the root folder, or a non-recursive delete of a
    folder that still has children.
    """


class ValidationError(NoteVaultError):
    """An import payload (or import option) is malformed."""
