"""Exception types raised by the note store and persistence backends."""


class NotesAppError(Exception):
    """Base class for application errors."""


class FormatError(NotesAppError):
    """Loaded content is not a valid note collection."""


class StorageIOError(NotesAppError):
    """Reading or writing a storage target failed."""
