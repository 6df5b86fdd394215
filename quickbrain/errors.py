"""Exceptions raised by the QuickBrain engine and services."""


class QuickBrainError(Exception):
    """Base class for QuickBrain failures."""


class NoteNotFoundError(QuickBrainError, LookupError):
    """The note does not exist (never created, or deleted mid-session)."""

    def __init__(self, note_id: str):
        super().__init__(f"Note '{note_id}' not found")
        self.note_id = note_id


class InvalidQualityError(QuickBrainError, ValueError):
    """A review rating outside 1..5."""

    def __init__(self, quality):
        super().__init__(f"quality must be an integer from 1 to 5, got {quality!r}")
        self.quality = quality


class ImportFormatError(QuickBrainError, ValueError):
    """The import payload as a whole is unreadable; nothing was written."""
