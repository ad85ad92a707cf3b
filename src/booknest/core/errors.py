"""Errors raised while handling an edit request."""

from __future__ import annotations


class EditError(Exception):
    """Base class for errors that end an edit request early."""


class InvalidIdentifier(EditError):
    def __init__(self, raw: object) -> None:
        super().__init__(f"invalid book id: {raw!r}")
        self.raw = raw


class NotFound(EditError):
    def __init__(self, book_id: int) -> None:
        super().__init__(f"book {book_id} not found")
        self.book_id = book_id


class InvalidSubmission(EditError):
    """The submitted form does not have the expected shape."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason
