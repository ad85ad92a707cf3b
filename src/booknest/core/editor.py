"""Edit-book request handling: authorize, load, validate, persist, respond.

The handler knows nothing about HTTP. Routes hand it the signed-in user, the
raw ``id`` parameter and a typed :class:`UpdateRequest`; it answers with a
:class:`Redirect` or a :class:`Render` outcome.
"""

from __future__ import annotations

import re

import structlog

from .errors import InvalidIdentifier, NotFound
from .models import (
    Book,
    EditPageView,
    FlashCategory,
    FlashMessage,
    FormValues,
    Outcome,
    Redirect,
    Render,
    UpdateRequest,
    User,
)
from .repository import MAX_INTEGER, BookRepository, UpdateFailed
from .storage import CoverStorage, Stored
from .validation import sanitize_text, validate_update

log = structlog.get_logger()

_ID_RE = re.compile(r"[+-]?\d+")

INVALID_ID_MESSAGE = "Invalid book ID"
NOT_FOUND_MESSAGE = "Book not found"
NO_CHANGES_MESSAGE = "No changes were made to the book."
DATABASE_ERROR_MESSAGE = "Database error: Unable to update book. Please try again."
UNEXPECTED_ERROR_MESSAGE = "Unexpected error occurred. Please try again."


def parse_book_id(raw: str | None) -> int:
    """Coerce the ``id`` parameter to a positive integer."""
    text = (raw or "").strip()
    if not _ID_RE.fullmatch(text):
        raise InvalidIdentifier(raw)
    book_id = int(text)
    if book_id <= 0 or book_id > MAX_INTEGER:
        raise InvalidIdentifier(raw)
    return book_id


def _submitted_values(request: UpdateRequest) -> FormValues:
    return FormValues(
        title=sanitize_text(request.title),
        author=sanitize_text(request.author),
        genre=sanitize_text(request.genre),
        price=request.price.strip(),
        description=sanitize_text(request.description, multiline=True),
        stock_quantity=request.stock_quantity.strip(),
    )


class BookEditHandler:
    def __init__(
        self,
        books: BookRepository,
        covers: CoverStorage,
        *,
        list_url: str = "/manage_books",
        login_url: str = "/login",
        media_url: str = "/media",
    ) -> None:
        self.books = books
        self.covers = covers
        self.list_url = list_url
        self.login_url = login_url
        self.media_url = media_url.rstrip("/")

    def authorize(self, user: User | None) -> Redirect | None:
        """Return a login redirect unless ``user`` is an admin."""
        if user is None or not user.is_admin:
            log.info("edit_book_unauthorized", user_id=user.id if user else None)
            return Redirect(self.login_url)
        return None

    def load_book(self, raw_id: str | None) -> Book:
        book_id = parse_book_id(raw_id)
        book = self.books.get_by_id(book_id)
        if book is None:
            raise NotFound(book_id)
        return book

    def _to_list(self, message: str, category: FlashCategory) -> Redirect:
        return Redirect(self.list_url, FlashMessage(message, category))

    def _load_or_redirect(self, raw_id: str | None) -> Book | Redirect:
        try:
            return self.load_book(raw_id)
        except InvalidIdentifier:
            log.info("edit_book_invalid_id", raw_id=raw_id)
            return self._to_list(INVALID_ID_MESSAGE, "error")
        except NotFound as e:
            log.info("edit_book_not_found", book_id=e.book_id)
            return self._to_list(NOT_FOUND_MESSAGE, "error")

    def view(self, book: Book, values: FormValues, errors: list[str] | None = None) -> EditPageView:
        cover_url = None
        if self.covers.exists(book.cover_image):
            cover_url = f"{self.media_url}/{book.cover_image}"
        return EditPageView(
            book_id=book.id,
            heading_title=book.title,
            author=book.author,
            values=values,
            errors=list(errors or []),
            cover_url=cover_url,
            has_cover=bool(book.cover_image),
        )

    def show(self, user: User | None, raw_id: str | None) -> Outcome:
        """Handle GET: render the form pre-filled from the stored book."""
        denied = self.authorize(user)
        if denied:
            return denied
        loaded = self._load_or_redirect(raw_id)
        if isinstance(loaded, Redirect):
            return loaded
        return Render(self.view(loaded, FormValues.from_book(loaded)))

    def submit(self, user: User | None, raw_id: str | None, request: UpdateRequest) -> Outcome:
        """Handle POST: validate, optionally replace the cover, then persist."""
        denied = self.authorize(user)
        if denied:
            return denied
        loaded = self._load_or_redirect(raw_id)
        if isinstance(loaded, Redirect):
            return loaded
        book = loaded

        values = _submitted_values(request)
        errors: list[str] = []
        new_cover: str | None = None
        committed = False
        try:
            result = validate_update(request)
            errors.extend(result.errors)

            cover_image = book.cover_image
            if request.cover_image is not None:
                stored = self.covers.store(request.cover_image)
                if isinstance(stored, Stored):
                    new_cover = cover_image = stored.filename
                else:
                    errors.append(stored.reason)

            if not errors:
                result.fields.cover_image = cover_image
                update = self.books.update_by_id(book.id, result.fields)
                if isinstance(update, UpdateFailed):
                    log.error("edit_book_persist_failed", book_id=book.id, reason=update.reason)
                    errors.append(DATABASE_ERROR_MESSAGE)
                elif update.rows_affected > 0:
                    committed = True
                    if new_cover and book.cover_image:
                        self.covers.delete(book.cover_image)
                    log.info("edit_book_updated", book_id=book.id, cover_replaced=bool(new_cover))
                    return self._to_list(
                        f'Book "{result.fields.title}" updated successfully!', "success"
                    )
                else:
                    log.info("edit_book_unchanged", book_id=book.id)
                    return self._to_list(NO_CHANGES_MESSAGE, "info")
        except Exception:
            log.exception("edit_book_unexpected_error", book_id=book.id)
            errors.append(UNEXPECTED_ERROR_MESSAGE)
        finally:
            if new_cover and not committed:
                self.covers.delete(new_cover)

        log.info("edit_book_rejected", book_id=book.id, errors=len(errors))
        return Render(self.view(book, values, errors))
