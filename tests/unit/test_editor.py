from decimal import Decimal

import pytest

from booknest.core.editor import (
    DATABASE_ERROR_MESSAGE,
    NO_CHANGES_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    parse_book_id,
)
from booknest.core.errors import InvalidIdentifier
from booknest.core.models import CoverUpload, FlashMessage, Redirect, Render, UpdateRequest, User
from booknest.core.repository import UpdateFailed
from tests.conftest import PNG_BYTES


def _request(**overrides) -> UpdateRequest:
    values = {
        "title": "Dune",
        "author": "F. Herbert",
        "genre": "",
        "price": "10",
        "description": "",
        "stock_quantity": "5",
    }
    values.update(overrides)
    return UpdateRequest(**values)


@pytest.mark.parametrize("raw", ["12", " 12 ", "+12"])
def test_parse_book_id_accepts_positive_integers(raw):
    assert parse_book_id(raw) == 12


@pytest.mark.parametrize(
    "raw", [None, "", "0", "-3", "abc", "1.5", "1_000", "12abc", "1" + "0" * 20]
)
def test_parse_book_id_rejects_everything_else(raw):
    with pytest.raises(InvalidIdentifier):
        parse_book_id(raw)


@pytest.mark.parametrize("user", [None, User(id=2, role="customer")])
def test_non_admin_is_sent_to_login(handler, test_data, user):
    book = test_data.create_book()

    assert handler.show(user, str(book.id)) == Redirect("/login")
    assert handler.submit(user, str(book.id), _request()) == Redirect("/login")


@pytest.mark.parametrize("raw_id", ["0", "-1", "x", None])
def test_invalid_id_redirects_with_error(handler, admin, raw_id):
    outcome = handler.submit(admin, raw_id, _request())

    assert outcome == Redirect("/manage_books", FlashMessage("Invalid book ID", "error"))


def test_unknown_id_redirects_with_not_found(handler, admin, books, monkeypatch):
    calls = []
    monkeypatch.setattr(books, "update_by_id", lambda *args: calls.append(args))

    outcome = handler.submit(admin, "999", _request())

    assert outcome == Redirect("/manage_books", FlashMessage("Book not found", "error"))
    assert calls == []


def test_show_prefills_from_stored_book(handler, admin, test_data):
    book = test_data.create_book(title="Dune", price="9.5", stock_quantity=3)

    outcome = handler.show(admin, str(book.id))

    assert isinstance(outcome, Render)
    assert outcome.view.heading_title == "Dune"
    assert outcome.view.values.price == "9.50"
    assert outcome.view.values.stock_quantity == "3"
    assert outcome.view.errors == []
    assert outcome.view.cover_url is None


def test_missing_title_re_renders_with_submitted_values(handler, admin, test_data, books):
    book = test_data.create_book(title="Original", author="Someone")

    outcome = handler.submit(admin, str(book.id), _request(title="", author="Jane Doe"))

    assert isinstance(outcome, Render)
    assert outcome.view.errors == ["Title is required"]
    assert outcome.view.values.author == "Jane Doe"
    assert outcome.view.heading_title == "Original"
    assert books.get_by_id(book.id).author == "Someone"


def test_successful_update_redirects_with_title(handler, admin, test_data, books):
    book = test_data.create_book(title="Old")

    outcome = handler.submit(admin, str(book.id), _request(price="0", stock_quantity="0"))

    assert outcome == Redirect(
        "/manage_books", FlashMessage('Book "Dune" updated successfully!', "success")
    )
    stored = books.get_by_id(book.id)
    assert stored.price == Decimal("0.00")
    assert stored.stock_quantity == 0


def test_identical_submission_is_informational(handler, admin, test_data):
    book = test_data.create_book(title="Dune", author="F. Herbert", price="10", stock_quantity=5)

    outcome = handler.submit(admin, str(book.id), _request())

    assert outcome == Redirect("/manage_books", FlashMessage(NO_CHANGES_MESSAGE, "info"))


def test_update_without_upload_keeps_cover(handler, admin, test_data, books):
    cover = test_data.create_cover("old.png")
    book = test_data.create_book(cover_image=cover)

    handler.submit(admin, str(book.id), _request())

    assert books.get_by_id(book.id).cover_image == cover


def test_new_cover_replaces_and_deletes_old(handler, admin, test_data, books, covers):
    old = test_data.create_cover("old.png")
    book = test_data.create_book(cover_image=old)

    outcome = handler.submit(
        admin,
        str(book.id),
        _request(cover_image=CoverUpload("new.png", "image/png", PNG_BYTES)),
    )

    assert isinstance(outcome, Redirect)
    new = books.get_by_id(book.id).cover_image
    assert new != old
    assert covers.exists(new)
    assert not covers.exists(old)


def test_rejected_cover_blocks_update(handler, admin, test_data, books, covers):
    old = test_data.create_cover("old.png")
    book = test_data.create_book(title="Old", cover_image=old)

    outcome = handler.submit(
        admin,
        str(book.id),
        _request(cover_image=CoverUpload("notes.txt", "text/plain", b"text")),
    )

    assert isinstance(outcome, Render)
    assert outcome.view.errors == ["Invalid file type. Only JPG, PNG and GIF images are allowed."]
    assert books.get_by_id(book.id).title == "Old"
    assert covers.exists(old)


def test_stored_cover_is_discarded_when_validation_fails(handler, admin, test_data, books):
    old = test_data.create_cover("old.png")
    book = test_data.create_book(cover_image=old)

    outcome = handler.submit(
        admin,
        str(book.id),
        _request(price="-5", cover_image=CoverUpload("new.png", "image/png", PNG_BYTES)),
    )

    assert isinstance(outcome, Render)
    assert outcome.view.errors == ["Price cannot be negative"]
    assert test_data.stored_covers() == ["old.png"]
    assert books.get_by_id(book.id).cover_image == old


def test_storage_failure_shows_generic_message(handler, admin, test_data, books, monkeypatch):
    book = test_data.create_book(title="Old")
    monkeypatch.setattr(books, "update_by_id", lambda *args: UpdateFailed("disk I/O error"))

    outcome = handler.submit(admin, str(book.id), _request())

    assert isinstance(outcome, Render)
    assert outcome.view.errors == [DATABASE_ERROR_MESSAGE]
    assert outcome.view.values.title == "Dune"


def test_unexpected_failure_is_not_exposed(handler, admin, test_data, books, monkeypatch):
    book = test_data.create_book()

    def boom(*args):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(books, "update_by_id", boom)

    outcome = handler.submit(
        admin,
        str(book.id),
        _request(cover_image=CoverUpload("new.png", "image/png", PNG_BYTES)),
    )

    assert isinstance(outcome, Render)
    assert outcome.view.errors == [UNEXPECTED_ERROR_MESSAGE]
    assert test_data.stored_covers() == []


def test_oversized_price_keeps_title_error(handler, admin, test_data, books):
    book = test_data.create_book(title="Old")

    outcome = handler.submit(admin, str(book.id), _request(title="", price="1e30"))

    assert isinstance(outcome, Render)
    assert outcome.view.errors == ["Title is required", "Price must be a valid number"]
    assert books.get_by_id(book.id).title == "Old"


def test_oversized_stock_is_a_field_error(handler, admin, test_data, books):
    book = test_data.create_book(stock_quantity=2)

    outcome = handler.submit(admin, str(book.id), _request(stock_quantity="1" + "0" * 20))

    assert isinstance(outcome, Render)
    assert outcome.view.errors == ["Stock quantity is too large"]
    assert books.get_by_id(book.id).stock_quantity == 2
