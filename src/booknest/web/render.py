"""Render admin pages from plain view data."""

from __future__ import annotations

from jinja2 import Environment, PackageLoader, select_autoescape

from ..core.models import Book, EditPageView, FlashMessage

env = Environment(
    loader=PackageLoader("booknest.web", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

NAV_LINKS = [
    ("Dashboard", "/dashboard"),
    ("Manage Books", "/manage_books"),
    ("Orders", "/orders"),
    ("View Site", "/books"),
    ("Logout", "/logout"),
]
PREVIEW_URL = "/book_details?id={book_id}"
DELETE_URL = "/delete_book?id={book_id}"


def delete_prompt(view: EditPageView) -> str:
    return (
        "Are you sure you want to delete this book?\n\n"
        f"Book: {view.heading_title}\n"
        f"Author: {view.author}\n\n"
        "This action cannot be undone!"
    )


def render_edit_page(view: EditPageView, flash: FlashMessage | None = None) -> str:
    template = env.get_template("edit_book.html")
    return template.render(
        view=view,
        flash=flash,
        nav_links=NAV_LINKS,
        preview_url=PREVIEW_URL.format(book_id=view.book_id),
        delete_url=DELETE_URL.format(book_id=view.book_id),
        delete_prompt=delete_prompt(view),
    )


def render_book_list(books: list[Book], flash: FlashMessage | None = None) -> str:
    template = env.get_template("manage_books.html")
    return template.render(books=books, flash=flash, nav_links=NAV_LINKS)
