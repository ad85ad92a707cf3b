"""SQLite-backed repository for catalog books."""

from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import structlog

from .models import Book, BookFields

log = structlog.get_logger()

# Largest value a SQLite INTEGER column holds
MAX_INTEGER = 2**63 - 1

_COLUMNS = "book_id, title, author, genre, price, description, stock_quantity, cover_image"


@dataclass(frozen=True)
class Updated:
    rows_affected: int


@dataclass(frozen=True)
class UpdateFailed:
    reason: str


UpdateResult = Updated | UpdateFailed


def _price_text(price: Decimal) -> str:
    # Stored as fixed two-place text so equal prices compare equal in SQL
    return f"{price:.2f}"


def _row_to_book(row: tuple) -> Book:
    book_id, title, author, genre, price, description, stock, cover = row
    return Book(
        id=book_id,
        title=title,
        author=author,
        genre=genre or "",
        price=Decimal(price),
        description=description or "",
        stock_quantity=stock,
        cover_image=cover or "",
    )


class BookRepository:
    """Read and update books in a local SQLite database."""

    def __init__(self, db_path: Path | None = None):
        if db_path is None:
            db_path = Path(os.environ.get("DB_PATH", "data/booknest.db"))
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.execute(
            """CREATE TABLE IF NOT EXISTS books (
                book_id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                genre TEXT,
                price TEXT NOT NULL,
                description TEXT,
                stock_quantity INTEGER NOT NULL,
                cover_image TEXT
            )"""
        )
        self._conn.commit()

    def get_by_id(self, book_id: int) -> Book | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM books WHERE book_id = ?", (book_id,)
        ).fetchone()
        if row is None:
            log.debug("book_missing", book_id=book_id)
            return None
        return _row_to_book(row)

    def list_books(self) -> list[Book]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM books ORDER BY book_id"
        ).fetchall()
        return [_row_to_book(row) for row in rows]

    def add(self, fields: BookFields) -> int:
        """Insert a new book and return its id."""
        cursor = self._conn.execute(
            "INSERT INTO books (title, author, genre, price, description, stock_quantity, cover_image) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                fields.title,
                fields.author,
                fields.genre,
                _price_text(fields.price),
                fields.description,
                fields.stock_quantity,
                fields.cover_image,
            ),
        )
        self._conn.commit()
        log.debug("book_added", book_id=cursor.lastrowid)
        return cursor.lastrowid

    def update_by_id(self, book_id: int, fields: BookFields) -> UpdateResult:
        """Write every mutable field of one book.

        The row is only touched when at least one stored value differs, so an
        unchanged resubmission reports zero affected rows.
        """
        values = (
            fields.title,
            fields.author,
            fields.genre,
            _price_text(fields.price),
            fields.description,
            fields.stock_quantity,
            fields.cover_image,
        )
        try:
            cursor = self._conn.execute(
                "UPDATE books SET title = ?, author = ?, genre = ?, price = ?, "
                "description = ?, stock_quantity = ?, cover_image = ? "
                "WHERE book_id = ? AND (title IS NOT ? OR author IS NOT ? OR genre IS NOT ? "
                "OR price IS NOT ? OR description IS NOT ? OR stock_quantity IS NOT ? "
                "OR cover_image IS NOT ?)",
                (*values, book_id, *values),
            )
            self._conn.commit()
        except (sqlite3.Error, OverflowError) as e:
            self._conn.rollback()
            log.error("book_update_failed", book_id=book_id, error=str(e))
            return UpdateFailed(reason=str(e))

        log.info("book_update", book_id=book_id, rows=cursor.rowcount)
        return Updated(rows_affected=cursor.rowcount)

    def close(self) -> None:
        self._conn.close()
