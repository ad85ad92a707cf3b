"""Data models for catalog records and edit requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

FlashCategory = Literal["success", "error", "info"]


@dataclass
class Book:
    id: int
    title: str
    author: str
    genre: str = ""
    price: Decimal = Decimal("0.00")
    description: str = ""
    stock_quantity: int = 0
    cover_image: str = ""


@dataclass(frozen=True)
class User:
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class CoverUpload:
    """A file submitted in the cover_image field."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UpdateRequest:
    """Raw submitted fields of the edit form, as strings."""

    title: str = ""
    author: str = ""
    genre: str = ""
    price: str = ""
    description: str = ""
    stock_quantity: str = ""
    cover_image: CoverUpload | None = None


@dataclass
class BookFields:
    """Sanitized and coerced values ready to be written to a Book row."""

    title: str
    author: str
    genre: str
    price: Decimal
    description: str
    stock_quantity: int
    cover_image: str = ""


@dataclass
class ValidationResult:
    fields: BookFields
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class FlashMessage:
    message: str
    category: FlashCategory


@dataclass
class FormValues:
    """Values shown in the edit form inputs."""

    title: str = ""
    author: str = ""
    genre: str = ""
    price: str = ""
    description: str = ""
    stock_quantity: str = ""

    @classmethod
    def from_book(cls, book: Book) -> FormValues:
        return cls(
            title=book.title,
            author=book.author,
            genre=book.genre,
            price=f"{book.price:.2f}",
            description=book.description,
            stock_quantity=str(book.stock_quantity),
        )


@dataclass
class EditPageView:
    book_id: int
    heading_title: str
    author: str
    values: FormValues
    errors: list[str] = field(default_factory=list)
    cover_url: str | None = None
    has_cover: bool = False


@dataclass(frozen=True)
class Redirect:
    location: str
    flash: FlashMessage | None = None


@dataclass(frozen=True)
class Render:
    view: EditPageView


Outcome = Redirect | Render
