"""Sanitize, coerce and validate submitted book fields."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .models import BookFields, UpdateRequest, ValidationResult
from .repository import MAX_INTEGER

MAX_TITLE_LENGTH = 255
MAX_AUTHOR_LENGTH = 255
MAX_GENRE_LENGTH = 100

_TAG_RE = re.compile(r"<[^>]*>")
_INT_RE = re.compile(r"[+-]?\d+")
_CENTS = Decimal("0.01")


def sanitize_text(value: str, multiline: bool = False) -> str:
    """Strip markup and control characters from a free-text field.

    Newlines and tabs survive only when ``multiline`` is set.
    """
    value = value.replace("\r\n", "\n").strip()
    value = _TAG_RE.sub("", value)
    value = value.replace("<", "").replace(">", "")
    keep = "\n\t" if multiline else ""
    value = "".join(ch for ch in value if ch in keep or (ord(ch) >= 32 and ord(ch) != 127))
    return value.strip()


def parse_price(raw: str) -> tuple[Decimal | None, str | None]:
    """Return (price, error). Exactly one of the two is None."""
    raw = raw.strip()
    if not raw:
        return None, "Price is required"
    try:
        price = Decimal(raw)
    except InvalidOperation:
        return None, "Price must be a valid number"
    if not price.is_finite():
        return None, "Price must be a valid number"
    if price < 0:
        return None, "Price cannot be negative"
    try:
        price = price.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None, "Price must be a valid number"
    # "-0" passes the sign check but would render as -0.00
    return price.copy_abs(), None


def parse_stock(raw: str) -> tuple[int | None, str | None]:
    """Return (stock_quantity, error). Exactly one of the two is None."""
    raw = raw.strip()
    if not raw:
        return None, "Stock quantity is required"
    if not _INT_RE.fullmatch(raw):
        return None, "Stock quantity must be a whole number"
    stock = int(raw)
    if stock < 0:
        return None, "Stock quantity cannot be negative"
    if stock > MAX_INTEGER:
        return None, "Stock quantity is too large"
    return stock, None


def validate_update(request: UpdateRequest) -> ValidationResult:
    """Sanitize and check every field, collecting all violations in field order."""
    errors: list[str] = []

    title = sanitize_text(request.title)
    author = sanitize_text(request.author)
    genre = sanitize_text(request.genre)
    description = sanitize_text(request.description, multiline=True)

    if not title:
        errors.append("Title is required")
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(f"Title must be at most {MAX_TITLE_LENGTH} characters")

    if not author:
        errors.append("Author is required")
    elif len(author) > MAX_AUTHOR_LENGTH:
        errors.append(f"Author must be at most {MAX_AUTHOR_LENGTH} characters")

    if len(genre) > MAX_GENRE_LENGTH:
        errors.append(f"Genre must be at most {MAX_GENRE_LENGTH} characters")

    price, price_error = parse_price(request.price)
    if price_error:
        errors.append(price_error)

    stock, stock_error = parse_stock(request.stock_quantity)
    if stock_error:
        errors.append(stock_error)

    fields = BookFields(
        title=title,
        author=author,
        genre=genre,
        price=price if price is not None else Decimal("0.00"),
        description=description,
        stock_quantity=stock if stock is not None else 0,
    )
    return ValidationResult(fields=fields, errors=errors)
