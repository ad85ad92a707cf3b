from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from booknest.core.editor import BookEditHandler
from booknest.core.models import Book, BookFields, User
from booknest.core.repository import BookRepository
from booknest.core.sessions import SESSION_COOKIE, SessionStore
from booknest.core.storage import COVERS_DIR, CoverStorage
from booknest.web.app import create_app

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
GIF_BYTES = b"GIF89a" + b"\x00" * 64


class DataFactory:
    def __init__(self, books: BookRepository, covers: CoverStorage):
        self.books = books
        self.covers = covers

    def create_book(
        self,
        title: str = "Test Book",
        author: str = "Test Author",
        price: str = "10.00",
        stock_quantity: int = 5,
        **kwargs,
    ) -> Book:
        fields = BookFields(
            title=title,
            author=author,
            genre=kwargs.pop("genre", ""),
            price=Decimal(price),
            description=kwargs.pop("description", ""),
            stock_quantity=stock_quantity,
            cover_image=kwargs.pop("cover_image", ""),
        )
        book_id = self.books.add(fields)
        return self.books.get_by_id(book_id)

    def create_cover(self, name: str = "old.png", data: bytes = PNG_BYTES) -> str:
        relative = f"{COVERS_DIR}/{name}"
        (self.covers.root / relative).write_bytes(data)
        return relative

    def stored_covers(self) -> list[str]:
        return sorted(p.name for p in (self.covers.root / COVERS_DIR).iterdir())


@pytest.fixture
def books(tmp_path) -> BookRepository:
    repo = BookRepository(tmp_path / "db" / "booknest.db")
    yield repo
    repo.close()


@pytest.fixture
def covers(tmp_path) -> CoverStorage:
    return CoverStorage(tmp_path / "media", max_bytes=5 * 1024 * 1024)


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore(ttl=600)


@pytest.fixture
def test_data(books: BookRepository, covers: CoverStorage) -> DataFactory:
    return DataFactory(books, covers)


@pytest.fixture
def handler(books: BookRepository, covers: CoverStorage) -> BookEditHandler:
    return BookEditHandler(books, covers)


@pytest.fixture
def admin() -> User:
    return User(id=1, role="admin")


@pytest.fixture
def client(books: BookRepository, covers: CoverStorage, sessions: SessionStore):
    app = create_app(books=books, covers=covers, sessions=sessions)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client: TestClient, sessions: SessionStore, admin: User) -> TestClient:
    client.cookies.set(SESSION_COOKIE, sessions.create(admin))
    return client
