"""FastAPI web application for the BookNest admin pages."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

import structlog
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import FormData, UploadFile

from .. import __version__
from ..core.editor import BookEditHandler
from ..core.errors import InvalidSubmission
from ..core.models import CoverUpload, Redirect, UpdateRequest
from ..core.repository import BookRepository
from ..core.sessions import SESSION_COOKIE, SessionStore
from ..core.storage import CoverStorage
from .render import render_book_list, render_edit_page

load_dotenv()

log = structlog.get_logger()

VERSION = __version__
STATIC_DIR = Path(__file__).parent / "static"
LIST_URL = "/manage_books"
MEDIA_URL = "/media"
LOGIN_URL = os.environ.get("LOGIN_URL", "/login")

TEXT_FIELDS = ("title", "author", "genre", "price", "description", "stock_quantity")

router = APIRouter()


def _handler(request: Request) -> BookEditHandler:
    return request.app.state.handler


def _sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def _session_id(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE)


async def read_update_request(form: FormData, max_bytes: int) -> UpdateRequest:
    """Extract the edit form fields, rejecting anything of the wrong shape."""
    values: dict[str, str] = {}
    for name in TEXT_FIELDS:
        items = form.getlist(name)
        if len(items) > 1:
            raise InvalidSubmission(name, "submitted more than once")
        value = items[0] if items else ""
        if not isinstance(value, str):
            raise InvalidSubmission(name, "expected a text value")
        values[name] = value

    cover = None
    upload = form.get("cover_image")
    if isinstance(upload, UploadFile):
        # An empty file input still sends a part, just without a filename
        if upload.filename:
            data = await upload.read(max_bytes + 1)
            cover = CoverUpload(
                filename=upload.filename,
                content_type=upload.content_type or "",
                data=data,
            )
    elif upload:
        raise InvalidSubmission("cover_image", "expected a file upload")

    return UpdateRequest(cover_image=cover, **values)


def _respond(request: Request, outcome: Redirect) -> RedirectResponse:
    if outcome.flash:
        _sessions(request).set_flash(_session_id(request), outcome.flash)
    return RedirectResponse(url=outcome.location, status_code=303)


@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "environment": os.environ.get("ENV", "dev"),
        "sessions_active": len(_sessions(request)),
    }


@router.get("/")
async def index():
    return RedirectResponse(url=LIST_URL, status_code=303)


@router.get(LIST_URL, response_class=HTMLResponse)
async def manage_books(request: Request):
    handler = _handler(request)
    denied = handler.authorize(_sessions(request).current_user(_session_id(request)))
    if denied:
        return _respond(request, denied)
    flash = _sessions(request).pop_flash(_session_id(request))
    return HTMLResponse(render_book_list(handler.books.list_books(), flash))


@router.get("/edit_book", response_class=HTMLResponse)
async def edit_book_form(request: Request):
    user = _sessions(request).current_user(_session_id(request))
    outcome = _handler(request).show(user, request.query_params.get("id"))
    if isinstance(outcome, Redirect):
        return _respond(request, outcome)
    flash = _sessions(request).pop_flash(_session_id(request))
    return HTMLResponse(render_edit_page(outcome.view, flash))


@router.post("/edit_book", response_class=HTMLResponse)
async def edit_book_submit(request: Request):
    handler = _handler(request)
    user = _sessions(request).current_user(_session_id(request))
    denied = handler.authorize(user)
    if denied:
        return _respond(request, denied)

    async with request.form() as form:
        try:
            update = await read_update_request(form, handler.covers.max_bytes)
        except InvalidSubmission as e:
            log.warning("edit_book_bad_submission", field=e.field, reason=e.reason)
            return PlainTextResponse("Malformed form submission.", status_code=400)

    outcome = handler.submit(user, request.query_params.get("id"), update)
    if isinstance(outcome, Redirect):
        return _respond(request, outcome)
    flash = _sessions(request).pop_flash(_session_id(request))
    return HTMLResponse(render_edit_page(outcome.view, flash))


def create_app(
    books: BookRepository | None = None,
    covers: CoverStorage | None = None,
    sessions: SessionStore | None = None,
) -> FastAPI:
    """Build the application. Collaborators default to the environment config."""
    if books is None:
        books = BookRepository()
    if covers is None:
        covers = CoverStorage()
    if sessions is None:
        sessions = SessionStore()

    app = FastAPI(title="BookNest Admin", docs_url=None, redoc_url=None)
    app.state.sessions = sessions
    app.state.handler = BookEditHandler(
        books,
        covers,
        list_url=LIST_URL,
        login_url=LOGIN_URL,
        media_url=MEDIA_URL,
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    app.include_router(router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.mount(MEDIA_URL, StaticFiles(directory=str(covers.root)), name="media")
    log.info("app_created", db=str(books.db_path), media=str(covers.root))
    return app


def main():
    port = int(os.environ.get("PORT", "8000"))
    is_dev = os.environ.get("ENV", "dev") == "dev"
    uvicorn.run(
        "booknest.web.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        reload=is_dev,
    )
