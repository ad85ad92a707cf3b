"""In-memory server-side sessions carrying the signed-in user and flash messages."""

from __future__ import annotations

import os
import secrets
import time
from dataclasses import dataclass, field

import structlog

from .models import FlashMessage, User

log = structlog.get_logger()

SESSION_COOKIE = "booknest_session"
DEFAULT_TTL = 1800  # 30 minutes


@dataclass
class Session:
    user: User | None = None
    flash: FlashMessage | None = None
    created_at: float = field(default_factory=time.time)


class SessionStore:
    def __init__(self, ttl: float | None = None) -> None:
        if ttl is None:
            ttl = float(os.environ.get("SESSION_TTL", DEFAULT_TTL))
        self.ttl = ttl
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def clean_expired(self) -> None:
        now = time.time()
        expired = [sid for sid, s in self._sessions.items() if now - s.created_at > self.ttl]
        for sid in expired:
            self._sessions.pop(sid, None)
        if expired:
            log.debug("sessions_expired", count=len(expired))

    def create(self, user: User | None = None) -> str:
        self.clean_expired()
        session_id = secrets.token_urlsafe(24)
        self._sessions[session_id] = Session(user=user)
        return session_id

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if not session:
            return None
        if time.time() - session.created_at > self.ttl:
            self._sessions.pop(session_id, None)
            return None
        return session

    def current_user(self, session_id: str | None) -> User | None:
        session = self.get(session_id)
        return session.user if session else None

    def set_flash(self, session_id: str | None, flash: FlashMessage) -> None:
        session = self.get(session_id)
        if session is None:
            log.debug("flash_dropped", message=flash.message)
            return
        session.flash = flash

    def pop_flash(self, session_id: str | None) -> FlashMessage | None:
        session = self.get(session_id)
        if session is None:
            return None
        flash, session.flash = session.flash, None
        return flash

    def destroy(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
