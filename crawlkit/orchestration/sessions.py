"""Bookkeeping for named browser sessions on the crawl server.

The crawl server owns the actual browser; this store only remembers which
session ids were handed out and when they were last used. A store is created
by whoever serves the tools and passed explicitly to the handlers that need it.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator

DEFAULT_BROWSER_TYPE = "chromium"
BROWSER_TYPES = ("chromium", "firefox", "webkit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_session_id() -> str:
    return f"session-{int(time.time() * 1000)}-{secrets.token_hex(5)}"


@dataclass
class SessionInfo:
    session_id: str
    created_at: datetime
    last_used: datetime
    initial_url: str | None = None
    browser_type: str = DEFAULT_BROWSER_TYPE

    def to_dict(self, now: datetime | None = None) -> dict[str, object]:
        now = now or _utcnow()
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "last_used": self.last_used.isoformat(),
            "age_minutes": int((now - self.created_at).total_seconds() // 60),
            "last_used_minutes_ago": int((now - self.last_used).total_seconds() // 60),
            "initial_url": self.initial_url,
            "browser_type": self.browser_type,
        }


@dataclass
class SessionStore:
    """In-memory map of session id to SessionInfo."""

    clock: Callable[[], datetime] = _utcnow
    _sessions: dict[str, SessionInfo] = field(default_factory=dict)

    def create(
        self,
        session_id: str | None = None,
        initial_url: str | None = None,
        browser_type: str | None = None,
    ) -> SessionInfo:
        now = self.clock()
        info = SessionInfo(
            session_id=session_id or generate_session_id(),
            created_at=now,
            last_used=now,
            initial_url=initial_url,
            browser_type=browser_type or DEFAULT_BROWSER_TYPE,
        )
        self._sessions[info.session_id] = info
        return info

    def touch(self, session_id: str) -> bool:
        """Update ``last_used``; returns False for unknown sessions."""
        info = self._sessions.get(session_id)
        if info is None:
            return False
        info.last_used = self.clock()
        return True

    def clear(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def get(self, session_id: str) -> SessionInfo | None:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[SessionInfo]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)
