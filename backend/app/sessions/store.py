"""Session store: in-memory upload sessions with TTL-based expiry.

Uploaded content is NEVER written to disk. The store lives for the process
lifetime only and is lost on restart.

Expiry is enforced two ways:
  * lazily, by ``get()`` on the session being read;
  * in bulk, by ``sweep()`` (see ``sweeper.SessionSweeper``).

Thread safety: every operation holds ``_lock`` while touching the mapping,
so a session is removed by exactly one caller. Whichever of ``get()``,
``complete()`` or ``sweep()`` pops the entry is the remover; every other
caller sees it as already absent.
"""
from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, Optional, Sequence

from .clock import Clock, SystemClock
from .schemas import (
    DEFAULT_TTL_SECONDS,
    CompletionStatus,
    InvalidInputError,
    Session,
    SessionLookup,
    SessionMetadata,
    SessionStatus,
    UploadedFile,
)

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Interface between the HTTP layer and session state.

    Implementations must be thread-safe: FastAPI may call into the store from
    the event loop and from its thread-pool at the same time.
    """

    @abstractmethod
    def create(self, files: Sequence[UploadedFile]) -> str:
        """Store a new session holding *files* and return its ID.

        Raises:
            InvalidInputError: If *files* is empty.
        """

    @abstractmethod
    def get(self, session_id: str) -> SessionLookup:
        """Return session metadata, or NOT_FOUND / EXPIRED."""

    @abstractmethod
    def complete(self, session_id: str) -> CompletionStatus:
        """Remove a session regardless of expiry."""

    @abstractmethod
    def sweep(self) -> int:
        """Remove every expired session and return how many were removed."""


class InMemorySessionStore(SessionStore):
    """Dictionary-backed ``SessionStore``.

    Args:
        ttl_seconds: Session lifetime, counted from creation. Must be > 0.
        clock:       Time source. Defaults to ``SystemClock``.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Clock] = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(self, files: Sequence[UploadedFile]) -> str:
        files = tuple(files)
        if not files:
            raise InvalidInputError("No files uploaded")

        now = self._clock.now()
        with self._lock:
            session_id = str(uuid.uuid4())
            while session_id in self._sessions:
                session_id = str(uuid.uuid4())
            session = Session(
                id=session_id,
                files=files,
                created_at=now,
                expires_at=now + self._ttl,
            )
            self._sessions[session_id] = session

        logger.info(
            "Session %s created: %d file(s), %d bytes, expires %s",
            session_id,
            len(files),
            session.total_bytes,
            session.expires_at.isoformat(),
        )
        return session_id

    def get(self, session_id: str) -> SessionLookup:
        now = self._clock.now()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return SessionLookup(SessionStatus.NOT_FOUND)
            if now > session.expires_at:
                del self._sessions[session_id]
                expired = True
            else:
                expired = False

        if expired:
            logger.info("Session %s expired on access; evicted", session_id)
            return SessionLookup(SessionStatus.EXPIRED)
        return SessionLookup(SessionStatus.FOUND, SessionMetadata.from_session(session))

    def complete(self, session_id: str) -> CompletionStatus:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return CompletionStatus.NOT_FOUND
        logger.info(
            "Session %s completed; released %d file(s)", session_id, len(session.files)
        )
        return CompletionStatus.COMPLETED

    def sweep(self) -> int:
        now = self._clock.now()
        with self._lock:
            expired = [k for k, v in self._sessions.items() if v.expires_at < now]
            for k in expired:
                del self._sessions[k]
        if expired:
            logger.info("Session sweep: evicted %d expired session(s)", len(expired))
        return len(expired)
