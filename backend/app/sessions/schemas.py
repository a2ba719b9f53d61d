"""Data models for upload sessions.

Two layers live here:
- Domain records (``UploadedFile``, ``Session``, ``SessionMetadata``) and the
  outcome enums returned by the session store. These are plain frozen
  dataclasses; nothing transport-specific leaks into them.
- Pydantic response models for the HTTP API. Field names are snake_case in
  Python and camelCase on the wire (``sessionId``, ``originalName``,
  ``expiresAt``) so existing clients keep working.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# Session lifetime: 5 minutes
DEFAULT_TTL_SECONDS = 5 * 60

# Upload limit per request (sum of all parts): 50MB
DEFAULT_MAX_PAYLOAD_BYTES = 50 * 1024 * 1024


class InvalidInputError(ValueError):
    """Raised when a session cannot be created from the given files."""


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class SessionStatus(str, Enum):
    """Result of looking a session up."""

    FOUND     = "found"
    NOT_FOUND = "not_found"
    EXPIRED   = "expired"    # reported once, by the lookup that evicted it


class CompletionStatus(str, Enum):
    """Result of completing a session."""

    COMPLETED = "completed"
    NOT_FOUND = "not_found"


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UploadedFile:
    """One file within a session.

    ``original_name`` is whatever the client sent. It is never sanitized
    because it is never used as a filesystem path.
    """

    original_name: str
    content: bytes
    size: int

    def __post_init__(self) -> None:
        if self.size < 0:
            raise InvalidInputError(f"File size must be >= 0, got {self.size}")
        if len(self.content) != self.size:
            raise InvalidInputError(
                f"Declared size {self.size} does not match content length "
                f"{len(self.content)} for {self.original_name!r}"
            )

    @classmethod
    def from_bytes(cls, original_name: str, content: bytes) -> "UploadedFile":
        return cls(original_name=original_name, content=content, size=len(content))


@dataclass(frozen=True)
class Session:
    """One upload batch. Immutable; only ever removed from the store."""

    id: str
    files: Tuple[UploadedFile, ...]
    created_at: datetime
    expires_at: datetime

    @property
    def total_bytes(self) -> int:
        return sum(f.size for f in self.files)


@dataclass(frozen=True)
class FileInfo:
    original_name: str
    size: int


@dataclass(frozen=True)
class SessionMetadata:
    """Read view of a session. Never carries file content."""

    session_id: str
    files: Tuple[FileInfo, ...]
    expires_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "SessionMetadata":
        return cls(
            session_id=session.id,
            files=tuple(FileInfo(f.original_name, f.size) for f in session.files),
            expires_at=session.expires_at,
        )


@dataclass(frozen=True)
class SessionLookup:
    """Outcome of ``SessionStore.get``; ``metadata`` is set only when FOUND."""

    status: SessionStatus
    metadata: Optional[SessionMetadata] = None

    @property
    def found(self) -> bool:
        return self.status is SessionStatus.FOUND


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UploadResponse(_CamelModel):
    """Returned by POST /api/upload."""

    session_id: str = Field(..., alias="sessionId", description="Generated session ID")


class FileInfoResponse(_CamelModel):
    original_name: str = Field(..., alias="originalName", description="Client-supplied filename")
    size: int = Field(..., ge=0, description="File size in bytes")


class SessionInfoResponse(_CamelModel):
    """Returned by GET /api/session/{session_id}."""

    files: List[FileInfoResponse] = Field(..., description="Files in upload order")
    expires_at: datetime = Field(..., alias="expiresAt", description="Expiry instant (UTC)")

    @classmethod
    def from_metadata(cls, metadata: SessionMetadata) -> "SessionInfoResponse":
        return cls(
            files=[
                FileInfoResponse(original_name=f.original_name, size=f.size)
                for f in metadata.files
            ],
            expires_at=metadata.expires_at,
        )


class CompleteResponse(BaseModel):
    """Returned by POST /api/session/{session_id}/complete."""

    message: str = "Session completed"


class ErrorResponse(BaseModel):
    error: str
