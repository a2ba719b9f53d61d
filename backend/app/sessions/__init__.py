"""Transient upload sessions.

A batch of uploaded files is held in memory under a generated session ID
until the client completes the session or its TTL (5 minutes by default)
runs out. Nothing is written to disk.
"""
from .clock import Clock, ManualClock, SystemClock
from .schemas import (
    CompletionStatus,
    InvalidInputError,
    Session,
    SessionLookup,
    SessionMetadata,
    SessionStatus,
    UploadedFile,
)
from .store import InMemorySessionStore, SessionStore
from .sweeper import SessionSweeper

__all__ = [
    "Clock",
    "ManualClock",
    "SystemClock",
    "CompletionStatus",
    "InvalidInputError",
    "Session",
    "SessionLookup",
    "SessionMetadata",
    "SessionStatus",
    "UploadedFile",
    "InMemorySessionStore",
    "SessionStore",
    "SessionSweeper",
]
