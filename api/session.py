"""
api/session.py — multi-user in-memory sessions (cookie based)

Each browser gets a UUID session id holding its own exam attempt.
Sessions expire after SESSION_TTL seconds without access.
"""

import threading
import time
import uuid
from typing import Any, Optional

from config import SESSION_TTL
from online_exam.services.exam_session import ExamSession

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}


def _new_state() -> dict[str, Any]:
    return {
        "exam": None,
        "parse_errors": [],
    }


def _close(state: dict[str, Any]) -> None:
    exam: Optional[ExamSession] = state.get("exam")
    if exam is not None:
        exam.close()


def create_session() -> str:
    """Create a session and return its id."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """Session data for sid. None if unknown or expired."""
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            _close(_sessions.pop(sid))
            del _timestamps[sid]
            return None
        _timestamps[sid] = time.time()  # refresh on access
        return _sessions[sid]


def get(sid: str, key: str, default=None):
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


def reset(sid: str) -> None:
    """Drop the current exam attempt and stop its countdown."""
    with _lock:
        if sid in _sessions:
            _close(_sessions[sid])
            _sessions[sid] = _new_state()
            _timestamps[sid] = time.time()


def cleanup_expired() -> int:
    """Remove expired sessions. Returns how many were removed."""
    now = time.time()
    removed = 0
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        for sid in expired:
            _close(_sessions.pop(sid))
            del _timestamps[sid]
            removed += 1
    return removed
