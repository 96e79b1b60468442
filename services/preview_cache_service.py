"""
Temporary storage for import sessions.
Keeps sessions in memory with TTL expiration, keyed by session id.
Single-process only: sessions do not survive a restart.
"""
import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from config import settings

_cache: dict[str, tuple[datetime, Any]] = {}
_lock = threading.Lock()


def new_session_id() -> str:
    return str(uuid.uuid4())


def store_session(session_id: str, data: Any, ttl_minutes: Optional[int] = None) -> str:
    """Store (or refresh) a session, return its id."""
    ttl = ttl_minutes if ttl_minutes is not None else settings.import_preview_ttl_minutes
    expires_at = datetime.now() + timedelta(minutes=ttl)
    with _lock:
        _cache[session_id] = (expires_at, data)
        _cleanup_expired()
    return session_id


def retrieve_session(session_id: str) -> Optional[Any]:
    """Session data by id. Returns None if expired/not found."""
    with _lock:
        entry = _cache.get(session_id)
        if entry is None:
            return None
        expires_at, data = entry
        if datetime.now() > expires_at:
            del _cache[session_id]
            return None
        return data


def delete_session(session_id: str) -> None:
    """Remove a session after back-to-upload or once it is no longer needed."""
    with _lock:
        _cache.pop(session_id, None)


def clear() -> None:
    """Drop every session."""
    with _lock:
        _cache.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries. Caller holds the lock."""
    now = datetime.now()
    expired = [k for k, (exp, _) in _cache.items() if now > exp]
    for k in expired:
        del _cache[k]
