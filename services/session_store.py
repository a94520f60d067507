"""Server-side session data keyed by an opaque id kept in the signed session cookie."""
from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Optional

from flask import current_app, session

from extensions import cache

__all__ = [
    "SESSION_KEY_PREFIX",
    "session_id",
    "set_session_data",
    "get_session_data",
    "has_session_data",
    "clear_session_data",
    "drop_session",
]

_LOG = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"
_SID_COOKIE_KEY = "sid"
_DEFAULT_TTL = 60 * 60 * 24 * 30


def session_id(create: bool = True) -> Optional[str]:
    """Return this browser session's opaque id, minting one on first use."""
    sid = session.get(_SID_COOKIE_KEY)
    if not sid and create:
        sid = secrets.token_hex(16)
        session[_SID_COOKIE_KEY] = sid
        session.permanent = True
    return sid


def _cache_key(sid: str) -> str:
    return f"{SESSION_KEY_PREFIX}{sid}"


def _ttl() -> int:
    return int(current_app.config.get("SESSION_TTL_SECONDS", _DEFAULT_TTL))


def _load(sid: Optional[str]) -> Dict[str, Any]:
    if not sid:
        return {}
    data = cache.get(_cache_key(sid))
    return dict(data) if isinstance(data, dict) else {}


def _save(sid: str, data: Dict[str, Any]) -> None:
    if not cache.set(_cache_key(sid), data, timeout=_ttl()):
        _LOG.warning("Session store write was rejected by the cache backend")


def set_session_data(key: str, value: Any) -> None:
    sid = session_id()
    data = _load(sid)
    data[key] = value
    _save(sid, data)


def get_session_data(key: str, default: Any = None) -> Any:
    return _load(session_id(create=False)).get(key, default)


def has_session_data(key: str) -> bool:
    return key in _load(session_id(create=False))


def clear_session_data(key: str) -> None:
    sid = session_id(create=False)
    if not sid:
        return
    data = _load(sid)
    if data.pop(key, None) is not None:
        _save(sid, data)


def drop_session() -> None:
    """Forget all server-side data for this browser session (used on logout)."""
    sid = session.pop(_SID_COOKIE_KEY, None)
    if sid:
        cache.delete(_cache_key(sid))
