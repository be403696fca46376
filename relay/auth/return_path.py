from __future__ import annotations

from typing import Optional
from urllib.parse import quote, unquote

from relay.auth.config import DEFAULT_NEXT_PATH

RETURN_PATH_COOKIE = "auth-next"
RETURN_PATH_TTL_SECONDS = 5 * 60


def is_valid_return_path(path: Optional[str]) -> bool:
    """
    Only same-origin relative paths are accepted. No scheme/host checks are needed
    beyond this because absolute URLs never start with `/`.
    """
    return bool(path) and path.startswith("/")


def safe_return_path(path: Optional[str], default: str = DEFAULT_NEXT_PATH) -> str:
    return path if is_valid_return_path(path) else default


def _cookie_kwargs(*, value: str, max_age: int, secure: bool) -> dict:
    return {
        "key": RETURN_PATH_COOKIE,
        "value": value,
        "max_age": max_age,
        "secure": secure,
        "samesite": "lax",
        "path": "/",
    }


def capture(candidate_path: Optional[str], *, secure: bool, default: str = DEFAULT_NEXT_PATH) -> dict:
    """Cookie write that carries the desired return path to the next request."""
    safe = safe_return_path(candidate_path, default)
    return _cookie_kwargs(value=quote(safe, safe=""), max_age=RETURN_PATH_TTL_SECONDS, secure=secure)


def clear(*, secure: bool) -> dict:
    return _cookie_kwargs(value="", max_age=0, secure=secure)


def decode_cookie(cookie_value: Optional[str]) -> Optional[str]:
    if not cookie_value:
        return None
    return unquote(cookie_value)


def resolve(query_path: Optional[str], cookie_value: Optional[str], default: str = DEFAULT_NEXT_PATH) -> str:
    """
    Pick the return path: a valid query path wins, then a valid cookie path,
    then the default.
    """
    if is_valid_return_path(query_path):
        return str(query_path)
    from_cookie = decode_cookie(cookie_value)
    if is_valid_return_path(from_cookie):
        return str(from_cookie)
    return default
