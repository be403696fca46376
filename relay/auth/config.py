from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DEFAULT_REDEEM_URL = "https://demo-app-15880.bubbleapps.io/version-test/api/1.1/wf/redeem_handoff"
DEFAULT_NEXT_PATH = "/dashboard"
DEFAULT_FALLBACK_PATH = "/auth/microsoft"


@dataclass(frozen=True)
class RelayConfig:
    # Handoff redemption (no-code platform)
    redeem_url: str
    shared_secret: Optional[str]  # No default: absence is a classified failure
    redeem_timeout_seconds: float
    id_token_provider: str  # Provider identifier passed to the session provider

    # Redirects
    fallback_path: str
    default_next_path: str
    public_base_url: Optional[str]  # Origin override; request origin otherwise

    # Session provider (Supabase GoTrue)
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]
    supabase_timeout_seconds: float

    @property
    def session_provider_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def _env(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


def _seconds(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _path(name: str, default: str) -> str:
    value = _env(name) or default
    return value if value.startswith("/") else default


@lru_cache(maxsize=1)
def load_relay_config() -> RelayConfig:
    """
    Load relay configuration from environment variables.

    HANDOFF_SHARED_SECRET has no default; the relay reports `missing_secret_config`
    for every handoff until it is set.
    """
    return RelayConfig(
        redeem_url=_env("HANDOFF_REDEEM_URL") or DEFAULT_REDEEM_URL,
        shared_secret=_env("HANDOFF_SHARED_SECRET"),
        redeem_timeout_seconds=_seconds("HANDOFF_REDEEM_TIMEOUT_SECONDS", 8.0),
        id_token_provider=_env("HANDOFF_ID_TOKEN_PROVIDER") or "azure",
        fallback_path=_path("HANDOFF_FALLBACK_PATH", DEFAULT_FALLBACK_PATH),
        default_next_path=_path("RELAY_DEFAULT_NEXT_PATH", DEFAULT_NEXT_PATH),
        public_base_url=(_env("RELAY_PUBLIC_BASE_URL") or "").rstrip("/") or None,
        supabase_url=(_env("SUPABASE_URL") or "").rstrip("/") or None,
        supabase_anon_key=_env("SUPABASE_ANON_KEY"),
        supabase_timeout_seconds=_seconds("SUPABASE_TIMEOUT_SECONDS", 10.0),
    )
