"""
Pytest config.

Pins the repo root on sys.path so `import relay` works whether or not the project is
installed, and isolates every test from the developer's relay/Supabase environment.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

_RELAY_ENV_VARS = (
    "HANDOFF_REDEEM_URL",
    "HANDOFF_SHARED_SECRET",
    "HANDOFF_REDEEM_TIMEOUT_SECONDS",
    "HANDOFF_ID_TOKEN_PROVIDER",
    "HANDOFF_FALLBACK_PATH",
    "RELAY_DEFAULT_NEXT_PATH",
    "RELAY_PUBLIC_BASE_URL",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _isolate_relay_config(monkeypatch: pytest.MonkeyPatch):
    """
    Config is cached per process (lru_cache). Start each test from a clean environment
    and an empty cache so env changes made by the test are picked up.
    """
    from relay.auth.config import load_relay_config

    for name in _RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    load_relay_config.cache_clear()
    yield
    load_relay_config.cache_clear()


class FakeResponse:
    """Just enough of requests.Response for the relay's HTTP clients."""

    def __init__(self, *, status_code: int = 200, json_body=None, text: str = "", content_type: str = "application/json"):
        self.status_code = status_code
        self._json_body = json_body
        self.text = json.dumps(json_body) if json_body is not None else text
        self.headers = {"content-type": content_type} if content_type else {}
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        data = self.text.encode("utf-8")
        for i in range(0, len(data), chunk_size):
            yield data[i : i + chunk_size]

    def close(self) -> None:
        self.closed = True

    def json(self):
        if self._json_body is None:
            raise ValueError("not json")
        return self._json_body


@pytest.fixture
def fake_response():
    return FakeResponse
