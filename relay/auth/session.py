from __future__ import annotations

import json
import logging
from typing import List, Optional

from relay.auth.errors import SessionError
from relay.auth.supabase import ProviderSession, SupabaseAuthClient, SupabaseAuthError
from relay.auth.util import b64url

logger = logging.getLogger(__name__)

# Browsers cap cookies at ~4KB; the provider's SSR helpers split above this size.
MAX_COOKIE_CHUNK = 3180
SESSION_COOKIE_MAX_AGE = 400 * 24 * 60 * 60


def classify_provider_error(message: str) -> str:
    # A nonce mismatch means a stale or replayed handoff, not a provider outage.
    return "nonce_check" if "nonce" in (message or "").lower() else "signin_failed"


def _session_error(e: SupabaseAuthError, action: str) -> SessionError:
    kind = classify_provider_error(e.message)
    logger.error("Session provider %s failed: kind=%s status=%s message=%s", action, kind, e.status, e.message)
    return SessionError(kind, e.message)


class SessionGateway:
    """
    Mint sessions through the session provider and map its failures to SessionError.

    Cryptographic checks and token lifetimes are the provider's concern; this class only
    classifies errors and produces the cookie writes that persist the session.
    """

    def __init__(self, client: SupabaseAuthClient) -> None:
        self.client = client

    def exchange_id_token(self, token: str, provider: str) -> ProviderSession:
        try:
            return self.client.sign_in_with_id_token(provider=provider, token=token)
        except SupabaseAuthError as e:
            raise _session_error(e, "id_token sign-in") from None

    def exchange_authorization_code(self, code: str, code_verifier: Optional[str]) -> ProviderSession:
        if not code_verifier:
            logger.error("Authorization code exchange without a PKCE verifier cookie")
            raise SessionError("signin_failed", "Missing code verifier")
        try:
            return self.client.exchange_code_for_session(auth_code=code, code_verifier=code_verifier)
        except SupabaseAuthError as e:
            raise _session_error(e, "code exchange") from None

    def session_cookies(self, session: ProviderSession, *, secure: bool) -> List[dict]:
        """
        Cookie writes that persist `session` in the format the provider's SSR clients read:
        `base64-` + base64url(JSON), chunked as `<key>.0`, `<key>.1`, ... when oversized.
        """
        raw = json.dumps(session.model_dump(exclude_none=True), separators=(",", ":"))
        value = "base64-" + b64url(raw.encode("utf-8"))
        key = self.client.storage_key

        if len(value) <= MAX_COOKIE_CHUNK:
            chunks = [(key, value)]
        else:
            chunks = [
                (f"{key}.{i}", value[start : start + MAX_COOKIE_CHUNK])
                for i, start in enumerate(range(0, len(value), MAX_COOKIE_CHUNK))
            ]

        return [
            {
                "key": name,
                "value": chunk,
                "max_age": SESSION_COOKIE_MAX_AGE,
                "secure": secure,
                "samesite": "lax",
                "path": "/",
            }
            for name, chunk in chunks
        ]
