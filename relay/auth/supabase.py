"""
Minimal Supabase Auth (GoTrue) REST client.

Only the calls the relay needs: id-token sign-in, PKCE code exchange, and the
authorize URL that starts a provider-native OAuth flow.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urlparse

import requests
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class ProviderSession(BaseModel):
    """Session returned by the provider's token endpoint."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: Optional[int] = None
    user: Dict[str, Any] = Field(default_factory=dict)


class SupabaseAuthError(Exception):
    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def _error_message(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return f"status={r.status_code}"
    if not isinstance(data, dict):
        return f"status={r.status_code}"
    for key in ("error_description", "msg", "message", "error"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return f"status={r.status_code}"


class SupabaseAuthClient:
    def __init__(self, url: str, anon_key: str, *, timeout: float = 10.0) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout

    @property
    def project_ref(self) -> str:
        host = urlparse(self.url).hostname or ""
        return host.split(".")[0] or "local"

    @property
    def storage_key(self) -> str:
        return f"sb-{self.project_ref}-auth-token"

    @property
    def code_verifier_cookie_name(self) -> str:
        return f"{self.storage_key}-code-verifier"

    def authorize_url(self, *, provider: str, redirect_to: str, code_challenge: str, scopes: str = "email") -> str:
        params = {
            "provider": provider,
            "redirect_to": redirect_to,
            "scopes": scopes,
            "code_challenge": code_challenge,
            "code_challenge_method": "s256",
        }
        return f"{self.url}/auth/v1/authorize?{urlencode(params)}"

    def _token(self, grant_type: str, body: Dict[str, Any]) -> ProviderSession:
        endpoint = f"{self.url}/auth/v1/token"
        try:
            r = requests.post(
                endpoint,
                params={"grant_type": grant_type},
                json=body,
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {self.anon_key}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise SupabaseAuthError(f"Token request failed: {type(e).__name__}") from None

        if r.status_code >= 400:
            raise SupabaseAuthError(_error_message(r), status=r.status_code)

        try:
            data = r.json()
        except ValueError:
            raise SupabaseAuthError("Invalid token response") from None
        try:
            return ProviderSession.model_validate(data)
        except ValidationError:
            raise SupabaseAuthError("Invalid session in token response") from None

    def sign_in_with_id_token(self, *, provider: str, token: str) -> ProviderSession:
        return self._token("id_token", {"provider": provider, "id_token": token})

    def exchange_code_for_session(self, *, auth_code: str, code_verifier: str) -> ProviderSession:
        return self._token("pkce", {"auth_code": auth_code, "code_verifier": code_verifier})
