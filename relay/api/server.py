"""
HTTP surface for the handoff relay.

Routes:
- GET /handoff          redeem a no-code platform handoff code, then redirect
- GET /auth/microsoft   fallback entry point: start provider-native OAuth (PKCE)
- GET /auth/callback    exchange the provider's authorization code for a session
- GET /healthz
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Query, Request
from fastapi.responses import RedirectResponse

from relay.auth import return_path
from relay.auth.config import RelayConfig, load_relay_config
from relay.auth.errors import SessionError
from relay.auth.handoff import HandoffRelay
from relay.auth.session import SessionGateway
from relay.auth.supabase import SupabaseAuthClient
from relay.auth.util import pkce_challenge, random_token

logger = logging.getLogger(__name__)

app = FastAPI(title="Handoff relay")

LOGIN_PATH = "/auth/login"
CALLBACK_PATH = "/auth/callback"
_VERIFIER_TTL_SECONDS = 10 * 60


def _origin(cfg: RelayConfig, request: Request) -> str:
    if cfg.public_base_url:
        return cfg.public_base_url
    return str(request.base_url).rstrip("/")


def _is_secure(cfg: RelayConfig, request: Request) -> bool:
    if cfg.public_base_url:
        return cfg.public_base_url.startswith("https://")
    return request.url.scheme == "https"


def _session_gateway(cfg: RelayConfig) -> Optional[SessionGateway]:
    if not cfg.session_provider_enabled:
        return None
    client = SupabaseAuthClient(
        str(cfg.supabase_url),
        str(cfg.supabase_anon_key),
        timeout=cfg.supabase_timeout_seconds,
    )
    return SessionGateway(client)


def _verifier_cookie_kwargs(gateway: SessionGateway, *, value: str, max_age: int, secure: bool) -> dict:
    return {
        "key": gateway.client.code_verifier_cookie_name,
        "value": value,
        "max_age": max_age,
        "httponly": True,
        "secure": secure,
        "samesite": "lax",
        "path": "/",
    }


def _redirect(location: str, cookies: Iterable[dict]) -> RedirectResponse:
    resp = RedirectResponse(url=location, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    for kwargs in cookies:
        resp.set_cookie(**kwargs)
    return resp


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests."""
    start_time = time.time()
    logger.debug("%s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


@app.get("/handoff")
def handoff(
    request: Request,
    code: Optional[str] = Query(None),
    next_path: Optional[str] = Query(None, alias="next"),
) -> RedirectResponse:
    """Redeem a handoff code from the no-code platform and sign the user in."""
    cfg = load_relay_config()
    relay = HandoffRelay(cfg, gateway=_session_gateway(cfg))
    outcome = relay.handle(
        origin=_origin(cfg, request),
        code=(code or "").strip() or None,
        query_next=next_path,
        cookie_next=request.cookies.get(return_path.RETURN_PATH_COOKIE),
        secure=_is_secure(cfg, request),
    )
    return _redirect(outcome.location, outcome.cookies)


@app.get("/auth/microsoft")
def auth_start(
    request: Request,
    next_path: Optional[str] = Query(None, alias="next"),
    handoff_error: Optional[str] = Query(None),
) -> RedirectResponse:
    """Fallback entry point: remember the return path and start provider-native OAuth."""
    cfg = load_relay_config()
    gateway = _session_gateway(cfg)
    origin = _origin(cfg, request)
    if handoff_error:
        logger.info("OAuth fallback after handoff failure: reason=%s", handoff_error)
    if gateway is None:
        logger.error("Cannot start OAuth: session provider is not configured (SUPABASE_URL/SUPABASE_ANON_KEY)")
        query = urlencode(
            {"error": "auth_code_error", "next": return_path.safe_return_path(next_path, cfg.default_next_path)}
        )
        return _redirect(f"{origin}{LOGIN_PATH}?{query}", [])

    secure = _is_secure(cfg, request)
    verifier = random_token(32)  # 43 chars (base64url) -> valid PKCE verifier
    url = gateway.client.authorize_url(
        provider=cfg.id_token_provider,
        redirect_to=f"{origin}{CALLBACK_PATH}",
        code_challenge=pkce_challenge(verifier),
    )
    return _redirect(
        url,
        [
            return_path.capture(next_path, secure=secure, default=cfg.default_next_path),
            _verifier_cookie_kwargs(gateway, value=verifier, max_age=_VERIFIER_TTL_SECONDS, secure=secure),
        ],
    )


@app.get("/auth/callback")
def auth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    next_path: Optional[str] = Query(None, alias="next"),
) -> RedirectResponse:
    """Exchange the provider's authorization code for a session, then go to the return path."""
    cfg = load_relay_config()
    gateway = _session_gateway(cfg)
    origin = _origin(cfg, request)
    secure = _is_secure(cfg, request)

    redirect_to = return_path.resolve(
        next_path,
        request.cookies.get(return_path.RETURN_PATH_COOKIE),
        cfg.default_next_path,
    )
    cookies = [return_path.clear(secure=secure)]
    if gateway is not None:
        cookies.append(_verifier_cookie_kwargs(gateway, value="", max_age=0, secure=secure))

    code = (code or "").strip()
    if code:
        try:
            if gateway is None:
                raise SessionError("signin_failed", "Session provider not configured")
            verifier = request.cookies.get(gateway.client.code_verifier_cookie_name)
            session = gateway.exchange_authorization_code(code, verifier)
        except SessionError as e:
            logger.warning("OAuth callback failed: reason=%s next=%s", e.reason, redirect_to)
            query = urlencode({"error": "auth_code_error", "next": redirect_to})
            return _redirect(f"{origin}{LOGIN_PATH}?{query}", cookies)
        cookies.extend(gateway.session_cookies(session, secure=secure))

    return _redirect(f"{origin}{redirect_to}", cookies)


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    import uvicorn

    # Configure logging for the application
    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    cfg = load_relay_config()
    # Avoid logging secrets; presence flags are fine.
    logger.info(
        "Relay config: redeem_url=%s shared_secret_set=%s session_provider_enabled=%s fallback_path=%s",
        cfg.redeem_url,
        bool(cfg.shared_secret),
        cfg.session_provider_enabled,
        cfg.fallback_path,
    )
    logger.info("Starting handoff relay on %s:%d (log_level=%s)", host, port, log_level)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level, proxy_headers=True)
