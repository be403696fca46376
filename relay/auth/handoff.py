from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional
from urllib.parse import urlencode

from relay.auth import return_path
from relay.auth.classify import classify, describe_payload
from relay.auth.config import RelayConfig
from relay.auth.errors import (
    HandoffFailure,
    HandoffPayloadError,
    MissingConfig,
    MissingHandoffCode,
    SessionError,
)
from relay.auth.redeem import redeem_handoff_code
from relay.auth.session import SessionGateway

logger = logging.getLogger(__name__)

Redeemer = Callable[..., Any]


@dataclass(frozen=True)
class RelayOutcome:
    """Where to send the browser, plus the cookie writes that go with the redirect."""

    location: str
    next_path: str
    reason: Optional[str] = None  # None on success
    cookies: List[dict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.reason is None


class HandoffRelay:
    """
    Redeem a handoff code and turn it into a session.

    start -> path resolved -> redeeming -> classified -> exchanging session -> redirect.
    Every failure exits once, to the fallback entry point with a reason code. There is
    no retry anywhere: handoff codes are single-use.
    """

    def __init__(
        self,
        cfg: RelayConfig,
        *,
        gateway: Optional[SessionGateway],
        redeemer: Redeemer = redeem_handoff_code,
    ) -> None:
        self.cfg = cfg
        self.gateway = gateway
        self.redeemer = redeemer

    def fallback_url(self, origin: str, next_path: str, reason: str) -> str:
        query = urlencode({"next": next_path, "handoff_error": reason})
        return f"{origin}{self.cfg.fallback_path}?{query}"

    def _redeem_token(self, code: Optional[str]) -> str:
        if not code:
            raise MissingHandoffCode("No handoff code supplied")
        if not self.cfg.shared_secret:
            logger.error("Handoff shared secret is not configured (HANDOFF_SHARED_SECRET)")
            raise MissingConfig("HANDOFF_SHARED_SECRET")

        payload = self.redeemer(
            code,
            self.cfg.shared_secret,
            self.cfg.redeem_url,
            timeout=self.cfg.redeem_timeout_seconds,
        )
        try:
            return classify(payload)
        except HandoffPayloadError as e:
            shape = describe_payload(payload)
            logger.error(
                "Handoff payload rejected: kind=%s value=%r keys=%s response_keys=%s",
                e.kind,
                e.value,
                shape["keys"],
                shape["response_keys"],
            )
            raise

    def handle(
        self,
        *,
        origin: str,
        code: Optional[str],
        query_next: Optional[str],
        cookie_next: Optional[str],
        secure: bool,
    ) -> RelayOutcome:
        next_path = return_path.resolve(query_next, cookie_next, self.cfg.default_next_path)
        # The pending return path is consumed by this request whatever happens next.
        cookies = [return_path.clear(secure=secure)]

        try:
            token = self._redeem_token(code)
            if self.gateway is None:
                logger.error("Session provider is not configured (SUPABASE_URL/SUPABASE_ANON_KEY)")
                raise SessionError("signin_failed", "Session provider not configured")
            session = self.gateway.exchange_id_token(token, self.cfg.id_token_provider)
        except HandoffFailure as e:
            logger.warning("Handoff failed: reason=%s next=%s", e.reason, next_path)
            return RelayOutcome(
                location=self.fallback_url(origin, next_path, e.reason),
                next_path=next_path,
                reason=e.reason,
                cookies=cookies,
            )

        cookies.extend(self.gateway.session_cookies(session, secure=secure))
        logger.info("Handoff complete: next=%s", next_path)
        return RelayOutcome(location=f"{origin}{next_path}", next_path=next_path, cookies=cookies)
