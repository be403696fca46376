"""
Failure taxonomy for the handoff relay.

Every failure maps to a short, non-sensitive reason code that is safe to put in a
redirect URL. Diagnostic detail belongs in logs, never in `reason`.
"""
from __future__ import annotations

from typing import Optional


class HandoffFailure(Exception):
    """Base class for every failure that ends in a fallback redirect."""

    @property
    def reason(self) -> str:
        raise NotImplementedError


class MissingHandoffCode(HandoffFailure):
    @property
    def reason(self) -> str:
        return "missing_code"


class MissingConfig(HandoffFailure):
    def __init__(self, setting: str) -> None:
        super().__init__(f"{setting} is not configured")
        self.setting = setting

    @property
    def reason(self) -> str:
        return "missing_secret_config"


class TransportFailure(HandoffFailure):
    """Redemption call failed before a usable payload was received."""

    # timeout|network|http|unexpected_content_type
    def __init__(self, kind: str, *, status: Optional[int] = None) -> None:
        detail = f"{kind} (status={status})" if status is not None else kind
        super().__init__(f"Handoff redemption failed: {detail}")
        self.kind = kind
        self.status = status

    @property
    def reason(self) -> str:
        if self.kind == "http":
            return f"transport_http_{self.status}"
        return f"transport_{self.kind}"


class HandoffPayloadError(HandoffFailure):
    """Redemption payload arrived but holds an error or no usable identity token."""

    # explicit|wrapped|missing_token|empty_payload
    def __init__(self, kind: str, value: Optional[str] = None) -> None:
        super().__init__(f"Handoff payload rejected: {kind}")
        self.kind = kind
        self.value = value

    @property
    def reason(self) -> str:
        if self.kind in ("explicit", "wrapped"):
            return f"handoff_{self.kind}_error"
        return f"handoff_{self.kind}"


class SessionError(HandoffFailure):
    """Session provider refused to mint a session."""

    # nonce_check|signin_failed
    def __init__(self, kind: str, message: str = "") -> None:
        super().__init__(message or kind)
        self.kind = kind
        self.message = message

    @property
    def reason(self) -> str:
        return f"session_{self.kind}"
