"""
Classify the no-code platform's redemption payload.

The platform has no fixed response schema. Observed shapes:

    {"id_token": "..."}
    {"error": "..."}
    {"status": "error", "response": "..."}
    {"status": "success", "response": {"id_token": "..."}}
    {"status": "success", "response": "{\"id_token\": \"...\"}"}

Everything here is pure: input is a decoded JSON value, output is a token or a
HandoffPayloadError. Empty strings never count as tokens.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from relay.auth.errors import HandoffPayloadError

_MAX_UNWRAP_DEPTH = 4


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def find_error(payload: Any) -> Optional[HandoffPayloadError]:
    if not isinstance(payload, dict):
        return None

    explicit = _non_empty_str(payload.get("error"))
    if explicit:
        return HandoffPayloadError("explicit", explicit)

    status = payload.get("status")
    if isinstance(status, str) and status.lower() == "error":
        wrapped = _non_empty_str(payload.get("response"))
        if wrapped:
            return HandoffPayloadError("wrapped", wrapped)

    return None


def find_id_token(payload: Any, _depth: int = 0) -> Optional[str]:
    if not isinstance(payload, dict) or _depth > _MAX_UNWRAP_DEPTH:
        return None

    direct = _non_empty_str(payload.get("id_token"))
    if direct:
        return direct

    response = payload.get("response")
    if isinstance(response, str):
        # Sometimes `response` is a JSON document serialized into a string.
        try:
            parsed = json.loads(response)
        except (ValueError, RecursionError):
            return None
        return find_id_token(parsed, _depth + 1)

    if isinstance(response, dict):
        return _non_empty_str(response.get("id_token"))

    return None


def classify(payload: Any) -> str:
    """
    Return the identity token carried by `payload`.

    Raises:
        HandoffPayloadError: explicit|wrapped error, or missing_token/empty_payload
        when no token can be found.
    """
    err = find_error(payload)
    if err is not None:
        raise err

    token = find_id_token(payload)
    if token:
        return token

    if not isinstance(payload, dict) or not payload:
        raise HandoffPayloadError("empty_payload")
    raise HandoffPayloadError("missing_token")


def describe_payload(payload: Any) -> Dict[str, List[str]]:
    """Field names observed in a payload, for logs. Never includes values."""
    keys = sorted(str(k) for k in payload.keys()) if isinstance(payload, dict) else []
    response = payload.get("response") if isinstance(payload, dict) else None
    response_keys = sorted(str(k) for k in response.keys()) if isinstance(response, dict) else []
    return {"keys": keys, "response_keys": response_keys}
