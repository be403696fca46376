from __future__ import annotations

import json
import logging
import time
from typing import Any

import requests

from relay.auth.errors import TransportFailure

logger = logging.getLogger(__name__)

_BODY_PREVIEW_CHARS = 300


def _preview(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")[:_BODY_PREVIEW_CHARS]


def _read_body(r: requests.Response, deadline: float) -> bytes:
    """
    Read the streamed body, giving up once `deadline` (time.monotonic) has passed.

    Byte-sized reads return as soon as data arrives, so a slow-drip upstream cannot
    hold the call open past the deadline.
    """
    buf = bytearray()
    try:
        for chunk in r.iter_content(chunk_size=1):
            buf.extend(chunk)
            if time.monotonic() >= deadline:
                raise TransportFailure("timeout")
    except requests.exceptions.RequestException as e:
        if time.monotonic() >= deadline:
            raise TransportFailure("timeout") from None
        logger.error("Handoff redeem body read failed: %s", type(e).__name__)
        raise TransportFailure("network") from None
    return bytes(buf)


def _diagnostic_body(r: requests.Response, deadline: float) -> bytes:
    try:
        return _read_body(r, deadline)
    except TransportFailure:
        return b""


def redeem_handoff_code(code: str, secret: str, endpoint: str, *, timeout: float = 8.0) -> Any:
    """
    Exchange a single-use handoff code for the platform's redemption payload.

    `timeout` is a wall-clock deadline for the whole call (connect, headers, body).
    Never retried: a retry would spend a code the platform may already have consumed.

    Returns:
        The decoded JSON payload (any JSON value; shape is checked by the classifier).

    Raises:
        TransportFailure: timeout, network error, non-2xx status, or non-JSON response.
    """
    deadline = time.monotonic() + timeout
    try:
        r = requests.post(
            endpoint,
            data={"code": code, "secret": secret},
            headers={"Cache-Control": "no-store"},
            timeout=timeout,
            stream=True,
        )
    except requests.exceptions.Timeout:
        logger.error("Handoff redeem timed out after %.1fs", timeout)
        raise TransportFailure("timeout") from None
    except requests.exceptions.RequestException as e:
        logger.error("Handoff redeem request failed: %s", type(e).__name__)
        raise TransportFailure("network") from None

    try:
        content_type = r.headers.get("content-type", "") or ""

        if not 200 <= r.status_code < 300:
            logger.error(
                "Handoff redeem HTTP error: status=%d content_type=%s body_preview=%r",
                r.status_code,
                content_type,
                _preview(_diagnostic_body(r, deadline)),
            )
            raise TransportFailure("http", status=r.status_code)

        if "application/json" not in content_type.lower():
            logger.error(
                "Handoff redeem returned non-JSON: content_type=%s body_preview=%r",
                content_type,
                _preview(_diagnostic_body(r, deadline)),
            )
            raise TransportFailure("unexpected_content_type")

        try:
            body = _read_body(r, deadline)
        except TransportFailure as e:
            if e.kind == "timeout":
                logger.error("Handoff redeem timed out after %.1fs reading the body", timeout)
            raise

        try:
            return json.loads(body)
        except (ValueError, RecursionError):
            logger.error("Handoff redeem returned undecodable JSON: body_preview=%r", _preview(body))
            raise TransportFailure("unexpected_content_type") from None
    finally:
        r.close()
