from __future__ import annotations

import json

import pytest

from relay.auth.classify import classify, describe_payload
from relay.auth.errors import HandoffPayloadError


def _rejected(payload) -> HandoffPayloadError:
    with pytest.raises(HandoffPayloadError) as ei:
        classify(payload)
    return ei.value


def test_flat_id_token() -> None:
    assert classify({"id_token": "tok"}) == "tok"


def test_nested_response_object() -> None:
    assert classify({"status": "success", "response": {"id_token": "nested"}}) == "nested"


def test_response_as_embedded_json_string() -> None:
    assert classify({"response": json.dumps({"id_token": "Y"})}) == "Y"


def test_doubly_embedded_json_string() -> None:
    inner = json.dumps({"response": json.dumps({"id_token": "deep"})})
    assert classify({"status": "success", "response": inner}) == "deep"


def test_explicit_error_wins_over_token() -> None:
    err = _rejected({"error": "code_expired", "id_token": "tok"})
    assert err.kind == "explicit"
    assert err.value == "code_expired"
    assert err.reason == "handoff_explicit_error"


def test_wrapped_error_case_insensitive() -> None:
    err = _rejected({"status": "ERROR", "response": "X"})
    assert err.kind == "wrapped"
    assert err.value == "X"
    assert err.reason == "handoff_wrapped_error"


def test_status_error_without_string_response_is_missing_token() -> None:
    err = _rejected({"status": "error", "response": {"detail": "nope"}})
    assert err.kind == "missing_token"


def test_empty_error_string_is_not_an_error() -> None:
    assert classify({"error": "", "id_token": "tok"}) == "tok"


def test_empty_object_is_empty_payload() -> None:
    err = _rejected({})
    assert err.kind == "empty_payload"
    assert err.reason == "handoff_empty_payload"


@pytest.mark.parametrize("payload", [None, [], ["id_token"], "id_token", 42])
def test_non_object_payloads_are_empty(payload) -> None:
    assert _rejected(payload).kind == "empty_payload"


def test_unrelated_fields_are_missing_token() -> None:
    err = _rejected({"foo": "bar"})
    assert err.kind == "missing_token"
    assert err.reason == "handoff_missing_token"


@pytest.mark.parametrize(
    "payload",
    [
        {"id_token": ""},
        {"id_token": None},
        {"id_token": 123},
        {"response": {"id_token": ""}},
        {"response": "not json at all"},
        {"response": json.dumps({"id_token": ""})},
        {"response": json.dumps(["id_token"])},
    ],
)
def test_placeholder_tokens_are_never_accepted(payload) -> None:
    assert _rejected(payload).kind == "missing_token"


def test_unwrap_depth_is_bounded() -> None:
    payload = {"id_token": "bottom"}
    for _ in range(10):
        payload = {"response": json.dumps(payload)}
    assert _rejected(payload).kind == "missing_token"


def test_describe_payload_reports_field_names_only() -> None:
    shape = describe_payload({"status": "success", "response": {"user": "u", "expires": 1}})
    assert shape == {"keys": ["response", "status"], "response_keys": ["expires", "user"]}
    assert describe_payload("nope") == {"keys": [], "response_keys": []}


def test_pathologically_nested_response_string_is_missing_token() -> None:
    err = _rejected({"response": "[" * 100000 + "]" * 100000})
    assert err.kind == "missing_token"
