from __future__ import annotations

import pytest

from receipt_scanner.core import security
from receipt_scanner.core.context import RequestContext
from receipt_scanner.core.security import FirebaseIdentityVerifier, extract_bearer_token

CTX = RequestContext(request_id="req-1")
FAKE_APP = object()


@pytest.fixture()
def decode_calls(monkeypatch):
    calls = []

    def fake_verify(token, app=None, check_revoked=False):
        calls.append((token, app, check_revoked))
        if token == "good":
            return {"uid": "user-42", "email": "a@example.com"}
        if token == "no-uid":
            return {"email": "a@example.com"}
        raise ValueError("Token expired")

    monkeypatch.setattr(security.firebase_auth, "verify_id_token", fake_verify)
    return calls


@pytest.mark.parametrize(
    "header,expected",
    [
        (None, None),
        ("", None),
        ("Basic abc", None),
        ("bearer abc", None),
        ("Bearer ", ""),
        ("Bearer abc", "abc"),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


def test_valid_token_resolves_to_uid(decode_calls):
    verifier = FirebaseIdentityVerifier(app=FAKE_APP, check_revoked=False)
    assert verifier.verify("Bearer good", CTX) == "user-42"
    assert decode_calls == [("good", FAKE_APP, False)]


@pytest.mark.parametrize("header", [None, "", "Token good", "Bearer "])
def test_malformed_headers_never_reach_firebase(decode_calls, header):
    verifier = FirebaseIdentityVerifier(app=FAKE_APP)
    assert verifier.verify(header, CTX) is None
    assert decode_calls == []


def test_rejected_token_returns_none(decode_calls):
    verifier = FirebaseIdentityVerifier(app=FAKE_APP)
    assert verifier.verify("Bearer forged", CTX) is None
    assert len(decode_calls) == 1


def test_token_without_uid_returns_none(decode_calls):
    verifier = FirebaseIdentityVerifier(app=FAKE_APP)
    assert verifier.verify("Bearer no-uid", CTX) is None


def test_check_revoked_is_forwarded(decode_calls):
    verifier = FirebaseIdentityVerifier(app=FAKE_APP, check_revoked=True)
    verifier.verify("Bearer good", CTX)
    assert decode_calls[0][2] is True


def test_verification_failure_is_logged_with_request_id(decode_calls, caplog):
    verifier = FirebaseIdentityVerifier(app=FAKE_APP)
    with caplog.at_level("ERROR", logger="receipt_scanner.core.security"):
        verifier.verify("Bearer forged", CTX)
    assert "[auth:req-1]" in caplog.text
    assert "Token expired" in caplog.text
