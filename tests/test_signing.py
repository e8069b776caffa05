from __future__ import annotations

import pytest

from dashboard_toggle.errors import AuthError
from dashboard_toggle.signing import compute_signature, verify_signature, verify_token


SECRET = "8f742231b10e8888abcd99yyyzzz85a5"


def test_compute_signature_matches_slack_reference_vector() -> None:
    # Example request from Slack's "Verifying requests from Slack" documentation.
    body = (
        b"token=xyzz0WbapA4vBCDEFasx0q6G&team_id=T1DC2JH3J&team_domain=testteamnow&channel_id=G8PSS9T3V"
        b"&channel_name=foobar&user_id=U2CERLKJA&user_name=roadrunner&command=%2Fwebhook-collect&text="
        b"&response_url=https%3A%2F%2Fhooks.slack.com%2Fcommands%2FT1DC2JH3J%2F397700885554%2F96rGlfmibIGlgcZRskXaIFfN"
        b"&trigger_id=398738663015.47445629121.803a0bc887a14d10d2c447fce8b6703c"
    )
    sig = compute_signature(SECRET, "1531420618", body)
    assert sig == "v0=a2114d57b48eac39b9ad189dd8316235a7b4a8d21a10bd27519666489c69b503"


def _headers(body: bytes, ts: str = "1531420618", secret: str = SECRET) -> dict[str, str]:
    return {
        "x-slack-request-timestamp": ts,
        "x-slack-signature": compute_signature(secret, ts, body),
    }


def test_verify_signature_accepts_valid_request() -> None:
    body = b'{"type":"url_verification"}'
    verify_signature(secret=SECRET, headers=_headers(body), body=body)


def test_verify_signature_rejects_tampered_body() -> None:
    body = b'{"type":"url_verification"}'
    with pytest.raises(AuthError, match="invalid_signature"):
        verify_signature(secret=SECRET, headers=_headers(body), body=body + b" ")


def test_verify_signature_rejects_wrong_secret() -> None:
    body = b"{}"
    with pytest.raises(AuthError):
        verify_signature(secret=SECRET, headers=_headers(body, secret="other"), body=body)


def test_verify_signature_requires_headers() -> None:
    body = b"{}"
    with pytest.raises(AuthError, match="missing_signature"):
        verify_signature(secret=SECRET, headers={"x-slack-request-timestamp": "1"}, body=body)
    with pytest.raises(AuthError, match="missing_timestamp"):
        verify_signature(secret=SECRET, headers={"x-slack-signature": "v0=abc"}, body=body)


def test_verify_signature_replay_window() -> None:
    body = b"{}"
    headers = _headers(body, ts="1000")
    verify_signature(secret=SECRET, headers=headers, body=body, max_age_seconds=300, now=1200.0)
    with pytest.raises(AuthError, match="stale_timestamp"):
        verify_signature(secret=SECRET, headers=headers, body=body, max_age_seconds=300, now=1301.0)
    # Disabled window accepts any age.
    verify_signature(secret=SECRET, headers=headers, body=body, max_age_seconds=0, now=10_000_000.0)


def test_verify_signature_rejects_non_numeric_timestamp_when_window_enabled() -> None:
    body = b"{}"
    with pytest.raises(AuthError, match="invalid_timestamp"):
        verify_signature(secret=SECRET, headers=_headers(body, ts="soon"), body=body, max_age_seconds=300)


def test_verify_token_only_when_configured() -> None:
    verify_token("", None)
    verify_token("abc", "abc")
    with pytest.raises(AuthError):
        verify_token("abc", "abd")
    with pytest.raises(AuthError):
        verify_token("abc", None)
