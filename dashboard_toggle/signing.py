from __future__ import annotations

import hashlib
import hmac
import time
from typing import Mapping

from dashboard_toggle.errors import AuthError


SIGNATURE_HEADER = "x-slack-signature"
TIMESTAMP_HEADER = "x-slack-request-timestamp"
SIGNATURE_VERSION = "v0"


def compute_signature(secret: str, timestamp: str, body: bytes) -> str:
    base = f"{SIGNATURE_VERSION}:{timestamp}:".encode("utf-8") + (body or b"")
    digest = hmac.new(str(secret).encode("utf-8"), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_signature(
    *,
    secret: str,
    headers: Mapping[str, str],
    body: bytes,
    max_age_seconds: int = 0,
    now: float | None = None,
) -> None:
    """
    Raise AuthError unless the request carries a valid Slack v0 signature.

    `headers` must be keyed by lower-case header names. A `max_age_seconds` of 0 disables
    the replay-window check.
    """
    if not secret:
        raise AuthError("signing_secret_not_configured")
    signature = str(headers.get(SIGNATURE_HEADER) or "").strip()
    timestamp = str(headers.get(TIMESTAMP_HEADER) or "").strip()
    if not signature:
        raise AuthError("missing_signature")
    if not timestamp:
        raise AuthError("missing_timestamp")

    if max_age_seconds > 0:
        try:
            ts = int(timestamp)
        except ValueError as exc:
            raise AuthError("invalid_timestamp") from exc
        current = time.time() if now is None else float(now)
        if abs(current - ts) > max_age_seconds:
            raise AuthError("stale_timestamp")

    expected = compute_signature(secret, timestamp, body)
    if not hmac.compare_digest(expected, signature):
        raise AuthError("invalid_signature")


def verify_token(expected: str, received: str | None) -> None:
    # Legacy verification token; only enforced when one is configured.
    if not expected:
        return
    if not hmac.compare_digest(str(received or "").strip(), expected.strip()):
        raise AuthError("invalid_verification_token")
