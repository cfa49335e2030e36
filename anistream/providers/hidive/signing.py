"""Hidive request signing.

Every Hidive request carries a nonce derived from the current UTC minute and a
signature over the caller's identifiers and the exact request body. The
concatenation order below is fixed by Hidive; any change in order or body
serialization gets the request rejected.
"""

import hashlib
import json
from datetime import UTC, datetime
from typing import Any

__all__ = ["generate_nonce", "generate_signature", "serialize_body"]

NONCE_TIME_FORMAT = "%y%m%d%H%M"


def _sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def serialize_body(body: Any) -> str:
    """Serialize a request body the way it is signed and sent.

    Compact JSON without whitespace and with non-ASCII characters kept as-is. A
    missing body is represented by the literal ``undefined``.
    """
    if body is None:
        return "undefined"
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def generate_nonce(token: str, now: datetime | None = None) -> str:
    """Hash the current UTC time (to the minute) with the shared token.

    Args:
        token (str): Shared application secret.
        now (datetime | None): Time to use instead of the current time.

    Returns:
        str: Hex encoded SHA-256 nonce.
    """
    now = (now or datetime.now(UTC)).astimezone(UTC)
    return _sha256_hex(now.strftime(NONCE_TIME_FORMAT) + token)


def generate_signature(
    *,
    ip_address: str,
    app_id: str,
    device_id: str,
    visit_id: str,
    user_id: int | str,
    profile_id: int | str,
    body: Any,
    nonce: str,
    token: str,
) -> str:
    """Sign a request.

    Returns:
        str: Hex encoded SHA-256 of ``ip + app id + device id + visit id + user id
            + profile id + body + nonce + token``.
    """
    sig_clean_str = (
        ip_address
        + app_id
        + device_id
        + visit_id
        + str(user_id)
        + str(profile_id)
        + serialize_body(body)
        + nonce
        + token
    )
    return _sha256_hex(sig_clean_str)
