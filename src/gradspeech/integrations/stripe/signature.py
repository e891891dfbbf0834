"""
Stripe-Signature 검증.

Header format: t=<unix-ts>,v1=<hex>[,v1=<hex>...]
- HMAC-SHA256 over b"{t}." + raw body, lowercase hex
- 비교는 hmac.compare_digest (constant-time)
- 헤더 자체가 깨진 경우는 SignatureHeaderError, 서명 불일치는 False
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import re
import time
from dataclasses import dataclass

from gradspeech.core.errors import SignatureHeaderError

logger = logging.getLogger(__name__)

SIGNATURE_SCHEME = "v1"

_DELIMITERS = re.compile(r"[,;]")


@dataclass(frozen=True)
class SignatureHeader:
    timestamp: int
    signatures: tuple[str, ...]


def parse_signature_header(header: str) -> SignatureHeader:
    timestamp: str | None = None
    signatures: list[str] = []
    pairs = 0

    for item in _DELIMITERS.split(header or ""):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        pairs += 1
        key = key.strip()
        value = value.strip()
        if key == "t":
            timestamp = value
        elif key == SIGNATURE_SCHEME and value:
            signatures.append(value)
        # v0 등 다른 scheme은 무시

    if pairs == 0:
        raise SignatureHeaderError("Unable to extract timestamp and signatures from header")
    if timestamp is None:
        raise SignatureHeaderError("No timestamp found in signature header")
    try:
        ts = int(timestamp)
    except ValueError:
        raise SignatureHeaderError(f"Invalid timestamp in signature header: {timestamp!r}") from None
    if not signatures:
        raise SignatureHeaderError(f"No signatures found with expected scheme {SIGNATURE_SCHEME}")

    return SignatureHeader(timestamp=ts, signatures=tuple(signatures))


def compute_signature(raw_body: bytes, secret: str, timestamp: int) -> str:
    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def sign(raw_body: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header value for the given body."""
    ts = int(time.time()) if timestamp is None else timestamp
    return f"t={ts},{SIGNATURE_SCHEME}={compute_signature(raw_body, secret, ts)}"


def verify(
    raw_body: bytes,
    signature_header: str,
    secret: str,
    *,
    tolerance: int | None = None,
    now: float | None = None,
) -> bool:
    """
    raw body 바이트 그대로 검증해야 한다 (JSON 재직렬화하면 서명이 깨짐).

    Raises SignatureHeaderError when the header is malformed.
    Returns False on digest mismatch or when the timestamp is outside `tolerance` seconds.
    """
    header = parse_signature_header(signature_header)
    expected = compute_signature(raw_body, secret, header.timestamp)

    expected_bytes = expected.encode("ascii")
    matched = any(
        hmac.compare_digest(expected_bytes, candidate.encode("utf-8"))
        for candidate in header.signatures
    )
    if not matched:
        return False

    if tolerance:
        current = time.time() if now is None else now
        if abs(current - header.timestamp) > tolerance:
            logger.warning(
                "Stripe signature timestamp outside tolerance: ts=%s tolerance=%ss",
                header.timestamp,
                tolerance,
            )
            return False

    return True
