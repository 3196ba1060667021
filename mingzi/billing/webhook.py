"""Webhook signature verification for the payment provider.

The provider signs the raw request body with HMAC-SHA256. Depending on the
delivery path the header holds the bare digest (hex or base64) or a
`key=value` list such as `t=1700000000,v1=<digest>`.
"""

import base64
import hashlib
import hmac
import logging
import re

logger = logging.getLogger(__name__)

_HEADER_SPLIT_RE = re.compile(r"[;,\s]")
_SIGNATURE_KEYS = ("v1", "sig")


def _digests(payload: bytes | str, secret: str) -> tuple[str, str]:
    body = payload.encode("utf-8") if isinstance(payload, str) else payload
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return digest.hex(), base64.b64encode(digest).decode("ascii")


def _matches(candidate: str, hex_digest: str, b64_digest: str) -> bool:
    candidate_bytes = candidate.encode("utf-8")
    return hmac.compare_digest(candidate_bytes, hex_digest.encode("ascii")) or (
        hmac.compare_digest(candidate_bytes, b64_digest.encode("ascii"))
    )


def parse_signature_header(header: str) -> dict[str, str]:
    """Split `t=...,v1=...` style headers into a dict (first `=` splits)."""
    pairs: dict[str, str] = {}
    for part in _HEADER_SPLIT_RE.split(header):
        part = part.strip()
        idx = part.find("=")
        if idx > 0:
            pairs[part[:idx]] = part[idx + 1 :]
    return pairs


def verify_webhook_signature(payload: bytes | str, signature: str | None, secret: str) -> bool:
    """Check a webhook signature in constant time. Never raises."""
    if not secret:
        logger.error("Webhook secret is not configured; rejecting signature")
        return False
    try:
        hex_digest, b64_digest = _digests(payload, secret)
        header = (signature or "").strip()
        if not header:
            return False

        if _matches(header, hex_digest, b64_digest):
            return True

        pairs = parse_signature_header(header)
        for key in _SIGNATURE_KEYS:
            value = pairs.get(key)
            if value:
                return _matches(value, hex_digest, b64_digest)
        return False
    except (TypeError, ValueError, UnicodeError) as e:
        logger.error("Error verifying webhook signature: %s", e)
        return False
