"""HMAC-SHA256 verification of GitHub webhook deliveries.

The digest is always computed over the raw request body as received on the
wire. Parsing the JSON and re-encoding it before hashing can change
whitespace or key order and make a genuine delivery fail verification.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def sign_payload(secret: bytes, raw_body: bytes) -> str:
    """Return the ``X-Hub-Signature-256`` header value GitHub would send."""
    digest = hmac.new(secret, msg=raw_body, digestmod=hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(secret: bytes, raw_body: bytes, claimed_signature: str | None) -> bool:
    """Check a claimed ``sha256=<hex>`` signature against the raw body.

    Returns False for a missing or empty claim without computing anything,
    and False for a claim whose length differs from the expected digest,
    since ``hmac.compare_digest`` is only constant-time for equal lengths.
    Never raises.
    """
    if not claimed_signature:
        return False

    expected = sign_payload(secret, raw_body).encode("ascii")
    try:
        claimed = claimed_signature.encode("ascii")
    except UnicodeEncodeError:
        return False

    if len(claimed) != len(expected):
        return False
    return hmac.compare_digest(expected, claimed)
