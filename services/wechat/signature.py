"""WeChat official-account request signature check."""

import hashlib
import hmac
from typing import Optional


def compute_signature(token: str, timestamp: str, nonce: str) -> str:
    """Return the sha1 hex digest of the sorted token, timestamp and nonce."""
    joined = "".join(sorted([token, timestamp, nonce]))
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()


def check_signature(token: str, signature: Optional[str], timestamp: Optional[str], nonce: Optional[str]) -> bool:
    """Return True when `signature` was produced with `token`."""
    if not signature or timestamp is None or nonce is None:
        return False
    expected = compute_signature(token, timestamp, nonce)
    return hmac.compare_digest(expected, signature.lower())
