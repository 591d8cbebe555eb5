"""
Cryptographic helpers for API token secrets.

Raw secrets carry full entropy, so a fast SHA-256 digest is enough; a slow
password KDF buys nothing here. Digests are compared in constant time.
"""

from __future__ import annotations

import hashlib
import secrets


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    The plaintext is never persisted; only this digest is stored and
    used for lookups.

    Args:
        token: The plaintext token string to hash.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def digests_match(expected: str, actual: str) -> bool:
    """Constant-time comparison of two hex digests."""
    return secrets.compare_digest(expected.encode("ascii"), actual.encode("ascii"))
