"""
Random token generators: pure, side-effect-free functions.

All generators use the cryptographically secure ``secrets`` module.
"""

from __future__ import annotations

import secrets

TOKEN_PREFIX_DISPLAY_LENGTH = 8


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure URL-safe random token.

    Args:
        length: Number of random bytes before base64 encoding (default 32).
            The resulting string will be longer than *length* characters.

    Returns:
        URL-safe base64-encoded token string.
    """
    return secrets.token_urlsafe(length)


def generate_api_token(prefix: str, length: int = 32) -> str:
    """Generate a raw API token secret: *prefix* followed by a secure token."""
    return f"{prefix}{generate_secure_token(length)}"


def display_prefix(raw_token: str) -> str:
    """First characters of *raw_token*, stored for identification in lists."""
    return raw_token[:TOKEN_PREFIX_DISPLAY_LENGTH]
