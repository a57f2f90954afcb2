"""Opaque bearer secrets: generation and one-way hashing for storage.

Magic link tokens and session refresh tokens are 256-bit random values
encoded as 64 lower-case hex characters. Only the SHA-256 digest of a secret
is ever persisted; the plaintext is handed to the caller once, at issuance.
"""

import hashlib
import re
import secrets
from typing import NamedTuple

TOKEN_BYTES = 32  # 256 bits of entropy
TOKEN_RE = re.compile(r"^[a-f0-9]{64}$")


class IssuedSecret(NamedTuple):
    secret: str
    digest: str


def hash_secret(secret: str | bytes) -> str:
    """Hash a bearer secret for storage and lookup.

    Returns the hex SHA-256 digest (64 chars). The digest doubles as the
    unique lookup key, so it must stay deterministic (no salt).
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hashlib.sha256(secret).hexdigest()


def issue_secret() -> IssuedSecret:
    """Generate a new opaque secret together with its storage digest."""
    secret = secrets.token_hex(TOKEN_BYTES)
    return IssuedSecret(secret=secret, digest=hash_secret(secret))


def is_token_format(value: str) -> bool:
    return bool(TOKEN_RE.fullmatch(value))
