"""PKCE (RFC 7636) verifier and challenge helpers."""

import hashlib
import secrets
import string
from base64 import b64encode

# Base-36 alphabet, a subset of the RFC 7636 unreserved characters
VERIFIER_ALPHABET = string.digits + string.ascii_lowercase
VERIFIER_LENGTH = 128

CHALLENGE_METHOD = "S256"


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    """Generate a random PKCE code verifier."""
    if not 43 <= length <= 128:
        raise ValueError("PKCE code verifier must be 43-128 characters")
    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(length))


def derive_code_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    challenge = b64encode(digest).decode("ascii")
    return challenge.replace("+", "-").replace("/", "_").rstrip("=")
