"""PKCE (Proof Key for Code Exchange) generation"""

import base64
import hashlib
import secrets

from .models import PKCEPair

# 32 random bytes -> 43 character base64url verifier (RFC 7636 minimum length)
VERIFIER_BYTES = 32
STATE_BYTES = 16


def _base64url_no_pad(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_verifier() -> str:
    """Generate a random, URL-safe code verifier with 256 bits of entropy"""
    return _base64url_no_pad(secrets.token_bytes(VERIFIER_BYTES))


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier

    Args:
        verifier: PKCE code verifier

    Returns:
        base64url (no padding) encoded SHA-256 digest of the verifier
    """
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _base64url_no_pad(digest)


def generate_pkce() -> PKCEPair:
    """Generate PKCE code verifier and challenge"""
    verifier = generate_verifier()
    return PKCEPair(verifier=verifier, challenge=derive_challenge(verifier))


def create_state() -> str:
    """Generate random state parameter for CSRF protection"""
    return secrets.token_urlsafe(STATE_BYTES)
