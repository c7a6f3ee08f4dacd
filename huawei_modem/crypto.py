"""Cryptographic primitives used by the login and field encryption flows.

All functions are pure apart from :func:`generate_nonce`.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

SCRAM_CLIENT_KEY = b"Client Key"
LEGACY_PASSWORD_TYPE = "4"


def _sha256(payload: bytes) -> bytes:
    return hashlib.sha256(payload).digest()


def _sha256_hex(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def hmac_sha256(key: bytes, message: bytes) -> bytes:
    """Return HMAC-SHA256 of message."""
    return hmac.new(key, message, hashlib.sha256).digest()


def pbkdf2_sha256(password: bytes, salt: bytes, iterations: int) -> bytes:
    """Return a 32 byte PBKDF2-HMAC-SHA256 key."""
    return hashlib.pbkdf2_hmac("sha256", password, salt, iterations, 32)


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two byte strings, truncating to the shorter one."""
    return bytes(x ^ y for x, y in zip(a, b))


def b64_ascii(text: str) -> str:
    """Base64 the ASCII bytes of a string (not the bytes a hex string encodes)."""
    return base64.b64encode(text.encode()).decode()


def generate_nonce(length: int = 32) -> str:
    """Return ``length`` random bytes as lower case hex."""
    return secrets.token_bytes(length).hex()


def legacy_password_hash(username: str, password: str, token: str) -> str:
    """Return the ``password_type`` 4 login hash.

    The firmware base64 encodes the hex digest strings, so both steps operate
    on the ASCII hex text rather than the raw digest.
    """
    password_hash = b64_ascii(_sha256_hex(password.encode()))
    return b64_ascii(_sha256_hex((username + password_hash + token).encode()))


def scram_client_proof(
    password: str,
    salt_hex: str,
    client_nonce: str,
    server_nonce: str,
    iterations: int,
) -> str:
    """Return the hex encoded SCRAM client proof for the challenge values."""
    password_hash = _sha256_hex(password.encode())
    salted_password = pbkdf2_sha256(
        password_hash.encode(), bytes.fromhex(salt_hex), iterations
    )
    client_key = hmac_sha256(salted_password, SCRAM_CLIENT_KEY)
    stored_key = _sha256(client_key)
    auth_message = f"{client_nonce},{server_nonce},{server_nonce}"
    client_signature = hmac_sha256(stored_key, auth_message.encode())
    return xor_bytes(client_key, client_signature).hex()
