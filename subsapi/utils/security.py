"""
Hashing and token helpers for OTP codes, API keys and webhook signatures
"""

import hashlib
import hmac
import json
import secrets
from typing import Any


def hash_secret(value: str) -> str:
    """sha256 hex digest; OTP codes and API keys are only ever stored hashed"""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_api_key() -> str:
    return secrets.token_hex(32)


def generate_numeric_code(length: int) -> str:
    """Random numeric code from the OS CSPRNG, never starting with 0"""
    low = 10 ** (length - 1)
    high = 10 ** length
    return str(low + secrets.randbelow(high - low)).zfill(length)


def canonical_json(payload: Any) -> bytes:
    return json.dumps(payload, separators=(",", ":"), default=str).encode("utf-8")


def sign_payload(secret: str, payload: Any) -> str:
    """HMAC-SHA256 hex signature over the compact JSON body"""
    return hmac.new(secret.encode("utf-8"), canonical_json(payload), hashlib.sha256).hexdigest()


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
