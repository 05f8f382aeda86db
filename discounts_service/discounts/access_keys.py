from __future__ import annotations

import secrets

ACCESS_KEY_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_KEY_MAX_LENGTH = 128


def generate_access_key(*, token_length: int = 10, prefix: str = "") -> str:
    if token_length < 6:
        raise ValueError("token_length must be at least 6")

    token = "".join(secrets.choice(ACCESS_KEY_ALPHABET) for _ in range(token_length))
    access_key = f"{prefix}{token}"
    if len(access_key) > ACCESS_KEY_MAX_LENGTH:
        raise ValueError(f"access key exceeds {ACCESS_KEY_MAX_LENGTH} characters")
    return access_key
