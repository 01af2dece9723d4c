"""Credential verification for the session endpoints."""
from __future__ import annotations

import secrets
from typing import Protocol


class TokenVerifier(Protocol):
    def verify(self, token: str | None) -> bool: ...


class SharedTokenVerifier:
    """Accepts exactly one configured shared-secret token."""

    def __init__(self, expected: str) -> None:
        if not expected:
            raise ValueError("ACCESS_TOKEN must not be empty.")
        self._expected = expected

    def verify(self, token: str | None) -> bool:
        if not token:
            return False
        return secrets.compare_digest(token.encode("utf-8"), self._expected.encode("utf-8"))
