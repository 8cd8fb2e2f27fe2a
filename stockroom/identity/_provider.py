"""
Identity — who the current principal is.

A principal id namespaces every collection, so sign-in must succeed before
anything touches the store.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

from stockroom._errors import ConfigurationError, StockroomError


logger = logging.getLogger("stockroom.identity")


class IdentityError(StockroomError):
    """Sign-in rejected: bad token, provider unavailable."""


@dataclass(frozen=True, slots=True)
class Principal:
    uid: str
    anonymous: bool = False


class IdentityProvider(Protocol):
    @property
    def current(self) -> Principal | None: ...

    async def sign_in_anonymously(self) -> Principal: ...

    async def sign_in_with_custom_token(self, token: str) -> Principal: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Local provider
# ═══════════════════════════════════════════════════════════════════════════════


class LocalIdentityProvider:
    """
    In-process provider with HMAC-signed custom tokens.

    Token format: "<uid>.<hex sha256 hmac of uid>".

    Example:
        provider = LocalIdentityProvider(secret="s3cret")
        token = provider.issue_token("alice")
        principal = await provider.sign_in_with_custom_token(token)
    """

    def __init__(self, secret: str | None = None) -> None:
        self._secret = secret.encode() if secret else None
        self._current: Principal | None = None

    @property
    def current(self) -> Principal | None:
        return self._current

    def issue_token(self, uid: str) -> str:
        if self._secret is None:
            raise IdentityError("custom tokens need a signing secret")
        if not uid or "." in uid:
            raise IdentityError(f"invalid uid {uid!r}")
        return f"{uid}.{self._sign(uid)}"

    async def sign_in_anonymously(self) -> Principal:
        self._current = Principal(uid=uuid.uuid4().hex, anonymous=True)
        return self._current

    async def sign_in_with_custom_token(self, token: str) -> Principal:
        if self._secret is None:
            raise IdentityError("custom tokens are not accepted: no signing secret")
        uid, sep, signature = token.rpartition(".")
        if not sep or not uid:
            raise IdentityError("malformed custom token")
        if not hmac.compare_digest(signature, self._sign(uid)):
            raise IdentityError("custom token signature mismatch")
        self._current = Principal(uid=uid)
        return self._current

    def sign_out(self) -> None:
        self._current = None

    def _sign(self, uid: str) -> str:
        if self._secret is None:
            raise IdentityError("no signing secret configured")
        return hmac.new(self._secret, uid.encode(), hashlib.sha256).hexdigest()


# ═══════════════════════════════════════════════════════════════════════════════
# Startup sign-in
# ═══════════════════════════════════════════════════════════════════════════════


async def authenticate(provider: IdentityProvider, token: str | None = None) -> Principal:
    """
    Resolve the principal for this session.

    Order: existing session → custom token → anonymous. A rejected custom
    token falls back to anonymous; if that fails too, startup cannot go on.
    """
    if provider.current is not None:
        return provider.current

    if token:
        try:
            return await provider.sign_in_with_custom_token(token)
        except IdentityError as e:
            logger.warning("custom token sign-in failed, falling back to anonymous: %s", e)

    try:
        return await provider.sign_in_anonymously()
    except IdentityError as e:
        raise ConfigurationError(f"anonymous sign-in failed: {e}") from e


__all__ = (
    "IdentityError",
    "Principal",
    "IdentityProvider",
    "LocalIdentityProvider",
    "authenticate",
)
