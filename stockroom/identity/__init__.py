"""
Identity — principal resolution for namespacing.

    from stockroom import identity as Id

    provider = Id.LocalIdentityProvider(secret=settings.identity_secret)
    principal = await Id.authenticate(provider, settings.auth_token)
"""

from stockroom.identity._provider import (
    IdentityError,
    Principal,
    IdentityProvider,
    LocalIdentityProvider,
    authenticate,
)


__all__ = (
    "IdentityError",
    "Principal",
    "IdentityProvider",
    "LocalIdentityProvider",
    "authenticate",
)
