"""Authentication against the external identity provider."""

from shared.auth.models import Identity
from shared.auth.provider import HttpIdentityProvider, IdentityProvider
from shared.auth.settings import AuthSettings

__all__ = [
    "AuthSettings",
    "HttpIdentityProvider",
    "Identity",
    "IdentityProvider",
]
