"""API authentication: Starlette backend, user model, and route policy."""

from api.auth.backend import BearerTokenBackend
from api.auth.models import AuthenticatedUser
from api.auth.policy import optional_auth, protected_api, public_route, validate_route_auth_policy

__all__ = [
    "AuthenticatedUser",
    "BearerTokenBackend",
    "optional_auth",
    "protected_api",
    "public_route",
    "validate_route_auth_policy",
]
