"""Starlette AuthenticationBackend that validates bearer tokens with the identity provider."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import AuthCredentials, AuthenticationBackend, AuthenticationError
from starlette.responses import JSONResponse

from api.auth.models import AuthenticatedUser
from shared.errors import BackendError

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from shared.auth.provider import IdentityProvider


class BearerTokenBackend(AuthenticationBackend):
    """Authenticate requests via the ``Authorization: Bearer <token>`` header.

    A missing or rejected token leaves the request anonymous; route policy
    decides whether that is allowed. An unreachable identity provider fails
    the request instead of silently downgrading it to anonymous.
    """

    def __init__(self, provider: IdentityProvider) -> None:
        self._provider = provider

    async def authenticate(
        self,
        conn: HTTPConnection,
    ) -> tuple[AuthCredentials, AuthenticatedUser] | None:
        token = bearer_token(conn.headers.get("authorization"))
        if token is None:
            return None
        try:
            identity = await self._provider.get_user(token)
        except BackendError as exc:
            raise AuthenticationError(exc.message) from exc
        if identity is None:
            return None
        return AuthCredentials(["authenticated"]), AuthenticatedUser(identity.user_id, identity.email)


def bearer_token(header: str | None) -> str | None:
    """Extract the token from an Authorization header value."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def on_auth_error(_conn: HTTPConnection, exc: Exception) -> JSONResponse:
    """Answer requests whose identity lookup failed with the backend error payload."""
    error = BackendError(str(exc) or "Identity provider unavailable")
    return JSONResponse(error.to_payload(), status_code=error.status_code)
