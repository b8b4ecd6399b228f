"""User model for Starlette AuthenticationMiddleware integration."""

from __future__ import annotations

from starlette.authentication import BaseUser


class AuthenticatedUser(BaseUser):
    """Authenticated user for Starlette's request.user.

    Created by the auth backend from a bearer token the identity provider
    accepted. Guest accounts have no email.
    """

    def __init__(self, user_id: str, email: str | None = None) -> None:
        self._user_id = user_id
        self._email = email

    @property
    def is_authenticated(self) -> bool:  # pragma: no cover
        return True

    @property
    def display_name(self) -> str:  # pragma: no cover
        return self._email or self._user_id

    @property
    def identity(self) -> str:  # pragma: no cover
        return self._user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def email(self) -> str | None:
        return self._email

    @property
    def is_guest(self) -> bool:
        return not self._email
