"""Identity returned by the authentication provider."""

from pydantic import BaseModel


class Identity(BaseModel, frozen=True):
    """The caller behind a bearer token. ``email`` is None for guest accounts."""

    user_id: str
    email: str | None = None
