"""Bearer-token identity lookup against the external authentication provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import TYPE_CHECKING

import httpx
import structlog

from shared.auth.models import Identity
from shared.errors import BackendError

if TYPE_CHECKING:
    from shared.auth.settings import AuthSettings

logger = structlog.get_logger()

_REJECTED_STATUSES = {HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN}


class IdentityProvider(ABC):
    @abstractmethod
    async def get_user(self, token: str) -> Identity | None:
        """Resolve a bearer token to an identity.

        Returns None when the provider rejects the token. Raises BackendError
        when the provider cannot be reached or answers unexpectedly.
        """


class HttpIdentityProvider(IdentityProvider):
    """Resolve tokens by calling the provider's user endpoint over HTTP."""

    def __init__(self, settings: AuthSettings) -> None:
        self._url = settings.identity_url.rstrip("/") + settings.user_path
        self._api_key = settings.identity_api_key
        self._timeout = settings.request_timeout_seconds

    async def get_user(self, token: str) -> Identity | None:
        if not token:
            return None

        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._url, headers=headers)
        except httpx.RequestError as exc:
            logger.warning("identity provider unreachable", url=self._url, error=str(exc))
            raise BackendError("Identity provider unavailable") from exc

        if response.status_code in _REJECTED_STATUSES:
            return None
        if response.status_code != HTTPStatus.OK:
            logger.warning("identity provider returned unexpected status", status=response.status_code)
            raise BackendError("Identity provider returned an unexpected response")

        try:
            body = response.json()
            return Identity(user_id=body["id"], email=body.get("email") or None)
        except (ValueError, KeyError, TypeError) as exc:
            raise BackendError("Identity provider returned a malformed user") from exc
