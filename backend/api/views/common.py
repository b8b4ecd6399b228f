"""Request helpers shared by the API view handlers."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pydantic

from shared.errors import AuthError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Collection
    from datetime import datetime

    from pydantic import BaseModel
    from starlette.requests import Request

    from api.auth.models import AuthenticatedUser
    from api.services.profiles import ProfileService
    from shared.dal.models import UserProfile
    from tracker.rate_limit import SlidingWindowRateLimiter

UNKNOWN_CLIENT = "unknown"


async def parse_json_body(request: Request) -> dict:
    """Parse a JSON object body. Raise ValidationError on anything else."""
    try:
        body = await request.json()
    except (ValueError, json.JSONDecodeError) as e:
        raise ValidationError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise ValidationError("JSON body must be an object")
    return body


async def parse_body(request: Request, model: type[BaseModel]) -> BaseModel:
    body = await parse_json_body(request)
    try:
        return model.model_validate(body)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(f"Invalid request: {first['msg']}", field=field) from e


def client_ip(request: Request, trusted_proxies: Collection[str] = ()) -> str:
    """Address used to key anonymous rate limits.

    X-Forwarded-For is only read when the socket peer is a trusted proxy. The
    chain is then walked from the right, and the first hop that is not itself
    a trusted proxy is the client.
    """
    peer = request.client.host if request.client is not None else None
    if peer is None:
        return UNKNOWN_CLIENT
    if peer not in trusted_proxies:
        return peer
    forwarded = request.headers.get("x-forwarded-for", "")
    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return peer


def current_user(request: Request) -> AuthenticatedUser | None:
    if not request.user.is_authenticated:
        return None
    return request.user


def require_user(request: Request, reason: str = "Authentication required") -> AuthenticatedUser:
    user = current_user(request)
    if user is None:
        raise AuthError(reason)
    return user


def throttle(request: Request, operation: str, identity: str) -> None:
    """Apply the shared rate limit to ``<operation>:<identity>``. Raises ThrottleError."""
    limiter: SlidingWindowRateLimiter = request.app.state.rate_limiter
    limiter.check(f"{operation}:{identity}")


def now(request: Request) -> datetime:
    return request.app.state.clock()


async def sync_caller(request: Request) -> UserProfile:
    """Make sure the authenticated caller has a local profile."""
    user: AuthenticatedUser = request.user
    profiles: ProfileService = request.app.state.profile_service
    return await profiles.sync(user.user_id, user.email)
