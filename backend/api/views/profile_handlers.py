"""Caller profile endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from api.services.profiles import ProfileUpdate
from api.views.common import parse_body, sync_caller, throttle

if TYPE_CHECKING:
    from starlette.requests import Request

    from api.auth.models import AuthenticatedUser
    from api.services.profiles import ProfileService


async def get_profile(request: Request) -> JSONResponse:
    """GET /api/profile - the caller's profile, created from their identity on first use."""
    profile = await sync_caller(request)
    return JSONResponse({"success": True, "profile": profile.model_dump(mode="json")})


async def update_profile(request: Request) -> JSONResponse:
    """PUT /api/profile - change the caller's display name or avatar."""
    user: AuthenticatedUser = request.user
    throttle(request, "profile", user.user_id)
    update = await parse_body(request, ProfileUpdate)
    service: ProfileService = request.app.state.profile_service
    profile = await service.update(user.user_id, user.email, update)
    return JSONResponse({"success": True, "profile": profile.model_dump(mode="json")})
