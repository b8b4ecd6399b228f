"""Follow graph endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from api.services.social import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from api.views.common import client_ip, parse_json_body, sync_caller, throttle
from shared.errors import ValidationError
from shared.validators import parse_page

if TYPE_CHECKING:
    from starlette.requests import Request

    from api.auth.models import AuthenticatedUser
    from api.services.social import SocialService
    from shared.dal.models import FollowEntry


def _target_user_id(body: dict) -> str:
    user_id = body.get("user_id")
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("Missing required field: user_id", field="user_id")
    return user_id.strip()


def _page_response(entries: list[FollowEntry], limit: int, offset: int) -> JSONResponse:
    return JSONResponse(
        {
            "success": True,
            "data": [entry.model_dump(mode="json") for entry in entries],
            "count": len(entries),
            "limit": limit,
            "offset": offset,
        },
    )


async def follow(request: Request) -> JSONResponse:
    """POST /api/follow - follow another registered user."""
    user: AuthenticatedUser = request.user
    throttle(request, "follow", user.user_id)
    target = _target_user_id(await parse_json_body(request))
    await sync_caller(request)
    service: SocialService = request.app.state.social_service
    message = await service.follow(user.user_id, target)
    return JSONResponse({"success": True, "message": message})


async def unfollow(request: Request) -> JSONResponse:
    """POST /api/unfollow - stop following a user."""
    user: AuthenticatedUser = request.user
    throttle(request, "unfollow", user.user_id)
    target = _target_user_id(await parse_json_body(request))
    service: SocialService = request.app.state.social_service
    message = await service.unfollow(user.user_id, target)
    return JSONResponse({"success": True, "message": message})


async def list_following(request: Request) -> JSONResponse:
    """GET /api/following - users the caller follows, newest first."""
    user: AuthenticatedUser = request.user
    throttle(request, "following", user.user_id)
    page = parse_page(
        request.query_params.get("limit"),
        request.query_params.get("offset"),
        default_limit=DEFAULT_PAGE_SIZE,
        max_limit=MAX_PAGE_SIZE,
    )
    service: SocialService = request.app.state.social_service
    entries = await service.list_following(user.user_id, page.limit, page.offset)
    return _page_response(entries, page.limit, page.offset)


async def list_followers(request: Request) -> JSONResponse:
    """GET /api/followers?user_id=... - public list of a user's followers."""
    throttle(request, "followers", client_ip(request, request.app.state.settings.trusted_proxies))
    user_id = (request.query_params.get("user_id") or "").strip()
    if not user_id:
        raise ValidationError("Missing required query parameter: user_id", field="user_id")
    page = parse_page(
        request.query_params.get("limit"),
        request.query_params.get("offset"),
        default_limit=DEFAULT_PAGE_SIZE,
        max_limit=MAX_PAGE_SIZE,
    )
    service: SocialService = request.app.state.social_service
    entries = await service.list_followers(user_id, page.limit, page.offset)
    return _page_response(entries, page.limit, page.offset)
