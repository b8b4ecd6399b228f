"""Leaderboard endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from api.services.leaderboard import MAX_LIMIT
from api.views.common import client_ip, current_user, throttle
from shared.errors import AuthError, ValidationError
from shared.validators import parse_page, parse_since
from tracker.leaderboard import DEFAULT_LIMIT

if TYPE_CHECKING:
    from starlette.requests import Request

    from api.auth.models import AuthenticatedUser
    from api.services.leaderboard import LeaderboardService
    from api.services.social import SocialService

ALL_GAMES = "all"
FOLLOWING_FILTER = "following"


async def leaderboard(request: Request) -> JSONResponse:
    """GET /api/leaderboard - ranked players for one game, or for every game.

    ``filter=following`` narrows the board to the caller and the users they
    follow, and needs a signed-in caller.
    """
    throttle(request, "leaderboard", client_ip(request, request.app.state.settings.trusted_proxies))
    params = request.query_params
    page = parse_page(params.get("limit"), params.get("offset"), default_limit=DEFAULT_LIMIT, max_limit=MAX_LIMIT)
    since = parse_since(params.get("since"))

    board_filter = params.get("filter") or None
    if board_filter not in (None, FOLLOWING_FILTER):
        raise ValidationError('Invalid filter. Allowed values: "following"', field="filter")

    user_ids = None
    if board_filter == FOLLOWING_FILTER:
        user = current_user(request)
        if user is None:
            raise AuthError('Authentication required for "following" filter')
        social: SocialService = request.app.state.social_service
        user_ids = await social.following_ids(user.user_id) | {user.user_id}

    service: LeaderboardService = request.app.state.leaderboard_service
    game_id = params.get("game_id") or ALL_GAMES
    meta = {"limit": page.limit, "offset": page.offset, "filter": board_filter or ALL_GAMES}

    if game_id == ALL_GAMES:
        result = await service.all_games_leaderboard(page.limit, page.offset, since, user_ids)
        return JSONResponse(
            {
                "success": True,
                "data": [board.to_dict() for board in result.leaderboards],
                "count": len(result.leaderboards),
                "failed_game_ids": result.failed_game_ids,
                **meta,
            },
        )

    board = await service.game_leaderboard(game_id, page.limit, page.offset, since, user_ids)
    return JSONResponse({"success": True, "data": board.to_dict(), "count": len(board.entries), **meta})


async def user_ranking(request: Request) -> JSONResponse:
    """GET /api/leaderboard/{game_id}/rank - the caller's place on a game's board."""
    user: AuthenticatedUser = request.user
    throttle(request, "ranking", user.user_id)
    service: LeaderboardService = request.app.state.leaderboard_service
    ranking = await service.user_ranking(user.user_id, request.path_params["game_id"])
    return JSONResponse({"success": True, **ranking.model_dump(mode="json")})
