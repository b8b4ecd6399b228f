from __future__ import annotations

import contextlib
import math
from datetime import UTC, datetime
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from api.auth.backend import BearerTokenBackend, on_auth_error
from api.auth.policy import optional_auth, protected_api, public_route, validate_route_auth_policy
from api.server.middleware import SecurityHeadersMiddleware, SlashNormalizationMiddleware
from api.server.settings import ApiServerSettings
from api.services.leaderboard import LeaderboardService
from api.services.profiles import ProfileService
from api.services.records import RecordService
from api.services.social import SocialService
from api.services.stats import StatsService
from api.views import (
    delete_records,
    follow,
    game_stats,
    get_profile,
    leaderboard,
    list_followers,
    list_following,
    submit_record,
    todays_records,
    unfollow,
    update_profile,
    user_ranking,
)
from shared.auth import AuthSettings, HttpIdentityProvider
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.db import (
    Database,
    SqliteGameRepository,
    SqliteRecordRepository,
    SqliteSocialRepository,
    SqliteUserRepository,
)
from shared.errors import AuthError, BackendError, NotFoundError, ThrottleError, TrackerError
from shared.logging import setup_logging
from tracker.rate_limit import SlidingWindowRateLimiter

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from starlette.requests import Request

    from shared.auth import IdentityProvider

_HTTP_ERROR_CODES = {
    HTTPStatus.UNAUTHORIZED: AuthError.error_code,
    HTTPStatus.NOT_FOUND: NotFoundError.error_code,
}


async def _tracker_error_handler(request: Request, exc: Exception) -> Response:
    """Render a domain error as its stable JSON payload."""
    error = cast("TrackerError", exc)
    headers = None
    if isinstance(error, ThrottleError):
        headers = {"Retry-After": str(max(1, math.ceil(error.retry_after)))}
    if isinstance(error, BackendError):
        logger.error(
            "request failed in backend",
            path=request.url.path,
            error=error.message,
            cause=repr(error.__cause__) if error.__cause__ else None,
        )
    else:
        logger.info("request rejected", path=request.url.path, error_code=error.error_code, error=error.message)
    return JSONResponse(error.to_payload(), status_code=error.status_code, headers=headers)


async def _http_error_handler(_request: Request, exc: Exception) -> Response:
    """Render Starlette HTTP errors (401 from route policy, 404, 405) as JSON."""
    http_exc = cast("HTTPException", exc)
    if http_exc.status_code in {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}:
        return Response(status_code=http_exc.status_code, headers=http_exc.headers)
    if http_exc.status_code == HTTPStatus.UNAUTHORIZED:
        payload = AuthError("Authentication required").to_payload()
    else:
        payload = {
            "success": False,
            "error": http_exc.detail,
            "error_code": _HTTP_ERROR_CODES.get(http_exc.status_code, "http_error"),
        }
    return JSONResponse(payload, status_code=http_exc.status_code, headers=http_exc.headers)


async def _unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(TrackerError("Internal server error").to_payload(), status_code=500)


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"success": True, "status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def create_app(
    settings: ApiServerSettings | None = None,
    auth_settings: AuthSettings | None = None,
    *,
    identity_provider: IdentityProvider | None = None,
    db: Database | None = None,
    clock: Callable[[], datetime] = _utc_now,
    rate_limiter: SlidingWindowRateLimiter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ApiServerSettings()
    if identity_provider is None:  # pragma: no cover
        if auth_settings is None:
            auth_settings = AuthSettings()  # type: ignore[call-arg]
        identity_provider = HttpIdentityProvider(auth_settings)

    routes = [
        # Protected JSON routes (401 JSON when unauthenticated)
        Route("/api/follow", protected_api(follow), methods=["POST"], name="follow"),
        Route("/api/unfollow", protected_api(unfollow), methods=["POST"], name="unfollow"),
        Route("/api/following", protected_api(list_following), methods=["GET"], name="list_following"),
        Route(
            "/api/leaderboard/{game_id}/rank",
            protected_api(user_ranking),
            methods=["GET"],
            name="user_ranking",
        ),
        Route("/api/records", protected_api(submit_record), methods=["POST"], name="submit_record"),
        Route("/api/records/today", protected_api(todays_records), methods=["GET"], name="todays_records"),
        Route("/api/records/delete", protected_api(delete_records), methods=["POST"], name="delete_records"),
        Route("/api/stats/{game_id}", protected_api(game_stats), methods=["GET"], name="game_stats"),
        Route("/api/profile", protected_api(get_profile), methods=["GET"], name="get_profile"),
        Route("/api/profile", protected_api(update_profile), methods=["PUT"], name="update_profile"),
        # Anonymous callers allowed; signed-in callers get more
        Route("/api/leaderboard", optional_auth(leaderboard), methods=["GET"], name="leaderboard"),
        # Public routes
        Route("/api/followers", public_route(list_followers), methods=["GET"], name="list_followers"),
        Route("/health", public_route(health), methods=["GET"], name="health"),
    ]
    validate_route_auth_policy(routes)

    if db is None:
        db = Database(settings.database_path)
        db.connect()
        db.seed_games(settings.games_file)
    records = SqliteRecordRepository(db)
    games = SqliteGameRepository(db)
    users = SqliteUserRepository(db)
    social = SqliteSocialRepository(db)

    if rate_limiter is None:
        rate_limiter = SlidingWindowRateLimiter(
            max_attempts=settings.rate_limit_max_attempts,
            window_seconds=settings.rate_limit_window_seconds,
        )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:  # pragma: no cover
        rate_limiter.start_cleanup()
        yield
        await rate_limiter.stop_cleanup()
        db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            TrackerError: _tracker_error_handler,
            HTTPException: _http_error_handler,
            Exception: _unhandled_error_handler,
        },
    )
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(
        AuthenticationMiddleware,  # type: ignore[arg-type]
        backend=BearerTokenBackend(identity_provider),
        on_error=on_auth_error,
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.clock = clock
    app.state.rate_limiter = rate_limiter
    app.state.social_service = SocialService(users, social)
    app.state.profile_service = ProfileService(users)
    app.state.leaderboard_service = LeaderboardService(
        records,
        games,
        ranking_ceiling=settings.leaderboard_ranking_ceiling,
    )
    app.state.record_service = RecordService(records, games)
    app.state.stats_service = StatsService(records, games)

    logger.info("tracker api ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory api.server.app:get_app."""
    s = ApiServerSettings()
    auth = AuthSettings()  # type: ignore[call-arg]
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, auth_settings=auth)
