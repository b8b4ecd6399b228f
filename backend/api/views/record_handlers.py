"""Record submission and per-user statistics endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from api.services.records import RecordSubmission
from api.views.common import now, parse_body, parse_json_body, sync_caller, throttle
from shared.errors import ValidationError
from shared.validators import parse_timezone

if TYPE_CHECKING:
    from starlette.requests import Request

    from api.auth.models import AuthenticatedUser
    from api.services.records import RecordService
    from api.services.stats import StatsService
    from tracker.stats import GameStats

MAX_BATCH_DELETE = 100


def stats_payload(result: GameStats) -> dict[str, object]:
    stats, streaks = result.stats, result.streaks
    return {
        "game_id": result.game_id,
        "computed_at": result.computed_at.isoformat(),
        "total_played": stats.total_played,
        "total_won": stats.total_won,
        "total_failed": stats.total_failed,
        "win_rate": result.win_rate,
        "average_score": stats.average_score,
        "score_field": list(stats.score_field) if stats.score_field else None,
        "score_distribution": stats.score_distribution,
        "last_played_date": stats.last_played_date.isoformat() if stats.last_played_date else None,
        "playstreak": streaks.playstreak,
        "winstreak": streaks.winstreak,
        "max_winstreak": streaks.max_winstreak,
        "streak_at_risk": streaks.streak_at_risk,
        "issues": [{"record_id": issue.record_id, "reason": issue.reason} for issue in stats.issues],
    }


async def submit_record(request: Request) -> JSONResponse:
    """POST /api/records?tz=... - score share text and save today's record for a game."""
    user: AuthenticatedUser = request.user
    throttle(request, "records", user.user_id)
    tz = parse_timezone(request.query_params.get("tz"))
    submission = await parse_body(request, RecordSubmission)
    await sync_caller(request)
    service: RecordService = request.app.state.record_service
    record = await service.submit(user.user_id, submission, now(request), tz)
    return JSONResponse({"success": True, "record": record.model_dump(mode="json")})


async def todays_records(request: Request) -> JSONResponse:
    """GET /api/records/today?tz=... - the caller's records in each game's open puzzle period."""
    user: AuthenticatedUser = request.user
    throttle(request, "records", user.user_id)
    tz = parse_timezone(request.query_params.get("tz"))
    service: RecordService = request.app.state.record_service
    records = await service.todays_records(user.user_id, now(request), tz)
    return JSONResponse(
        {"success": True, "data": [record.model_dump(mode="json") for record in records], "count": len(records)},
    )


async def delete_records(request: Request) -> JSONResponse:
    """POST /api/records/delete - delete several of the caller's records."""
    user: AuthenticatedUser = request.user
    throttle(request, "records", user.user_id)
    body = await parse_json_body(request)
    record_ids = body.get("record_ids")
    if (
        not isinstance(record_ids, list)
        or not record_ids
        or not all(isinstance(record_id, str) and record_id for record_id in record_ids)
    ):
        raise ValidationError("record_ids must be a non-empty list of ids", field="record_ids")
    if len(record_ids) > MAX_BATCH_DELETE:
        raise ValidationError(f"At most {MAX_BATCH_DELETE} records can be deleted at once", field="record_ids")

    service: RecordService = request.app.state.record_service
    result = await service.delete_records(user.user_id, record_ids)
    return JSONResponse(
        {
            "success": not result.failed,
            "deleted": result.deleted,
            "not_found": result.not_found,
            "failed": result.failed,
        },
    )


async def game_stats(request: Request) -> JSONResponse:
    """GET /api/stats/{game_id}?tz=...&field=... - streaks and aggregates for one game."""
    user: AuthenticatedUser = request.user
    throttle(request, "stats", user.user_id)
    tz = parse_timezone(request.query_params.get("tz"))
    score_field = request.query_params.get("field") or None
    service: StatsService = request.app.state.stats_service
    result = await service.game_stats(user.user_id, request.path_params["game_id"], now(request), tz, score_field)
    return JSONResponse({"success": True, "data": stats_payload(result)})
