"""Error kinds raised across the tracker and mapped to stable API error codes.

Every externally visible failure is a ``TrackerError`` subclass. The HTTP layer
turns ``error_code`` and ``status_code`` into the response; the message is the
only free-form text that crosses the boundary.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class TrackerError(Exception):
    """Base class for domain errors with a machine-readable kind."""

    error_code = "internal_error"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, object]:
        return {"success": False, "error": self.message, "error_code": self.error_code}


class ValidationError(TrackerError):
    """Missing or malformed input. ``field`` names the offending input when known."""

    error_code = "validation_error"
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        if self.field is not None:
            payload["field"] = self.field
        return payload


class AuthError(TrackerError):
    error_code = "unauthenticated"
    status_code = HTTPStatus.UNAUTHORIZED


class ThrottleError(TrackerError):
    """Rate limit exceeded. ``retry_after`` is in seconds."""

    error_code = "rate_limited"
    status_code = HTTPStatus.TOO_MANY_REQUESTS

    def __init__(self, message: str, retry_after: float) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["retry_after"] = round(self.retry_after, 3)
        return payload


class NotFoundError(TrackerError):
    error_code = "not_found"
    status_code = HTTPStatus.NOT_FOUND


class BackendError(TrackerError):
    """Persistence or identity-provider failure.

    Raise with ``raise BackendError(...) from exc`` so the cause is kept for
    logging; the cause is never included in the payload.
    """


class PartialSaveError(BackendError):
    """A batch write stopped part-way. Only ``unsaved_ids`` need resubmitting."""

    def __init__(self, message: str, saved_ids: Sequence[str], unsaved_ids: Sequence[str]) -> None:
        super().__init__(message)
        self.saved_ids = list(saved_ids)
        self.unsaved_ids = list(unsaved_ids)


class ShareTextError(ValidationError):
    """Pasted share text that does not fit the expected game's format."""

    def __init__(self, message: str) -> None:
        super().__init__(message, field="share_text")
