"""Shared validation helpers for settings and request parameters."""

from __future__ import annotations

import json
from datetime import UTC, datetime, tzinfo
from typing import TYPE_CHECKING, Any, NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import EnvSettingsSource

from shared.errors import ValidationError

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a string list from an environment variable or config value.

    Accepts a list of strings, a JSON array string ('["a","b"]') or a
    comma-separated string ('a,b'). Raises ValueError for blank or malformed
    values, and for empty lists unless allow_empty is set.
    """
    if isinstance(value, list):
        if not allow_empty and not value:
            raise ValueError("String list value must not be empty")
        return value

    stripped = value.strip()
    if not stripped:
        if allow_empty:
            return []
        raise ValueError("String list value must not be empty")

    if stripped.startswith("["):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise ValueError("JSON value must be an array of strings")
        if not allow_empty and not parsed:
            raise ValueError("String list value must not be empty")
        return parsed

    result = [item.strip() for item in stripped.split(",") if item.strip()]
    if not allow_empty and not result:
        raise ValueError("String list value must not be empty")
    return result


_STRING_LIST_FIELDS = {"cors_origins", "trusted_proxies"}


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env settings source that hands string-list fields to validators as raw strings.

    pydantic-settings JSON-decodes list-typed env vars before validators run,
    which rejects the CSV form. This source skips that step for string-list
    fields so parse_string_list sees the original value.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in _STRING_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)


class Page(NamedTuple):
    limit: int
    offset: int


def parse_int_param(raw: str | None, name: str, default: int) -> int:
    """Parse an optional integer query parameter, raising ValidationError on junk."""
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"'{name}' must be an integer", field=name) from e


def parse_page(
    limit_raw: str | None,
    offset_raw: str | None,
    *,
    default_limit: int,
    max_limit: int,
) -> Page:
    """Clamp limit into [1, max_limit] and offset to >= 0."""
    limit = parse_int_param(limit_raw, "limit", default_limit)
    offset = parse_int_param(offset_raw, "offset", 0)
    return Page(limit=min(max(limit, 1), max_limit), offset=max(offset, 0))


def parse_since(raw: str | None) -> datetime | None:
    """Parse an ISO date or datetime lower bound. Naive values are read as UTC."""
    if raw is None or raw.strip() == "":
        return None
    try:
        since = datetime.fromisoformat(raw.strip())
    except ValueError as e:
        raise ValidationError("'since' must be an ISO-8601 date or datetime", field="since") from e
    if since.tzinfo is None:
        since = since.replace(tzinfo=UTC)
    return since


def parse_timezone(raw: str | None) -> tzinfo:
    """Resolve an IANA zone name such as "Europe/Berlin"; blank means UTC."""
    if raw is None or raw.strip() == "":
        return UTC
    try:
        return ZoneInfo(raw.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone '{raw}'", field="tz") from e
