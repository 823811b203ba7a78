"""
Request-layer validation.

The repositories trust their inputs, so every field-level rule is enforced
here before a call reaches `cadenza.core`:
- ids must be UUIDs (normalized to canonical lowercase form)
- names/titles must be non-blank and within their length limits
- release years must fall in [MIN_RELEASE_YEAR, MAX_RELEASE_YEAR]
- durations must be positive
- pagination: page >= 0, 1 <= size <= MAX_PAGE_SIZE

Violations raise `HTTPException(400)`.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from fastapi import HTTPException, Request

MIN_RELEASE_YEAR = 1900
MAX_RELEASE_YEAR = 2025
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10

ARTIST_NAME_MAX = 100
GENRE_MAX = 50
TITLE_MAX = 150


def bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=400, detail=detail)


def parse_id(value: str, what: str = "ID") -> str:
    """Return `value` as a canonical UUID string."""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        raise bad_request(f"Invalid {what}: {value!r}") from None


def check_pagination(page: int, size: int) -> None:
    if page < 0 or size < 1 or size > MAX_PAGE_SIZE:
        raise bad_request(
            f"Invalid pagination: page must be >= 0 and size in 1..{MAX_PAGE_SIZE}"
        )


async def read_body(request: Request) -> dict[str, Any]:
    """Parse the request body as a JSON object."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise bad_request("Request body must be valid JSON") from None
    if not isinstance(body, dict):
        raise bad_request("Request body must be a JSON object")
    return body


def required_text(body: dict[str, Any], key: str, max_len: int) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value.strip():
        raise bad_request(f"'{key}' is required and must not be blank")
    value = value.strip()
    if len(value) > max_len:
        raise bad_request(f"'{key}' must be at most {max_len} characters")
    return value


def optional_text(body: dict[str, Any], key: str, max_len: int) -> str | None:
    value = body.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise bad_request(f"'{key}' must be a string")
    value = value.strip()
    if not value:
        return None
    if len(value) > max_len:
        raise bad_request(f"'{key}' must be at most {max_len} characters")
    return value


def required_int(body: dict[str, Any], key: str) -> int:
    value = body.get(key)
    # bool is an int subclass; `true` is not a year.
    if isinstance(value, bool) or not isinstance(value, int):
        raise bad_request(f"'{key}' is required and must be an integer")
    return value


def release_year(body: dict[str, Any], key: str = "releaseYear") -> int:
    year = required_int(body, key)
    if not MIN_RELEASE_YEAR <= year <= MAX_RELEASE_YEAR:
        raise bad_request(
            f"'{key}' must be between {MIN_RELEASE_YEAR} and {MAX_RELEASE_YEAR}"
        )
    return year


def duration(body: dict[str, Any], key: str = "duration") -> int:
    seconds = required_int(body, key)
    if seconds <= 0:
        raise bad_request(f"'{key}' must be greater than 0")
    return seconds


def reference_id(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str):
        raise bad_request(f"'{key}' is required")
    return parse_id(value, key)
