"""ISO-8601 timestamp helpers shared by the fetcher and the stores."""

from collections.abc import Iterable
from datetime import datetime, timezone


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Raindrop emits UTC timestamps with a trailing ``Z``; naive values are
    treated as UTC.

    Raises:
        ValueError: If the value is not ISO-8601
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_newer(value: str, cursor: str) -> bool:
    """Return True if ``value`` is strictly after ``cursor``."""
    return parse_timestamp(value) > parse_timestamp(cursor)


def latest_timestamp(values: Iterable[str | None]) -> str | None:
    """Return the latest of ``values`` as its original string, or None.

    Unparseable values are ignored.
    """
    latest: str | None = None
    latest_dt: datetime | None = None
    for value in values:
        if not value:
            continue
        try:
            parsed = parse_timestamp(value)
        except ValueError:
            continue
        if latest_dt is None or parsed > latest_dt:
            latest, latest_dt = value, parsed
    return latest
