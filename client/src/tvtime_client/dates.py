"""Calendar-date helpers for the daily bonus and the reconciler."""

from datetime import date, datetime, timedelta

from .errors import DateParseError


def today(now: datetime | None = None) -> date:
    """Local calendar date, time of day dropped."""
    return (now or datetime.now()).date()


def parse_check_date(value: str) -> date:
    """Parse a stored last-check value into a local calendar date.

    Accepts a plain ISO date ("2024-01-15") as written by this client and
    full ISO timestamps ("2024-01-15T05:00:00.000Z") as written by the web
    client. Aware timestamps are converted to local time before the time
    of day is dropped.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError) as e:
        raise DateParseError(f"Invalid check date: {value!r}") from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def parse_optional_check_date(value: str | None) -> date | None:
    """Like parse_check_date, but missing or malformed values become None."""
    if not value:
        return None
    try:
        return parse_check_date(value)
    except DateParseError:
        return None


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from now until the next local midnight."""
    midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), now.tzinfo)
    return max(0.0, (midnight - now).total_seconds())
