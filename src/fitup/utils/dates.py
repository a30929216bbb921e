"""Date and time helpers. All timestamps are timezone-aware UTC."""

from datetime import date, datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored ISO timestamp, assuming UTC when no offset is present."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def start_of_week(day: date | datetime) -> date:
    """Monday of the week containing ``day``."""
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


def iso_week_key(day: date | datetime) -> str:
    """ISO year-week key such as ``2024-W07``."""
    if isinstance(day, datetime):
        day = day.date()
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"
