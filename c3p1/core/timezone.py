"""Clock and timezone utilities."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Get the current time as a naive UTC datetime.

    All timestamps are stored naive-UTC so that values read back from SQLite
    compare cleanly against freshly generated ones.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def format_for_display(
    dt: datetime,
    timezone_str: str = "UTC",
    fmt: str = "%Y-%m-%d %H:%M:%S %Z",
) -> str:
    """Format a datetime for display in the given timezone.

    Assumes naive datetimes are UTC.

    Examples:
        >>> format_for_display(datetime(2026, 2, 8, 17, 30), "America/Denver")
        '2026-02-08 10:30:00 MST'
    """
    tz = ZoneInfo(timezone_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(tz).strftime(fmt)
