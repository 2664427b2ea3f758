"""Time parsing and formatting utilities."""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo

from zoneinfo import ZoneInfo


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Create tzinfo from an IANA timezone name.

    Args:
        tz_name: Timezone name like "Asia/Jerusalem".

    Returns:
        tzinfo instance.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"无效时区：{tz_name!r}。例如可用：Asia/Jerusalem") from exc


def dt_from_epoch_ms(epoch_ms: int, tz_name: str) -> datetime:
    """Convert epoch milliseconds to timezone-aware datetime."""

    tz = tzinfo_from_name(tz_name)
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tz)


def epoch_ms_from_dt(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds.

    Args:
        dt: Datetime. If naive, will be treated as UTC (discouraged).
    """

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * 1000)


def now_ms() -> int:
    return epoch_ms_from_dt(datetime.now(UTC))


def parse_dt(text: str, tz_name: str) -> datetime:
    """Parse user-provided datetime text to a timezone-aware datetime.

    Supported formats:
      - "YYYY-MM-DD HH:MM:SS"
      - "YYYY-MM-DDTHH:MM:SS"
      - with optional timezone offset, e.g. "+02:00"

    If timezone is missing, it will be assumed to be tz_name.

    Raises:
        ValueError: If cannot parse.
    """

    s = text.strip().replace("T", " ")
    tz = tzinfo_from_name(tz_name)
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as exc:
        raise ValueError(f"无法解析时间：{text!r}。建议格式：2025-12-18 09:30:00") from exc

    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)
