"""Date and time wire formats used by the provider.

- Milliseconds: {"milliseconds": 1700000000000}
- Seconds: 1700000000
- DateTimeMilliOffset: "2023-11-14T22:13:20.123+03:00"
- MoscowDate: "2023-11-14", midnight in Europe/Moscow

All of them decode into timezone-aware datetimes.
"""

from datetime import UTC, date, datetime, time
from functools import lru_cache
from typing import Annotated, Any
from zoneinfo import ZoneInfo

from pydantic import BeforeValidator

MOSCOW_TIMEZONE = "Europe/Moscow"


@lru_cache(maxsize=1)
def moscow_timezone() -> ZoneInfo:
    """Loaded on first use and kept for the process lifetime."""
    return ZoneInfo(MOSCOW_TIMEZONE)


def _parse_milliseconds(value: Any) -> Any:
    if isinstance(value, dict):
        value = value.get("milliseconds")
        if value is None:
            raise ValueError("missing 'milliseconds'")
        return datetime.fromtimestamp(int(value) / 1000, tz=UTC)
    return value


def _parse_seconds(value: Any) -> Any:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.fromtimestamp(int(value), tz=UTC)
    return value


def _parse_datetime_milli_offset(value: Any) -> Any:
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            raise ValueError(f"timestamp without offset: {value}")
        return parsed
    return value


def _parse_moscow_date(value: Any) -> Any:
    if isinstance(value, str):
        return datetime.combine(date.fromisoformat(value), time(), tzinfo=moscow_timezone())
    return value


Milliseconds = Annotated[datetime, BeforeValidator(_parse_milliseconds)]
Seconds = Annotated[datetime, BeforeValidator(_parse_seconds)]
DateTimeMilliOffset = Annotated[datetime, BeforeValidator(_parse_datetime_milli_offset)]
MoscowDate = Annotated[datetime, BeforeValidator(_parse_moscow_date)]


def to_unix_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def to_invest_timestamp(value: datetime) -> str:
    """Format as UTC "YYYY-MM-DDTHH:MM:SS[.fff]Z", trailing zero millis dropped."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    millis = value.microsecond // 1000
    if millis:
        text += f".{millis:03d}".rstrip("0")
    return text + "Z"
