"""Local-midnight epoch helpers shared by the attendance write and read paths."""
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

def local_midnight_ms(day: date) -> int:
    """Epoch milliseconds of 00:00:00 local time on ``day``."""
    midnight = datetime(day.year, day.month, day.day)
    return int(midnight.timestamp() * 1000)

def resolve_date_ms(date_ms=None, date_str: Optional[str] = None) -> Optional[int]:
    """Pick the session date from a raw ``date_ms`` or a ``YYYY-MM-DD`` string.

    ``date_ms`` is trusted to already be a local midnight. Returns None when
    neither is usable.
    """
    if date_ms is not None and date_ms != '':
        try:
            return int(date_ms)
        except (TypeError, ValueError):
            return None
    if date_str:
        try:
            parsed = datetime.strptime(str(date_str).strip()[:10], '%Y-%m-%d').date()
        except ValueError:
            return None
        return local_midnight_ms(parsed)
    return None

def month_window_ms(year: int, month: int) -> Tuple[int, int]:
    """Inclusive epoch-ms bounds of a calendar month in local time."""
    start = local_midnight_ms(date(year, month, 1))
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    end = local_midnight_ms(next_month) - 1
    return start, end

def ms_to_iso(value_ms: int) -> str:
    """Render an epoch-ms value as a UTC ISO string."""
    return (datetime(1970, 1, 1) + timedelta(milliseconds=value_ms)).isoformat() + 'Z'

def ms_to_day(value_ms: int) -> str:
    """Calendar day (local time) of an epoch-ms value."""
    return datetime.fromtimestamp(value_ms / 1000).strftime('%Y-%m-%d')
