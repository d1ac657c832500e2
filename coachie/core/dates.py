"""Calendar helpers for check-in days and Monday-start coaching weeks."""

import os
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

# IANA zone name, e.g. "America/New_York". Unset means the server's local zone.
COACHIE_TIMEZONE = os.getenv("COACHIE_TIMEZONE", "").strip()

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def today_local(tz_name: Optional[str] = None) -> date:
    zone = (tz_name if tz_name is not None else COACHIE_TIMEZONE).strip()
    if zone:
        return datetime.now(ZoneInfo(zone)).date()
    return datetime.now().date()


def parse_iso_date(text: str) -> date:
    try:
        return date.fromisoformat(str(text).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date '{text}', expected YYYY-MM-DD") from exc


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def week_start_for(day: date) -> date:
    return day - timedelta(days=day.weekday())


def current_week_range(today: Optional[date] = None) -> tuple[date, date]:
    """Monday of the current week through today, both inclusive."""
    today = today or today_local()
    return week_start_for(today), today


def week_range_from_start(week_start: date) -> tuple[date, date]:
    return week_start, add_days(week_start, 6)


def previous_week_start(week_start: date) -> date:
    return add_days(week_start, -7)


def current_week_days(today: Optional[date] = None) -> list[dict[str, object]]:
    today = today or today_local()
    monday = week_start_for(today)
    days: list[dict[str, object]] = []
    for offset in range(7):
        day = add_days(monday, offset)
        days.append(
            {
                "dayName": DAY_NAMES[day.weekday()],
                "dateLabel": f"{day.strftime('%b')} {day.day}",
                "isToday": day == today,
                "isoDate": day.isoformat(),
            }
        )
    return days
