"""Parse natural-language visit dates. Visits happen in the past, so
ambiguous dates resolve backwards."""

import re
from datetime import date, timedelta

# Day-of-week name → weekday int (Monday = 0)
_DAY_NAMES: dict[str, int] = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}

# Month name/abbreviation → month int
_MONTH_NAMES: dict[str, int] = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6,
    "jul": 7, "july": 7, "aug": 8, "august": 8, "sep": 9, "september": 9,
    "oct": 10, "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}


def _most_recent(month: int, day: int, today: date) -> date:
    """This year's month/day, or last year's if that is still ahead."""
    result = date(today.year, month, day)
    if result > today:
        result = date(today.year - 1, month, day)
    return result


def parse_visit_date(text: str, today: date | None = None) -> str:
    """Parse a visit date into YYYY-MM-DD.

    Supported formats:
    - ISO passthrough: "2026-02-14"
    - "today", "yesterday", "3 days ago"
    - "last Saturday" or a bare "Saturday" (the most recent one before today)
    - "Feb 14", "February 14", "2/14" (this year, or last year if that
      date has not happened yet)

    Raises:
        ValueError: If the string cannot be parsed or names an invalid date.
    """
    today = today or date.today()
    cleaned = text.strip().lower()

    if re.match(r"\d{4}-\d{2}-\d{2}$", cleaned):
        return date.fromisoformat(cleaned).isoformat()

    if cleaned == "today":
        return today.isoformat()
    if cleaned == "yesterday":
        return (today - timedelta(days=1)).isoformat()

    ago = re.match(r"(\d+)\s+days?\s+ago$", cleaned)
    if ago:
        return (today - timedelta(days=int(ago.group(1)))).isoformat()

    weekday = re.match(r"(?:last\s+)?(\w+)$", cleaned)
    if weekday and weekday.group(1) in _DAY_NAMES:
        days_back = (today.weekday() - _DAY_NAMES[weekday.group(1)]) % 7
        if days_back == 0:
            days_back = 7
        return (today - timedelta(days=days_back)).isoformat()

    month_day = re.match(r"([a-z]+)\s+(\d{1,2})$", cleaned)
    if month_day and month_day.group(1) in _MONTH_NAMES:
        month = _MONTH_NAMES[month_day.group(1)]
        return _most_recent(month, int(month_day.group(2)), today).isoformat()

    slash_date = re.match(r"(\d{1,2})/(\d{1,2})$", cleaned)
    if slash_date:
        month, day = int(slash_date.group(1)), int(slash_date.group(2))
        return _most_recent(month, day, today).isoformat()

    raise ValueError(f"Cannot parse date: '{text}'")
