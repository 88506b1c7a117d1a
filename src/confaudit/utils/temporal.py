"""Date helpers shared by the checkpoint file and the change report."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone

# git's default log date format, e.g. "Tue Dec 10 13:07:28 2019 +0800"
GIT_DATE_FORMAT = "%a %b %d %H:%M:%S %Y %z"


def format_git_date(moment: datetime) -> str:
    """Render a datetime in git's default date format (second precision)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.strftime(GIT_DATE_FORMAT)


def parse_git_date(value: str) -> datetime:
    """Parse a timestamp written by format_git_date.

    Raises:
        ValueError: if the text does not match GIT_DATE_FORMAT.
    """
    return datetime.strptime(value.strip(), GIT_DATE_FORMAT)


def months_before(moment: datetime, months: int) -> datetime:
    """Shift a datetime back by calendar months.

    The day of month is clamped to the last day of the target month, so
    2026-08-31 minus six months is 2026-02-28.
    """
    total = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
