"""Date helpers shared by records, breeding rules and exports.

Stored dates arrive in several shapes: Firestore timestamps (decoded to
aware datetimes), ISO strings from the local JSON cache, and Brazilian
"DD/MM/YYYY" strings typed into older records.
"""

import re
from datetime import date, datetime, timedelta

# Bovine gestation length used for every expected calving date
GESTATION_DAYS = 283

# Average month length used for age in months from a day count
DAYS_PER_MONTH = 30.44

_BR_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")


def parse_date(value) -> date | None:
    """Coerce a stored date value to a date, or None if missing/invalid."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        match = _BR_DATE.match(text)
        if match:
            day, month, year = (int(g) for g in match.groups())
            if year < 100:
                year += 2000
            try:
                return date(year, month, day)
            except ValueError:
                return None
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def parse_datetime(value) -> datetime | None:
    """Coerce a stored timestamp to a datetime, or None if missing/invalid."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def add_gestation(d: date) -> date:
    """Expected calving date for a conception on `d`."""
    return d + timedelta(days=GESTATION_DAYS)


def calendar_months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end, ignoring the day of month.

    Matches how farm staff count age: born in March, it's 18 months old
    from September of the following year regardless of the day.
    """
    return (end.year - start.year) * 12 + (end.month - start.month)


def age_in_months(birth_date: date | None, today: date | None = None) -> int:
    """Age in completed 30.44-day months (0 without a birth date)."""
    if birth_date is None:
        return 0
    today = today or date.today()
    return int((today - birth_date).days // DAYS_PER_MONTH)


def format_date_br(d: date | datetime | None) -> str:
    """Format as DD/MM/YYYY, "" when missing."""
    if d is None:
        return ""
    return d.strftime("%d/%m/%Y")


def json_default(value):
    """`default=` hook for json.dump that writes dates as ISO strings."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
