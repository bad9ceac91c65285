"""Business date parsing shared by request bodies and the date query."""

import re
from datetime import date, datetime

from table_orders.core.exceptions import InvalidInput

BUSINESS_DATE_FORMAT = "%Y-%m-%d"
_BUSINESS_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_business_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD calendar day.

    Raises:
        InvalidInput: If the value is empty or not a real calendar day
    """
    if not value:
        raise InvalidInput("Date parameter is required")

    value = value.strip()
    if not _BUSINESS_DATE_RE.match(value):
        raise InvalidInput("Invalid date format. Use YYYY-MM-DD")

    try:
        return datetime.strptime(value, BUSINESS_DATE_FORMAT).date()
    except ValueError:
        raise InvalidInput(f"Invalid date {value!r}. Use YYYY-MM-DD")
