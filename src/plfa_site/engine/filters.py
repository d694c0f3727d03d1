"""Custom Jinja2 filters for site templates."""

from __future__ import annotations

from datetime import date, datetime

from dateutil import parser as date_parser

from plfa_site.core.fields import format_date
from plfa_site.core.routes import route_to_url


def format_datetime(value: datetime | date | str, format_str: str = "%Y-%m-%d") -> str:
    """Format a date, parsing strings first.

    Args:
        value: Datetime, date or date string to format
        format_str: strftime format string (``%e`` gives a space-padded day)

    Returns:
        Formatted date string, or the input unchanged if it is not a date

    """
    if isinstance(value, str):
        try:
            value = date_parser.parse(value)
        except (ValueError, OverflowError):
            return value
    if not isinstance(value, (datetime, date)):
        return str(value)
    return format_date(value, format_str)


def pretty_url(value: str) -> str:
    """Drop a trailing ``index.html`` from a URL."""
    return route_to_url(value) if value.startswith("/") else route_to_url(value)[1:]
