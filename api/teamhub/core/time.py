"""Central time utilities for the application.

Columns are TIMESTAMP WITHOUT TIME ZONE, so helpers return naive UTC values.
"""
from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as a naive datetime object."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    """Return the current UTC calendar date."""
    return utc_now().date()
