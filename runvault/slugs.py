"""Slug helpers for folder names and event folders."""
import re
from datetime import date, datetime

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

EVENT_SLUG_PREFIX = "event_"


def normalize(name: str) -> str:
    """Turn free text into a URL-safe slug.

    Lower-cases, collapses every run of characters outside ``a-z0-9`` into a
    single hyphen and trims hyphens at both ends. Empty input gives ``""``;
    callers must reject empty slugs before inserting.

    >>> normalize("Morning Run!!")
    'morning-run'
    """
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def _calendar_date(value: date | datetime) -> date:
    # Aware datetimes are read in the local calendar of this node
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def date_slug(value: date | datetime) -> str:
    """Slug for an event folder, e.g. ``event_2025-02-15``."""
    day = _calendar_date(value)
    return f"{EVENT_SLUG_PREFIX}{day.year:04d}-{day.month:02d}-{day.day:02d}"


def event_folder_name(value: date | datetime, title: str | None = None) -> str:
    """Display name for an event folder: ``Feb 15`` or ``Feb 15 - Hill repeats``."""
    day = _calendar_date(value)
    label = f"{day:%b} {day.day}"
    title = (title or "").strip()
    return f"{label} - {title}" if title else label


def suffixed(base: str, n: int) -> str:
    """Candidate slug number ``n``: the base itself for 0, ``base_n`` after that."""
    return base if n == 0 else f"{base}_{n}"
