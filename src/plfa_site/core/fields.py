"""Field resolvers derived from metadata, snapshots and dates."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import UTC, date, datetime
from pathlib import PurePosixPath

from dateutil import parser as date_parser

from plfa_site.core.context import Context, field
from plfa_site.core.exceptions import MissingFieldError, NoTitleSubtitleDistinctionError
from plfa_site.core.ports import BuildAccess
from plfa_site.core.types import Item

logger = logging.getLogger(__name__)

TEASER_SEPARATOR = "<!--more-->"
DATE_METADATA_KEYS = ("published", "date")
_FILENAME_DATE = re.compile(r"^(\d{4}-\d{1,2}-\d{1,2})-")


# --- Title / subtitle -------------------------------------------------------


def split_title(title: str) -> tuple[str, str] | None:
    """Split a title on its first colon into (running title, subtitle).

    >>> split_title("Lists: Lists and Higher-Order Functions")
    ('Lists', 'Lists and Higher-Order Functions')
    >>> split_title("A: B: C")
    ('A', 'B: C')
    >>> split_title("Preface") is None
    True
    """
    running, separator, subtitle = title.partition(":")
    if not separator:
        return None
    return running.rstrip(), subtitle.strip()


def _split_title_of(key: str, item: Item, build: BuildAccess) -> tuple[str, str]:
    title = build.get_field_or_none(item.identifier, "title")
    if title is None:
        raise MissingFieldError(key, item.identifier, reason="no title")
    parts = split_title(title)
    if parts is None:
        raise NoTitleSubtitleDistinctionError(key, title, item.identifier)
    return parts


def titlerunning_field(key: str = "titlerunning") -> Context:
    return field(key, lambda item, build: _split_title_of(key, item, build)[0])


def subtitle_field(key: str = "subtitle") -> Context:
    return field(key, lambda item, build: _split_title_of(key, item, build)[1])


# --- Snapshots --------------------------------------------------------------


def content_field(key: str, snapshot: str) -> Context:
    """The body of a previously saved snapshot of the item."""
    return field(key, lambda item, build: build.load_snapshot(item.identifier, snapshot))


def teaser_field(key: str, snapshot: str) -> Context:
    """The snapshot up to the ``<!--more-->`` separator."""

    def teaser(item: Item, build: BuildAccess) -> str:
        body = build.load_snapshot(item.identifier, snapshot)
        head, separator, _ = str(body).partition(TEASER_SEPARATOR)
        if not separator:
            raise MissingFieldError(key, item.identifier, reason="no teaser separator")
        return head

    return field(key, teaser)


# --- Dates ------------------------------------------------------------------


def format_date(value: datetime | date, fmt: str) -> str:
    """``strftime`` with ``%e`` rendered as a space-padded day on every platform."""
    return value.strftime(fmt.replace("%e", f"{value.day:2d}"))


def item_date(identifier: str, build: BuildAccess) -> datetime | None:
    """Date of an item from its metadata or a ``YYYY-MM-DD-`` filename prefix."""
    for key in DATE_METADATA_KEYS:
        raw = build.get_field_or_none(identifier, key)
        if raw is None:
            continue
        try:
            parsed = date_parser.parse(raw)
        except (ValueError, OverflowError) as exc:
            logger.warning("Unparsable %s %r in %s: %s", key, raw, identifier, exc)
            continue
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)

    match = _FILENAME_DATE.match(PurePosixPath(identifier).name)
    if match:
        try:
            return datetime.strptime(match.group(1), "%Y-%m-%d").replace(tzinfo=UTC)
        except ValueError:
            return None
    return None


def date_field(key: str, fmt: str) -> Context:
    def formatted(item: Item, build: BuildAccess) -> str:
        value = item_date(item.identifier, build)
        if value is None:
            raise MissingFieldError(key, item.identifier, reason="no date in metadata or file name")
        return format_date(value, fmt)

    return field(key, formatted)


def modification_time_field(key: str, fmt: str) -> Context:
    return field(key, lambda item, build: format_date(build.modification_time(item.identifier), fmt))


# --- Ordering ---------------------------------------------------------------


def numeric_key(identifier: str, key: str, build: BuildAccess) -> int:
    raw = build.get_field_or_none(identifier, key)
    if raw is None:
        return 0
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def by_numeric_field_asc(items: Sequence[Item], key: str, build: BuildAccess) -> list[Item]:
    """Stable ascending sort on an integer metadata key (missing or bad = 0)."""
    keyed = [(numeric_key(item.identifier, key, build), item) for item in items]
    return [item for _, item in sorted(keyed, key=lambda pair: pair[0])]


def by_numeric_field_desc(items: Sequence[Item], key: str, build: BuildAccess) -> list[Item]:
    return list(reversed(by_numeric_field_asc(items, key, build)))


def chronological(items: Sequence[Item], build: BuildAccess) -> list[Item]:
    floor = datetime.min.replace(tzinfo=UTC)
    return sorted(items, key=lambda item: item_date(item.identifier, build) or floor)


def recent_first(items: Sequence[Item], build: BuildAccess) -> list[Item]:
    return list(reversed(chronological(items, build)))
