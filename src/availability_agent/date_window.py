"""Date helpers shared by the scraper and the availability service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import structlog
from dateutil import parser as date_parser

LOGGER = structlog.get_logger(__name__)

SITE_DATE_FORMAT = "%d-%m-%Y"


@dataclass(frozen=True)
class DateRange:
    """A one-night stay used to probe the booking engine."""

    check_in: date
    check_out: date

    def __post_init__(self) -> None:
        if self.check_out - self.check_in != timedelta(days=1):
            raise ValueError(
                f"check_out must be exactly one day after check_in, got {self.check_in} -> {self.check_out}"
            )

    @classmethod
    def one_night(cls, check_in: date) -> "DateRange":
        return cls(check_in=check_in, check_out=check_in + timedelta(days=1))

    @property
    def site_check_in(self) -> str:
        return format_site_date(self.check_in)

    @property
    def site_check_out(self) -> str:
        return format_site_date(self.check_out)


def format_site_date(value: date) -> str:
    """Render a date the way the booking engine's inputs expect (DD-MM-YYYY)."""
    return value.strftime(SITE_DATE_FORMAT)


def parse_site_date(text: str) -> date:
    """Inverse of :func:`format_site_date`."""
    return datetime.strptime(text.strip(), SITE_DATE_FORMAT).date()


def get_zone(timezone_name: str) -> ZoneInfo:
    """Return a ZoneInfo instance, defaulting to UTC on failure."""
    try:
        return ZoneInfo(timezone_name)
    except Exception:  # pragma: no cover - fallback
        LOGGER.warning("timezone.unknown", timezone=timezone_name, fallback="UTC")
        return ZoneInfo("UTC")


def today_in_timezone(timezone_name: str) -> date:
    return datetime.now(tz=get_zone(timezone_name)).date()


def normalise_start_date(value: date | datetime | str | None, timezone_name: str = "UTC") -> date:
    """Collapse whatever the caller supplied into a date-only value.

    ``None`` means "today" in the configured time zone. Strings are read as
    ISO dates first and fall back to a lenient parse, which raises
    ``ValueError`` for text that holds no date.
    """
    if value is None:
        return today_in_timezone(timezone_name)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(get_zone(timezone_name))
        return value.date()
    if isinstance(value, date):
        return value
    cleaned = value.strip()
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        return date_parser.parse(cleaned).date()


def parse_label_date(text: str) -> Optional[date]:
    """Best-effort parsing of a site-native calendar label such as ``Mon 20 Oct 2026``."""
    if not text:
        return None
    cleaned = text.strip()
    if not cleaned:
        return None

    try:
        dt = date_parser.parse(cleaned, dayfirst=True, fuzzy=True)
    except (ValueError, OverflowError) as exc:
        LOGGER.debug("date.parse_failed", text=cleaned, error=str(exc))
        return None
    return dt.date()
