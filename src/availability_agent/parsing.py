"""Pure parsing of booking engine markup (no browser required)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag

from .date_window import parse_label_date
from .models import AVAILABLE, SOLD_OUT, DayRecord, FastCheckResult, RoomCard, RoomOption

PLACEHOLDER_ROOM_LABEL = "--Select--"
CALENDAR_ROW_SELECTOR = "table.scroll-tble tr"
AVAILABLE_CELL_CLASS = "avail"
DATE_LABEL_PATTERN = re.compile(r"for\s+(.*?)\s+with", re.IGNORECASE | re.DOTALL)

SOLD_OUT_PHRASE = "We have no rooms available"
SOLD_OUT_CARD_CLASS = "sold-out"
CARD_NAME_SELECTORS = ("h3.followMeBar em", "h3")
CARD_PRICE_SELECTOR = ".price, .amount, .room-rate"
CARD_PRICE_PATTERN = re.compile(r"Rs\.?\s*([\d,]+)", re.IGNORECASE)
UNKNOWN_ROOM = "Unknown Room"
PRICE_FALLBACK = "Check Details"


@dataclass
class CalendarCell:
    """One day cell of the availability calendar table."""

    label: str
    price: Optional[str]
    available: bool


@dataclass
class CalendarTable:
    """Rows scraped from one render of the availability calendar."""

    rows: List[List[CalendarCell]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def cells(self) -> Iterable[CalendarCell]:
        for row in self.rows:
            yield from row


@dataclass
class RawRoomCard:
    """Room card markup as captured from the page, plus its layout visibility."""

    html: str
    visible: bool


def normalise_whitespace(text: str) -> str:
    """Collapse repeated whitespace into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()


def filter_room_options(options: Iterable[Mapping[str, str]]) -> List[RoomOption]:
    """Drop placeholder entries (empty value or the ``--Select--`` label) and repeated values."""
    rooms: List[RoomOption] = []
    seen: set[str] = set()
    for option in options:
        value = (option.get("value") or "").strip()
        label = (option.get("text") or option.get("label") or "").strip()
        if not value or label == PLACEHOLDER_ROOM_LABEL or value in seen:
            continue
        seen.add(value)
        rooms.append(RoomOption(value=value, label=label))
    return rooms


def extract_label_date(label: str) -> Optional[str]:
    """Pull the calendar date out of a cell label like ``Rate for Mon 20 Oct 2026 with ...``."""
    match = DATE_LABEL_PATTERN.search(label or "")
    if not match:
        return None
    value = normalise_whitespace(match.group(1))
    return value or None


def parse_calendar_table(html: str) -> CalendarTable:
    """Read every data row of the availability table, skipping the leading label column."""
    soup = BeautifulSoup(html, "html.parser")
    table = CalendarTable()
    for row in soup.select(CALENDAR_ROW_SELECTOR):
        cells = row.find_all("td")
        if not cells:
            continue
        table.rows.append([_parse_calendar_cell(cell) for cell in cells[1:]])
    return table


def _parse_calendar_cell(cell: Tag) -> CalendarCell:
    span = cell.find("span")
    price = normalise_whitespace(span.get_text()) if span else ""
    return CalendarCell(
        label=cell.get("aria-label") or "",
        price=price or None,
        available=AVAILABLE_CELL_CLASS in (cell.get("class") or []),
    )


def collect_day_records(table: CalendarTable, seen_dates: set[str]) -> tuple[List[DayRecord], int]:
    """Turn table cells into day records.

    ``seen_dates`` is shared across every page scraped for one room; a date
    already present is ignored. Returns the new records and the number of
    cells whose label did not match the date pattern.
    """
    records: List[DayRecord] = []
    skipped = 0
    for cell in table.cells():
        date_text = extract_label_date(cell.label)
        if date_text is None:
            skipped += 1
            continue
        if date_text in seen_dates:
            continue
        seen_dates.add(date_text)
        records.append(
            DayRecord(
                date=date_text,
                price=cell.price,
                available=cell.available,
                iso_date=parse_label_date(date_text),
            )
        )
    return records, skipped


def is_sold_out_page(body_text: str) -> bool:
    return SOLD_OUT_PHRASE in (body_text or "")


def parse_room_card(raw: RawRoomCard) -> RoomCard:
    """Classify one room card and pull out its name and price."""
    soup = BeautifulSoup(raw.html, "html.parser")
    card = soup.find()
    if card is None:
        return RoomCard(name=UNKNOWN_ROOM, status=SOLD_OUT, price=PRICE_FALLBACK)

    text = card.get_text()
    name = UNKNOWN_ROOM
    for selector in CARD_NAME_SELECTORS:
        name_el = card.select_one(selector)
        if name_el is not None:
            name = name_el.get_text().strip() or UNKNOWN_ROOM
            break

    # Hidden cards are how the engine hides unbookable rooms.
    sold_out = (
        not raw.visible
        or SOLD_OUT in text
        or SOLD_OUT_CARD_CLASS in (card.get("class") or [])
    )

    price: Optional[str] = None
    price_el = card.select_one(CARD_PRICE_SELECTOR)
    if price_el is not None:
        price = price_el.get_text().strip() or None
    if not price:
        match = CARD_PRICE_PATTERN.search(text)
        if match:
            price = match.group(1)

    return RoomCard(
        name=name,
        status=SOLD_OUT if sold_out else AVAILABLE,
        price=price or PRICE_FALLBACK,
    )


def sold_out_result(date_text: str) -> FastCheckResult:
    return FastCheckResult(date=date_text, available=False, status=SOLD_OUT, rooms=[])


def summarise_room_cards(date_text: str, cards: Iterable[RawRoomCard]) -> FastCheckResult:
    """Build the fast-check result for a page that is not globally sold out."""
    rooms = [parse_room_card(card) for card in cards]
    return FastCheckResult(
        date=date_text,
        available=any(room.status == AVAILABLE for room in rooms),
        status=AVAILABLE,
        rooms=rooms,
    )
