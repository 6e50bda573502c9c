"""
Shared fixtures for the availability agent tests.

The browser is replaced by an in-memory booking site so the scan flows can be
exercised without Chromium.
"""

import asyncio
from contextlib import asynccontextmanager

import pytest

from availability_agent.config import Settings
from availability_agent.models import AVAILABLE, FastCheckResult, RoomAvailability, RoomCard
from availability_agent.parsing import RawRoomCard, filter_room_options

EMPTY_TABLE_HTML = "<html><body><table class='scroll-tble'></table></body></html>"


def cell(date_text, price=None, available=True, label=None):
    label = label if label is not None else f"Rate for {date_text} with 1 room"
    css = " class='avail'" if available else " class='nonavail'"
    span = f"<span> {price} </span>" if price is not None else ""
    return f"<td aria-label='{label}'{css}>{span}</td>"


def calendar_html(*rows):
    """Render an availability table; each row is a list of ``cell()`` strings."""
    body = "".join(f"<tr><td>Room</td>{''.join(cells)}</tr>" for cells in rows)
    return (
        "<html><body><table class='scroll-tble'>"
        "<tr><th>Room</th><th>Day</th></tr>"
        f"{body}</table></body></html>"
    )


class FakeSite:
    """State of the simulated booking engine shared with the fake page."""

    def __init__(self, rooms=None, pages=None, body_text="", cards=None, empty_renders=0, fail_on=None):
        self.rooms = rooms or []
        self.pages = pages or {}
        self.body_text = body_text
        self.cards = cards or []
        self.empty_renders = empty_renders
        self.fail_on = fail_on
        self.calls = []
        self.current_room = None
        self.page_index = 0


class FakeBookingPage:
    """Stand-in for ``BookingPage`` driven by a ``FakeSite``."""

    def __init__(self, site, settings):
        self.site = site
        self.settings = settings

    def _record(self, name, *args):
        self.site.calls.append((name,) + args)
        if self.site.fail_on == name:
            raise RuntimeError(f"{name} timed out")

    async def open(self):
        self._record("open")

    async def set_dates(self, check_in, check_out):
        self._record("set_dates", check_in, check_out)

    async def submit_search(self):
        self._record("submit_search")

    async def open_calendar_overlay(self):
        self._record("open_calendar_overlay")

    async def room_options(self):
        self._record("room_options")
        return filter_room_options(self.site.rooms)

    async def select_room(self, value):
        self._record("select_room", value)
        self.site.current_room = value
        self.site.page_index = 0

    async def advance_page(self):
        self._record("advance_page")
        pages = self.site.pages.get(self.site.current_room, [])
        if self.site.page_index + 1 >= len(pages):
            return False
        self.site.page_index += 1
        return True

    async def calendar_html(self):
        self._record("calendar_html")
        if self.site.empty_renders > 0:
            self.site.empty_renders -= 1
            return EMPTY_TABLE_HTML
        pages = self.site.pages.get(self.site.current_room, [])
        if not pages:
            return EMPTY_TABLE_HTML
        return pages[self.site.page_index]

    async def body_text(self):
        self._record("body_text")
        return self.site.body_text

    async def room_cards(self):
        self._record("room_cards")
        return list(self.site.cards)

    async def settle(self, delay_ms):
        self.site.calls.append(("settle", delay_ms))


class FakeContext:
    def __init__(self, site):
        self.site = site
        self.closed = False

    async def new_page(self):
        return self.site

    async def close(self):
        self.closed = True


class FakeProvider:
    """Hands out fake contexts and remembers which were released."""

    def __init__(self, site):
        self.site = site
        self.contexts = []

    async def acquire(self):
        context = FakeContext(self.site)
        self.contexts.append(context)
        return context

    async def release(self, context):
        await context.close()

    @asynccontextmanager
    async def session(self):
        context = await self.acquire()
        try:
            yield context
        finally:
            await self.release(context)


class FakeScraper:
    """Scraper double for service/API tests."""

    def __init__(self, error=None):
        self.error = error
        self.calendar_calls = []
        self.check_calls = []

    async def calendar_scan(self, months=2, skip_months=0, start_date=None):
        self.calendar_calls.append((months, skip_months, start_date))
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return [RoomAvailability(room=f"Room scan {len(self.calendar_calls)}")]

    async def fast_check(self, start_date=None):
        self.check_calls.append(start_date)
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return FastCheckResult(
            date=start_date.strftime("%d-%m-%Y"),
            available=True,
            status=AVAILABLE,
            rooms=[RoomCard(name="Deluxe", status=AVAILABLE, price="2,500")],
        )


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def room_card(html, visible=True):
    return RawRoomCard(html=html, visible=visible)


@pytest.fixture
def settings():
    return Settings(
        search_settle_ms=0,
        check_settle_ms=0,
        room_settle_ms=0,
        skip_settle_ms=0,
        page_settle_ms=0,
        empty_retry_settle_ms=0,
        timezone="UTC",
        coalesce_misses=True,
    )
