"""Calendar scan and fast check flows against the booking engine."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Callable, List, Optional

import structlog
from playwright.async_api import Page
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from .browser import BrowserSessionProvider
from .config import Settings
from .date_window import DateRange, normalise_start_date
from .models import FastCheckResult, RoomAvailability, RoomOption
from .page_actions import BookingPage
from .parsing import (
    CalendarTable,
    collect_day_records,
    is_sold_out_page,
    parse_calendar_table,
    sold_out_result,
    summarise_room_cards,
)

LOGGER = structlog.get_logger(__name__)

PageFactory = Callable[[Page, Settings], BookingPage]


class AvailabilityScraper:
    """Drives one booking engine tab per call through the search and calendar UI."""

    def __init__(
        self,
        provider: BrowserSessionProvider,
        settings: Settings,
        page_factory: PageFactory = BookingPage,
    ):
        self._provider = provider
        self._settings = settings
        self._page_factory = page_factory

    @asynccontextmanager
    async def _booking_page(self) -> AsyncIterator[BookingPage]:
        async with self._provider.session() as context:
            page = self._page_factory(await context.new_page(), self._settings)
            await page.open()
            yield page

    async def _search(self, page: BookingPage, probe: DateRange, settle_ms: int) -> None:
        await page.set_dates(probe.site_check_in, probe.site_check_out)
        await page.submit_search()
        await page.settle(settle_ms)

    async def calendar_scan(
        self,
        months: int = 2,
        skip_months: int = 0,
        start_date: Optional[date] = None,
    ) -> List[RoomAvailability]:
        """Scrape ``months`` calendar pages for every room type.

        The search is always a one-night probe; it only has to land the
        calendar on the right month. Nothing is returned if any step fails.
        """
        start = normalise_start_date(start_date, self._settings.timezone)
        probe = DateRange.one_night(start)
        LOGGER.info(
            "scan.start",
            check_in=probe.site_check_in,
            check_out=probe.site_check_out,
            months=months,
            skip_months=skip_months,
        )

        try:
            async with self._booking_page() as page:
                await self._search(page, probe, self._settings.search_settle_ms)
                await page.open_calendar_overlay()
                rooms = await page.room_options()
                LOGGER.info("scan.rooms", count=len(rooms), rooms=[room.label for room in rooms])

                results: List[RoomAvailability] = []
                for room in rooms:
                    results.append(await self._scan_room(page, room, months, skip_months))
        except Exception as exc:
            LOGGER.error("scan.failed", error=str(exc))
            raise

        LOGGER.info("scan.complete", rooms=len(results))
        return results

    async def _scan_room(
        self,
        page: BookingPage,
        room: RoomOption,
        months: int,
        skip_months: int,
    ) -> RoomAvailability:
        LOGGER.info("scan.room.start", room=room.label)
        await page.select_room(room.value)
        await page.settle(self._settings.room_settle_ms)

        for skipped in range(skip_months):
            if not await page.advance_page():
                LOGGER.info("scan.room.skip_exhausted", room=room.label, skipped=skipped)
                break
            await page.settle(self._settings.skip_settle_ms)

        result = RoomAvailability(room=room.label)
        seen_dates: set[str] = set()

        for index in range(months):
            table = await self._scrape_table(page)
            records, cells_skipped = collect_day_records(table, seen_dates)
            result.availability.extend(records)
            LOGGER.info(
                "scan.room.page",
                room=room.label,
                page=index + 1,
                rows=len(table.rows),
                records=len(records),
                cells_skipped=cells_skipped,
            )
            if cells_skipped:
                LOGGER.warning("scan.cells_skipped", room=room.label, page=index + 1, count=cells_skipped)

            if index == months - 1:
                break
            if not await page.advance_page():
                LOGGER.info("scan.room.no_more_pages", room=room.label, pages=index + 1)
                break
            await page.settle(self._settings.page_settle_ms)

        return result

    async def _scrape_table(self, page: BookingPage) -> CalendarTable:
        """Read the calendar table, re-reading once if the first render came back empty."""

        async def read() -> CalendarTable:
            return parse_calendar_table(await page.calendar_html())

        retrying = AsyncRetrying(
            stop=stop_after_attempt(2),
            wait=wait_fixed(self._settings.empty_retry_settle_ms / 1000),
            retry=retry_if_result(lambda table: table.is_empty),
            retry_error_callback=lambda state: state.outcome.result(),
            before_sleep=lambda state: LOGGER.info("scan.table_empty_retry"),
        )
        return await retrying(read)

    async def fast_check(self, start_date: Optional[date] = None) -> FastCheckResult:
        """Search one night and classify the results page."""
        start = normalise_start_date(start_date, self._settings.timezone)
        probe = DateRange.one_night(start)
        LOGGER.info("check.start", check_in=probe.site_check_in, check_out=probe.site_check_out)

        try:
            async with self._booking_page() as page:
                await self._search(page, probe, self._settings.check_settle_ms)
                if is_sold_out_page(await page.body_text()):
                    LOGGER.info("check.sold_out", check_in=probe.site_check_in)
                    return sold_out_result(probe.site_check_in)
                cards = await page.room_cards()
        except Exception as exc:
            LOGGER.error("check.failed", error=str(exc))
            raise

        result = summarise_room_cards(probe.site_check_in, cards)
        LOGGER.info(
            "check.complete",
            check_in=probe.site_check_in,
            available=result.available,
            rooms=[room.model_dump() for room in result.rooms],
        )
        return result
