"""Low-level interactions with the booking engine page."""

from __future__ import annotations

from typing import List, Sequence

import structlog
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from .config import Settings
from .models import RoomOption
from .parsing import RawRoomCard, filter_room_options

LOGGER = structlog.get_logger(__name__)


CHECK_IN_SELECTOR = "#eZ_chkin"
CHECK_OUT_SELECTOR = "#eZ_chkout"
SEARCH_BUTTON_SELECTOR = "#book"
CALENDAR_TRIGGER_SELECTOR = "#availcalmain"
ROOM_SELECT_SELECTOR = "#avairoomtype"
NEXT_PAGE_SELECTOR = "#next_dt_clk"
CALENDAR_TABLE_SELECTOR = "table.scroll-tble"
ROOM_CARD_SELECTOR = ".vres-roomlisting"
BLOCKING_OVERLAY_SELECTORS = (".sweet-alert", ".sweet-overlay", ".modal-backdrop", ".loadingbar")


_SET_DATE_FIELD_JS = """
({ selector, value }) => {
    const el = document.querySelector(selector);
    if (!el) {
        return false;
    }
    el.removeAttribute('readonly');
    el.value = value;
    el.dispatchEvent(new Event('change'));
    el.dispatchEvent(new Event('input'));
    return true;
}
"""

_FORCE_VISIBLE_JS = """
({ selector, blockers, expand }) => {
    document.querySelectorAll(selector).forEach(el => {
        el.style.display = 'block';
        el.style.visibility = 'visible';
        el.style.opacity = '1';
        if (expand) {
            el.style.height = 'auto';
            el.style.width = 'auto';
            el.style.zIndex = '99999';
        }
    });
    if (blockers.length) {
        document.querySelectorAll(blockers.join(', ')).forEach(el => el.remove());
    }
}
"""

_ROOM_OPTIONS_JS = """
options => options.map(o => ({ value: o.value, text: o.innerText.trim() }))
"""

# offsetParent is null when the element has no layout box (display: none).
_ROOM_CARDS_JS = """
cards => cards.map(card => ({ html: card.outerHTML, visible: card.offsetParent !== null }))
"""


async def normalise_interactability(
    page: Page,
    selector: str,
    *,
    blockers: Sequence[str] = (),
    expand: bool = False,
) -> None:
    """Force every node matching ``selector`` visible and drop overlays covering it.

    The booking engine regularly renders live controls hidden or underneath a
    loading overlay; forcing the state is preferred over failing the scrape.
    """
    await page.evaluate(
        _FORCE_VISIBLE_JS,
        {"selector": selector, "blockers": list(blockers), "expand": expand},
    )


class BookingPage:
    """Primitives for one booking engine tab."""

    def __init__(self, page: Page, settings: Settings):
        self._page = page
        self._settings = settings

    async def open(self) -> None:
        LOGGER.info("page.open", url=self._settings.booking_url)
        await self._page.goto(
            self._settings.booking_url,
            wait_until="domcontentloaded",
            timeout=self._settings.navigation_timeout_ms,
        )
        await self._page.wait_for_selector(CHECK_IN_SELECTOR, timeout=self._settings.selector_timeout_ms)

    async def set_date_field(self, selector: str, value: str) -> None:
        """Write a date into a read-only picker input and fire its listeners."""
        found = await self._page.evaluate(_SET_DATE_FIELD_JS, {"selector": selector, "value": value})
        if not found:
            LOGGER.warning("page.date_field_missing", selector=selector)

    async def set_dates(self, check_in: str, check_out: str) -> None:
        LOGGER.info("page.set_dates", check_in=check_in, check_out=check_out)
        await self.set_date_field(CHECK_IN_SELECTOR, check_in)
        await self.set_date_field(CHECK_OUT_SELECTOR, check_out)

    async def submit_search(self) -> None:
        """Click search; the engine sometimes refreshes in place, so a missing navigation is fine."""
        LOGGER.info("page.search")
        clicked = False
        try:
            async with self._page.expect_navigation(
                wait_until="domcontentloaded",
                timeout=self._settings.search_navigation_timeout_ms,
            ):
                await self._page.click(SEARCH_BUTTON_SELECTOR)
                clicked = True
        except PlaywrightTimeoutError:
            if not clicked:
                raise
            LOGGER.info("page.search_updated_in_place")

    async def open_calendar_overlay(self) -> None:
        LOGGER.info("page.open_calendar")
        trigger = await self._page.wait_for_selector(
            CALENDAR_TRIGGER_SELECTOR,
            timeout=self._settings.selector_timeout_ms,
        )
        await normalise_interactability(
            self._page,
            CALENDAR_TRIGGER_SELECTOR,
            blockers=BLOCKING_OVERLAY_SELECTORS,
        )
        await trigger.click()
        await self._page.wait_for_selector(CALENDAR_TABLE_SELECTOR, timeout=self._settings.table_timeout_ms)

    async def room_options(self) -> List[RoomOption]:
        """Enumerate real rooms from the (possibly hidden, possibly duplicated) room selector."""
        await self._page.wait_for_selector(
            ROOM_SELECT_SELECTOR,
            timeout=self._settings.selector_timeout_ms,
            state="attached",
        )
        await normalise_interactability(self._page, ROOM_SELECT_SELECTOR, expand=True)
        # Only the first copy of the selector is read; select_room drives the same node.
        raw = await self._page.locator(ROOM_SELECT_SELECTOR).first.locator("option").evaluate_all(_ROOM_OPTIONS_JS)
        return filter_room_options(raw)

    async def select_room(self, value: str) -> None:
        # The engine renders the selector more than once under the same id.
        await normalise_interactability(self._page, ROOM_SELECT_SELECTOR, expand=True)
        await self._page.select_option(f"{ROOM_SELECT_SELECTOR} >> nth=0", value)

    async def advance_page(self) -> bool:
        """Click the next-period control; ``False`` means there are no further pages."""
        next_button = await self._page.query_selector(NEXT_PAGE_SELECTOR)
        if next_button is None:
            return False
        await next_button.click()
        return True

    async def calendar_html(self) -> str:
        return await self._page.content()

    async def body_text(self) -> str:
        return await self._page.inner_text("body")

    async def room_cards(self) -> List[RawRoomCard]:
        raw = await self._page.eval_on_selector_all(ROOM_CARD_SELECTOR, _ROOM_CARDS_JS)
        return [RawRoomCard(html=item["html"], visible=bool(item["visible"])) for item in raw]

    async def settle(self, delay_ms: int) -> None:
        """Give an asynchronous page update time to land."""
        if delay_ms > 0:
            await self._page.wait_for_timeout(delay_ms)
