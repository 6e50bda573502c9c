"""Cache-aside orchestration in front of the scraper."""

from __future__ import annotations

import time
from contextlib import AsyncExitStack
from datetime import date, datetime
from typing import NamedTuple, Optional, Union

import structlog

from .cache import TTLCache
from .config import Settings
from .date_window import normalise_start_date
from .models import AvailabilityMode, AvailabilityPayload, AvailabilityResponse, QueryParams
from .scraper import AvailabilityScraper

LOGGER = structlog.get_logger(__name__)

FAILURE_MESSAGE = "Failed to fetch availability"
INVALID_QUERY_MESSAGE = "Invalid availability query"


class AvailabilityError(RuntimeError):
    """A query was rejected or a scrape failed; ``details`` carries the underlying cause."""

    def __init__(self, message: str, details: str):
        super().__init__(f"{message}: {details}")
        self.message = message
        self.details = details


class CacheKey(NamedTuple):
    mode: str
    months: int
    offset: int
    start_date: str

    def __str__(self) -> str:
        return f"availability_{self.mode}_m{self.months}_o{self.offset}_d{self.start_date}"


def build_cache_key(params: QueryParams) -> CacheKey:
    return CacheKey(
        mode=AvailabilityMode(params.mode).value,
        months=params.months,
        offset=params.offset,
        start_date=params.start_date.isoformat(),
    )


def epoch_millis() -> int:
    return int(time.time() * 1000)


class AvailabilityService:
    """Serves availability from the cache, scraping on a miss."""

    def __init__(self, scraper: AvailabilityScraper, settings: Settings, cache: Optional[TTLCache] = None):
        self._scraper = scraper
        self._settings = settings
        self._cache = cache if cache is not None else TTLCache(ttl_seconds=settings.cache_ttl_seconds)

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def normalise(
        self,
        months: int = 2,
        offset: int = 0,
        mode: Union[AvailabilityMode, str] = AvailabilityMode.CALENDAR,
        start_date: Union[date, datetime, str, None] = None,
    ) -> QueryParams:
        """Validate raw query values; unparseable dates or modes raise ``AvailabilityError``."""
        try:
            return QueryParams(
                mode=AvailabilityMode(mode),
                start_date=normalise_start_date(start_date, self._settings.timezone),
                months=months,
                offset=offset,
            )
        except (ValueError, OverflowError) as exc:
            LOGGER.warning("service.invalid_query", mode=str(mode), start_date=str(start_date), error=str(exc))
            raise AvailabilityError(INVALID_QUERY_MESSAGE, str(exc)) from exc

    async def get_availability(
        self,
        months: int = 2,
        offset: int = 0,
        mode: Union[AvailabilityMode, str] = AvailabilityMode.CALENDAR,
        start_date: Union[date, datetime, str, None] = None,
    ) -> AvailabilityResponse:
        params = self.normalise(months=months, offset=offset, mode=mode, start_date=start_date)
        key = build_cache_key(params)

        cached = self._cache.get(key)
        if cached is not None:
            LOGGER.info("service.cache_hit", key=str(key))
            return self._respond("cache", params, cached)

        async with AsyncExitStack() as stack:
            if self._settings.coalesce_misses:
                await stack.enter_async_context(self._cache.lock_for(key))
                # Another request may have filled the key while we waited.
                cached = self._cache.get(key)
                if cached is not None:
                    LOGGER.info("service.cache_hit_after_wait", key=str(key))
                    return self._respond("cache", params, cached)

            LOGGER.info("service.cache_miss", key=str(key), mode=params.mode.value)
            try:
                data = await self._scrape(params)
            except Exception as exc:
                LOGGER.exception("service.scrape_failed", key=str(key), error=str(exc))
                raise AvailabilityError(FAILURE_MESSAGE, str(exc)) from exc

            self._cache.purge_expired()
            self._cache.set(key, data)

        return self._respond("live", params, data)

    async def _scrape(self, params: QueryParams) -> AvailabilityPayload:
        if params.mode.is_fast_check:
            return await self._scraper.fast_check(params.start_date)
        return await self._scraper.calendar_scan(
            months=params.months,
            skip_months=params.offset,
            start_date=params.start_date,
        )

    @staticmethod
    def _respond(source: str, params: QueryParams, data: AvailabilityPayload) -> AvailabilityResponse:
        return AvailabilityResponse(source=source, timestamp=epoch_millis(), params=params, data=data)
