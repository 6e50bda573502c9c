"""FastAPI application exposing the availability endpoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from . import __version__
from .browser import BrowserSessionProvider
from .config import Settings
from .models import AvailabilityMode, AvailabilityResponse, ErrorResponse
from .scraper import AvailabilityScraper
from .service import AvailabilityError, AvailabilityService

LOGGER = structlog.get_logger(__name__)


def build_service(settings: Settings) -> tuple[BrowserSessionProvider, AvailabilityService]:
    provider = BrowserSessionProvider(settings)
    service = AvailabilityService(AvailabilityScraper(provider, settings), settings)
    return provider, service


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[AvailabilityService] = None,
    provider: Optional[BrowserSessionProvider] = None,
) -> FastAPI:
    """Build the application; tests inject their own service."""
    settings = settings or Settings()
    if service is None:
        provider, service = build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LOGGER.info("api.startup", booking_url=settings.booking_url)
        yield
        if provider is not None:
            await provider.shutdown()
        LOGGER.info("api.shutdown")

    app = FastAPI(title="Availability Agent", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = service

    @app.exception_handler(AvailabilityError)
    async def availability_error_handler(request: Request, exc: AvailabilityError) -> JSONResponse:
        body = ErrorResponse(error=exc.message, details=exc.details)
        return JSONResponse(status_code=500, content=body.model_dump())

    @app.get("/", include_in_schema=False)
    async def root() -> RedirectResponse:
        return RedirectResponse(url="/docs")

    @app.get("/api/availability", response_model=AvailabilityResponse, responses={500: {"model": ErrorResponse}})
    async def get_availability(
        request: Request,
        months: int = Query(2, ge=1, description="Calendar pages to scrape per room."),
        offset: int = Query(0, ge=0, description="Calendar pages to skip before scraping."),
        mode: AvailabilityMode = Query(AvailabilityMode.CALENDAR),
        start_date: Optional[date] = Query(None, alias="startDate"),
    ) -> AvailabilityResponse:
        """Return room availability, served from cache when fresh."""
        LOGGER.info("api.request", mode=mode.value, months=months, offset=offset, start_date=start_date)
        return await request.app.state.service.get_availability(
            months=months,
            offset=offset,
            mode=mode,
            start_date=start_date,
        )

    return app
