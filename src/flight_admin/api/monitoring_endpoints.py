"""
Monitoring and calendar API endpoints.

Exposes request lifecycle telemetry and the booking calendar view model to
the admin dashboard.
"""

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any
from datetime import date, datetime
import structlog

from ..config import config
from ..container import ServiceContainer
from ..types import CalendarView
from ..utils.dates import format_day_label, format_departure

logger = structlog.get_logger("monitoring_api")

router = APIRouter(tags=["monitoring"])


def _container(request: Request) -> ServiceContainer:
    return request.app.state.container


def serialize_view(view: CalendarView, today: date, error: Optional[str] = None) -> Dict[str, Any]:
    """JSON body of a calendar view, with carousel labels"""
    body = view.model_dump(mode="json")
    body["total_records"] = view.total_records
    body["error"] = error
    for day, raw in zip(view.days, body["days"]):
        raw["label"] = format_day_label(day.date, today)
    for record, raw in zip(view.selected_records, body["selected_records"]):
        raw["departure_label"] = format_departure(record.timestamp_iso)
    return body


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Reports the container state and the number of calls currently in flight.
    """
    container = _container(request)
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": "1.0.0",
        "environment": config.server.environment,
        "components": {}
    }

    if not container.is_initialized():
        health_status["status"] = "unhealthy"
        health_status["components"]["container"] = {
            "status": "unhealthy",
            "message": "Service container not initialized"
        }
        return JSONResponse(content=health_status, status_code=503)

    stats = container.get_request_manager().get_stats()
    health_status["components"]["request_lifecycle"] = {
        "status": "healthy",
        "active_calls": stats.active_calls
    }
    health_status["components"]["booking_api"] = {
        "status": "healthy",
        "type": type(container.get_booking_client()).__name__
    }
    return health_status


@router.get("/api/v1/monitoring/api-calls")
async def api_call_stats(request: Request):
    """Request lifecycle statistics: active, total and recently duplicated calls"""
    stats = _container(request).get_request_manager().get_stats()
    return {
        "timestamp": datetime.now().isoformat(),
        "window_seconds": config.request_lifecycle.stats_window_seconds,
        **stats.model_dump()
    }


@router.get("/api/v1/calendar")
async def get_calendar(
    request: Request,
    days: Optional[int] = Query(
        None,
        ge=1,
        le=config.calendar.max_request_days,
        description="Grow the window to at least this many days"
    ),
    refresh: bool = Query(False, description="Fetch tickets again")
):
    """
    Current booking calendar view.

    Tickets are fetched on first use or when ``refresh`` is set; ``days``
    only grows the window and never shrinks it.
    """
    calendar = _container(request).get_booking_calendar()

    if refresh or calendar.fetcher.last_outcome is None:
        view = await calendar.load()
    else:
        view = calendar.view()

    if days is not None and days > calendar.window.length:
        view = calendar.load_more(days - calendar.window.length)

    if calendar.error:
        logger.info("Serving calendar with error banner", error=calendar.error)

    return serialize_view(view, calendar.today_provider(), calendar.error)
