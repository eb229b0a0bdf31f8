"""
Booking calendar service.

Drives the booking calendar: fetches tickets through the request lifecycle
manager, hands the records to the calendar engine and keeps the window and
selected day the carousel renders. Window changes and day selection only
recompute the view; the backend is contacted again only on ``load``.
"""

import structlog
from datetime import date
from typing import Callable, List, Optional

from ..config import config
from ..interfaces.booking_api import BookingAPIInterface
from ..types import CalendarView, CalendarWindow, DatedRecord, TicketQuery
from ..utils.dates import today_utc
from ..utils.records import tickets_to_records
from .calendar_engine import CalendarEngine
from .fetch_controller import FetchController
from .outcomes import CallOutcome, Succeeded
from .request_lifecycle import RequestLifecycleManager


class BookingCalendarService:
    """
    State behind one booking calendar view.

    If the fetch fails the carousel still renders, empty and with today
    selected, while ``error`` carries the banner text.
    """

    def __init__(
        self,
        client: BookingAPIInterface,
        manager: RequestLifecycleManager,
        engine: Optional[CalendarEngine] = None,
        today_provider: Callable[[], date] = today_utc,
        query: Optional[TicketQuery] = None
    ):
        self.client = client
        self.manager = manager
        self.engine = engine or CalendarEngine()
        self.today_provider = today_provider
        self.query = query or TicketQuery(timeframe="upcoming")
        self.logger = structlog.get_logger("booking_calendar")

        self.fetcher: FetchController[object] = FetchController(manager, "booking_calendar.tickets")
        self.records: List[DatedRecord] = []
        self.window: CalendarWindow = self.engine.initial_window(self.today_provider())
        self.selected: Optional[date] = None

    @property
    def error(self) -> Optional[str]:
        return self.fetcher.error

    @property
    def loading(self) -> bool:
        return self.fetcher.loading

    async def load(self, query: Optional[TicketQuery] = None) -> CalendarView:
        """
        Fetch tickets and rebuild the view.

        A newer ``load`` cancels an older one still in flight; the older call
        then leaves the state untouched.
        """
        query = query or self.query
        params = query.to_params()
        key = self.client.call_key(config.booking_api.tickets_path, params)

        outcome: CallOutcome = await self.fetcher.run(
            key, lambda token: self.client.get_tickets(query, token)
        )

        if isinstance(outcome, Succeeded):
            self.records = tickets_to_records(outcome.payload)
            self.selected = None
            self.logger.info("Tickets loaded", records=len(self.records), window_days=self.window.length)
        elif outcome.is_user_facing:
            self.records = []
            self.selected = self.today_provider()
            self.logger.warning("Tickets unavailable", outcome=outcome.kind.value, message=outcome.user_message)

        return self.view()

    def view(self) -> CalendarView:
        """Recompute the view model from records, window and selection"""
        return self._apply(self.window)

    def _apply(self, window: CalendarWindow) -> CalendarView:
        # State changes only once the view for the new window has been built
        view = self.engine.build_view(self.records, window, self.today_provider(), self.selected)
        self.window = window
        self.selected = view.selected_date
        return view

    def load_more(self, increment: Optional[int] = None) -> CalendarView:
        """
        Raises:
            InvalidWindowError: the grown window cannot be represented; the
                current window is kept
        """
        return self._apply(self.engine.grow(self.window, increment))

    def next_page(self) -> CalendarView:
        return self._apply(self.engine.shift(self.window, forward=True))

    def previous_page(self) -> CalendarView:
        return self._apply(self.engine.shift(self.window, forward=False))

    def select(self, day: date) -> CalendarView:
        """
        Select ``day`` if the carousel allows it; otherwise keep the current
        selection.
        """
        today = self.today_provider()
        days = {d.date: d for d in self.engine.bucket(self.records, self.window)}
        candidate = days.get(day)

        if candidate is not None and self.engine.is_selectable(candidate, today):
            self.selected = day
        else:
            self.logger.debug("Ignoring selection of unselectable day", day=day.isoformat())
        return self.view()

    def close(self) -> None:
        """Cancel any outstanding fetch"""
        self.fetcher.close()
