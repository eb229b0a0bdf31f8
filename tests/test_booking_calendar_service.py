"""
Tests for the booking calendar service
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock

from flight_admin.clients.booking_api_client import MockBookingAPIClient
from flight_admin.services import BookingCalendarService, CalendarEngine, FALLBACK_ERROR_MESSAGE
from flight_admin.types import ApiFailure, InvalidWindowError, TransportError


TODAY = date(2025, 1, 1)


class TestBookingCalendarService:
    """Test the calendar state driven by ticket fetches"""

    @pytest.fixture
    def client(self):
        return MockBookingAPIClient()

    @pytest.fixture
    def calendar(self, client, manager):
        return BookingCalendarService(
            client=client,
            manager=manager,
            engine=CalendarEngine(default_length=30, load_more_increment=30),
            today_provider=lambda: TODAY
        )

    @pytest.mark.asyncio
    async def test_load_buckets_tickets(self, calendar):
        view = await calendar.load()

        assert view.window.start_date == TODAY
        assert len(view.days) == 30
        assert [d.record_count for d in view.days[:3]] == [2, 1, 0]
        assert view.selected_date == TODAY
        assert [r.id for r in view.selected_records] == ["101", "102"]
        assert calendar.error is None
        assert calendar.loading is False

    @pytest.mark.asyncio
    async def test_select_day_with_records(self, calendar):
        await calendar.load()
        view = calendar.select(date(2025, 1, 2))

        assert view.selected_date == date(2025, 1, 2)
        assert [r.id for r in view.selected_records] == ["103"]

    @pytest.mark.asyncio
    async def test_select_empty_day_is_ignored(self, calendar):
        await calendar.load()
        view = calendar.select(date(2025, 1, 10))
        assert view.selected_date == TODAY

    @pytest.mark.asyncio
    async def test_load_more_grows_window(self, calendar):
        await calendar.load()
        view = calendar.load_more()

        assert view.window.length == 60
        assert view.window.start_date == TODAY
        assert view.total_records == 3

    @pytest.mark.asyncio
    async def test_paging_keeps_records(self, calendar):
        await calendar.load()

        view = calendar.next_page()
        assert view.window.start_date == date(2025, 1, 31)
        assert view.total_records == 0
        # nothing selectable after today in this window: fall back to today
        assert view.selected_date == TODAY

        view = calendar.previous_page()
        assert view.window.start_date == TODAY
        assert view.total_records == 3

    @pytest.mark.asyncio
    async def test_failed_window_change_keeps_state(self, calendar):
        await calendar.load()
        calendar.select(date(2025, 1, 2))
        before = calendar.window

        with pytest.raises(InvalidWindowError):
            calendar.load_more(3_000_000)

        assert calendar.window == before
        view = calendar.view()
        assert view.window.length == 30
        assert view.selected_date == date(2025, 1, 2)

    @pytest.mark.asyncio
    async def test_window_changes_do_not_refetch(self, calendar, client):
        await calendar.load()
        calendar.load_more()
        calendar.next_page()
        calendar.select(date(2025, 1, 2))

        assert client.calls == ["get_tickets"]

    @pytest.mark.asyncio
    async def test_business_failure_shows_empty_carousel(self, calendar, client):
        client.get_tickets = AsyncMock(return_value=ApiFailure(message="Token expired"))

        view = await calendar.load()

        assert calendar.error == "Token expired"
        assert view.total_records == 0
        assert len(view.days) == 30
        assert view.selected_date == TODAY

    @pytest.mark.asyncio
    async def test_transport_failure_shows_fallback_banner(self, calendar, client, retry_sleep):
        client.get_tickets = AsyncMock(side_effect=TransportError("down"))

        view = await calendar.load()

        assert calendar.error == FALLBACK_ERROR_MESSAGE
        assert client.get_tickets.await_count == 3
        assert retry_sleep.delays == [1.0, 2.0]
        assert view.selected_records == []

    @pytest.mark.asyncio
    async def test_reload_after_failure_clears_banner(self, calendar, client):
        original = client.get_tickets
        client.get_tickets = AsyncMock(return_value=ApiFailure(message="Token expired"))
        await calendar.load()

        client.get_tickets = original
        view = await calendar.load()

        assert calendar.error is None
        assert view.total_records == 3

    @pytest.mark.asyncio
    async def test_close_rejects_further_loads(self, calendar):
        calendar.close()
        with pytest.raises(RuntimeError):
            await calendar.load()
