"""
Calendar aggregation engine.

Maps an arbitrary-order collection of dated records onto a contiguous window
of UTC calendar days for the booking calendar carousel. Every call is a pure
function of its inputs: nothing is cached between passes and windows are
replaced, never modified.
"""

import structlog
from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..config import config
from ..types import (
    CalendarDay, CalendarDirection, CalendarView, CalendarWindow,
    DatedRecord, InvalidTimestampError, InvalidWindowError
)
from ..utils.dates import bucket_key, day_key, day_range, day_range_bounds, parse_utc


class CalendarEngine:
    """
    Builds per-day summaries and the selected-day recommendation.

    The engine holds configuration only; it keeps no state between calls.
    """

    def __init__(
        self,
        default_length: Optional[int] = None,
        load_more_increment: Optional[int] = None,
        max_window_days: Optional[int] = None
    ):
        settings = config.calendar
        self.default_length = default_length or settings.initial_days
        self.load_more_increment = load_more_increment or settings.load_more_increment
        self.max_window_days = max_window_days or settings.max_window_days
        self.logger = structlog.get_logger("calendar_engine")

    # Windows

    def initial_window(
        self,
        today: date,
        length: Optional[int] = None,
        direction: Union[CalendarDirection, str] = CalendarDirection.FORWARD
    ) -> CalendarWindow:
        """Window anchored on ``today``"""
        return self._new_window(today, length or self.default_length, CalendarDirection(direction))

    def grow(self, window: CalendarWindow, increment: Optional[int] = None) -> CalendarWindow:
        """
        "Load more": a new window with the same start and a longer length.

        Raises:
            InvalidWindowError: if ``increment`` is not positive
        """
        increment = self.load_more_increment if increment is None else increment
        if increment < 1:
            raise InvalidWindowError(f"Window increment must be positive, got {increment}")

        return self._new_window(window.start_date, window.length + increment, window.direction)

    def shift(self, window: CalendarWindow, forward: bool = True) -> CalendarWindow:
        """Page the window by its own length ("Next/Previous 30 days")"""
        try:
            offset = timedelta(days=window.length if forward else -window.length)
            start = window.start_date + offset
        except OverflowError:
            raise InvalidWindowError(f"Cannot page window starting {window.start_date.isoformat()} any further")
        return self._new_window(start, window.length, window.direction)

    def _new_window(self, start: date, length: int, direction: CalendarDirection) -> CalendarWindow:
        if length < 1:
            raise InvalidWindowError(f"Window length must be at least 1, got {length}")
        day_range_bounds(start, length, direction)
        if length > self.max_window_days:
            self.logger.warning(
                "Calendar window exceeds soft ceiling",
                length=length,
                max_window_days=self.max_window_days,
                start_date=start.isoformat()
            )
        return CalendarWindow(start_date=start, length=length, direction=direction)

    # Bucketing

    def count_by_day(self, records: Iterable[DatedRecord]) -> Dict[str, int]:
        """
        Fold records into a day key -> record count map.

        Records whose timestamp cannot be parsed are skipped and logged.
        """
        counts: Counter = Counter()
        for record in records:
            try:
                counts[bucket_key(record.timestamp_iso)] += 1
            except InvalidTimestampError:
                self.logger.warning(
                    "Skipping record with invalid timestamp",
                    record_id=record.id,
                    timestamp=record.timestamp_iso
                )
        return dict(counts)

    def bucket(self, records: Iterable[DatedRecord], window: CalendarWindow) -> List[CalendarDay]:
        """
        Per-day summaries for every day of ``window``, ascending.

        Always exactly ``window.length`` contiguous days; days without records
        are kept so the carousel shows continuous dates.
        """
        counts = self.count_by_day(records)
        days = []
        for day in day_range(window.start_date, window.length, window.direction):
            count = counts.get(day_key(day), 0)
            days.append(CalendarDay(date=day, has_records=count > 0, record_count=count))
        return days

    # Selection

    def find_first_selectable(self, days: Sequence[CalendarDay], today: date) -> date:
        """
        Initial selection: today if it has records, else the first later day
        with records, else today itself.
        """
        for day in sorted(days, key=lambda d: d.date):
            if day.date >= today and day.has_records:
                return day.date
        return today

    def is_selectable(self, day: CalendarDay, today: date) -> bool:
        """Days without records are only selectable as the today fallback"""
        return day.has_records or day.date == today

    def records_for_day(self, records: Iterable[DatedRecord], day: date) -> List[DatedRecord]:
        """Records of one UTC day, earliest first"""
        key = day_key(day)
        matches = []
        for record in records:
            try:
                if bucket_key(record.timestamp_iso) == key:
                    matches.append(record)
            except InvalidTimestampError:
                continue
        return sorted(matches, key=lambda r: (parse_utc(r.timestamp_iso), r.id))

    def build_view(
        self,
        records: Sequence[DatedRecord],
        window: CalendarWindow,
        today: date,
        selected: Optional[date] = None
    ) -> CalendarView:
        """
        Full view model: days of the window, the selected day and its records.

        A previous selection survives only while it is inside the window and
        still selectable; otherwise the selection is derived afresh.
        """
        days = self.bucket(records, window)
        by_date = {day.date: day for day in days}

        if selected is None or selected not in by_date or not self.is_selectable(by_date[selected], today):
            selected = self.find_first_selectable(days, today)

        return CalendarView(
            window=window,
            days=days,
            selected_date=selected,
            selected_records=self.records_for_day(records, selected)
        )
