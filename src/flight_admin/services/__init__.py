"""
Services module initialization
"""

from .call_registry import CallRegistry, InFlightCall
from .outcomes import (
    CallOutcome, Succeeded, BusinessFailure, FailedTerminal, Cancelled,
    DuplicateSuppressed, FALLBACK_ERROR_MESSAGE
)
from .request_lifecycle import RequestLifecycleManager, make_call_key
from .fetch_controller import FetchController
from .calendar_engine import CalendarEngine
from .booking_calendar_service import BookingCalendarService

__all__ = [
    'CallRegistry',
    'InFlightCall',
    'CallOutcome',
    'Succeeded',
    'BusinessFailure',
    'FailedTerminal',
    'Cancelled',
    'DuplicateSuppressed',
    'FALLBACK_ERROR_MESSAGE',
    'RequestLifecycleManager',
    'make_call_key',
    'FetchController',
    'CalendarEngine',
    'BookingCalendarService'
]
