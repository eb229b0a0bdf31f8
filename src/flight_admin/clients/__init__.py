"""
API clients for external services
"""

from .booking_api_client import BookingAPIClient, MockBookingAPIClient, decode_response

__all__ = [
    "BookingAPIClient",
    "MockBookingAPIClient",
    "decode_response",
]
