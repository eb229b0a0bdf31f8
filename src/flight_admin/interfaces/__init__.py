"""
Interface definitions for flight admin components
"""

from .booking_api import BookingAPIInterface

__all__ = [
    "BookingAPIInterface",
]
