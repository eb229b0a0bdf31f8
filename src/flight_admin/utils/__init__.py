"""
Utility modules for flight admin core
"""

from .logger import get_logger, setup_logging
from .dates import (
    bucket_key, day_key, day_range, day_range_bounds, parse_utc, to_utc_date, today_utc, format_day_label, format_departure
)
from .records import tickets_to_records, flights_to_records

__all__ = [
    "get_logger",
    "setup_logging",
    "bucket_key",
    "day_key",
    "day_range",
    "day_range_bounds",
    "parse_utc",
    "to_utc_date",
    "today_utc",
    "format_day_label",
    "format_departure",
    "tickets_to_records",
    "flights_to_records",
]
