"""
Flight Admin Core

Request lifecycle management (de-duplication, retry, cancellation) and the
calendar aggregation engine behind the airline ticket/passenger admin
dashboard's booking calendar.
"""

__version__ = "1.0.0"
__author__ = "Flight Admin Team"
