"""
Conversion of booking API payloads into dated records
"""

from typing import Any, Dict, List, Optional

from ..types import DatedRecord
from .logger import get_logger


logger = get_logger(__name__)


def _payload(result: Any) -> Dict[str, Any]:
    data = getattr(result, "data", None)
    return data if isinstance(data, dict) else {}


def _as_list(value: Any, field: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Booking payload field is not a list", field=field, type=type(value).__name__)
        return []
    return value


def _timestamp(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def tickets_to_records(result: Any) -> List[DatedRecord]:
    """
    Tickets of a ``getTickets`` response, stamped with their departure date.

    Falls back to the backend's pre-grouped ``sortedData`` when the flat
    ``tickets`` list is absent. Malformed entries are logged and skipped.
    """
    data = _payload(result)
    tickets = data.get("tickets")
    if tickets is None and isinstance(data.get("sortedData"), dict):
        tickets = [
            ticket
            for group in data["sortedData"].values()
            for ticket in _as_list(group, "sortedData")
        ]

    records = []
    for ticket in _as_list(tickets, "tickets"):
        if not isinstance(ticket, dict):
            logger.warning("Skipping malformed ticket", type=type(ticket).__name__)
            continue
        departure = ticket.get("departure")
        departure_date = _timestamp(departure.get("date")) if isinstance(departure, dict) else None
        if departure_date is None:
            logger.warning("Ticket without departure date", ticket_id=ticket.get("id"))
            continue
        records.append(DatedRecord(id=ticket.get("id"), timestamp_iso=departure_date, payload=ticket))
    return records


def flights_to_records(result: Any) -> List[DatedRecord]:
    """Flights of a user-specific-info response, stamped with their departure time"""
    records = []
    for flight in _as_list(_payload(result).get("flightsData"), "flightsData"):
        if not isinstance(flight, dict):
            logger.warning("Skipping malformed flight", type=type(flight).__name__)
            continue
        departure_time = _timestamp(flight.get("departureTime"))
        if departure_time is None:
            logger.warning("Flight without departure time", flight_id=flight.get("flightId"))
            continue
        record_id = f"{flight.get('flightId')}:{flight.get('ticketId')}"
        records.append(DatedRecord(id=record_id, timestamp_iso=departure_time, payload=flight))
    return records
