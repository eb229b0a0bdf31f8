"""
Booking API client for the external booking backend
"""

import asyncio
import httpx
import structlog
from typing import Any, Dict, List, Optional, Union

from ..config import config
from ..interfaces.booking_api import BookingAPIInterface
from ..cancellation import CancellationToken
from ..services.outcomes import FALLBACK_ERROR_MESSAGE
from ..services.request_lifecycle import make_call_key
from ..types import (
    ApiFailure, ApiSuccess, OperationCancelled, TicketQuery, TransportError
)


logger = structlog.get_logger(__name__)

# Status codes that signal a transient server-side problem, retried as transport failures
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def decode_response(body: Any, status_code: Optional[int] = None) -> Union[ApiSuccess, ApiFailure]:
    """
    Decode a booking API JSON body into the tagged result type.

    Bodies without a ``success`` field follow the HTTP status.
    """
    if not isinstance(body, dict):
        if status_code is not None and status_code >= 400:
            return ApiFailure(message=FALLBACK_ERROR_MESSAGE, status_code=status_code)
        return ApiSuccess(data=body)

    success = body.get("success")
    if success is None:
        success = status_code is None or status_code < 400
    message = body.get("message") if isinstance(body.get("message"), str) else None

    if success and (status_code is None or status_code < 400):
        return ApiSuccess(
            message=message,
            data=body.get("data"),
            pagination=body.get("pagination")
        )
    return ApiFailure(
        message=message or FALLBACK_ERROR_MESSAGE,
        data=body.get("data"),
        status_code=status_code
    )


class BookingAPIClient(BookingAPIInterface):
    """HTTP client for booking backend operations"""

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        timeout_ms: int = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or config.booking_api.base_url).rstrip("/")
        self.api_key = api_key or config.booking_api.api_key
        self.timeout = (timeout_ms or config.booking_api.timeout) / 1000

        headers = {
            "Content-Type": "application/json",
            "User-Agent": "FlightAdmin/1.0"
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=transport
        )

    def call_key(self, path: str, params: Optional[dict] = None, method: str = "GET") -> str:
        return make_call_key(method, f"{self.base_url}{path}", params)

    async def get_tickets(
        self,
        query: Optional[TicketQuery] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> Union[ApiSuccess, ApiFailure]:
        """Get tickets with optional filters"""
        params = (query or TicketQuery()).to_params()
        return await self._request("GET", config.booking_api.tickets_path, params, cancel_token)

    async def get_user_flights(
        self,
        cancel_token: Optional[CancellationToken] = None
    ) -> Union[ApiSuccess, ApiFailure]:
        """Get flights of the signed-in user"""
        return await self._request("GET", config.booking_api.flights_path, None, cancel_token)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        cancel_token: Optional[CancellationToken]
    ) -> Union[ApiSuccess, ApiFailure]:
        """
        Send a request, aborting it as soon as ``cancel_token`` fires.

        Raises:
            OperationCancelled: the token fired before the response arrived
            TransportError: connection problems, timeouts, retryable statuses
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
            response = await self._send_cancellable(method, path, params, cancel_token)
        else:
            response = await self._send(method, path, params)

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise TransportError(
                f"HTTP {response.status_code} from {path}",
                response.status_code,
                "SERVICE_UNAVAILABLE"
            )

        try:
            body = response.json()
        except ValueError:
            if response.is_success:
                raise TransportError(f"Malformed JSON from {path}", response.status_code, "MALFORMED_RESPONSE")
            body = None

        result = decode_response(body, response.status_code)
        logger.debug(
            "Booking API response",
            method=method,
            path=path,
            status=response.status_code,
            success=result.success
        )
        return result

    async def _send(self, method: str, path: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        try:
            return await self.client.request(method, path, params=params)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout: {str(e)}", None, "TIMEOUT_ERROR") from e
        except httpx.RequestError as e:
            raise TransportError(f"Connection error: {str(e)}", None, "CONNECTION_ERROR") from e

    async def _send_cancellable(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        cancel_token: CancellationToken
    ) -> httpx.Response:
        request_task = asyncio.ensure_future(self._send(method, path, params))
        cancel_task = asyncio.ensure_future(cancel_token.wait())
        try:
            await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            request_task.cancel()
            raise
        finally:
            cancel_task.cancel()

        if cancel_token.cancelled and not request_task.done():
            request_task.cancel()
            try:
                await request_task
            except asyncio.CancelledError:
                pass
            logger.debug("Booking API request aborted", method=method, path=path)
            raise OperationCancelled(cancel_token.reason)

        return request_task.result()

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()


class MockBookingAPIClient(BookingAPIInterface):
    """Mock booking API client for testing and development"""

    def __init__(self, tickets: Optional[List[Dict[str, Any]]] = None, flights: Optional[List[Dict[str, Any]]] = None):
        # No HTTP client; responses are served from memory
        self.base_url = "mock://booking-api"
        self.tickets = tickets if tickets is not None else [
            {
                "id": 101,
                "pnr": "ABC123",
                "status": "CONFIRMED",
                "departure": {"date": "2025-01-01T05:00:00Z", "iata": "JFK", "city": "New York", "country": "US"},
                "arrival": {"date": "2025-01-01T11:00:00Z", "iata": "LAX", "city": "Los Angeles", "country": "US"},
                "bookingClass": "Economy",
                "clients": [{"id": 1, "name": "Jane Doe", "email": "jane@example.com"}]
            },
            {
                "id": 102,
                "pnr": "DEF456",
                "status": "CONFIRMED",
                "departure": {"date": "2025-01-01T23:00:00Z", "iata": "BOS", "city": "Boston", "country": "US"},
                "arrival": {"date": "2025-01-02T02:00:00Z", "iata": "MIA", "city": "Miami", "country": "US"},
                "bookingClass": "Business",
                "clients": [{"id": 2, "name": "John Roe", "email": "john@example.com"}]
            },
            {
                "id": 103,
                "pnr": "GHI789",
                "status": "CONFIRMED",
                "departure": {"date": "2025-01-02T01:00:00Z", "iata": "SFO", "city": "San Francisco", "country": "US"},
                "arrival": {"date": "2025-01-02T09:00:00Z", "iata": "ORD", "city": "Chicago", "country": "US"},
                "bookingClass": "Economy",
                "clients": [{"id": 1, "name": "Jane Doe", "email": "jane@example.com"}]
            }
        ]
        self.flights = flights if flights is not None else []
        self.calls: List[str] = []

    def call_key(self, path: str, params: Optional[dict] = None, method: str = "GET") -> str:
        return make_call_key(method, f"{self.base_url}{path}", params)

    async def get_tickets(
        self,
        query: Optional[TicketQuery] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> Union[ApiSuccess, ApiFailure]:
        """Mock get tickets"""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        self.calls.append("get_tickets")

        tickets = self.tickets
        if query is not None and query.pnr:
            tickets = [t for t in tickets if t.get("pnr") == query.pnr]
        return ApiSuccess(data={"tickets": list(tickets)})

    async def get_user_flights(
        self,
        cancel_token: Optional[CancellationToken] = None
    ) -> Union[ApiSuccess, ApiFailure]:
        """Mock get user flights"""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        self.calls.append("get_user_flights")
        return ApiSuccess(data={"flightsData": list(self.flights)})

    async def close(self):
        """Mock close - no-op"""
        pass
