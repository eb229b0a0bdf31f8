"""
Booking API interface definitions
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from ..cancellation import CancellationToken
from ..types import ApiFailure, ApiSuccess, TicketQuery


class BookingAPIInterface(ABC):
    """Interface for the booking backend used by the admin dashboard"""

    @abstractmethod
    async def get_tickets(
        self,
        query: Optional[TicketQuery] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> Union[ApiSuccess, ApiFailure]:
        """Get tickets matching ``query``"""
        pass

    @abstractmethod
    async def get_user_flights(
        self,
        cancel_token: Optional[CancellationToken] = None
    ) -> Union[ApiSuccess, ApiFailure]:
        """Get flights of the signed-in user"""
        pass

    @abstractmethod
    def call_key(self, path: str, params: Optional[dict] = None, method: str = "GET") -> str:
        """Call key of a request to ``path``"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources"""
        pass
