"""
Fetch controller for one logical resource.

A view that loads data owns one controller per resource it displays. Every
run cancels the previous run's token before admitting the new call, so a
stale response can never overwrite a fresher one.
"""

import structlog
from typing import Generic, Optional, TypeVar

from ..cancellation import CancellationToken
from .outcomes import CallOutcome, Succeeded
from .request_lifecycle import Operation, RequestLifecycleManager


T = TypeVar("T")


class FetchController(Generic[T]):
    """
    Tracks ``data``, ``loading`` and ``error`` for one resource.

    ``error`` holds the banner text of the latest terminal failure and is
    cleared by the next run. Silent outcomes leave ``data`` and ``error``
    untouched.
    """

    def __init__(self, manager: RequestLifecycleManager, resource: str):
        self.manager = manager
        self.resource = resource
        self.logger = structlog.get_logger("fetch_controller").bind(resource=resource)

        self.data: Optional[T] = None
        self.error: Optional[str] = None
        self.loading = False
        self.last_outcome: Optional[CallOutcome] = None
        self._token: Optional[CancellationToken] = None
        self._closed = False

    @property
    def token(self) -> Optional[CancellationToken]:
        return self._token

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, key: str, operation: Operation) -> CallOutcome:
        """
        Cancel the previous fetch of this resource and start a new one.

        Returns:
            The outcome of the new call
        """
        if self._closed:
            raise RuntimeError(f"Fetch controller for {self.resource!r} is closed")

        if self._token is not None and not self._token.cancelled:
            self.logger.debug("Cancelling previous fetch", key=key)
            self._token.cancel("superseded by newer fetch")

        token = CancellationToken()
        self._token = token
        self.loading = True
        self.error = None

        outcome = await self.manager.execute(key, operation, token)

        if token is not self._token:
            # a newer run owns the state now
            return outcome

        self.last_outcome = outcome
        self.loading = False
        if isinstance(outcome, Succeeded):
            self.data = outcome.payload
        elif outcome.is_user_facing:
            self.error = outcome.user_message
            self.logger.info("Fetch failed", key=key, outcome=outcome.kind.value, message=self.error)

        return outcome

    def cancel(self, reason: str = "cancelled") -> None:
        if self._token is not None:
            self._token.cancel(reason)
        self.loading = False

    def close(self) -> None:
        """Cancel any outstanding fetch; the controller cannot run again"""
        self.cancel("closed")
        self._closed = True
