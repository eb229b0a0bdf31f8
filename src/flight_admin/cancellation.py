"""
Cooperative cancellation tokens.

A token is a shared signal with a single ``cancel()`` entry point. Everything
that suspends on behalf of a cancellable call (the HTTP transport, the retry
wait, the request lifecycle manager itself) checks or awaits the token; there
is no preemption.
"""

import asyncio
import structlog
from typing import Callable, List, Optional

from .types import OperationCancelled


logger = structlog.get_logger(__name__)


class CancellationToken:
    """
    Cancellation signal passed through every suspension point of a call.

    Cancelling is idempotent. Callbacks registered with ``add_callback`` run
    synchronously inside ``cancel()``, exactly once, in registration order.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[["CancellationToken"], None]] = []
        self._event: Optional[asyncio.Event] = None
        self._unlink: Callable[[], None] = lambda: None

        if parent is not None:
            self._unlink = parent.add_callback(lambda source: self.cancel(source.reason))

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """Fire the token. Later calls are no-ops."""
        if self._cancelled:
            return

        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(
                    "Cancellation callback failed",
                    reason=reason,
                    error=str(e),
                    exc_info=True
                )

    def add_callback(self, callback: Callable[["CancellationToken"], None]) -> Callable[[], None]:
        """
        Run ``callback(token)`` when the token fires.

        If the token already fired the callback runs immediately.

        Returns:
            A function that unregisters the callback
        """
        if self._cancelled:
            callback(self)
            return lambda: None

        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def linked(self) -> "CancellationToken":
        """Child token that fires whenever this token fires"""
        return CancellationToken(parent=self)

    def detach(self) -> None:
        """
        Stop following the parent token.

        Long-lived parents accumulate one callback per linked child until
        the child detaches.
        """
        self._unlink()
        self._unlink = lambda: None

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled(self._reason)

    async def wait(self) -> None:
        """Suspend until the token fires"""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for ``seconds`` unless the token fires first.

        Returns:
            True if the full delay elapsed, False if cancelled
        """
        if self._cancelled:
            return False
        if seconds <= 0:
            await asyncio.sleep(0)
            return not self._cancelled

        try:
            await asyncio.wait_for(self.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return not self._cancelled
        return False

    def __repr__(self) -> str:
        state = f"cancelled, reason={self._reason!r}" if self._cancelled else "active"
        return f"<CancellationToken {state}>"
