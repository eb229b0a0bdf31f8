"""
Request lifecycle manager.

Wraps any async network operation with duplicate-call suppression, bounded
retry with linear backoff, and cooperative cancellation. Per call key the
lifecycle is::

    Idle -> Admitted -> (Retrying)* -> Succeeded | BusinessFailure
                                       | FailedTerminal | Cancelled

and an admission rejected as a duplicate resolves to ``DuplicateSuppressed``.
"""

import inspect
import structlog
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..config import config
from ..types import RequestStats
from ..cancellation import CancellationToken
from .call_registry import CallRegistry, InFlightCall
from .outcomes import (
    BusinessFailure, CallOutcome, Cancelled, DuplicateSuppressed,
    FailedTerminal, Succeeded, classify_result
)


Operation = Union[
    Callable[[], Awaitable[Any]],
    Callable[[CancellationToken], Awaitable[Any]],
]
RetrySleep = Callable[[float, CancellationToken], Awaitable[bool]]


def make_call_key(method: str, url: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Deterministic key of a logical request.

    Query parameters from the URL and ``params`` are merged, ``None`` values
    dropped and the result sorted, so parameter order never changes the key.
    """
    parts = urlsplit(url.strip())
    merged: Dict[str, str] = dict(parse_qsl(parts.query, keep_blank_values=True))
    for name, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        merged[str(name)] = str(value)

    query = urlencode(sorted(merged.items()))
    base = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return f"{method.upper()} {base}?{query}" if query else f"{method.upper()} {base}"


def _accepts_token(operation: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(operation)
    except (TypeError, ValueError):
        return False

    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(p.kind in positional for p in signature.parameters.values())


async def _token_sleep(seconds: float, token: CancellationToken) -> bool:
    return await token.sleep(seconds)


class RequestLifecycleManager:
    """
    Executes async operations exactly-once-in-flight per call key.

    Each manager owns its registry; build one per container or per test.
    """

    def __init__(
        self,
        registry: Optional[CallRegistry] = None,
        max_retries: Optional[int] = None,
        base_delay_ms: Optional[int] = None,
        duplicate_threshold_ms: Optional[int] = None,
        sleep: Optional[RetrySleep] = None
    ):
        settings = config.request_lifecycle
        self.registry = registry or CallRegistry()
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.base_delay_ms = base_delay_ms if base_delay_ms is not None else settings.base_delay_ms
        self.duplicate_threshold_ms = (
            duplicate_threshold_ms
            if duplicate_threshold_ms is not None
            else settings.duplicate_threshold_ms
        )
        self._sleep = sleep or _token_sleep
        self.logger = structlog.get_logger("request_lifecycle")

        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    @property
    def active_calls(self) -> int:
        return len(self.registry)

    def get_stats(self) -> RequestStats:
        return self.registry.get_stats()

    async def execute(
        self,
        key: str,
        operation: Operation,
        cancel_token: Optional[CancellationToken] = None
    ) -> CallOutcome:
        """
        Run ``operation`` under the lifecycle rules for ``key``.

        Args:
            key: Call key identifying the logical request
            operation: Async callable taking no argument or the call's token
            cancel_token: Caller-owned token; firing it cancels the call

        Returns:
            The call outcome; never raises for transport or business failures
        """
        token = cancel_token or CancellationToken()
        if token.cancelled:
            self.logger.debug("Call cancelled before admission", key=key)
            return Cancelled(token.reason)

        existing = self.registry.get(key)
        if existing is not None:
            age_ms = existing.age_ms(self.registry.now())
            if age_ms < self.duplicate_threshold_ms:
                self.registry.record_duplicate(key)
                self.logger.warning(
                    "Duplicate call rejected",
                    key=key,
                    in_flight_for_ms=round(age_ms, 1),
                    threshold_ms=self.duplicate_threshold_ms
                )
                return DuplicateSuppressed(key)

            self.logger.info(
                "Superseding stale in-flight call",
                key=key,
                call_id=existing.call_id,
                in_flight_for_ms=round(age_ms, 1)
            )
            existing.cancel_token.cancel("superseded")

        call_token = token.linked()
        call = self.registry.register(key, call_token)
        # the entry goes the moment the token fires, not when the task unwinds
        unsubscribe = call_token.add_callback(lambda _: self.registry.release(call))

        self.logger.info("Call admitted", key=key, call_id=call.call_id)
        try:
            outcome = await self._run_with_retry(call, operation)
        finally:
            unsubscribe()
            call_token.detach()
            self.registry.release(call)

        self.logger.info(
            "Call settled",
            key=key,
            call_id=call.call_id,
            outcome=outcome.kind.value,
            attempts=call.attempt
        )
        return outcome

    async def _run_with_retry(self, call: InFlightCall, operation: Operation) -> CallOutcome:
        token = call.cancel_token
        pass_token = _accepts_token(operation)
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_retries + 1):
            call.attempt = attempt
            if token.cancelled:
                return Cancelled(token.reason)

            try:
                result = await (operation(token) if pass_token else operation())
            except Exception as e:
                if token.cancelled:
                    return Cancelled(token.reason)

                last_error = e
                self.logger.warning(
                    "Transport failure",
                    key=call.key,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error_type=type(e).__name__,
                    error=str(e)
                )

                if attempt < self.max_retries:
                    delay_ms = self.base_delay_ms * attempt
                    self.logger.debug("Retrying call", key=call.key, delay_ms=delay_ms, next_attempt=attempt + 1)
                    if not await self._sleep(delay_ms / 1000, token):
                        return Cancelled(token.reason)
                continue

            if token.cancelled:
                # stale response arriving after cancellation is dropped
                return Cancelled(token.reason)

            succeeded, message = classify_result(result)
            if succeeded:
                return Succeeded(result)
            return BusinessFailure(result, message)

        self.logger.error(
            "Call failed after retries",
            key=call.key,
            attempts=self.max_retries,
            error_type=type(last_error).__name__,
            error=str(last_error)
        )
        return FailedTerminal(last_error, self.max_retries)
