"""
Tests for the request lifecycle manager
"""

import asyncio
import pytest
from unittest.mock import AsyncMock

from flight_admin.cancellation import CancellationToken
from flight_admin.services import (
    BusinessFailure, Cancelled, DuplicateSuppressed, FailedTerminal,
    RequestLifecycleManager, Succeeded, make_call_key, FALLBACK_ERROR_MESSAGE
)
from flight_admin.services.outcomes import classify_result
from flight_admin.types import ApiFailure, ApiSuccess, TransportError


class TestCallKey:
    """Test call key derivation"""

    def test_parameter_order_does_not_matter(self):
        a = make_call_key("get", "https://api.example.com/tickets", {"page": 1, "timeframe": "upcoming"})
        b = make_call_key("GET", "https://api.example.com/tickets", {"timeframe": "upcoming", "page": 1})
        assert a == b == "GET https://api.example.com/tickets?page=1&timeframe=upcoming"

    def test_none_values_dropped(self):
        assert make_call_key("GET", "/tickets", {"pnr": None}) == "GET /tickets"

    def test_url_query_merged(self):
        key = make_call_key("GET", "/tickets?limit=10", {"active": True})
        assert key == "GET /tickets?active=true&limit=10"

    def test_method_distinguishes_keys(self):
        assert make_call_key("GET", "/tickets") != make_call_key("POST", "/tickets")


class TestClassifyResult:
    """Test success discriminator decoding"""

    def test_mapping_without_discriminator_is_success(self):
        assert classify_result({"data": []}) == (True, None)

    def test_mapping_failure_with_message(self):
        assert classify_result({"success": False, "message": "No tickets"}) == (False, "No tickets")

    def test_model_failure(self):
        assert classify_result(ApiFailure(message="Denied")) == (False, "Denied")

    def test_plain_values_are_success(self):
        assert classify_result(None) == (True, None)
        assert classify_result([1, 2]) == (True, None)


class TestDuplicateSuppression:
    """Test per-key mutual exclusion"""

    @pytest.mark.asyncio
    async def test_duplicate_within_threshold(self, manager, clock):
        release = asyncio.Event()
        invocations = []

        async def operation():
            invocations.append(1)
            await release.wait()
            return ApiSuccess(data="first")

        first = asyncio.ensure_future(manager.execute("Y", operation))
        await asyncio.sleep(0)
        clock.advance_ms(200)

        second = await manager.execute("Y", operation)
        assert isinstance(second, DuplicateSuppressed)
        assert second.key == "Y"

        release.set()
        outcome = await first
        assert isinstance(outcome, Succeeded)
        assert outcome.payload.data == "first"
        assert len(invocations) == 1
        assert manager.get_stats().recent_duplicates == 1

    @pytest.mark.asyncio
    async def test_sequential_calls_both_execute(self, manager, clock):
        operation = AsyncMock(return_value={"success": True})

        assert isinstance(await manager.execute("k", operation), Succeeded)
        clock.advance_ms(1500)
        assert isinstance(await manager.execute("k", operation), Succeeded)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_settled_call_frees_key_immediately(self, manager):
        operation = AsyncMock(return_value={"success": True})

        await manager.execute("k", operation)
        outcome = await manager.execute("k", operation)

        assert isinstance(outcome, Succeeded)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_distinct_keys_run_concurrently(self, manager):
        release = asyncio.Event()

        async def operation():
            await release.wait()
            return {"success": True}

        tasks = [asyncio.ensure_future(manager.execute(key, operation)) for key in ("a", "b", "c")]
        await asyncio.sleep(0)
        assert manager.active_calls == 3

        release.set()
        outcomes = await asyncio.gather(*tasks)
        assert all(isinstance(o, Succeeded) for o in outcomes)
        assert manager.active_calls == 0

    @pytest.mark.asyncio
    async def test_stale_in_flight_call_is_superseded(self, manager, registry, clock):
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return {"success": True, "data": "old"}

        async def fresh():
            assert len(registry) == 1
            return {"success": True, "data": "new"}

        first = asyncio.ensure_future(manager.execute("k", slow))
        await asyncio.sleep(0)
        clock.advance_ms(1500)

        second = await manager.execute("k", fresh)
        release.set()
        first_outcome = await first

        assert isinstance(second, Succeeded)
        assert second.payload["data"] == "new"
        assert isinstance(first_outcome, Cancelled)
        assert first_outcome.reason == "superseded"
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_at_most_one_entry_per_key(self, manager, registry, clock):
        release = asyncio.Event()
        seen = []

        async def operation():
            seen.append(len([k for k in ("k",) if k in registry]))
            await release.wait()
            return {"success": True}

        tasks = []
        for _ in range(5):
            tasks.append(asyncio.ensure_future(manager.execute("k", operation)))
            await asyncio.sleep(0)
            assert len(registry) <= 1
            clock.advance_ms(600)

        release.set()
        await asyncio.gather(*tasks)
        assert len(registry) == 0
        assert seen and all(count == 1 for count in seen)


class TestRetry:
    """Test bounded retry of transport failures"""

    @pytest.mark.asyncio
    async def test_transient_failures_then_success(self, manager, retry_sleep):
        operation = AsyncMock(side_effect=[
            TransportError("reset"),
            TransportError("reset"),
            ApiSuccess(data={"tickets": []}),
        ])

        outcome = await manager.execute("X", operation)

        assert isinstance(outcome, Succeeded)
        assert operation.await_count == 3
        assert retry_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_permanent_failure_is_bounded(self, manager, retry_sleep):
        error = TransportError("down", 503, "SERVICE_UNAVAILABLE")
        operation = AsyncMock(side_effect=error)

        outcome = await manager.execute("X", operation)

        assert isinstance(outcome, FailedTerminal)
        assert outcome.attempts == 3
        assert outcome.last_error is error
        assert outcome.user_message == FALLBACK_ERROR_MESSAGE
        assert operation.await_count == 3
        assert retry_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_any_exception_counts_as_transport_failure(self, manager):
        operation = AsyncMock(side_effect=[ConnectionResetError(), {"success": True}])
        outcome = await manager.execute("X", operation)

        assert isinstance(outcome, Succeeded)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_business_failure_is_not_retried(self, manager, retry_sleep):
        operation = AsyncMock(return_value=ApiFailure(message="PNR not found"))

        outcome = await manager.execute("X", operation)

        assert isinstance(outcome, BusinessFailure)
        assert outcome.user_message == "PNR not found"
        assert operation.await_count == 1
        assert retry_sleep.delays == []

    @pytest.mark.asyncio
    async def test_business_failure_without_message(self, manager):
        outcome = await manager.execute("X", AsyncMock(return_value={"success": False}))
        assert outcome.user_message == FALLBACK_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_single_attempt(self, registry, retry_sleep):
        manager = RequestLifecycleManager(registry=registry, max_retries=1, sleep=retry_sleep)
        operation = AsyncMock(side_effect=TransportError("down"))

        outcome = await manager.execute("X", operation)
        assert isinstance(outcome, FailedTerminal)
        assert operation.await_count == 1
        assert retry_sleep.delays == []

    def test_max_retries_must_be_positive(self, registry):
        with pytest.raises(ValueError):
            RequestLifecycleManager(registry=registry, max_retries=0)


class TestCancellation:
    """Test cooperative cancellation"""

    @pytest.mark.asyncio
    async def test_cancelled_before_admission(self, manager, registry):
        token = CancellationToken()
        token.cancel("unmounted")
        operation = AsyncMock()

        outcome = await manager.execute("k", operation, token)

        assert isinstance(outcome, Cancelled)
        assert operation.await_count == 0
        assert registry.get_stats().total_calls == 0

    @pytest.mark.asyncio
    async def test_cancel_during_flight(self, manager, registry):
        token = CancellationToken()
        started = asyncio.Event()

        async def operation(call_token):
            started.set()
            await call_token.wait()
            call_token.raise_if_cancelled()

        task = asyncio.ensure_future(manager.execute("k", operation, token))
        await started.wait()
        token.cancel("navigated away")

        assert "k" not in registry
        outcome = await task
        assert isinstance(outcome, Cancelled)
        assert outcome.reason == "navigated away"

    @pytest.mark.asyncio
    async def test_result_after_cancel_is_dropped(self, manager):
        token = CancellationToken()

        async def operation():
            token.cancel("stale")
            return {"success": True}

        outcome = await manager.execute("k", operation, token)
        assert isinstance(outcome, Cancelled)

    @pytest.mark.asyncio
    async def test_cancel_during_retry_wait(self, registry):
        manager = RequestLifecycleManager(registry=registry, max_retries=3, base_delay_ms=60_000)
        token = CancellationToken()
        operation = AsyncMock(side_effect=TransportError("down"))

        task = asyncio.ensure_future(manager.execute("k", operation, token))
        for _ in range(5):
            await asyncio.sleep(0)
        token.cancel("closed")

        outcome = await asyncio.wait_for(task, timeout=1)
        assert isinstance(outcome, Cancelled)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_frees_key_for_new_call(self, manager, clock):
        token = CancellationToken()
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return {"success": True}

        first = asyncio.ensure_future(manager.execute("k", slow, token))
        await asyncio.sleep(0)
        token.cancel()

        second = await manager.execute("k", AsyncMock(return_value={"success": True}))
        assert isinstance(second, Succeeded)

        release.set()
        assert isinstance(await first, Cancelled)

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self, manager, registry):
        started = asyncio.Event()

        async def operation():
            started.set()
            await asyncio.sleep(10)

        task = asyncio.ensure_future(manager.execute("k", operation))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert "k" not in registry

    @pytest.mark.asyncio
    async def test_long_lived_token_does_not_accumulate_callbacks(self, manager, registry):
        token = CancellationToken()
        operation = AsyncMock(return_value={"success": True})

        for i in range(50):
            outcome = await manager.execute(f"k{i}", operation, token)
            assert isinstance(outcome, Succeeded)

        assert token._callbacks == []
        assert len(registry) == 0

        token.cancel("page closed")
        assert operation.await_count == 50

    @pytest.mark.asyncio
    async def test_cancelled_calls_are_silent(self, manager):
        token = CancellationToken()
        token.cancel()
        outcome = await manager.execute("k", AsyncMock(), token)

        assert outcome.is_silent
        assert not outcome.is_user_facing
        assert outcome.user_message is None


class TestStats:
    """Test telemetry"""

    @pytest.mark.asyncio
    async def test_stats_counts(self, manager, clock):
        release = asyncio.Event()

        async def operation():
            await release.wait()
            return {"success": True}

        task = asyncio.ensure_future(manager.execute("k", operation))
        await asyncio.sleep(0)
        await manager.execute("k", operation)

        stats = manager.get_stats()
        assert stats.active_calls == 1
        assert stats.total_calls == 1
        assert stats.recent_duplicates == 1

        release.set()
        await task
        clock.advance_ms(11_000)

        stats = manager.get_stats()
        assert stats.active_calls == 0
        assert stats.recent_duplicates == 0
        assert stats.recent_calls == 0
