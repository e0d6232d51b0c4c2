from __future__ import annotations

import asyncio
import builtins
import time

import pytest

from chromy import executor
from chromy.errors import TimeoutError
from chromy.executor import PendingCall, run_with_deadline


def test_fast_operation_returns_its_result() -> None:
    async def _op() -> int:
        await asyncio.sleep(0.001)
        return 42

    assert asyncio.run(run_with_deadline(500, _op, poll_interval_ms=5)) == 42


def test_operation_error_propagates_unchanged() -> None:
    async def _op() -> None:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        asyncio.run(run_with_deadline(500, _op, poll_interval_ms=5))


def test_timeout_is_bounded_by_deadline_plus_interval() -> None:
    async def _op() -> None:
        await asyncio.sleep(5)

    async def _run() -> float:
        started = time.monotonic()
        with pytest.raises(TimeoutError):
            await run_with_deadline(60, _op, poll_interval_ms=10, cancel_on_timeout=True)
        return (time.monotonic() - started) * 1000.0

    elapsed = asyncio.run(_run())
    assert 60 <= elapsed < 60 + 10 + 200


def test_timed_out_operation_keeps_running_detached() -> None:
    finished: list[str] = []

    async def _op() -> str:
        await asyncio.sleep(0.08)
        finished.append("done")
        return "late"

    async def _run() -> None:
        before = set(executor._detached)
        with pytest.raises(TimeoutError):
            await run_with_deadline(20, _op, poll_interval_ms=5)
        abandoned = executor._detached - before
        assert len(abandoned) == 1
        await asyncio.sleep(0.15)
        assert not abandoned & executor._detached

    asyncio.run(_run())
    assert finished == ["done"]


def test_cancel_on_timeout_stops_the_operation() -> None:
    state: dict[str, bool] = {}

    async def _op() -> None:
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise

    async def _run() -> None:
        with pytest.raises(TimeoutError):
            await run_with_deadline(20, _op, poll_interval_ms=5, cancel_on_timeout=True)
        await asyncio.sleep(0)

    asyncio.run(_run())
    assert state == {"cancelled": True}


def test_nested_deadlines() -> None:
    async def _inner() -> int:
        await asyncio.sleep(0.005)
        return 1

    async def _outer() -> int:
        return await run_with_deadline(200, _inner, poll_interval_ms=5) + 1

    assert asyncio.run(run_with_deadline(500, _outer, poll_interval_ms=5)) == 2


def test_inner_timeout_surfaces_through_outer() -> None:
    async def _inner() -> None:
        await asyncio.sleep(5)

    async def _outer() -> None:
        await run_with_deadline(20, _inner, poll_interval_ms=5, cancel_on_timeout=True)

    with pytest.raises(TimeoutError):
        asyncio.run(run_with_deadline(1000, _outer, poll_interval_ms=5))


def test_timeout_error_is_also_builtin_timeout() -> None:
    assert issubclass(TimeoutError, builtins.TimeoutError)


def test_pending_call_expiry() -> None:
    async def _run() -> None:
        task = asyncio.ensure_future(asyncio.sleep(0))
        call = PendingCall(task, timeout_ms=10, started_at=time.monotonic() - 1.0)
        assert call.expired()
        assert call.elapsed_ms() >= 1000
        await task
        assert call.settled
        assert call.outcome() is None

    asyncio.run(_run())
