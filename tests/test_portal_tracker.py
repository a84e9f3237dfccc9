"""Tests for the request tracker (handle -> waiter table)."""

import asyncio
import threading

import pytest

from xdportal.portal.request import RequestState
from xdportal.portal.tracker import RequestTracker
from xdportal.utils.exceptions import ConnectionLostWhilePending, DuplicateWaiterError

HANDLE = "/org/freedesktop/portal/desktop/request/1_42/t1"


@pytest.mark.asyncio
async def test_register_bind_deliver():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    assert pending.state is RequestState.CREATED
    assert HANDLE in tracker

    tracker.bind(pending, HANDLE)
    assert pending.state is RequestState.AWAITING_COMPLETION

    assert tracker.deliver(HANDLE, 0, {"token": "x"}) is True
    outcome = await pending.future
    assert outcome.status == 0
    assert outcome.results == {"token": "x"}
    assert pending.state is RequestState.COMPLETED
    assert len(tracker) == 0


@pytest.mark.asyncio
async def test_second_delivery_is_ignored():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    tracker.bind(pending, HANDLE)
    assert tracker.deliver(HANDLE, 0, {})
    assert tracker.deliver(HANDLE, 1, {}) is False
    assert (await pending.future).status == 0


@pytest.mark.asyncio
async def test_unknown_handle_is_a_no_op():
    tracker = RequestTracker()
    assert tracker.deliver("/nowhere", 0, {}) is False
    assert tracker.fail("/nowhere", RuntimeError("x")) is False


@pytest.mark.asyncio
async def test_duplicate_waiter_rejected():
    tracker = RequestTracker()
    tracker.register("t1", HANDLE)
    with pytest.raises(DuplicateWaiterError) as exc_info:
        tracker.register("t1", HANDLE)
    assert exc_info.value.details["handle"] == HANDLE


@pytest.mark.asyncio
async def test_bind_rekeys_to_returned_handle():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    tracker.bind(pending, "/other/handle")
    assert pending.handle == "/other/handle"
    assert tracker.pending_handles() == ["/other/handle"]
    assert tracker.deliver(HANDLE, 0, {}) is False
    assert tracker.deliver("/other/handle", 0, {}) is True


@pytest.mark.asyncio
async def test_bind_onto_taken_handle_rejected():
    tracker = RequestTracker()
    tracker.register("t1", "/a")
    pending = tracker.register("t2", "/b")
    with pytest.raises(DuplicateWaiterError):
        tracker.bind(pending, "/a")


@pytest.mark.asyncio
async def test_response_before_bind_is_kept():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    assert tracker.deliver(HANDLE, 0, {})
    tracker.bind(pending, HANDLE)
    assert pending.state is RequestState.COMPLETED
    assert (await pending.future).status == 0


@pytest.mark.asyncio
async def test_cancel_then_late_signal_is_dropped():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    tracker.bind(pending, HANDLE)

    assert tracker.cancel(pending) is True
    assert pending.state is RequestState.CANCELLED
    assert pending.future.cancelled()
    assert tracker.deliver(HANDLE, 0, {}) is False
    assert tracker.cancel(pending) is False


@pytest.mark.asyncio
async def test_cancel_after_completion_is_refused():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    tracker.deliver(HANDLE, 0, {})
    assert tracker.cancel(pending) is False
    assert pending.state is RequestState.COMPLETED


@pytest.mark.asyncio
async def test_fail_all_resolves_every_waiter():
    tracker = RequestTracker()
    first = tracker.register("t1", "/a")
    second = tracker.register("t2", "/b")

    assert tracker.fail_all(ConnectionResetError("bus gone")) == 2
    assert len(tracker) == 0
    for pending in (first, second):
        assert pending.state is RequestState.FAILED
        with pytest.raises(ConnectionLostWhilePending) as exc_info:
            await pending.future
        assert "bus gone" in exc_info.value.message
        assert exc_info.value.details["handle"] == pending.handle


@pytest.mark.asyncio
async def test_fail_marks_request_failed():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    assert tracker.fail(HANDLE, ValueError("bad"))
    assert pending.state is RequestState.FAILED
    with pytest.raises(ValueError):
        await pending.future


@pytest.mark.asyncio
async def test_delivery_from_another_thread():
    tracker = RequestTracker()
    pending = tracker.register("t1", HANDLE)
    tracker.bind(pending, HANDLE)

    thread = threading.Thread(target=tracker.deliver, args=(HANDLE, 0, {"name": "x"}))
    thread.start()
    thread.join()

    outcome = await asyncio.wait_for(pending.future, 1.0)
    assert outcome.results == {"name": "x"}
