"""Handle -> waiter table for pending portal requests."""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from loguru import logger

from xdportal.portal.request import PendingRequest, RequestOutcome, RequestState
from xdportal.utils.exceptions import ConnectionLostWhilePending, DuplicateWaiterError


def _settle(future: asyncio.Future, *, result: Any = None, exception: BaseException | None = None) -> None:
    def apply() -> None:
        if future.done():
            return
        if exception is not None:
            future.set_exception(exception)
        else:
            future.set_result(result)

    loop = future.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        apply()
    else:
        loop.call_soon_threadsafe(apply)


def _withdraw(future: asyncio.Future) -> None:
    loop = future.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        future.cancel()
    else:
        loop.call_soon_threadsafe(future.cancel)


class RequestTracker:
    """Tracks pending requests by handle and resolves each one exactly once.

    The lock guards only the table; futures are settled outside it and always
    on their own loop, so signals may be delivered from any thread.
    """

    def __init__(self):
        self._pending: dict[str, PendingRequest] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, handle: str) -> bool:
        with self._lock:
            return handle in self._pending

    def pending_handles(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def register(self, token: str, handle: str) -> PendingRequest:
        """Create the waiter for ``handle``; a second waiter on the same handle is a bug."""
        future: asyncio.Future[RequestOutcome] = asyncio.get_running_loop().create_future()
        pending = PendingRequest(token=token, handle=handle, future=future)
        with self._lock:
            if handle in self._pending:
                raise DuplicateWaiterError(handle)
            self._pending[handle] = pending
        logger.debug("Registered request {}", handle)
        return pending

    def bind(self, pending: PendingRequest, handle: str) -> None:
        """Record the handle returned by the broker and start awaiting completion."""
        with self._lock:
            if handle != pending.handle:
                current = self._pending.get(handle)
                if current is not None and current is not pending:
                    raise DuplicateWaiterError(handle)
                if self._pending.get(pending.handle) is pending:
                    del self._pending[pending.handle]
                pending.handle = handle
                if pending.state is RequestState.CREATED:
                    self._pending[handle] = pending
            if pending.state is RequestState.CREATED:
                pending.state = RequestState.AWAITING_COMPLETION

    def deliver(self, handle: str, status: int, results: dict[str, Any]) -> bool:
        """Resolve the waiter for ``handle``. Unknown or withdrawn handles are ignored."""
        with self._lock:
            pending = self._pending.pop(handle, None)
            if pending is not None:
                pending.state = RequestState.COMPLETED
        if pending is None:
            logger.debug("Dropping Response for unknown or withdrawn request {}", handle)
            return False
        _settle(pending.future, result=RequestOutcome(status=status, results=dict(results)))
        return True

    def fail(self, handle: str, exc: BaseException) -> bool:
        with self._lock:
            pending = self._pending.pop(handle, None)
            if pending is not None:
                pending.state = RequestState.FAILED
        if pending is None:
            return False
        _settle(pending.future, exception=exc)
        return True

    def cancel(self, pending: PendingRequest) -> bool:
        """Withdraw a request locally. Returns False when it already finished."""
        with self._lock:
            if pending.state.terminal:
                return False
            if self._pending.get(pending.handle) is pending:
                del self._pending[pending.handle]
            pending.state = RequestState.CANCELLED
        _withdraw(pending.future)
        logger.debug("Cancelled request {}", pending.handle)
        return True

    def fail_all(self, reason: BaseException | None = None) -> int:
        """Resolve every pending waiter with ConnectionLostWhilePending."""
        with self._lock:
            doomed = list(self._pending.values())
            self._pending.clear()
            for pending in doomed:
                pending.state = RequestState.FAILED
        detail = str(reason) if reason else None
        for pending in doomed:
            _settle(pending.future, exception=ConnectionLostWhilePending(pending.handle, detail))
        return len(doomed)
