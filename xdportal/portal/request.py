"""Portal Request objects: one handle, one Response signal, one result."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from loguru import logger

from xdportal.portal.codec import decode_enum
from xdportal.utils.exceptions import RequestCancelledError, RequestDeclined, RequestTimeoutError

if TYPE_CHECKING:
    from xdportal.portal.proxy import PortalProxy

T = TypeVar("T")

REQUEST_INTERFACE = "org.freedesktop.portal.Request"


class ResponseStatus(IntEnum):
    SUCCESS = 0
    CANCELLED = 1
    OTHER = 2


class RequestState(str, Enum):
    CREATED = "created"
    AWAITING_COMPLETION = "awaiting_completion"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (RequestState.COMPLETED, RequestState.CANCELLED, RequestState.FAILED)


@dataclass(slots=True)
class RequestOutcome:
    """Raw ``Response(u, a{sv})`` payload."""

    status: int
    results: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class PendingRequest:
    """Tracker entry for one in-flight interactive call."""

    token: str
    handle: str
    future: asyncio.Future[RequestOutcome]
    state: RequestState = RequestState.CREATED
    subscription_id: int | None = None


class Request(Generic[T]):
    """Handle to an interactive call; ``await request.response()`` for the result."""

    def __init__(
        self,
        proxy: PortalProxy,
        pending: PendingRequest,
        decode: Callable[[dict[str, Any]], T],
        operation: str,
    ):
        self._proxy = proxy
        self._pending = pending
        self._decode = decode
        self._operation = operation

    def __repr__(self) -> str:
        return f"Request({self._operation}, handle={self.handle!r}, state={self.state.value})"

    @property
    def handle(self) -> str:
        return self._pending.handle

    @property
    def token(self) -> str:
        return self._pending.token

    @property
    def state(self) -> RequestState:
        return self._pending.state

    async def response(self, timeout: float | None = None) -> T:
        """Wait for the Response signal and decode it.

        Raises RequestDeclined when the user cancelled or the broker failed the
        request, ConnectionLostWhilePending when the bus went away,
        RequestCancelledError when the request was withdrawn with :meth:`cancel`,
        and RequestTimeoutError when ``timeout`` (or the configured default)
        expires. Cancelling the awaiting task withdraws the request locally.
        """
        if timeout is None:
            timeout = self._proxy.request_timeout
        if self.state is RequestState.CANCELLED:
            await self._proxy.release(self._pending)
            raise RequestCancelledError(self.handle)
        released = False
        try:
            if timeout is None:
                outcome = await self._pending.future
            else:
                outcome = await asyncio.wait_for(self._pending.future, timeout)
        except asyncio.TimeoutError as exc:
            self._proxy.tracker.cancel(self._pending)
            raise RequestTimeoutError(self._operation, timeout) from exc
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is None or not task.cancelling():
                # The future was withdrawn by cancel(), not this task.
                raise RequestCancelledError(self.handle) from None
            self._proxy.tracker.cancel(self._pending)
            # Do not block the cancelled task on bus I/O.
            self._proxy.release_soon(self._pending)
            released = True
            raise
        finally:
            if not released:
                await self._proxy.release(self._pending)

        status = decode_enum(outcome.status, ResponseStatus)
        if status is not ResponseStatus.SUCCESS:
            logger.debug("{} on {} ended with {}", self._operation, self.handle, status.name)
            raise RequestDeclined(self.handle, status)
        return self._decode(outcome.results)

    async def cancel(self) -> bool:
        """Withdraw interest locally and drop the Response subscription.

        Nothing is sent to the broker; a late Response is ignored. Returns False
        when the request had already finished.
        """
        withdrawn = self._proxy.tracker.cancel(self._pending)
        await self._proxy.release(self._pending)
        return withdrawn

    async def close(self) -> None:
        """Withdraw locally and ask the broker to close the request (dismissing its dialog)."""
        await self.cancel()
        await self._proxy.call(
            "Close",
            path=self.handle,
            interface=REQUEST_INTERFACE,
        )
