"""Generic proxy for one portal interface: plain calls, interactive requests, properties."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Callable, Sequence, TypeVar

from dbus_fast import Variant
from loguru import logger

from xdportal.bus.contracts import BusTransport
from xdportal.bus.protocol import MethodReply, SignalMatch, SignalMessage
from xdportal.portal.codec import decode_reply, decode_variant, encode_call
from xdportal.portal.request import REQUEST_INTERFACE, PendingRequest, Request
from xdportal.portal.token import is_valid_token, new_token, request_path
from xdportal.portal.tracker import RequestTracker
from xdportal.utils.exceptions import DecodeError, PortalError, ValidationError

T = TypeVar("T")

DESKTOP_DESTINATION = "org.freedesktop.portal.Desktop"
DESKTOP_PATH = "/org/freedesktop/portal/desktop"
RESPONSE_SIGNATURE = "ua{sv}"


class PortalProxy:
    """Issues calls on one portal interface over a shared transport and tracker."""

    def __init__(
        self,
        transport: BusTransport,
        tracker: RequestTracker,
        interface: str,
        *,
        destination: str = DESKTOP_DESTINATION,
        path: str = DESKTOP_PATH,
        request_timeout: float | None = None,
    ):
        self.transport = transport
        self.tracker = tracker
        self.interface = interface
        self.destination = destination
        self.path = path
        self.request_timeout = request_timeout
        self._releasing: set[asyncio.Task] = set()

    async def call(
        self,
        member: str,
        signature: str = "",
        args: Sequence[Any] = (),
        *,
        reply_signature: str = "",
        path: str | None = None,
        interface: str | None = None,
    ) -> list[Any]:
        """Immediate-reply call; returns the decoded reply body."""
        message = encode_call(
            destination=self.destination,
            path=path or self.path,
            interface=interface or self.interface,
            member=member,
            signature=signature,
            args=args,
        )
        reply = await self.transport.call(message)
        return decode_reply(reply, reply_signature)

    async def request(
        self,
        member: str,
        signature: str,
        args: Sequence[Any],
        options: dict[str, Variant],
        *,
        decode: Callable[[dict[str, Any]], T],
        handle_token: str | None = None,
    ) -> Request[T]:
        """Interactive call: returns a Request as soon as the broker hands back its handle.

        The Response subscription is installed on the predicted handle before
        the call goes out, so a fast broker cannot complete unobserved.

        Brokers that ignore ``handle_token`` return a different handle, which
        can only be subscribed after the reply. A Response emitted on it before
        that subscription lands is lost; pass a ``timeout`` to
        :meth:`Request.response` when talking to such brokers.
        """
        token = handle_token or new_token()
        if not is_valid_token(token):
            raise ValidationError(f"invalid handle token: {token!r}", field="handle_token")
        predicted = request_path(self.transport.unique_name, token)
        wire_options = dict(options)
        wire_options["handle_token"] = Variant("s", token)

        pending = self.tracker.register(token, predicted)
        try:
            pending.subscription_id = await self._subscribe_response(predicted)
            (handle,) = await self.call(member, signature, [*args, wire_options], reply_signature="o")
            if handle != predicted:
                # Pre-0.9 brokers do not honour handle_token.
                logger.debug("{} returned {} instead of {}", member, handle, predicted)
                stale = pending.subscription_id
                self.tracker.bind(pending, handle)
                pending.subscription_id = await self._subscribe_response(handle)
                await self.transport.unsubscribe(stale)
            else:
                self.tracker.bind(pending, handle)
        except BaseException:
            self.tracker.cancel(pending)
            with contextlib.suppress(PortalError):
                await self.release(pending)
            raise
        logger.debug("{} awaiting completion on {}", member, pending.handle)
        return Request(self, pending, decode, member)

    async def property(self, name: str, signature: str) -> Any:
        value = await self.transport.get_property(self.destination, self.path, self.interface, name)
        return decode_variant(value, signature, what=f"{self.interface}.{name}")

    async def release(self, pending: PendingRequest) -> None:
        """Drop the Response subscription of a finished or withdrawn request."""
        subscription_id, pending.subscription_id = pending.subscription_id, None
        if subscription_id is not None:
            await self.transport.unsubscribe(subscription_id)

    def release_soon(self, pending: PendingRequest) -> None:
        """Schedule :meth:`release` without waiting for it."""
        task = asyncio.ensure_future(self.release(pending))
        self._releasing.add(task)
        task.add_done_callback(self._release_done)

    def _release_done(self, task: asyncio.Task) -> None:
        self._releasing.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Dropping Response subscription failed: {}", exc)

    async def _subscribe_response(self, handle: str) -> int:
        match = SignalMatch(interface=REQUEST_INTERFACE, member="Response", path=handle, sender=self.destination)
        return await self.transport.subscribe(match, self._on_response)

    def _on_response(self, signal: SignalMessage) -> None:
        try:
            status, results = decode_reply(MethodReply(signature=signal.signature, body=signal.body), RESPONSE_SIGNATURE)
        except DecodeError as exc:
            logger.warning("Malformed Response on {}: {}", signal.path, exc)
            self.tracker.fail(signal.path, exc)
            return
        self.tracker.deliver(signal.path, status, results)
