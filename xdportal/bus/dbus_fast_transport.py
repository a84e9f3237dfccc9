"""BusTransport implementation on dbus-fast (pure asyncio)."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

from dbus_fast import BusType, Message, MessageType, Variant
from dbus_fast.aio import MessageBus
from loguru import logger

from xdportal.bus.contracts import DisconnectCallback, SignalCallback
from xdportal.bus.protocol import MethodCall, MethodReply, SignalMatch, SignalMessage
from xdportal.utils.exceptions import TransportError, sanitize_error_message

DBUS_NAME = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

_BUS_TYPES = {"session": BusType.SESSION, "system": BusType.SYSTEM}


class DbusFastTransport:
    """One owned dbus-fast connection; construct with :meth:`connect`."""

    def __init__(self, bus: MessageBus, *, call_timeout: float = 25.0):
        self._bus = bus
        self._call_timeout = call_timeout
        self._subscriptions: dict[int, tuple[SignalMatch, SignalCallback]] = {}
        self._ids = itertools.count(1)
        self._disconnect_callbacks: list[DisconnectCallback] = []
        self._watch_task: asyncio.Task | None = None
        self._closed = False
        self._bus.add_message_handler(self._on_message)

    @classmethod
    async def connect(
        cls,
        bus_type: str = "session",
        address: str | None = None,
        *,
        call_timeout: float = 25.0,
    ) -> DbusFastTransport:
        try:
            bus = await MessageBus(bus_address=address, bus_type=_BUS_TYPES[bus_type]).connect()
        except KeyError as exc:
            raise TransportError(f"unknown bus type: {bus_type}") from exc
        except Exception as exc:
            raise TransportError(f"Failed to connect to {bus_type} bus: {exc}") from exc
        transport = cls(bus, call_timeout=call_timeout)
        transport._watch_task = asyncio.create_task(transport._watch_disconnect())
        logger.info("Connected to {} bus as {}", bus_type, bus.unique_name)
        return transport

    @property
    def unique_name(self) -> str:
        return self._bus.unique_name or ""

    async def call(self, call: MethodCall) -> MethodReply:
        message = Message(
            destination=call.destination,
            path=call.path,
            interface=call.interface,
            member=call.member,
            signature=call.signature,
            body=list(call.body),
        )
        logger.debug("-> {}.{} on {}", call.interface, call.member, call.path)
        try:
            reply = await asyncio.wait_for(self._bus.call(message), timeout=self._call_timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"{call.interface}.{call.member} got no reply within {self._call_timeout}s",
                code="CALL_TIMEOUT",
            ) from exc
        except Exception as exc:
            raise TransportError(f"{call.interface}.{call.member} failed: {exc}") from exc
        if reply is None:
            return MethodReply()
        if reply.message_type == MessageType.ERROR:
            detail = reply.body[0] if reply.body and isinstance(reply.body[0], str) else ""
            logger.debug("<- error {} for {}: {}", reply.error_name, call.member, sanitize_error_message(detail))
            raise TransportError(
                detail or f"{call.interface}.{call.member} returned {reply.error_name}",
                error_name=reply.error_name,
            )
        return MethodReply(signature=reply.signature, body=list(reply.body))

    async def subscribe(self, match: SignalMatch, callback: SignalCallback) -> int:
        await self._bus_call("AddMatch", match.rule())
        subscription_id = next(self._ids)
        self._subscriptions[subscription_id] = (match, callback)
        return subscription_id

    async def unsubscribe(self, subscription_id: int) -> None:
        entry = self._subscriptions.pop(subscription_id, None)
        if entry is None or self._closed:
            return
        match, _ = entry
        await self._bus_call("RemoveMatch", match.rule())

    async def get_property(self, destination: str, path: str, interface: str, name: str) -> Any:
        reply = await self.call(
            MethodCall(
                destination=destination,
                path=path,
                interface=PROPERTIES_INTERFACE,
                member="Get",
                signature="ss",
                body=[interface, name],
            )
        )
        if reply.signature != "v" or not reply.body:
            raise TransportError(f"Properties.Get({interface}, {name}) returned '{reply.signature}'")
        value = reply.body[0]
        return value if isinstance(value, Variant) else Variant(reply.signature, value)

    def add_disconnect_callback(self, callback: DisconnectCallback) -> None:
        self._disconnect_callbacks.append(callback)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._bus.remove_message_handler(self._on_message)
        self._bus.disconnect()
        if self._watch_task is not None:
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
        logger.info("Disconnected from bus")

    async def _bus_call(self, member: str, rule: str) -> None:
        await self.call(
            MethodCall(
                destination=DBUS_NAME,
                path=DBUS_PATH,
                interface=DBUS_NAME,
                member=member,
                signature="s",
                body=[rule],
            )
        )

    def _on_message(self, message: Message) -> None:
        if message.message_type != MessageType.SIGNAL:
            return None
        signal = SignalMessage(
            path=message.path,
            interface=message.interface,
            member=message.member,
            signature=message.signature,
            body=list(message.body),
            sender=message.sender,
        )
        for match, callback in list(self._subscriptions.values()):
            if not match.matches(signal):
                continue
            try:
                callback(signal)
            except Exception:
                logger.exception("Signal callback failed for {}.{} on {}", signal.interface, signal.member, signal.path)
        return None

    async def _watch_disconnect(self) -> None:
        error: BaseException | None = None
        try:
            await self._bus.wait_for_disconnect()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = exc
        if not self._closed:
            logger.warning("Bus connection lost: {}", error)
        for callback in list(self._disconnect_callbacks):
            callback(error)
