"""Runtime contract for bus transports."""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from .protocol import MethodCall, MethodReply, SignalMatch, SignalMessage

SignalCallback = Callable[[SignalMessage], None]
DisconnectCallback = Callable[[BaseException | None], None]


@runtime_checkable
class BusTransport(Protocol):
    @property
    def unique_name(self) -> str: ...

    async def call(self, call: MethodCall) -> MethodReply: ...
    async def subscribe(self, match: SignalMatch, callback: SignalCallback) -> int: ...
    async def unsubscribe(self, subscription_id: int) -> None: ...
    async def get_property(self, destination: str, path: str, interface: str, name: str) -> Any: ...
    def add_disconnect_callback(self, callback: DisconnectCallback) -> None: ...
    async def close(self) -> None: ...
