"""Pytest hooks and fixtures."""

import itertools
import os
from typing import Any, Callable

import pytest
from dbus_fast import Variant

from xdportal.bus.protocol import MethodCall, MethodReply, SignalMatch, SignalMessage
from xdportal.config.schema import PortalConfig
from xdportal.portal.client import PortalClient
from xdportal.portal.request import REQUEST_INTERFACE
from xdportal.portal.token import request_path


class FakeBus:
    """In-memory BusTransport: scripted replies, recorded calls, manual signals."""

    def __init__(self, unique_name: str = ":1.42"):
        self._unique_name = unique_name
        self.calls: list[MethodCall] = []
        self.replies: dict[str, MethodReply | Exception | Callable[[MethodCall], MethodReply]] = {}
        self.properties: dict[tuple[str, str], Any] = {}
        self.subscriptions: dict[int, tuple[SignalMatch, Callable[[SignalMessage], None]]] = {}
        self.disconnect_callbacks: list[Callable[[BaseException | None], None]] = []
        self.closed = False
        self._ids = itertools.count(1)

    @property
    def unique_name(self) -> str:
        return self._unique_name

    async def call(self, call: MethodCall) -> MethodReply:
        self.calls.append(call)
        handler = self.replies.get(call.member)
        if handler is None:
            return MethodReply()
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(call)
        return handler

    async def subscribe(self, match: SignalMatch, callback: Callable[[SignalMessage], None]) -> int:
        subscription_id = next(self._ids)
        self.subscriptions[subscription_id] = (match, callback)
        return subscription_id

    async def unsubscribe(self, subscription_id: int) -> None:
        self.subscriptions.pop(subscription_id, None)

    async def get_property(self, destination: str, path: str, interface: str, name: str) -> Any:
        return self.properties[(interface, name)]

    def add_disconnect_callback(self, callback: Callable[[BaseException | None], None]) -> None:
        self.disconnect_callbacks.append(callback)

    async def close(self) -> None:
        self.closed = True

    # -- test helpers -------------------------------------------------------

    def reply_with_request_handle(self, member: str, handle: str | None = None) -> None:
        """Answer ``member`` with the handle predicted from its handle_token (or ``handle``)."""

        def handler(call: MethodCall) -> MethodReply:
            token = call.body[-1]["handle_token"].value
            return MethodReply(signature="o", body=[handle or request_path(self.unique_name, token)])

        self.replies[member] = handler

    def emit(self, signal: SignalMessage) -> int:
        delivered = 0
        for match, callback in list(self.subscriptions.values()):
            if match.matches(signal):
                callback(signal)
                delivered += 1
        return delivered

    def emit_response(self, path: str, status: int, results: dict[str, Variant] | None = None) -> int:
        return self.emit(
            SignalMessage(
                path=path,
                interface=REQUEST_INTERFACE,
                member="Response",
                signature="ua{sv}",
                body=[status, results or {}],
                sender=":1.7",
            )
        )

    def drop_connection(self, error: BaseException | None = None) -> None:
        for callback in list(self.disconnect_callbacks):
            callback(error)


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_session_bus: needs a running session bus with xdg-desktop-portal (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_session_bus tests when running in CI."""
    if os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Requires a desktop session bus (skipped in CI)")
    for item in items:
        if "requires_session_bus" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def fake_bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
def portal_client(fake_bus: FakeBus) -> PortalClient:
    return PortalClient(fake_bus, PortalConfig())


@pytest.fixture
def launcher(portal_client: PortalClient):
    return portal_client.dynamic_launcher()
