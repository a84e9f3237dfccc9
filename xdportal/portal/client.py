"""Explicitly owned portal session: one bus connection, one request tracker."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from xdportal.bus.contracts import BusTransport
from xdportal.config.schema import PortalConfig
from xdportal.portal.proxy import PortalProxy
from xdportal.portal.tracker import RequestTracker

if TYPE_CHECKING:
    from xdportal.portal.dynamic_launcher import DynamicLauncherProxy


class PortalClient:
    """Owns a transport and the tracker shared by every proxy built from it.

    Use ``async with await PortalClient.connect() as client`` or construct it
    around an existing transport.
    """

    def __init__(self, transport: BusTransport, config: PortalConfig | None = None):
        self.transport = transport
        self.config = config or PortalConfig()
        self.tracker = RequestTracker()
        self._closed = False
        transport.add_disconnect_callback(self._on_disconnect)

    @classmethod
    async def connect(cls, config: PortalConfig | None = None) -> PortalClient:
        from xdportal.bus.dbus_fast_transport import DbusFastTransport

        cfg = config or PortalConfig()
        transport = await DbusFastTransport.connect(
            cfg.bus.bus_type,
            cfg.bus.address,
            call_timeout=cfg.call_timeout,
        )
        return cls(transport, cfg)

    @property
    def closed(self) -> bool:
        return self._closed

    def proxy(self, interface: str) -> PortalProxy:
        return PortalProxy(
            self.transport,
            self.tracker,
            interface,
            destination=self.config.destination,
            path=self.config.object_path,
            request_timeout=self.config.request_timeout,
        )

    def dynamic_launcher(self) -> DynamicLauncherProxy:
        from xdportal.portal.dynamic_launcher import DynamicLauncherProxy

        return DynamicLauncherProxy(self.proxy(DynamicLauncherProxy.INTERFACE))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        failed = self.tracker.fail_all(ConnectionAbortedError("client closed"))
        if failed:
            logger.info("Closed client with {} pending request(s)", failed)
        await self.transport.close()

    async def __aenter__(self) -> PortalClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _on_disconnect(self, error: BaseException | None) -> None:
        failed = self.tracker.fail_all(error)
        if failed:
            logger.warning("Bus disconnected; failed {} pending request(s)", failed)
