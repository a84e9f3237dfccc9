"""Bus transport boundary: frame models, the transport contract and the dbus-fast transport."""

from xdportal.bus.contracts import BusTransport
from xdportal.bus.protocol import MethodCall, MethodReply, SignalMatch, SignalMessage

__all__ = ["BusTransport", "MethodCall", "MethodReply", "SignalMatch", "SignalMessage"]
