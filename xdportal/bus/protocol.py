"""Bus frame models shared by transports and the portal codec."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class MethodCall:
    """A method call frame, already checked against its signature."""

    destination: str
    path: str
    interface: str
    member: str
    signature: str = ""
    body: list[Any] = field(default_factory=list)


@dataclass(slots=True)
class MethodReply:
    """A successful method return; error replies are raised as TransportError."""

    signature: str = ""
    body: list[Any] = field(default_factory=list)


@dataclass(slots=True)
class SignalMessage:
    """A signal as delivered to a subscriber."""

    path: str
    interface: str
    member: str
    signature: str = ""
    body: list[Any] = field(default_factory=list)
    sender: str | None = None


@dataclass(slots=True, frozen=True)
class SignalMatch:
    """Match rule for one signal subscription. Unset fields match anything.

    ``sender`` is only sent to the bus daemon, which resolves well-known names;
    local matching ignores it.
    """

    interface: str
    member: str
    path: str | None = None
    sender: str | None = None

    def matches(self, signal: SignalMessage) -> bool:
        if signal.interface != self.interface or signal.member != self.member:
            return False
        if self.path is not None and signal.path != self.path:
            return False
        return True

    def rule(self) -> str:
        """Render as a D-Bus AddMatch rule string."""
        parts = ["type='signal'", f"interface='{self.interface}'", f"member='{self.member}'"]
        if self.path is not None:
            parts.append(f"path='{self.path}'")
        if self.sender is not None:
            parts.append(f"sender='{self.sender}'")
        return ",".join(parts)
