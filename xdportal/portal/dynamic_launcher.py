"""Client for ``org.freedesktop.portal.DynamicLauncher``.

The interface lets sandboxed applications install launchers such as web
applications from a browser or games from Steam::

    async with await PortalClient.connect() as client:
        launcher = client.dynamic_launcher()
        request = await launcher.prepare_install("", "My App", Icon.with_names("dialog-symbolic"))
        prepared = await request.response()
        await launcher.install(prepared.token, "some_file.desktop", "[Desktop Entry]\\nType=Application\\n")
        await launcher.uninstall("some_file.desktop")

Name, Icon and Exec of the desktop entry are rewritten by the portal.
"""

from __future__ import annotations

from enum import IntFlag
from typing import Any, ClassVar

from pydantic import Field, field_validator

from xdportal.portal.codec import (
    LAUNCHER_ICON_SIGNATURE,
    decode_flag_set,
    decode_launcher_icon,
    encode_icon,
    flag_mask,
)
from xdportal.portal.icon import Icon, LauncherIcon
from xdportal.portal.proxy import PortalProxy
from xdportal.portal.records import WireRecord
from xdportal.portal.request import Request
from xdportal.utils.exceptions import ValidationError


class LauncherType(IntFlag):
    """Kinds of launcher; bit N is member N on the wire."""

    APPLICATION = 1
    WEB_APPLICATION = 2


class PrepareInstallOptions(WireRecord):
    """Options for :meth:`DynamicLauncherProxy.prepare_install`."""

    wire_signatures: ClassVar[dict[str, str]] = {
        "modal": "b",
        "launcher_type": "u",
        "target": "s",
        "editable_name": "b",
        "editable_icon": "b",
    }
    wire_decoders: ClassVar[dict[str, Any]] = {
        "launcher_type": lambda bits: decode_flag_set(bits, LauncherType),
    }

    handle_token: str | None = Field(default=None, exclude=True)
    modal: bool | None = None
    launcher_type: int | None = None
    target: str | None = None  # URL, only for LauncherType.WEB_APPLICATION
    editable_name: bool | None = None
    editable_icon: bool | None = None

    @field_validator("launcher_type")
    @classmethod
    def _known_launcher_type(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value & ~flag_mask(LauncherType):
            raise ValueError(f"unknown launcher type bits: {value:#x}")
        return int(value)


class PrepareInstallResponse(WireRecord):
    """Result of a completed ``PrepareInstall`` dialog."""

    wire_signatures: ClassVar[dict[str, str]] = {"name": "s", "token": "s"}

    name: str
    token: str


def _require(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)
    return value


def _desktop_file_id(value: str) -> str:
    _require(value, "desktop_file_id")
    if not value.endswith(".desktop") or "/" in value:
        raise ValidationError(f"invalid desktop file id: {value!r}", field="desktop_file_id")
    return value


class DynamicLauncherProxy:
    """Typed wrapper of ``org.freedesktop.portal.DynamicLauncher``."""

    INTERFACE = "org.freedesktop.portal.DynamicLauncher"

    def __init__(self, proxy: PortalProxy):
        self._proxy = proxy

    async def prepare_install(
        self,
        parent_window: str,
        name: str,
        icon: Icon,
        options: PrepareInstallOptions | None = None,
    ) -> Request[PrepareInstallResponse]:
        """Show the install dialog. Returns once the broker hands back a Request handle;
        ``await request.response()`` yields the (possibly user edited) name and the
        install token.
        """
        options = options or PrepareInstallOptions()
        _require(name, "name")
        if (
            options.launcher_type is not None
            and LauncherType.WEB_APPLICATION in LauncherType(options.launcher_type)
            and not options.target
        ):
            raise ValidationError("target URL is required for web application launchers", field="target")
        return await self._proxy.request(
            "PrepareInstall",
            "ssva{sv}",
            [parent_window or "", name, encode_icon(icon)],
            options.to_wire(),
            decode=PrepareInstallResponse.from_wire,
            handle_token=options.handle_token,
        )

    async def request_install_token(self, name: str, icon: Icon) -> str:
        """Get an install token without a dialog (only granted to some host apps)."""
        _require(name, "name")
        (token,) = await self._proxy.call(
            "RequestInstallToken",
            "sva{sv}",
            [name, encode_icon(icon), {}],
            reply_signature="s",
        )
        return token

    async def install(self, token: str, desktop_file_id: str, desktop_entry: str) -> None:
        _require(token, "token")
        await self._proxy.call(
            "Install",
            "sssa{sv}",
            [token, _desktop_file_id(desktop_file_id), _require(desktop_entry, "desktop_entry"), {}],
        )

    async def uninstall(self, desktop_file_id: str) -> None:
        await self._proxy.call("Uninstall", "sa{sv}", [_desktop_file_id(desktop_file_id), {}])

    async def desktop_entry(self, desktop_file_id: str) -> str:
        (contents,) = await self._proxy.call(
            "GetDesktopEntry",
            "s",
            [_desktop_file_id(desktop_file_id)],
            reply_signature="s",
        )
        return contents

    async def icon(self, desktop_file_id: str) -> LauncherIcon:
        body = await self._proxy.call(
            "GetIcon",
            "s",
            [_desktop_file_id(desktop_file_id)],
            reply_signature=LAUNCHER_ICON_SIGNATURE,
        )
        return decode_launcher_icon(body)

    async def launch(self, desktop_file_id: str, activation_token: str | None = None) -> None:
        if activation_token is not None:
            raise ValidationError("activation tokens are not supported for Launch", field="activation_token")
        await self._proxy.call("Launch", "sa{sv}", [_desktop_file_id(desktop_file_id), {}])

    async def supported_launcher_types(self) -> LauncherType:
        bits = await self._proxy.property("SupportedLauncherTypes", "u")
        return decode_flag_set(bits, LauncherType)

    async def version(self) -> int:
        return await self._proxy.property("version", "u")
