"""Tests for the portal wire codec."""

import pytest
from dbus_fast import Variant

from xdportal.bus.protocol import MethodReply
from xdportal.portal.codec import (
    decode_enum,
    decode_flag_set,
    decode_icon,
    decode_launcher_icon,
    decode_reply,
    decode_variant,
    encode_call,
    encode_flag_set,
    encode_icon,
    encode_launcher_icon,
    split_signature,
)
from xdportal.portal.dynamic_launcher import LauncherType
from xdportal.portal.icon import Icon, IconKind, IconType, LauncherIcon
from xdportal.portal.request import ResponseStatus
from xdportal.utils.exceptions import SignatureMismatch, Truncated, UnknownVariant, ValidationError


def test_split_signature():
    assert split_signature("") == []
    assert split_signature("sa{sv}") == ["s", "a{sv}"]
    assert split_signature("ssva{sv}") == ["s", "s", "v", "a{sv}"]
    assert split_signature("vsu") == ["v", "s", "u"]


def test_encode_call_checks_arguments():
    call = encode_call(
        destination="org.example",
        path="/org/example",
        interface="org.example.Iface",
        member="Uninstall",
        signature="sa{sv}",
        args=["app.desktop", {}],
    )
    assert call.member == "Uninstall"
    assert call.body == ["app.desktop", {}]

    with pytest.raises(ValidationError):
        encode_call(
            destination="org.example",
            path="/org/example",
            interface="org.example.Iface",
            member="Uninstall",
            signature="sa{sv}",
            args=[42, {}],
        )


def test_decode_reply_exact_shape():
    assert decode_reply(MethodReply("o", ["/a/b"]), "o") == ["/a/b"]
    assert decode_reply(MethodReply(), "") == []


def test_decode_reply_truncated():
    with pytest.raises(Truncated) as exc_info:
        decode_reply(MethodReply("v", [Variant("s", "x")]), "vsu")
    assert exc_info.value.code == "TRUNCATED"
    assert exc_info.value.details["expected"] == "vsu"


def test_decode_reply_signature_mismatch():
    with pytest.raises(SignatureMismatch):
        decode_reply(MethodReply("s", ["x"]), "o")
    with pytest.raises(SignatureMismatch):
        decode_reply(MethodReply("us", [1, "x"]), "ua{sv}")


def test_decode_variant():
    assert decode_variant(Variant("u", 3), "u") == 3
    with pytest.raises(SignatureMismatch):
        decode_variant(Variant("s", "3"), "u")
    with pytest.raises(SignatureMismatch):
        decode_variant(3, "u")


def test_decode_enum_unknown_ordinal():
    assert decode_enum(1, ResponseStatus) is ResponseStatus.CANCELLED
    with pytest.raises(UnknownVariant):
        decode_enum(7, ResponseStatus)


def test_flag_sets():
    assert encode_flag_set([LauncherType.APPLICATION, LauncherType.WEB_APPLICATION]) == 3
    assert encode_flag_set(LauncherType.WEB_APPLICATION) == 2
    assert encode_flag_set([]) == 0
    assert decode_flag_set(1, LauncherType) == LauncherType.APPLICATION
    assert decode_flag_set(0, LauncherType) == LauncherType(0)
    both = decode_flag_set(3, LauncherType)
    assert LauncherType.APPLICATION in both and LauncherType.WEB_APPLICATION in both


def test_decode_flag_set_rejects_unknown_bits():
    with pytest.raises(UnknownVariant):
        decode_flag_set(4, LauncherType)
    with pytest.raises(SignatureMismatch):
        decode_flag_set("1", LauncherType)


@pytest.mark.parametrize(
    "icon",
    [
        Icon.from_bytes(b"\x89PNG\r\n"),
        Icon.with_names("dialog-symbolic", "dialog"),
        Icon.from_uri("file:///usr/share/icons/app.png"),
    ],
    ids=["bytes", "themed", "file"],
)
def test_icon_round_trip(icon):
    wire = encode_icon(icon)
    assert wire.signature == "(sv)"
    assert wire.value[0] == icon.kind.value
    assert decode_icon(wire) == icon


def test_decode_icon_unknown_tag():
    with pytest.raises(UnknownVariant):
        decode_icon(Variant("(sv)", ["bogus", Variant("s", "x")]))


def test_decode_icon_payload_signature_mismatch():
    with pytest.raises(SignatureMismatch):
        decode_icon(Variant("(sv)", ["themed", Variant("s", "dialog")]))


def test_decode_launcher_icon():
    body = [Variant("(sv)", ["bytes", Variant("ay", b"\x89PNG")]), "png", 64]
    launcher_icon = decode_launcher_icon(body)
    assert launcher_icon.icon.kind is IconKind.BYTES
    assert launcher_icon.icon.as_bytes == b"\x89PNG"
    assert launcher_icon.icon_type is IconType.PNG
    assert launcher_icon.size == 64


def test_decode_launcher_icon_unwraps_nested_variant():
    inner = Variant("(sv)", ["themed", Variant("as", ["app"])])
    launcher_icon = decode_launcher_icon([Variant("v", inner), "svg", 0])
    assert launcher_icon.icon.names == ("app",)
    assert launcher_icon.icon_type is IconType.SVG


def test_decode_launcher_icon_errors():
    icon = Variant("(sv)", ["bytes", Variant("ay", b"x")])
    with pytest.raises(Truncated):
        decode_launcher_icon([icon, "png"])
    with pytest.raises(UnknownVariant):
        decode_launcher_icon([icon, "bogus", 64])
    with pytest.raises(SignatureMismatch):
        decode_launcher_icon([icon, "png", -1])


def test_encode_launcher_icon():
    launcher_icon = LauncherIcon(Icon.from_bytes(b"x"), IconType.JPEG, 32)
    value, tag, size = encode_launcher_icon(launcher_icon)
    assert tag == "jpeg"
    assert size == 32
    assert decode_launcher_icon([value, tag, size]) == launcher_icon
