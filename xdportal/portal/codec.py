"""Typed encode/decode helpers for portal method calls and replies.

Every decoder takes the expected wire shape and fails loudly:
``SignatureMismatch`` when the shape differs, ``Truncated`` when fewer values
than expected are present, ``UnknownVariant`` when an enum ordinal or tag has
no mapped case.
"""

from __future__ import annotations

from enum import Enum, Flag
from functools import reduce
from typing import Any, Iterable, Sequence, TypeVar

from dbus_fast import Variant
from dbus_fast.errors import InvalidSignatureError, SignatureBodyMismatchError
from dbus_fast.signature import SignatureTree

from xdportal.bus.protocol import MethodCall, MethodReply
from xdportal.portal.icon import Icon, IconKind, IconType, LauncherIcon
from xdportal.utils.exceptions import SignatureMismatch, Truncated, UnknownVariant, ValidationError

E = TypeVar("E", bound=Enum)
F = TypeVar("F", bound=Flag)

ICON_SIGNATURE = "(sv)"
LAUNCHER_ICON_SIGNATURE = "vsu"

_ICON_PAYLOAD_SIGNATURES: dict[IconKind, str] = {
    IconKind.BYTES: "ay",
    IconKind.THEMED: "as",
    IconKind.FILE: "s",
}


def split_signature(signature: str) -> list[str]:
    """Split a signature into its complete types: ``"sa{sv}"`` -> ``["s", "a{sv}"]``."""
    if not signature:
        return []
    try:
        return [t.signature for t in SignatureTree(signature).types]
    except InvalidSignatureError as exc:
        raise SignatureMismatch(f"invalid signature '{signature}'", actual=signature) from exc


def encode_call(
    *,
    destination: str,
    path: str,
    interface: str,
    member: str,
    signature: str = "",
    args: Sequence[Any] = (),
) -> MethodCall:
    """Build a call frame after checking ``args`` against ``signature``."""
    body = list(args)
    try:
        SignatureTree(signature).verify(body)
    except (SignatureBodyMismatchError, InvalidSignatureError) as exc:
        raise ValidationError(f"{member} arguments do not match '{signature}': {exc}") from exc
    return MethodCall(
        destination=destination,
        path=path,
        interface=interface,
        member=member,
        signature=signature,
        body=body,
    )


def decode_reply(reply: MethodReply, expected_signature: str) -> list[Any]:
    """Return the reply body when it has exactly the expected shape."""
    expected = split_signature(expected_signature)
    actual = split_signature(reply.signature)
    if actual == expected and len(reply.body) == len(expected):
        return list(reply.body)
    if len(actual) < len(expected) and expected[: len(actual)] == actual:
        raise Truncated(
            f"expected {len(expected)} values, got {len(actual)}",
            expected=expected_signature,
            actual=reply.signature,
        )
    if actual == expected:
        raise Truncated(
            f"expected {len(expected)} values, got {len(reply.body)}",
            expected=expected_signature,
            actual=reply.signature,
        )
    raise SignatureMismatch(
        f"expected '{expected_signature}', got '{reply.signature}'",
        expected=expected_signature,
        actual=reply.signature,
    )


def decode_variant(value: Any, signature: str, *, what: str = "value") -> Any:
    """Unwrap a variant that must carry exactly ``signature``."""
    if not isinstance(value, Variant):
        raise SignatureMismatch(f"{what} is not a variant", expected=signature, actual=type(value).__name__)
    if value.signature != signature:
        raise SignatureMismatch(
            f"{what} has signature '{value.signature}', expected '{signature}'",
            expected=signature,
            actual=value.signature,
        )
    return value.value


def decode_enum(value: Any, enum_cls: type[E]) -> E:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise UnknownVariant(
            f"{value!r} is not a known {enum_cls.__name__}",
            expected="|".join(str(m.value) for m in enum_cls),
            actual=repr(value),
        ) from exc


def flag_mask(flag_cls: type[Flag]) -> int:
    return reduce(lambda acc, member: acc | int(member.value), flag_cls, 0)


def encode_flag_set(flags: Flag | Iterable[Flag] | int) -> int:
    """Pack flags into the ``u`` the bus expects; bit N is member N."""
    if isinstance(flags, (Flag, int)):
        return int(flags.value if isinstance(flags, Flag) else flags)
    return reduce(lambda acc, member: acc | int(member.value), flags, 0)


def decode_flag_set(bits: Any, flag_cls: type[F]) -> F:
    if isinstance(bits, bool) or not isinstance(bits, int):
        raise SignatureMismatch(f"{flag_cls.__name__} must be an integer", expected="u", actual=type(bits).__name__)
    unknown = bits & ~flag_mask(flag_cls)
    if unknown:
        raise UnknownVariant(
            f"unknown {flag_cls.__name__} bits 0x{unknown:x}",
            expected=f"0x{flag_mask(flag_cls):x}",
            actual=f"0x{bits:x}",
        )
    return flag_cls(bits)


def encode_icon(icon: Icon) -> Variant:
    """Serialize an icon into the ``(sv)`` form sent inside a ``v`` argument."""
    payload: Any = list(icon.data) if icon.kind is IconKind.THEMED else icon.data
    return Variant(ICON_SIGNATURE, [icon.kind.value, Variant(_ICON_PAYLOAD_SIGNATURES[icon.kind], payload)])


def decode_icon(value: Any) -> Icon:
    tag, payload = decode_variant(value, ICON_SIGNATURE, what="icon")
    kind = decode_enum(tag, IconKind)
    data = decode_variant(payload, _ICON_PAYLOAD_SIGNATURES[kind], what=f"{kind.value} icon")
    if kind is IconKind.THEMED:
        return Icon(kind, tuple(data))
    if kind is IconKind.BYTES:
        return Icon(kind, bytes(data))
    return Icon(kind, data)


def encode_launcher_icon(launcher_icon: LauncherIcon) -> list[Any]:
    return [
        encode_icon(launcher_icon.icon),
        launcher_icon.icon_type.value,
        int(launcher_icon.size),
    ]


def decode_launcher_icon(body: Sequence[Any]) -> LauncherIcon:
    """Decode the ``(generic value, format tag, size)`` triple from ``GetIcon``."""
    if len(body) < 3:
        raise Truncated(f"icon reply has {len(body)} of 3 values", expected=LAUNCHER_ICON_SIGNATURE)
    value, tag, size = body[0], body[1], body[2]
    # The out argument is a ``v`` holding the serialized icon; unwrap one level if present.
    if isinstance(value, Variant) and value.signature == "v":
        value = value.value
    if not isinstance(tag, str):
        raise SignatureMismatch("icon format is not a string", expected="s", actual=type(tag).__name__)
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise SignatureMismatch("icon size is not an unsigned integer", expected="u", actual=repr(size))
    icon_type = decode_enum(tag, IconType)
    return LauncherIcon(icon=decode_icon(value), icon_type=icon_type, size=size)
