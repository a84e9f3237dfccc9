"""Pydantic records mapped onto ``a{sv}`` option and result dictionaries."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, ClassVar, Mapping

import pydantic
from dbus_fast import Variant
from pydantic import BaseModel, ConfigDict

from xdportal.portal.codec import decode_variant
from xdportal.utils.exceptions import SignatureMismatch, Truncated


class WireRecord(BaseModel):
    """Base for option and result records.

    ``wire_signatures`` maps each wire field to its D-Bus signature. Fields left
    at ``None`` are omitted from the wire dict so the broker applies its own
    defaults.
    """

    model_config = ConfigDict(extra="forbid")

    wire_signatures: ClassVar[dict[str, str]] = {}
    wire_decoders: ClassVar[dict[str, Callable[[Any], Any]]] = {}

    def to_wire(self) -> dict[str, Variant]:
        out: dict[str, Variant] = {}
        for name, value in self.model_dump(exclude_none=True).items():
            signature = self.wire_signatures.get(name)
            if signature is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            out[name] = Variant(signature, value)
        return out

    @classmethod
    def from_wire(cls, mapping: Mapping[str, Any]) -> WireRecord:
        if not isinstance(mapping, Mapping):
            raise SignatureMismatch(f"{cls.__name__} payload is not a dict", expected="a{sv}", actual=type(mapping).__name__)
        values: dict[str, Any] = {}
        for name, signature in cls.wire_signatures.items():
            if name not in mapping:
                continue
            value = decode_variant(mapping[name], signature, what=f"{cls.__name__}.{name}")
            decoder = cls.wire_decoders.get(name)
            values[name] = decoder(value) if decoder else value
        missing = [name for name, info in cls.model_fields.items() if info.is_required() and name not in values]
        if missing:
            raise Truncated(
                f"{cls.__name__} is missing {', '.join(missing)}",
                expected=",".join(cls.wire_signatures),
                actual=",".join(sorted(mapping)),
            )
        try:
            return cls.model_validate(values)
        except pydantic.ValidationError as exc:
            raise SignatureMismatch(f"{cls.__name__} payload rejected: {exc}") from exc
