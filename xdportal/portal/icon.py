"""Icon values exchanged with the portal (serialized GIcon ``(sv)`` form)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class IconKind(str, Enum):
    """GIcon serialization tags."""

    BYTES = "bytes"
    THEMED = "themed"
    FILE = "file"


class IconType(str, Enum):
    """Image format of an icon returned by the portal."""

    PNG = "png"
    JPEG = "jpeg"
    SVG = "svg"


@dataclass(frozen=True, slots=True)
class Icon:
    """Tagged icon value: raw bytes, themed names, or a file URI."""

    kind: IconKind
    data: bytes | tuple[str, ...] | str

    @classmethod
    def from_bytes(cls, data: bytes) -> Icon:
        return cls(IconKind.BYTES, bytes(data))

    @classmethod
    def with_names(cls, *names: str) -> Icon:
        return cls(IconKind.THEMED, tuple(names))

    @classmethod
    def from_uri(cls, uri: str) -> Icon:
        return cls(IconKind.FILE, uri)

    @classmethod
    def from_path(cls, path: str | Path) -> Icon:
        return cls(IconKind.FILE, Path(path).expanduser().resolve().as_uri())

    @property
    def as_bytes(self) -> bytes | None:
        return self.data if self.kind is IconKind.BYTES else None  # type: ignore[return-value]

    @property
    def names(self) -> tuple[str, ...]:
        return self.data if self.kind is IconKind.THEMED else ()  # type: ignore[return-value]

    @property
    def uri(self) -> str | None:
        return self.data if self.kind is IconKind.FILE else None  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class LauncherIcon:
    """Icon of an installed launcher as returned by ``GetIcon`` (``vsu``)."""

    icon: Icon
    icon_type: IconType
    size: int
