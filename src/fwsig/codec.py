"""Fixed-width binary layouts.

A :class:`FixedLayout` is an ordered list of fields, each with a single
little-endian ``struct`` code. The layout owns byte offsets, widths and the
encode/decode pair, so the wire format of a record is defined in one place.
"""

import struct
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .errors import DecodeError


@dataclass(frozen=True)
class Field:
    """A single fixed-width field."""

    name: str
    fmt: str  # "H", "I", "16s", ...

    @property
    def size(self) -> int:
        return struct.calcsize("<" + self.fmt)

    @property
    def is_bytes(self) -> bool:
        return self.fmt.endswith("s")


class FixedLayout:
    """Little-endian fixed layout over a flat byte buffer."""

    def __init__(self, fields: Iterable[Field]) -> None:
        self.fields = tuple(fields)
        self._by_name = {f.name: f for f in self.fields}
        if len(self._by_name) != len(self.fields):
            raise ValueError("Duplicate field names in layout")

        self.format = "<" + "".join(f.fmt for f in self.fields)
        self.size = struct.calcsize(self.format)

        self._offsets = {}
        offset = 0
        for f in self.fields:
            self._offsets[f.name] = offset
            offset += f.size

    def __getitem__(self, name: str) -> Field:
        return self._by_name[name]

    def offset(self, name: str) -> int:
        """Byte offset of a field within the encoded buffer."""
        return self._offsets[name]

    def pack_field(self, name: str, value: Any) -> bytes:
        """Encode one field to its natural byte representation."""
        f = self._by_name[name]
        if f.is_bytes and len(value) != f.size:
            raise ValueError(
                f"Field {name} expects {f.size} bytes, got {len(value)}"
            )
        try:
            return struct.pack("<" + f.fmt, value)
        except struct.error as e:
            raise ValueError(f"Field {name} cannot hold {value!r}: {e}") from e

    def pack(self, values: Mapping[str, Any]) -> bytes:
        """Encode all fields in declared order."""
        return b"".join(self.pack_field(f.name, values[f.name]) for f in self.fields)

    def unpack(self, data: bytes) -> dict[str, Any]:
        """Decode exactly ``size`` bytes into a field mapping.

        Raises:
            DecodeError: If ``data`` is not exactly ``size`` bytes long
        """
        if len(data) != self.size:
            raise DecodeError(f"expected {self.size} bytes, got {len(data)}")

        values = struct.unpack(self.format, data)
        return {f.name: v for f, v in zip(self.fields, values)}
