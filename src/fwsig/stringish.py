"""Fixed-width, zero-padded UTF-8 string fields."""

from dataclasses import dataclass

from .errors import ErrorKind, ManifestError


# Returned by text() when the stored prefix is not valid UTF-8
INVALID_UTF8 = "INVALID_UTF8"


@dataclass(frozen=True)
class Stringish:
    """Constant-length, zero-padded UTF-8 string.

    The width is the length of ``data``; manifests use 16 bytes for the
    application name and 24 for the application version.
    """

    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def empty(cls, size: int) -> "Stringish":
        return cls(bytes(size))

    @classmethod
    def from_str_strict(cls, value: str, size: int) -> "Stringish":
        """Encode ``value``, failing if it exceeds ``size`` bytes.

        Raises:
            ManifestError: STRING_TOO_LONG if the UTF-8 encoding is too long
        """
        encoded = value.encode("utf-8")
        if len(encoded) > size:
            raise ManifestError(
                ErrorKind.STRING_TOO_LONG,
                f"{len(encoded)} bytes exceeds {size}",
            )
        return cls(encoded.ljust(size, b"\x00"))

    @classmethod
    def from_str_lossy(cls, value: str, size: int) -> "Stringish":
        """Encode ``value``, silently truncating to ``size`` bytes.

        Truncation is byte-wise and may split a multi-byte code point, in
        which case :meth:`text` returns the ``INVALID_UTF8`` sentinel.
        """
        encoded = value.encode("utf-8")[:size]
        return cls(encoded.ljust(size, b"\x00"))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Stringish":
        return cls(bytes(data))

    def to_bytes(self) -> bytes:
        return self.data

    def text(self) -> str:
        """Text up to the first zero byte."""
        end = self.data.find(b"\x00")
        if end < 0:
            end = len(self.data)
        try:
            return self.data[:end].decode("utf-8")
        except UnicodeDecodeError:
            return INVALID_UTF8

    def __str__(self) -> str:
        return self.text()
