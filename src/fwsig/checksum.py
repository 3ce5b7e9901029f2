"""Content checksum value type."""

from dataclasses import dataclass

from Crypto.Hash import SHA512

from .errors import DecodeError


CHECKSUM_LEN = 32


@dataclass(frozen=True)
class Checksum:
    """SHA-512 digest truncated to the first 32 bytes."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != CHECKSUM_LEN:
            raise DecodeError(
                f"checksum must be {CHECKSUM_LEN} bytes, got {len(self.value)}"
            )

    @classmethod
    def compute(cls, data: bytes) -> "Checksum":
        """Compute the checksum of ``data``."""
        return cls(SHA512.new(data).digest()[:CHECKSUM_LEN])

    @classmethod
    def hasher(cls) -> "ChecksumHasher":
        """Start an incremental checksum for streamed content."""
        return ChecksumHasher()

    @classmethod
    def empty(cls) -> "Checksum":
        return cls(bytes(CHECKSUM_LEN))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Checksum":
        return cls(bytes(data))

    def to_bytes(self) -> bytes:
        return self.value

    def hex(self) -> str:
        return self.value.hex()

    def __str__(self) -> str:
        return self.hex()


class ChecksumHasher:
    """Incremental :class:`Checksum` computation.

    Lets callers hash content while streaming it to storage, then hand the
    result to :meth:`Manifest.check_precomputed`.
    """

    def __init__(self) -> None:
        self._hash = SHA512.new()
        self.length = 0

    def update(self, chunk: bytes) -> "ChecksumHasher":
        self._hash.update(chunk)
        self.length += len(chunk)
        return self

    def finalize(self) -> Checksum:
        return Checksum(self._hash.digest()[:CHECKSUM_LEN])
