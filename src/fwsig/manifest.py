"""The signed firmware manifest.

A manifest binds an application binary and a metadata blob to a single
Ed25519 signature. It always encodes to ``MANIFEST_LEN`` bytes:

    [2 bytes]  version
    [2 bytes]  flags
    [16 bytes] app_name (zero-padded UTF-8)
    [24 bytes] app_version (zero-padded UTF-8)
    [4 bytes]  app_len
    [32 bytes] app_csum
    [2 bytes]  meta_kind
    [2 bytes]  meta_len
    [2 bytes]  reserved (zero)
    [32 bytes] meta_csum
    [32 bytes] key
    [64 bytes] sig

All integers are little-endian. The signature covers a SHA-512 digest of
every field before ``sig``, which is the same as hashing the first
``SIGNED_LEN`` bytes of the encoding.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Iterable

from Crypto.Hash import SHA512

from .checksum import CHECKSUM_LEN, Checksum
from .codec import Field, FixedLayout
from .errors import DecodeError, ErrorKind, ManifestError
from .keys import PUBLIC_KEY_LEN, SIGNATURE_LEN, PrivateKey, PublicKey, Signature
from .stringish import Stringish


log = logging.getLogger(__name__)

# Manifest version identifier
MANIFEST_VERSION = 0x0001

APP_NAME_LEN = 16
APP_VERSION_LEN = 24

MANIFEST_LAYOUT = FixedLayout([
    Field("version", "H"),
    Field("flags", "H"),
    Field("app_name", f"{APP_NAME_LEN}s"),
    Field("app_version", f"{APP_VERSION_LEN}s"),
    Field("app_len", "I"),
    Field("app_csum", f"{CHECKSUM_LEN}s"),
    Field("meta_kind", "H"),
    Field("meta_len", "H"),
    Field("reserved", "H"),
    Field("meta_csum", f"{CHECKSUM_LEN}s"),
    Field("key", f"{PUBLIC_KEY_LEN}s"),
    Field("sig", f"{SIGNATURE_LEN}s"),
])

# Encoded manifest length
MANIFEST_LEN = MANIFEST_LAYOUT.size

# Length of the signed prefix (everything before the signature)
SIGNED_LEN = MANIFEST_LAYOUT.offset("sig")


class MetadataFormat(Enum):
    """Metadata encoding kinds."""

    BINARY = 0x0000
    JSON = 0x0001
    CBOR = 0x0002
    OTHER = 0xFFFF

    @classmethod
    def from_string(cls, value: str) -> "MetadataFormat":
        """Convert string to MetadataFormat."""
        mapping = {
            "bin": cls.BINARY,
            "binary": cls.BINARY,
            "json": cls.JSON,
            "cbor": cls.CBOR,
            "other": cls.OTHER,
        }
        try:
            return mapping[value.lower()]
        except KeyError:
            raise ValueError(f"Unknown metadata format: {value}") from None


class Flags(IntFlag):
    """Manifest information flags."""

    # Signing key was generated for this manifest only and must not be pinned
    TRANSIENT_KEY = 1 << 0


@dataclass
class Manifest:
    """Firmware manifest linking app and metadata checksums to a signature."""

    version: int = MANIFEST_VERSION
    flags: Flags = Flags(0)

    app_name: Stringish = field(default_factory=lambda: Stringish.empty(APP_NAME_LEN))
    app_version: Stringish = field(default_factory=lambda: Stringish.empty(APP_VERSION_LEN))

    app_len: int = 0
    app_csum: Checksum = field(default_factory=Checksum.empty)

    meta_kind: MetadataFormat = MetadataFormat.BINARY
    meta_len: int = 0
    reserved: int = 0
    meta_csum: Checksum = field(default_factory=Checksum.empty)

    # For released firmware the allowed keys should be pinned by the loader;
    # transient keys only make the manifest self-consistent.
    key: PublicKey = field(default_factory=PublicKey.empty)
    sig: Signature = field(default_factory=Signature.empty)

    @property
    def transient_key(self) -> bool:
        """True if the manifest was signed with an ephemeral key."""
        return bool(self.flags & Flags.TRANSIENT_KEY)

    @transient_key.setter
    def transient_key(self, value: bool) -> None:
        bits = int(self.flags)
        if value:
            bits |= Flags.TRANSIENT_KEY.value
        else:
            bits &= 0xFFFF ^ Flags.TRANSIENT_KEY.value
        self.flags = Flags(bits)

    @property
    def is_signed(self) -> bool:
        return self.sig != Signature.empty()

    @property
    def is_supported_version(self) -> bool:
        return self.version == MANIFEST_VERSION

    def digest(self) -> SHA512.SHA512Hash:
        """SHA-512 over every field except the signature, in layout order.

        Equivalent to hashing the first ``SIGNED_LEN`` bytes of
        :meth:`to_bytes`, without encoding the manifest first.
        """
        h = SHA512.new()

        h.update(self.version.to_bytes(2, "little"))
        h.update(int(self.flags).to_bytes(2, "little"))

        h.update(self.app_name.to_bytes())
        h.update(self.app_version.to_bytes())

        h.update(self.app_len.to_bytes(4, "little"))
        h.update(self.app_csum.to_bytes())

        h.update(self.meta_kind.value.to_bytes(2, "little"))
        h.update(self.meta_len.to_bytes(2, "little"))
        h.update(self.reserved.to_bytes(2, "little"))
        h.update(self.meta_csum.to_bytes())

        h.update(self.key.to_bytes())

        return h

    def sign(self, private_key: PrivateKey, transient: bool = False) -> None:
        """Sign the manifest in place.

        Writes the derived public key and the transient flag, then signs the
        manifest digest with Ed25519ph. A manifest can only be signed once.

        Args:
            private_key: Signing key
            transient: Whether ``private_key`` was generated for this
                manifest only

        Raises:
            ManifestError: SIGNING_FAILED if the manifest is already signed
                or the signature scheme fails
        """
        if self.is_signed:
            raise ManifestError(ErrorKind.SIGNING_FAILED, "manifest is already signed")

        self.key = PublicKey.from_private(private_key)
        self.transient_key = transient
        self.sig = private_key.sign_prehashed(self.digest())

        log.debug("Signed manifest with %s key %s",
                  "transient" if transient else "provided", self.key.hex())

    def verify(self, allowed_keys: Iterable[PublicKey]) -> None:
        """Verify the manifest was signed by one of ``allowed_keys``.

        This is the trust phase; run :meth:`check` as well to confirm the
        payloads match.

        Raises:
            ManifestError: NO_MATCHING_KEY, INVALID_SIGNATURE or
                VERIFICATION_FAILED
        """
        signing_key = next((k for k in allowed_keys if k == self.key), None)
        if signing_key is None:
            log.warning("Manifest key %s is not in the allowed key list", self.key.hex())
            raise ManifestError(ErrorKind.NO_MATCHING_KEY, self.key.hex())

        try:
            signing_key.verify_prehashed(self.digest(), self.sig)
        except ManifestError as e:
            if e.kind != ErrorKind.INVALID_PUBLIC_KEY:
                raise
            raise ManifestError(ErrorKind.INVALID_SIGNATURE, str(e)) from e

    def check_sig(self) -> None:
        """Check the signature against the embedded key.

        Self-consistency only; does not establish that the key is trusted.

        Raises:
            ManifestError: INVALID_SIGNATURE
        """
        try:
            self.key.verify_prehashed(self.digest(), self.sig)
        except ManifestError as e:
            raise ManifestError(ErrorKind.INVALID_SIGNATURE, str(e)) from e

    def check_app(self, app_len: int, app_csum: Checksum) -> None:
        """Check application length and checksum against the manifest."""
        self._check_len(ErrorKind.APP_LENGTH_MISMATCH, self.app_len, app_len)
        self._check_csum(ErrorKind.APP_CHECKSUM_MISMATCH, self.app_csum, app_csum)

    def check_meta(self, meta_len: int, meta_csum: Checksum) -> None:
        """Check metadata length and checksum against the manifest."""
        self._check_len(ErrorKind.META_LENGTH_MISMATCH, self.meta_len, meta_len)
        self._check_csum(ErrorKind.META_CHECKSUM_MISMATCH, self.meta_csum, meta_csum)

    def check(self, app_bytes: bytes, meta_bytes: bytes) -> None:
        """Integrity check of the manifest and both payloads.

        Checks the signature, then the application, then the metadata,
        stopping at the first failure. Lengths are compared before any
        payload is hashed.

        Raises:
            ManifestError: INVALID_SIGNATURE, or one of the app/meta
                length or checksum mismatch kinds
        """
        self.check_sig()

        self._check_len(ErrorKind.APP_LENGTH_MISMATCH, self.app_len, len(app_bytes))
        self._check_csum(ErrorKind.APP_CHECKSUM_MISMATCH, self.app_csum,
                         Checksum.compute(app_bytes))

        self._check_len(ErrorKind.META_LENGTH_MISMATCH, self.meta_len, len(meta_bytes))
        self._check_csum(ErrorKind.META_CHECKSUM_MISMATCH, self.meta_csum,
                         Checksum.compute(meta_bytes))

    def check_precomputed(
        self,
        app_checksum: Checksum,
        app_len: int,
        meta_checksum: Checksum,
        meta_len: int,
    ) -> None:
        """Same as :meth:`check`, for callers that hashed the payloads while streaming."""
        self.check_sig()
        self.check_app(app_len, app_checksum)
        self.check_meta(meta_len, meta_checksum)

    @staticmethod
    def _check_len(kind: ErrorKind, expected: int, actual: int) -> None:
        if expected != actual:
            log.debug("%s: expected %d bytes, got %d", kind.value, expected, actual)
            raise ManifestError(kind, f"expected {expected} bytes, got {actual}")

    @staticmethod
    def _check_csum(kind: ErrorKind, expected: Checksum, actual: Checksum) -> None:
        if expected != actual:
            log.debug("%s: expected %s, got %s", kind.value, expected, actual)
            raise ManifestError(kind)

    def to_bytes(self) -> bytes:
        """Encode to exactly ``MANIFEST_LEN`` bytes."""
        return MANIFEST_LAYOUT.pack({
            "version": self.version,
            "flags": int(self.flags),
            "app_name": self.app_name.to_bytes(),
            "app_version": self.app_version.to_bytes(),
            "app_len": self.app_len,
            "app_csum": self.app_csum.to_bytes(),
            "meta_kind": self.meta_kind.value,
            "meta_len": self.meta_len,
            "reserved": self.reserved,
            "meta_csum": self.meta_csum.to_bytes(),
            "key": self.key.to_bytes(),
            "sig": self.sig.to_bytes(),
        })

    @classmethod
    def from_bytes(cls, data: bytes) -> "Manifest":
        """Decode a manifest from exactly ``MANIFEST_LEN`` bytes.

        The version field is not checked here; see ``is_supported_version``.

        Raises:
            DecodeError: If the length or metadata kind is invalid
        """
        values = MANIFEST_LAYOUT.unpack(bytes(data))

        try:
            meta_kind = MetadataFormat(values["meta_kind"])
        except ValueError:
            raise DecodeError(f"unknown metadata kind 0x{values['meta_kind']:04x}") from None

        return cls(
            version=values["version"],
            flags=Flags(values["flags"]),
            app_name=Stringish.from_bytes(values["app_name"]),
            app_version=Stringish.from_bytes(values["app_version"]),
            app_len=values["app_len"],
            app_csum=Checksum.from_bytes(values["app_csum"]),
            meta_kind=meta_kind,
            meta_len=values["meta_len"],
            reserved=values["reserved"],
            meta_csum=Checksum.from_bytes(values["meta_csum"]),
            key=PublicKey(values["key"]),
            sig=Signature(values["sig"]),
        )
