"""Ed25519 key and signature value types.

Thin fixed-size wrappers over raw key material with hex conversion. The
cryptographic operations use pycryptodome's EdDSA implementation in RFC 8032
mode; manifests are signed with the prehashed variant (Ed25519ph) over a
SHA-512 hash object.
"""

import binascii
import logging
from dataclasses import dataclass, field
from typing import Callable

from Crypto.Hash import SHA512
from Crypto.PublicKey import ECC
from Crypto.Signature import eddsa

from .errors import ErrorKind, ManifestError


log = logging.getLogger(__name__)

PRIVATE_KEY_LEN = 32
PUBLIC_KEY_LEN = 32
SIGNATURE_LEN = 64

# Callable returning ``n`` cryptographically secure random bytes,
# e.g. ``Crypto.Random.get_random_bytes``
RandFunc = Callable[[int], bytes]


def _decode_hex(value: str, size: int) -> bytes:
    """Decode a hex string of exactly ``size`` bytes."""
    if len(value) != size * 2:
        raise ManifestError(
            ErrorKind.INVALID_HEX,
            f"expected {size * 2} hex characters, got {len(value)}",
        )
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, ValueError) as e:
        raise ManifestError(ErrorKind.INVALID_HEX, str(e)) from e


@dataclass(frozen=True)
class PrivateKey:
    """Ed25519 private key (the 32-byte RFC 8032 seed)."""

    seed: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.seed) != PRIVATE_KEY_LEN:
            raise ManifestError(
                ErrorKind.INVALID_PRIVATE_KEY,
                f"expected {PRIVATE_KEY_LEN} bytes, got {len(self.seed)}",
            )

    @classmethod
    def generate(cls, randfunc: RandFunc) -> "PrivateKey":
        """Generate a new private key.

        Args:
            randfunc: Cryptographically secure random source. There is
                deliberately no default.

        Returns:
            Fresh PrivateKey
        """
        # RFC 8032 5.1.5: the private key is 32 random bytes
        return cls(randfunc(PRIVATE_KEY_LEN))

    @classmethod
    def from_bytes(cls, data: bytes) -> "PrivateKey":
        return cls(bytes(data))

    @classmethod
    def from_hex(cls, value: str) -> "PrivateKey":
        """Parse a 64-character hex private key."""
        return cls(_decode_hex(value, PRIVATE_KEY_LEN))

    def to_bytes(self) -> bytes:
        return self.seed

    def hex(self) -> str:
        return self.seed.hex()

    def public_key(self) -> "PublicKey":
        return PublicKey.from_private(self)

    def _ecc_key(self) -> ECC.EccKey:
        try:
            return eddsa.import_private_key(self.seed)
        except ValueError as e:
            raise ManifestError(ErrorKind.INVALID_PRIVATE_KEY, str(e)) from e

    def sign_prehashed(self, digest: SHA512.SHA512Hash) -> "Signature":
        """Produce an Ed25519ph signature over a SHA-512 hash object.

        Raises:
            ManifestError: SIGNING_FAILED if the signature scheme rejects
                the digest
        """
        signer = eddsa.new(self._ecc_key(), "rfc8032")
        try:
            return Signature(signer.sign(digest))
        except (TypeError, ValueError) as e:
            log.error("Ed25519ph signing failed: %s", e)
            raise ManifestError(ErrorKind.SIGNING_FAILED, str(e)) from e


@dataclass(frozen=True)
class PublicKey:
    """Ed25519 public key (32-byte compressed point).

    The constructor only checks the width, so manifests carrying arbitrary
    key bytes can still be decoded. Use :meth:`from_bytes` or
    :meth:`from_hex` for external key material, which also validate the
    point.
    """

    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) != PUBLIC_KEY_LEN:
            raise ManifestError(
                ErrorKind.INVALID_PUBLIC_KEY,
                f"expected {PUBLIC_KEY_LEN} bytes, got {len(self.data)}",
            )

    @classmethod
    def empty(cls) -> "PublicKey":
        return cls(bytes(PUBLIC_KEY_LEN))

    @classmethod
    def from_private(cls, private_key: PrivateKey) -> "PublicKey":
        """Derive the public key for ``private_key``."""
        ecc_key = private_key._ecc_key()
        return cls(ecc_key.public_key().export_key(format="raw"))

    @classmethod
    def from_bytes(cls, data: bytes) -> "PublicKey":
        """Wrap raw bytes, rejecting anything that is not a curve point."""
        key = cls(bytes(data))
        key.to_ecc()
        return key

    @classmethod
    def from_hex(cls, value: str) -> "PublicKey":
        """Parse and validate a 64-character hex public key."""
        return cls.from_bytes(_decode_hex(value, PUBLIC_KEY_LEN))

    def to_bytes(self) -> bytes:
        return self.data

    def hex(self) -> str:
        return self.data.hex()

    def __str__(self) -> str:
        return self.hex()

    def to_ecc(self) -> ECC.EccKey:
        try:
            return eddsa.import_public_key(self.data)
        except ValueError as e:
            raise ManifestError(ErrorKind.INVALID_PUBLIC_KEY, str(e)) from e

    def verify_prehashed(self, digest: SHA512.SHA512Hash, signature: "Signature") -> None:
        """Check an Ed25519ph signature over a SHA-512 hash object.

        Raises:
            ManifestError: INVALID_SIGNATURE if the signature is malformed,
                VERIFICATION_FAILED if it does not verify
        """
        if not signature.is_well_formed():
            raise ManifestError(ErrorKind.INVALID_SIGNATURE)

        verifier = eddsa.new(self.to_ecc(), "rfc8032")
        try:
            verifier.verify(digest, signature.to_bytes())
        except ValueError as e:
            raise ManifestError(ErrorKind.VERIFICATION_FAILED) from e


@dataclass(frozen=True)
class Signature:
    """Ed25519 signature (R || S, 64 bytes)."""

    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) != SIGNATURE_LEN:
            raise ManifestError(
                ErrorKind.INVALID_SIGNATURE,
                f"expected {SIGNATURE_LEN} bytes, got {len(self.data)}",
            )

    @classmethod
    def empty(cls) -> "Signature":
        return cls(bytes(SIGNATURE_LEN))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Signature":
        return cls(bytes(data))

    @classmethod
    def from_hex(cls, value: str) -> "Signature":
        return cls(_decode_hex(value, SIGNATURE_LEN))

    def to_bytes(self) -> bytes:
        return self.data

    def hex(self) -> str:
        return self.data.hex()

    def __str__(self) -> str:
        return self.hex()

    def is_well_formed(self) -> bool:
        """Structural check on the S half: its top three bits must be clear."""
        return self.data[-1] & 0xE0 == 0
