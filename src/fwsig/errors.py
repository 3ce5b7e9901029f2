"""Error types for fwsig manifests."""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Manifest error kinds."""

    # Build errors
    MISSING_APP_CHECKSUM = "missing_app_checksum"
    MISSING_META_CHECKSUM = "missing_meta_checksum"

    # Key / encoding errors
    INVALID_HEX = "invalid_hex"
    INVALID_PUBLIC_KEY = "invalid_public_key"
    INVALID_PRIVATE_KEY = "invalid_private_key"
    STRING_TOO_LONG = "string_too_long"
    INVALID_ENCODING = "invalid_encoding"

    # Signing
    SIGNING_FAILED = "signing_failed"

    # Trust
    NO_MATCHING_KEY = "no_matching_key"
    INVALID_SIGNATURE = "invalid_signature"
    VERIFICATION_FAILED = "verification_failed"

    # Integrity
    APP_LENGTH_MISMATCH = "app_length_mismatch"
    APP_CHECKSUM_MISMATCH = "app_checksum_mismatch"
    META_LENGTH_MISMATCH = "meta_length_mismatch"
    META_CHECKSUM_MISMATCH = "meta_checksum_mismatch"

    @property
    def is_integrity(self) -> bool:
        """Payload does not match the manifest."""
        return self in _INTEGRITY_KINDS

    @property
    def is_trust(self) -> bool:
        """Manifest is intact but its signer cannot be trusted."""
        return self in _TRUST_KINDS


_INTEGRITY_KINDS = frozenset({
    ErrorKind.APP_LENGTH_MISMATCH,
    ErrorKind.APP_CHECKSUM_MISMATCH,
    ErrorKind.META_LENGTH_MISMATCH,
    ErrorKind.META_CHECKSUM_MISMATCH,
})

_TRUST_KINDS = frozenset({
    ErrorKind.NO_MATCHING_KEY,
    ErrorKind.INVALID_SIGNATURE,
    ErrorKind.VERIFICATION_FAILED,
})

MESSAGES = {
    ErrorKind.MISSING_APP_CHECKSUM: "Missing application checksum",
    ErrorKind.MISSING_META_CHECKSUM: "Missing metadata checksum",
    ErrorKind.INVALID_HEX: "Hex encode/decode failed",
    ErrorKind.INVALID_PUBLIC_KEY: "Invalid public key",
    ErrorKind.INVALID_PRIVATE_KEY: "Invalid private key",
    ErrorKind.STRING_TOO_LONG: "String exceeds fixed field length",
    ErrorKind.INVALID_ENCODING: "Invalid manifest encoding",
    ErrorKind.SIGNING_FAILED: "Signing manifest failed",
    ErrorKind.NO_MATCHING_KEY: "No matching key for manifest verification",
    ErrorKind.INVALID_SIGNATURE: "Invalid signature",
    ErrorKind.VERIFICATION_FAILED: "Signature verification failed",
    ErrorKind.APP_LENGTH_MISMATCH: "Application length mismatch",
    ErrorKind.APP_CHECKSUM_MISMATCH: "Application checksum mismatch",
    ErrorKind.META_LENGTH_MISMATCH: "Metadata length mismatch",
    ErrorKind.META_CHECKSUM_MISMATCH: "Metadata checksum mismatch",
}


class ManifestError(ValueError):
    """Error raised by manifest operations.

    Every failure carries exactly one :class:`ErrorKind` so callers can
    distinguish corrupt content from untrusted content.
    """

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        message = MESSAGES[kind]
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DecodeError(ManifestError):
    """Malformed, truncated or oversized encoding."""

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(ErrorKind.INVALID_ENCODING, detail)
