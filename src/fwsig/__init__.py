"""fwsig firmware signing and verification.

This package provides a fixed-size signed firmware manifest, including:
- Ed25519ph signing of application and metadata checksums
- Manifest encoding to a fixed 214-byte little-endian layout
- Integrity checking of payloads against a manifest
- Trust verification against an allow-list of public keys
- Combined and detached packaging
"""

__version__ = "0.2.1"

from .builder import ManifestBuilder
from .checksum import Checksum
from .errors import DecodeError, ErrorKind, ManifestError
from .keys import PrivateKey, PublicKey, Signature
from .manifest import (
    MANIFEST_LEN,
    MANIFEST_VERSION,
    SIGNED_LEN,
    Flags,
    Manifest,
    MetadataFormat,
)
from .stringish import Stringish
from .verify import ManifestVerifier, VerificationResult

__all__ = [
    "Checksum",
    "DecodeError",
    "ErrorKind",
    "Flags",
    "MANIFEST_LEN",
    "MANIFEST_VERSION",
    "Manifest",
    "ManifestBuilder",
    "ManifestError",
    "ManifestVerifier",
    "MetadataFormat",
    "PrivateKey",
    "PublicKey",
    "SIGNED_LEN",
    "Signature",
    "Stringish",
    "VerificationResult",
]
