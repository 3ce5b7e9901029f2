"""Reporting verification of signed firmware.

Runs the integrity phase (structure, signature self-consistency, payloads)
and then the trust phase (signer allow-list), recording the outcome of each
check for display.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .checksum import Checksum
from .errors import ManifestError
from .keys import PublicKey
from .manifest import MANIFEST_VERSION, Manifest
from .package import unpack_combined


log = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Result of firmware verification."""

    # Individual check results
    structure_valid: bool = False
    structure_details: str = ""

    signature_valid: bool = False
    signature_details: str = ""

    app_valid: bool = False
    app_details: str = ""

    meta_valid: bool = False
    meta_details: str = ""

    trust_valid: bool = False
    trust_details: str = ""

    # Warnings
    version_valid: bool = True
    version_details: str = ""

    persistent_key: bool = True
    key_details: str = ""

    # First error that stopped verification
    error: Optional[ManifestError] = None

    # Parsed data
    manifest: Optional[Manifest] = None

    def is_valid(self) -> bool:
        """Check if all critical verifications passed."""
        return (
            self.structure_valid
            and self.signature_valid
            and self.app_valid
            and self.meta_valid
            and self.trust_valid
        )

    def has_warnings(self) -> bool:
        """Check if there are non-critical warnings."""
        return not self.version_valid or not self.persistent_key


class ManifestVerifier:
    """Verifies manifests and payloads against an allow-list of keys."""

    def __init__(self, allowed_keys: Optional[Iterable[PublicKey]] = None) -> None:
        """Initialize verifier.

        Args:
            allowed_keys: Public keys trusted to sign manifests
        """
        self.allowed_keys: list[PublicKey] = list(allowed_keys or [])

    def add_allowed_key(self, key: PublicKey) -> None:
        self.allowed_keys.append(key)

    def verify_combined(self, data: bytes) -> VerificationResult:
        """Verify a combined image (app + meta + manifest)."""
        try:
            image = unpack_combined(data)
        except ManifestError as e:
            return self._structure_failure(e)

        return self.verify_manifest(image.manifest, image.app, image.meta)

    def verify_detached(self, manifest_data: bytes, app: bytes, meta: bytes) -> VerificationResult:
        """Verify a detached manifest against separate payloads."""
        try:
            manifest = Manifest.from_bytes(manifest_data)
        except ManifestError as e:
            return self._structure_failure(e)

        return self.verify_manifest(manifest, app, meta)

    def verify_manifest(self, manifest: Manifest, app: bytes, meta: bytes) -> VerificationResult:
        """Verify a decoded manifest.

        Args:
            manifest: Decoded manifest
            app: Application payload
            meta: Metadata payload

        Returns:
            VerificationResult with detailed status
        """
        result = VerificationResult(manifest=manifest)
        result.structure_valid = True
        result.structure_details = (
            f"App: {manifest.app_len}B, Meta: {manifest.meta_len}B "
            f"({manifest.meta_kind.name.lower()})"
        )

        if manifest.is_supported_version:
            result.version_details = f"Version {manifest.version}"
        else:
            result.version_valid = False
            result.version_details = (
                f"Unexpected manifest version {manifest.version} "
                f"(expected {MANIFEST_VERSION})"
            )

        if manifest.transient_key:
            result.persistent_key = False
            result.key_details = "Signed with a transient key"
        else:
            result.key_details = "Signed with a persistent key"

        # Integrity phase
        try:
            manifest.check_sig()
            result.signature_valid = True
            result.signature_details = f"Valid signature by {manifest.key.hex()[:16]}..."
        except ManifestError as e:
            return self._fail(result, "signature", e)

        try:
            manifest.check_app(len(app), Checksum.compute(app))
            result.app_valid = True
            result.app_details = f"{manifest.app_len}B, {manifest.app_csum.hex()[:16]}..."
        except ManifestError as e:
            return self._fail(result, "app", e)

        try:
            manifest.check_meta(len(meta), Checksum.compute(meta))
            result.meta_valid = True
            result.meta_details = f"{manifest.meta_len}B, {manifest.meta_csum.hex()[:16]}..."
        except ManifestError as e:
            return self._fail(result, "meta", e)

        # Trust phase
        try:
            manifest.verify(self.allowed_keys)
            result.trust_valid = True
            result.trust_details = f"Key {manifest.key.hex()[:16]}... is allowed"
        except ManifestError as e:
            return self._fail(result, "trust", e)

        return result

    @staticmethod
    def _structure_failure(error: ManifestError) -> VerificationResult:
        log.warning("Manifest decode failed: %s", error)
        return VerificationResult(structure_details=str(error), error=error)

    @staticmethod
    def _fail(result: VerificationResult, check: str, error: ManifestError) -> VerificationResult:
        log.warning("Verification failed (%s): %s", check, error)
        setattr(result, f"{check}_valid", False)
        setattr(result, f"{check}_details", str(error))
        result.error = error
        return result


def quick_verify(data: bytes, allowed_keys: Iterable[PublicKey]) -> bool:
    """Quick verification of a combined image that returns only pass/fail.

    Args:
        data: Combined image
        allowed_keys: Trusted public keys

    Returns:
        True if verification passed
    """
    return ManifestVerifier(allowed_keys).verify_combined(data).is_valid()
