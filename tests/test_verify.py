"""Tests for fwsig verify module."""

from dataclasses import replace

import pytest

from fwsig.builder import ManifestBuilder
from fwsig.errors import ErrorKind
from fwsig.keys import PrivateKey, PublicKey, Signature
from fwsig.manifest import MANIFEST_LEN, Manifest, MetadataFormat
from fwsig.package import pack_combined
from fwsig.verify import ManifestVerifier, VerificationResult, quick_verify


@pytest.fixture
def manifest(private_key: PrivateKey, sample_app: bytes, sample_meta: bytes) -> Manifest:
    """Signed manifest for the sample payloads."""
    return (
        ManifestBuilder()
        .app_bin(sample_app)
        .meta_bin(MetadataFormat.JSON, sample_meta)
        .build(private_key)
    )


@pytest.fixture
def image(manifest: Manifest, sample_app: bytes, sample_meta: bytes) -> bytes:
    """Combined image for the sample payloads."""
    return pack_combined(sample_app, sample_meta, manifest)


class TestVerificationResult:
    """Tests for VerificationResult class."""

    def test_default_invalid(self):
        """Test a fresh result is not valid."""
        result = VerificationResult()
        assert not result.is_valid()
        assert not result.has_warnings()

    def test_all_valid(self):
        """Test all critical checks passing."""
        result = VerificationResult(
            structure_valid=True,
            signature_valid=True,
            app_valid=True,
            meta_valid=True,
            trust_valid=True,
        )
        assert result.is_valid()

    def test_warnings(self):
        """Test warnings do not affect validity."""
        result = VerificationResult(
            structure_valid=True,
            signature_valid=True,
            app_valid=True,
            meta_valid=True,
            trust_valid=True,
            persistent_key=False,
        )
        assert result.is_valid()
        assert result.has_warnings()


class TestManifestVerifier:
    """Tests for ManifestVerifier class."""

    def test_verify_combined(self, image: bytes, public_key: PublicKey):
        """Test a valid combined image."""
        result = ManifestVerifier([public_key]).verify_combined(image)

        assert result.is_valid()
        assert not result.has_warnings()
        assert result.error is None
        assert result.manifest is not None

    def test_verify_detached(self, manifest: Manifest, sample_app: bytes, sample_meta: bytes, public_key: PublicKey):
        """Test a valid detached manifest."""
        result = ManifestVerifier([public_key]).verify_detached(manifest.to_bytes(), sample_app, sample_meta)
        assert result.is_valid()

    def test_add_allowed_key(self, image: bytes, public_key: PublicKey, other_public_key: PublicKey):
        """Test adding keys after construction."""
        verifier = ManifestVerifier([other_public_key])
        assert not verifier.verify_combined(image).is_valid()

        verifier.add_allowed_key(public_key)
        assert verifier.verify_combined(image).is_valid()

    def test_untrusted_key(self, image: bytes, other_public_key: PublicKey):
        """Test an intact image from an untrusted signer."""
        result = ManifestVerifier([other_public_key]).verify_combined(image)

        assert not result.is_valid()
        assert result.signature_valid
        assert result.app_valid
        assert result.meta_valid
        assert not result.trust_valid
        assert result.error.kind == ErrorKind.NO_MATCHING_KEY

    def test_no_keys(self, image: bytes):
        """Test a verifier without keys trusts nothing."""
        result = ManifestVerifier().verify_combined(image)
        assert not result.trust_valid

    def test_tampered_app(self, manifest: Manifest, sample_app: bytes, sample_meta: bytes, public_key: PublicKey):
        """Test a modified application byte."""
        altered = sample_app[:-1] + bytes([sample_app[-1] ^ 0x01])
        result = ManifestVerifier([public_key]).verify_detached(manifest.to_bytes(), altered, sample_meta)

        assert not result.is_valid()
        assert result.signature_valid
        assert not result.app_valid
        assert not result.meta_valid
        assert not result.trust_valid
        assert result.error.kind == ErrorKind.APP_CHECKSUM_MISMATCH

    def test_wrong_meta_length(self, manifest: Manifest, sample_app: bytes, sample_meta: bytes, public_key: PublicKey):
        """Test metadata of the wrong length."""
        result = ManifestVerifier([public_key]).verify_detached(manifest.to_bytes(), sample_app, sample_meta + b"\n")

        assert result.app_valid
        assert not result.meta_valid
        assert result.error.kind == ErrorKind.META_LENGTH_MISMATCH

    def test_tampered_manifest(self, image: bytes, public_key: PublicKey):
        """Test a modified manifest field breaks the signature."""
        data = bytearray(image)
        data[-MANIFEST_LEN + 4] ^= 0x20  # app_name
        result = ManifestVerifier([public_key]).verify_combined(bytes(data))

        assert result.structure_valid
        assert not result.signature_valid
        assert result.error.kind == ErrorKind.INVALID_SIGNATURE

    def test_integrity_before_trust(self, manifest: Manifest, sample_app: bytes, sample_meta: bytes,
                                    other_public_key: PublicKey):
        """Test integrity failures are reported even for untrusted signers."""
        result = ManifestVerifier([other_public_key]).verify_detached(manifest.to_bytes(), b"", sample_meta)
        assert result.error.kind == ErrorKind.APP_LENGTH_MISMATCH

    def test_malformed_image(self, public_key: PublicKey):
        """Test structure failures."""
        result = ManifestVerifier([public_key]).verify_combined(b"short")

        assert not result.structure_valid
        assert result.manifest is None
        assert result.error.kind == ErrorKind.INVALID_ENCODING

    def test_transient_key_warning(self, sample_app: bytes, sample_meta: bytes, randfunc):
        """Test images signed with a transient key produce a warning."""
        manifest = (
            ManifestBuilder()
            .app_bin(sample_app)
            .meta_bin(MetadataFormat.JSON, sample_meta)
            .build(randfunc=randfunc)
        )
        image = pack_combined(sample_app, sample_meta, manifest)

        result = ManifestVerifier([manifest.key]).verify_combined(image)
        assert result.is_valid()
        assert result.has_warnings()
        assert not result.persistent_key

    def test_unsupported_version_warning(self, manifest: Manifest, sample_app: bytes, sample_meta: bytes,
                                         private_key: PrivateKey, public_key: PublicKey):
        """Test other manifest versions are reported as warnings."""
        manifest = replace(manifest, version=7, sig=Signature.empty())
        manifest.sign(private_key)

        result = ManifestVerifier([public_key]).verify_detached(manifest.to_bytes(), sample_app, sample_meta)
        assert result.is_valid()
        assert not result.version_valid
        assert "7" in result.version_details


class TestQuickVerify:
    """Tests for quick_verify function."""

    def test_valid(self, image: bytes, public_key: PublicKey):
        """Test quick verification of a valid image."""
        assert quick_verify(image, [public_key])

    def test_invalid(self, image: bytes, other_public_key: PublicKey):
        """Test quick verification of an untrusted image."""
        assert not quick_verify(image, [other_public_key])

    def test_garbage(self, public_key: PublicKey):
        """Test quick verification of random bytes."""
        assert not quick_verify(b"\x00" * 100, [public_key])
