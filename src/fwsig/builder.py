"""Builder for signed firmware manifests."""

import logging
from pathlib import Path
from typing import Optional, Union

from .checksum import Checksum
from .errors import ErrorKind, ManifestError
from .keys import PrivateKey, RandFunc
from .manifest import (
    APP_NAME_LEN,
    APP_VERSION_LEN,
    MANIFEST_VERSION,
    Flags,
    Manifest,
    MetadataFormat,
)
from .stringish import Stringish


log = logging.getLogger(__name__)

MAX_APP_LEN = 0xFFFFFFFF
MAX_META_LEN = 0xFFFF


class ManifestBuilder:
    """Builder for signed firmware manifests.

    Intended for a single manifest. Calling :meth:`build` again without a
    signing key produces a different manifest each time, since a fresh
    transient key is generated for every call.
    """

    def __init__(self) -> None:
        """Initialize manifest builder."""
        self._version = MANIFEST_VERSION
        self._flags = Flags(0)
        self._name = Stringish.empty(APP_NAME_LEN)
        self._app_version = Stringish.empty(APP_VERSION_LEN)
        self._app: Optional[tuple[int, Checksum]] = None
        self._meta: Optional[tuple[int, MetadataFormat, Checksum]] = None

    def flags(self, flags: Flags) -> "ManifestBuilder":
        """Set manifest flags.

        ``TRANSIENT_KEY`` is owned by :meth:`build` and is overwritten there.

        Args:
            flags: Manifest flags

        Returns:
            Self for chaining
        """
        self._flags = Flags(flags)
        return self

    def name(self, app_name: str) -> "ManifestBuilder":
        """Set application name.

        Args:
            app_name: Application name, at most 16 UTF-8 bytes

        Returns:
            Self for chaining
        """
        self._name = Stringish.from_str_strict(app_name, APP_NAME_LEN)
        return self

    def version(self, app_version: str) -> "ManifestBuilder":
        """Set application version string.

        Args:
            app_version: Version string, at most 24 UTF-8 bytes

        Returns:
            Self for chaining
        """
        self._app_version = Stringish.from_str_strict(app_version, APP_VERSION_LEN)
        return self

    def app_bin(self, data: bytes) -> "ManifestBuilder":
        """Add application binary as bytes.

        Args:
            data: Raw application binary

        Returns:
            Self for chaining
        """
        if len(data) > MAX_APP_LEN:
            raise ValueError(f"Application too large: {len(data)} bytes")

        self._app = (len(data), Checksum.compute(data))
        return self

    def app_file(self, path: Union[str, Path]) -> "ManifestBuilder":
        """Add application binary from a file."""
        with open(path, "rb") as f:
            return self.app_bin(f.read())

    def meta_bin(self, kind: MetadataFormat, data: bytes) -> "ManifestBuilder":
        """Add metadata as bytes.

        Args:
            kind: Metadata encoding
            data: Raw metadata

        Returns:
            Self for chaining
        """
        if len(data) > MAX_META_LEN:
            raise ValueError(f"Metadata too large: {len(data)} bytes")

        self._meta = (len(data), kind, Checksum.compute(data))
        return self

    def meta_file(self, kind: MetadataFormat, path: Union[str, Path]) -> "ManifestBuilder":
        """Add metadata from a file."""
        with open(path, "rb") as f:
            return self.meta_bin(kind, f.read())

    def build(
        self,
        signing_key: Optional[PrivateKey] = None,
        randfunc: Optional[RandFunc] = None,
    ) -> Manifest:
        """Build and sign the manifest.

        Args:
            signing_key: Private key to sign with. If omitted a transient key
                is generated and ``TRANSIENT_KEY`` is set.
            randfunc: Secure random source, required when ``signing_key``
                is omitted

        Returns:
            Signed manifest

        Raises:
            ManifestError: MISSING_APP_CHECKSUM, MISSING_META_CHECKSUM or
                SIGNING_FAILED
            TypeError: If neither a signing key nor a random source is given
        """
        if self._app is None:
            raise ManifestError(ErrorKind.MISSING_APP_CHECKSUM)
        if self._meta is None:
            raise ManifestError(ErrorKind.MISSING_META_CHECKSUM)

        transient = signing_key is None
        if transient:
            if randfunc is None:
                raise TypeError("randfunc is required when no signing_key is given")
            signing_key = PrivateKey.generate(randfunc)
            log.info("No signing key provided, using transient key")

        app_len, app_csum = self._app
        meta_len, meta_kind, meta_csum = self._meta

        manifest = Manifest(
            version=self._version,
            flags=self._flags,
            app_name=self._name,
            app_version=self._app_version,
            app_len=app_len,
            app_csum=app_csum,
            meta_kind=meta_kind,
            meta_len=meta_len,
            meta_csum=meta_csum,
        )
        manifest.sign(signing_key, transient=transient)

        return manifest
