"""Combined and detached packaging of signed firmware.

Combined format (single file):
- [app_len bytes] Application binary
- [meta_len bytes] Metadata
- [MANIFEST_LEN bytes] Encoded manifest

The manifest is always the final ``MANIFEST_LEN`` bytes, and its
``app_len``/``meta_len`` fields locate the payloads before it.

Detached format: the encoded manifest on its own, with the application and
metadata distributed as separate files.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import DecodeError
from .manifest import MANIFEST_LEN, Manifest


log = logging.getLogger(__name__)


@dataclass
class CombinedImage:
    """A manifest together with the payloads it describes."""

    manifest: Manifest
    app: bytes
    meta: bytes

    def to_bytes(self) -> bytes:
        return pack_combined(self.app, self.meta, self.manifest)


def pack_combined(app: bytes, meta: bytes, manifest: Manifest) -> bytes:
    """Concatenate application, metadata and manifest."""
    return app + meta + manifest.to_bytes()


def unpack_combined(data: bytes) -> CombinedImage:
    """Split a combined image into manifest and payloads.

    Only the framing is validated here; use :meth:`Manifest.check` and
    :meth:`Manifest.verify` to validate content and signer.

    Raises:
        DecodeError: If the image is too short or the payload lengths do not
            match the manifest
    """
    if len(data) < MANIFEST_LEN:
        raise DecodeError(
            f"image too short for manifest: {len(data)} < {MANIFEST_LEN} bytes"
        )

    manifest = Manifest.from_bytes(data[-MANIFEST_LEN:])

    expected = manifest.app_len + manifest.meta_len + MANIFEST_LEN
    if len(data) != expected:
        raise DecodeError(f"image length {len(data)} does not match manifest ({expected})")

    app = data[: manifest.app_len]
    meta = data[manifest.app_len : manifest.app_len + manifest.meta_len]

    return CombinedImage(manifest=manifest, app=app, meta=meta)


def pack_detached(manifest: Manifest) -> bytes:
    return manifest.to_bytes()


def unpack_detached(data: bytes) -> Manifest:
    return Manifest.from_bytes(data)


def write_combined(path: Union[str, Path], app: bytes, meta: bytes, manifest: Manifest) -> None:
    """Write a combined image to ``path``."""
    data = pack_combined(app, meta, manifest)
    with open(path, "wb") as f:
        f.write(data)
    log.info("Wrote combined image (%d bytes) to %s", len(data), path)


def write_detached(path: Union[str, Path], manifest: Manifest) -> None:
    """Write a detached manifest to ``path``."""
    with open(path, "wb") as f:
        f.write(pack_detached(manifest))
    log.info("Wrote detached manifest to %s", path)


def read_combined(path: Union[str, Path]) -> CombinedImage:
    with open(path, "rb") as f:
        return unpack_combined(f.read())


def read_detached(path: Union[str, Path]) -> Manifest:
    with open(path, "rb") as f:
        return unpack_detached(f.read())
