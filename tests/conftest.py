"""Pytest configuration and fixtures for fwsig tests."""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from Crypto.Random import get_random_bytes

from fwsig.keys import PrivateKey, PublicKey, RandFunc


# RFC 8032 section 7.1, test 1
TEST_PRIVATE_KEY = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
TEST_PUBLIC_KEY = "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"

# RFC 8032 section 7.1, test 2
OTHER_PUBLIC_KEY = "3d4017c3e843895a92b70aa74d1b7ebc9c982ccf2ec4968cc0cd55f12af4660c"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def randfunc() -> RandFunc:
    """Secure random source for transient keys."""
    return get_random_bytes


@pytest.fixture
def private_key() -> PrivateKey:
    """Fixed test signing key."""
    return PrivateKey.from_hex(TEST_PRIVATE_KEY)


@pytest.fixture
def public_key(private_key: PrivateKey) -> PublicKey:
    """Public key for the fixed test signing key."""
    return PublicKey.from_private(private_key)


@pytest.fixture
def other_public_key() -> PublicKey:
    """Unrelated public key."""
    return PublicKey.from_hex(OTHER_PUBLIC_KEY)


@pytest.fixture
def sample_app() -> bytes:
    """Sample application binary for testing."""
    # Create a realistic-looking firmware image
    header = b"FWAPP\x00\x01\x00"  # Magic + version
    padding = b"\x00" * 56  # Pad to 64 bytes
    code = os.urandom(4096)  # Simulated code section
    return header + padding + code


@pytest.fixture
def sample_meta() -> bytes:
    """Sample JSON metadata."""
    return b'{"name": "demo", "version": "1.2.3"}'


@pytest.fixture
def app_file(temp_dir: Path, sample_app: bytes) -> Path:
    """Create an application file on disk."""
    path = temp_dir / "app.bin"
    path.write_bytes(sample_app)
    return path


@pytest.fixture
def meta_file(temp_dir: Path, sample_meta: bytes) -> Path:
    """Create a metadata file on disk."""
    path = temp_dir / "meta.json"
    path.write_bytes(sample_meta)
    return path
