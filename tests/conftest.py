"""
Pytest configuration and fixtures.

This file ensures proper path setup for imports and provides shared
credential fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture(scope="session")
def key_pair():
    """One 2048-bit key shared by tests that only need to read a key."""
    from devicetrust.credentials.keygen import KeyGenerator

    return KeyGenerator().generate()


@pytest.fixture
def key_pem(key_pair) -> bytes:
    buffer = bytearray(16000)
    length = key_pair.serialize_to_pem(buffer)
    return bytes(buffer[:length])


@pytest.fixture
def credential_paths(tmp_path):
    """Paths inside a not-yet-created credential directory."""
    from devicetrust.config import CredentialPaths

    return CredentialPaths.from_directory(tmp_path / "ast_cred")


@pytest.fixture
def key_file(tmp_path, key_pem) -> Path:
    path = tmp_path / "device.key"
    path.write_bytes(key_pem)
    return path
