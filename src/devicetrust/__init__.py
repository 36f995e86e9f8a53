"""
DeviceTrust: device credential bootstrap and pairing.

- Generates the device RSA key and a CSR bound to its hardware id
- Persists both idempotently in an owner-only credential directory
- Exchanges a pairing JWT for the long-lived credentials secret
"""

__version__ = "1.0.0"

from .credentials import CredentialStore, CsrBuilder, KeyGenerator, StoreState
from .errors import (
    BufferTooSmall,
    CryptoError,
    DeviceTrustError,
    NetworkError,
    PairingRejected,
    ProtocolError,
    StorageError,
)
from .pairing import PairingClient, register_device

__all__ = [
    "__version__",
    "CredentialStore",
    "CsrBuilder",
    "KeyGenerator",
    "StoreState",
    "PairingClient",
    "register_device",
    "DeviceTrustError",
    "StorageError",
    "CryptoError",
    "BufferTooSmall",
    "NetworkError",
    "PairingRejected",
    "ProtocolError",
]
