"""
DeviceTrust Credentials Subsystem

Device-side key and CSR management:

- KeyGenerator: RSA key generation with CRT parameter checks
- CsrBuilder: PKCS#10 request bound to the hardware id
- CredentialStore: persistence and idempotent bootstrap of both artifacts

Private keys are generated on the device and never leave the store.
"""

from .csr import Csr, CsrBuilder
from .keygen import KeyGenerator, KeyPair, RsaCrtParams
from .store import CredentialStore, StoreState

__all__ = [
    "CredentialStore",
    "StoreState",
    "KeyGenerator",
    "KeyPair",
    "RsaCrtParams",
    "CsrBuilder",
    "Csr",
]
