"""
OS entropy source check.

All randomness used for key generation comes from OpenSSL's DRBG inside
``cryptography``, which seeds itself from the operating system. The library
does not accept a caller-supplied generator, so the device cannot seed one of
its own. What it can do is verify that the OS source works before starting
an operation, and report a failure against the operation that needed it.

The labels name those operations in RngSeedError details.
"""

import os

from ..errors import RngSeedError

KEYGEN_LABEL = "devicetrust_credentials_create_key"
CSR_LABEL = "devicetrust_credentials_create_csr"

PROBE_LENGTH = 32


def check_entropy_source(label: str) -> None:
    """
    Read from the OS entropy source once.

    Raises:
        RngSeedError: If the source is missing or the read fails
    """
    try:
        sample = os.urandom(PROBE_LENGTH)
    except (NotImplementedError, OSError) as e:
        raise RngSeedError(label, f"OS entropy source unavailable: {e}") from e
    if len(sample) != PROBE_LENGTH:
        raise RngSeedError(label, "short read from OS entropy source")
