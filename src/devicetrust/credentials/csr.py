"""
CSR Builder - Certificate Signing Request Creation

Builds the PKCS#10 request the backend turns into the device certificate.
The subject CN is only a placeholder (the hardware id); the pairing API
replaces it at issuance.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from ..errors import CsrSigningError, KeyLoadError, StorageError, SubjectNameError
from ..logging import get_logger
from .entropy import CSR_LABEL, check_entropy_source
from .pem import copy_into_buffer

logger = get_logger(__name__)

CSR_BUFFER_LENGTH = 4096

# Netscape certificate type, BIT STRING with only sslClient (bit 0) set
NETSCAPE_CERT_TYPE_OID = x509.ObjectIdentifier("2.16.840.1.113730.1.1")
NS_CERT_TYPE_SSL_CLIENT = b"\x03\x02\x07\x80"


@dataclass
class Csr:
    """Signed certification request for one hardware id."""

    request: x509.CertificateSigningRequest
    hw_id: str

    def public_key(self) -> rsa.RSAPublicKey:
        return self.request.public_key()

    def matches_key(self, private_key: rsa.RSAPrivateKey) -> bool:
        """True iff this request carries the public half of ``private_key``."""
        return self.public_key().public_numbers() == private_key.public_key().public_numbers()

    def serialize_to_pem(self, buffer: bytearray) -> int:
        """
        Encode the request as PEM into ``buffer``.

        Raises:
            BufferTooSmall: If the encoding does not fit in ``buffer``.
        """
        pem = self.request.public_bytes(serialization.Encoding.PEM)
        return copy_into_buffer(pem, buffer, artifact="CSR")


def subject_for(hw_id: str) -> x509.Name:
    """
    Parse ``CN=<hw_id>`` as a distinguished name.

    The hardware id must map to exactly one CN attribute with the same value;
    ids that would add attributes or need escaping are rejected.
    """
    if not hw_id:
        raise SubjectNameError("hardware id is empty")
    try:
        name = x509.Name.from_rfc4514_string(f"CN={hw_id}")
    except ValueError as e:
        raise SubjectNameError(str(e)) from e

    attributes = list(name)
    if (
        len(attributes) != 1
        or attributes[0].oid != NameOID.COMMON_NAME
        or attributes[0].value != hw_id
    ):
        raise SubjectNameError("hardware id contains distinguished name syntax")
    return name


def load_private_key(path: Union[str, Path]) -> rsa.RSAPrivateKey:
    """Read and parse the persisted RSA private key."""
    path = Path(path)
    try:
        pem_data = path.read_bytes()
    except OSError as e:
        raise StorageError(f"cannot read private key: {e.strerror}", path=str(path),
                           code="DT_STORAGE_READ_FAILED") from e

    try:
        private_key = serialization.load_pem_private_key(pem_data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError("not a valid unencrypted PEM key", path=str(path)) from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyLoadError("key is not an RSA key", path=str(path))
    return private_key


class CsrBuilder:
    """
    Build CSRs from the persisted private key.

    The key is always re-read from disk, so a CSR can be rebuilt at any time
    the key file exists, independent of which process generated it.
    """

    def build(self, hw_id: str, private_key_path: Union[str, Path]) -> Csr:
        """
        Build and sign a CSR for ``hw_id``.

        Args:
            hw_id: Hardware id placed in the subject CN
            private_key_path: Location of the persisted PEM private key

        Returns:
            Csr signed with SHA-256 and marked for SSL client use

        Raises:
            SubjectNameError: If hw_id cannot form the subject
            RngSeedError: If the OS entropy source is unusable
            StorageError: If the key file cannot be read
            KeyLoadError: If the key file cannot be parsed
            CsrSigningError: If signing fails
        """
        subject = subject_for(hw_id)

        check_entropy_source(CSR_LABEL)
        logger.info("Loading the private key")
        private_key = load_private_key(private_key_path)

        builder = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(subject)
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
            .add_extension(
                x509.UnrecognizedExtension(NETSCAPE_CERT_TYPE_OID, NS_CERT_TYPE_SSL_CLIENT),
                critical=False,
            )
        )
        try:
            request = builder.sign(private_key, hashes.SHA256())
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CsrSigningError(str(e)) from e

        logger.info(f"CSR successfully created for {hw_id}")
        return Csr(request=request, hw_id=hw_id)
