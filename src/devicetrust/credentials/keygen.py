"""
Key Generator - Local RSA Key Generation

Generates the device private key on the device itself.
Private key material is never logged and never leaves the credential store.
"""

from dataclasses import dataclass, field
from typing import NamedTuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..errors import KeyGenerationError
from ..logging import get_logger
from .entropy import KEYGEN_LABEL, check_entropy_source
from .pem import copy_into_buffer

logger = get_logger(__name__)

DEFAULT_KEY_SIZE = 2048
DEFAULT_PUBLIC_EXPONENT = 65537
PRIVKEY_BUFFER_LENGTH = 16000


class RsaCrtParams(NamedTuple):
    """RSA key components, including the CRT values used for fast signing."""

    n: int
    p: int
    q: int
    d: int
    e: int
    dp: int
    dq: int
    qp: int

    def __repr__(self) -> str:
        return f"RsaCrtParams(bits={self.n.bit_length()}, e={self.e})"


@dataclass
class KeyPair:
    """Generated RSA key pair."""

    private_key: rsa.RSAPrivateKey = field(repr=False)
    key_size: int
    public_exponent: int
    # First 16 hex digits of the public key fingerprint
    key_id: str

    def public_key(self) -> rsa.RSAPublicKey:
        return self.private_key.public_key()

    def crt_params(self) -> RsaCrtParams:
        numbers = self.private_key.private_numbers()
        return RsaCrtParams(
            n=numbers.public_numbers.n,
            p=numbers.p,
            q=numbers.q,
            d=numbers.d,
            e=numbers.public_numbers.e,
            dp=numbers.dmp1,
            dq=numbers.dmq1,
            qp=numbers.iqmp,
        )

    def serialize_to_pem(self, buffer: bytearray) -> int:
        """
        Encode the private key as PKCS#1 PEM into ``buffer``.

        Returns:
            Number of bytes written.

        Raises:
            BufferTooSmall: If the encoding does not fit in ``buffer``.
        """
        pem = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return copy_into_buffer(pem, buffer, artifact="private key")


def public_key_fingerprint(public_key: rsa.RSAPublicKey) -> str:
    """Hex SHA-256 of the DER SubjectPublicKeyInfo."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashes.Hash(hashes.SHA256())
    digest.update(der)
    return digest.finalize().hex()


def check_crt_params(params: RsaCrtParams, key_size: int) -> None:
    """Raise KeyGenerationError unless the RSA components are mutually consistent."""
    if params.n.bit_length() != key_size:
        raise KeyGenerationError("modulus has unexpected size", key_size=key_size)
    if params.p * params.q != params.n:
        raise KeyGenerationError("modulus is not P*Q", key_size=key_size)
    if params.dp != params.d % (params.p - 1) or params.dq != params.d % (params.q - 1):
        raise KeyGenerationError("CRT exponents do not match D", key_size=key_size)
    if (params.e * params.dp) % (params.p - 1) != 1 or (params.e * params.dq) % (params.q - 1) != 1:
        raise KeyGenerationError("D is not the inverse of E", key_size=key_size)
    if (params.qp * params.q) % params.p != 1:
        raise KeyGenerationError("CRT coefficient is not Q^-1 mod P", key_size=key_size)


class KeyGenerator:
    """
    Generate RSA device keys.

    OpenSSL's DRBG does the prime search; each call first checks that the OS
    entropy source it reseeds from is usable.
    The returned KeyPair lives in memory only until the credential store
    persists it.
    """

    def generate(
        self,
        bits: int = DEFAULT_KEY_SIZE,
        public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
    ) -> KeyPair:
        """
        Generate a new RSA key pair.

        Args:
            bits: Modulus size in bits
            public_exponent: Public exponent E

        Returns:
            KeyPair whose CRT parameters have been checked

        Raises:
            RngSeedError: If the OS entropy source is unusable
            KeyGenerationError: If generation or CRT derivation fails
        """
        logger.info(f"Generating the RSA key [ {bits}-bit ]")

        check_entropy_source(KEYGEN_LABEL)
        try:
            private_key = rsa.generate_private_key(
                public_exponent=public_exponent,
                key_size=bits,
            )
        except (ValueError, UnsupportedAlgorithm) as e:
            raise KeyGenerationError(str(e), key_size=bits) from e

        key_id = public_key_fingerprint(private_key.public_key())[:16]

        key_pair = KeyPair(
            private_key=private_key,
            key_size=bits,
            public_exponent=public_exponent,
            key_id=key_id,
        )
        check_crt_params(key_pair.crt_params(), bits)

        logger.info(f"Key {key_id} successfully generated")
        return key_pair
