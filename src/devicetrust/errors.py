"""
DeviceTrust Error Taxonomy.

Every error raised by the credential store, the key/CSR generators and the
pairing client derives from DeviceTrustError and carries:
- a machine-readable error code
- structured details (never key material, tokens or secrets)

Error Code Naming Convention:
- DT_<AREA>_<SPECIFIC>
- Areas: STORAGE, CRYPTO, PAIRING, CONFIG

Security:
- NEVER include private keys, JWTs or credential secrets in messages or details
- Errors should be safe to log
"""

from typing import Any, Dict, Optional


class DeviceTrustError(Exception):
    """Base exception for all DeviceTrust errors."""

    def __init__(
        self,
        message: str,
        code: str = "DT_INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Storage Errors (DT_STORAGE_*)
# =============================================================================


class StorageError(DeviceTrustError):
    """Raised when a credential directory or file cannot be created, read or written."""

    def __init__(
        self,
        reason: str,
        path: Optional[str] = None,
        code: str = "DT_STORAGE_ERROR",
    ):
        super().__init__(
            message=f"Storage error: {reason}",
            code=code,
            details={"path": path} if path else {},
        )
        self.path = path


# =============================================================================
# Cryptography Errors (DT_CRYPTO_*)
# =============================================================================


class CryptoError(DeviceTrustError):
    """Base class for key generation, CSR signing and encoding errors."""

    pass


class RngSeedError(CryptoError):
    """Raised when the CSPRNG cannot be seeded from the OS entropy source."""

    def __init__(self, label: str, reason: str):
        super().__init__(
            message=f"RNG seeding failed: {reason}",
            code="DT_CRYPTO_RNG_SEED_FAILED",
            details={"label": label},
        )


class KeyGenerationError(CryptoError):
    """Raised when RSA key generation or CRT parameter derivation fails."""

    def __init__(self, reason: str, key_size: Optional[int] = None):
        super().__init__(
            message=f"Key generation failed: {reason}",
            code="DT_CRYPTO_KEYGEN_FAILED",
            details={"key_size": key_size} if key_size else {},
        )


class KeyLoadError(CryptoError):
    """Raised when the persisted private key cannot be parsed."""

    def __init__(self, reason: str, path: Optional[str] = None):
        super().__init__(
            message=f"Cannot load private key: {reason}",
            code="DT_CRYPTO_KEY_LOAD_FAILED",
            details={"path": path} if path else {},
        )


class SubjectNameError(CryptoError):
    """Raised when the hardware id cannot form a valid subject name."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Invalid CSR subject name: {reason}",
            code="DT_CRYPTO_SUBJECT_INVALID",
        )


class CsrSigningError(CryptoError):
    """Raised when signing the certification request fails."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"CSR signing failed: {reason}",
            code="DT_CRYPTO_CSR_SIGN_FAILED",
        )


class BufferTooSmall(CryptoError):
    """Raised when a PEM encoding does not fit its fixed-capacity buffer."""

    def __init__(self, required: int, capacity: int, artifact: str = "pem"):
        super().__init__(
            message=f"{artifact} encoding needs {required} bytes, buffer holds {capacity}",
            code="DT_CRYPTO_BUFFER_TOO_SMALL",
            details={"required": required, "capacity": capacity, "artifact": artifact},
        )
        self.required = required
        self.capacity = capacity


# =============================================================================
# Pairing Errors (DT_PAIRING_*)
# =============================================================================


class PairingError(DeviceTrustError):
    """Base class for pairing handshake errors."""

    pass


class NetworkError(PairingError):
    """Raised on transport-level failure (DNS, connection, TLS, timeout)."""

    def __init__(self, reason: str, url: Optional[str] = None):
        super().__init__(
            message=f"Pairing request failed: {reason}",
            code="DT_PAIRING_NETWORK_ERROR",
            details={"url": url} if url else {},
        )


class PairingRejected(PairingError):
    """Raised when the pairing endpoint answers with anything but 201."""

    def __init__(self, status: int, url: Optional[str] = None):
        details: Dict[str, Any] = {"status": status}
        if url:
            details["url"] = url
        super().__init__(
            message=f"Pairing rejected with HTTP status {status}",
            code="DT_PAIRING_REJECTED",
            details=details,
        )
        self.status = status


class ProtocolError(PairingError):
    """Raised when a 201 response body is malformed or lacks required fields."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Malformed pairing response: {reason}",
            code="DT_PAIRING_PROTOCOL_ERROR",
        )


# =============================================================================
# Configuration Errors (DT_CONFIG_*)
# =============================================================================


class ConfigMissingError(DeviceTrustError):
    """Raised when required configuration is missing."""

    def __init__(self, config_key: str, env_var: Optional[str] = None):
        msg = f"Missing required configuration: {config_key}"
        if env_var:
            msg += f" (set {env_var})"
        super().__init__(
            message=msg,
            code="DT_CONFIG_MISSING",
            details={"config_key": config_key},
        )


# =============================================================================
# Error Code Registry
# =============================================================================

ERROR_CODES = {
    # Storage
    "DT_STORAGE_ERROR": "Credential storage operation failed",
    "DT_STORAGE_DIR_CREATE_FAILED": "Credential directory could not be created",
    "DT_STORAGE_READ_FAILED": "Credential artifact could not be read",
    "DT_STORAGE_WRITE_FAILED": "Credential artifact could not be written",
    # Crypto
    "DT_CRYPTO_RNG_SEED_FAILED": "CSPRNG seeding failed",
    "DT_CRYPTO_KEYGEN_FAILED": "RSA key generation failed",
    "DT_CRYPTO_KEY_LOAD_FAILED": "Private key could not be parsed",
    "DT_CRYPTO_SUBJECT_INVALID": "CSR subject name is invalid",
    "DT_CRYPTO_CSR_SIGN_FAILED": "CSR signing failed",
    "DT_CRYPTO_BUFFER_TOO_SMALL": "PEM encoding exceeds buffer capacity",
    # Pairing
    "DT_PAIRING_NETWORK_ERROR": "Transport-level pairing failure",
    "DT_PAIRING_REJECTED": "Pairing endpoint rejected the request",
    "DT_PAIRING_PROTOCOL_ERROR": "Malformed pairing response",
    # Config
    "DT_CONFIG_MISSING": "Required configuration missing",
    # Internal
    "DT_INTERNAL_ERROR": "Internal error",
}


def validate_error_code(code: str) -> bool:
    """Validate that an error code is registered."""
    return code in ERROR_CODES


__all__ = [
    "DeviceTrustError",
    "StorageError",
    "CryptoError",
    "RngSeedError",
    "KeyGenerationError",
    "KeyLoadError",
    "SubjectNameError",
    "CsrSigningError",
    "BufferTooSmall",
    "PairingError",
    "NetworkError",
    "PairingRejected",
    "ProtocolError",
    "ConfigMissingError",
    "ERROR_CODES",
    "validate_error_code",
]
