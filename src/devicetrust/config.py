"""
DeviceTrust Configuration Module

Loads settings from environment variables with the DT_ prefix (or a .env
file). Explicit keyword overrides passed to get_settings() win over the
environment.

Usage:
    from devicetrust.config import get_settings

    settings = get_settings(CREDENTIALS_DIR="/data/cred")
    paths = settings.credential_paths()
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CredentialPaths:
    """Locations of the credential directory and the artifacts inside it."""

    directory: Path
    private_key: Path
    csr: Path

    @classmethod
    def from_directory(
        cls,
        directory,
        privkey_filename: str = "device.key",
        csr_filename: str = "device.csr",
    ) -> "CredentialPaths":
        directory = Path(directory)
        return cls(
            directory=directory,
            private_key=directory / privkey_filename,
            csr=directory / csr_filename,
        )


class DeviceTrustSettings(BaseSettings):
    """
    DeviceTrust settings.

    Loads from environment variables with the DT_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="DT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # GENERAL
    # ==========================================================================
    ENVIRONMENT: str = Field(default="development", description="Runtime environment: development, production")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # ==========================================================================
    # CREDENTIAL STORAGE
    # ==========================================================================
    CREDENTIALS_DIR: str = Field(default="/spiflash/ast_cred", description="Directory holding key and CSR")
    PRIVKEY_FILENAME: str = Field(default="device.key", description="Private key file name")
    CSR_FILENAME: str = Field(default="device.csr", description="CSR file name")

    # ==========================================================================
    # CRYPTO PARAMETERS
    # ==========================================================================
    KEY_SIZE: int = Field(default=2048, ge=2048, description="RSA modulus size in bits")
    PUBLIC_EXPONENT: int = Field(default=65537, description="RSA public exponent")
    PRIVKEY_BUFFER_LENGTH: int = Field(default=16000, gt=0, description="Capacity of the private key PEM buffer")
    CSR_BUFFER_LENGTH: int = Field(default=4096, gt=0, description="Capacity of the CSR PEM buffer")

    # ==========================================================================
    # PAIRING
    # ==========================================================================
    PAIRING_BASE_URL: Optional[str] = Field(default=None, description="Pairing API base URL")
    REALM: Optional[str] = Field(default=None, description="Realm the device registers in")
    HTTP_TIMEOUT: float = Field(default=30.0, gt=0, description="Pairing request timeout in seconds")
    VERIFY_SSL: bool = Field(default=True, description="Verify TLS certificates of the pairing API")

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    def credential_paths(self) -> CredentialPaths:
        return CredentialPaths.from_directory(
            self.CREDENTIALS_DIR,
            privkey_filename=self.PRIVKEY_FILENAME,
            csr_filename=self.CSR_FILENAME,
        )


def get_settings(**overrides) -> DeviceTrustSettings:
    """
    Build settings from the environment with explicit overrides applied.

    Overrides whose value is None or whose name is not a settings field
    are ignored.
    """
    valid_fields = set(DeviceTrustSettings.model_fields.keys())
    updates = {k: v for k, v in overrides.items() if k in valid_fields and v is not None}

    # init kwargs take priority over DT_* variables and .env
    return DeviceTrustSettings(**updates)
