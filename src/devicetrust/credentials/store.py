"""
Credential Store - Idempotent Key and CSR Bootstrap

Owns the credential directory and the two artifacts inside it. The store
moves through three states:

    NO_KEY -> KEY_ONLY -> READY

Regenerating the key always drops back to KEY_ONLY, and a failed step leaves
the state where it was. Calls against one directory must be serialized by
the owning process.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from ..config import CredentialPaths, DeviceTrustSettings
from ..errors import StorageError
from ..logging import get_logger
from ..utils.files import atomic_write, is_readable, remove_quietly
from .csr import CSR_BUFFER_LENGTH, Csr, CsrBuilder, subject_for
from .keygen import (
    DEFAULT_KEY_SIZE,
    DEFAULT_PUBLIC_EXPONENT,
    PRIVKEY_BUFFER_LENGTH,
    KeyGenerator,
    KeyPair,
)
from .pem import pem_buffer

logger = get_logger(__name__)

DIRECTORY_MODE = 0o700
FILE_MODE = 0o600


class StoreState(str, Enum):
    NO_KEY = "no_key"
    KEY_ONLY = "key_only"
    READY = "ready"


class CredentialStore:
    """
    On-disk home of the device private key and its CSR.

    Security:
    - Directory is owner-only (0700), files are 0600
    - Files are replaced atomically, never appended
    - A CSR never survives the key it was built from
    """

    def __init__(
        self,
        paths: CredentialPaths,
        key_generator: Optional[KeyGenerator] = None,
        csr_builder: Optional[CsrBuilder] = None,
        key_size: int = DEFAULT_KEY_SIZE,
        public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
        privkey_buffer_length: int = PRIVKEY_BUFFER_LENGTH,
        csr_buffer_length: int = CSR_BUFFER_LENGTH,
    ):
        self.paths = paths
        self.key_generator = key_generator or KeyGenerator()
        self.csr_builder = csr_builder or CsrBuilder()
        self.key_size = key_size
        self.public_exponent = public_exponent
        self.privkey_buffer_length = privkey_buffer_length
        self.csr_buffer_length = csr_buffer_length

    @classmethod
    def from_settings(cls, settings: DeviceTrustSettings, **kwargs) -> "CredentialStore":
        return cls(
            paths=settings.credential_paths(),
            key_size=settings.KEY_SIZE,
            public_exponent=settings.PUBLIC_EXPONENT,
            privkey_buffer_length=settings.PRIVKEY_BUFFER_LENGTH,
            csr_buffer_length=settings.CSR_BUFFER_LENGTH,
            **kwargs,
        )

    # ==========================================================================
    # Presence
    # ==========================================================================

    def ensure_storage(self) -> None:
        """
        Create the credential directory (mode 0700) if it does not exist.

        The parent must already exist: a missing parent usually means the
        backing volume is not mounted, and that is reported as StorageError.
        """
        directory = self.paths.directory
        if directory.is_dir():
            return

        logger.info(f"Directory {directory} doesn't exist, creating it")
        try:
            directory.mkdir(mode=DIRECTORY_MODE)
            os.chmod(directory, DIRECTORY_MODE)
        except FileExistsError as e:
            if not directory.is_dir():
                raise StorageError("path exists and is not a directory", path=str(directory),
                                   code="DT_STORAGE_DIR_CREATE_FAILED") from e
        except OSError as e:
            logger.error(f"Cannot create {directory}; is the credential volume mounted?")
            raise StorageError(f"cannot create directory: {e.strerror}", path=str(directory),
                               code="DT_STORAGE_DIR_CREATE_FAILED") from e

    def has_key(self) -> bool:
        return is_readable(self.paths.private_key)

    def has_csr(self) -> bool:
        return is_readable(self.paths.csr)

    def state(self) -> StoreState:
        if not self.has_key():
            return StoreState.NO_KEY
        if not self.has_csr():
            return StoreState.KEY_ONLY
        return StoreState.READY

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def bootstrap(self, hw_id: str) -> StoreState:
        """
        Make sure a private key and a matching CSR for ``hw_id`` are on disk.

        Generates only what is missing; when both artifacts exist nothing is
        written. Any failure aborts the remaining steps.

        Returns:
            StoreState.READY
        """
        # Reject an unusable hardware id before any key material is written
        subject_for(hw_id)

        self.ensure_storage()

        key_regenerated = False
        if not self.has_key():
            logger.info("Private key not found, creating it.")
            self.create_key()
            key_regenerated = True

        # A CSR that could not be removed still belongs to the old key
        if key_regenerated or not self.has_csr():
            logger.info("CSR not found, creating it.")
            self.create_csr(hw_id)

        return StoreState.READY

    def create_key(self) -> KeyPair:
        """
        Generate and persist a new private key, replacing any existing one.

        The old CSR is moved aside before the key is written and deleted once
        the new key is in place. If the key write fails the CSR is put back,
        so the store keeps the state it had.
        """
        self.ensure_storage()

        with pem_buffer(self.privkey_buffer_length) as buffer:
            key_pair = self.key_generator.generate(
                bits=self.key_size,
                public_exponent=self.public_exponent,
            )
            length = key_pair.serialize_to_pem(buffer)

            stale_csr = self._move_csr_aside()

            logger.info(f"Saving the private key in {self.paths.private_key}")
            try:
                atomic_write(self.paths.private_key, bytes(buffer[:length]), mode=FILE_MODE)
            except StorageError:
                if stale_csr is not None:
                    self._restore_csr(stale_csr)
                raise

        if stale_csr is not None:
            remove_quietly(stale_csr)
            logger.info("Deleted old CSR")
        else:
            self.invalidate_csr()

        logger.info("Private key successfully saved.")
        return key_pair

    def _stale_csr_path(self) -> Path:
        return self.paths.csr.with_name(f".{self.paths.csr.name}.stale")

    def _move_csr_aside(self) -> Optional[Path]:
        """Rename the CSR out of the way. Returns its new path, or None if it was not moved."""
        stale = self._stale_csr_path()
        try:
            os.replace(self.paths.csr, stale)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not move old CSR aside: {e.strerror}")
            return None
        return stale

    def _restore_csr(self, stale: Path) -> None:
        try:
            os.replace(stale, self.paths.csr)
        except OSError as e:
            logger.error(f"Could not restore old CSR: {e.strerror}")

    def create_csr(self, hw_id: str) -> Csr:
        """
        Build a CSR for ``hw_id`` from the persisted key and write it to disk.

        Returns only once the CSR file is in place and readable.
        """
        csr = self.csr_builder.build(hw_id, self.paths.private_key)

        with pem_buffer(self.csr_buffer_length) as buffer:
            length = csr.serialize_to_pem(buffer)
            logger.info(f"Saving the CSR in {self.paths.csr}")
            atomic_write(self.paths.csr, bytes(buffer[:length]), mode=FILE_MODE)

        if not self.has_csr():
            raise StorageError("CSR is not readable after write", path=str(self.paths.csr),
                               code="DT_STORAGE_WRITE_FAILED")
        return csr

    def invalidate_csr(self) -> bool:
        """Delete the CSR if present. Returns True when a file was removed."""
        removed = remove_quietly(self.paths.csr)
        if removed:
            logger.info("Deleted old CSR")
        return removed

    def read_csr_pem(self) -> str:
        """Return the persisted CSR as PEM text, for upload to the backend."""
        try:
            return self.paths.csr.read_text(encoding="ascii")
        except OSError as e:
            raise StorageError(f"cannot read CSR: {e.strerror}", path=str(self.paths.csr),
                               code="DT_STORAGE_READ_FAILED") from e
