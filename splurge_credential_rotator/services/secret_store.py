"""Secret store interface and a file-backed, encrypted implementation."""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from splurge_credential_rotator.crypto_utils import SecretCipher
from splurge_credential_rotator.exceptions import (
    EncryptionError,
    FileOperationError,
    StoreUnavailableError,
    ValidationError,
)
from splurge_credential_rotator.file_manager import FileManager
from splurge_credential_rotator.models import Credential, SecretVersion
from splurge_credential_rotator.validation_utils import validate_principal

logger = logging.getLogger(__name__)


class SecretStore(ABC):
    """Durably publishes one current credential per principal.

    ``publish`` must atomically overwrite the principal's single slot.
    Implementations raise StoreUnavailableError for transient failures.
    """

    @abstractmethod
    def publish(self, principal: str, credential: Credential) -> SecretVersion:
        """Publish a credential as the principal's current secret version."""

    @abstractmethod
    def read_current(self, principal: str) -> Optional[SecretVersion]:
        """Return the principal's current secret version, or None if never published."""


class FileSecretStore(SecretStore):
    """Secret store writing one JSON slot per principal.

    Secret material is Fernet-encrypted at rest with a cipher derived from
    the store password supplied by the caller's environment. Republishing
    the credential already in the slot returns the existing version, so a
    retried publish does not bump the version.
    """

    def __init__(self, file_manager: FileManager, cipher: SecretCipher):
        """Initialize the file secret store.

        Args:
            file_manager: File manager instance for data persistence
            cipher: Cipher used to encrypt secret material at rest
        """
        self._file_manager = file_manager
        self._cipher = cipher
        self._lock = threading.Lock()

    def _decode(self, principal: str, data: dict) -> SecretVersion:
        return SecretVersion(
            principal=principal,
            credential_id=data["credential_id"],
            secret=self._cipher.decrypt(data["secret"]),
            version=data["version"],
            published_at=data["published_at"],
        )

    def publish(self, principal: str, credential: Credential) -> SecretVersion:
        validate_principal(principal)
        if credential.principal != principal:
            raise ValidationError(
                f"Credential {credential.credential_id} belongs to {credential.principal}, not {principal}"
            )
        if not credential.secret:
            raise ValidationError("Cannot publish a credential without secret material")

        try:
            with self._lock:
                current = self._file_manager.read_secret_slot(principal)
                if current is not None and current.get("credential_id") == credential.credential_id:
                    return self._decode(principal, current)

                version = SecretVersion(
                    principal=principal,
                    credential_id=credential.credential_id,
                    secret=credential.secret,
                    version=(current or {}).get("version", 0) + 1,
                    published_at=datetime.now(timezone.utc),
                )
                self._file_manager.save_secret_slot(principal, {
                    "principal": principal,
                    "credential_id": version.credential_id,
                    "secret": self._cipher.encrypt(version.secret),
                    "version": version.version,
                    "published_at": version.published_at.isoformat(),
                })
        except (FileOperationError, EncryptionError) as e:
            raise StoreUnavailableError(f"Failed to publish secret for {principal}: {e}") from e

        logger.info("Published secret version", extra={
            "principal": principal,
            "credential_id": version.credential_id,
            "version": version.version,
            "event": "secret_published",
        })
        return version

    def read_current(self, principal: str) -> Optional[SecretVersion]:
        validate_principal(principal)
        try:
            data = self._file_manager.read_secret_slot(principal)
            if data is None:
                return None
            return self._decode(principal, data)
        except (FileOperationError, EncryptionError, KeyError) as e:
            raise StoreUnavailableError(f"Failed to read secret for {principal}: {e}") from e
