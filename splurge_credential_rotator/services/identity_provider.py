"""Identity provider interface and a file-backed local implementation."""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from splurge_credential_rotator.crypto_utils import CryptoUtils
from splurge_credential_rotator.exceptions import (
    CredentialNotFoundError,
    FileOperationError,
    ProviderUnavailableError,
)
from splurge_credential_rotator.file_manager import FileManager
from splurge_credential_rotator.models import Credential, CredentialStatus
from splurge_credential_rotator.validation_utils import validate_principal

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """Mints, lists and revokes key material for a named principal.

    Implementations raise ProviderUnavailableError for transient failures.
    """

    @abstractmethod
    def mint(self, principal: str) -> Credential:
        """Create a new ACTIVE credential; the returned object carries the secret."""

    @abstractmethod
    def list_active(self, principal: str) -> set[Credential]:
        """Return the principal's usable credentials (without secret material).

        Credentials marked RETIRING still authenticate and are included.
        """

    @abstractmethod
    def revoke(self, principal: str, credential_id: str) -> None:
        """Revoke a credential.

        Revoking an already revoked credential is a no-op.

        Raises:
            CredentialNotFoundError: If the provider never issued the id
        """

    def mark_retiring(self, principal: str, credential_id: str) -> None:
        """Flag a credential as scheduled for revocation.

        The credential keeps authenticating until revoked. Providers without
        a RETIRING state may leave this as a no-op.
        """


class LocalIdentityProvider(IdentityProvider):
    """Identity provider keeping a per-principal credential inventory on disk.

    Secret material is handed out once by ``mint`` and never persisted here.
    """

    def __init__(self, file_manager: FileManager):
        """Initialize the local identity provider.

        Args:
            file_manager: File manager instance for data persistence
        """
        self._file_manager = file_manager
        self._lock = threading.Lock()

    def _load(self, principal: str) -> list[Credential]:
        data = self._file_manager.read_identity(principal)
        if data is None:
            return []
        return [Credential.from_dict(entry) for entry in data.get("credentials", [])]

    def _save(self, principal: str, credentials: list[Credential]) -> None:
        self._file_manager.save_identity(principal, {
            "principal": principal,
            "credentials": [credential.to_dict() for credential in credentials],
            "version": "1.0",
        })

    def mint(self, principal: str) -> Credential:
        validate_principal(principal)
        credential = Credential(
            credential_id=CryptoUtils.generate_credential_id(),
            principal=principal,
            secret=CryptoUtils.generate_secret_material(),
        )
        try:
            with self._lock:
                inventory = self._load(principal)
                inventory.append(credential)
                self._save(principal, inventory)
        except FileOperationError as e:
            raise ProviderUnavailableError(f"Failed to mint credential for {principal}: {e}") from e

        logger.info("Minted credential", extra={
            "principal": principal,
            "credential_id": credential.credential_id,
            "event": "credential_minted",
        })
        return credential

    def list_active(self, principal: str) -> set[Credential]:
        validate_principal(principal)
        try:
            inventory = self._load(principal)
        except FileOperationError as e:
            raise ProviderUnavailableError(f"Failed to list credentials for {principal}: {e}") from e
        return {credential for credential in inventory if credential.is_usable}

    def list_all(self, principal: str) -> list[Credential]:
        """Return the full inventory, including revoked credentials."""
        validate_principal(principal)
        try:
            return self._load(principal)
        except FileOperationError as e:
            raise ProviderUnavailableError(f"Failed to list credentials for {principal}: {e}") from e

    def mark_retiring(self, principal: str, credential_id: str) -> None:
        """Move an ACTIVE credential to RETIRING; other statuses are left alone.

        Raises:
            CredentialNotFoundError: If the id was never issued for the principal
            ProviderUnavailableError: If the inventory cannot be updated
        """
        validate_principal(principal)
        try:
            with self._lock:
                inventory = self._load(principal)
                match = next((c for c in inventory if c.credential_id == credential_id), None)
                if match is None:
                    raise CredentialNotFoundError(
                        f"Credential {credential_id} not found for principal {principal}"
                    )
                if match.status != CredentialStatus.ACTIVE:
                    return
                match.status = CredentialStatus.RETIRING
                self._save(principal, inventory)
        except FileOperationError as e:
            raise ProviderUnavailableError(f"Failed to mark credential {credential_id} retiring: {e}") from e

    def revoke(self, principal: str, credential_id: str) -> None:
        validate_principal(principal)
        try:
            with self._lock:
                inventory = self._load(principal)
                match = next((c for c in inventory if c.credential_id == credential_id), None)
                if match is None:
                    raise CredentialNotFoundError(
                        f"Credential {credential_id} not found for principal {principal}"
                    )
                if match.status == CredentialStatus.REVOKED:
                    return
                match.status = CredentialStatus.REVOKED
                self._save(principal, inventory)
        except FileOperationError as e:
            raise ProviderUnavailableError(f"Failed to revoke credential {credential_id}: {e}") from e

        logger.info("Revoked credential", extra={
            "principal": principal,
            "credential_id": credential_id,
            "revoked_at": datetime.now(timezone.utc).isoformat(),
            "event": "credential_revoked",
        })
