"""Credential Rotator facade wiring the local backends to the coordinator."""

import logging
import os
from typing import Any, Iterable, Union

from splurge_credential_rotator.config import RotatorConfig
from splurge_credential_rotator.crypto_utils import CryptoUtils, SecretCipher
from splurge_credential_rotator.exceptions import ValidationError
from splurge_credential_rotator.file_manager import FileManager
from splurge_credential_rotator.models import RotationOutcome, RotationRecord, SecretVersion
from splurge_credential_rotator.services import (
    FileSecretStore,
    LeaseManager,
    LocalIdentityProvider,
    RotationCoordinator,
    RotationHandler,
    RotationRecordService,
)
from splurge_credential_rotator.validation_utils import (
    validate_env_variable_name,
    validate_principal,
    validate_store_password_complexity,
)

logger = logging.getLogger(__name__)

_STORE_SALT = "secret-store"
_RECORD_SALT = "rotation-records"


class CredentialRotator:
    """File-based credential rotation using the local identity provider and secret store."""

    @classmethod
    def init_from_environment(
        cls,
        env_variable: str,
        data_dir: str,
        *,
        config: RotatorConfig | None = None
    ) -> "CredentialRotator":
        """Create a CredentialRotator whose store password comes from the environment.

        Args:
            env_variable: Environment variable name containing the store password
            data_dir: Directory to store rotator files
            config: Rotator configuration (optional)

        Returns:
            CredentialRotator instance

        Raises:
            ValidationError: If the variable name is invalid, the variable is
                missing or blank, or the password does not meet complexity rules
        """
        validate_env_variable_name(env_variable)

        store_password = os.getenv(env_variable)
        if store_password is None:
            raise ValidationError(f"Environment variable {env_variable} not set")

        if store_password.strip() == "":
            raise ValidationError(f"Environment variable {env_variable} is empty")

        return cls(store_password, data_dir, config=config)

    def __init__(
        self,
        store_password: str,
        data_dir: str,
        *,
        config: RotatorConfig | None = None
    ) -> None:
        """Initialize the Credential Rotator.

        Args:
            store_password: Password protecting secret material at rest. Must be
                at least 32 characters with uppercase, lowercase, numeric and
                symbol characters.
            data_dir: Directory to store rotator files
            config: Rotator configuration (default: read from SCR_* environment variables)

        Raises:
            ValidationError: If data_dir is blank or the password is not acceptable
        """
        if data_dir is None or data_dir.strip() == "":
            raise ValidationError("Data directory cannot be empty")

        validate_store_password_complexity(store_password)

        self._config = config or RotatorConfig.from_environment()
        self._file_manager = FileManager(data_dir)

        store_cipher = self._cipher(store_password, _STORE_SALT)
        record_cipher = self._cipher(store_password, _RECORD_SALT)

        self._provider = LocalIdentityProvider(self._file_manager)
        self._store = FileSecretStore(self._file_manager, store_cipher)
        self._records = RotationRecordService(
            self._file_manager,
            cipher=record_cipher,
            max_history=self._config.max_history,
        )
        self._leases = LeaseManager(self._file_manager, ttl=self._config.lease_ttl)
        self._coordinator = RotationCoordinator(
            self._provider,
            self._store,
            self._records,
            self._leases,
            config=self._config,
        )
        self._handler = RotationHandler(self._coordinator, config=self._config)

        removed = self._file_manager.cleanup_temp_files()
        if removed:
            logger.info(f"Removed {removed} leftover temporary file(s)")

    def _cipher(self, password: str, salt_name: str) -> SecretCipher:
        salt = self._file_manager.load_or_create_salt(salt_name, CryptoUtils.generate_salt)
        return SecretCipher.from_password(password, salt, iterations=self._config.iterations)

    def rotate(self, principal: str, *, force: bool = False) -> RotationOutcome:
        """Rotate a single principal's credential."""
        return self._coordinator.rotate(principal, force=force)

    def handle(
        self,
        principal_or_batch: Union[str, Iterable[str]],
        *,
        force: bool = False
    ) -> list[RotationOutcome]:
        """Rotate one principal or a batch of principals."""
        return self._handler.handle(principal_or_batch, force=force)

    def reconcile(self, principal_or_batch: Union[str, Iterable[str]]) -> list[RotationOutcome]:
        """Run reconciliation for one principal or a batch."""
        return self._handler.reconcile(principal_or_batch)

    def read_current(self, principal: str) -> SecretVersion | None:
        """Read the currently published secret version for a principal."""
        return self._store.read_current(principal)

    def status(self, principal: str) -> dict[str, Any]:
        """Describe a principal's published version, ACTIVE credentials and record.

        Secret material is not included.
        """
        validate_principal(principal)
        current = self._store.read_current(principal)
        active = sorted(self._provider.list_active(principal), key=lambda c: c.created_at)
        record = self._records.load(principal)
        return {
            "principal": principal,
            "published": current.to_dict() if current else None,
            "active_credentials": [credential.to_dict() for credential in active],
            "rotation_in_progress": self._leases.is_held(principal),
            "last_rotation": {
                "rotation_id": record.rotation_id,
                "state": record.state.value,
                "outcome": record.outcome,
                "new_credential_id": record.new_credential_id,
                "pending_retirement": record.pending_retirement,
                "updated_at": record.updated_at.isoformat(),
            } if record else None,
        }

    def list_principals(self) -> list[str]:
        """List principals with a published secret."""
        return self._file_manager.list_published_principals()

    def get_rotation_history(
        self,
        *,
        principal: str | None = None,
        limit: int | None = None
    ) -> list[RotationRecord]:
        """Get finished rotation records, oldest first."""
        return self._records.history(principal=principal, limit=limit)

    @property
    def data_directory(self) -> str:
        return str(self._file_manager.data_directory)

    @property
    def config(self) -> RotatorConfig:
        return self._config

    @property
    def coordinator(self) -> RotationCoordinator:
        return self._coordinator

    @property
    def identity_provider(self) -> LocalIdentityProvider:
        return self._provider

    @property
    def secret_store(self) -> FileSecretStore:
        return self._store
