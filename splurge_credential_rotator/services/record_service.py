"""Durable rotation records: resume markers and audit history."""

import logging
import uuid
from typing import Optional

from splurge_credential_rotator.crypto_utils import SecretCipher
from splurge_credential_rotator.exceptions import (
    EncryptionError,
    FileOperationError,
    RotationRecordError,
)
from splurge_credential_rotator.file_manager import FileManager
from splurge_credential_rotator.models import RecordState, RotationRecord

logger = logging.getLogger(__name__)


class RotationRecordService:
    """Persists one RotationRecord per principal plus a bounded history.

    The minted secret is kept encrypted in the record between Mint and
    Publish so an interrupted rotation can publish the same credential
    instead of minting another. Without a cipher the material is not
    persisted and such a rotation can only be abandoned.
    """

    def __init__(
        self,
        file_manager: FileManager,
        *,
        cipher: Optional[SecretCipher] = None,
        max_history: int = 100
    ):
        """Initialize the record service.

        Args:
            file_manager: File manager instance for data persistence
            cipher: Cipher for the pending secret material (optional)
            max_history: Number of finished records kept in the history
        """
        self._file_manager = file_manager
        self._cipher = cipher
        self._max_history = max_history

    def start(self, principal: str, old_credential_ids: list[str]) -> RotationRecord:
        """Create and persist a new record in the STARTED state."""
        record = RotationRecord(
            rotation_id=str(uuid.uuid4()),
            principal=principal,
            old_credential_ids=sorted(old_credential_ids),
        )
        record.mark(RecordState.STARTED)
        self.save(record)
        return record

    def load(self, principal: str) -> Optional[RotationRecord]:
        """Load the principal's current record.

        Raises:
            RotationRecordError: If the record exists but cannot be read
        """
        try:
            return self._file_manager.read_rotation_record(principal)
        except FileOperationError as e:
            raise RotationRecordError(str(e)) from e

    def save(self, record: RotationRecord) -> None:
        """Persist the record.

        Raises:
            RotationRecordError: If the record cannot be written
        """
        try:
            self._file_manager.save_rotation_record(record)
        except FileOperationError as e:
            raise RotationRecordError(str(e)) from e

    def advance(self, record: RotationRecord, state: RecordState) -> None:
        """Mark a new phase and persist it before moving on."""
        record.mark(state)
        self.save(record)

    def finish(
        self,
        record: RotationRecord,
        state: RecordState,
        *,
        outcome: str,
        error: str | None = None
    ) -> None:
        """Persist a terminal (or partial) state and append it to the history."""
        record.pending_secret = None
        record.outcome = outcome
        record.error = error
        record.mark(state)
        self.save(record)
        try:
            self._file_manager.append_rotation_history(record, max_entries=self._max_history)
        except FileOperationError as e:
            logger.warning(f"Failed to append rotation history: {e}", extra={
                "principal": record.principal,
                "rotation_id": record.rotation_id,
                "event": "rotation_history_write_failed",
            })

    def seal_secret(self, record: RotationRecord, secret: str) -> None:
        """Attach the encrypted minted secret to the record (no-op without a cipher)."""
        if self._cipher is None:
            return
        try:
            record.pending_secret = self._cipher.encrypt(secret)
        except EncryptionError as e:
            logger.warning(f"Minted secret not persisted: {e}", extra={
                "principal": record.principal,
                "rotation_id": record.rotation_id,
                "event": "pending_secret_not_sealed",
            })

    def unseal_secret(self, record: RotationRecord) -> Optional[str]:
        """Recover the minted secret, or None if it was not persisted or cannot be decrypted."""
        if self._cipher is None or not record.pending_secret:
            return None
        try:
            return self._cipher.decrypt(record.pending_secret)
        except EncryptionError as e:
            logger.warning(f"Pending secret is unrecoverable: {e}", extra={
                "principal": record.principal,
                "rotation_id": record.rotation_id,
                "event": "pending_secret_unrecoverable",
            })
            return None

    def history(
        self,
        *,
        principal: str | None = None,
        limit: int | None = None
    ) -> list[RotationRecord]:
        """Return finished records, oldest first, optionally filtered by principal."""
        try:
            entries = self._file_manager.read_rotation_history()
        except FileOperationError as e:
            raise RotationRecordError(str(e)) from e
        if principal is not None:
            entries = [entry for entry in entries if entry.principal == principal]
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries
