"""File management utilities for the local rotator state with atomic writes."""

import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Optional

from splurge_credential_rotator.exceptions import FileOperationError
from splurge_credential_rotator.models import RotationRecord

logger = logging.getLogger(__name__)


class FileManager:
    """Manages file operations for the rotator data directory with atomic operations.

    Layout::

        <data_dir>/keyring.json
        <data_dir>/rotation-history.json
        <data_dir>/identity/<principal>.credentials.json
        <data_dir>/secrets/<principal>.secret.json
        <data_dir>/records/<principal>.record.json
        <data_dir>/leases/<principal>.lease
    """

    def __init__(
        self,
        data_dir: str
    ):
        """Initialize the file manager.

        Args:
            data_dir: Directory to store rotator files
        """
        self._data_dir = Path(data_dir)
        self._keyring_file = self._data_dir / "keyring.json"
        self._rotation_history_file = self._data_dir / "rotation-history.json"
        self._identity_dir = self._data_dir / "identity"
        self._secrets_dir = self._data_dir / "secrets"
        self._records_dir = self._data_dir / "records"
        self._leases_dir = self._data_dir / "leases"
        self._keyring_lock = threading.Lock()
        self._history_lock = threading.Lock()
        self._ensure_data_directory()

    def _ensure_data_directory(self) -> None:
        """Ensure the data directory and its subdirectories exist."""
        try:
            for directory in (
                self._data_dir,
                self._identity_dir,
                self._secrets_dir,
                self._records_dir,
                self._leases_dir,
            ):
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"Failed to create data directory {self._data_dir}: {e}") from e

    def _write_json_atomic(
        self,
        file_path: Path,
        data: dict[str, Any]
    ) -> None:
        """Write JSON data atomically using a temporary file and rename.

        Readers see either the previous content or the new content, never a
        partial file.

        Args:
            file_path: Path to the target file
            data: Data to write

        Raises:
            FileOperationError: If write operation fails
        """
        temp_file = file_path.with_name(f"{file_path.name}.{uuid.uuid4().hex}.temp")

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)

            with temp_file.open("w", encoding="utf-8") as f:
                json.dump(
                    data,
                    f,
                    indent=2,
                    ensure_ascii=False
                )
                f.flush()
                os.fsync(f.fileno())

            self._set_secure_permissions(temp_file)
            os.replace(temp_file, file_path)

        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise FileOperationError(f"Failed to write file {file_path}: {e}") from e

    def _read_json(self, file_path: Path) -> Optional[dict[str, Any]]:
        """Read JSON data from file.

        Args:
            file_path: Path to the file to read

        Returns:
            JSON data as dictionary, or None if file doesn't exist

        Raises:
            FileOperationError: If read operation fails
        """
        if not file_path.exists():
            return None

        try:
            with file_path.open(encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except Exception as e:
            raise FileOperationError(f"Failed to read file {file_path}: {e}") from e

    def _delete(self, file_path: Path) -> None:
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            raise FileOperationError(f"Failed to delete file {file_path}: {e}") from e

    # Identity provider state

    def save_identity(self, principal: str, data: dict[str, Any]) -> None:
        """Save a principal's credential inventory atomically."""
        self._write_json_atomic(self.identity_file_path(principal), data)

    def read_identity(self, principal: str) -> Optional[dict[str, Any]]:
        """Read a principal's credential inventory, or None if never minted."""
        return self._read_json(self.identity_file_path(principal))

    # Secret store slots

    def save_secret_slot(self, principal: str, data: dict[str, Any]) -> None:
        """Overwrite a principal's published secret slot atomically."""
        self._write_json_atomic(self.secret_file_path(principal), data)

    def read_secret_slot(self, principal: str) -> Optional[dict[str, Any]]:
        """Read a principal's published secret slot, or None if never published."""
        return self._read_json(self.secret_file_path(principal))

    def list_published_principals(self) -> list[str]:
        """List principals that have a published secret slot."""
        return sorted(
            path.name[: -len(".secret.json")]
            for path in self._secrets_dir.glob("*.secret.json")
        )

    # Rotation records

    def save_rotation_record(self, record: RotationRecord) -> None:
        """Save the in-flight or most recent rotation record of a principal."""
        self._write_json_atomic(self.record_file_path(record.principal), record.to_dict())

    def read_rotation_record(self, principal: str) -> Optional[RotationRecord]:
        """Read the rotation record of a principal.

        Raises:
            FileOperationError: If the record cannot be read or parsed
        """
        data = self._read_json(self.record_file_path(principal))
        if data is None:
            return None

        try:
            return RotationRecord.from_dict(data)
        except Exception as e:
            raise FileOperationError(f"Failed to parse rotation record for {principal}: {e}") from e

    def delete_rotation_record(self, principal: str) -> None:
        """Delete the rotation record of a principal."""
        self._delete(self.record_file_path(principal))

    def save_rotation_history(self, history: list[RotationRecord]) -> None:
        """Save rotation history to file atomically."""
        data = {
            "rotation_history": [entry.to_dict() for entry in history],
            "version": "1.0",
        }
        self._write_json_atomic(self._rotation_history_file, data)

    def read_rotation_history(self) -> list[RotationRecord]:
        """Read rotation history from file.

        Raises:
            FileOperationError: If read operation fails
        """
        data = self._read_json(self._rotation_history_file)
        if data is None:
            return []

        try:
            return [RotationRecord.from_dict(entry) for entry in data.get("rotation_history", [])]
        except Exception as e:
            raise FileOperationError(f"Failed to parse rotation history: {e}") from e

    def append_rotation_history(self, record: RotationRecord, *, max_entries: int) -> None:
        """Append a finished record to the history, keeping the newest entries."""
        with self._history_lock:
            history = self.read_rotation_history()
            history.append(record)
            if len(history) > max_entries:
                history = history[-max_entries:]
            self.save_rotation_history(history)

    # Keyring

    def load_or_create_salt(self, name: str, factory) -> bytes:
        """Return the named salt, creating and persisting it on first use.

        Args:
            name: Salt name (e.g. "secret-store")
            factory: Callable returning fresh salt bytes

        Returns:
            Salt bytes
        """
        with self._keyring_lock:
            data = self._read_json(self._keyring_file) or {"salts": {}, "version": "1.0"}
            salts = data.setdefault("salts", {})
            if name not in salts:
                salts[name] = factory().hex()
                self._write_json_atomic(self._keyring_file, data)
                logger.info("Created keyring salt", extra={"salt_name": name, "event": "salt_created"})
            try:
                return bytes.fromhex(salts[name])
            except ValueError as e:
                raise FileOperationError(f"Corrupt salt {name!r} in {self._keyring_file}") from e

    def cleanup_temp_files(self) -> int:
        """Remove temporary files left behind by interrupted writes.

        Returns:
            Number of files removed
        """
        removed = 0
        for temp_file in self._data_dir.rglob("*.temp"):
            try:
                temp_file.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove temporary file {temp_file}: {e}")
        return removed

    def _set_secure_permissions(self, file_path: Path) -> None:
        """Set secure file permissions (owner read/write only)."""
        try:
            os.chmod(file_path, 0o600)
        except OSError:
            # Not supported on every platform
            pass

    def identity_file_path(self, principal: str) -> Path:
        return self._identity_dir / f"{principal}.credentials.json"

    def secret_file_path(self, principal: str) -> Path:
        return self._secrets_dir / f"{principal}.secret.json"

    def record_file_path(self, principal: str) -> Path:
        return self._records_dir / f"{principal}.record.json"

    def lease_file_path(self, principal: str) -> Path:
        return self._leases_dir / f"{principal}.lease"

    @property
    def data_directory(self) -> Path:
        """Get the data directory path."""
        return self._data_dir

    @property
    def rotation_history_file_path(self) -> Path:
        """Get the rotation history file path."""
        return self._rotation_history_file

    @property
    def leases_directory(self) -> Path:
        """Get the leases directory path."""
        return self._leases_dir
