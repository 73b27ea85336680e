#!/usr/bin/env python3
"""Unit tests for FileManager."""

import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from splurge_credential_rotator.exceptions import FileOperationError
from splurge_credential_rotator.file_manager import FileManager
from splurge_credential_rotator.models import RecordState, RotationRecord


class TestFileManager:
    """Test FileManager layout and atomic persistence."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for testing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            yield temp_dir

    @pytest.fixture
    def file_manager(self, temp_dir):
        """Create a FileManager instance."""
        return FileManager(temp_dir)

    def test_creates_layout(self, file_manager, temp_dir):
        """Test that all subdirectories are created."""
        for name in ("identity", "secrets", "records", "leases"):
            assert (Path(temp_dir) / name).is_dir()
        assert file_manager.data_directory == Path(temp_dir)
        assert file_manager.leases_directory == Path(temp_dir) / "leases"

    def test_identity_round_trip(self, file_manager):
        """Test saving and reading a credential inventory."""
        assert file_manager.read_identity("svc1") is None

        file_manager.save_identity("svc1", {"credentials": [], "version": "1.0"})

        assert file_manager.read_identity("svc1") == {"credentials": [], "version": "1.0"}

    def test_list_published_principals(self, file_manager):
        """Test listing principals with a secret slot."""
        file_manager.save_secret_slot("svc2", {"credential_id": "ak-2"})
        file_manager.save_secret_slot("svc1", {"credential_id": "ak-1"})

        assert file_manager.list_published_principals() == ["svc1", "svc2"]

    def test_atomic_write_leaves_no_temp_files(self, file_manager, temp_dir):
        """Test that successful writes leave no temporary files behind."""
        file_manager.save_secret_slot("svc1", {"credential_id": "ak-1"})

        assert list(Path(temp_dir).rglob("*.temp")) == []

    def test_atomic_write_failure_preserves_previous_content(self, file_manager):
        """Test that a failed write keeps the old file intact."""
        file_manager.save_secret_slot("svc1", {"credential_id": "ak-1"})

        with patch("splurge_credential_rotator.file_manager.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(FileOperationError):
                file_manager.save_secret_slot("svc1", {"credential_id": "ak-2"})

        assert file_manager.read_secret_slot("svc1") == {"credential_id": "ak-1"}
        assert list(file_manager.data_directory.rglob("*.temp")) == []

    def test_corrupt_json_raises(self, file_manager):
        """Test that unreadable JSON raises FileOperationError."""
        file_manager.secret_file_path("svc1").write_text("{not json", encoding="utf-8")

        with pytest.raises(FileOperationError):
            file_manager.read_secret_slot("svc1")

    def test_rotation_record_round_trip(self, file_manager):
        """Test saving, reading and deleting a rotation record."""
        record = RotationRecord(rotation_id="r1", principal="svc1", old_credential_ids=["ak-1"])
        record.mark(RecordState.MINTED)

        file_manager.save_rotation_record(record)
        loaded = file_manager.read_rotation_record("svc1")

        assert loaded.rotation_id == "r1"
        assert loaded.state == RecordState.MINTED

        file_manager.delete_rotation_record("svc1")
        assert file_manager.read_rotation_record("svc1") is None

    def test_unparsable_rotation_record(self, file_manager):
        """Test that a record missing required fields is reported."""
        file_manager.record_file_path("svc1").write_text(json.dumps({"state": "minted"}), encoding="utf-8")

        with pytest.raises(FileOperationError):
            file_manager.read_rotation_record("svc1")

    def test_rotation_history_is_bounded(self, file_manager):
        """Test that only the newest history entries are kept."""
        for index in range(5):
            record = RotationRecord(rotation_id=f"r{index}", principal="svc1")
            file_manager.append_rotation_history(record, max_entries=3)

        history = file_manager.read_rotation_history()

        assert [entry.rotation_id for entry in history] == ["r2", "r3", "r4"]
        data = json.loads(file_manager.rotation_history_file_path.read_text(encoding="utf-8"))
        assert data["version"] == "1.0"

    def test_load_or_create_salt(self, file_manager):
        """Test that a salt is created once and then reused."""
        calls = []

        def factory():
            calls.append(1)
            return b"x" * 32

        first = file_manager.load_or_create_salt("secret-store", factory)
        second = file_manager.load_or_create_salt("secret-store", factory)

        assert first == second == b"x" * 32
        assert len(calls) == 1
        assert file_manager.load_or_create_salt("rotation-records", lambda: b"y" * 32) == b"y" * 32

    def test_cleanup_temp_files(self, file_manager):
        """Test removal of leftovers from interrupted writes."""
        (file_manager.data_directory / "secrets" / "svc1.secret.json.abc.temp").write_text("{}")
        (file_manager.data_directory / "keyring.json.def.temp").write_text("{}")

        assert file_manager.cleanup_temp_files() == 2
        assert list(file_manager.data_directory.rglob("*.temp")) == []
