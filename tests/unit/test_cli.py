"""Unit tests for the CLI module using real implementations."""

import json
import os
import shutil
import tempfile
import unittest
from io import StringIO
from unittest.mock import patch

from splurge_credential_rotator.cli import CredentialRotatorCLI
from tests.test_utility import STORE_PASSWORD


class TestCredentialRotatorCLIUnit(unittest.TestCase):
    """Unit tests for CredentialRotatorCLI using real implementations."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.cli = CredentialRotatorCLI()
        self.env = patch.dict(os.environ, {"SCR_ITERATIONS": "10000", "SCR_BASE_DELAY": "0", "SCR_MAX_DELAY": "0"})
        self.env.start()

    def tearDown(self):
        """Clean up test fixtures."""
        self.env.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def run_cli(self, *args):
        """Run the CLI in-process and return (exit code, parsed stdout or stderr)."""
        code = 0
        with patch("sys.stdout", new=StringIO()) as stdout, patch("sys.stderr", new=StringIO()) as stderr:
            try:
                self.cli.run(list(args))
            except SystemExit as e:
                code = e.code
        output = stdout.getvalue().strip() or stderr.getvalue().strip()
        return code, json.loads(output)

    def base_args(self):
        return ["-p", STORE_PASSWORD, "-d", self.temp_dir]

    def test_rotate_success(self):
        """Test the rotate command."""
        code, result = self.run_cli(*self.base_args(), "rotate", "-n", "svc1", "-n", "svc2")

        self.assertEqual(code, 0)
        self.assertTrue(result["success"])
        self.assertEqual(result["summary"], "success")
        self.assertEqual([o["principal"] for o in result["outcomes"]], ["svc1", "svc2"])
        self.assertEqual(result["outcomes"][0]["status"], "success")

    def test_rotate_twice_is_noop_unless_forced(self):
        """Test idempotence and --force."""
        self.run_cli(*self.base_args(), "rotate", "-n", "svc1")

        _, second = self.run_cli(*self.base_args(), "rotate", "-n", "svc1")
        _, forced = self.run_cli(*self.base_args(), "rotate", "-n", "svc1", "--force")

        self.assertEqual(second["outcomes"][0]["status"], "noop")
        self.assertEqual(forced["outcomes"][0]["status"], "success")
        self.assertEqual(forced["outcomes"][0]["version"], 2)

    def test_rotate_invalid_principal_fails_batch(self):
        """Test exit status 1 when one principal fails."""
        code, result = self.run_cli(*self.base_args(), "rotate", "-n", "svc1", "-n", "bad/name")

        self.assertEqual(code, 1)
        self.assertFalse(result["success"])
        self.assertEqual(result["outcomes"][1]["error_code"], "validation_error")

    def test_status_and_read(self):
        """Test status and read commands."""
        self.run_cli(*self.base_args(), "rotate", "-n", "svc1")

        _, status = self.run_cli(*self.base_args(), "status", "-n", "svc1")
        _, hidden = self.run_cli(*self.base_args(), "read", "-n", "svc1")
        _, revealed = self.run_cli(*self.base_args(), "read", "-n", "svc1", "--reveal")

        self.assertEqual(status["published"]["version"], 1)
        self.assertNotIn("secret", hidden)
        self.assertTrue(revealed["secret"])

    def test_read_unknown_principal(self):
        """Test reading a principal that was never published."""
        code, result = self.run_cli(*self.base_args(), "read", "-n", "nobody")

        self.assertEqual(code, 1)
        self.assertEqual(result["error_code"], "not_found")

    def test_reconcile_defaults_to_published_principals(self):
        """Test reconcile without names."""
        self.run_cli(*self.base_args(), "rotate", "-n", "svc1", "-n", "svc2")

        code, result = self.run_cli(*self.base_args(), "reconcile")

        self.assertEqual(code, 0)
        self.assertEqual([o["principal"] for o in result["outcomes"]], ["svc1", "svc2"])

    def test_history(self):
        """Test the history command."""
        self.run_cli(*self.base_args(), "rotate", "-n", "svc1")
        self.run_cli(*self.base_args(), "rotate", "-n", "svc1", "-f")

        _, result = self.run_cli(*self.base_args(), "history", "-n", "svc1", "-l", "1")

        self.assertEqual(result["count"], 1)
        self.assertEqual(result["history"][0]["state"], "completed")

    def test_env_password(self):
        """Test reading the store password from an environment variable."""
        with patch.dict(os.environ, {"MY_STORE_PASSWORD": STORE_PASSWORD}):
            code, result = self.run_cli("-ep", "MY_STORE_PASSWORD", "-d", self.temp_dir, "rotate", "-n", "svc1")

        self.assertEqual(code, 0)
        self.assertTrue(result["success"])

    def test_missing_password(self):
        """Test that a password source is required."""
        code, result = self.run_cli("-d", self.temp_dir, "status", "-n", "svc1")

        self.assertEqual(code, 1)
        self.assertEqual(result["error_code"], "validation_error")

    def test_both_passwords(self):
        """Test that password sources are mutually exclusive."""
        code, result = self.run_cli("-p", STORE_PASSWORD, "-ep", "X", "-d", self.temp_dir, "status", "-n", "svc1")

        self.assertEqual(code, 1)
        self.assertIn("Cannot specify both", result["message"])

    def test_weak_password(self):
        """Test complexity validation surfaces as a JSON error."""
        code, result = self.run_cli("-p", "weak", "-d", self.temp_dir, "rotate", "-n", "svc1")

        self.assertEqual(code, 1)
        self.assertEqual(result["error_code"], "validation_error")

    def test_no_command(self):
        """Test running without a command."""
        code, result = self.run_cli("-d", self.temp_dir)

        self.assertEqual(code, 1)
        self.assertEqual(result["error_code"], "missing_command")

    def test_data_dir_command(self):
        """Test that data-dir needs no password."""
        code, result = self.run_cli("-d", self.temp_dir, "data-dir")

        self.assertEqual(code, 0)
        self.assertEqual(result["data_dir"], self.temp_dir)

    def test_default_data_dir_from_environment(self):
        """Test SCR_DATA_DIR overrides the platform default."""
        with patch.dict(os.environ, {"SCR_DATA_DIR": self.temp_dir}):
            self.assertEqual(CredentialRotatorCLI()._default_data_dir(), self.temp_dir)


if __name__ == "__main__":
    unittest.main()
