#!/usr/bin/env python3
"""Functional tests for the CLI using actual subprocess calls."""

import os
import shutil
import tempfile
import unittest

from tests.test_utility import STORE_PASSWORD, run_cli_command


class TestCLIFunctional(unittest.TestCase):
    """Functional tests for the CLI using actual subprocess calls."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.env = dict(os.environ)
        self.env.update({
            "SCR_STORE_PASSWORD": STORE_PASSWORD,
            "SCR_ITERATIONS": "10000",
            "SCR_BASE_DELAY": "0",
            "SCR_MAX_DELAY": "0",
        })

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def cli(self, *args):
        return run_cli_command(["-ep", "SCR_STORE_PASSWORD", "-d", self.temp_dir] + list(args), env=self.env)

    def test_rotation_workflow(self):
        """Test bootstrap, forced rotation, status and history end to end."""
        code, first = self.cli("rotate", "-n", "svc1")
        self.assertEqual(code, 0)
        first_id = first["outcomes"][0]["new_credential_id"]

        code, second = self.cli("rotate", "-n", "svc1", "--force")
        self.assertEqual(code, 0)
        outcome = second["outcomes"][0]
        self.assertEqual(outcome["old_credential_ids"], [first_id])
        self.assertEqual(outcome["version"], 2)

        code, status = self.cli("status", "-n", "svc1")
        self.assertEqual(code, 0)
        self.assertEqual([c["credential_id"] for c in status["active_credentials"]], [outcome["new_credential_id"]])

        code, history = self.cli("history", "-n", "svc1")
        self.assertEqual(code, 0)
        self.assertEqual(history["count"], 2)

    def test_read_reveal(self):
        """Test reading the published secret."""
        self.cli("rotate", "-n", "svc1")

        code, result = self.cli("read", "-n", "svc1", "--reveal")

        self.assertEqual(code, 0)
        self.assertEqual(result["version"], 1)
        self.assertTrue(result["secret"])

    def test_concurrent_invocation_rejected(self):
        """Test that a held lease makes the CLI report rejection."""
        self.cli("rotate", "-n", "svc1")
        lease = os.path.join(self.temp_dir, "leases", "svc1.lease")
        with open(lease, "w", encoding="utf-8") as f:
            f.write('{"token": "other", "pid": 1, "expires_at": 9999999999}')

        code, result = self.cli("rotate", "-n", "svc1", "--force")

        self.assertEqual(code, 1)
        self.assertEqual(result["outcomes"][0]["status"], "rejected")

    def test_invalid_password_env(self):
        """Test a missing password variable."""
        code, result = run_cli_command(
            ["-ep", "SCR_MISSING_PASSWORD", "-d", self.temp_dir, "rotate", "-n", "svc1"],
            env=self.env,
        )

        self.assertEqual(code, 1)
        self.assertEqual(result["error_code"], "validation_error")

    def test_data_dir(self):
        """Test the data-dir command."""
        code, result = run_cli_command(["-d", self.temp_dir, "data-dir"], env=self.env)

        self.assertEqual(code, 0)
        self.assertEqual(result["data_dir"], self.temp_dir)


if __name__ == "__main__":
    unittest.main()
