"""Tests for rotator configuration."""

import unittest

from splurge_credential_rotator.config import DEFAULT_CONFIG, RotatorConfig
from splurge_credential_rotator.constants import Constants


class TestRotatorConfig(unittest.TestCase):
    """Test cases for RotatorConfig."""

    def test_defaults(self):
        """Test default values come from Constants."""
        config = RotatorConfig()

        self.assertEqual(config.max_attempts, Constants.DEFAULT_MAX_ATTEMPTS())
        self.assertEqual(config.max_publish_cycles, Constants.DEFAULT_MAX_PUBLISH_CYCLES())
        self.assertEqual(config.lease_ttl, Constants.DEFAULT_LEASE_TTL())
        self.assertTrue(config.verify_after_publish)
        self.assertEqual(DEFAULT_CONFIG, config)

    def test_invalid_values_rejected(self):
        """Test validation in __post_init__."""
        invalid = [
            {"max_attempts": 0},
            {"base_delay": -1},
            {"base_delay": 2.0, "max_delay": 1.0},
            {"max_publish_cycles": 0},
            {"lease_ttl": 0},
            {"min_rotation_interval": -1},
            {"max_workers": 0},
            {"max_history": 0},
            {"iterations": Constants.MIN_ITERATIONS() - 1},
        ]
        for overrides in invalid:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValueError):
                    RotatorConfig(**overrides)

    def test_from_environment(self):
        """Test overriding fields from environment variables."""
        config = RotatorConfig.from_environment(environ={
            "SCR_MAX_ATTEMPTS": "5",
            "SCR_BASE_DELAY": "0.25",
            "SCR_VERIFY_AFTER_PUBLISH": "false",
            "SCR_LEASE_TTL": " ",
            "UNRELATED": "1",
        })

        self.assertEqual(config.max_attempts, 5)
        self.assertEqual(config.base_delay, 0.25)
        self.assertFalse(config.verify_after_publish)
        self.assertEqual(config.lease_ttl, Constants.DEFAULT_LEASE_TTL())

    def test_from_environment_custom_prefix(self):
        """Test reading with a different prefix."""
        config = RotatorConfig.from_environment(prefix="APP_", environ={"APP_MAX_WORKERS": "2"})

        self.assertEqual(config.max_workers, 2)

    def test_from_environment_bad_values(self):
        """Test unparsable environment values."""
        with self.assertRaises(ValueError):
            RotatorConfig.from_environment(environ={"SCR_MAX_ATTEMPTS": "many"})
        with self.assertRaises(ValueError):
            RotatorConfig.from_environment(environ={"SCR_VERIFY_AFTER_PUBLISH": "maybe"})
        with self.assertRaises(ValueError):
            RotatorConfig.from_environment(environ={"SCR_MAX_ATTEMPTS": "0"})


if __name__ == "__main__":
    unittest.main()
