"""Tests for validation utilities."""

import unittest

from splurge_credential_rotator.constants import Constants
from splurge_credential_rotator.exceptions import ValidationError
from splurge_credential_rotator.validation_utils import (
    validate_env_variable_name,
    validate_principal,
    validate_store_password_complexity,
)


class TestValidateStorePasswordComplexity(unittest.TestCase):
    """Test cases for validate_store_password_complexity."""

    def test_valid(self):
        """Test a password meeting every rule."""
        validate_store_password_complexity("TestStorePassword123!@#ComplexityRequired")

    def test_none(self):
        """Test None password."""
        with self.assertRaises(ValidationError) as cm:
            validate_store_password_complexity(None)
        self.assertIn("cannot be None", str(cm.exception))

    def test_too_short(self):
        """Test password below minimum length."""
        with self.assertRaises(ValidationError) as cm:
            validate_store_password_complexity("Short1!")
        self.assertIn(str(Constants.MIN_PASSWORD_LENGTH()), str(cm.exception))

    def test_too_long(self):
        """Test password above maximum length."""
        password = "Aa1!" * (Constants.MAX_PASSWORD_LENGTH() // 4 + 1)
        with self.assertRaises(ValidationError):
            validate_store_password_complexity(password)

    def test_missing_character_classes(self):
        """Test each required character class."""
        cases = {
            "uppercase": "testpassword123!@#complexityrequired",
            "lowercase": "TESTPASSWORD123!@#COMPLEXITYREQUIRED",
            "numeric": "TestPasswordNoDigits!@#ComplexityRequired",
            "special": "TestPassword123NoSpecialComplexityRequired",
        }
        for expected, password in cases.items():
            with self.subTest(missing=expected):
                with self.assertRaises(ValidationError) as cm:
                    validate_store_password_complexity(password)
                self.assertIn(expected, str(cm.exception))


class TestValidatePrincipal(unittest.TestCase):
    """Test cases for validate_principal."""

    def test_valid(self):
        """Test accepted principal names."""
        for principal in ("svc1", "billing-api", "user@example.com", "team.service_01"):
            with self.subTest(principal=principal):
                validate_principal(principal)

    def test_invalid(self):
        """Test rejected principal names."""
        for principal in (None, 42, "", "   ", ".", "..", "a/b", "a b", "a\\b",
                          "x" * (Constants.MAX_PRINCIPAL_LENGTH() + 1)):
            with self.subTest(principal=principal):
                with self.assertRaises(ValidationError):
                    validate_principal(principal)

    def test_invalid_characters_listed(self):
        """Test that offending characters are reported."""
        with self.assertRaises(ValidationError) as cm:
            validate_principal("svc/1")
        self.assertIn("/", str(cm.exception))


class TestValidateEnvVariableName(unittest.TestCase):
    """Test cases for validate_env_variable_name."""

    def test_valid(self):
        """Test an acceptable name."""
        validate_env_variable_name("SCR_STORE_PASSWORD")

    def test_invalid(self):
        """Test None, empty and blank names."""
        for name in (None, "", "  \t"):
            with self.subTest(name=name):
                with self.assertRaises(ValidationError):
                    validate_env_variable_name(name)


if __name__ == "__main__":
    unittest.main()
