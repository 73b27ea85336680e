"""Validation utilities for the credential rotator package."""

from splurge_credential_rotator.constants import Constants
from splurge_credential_rotator.exceptions import ValidationError


def validate_store_password_complexity(password: str) -> None:
    """Validate store password complexity requirements.

    Enforces minimum length, maximum length, and character class requirements.

    Args:
        password: Store password to validate

    Raises:
        ValidationError: If password doesn't meet complexity requirements
    """
    if password is None:
        raise ValidationError("Store password cannot be None")

    if len(password) < Constants.MIN_PASSWORD_LENGTH():
        raise ValidationError(
            f"Store password must be at least {Constants.MIN_PASSWORD_LENGTH()} characters long"
        )

    if len(password) > Constants.MAX_PASSWORD_LENGTH():
        raise ValidationError(
            f"Store password must be less than {Constants.MAX_PASSWORD_LENGTH()} characters long"
        )

    if not any(c in Constants.ALLOWABLE_ALPHA_UPPER() for c in password):
        raise ValidationError(
            "Store password must contain at least one uppercase letter"
        )

    if not any(c in Constants.ALLOWABLE_ALPHA_LOWER() for c in password):
        raise ValidationError(
            "Store password must contain at least one lowercase letter"
        )

    if not any(c in Constants.ALLOWABLE_DIGITS() for c in password):
        raise ValidationError(
            "Store password must contain at least one numeric character"
        )

    if not any(c in Constants.ALLOWABLE_SPECIAL() for c in password):
        raise ValidationError(
            "Store password must contain at least one special character"
        )


def validate_principal(principal: str) -> None:
    """Validate a principal identifier.

    Principals name files in the local backends, so only a conservative
    character set is accepted.

    Args:
        principal: Principal identifier to validate

    Raises:
        ValidationError: If the principal is not acceptable
    """
    if principal is None:
        raise ValidationError("Principal cannot be None")

    if not isinstance(principal, str):
        raise ValidationError("Principal must be a string")

    if principal == "":
        raise ValidationError("Principal cannot be empty")

    if principal.strip() == "":
        raise ValidationError("Principal cannot contain only whitespace")

    if len(principal) > Constants.MAX_PRINCIPAL_LENGTH():
        raise ValidationError(
            f"Principal is too long (maximum {Constants.MAX_PRINCIPAL_LENGTH()} characters)"
        )

    if principal in (".", ".."):
        raise ValidationError("Principal cannot be a relative path component")

    invalid = sorted({c for c in principal if c not in Constants.PRINCIPAL_CHARACTERS()})
    if invalid:
        raise ValidationError(f"Principal contains invalid characters: {''.join(invalid)!r}")


def validate_env_variable_name(env_variable: str) -> None:
    """Validate the name of an environment variable supplying a secret.

    Args:
        env_variable: Environment variable name

    Raises:
        ValidationError: If the name is None, empty or whitespace
    """
    if env_variable is None:
        raise ValidationError("Environment variable name cannot be None")

    if env_variable == "":
        raise ValidationError("Environment variable name cannot be empty")

    if env_variable.strip() == "":
        raise ValidationError("Environment variable name cannot contain only whitespace")
