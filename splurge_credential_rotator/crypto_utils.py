"""Cryptographic utilities for the Splurge Credential Rotator."""

import base64
import hmac
import secrets

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from splurge_credential_rotator.constants import Constants
from splurge_credential_rotator.exceptions import EncryptionError
from splurge_credential_rotator.exceptions import ValidationError


class CryptoUtils:
    """Cryptographic helpers for credential material and at-rest encryption."""

    _KEY_SIZE_BYTES = 32  # 256 bits
    _CREDENTIAL_ID_PREFIX = "ak-"
    _CREDENTIAL_ID_HEX_LENGTH = 20
    _SECRET_MATERIAL_BYTES = 32

    @staticmethod
    def constant_time_compare(a: str | bytes, b: str | bytes) -> bool:
        """Perform constant-time comparison of two secrets.

        Args:
            a: First value
            b: Second value

        Returns:
            True if values are equal, False otherwise
        """
        if isinstance(a, str):
            a = a.encode("utf-8")
        if isinstance(b, str):
            b = b.encode("utf-8")
        return hmac.compare_digest(a, b)

    @classmethod
    def generate_credential_id(cls) -> str:
        """Generate a provider-style opaque credential identifier."""
        return cls._CREDENTIAL_ID_PREFIX + secrets.token_hex(cls._CREDENTIAL_ID_HEX_LENGTH // 2)

    @classmethod
    def generate_secret_material(cls) -> str:
        """Generate URL-safe random secret material for a new credential."""
        return secrets.token_urlsafe(cls._SECRET_MATERIAL_BYTES)

    @classmethod
    def generate_salt(cls) -> bytes:
        """Generate a random salt.

        Returns:
            Random salt as bytes
        """
        return secrets.token_bytes(Constants.SALT_SIZE())

    @classmethod
    def derive_key_from_password(
        cls,
        password: str,
        salt: bytes,
        *,
        iterations: Optional[int] = None
    ) -> bytes:
        """Derive a key from a password using PBKDF2-HMAC-SHA256.

        Args:
            password: Password to derive key from
            salt: Salt for key derivation
            iterations: Number of iterations (default: Constants.DEFAULT_ITERATIONS)

        Returns:
            Derived key as bytes

        Raises:
            EncryptionError: If key derivation fails
            ValidationError: If parameters are invalid
        """
        if not password or not isinstance(password, str):
            raise ValidationError("Password must be a non-empty string")

        if not salt or len(salt) < Constants.SALT_SIZE():
            raise ValidationError(f"Salt must be at least {Constants.SALT_SIZE()} bytes")

        if iterations is None:
            iterations = Constants.DEFAULT_ITERATIONS()
        elif iterations < Constants.MIN_ITERATIONS():
            raise ValidationError(f"Iterations must be at least {Constants.MIN_ITERATIONS()}")

        try:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=cls._KEY_SIZE_BYTES,
                salt=salt,
                iterations=iterations,
            )
            return kdf.derive(password.encode("utf-8"))
        except Exception as e:
            raise EncryptionError(f"Key derivation failed: {e}") from e


class SecretCipher:
    """Fernet cipher for secret material persisted by the local backends.

    The cipher key is derived from an operator-supplied password, so
    rotating that password means re-deriving with a new salt.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != CryptoUtils._KEY_SIZE_BYTES:
            raise ValidationError(f"Key must be exactly {CryptoUtils._KEY_SIZE_BYTES} bytes")
        self._fernet = Fernet(base64.urlsafe_b64encode(key))

    @classmethod
    def from_password(
        cls,
        password: str,
        salt: bytes,
        *,
        iterations: Optional[int] = None
    ) -> "SecretCipher":
        """Build a cipher from a password and salt."""
        return cls(CryptoUtils.derive_key_from_password(password, salt, iterations=iterations))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt secret material, returning a Fernet token string.

        Raises:
            ValidationError: If plaintext is empty
            EncryptionError: If encryption fails
        """
        if not plaintext:
            raise ValidationError("Plaintext cannot be empty")
        try:
            return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")
        except Exception as e:
            raise EncryptionError(f"Encryption failed: {e}") from e

    def decrypt(self, token: str) -> str:
        """Decrypt a Fernet token string produced by ``encrypt``.

        Raises:
            ValidationError: If token is empty
            EncryptionError: If the token is invalid or was made with another key
        """
        if not token:
            raise ValidationError("Encrypted data cannot be empty")
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as e:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from e
        except Exception as e:
            raise EncryptionError(f"Decryption failed: {e}") from e
