"""Splurge Credential Rotator - safe credential rotation with rollback.

This package rotates the credential of a principal by minting a new one,
publishing it to a secret store and only then retiring its predecessor, so
callers are never left without a valid credential.
"""

from importlib.metadata import PackageNotFoundError, version

from splurge_credential_rotator.config import RotatorConfig
from splurge_credential_rotator.credential_rotator import CredentialRotator
from splurge_credential_rotator.exceptions import (
    ConcurrentRotationRejectedError,
    CredentialNotFoundError,
    CredentialRotatorError,
    EncryptionError,
    FileOperationError,
    OrphanedCredentialCleanupFailedError,
    ProviderUnavailableError,
    RotationRecordError,
    StoreUnavailableError,
    ValidationError,
    VerificationMismatchError,
)
from splurge_credential_rotator.models import (
    Credential,
    CredentialStatus,
    RotationOutcome,
    RotationPhase,
    RotationStatus,
    SecretVersion,
)
from splurge_credential_rotator.services import (
    IdentityProvider,
    RotationCoordinator,
    RotationHandler,
    SecretStore,
)

try:
    __version__ = version("splurge-credential-rotator")
except PackageNotFoundError:
    # Running from a source checkout
    __version__ = "unknown"

__all__ = [
    "ConcurrentRotationRejectedError",
    "Credential",
    "CredentialNotFoundError",
    "CredentialRotator",
    "CredentialRotatorError",
    "CredentialStatus",
    "EncryptionError",
    "FileOperationError",
    "IdentityProvider",
    "OrphanedCredentialCleanupFailedError",
    "ProviderUnavailableError",
    "RotationCoordinator",
    "RotationHandler",
    "RotationOutcome",
    "RotationPhase",
    "RotationRecordError",
    "RotationStatus",
    "RotatorConfig",
    "SecretStore",
    "SecretVersion",
    "StoreUnavailableError",
    "ValidationError",
    "VerificationMismatchError",
]
