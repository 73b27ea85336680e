"""Custom exceptions for the Splurge Credential Rotator."""


class CredentialRotatorError(Exception):
    """Base exception for all Credential Rotator errors."""

    error_code = "rotator_error"


class ValidationError(CredentialRotatorError):
    """Raised when input validation fails."""

    error_code = "validation_error"


class FileOperationError(CredentialRotatorError):
    """Raised when file operations fail."""

    error_code = "file_operation_error"


class EncryptionError(CredentialRotatorError):
    """Raised when encryption/decryption operations fail."""

    error_code = "encryption_error"


class ProviderUnavailableError(CredentialRotatorError):
    """Raised when a mint/list/revoke call to the identity provider fails."""

    error_code = "provider_unavailable"


class CredentialNotFoundError(CredentialRotatorError):
    """Raised when the identity provider does not know a credential id."""

    error_code = "credential_not_found"


class StoreUnavailableError(CredentialRotatorError):
    """Raised when a publish/read call to the secret store fails."""

    error_code = "store_unavailable"


class VerificationMismatchError(StoreUnavailableError):
    """Raised when the store read-back does not match what was published."""

    error_code = "verification_mismatch"


class ConcurrentRotationRejectedError(CredentialRotatorError):
    """Raised when another rotation holds the principal's lease."""

    error_code = "concurrent_rotation_rejected"


class OrphanedCredentialCleanupFailedError(CredentialRotatorError):
    """Raised when revoking an abandoned, never-published credential fails."""

    error_code = "orphaned_credential_cleanup_failed"


class RotationRecordError(CredentialRotatorError):
    """Raised when rotation record operations fail."""

    error_code = "rotation_record_error"
