"""Services package for Splurge Credential Rotator."""

from splurge_credential_rotator.services.identity_provider import IdentityProvider, LocalIdentityProvider
from splurge_credential_rotator.services.lease_service import Lease, LeaseManager
from splurge_credential_rotator.services.record_service import RotationRecordService
from splurge_credential_rotator.services.secret_store import FileSecretStore, SecretStore
from splurge_credential_rotator.services.rotation import RotationCoordinator, RotationHandler

__all__ = [
    "FileSecretStore",
    "IdentityProvider",
    "Lease",
    "LeaseManager",
    "LocalIdentityProvider",
    "RotationCoordinator",
    "RotationHandler",
    "RotationRecordService",
    "SecretStore",
]
