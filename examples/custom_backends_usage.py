#!/usr/bin/env python3
"""Example: drive the coordinator with your own identity provider and secret store."""

import logging
import tempfile
from datetime import datetime, timezone

from splurge_credential_rotator import (
    Credential,
    CredentialNotFoundError,
    CredentialStatus,
    IdentityProvider,
    RotationCoordinator,
    SecretStore,
    SecretVersion,
)
from splurge_credential_rotator.crypto_utils import CryptoUtils
from splurge_credential_rotator.file_manager import FileManager
from splurge_credential_rotator.services import LeaseManager, RotationRecordService


class InMemoryProvider(IdentityProvider):
    """Provider keeping credentials in a dict, as an IAM API would."""

    def __init__(self):
        self.credentials: dict[str, Credential] = {}

    def mint(self, principal):
        credential = Credential(
            credential_id=CryptoUtils.generate_credential_id(),
            principal=principal,
            secret=CryptoUtils.generate_secret_material(),
        )
        self.credentials[credential.credential_id] = credential
        return credential

    def list_active(self, principal):
        return {
            Credential(credential_id=c.credential_id, principal=c.principal, status=c.status)
            for c in self.credentials.values()
            if c.principal == principal and c.is_active
        }

    def revoke(self, principal, credential_id):
        credential = self.credentials.get(credential_id)
        if credential is None or credential.principal != principal:
            raise CredentialNotFoundError(credential_id)
        credential.status = CredentialStatus.REVOKED


class InMemoryStore(SecretStore):
    """Single-slot secret store."""

    def __init__(self):
        self.slots: dict[str, SecretVersion] = {}

    def publish(self, principal, credential):
        current = self.slots.get(principal)
        if current is not None and current.credential_id == credential.credential_id:
            return current
        self.slots[principal] = SecretVersion(
            principal=principal,
            credential_id=credential.credential_id,
            secret=credential.secret,
            version=(current.version if current else 0) + 1,
            published_at=datetime.now(timezone.utc),
        )
        return self.slots[principal]

    def read_current(self, principal):
        return self.slots.get(principal)


def main():
    """Rotate against in-memory backends; records and leases stay on disk."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    provider = InMemoryProvider()
    store = InMemoryStore()

    with tempfile.TemporaryDirectory() as temp_dir:
        file_manager = FileManager(temp_dir)
        coordinator = RotationCoordinator(
            provider,
            store,
            RotationRecordService(file_manager),
            LeaseManager(file_manager, ttl=300),
        )

        for _ in range(2):
            outcome = coordinator.rotate("svc1", force=True)
            print(f"{outcome.status.value}: now serving {outcome.new_credential_id} (v{outcome.version})")

        active = [c.credential_id for c in provider.list_active("svc1")]
        print(f"ACTIVE credentials: {active}")


if __name__ == "__main__":
    main()
