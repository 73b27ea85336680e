#!/usr/bin/env python3
"""Example usage of the Credential Rotator with the local backends."""

import tempfile

from splurge_credential_rotator import CredentialRotator, RotatorConfig


def main():
    """Rotate a few principals and inspect the result."""

    with tempfile.TemporaryDirectory() as temp_dir:
        print(f"Using temporary directory: {temp_dir}")

        # Store password must be at least 32 characters with mixed character classes
        store_password = "MySecureStorePasswordThatIsAtLeast32CharsLong!!1"
        rotator = CredentialRotator(store_password, temp_dir, config=RotatorConfig())

        print("First rotation bootstraps the principal...")
        outcome = rotator.rotate("billing-api")
        print(f"  status={outcome.status.value} new={outcome.new_credential_id} version={outcome.version}")

        print("Rotating again right away is a no-op...")
        outcome = rotator.rotate("billing-api")
        print(f"  status={outcome.status.value}")

        print("Forcing a rotation retires the previous credential...")
        outcome = rotator.rotate("billing-api", force=True)
        print(f"  status={outcome.status.value} retired={outcome.old_credential_ids} version={outcome.version}")

        print("Rotating a batch concurrently...")
        for result in rotator.handle(["orders-api", "reports-worker"]):
            print(f"  {result.principal}: {result.status.value}")

        status = rotator.status("billing-api")
        print(f"Published version: {status['published']['version']}")
        print(f"ACTIVE credentials: {[c['credential_id'] for c in status['active_credentials']]}")

        print("Rotation history:")
        for record in rotator.get_rotation_history():
            print(f"  {record.principal}: {record.state.value} -> {record.new_credential_id}")


if __name__ == "__main__":
    main()
