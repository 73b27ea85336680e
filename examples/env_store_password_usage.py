#!/usr/bin/env python3
"""Example: read the store password and rotation policy from the environment."""

import os
import tempfile

from splurge_credential_rotator import CredentialRotator


def main():
    """Initialize from SCR_* environment variables and rotate."""
    os.environ["SCR_STORE_PASSWORD"] = "EnvironmentStorePassword123!@#LongEnough"
    os.environ["SCR_MAX_ATTEMPTS"] = "5"
    os.environ["SCR_MIN_ROTATION_INTERVAL"] = "0"

    with tempfile.TemporaryDirectory() as temp_dir:
        rotator = CredentialRotator.init_from_environment("SCR_STORE_PASSWORD", temp_dir)
        print(f"max_attempts from environment: {rotator.config.max_attempts}")

        rotator.rotate("svc1")
        outcome = rotator.rotate("svc1")
        print(f"Second rotation with no minimum interval: {outcome.status.value}")

        current = rotator.read_current("svc1")
        print(f"svc1 now serves {current.credential_id} (version {current.version})")


if __name__ == "__main__":
    main()
