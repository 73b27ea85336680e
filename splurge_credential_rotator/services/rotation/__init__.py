"""Rotation services package for Splurge Credential Rotator."""

from splurge_credential_rotator.services.rotation.coordinator import RotationCoordinator
from splurge_credential_rotator.services.rotation.handler import RotationHandler
from splurge_credential_rotator.services.rotation.retry import backoff_delay, retry_call

__all__ = [
    "RotationCoordinator",
    "RotationHandler",
    "backoff_delay",
    "retry_call",
]
