"""Configuration management for the Splurge Credential Rotator."""

import os
from dataclasses import dataclass, fields
from typing import Optional

from splurge_credential_rotator.constants import Constants


@dataclass
class RotatorConfig:
    """Configuration for RotationCoordinator and RotationHandler instances."""

    # Retry settings
    max_attempts: int = Constants.DEFAULT_MAX_ATTEMPTS()
    base_delay: float = Constants.DEFAULT_BASE_DELAY()  # seconds
    max_delay: float = Constants.DEFAULT_MAX_DELAY()  # seconds

    # Rotation settings
    verify_after_publish: bool = True
    max_publish_cycles: int = Constants.DEFAULT_MAX_PUBLISH_CYCLES()
    lease_ttl: int = Constants.DEFAULT_LEASE_TTL()  # seconds
    min_rotation_interval: int = Constants.DEFAULT_MIN_ROTATION_INTERVAL()  # seconds

    # Execution settings
    max_workers: int = Constants.DEFAULT_MAX_WORKERS()
    max_history: int = Constants.MAX_ROTATION_HISTORY()

    # Key derivation for at-rest encryption
    iterations: int = Constants.DEFAULT_ITERATIONS()

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be at least base_delay")

        if self.max_publish_cycles < 1:
            raise ValueError("max_publish_cycles must be at least 1")
        if self.lease_ttl < 1:
            raise ValueError("lease_ttl must be at least 1 second")
        if self.min_rotation_interval < 0:
            raise ValueError("min_rotation_interval must be non-negative")

        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.max_history < 1:
            raise ValueError("max_history must be at least 1")
        if self.iterations < Constants.MIN_ITERATIONS():
            raise ValueError(f"iterations must be at least {Constants.MIN_ITERATIONS():,}")

    @classmethod
    def from_environment(
        cls,
        prefix: str = "SCR_",
        environ: Optional[dict[str, str]] = None
    ) -> "RotatorConfig":
        """Build a configuration from environment variables.

        Each field may be overridden by ``<prefix><FIELD_NAME>``, for example
        ``SCR_MAX_ATTEMPTS=5`` or ``SCR_VERIFY_AFTER_PUBLISH=false``.

        Args:
            prefix: Environment variable prefix
            environ: Mapping to read instead of ``os.environ``

        Returns:
            RotatorConfig instance

        Raises:
            ValueError: If a value cannot be parsed or fails validation
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for config_field in fields(cls):
            raw = environ.get(f"{prefix}{config_field.name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            overrides[config_field.name] = _parse_value(config_field.name, raw.strip(), config_field.type)
        return cls(**overrides)


def _parse_value(name: str, raw: str, field_type) -> object:
    """Parse a raw environment value into the field's type."""
    if field_type in (bool, "bool"):
        lowered = raw.lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"{name} must be a boolean, got {raw!r}")
    try:
        if field_type in (int, "int"):
            return int(raw)
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from e


# Default configuration instance
DEFAULT_CONFIG = RotatorConfig()
