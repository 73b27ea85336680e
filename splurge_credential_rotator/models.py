"""Data models for the Splurge Credential Rotator."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class CredentialStatus(str, Enum):
    """Lifecycle status of a credential at the identity provider."""

    ACTIVE = "ACTIVE"
    RETIRING = "RETIRING"
    REVOKED = "REVOKED"


class RotationPhase(str, Enum):
    """Phases of a rotation cycle, in execution order."""

    PREPARE = "prepare"  # reading provider/store state before minting
    MINT = "mint"
    PUBLISH = "publish"
    VERIFY = "verify"
    RETIRE = "retire"


class RecordState(str, Enum):
    """Persisted phase marker of a RotationRecord."""

    STARTED = "started"
    MINTED = "minted"
    PUBLISHED = "published"
    VERIFIED = "verified"
    COMPLETED = "completed"
    PARTIAL = "partial"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Whether no further work is owed for this record."""
        return self in (RecordState.COMPLETED, RecordState.ABORTED)


class RotationStatus(str, Enum):
    """Result classification of a rotate/reconcile call."""

    SUCCESS = "success"
    PARTIAL = "partial"  # new credential live, retirement pending
    FAILED = "failed"  # nothing changed, or pre-rotation state restored
    REJECTED = "rejected"  # another rotation holds the lease
    CANCELLED = "cancelled"
    NOOP = "noop"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO datetime string, passing datetimes and None through."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class Credential:
    """A mintable, revocable secret artifact tied to a principal."""

    credential_id: str
    principal: str
    secret: str | None = field(default=None, repr=False)  # never logged
    created_at: datetime = field(default_factory=_utcnow)
    status: CredentialStatus = CredentialStatus.ACTIVE

    def __post_init__(self) -> None:
        """Validate and process fields after initialization."""
        if not self.credential_id:
            raise ValueError("credential_id cannot be empty")
        if not self.principal:
            raise ValueError("principal cannot be empty")

        self.created_at = _parse_datetime(self.created_at)
        self.status = CredentialStatus(self.status)

    def __hash__(self) -> int:
        return hash((self.principal, self.credential_id))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Credential):
            return NotImplemented
        return self.principal == other.principal and self.credential_id == other.credential_id

    @property
    def is_active(self) -> bool:
        return self.status == CredentialStatus.ACTIVE

    @property
    def is_usable(self) -> bool:
        """Whether the credential still authenticates (ACTIVE or RETIRING)."""
        return self.status != CredentialStatus.REVOKED

    def to_dict(self, *, include_secret: bool = False) -> dict[str, Any]:
        """Convert to dictionary; secret material only on explicit request."""
        result = {
            "credential_id": self.credential_id,
            "principal": self.principal,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
        }
        if include_secret:
            result["secret"] = self.secret
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Credential":
        """Create Credential from dictionary."""
        return cls(
            credential_id=data["credential_id"],
            principal=data["principal"],
            secret=data.get("secret"),
            created_at=data.get("created_at") or _utcnow(),
            status=data.get("status", CredentialStatus.ACTIVE.value),
        )


@dataclass
class SecretVersion:
    """The secret store's record of the currently published credential."""

    principal: str
    credential_id: str
    secret: str = field(repr=False)
    version: int = 1
    published_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate and process fields after initialization."""
        if not self.principal:
            raise ValueError("principal cannot be empty")
        if not self.credential_id:
            raise ValueError("credential_id cannot be empty")
        if self.version < 1:
            raise ValueError("version must be at least 1")

        self.published_at = _parse_datetime(self.published_at)

    def to_dict(self, *, include_secret: bool = False) -> dict[str, Any]:
        """Convert to dictionary; secret material only on explicit request."""
        result = {
            "principal": self.principal,
            "credential_id": self.credential_id,
            "version": self.version,
            "published_at": self.published_at.isoformat(),
        }
        if include_secret:
            result["secret"] = self.secret
        return result


@dataclass
class RotationRecord:
    """Durable phase markers for one rotation of one principal.

    A principal has a single record slot holding either the in-flight
    rotation or the most recent one. ``pending_secret`` carries the minted
    material, encrypted, until the new credential has been published.
    """

    rotation_id: str
    principal: str
    state: RecordState = RecordState.STARTED
    old_credential_ids: list[str] = field(default_factory=list)
    new_credential_id: str | None = None
    pending_secret: str | None = field(default=None, repr=False)
    published_version: int | None = None
    publish_cycles: int = 0
    retired_credential_ids: list[str] = field(default_factory=list)
    pending_retirement: list[str] = field(default_factory=list)
    outcome: str | None = None
    error: str | None = None
    phase_timestamps: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate and process fields after initialization."""
        if not self.rotation_id:
            raise ValueError("rotation_id cannot be empty")
        if not self.principal:
            raise ValueError("principal cannot be empty")

        self.state = RecordState(self.state)
        self.created_at = _parse_datetime(self.created_at)
        self.updated_at = _parse_datetime(self.updated_at)

    def mark(self, state: RecordState) -> None:
        """Advance the phase marker and stamp the transition time."""
        now = _utcnow()
        self.state = state
        self.phase_timestamps[state.value] = now.isoformat()
        self.updated_at = now

    @property
    def publish_acknowledged(self) -> bool:
        """Whether the store ever acknowledged publishing the new credential."""
        return RecordState.PUBLISHED.value in self.phase_timestamps

    @property
    def completed_at(self) -> Optional[datetime]:
        stamp = self.phase_timestamps.get(RecordState.COMPLETED.value)
        return _parse_datetime(stamp) if stamp else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with proper serialization."""
        return {
            "rotation_id": self.rotation_id,
            "principal": self.principal,
            "state": self.state.value,
            "old_credential_ids": self.old_credential_ids,
            "new_credential_id": self.new_credential_id,
            "pending_secret": self.pending_secret,
            "published_version": self.published_version,
            "publish_cycles": self.publish_cycles,
            "retired_credential_ids": self.retired_credential_ids,
            "pending_retirement": self.pending_retirement,
            "outcome": self.outcome,
            "error": self.error,
            "phase_timestamps": self.phase_timestamps,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RotationRecord":
        """Create RotationRecord from dictionary."""
        return cls(
            rotation_id=data["rotation_id"],
            principal=data["principal"],
            state=data.get("state", RecordState.STARTED.value),
            old_credential_ids=data.get("old_credential_ids", []),
            new_credential_id=data.get("new_credential_id"),
            pending_secret=data.get("pending_secret"),
            published_version=data.get("published_version"),
            publish_cycles=data.get("publish_cycles", 0),
            retired_credential_ids=data.get("retired_credential_ids", []),
            pending_retirement=data.get("pending_retirement", []),
            outcome=data.get("outcome"),
            error=data.get("error"),
            phase_timestamps=data.get("phase_timestamps", {}),
            created_at=data.get("created_at") or _utcnow(),
            updated_at=data.get("updated_at") or _utcnow(),
        )


@dataclass
class RotationOutcome:
    """Tagged result of a rotate or reconcile call."""

    principal: str
    status: RotationStatus
    phase: RotationPhase
    rotation_id: str | None = None
    old_credential_ids: list[str] = field(default_factory=list)
    new_credential_id: str | None = None
    version: int | None = None
    pending_retirement: list[str] = field(default_factory=list)
    resumed: bool = False
    error_code: str | None = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        """True when the principal ends up served by a live, published credential."""
        return self.status in (RotationStatus.SUCCESS, RotationStatus.PARTIAL, RotationStatus.NOOP)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "principal": self.principal,
            "status": self.status.value,
            "phase": self.phase.value,
            "rotation_id": self.rotation_id,
            "old_credential_ids": self.old_credential_ids,
            "new_credential_id": self.new_credential_id,
            "version": self.version,
            "pending_retirement": self.pending_retirement,
            "resumed": self.resumed,
            "error_code": self.error_code,
            "message": self.message,
        }
