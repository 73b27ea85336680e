"""Per-principal rotation leases backed by exclusive lease files."""

import json
import logging
import os
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from splurge_credential_rotator.exceptions import (
    ConcurrentRotationRejectedError,
    FileOperationError,
)
from splurge_credential_rotator.file_manager import FileManager

logger = logging.getLogger(__name__)


@dataclass
class Lease:
    """A held rotation lease."""

    principal: str
    token: str
    expires_at: float


class LeaseManager:
    """Grants at most one rotation lease per principal.

    A lease is a file created with O_EXCL, so acquisition is atomic across
    threads and processes sharing the data directory. A lease whose holder
    crashed is taken over once its expiry has passed.
    """

    def __init__(
        self,
        file_manager: FileManager,
        *,
        ttl: float,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the lease manager.

        Args:
            file_manager: File manager providing the leases directory
            ttl: Lease lifetime in seconds
            clock: Wall-clock source (seconds since the epoch)
        """
        self._file_manager = file_manager
        self._ttl = ttl
        self._clock = clock

    def _load(self, path: Path) -> Optional[dict]:
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            # Holder is mid-write or the file is corrupt; treat as held.
            return {}

    def _read(self, principal: str) -> Optional[dict]:
        return self._load(self._file_manager.lease_file_path(principal))

    def _create(self, path: Path, payload: dict, *, exclusive: bool) -> None:
        flags = os.O_WRONLY | os.O_CREAT | (os.O_EXCL if exclusive else os.O_TRUNC)
        fd = os.open(path, flags, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(payload))

    def _payload(self, token: str) -> dict:
        return {"token": token, "pid": os.getpid(), "expires_at": self._clock() + self._ttl}

    def _break_expired(self, principal: str, seen: dict) -> None:
        """Remove the expired lease ``seen`` so it can be re-created.

        The file is renamed aside first and compared with what was read. If
        another contender already replaced it with a live lease, that lease
        is put back and this contender is rejected.

        Raises:
            ConcurrentRotationRejectedError: If the lease file no longer holds ``seen``
        """
        path = self._file_manager.lease_file_path(principal)
        stale = path.with_name(f"{path.name}.{uuid.uuid4().hex}.expired")
        try:
            os.rename(path, stale)
        except FileNotFoundError:
            return

        moved = self._load(stale) or {}
        try:
            if moved.get("token") == seen.get("token") and moved.get("expires_at") == seen.get("expires_at"):
                return
            try:
                self._create(path, moved, exclusive=True)
            except FileExistsError:
                logger.warning("Displaced rotation lease could not be restored", extra={
                    "principal": principal,
                    "event": "lease_restore_failed",
                })
            raise ConcurrentRotationRejectedError(f"A rotation for {principal} is already in progress")
        finally:
            stale.unlink(missing_ok=True)

    def acquire(self, principal: str) -> Lease:
        """Acquire the principal's lease.

        Raises:
            ConcurrentRotationRejectedError: If another live lease holds the principal
            FileOperationError: If the lease file cannot be written
        """
        token = uuid.uuid4().hex
        path = self._file_manager.lease_file_path(principal)
        for _ in range(2):
            try:
                payload = self._payload(token)
                self._create(path, payload, exclusive=True)
                logger.debug("Lease acquired", extra={"principal": principal, "event": "lease_acquired"})
                return Lease(principal=principal, token=token, expires_at=payload["expires_at"])
            except FileExistsError:
                holder = self._read(principal)
                if holder is None:
                    continue
                if holder and holder.get("expires_at", 0) <= self._clock():
                    logger.warning("Taking over expired rotation lease", extra={
                        "principal": principal,
                        "event": "lease_expired",
                    })
                    self._break_expired(principal, holder)
                    continue
                break
            except OSError as e:
                raise FileOperationError(f"Failed to create lease for {principal}: {e}") from e

        raise ConcurrentRotationRejectedError(f"A rotation for {principal} is already in progress")

    def renew(self, lease: Lease) -> None:
        """Extend a held lease by another TTL.

        Only an expired lease can be taken over, so a lease that has already
        expired is never renewed: it counts as lost.

        Raises:
            ConcurrentRotationRejectedError: If the lease expired or was lost to another holder
            FileOperationError: If the lease file cannot be rewritten
        """
        if lease.expires_at <= self._clock():
            raise ConcurrentRotationRejectedError(f"Lease for {lease.principal} expired")
        holder = self._read(lease.principal)
        if not holder or holder.get("token") != lease.token:
            raise ConcurrentRotationRejectedError(f"Lease for {lease.principal} was lost")

        path = self._file_manager.lease_file_path(lease.principal)
        renewal = path.with_name(f"{path.name}.{uuid.uuid4().hex}.renew")
        payload = self._payload(lease.token)
        try:
            self._create(renewal, payload, exclusive=True)
            os.replace(renewal, path)
        except OSError as e:
            renewal.unlink(missing_ok=True)
            raise FileOperationError(f"Failed to renew lease for {lease.principal}: {e}") from e
        lease.expires_at = payload["expires_at"]

    def release(self, lease: Lease) -> None:
        """Release a held lease; a lease already taken over is left alone."""
        holder = self._read(lease.principal)
        if not holder or holder.get("token") != lease.token:
            logger.warning("Lease already released or taken over", extra={
                "principal": lease.principal,
                "event": "lease_release_skipped",
            })
            return
        self._file_manager.lease_file_path(lease.principal).unlink(missing_ok=True)
        logger.debug("Lease released", extra={"principal": lease.principal, "event": "lease_released"})

    def is_held(self, principal: str) -> bool:
        """Whether a live lease currently exists for the principal."""
        holder = self._read(principal)
        if holder is None:
            return False
        return not holder or holder.get("expires_at", 0) > self._clock()

    @contextmanager
    def hold(self, principal: str) -> Iterator[Lease]:
        """Context manager acquiring and always releasing the lease."""
        lease = self.acquire(principal)
        try:
            yield lease
        finally:
            self.release(lease)
