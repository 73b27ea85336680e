"""Rotation coordinator: mint, publish, verify and retire credentials safely.

A rotation cycle for one principal runs the phases strictly in order::

    Mint -> Publish -> Verify -> Retire

Retire never begins before the secret store has acknowledged the new
credential, so a principal always keeps at least one usable credential and
the store never points at a revoked one. Every phase transition is
persisted in a RotationRecord so an interrupted cycle resumes where it left
off instead of minting again.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from splurge_credential_rotator.config import DEFAULT_CONFIG, RotatorConfig
from splurge_credential_rotator.crypto_utils import CryptoUtils
from splurge_credential_rotator.exceptions import (
    ConcurrentRotationRejectedError,
    CredentialNotFoundError,
    FileOperationError,
    OrphanedCredentialCleanupFailedError,
    RotationRecordError,
    VerificationMismatchError,
)
from splurge_credential_rotator.models import (
    Credential,
    RecordState,
    RotationOutcome,
    RotationPhase,
    RotationRecord,
    RotationStatus,
    SecretVersion,
)
from splurge_credential_rotator.services.identity_provider import IdentityProvider
from splurge_credential_rotator.services.lease_service import Lease, LeaseManager
from splurge_credential_rotator.services.record_service import RotationRecordService
from splurge_credential_rotator.services.rotation.retry import TRANSIENT_ERRORS, retry_call
from splurge_credential_rotator.services.secret_store import SecretStore
from splurge_credential_rotator.validation_utils import validate_principal

logger = logging.getLogger(__name__)


@dataclass
class _Cycle:
    """Mutable state of one rotate/reconcile invocation."""

    principal: str
    lease: Lease
    cancel_event: Optional[threading.Event] = None
    phase: RotationPhase = RotationPhase.PREPARE
    publishing: bool = False  # past the point of no cancellation
    resumed: bool = False

    @property
    def cancel_requested(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class RotationCoordinator:
    """Orchestrates credential rotation for individual principals."""

    def __init__(
        self,
        provider: IdentityProvider,
        store: SecretStore,
        records: RotationRecordService,
        leases: LeaseManager,
        *,
        config: RotatorConfig = DEFAULT_CONFIG,
        sleep: Callable[[float], None] = time.sleep,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the rotation coordinator.

        Args:
            provider: Identity provider that mints and revokes credentials
            store: Secret store that publishes the current credential
            records: Durable rotation record service
            leases: Per-principal lease manager
            config: Retry and rotation policy
            sleep: Sleep function used between retries
            clock: Source of the current UTC time
        """
        self._provider = provider
        self._store = store
        self._records = records
        self._leases = leases
        self._config = config
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Public operations

    def rotate(
        self,
        principal: str,
        *,
        force: bool = False,
        cancel_event: Optional[threading.Event] = None
    ) -> RotationOutcome:
        """Run one rotation cycle for a principal.

        Args:
            principal: Principal whose credential is rotated
            force: Rotate even if the last rotation is recent
            cancel_event: Cancellation signal, honoured only before Publish

        Returns:
            RotationOutcome describing the terminal state

        Raises:
            ValidationError: If the principal is invalid
        """
        validate_principal(principal)
        return self._with_lease(principal, cancel_event, lambda cycle: self._rotate(cycle, force))

    def reconcile(self, principal: str) -> RotationOutcome:
        """Revoke every ACTIVE credential the secret store does not serve.

        Finishes rotations whose Retire phase failed and cleans up orphaned
        mints. Nothing is revoked unless the store can be read and serves an
        ACTIVE credential.

        Raises:
            ValidationError: If the principal is invalid
        """
        validate_principal(principal)
        return self._with_lease(principal, None, self._reconcile)

    # Cycle plumbing

    def _with_lease(
        self,
        principal: str,
        cancel_event: Optional[threading.Event],
        body: Callable[[_Cycle], RotationOutcome]
    ) -> RotationOutcome:
        try:
            lease = self._leases.acquire(principal)
        except ConcurrentRotationRejectedError as e:
            logger.warning("Rotation rejected, lease held", extra={
                "principal": principal,
                "event": "rotation_rejected",
            })
            return self._outcome(principal, RotationStatus.REJECTED, RotationPhase.PREPARE, error=e)
        except FileOperationError as e:
            return self._outcome(principal, RotationStatus.FAILED, RotationPhase.PREPARE, error=e)

        cycle = _Cycle(principal=principal, lease=lease, cancel_event=cancel_event)
        try:
            outcome = body(cycle)
        except ConcurrentRotationRejectedError as e:
            outcome = self._outcome(principal, RotationStatus.REJECTED, cycle.phase, error=e)
        except RotationRecordError as e:
            logger.error(f"Rotation record unavailable: {e}", extra={
                "principal": principal,
                "phase": cycle.phase.value,
                "event": "rotation_record_failed",
            })
            outcome = self._outcome(principal, RotationStatus.FAILED, cycle.phase, error=e)
        finally:
            self._leases.release(lease)

        if cycle.publishing and cycle.cancel_requested:
            logger.info("Cancellation deferred until rotation reached a safe state", extra={
                "principal": principal,
                "event": "cancellation_deferred",
            })
        logger.info(f"Rotation cycle finished: {outcome.status.value}", extra={
            "principal": principal,
            "rotation_id": outcome.rotation_id,
            "status": outcome.status.value,
            "phase": outcome.phase.value,
            "event": "rotation_cycle_finished",
        })
        return outcome

    def _call(self, description: str, func):
        return retry_call(
            func,
            description=description,
            max_attempts=self._config.max_attempts,
            base_delay=self._config.base_delay,
            max_delay=self._config.max_delay,
            sleep=self._sleep,
        )

    def _enter(self, cycle: _Cycle, phase: RotationPhase) -> None:
        """Move to a new phase, renewing the lease at the boundary.

        A lost lease stops the cycle here; the persisted record lets the
        new holder resume from the last completed phase.
        """
        cycle.phase = phase
        try:
            self._leases.renew(cycle.lease)
        except ConcurrentRotationRejectedError:
            logger.warning("Lease lost; stopping at phase boundary", extra={
                "principal": cycle.principal,
                "phase": phase.value,
                "event": "lease_lost",
            })
            raise
        except FileOperationError as e:
            logger.warning(f"Lease renewal failed: {e}", extra={
                "principal": cycle.principal,
                "event": "lease_renewal_failed",
            })

    @staticmethod
    def _outcome(
        principal: str,
        status: RotationStatus,
        phase: RotationPhase,
        *,
        record: Optional[RotationRecord] = None,
        error: Optional[Exception] = None,
        message: str = "",
        resumed: bool = False
    ) -> RotationOutcome:
        outcome = RotationOutcome(
            principal=principal,
            status=status,
            phase=phase,
            resumed=resumed,
            message=message or (str(error) if error else ""),
        )
        if error is not None:
            outcome.error_code = getattr(error, "error_code", "unexpected_error")
        if record is not None:
            outcome.rotation_id = record.rotation_id
            outcome.old_credential_ids = list(record.old_credential_ids)
            outcome.new_credential_id = record.new_credential_id
            outcome.version = record.published_version
            outcome.pending_retirement = list(record.pending_retirement)
        return outcome

    def _read_state(self, principal: str) -> tuple[set[str], Optional[SecretVersion]]:
        active = self._call("list active credentials", lambda: self._provider.list_active(principal))
        current = self._call("read current secret", lambda: self._store.read_current(principal))
        return {credential.credential_id for credential in active}, current

    # Rotation

    def _rotate(self, cycle: _Cycle, force: bool) -> RotationOutcome:
        principal = cycle.principal
        record = self._records.load(principal)
        try:
            active_ids, current = self._read_state(principal)
        except TRANSIENT_ERRORS as e:
            return self._outcome(principal, RotationStatus.FAILED, RotationPhase.PREPARE, error=e)

        if record is not None and not record.state.is_terminal:
            if record.state == RecordState.STARTED:
                # Crashed before the mint was recorded; any stray credential
                # is retired by the fresh cycle below.
                self._records.finish(record, RecordState.ABORTED, outcome="superseded",
                                     error="interrupted before mint was recorded")
            elif record.state == RecordState.MINTED:
                return self._resume_minted(cycle, record, active_ids, current)
            else:
                return self._resume_published(cycle, record, active_ids, current)

        return self._fresh_rotation(cycle, record, active_ids, current, force=force)

    def _fresh_rotation(
        self,
        cycle: _Cycle,
        last_record: Optional[RotationRecord],
        active_ids: set[str],
        current: Optional[SecretVersion],
        *,
        force: bool
    ) -> RotationOutcome:
        principal = cycle.principal

        if current is not None and current.credential_id in active_ids and len(active_ids) > 1:
            # A previous cycle published but never finished retiring.
            record = self._records.start(principal, sorted(active_ids - {current.credential_id}))
            record.new_credential_id = current.credential_id
            record.published_version = current.version
            self._records.advance(record, RecordState.VERIFIED)
            cycle.publishing = True
            cycle.resumed = True
            return self._retire(cycle, record, active_ids)

        if not force and self._recently_rotated(last_record, active_ids, current):
            return self._outcome(
                principal,
                RotationStatus.NOOP,
                RotationPhase.PREPARE,
                record=last_record,
                message="Credential was rotated recently; use force to rotate again",
            )

        if cycle.cancel_requested:
            return self._outcome(principal, RotationStatus.CANCELLED, RotationPhase.MINT,
                                 message="Rotation cancelled before mint")

        record = self._records.start(principal, sorted(active_ids))
        self._enter(cycle, RotationPhase.MINT)
        try:
            credential = self._call("mint credential", lambda: self._provider.mint(principal))
        except TRANSIENT_ERRORS as e:
            self._records.finish(record, RecordState.ABORTED, outcome=RotationStatus.FAILED.value, error=str(e))
            return self._outcome(principal, RotationStatus.FAILED, RotationPhase.MINT, record=record, error=e)

        record.new_credential_id = credential.credential_id
        self._records.seal_secret(record, credential.secret)
        self._records.advance(record, RecordState.MINTED)
        logger.info("New credential minted", extra={
            "principal": principal,
            "rotation_id": record.rotation_id,
            "credential_id": credential.credential_id,
            "event": "rotation_minted",
        })

        if cycle.cancel_requested:
            return self._abandon(cycle, record, credential, status=RotationStatus.CANCELLED,
                                 phase=RotationPhase.MINT, message="Rotation cancelled after mint")

        return self._publish(cycle, record, credential, active_ids)

    def _recently_rotated(
        self,
        last_record: Optional[RotationRecord],
        active_ids: set[str],
        current: Optional[SecretVersion]
    ) -> bool:
        if last_record is None or current is None or last_record.state != RecordState.COMPLETED:
            return False
        completed_at = last_record.completed_at
        if completed_at is None or last_record.new_credential_id != current.credential_id:
            return False
        if active_ids != {current.credential_id}:
            return False
        return self._clock() - completed_at < timedelta(seconds=self._config.min_rotation_interval)

    def _publish(
        self,
        cycle: _Cycle,
        record: RotationRecord,
        credential: Credential,
        active_ids: set[str]
    ) -> RotationOutcome:
        principal = cycle.principal
        self._enter(cycle, RotationPhase.PUBLISH)
        cycle.publishing = True
        record.publish_cycles += 1
        self._records.save(record)

        def attempt() -> SecretVersion:
            cycle.phase = RotationPhase.PUBLISH
            version = self._store.publish(principal, credential)
            if record.state != RecordState.PUBLISHED:
                record.published_version = version.version
                self._records.advance(record, RecordState.PUBLISHED)
            if self._config.verify_after_publish:
                cycle.phase = RotationPhase.VERIFY
                self._verify(principal, credential, version)
            return version

        try:
            self._call("publish credential", attempt)
        except TRANSIENT_ERRORS as e:
            return self._publish_failed(cycle, record, credential, e)

        self._records.advance(record, RecordState.VERIFIED)
        logger.info("New credential published", extra={
            "principal": principal,
            "rotation_id": record.rotation_id,
            "credential_id": credential.credential_id,
            "version": record.published_version,
            "event": "rotation_published",
        })
        return self._retire(cycle, record, active_ids)

    def _verify(self, principal: str, credential: Credential, version: SecretVersion) -> None:
        current = self._store.read_current(principal)
        if (
            current is None
            or current.credential_id != credential.credential_id
            or current.version < version.version
            or not CryptoUtils.constant_time_compare(current.secret, credential.secret)
        ):
            raise VerificationMismatchError(
                f"Secret store does not serve credential {credential.credential_id} for {principal}"
            )

    def _publish_failed(
        self,
        cycle: _Cycle,
        record: RotationRecord,
        credential: Credential,
        error: Exception
    ) -> RotationOutcome:
        """Keep the mint for the next cycle, or abandon it once the budget is spent."""
        phase = cycle.phase
        record.error = str(error)
        record.published_version = None
        self._records.advance(record, RecordState.MINTED)

        resumable = record.pending_secret is not None
        acknowledged = record.publish_acknowledged
        if resumable and (acknowledged or record.publish_cycles < self._config.max_publish_cycles):
            logger.warning("Publish failed; minted credential kept for the next cycle", extra={
                "principal": cycle.principal,
                "rotation_id": record.rotation_id,
                "publish_cycles": record.publish_cycles,
                "event": "rotation_publish_deferred",
            })
            return self._outcome(cycle.principal, RotationStatus.FAILED, phase, record=record, error=error)

        if acknowledged:
            # The store took the write once, so the credential may be live on
            # some replica; leave it to reconciliation instead of revoking.
            self._records.finish(record, RecordState.ABORTED, outcome=RotationStatus.FAILED.value, error=str(error))
            return self._outcome(cycle.principal, RotationStatus.FAILED, phase, record=record, error=error)

        return self._abandon(cycle, record, credential, status=RotationStatus.FAILED, phase=phase, error=error)

    def _abandon(
        self,
        cycle: _Cycle,
        record: RotationRecord,
        credential: Optional[Credential],
        *,
        status: RotationStatus,
        phase: RotationPhase,
        error: Optional[Exception] = None,
        message: str = ""
    ) -> RotationOutcome:
        """Revoke a minted credential that never went live and close the record."""
        principal = cycle.principal
        orphan_id = record.new_credential_id
        try:
            current = self._call("read current secret", lambda: self._store.read_current(principal))
        except TRANSIENT_ERRORS as e:
            cleanup_error = OrphanedCredentialCleanupFailedError(
                f"Cannot confirm {orphan_id} is unpublished, leaving it for reconciliation: {e}"
            )
            logger.warning(str(cleanup_error), extra={
                "principal": principal,
                "rotation_id": record.rotation_id,
                "event": "orphan_cleanup_failed",
            })
            return self._outcome(principal, status, phase, record=record,
                                 error=error or cleanup_error, message=message)

        if current is not None and current.credential_id == orphan_id:
            # The write landed after all; the credential is live, not orphaned.
            if credential is not None and credential.secret and CryptoUtils.constant_time_compare(
                current.secret, credential.secret
            ):
                try:
                    active = self._call("list active credentials",
                                        lambda: self._provider.list_active(principal))
                except TRANSIENT_ERRORS as e:
                    return self._outcome(principal, status, phase, record=record,
                                         error=error or e, message=message)
                active_ids = {c.credential_id for c in active}
                if orphan_id not in active_ids:
                    self._records.finish(record, RecordState.ABORTED, outcome="superseded",
                                         error="published credential is no longer active")
                    outcome = self._outcome(principal, RotationStatus.FAILED, phase, record=record,
                                            message="Published credential is not ACTIVE; rotate to repair")
                    outcome.error_code = "published_credential_inactive"
                    return outcome
                cycle.publishing = True
                record.published_version = current.version
                self._records.advance(record, RecordState.VERIFIED)
                return self._retire(cycle, record, active_ids)
            record.published_version = current.version
            self._records.advance(record, RecordState.PUBLISHED)
            return self._outcome(principal, status, phase, record=record, error=error, message=message)

        try:
            self._call("revoke orphaned credential",
                       lambda: self._provider.revoke(principal, orphan_id))
        except CredentialNotFoundError:
            pass
        except TRANSIENT_ERRORS as e:
            cleanup_error = OrphanedCredentialCleanupFailedError(
                f"Failed to revoke orphaned credential {orphan_id}: {e}"
            )
            logger.warning(str(cleanup_error), extra={
                "principal": principal,
                "rotation_id": record.rotation_id,
                "event": "orphan_cleanup_failed",
            })
            return self._outcome(principal, status, phase, record=record,
                                 error=error or cleanup_error, message=message)

        self._records.finish(record, RecordState.ABORTED, outcome=status.value,
                             error=str(error) if error else message)
        logger.info("Orphaned credential revoked, rotation aborted", extra={
            "principal": principal,
            "rotation_id": record.rotation_id,
            "credential_id": orphan_id,
            "event": "rotation_aborted",
        })
        return self._outcome(principal, status, phase, record=record, error=error, message=message)

    def _resume_minted(
        self,
        cycle: _Cycle,
        record: RotationRecord,
        active_ids: set[str],
        current: Optional[SecretVersion]
    ) -> RotationOutcome:
        principal = cycle.principal
        new_id = record.new_credential_id
        cycle.resumed = True
        logger.info("Resuming rotation after mint", extra={
            "principal": principal,
            "rotation_id": record.rotation_id,
            "event": "rotation_resumed",
        })

        if new_id is not None and current is not None and current.credential_id == new_id:
            if new_id not in active_ids:
                return self._replace_inactive(cycle, record, active_ids, current)
            # Publish landed before the marker was written.
            cycle.publishing = True
            record.published_version = current.version
            self._records.advance(record, RecordState.VERIFIED)
            return self._retire(cycle, record, active_ids)

        if new_id is None or new_id not in active_ids:
            self._records.finish(record, RecordState.ABORTED, outcome="superseded",
                                 error="minted credential is no longer active")
            return self._fresh_rotation(cycle, None, active_ids, current, force=True)

        secret = self._records.unseal_secret(record)
        if secret is None and record.publish_acknowledged:
            self._records.finish(record, RecordState.ABORTED, outcome="superseded",
                                 error="minted secret unrecoverable after an acknowledged publish")
            return self._fresh_rotation(cycle, None, active_ids, current, force=True)

        if secret is None or (
            record.publish_cycles >= self._config.max_publish_cycles and not record.publish_acknowledged
        ):
            outcome = self._abandon(
                cycle, record, None,
                status=RotationStatus.FAILED,
                phase=RotationPhase.PUBLISH,
                message="Publish retry budget exhausted; orphaned credential revoked",
            )
            if record.state != RecordState.ABORTED:
                return outcome
            active_ids = active_ids - {new_id}
            return self._fresh_rotation(cycle, None, active_ids, current, force=True)

        if cycle.cancel_requested:
            credential = Credential(credential_id=new_id, principal=principal, secret=secret)
            return self._abandon(cycle, record, credential, status=RotationStatus.CANCELLED,
                                 phase=RotationPhase.PUBLISH, message="Rotation cancelled before publish")

        credential = Credential(credential_id=new_id, principal=principal, secret=secret)
        return self._publish(cycle, record, credential, active_ids)

    def _resume_published(
        self,
        cycle: _Cycle,
        record: RotationRecord,
        active_ids: set[str],
        current: Optional[SecretVersion]
    ) -> RotationOutcome:
        cycle.resumed = True
        if current is None or current.credential_id != record.new_credential_id:
            self._records.finish(record, RecordState.ABORTED, outcome="superseded",
                                 error="secret store no longer serves the rotated credential")
            return self._fresh_rotation(cycle, None, active_ids, current, force=True)

        if record.new_credential_id not in active_ids:
            # Retiring the rest now would leave nothing usable.
            return self._replace_inactive(cycle, record, active_ids, current)

        cycle.publishing = True
        if record.state == RecordState.PUBLISHED:
            record.published_version = current.version
            self._records.advance(record, RecordState.VERIFIED)
        logger.info("Resuming rotation at retire", extra={
            "principal": cycle.principal,
            "rotation_id": record.rotation_id,
            "event": "rotation_resumed",
        })
        return self._retire(cycle, record, active_ids)

    def _replace_inactive(
        self,
        cycle: _Cycle,
        record: RotationRecord,
        active_ids: set[str],
        current: SecretVersion
    ) -> RotationOutcome:
        """Supersede a rotation whose published credential was revoked elsewhere."""
        logger.warning("Secret store serves a credential that is no longer ACTIVE", extra={
            "principal": cycle.principal,
            "rotation_id": record.rotation_id,
            "credential_id": record.new_credential_id,
            "event": "published_credential_inactive",
        })
        self._records.finish(record, RecordState.ABORTED, outcome="superseded",
                             error="published credential is no longer active")
        return self._fresh_rotation(cycle, None, active_ids, current, force=True)

    def _retire(
        self,
        cycle: _Cycle,
        record: RotationRecord,
        active_ids: set[str]
    ) -> RotationOutcome:
        """Revoke every ACTIVE credential except the one now published."""
        self._enter(cycle, RotationPhase.RETIRE)
        candidates = sorted(
            (active_ids | set(record.pending_retirement)) - {record.new_credential_id}
        )
        failures = self._revoke_all(cycle.principal, candidates, record)

        if failures:
            error = failures[-1]
            self._records.finish(record, RecordState.PARTIAL, outcome=RotationStatus.PARTIAL.value, error=str(error))
            logger.warning("Rotation published but retirement is pending", extra={
                "principal": cycle.principal,
                "rotation_id": record.rotation_id,
                "pending_retirement": record.pending_retirement,
                "event": "rotation_partial",
            })
            return self._outcome(cycle.principal, RotationStatus.PARTIAL, RotationPhase.RETIRE,
                                 record=record, error=error, resumed=cycle.resumed)

        self._records.finish(record, RecordState.COMPLETED, outcome=RotationStatus.SUCCESS.value)
        logger.info("Rotation completed", extra={
            "principal": cycle.principal,
            "rotation_id": record.rotation_id,
            "retired": len(record.retired_credential_ids),
            "event": "rotation_completed",
        })
        return self._outcome(cycle.principal, RotationStatus.SUCCESS, RotationPhase.RETIRE,
                             record=record, resumed=cycle.resumed)

    def _revoke_all(
        self,
        principal: str,
        candidates: list[str],
        record: Optional[RotationRecord]
    ) -> list[Exception]:
        retired: list[str] = []
        pending: list[str] = []
        failures: list[Exception] = []
        for credential_id in candidates:
            try:
                self._call(f"mark credential {credential_id} retiring",
                           lambda credential_id=credential_id: self._provider.mark_retiring(principal, credential_id))
            except CredentialNotFoundError:
                pass
            except TRANSIENT_ERRORS as e:
                # Advisory only; revocation below is what retires the credential.
                logger.warning(f"Could not mark {credential_id} retiring: {e}", extra={
                    "principal": principal,
                    "event": "mark_retiring_failed",
                })

        for credential_id in candidates:
            try:
                self._call(f"revoke credential {credential_id}",
                           lambda credential_id=credential_id: self._provider.revoke(principal, credential_id))
                retired.append(credential_id)
            except CredentialNotFoundError:
                retired.append(credential_id)
            except TRANSIENT_ERRORS as e:
                pending.append(credential_id)
                failures.append(e)

        if record is not None:
            record.retired_credential_ids = sorted(set(record.retired_credential_ids) | set(retired))
            record.pending_retirement = pending
        return failures

    # Reconciliation

    def _reconcile(self, cycle: _Cycle) -> RotationOutcome:
        principal = cycle.principal
        record = self._records.load(principal)
        try:
            active_ids, current = self._read_state(principal)
        except TRANSIENT_ERRORS as e:
            return self._outcome(principal, RotationStatus.FAILED, RotationPhase.PREPARE, error=e)

        if current is None:
            return self._outcome(principal, RotationStatus.NOOP, RotationPhase.PREPARE,
                                 message="Nothing published; nothing to reconcile")

        if current.credential_id not in active_ids:
            logger.error("Secret store serves a credential that is not ACTIVE", extra={
                "principal": principal,
                "credential_id": current.credential_id,
                "event": "published_credential_inactive",
            })
            outcome = self._outcome(principal, RotationStatus.FAILED, RotationPhase.PREPARE,
                                    message="Published credential is not ACTIVE; rotate to repair")
            outcome.error_code = "published_credential_inactive"
            return outcome

        owned = (
            record is not None
            and not record.state.is_terminal
            and record.new_credential_id == current.credential_id
        )
        if not owned:
            if record is not None and not record.state.is_terminal:
                # An unpublished mint: its credential is revoked below as an orphan.
                self._records.finish(record, RecordState.ABORTED, outcome="reconciled",
                                     error="unpublished mint revoked by reconciliation")
            record = None

        candidates = sorted(active_ids - {current.credential_id})
        if not candidates and record is None:
            return self._outcome(principal, RotationStatus.NOOP, RotationPhase.RETIRE,
                                 message="No stale credentials")

        cycle.publishing = True
        self._enter(cycle, RotationPhase.RETIRE)
        tracker = record or RotationRecord(rotation_id="reconcile", principal=principal)
        failures = self._revoke_all(principal, candidates, tracker)

        status = RotationStatus.PARTIAL if failures else RotationStatus.SUCCESS
        if record is not None:
            self._records.finish(
                record,
                RecordState.PARTIAL if failures else RecordState.COMPLETED,
                outcome=status.value,
                error=str(failures[-1]) if failures else None,
            )

        outcome = self._outcome(principal, status, RotationPhase.RETIRE, record=record,
                                error=failures[-1] if failures else None)
        outcome.new_credential_id = current.credential_id
        outcome.version = current.version
        outcome.old_credential_ids = candidates
        outcome.pending_retirement = list(tracker.pending_retirement)
        logger.info(f"Reconciliation revoked {len(tracker.retired_credential_ids)} credential(s)", extra={
            "principal": principal,
            "event": "reconciliation_finished",
        })
        return outcome
