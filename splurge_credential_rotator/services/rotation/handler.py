"""Trigger surface for scheduled or on-demand rotations."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Union

from splurge_credential_rotator.config import DEFAULT_CONFIG, RotatorConfig
from splurge_credential_rotator.exceptions import CredentialRotatorError
from splurge_credential_rotator.models import RotationOutcome, RotationPhase, RotationStatus
from splurge_credential_rotator.services.rotation.coordinator import RotationCoordinator

logger = logging.getLogger(__name__)

SUMMARY_SUCCESS = "success"
SUMMARY_PARTIAL = "partial"
SUMMARY_FAILED = "failed"

_EXIT_CODES = {
    SUMMARY_SUCCESS: 0,
    SUMMARY_FAILED: 1,
    SUMMARY_PARTIAL: 2,
}


class RotationHandler:
    """Runs rotations for one principal or a batch of principals.

    Principals in a batch rotate concurrently on a thread pool; each one is
    still serialized by its own lease inside the coordinator.
    """

    def __init__(self, coordinator: RotationCoordinator, *, config: RotatorConfig = DEFAULT_CONFIG):
        """Initialize the rotation handler.

        Args:
            coordinator: Coordinator performing individual rotations
            config: Provides the worker pool size
        """
        self._coordinator = coordinator
        self._config = config

    def handle(
        self,
        principal_or_batch: Union[str, Iterable[str]],
        *,
        force: bool = False
    ) -> list[RotationOutcome]:
        """Rotate each principal and return outcomes in input order."""
        return self._run(
            principal_or_batch,
            lambda principal: self._coordinator.rotate(principal, force=force),
        )

    def reconcile(self, principal_or_batch: Union[str, Iterable[str]]) -> list[RotationOutcome]:
        """Run a reconciliation pass for each principal."""
        return self._run(principal_or_batch, self._coordinator.reconcile)

    def _run(
        self,
        principal_or_batch: Union[str, Iterable[str]],
        operation: Callable[[str], RotationOutcome]
    ) -> list[RotationOutcome]:
        principals = self._normalize(principal_or_batch)
        if not principals:
            return []

        def guarded(principal: str) -> RotationOutcome:
            try:
                return operation(principal)
            except CredentialRotatorError as e:
                logger.error(f"Rotation for {principal!r} failed: {e}", extra={
                    "principal": principal,
                    "event": "rotation_error",
                })
                return RotationOutcome(
                    principal=principal,
                    status=RotationStatus.FAILED,
                    phase=RotationPhase.PREPARE,
                    error_code=e.error_code,
                    message=str(e),
                )
            except Exception as e:
                # A backend bug must not discard the rest of the batch.
                logger.exception(f"Rotation for {principal!r} raised an unexpected error", extra={
                    "principal": principal,
                    "event": "rotation_unexpected_error",
                })
                return RotationOutcome(
                    principal=principal,
                    status=RotationStatus.FAILED,
                    phase=RotationPhase.PREPARE,
                    error_code="unexpected_error",
                    message=f"{type(e).__name__}: {e}",
                )

        if len(principals) == 1:
            return [guarded(principals[0])]

        workers = min(self._config.max_workers, len(principals))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rotation") as executor:
            outcomes = list(executor.map(guarded, principals))

        logger.info(f"Batch finished: {self.summarize(outcomes)}", extra={
            "principals": len(principals),
            "event": "rotation_batch_finished",
        })
        return outcomes

    @staticmethod
    def _normalize(principal_or_batch: Union[str, Iterable[str]]) -> list[str]:
        if isinstance(principal_or_batch, str):
            return [principal_or_batch]
        seen: set[str] = set()
        principals = []
        for principal in principal_or_batch:
            if principal in seen:
                logger.warning(f"Duplicate principal {principal!r} in batch ignored", extra={
                    "principal": principal,
                    "event": "duplicate_principal",
                })
                continue
            seen.add(principal)
            principals.append(principal)
        return principals

    @staticmethod
    def summarize(outcomes: list[RotationOutcome]) -> str:
        """Classify a set of outcomes as success, partial or failed (worst wins)."""
        if any(not outcome.succeeded for outcome in outcomes):
            return SUMMARY_FAILED
        if any(outcome.status == RotationStatus.PARTIAL for outcome in outcomes):
            return SUMMARY_PARTIAL
        return SUMMARY_SUCCESS

    @classmethod
    def exit_code(cls, outcomes: list[RotationOutcome]) -> int:
        """Process exit status: 0 success, 2 partial, 1 failure."""
        return _EXIT_CODES[cls.summarize(outcomes)]
