"""
Upload orchestrator.

Phases:
    preparing -> validating -> [authenticating] -> uploading
              -> [setting-payrates] -> completed | error

- Validation is an all-or-nothing gate: any error means no network call.
- One silent re-authentication attempt when the session is not valid.
- Batches go out sequentially; the first creation failure stops the run.
  Employees created before the failure are kept and reported.
- Pay rates are set one by one after a fully successful upload; failures
  are recorded per item and never stop the phase.

The state machine itself is the pure transition() function below.
"""

import asyncio
import math
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

import structlog

from config.settings import Settings, get_settings
from exceptions import AppError, AuthExpiredError, InvalidStateTransitionError
from integrations.protocols import AuthProvider, RemoteEmployeeAPI
from models.employee import EmployeeRecord, is_skipped
from models.upload import (
    EmployeeUploadResult,
    PayrateProgress,
    UploadOutcome,
    UploadProgress,
    UploadRun,
    UploadState,
)
from services.lookup_tables import ResolutionContext
from services.payrate_service import PayrateAssigner, build_assignments
from services.validation_service import ConversionResult, ValidationEngine

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[Union[UploadProgress, PayrateProgress]], None]
Sleep = Callable[[float], Awaitable[None]]


class UploadEvent(str, Enum):
    """Events that move an upload between states."""
    START = "start"
    VALIDATION_FAILED = "validation_failed"
    VALIDATION_PASSED = "validation_passed"
    AUTH_REQUIRED = "auth_required"
    AUTH_SUCCEEDED = "auth_succeeded"
    AUTH_FAILED = "auth_failed"
    UPLOAD_FAILED = "upload_failed"
    UPLOAD_SUCCEEDED = "upload_succeeded"
    PAYRATES_REQUIRED = "payrates_required"
    PAYRATES_FINISHED = "payrates_finished"
    ABORTED = "aborted"
    RETRY = "retry"


TRANSITIONS: dict[tuple[UploadState, UploadEvent], UploadState] = {
    (UploadState.PREPARING, UploadEvent.START): UploadState.VALIDATING,
    (UploadState.VALIDATING, UploadEvent.VALIDATION_FAILED): UploadState.ERROR,
    (UploadState.VALIDATING, UploadEvent.VALIDATION_PASSED): UploadState.UPLOADING,
    (UploadState.VALIDATING, UploadEvent.AUTH_REQUIRED): UploadState.AUTHENTICATING,
    (UploadState.AUTHENTICATING, UploadEvent.AUTH_SUCCEEDED): UploadState.UPLOADING,
    (UploadState.AUTHENTICATING, UploadEvent.AUTH_FAILED): UploadState.ERROR,
    (UploadState.UPLOADING, UploadEvent.UPLOAD_FAILED): UploadState.ERROR,
    (UploadState.UPLOADING, UploadEvent.UPLOAD_SUCCEEDED): UploadState.COMPLETED,
    (UploadState.UPLOADING, UploadEvent.PAYRATES_REQUIRED): UploadState.SETTING_PAYRATES,
    (UploadState.SETTING_PAYRATES, UploadEvent.PAYRATES_FINISHED): UploadState.COMPLETED,
    (UploadState.VALIDATING, UploadEvent.ABORTED): UploadState.ERROR,
    (UploadState.AUTHENTICATING, UploadEvent.ABORTED): UploadState.ERROR,
    (UploadState.UPLOADING, UploadEvent.ABORTED): UploadState.ERROR,
    (UploadState.SETTING_PAYRATES, UploadEvent.ABORTED): UploadState.ERROR,
    (UploadState.COMPLETED, UploadEvent.RETRY): UploadState.PREPARING,
    (UploadState.ERROR, UploadEvent.RETRY): UploadState.PREPARING,
}


def transition(state: UploadState, event: UploadEvent) -> UploadState:
    """
    Next state for an event.

    Raises:
        InvalidStateTransitionError: If the event is not allowed in this state
    """
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidStateTransitionError(state.value, event.value)


class UploadOrchestrator:
    """
    Runs one bulk upload end to end.

    Collaborators are injected; the orchestrator owns no credentials and
    no global state beyond the current state value.
    """

    def __init__(
        self,
        context: ResolutionContext,
        auth: AuthProvider,
        api: RemoteEmployeeAPI,
        settings: Optional[Settings] = None,
        sleep: Sleep = asyncio.sleep,
        engine: Optional[ValidationEngine] = None,
    ):
        self.context = context
        self.auth = auth
        self.api = api
        self.settings = settings or get_settings()
        self.sleep = sleep
        self.engine = engine or ValidationEngine(context, settings=self.settings)
        self.payrates = PayrateAssigner(api, self.settings, sleep)
        self.state = UploadState.PREPARING
        self._history: list[UploadState] = []

    def _advance(self, event: UploadEvent) -> None:
        previous = self.state
        self.state = transition(self.state, event)
        self._history.append(self.state)
        logger.info(
            "upload_state_changed",
            from_state=previous.value,
            upload_event=event.value,
            to_state=self.state.value
        )

    def _finish(self, run: UploadRun) -> UploadRun:
        run.state_history = list(self._history)
        return run

    async def run(
        self,
        records: list[EmployeeRecord],
        on_progress: Optional[ProgressCallback] = None,
        refresh_credential: Optional[str] = None,
        existing_by_email: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> UploadRun:
        """
        Validate, authenticate, upload and assign pay rates.

        Args:
            records: Employee records; "_skipUpload" rows are left out
            on_progress: Receives a copy of UploadProgress after each batch,
                then PayrateProgress after each pay-rate call
            refresh_credential: Refresh token for the one silent re-auth
            existing_by_email: Platform employees keyed by lowercase email,
                checked as part of the validation gate

        Returns:
            UploadRun with outcome, per-employee results and any errors

        Raises:
            InvalidStateTransitionError: If a run is already in progress
        """
        if self.state.is_terminal:
            self._advance(UploadEvent.RETRY)
        self._history = [self.state]
        self._advance(UploadEvent.START)

        try:
            return await self._execute(records, on_progress, refresh_credential, existing_by_email)
        except Exception:
            # A run always ends in a terminal state
            logger.exception("upload_aborted", state=self.state.value)
            if not self.state.is_terminal:
                self._advance(UploadEvent.ABORTED)
            raise

    async def _execute(
        self,
        records: list[EmployeeRecord],
        on_progress: Optional[ProgressCallback],
        refresh_credential: Optional[str],
        existing_by_email: Optional[Mapping[str, Mapping[str, Any]]],
    ) -> UploadRun:
        # Validating
        issues = self.engine.preflight(records, existing_by_email)
        errors = [issue for issue in issues if issue.is_error]
        warnings = [issue for issue in issues if not issue.is_error]
        if errors:
            self._advance(UploadEvent.VALIDATION_FAILED)
            return self._finish(UploadRun(
                outcome=UploadOutcome(
                    state=self.state,
                    message=(
                        f"Validation failed with {len(errors)} errors. "
                        "Nothing was uploaded."
                    ),
                ),
                errors=errors,
                warnings=warnings,
            ))

        # Authenticating
        if self.auth.is_authenticated():
            self._advance(UploadEvent.VALIDATION_PASSED)
        else:
            self._advance(UploadEvent.AUTH_REQUIRED)
            if not await self._reauthenticate(refresh_credential):
                self._advance(UploadEvent.AUTH_FAILED)
                return self._finish(UploadRun(
                    outcome=UploadOutcome(state=self.state, message=AuthExpiredError().message),
                    warnings=warnings,
                ))
            self._advance(UploadEvent.AUTH_SUCCEEDED)

        # Uploading
        rows = [row_index for row_index, record in enumerate(records) if not is_skipped(record)]
        conversions = {
            row_index: self.engine.convert(records[row_index], row_index)
            for row_index in rows
        }
        results, progress = await self._upload(records, rows, conversions, on_progress)

        failure = next((r for r in results if not r.success), None)
        if failure is not None:
            self._advance(UploadEvent.UPLOAD_FAILED)
            return self._finish(UploadRun(
                outcome=UploadOutcome(
                    state=self.state,
                    message=(
                        f"Upload stopped at row {failure.row_index + 1}: {failure.error}. "
                        f"{progress.succeeded} employees were created before the failure "
                        "and were not rolled back."
                    ),
                    partial_upload=progress.succeeded > 0,
                    succeeded_before_failure=progress.succeeded,
                ),
                results=results,
                warnings=warnings,
                progress=progress,
            ))

        # Setting pay rates
        assignments = build_assignments(
            results,
            {row: conv.payrates for row, conv in conversions.items()},
            {row: conv.payrate_valid_from for row, conv in conversions.items()},
        )
        payrate_results = []
        message = f"{progress.succeeded} employees uploaded"
        if assignments:
            self._advance(UploadEvent.PAYRATES_REQUIRED)
            payrate_results = await self.payrates.assign(assignments, on_progress)
            set_count = sum(1 for r in payrate_results if r.success)
            message += f"; {set_count} of {len(payrate_results)} pay rates set"
            self._advance(UploadEvent.PAYRATES_FINISHED)
        else:
            self._advance(UploadEvent.UPLOAD_SUCCEEDED)

        return self._finish(UploadRun(
            outcome=UploadOutcome(state=self.state, message=message),
            results=results,
            warnings=warnings,
            payrate_results=payrate_results,
            progress=progress,
        ))

    async def _reauthenticate(self, credential: Optional[str]) -> bool:
        """Exactly one silent attempt."""
        try:
            return await self.auth.reauthenticate(credential)
        except AppError as e:
            logger.warning("silent_reauthentication_failed", error=e.message)
            return False

    async def _upload(
        self,
        records: list[EmployeeRecord],
        rows: list[int],
        conversions: dict[int, ConversionResult],
        on_progress: Optional[ProgressCallback],
    ) -> tuple[list[EmployeeUploadResult], UploadProgress]:
        """Submit batches in order; stop after the batch holding the first failure."""
        batch_size = self.settings.upload_batch_size
        batches = [rows[i:i + batch_size] for i in range(0, len(rows), batch_size)]
        progress = UploadProgress(
            total=len(rows),
            total_batches=len(batches),
            in_progress=True,
        )
        results: list[EmployeeUploadResult] = []
        delay = self.settings.delay_between_batches_ms / 1000

        logger.info("upload_started", total=progress.total, batches=progress.total_batches)

        for batch_number, batch in enumerate(batches, start=1):
            progress.current_batch = batch_number
            failed = False

            for row_index in batch:
                progress.attempted += 1
                try:
                    remote_id = await self.api.create(conversions[row_index].converted)
                except Exception as e:
                    # Anything the platform call raises fails this item
                    error = e.message if isinstance(e, AppError) else f"Unexpected error: {e}"
                    failed = True
                    progress.failed += 1
                    results.append(EmployeeUploadResult(
                        record=records[row_index],
                        row_index=row_index,
                        success=False,
                        error=error,
                    ))
                    logger.error(
                        "employee_creation_failed",
                        row=row_index + 1,
                        batch=batch_number,
                        error=error,
                        error_type=type(e).__name__
                    )
                    break

                progress.succeeded += 1
                results.append(EmployeeUploadResult(
                    record=records[row_index],
                    row_index=row_index,
                    success=True,
                    remote_id=remote_id,
                ))

            if failed or batch_number == len(batches):
                progress.in_progress = False
            if on_progress:
                on_progress(progress.model_copy())

            logger.info(
                "batch_uploaded",
                batch=batch_number,
                total_batches=len(batches),
                succeeded=progress.succeeded,
                failed=progress.failed
            )
            if failed:
                break
            if batch_number < len(batches) and delay:
                await self.sleep(delay)

        progress.in_progress = False
        return results, progress
