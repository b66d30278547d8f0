"""
Pay-rate assignment for newly created employees.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from config.settings import Settings, get_settings
from exceptions import AppError
from integrations.protocols import RemoteEmployeeAPI
from models.upload import (
    EmployeeGroupPayrate,
    EmployeeUploadResult,
    PayrateAssignment,
    PayrateProgress,
    PayrateResult,
)

logger = structlog.get_logger(__name__)

PayrateProgressCallback = Callable[[PayrateProgress], None]
Sleep = Callable[[float], Awaitable[None]]


def build_assignments(
    results: list[EmployeeUploadResult],
    payrates_by_row: dict[int, list[EmployeeGroupPayrate]],
    valid_from_by_row: dict[int, str],
) -> list[PayrateAssignment]:
    """
    One assignment per (created employee, group rate) pair.

    Args:
        results: Creation results; only successes with an ID are used
        payrates_by_row: Rate annotations per dataset row
        valid_from_by_row: Effective-from date per dataset row

    Returns:
        Assignments in creation order
    """
    assignments = []
    for result in results:
        if not result.success or result.remote_id is None:
            continue
        for payrate in payrates_by_row.get(result.row_index, []):
            assignments.append(PayrateAssignment(
                employee_id=result.remote_id,
                group_id=payrate.group_id,
                group_name=payrate.group_name,
                rate=payrate.hourly_rate,
                valid_from=valid_from_by_row[result.row_index],
            ))
    return assignments


class PayrateAssigner:
    """
    Submits hourly rates one at a time.

    Never stops early: each assignment gets its own result regardless of
    how the others went.
    """

    def __init__(
        self,
        api: RemoteEmployeeAPI,
        settings: Optional[Settings] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.api = api
        self.settings = settings or get_settings()
        self.sleep = sleep

    async def assign(
        self,
        assignments: list[PayrateAssignment],
        on_progress: Optional[PayrateProgressCallback] = None,
    ) -> list[PayrateResult]:
        """
        Set every rate, sequentially.

        Args:
            assignments: Rates to set
            on_progress: Called with {completed, total} after each call

        Returns:
            One PayrateResult per assignment, in order
        """
        progress = PayrateProgress(completed=0, total=len(assignments))
        results: list[PayrateResult] = []
        delay = self.settings.payrate_delay_ms / 1000

        logger.info("payrate_assignment_started", total=progress.total)

        for index, assignment in enumerate(assignments):
            error = None
            try:
                await self.api.set_payrate(
                    assignment.employee_id,
                    assignment.group_id,
                    assignment.rate,
                    assignment.valid_from,
                )
            except AppError as e:
                error = e.message
                logger.warning(
                    "payrate_failed",
                    employee_id=assignment.employee_id,
                    group_id=assignment.group_id,
                    error=error
                )

            results.append(PayrateResult(
                employee_id=assignment.employee_id,
                group_id=assignment.group_id,
                group_name=assignment.group_name,
                rate=assignment.rate,
                success=error is None,
                error=error,
            ))
            progress.completed += 1
            if on_progress:
                on_progress(progress.model_copy())

            if delay and index < len(assignments) - 1:
                await self.sleep(delay)

        logger.info(
            "payrate_assignment_completed",
            total=len(results),
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success)
        )
        return results
