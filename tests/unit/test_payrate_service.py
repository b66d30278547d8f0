"""
Unit tests for pay-rate assignment.
"""

import asyncio

from config.settings import Settings
from models.upload import EmployeeGroupPayrate, EmployeeUploadResult, PayrateAssignment
from services.payrate_service import PayrateAssigner, build_assignments
from tests.conftest import FakePlatform, no_sleep


def assignment(employee_id, group_id, rate=150.0):
    return PayrateAssignment(
        employee_id=employee_id,
        group_id=group_id,
        group_name=f"Group {group_id}",
        rate=rate,
        valid_from="2024-05-01",
    )


class TestBuildAssignments:

    def test_only_successful_creations(self):
        results = [
            EmployeeUploadResult(record={}, row_index=0, success=True, remote_id=501),
            EmployeeUploadResult(record={}, row_index=1, success=False, error="rejected"),
            EmployeeUploadResult(record={}, row_index=2, success=True, remote_id=503),
        ]
        payrates = {
            0: [EmployeeGroupPayrate(group_id=10, group_name="Waiter", hourly_rate=150)],
            1: [EmployeeGroupPayrate(group_id=10, group_name="Waiter", hourly_rate=160)],
            2: [
                EmployeeGroupPayrate(group_id=10, group_name="Waiter", hourly_rate=170),
                EmployeeGroupPayrate(group_id=11, group_name="Chef", hourly_rate=200),
            ],
        }
        valid_from = {0: "2024-01-01", 1: "2024-01-01", 2: "2024-02-01"}

        assignments = build_assignments(results, payrates, valid_from)

        assert [(a.employee_id, a.group_id, a.rate, a.valid_from) for a in assignments] == [
            (501, 10, 150.0, "2024-01-01"),
            (503, 10, 170.0, "2024-02-01"),
            (503, 11, 200.0, "2024-02-01"),
        ]

    def test_rows_without_rates(self):
        results = [EmployeeUploadResult(record={}, row_index=0, success=True, remote_id=1)]
        assert build_assignments(results, {}, {0: "2024-01-01"}) == []


class TestPayrateAssigner:

    def test_failures_do_not_stop_the_phase(self):
        platform = FakePlatform(failing_groups=(11,))
        assigner = PayrateAssigner(platform, Settings(payrate_delay_ms=0), sleep=no_sleep)

        results = asyncio.run(assigner.assign([
            assignment(1, 10),
            assignment(1, 11),
            assignment(2, 10),
        ]))

        assert [r.success for r in results] == [True, False, True]
        assert results[1].error == "Rate rejected by platform"
        assert len(platform.payrate_calls) == 3

    def test_progress_after_each_call(self):
        events = []
        assigner = PayrateAssigner(FakePlatform(), Settings(payrate_delay_ms=0), sleep=no_sleep)

        asyncio.run(assigner.assign([assignment(1, 10), assignment(2, 10)], on_progress=events.append))

        assert [(e.completed, e.total) for e in events] == [(1, 2), (2, 2)]

    def test_delay_between_calls(self):
        sleeps = []

        async def record_sleep(seconds):
            sleeps.append(seconds)

        assigner = PayrateAssigner(FakePlatform(), Settings(payrate_delay_ms=250), sleep=record_sleep)
        asyncio.run(assigner.assign([assignment(1, 10), assignment(2, 10), assignment(3, 10)]))

        assert sleeps == [0.25, 0.25]

    def test_nothing_to_assign(self):
        assigner = PayrateAssigner(FakePlatform(), Settings(payrate_delay_ms=0), sleep=no_sleep)
        assert asyncio.run(assigner.assign([])) == []
