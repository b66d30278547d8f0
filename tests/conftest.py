"""
Shared test fixtures.

The platform is replaced by FakePlatform, an in-memory stand-in that
implements the same auth and employee API as PlatformClient.
"""

import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import pytest
from typing import Any, Optional

from config.settings import Settings
from exceptions import CreationFailure, PayrateFailure
from services.lookup_tables import ResolutionContext
from services.name_resolver import NameResolver
from services.validation_service import ValidationEngine
from tests.factories import CatalogFactory

# ===================
# FAKE PLATFORM
# ===================

class FakePlatform:
    """
    In-memory platform.

    Usage:
        platform = FakePlatform(fail_at=3)  # 4th create call is rejected
        platform = FakePlatform(authenticated=False, reauth_result=False)
        platform = FakePlatform(fail_at=1, failure=ValueError("bad body"))
    """

    def __init__(
        self,
        authenticated: bool = True,
        reauth_result: bool = True,
        fail_at: Optional[int] = None,
        failing_groups: tuple = (),
        existing: Optional[dict[str, dict[str, Any]]] = None,
        failure: Optional[Exception] = None,
    ):
        self.authenticated = authenticated
        self.reauth_result = reauth_result
        self.fail_at = fail_at
        self.failing_groups = set(failing_groups)
        self.existing = existing or {}
        self.failure = failure or CreationFailure("Salary identifier already in use")

        self.create_requests: list[dict[str, Any]] = []
        self.payrate_calls: list[tuple] = []
        self.reauth_calls: list[Optional[str]] = []
        self.email_lookups: list[list[str]] = []
        self._next_id = 1000

    def is_authenticated(self) -> bool:
        return self.authenticated

    async def reauthenticate(self, credential: Optional[str]) -> bool:
        self.reauth_calls.append(credential)
        if self.reauth_result:
            self.authenticated = True
        return self.reauth_result

    async def test_connection(self) -> bool:
        return self.authenticated

    async def create(self, request: dict[str, Any]) -> int:
        index = len(self.create_requests)
        self.create_requests.append(request)
        if self.fail_at is not None and index == self.fail_at:
            raise self.failure
        self._next_id += 1
        return self._next_id

    async def find_by_emails(self, emails: list[str]) -> dict[str, dict[str, Any]]:
        self.email_lookups.append(list(emails))
        wanted = {e.strip().lower() for e in emails}
        return {k: v for k, v in self.existing.items() if k in wanted}

    async def set_payrate(self, employee_id: int, group_id: int, rate: float, valid_from: str) -> None:
        self.payrate_calls.append((employee_id, group_id, rate, valid_from))
        if group_id in self.failing_groups:
            raise PayrateFailure(employee_id, group_id, "Rate rejected by platform")


async def no_sleep(seconds: float) -> None:
    return None


# ===================
# FIXTURES
# ===================

@pytest.fixture
def test_settings() -> Settings:
    """Settings with no pacing delays."""
    return Settings(
        upload_batch_size=2,
        delay_between_batches_ms=0,
        payrate_delay_ms=0,
    )


@pytest.fixture
def catalog() -> dict:
    return CatalogFactory.create()


@pytest.fixture
def context(catalog) -> ResolutionContext:
    """
    Initialized resolution context.

    Departments: Kitchen(1), Bar(2), Front of House(3)
    Employee groups: Waiter(10), Chef(11), Bartender(12)
    Employee types: Full-time(20), Part-time(21)
    """
    ctx = ResolutionContext()
    ctx.initialize(
        catalog["departments"],
        catalog["employee_groups"],
        catalog["employee_types"],
    )
    return ctx


@pytest.fixture
def resolver(context, test_settings) -> NameResolver:
    return NameResolver(context, test_settings)


@pytest.fixture
def engine(context, resolver, test_settings) -> ValidationEngine:
    return ValidationEngine(context, resolver=resolver, settings=test_settings)


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    FastAPI test client with the lifespan run (fresh context per test).

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as client:
        yield client
