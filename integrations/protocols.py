"""
Collaborator interfaces consumed by the upload core.

PlatformClient implements all four; tests use in-memory fakes.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from models.catalog import CatalogEntry, FieldDefinitions


@runtime_checkable
class AuthProvider(Protocol):
    def is_authenticated(self) -> bool:
        ...

    async def reauthenticate(self, credential: Optional[str]) -> bool:
        """Silent re-auth with a stored refresh credential; never raises."""
        ...

    async def test_connection(self) -> bool:
        ...


@runtime_checkable
class RemoteEmployeeAPI(Protocol):
    async def create(self, request: dict[str, Any]) -> int:
        """
        Create one employee.

        Returns:
            Platform employee ID

        Raises:
            CreationFailure: If the platform rejects the request
        """
        ...

    async def find_by_emails(self, emails: list[str]) -> dict[str, dict[str, Any]]:
        """Existing employees keyed by lowercase email."""
        ...

    async def set_payrate(
        self,
        employee_id: int,
        group_id: int,
        rate: float,
        valid_from: str,
    ) -> None:
        """
        Raises:
            PayrateFailure: If the platform rejects the rate
        """
        ...


@runtime_checkable
class PortalSchemaProvider(Protocol):
    async def get_field_definitions(self) -> FieldDefinitions:
        ...


@runtime_checkable
class CatalogProvider(Protocol):
    async def get_departments(self) -> list[CatalogEntry]:
        ...

    async def get_employee_groups(self) -> list[CatalogEntry]:
        ...

    async def get_employee_types(self) -> list[CatalogEntry]:
        ...
