"""
Test data factories.

Uses factory pattern to generate consistent test data.
"""

from typing import Optional


class EmployeeRecordFactory:
    """
    Factory for creating employee records as parsed from a spreadsheet.

    Usage:
        # Create with defaults (valid against the default catalog)
        record = EmployeeRecordFactory.create()

        # Create with overrides
        record = EmployeeRecordFactory.create(departments="Ktichen")

        # Create multiple
        records = EmployeeRecordFactory.create_batch(5)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        first_name: Optional[str] = None,
        last_name: str = "Jensen",
        user_name: Optional[str] = None,
        **fields
    ) -> dict:
        """
        Create a single employee record.

        Args:
            first_name: Auto-generated if not provided
            last_name: Last name
            user_name: Login email (unique per call if not provided)
            **fields: Any other record field, e.g. departments="Bar"

        Returns:
            Employee record dict
        """
        counter = cls._next_counter()
        record = {
            "firstName": first_name or f"Employee{counter}",
            "lastName": last_name,
            "userName": user_name or f"employee{counter}@example.com",
            "departments": "Kitchen",
            "employeeGroups": "Waiter",
            "cellPhone": "12345678",
            "cellPhoneCountryCode": "DK",
            "hiredFrom": "2024-03-01",
        }
        record.update(fields)
        return record

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list:
        """Create multiple records with unique emails."""
        return [cls.create(**overrides) for _ in range(count)]


class CatalogFactory:
    """Factory for platform catalog data ({id, name} entries per dimension)."""

    @classmethod
    def create(
        cls,
        departments: Optional[list] = None,
        employee_groups: Optional[list] = None,
        employee_types: Optional[list] = None,
    ) -> dict:
        return {
            "departments": departments if departments is not None else [
                {"id": 1, "name": "Kitchen"},
                {"id": 2, "name": "Bar"},
                {"id": 3, "name": "Front of House"},
            ],
            "employee_groups": employee_groups if employee_groups is not None else [
                {"id": 10, "name": "Waiter"},
                {"id": 11, "name": "Chef"},
                {"id": 12, "name": "Bartender"},
            ],
            "employee_types": employee_types if employee_types is not None else [
                {"id": 20, "name": "Full-time"},
                {"id": 21, "name": "Part-time"},
            ],
        }

    @classmethod
    def as_request(cls, **overrides) -> dict:
        """Catalog in the /catalog request shape (camelCase keys)."""
        catalog = cls.create(**overrides)
        return {
            "departments": catalog["departments"],
            "employeeGroups": catalog["employee_groups"],
            "employeeTypes": catalog["employee_types"],
        }
