"""
Lookup tables and the resolution context.

A LookupTable maps normalized names to platform identifiers for one
dimension. The ResolutionContext holds one table per dimension plus the
portal's field definitions. It is built once from the platform's catalog
and passed explicitly to the resolver, validator and orchestrator.
"""

from typing import Any, Iterable, Mapping, Optional, Union

import structlog

from exceptions import ContextNotInitializedError
from models.catalog import CatalogEntry, Dimension, FieldDefinitions
from utils.text_utils import normalize_name

logger = structlog.get_logger(__name__)

CatalogInput = Iterable[Union[CatalogEntry, Mapping[str, Any]]]


class LookupTable:
    """
    Read-only name <-> id mapping for one dimension.

    Keys are normalized names. When two catalog names normalize to the
    same key the first one wins.
    """

    def __init__(self, dimension: Dimension, entries: CatalogInput):
        self.dimension = dimension
        self._by_name: dict[str, int] = {}
        self._by_id: dict[int, str] = {}

        for raw in entries:
            entry = raw if isinstance(raw, CatalogEntry) else CatalogEntry(**raw)
            if not entry.name:
                continue
            key = normalize_name(entry.name)
            if not key:
                continue
            if key in self._by_name:
                logger.warning(
                    "duplicate_catalog_name",
                    dimension=dimension.value,
                    name=entry.name,
                    kept_id=self._by_name[key],
                    dropped_id=entry.id
                )
                continue
            self._by_name[key] = entry.id
            self._by_id[entry.id] = entry.name

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return normalize_name(name) in self._by_name

    @property
    def by_name(self) -> dict[str, int]:
        return dict(self._by_name)

    @property
    def by_id(self) -> dict[int, str]:
        return dict(self._by_id)

    def id_for(self, name: Any) -> Optional[int]:
        return self._by_name.get(normalize_name(name))

    def has_id(self, entry_id: int) -> bool:
        return entry_id in self._by_id

    def original_name(self, entry_id: int) -> Optional[str]:
        return self._by_id.get(entry_id)

    def names(self) -> list[str]:
        """Normalized keys, in catalog order."""
        return list(self._by_name)

    def options(self) -> list[str]:
        """Original catalog names, in catalog order."""
        return list(self._by_id.values())


class ResolutionContext:
    """
    Shared, initialize-once state for resolution and validation.

    Tables are rebuilt wholesale on every initialize() call and never
    patched in place, so readers always see a consistent set.
    """

    def __init__(self):
        self._tables: Optional[dict[Dimension, LookupTable]] = None
        self._field_definitions: Optional[FieldDefinitions] = None

    def initialize(
        self,
        departments: CatalogInput,
        employee_groups: CatalogInput,
        employee_types: CatalogInput = (),
    ) -> None:
        """
        Build lookup tables from the platform catalog.

        Args:
            departments: {id, name} records
            employee_groups: {id, name} records
            employee_types: {id, name} records
        """
        tables = {
            Dimension.DEPARTMENTS: LookupTable(Dimension.DEPARTMENTS, departments),
            Dimension.EMPLOYEE_GROUPS: LookupTable(Dimension.EMPLOYEE_GROUPS, employee_groups),
            Dimension.EMPLOYEE_TYPES: LookupTable(Dimension.EMPLOYEE_TYPES, employee_types),
        }
        self._tables = tables

        logger.info(
            "resolution_context_initialized",
            departments=len(tables[Dimension.DEPARTMENTS]),
            employee_groups=len(tables[Dimension.EMPLOYEE_GROUPS]),
            employee_types=len(tables[Dimension.EMPLOYEE_TYPES])
        )

    def set_field_definitions(self, definitions: Union[FieldDefinitions, Mapping[str, Any]]) -> None:
        if not isinstance(definitions, FieldDefinitions):
            definitions = FieldDefinitions.model_validate(definitions)
        self._field_definitions = definitions
        logger.info(
            "field_definitions_loaded",
            required=len(definitions.required),
            unique=len(definitions.unique),
            read_only=len(definitions.read_only),
            properties=len(definitions.properties)
        )

    @property
    def is_initialized(self) -> bool:
        return self._tables is not None

    @property
    def field_definitions(self) -> Optional[FieldDefinitions]:
        return self._field_definitions

    def table(self, dimension: Dimension) -> LookupTable:
        """
        Get the lookup table for a dimension.

        Raises:
            ContextNotInitializedError: If initialize() was never called
        """
        if self._tables is None:
            raise ContextNotInitializedError()
        return self._tables[dimension]
