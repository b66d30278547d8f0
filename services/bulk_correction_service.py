"""
Bulk correction: find names misspelled the same way across many rows and
fix them in one step.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from models.catalog import Dimension
from models.employee import BULK_CORRECTED_KEY, EmployeeRecord, is_skipped
from models.mapping import BulkCorrectionSummary, CorrectionAuditEntry, ErrorPattern
from services.name_resolver import NameResolver
from utils.text_utils import is_blank, is_numeric_id, normalize_name

logger = structlog.get_logger(__name__)

# Employee type is single-valued; its misses surface through validation
MULTI_VALUE_DIMENSIONS = [d for d in Dimension if d.multi_value]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BulkCorrectionAnalyzer:
    """
    Aggregates resolution failures in departments and employee groups
    into ErrorPatterns. apply_correction also accepts an employee-type
    pattern.
    """

    def __init__(
        self,
        resolver: NameResolver,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.resolver = resolver
        self.settings = resolver.settings
        self.clock = clock

    def _is_unresolved(self, token: str, dimension: Dimension) -> bool:
        table = self.resolver.context.table(dimension)
        if table.id_for(token) is not None:
            return False
        return not (is_numeric_id(token) and table.has_id(int(token)))

    def analyze(self, records: list[EmployeeRecord]) -> BulkCorrectionSummary:
        """
        Group unresolved names by (dimension, normalized name).

        Args:
            records: Employee records; skipped records are ignored

        Returns:
            BulkCorrectionSummary with patterns sorted by count, highest first
        """
        patterns: dict[tuple[Dimension, str], ErrorPattern] = {}
        total_errors = 0
        affected: set[int] = set()

        for row_index, record in enumerate(records):
            if is_skipped(record):
                continue
            for dimension in MULTI_VALUE_DIMENSIONS:
                value = record.get(dimension.field)
                if is_blank(value):
                    continue

                seen: set[str] = set()
                for token in self.resolver.tokens(value, dimension):
                    key = normalize_name(token)
                    if key in seen:
                        continue
                    seen.add(key)
                    if not self._is_unresolved(token, dimension):
                        continue

                    total_errors += 1
                    affected.add(row_index)
                    pattern = patterns.get((dimension, key))
                    if pattern is None:
                        pattern = self._new_pattern(dimension, token)
                        patterns[(dimension, key)] = pattern
                    pattern.count += 1
                    pattern.rows.append(row_index)

        ordered = sorted(patterns.values(), key=lambda p: p.count, reverse=True)
        summary = BulkCorrectionSummary(
            total_errors=total_errors,
            patterns=ordered,
            affected_rows=len(affected),
            can_bulk_fix=sum(
                p.count for p in ordered
                if p.confidence > self.settings.suggestion_confidence
            ),
        )

        logger.info(
            "bulk_correction_analyzed",
            records=len(records),
            total_errors=summary.total_errors,
            patterns=len(summary.patterns),
            can_bulk_fix=summary.can_bulk_fix
        )
        return summary

    def _new_pattern(self, dimension: Dimension, token: str) -> ErrorPattern:
        pattern = ErrorPattern(dimension=dimension, invalid_name=token)
        best = self.resolver.best_match(token, dimension)
        if best and best.confidence > self.settings.possible_match_confidence:
            pattern.suggestion = best.name
            pattern.confidence = round(best.confidence, 4)
        return pattern

    def apply_correction(
        self,
        records: list[EmployeeRecord],
        pattern: ErrorPattern,
        replacement: str,
        timestamp: Optional[datetime] = None,
    ) -> list[EmployeeRecord]:
        """
        Replace a pattern's invalid name wherever it occurs.

        Only the matching token changes; other tokens in the same field and
        other fields are left alone. Each changed record gets an audit entry
        under "_bulkCorrected".

        Args:
            records: Employee records (not modified)
            pattern: Pattern from analyze()
            replacement: Name to put in place of the invalid one
            timestamp: Audit time; now (UTC) when omitted

        Returns:
            New list; unchanged records are the same objects
        """
        dimension = pattern.dimension
        field_name = dimension.field
        target = normalize_name(pattern.invalid_name)
        when = timestamp or self.clock()

        corrected: list[EmployeeRecord] = []
        changed = 0
        for record in records:
            value = record.get(field_name)
            tokens = self.resolver.tokens(value, dimension)
            if not any(normalize_name(t) == target for t in tokens):
                corrected.append(record)
                continue

            new_tokens = [
                replacement if normalize_name(t) == target else t
                for t in tokens
            ]
            audit = dict(record.get(BULK_CORRECTED_KEY) or {})
            audit[field_name] = [
                *audit.get(field_name, []),
                CorrectionAuditEntry(
                    from_value=pattern.invalid_name,
                    to_value=replacement,
                    timestamp=when,
                ).model_dump(mode="json"),
            ]

            updated = dict(record)
            if isinstance(value, (list, tuple)):
                updated[field_name] = [
                    replacement if not is_blank(item) and normalize_name(item) == target else item
                    for item in value
                ]
            elif dimension.multi_value:
                updated[field_name] = ", ".join(new_tokens)
            else:
                updated[field_name] = new_tokens[0]
            updated[BULK_CORRECTED_KEY] = audit
            corrected.append(updated)
            changed += 1

        logger.info(
            "bulk_correction_applied",
            dimension=dimension.value,
            invalid_name=pattern.invalid_name,
            replacement=replacement,
            records_changed=changed
        )
        return corrected
