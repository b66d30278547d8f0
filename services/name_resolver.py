"""
Name resolver: free-text department/group/type names to platform IDs.

Resolution order per token:
1. Exact match on the normalized name
2. A numeric token that is a known ID (accepted with a warning)
3. Fuzzy match by Levenshtein distance, reported as an error with
   suggestions tiered by confidence

Resolution never raises for bad input; everything is reported in the
MappingResult.
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from rapidfuzz.distance import Levenshtein

from config.settings import Settings, get_settings
from models.catalog import Dimension
from models.mapping import MappingResult
from services.lookup_tables import LookupTable, ResolutionContext
from utils.text_utils import is_numeric_id, normalize_name, split_list

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FuzzyMatch:
    """A catalog key with its similarity to the typed token."""
    key: str
    name: str
    confidence: float


def similarity(a: str, b: str) -> float:
    """
    Confidence that b is what was meant by a.

    1 - levenshtein(a, b) / max(len(a), len(b)); "ktichen" vs "kitchen"
    is 1 - 2/7 ≈ 0.714.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


class NameResolver:
    """Resolves dimension text against the context's lookup tables."""

    def __init__(self, context: ResolutionContext, settings: Optional[Settings] = None):
        self.context = context
        self.settings = settings or get_settings()

    # ===================
    # FUZZY MATCHING
    # ===================

    def rank_matches(self, token: str, dimension: Dimension) -> list[FuzzyMatch]:
        """
        All catalog names ranked by similarity to a token.

        Ties keep catalog order.

        Args:
            token: Typed name (normalized here)
            dimension: Table to search

        Returns:
            FuzzyMatch list, best first
        """
        table = self.context.table(dimension)
        normalized = normalize_name(token)
        matches = [
            FuzzyMatch(
                key=key,
                name=table.original_name(table.id_for(key)) or key,
                confidence=similarity(normalized, key),
            )
            for key in table.names()
        ]
        matches.sort(key=lambda m: m.confidence, reverse=True)
        return matches

    def best_match(self, token: str, dimension: Dimension) -> Optional[FuzzyMatch]:
        """Highest-confidence catalog name, or None for an empty table."""
        ranked = self.rank_matches(token, dimension)
        return ranked[0] if ranked else None

    # ===================
    # RESOLUTION
    # ===================

    def tokens(self, text: Any, dimension: Dimension) -> list[str]:
        """Split text into tokens; single-value dimensions are never split."""
        if text is None:
            return []
        if dimension.multi_value or isinstance(text, (list, tuple)):
            return split_list(text)
        token = str(text).strip()
        return [token] if token else []

    def resolve(self, text: Any, dimension: Dimension) -> MappingResult:
        """
        Resolve comma-separated (or single) names to IDs.

        Args:
            text: Cell text, e.g. "Kitchen, Bar" or "12"
            dimension: Lookup dimension

        Returns:
            MappingResult with ids, errors, warnings and suggestions

        Raises:
            ContextNotInitializedError: If the context has no tables yet
        """
        result = MappingResult()
        table = self.context.table(dimension)
        seen: set[str] = set()

        for token in self.tokens(text, dimension):
            normalized = normalize_name(token)
            if normalized in seen:
                result.warnings.append(f'Duplicate entry "{token}" removed')
                continue
            seen.add(normalized)
            self._resolve_token(token, normalized, table, result)

        return result

    def _resolve_token(
        self,
        token: str,
        normalized: str,
        table: LookupTable,
        result: MappingResult
    ) -> None:
        entry_id = table.id_for(normalized)
        if entry_id is not None:
            result.ids.append(entry_id)
            return

        if is_numeric_id(token) and table.has_id(int(token)):
            result.ids.append(int(token))
            result.warnings.append(f'Using numeric ID {int(token)} for "{token}"')
            return

        ranked = self.rank_matches(normalized, table.dimension)
        best = ranked[0] if ranked else None

        if best and best.confidence > self.settings.suggestion_confidence:
            result.errors.append(f'"{token}" not found. Did you mean "{best.name}"?')
            result.suggestions.append(best.name)
        elif best and best.confidence > self.settings.possible_match_confidence:
            candidates = [
                m.name for m in ranked
                if m.confidence > self.settings.top_match_floor
            ][:self.settings.max_possible_matches]
            result.errors.append(
                f'"{token}" not found. Possible matches: {", ".join(candidates)}'
            )
        else:
            result.errors.append(f'"{token}" not found in available {table.dimension.label}')

    def resolve_ids(self, text: Any, dimension: Dimension) -> list[int]:
        """IDs only; unresolved tokens are dropped."""
        return self.resolve(text, dimension).ids
