"""
Business logic services.

Each service handles one domain area. Services share one
ResolutionContext, built once from the platform catalog and passed in.
"""

from services.lookup_tables import LookupTable, ResolutionContext
from services.name_resolver import NameResolver, FuzzyMatch, similarity
from services.validation_service import ValidationEngine, ConversionResult
from services.bulk_correction_service import BulkCorrectionAnalyzer
from services.payrate_service import PayrateAssigner, build_assignments
from services.upload_orchestrator import (
    UploadOrchestrator,
    UploadEvent,
    transition,
)

__all__ = [
    "LookupTable",
    "ResolutionContext",
    "NameResolver",
    "FuzzyMatch",
    "similarity",
    "ValidationEngine",
    "ConversionResult",
    "BulkCorrectionAnalyzer",
    "PayrateAssigner",
    "build_assignments",
    "UploadOrchestrator",
    "UploadEvent",
    "transition",
]
