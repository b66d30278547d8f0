"""
Employee import API routes.

Catalog initialization, name resolution, validation, bulk correction,
spreadsheet parsing and the full upload run.
"""

from io import BytesIO
from typing import Any, Optional

import structlog
from fastapi import APIRouter, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from exceptions import (
    AppError,
    AuthExpiredError,
    ContextNotInitializedError,
    UploadValidationError,
)
from models.catalog import Dimension, FieldDefinitions
from models.employee_import import (
    CatalogRequest,
    CatalogStatusResponse,
    CorrectionRequest,
    CorrectionResponse,
    RecordsRequest,
    ResolveRequest,
    ResolveResponse,
    RunRequest,
    RunResponse,
    ValidationResponse,
)
from models.mapping import BulkCorrectionSummary
from models.upload import PayrateProgress, UploadProgress
from parsers.employee_excel_parser import parse_employee_workbook
from services.bulk_correction_service import BulkCorrectionAnalyzer
from services.lookup_tables import ResolutionContext
from services.name_resolver import NameResolver
from services.upload_orchestrator import UploadOrchestrator
from services.validation_service import ValidationEngine

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/employee-import", tags=["Employee Import"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def get_context(request: Request) -> ResolutionContext:
    return request.app.state.context


def _require_initialized(context: ResolutionContext) -> None:
    if not context.is_initialized:
        raise ContextNotInitializedError()


# ===================
# CATALOG / SCHEMA
# ===================

@router.post("/catalog", response_model=CatalogStatusResponse)
async def initialize_catalog(body: CatalogRequest, request: Request):
    """
    Build the lookup tables from the platform catalog.

    Replaces any previously loaded tables.
    """
    try:
        context = get_context(request)
        context.initialize(body.departments, body.employee_groups, body.employee_types)
        return CatalogStatusResponse(
            departments=len(context.table(Dimension.DEPARTMENTS)),
            employee_groups=len(context.table(Dimension.EMPLOYEE_GROUPS)),
            employee_types=len(context.table(Dimension.EMPLOYEE_TYPES)),
        )
    except Exception as e:
        return handle_error(e)


@router.post("/field-definitions")
async def load_field_definitions(body: FieldDefinitions, request: Request):
    """Store the portal's field definitions (required/unique/read-only/custom)."""
    try:
        context = get_context(request)
        context.set_field_definitions(body)
        engine = ValidationEngine(context)
        return {
            "required": engine.required_fields(),
            "unique": engine.unique_fields(),
            "read_only": engine.read_only_fields(),
            "custom_fields": engine.custom_fields(),
        }
    except Exception as e:
        return handle_error(e)


# ===================
# RESOLUTION / VALIDATION
# ===================

@router.post("/resolve", response_model=ResolveResponse)
async def resolve_names(body: ResolveRequest, request: Request):
    """Resolve free-text names against one dimension."""
    try:
        resolver = NameResolver(get_context(request))
        return ResolveResponse(
            dimension=body.dimension,
            result=resolver.resolve(body.text, body.dimension),
        )
    except Exception as e:
        return handle_error(e)


@router.post("/validate", response_model=ValidationResponse)
async def validate_records(
    body: RecordsRequest,
    request: Request,
    strict: bool = Query(False, description="Respond 422 when any error is found"),
):
    """
    Run the full pre-upload validation over a dataset.

    Returns every error and warning in one response.
    """
    try:
        context = get_context(request)
        _require_initialized(context)
        issues = ValidationEngine(context).preflight(body.records, body.existing_by_email)
        errors = [i for i in issues if i.is_error]
        warnings = [i for i in issues if not i.is_error]
        if strict and errors:
            raise UploadValidationError([e.model_dump(mode="json") for e in errors])
        return ValidationResponse(
            valid=not errors,
            error_count=len(errors),
            warning_count=len(warnings),
            errors=errors,
            warnings=warnings,
        )
    except Exception as e:
        return handle_error(e)


# ===================
# BULK CORRECTION
# ===================

@router.post("/analyze", response_model=BulkCorrectionSummary)
async def analyze_records(body: RecordsRequest, request: Request):
    """Group repeated naming errors into correctable patterns."""
    try:
        analyzer = BulkCorrectionAnalyzer(NameResolver(get_context(request)))
        return analyzer.analyze(body.records)
    except Exception as e:
        return handle_error(e)


@router.post("/apply-correction", response_model=CorrectionResponse)
async def apply_correction(body: CorrectionRequest, request: Request):
    """Replace one pattern's invalid name across the dataset."""
    try:
        analyzer = BulkCorrectionAnalyzer(NameResolver(get_context(request)))
        corrected = analyzer.apply_correction(body.records, body.pattern, body.replacement)
        changed = sum(1 for before, after in zip(body.records, corrected) if before is not after)
        return CorrectionResponse(records=corrected, records_changed=changed)
    except Exception as e:
        return handle_error(e)


# ===================
# SPREADSHEET
# ===================

@router.post("/spreadsheet")
async def upload_spreadsheet(
    file: UploadFile = File(...),
    sheet: Optional[str] = Query(None, description="Sheet name; first sheet if omitted"),
):
    """Parse an employee workbook into records."""
    logger.info(
        "spreadsheet_upload_started",
        filename=file.filename,
        content_type=file.content_type
    )

    try:
        content = await file.read()
        result = parse_employee_workbook(BytesIO(content), sheet=sheet)
        return result.to_dict()
    except Exception as e:
        return handle_error(e)


# ===================
# UPLOAD
# ===================

@router.post("/run", response_model=RunResponse)
async def run_upload(body: RunRequest, request: Request):
    """
    Validate and upload a dataset to the platform, then set pay rates.

    Nothing is sent unless the whole dataset validates. With
    check_existing, an expired session is re-authenticated before the
    email lookup; if that fails the run answers 401 and nothing is sent.
    """
    try:
        context = get_context(request)
        _require_initialized(context)
        platform = request.app.state.platform

        existing = None
        if body.check_existing:
            if not platform.is_authenticated():
                if not await platform.reauthenticate(body.refresh_token):
                    logger.warning("existing_employee_check_failed", reason="not_authenticated")
                    raise AuthExpiredError()
            emails = [str(r.get("userName", "")) for r in body.records if r.get("userName")]
            existing = await platform.find_by_emails(emails)

        events: list[dict[str, Any]] = []

        def on_progress(progress):
            kind = "payrates" if isinstance(progress, PayrateProgress) else "upload"
            events.append({"phase": kind, **progress.model_dump()})
            if isinstance(progress, UploadProgress):
                logger.info(
                    "upload_progress",
                    batch=progress.current_batch,
                    total_batches=progress.total_batches,
                    succeeded=progress.succeeded
                )

        orchestrator = UploadOrchestrator(context, auth=platform, api=platform)
        run = await orchestrator.run(
            body.records,
            on_progress=on_progress,
            refresh_credential=body.refresh_token,
            existing_by_email=existing,
        )
        return RunResponse(run=run, progress_events=events)
    except Exception as e:
        return handle_error(e)
