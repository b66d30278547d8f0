"""
Employee upload script: workbook in, employees on the platform out.

Usage:
    # Check a workbook without uploading anything
    python scripts/upload_employees.py data/employees.xlsx --dry-run

    # Upload (refresh token from --refresh-token or PLATFORM_REFRESH_TOKEN)
    python scripts/upload_employees.py data/employees.xlsx --sheet "Staff" --month-first
"""

import argparse
import asyncio
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from config import settings
from integrations.platform_client import PlatformClient
from models.catalog import Dimension
from models.upload import PayrateProgress, UploadProgress
from parsers.date_parser import DateOrder, detect_date_order, find_ambiguous_dates
from parsers.employee_excel_parser import parse_employee_workbook
from services.bulk_correction_service import BulkCorrectionAnalyzer
from services.lookup_tables import ResolutionContext
from services.name_resolver import NameResolver
from services.upload_orchestrator import UploadOrchestrator
from services.validation_service import ValidationEngine

# ─────────────────────────────────────────────────────────────
# CONSOLE OUTPUT
# ─────────────────────────────────────────────────────────────

RULE = "─" * 60


def print_header(title: str) -> None:
    print(f"\n{RULE}\n  {title}\n{RULE}")


def print_progress(progress) -> None:
    if isinstance(progress, UploadProgress):
        print(
            f"  Batch {progress.current_batch}/{progress.total_batches}: "
            f"{progress.succeeded} created, {progress.failed} failed "
            f"({progress.attempted}/{progress.total} attempted)"
        )
    elif isinstance(progress, PayrateProgress):
        print(f"  Pay rates: {progress.completed}/{progress.total}")


def print_issues(issues, limit: int = 50) -> None:
    for issue in issues[:limit]:
        marker = "ERROR" if issue.is_error else "warn "
        print(f"  [{marker}] row {issue.row_number:>4}  {issue.field}: {issue.message}")
    if len(issues) > limit:
        print(f"  ... and {len(issues) - limit} more")


def pick_date_order(records, args) -> DateOrder:
    """Explicit flag wins; otherwise detect from the data, defaulting to day-first."""
    if args.month_first:
        return DateOrder.MONTH_FIRST
    if args.day_first:
        return DateOrder.DAY_FIRST

    values = [r.get(f) for r in records for f in ("hiredFrom", "birthDate", "wageValidFrom")]
    detected = detect_date_order(values)
    if detected:
        print(f"  Date order detected: {detected.value}")
        return detected

    ambiguous = find_ambiguous_dates(values)
    if ambiguous:
        print(f"  Ambiguous dates ({', '.join(ambiguous)}); assuming {DateOrder.DAY_FIRST.value}.")
        print("  Pass --month-first if that is wrong.")
    return DateOrder.DAY_FIRST


# ─────────────────────────────────────────────────────────────
# MAIN FLOW
# ─────────────────────────────────────────────────────────────

async def run(args) -> int:
    print_header(f"Reading {os.path.basename(args.workbook)}")
    sheet = parse_employee_workbook(args.workbook, sheet=args.sheet)
    print(f"  Records: {len(sheet.records)}")
    print(f"  Mapped columns: {len(sheet.column_mapping)}")
    if sheet.unmapped_columns:
        print(f"  Unmapped columns: {', '.join(sheet.unmapped_columns)}")
    for problem in sheet.errors:
        print(f"  [sheet] row {problem.row} {problem.column}: {problem.error}")

    refresh_token = args.refresh_token or os.environ.get("PLATFORM_REFRESH_TOKEN")
    if not refresh_token:
        print("\nNo refresh token. Use --refresh-token or set PLATFORM_REFRESH_TOKEN.")
        return 2

    platform = PlatformClient(settings)
    await platform.initialize(refresh_token)

    print_header("Loading platform catalog")
    context = ResolutionContext()
    context.initialize(
        await platform.get_departments(),
        await platform.get_employee_groups(),
        await platform.get_employee_types(),
    )
    context.set_field_definitions(await platform.get_field_definitions())
    for dimension in Dimension:
        print(f"  {dimension.label.capitalize()}: {len(context.table(dimension))}")

    date_order = pick_date_order(sheet.records, args)
    engine = ValidationEngine(context, date_order=date_order)

    print_header("Checking existing employees")
    emails = [str(r["userName"]) for r in sheet.records if r.get("userName")]
    existing = await platform.find_by_emails(emails)
    print(f"  Already on the platform: {len(existing)}")

    print_header("Validating")
    issues = engine.preflight(sheet.records, existing)
    errors = [i for i in issues if i.is_error]
    print(f"  Errors: {len(errors)}  Warnings: {len(issues) - len(errors)}")
    print_issues(issues)

    summary = BulkCorrectionAnalyzer(NameResolver(context)).analyze(sheet.records)
    if summary.patterns:
        print_header("Repeated naming errors")
        for pattern in summary.patterns:
            hint = f' -> "{pattern.suggestion}" ({pattern.confidence:.0%})' if pattern.suggestion else ""
            print(f"  {pattern.dimension.label}: \"{pattern.invalid_name}\" x{pattern.count}{hint}")
        print(f"  {summary.can_bulk_fix} of {summary.total_errors} errors have a confident fix")

    if args.dry_run:
        print("\nDry run: nothing uploaded.")
        return 1 if errors else 0
    if errors:
        print("\nFix the errors above and run again. Nothing was uploaded.")
        return 1

    print_header("Uploading")
    orchestrator = UploadOrchestrator(context, auth=platform, api=platform, engine=engine)
    result = await orchestrator.run(
        sheet.records,
        on_progress=print_progress,
        refresh_credential=refresh_token,
        existing_by_email=existing,
    )

    print(f"\n  {result.outcome.state.value.upper()}: {result.outcome.message}")
    for payrate in result.payrate_results:
        if not payrate.success:
            print(f"  Pay rate failed for employee {payrate.employee_id} "
                  f"({payrate.group_name}): {payrate.error}")
    return 0 if result.outcome.state.value == "completed" else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate and upload an employee workbook")
    parser.add_argument("workbook", help="Path to the .xlsx file")
    parser.add_argument("--sheet", default=None, help="Sheet name (first sheet by default)")
    parser.add_argument("--refresh-token", default=None, help="Platform OAuth refresh token")
    parser.add_argument("--dry-run", action="store_true", help="Validate only")
    order = parser.add_mutually_exclusive_group()
    order.add_argument("--day-first", action="store_true", help="Read 01/02/2024 as 1 February")
    order.add_argument("--month-first", action="store_true", help="Read 01/02/2024 as 2 January")
    args = parser.parse_args()

    if not os.path.isfile(args.workbook):
        print(f"File not found: {args.workbook}")
        return 2
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
