import json
import logging

from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile as FormFile

from wedding_rsvp.core.errors import ImportFormatError, ImportProcessingError
from wedding_rsvp.db.session import get_db
from wedding_rsvp.schemas import (
    BatchImportResponse,
    ErrorResponse,
    ProcessedCounts,
    RawRecordBatch,
    SkippedCounts,
    TextGuestImportResponse,
    TypedGuestBatch,
)
from wedding_rsvp.services.reconciler import (
    ReconcileOutcome,
    normalize_raw_records,
    normalize_typed_records,
    reconcile,
)
from wedding_rsvp.services.record_parser import decode_upload, parse_records

router = APIRouter()
logger = logging.getLogger(__name__)

IMPORT_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed or empty import data"},
    500: {"model": ErrorResponse, "description": "Import failed while writing to the database"},
    504: {"model": ErrorResponse, "description": "Database timed out"},
}

def build_response(outcome: ReconcileOutcome) -> BatchImportResponse:
    return BatchImportResponse(
        success=True,
        processed=ProcessedCounts(households=outcome.households_created, guests=outcome.guests_created),
        skipped=SkippedCounts(duplicates=outcome.duplicates, invalid=outcome.invalid),
        results=outcome.results,
        errors=outcome.errors or None,
        processing_time=outcome.processing_time,
    )

def import_raw_records(db: Session, rows: list) -> BatchImportResponse:
    records, dropped = normalize_raw_records(rows)
    return build_response(reconcile(db, records, dropped))

async def read_batch_field(request: Request) -> list:
    """Pull the `data` form field ({"records": [...]}) out of a multipart upload"""
    form = await request.form()
    data = form.get("data")
    if data is None:
        raise ImportFormatError("The request must include a `data` form field", error="No data provided")

    raw = await data.read() if isinstance(data, FormFile) else data
    try:
        batch = RawRecordBatch.model_validate(json.loads(raw))
    except ValueError as e:
        logger.warning(f"Rejected batch payload: {e}")
        raise ImportFormatError("Batch data must be JSON of the form {\"records\": [...]}",
                                error="No valid records in batch")

    if not batch.records:
        raise ImportFormatError("The batch contains no records", error="No valid records in batch")
    return batch.records

@router.post("/admin/upload-batch", response_model=BatchImportResponse, response_model_exclude_none=True,
             responses=IMPORT_ERROR_RESPONSES)
async def upload_batch(request: Request, db: Session = Depends(get_db)):
    """
    Import one chunk of a CSV upload.
    Multipart field `data`: JSON {"records": [{"Name": ..., "Household": ...}, ...]}
    """
    rows = await read_batch_field(request)
    logger.info(f"Processing batch of {len(rows)} records")

    try:
        return import_raw_records(db, rows)
    except Exception as e:
        logger.error(f"Batch upload error: {e}", exc_info=True)
        raise ImportProcessingError("Failed to process batch", e)

@router.post("/admin/import-text", response_model=BatchImportResponse, response_model_exclude_none=True,
             responses=IMPORT_ERROR_RESPONSES)
def import_text(batch: RawRecordBatch, db: Session = Depends(get_db)):
    """Import header-keyed rows parsed from pasted spreadsheet text"""
    if not batch.records:
        raise ImportFormatError("No valid records provided", error="No valid records provided")

    logger.info(f"Processing {len(batch.records)} records from text import")
    try:
        return import_raw_records(db, batch.records)
    except Exception as e:
        logger.error(f"Text import error: {e}", exc_info=True)
        raise ImportProcessingError("Failed to process import", e)

@router.post("/admin/import-text-guests", response_model=TextGuestImportResponse, response_model_exclude_none=True,
             responses=IMPORT_ERROR_RESPONSES)
def import_text_guests(batch: TypedGuestBatch, response: Response, db: Session = Depends(get_db)):
    """
    Import guests whose fields were already typed by the client
    (name, household, email, isChild, isTeenager, dietaryNotes).
    Responds 207 when some guests failed for reasons other than duplication.
    """
    if not batch.guests:
        raise ImportFormatError("No valid guest data provided", error="No valid guest data provided")

    logger.info(f"Processing {len(batch.guests)} guests from pasted data")
    try:
        records, dropped = normalize_typed_records(batch.guests)
        outcome = reconcile(db, records, dropped)
    except Exception as e:
        logger.error(f"Error in import-text-guests route: {e}", exc_info=True)
        raise ImportProcessingError("Failed to process guest data", e)

    base = build_response(outcome)
    result = TextGuestImportResponse(
        **base.model_dump(),
        message=(
            f"Successfully imported {outcome.guests_created} guests "
            f"across {outcome.households_created} new households"
        ),
    )

    failures = outcome.failures
    if failures:
        response.status_code = 207
        result.warning = f"{len(failures)} guests could not be imported"
        result.errors = (outcome.errors or []) + [f"{r.name} ({r.household_name}): {r.error}" for r in failures]
    return result

@router.post("/admin/upload-csv", response_model=BatchImportResponse, response_model_exclude_none=True,
             responses=IMPORT_ERROR_RESPONSES)
async def upload_csv(file: UploadFile = File(...), db: Session = Depends(get_db)):
    """
    Bulk import a whole CSV file in one request.
    Required CSV headers: 'Name', 'Household'
    Optional CSV headers: 'Email', 'Child', 'Teenager', 'DietaryNotes'
    """
    # 1. Validate File Type
    if not (file.filename or "").lower().endswith('.csv'):
        raise HTTPException(status_code=400, detail="Invalid file format. Please upload a .csv file.")

    # 2. Read & parse file
    content = await file.read()
    rows = parse_records(decode_upload(content))
    logger.info(f"Processing file {file.filename} ({len(content) / (1024 * 1024):.2f} MB, {len(rows)} rows)")

    records, dropped = normalize_raw_records(rows)
    if not records:
        raise ImportFormatError("No valid records found in the CSV", error="No valid records")

    # 3. Reconcile
    try:
        return build_response(reconcile(db, records, dropped))
    except Exception as e:
        logger.error(f"CSV upload error: {e}", exc_info=True)
        raise ImportProcessingError("Failed to process upload", e)
