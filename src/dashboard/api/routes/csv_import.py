"""Bulk CSV import endpoint.

Receives one operator spreadsheet export as a multipart upload and loads it
into the table chosen on the upload form. Domain errors propagate to the
exception handlers registered in ``middleware.py``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.dashboard.api.dependencies import CSVImporterDep
from src.dashboard.models.imports import ImportResponse
from src.domain.ports import ValidationError
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["import"])


def is_clear_requested(value: Optional[str]) -> bool:
    """Only the literal "true" (any case) wipes the table before importing."""
    return (value or "").strip().lower() == "true"


@router.post("/csv-import", response_model=ImportResponse)
async def csv_import(
    importer: CSVImporterDep,
    file: Optional[UploadFile] = File(None),
    table: Optional[str] = Form(None),
    clear_existing: Optional[str] = Form(None, alias="clearExisting"),
):
    """Import an uploaded CSV file into one table.

    Parameters:
        file: CSV file (UTF-8, BOM tolerated)
        table: Target table key ("meals", "staff", ...)
        clear_existing: "true" to delete current records of the table first

    Returns:
        ImportResponse: ``{success, imported, total}``
    """
    if file is None or not table:
        raise ValidationError("Missing file or table")

    limit = settings.max_upload_bytes
    content = await file.read(limit + 1)
    if len(content) > limit:
        logger.warning(f"Rejected upload {file.filename}: larger than {limit} bytes")
        return JSONResponse(
            status_code=413,
            content={"error": f"File too large (limit {limit} bytes)"}
        )

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("File is not valid UTF-8 text", source=file.filename)

    outcome = await run_in_threadpool(
        importer.import_text,
        table,
        text,
        clear_existing=is_clear_requested(clear_existing),
        source=file.filename,
    )
    return ImportResponse(imported=outcome.imported_count, total=outcome.total_row_count)
