"""
Product import API routes.

Upload a product CSV, review the preview, confirm, then execute.
Nothing is written to the catalog until /execute.
"""

from fastapi import APIRouter, UploadFile, File
from fastapi.responses import JSONResponse, Response
import structlog

from models.product_import import (
    ImportPreviewResponse,
    ImportResultResponse,
    ImportSessionResponse,
)
from services.import_pipeline_service import (
    build_preview_response,
    build_result_response,
    build_session_response,
    get_import_pipeline_service,
)
from services.import_template_service import (
    ERROR_REPORT_FILENAME,
    TEMPLATE_FILENAME,
    build_error_report_csv,
    build_template_csv,
)
from services.upload_history_service import get_upload_history_service
from exceptions import AppError, ProductImportParseError

logger = structlog.get_logger(__name__)

router = APIRouter()


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


def _csv_download(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )


# ===================
# ROUTES
# ===================

@router.get("/template")
async def download_template():
    """Download the import template: header row plus example products."""
    try:
        return _csv_download(build_template_csv(), TEMPLATE_FILENAME)
    except Exception as e:
        return handle_error(e)


@router.post("/preview", response_model=ImportPreviewResponse)
async def preview_import(file: UploadFile = File(...)):
    """
    Parse an import CSV and return the preview.

    Raises:
        413: File too large
        422: Empty file, missing columns, or unreadable CSV
    """
    content = b""
    try:
        content = await file.read()
        service = get_import_pipeline_service()
        session = service.preview_upload(content, filename=file.filename)
        return build_preview_response(session)

    except ProductImportParseError as e:
        get_upload_history_service().record_failed_upload(
            filename=file.filename,
            error_message=e.message,
        )
        return handle_error(e)
    except Exception as e:
        return handle_error(e)


@router.get("/{session_id}", response_model=ImportSessionResponse)
async def get_import_session(session_id: str):
    """
    Current stage of an import session.

    Raises:
        404: Session expired or unknown
    """
    try:
        service = get_import_pipeline_service()
        return build_session_response(service.get_session(session_id))
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/back", response_model=ImportSessionResponse)
async def back_to_upload(session_id: str):
    """Discard the preview and return to upload."""
    try:
        service = get_import_pipeline_service()
        session = service.back_to_upload(service.get_session(session_id))
        return ImportSessionResponse(
            session_id=session.id,
            stage=session.stage.value,
            can_advance=True,
        )
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/confirm", response_model=ImportSessionResponse)
async def confirm_import(session_id: str):
    """
    Move from preview to confirm.

    Raises:
        422: Preview still has blocking issues
    """
    try:
        service = get_import_pipeline_service()
        session = service.confirm(service.get_session(session_id))
        return build_session_response(session)
    except Exception as e:
        return handle_error(e)


@router.post("/{session_id}/execute", response_model=ImportResultResponse)
def execute_import(session_id: str):
    """
    Write the confirmed products to the catalog.

    Runs in the threadpool: the executor blocks on database writes.

    Raises:
        422: Session is not at the confirm stage
    """
    try:
        service = get_import_pipeline_service()
        session = service.get_session(session_id)
        service.execute(session)
        return build_result_response(session)
    except Exception as e:
        return handle_error(e)


@router.get("/{session_id}/errors.csv")
async def download_error_report(session_id: str):
    """Download every issue and failed product in the session as CSV."""
    try:
        service = get_import_pipeline_service()
        session = service.get_session(session_id)
        return _csv_download(build_error_report_csv(session), ERROR_REPORT_FILENAME)
    except Exception as e:
        return handle_error(e)
