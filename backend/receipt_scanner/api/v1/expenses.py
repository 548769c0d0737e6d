import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from receipt_scanner.core.config import get_settings
from receipt_scanner.core.dependencies import get_db
from receipt_scanner.core.errors import ConfigurationError, ExternalServiceError, StorageError
from receipt_scanner.schemas.expense import (
    ErrorResponse,
    ExpenseOut,
    ExpenseSummary,
    ScanReceiptRequest,
    ScanReceiptResponse,
)
from receipt_scanner.services.ai.receipt_scan.client import VisionExtractionClient
from receipt_scanner.services.ai.receipt_scan.service import record_manual_expense, scan_receipt
from receipt_scanner.services.expense_reports import summarize_expenses
from receipt_scanner.services.expense_repository import ExpenseRepository, expense_to_out
from receipt_scanner.utils.alerting import alert_tracker
from receipt_scanner.utils.data_url import ImagePayloadTooLarge, InvalidImagePayload, decode_image_payload

router = APIRouter()
logger = logging.getLogger(__name__)

VisionClientFactory = Callable[..., VisionExtractionClient]


def get_vision_client_factory() -> VisionClientFactory:
    """Clients are built lazily so manual entries never need AI credentials."""
    return VisionExtractionClient.from_settings


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


def _created(expense) -> JSONResponse:
    body = ScanReceiptResponse(data=expense_to_out(expense))
    return JSONResponse(status_code=201, content=body.model_dump(mode="json", by_alias=True))


@router.get("/scan-receipt", response_model=list[ExpenseOut])
def list_expenses(db: Session = Depends(get_db)):
    try:
        rows = ExpenseRepository(db).find_all()
    except StorageError:
        return _error(500, "Failed to fetch expenses.")
    return [expense_to_out(row) for row in rows]


@router.post(
    "/scan-receipt",
    status_code=201,
    response_model=ScanReceiptResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_expense(
    payload: ScanReceiptRequest,
    db: Session = Depends(get_db),
    client_factory: VisionClientFactory = Depends(get_vision_client_factory),
):
    settings = get_settings()
    defaults = settings.normalization_defaults()
    repository = ExpenseRepository(db)

    if payload.manual:
        try:
            expense = record_manual_expense(payload.manual_fields(), repository, defaults=defaults)
        except StorageError:
            return _error(500, "Failed to save manual entry.")
        return _created(expense)

    if not payload.image_url:
        return _error(400, "No image data provided.")

    try:
        image = decode_image_payload(payload.image_url, max_bytes=settings.max_image_bytes)
    except ImagePayloadTooLarge:
        return _error(413, f"Image exceeds the {settings.max_image_bytes} byte limit.")
    except InvalidImagePayload as exc:
        return _error(400, str(exc))

    try:
        client = client_factory(
            override_provider=payload.override_provider,
            override_model=payload.override_model,
        )
    except ConfigurationError as exc:
        alert_tracker.record("VISION_NOT_CONFIGURED", {"reason": str(exc)})
        logger.warning("Receipt scan rejected: %s", exc)
        return _error(503, "Receipt scanning is not configured.")

    try:
        result = await scan_receipt(
            image.data,
            image.mime_type,
            repository,
            client=client,
            defaults=defaults,
            image_url=payload.image_url,
        )
    except ExternalServiceError:
        return _error(502, "Failed to process receipt.")
    except StorageError:
        return _error(500, "Failed to save expense.")

    return _created(result.expense)


@router.get("/expenses/summary", response_model=ExpenseSummary)
def expenses_summary(db: Session = Depends(get_db)):
    try:
        rows = ExpenseRepository(db).find_all()
    except StorageError:
        return _error(500, "Failed to fetch expenses.")
    return summarize_expenses(rows, default_currency=get_settings().default_currency)
