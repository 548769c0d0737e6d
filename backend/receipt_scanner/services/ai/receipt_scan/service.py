"""Receipt scan pipeline: image -> raw text -> fields -> record -> store.

The manual path skips the vision call and the parser but goes through the
same normalization and validation as scanned receipts.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from receipt_scanner.core.config import NormalizationDefaults
from receipt_scanner.core.errors import ExternalServiceError, StorageError
from receipt_scanner.models.expense import Expense
from receipt_scanner.services.expense_repository import ExpenseRepository
from receipt_scanner.utils.alerting import alert_tracker

from ..common.providers.base import ProviderResult
from .builder import build_expense_record
from .client import VisionExtractionClient
from .contracts import ExtractionTier
from .normalizer import normalize_extraction, normalize_manual
from .parser import parse_response
from .validator import validate_expense

logger = logging.getLogger(__name__)


@dataclass
class ScanServiceResult:
    """Result from ``scan_receipt`` including provider metadata."""

    expense: Expense
    tier: ExtractionTier
    provider_result: ProviderResult


async def scan_receipt(
    image_bytes: bytes,
    mime_type: str,
    repository: ExpenseRepository,
    *,
    client: VisionExtractionClient,
    defaults: NormalizationDefaults,
    image_url: Optional[str] = None,
    today: date | None = None,
    now: datetime | None = None,
) -> ScanServiceResult:
    """Run the full scan pipeline for one receipt image.

    Raises ``ExternalServiceError`` or ``StorageError``; in both cases no
    record is stored.
    """
    try:
        provider_result = await client.extract_text(image_bytes, mime_type)
    except ExternalServiceError as exc:
        alert_tracker.record("VISION_SERVICE_FAILED", {"provider": client.provider_name, "status": exc.status_code})
        raise

    extraction = parse_response(provider_result.raw_text)
    normalized = normalize_extraction(extraction, defaults=defaults, today=today)
    validated = validate_expense(normalized)
    record = build_expense_record(validated, source="scan", image_url=image_url, now=now)

    expense = _store(repository, record)
    logger.info("Scanned receipt stored: id=%s tier=%s vendor=%r", expense.id, extraction.tier, record.vendor)
    return ScanServiceResult(expense=expense, tier=extraction.tier, provider_result=provider_result)


def record_manual_expense(
    payload: Mapping[str, Any],
    repository: ExpenseRepository,
    *,
    defaults: NormalizationDefaults,
    today: date | None = None,
    now: datetime | None = None,
) -> Expense:
    """Store a caller-entered expense after normalization and validation."""
    normalized = normalize_manual(payload, defaults=defaults, today=today)
    validated = validate_expense(normalized)
    record = build_expense_record(validated, source="manual", now=now)
    expense = _store(repository, record)
    logger.info("Manual expense stored: id=%s vendor=%r", expense.id, record.vendor)
    return expense


def _store(repository: ExpenseRepository, record) -> Expense:
    try:
        return repository.create(record)
    except StorageError:
        alert_tracker.record("EXPENSE_STORE_FAILED", {"source": record.source})
        raise
