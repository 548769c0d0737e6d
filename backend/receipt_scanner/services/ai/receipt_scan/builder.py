"""Assemble the final expense record and stamp provenance."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from receipt_scanner.schemas.expense import ExpenseRecord, ExpenseSource, LineItem

from .contracts import NormalizedExpense


def build_expense_record(
    validated: NormalizedExpense,
    *,
    source: ExpenseSource,
    image_url: Optional[str] = None,
    now: datetime | None = None,
) -> ExpenseRecord:
    """Build the immutable ``ExpenseRecord`` for *validated*.

    ``image_url`` overrides any image reference carried in the fields; the
    scan path passes the uploaded payload here.
    """
    stamp = now or datetime.now(timezone.utc)
    data = validated.model_dump(exclude={"line_items"})
    if image_url is not None:
        data["image_url"] = image_url

    return ExpenseRecord(
        **data,
        line_items=[LineItem(**item.model_dump()) for item in validated.line_items],
        source=source,
        created_at=stamp,
        updated_at=stamp,
    )
