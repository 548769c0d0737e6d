"""Expense store: the create / list operations the pipeline depends on."""

from __future__ import annotations

import logging

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from receipt_scanner.core.errors import StorageError
from receipt_scanner.models.expense import Expense
from receipt_scanner.schemas.expense import ExpenseOut, ExpenseRecord, LineItemOut

logger = logging.getLogger(__name__)


class ExpenseRepository:
    """Persists ``ExpenseRecord``s through a SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, record: ExpenseRecord) -> Expense:
        """Insert *record* in one transaction.

        Raises ``StorageError`` when the write fails; nothing is left behind.
        """
        row = Expense(
            vendor=record.vendor,
            vendor_address=record.vendor_address,
            vendor_phone=record.vendor_phone,
            date=record.date,
            receipt_number=record.receipt_number,
            subtotal=record.subtotal,
            tax=record.tax,
            tip=record.tip,
            discount=record.discount,
            total=record.total,
            currency=record.currency,
            category=record.category.value,
            subcategory=record.subcategory,
            payment_method=record.payment_method.value,
            expense_type=record.expense_type.value,
            line_items=[item.model_dump() for item in record.line_items],
            description=record.description,
            notes=record.notes,
            tags=list(record.tags),
            is_recurring=record.is_recurring,
            recurring_frequency=record.recurring_frequency,
            raw_text=record.raw_text,
            image_url=record.image_url,
            confidence=record.confidence,
            is_business_expense=record.is_business_expense,
            is_tax_deductible=record.is_tax_deductible,
            project_id=record.project_id,
            client_id=record.client_id,
            source=record.source,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        try:
            self._db.add(row)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.warning("Failed to store expense for vendor %r: %s", record.vendor, exc)
            raise StorageError("Failed to save expense") from exc

        self._db.refresh(row)
        logger.info("Stored expense %s (source=%s, total=%.2f)", row.id, row.source, row.total)
        return row

    def find_all(self) -> list[Expense]:
        """All expenses, most recent ``date`` first."""
        try:
            return (
                self._db.query(Expense)
                .order_by(desc(Expense.date), desc(Expense.created_at))
                .all()
            )
        except SQLAlchemyError as exc:
            logger.warning("Failed to list expenses: %s", exc)
            raise StorageError("Failed to fetch expenses") from exc


def expense_to_out(row: Expense) -> ExpenseOut:
    return ExpenseOut(
        id=str(row.id),
        vendor=row.vendor,
        vendor_address=row.vendor_address,
        vendor_phone=row.vendor_phone,
        date=row.date,
        receipt_number=row.receipt_number,
        subtotal=float(row.subtotal or 0),
        tax=float(row.tax or 0),
        tip=float(row.tip) if row.tip is not None else None,
        discount=float(row.discount) if row.discount is not None else None,
        total=float(row.total or 0),
        currency=row.currency,
        category=row.category,
        subcategory=row.subcategory,
        payment_method=row.payment_method,
        expense_type=row.expense_type,
        line_items=[LineItemOut(**item) for item in (row.line_items or [])],
        description=row.description,
        notes=row.notes,
        tags=list(row.tags or []),
        is_recurring=bool(row.is_recurring),
        recurring_frequency=row.recurring_frequency,
        raw_text=row.raw_text,
        image_url=row.image_url,
        confidence=float(row.confidence),
        is_business_expense=bool(row.is_business_expense),
        is_tax_deductible=bool(row.is_tax_deductible),
        project_id=row.project_id,
        client_id=row.client_id,
        source=row.source,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
