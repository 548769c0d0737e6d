"""Closed-schema gatekeeping for normalized expenses."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TypeVar

from receipt_scanner.schemas.expense import ExpenseCategory, ExpenseType, PaymentMethod

from .contracts import NormalizedExpense, NormalizedLineItem

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=StrEnum)

# Canonical label -> member; exact, case-sensitive.
_CATEGORY_LABELS: dict[str, ExpenseCategory] = {m.value: m for m in ExpenseCategory}
_PAYMENT_LABELS: dict[str, PaymentMethod] = {m.value: m for m in PaymentMethod}
_EXPENSE_TYPE_LABELS: dict[str, ExpenseType] = {m.value: m for m in ExpenseType}


def coerce_member(value: object, labels: dict[str, E], fallback: E, *, field: str) -> E:
    """Return the member whose label is exactly *value*, else *fallback*."""
    if isinstance(value, str) and value in labels:
        return labels[value]
    logger.info("Correcting %s %r to %r", field, value, fallback.value)
    return fallback


def validate_category(value: object) -> ExpenseCategory:
    return coerce_member(value, _CATEGORY_LABELS, ExpenseCategory.OTHER, field="category")


def validate_payment_method(value: object) -> PaymentMethod:
    return coerce_member(value, _PAYMENT_LABELS, PaymentMethod.OTHER, field="paymentMethod")


def validate_expense_type(value: object) -> ExpenseType:
    return coerce_member(value, _EXPENSE_TYPE_LABELS, ExpenseType.PERSONAL, field="expenseType")


def _non_negative(value: float) -> float:
    return value if value > 0 else 0.0


def _validate_line_item(item: NormalizedLineItem) -> NormalizedLineItem:
    return item.model_copy(
        update={
            "quantity": _non_negative(item.quantity),
            "unit_price": _non_negative(item.unit_price),
            "total_price": _non_negative(item.total_price),
        }
    )


def validate_expense(expense: NormalizedExpense) -> NormalizedExpense:
    """Replace out-of-schema categoricals and re-assert numeric bounds.

    Corrections are silent apart from an INFO log line. Validating an already
    valid expense returns an equal expense.
    """
    return expense.model_copy(
        update={
            "category": validate_category(expense.category).value,
            "payment_method": validate_payment_method(expense.payment_method).value,
            "expense_type": validate_expense_type(expense.expense_type).value,
            "subtotal": _non_negative(expense.subtotal),
            "tax": _non_negative(expense.tax),
            "tip": None if expense.tip is None else _non_negative(expense.tip),
            "discount": None if expense.discount is None else _non_negative(expense.discount),
            "total": _non_negative(expense.total),
            "confidence": min(max(expense.confidence, 0.0), 1.0),
            "line_items": [_validate_line_item(item) for item in expense.line_items],
        }
    )
