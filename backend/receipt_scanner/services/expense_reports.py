"""Spending summaries over stored expenses."""

from __future__ import annotations

from collections.abc import Iterable

from receipt_scanner.models.expense import Expense
from receipt_scanner.schemas.expense import CategoryTotal, ExpenseSummary


def summarize_expenses(expenses: Iterable[Expense], *, default_currency: str = "USD") -> ExpenseSummary:
    """Total spent and per-category totals.

    *expenses* is expected newest first, as the repository lists them; the
    summary currency is that of the first expense. No currency conversion is
    attempted.
    """
    total_spent = 0.0
    count = 0
    currency: str | None = None
    by_category: dict[str, float] = {}

    for expense in expenses:
        amount = float(expense.total or 0)
        total_spent += amount
        count += 1
        if currency is None:
            currency = expense.currency
        by_category[expense.category] = by_category.get(expense.category, 0.0) + amount

    return ExpenseSummary(
        total_spent=round(total_spent, 2),
        currency=currency or default_currency,
        count=count,
        by_category=[CategoryTotal(name=name, value=round(value, 2)) for name, value in by_category.items()],
    )
