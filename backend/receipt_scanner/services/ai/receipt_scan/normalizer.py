"""Coerce candidate fields into a complete, typed expense.

Each field is handled on its own: a coercion rule, then a default when the
rule fails. Nothing in this module raises on bad input.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Optional

from receipt_scanner.core.config import NormalizationDefaults

from .contracts import ExtractionResult, ExtractionTier, NormalizedExpense, NormalizedLineItem

_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_CURRENCY_SYMBOLS = "$€£¥₹"
_CURRENCY_CODE = re.compile(r"^[A-Za-z]{3}$")
_TRUE_STRINGS = {"true", "1", "yes", "on"}

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
)


# ---------------------------------------------------------------------------
# Scalar coercions
# ---------------------------------------------------------------------------


def to_text(value: Any, default: Optional[str] = None) -> Optional[str]:
    """Stripped text, or *default* when absent or blank."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return default
    if isinstance(value, bool):
        return default
    text = str(value).strip()
    return text or default


def parse_number(value: Any) -> Optional[float]:
    """Parse *value* as a decimal number; ``None`` when it is not one.

    Numbers are taken as they are. Text is read by its leading numeric prefix
    once whitespace, a leading currency symbol and thousands commas are gone.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    text = value.strip().lstrip(_CURRENCY_SYMBOLS).strip().replace(",", "")
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def to_amount(value: Any, default: float = 0.0) -> float:
    """Non-negative amount; *default* on absence or parse failure."""
    number = parse_number(value)
    if number is None:
        return default
    return max(number, 0.0)


def to_optional_amount(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_amount(value)


def clamp_confidence(value: Any, default: float) -> float:
    number = parse_number(value)
    if number is None:
        number = default
    return min(max(number, 0.0), 1.0)


def to_date(value: Any, today: date) -> date:
    """Calendar date from *value*; *today* when absent or unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = to_text(value)
    if text is None:
        return today

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return today


def to_currency(value: Any, default: str) -> str:
    text = to_text(value)
    if text and _CURRENCY_CODE.match(text):
        return text.upper()
    return default


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value == 1
    return False


def to_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        candidates: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        candidates = list(value)
    else:
        return []

    tags: list[str] = []
    for candidate in candidates:
        tag = to_text(candidate)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def normalize_line_items(value: Any, defaults: NormalizationDefaults) -> list[NormalizedLineItem]:
    if not isinstance(value, (list, tuple)):
        return []

    items: list[NormalizedLineItem] = []
    for raw in value:
        if isinstance(raw, str):
            raw = {"name": raw}
        elif not isinstance(raw, Mapping):
            raw = {}
        items.append(
            NormalizedLineItem(
                name=to_text(raw.get("name"), defaults.item_name),
                quantity=to_amount(raw.get("quantity"), default=1.0),
                unit_price=to_amount(_pick(raw, "unitPrice", "unit_price")),
                total_price=to_amount(_pick(raw, "totalPrice", "total_price")),
                category=to_text(raw.get("category")),
            )
        )
    return items


def _pick(fields: Mapping[str, Any], *keys: str) -> Any:
    """First present value among camelCase / snake_case spellings."""
    for key in keys:
        if key in fields:
            return fields[key]
    return None


# ---------------------------------------------------------------------------
# Record-level normalization
# ---------------------------------------------------------------------------


def _normalize_fields(
    fields: Mapping[str, Any],
    *,
    vendor_default: str,
    confidence_default: float,
    raw_text_default: str,
    defaults: NormalizationDefaults,
    today: date,
) -> NormalizedExpense:
    return NormalizedExpense(
        vendor=to_text(fields.get("vendor"), vendor_default),
        vendor_address=to_text(_pick(fields, "vendorAddress", "vendor_address")),
        vendor_phone=to_text(_pick(fields, "vendorPhone", "vendor_phone")),
        date=to_date(fields.get("date"), today),
        receipt_number=to_text(_pick(fields, "receiptNumber", "receipt_number")),
        subtotal=to_amount(fields.get("subtotal")),
        tax=to_amount(fields.get("tax")),
        tip=to_optional_amount(fields.get("tip")),
        discount=to_optional_amount(fields.get("discount")),
        total=to_amount(fields.get("total")),
        currency=to_currency(fields.get("currency"), defaults.currency),
        category=to_text(fields.get("category"), "Other"),
        subcategory=to_text(fields.get("subcategory")),
        payment_method=to_text(_pick(fields, "paymentMethod", "payment_method"), "Other"),
        expense_type=to_text(_pick(fields, "expenseType", "expense_type"), "Personal"),
        line_items=normalize_line_items(_pick(fields, "lineItems", "line_items"), defaults),
        description=to_text(fields.get("description")),
        notes=to_text(fields.get("notes")),
        tags=to_tags(fields.get("tags")),
        is_recurring=to_bool(_pick(fields, "isRecurring", "is_recurring")),
        recurring_frequency=to_text(_pick(fields, "recurringFrequency", "recurring_frequency")),
        raw_text=to_text(_pick(fields, "rawText", "raw_text"), raw_text_default) or "",
        image_url=to_text(_pick(fields, "imageUrl", "image_url")),
        confidence=clamp_confidence(fields.get("confidence"), confidence_default),
        is_business_expense=to_bool(_pick(fields, "isBusinessExpense", "is_business_expense")),
        is_tax_deductible=to_bool(_pick(fields, "isTaxDeductible", "is_tax_deductible")),
        project_id=to_text(_pick(fields, "projectId", "project_id")),
        client_id=to_text(_pick(fields, "clientId", "client_id")),
    )


def normalize_extraction(
    result: ExtractionResult,
    *,
    defaults: NormalizationDefaults,
    today: date | None = None,
) -> NormalizedExpense:
    """Normalize model-derived candidates (scan path)."""
    confidence_default = (
        defaults.scan_confidence if result.tier is ExtractionTier.STRUCTURED else defaults.fallback_confidence
    )
    return _normalize_fields(
        result.fields,
        vendor_default=defaults.scan_vendor,
        confidence_default=confidence_default,
        raw_text_default=result.raw_text,
        defaults=defaults,
        today=today or date.today(),
    )


def normalize_manual(
    payload: Mapping[str, Any],
    *,
    defaults: NormalizationDefaults,
    today: date | None = None,
) -> NormalizedExpense:
    """Normalize caller-supplied fields (manual path)."""
    return _normalize_fields(
        payload,
        vendor_default=defaults.manual_vendor,
        confidence_default=defaults.manual_confidence,
        raw_text_default="",
        defaults=defaults,
        today=today or date.today(),
    )
