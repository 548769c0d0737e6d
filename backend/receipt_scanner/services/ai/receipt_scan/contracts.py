"""Receipt scan scope contracts: parser output and the normalized record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExtractionTier(StrEnum):
    """Which parsing strategy produced the candidate fields."""

    STRUCTURED = "structured"
    FALLBACK = "fallback"
    EMPTY = "empty"


@dataclass(frozen=True)
class ExtractionResult:
    """Candidate fields pulled from a model response.

    ``fields`` carries no guarantee of presence, type or range; every tier is
    consumed the same way, as a mapping with possibly-missing keys.
    """

    tier: ExtractionTier
    raw_text: str
    fields: dict[str, Any] = field(default_factory=dict)


class NormalizedLineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    quantity: float = 1.0
    unit_price: float = 0.0
    total_price: float = 0.0
    category: Optional[str] = None


class NormalizedExpense(BaseModel):
    """Every field populated and typed; categoricals not yet gatekept."""

    model_config = ConfigDict(frozen=True)

    vendor: str
    vendor_address: Optional[str] = None
    vendor_phone: Optional[str] = None
    date: date
    receipt_number: Optional[str] = None

    subtotal: float = 0.0
    tax: float = 0.0
    tip: Optional[float] = None
    discount: Optional[float] = None
    total: float = 0.0
    currency: str = "USD"

    category: str = "Other"
    subcategory: Optional[str] = None
    payment_method: str = "Other"
    expense_type: str = "Personal"

    line_items: list[NormalizedLineItem] = Field(default_factory=list)

    description: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    is_recurring: bool = False
    recurring_frequency: Optional[str] = None

    raw_text: str = ""
    image_url: Optional[str] = None
    confidence: float = 0.5

    is_business_expense: bool = False
    is_tax_deductible: bool = False
    project_id: Optional[str] = None
    client_id: Optional[str] = None
