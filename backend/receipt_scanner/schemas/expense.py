from datetime import date, datetime
from enum import StrEnum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExpenseCategory(StrEnum):
    FOOD_DINING = "Food & Dining"
    GROCERIES = "Groceries"
    TRANSPORTATION = "Transportation"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    SHOPPING = "Shopping"
    TRAVEL = "Travel"
    EDUCATION = "Education"
    BUSINESS = "Business"
    HOME_MAINTENANCE = "Home & Maintenance"
    SUBSCRIPTIONS = "Subscriptions"
    INSURANCE = "Insurance"
    TAXES = "Taxes"
    GIFTS_DONATIONS = "Gifts & Donations"
    PERSONAL_CARE = "Personal Care"
    OTHER = "Other"


class PaymentMethod(StrEnum):
    CASH = "Cash"
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    BANK_TRANSFER = "Bank Transfer"
    DIGITAL_WALLET = "Digital Wallet"
    CHECK = "Check"
    OTHER = "Other"


class ExpenseType(StrEnum):
    PERSONAL = "Personal"
    BUSINESS = "Business"
    TAX_DEDUCTIBLE = "Tax Deductible"


ExpenseSource = Literal["scan", "manual"]


# --- Pipeline records ---


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="Unknown Item", min_length=1)
    quantity: float = Field(default=1.0, ge=0)
    unit_price: float = Field(default=0.0, ge=0)
    total_price: float = Field(default=0.0, ge=0)
    category: Optional[str] = None


class ExpenseRecord(BaseModel):
    """A validated expense, ready for the store.

    Built once by the record builder and not mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    vendor: str = Field(..., min_length=1)
    vendor_address: Optional[str] = None
    vendor_phone: Optional[str] = None
    date: date
    receipt_number: Optional[str] = None

    subtotal: float = Field(..., ge=0)
    tax: float = Field(..., ge=0)
    tip: Optional[float] = Field(default=None, ge=0)
    discount: Optional[float] = Field(default=None, ge=0)
    total: float = Field(..., ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    category: ExpenseCategory = ExpenseCategory.OTHER
    subcategory: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.OTHER
    expense_type: ExpenseType = ExpenseType.PERSONAL

    line_items: list[LineItem] = Field(default_factory=list)

    description: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    is_recurring: bool = False
    recurring_frequency: Optional[str] = None

    raw_text: str = ""
    image_url: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)

    is_business_expense: bool = False
    is_tax_deductible: bool = False
    project_id: Optional[str] = None
    client_id: Optional[str] = None

    source: ExpenseSource
    created_at: datetime
    updated_at: datetime


# --- API ---


class ScanReceiptRequest(BaseModel):
    """Inbound body for POST /scan-receipt.

    ``manual=true`` carries caller-supplied record fields (camelCase, as the
    UI sends them); otherwise ``imageUrl`` must hold the image payload.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    manual: bool = False
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    # Honoured only when ENABLE_AI_OVERRIDES=true.
    override_provider: Optional[str] = Field(default=None, alias="overrideProvider")
    override_model: Optional[str] = Field(default=None, alias="overrideModel")

    def manual_fields(self) -> dict[str, Any]:
        data = dict(self.model_extra or {})
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data


class LineItemOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    name: str
    quantity: float
    unit_price: float = Field(alias="unitPrice")
    total_price: float = Field(alias="totalPrice")
    category: Optional[str] = None


class ExpenseOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    id: str
    vendor: str
    vendor_address: Optional[str] = Field(default=None, alias="vendorAddress")
    vendor_phone: Optional[str] = Field(default=None, alias="vendorPhone")
    date: date
    receipt_number: Optional[str] = Field(default=None, alias="receiptNumber")
    subtotal: float
    tax: float
    tip: Optional[float] = None
    discount: Optional[float] = None
    total: float
    currency: str
    category: ExpenseCategory
    subcategory: Optional[str] = None
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    expense_type: ExpenseType = Field(alias="expenseType")
    line_items: list[LineItemOut] = Field(default_factory=list, alias="lineItems")
    description: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    is_recurring: bool = Field(default=False, alias="isRecurring")
    recurring_frequency: Optional[str] = Field(default=None, alias="recurringFrequency")
    raw_text: str = Field(alias="rawText")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    confidence: float
    is_business_expense: bool = Field(default=False, alias="isBusinessExpense")
    is_tax_deductible: bool = Field(default=False, alias="isTaxDeductible")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    source: ExpenseSource
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class ScanReceiptResponse(BaseModel):
    success: bool = True
    data: ExpenseOut


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class CategoryTotal(BaseModel):
    name: str
    value: float


class ExpenseSummary(BaseModel):
    total_spent: float
    currency: str
    count: int
    by_category: list[CategoryTotal]
