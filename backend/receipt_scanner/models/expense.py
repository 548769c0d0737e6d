import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Numeric,
    String,
    Text,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from sqlalchemy.types import CHAR, TypeDecorator

Base = declarative_base()


class GUID(TypeDecorator):
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return value if dialect.name == "postgresql" else str(value)
        if isinstance(value, str):
            try:
                parsed = uuid.UUID(value)
            except ValueError:
                return value
            return parsed if dialect.name == "postgresql" else str(parsed)
        return value

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(value)
        except ValueError:
            return value


UUID_TYPE = GUID()
JSON_TYPE = JSON().with_variant(JSONB, "postgresql")
MONEY_TYPE = Numeric(asdecimal=False)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(UUID_TYPE, primary_key=True, default=uuid.uuid4)

    vendor = Column(Text, nullable=False)
    vendor_address = Column(Text)
    vendor_phone = Column(Text)
    date = Column(Date, nullable=False)
    receipt_number = Column(Text)

    subtotal = Column(MONEY_TYPE, nullable=False)
    tax = Column(MONEY_TYPE, nullable=False, default=0, server_default=text("0"))
    tip = Column(MONEY_TYPE)
    discount = Column(MONEY_TYPE)
    total = Column(MONEY_TYPE, nullable=False)
    currency = Column(String(3), nullable=False, default="USD", server_default=text("'USD'"))

    category = Column(String(32), nullable=False, default="Other", server_default=text("'Other'"))
    subcategory = Column(Text)
    payment_method = Column(String(32), nullable=False, default="Other", server_default=text("'Other'"))
    expense_type = Column(String(32), nullable=False, default="Personal", server_default=text("'Personal'"))

    line_items = Column(JSON_TYPE, nullable=False, default=list)

    description = Column(Text)
    notes = Column(Text)
    tags = Column(JSON_TYPE, nullable=False, default=list)
    is_recurring = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    recurring_frequency = Column(Text)

    raw_text = Column(Text, nullable=False)
    image_url = Column(Text)
    confidence = Column(Float, nullable=False, default=0.0)

    is_business_expense = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    is_tax_deductible = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    project_id = Column(Text)
    client_id = Column(Text)

    source = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_expenses_subtotal_nonneg"),
        CheckConstraint("tax >= 0", name="ck_expenses_tax_nonneg"),
        CheckConstraint("tip IS NULL OR tip >= 0", name="ck_expenses_tip_nonneg"),
        CheckConstraint("discount IS NULL OR discount >= 0", name="ck_expenses_discount_nonneg"),
        CheckConstraint("total >= 0", name="ck_expenses_total_nonneg"),
        CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_expenses_confidence_range"),
        CheckConstraint("source IN ('scan', 'manual')", name="ck_expenses_source"),
        Index("idx_expenses_date", date.desc()),
        Index("idx_expenses_category", "category"),
        Index("idx_expenses_vendor", "vendor"),
        Index("idx_expenses_is_business", "is_business_expense"),
        Index("idx_expenses_is_tax_deductible", "is_tax_deductible"),
    )


@event.listens_for(Expense, "before_update")
def _touch_updated_at(_mapper, _connection, target: Expense) -> None:
    target.updated_at = datetime.now(timezone.utc)
