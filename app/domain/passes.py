"""Domain models for pass definitions and purchased (owned) passes."""
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import Field

from app.domain.base import DocumentModel, RequestModel


class DurationUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


# A month is 30 days and a year 365.
DAYS_PER_UNIT = {
    DurationUnit.DAYS.value: 1,
    DurationUnit.WEEKS.value: 7,
    DurationUnit.MONTHS.value: 30,
    DurationUnit.YEARS.value: 365,
}


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    CASH = "cash"
    MOCK = "mock"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Duration(DocumentModel):
    value: int = Field(ge=1)
    unit: DurationUnit = DurationUnit.MONTHS

    def in_days(self) -> int:
        return self.value * DAYS_PER_UNIT[self.unit]

    def formatted(self) -> str:
        unit = self.unit[:-1] if self.value == 1 else self.unit
        return f"{self.value} {unit}"


class PassDefinition(DocumentModel):
    """A purchasable membership product.

    Soft-deleted (deactivated) once anyone has bought it; physically removed
    only while it has never been purchased.
    """
    pass_id: str
    name: str
    description: Optional[str] = None
    duration: Duration
    sessions: int = Field(ge=1)
    price: float = Field(ge=0)
    is_active: bool = True
    created_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def duration_in_days(self) -> int:
        return self.duration.in_days()

    def formatted_duration(self) -> str:
        return self.duration.formatted()


class OwnedPass(DocumentModel):
    """A purchased, session-bearing instance of a PassDefinition.

    ``sessions_remaining`` only ever decreases from ``total_sessions``; the pass
    is unusable once it reaches zero or ``expiration_date`` has passed.
    """
    owned_pass_id: str
    account_id: str
    pass_id: str
    purchase_date: datetime
    start_date: datetime
    expiration_date: datetime
    sessions_remaining: int = Field(ge=0)
    total_sessions: int = Field(ge=1)
    is_active: bool = True
    purchase_price: float = Field(ge=0)
    payment_method: PaymentMethod = PaymentMethod.MOCK
    payment_status: PaymentStatus = PaymentStatus.COMPLETED

    def is_expired(self, now: datetime) -> bool:
        return now > self.expiration_date

    def is_usable(self, now: datetime) -> bool:
        return self.is_active and not self.is_expired(now) and self.sessions_remaining > 0

    def days_remaining(self, now: datetime) -> int:
        remaining = self.expiration_date - now
        days = remaining.days + (1 if remaining % timedelta(days=1) else 0)
        return max(0, days)


# -----------------
# REQUEST BODIES
# -----------------

class PassCreateRequest(RequestModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    duration: Duration
    sessions: int = Field(ge=1)
    price: float = Field(ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "10-Class Monthly",
                "description": "Ten sessions within one month",
                "duration": {"value": 1, "unit": "months"},
                "sessions": 10,
                "price": 120
            }
        }


class PassUpdateRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    duration: Optional[Duration] = None
    sessions: Optional[int] = Field(default=None, ge=1)
    price: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class PurchaseRequest(RequestModel):
    payment_method: PaymentMethod = PaymentMethod.MOCK
