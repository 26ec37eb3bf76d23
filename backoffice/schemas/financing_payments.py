from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backoffice.constants import (
    NORMALIZE_PAYMENT_METHOD, NORMALIZE_PAYMENT_TYPE, PaymentMethod, PaymentType,
)


def _legacy(table: dict, raw):
    # valores PT / variantes → EN canónico; lo desconocido lo rechaza el Enum (422)
    if isinstance(raw, str):
        return table.get(raw.strip().lower(), raw)
    return raw


class _PaymentDateMixin(BaseModel):
    payment_date: date = Field(default_factory=date.today, description="Fecha del pago (por defecto hoy)")

    @field_validator("payment_date")
    @classmethod
    def _not_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("La fecha del pago no puede ser futura")
        return v


class FinancingPaymentCreate(_PaymentDateMixin):
    financing_id: int = Field(..., gt=0)
    account_id: int = Field(..., gt=0)
    category_id: Optional[int] = Field(None, gt=0)
    installment_number: Optional[int] = Field(None, ge=1)   # None → pago sin cuota
    payment_amount: float = Field(..., gt=0, le=999999999999.99)
    principal_amount: float = Field(..., ge=0, le=999999999999.99)
    interest_amount: float = Field(0.0, ge=0, le=999999999999.99)
    discount_amount: float = Field(0.0, ge=0, le=999999999999.99)
    payment_method: PaymentMethod = PaymentMethod.PIX
    payment_type: PaymentType = PaymentType.SCHEDULED
    observations: Optional[str] = Field(None, max_length=1000)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _norm_method(cls, v):
        return _legacy(NORMALIZE_PAYMENT_METHOD, v)

    @field_validator("payment_type", mode="before")
    @classmethod
    def _norm_type(cls, v):
        return _legacy(NORMALIZE_PAYMENT_TYPE, v)


class PayInstallmentRequest(_PaymentDateMixin):
    installment_number: int = Field(..., ge=1)
    account_id: int = Field(..., gt=0)
    category_id: Optional[int] = Field(None, gt=0)
    # Si no viene, se cobra exactamente la cuota del cronograma
    payment_amount: Optional[float] = Field(None, gt=0, le=999999999999.99)
    payment_method: PaymentMethod = PaymentMethod.PIX
    observations: Optional[str] = Field(None, max_length=1000)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _norm_method(cls, v):
        return _legacy(NORMALIZE_PAYMENT_METHOD, v)


class EarlyPaymentRequest(_PaymentDateMixin):
    account_id: int = Field(..., gt=0)
    category_id: Optional[int] = Field(None, gt=0)
    payment_amount: float = Field(..., gt=0, le=999999999999.99)
    discount_amount: float = Field(0.0, ge=0, le=999999999999.99)
    payment_method: PaymentMethod = PaymentMethod.PIX
    observations: Optional[str] = Field(None, max_length=1000)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _norm_method(cls, v):
        return _legacy(NORMALIZE_PAYMENT_METHOD, v)


# 👇 Sólo campos no monetarios: los montos del ledger son inmutables
class FinancingPaymentUpdate(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    observations: Optional[str] = Field(None, max_length=1000)

    @field_validator("payment_method", mode="before")
    @classmethod
    def _norm_method(cls, v):
        return _legacy(NORMALIZE_PAYMENT_METHOD, v)


class FinancingPaymentFilters(BaseModel):
    financing_id: Optional[int] = None
    payment_method: Optional[str] = None
    payment_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    page: int = Field(1, ge=1)
    limit: Optional[int] = Field(None, ge=1)


class TransactionOut(BaseModel):
    id: int
    account_id: int
    category_id: Optional[int] = None
    financing_payment_id: Optional[int] = None
    type: str
    amount: float
    description: Optional[str] = None
    payment_method: Optional[str] = None
    transaction_date: date

    class Config:
        from_attributes = True


class FinancingPaymentOut(BaseModel):
    id: int
    financing_id: int
    account_id: int
    transaction_id: Optional[int] = None
    installment_number: Optional[int] = None
    payment_amount: float
    principal_amount: float
    interest_amount: float
    discount_amount: float
    balance_before: float
    balance_after: float
    payment_date: date
    payment_method: str
    payment_type: str
    observations: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FinancingPaymentResult(BaseModel):
    payment: FinancingPaymentOut
    transaction: TransactionOut


class FinancingPaymentDetail(BaseModel):
    payment: FinancingPaymentOut
    transaction: Optional[TransactionOut] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class PaymentStatistics(BaseModel):
    total_amount: float
    total_interest: float
    total_principal: float
    total_payments: int


class FinancingPaymentListResponse(BaseModel):
    payments: List[FinancingPaymentOut] = []
    pagination: Pagination
    statistics: PaymentStatistics
