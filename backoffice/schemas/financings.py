from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backoffice.constants import (
    NORMALIZE_AMORTIZATION_METHOD, NORMALIZE_EARLY_PREFERENCE,
    AmortizationMethod, EarlyPaymentPreference, FinancingType,
)


def _legacy(table: dict, raw):
    if isinstance(raw, str):
        return table.get(raw.strip().lower(), raw)
    return raw


class FinancingCreate(BaseModel):
    creditor_id: int = Field(..., gt=0)
    financing_type: FinancingType = FinancingType.OTHER
    description: Optional[str] = Field(None, max_length=255)
    total_amount: float = Field(..., gt=0, le=999999999999.99)
    # Tasa por período (ej. 0.01 = 1% mensual)
    interest_rate: float = Field(..., ge=0, le=1)
    term_months: int = Field(..., ge=1, le=600)
    amortization_method: AmortizationMethod = AmortizationMethod.PRICE
    start_date: date

    @field_validator("amortization_method", mode="before")
    @classmethod
    def _norm_method(cls, v):
        return _legacy(NORMALIZE_AMORTIZATION_METHOD, v)


class FinancingFilters(BaseModel):
    status: Optional[str] = None
    amortization_method: Optional[str] = None
    creditor_id: Optional[int] = None
    page: int = Field(1, ge=1)
    limit: Optional[int] = Field(None, ge=1)


class SimulateEarlyPaymentRequest(BaseModel):
    payment_amount: float = Field(..., gt=0, le=999999999999.99)
    preference: EarlyPaymentPreference = EarlyPaymentPreference.REDUCE_TERM
    payment_date: Optional[date] = None

    @field_validator("preference", mode="before")
    @classmethod
    def _norm_pref(cls, v):
        return _legacy(NORMALIZE_EARLY_PREFERENCE, v)


class FinancingOut(BaseModel):
    id: int
    creditor_id: int
    financing_type: str
    description: Optional[str] = None
    total_amount: float
    interest_rate: float
    term_months: int
    amortization_method: str
    start_date: date
    monthly_payment: float
    current_balance: float
    total_paid: float
    total_interest_paid: float
    paid_installments: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FinancingStats(BaseModel):
    percentage_paid: float
    remaining_installments: int
    scheduled_balance: float
    next_installment: Optional[int] = None
    next_due_date: Optional[date] = None


class FinancingDetailOut(BaseModel):
    financing: FinancingOut
    stats: FinancingStats


class ScheduleSummary(BaseModel):
    installments: int
    total_payments: float
    total_principal: float
    total_interest: float


class FinancingCreateResult(BaseModel):
    financing: FinancingOut
    summary: ScheduleSummary


class AmortizationRowOut(BaseModel):
    installment: int
    due_date: date
    payment: float
    principal: float
    interest: float
    balance: float
    paid: bool = False

    class Config:
        from_attributes = True


class AmortizationTableOut(BaseModel):
    financing: FinancingOut
    schedule: List[AmortizationRowOut] = []
    summary: ScheduleSummary


class EarlyPaymentSimulationOut(BaseModel):
    preference: EarlyPaymentPreference
    payment_date: Optional[date] = None
    original_balance: float
    early_payment_amount: float
    new_balance: float
    original_term: int
    new_term: int
    original_installment: float
    new_installment: float
    original_total_interest: float
    new_total_interest: float
    interest_saved: float
    schedule: List[AmortizationRowOut] = []

    class Config:
        from_attributes = True


class AggregateOut(BaseModel):
    current_balance: float
    total_paid: float
    total_interest_paid: float
    paid_installments: int
    status: str


class ConsistencyOut(BaseModel):
    financing_id: int
    consistent: bool
    stored: AggregateOut
    from_ledger: Optional[AggregateOut] = None
    scheduled_balance: Optional[float] = None
    issues: List[str] = []


class FinancingPagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class FinancingListResponse(BaseModel):
    financings: List[FinancingOut] = []
    pagination: FinancingPagination


class RecalculateOut(BaseModel):
    financing: FinancingOut
    before: AggregateOut
    after: AggregateOut
