from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.database.db import get_db
from backoffice.models.models import User
from backoffice.schemas.financing_payments import (
    EarlyPaymentRequest, FinancingPaymentResult, PayInstallmentRequest,
)
from backoffice.schemas.financings import (
    AmortizationTableOut, ConsistencyOut, EarlyPaymentSimulationOut, FinancingCreate,
    FinancingCreateResult, FinancingDetailOut, FinancingFilters, FinancingListResponse,
    RecalculateOut, SimulateEarlyPaymentRequest,
)
from backoffice.services import financing_payments as payments_service
from backoffice.services import financings as financings_service
from backoffice.utils.auth import get_current_user

router = APIRouter(
    dependencies=[Depends(get_current_user)]  # 🔒 exige Bearer válido en todo el router
)


# =========================
#        CRUD
# =========================
@router.post("/", response_model=FinancingCreateResult, status_code=status.HTTP_201_CREATED)
def create_financing(
    body: FinancingCreate,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return financings_service.create_financing(db, current.id, body)


@router.get("/", response_model=FinancingListResponse)
def list_financings(
    status_: Optional[str] = Query(None, alias="status"),
    amortization_method: Optional[str] = Query(None),
    creditor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    filters = FinancingFilters(
        status=status_,
        amortization_method=amortization_method,
        creditor_id=creditor_id,
        page=page,
        limit=limit,
    )
    return financings_service.list_financings(db, current.id, filters)


@router.get("/{financing_id}", response_model=FinancingDetailOut)
def get_financing(
    financing_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return financings_service.get_financing(db, current.id, financing_id)


@router.delete("/{financing_id}")
def delete_financing(
    financing_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return financings_service.delete_financing(db, current.id, financing_id)


# =========================
#        PAGOS
# =========================
@router.post("/{financing_id}/pay-installment", response_model=FinancingPaymentResult,
             status_code=status.HTTP_201_CREATED)
def pay_installment(
    financing_id: int,
    body: PayInstallmentRequest,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return payments_service.pay_installment(db, current.id, financing_id, body)


@router.post("/{financing_id}/early-payment", response_model=FinancingPaymentResult,
             status_code=status.HTTP_201_CREATED)
def early_payment(
    financing_id: int,
    body: EarlyPaymentRequest,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return payments_service.register_early_payment(db, current.id, financing_id, body)


# =========================
#   CRONOGRAMA / SIMULACIÓN
# =========================
@router.get("/{financing_id}/amortization", response_model=AmortizationTableOut)
def get_amortization(
    financing_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return financings_service.get_amortization_table(db, current.id, financing_id)


@router.post("/{financing_id}/simulate-early-payment", response_model=EarlyPaymentSimulationOut)
def simulate_early_payment(
    financing_id: int,
    body: SimulateEarlyPaymentRequest,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    sim = financings_service.simulate_early_payment(db, current.id, financing_id, body)
    return EarlyPaymentSimulationOut.model_validate(sim)


# =========================
#      CONSISTENCIA
# =========================
@router.get("/{financing_id}/consistency", response_model=ConsistencyOut)
def check_consistency(
    financing_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return financings_service.check_consistency(db, current.id, financing_id)


@router.post("/{financing_id}/recalculate", response_model=RecalculateOut)
def recalculate(
    financing_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return financings_service.recalculate_financing(db, current.id, financing_id)
