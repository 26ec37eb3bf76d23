from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.database.db import get_db
from backoffice.models.models import User
from backoffice.schemas.financing_payments import (
    FinancingPaymentCreate, FinancingPaymentDetail, FinancingPaymentFilters,
    FinancingPaymentListResponse, FinancingPaymentResult, FinancingPaymentUpdate,
)
from backoffice.services import financing_payments as payments_service
from backoffice.utils.auth import get_current_user

router = APIRouter(
    dependencies=[Depends(get_current_user)]  # 🔒 exige Bearer válido en todo el router
)


@router.post("/", response_model=FinancingPaymentResult, status_code=status.HTTP_201_CREATED)
def create_financing_payment(
    body: FinancingPaymentCreate,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return payments_service.create_payment(db, current.id, body)


@router.get("/", response_model=FinancingPaymentListResponse)
def list_financing_payments(
    financing_id: Optional[int] = Query(None),
    payment_method: Optional[str] = Query(None),
    payment_type: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    filters = FinancingPaymentFilters(
        financing_id=financing_id,
        payment_method=payment_method,
        payment_type=payment_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return payments_service.list_payments(db, current.id, filters)


@router.get("/{payment_id}", response_model=FinancingPaymentDetail)
def get_financing_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return payments_service.get_payment(db, current.id, payment_id)


@router.put("/{payment_id}", response_model=FinancingPaymentDetail)
def update_financing_payment(
    payment_id: int,
    body: FinancingPaymentUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return payments_service.update_payment(db, current.id, payment_id, body)


@router.delete("/{payment_id}")
def delete_financing_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    return payments_service.delete_payment(db, current.id, payment_id)
