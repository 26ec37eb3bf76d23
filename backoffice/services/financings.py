# backoffice/services/financings.py
import logging
import math

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice import config
from backoffice.constants import FinancingStatus
from backoffice.models.models import Creditor, Financing, FinancingPayment
from backoffice.schemas.financings import FinancingCreate, FinancingFilters, SimulateEarlyPaymentRequest
from backoffice.services.financing_payments import get_owned_financing, ledger_totals, recompute_aggregate
from backoffice.utils.aggregate import FinancingAggregate
from backoffice.utils import amortization as calc
from backoffice.utils.amortization import to_cents
from backoffice.utils.errors import AppError, InternalError, NotFoundError, ValidationError
from backoffice.utils.normalize import norm_financing_status, parse_amortization_method

logger = logging.getLogger(__name__)


def _rounded_schedule(financing: Financing):
    rows = calc.compute_schedule(
        financing.total_amount,
        financing.interest_rate,
        financing.term_months,
        financing.amortization_method,
        financing.start_date,
    )
    return calc.round_schedule(rows, financing.amortization_method)


def _summary_out(summary: dict) -> dict:
    return {
        "installments": summary["installments"],
        "total_payments": float(summary["total_payments"]),
        "total_principal": float(summary["total_principal"]),
        "total_interest": float(summary["total_interest"]),
    }


def _aggregate_out(agg) -> dict:
    return {
        "current_balance": float(to_cents(agg.current_balance)),
        "total_paid": float(to_cents(agg.total_paid)),
        "total_interest_paid": float(to_cents(agg.total_interest_paid)),
        "paid_installments": int(agg.paid_installments),
        "status": getattr(agg.status, "value", agg.status),
    }


# =========================
#        CREATE
# =========================
def create_financing(db: Session, user_id: int, data: FinancingCreate) -> dict:
    creditor = (
        db.query(Creditor)
          .filter(Creditor.id == data.creditor_id, Creditor.user_id == user_id)
          .one_or_none()
    )
    if not creditor:
        raise NotFoundError("Acreedor no encontrado")

    method = parse_amortization_method(data.amortization_method)
    rows = calc.compute_schedule(data.total_amount, data.interest_rate, data.term_months, method, data.start_date)
    summary = calc.schedule_summary(calc.round_schedule(rows, method))
    monthly = calc.installment_payment(data.total_amount, data.interest_rate, data.term_months, method)

    try:
        financing = Financing(
            user_id=user_id,
            creditor_id=creditor.id,
            financing_type=data.financing_type.value,
            description=data.description,
            total_amount=float(to_cents(data.total_amount)),
            interest_rate=data.interest_rate,
            term_months=data.term_months,
            amortization_method=method.value,
            start_date=data.start_date,
            monthly_payment=float(to_cents(monthly)),
            current_balance=float(to_cents(data.total_amount)),
            total_paid=0.0,
            total_interest_paid=0.0,
            paid_installments=0,
            status=FinancingStatus.ACTIVE.value,
        )
        db.add(financing)
        db.commit()
        db.refresh(financing)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error de base de datos creando financiamiento")
        raise InternalError()

    logger.info(
        "Financiamiento creado",
        extra={
            "user_id": user_id,
            "financing_id": financing.id,
            "method": method.value,
            "total_amount": financing.total_amount,
        },
    )
    return {"financing": financing, "summary": _summary_out(summary)}


# =========================
#        READ
# =========================
def list_financings(db: Session, user_id: int, filters: FinancingFilters) -> dict:
    conds = [Financing.user_id == user_id]
    if filters.status:
        conds.append(Financing.status == norm_financing_status(filters.status).value)
    if filters.amortization_method:
        conds.append(Financing.amortization_method == parse_amortization_method(filters.amortization_method).value)
    if filters.creditor_id is not None:
        conds.append(Financing.creditor_id == filters.creditor_id)

    limit = min(filters.limit or config.PAYMENTS_PAGE_SIZE, config.PAYMENTS_MAX_PAGE_SIZE)
    total = db.query(func.count(Financing.id)).filter(*conds).scalar() or 0
    items = (
        db.query(Financing)
          .filter(*conds)
          .order_by(Financing.created_at.desc(), Financing.id.desc())
          .offset((filters.page - 1) * limit)
          .limit(limit)
          .all()
    )
    return {
        "financings": items,
        "pagination": {
            "total": total,
            "page": filters.page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }


def get_financing(db: Session, user_id: int, financing_id: int) -> dict:
    financing = get_owned_financing(db, user_id, financing_id)
    snap = calc.calculate_updated_balance(
        financing.total_amount,
        financing.interest_rate,
        financing.term_months,
        financing.amortization_method,
        financing.start_date,
        financing.payments,
    )
    paid_numbers = {p.installment_number for p in financing.payments if p.installment_number is not None}
    next_row = None
    if not financing.is_settled:
        next_row = next((r for r in _rounded_schedule(financing) if r.installment not in paid_numbers), None)

    return {
        "financing": financing,
        "stats": {
            "percentage_paid": float(snap.percentage_paid),
            "remaining_installments": snap.remaining_installments,
            "scheduled_balance": float(snap.scheduled_balance),
            "next_installment": next_row.installment if next_row else None,
            "next_due_date": next_row.due_date if next_row else None,
        },
    }


# =========================
#        DELETE
# =========================
def delete_financing(db: Session, user_id: int, financing_id: int) -> dict:
    try:
        financing = get_owned_financing(db, user_id, financing_id, lock=True)
        has_payments = (
            db.query(FinancingPayment.id)
              .filter(FinancingPayment.financing_id == financing.id)
              .first()
        )
        if has_payments:
            raise ValidationError("No se puede eliminar un financiamiento con pagos registrados")
        db.delete(financing)
        db.commit()
    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error de base de datos eliminando financiamiento", extra={"financing_id": financing_id})
        raise InternalError()

    logger.info("Financiamiento eliminado", extra={"user_id": user_id, "financing_id": financing_id})
    return {"message": "Financiamiento eliminado", "financing_id": financing_id}


# =========================
#     CRONOGRAMA / SIMULACIÓN
# =========================
def get_amortization_table(db: Session, user_id: int, financing_id: int) -> dict:
    financing = get_owned_financing(db, user_id, financing_id)
    rows = _rounded_schedule(financing)
    paid_numbers = {p.installment_number for p in financing.payments if p.installment_number is not None}

    schedule = [
        {
            "installment": r.installment,
            "due_date": r.due_date,
            "payment": float(r.payment),
            "principal": float(r.principal),
            "interest": float(r.interest),
            "balance": float(r.balance),
            "paid": r.installment in paid_numbers,
        }
        for r in rows
    ]
    return {
        "financing": financing,
        "schedule": schedule,
        "summary": _summary_out(calc.schedule_summary(rows)),
    }


def simulate_early_payment(db: Session, user_id: int, financing_id: int, data: SimulateEarlyPaymentRequest):
    financing = get_owned_financing(db, user_id, financing_id)
    if financing.is_settled:
        raise ValidationError("El financiamiento ya está cancelado")
    return calc.simulate_early_payment(financing, data.payment_amount, data.payment_date, data.preference)


# =========================
#     CONSISTENCIA
# =========================
def check_consistency(db: Session, user_id: int, financing_id: int) -> dict:
    """
    Compara el agregado guardado contra el derivado del ledger y contra el
    cronograma reproducido. No modifica nada.
    """
    financing = get_owned_financing(db, user_id, financing_id)
    totals = ledger_totals(db, financing.id)
    stored = _aggregate_out(financing)
    issues = []

    try:
        derived = FinancingAggregate.from_ledger(
            financing.total_amount,
            financing.term_months,
            sorted(totals["payments"], key=lambda p: p.id),
            previous_status=financing.status,
        )
    except ValidationError as e:
        derived = None
        issues.append(f"El ledger no puede reproducirse: {e.message}")

    derived_out = _aggregate_out(derived) if derived is not None else None
    if derived_out is not None:
        for key in ("current_balance", "total_paid", "total_interest_paid", "paid_installments", "status"):
            if stored[key] != derived_out[key]:
                issues.append(f"{key}: guardado={stored[key]} ledger={derived_out[key]}")

    # Cada fila del ledger debe cumplir pago = capital + interés
    for p in totals["payments"]:
        if to_cents(p.payment_amount) != to_cents(p.principal_amount) + to_cents(p.interest_amount or 0):
            issues.append(f"Pago #{p.id}: monto distinto de capital + interés")

    snap = calc.calculate_updated_balance(
        financing.total_amount,
        financing.interest_rate,
        financing.term_months,
        financing.amortization_method,
        financing.start_date,
        totals["payments"],
    )
    if to_cents(financing.current_balance) != snap.current_balance:
        issues.append(
            f"current_balance: guardado={financing.current_balance} cronograma={float(snap.current_balance)}"
        )

    return {
        "financing_id": financing.id,
        "consistent": not issues,
        "stored": stored,
        "from_ledger": derived_out,
        "scheduled_balance": float(snap.scheduled_balance),
        "issues": issues,
    }


def recalculate_financing(db: Session, user_id: int, financing_id: int) -> dict:
    """Reescribe el agregado desde el ledger (autocorrección)."""
    try:
        financing = get_owned_financing(db, user_id, financing_id, lock=True)
        before = _aggregate_out(financing)
        agg = recompute_aggregate(db, financing)
        db.commit()
        db.refresh(financing)
    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error de base de datos recalculando financiamiento", extra={"financing_id": financing_id})
        raise InternalError()

    after = _aggregate_out(agg)
    if before != after:
        logger.warning(
            "Agregado de financiamiento corregido",
            extra={"user_id": user_id, "financing_id": financing_id, "before": before, "after": after},
        )
    return {"financing": financing, "before": before, "after": after}
