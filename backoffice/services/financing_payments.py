# backoffice/services/financing_payments.py
"""
Conciliación de pagos de financiamientos.

Cada operación que muta es UNA transacción: alta en el ledger, transacción de
egreso vinculada, débito de la cuenta y recálculo del agregado del
financiamiento desde el ledger completo. Cualquier falla deja todo como estaba.
"""
import logging
import math
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice import config
from backoffice.constants import PaymentType, TransactionType
from backoffice.models.models import Financing, FinancingPayment
from backoffice.schemas.financing_payments import (
    EarlyPaymentRequest, FinancingPaymentCreate, FinancingPaymentFilters,
    FinancingPaymentUpdate, PayInstallmentRequest,
)
from backoffice.services.accounts import get_owned_account, get_owned_category, update_account_balance
from backoffice.services.transactions import create_from_financing_payment
from backoffice.utils.aggregate import FinancingAggregate
from backoffice.utils.amortization import D, compute_schedule, round_schedule, to_cents
from backoffice.utils.errors import AppError, InternalError, NotFoundError, ValidationError
from backoffice.utils.normalize import norm_payment_type, parse_payment_method

logger = logging.getLogger(__name__)


# =========================
#        HELPERS
# =========================
def get_owned_financing(db: Session, user_id: int, financing_id: int, lock: bool = False) -> Financing:
    q = db.query(Financing).filter(Financing.id == financing_id, Financing.user_id == user_id)
    if lock:
        q = q.with_for_update()
    financing = q.one_or_none()
    if not financing:
        raise NotFoundError("Financiamiento no encontrado")
    return financing


def _log_rejection(exc: AppError, user_id: int, financing_id: int, **extra) -> None:
    logger.warning(
        "Pago de financiamiento rechazado: %s",
        exc.message,
        extra={"user_id": user_id, "financing_id": financing_id, "status_code": exc.status_code, **extra},
    )


def _ensure_active(financing: Financing) -> None:
    if financing.is_settled:
        raise ValidationError("El financiamiento ya está cancelado")


def recompute_aggregate(db: Session, financing: Financing) -> FinancingAggregate:
    """Reescribe los totales del financiamiento re-aplicando TODO su ledger. No hace commit."""
    payments = (
        db.query(FinancingPayment)
          .filter(FinancingPayment.financing_id == financing.id)
          .order_by(FinancingPayment.id.asc())
          .all()
    )
    agg = FinancingAggregate.from_ledger(
        financing.total_amount,
        financing.term_months,
        payments,
        previous_status=financing.status,
    )
    financing.apply_aggregate(agg)
    db.add(financing)
    db.flush()
    return agg


def installment_already_paid(db: Session, financing_id: int, installment_number: int) -> bool:
    return (
        db.query(FinancingPayment.id)
          .filter(
              FinancingPayment.financing_id == financing_id,
              FinancingPayment.installment_number == installment_number,
          )
          .first()
    ) is not None


def _get_owned_payment(db: Session, user_id: int, payment_id: int, lock: bool = False) -> FinancingPayment:
    q = db.query(FinancingPayment).filter(
        FinancingPayment.id == payment_id,
        FinancingPayment.user_id == user_id,
    )
    if lock:
        q = q.with_for_update()
    payment = q.one_or_none()
    if not payment:
        raise NotFoundError("Pago no encontrado")
    return payment


# =========================
#        CREATE
# =========================
def create_payment(db: Session, user_id: int, data: FinancingPaymentCreate) -> dict:
    """
    Registra un pago contra un financiamiento.

    Validaciones (la primera que falla gana):
      1) financiamiento existe, es del usuario y está activo
      2) cuenta existe y es del usuario
      3) categoría (opcional) existe y es del usuario
      4) la cuota no fue pagada antes
      5) el saldo resultante no queda negativo
      6) la cuenta tiene saldo suficiente
    """
    payment_amount = to_cents(data.payment_amount)
    principal = to_cents(data.principal_amount)
    interest = to_cents(data.interest_amount)

    # Montos ya en centavos: la igualdad es exacta
    if payment_amount != principal + interest:
        exc = ValidationError("El monto del pago debe ser igual a capital + interés")
        _log_rejection(exc, user_id, data.financing_id, installment_number=data.installment_number)
        raise exc

    try:
        # 1) Bloqueo del financiamiento: serializa pagadores concurrentes
        financing = get_owned_financing(db, user_id, data.financing_id, lock=True)
        _ensure_active(financing)

        # 2) Cuenta
        account = get_owned_account(db, user_id, data.account_id, lock=True)
        if not account:
            raise NotFoundError("Cuenta no encontrada")

        # 3) Categoría
        if data.category_id is not None and not get_owned_category(db, user_id, data.category_id):
            raise NotFoundError("Categoría no encontrada")

        # 4) Cuota duplicada (chequeo rápido; la UNIQUE es la que manda)
        if data.installment_number is not None:
            if data.installment_number > financing.term_months:
                raise ValidationError(
                    f"Número de cuota fuera de rango (1..{financing.term_months})"
                )
            if installment_already_paid(db, financing.id, data.installment_number):
                raise ValidationError(f"La cuota {data.installment_number} ya fue pagada")

        # 5) Saldo deudor resultante
        balance_before = to_cents(financing.current_balance)
        balance_after = balance_before - principal
        if balance_after < 0:
            raise ValidationError("El pago de capital excede el saldo deudor")

        # 6) Saldo de la cuenta
        if D(account.balance or 0) < payment_amount:
            raise ValidationError("Saldo insuficiente en la cuenta")

        # ---- efectos ----
        payment = FinancingPayment(
            financing_id=financing.id,
            account_id=account.id,
            user_id=user_id,
            installment_number=data.installment_number,
            payment_amount=float(payment_amount),
            principal_amount=float(principal),
            interest_amount=float(interest),
            discount_amount=float(to_cents(data.discount_amount)),
            balance_before=float(balance_before),
            balance_after=float(balance_after),
            payment_date=data.payment_date,
            payment_method=data.payment_method.value,
            payment_type=data.payment_type.value,
            observations=data.observations,
        )
        db.add(payment)
        db.flush()

        tx = create_from_financing_payment(db, payment, category_id=data.category_id)
        payment.transaction_id = tx.id
        db.add(payment)

        update_account_balance(db, account, payment_amount, TransactionType.EXPENSE)

        agg = recompute_aggregate(db, financing)

        db.commit()
        db.refresh(payment)
        db.refresh(tx)

    except AppError as e:
        db.rollback()
        _log_rejection(e, user_id, data.financing_id, installment_number=data.installment_number)
        raise
    except IntegrityError:
        db.rollback()
        if data.installment_number is not None:
            # Otro pagador ganó la carrera por la misma cuota
            exc = ValidationError(f"La cuota {data.installment_number} ya fue pagada")
            _log_rejection(exc, user_id, data.financing_id, installment_number=data.installment_number)
            raise exc
        logger.exception("Violación de integridad registrando pago de financiamiento")
        raise InternalError()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Error de base de datos registrando pago de financiamiento",
            extra={"financing_id": data.financing_id},
        )
        raise InternalError()

    logger.info(
        "Pago de financiamiento registrado",
        extra={
            "user_id": user_id,
            "payment_id": payment.id,
            "transaction_id": tx.id,
            "financing_id": payment.financing_id,
            "installment_number": payment.installment_number,
            "payment_amount": payment.payment_amount,
            "new_balance": float(agg.current_balance),
            "status": agg.status.value,
        },
    )
    return {"payment": payment, "transaction": tx}


# =========================
#     PAY INSTALLMENT
# =========================
def _installment_payload(financing: Financing, data: PayInstallmentRequest) -> FinancingPaymentCreate:
    rows = round_schedule(
        compute_schedule(
            financing.total_amount,
            financing.interest_rate,
            financing.term_months,
            financing.amortization_method,
            financing.start_date,
        ),
        financing.amortization_method,
    )
    row = next((r for r in rows if r.installment == data.installment_number), None)
    if row is None:
        raise ValidationError(f"Número de cuota inválido: {data.installment_number}")

    # La cuota que cierra el financiamiento absorbe exactamente el saldo restante
    balance = to_cents(financing.current_balance)
    closing = min(row.principal, balance)
    required = closing + row.interest

    amount = to_cents(data.payment_amount) if data.payment_amount is not None else required
    if amount < required:
        raise ValidationError(f"El monto es menor al valor de la cuota ({required})")

    principal = min(amount - row.interest, balance)
    return FinancingPaymentCreate(
        financing_id=financing.id,
        account_id=data.account_id,
        category_id=data.category_id,
        installment_number=row.installment,
        payment_amount=float(principal + row.interest),
        principal_amount=float(principal),
        interest_amount=float(row.interest),
        payment_date=data.payment_date,
        payment_method=data.payment_method,
        payment_type=PaymentType.PARTIAL if principal > row.principal else PaymentType.SCHEDULED,
        observations=data.observations,
    )


def pay_installment(db: Session, user_id: int, financing_id: int, data: PayInstallmentRequest) -> dict:
    """
    Paga una cuota del cronograma. Sin monto se cobra la cuota exacta;
    con excedente, lo que sobra va a capital y el pago queda como 'partial'.
    El capital nunca supera el saldo deudor: lo que exceda no se cobra.
    """
    try:
        financing = get_owned_financing(db, user_id, financing_id)
        _ensure_active(financing)
        payload = _installment_payload(financing, data)
    except AppError as e:
        _log_rejection(e, user_id, financing_id, installment_number=data.installment_number)
        raise
    return create_payment(db, user_id, payload)

# =========================
#     EARLY PAYMENT
# =========================
def register_early_payment(db: Session, user_id: int, financing_id: int, data: EarlyPaymentRequest) -> dict:
    """Adelanto a capital: no consume número de cuota ni genera interés."""
    amount = to_cents(data.payment_amount)
    discount = to_cents(data.discount_amount or 0)

    try:
        financing = get_owned_financing(db, user_id, financing_id)
        _ensure_active(financing)
        if amount >= to_cents(financing.current_balance):
            raise ValidationError("El pago anticipado debe ser menor al saldo deudor")
        if discount >= amount:
            raise ValidationError("El descuento debe ser menor al monto del pago")
    except AppError as e:
        _log_rejection(e, user_id, financing_id, payment_type=PaymentType.EARLY.value)
        raise

    net = amount - discount
    payload = FinancingPaymentCreate(
        financing_id=financing.id,
        account_id=data.account_id,
        category_id=data.category_id,
        installment_number=None,
        payment_amount=float(net),
        principal_amount=float(net),
        interest_amount=0.0,
        discount_amount=float(discount),
        payment_date=data.payment_date,
        payment_method=data.payment_method,
        payment_type=PaymentType.EARLY,
        observations=data.observations,
    )
    return create_payment(db, user_id, payload)


# =========================
#        DELETE
# =========================
def delete_payment(db: Session, user_id: int, payment_id: int) -> dict:
    """Borra un pago SIN transacción vinculada y recalcula el agregado."""
    try:
        payment = _get_owned_payment(db, user_id, payment_id, lock=True)
        if payment.transaction_id is not None:
            raise ValidationError("No se puede eliminar un pago con transacción vinculada")

        financing = get_owned_financing(db, user_id, payment.financing_id, lock=True)
        financing_id = financing.id

        db.delete(payment)
        db.flush()

        agg = recompute_aggregate(db, financing)
        db.commit()

    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error de base de datos eliminando pago", extra={"payment_id": payment_id})
        raise InternalError()

    logger.info(
        "Pago de financiamiento eliminado",
        extra={
            "user_id": user_id,
            "payment_id": payment_id,
            "financing_id": financing_id,
            "new_balance": float(agg.current_balance),
        },
    )
    return {"message": "Pago eliminado", "payment_id": payment_id, "financing_id": financing_id}


# =========================
#        READ
# =========================
def _payment_conditions(user_id: int, filters: FinancingPaymentFilters) -> list:
    conds = [FinancingPayment.user_id == user_id]
    if filters.financing_id is not None:
        conds.append(FinancingPayment.financing_id == filters.financing_id)
    if filters.payment_method:
        conds.append(FinancingPayment.payment_method == parse_payment_method(filters.payment_method).value)
    if filters.payment_type:
        conds.append(FinancingPayment.payment_type == norm_payment_type(filters.payment_type).value)
    if filters.start_date:
        conds.append(FinancingPayment.payment_date >= filters.start_date)
    if filters.end_date:
        conds.append(FinancingPayment.payment_date <= filters.end_date)
    return conds


def list_payments(db: Session, user_id: int, filters: FinancingPaymentFilters) -> dict:
    if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
        raise ValidationError("start_date no puede ser mayor a end_date")

    limit = min(filters.limit or config.PAYMENTS_PAGE_SIZE, config.PAYMENTS_MAX_PAGE_SIZE)
    conds = _payment_conditions(user_id, filters)

    total = db.query(func.count(FinancingPayment.id)).filter(*conds).scalar() or 0
    items = (
        db.query(FinancingPayment)
          .filter(*conds)
          .order_by(FinancingPayment.payment_date.desc(), FinancingPayment.id.desc())
          .offset((filters.page - 1) * limit)
          .limit(limit)
          .all()
    )

    total_amount, total_interest, total_principal = (
        db.query(
            func.coalesce(func.sum(FinancingPayment.payment_amount), 0.0),
            func.coalesce(func.sum(FinancingPayment.interest_amount), 0.0),
            func.coalesce(func.sum(FinancingPayment.principal_amount), 0.0),
        )
        .filter(*conds)
        .one()
    )

    return {
        "payments": items,
        "pagination": {
            "total": total,
            "page": filters.page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
        "statistics": {
            "total_amount": float(to_cents(total_amount)),
            "total_interest": float(to_cents(total_interest)),
            "total_principal": float(to_cents(total_principal)),
            "total_payments": total,
        },
    }


def get_payment(db: Session, user_id: int, payment_id: int) -> dict:
    payment = _get_owned_payment(db, user_id, payment_id)
    return {"payment": payment, "transaction": payment.transaction}


def update_payment(db: Session, user_id: int, payment_id: int, data: FinancingPaymentUpdate) -> dict:
    """Sólo método de pago y observaciones; los montos no se editan."""
    changes = data.model_dump(exclude_unset=True)
    try:
        payment = _get_owned_payment(db, user_id, payment_id, lock=True)

        if changes.get("payment_method") is not None:
            method = data.payment_method.value
            payment.payment_method = method
            if payment.transaction is not None:
                payment.transaction.payment_method = method
                db.add(payment.transaction)
        if "observations" in changes:
            payment.observations = data.observations

        db.add(payment)
        db.commit()
        db.refresh(payment)

    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error de base de datos actualizando pago", extra={"payment_id": payment_id})
        raise InternalError()

    return {"payment": payment, "transaction": payment.transaction}


# Totales del ledger en Decimal (usados por el chequeo de consistencia)
def ledger_totals(db: Session, financing_id: int) -> dict:
    rows = (
        db.query(FinancingPayment)
          .filter(FinancingPayment.financing_id == financing_id)
          .all()
    )
    return {
        "total_paid": to_cents(sum((D(r.payment_amount) for r in rows), Decimal("0"))),
        "total_interest_paid": to_cents(sum((D(r.interest_amount or 0) for r in rows), Decimal("0"))),
        "total_principal_paid": to_cents(sum((D(r.principal_amount) for r in rows), Decimal("0"))),
        "paid_installments": sum(1 for r in rows if r.installment_number is not None),
        "payments": rows,
    }
