# backoffice/services/transactions.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from backoffice.constants import TransactionType
from backoffice.models.models import FinancingPayment, Transaction

logger = logging.getLogger(__name__)


def _describe(payment: FinancingPayment) -> str:
    if payment.installment_number is None:
        return f"Pago anticipado - Financiamiento #{payment.financing_id}"
    return f"Cuota {payment.installment_number} - Financiamiento #{payment.financing_id}"


def create_from_financing_payment(
    db: Session,
    payment: FinancingPayment,
    category_id: Optional[int] = None,
) -> Transaction:
    """
    Crea la transacción de egreso vinculada a un pago de financiamiento.
    Corre dentro de la transacción del llamador: sólo hace flush.
    """
    tx = Transaction(
        user_id=payment.user_id,
        account_id=payment.account_id,
        category_id=category_id,
        financing_payment_id=payment.id,
        type=TransactionType.EXPENSE.value,
        amount=payment.payment_amount,
        description=_describe(payment),
        payment_method=payment.payment_method,
        transaction_date=payment.payment_date,
    )
    db.add(tx)
    db.flush()

    logger.info(
        "Transacción creada desde pago de financiamiento",
        extra={
            "transaction_id": tx.id,
            "financing_payment_id": payment.id,
            "installment_number": payment.installment_number,
            "amount": payment.payment_amount,
        },
    )
    return tx
