# backoffice/services/accounts.py
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from backoffice.constants import TransactionType
from backoffice.models.models import Account, Category
from backoffice.utils.amortization import D, to_cents

logger = logging.getLogger(__name__)


def get_owned_account(db: Session, user_id: int, account_id: int, lock: bool = False) -> Optional[Account]:
    q = db.query(Account).filter(Account.id == account_id, Account.user_id == user_id)
    if lock:
        q = q.with_for_update()
    return q.one_or_none()


def get_owned_category(db: Session, user_id: int, category_id: int) -> Optional[Category]:
    return (
        db.query(Category)
          .filter(Category.id == category_id, Category.user_id == user_id)
          .one_or_none()
    )


def update_account_balance(db: Session, account: Account, amount, tx_type: TransactionType) -> Decimal:
    """Aplica un movimiento al saldo (income suma, expense resta). No hace commit."""
    change = D(amount) if tx_type == TransactionType.INCOME else -D(amount)
    new_balance = to_cents(D(account.balance or 0) + change)
    account.balance = float(new_balance)
    db.add(account)
    db.flush()
    logger.info(
        "Saldo de cuenta actualizado",
        extra={"account_id": account.id, "balance_change": float(change), "new_balance": float(new_balance)},
    )
    return new_balance
