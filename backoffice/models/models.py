from datetime import datetime, timezone

from sqlalchemy import (
    Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from backoffice.constants import (
    AmortizationMethod, FinancingStatus, FinancingType, PaymentType, TransactionType,
)
from backoffice.database.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    accounts = relationship("Account", back_populates="user")
    financings = relationship("Financing", back_populates="user")


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False, default="checking")  # checking | savings | cash
    balance = Column(Float, nullable=False, default=0.0)

    user = relationship("User", back_populates="accounts")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False, default=TransactionType.EXPENSE.value)


class Creditor(Base):
    __tablename__ = "creditors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    document_number = Column(String, nullable=True)

    financings = relationship("Financing", back_populates="creditor")


class Financing(Base):
    __tablename__ = "financings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    creditor_id = Column(Integer, ForeignKey("creditors.id"), nullable=False, index=True)

    financing_type = Column(String, nullable=False, default=FinancingType.OTHER.value)
    description = Column(String, nullable=True)

    # Parámetros estáticos del contrato
    total_amount = Column(Float, nullable=False)        # capital financiado
    interest_rate = Column(Float, nullable=False)       # tasa por período (cuota)
    term_months = Column(Integer, nullable=False)
    amortization_method = Column(String, nullable=False, default=AmortizationMethod.SAC.value)
    start_date = Column(Date, nullable=False)
    monthly_payment = Column(Float, nullable=False)     # PRICE: cuota fija; SAC: primera cuota

    # Agregado derivado del ledger
    current_balance = Column(Float, nullable=False, default=0.0)
    total_paid = Column(Float, nullable=False, default=0.0)
    total_interest_paid = Column(Float, nullable=False, default=0.0)
    paid_installments = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default=FinancingStatus.ACTIVE.value, index=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    user = relationship("User", back_populates="financings")
    creditor = relationship("Creditor", back_populates="financings")
    payments = relationship("FinancingPayment", back_populates="financing", order_by="FinancingPayment.id")

    @property
    def is_settled(self) -> bool:
        return self.status == FinancingStatus.SETTLED.value

    def apply_aggregate(self, aggregate) -> None:
        """Copia al registro los totales de un FinancingAggregate (redondeados a centavos)."""
        self.current_balance = float(aggregate.current_balance)
        self.total_paid = float(aggregate.total_paid)
        self.total_interest_paid = float(aggregate.total_interest_paid)
        self.paid_installments = aggregate.paid_installments
        self.status = aggregate.status.value


class FinancingPayment(Base):
    __tablename__ = "financing_payments"

    id = Column(Integer, primary_key=True, index=True)
    financing_id = Column(Integer, ForeignKey("financings.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True, index=True)

    installment_number = Column(Integer, nullable=True)  # NULL para pagos anticipados
    payment_amount = Column(Float, nullable=False)
    principal_amount = Column(Float, nullable=False)
    interest_amount = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    balance_before = Column(Float, nullable=False)
    balance_after = Column(Float, nullable=False)

    payment_date = Column(Date, nullable=False, index=True)
    payment_method = Column(String, nullable=False)
    payment_type = Column(String, nullable=False, default=PaymentType.SCHEDULED.value)
    observations = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    financing = relationship("Financing", back_populates="payments")
    account = relationship("Account")
    transaction = relationship("Transaction", foreign_keys=[transaction_id])

    __table_args__ = (
        # Una cuota se paga una sola vez. NULL (anticipados) no colisiona.
        UniqueConstraint("financing_id", "installment_number", name="ux_financing_payments_installment"),
    )


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    # Sin FK a nivel DB: el vínculo fuerte es financing_payments.transaction_id
    financing_payment_id = Column(Integer, nullable=True, index=True)

    type = Column(String, nullable=False)   # 'income' | 'expense'
    amount = Column(Float, nullable=False)
    description = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    transaction_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    account = relationship("Account")
    category = relationship("Category")

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "transaction_date"),
    )
