# backoffice/utils/aggregate.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional

from backoffice.constants import FinancingStatus
from backoffice.utils.amortization import D, to_cents
from backoffice.utils.errors import ValidationError


@dataclass
class FinancingAggregate:
    """
    Totales derivados de un financiamiento.
    Ciclo de vida: active → settled (terminal, sin vuelta atrás).
    """
    total_amount: Decimal
    term_months: int
    current_balance: Decimal
    total_paid: Decimal = Decimal("0")
    total_interest_paid: Decimal = Decimal("0")
    paid_installments: int = 0
    status: FinancingStatus = FinancingStatus.ACTIVE

    @classmethod
    def opening(cls, total_amount, term_months: int) -> "FinancingAggregate":
        amount = to_cents(total_amount)
        return cls(total_amount=amount, term_months=int(term_months), current_balance=amount)

    @property
    def is_settled(self) -> bool:
        return self.status == FinancingStatus.SETTLED

    def _refresh_status(self) -> None:
        if self.paid_installments >= self.term_months or self.current_balance <= 0:
            self.status = FinancingStatus.SETTLED

    def apply_payment(self, payment_amount, principal_portion, interest_portion,
                      installment_number: Optional[int] = None) -> None:
        if self.is_settled:
            raise ValidationError("El financiamiento ya está cancelado")
        self.current_balance = to_cents(self.current_balance - D(principal_portion))
        self.total_paid = to_cents(self.total_paid + D(payment_amount))
        self.total_interest_paid = to_cents(self.total_interest_paid + D(interest_portion))
        # Los pagos anticipados (sin número de cuota) no consumen cuotas
        if installment_number is not None:
            self.paid_installments += 1
        self._refresh_status()

    @classmethod
    def from_ledger(cls, total_amount, term_months: int, payments: Iterable[Any],
                    previous_status: Optional[str] = None) -> "FinancingAggregate":
        """
        Recalcula desde cero re-aplicando TODO el ledger en orden.
        Equivale a: total_paid = Σ pagos, intereses = Σ intereses,
        saldo = capital − (pagado − intereses).
        """
        agg = cls.opening(total_amount, term_months)
        for p in payments:
            agg.apply_payment(
                p.payment_amount,
                D(p.payment_amount) - D(p.interest_amount or 0),
                p.interest_amount or 0,
                p.installment_number,
            )
        if previous_status == FinancingStatus.SETTLED.value:
            agg.status = FinancingStatus.SETTLED
        return agg
