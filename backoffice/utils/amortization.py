# backoffice/utils/amortization.py
"""
Cálculo de cronogramas de amortización (SAC y PRICE / sistema francés).

Todas las funciones son puras: reciben los parámetros estáticos del
financiamiento y devuelven filas derivadas, nunca tocan la base.

Política de redondeo:
  - Se itera con precisión completa (Decimal).
  - La ÚLTIMA fila amortiza exactamente el saldo remanente, así el cronograma
    termina en cero sin arrastrar error acumulado.
  - El redondeo a centavos es sólo de presentación (round_schedule), y vuelve a
    forzar la última fila para que la suma de amortizaciones sea el capital.
"""
import calendar
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional

from backoffice.constants import CENT, AmortizationMethod, EarlyPaymentPreference
from backoffice.utils.errors import ValidationError
from backoffice.utils.normalize import parse_amortization_method, parse_early_preference


def D(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def to_cents(x) -> Decimal:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


def add_months(start: date, months: int) -> date:
    """Suma meses respetando fin de mes (31/01 + 1 → 28/02 o 29/02)."""
    month = start.month - 1 + months
    year = start.year + month // 12
    month = month % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class AmortizationRow:
    installment: int
    due_date: date
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal          # saldo luego de pagar esta cuota


@dataclass(frozen=True)
class BalanceSnapshot:
    current_balance: Decimal
    scheduled_balance: Decimal
    total_paid: Decimal
    total_interest_paid: Decimal
    paid_installments: int
    remaining_installments: int
    percentage_paid: Decimal


@dataclass(frozen=True)
class EarlyPaymentSimulation:
    preference: EarlyPaymentPreference
    payment_date: Optional[date]
    original_balance: Decimal
    early_payment_amount: Decimal
    new_balance: Decimal
    original_term: int
    new_term: int
    original_installment: Decimal
    new_installment: Decimal
    original_total_interest: Decimal
    new_total_interest: Decimal
    interest_saved: Decimal
    schedule: List[AmortizationRow] = field(default_factory=list)


# =========================
#        HELPERS
# =========================
def _validate_params(principal: Decimal, rate: Decimal, term: int) -> None:
    if term is None or int(term) <= 0:
        raise ValidationError("El plazo debe ser mayor a cero")
    if principal <= 0:
        raise ValidationError("El monto financiado debe ser mayor a cero")
    if rate < 0:
        raise ValidationError("La tasa de interés no puede ser negativa")


def annuity_payment(principal, rate, term: int) -> Decimal:
    """Cuota constante PRICE: P·i / (1 − (1+i)^−n); P/n si la tasa es cero."""
    p, i = D(principal), D(rate)
    _validate_params(p, i, term)
    if i == 0:
        return p / term
    return p * i / (1 - (1 + i) ** (-int(term)))


def _build_rows(
    principal: Decimal,
    rate: Decimal,
    term: int,
    method: AmortizationMethod,
    start_date: date,
    first_installment: int = 1,
    fixed_payment: Optional[Decimal] = None,
    fixed_principal: Optional[Decimal] = None,
) -> List[AmortizationRow]:
    if method == AmortizationMethod.SAC:
        amortization = fixed_principal if fixed_principal is not None else principal / term
    else:
        payment = fixed_payment if fixed_payment is not None else annuity_payment(principal, rate, term)

    rows: List[AmortizationRow] = []
    balance = principal
    for offset in range(term):
        number = first_installment + offset
        interest = balance * rate
        if method == AmortizationMethod.SAC:
            principal_part = amortization
        else:
            principal_part = payment - interest

        # Última cuota (o cuota que ya cubre el saldo): amortiza exactamente lo que queda
        is_last = offset == term - 1 or principal_part >= balance
        if is_last:
            principal_part = balance

        balance = balance - principal_part
        rows.append(AmortizationRow(
            installment=number,
            due_date=add_months(start_date, number - 1),
            payment=principal_part + interest,
            principal=principal_part,
            interest=interest,
            balance=balance,
        ))
        if is_last:
            break
    return rows


def _term_for_payment(principal: Decimal, rate: Decimal, payment: Decimal) -> int:
    """Cantidad de cuotas de valor `payment` necesarias para cancelar `principal`."""
    if rate == 0:
        return max(1, math.ceil(principal / payment))
    ratio = float(rate * principal / payment)
    if ratio >= 1:
        # La cuota no alcanza a cubrir los intereses: no hay plazo finito
        raise ValidationError("La cuota no cubre los intereses del saldo")
    n = -math.log(1 - ratio) / math.log(1 + float(rate))
    return max(1, math.ceil(n - 1e-9))


def _field(obj: Any, name: str, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


# =========================
#        SCHEDULE
# =========================
def compute_schedule(principal, rate, term: int, method, start_date: date) -> List[AmortizationRow]:
    """Cronograma nominal completo, en precisión completa."""
    p, i = D(principal), D(rate)
    _validate_params(p, i, term)
    return _build_rows(p, i, int(term), parse_amortization_method(method), start_date)


def round_schedule(rows: List[AmortizationRow], method) -> List[AmortizationRow]:
    """
    Versión en centavos para mostrar/cobrar.
    SAC redondea amortización e interés; PRICE redondea cuota e interés
    (así la cuota queda constante). La última fila absorbe la diferencia.
    """
    if not rows:
        return []
    method = parse_amortization_method(method)
    opening = to_cents(rows[0].principal + rows[0].balance)
    amortized = Decimal("0")
    out: List[AmortizationRow] = []

    for idx, row in enumerate(rows):
        interest = to_cents(row.interest)
        if idx == len(rows) - 1:
            principal_part = opening - amortized
        elif method == AmortizationMethod.SAC:
            principal_part = to_cents(row.principal)
        else:
            principal_part = to_cents(row.payment) - interest
        amortized += principal_part
        out.append(AmortizationRow(
            installment=row.installment,
            due_date=row.due_date,
            payment=principal_part + interest,
            principal=principal_part,
            interest=interest,
            balance=opening - amortized,
        ))
    return out


def installment_payment(principal, rate, term: int, method) -> Decimal:
    """Cuota informativa del contrato: fija en PRICE, primera cuota en SAC."""
    method = parse_amortization_method(method)
    if method == AmortizationMethod.PRICE:
        return annuity_payment(principal, rate, term)
    p, i = D(principal), D(rate)
    _validate_params(p, i, term)
    return p / int(term) + p * i


def schedule_summary(rows: Iterable[AmortizationRow]) -> dict:
    rows = list(rows)
    total_principal = sum((r.principal for r in rows), Decimal("0"))
    total_interest = sum((r.interest for r in rows), Decimal("0"))
    return {
        "installments": len(rows),
        "total_payments": to_cents(total_principal + total_interest),
        "total_principal": to_cents(total_principal),
        "total_interest": to_cents(total_interest),
    }


# =========================
#     EARLY PAYMENT
# =========================
def simulate_early_payment(financing, extra_amount, payment_date: Optional[date], preference) -> EarlyPaymentSimulation:
    """
    Proyecta el cronograma restante si `extra_amount` se aplica íntegro a capital.

    reduce_term: mantiene la cuota (PRICE) o la amortización (SAC) y acorta el plazo.
    reduce_installment: mantiene el plazo restante con una cuota menor.
    """
    preference = parse_early_preference(preference)
    method = parse_amortization_method(_field(financing, "amortization_method"))
    rate = D(_field(financing, "interest_rate"))
    term = int(_field(financing, "term_months"))
    start = _field(financing, "start_date")
    balance = D(_field(financing, "current_balance"))
    extra = D(extra_amount)

    if extra <= 0:
        raise ValidationError("El pago anticipado debe ser mayor a cero")
    if extra >= balance:
        raise ValidationError("El pago anticipado no puede ser mayor o igual al saldo deudor")

    paid = int(_field(financing, "paid_installments", 0) or 0)
    remaining_term = max(term - paid, 1)
    next_installment = paid + 1
    new_principal = balance - extra

    original_rows = _build_rows(balance, rate, remaining_term, method, start, first_installment=next_installment)

    if preference == EarlyPaymentPreference.REDUCE_INSTALLMENT:
        new_rows = _build_rows(new_principal, rate, remaining_term, method, start, first_installment=next_installment)
    elif method == AmortizationMethod.PRICE:
        payment = annuity_payment(balance, rate, remaining_term)
        new_term = _term_for_payment(new_principal, rate, payment)
        new_rows = _build_rows(
            new_principal, rate, new_term, method, start,
            first_installment=next_installment, fixed_payment=payment,
        )
    else:
        amortization = balance / remaining_term
        new_term = max(1, math.ceil(new_principal / amortization))
        new_rows = _build_rows(
            new_principal, rate, new_term, method, start,
            first_installment=next_installment, fixed_principal=amortization,
        )

    original_interest = sum((r.interest for r in original_rows), Decimal("0"))
    new_interest = sum((r.interest for r in new_rows), Decimal("0"))

    return EarlyPaymentSimulation(
        preference=preference,
        payment_date=payment_date,
        original_balance=to_cents(balance),
        early_payment_amount=to_cents(extra),
        new_balance=to_cents(new_principal),
        original_term=len(original_rows),
        new_term=len(new_rows),
        original_installment=to_cents(original_rows[0].payment),
        new_installment=to_cents(new_rows[0].payment),
        original_total_interest=to_cents(original_interest),
        new_total_interest=to_cents(new_interest),
        interest_saved=to_cents(original_interest - new_interest),
        schedule=round_schedule(new_rows, method),
    )


# =========================
#     BALANCE REPLAY
# =========================
def calculate_updated_balance(principal, rate, term: int, method, start_date: date, payments: Iterable[Any]) -> BalanceSnapshot:
    """
    Reproduce el cronograma nominal contra los pagos reales.

    `payments` acepta filas del ledger o dicts con installment_number,
    payment_amount, principal_amount e interest_amount.
    """
    rows = round_schedule(compute_schedule(principal, rate, term, method, start_date), method)
    by_number = {r.installment: r for r in rows}
    scheduled_interest = sum((r.interest for r in rows), Decimal("0"))

    total_paid = Decimal("0")
    total_interest = Decimal("0")
    principal_paid = Decimal("0")
    paid_numbers = set()

    for p in payments:
        total_paid += D(_field(p, "payment_amount", 0) or 0)
        total_interest += D(_field(p, "interest_amount", 0) or 0)
        principal_paid += D(_field(p, "principal_amount", 0) or 0)
        number = _field(p, "installment_number")
        if number is not None and number in by_number:
            paid_numbers.add(number)

    opening = to_cents(principal)
    scheduled_balance = sum(
        (r.principal for r in rows if r.installment not in paid_numbers), Decimal("0")
    )
    denominator = opening + scheduled_interest
    percentage = (total_paid / denominator * 100) if denominator > 0 else Decimal("0")

    return BalanceSnapshot(
        current_balance=max(Decimal("0"), to_cents(opening - principal_paid)),
        scheduled_balance=to_cents(scheduled_balance),
        total_paid=to_cents(total_paid),
        total_interest_paid=to_cents(total_interest),
        paid_installments=len(paid_numbers),
        remaining_installments=int(term) - len(paid_numbers),
        percentage_paid=to_cents(percentage),
    )
