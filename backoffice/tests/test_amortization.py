# backoffice/tests/test_amortization.py
from datetime import date
from decimal import Decimal

import pytest

from backoffice.constants import EarlyPaymentPreference
from backoffice.utils.amortization import (
    add_months, annuity_payment, calculate_updated_balance, compute_schedule,
    installment_payment, round_schedule, schedule_summary, simulate_early_payment,
)
from backoffice.utils.errors import ValidationError

START = date(2024, 1, 10)


def test_sac_example_first_and_last_rows():
    rows = compute_schedule(12000, 0.01, 12, "SAC", START)
    assert len(rows) == 12
    first = rows[0]
    assert first.principal == Decimal("1000")
    assert first.interest == Decimal("120")
    assert first.payment == Decimal("1120")
    assert first.balance == Decimal("11000")
    assert rows[-1].balance == 0


def test_sac_principal_is_constant_and_sums_to_principal():
    rows = compute_schedule(12000, 0.01, 12, "SAC", START)
    assert {r.principal for r in rows} == {Decimal("1000")}
    assert sum(r.principal for r in rows) == Decimal("12000")
    # interés decreciente
    interests = [r.interest for r in rows]
    assert interests == sorted(interests, reverse=True)


def test_price_example_constant_payment():
    rows = compute_schedule(12000, 0.01, 12, "PRICE", START)
    assert len(rows) == 12
    assert abs(rows[0].payment - Decimal("1066.19")) < Decimal("0.01")
    for r in rows:
        assert abs(r.payment - rows[0].payment) < Decimal("0.000001")
    interests = [r.interest for r in rows]
    assert interests == sorted(interests, reverse=True)
    assert rows[-1].balance == 0
    assert abs(sum(r.principal for r in rows) - Decimal("12000")) < Decimal("0.000001")


def test_price_zero_rate_is_linear():
    rows = compute_schedule(1200, 0, 12, "PRICE", START)
    assert all(r.payment == Decimal("100") for r in rows)
    assert all(r.interest == 0 for r in rows)


def test_annuity_payment_formula():
    assert abs(annuity_payment(12000, 0.01, 12) - Decimal("1066.1855")) < Decimal("0.0001")
    assert annuity_payment(1200, 0, 12) == Decimal("100")


def test_installment_payment_sac_is_first_installment():
    assert installment_payment(12000, 0.01, 12, "SAC") == Decimal("1120")


def test_compute_schedule_is_pure():
    a = compute_schedule(50000, 0.0125, 36, "PRICE", START)
    b = compute_schedule(50000, 0.0125, 36, "PRICE", START)
    assert a == b


def test_due_dates_follow_start_date():
    rows = compute_schedule(3000, 0.01, 3, "SAC", date(2024, 1, 31))
    assert [r.due_date for r in rows] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]


def test_add_months_clamps_end_of_month():
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


@pytest.mark.parametrize("principal, rate, term", [
    (12000, 0.01, 0),
    (12000, 0.01, -3),
    (0, 0.01, 12),
    (-100, 0.01, 12),
    (12000, -0.01, 12),
])
def test_invalid_params_raise(principal, rate, term):
    with pytest.raises(ValidationError):
        compute_schedule(principal, rate, term, "SAC", START)


def test_unknown_method_raises():
    with pytest.raises(ValidationError):
        compute_schedule(1000, 0.01, 12, "GERMAN", START)


def test_legacy_method_names_are_accepted():
    rows = compute_schedule(12000, 0.01, 12, "french", START)
    assert abs(rows[0].payment - Decimal("1066.19")) < Decimal("0.01")


@pytest.mark.parametrize("method", ["SAC", "PRICE"])
def test_rounded_schedule_closes_exactly(method):
    rows = round_schedule(compute_schedule(10000, 0.0137, 7, method, START), method)
    assert sum(r.principal for r in rows) == Decimal("10000.00")
    assert rows[-1].balance == Decimal("0.00")
    for r in rows:
        assert r.payment == r.principal + r.interest
        assert r.principal == r.principal.quantize(Decimal("0.01"))


def test_rounded_sac_last_row_absorbs_cents():
    rows = round_schedule(compute_schedule(1000, 0.01, 3, "SAC", START), "SAC")
    assert [r.principal for r in rows] == [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]


def test_rounded_price_payment_is_constant_except_last():
    rows = round_schedule(compute_schedule(12000, 0.01, 12, "PRICE", START), "PRICE")
    assert {r.payment for r in rows[:-1]} == {Decimal("1066.19")}
    assert abs(rows[-1].payment - Decimal("1066.19")) <= Decimal("0.10")


def test_schedule_summary_totals():
    rows = compute_schedule(12000, 0.01, 12, "SAC", START)
    summary = schedule_summary(rows)
    assert summary["installments"] == 12
    assert summary["total_principal"] == Decimal("12000.00")
    assert summary["total_interest"] == Decimal("780.00")
    assert summary["total_payments"] == Decimal("12780.00")


# ---------- simulación de pago anticipado ----------

def _financing(method="PRICE", balance=12000, paid=0):
    return {
        "amortization_method": method,
        "interest_rate": 0.01,
        "term_months": 12,
        "start_date": START,
        "current_balance": balance,
        "paid_installments": paid,
    }


def test_simulation_reduce_term_price_keeps_installment():
    sim = simulate_early_payment(_financing(), 2000, None, "reduce_term")
    assert sim.preference == EarlyPaymentPreference.REDUCE_TERM
    assert sim.new_balance == Decimal("10000.00")
    assert sim.original_term == 12
    assert sim.new_term == 10
    assert sim.new_installment == sim.original_installment
    assert sim.interest_saved > 0
    assert sum(r.principal for r in sim.schedule) == Decimal("10000.00")


def test_simulation_reduce_installment_keeps_term():
    sim = simulate_early_payment(_financing(), 2000, date(2024, 3, 1), "reducao_parcela")
    assert sim.preference == EarlyPaymentPreference.REDUCE_INSTALLMENT
    assert sim.new_term == 12
    assert sim.new_installment < sim.original_installment
    assert sim.payment_date == date(2024, 3, 1)


def test_simulation_sac_reduce_term():
    sim = simulate_early_payment(_financing(method="SAC"), 2000, None, "reduce_term")
    assert sim.new_term == 10
    assert sim.schedule[0].principal == Decimal("1000.00")


def test_simulation_numbers_from_next_installment():
    sim = simulate_early_payment(_financing(balance=10000, paid=2), 1000, None, "reduce_installment")
    assert sim.schedule[0].installment == 3
    assert sim.original_term == 10


@pytest.mark.parametrize("extra", [0, -5, 12000, 15000])
def test_simulation_rejects_invalid_amounts(extra):
    with pytest.raises(ValidationError):
        simulate_early_payment(_financing(), extra, None, "reduce_term")


def test_simulation_rejects_unknown_preference():
    with pytest.raises(ValidationError):
        simulate_early_payment(_financing(), 1000, None, "whatever")


# ---------- saldo actualizado ----------

def test_calculate_updated_balance_with_scheduled_payments():
    payments = [
        {"installment_number": 1, "payment_amount": 1120, "principal_amount": 1000, "interest_amount": 120},
        {"installment_number": 2, "payment_amount": 1110, "principal_amount": 1000, "interest_amount": 110},
    ]
    snap = calculate_updated_balance(12000, 0.01, 12, "SAC", START, payments)
    assert snap.current_balance == Decimal("10000.00")
    assert snap.scheduled_balance == Decimal("10000.00")
    assert snap.total_paid == Decimal("2230.00")
    assert snap.total_interest_paid == Decimal("230.00")
    assert snap.paid_installments == 2
    assert snap.remaining_installments == 10
    assert snap.percentage_paid == Decimal("17.45")


def test_calculate_updated_balance_counts_early_payment_only_in_balance():
    payments = [
        {"installment_number": 1, "payment_amount": 1120, "principal_amount": 1000, "interest_amount": 120},
        {"installment_number": None, "payment_amount": 500, "principal_amount": 500, "interest_amount": 0},
    ]
    snap = calculate_updated_balance(12000, 0.01, 12, "SAC", START, payments)
    assert snap.current_balance == Decimal("10500.00")
    assert snap.scheduled_balance == Decimal("11000.00")
    assert snap.paid_installments == 1
