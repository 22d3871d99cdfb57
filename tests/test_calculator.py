from datetime import date

import pytest

from billing.calculator import (
    build_contract_schedule,
    compute_amounts,
    first_due_date,
    next_occurrence,
)
from models.subscription import PAID, PENDING


def test_parcelado_splits_implementation():
    out = compute_amounts(3000, "parcelado", 3, 150, 2, 12)
    assert out.monthly_maintenance_amount == 300.0
    assert out.monthly_implementation_amount == 1000.0
    assert out.total_monthly_amount == 1300.0
    assert out.total_contract_value == 3000 + 300 * 12


def test_vista_has_no_monthly_implementation():
    out = compute_amounts(3000, "vista", 3, 150, 1, 6)
    assert out.monthly_implementation_amount == 0.0
    assert out.total_monthly_amount == 150.0
    assert out.total_contract_value == 3000 + 150 * 6


@pytest.mark.parametrize("installments", [0, -2, None])
def test_zero_installments_means_no_implementation_share(installments):
    out = compute_amounts(1200, "parcelado", installments, 100, 1)
    assert out.monthly_implementation_amount == 0.0
    assert out.total_monthly_amount == out.monthly_maintenance_amount


def test_amounts_are_rounded_to_cents():
    out = compute_amounts(1000, "parcelado", 3, 0, 1)
    assert out.monthly_implementation_amount == 333.33
    assert out.as_dict()["monthlyImplementationAmount"] == 333.33


def test_first_due_date_same_month_when_later():
    assert first_due_date(date(2024, 3, 5), 10) == date(2024, 3, 10)


def test_first_due_date_rolls_when_not_strictly_after():
    assert first_due_date(date(2024, 3, 10), 10) == date(2024, 4, 10)
    assert first_due_date(date(2024, 3, 20), 10) == date(2024, 4, 10)


def test_day_beyond_month_end_clamps():
    assert next_occurrence(31, date(2024, 1, 31)) == date(2024, 2, 29)
    assert next_occurrence(31, date(2023, 2, 1)) == date(2023, 2, 28)
    assert next_occurrence(30, date(2024, 2, 29)) == date(2024, 3, 30)


def test_next_occurrence_is_strictly_after():
    assert next_occurrence(15, date(2024, 5, 15)) == date(2024, 6, 15)


def test_contract_schedule_periods():
    periods = build_contract_schedule(
        start_date=date(2024, 1, 20),
        payment_day=10,
        implementation_value=3000,
        payment_type="parcelado",
        installments=3,
        maintenance_value_per_number=150,
        number_of_numbers=2,
        contract_duration=12,
        today=date(2024, 1, 20),
    )
    assert len(periods) == 12
    assert [p["current_installment"] for p in periods] == list(range(1, 13))
    assert periods[0]["due_date"] == date(2024, 2, 10)
    assert periods[11]["due_date"] == date(2025, 1, 10)
    assert [p["amount"] for p in periods[:4]] == [1300.0, 1300.0, 1300.0, 300.0]
    assert periods[2]["description"] == "Mensalidade 3/12 (Manutenção + Implementação)"
    assert periods[3]["description"] == "Mensalidade 4/12 (Apenas Manutenção)"
    assert all(p["status"] == PENDING and not p["is_recurring"] for p in periods)


def test_contract_schedule_implementation_paid_upfront():
    periods = build_contract_schedule(
        start_date=date(2024, 1, 31),
        payment_day=31,
        implementation_value=900,
        payment_type="vista",
        installments=None,
        maintenance_value_per_number=100,
        number_of_numbers=1,
        contract_duration=3,
        implementation_paid=True,
        today=date(2024, 2, 1),
    )
    first = periods[0]
    assert first["status"] == PAID
    assert first["payment_date"] == date(2024, 2, 1)
    assert periods[1]["status"] == PENDING
    # 31 ancorado: fevereiro cai no último dia
    assert [p["due_date"] for p in periods] == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]
    assert all(p["amount"] == 100.0 for p in periods)
