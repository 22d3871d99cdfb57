"""Transições de uma mensalidade: pagar, pausar, retomar e atraso.

Cada registro é a foto de um período; a "linha" de uma assinatura recorrente
avança criando um novo registro (sucessor) quando o período é pago. As
funções daqui só alteram/constroem objetos; gravar é com o chamador.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from billing.calculator import next_occurrence, round_money
from models.subscription import (
    CLOSED_STATUSES,
    OVERDUE,
    PAID,
    PAUSED,
    PENDING,
    Subscription,
)
from utils.errors import BillingError

# Campos do contrato copiados para o período seguinte
_CONTRACT_FIELDS = (
    "client_id",
    "is_recurring",
    "recurrence_month",
    "category",
    "description",
    "start_date",
    "total_installments",
    "initial_payment_amount",
    "initial_payment_paid",
    "implementation_value",
    "maintenance_value_per_number",
    "number_of_numbers",
    "implementation_payment_type",
    "implementation_installments",
    "contract_duration",
    "payment_day",
    "monthly_implementation_amount",
    "monthly_maintenance_amount",
)


def anchor_day(sub) -> Optional[int]:
    return sub.recurrence_day or sub.payment_day


def mark_paid(sub, paid_on: date) -> None:
    if sub.status in CLOSED_STATUSES:
        raise BillingError(f"Mensalidade com status {sub.status} não pode ser paga")
    sub.status = PAID
    sub.payment_date = paid_on


def contract_complete(sub) -> bool:
    return bool(
        sub.total_installments
        and (sub.current_installment or 1) >= sub.total_installments
    )


def should_spawn_successor(sub) -> bool:
    return bool(
        sub.is_recurring
        and not sub.is_paused
        and anchor_day(sub)
        and not contract_complete(sub)
    )


def successor_amount(sub, next_installment: int) -> float:
    maintenance = sub.monthly_maintenance_amount or 0
    implementation = sub.monthly_implementation_amount or 0
    if not maintenance and not implementation:
        # mensalidade simples, sem composição de contrato
        return round_money(sub.amount)

    amount = maintenance
    if (
        sub.implementation_payment_type == "parcelado"
        and sub.implementation_installments
        and next_installment <= sub.implementation_installments
    ):
        amount += implementation
    return round_money(amount)


def build_successor(sub) -> Optional[Subscription]:
    """Período seguinte de uma mensalidade paga, ou None se não houver."""
    if sub.status != PAID or not should_spawn_successor(sub):
        return None

    day = anchor_day(sub)
    next_installment = (sub.current_installment or 1) + 1
    amount = successor_amount(sub, next_installment)

    successor = Subscription(
        amount=amount,
        due_date=next_occurrence(day, sub.due_date),
        status=PENDING,
        recurrence_day=day,
        current_installment=next_installment,
        is_paused=False,
        total_monthly_amount=amount,
    )
    for field in _CONTRACT_FIELDS:
        setattr(successor, field, getattr(sub, field))
    return successor


def pause(sub) -> None:
    if sub.status in CLOSED_STATUSES:
        raise BillingError(f"Mensalidade com status {sub.status} não pode ser pausada")
    if not sub.is_recurring:
        raise BillingError("Apenas mensalidades recorrentes podem ser pausadas")
    sub.is_paused = True
    sub.status = PAUSED


def resume(sub, today: date) -> None:
    if sub.status in CLOSED_STATUSES:
        raise BillingError(f"Mensalidade com status {sub.status} não pode ser retomada")
    if not sub.is_paused:
        raise BillingError("Mensalidade não está pausada")
    sub.is_paused = False
    sub.status = PENDING
    day = anchor_day(sub)
    if day:
        # estritamente depois de hoje: no próprio dia, vence no mês seguinte
        sub.due_date = next_occurrence(day, today)


def is_overdue(sub, today: date) -> bool:
    return sub.status not in CLOSED_STATUSES and sub.due_date < today


def days_overdue(sub, today: date) -> int:
    return max(0, (today - sub.due_date).days)


def flag_overdue(subscriptions: Iterable, today: date) -> List:
    """Marca como Atrasado os registros Pendente vencidos; devolve os alterados."""
    changed = []
    for sub in subscriptions:
        if sub.status == PENDING and sub.due_date < today:
            sub.status = OVERDUE
            changed.append(sub)
    return changed
