"""Agregações do relatório financeiro e do calendário do dashboard.

Funções puras sobre as listas completas de mensalidades e de histórico de
pagamentos; a data de referência (`today`) é sempre explícita.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Sequence

from dateutil.relativedelta import relativedelta

from billing.calculator import round_money
from models.subscription import CLOSED_STATUSES, OVERDUE, PAID, PENDING


def _same_month(d, ref: date) -> bool:
    return d is not None and d.year == ref.year and d.month == ref.month


def _total(items: Iterable, attr: str = "amount") -> float:
    return round_money(sum(getattr(i, attr) or 0 for i in items))


def due_within(subscriptions: Sequence, today: date, days: int) -> List:
    """Em aberto com vencimento entre hoje e hoje+days (inclusive), mais cedo primeiro."""
    limit = today + timedelta(days=days)
    upcoming = [
        s for s in subscriptions
        if s.status not in CLOSED_STATUSES and today <= s.due_date <= limit
    ]
    # sorted é estável: empates mantêm a ordem de busca
    return sorted(upcoming, key=lambda s: s.due_date)


def paid_in_month(subscriptions: Sequence, payments: Sequence, today: date) -> float:
    # Três fontes somadas sem deduplicação: o pagamento de uma mensalidade
    # aparece tanto no status Pago quanto no histórico.
    paid = [s for s in subscriptions if s.status == PAID and _same_month(s.payment_date, today)]
    initial = [
        s for s in subscriptions
        if s.initial_payment_paid and s.initial_payment_amount and _same_month(s.created_at, today)
    ]
    history = [p for p in payments if _same_month(p.payment_date, today)]
    return round_money(
        _total(paid) + _total(initial, "initial_payment_amount") + _total(history)
    )


@dataclass
class FinancialReport:
    reference_date: date
    paid_this_month: float
    pending: float
    overdue: float
    next_month_expected: float
    due_next_7_days: List = field(default_factory=list)
    due_next_30_days: List = field(default_factory=list)


def financial_report(subscriptions: Sequence, payments: Sequence, today: date) -> FinancialReport:
    next_month = today + relativedelta(months=1, day=1)
    return FinancialReport(
        reference_date=today,
        paid_this_month=paid_in_month(subscriptions, payments, today),
        pending=_total(s for s in subscriptions if s.status in (PENDING, OVERDUE)),
        overdue=_total(s for s in subscriptions if s.status == OVERDUE),
        next_month_expected=_total(
            s for s in subscriptions
            if s.status not in CLOSED_STATUSES and _same_month(s.due_date, next_month)
        ),
        due_next_7_days=due_within(subscriptions, today, 7),
        due_next_30_days=due_within(subscriptions, today, 30),
    )


@dataclass
class PaymentDay:
    date: date
    subscriptions: List = field(default_factory=list)

    @property
    def total_amount(self) -> float:
        return _total(self.subscriptions)


def _calendar_date(sub, month_start: date, today: date):
    if sub.is_recurring and sub.recurrence_day:
        # recorrentes: projeta o dia de recorrência no mês exibido
        when = month_start + relativedelta(day=sub.recurrence_day)
        if when < today:
            when = month_start + relativedelta(months=1, day=sub.recurrence_day)
        return when
    return sub.due_date


def payments_by_date(subscriptions: Sequence, month: date, today: date) -> List[PaymentDay]:
    month_start = month.replace(day=1)
    days: Dict[date, PaymentDay] = {}
    for sub in subscriptions:
        if sub.status in CLOSED_STATUSES:
            continue
        when = _calendar_date(sub, month_start, today)
        if not _same_month(when, month_start):
            continue
        days.setdefault(when, PaymentDay(date=when)).subscriptions.append(sub)
    return [days[d] for d in sorted(days)]


@dataclass
class Dashboard:
    month: date
    days: List[PaymentDay]
    total_pending: float
    total_overdue: float
    total_this_month: float
    upcoming: List[PaymentDay]


def dashboard(subscriptions: Sequence, month: date, today: date, *, upcoming_days: int = 7,
              upcoming_limit: int = 10) -> Dashboard:
    days = payments_by_date(subscriptions, month, today)
    upcoming = [d for d in days if 0 <= (d.date - today).days <= upcoming_days][:upcoming_limit]
    return Dashboard(
        month=month.replace(day=1),
        days=days,
        total_pending=_total(s for s in subscriptions if s.status == PENDING),
        total_overdue=_total(
            s for s in subscriptions
            if s.status not in CLOSED_STATUSES and s.due_date < today
        ),
        total_this_month=round_money(sum(d.total_amount for d in days)),
        upcoming=upcoming,
    )
