"""Operações de mensalidade que gravam no banco.

Cada passo é um commit de um registro (ou de um par registro + histórico);
não há transação entre o período pago e o sucessor. Se o sucessor falhar
depois do pagamento gravado, o período pago permanece e o erro sobe.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Iterable, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from billing import recurrence
from extensions import db
from models.client import Client
from models.payment_history import PaymentHistory
from models.subscription import OVERDUE, PAID, PENDING, Subscription
from notifications.service import OverduePayment, PaymentReminder, get_notifications
from utils.errors import NotFoundError

DEFAULT_PAYMENT_METHOD = "Outro"
DEFAULT_PAYMENT_NOTES = "Pagamento da mensalidade"


def get_subscription_or_404(sub_id: uuid.UUID) -> Subscription:
    sub = db.session.get(Subscription, sub_id)
    if not sub:
        raise NotFoundError("Subscription")
    return sub


def get_client_or_404(client_id: uuid.UUID) -> Client:
    client = db.session.get(Client, client_id)
    if not client:
        raise NotFoundError("Client")
    return client


def _client_name(sub: Subscription) -> str:
    client = sub.client
    return (client.company_name or client.full_name) if client else "Cliente"


def schedule_reminders(subs: Iterable[Subscription]) -> int:
    reminders = [
        PaymentReminder(
            client_name=_client_name(s),
            amount=float(s.amount),
            due_date=s.due_date,
            subscription_id=str(s.id),
            client_id=str(s.client_id),
        )
        for s in subs
        if s.status == PENDING
    ]
    return get_notifications().schedule_many(reminders)


def _insert_successor(sub: Subscription) -> Optional[Subscription]:
    successor = recurrence.build_successor(sub)
    if successor is None:
        return None
    try:
        db.session.add(successor)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(
            "Subscription %s paid but next period was not created", sub.id
        )
        # erro genérico (500): o pagamento já foi gravado, o payload não tem culpa
        raise SQLAlchemyError(f"Next period for subscription {sub.id} was not created") from e
    return successor


def create_subscriptions(rows: List[Subscription]) -> Tuple[List[Subscription], List[Subscription]]:
    """Grava os períodos e, para recorrentes já pagos, o período seguinte."""
    db.session.add_all(rows)
    db.session.commit()

    successors = []
    for sub in rows:
        if sub.is_recurring and sub.status == PAID:
            successor = _insert_successor(sub)
            if successor is not None:
                successors.append(successor)

    schedule_reminders(rows + successors)
    return rows, successors


def pay(sub: Subscription, paid_on: date, method: Optional[str] = None,
        notes: Optional[str] = None) -> Tuple[PaymentHistory, Optional[Subscription]]:
    recurrence.mark_paid(sub, paid_on)
    payment = PaymentHistory(
        subscription_id=sub.id,
        amount=sub.amount,
        payment_date=paid_on,
        payment_method=method or DEFAULT_PAYMENT_METHOD,
        notes=notes or DEFAULT_PAYMENT_NOTES,
    )
    db.session.add(payment)
    db.session.commit()

    successor = _insert_successor(sub)

    notifications = get_notifications()
    notifications.payment_received(_client_name(sub), float(sub.amount))
    if successor is not None:
        schedule_reminders([successor])
    return payment, successor


def pause(sub: Subscription) -> Subscription:
    recurrence.pause(sub)
    db.session.commit()
    return sub


def resume(sub: Subscription, today: date) -> Subscription:
    recurrence.resume(sub, today)
    db.session.commit()
    schedule_reminders([sub])
    return sub


def overdue_subscriptions(today: date) -> List[Subscription]:
    return (
        Subscription.query
        .filter(Subscription.due_date < today)
        .filter(Subscription.status.in_([PENDING, OVERDUE]))
        .order_by(Subscription.due_date.asc())
        .all()
    )


def refresh_overdue(today: date) -> List[Subscription]:
    pending = (
        Subscription.query
        .filter(Subscription.due_date < today)
        .filter(Subscription.status == PENDING)
        .all()
    )
    changed = recurrence.flag_overdue(pending, today)
    if changed:
        db.session.commit()
    return changed


def report_overdue(today: date) -> List[OverduePayment]:
    items = [
        OverduePayment(
            id=str(s.id),
            client_name=_client_name(s),
            amount=float(s.amount),
            due_date=s.due_date,
            days_overdue=recurrence.days_overdue(s, today),
        )
        for s in overdue_subscriptions(today)
    ]
    if items:
        get_notifications().report_overdue(items)
    return items
