"""Lembretes de pagamento para a camada de notificações do navegador.

O serviço só produz mensagens; quem entrega é o transporte:
 - WebhookTransport: POST JSON para NOTIFY_WEBHOOK_URL (httpx)
 - OutboxTransport: fila em memória que o service worker consome via
   GET /api/v1/notifications/outbox

Entrega é best-effort: falhas de transporte são logadas e nunca sobem para
a requisição que originou a mensagem.
"""

from __future__ import annotations

import atexit
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
from flask import current_app

SCHEDULE_PAYMENT_NOTIFICATION = "SCHEDULE_PAYMENT_NOTIFICATION"
OVERDUE_PAYMENTS_DATA = "OVERDUE_PAYMENTS_DATA"
PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
NEW_CLIENT = "NEW_CLIENT"
CLEAR_ALL_NOTIFICATIONS = "CLEAR_ALL_NOTIFICATIONS"


class WebhookTransport:
    name = "webhook"

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self._client = httpx.Client(timeout=timeout)

    def send(self, message: Dict[str, Any]) -> None:
        r = self._client.post(self.url, json=message)
        r.raise_for_status()

    def close(self) -> None:
        self._client.close()


class OutboxTransport:
    name = "outbox"

    def __init__(self, maxlen: int = 500):
        self._queue: deque = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def send(self, message: Dict[str, Any]) -> None:
        with self._lock:
            self._queue.append(message)

    def drain(self) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._queue)
            self._queue.clear()
        return items

    def __len__(self) -> int:
        return len(self._queue)

    def close(self) -> None:
        with self._lock:
            self._queue.clear()


@dataclass(frozen=True)
class PaymentReminder:
    client_name: str
    amount: float
    due_date: date
    subscription_id: str
    client_id: str


@dataclass(frozen=True)
class OverduePayment:
    id: str
    client_name: str
    amount: float
    due_date: date
    days_overdue: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationService:
    def __init__(self, transport, *, lead_days: int = 1, logger: Optional[logging.Logger] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self.transport = transport
        self.lead_days = lead_days
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._open = False

    # ---- ciclo de vida ----
    def open(self) -> "NotificationService":
        self._open = True
        return self

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self.transport.close()

    @property
    def enabled(self) -> bool:
        return self._open

    def status(self) -> Dict[str, Any]:
        out = {
            "enabled": self.enabled,
            "transport": getattr(self.transport, "name", type(self.transport).__name__),
            "leadDays": self.lead_days,
        }
        if isinstance(self.transport, OutboxTransport):
            out["pending"] = len(self.transport)
        return out

    # ---- mensagens ----
    def _send(self, type_: str, payload: Any = None) -> bool:
        if not self.enabled:
            return False
        message = {"type": type_, "payload": payload, "sentAt": self._clock().isoformat()}
        try:
            self.transport.send(message)
        except Exception as e:
            self.logger.warning("Notification %s not delivered: %s", type_, e)
            return False
        return True

    def reminder_time(self, due_date: date) -> datetime:
        return datetime.combine(due_date, time.min, tzinfo=timezone.utc) - timedelta(days=self.lead_days)

    def schedule_payment_reminder(self, reminder: PaymentReminder) -> bool:
        notify_at = self.reminder_time(reminder.due_date)
        # lembrete que já deveria ter disparado não é agendado
        if notify_at <= self._clock():
            return False
        return self._send(SCHEDULE_PAYMENT_NOTIFICATION, {
            "clientName": reminder.client_name,
            "amount": reminder.amount,
            "dueDate": reminder.due_date.isoformat(),
            "subscriptionId": reminder.subscription_id,
            "clientId": reminder.client_id,
            "notifyAt": notify_at.isoformat(),
        })

    def schedule_many(self, reminders: Iterable[PaymentReminder]) -> int:
        return sum(1 for r in reminders if self.schedule_payment_reminder(r))

    def report_overdue(self, payments: Iterable[OverduePayment]) -> bool:
        return self._send(OVERDUE_PAYMENTS_DATA, [
            {
                "id": p.id,
                "clientName": p.client_name,
                "amount": p.amount,
                "dueDate": p.due_date.isoformat(),
                "daysOverdue": p.days_overdue,
            }
            for p in payments
        ])

    def payment_received(self, client_name: str, amount: float) -> bool:
        return self._send(PAYMENT_RECEIVED, {
            "title": "💰 Pagamento Recebido!",
            "body": f"{client_name} - R$ {amount:.2f}",
        })

    def new_client(self, client_name: str) -> bool:
        return self._send(NEW_CLIENT, {
            "title": "👤 Novo Cliente Cadastrado!",
            "body": f"{client_name} foi adicionado ao sistema",
        })

    def clear_all(self) -> bool:
        if isinstance(self.transport, OutboxTransport):
            self.transport.drain()
        return self._send(CLEAR_ALL_NOTIFICATIONS)


def init_notifications(app, transport=None) -> NotificationService:
    if transport is None:
        url = app.config.get("NOTIFY_WEBHOOK_URL")
        transport = WebhookTransport(url) if url else OutboxTransport()
    service = NotificationService(
        transport,
        lead_days=int(app.config.get("REMINDER_LEAD_DAYS", 1)),
        logger=app.logger,
    ).open()
    app.extensions["notifications"] = service
    # fecha o transporte (cliente httpx do webhook) ao encerrar o processo
    atexit.register(service.close)
    return service


def get_notifications() -> NotificationService:
    return current_app.extensions["notifications"]
