# subscriptions/routes.py
from datetime import date
from flask import Blueprint, request, jsonify, Response
import uuid

from billing.calculator import (
    DEFAULT_CONTRACT_DURATION,
    DEFAULT_PAYMENT_DAY,
    build_contract_schedule,
    compute_amounts,
    first_due_date,
)
from extensions import db
from models.payment_history import PAYMENT_METHODS, PaymentHistory
from models.subscription import (
    CATEGORIES,
    PAYMENT_STATUSES,
    PAYMENT_TYPES,
    PENDING,
    Subscription,
)
from subscriptions import service
from utils.casing import sa_model_to_dict
from utils.supabase_jwt import auth_required
from utils.validation import FieldReader, date_arg, uuid_value

# Blueprint sem prefixo interno; app.py define /api/v1/subscriptions
bp = Blueprint("subscriptions", __name__)

# (campo camelCase, coluna, leitor, kwargs do leitor)
_FIELDS = (
    ("amount", "amount", "number", {"minimum": 0}),
    ("dueDate", "due_date", "date", {}),
    ("paymentDate", "payment_date", "date", {}),
    ("status", "status", "choice", {"options": PAYMENT_STATUSES}),
    ("isRecurring", "is_recurring", "boolean", {}),
    ("recurrenceMonth", "recurrence_month", "integer", {"minimum": 1, "maximum": 12}),
    ("recurrenceDay", "recurrence_day", "integer", {"minimum": 1, "maximum": 31}),
    ("category", "category", "choice", {"options": CATEGORIES}),
    ("description", "description", "text", {}),
    ("startDate", "start_date", "date", {}),
    ("totalInstallments", "total_installments", "integer", {"minimum": 1}),
    ("currentInstallment", "current_installment", "integer", {"minimum": 1}),
    ("isPaused", "is_paused", "boolean", {}),
    ("initialPaymentAmount", "initial_payment_amount", "number", {"minimum": 0}),
    ("initialPaymentPaid", "initial_payment_paid", "boolean", {}),
    ("notes", "notes", "text", {}),
    ("implementationValue", "implementation_value", "number", {"minimum": 0}),
    ("maintenanceValuePerNumber", "maintenance_value_per_number", "number", {"minimum": 0}),
    ("numberOfNumbers", "number_of_numbers", "integer", {"minimum": 1}),
    ("implementationPaymentType", "implementation_payment_type", "choice", {"options": PAYMENT_TYPES}),
    ("implementationInstallments", "implementation_installments", "integer", {"minimum": 0}),
    ("contractDuration", "contract_duration", "integer", {"minimum": 1, "maximum": 120}),
    ("paymentDay", "payment_day", "integer", {"minimum": 1, "maximum": 31}),
)

_BREAKDOWN_FIELDS = {
    "implementation_value",
    "maintenance_value_per_number",
    "number_of_numbers",
    "implementation_payment_type",
    "implementation_installments",
    "contract_duration",
}


def _camel_subscription(s: Subscription) -> dict:
    return sa_model_to_dict(s)


def _camel_payment(p: PaymentHistory) -> dict:
    return sa_model_to_dict(p)


def _read_fields(f: FieldReader) -> dict:
    values = {}
    for key, column, reader, kwargs in _FIELDS:
        if not f.has(key):
            continue
        kwargs = dict(kwargs)
        if reader == "choice":
            values[column] = f.choice(key, kwargs.pop("options"))
        else:
            values[column] = getattr(f, reader)(key, **kwargs)
    return values


def _apply_breakdown(sub: Subscription) -> None:
    amounts = compute_amounts(
        sub.implementation_value,
        sub.implementation_payment_type or "parcelado",
        sub.implementation_installments,
        sub.maintenance_value_per_number,
        sub.number_of_numbers or 1,
        sub.contract_duration or DEFAULT_CONTRACT_DURATION,
    )
    sub.monthly_implementation_amount = amounts.monthly_implementation_amount
    sub.monthly_maintenance_amount = amounts.monthly_maintenance_amount
    sub.total_monthly_amount = amounts.total_monthly_amount


def _check_consistency(f: FieldReader, sub: Subscription) -> None:
    if sub.total_installments and sub.current_installment and sub.current_installment > sub.total_installments:
        f.fail("currentInstallment", "Parcela atual maior que o total de parcelas")
    if sub.is_recurring and not (sub.recurrence_day or sub.payment_day):
        f.fail("recurrenceDay", "Recorrência exige o dia de vencimento")


def _build_subscription(payload: dict) -> Subscription:
    f = FieldReader(payload)
    client_id = payload.get("clientId")
    if not client_id:
        f.fail("clientId", "Campo obrigatório")
    values = _read_fields(f)
    f.raise_if_errors()
    client = service.get_client_or_404(uuid_value(client_id, "clientId"))

    sub = Subscription(
        client_id=client.id,
        status=PENDING,
        is_recurring=False,
        is_paused=False,
        initial_payment_paid=False,
        current_installment=1,
    )
    for column, value in values.items():
        if value is not None:
            setattr(sub, column, value)

    if _BREAKDOWN_FIELDS & set(values):
        _apply_breakdown(sub)
        if sub.amount is None:
            sub.amount = sub.total_monthly_amount
    if sub.due_date is None:
        day = sub.recurrence_day or sub.payment_day
        if day:
            sub.due_date = first_due_date(sub.start_date or date.today(), day)

    if sub.amount is None:
        f.fail("amount", "Campo obrigatório")
    if sub.due_date is None:
        f.fail("dueDate", "Campo obrigatório")
    _check_consistency(f, sub)
    f.raise_if_errors()
    return sub


@bp.post("")
@auth_required
def create_subscription():
    sub = _build_subscription(request.get_json(silent=True) or {})
    rows, successors = service.create_subscriptions([sub])
    body = _camel_subscription(rows[0])
    body["successor"] = _camel_subscription(successors[0]) if successors else None
    return jsonify(body), 201


@bp.post("/contract")
@auth_required
def create_contract():
    """Cria todas as parcelas de um contrato (implementação + manutenção)."""
    f = FieldReader(request.get_json(silent=True) or {})
    client_id = f.payload.get("clientId")
    if not client_id:
        f.fail("clientId", "Campo obrigatório")
    start = f.date("startDate", required=True)
    payment_day = f.integer("paymentDay", minimum=1, maximum=31) or DEFAULT_PAYMENT_DAY
    implementation_value = f.number("implementationValue", minimum=0) or 0.0
    payment_type = f.choice("implementationPaymentType", PAYMENT_TYPES, default="parcelado")
    installments = f.integer("implementationInstallments", minimum=1)
    maintenance = f.number("maintenanceValuePerNumber", required=True, minimum=0)
    numbers = f.integer("numberOfNumbers", minimum=1) or 1
    duration = f.integer("contractDuration", minimum=1, maximum=120) or DEFAULT_CONTRACT_DURATION
    implementation_paid = f.boolean("implementationPaid", default=False)
    if installments and installments > duration:
        f.fail("implementationInstallments", "Não pode exceder a duração do contrato")
    f.raise_if_errors()
    client = service.get_client_or_404(uuid_value(client_id, "clientId"))

    periods = build_contract_schedule(
        start_date=start,
        payment_day=payment_day,
        implementation_value=implementation_value,
        payment_type=payment_type,
        installments=installments if payment_type == "parcelado" else None,
        maintenance_value_per_number=maintenance,
        number_of_numbers=numbers,
        contract_duration=duration,
        implementation_paid=implementation_paid,
        today=date_arg(request.args),
    )
    rows = [Subscription(client_id=client.id, **period) for period in periods]
    rows, _ = service.create_subscriptions(rows)
    return jsonify([_camel_subscription(s) for s in rows]), 201


@bp.post("/quote")
@auth_required
def quote():
    f = FieldReader(request.get_json(silent=True) or {})
    implementation_value = f.number("implementationValue", minimum=0) or 0.0
    payment_type = f.choice("implementationPaymentType", PAYMENT_TYPES, default="parcelado")
    installments = f.integer("implementationInstallments", minimum=0)
    maintenance = f.number("maintenanceValuePerNumber", minimum=0) or 0.0
    numbers = f.integer("numberOfNumbers", minimum=1) or 1
    duration = f.integer("contractDuration", minimum=1, maximum=120) or DEFAULT_CONTRACT_DURATION
    start = f.date("startDate")
    payment_day = f.integer("paymentDay", minimum=1, maximum=31)
    f.raise_if_errors()

    body = compute_amounts(
        implementation_value, payment_type, installments, maintenance, numbers, duration
    ).as_dict()
    if start and payment_day:
        body["firstDueDate"] = first_due_date(start, payment_day).isoformat()
    return jsonify(body), 200


@bp.get("")
@auth_required
def list_subscriptions():
    qry = Subscription.query
    client_id = (request.args.get("clientId") or "").strip()
    status = (request.args.get("status") or "").strip()
    if client_id:
        qry = qry.filter(Subscription.client_id == uuid_value(client_id, "clientId"))
    if status:
        qry = qry.filter(Subscription.status == status)
    items = qry.order_by(Subscription.due_date.desc()).all()
    return jsonify([_camel_subscription(s) for s in items]), 200


@bp.get("/overdue")
@auth_required
def list_overdue():
    items = service.overdue_subscriptions(date_arg(request.args))
    return jsonify([_camel_subscription(s) for s in items]), 200


@bp.get("/recurring")
@auth_required
def list_recurring():
    items = (
        Subscription.query
        .filter(Subscription.is_recurring.is_(True))
        .order_by(Subscription.due_date.asc())
        .all()
    )
    return jsonify([_camel_subscription(s) for s in items]), 200


@bp.post("/refresh-overdue")
@auth_required
def refresh_overdue():
    changed = service.refresh_overdue(date_arg(request.args))
    return jsonify({
        "updated": len(changed),
        "items": [_camel_subscription(s) for s in changed],
    }), 200


@bp.get("/<uuid:sub_id>")
@auth_required
def get_subscription(sub_id: uuid.UUID):
    sub = service.get_subscription_or_404(sub_id)
    return jsonify(_camel_subscription(sub)), 200


@bp.put("/<uuid:sub_id>")
@auth_required
def update_subscription(sub_id: uuid.UUID):
    sub = service.get_subscription_or_404(sub_id)
    f = FieldReader(request.get_json(silent=True) or {}, partial=True)
    values = _read_fields(f)
    for key, column in (("amount", "amount"), ("dueDate", "due_date"), ("status", "status")):
        if column in values and values[column] is None:
            f.fail(key, "Campo obrigatório")
    f.raise_if_errors()

    for column, value in values.items():
        setattr(sub, column, value)
    if _BREAKDOWN_FIELDS & set(values):
        _apply_breakdown(sub)
    _check_consistency(f, sub)
    if f.errors:
        db.session.rollback()
        f.raise_if_errors()

    db.session.commit()
    return jsonify(_camel_subscription(sub)), 200


@bp.delete("/<uuid:sub_id>")
@auth_required
def delete_subscription(sub_id: uuid.UUID):
    sub = service.get_subscription_or_404(sub_id)
    db.session.delete(sub)
    db.session.commit()
    return Response(status=204)


@bp.post("/<uuid:sub_id>/pay")
@auth_required
def pay_subscription(sub_id: uuid.UUID):
    sub = service.get_subscription_or_404(sub_id)
    f = FieldReader(request.get_json(silent=True) or {})
    paid_on = f.date("paymentDate") or date.today()
    method = f.choice("paymentMethod", PAYMENT_METHODS)
    notes = f.text("notes")
    f.raise_if_errors()

    payment, successor = service.pay(sub, paid_on, method, notes)
    return jsonify({
        "subscription": _camel_subscription(sub),
        "payment": _camel_payment(payment),
        "successor": _camel_subscription(successor) if successor else None,
    }), 200


@bp.post("/<uuid:sub_id>/pause")
@auth_required
def pause_subscription(sub_id: uuid.UUID):
    sub = service.pause(service.get_subscription_or_404(sub_id))
    return jsonify(_camel_subscription(sub)), 200


@bp.post("/<uuid:sub_id>/resume")
@auth_required
def resume_subscription(sub_id: uuid.UUID):
    sub = service.get_subscription_or_404(sub_id)
    sub = service.resume(sub, date_arg(request.args))
    return jsonify(_camel_subscription(sub)), 200


@bp.get("/<uuid:sub_id>/payments")
@auth_required
def list_payments(sub_id: uuid.UUID):
    sub = service.get_subscription_or_404(sub_id)
    items = sub.payments.order_by(PaymentHistory.payment_date.desc()).all()
    return jsonify([_camel_payment(p) for p in items]), 200


@bp.post("/<uuid:sub_id>/payments")
@auth_required
def record_payment(sub_id: uuid.UUID):
    """Lançamento manual no histórico (não altera o status da mensalidade)."""
    sub = service.get_subscription_or_404(sub_id)
    f = FieldReader(request.get_json(silent=True) or {})
    amount = f.number("amount", required=True, minimum=0.01)
    paid_on = f.date("paymentDate", required=True)
    method = f.choice("paymentMethod", PAYMENT_METHODS)
    notes = f.text("notes")
    f.raise_if_errors()

    payment = PaymentHistory(
        subscription_id=sub.id,
        amount=amount,
        payment_date=paid_on,
        payment_method=method,
        notes=notes,
    )
    db.session.add(payment)
    db.session.commit()
    return jsonify(_camel_payment(payment)), 201
