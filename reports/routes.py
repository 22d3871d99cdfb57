# reports/routes.py
from datetime import date
from flask import Blueprint, request, jsonify

from billing.reports import dashboard, financial_report
from models.payment_history import PaymentHistory
from models.subscription import Subscription
from utils.casing import sa_model_to_dict
from utils.errors import ValidationError
from utils.supabase_jwt import auth_required
from utils.validation import date_arg

bp = Blueprint("reports", __name__)


def _row(s: Subscription) -> dict:
    body = sa_model_to_dict(s)
    client = s.client
    body["clientName"] = (client.company_name or client.full_name) if client else None
    return body


def _day(d) -> dict:
    return {
        "date": d.date.isoformat(),
        "totalAmount": d.total_amount,
        "count": len(d.subscriptions),
        "subscriptions": [_row(s) for s in d.subscriptions],
    }


def _month_arg(today: date) -> date:
    raw = (request.args.get("month") or "").strip()
    if not raw:
        return today.replace(day=1)
    try:
        year, month = raw.split("-")[:2]
        return date(int(year), int(month), 1)
    except ValueError:
        raise ValidationError({"month": "Mês inválido (use AAAA-MM)"}) from None


@bp.get("/financial")
@auth_required
def financial():
    today = date_arg(request.args)
    subs = Subscription.query.order_by(Subscription.due_date.asc()).all()
    payments = PaymentHistory.query.all()
    report = financial_report(subs, payments, today)

    return jsonify({
        "referenceDate": report.reference_date.isoformat(),
        "paidThisMonth": report.paid_this_month,
        "pending": report.pending,
        "overdue": report.overdue,
        "nextMonthExpected": report.next_month_expected,
        "dueNext7Days": [_row(s) for s in report.due_next_7_days],
        "dueNext30Days": [_row(s) for s in report.due_next_30_days],
    }), 200


@bp.get("/dashboard")
@auth_required
def dashboard_calendar():
    today = date_arg(request.args)
    month = _month_arg(today)
    subs = Subscription.query.order_by(Subscription.due_date.asc()).all()
    view = dashboard(subs, month, today)

    return jsonify({
        "month": view.month.strftime("%Y-%m"),
        "totalPending": view.total_pending,
        "totalOverdue": view.total_overdue,
        "totalThisMonth": view.total_this_month,
        "days": [_day(d) for d in view.days],
        "upcoming": [_day(d) for d in view.upcoming],
    }), 200
