# notifications/routes.py
from flask import Blueprint, request, jsonify

from notifications.service import OutboxTransport, get_notifications
from subscriptions import service
from utils.supabase_jwt import auth_required
from utils.validation import date_arg

bp = Blueprint("notifications", __name__)


@bp.get("/status")
@auth_required
def status():
    return jsonify(get_notifications().status()), 200


@bp.get("/outbox")
@auth_required
def outbox():
    """Entrega (e esvazia) as mensagens pendentes para o service worker."""
    transport = get_notifications().transport
    if not isinstance(transport, OutboxTransport):
        return jsonify({"items": [], "transport": transport.name}), 200
    return jsonify({"items": transport.drain(), "transport": transport.name}), 200


@bp.post("/clear")
@auth_required
def clear():
    sent = get_notifications().clear_all()
    return jsonify({"sent": sent}), 200


@bp.post("/overdue")
@auth_required
def overdue():
    items = service.report_overdue(date_arg(request.args))
    return jsonify({"count": len(items)}), 200
