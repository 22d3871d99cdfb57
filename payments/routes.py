# payments/routes.py
from flask import Blueprint, request, jsonify, Response
import uuid

from extensions import db
from models.payment_history import PaymentHistory
from utils.casing import sa_model_to_dict
from utils.errors import NotFoundError
from utils.supabase_jwt import auth_required
from utils.validation import FieldReader

# Blueprint sem prefixo interno; app.py define /api/v1/payments
bp = Blueprint("payments", __name__)


@bp.get("")
@auth_required
def list_payments():
    f = FieldReader(request.args.to_dict())
    start = f.date("startDate")
    end = f.date("endDate")
    f.raise_if_errors()

    qry = PaymentHistory.query
    if start:
        qry = qry.filter(PaymentHistory.payment_date >= start)
    if end:
        qry = qry.filter(PaymentHistory.payment_date <= end)
    items = qry.order_by(PaymentHistory.payment_date.desc()).all()
    return jsonify([sa_model_to_dict(p) for p in items]), 200


@bp.delete("/<uuid:payment_id>")
@auth_required
def delete_payment(payment_id: uuid.UUID):
    # apagar o histórico não reabre a mensalidade
    p = db.session.get(PaymentHistory, payment_id)
    if not p:
        raise NotFoundError("Payment")
    db.session.delete(p)
    db.session.commit()
    return Response(status=204)
