# clients/routes.py
from flask import Blueprint, request, jsonify, Response
from sqlalchemy import or_
import uuid
import csv
import io

from extensions import db
from models.client import (
    CLIENT_STATUSES,
    COMPANY_SIZES,
    CREDENTIALS_VERSION_CURRENT,
    CREDENTIALS_VERSION_LEGACY,
    Client,
)
from models.subscription import Subscription
from clients.credentials import dump_credentials, ensure_slots, parse_credentials
from notifications.service import get_notifications
from subscriptions.service import get_client_or_404
from utils.casing import sa_model_to_dict
from utils.errors import NotFoundError, ValidationError
from utils.supabase_jwt import auth_required
from utils.validation import FieldReader

# Blueprint sem prefixo interno; app.py define /api/v1/clients
bp = Blueprint("clients", __name__)

_TEXT_FIELDS = {
    "fullName": True,
    "email": True,
    "phone": True,
    "companyName": True,
    "position": False,
    "personalNotes": False,
    "cnpj": False,
    "segment": False,
    "website": False,
}

_ADDRESS_KEYS = ("street", "number", "city", "state")


def _camel_client(c: Client, with_subscriptions=False) -> dict:
    base = sa_model_to_dict(c)
    if with_subscriptions:
        subs = c.subscriptions.order_by(Subscription.due_date.desc()).all()
        base["subscriptions"] = [sa_model_to_dict(s) for s in subs]
    return base


def _string_list(f: FieldReader, key: str):
    items = f.json(key, list)
    if items is None:
        return None
    if not all(isinstance(i, str) for i in items):
        f.fail(key, "Deve ser uma lista de textos")
        return None
    return [i.strip() for i in items if i.strip()] or None


def _read_client(payload: dict, partial: bool) -> dict:
    f = FieldReader(payload, partial=partial)
    values = {}

    for key, required in _TEXT_FIELDS.items():
        if not partial or f.has(key):
            values[key] = f.text(key, required=required)

    if not partial or f.has("status"):
        values["status"] = f.choice("status", CLIENT_STATUSES, default="Lead")
    if not partial or f.has("companySize"):
        values["companySize"] = f.choice("companySize", COMPANY_SIZES, default="Pequena")
    if f.has("emails"):
        values["emails"] = _string_list(f, "emails")
    if f.has("phones"):
        values["phones"] = _string_list(f, "phones")
    if f.has("address"):
        address = f.json("address", dict)
        if address is not None:
            unknown = set(address) - set(_ADDRESS_KEYS)
            if unknown:
                f.fail("address", f"Campos desconhecidos: {', '.join(sorted(unknown))}")
            values["address"] = {k: str(address.get(k) or "") for k in _ADDRESS_KEYS}
        else:
            values["address"] = None
    if f.has("partnershipStartDate"):
        values["partnershipStartDate"] = f.date("partnershipStartDate")
    if f.has("monthlyContractValue"):
        values["monthlyContractValue"] = f.number("monthlyContractValue", minimum=0)
    if f.has("numberOfPhones"):
        values["numberOfPhones"] = f.integer("numberOfPhones", minimum=1, maximum=50)

    f.raise_if_errors()

    # credenciais validadas à parte (erros com caminho completo do campo)
    if "numberCredentials" in payload:
        values["numberCredentials"] = parse_credentials(payload.get("numberCredentials"))
    return values


_COLUMNS = {
    "fullName": "full_name",
    "email": "email",
    "emails": "emails",
    "phone": "phone",
    "phones": "phones",
    "position": "position",
    "personalNotes": "personal_notes",
    "companyName": "company_name",
    "cnpj": "cnpj",
    "segment": "segment",
    "companySize": "company_size",
    "website": "website",
    "address": "address",
    "status": "status",
    "partnershipStartDate": "partnership_start_date",
    "monthlyContractValue": "monthly_contract_value",
    "numberOfPhones": "number_of_phones",
}


def _apply(c: Client, values: dict) -> None:
    for key, column in _COLUMNS.items():
        if key in values:
            setattr(c, column, values[key])

    slots = values.get("numberCredentials")
    if slots is None and "numberOfPhones" in values and c.number_credentials is not None:
        slots = parse_credentials(c.number_credentials)
    if slots is not None:
        if c.number_of_phones:
            slots = ensure_slots(slots, c.number_of_phones)
        c.number_credentials = dump_credentials(slots)


@bp.post("")
@auth_required
def create_client():
    values = _read_client(request.get_json(silent=True) or {}, partial=False)

    c = Client(id=uuid.uuid4(), credentials_version=CREDENTIALS_VERSION_CURRENT)
    if "numberOfPhones" in values and "numberCredentials" not in values:
        values["numberCredentials"] = []
    _apply(c, values)

    db.session.add(c)
    db.session.commit()

    get_notifications().new_client(c.company_name or c.full_name)
    return jsonify(_camel_client(c)), 201


@bp.get("")
@auth_required
def list_clients():
    q = (request.args.get("q") or "").strip()
    status = (request.args.get("status") or "").strip()

    qry = Client.query
    if q:
        ilike = f"%{q}%"
        qry = qry.filter(
            or_(
                Client.full_name.ilike(ilike),
                Client.company_name.ilike(ilike),
                Client.email.ilike(ilike),
                Client.phone.ilike(ilike),
            )
        )
    if status:
        qry = qry.filter(Client.status == status)

    # ordem recente primeiro
    qry = qry.order_by(Client.created_at.desc().nullslast())
    return jsonify([_camel_client(c) for c in qry.all()]), 200


@bp.get("/<uuid:client_id>")
@auth_required
def get_client(client_id: uuid.UUID):
    c = get_client_or_404(client_id)
    return jsonify(_camel_client(c, with_subscriptions=True)), 200


@bp.put("/<uuid:client_id>")
@auth_required
def update_client(client_id: uuid.UUID):
    c = get_client_or_404(client_id)
    payload = request.get_json(silent=True) or {}
    values = _read_client(payload, partial=True)

    touches_credentials = "numberCredentials" in values or "numberOfPhones" in values
    if touches_credentials and c.credentials_version == CREDENTIALS_VERSION_LEGACY:
        # conversão é feita pelo script de migração, não na edição
        raise ValidationError({
            "numberCredentials": "Cliente com credenciais no formato antigo; execute a migração de credenciais",
        })

    _apply(c, values)
    db.session.commit()
    return jsonify(_camel_client(c)), 200


@bp.put("/<uuid:client_id>/credentials/<int:index>/<provider>")
@auth_required
def set_provider_credentials(client_id: uuid.UUID, index: int, provider: str):
    """Grava campos de um provedor no conjunto do número `index` (0-based).

    Body: {"adminUrl": "...", "password": "..."} com campos do provedor.
    """
    c = get_client_or_404(client_id)
    slots = parse_credentials(c.number_credentials)
    if index < 0 or index >= len(slots):
        raise NotFoundError("Credential slot")

    fields = request.get_json(silent=True) or {}
    if not isinstance(fields, dict) or not fields:
        raise ValidationError({"body": "Informe ao menos um campo do provedor"})
    for key, value in fields.items():
        slots[index].set_provider_field(provider, key, value)

    c.number_credentials = dump_credentials(slots)
    db.session.commit()
    return jsonify(slots[index].to_json()), 200


@bp.delete("/<uuid:client_id>")
@auth_required
def delete_client(client_id: uuid.UUID):
    c = get_client_or_404(client_id)
    db.session.delete(c)
    db.session.commit()
    return Response(status=204)


@bp.get("/export")
@auth_required
def export_clients():
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "id",
        "fullName",
        "companyName",
        "email",
        "phone",
        "cnpj",
        "segment",
        "status",
        "monthlyContractValue",
        "createdAt",
        "updatedAt",
    ])
    for c in Client.query.order_by(Client.created_at.desc().nullslast()).all():
        writer.writerow([
            str(c.id),
            c.full_name or "",
            c.company_name or "",
            c.email or "",
            c.phone or "",
            c.cnpj or "",
            c.segment or "",
            c.status or "",
            f"{c.monthly_contract_value:.2f}" if c.monthly_contract_value is not None else "",
            c.created_at.isoformat() if c.created_at else "",
            c.updated_at.isoformat() if c.updated_at else "",
        ])
    return Response(output.getvalue(), mimetype="text/csv; charset=utf-8"), 200
