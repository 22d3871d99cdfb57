# models/client.py
import uuid
from sqlalchemy import CheckConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from extensions import db

CLIENT_STATUSES = ("Lead", "Ativo", "Pausado", "Encerrado")
COMPANY_SIZES = ("Pequena", "Média", "Grande")

# Postgres grava como JSONB; SQLite (testes) cai para JSON
JSONColumn = db.JSON().with_variant(JSONB(), "postgresql")

# 1 = pacote único legado em infra_credentials; 2 = lista por número
CREDENTIALS_VERSION_LEGACY = 1
CREDENTIALS_VERSION_CURRENT = 2


class Client(db.Model):
    __tablename__ = "clients"
    __table_args__ = (
        CheckConstraint(
            "status IN ('Lead','Ativo','Pausado','Encerrado')",
            name="clients_status_check",
        ),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    # Dados pessoais
    full_name = db.Column(db.String, nullable=False)
    email = db.Column(db.String, nullable=False)
    emails = db.Column(JSONColumn)
    phone = db.Column(db.String, nullable=False)
    phones = db.Column(JSONColumn)
    position = db.Column(db.String)
    personal_notes = db.Column(db.Text)

    # Dados da empresa
    company_name = db.Column(db.String, nullable=False)
    cnpj = db.Column(db.String)
    segment = db.Column(db.String)
    company_size = db.Column(db.String(20), server_default="Pequena")
    website = db.Column(db.String)
    address = db.Column(JSONColumn)

    # Relacionamento
    status = db.Column(db.String(20), nullable=False, server_default="Lead")
    partnership_start_date = db.Column(db.Date)
    monthly_contract_value = db.Column(db.Numeric(12, 2, asdecimal=False))

    # Credenciais de infraestrutura
    number_of_phones = db.Column(db.Integer)
    number_credentials = db.Column(JSONColumn)
    infra_credentials = db.Column(JSONColumn)
    credentials_version = db.Column(db.Integer, nullable=False, default=CREDENTIALS_VERSION_CURRENT)

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    subscriptions = db.relationship(
        "Subscription",
        backref="client",
        lazy="dynamic",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Client id={self.id} company={self.company_name}>"
