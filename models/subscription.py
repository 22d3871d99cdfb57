# models/subscription.py
import uuid
from sqlalchemy import CheckConstraint, func
from extensions import db

PENDING = "Pendente"
PAID = "Pago"
OVERDUE = "Atrasado"
CANCELLED = "Cancelado"
PAUSED = "Pausado"

PAYMENT_STATUSES = (PENDING, PAID, OVERDUE, CANCELLED, PAUSED)
# Períodos encerrados: não geram sucessor nem entram em previsões
CLOSED_STATUSES = (PAID, CANCELLED)

CATEGORIES = ("Produto", "Serviço", "Plano", "Outro")
PAYMENT_TYPES = ("vista", "parcelado")


class Subscription(db.Model):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('Pendente','Pago','Atrasado','Cancelado','Pausado')",
            name="subscriptions_status_check",
        ),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    client_id = db.Column(
        db.Uuid,
        db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Parcela atual
    amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    due_date = db.Column(db.Date, nullable=False, index=True)
    payment_date = db.Column(db.Date)
    status = db.Column(db.String(20), nullable=False, server_default=PENDING)

    # Recorrência
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurrence_month = db.Column(db.Integer)
    recurrence_day = db.Column(db.Integer)
    category = db.Column(db.String(20))
    description = db.Column(db.Text)
    start_date = db.Column(db.Date)
    total_installments = db.Column(db.Integer)
    current_installment = db.Column(db.Integer)
    is_paused = db.Column(db.Boolean, nullable=False, default=False)
    initial_payment_amount = db.Column(db.Numeric(12, 2, asdecimal=False))
    initial_payment_paid = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text)

    # Contrato (implementação + manutenção por número)
    implementation_value = db.Column(db.Numeric(12, 2, asdecimal=False))
    maintenance_value_per_number = db.Column(db.Numeric(12, 2, asdecimal=False))
    number_of_numbers = db.Column(db.Integer)
    implementation_payment_type = db.Column(db.String(20))
    implementation_installments = db.Column(db.Integer)
    contract_duration = db.Column(db.Integer)
    payment_day = db.Column(db.Integer)
    monthly_implementation_amount = db.Column(db.Numeric(12, 2, asdecimal=False))
    monthly_maintenance_amount = db.Column(db.Numeric(12, 2, asdecimal=False))
    total_monthly_amount = db.Column(db.Numeric(12, 2, asdecimal=False))

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    payments = db.relationship(
        "PaymentHistory",
        backref="subscription",
        lazy="dynamic",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} due={self.due_date} status={self.status}>"
