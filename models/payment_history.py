# models/payment_history.py
import uuid
from sqlalchemy import func
from extensions import db

PAYMENT_METHODS = (
    "Boleto",
    "PIX",
    "Cartão Crédito",
    "Cartão Débito",
    "Cartão",
    "Transferência",
    "Dinheiro",
    "Outro",
)


class PaymentHistory(db.Model):
    __tablename__ = "payment_history"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    subscription_id = db.Column(
        db.Uuid,
        db.ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    payment_date = db.Column(db.Date, nullable=False, index=True)
    payment_method = db.Column(db.String(30))
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<PaymentHistory id={self.id} subscription_id={self.subscription_id} amount={self.amount}>"
