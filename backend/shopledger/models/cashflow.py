from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

INFLOW = "inflow"
OUTFLOW = "outflow"
TRANSACTION_TYPES = (INFLOW, OUTFLOW)


class CashFlowTransaction(db.Model):
    """
    A single cash movement.

    - amount is stored unsigned; the direction comes from type.
    - order_id is a lookup-only back-reference (no foreign key, no cascade):
      deleting an order leaves its derived transactions in place.
    - automated=True marks rows derived from completed orders.
    """
    __tablename__ = "cash_flow_transactions"
    __table_args__ = (
        db.CheckConstraint("type IN ('inflow', 'outflow')", name="ck_cash_flow_type"),
        db.Index("ix_cash_flow_type_date", "type", "date"),
        db.Index("ix_cash_flow_category_type", "category", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False)
    category = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    order_id = db.Column(db.Integer, nullable=True, index=True)
    automated = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "category": self.category,
            "amount": self.amount,
            "description": self.description,
            "date": to_utc_z(self.date),
            "order_id": self.order_id,
            "automated": self.automated,
            "created_at": to_utc_z(self.created_at),
        }
