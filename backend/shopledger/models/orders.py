from __future__ import annotations

from enum import Enum

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class OrderStatus(str, Enum):
    """
    Order status values.

    COMPLETED is a terminal value distinct from DELIVERED; setting it is what
    triggers cash-flow derivation. No transition graph is enforced between
    these values.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Order(db.Model):
    """
    Customer order.

    total_price is caller-supplied and is NOT recomputed from the lines.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_price >= 0", name="ck_orders_total_price_non_negative"),
        db.Index("ix_orders_status_order_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    payment_method = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)
    total_price = db.Column(db.Float, nullable=False, default=0)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.position",
        lazy="selectin",
    )

    def to_dict(self, *, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "products": [line.to_dict() for line in self.lines],
            "payment_method": self.payment_method,
            "status": self.status,
            "total_price": self.total_price,
            "order_date": to_utc_z(self.order_date),
        }
        if include_user:
            data["user"] = self.user.to_dict() if self.user else None
        return data


class OrderLine(db.Model):
    """Product line embedded in an order; owned by (and deleted with) the order."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    # Request order of the line within the order
    position = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="lines")
    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "quantity": self.quantity,
        }
