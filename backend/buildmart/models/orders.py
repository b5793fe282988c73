from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import generate_id, money_str

ORDER_PENDING = "pending"
ORDER_CONFIRMED = "confirmed"
ORDER_SHIPPED = "shipped"
ORDER_DELIVERED = "delivered"
ORDER_CANCELLED = "cancelled"

ORDER_STATUSES = (ORDER_PENDING, ORDER_CONFIRMED, ORDER_SHIPPED, ORDER_DELIVERED, ORDER_CANCELLED)

# Legal forward moves; cancellation is allowed from any non-terminal state
ORDER_TRANSITIONS = {
    ORDER_PENDING: {ORDER_CONFIRMED, ORDER_CANCELLED},
    ORDER_CONFIRMED: {ORDER_SHIPPED, ORDER_CANCELLED},
    ORDER_SHIPPED: {ORDER_DELIVERED, ORDER_CANCELLED},
    ORDER_DELIVERED: set(),
    ORDER_CANCELLED: set(),
}


class CartItem(db.Model):
    """
    Pending line in a user's cart.

    (user_id, product_id) is unique: adding a product already in the cart
    increments quantity instead of creating a second row.

    product_id is not a foreign key. A seller may hard delete
    a product that sits in someone's cart; the cart then holds a dangling
    line which listing and checkout handle explicitly.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
        }


class Order(db.Model):
    """
    Purchase document. Created atomically with its OrderItems.

    total is computed server-side from catalog prices at creation time and
    is never accepted from a request.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    total = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=ORDER_PENDING, index=True)
    shipping_address = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.product_name",
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "total": money_str(self.total),
            "status": self.status,
            "shipping_address": self.shipping_address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """
    Line of an order. Owned exclusively by its Order.

    price and product_name are snapshots taken when the order was placed;
    later catalog edits or deletion of the product do not change them.
    """
    __tablename__ = "order_items"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    # Not a foreign key (see CartItem)
    product_id = db.Column(db.String(36), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    # Seller at order time, so seller views outlive the product row
    seller_id = db.Column(db.String(36), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "seller_id": self.seller_id,
            "quantity": self.quantity,
            "price": money_str(self.price),
            "line_total": money_str(self.price * self.quantity),
        }
