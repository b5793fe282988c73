from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import generate_id, money_str


class Product(db.Model):
    """
    Construction material listed by a seller.

    VISIBILITY: is_active=False hides the product from the public catalog
    (soft delete) while the owner and admins can still address it by id.
    A hard delete removes the row; cart and order lines keep only the
    product id, so they must tolerate the product being gone.

    Price is authoritative here. Orders never trust a client-supplied
    price; they read this column at order time and snapshot it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_created", "is_active", "created_at"),
        db.Index("ix_products_category", "category"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)

    price = db.Column(db.Numeric(10, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    # Free text ("cement", "lumber", ...); filtered by exact match
    category = db.Column(db.String(120), nullable=False)

    # Storage-relative path returned by file_storage_service
    image_url = db.Column(db.String(512), nullable=True)

    seller_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    seller = db.relationship("User", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} seller_id={self.seller_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money_str(self.price),
            "stock": self.stock,
            "category": self.category,
            "image_url": self.image_url,
            "seller_id": self.seller_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
