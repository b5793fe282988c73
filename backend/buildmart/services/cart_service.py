# Overview: Cart aggregator; per-user pending line items.

"""
Cart Aggregator

MERGE: (user_id, product_id) is unique. add() on an existing pair
increments its quantity; the unique constraint backs this up if two
requests race to insert the same pair.

QUANTITY: always >= 1 in storage. set_quantity(q <= 0) removes the line.

OWNERSHIP: a caller only ever sees their own lines. Another user's line
id behaves exactly like an unknown id (NotFound), admins excepted.

DANGLING LINES: a line whose product was hard deleted is kept and
reported with product=None so the owner can see and remove it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import CartItem, Product
from ..models.common import money_str
from . import permission_service
from .concurrency import lock_for_update
from .permission_service import Principal


@dataclass
class CartLine:
    item: CartItem
    product: Product | None

    @property
    def available(self) -> bool:
        return self.product is not None and self.product.is_active

    @property
    def line_total(self) -> Decimal | None:
        if not self.available:
            return None
        return self.product.price * self.item.quantity

    def to_dict(self) -> dict:
        data = self.item.to_dict()
        data["product"] = self.product.to_dict() if self.product is not None else None
        data["available"] = self.available
        data["line_total"] = money_str(self.line_total)
        return data


def _require_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    return quantity


def _load_own_item(principal: Principal, item_id: str) -> CartItem | None:
    permission_service.require(principal, "MANAGE_CART")
    item = db.session.query(CartItem).filter_by(id=item_id).first()
    if item is None:
        return None
    if not permission_service.authorize(principal, "MANAGE_CART", owner_id=item.user_id).allowed:
        return None
    return item


def add(principal: Principal, product_id: str, quantity: int = 1) -> CartItem:
    """
    Merge-or-create a cart line for the caller.

    Raises:
        ValidationError: quantity not a positive integer
        NotFoundError: product unknown or not active
    """
    permission_service.require(principal, "MANAGE_CART")

    quantity = _require_quantity(quantity)
    if quantity < 1:
        raise ValidationError("quantity must be >= 1")

    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None or not product.is_active:
        raise NotFoundError("Product not found")

    def _merge() -> CartItem | None:
        existing = lock_for_update(
            db.session.query(CartItem).filter_by(user_id=principal.id, product_id=product_id)
        ).first()
        if existing is None:
            return None
        existing.quantity = existing.quantity + quantity
        db.session.commit()
        return existing

    merged = _merge()
    if merged is not None:
        return merged

    item = CartItem(user_id=principal.id, product_id=product_id, quantity=quantity)
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost an insert race on (user_id, product_id); fold into the winner
        db.session.rollback()
        merged = _merge()
        if merged is None:
            raise
        return merged
    return item


def set_quantity(principal: Principal, item_id: str, quantity: int) -> CartItem | None:
    """
    Replace a line's quantity.

    Returns the updated line, or None when quantity <= 0 removed it.

    Raises:
        ValidationError: quantity not an integer
        NotFoundError: no such line for this caller
    """
    quantity = _require_quantity(quantity)

    item = _load_own_item(principal, item_id)
    if item is None:
        raise NotFoundError("Cart item not found")

    if quantity <= 0:
        db.session.delete(item)
        db.session.commit()
        return None

    item.quantity = quantity
    db.session.commit()
    return item


def remove(principal: Principal, item_id: str) -> bool:
    """Idempotent. Returns True if a line was deleted."""
    item = _load_own_item(principal, item_id)
    if item is None:
        return False
    db.session.delete(item)
    db.session.commit()
    return True


def clear(user_id: str, *, commit: bool = True) -> int:
    """
    Delete every line of a user's cart. Idempotent.

    commit=False lets the order composer clear the cart inside its own
    transaction.
    """
    deleted = db.session.query(CartItem).filter_by(user_id=user_id).delete(synchronize_session=False)
    if commit:
        db.session.commit()
    return deleted


def clear_cart(principal: Principal) -> int:
    permission_service.require(principal, "MANAGE_CART")
    return clear(principal.id)


def list_lines(principal: Principal) -> list[CartLine]:
    """Caller's cart joined to current products, oldest line first."""
    permission_service.require(principal, "MANAGE_CART")

    items = (
        db.session.query(CartItem)
        .filter_by(user_id=principal.id)
        .order_by(CartItem.created_at.asc(), CartItem.id.asc())
        .all()
    )
    if not items:
        return []

    product_ids = {item.product_id for item in items}
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }
    return [CartLine(item=item, product=products.get(item.product_id)) for item in items]


def summarize(lines: list[CartLine]) -> dict:
    subtotal = sum((line.line_total for line in lines if line.available), Decimal("0"))
    return {
        "items": [line.to_dict() for line in lines],
        "count": len(lines),
        "unavailable_count": sum(1 for line in lines if not line.available),
        "subtotal": money_str(subtotal),
    }
