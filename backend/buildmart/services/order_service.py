"""
Order Composer

Turns a list of {product_id, quantity} (or the caller's cart) into an
Order with its OrderItems.

INVARIANTS:
- total = sum(quantity * current catalog price); any client-supplied price
  is ignored
- each OrderItem snapshots price and product name at this moment
- order row, item rows, stock decrements and cart clearing commit in one
  transaction; any failure rolls all of it back
- stock is decremented with a conditional UPDATE (stock >= quantity), so
  two concurrent checkouts cannot oversell the same product
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select, update

from ..errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import CartItem, Order, OrderItem, Product
from ..models.common import quantize_money
from ..models.orders import ORDER_CANCELLED, ORDER_PENDING, ORDER_STATUSES, ORDER_TRANSITIONS
from ..time_utils import utcnow
from . import cart_service, permission_service
from .concurrency import run_with_retry
from .permission_service import Principal


def normalize_lines(items) -> dict[str, int]:
    """
    Validate requested lines and merge duplicates.

    Accepts productId or product_id keys. Any other key (price, total, ...)
    is ignored. Returns {product_id: quantity} in first-seen order.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    merged: dict[str, int] = {}
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object", details={"index": index})

        product_id = raw.get("productId", raw.get("product_id"))
        if not isinstance(product_id, str) or not product_id.strip():
            raise ValidationError("productId required", details={"index": index})

        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("quantity must be a positive integer", details={"index": index})

        product_id = product_id.strip()
        merged[product_id] = merged.get(product_id, 0) + quantity

    return merged


def _require_address(shipping_address) -> str:
    if not isinstance(shipping_address, str) or not shipping_address.strip():
        raise ValidationError("shippingAddress required")
    return shipping_address.strip()


def _load_sellable(lines: dict[str, int]) -> dict[str, Product]:
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(list(lines))).all()
    }
    missing = [pid for pid in lines if pid not in products or not products[pid].is_active]
    if missing:
        raise ProductNotFoundError(
            f"Product {missing[0]} not found",
            details={"product_ids": missing},
        )
    return products


def _check_stock(lines: dict[str, int], products: dict[str, Product]) -> None:
    short = [
        {
            "product_id": pid,
            "requested_quantity": qty,
            "available": products[pid].stock,
        }
        for pid, qty in lines.items()
        if qty > products[pid].stock
    ]
    if short:
        raise InsufficientStockError("Insufficient stock", details={"items": short})


def _decrement_stock(product_id: str, quantity: int) -> bool:
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def compose_order(user_id: str, shipping_address: str, lines: dict[str, int]) -> Order:
    """
    Price, persist and commit one order. Caller has already authorized.

    Raises:
        ProductNotFoundError, InsufficientStockError: nothing was written
    """
    def _op():
        try:
            products = _load_sellable(lines)
            _check_stock(lines, products)

            order = Order(
                user_id=user_id,
                status=ORDER_PENDING,
                shipping_address=shipping_address,
                total=Decimal("0"),
            )
            total = Decimal("0")
            for product_id, quantity in lines.items():
                product = products[product_id]
                price = quantize_money(product.price)
                order.items.append(OrderItem(
                    product_id=product_id,
                    product_name=product.name,
                    seller_id=product.seller_id,
                    quantity=quantity,
                    price=price,
                ))
                total += price * quantity
            order.total = quantize_money(total)

            db.session.add(order)
            db.session.flush()

            for product_id, quantity in lines.items():
                if not _decrement_stock(product_id, quantity):
                    # Stock moved between the check and the write
                    raise InsufficientStockError(
                        "Insufficient stock",
                        details={"items": [{"product_id": product_id, "requested_quantity": quantity}]},
                    )

            cart_service.clear(user_id, commit=False)
            db.session.commit()
            return order
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)


def create_order(principal: Principal, shipping_address, items) -> Order:
    """
    Place an order for an explicit item list.

    Validation happens before any read or write. On success the caller's
    cart is empty.
    """
    permission_service.require(principal, "PLACE_ORDER")
    address = _require_address(shipping_address)
    lines = normalize_lines(items)
    return compose_order(principal.id, address, lines)


def checkout_cart(principal: Principal, shipping_address) -> Order:
    """
    Place an order for everything in the caller's cart.

    A cart line whose product is gone or hidden fails the whole checkout
    with ProductNotFound, leaving the cart as it was.
    """
    permission_service.require(principal, "PLACE_ORDER")
    address = _require_address(shipping_address)

    cart_items = (
        db.session.query(CartItem)
        .filter_by(user_id=principal.id)
        .order_by(CartItem.created_at.asc(), CartItem.id.asc())
        .all()
    )
    if not cart_items:
        raise ValidationError("Cart is empty")

    lines: dict[str, int] = {}
    for item in cart_items:
        lines[item.product_id] = lines.get(item.product_id, 0) + item.quantity

    return compose_order(principal.id, address, lines)


def list_orders(principal: Principal) -> list[Order]:
    """Caller's own orders, newest first."""
    permission_service.require(principal, "VIEW_OWN_ORDERS")
    return (
        db.session.query(Order)
        .filter_by(user_id=principal.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_order(principal: Principal, order_id: str) -> Order:
    permission_service.require(principal, "VIEW_ORDER")
    order = db.session.query(Order).filter_by(id=order_id).first()
    if order is None:
        raise NotFoundError("Order not found")
    permission_service.require(principal, "VIEW_ORDER", owner_id=order.user_id)
    return order


def list_seller_orders(principal: Principal) -> list[Order]:
    """Orders containing at least one of the caller's products, newest first."""
    permission_service.require(principal, "VIEW_SELLER_ORDERS")

    order_ids = select(OrderItem.order_id).where(OrderItem.seller_id == principal.id)
    return (
        db.session.query(Order)
        .filter(Order.id.in_(order_ids))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def _restore_stock(order: Order) -> None:
    for item in order.items:
        # Products deleted since the order was placed are skipped
        db.session.execute(
            update(Product)
            .where(Product.id == item.product_id)
            .values(stock=Product.stock + item.quantity)
            .execution_options(synchronize_session=False)
        )


def update_status(principal: Principal, order_id: str, new_status: str) -> Order:
    """
    Move an order along pending -> confirmed -> shipped -> delivered, or
    cancel it from any non-terminal state.

    The buyer may cancel their own order; any other move needs
    UPDATE_ORDER_STATUS (admin). Cancelling returns the order's quantities
    to stock in the same transaction.

    Raises:
        ValidationError: unknown status
        NotFoundError: unknown order
        InvalidTransitionError: move not allowed from the current status
    """
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")

    order = db.session.query(Order).filter_by(id=order_id).first()
    if order is None:
        raise NotFoundError("Order not found")

    if new_status == ORDER_CANCELLED and order.user_id == principal.id:
        permission_service.require(principal, "CANCEL_ORDER", owner_id=order.user_id)
    else:
        permission_service.require(principal, "UPDATE_ORDER_STATUS")

    if new_status not in ORDER_TRANSITIONS[order.status]:
        raise InvalidTransitionError(
            f"Cannot move order from {order.status} to {new_status}",
            details={"from": order.status, "to": new_status},
        )

    try:
        if new_status == ORDER_CANCELLED:
            _restore_stock(order)
        order.status = new_status
        order.updated_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return order


def cancel_order(principal: Principal, order_id: str) -> Order:
    return update_status(principal, order_id, ORDER_CANCELLED)
