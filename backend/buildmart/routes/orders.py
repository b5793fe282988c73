# Overview: Flask API routes for orders; parses input and returns JSON responses.

"""
Order routes.

Totals are always computed server-side from current catalog prices. A
"price" sent with an item is ignored.

Stock and not-found failures are 400s with a distinguishing "kind"
(InsufficientStock, ProductNotFound) and leave no partial state.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import current_principal, require_auth, require_permission
from ..errors import BuildmartError, ValidationError
from ..responses import internal_error, service_error
from ..services import order_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _shipping_address(data: dict):
    return data.get("shippingAddress", data.get("shipping_address"))


@orders_bp.get("")
@require_auth
@require_permission("VIEW_OWN_ORDERS")
def list_orders_route():
    try:
        orders = order_service.list_orders(current_principal())
        return jsonify([o.to_dict() for o in orders]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch orders")


@orders_bp.post("")
@require_auth
@require_permission("PLACE_ORDER")
def create_order_route():
    """
    Place an order for an explicit item list.

    Body: shippingAddress, items: [{productId, quantity}]
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        principal = current_principal()
        order = order_service.create_order(principal, _shipping_address(data), data.get("items"))
        current_app.logger.info("Order %s placed by %s total=%s", order.id, principal.id, order.total)
        return jsonify(order.to_dict(include_items=True)), 201

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to create order")


@orders_bp.post("/checkout")
@require_auth
@require_permission("PLACE_ORDER")
def checkout_route():
    """Place an order for the whole cart. Body: shippingAddress"""
    try:
        data = request.get_json(silent=True) or {}
        principal = current_principal()
        order = order_service.checkout_cart(principal, _shipping_address(data))
        current_app.logger.info("Cart checkout %s by %s total=%s", order.id, principal.id, order.total)
        return jsonify(order.to_dict(include_items=True)), 201

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to check out cart")


@orders_bp.get("/<order_id>")
@require_auth
@require_permission("VIEW_ORDER")
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(current_principal(), order_id)
        return jsonify(order.to_dict(include_items=True)), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch order")


@orders_bp.post("/<order_id>/cancel")
@require_auth
@require_permission("CANCEL_ORDER")
def cancel_order_route(order_id: str):
    """Buyer cancels their own order; stock is returned."""
    try:
        order = order_service.cancel_order(current_principal(), order_id)
        current_app.logger.info("Order %s cancelled", order.id)
        return jsonify(order.to_dict(include_items=True)), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to cancel order")


@orders_bp.patch("/<order_id>/status")
@require_auth
@require_permission("UPDATE_ORDER_STATUS")
def update_order_status_route(order_id: str):
    """Admin lifecycle move. Body: status"""
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            raise ValidationError("status required")

        order = order_service.update_status(current_principal(), order_id, status)
        current_app.logger.info("Order %s moved to %s", order.id, order.status)
        return jsonify(order.to_dict(include_items=True)), 200

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to update order status")
