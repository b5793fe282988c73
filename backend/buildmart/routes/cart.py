# Overview: Flask API routes for the caller's cart.

from flask import Blueprint, jsonify, request

from ..decorators import current_principal, require_auth, require_permission
from ..errors import BuildmartError, ValidationError
from ..responses import internal_error, service_error
from ..services import cart_service

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
@require_permission("MANAGE_CART")
def get_cart_route():
    """
    Cart lines joined to current products.

    Lines whose product was deleted or hidden come back with
    "available": false (and "product": null when deleted).
    """
    try:
        lines = cart_service.list_lines(current_principal())
        return jsonify(cart_service.summarize(lines)), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch cart")


@cart_bp.post("")
@require_auth
@require_permission("MANAGE_CART")
def add_to_cart_route():
    """Body: productId, quantity (default 1). Merges with an existing line."""
    try:
        data = request.get_json(silent=True) or {}
        product_id = data.get("productId") or data.get("product_id")
        if not product_id:
            raise ValidationError("productId required")

        item = cart_service.add(current_principal(), product_id, data.get("quantity", 1))
        return jsonify(item.to_dict()), 201

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to add to cart")


@cart_bp.put("/<item_id>")
@require_auth
@require_permission("MANAGE_CART")
def update_cart_item_route(item_id: str):
    """Body: quantity. quantity <= 0 removes the line (204)."""
    try:
        data = request.get_json(silent=True) or {}
        if "quantity" not in data:
            raise ValidationError("quantity required")

        item = cart_service.set_quantity(current_principal(), item_id, data["quantity"])
        if item is None:
            return "", 204
        return jsonify(item.to_dict()), 200

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to update cart item")


@cart_bp.delete("/<item_id>")
@require_auth
@require_permission("MANAGE_CART")
def remove_cart_item_route(item_id: str):
    try:
        cart_service.remove(current_principal(), item_id)
        return "", 204
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to remove from cart")


@cart_bp.delete("")
@require_auth
@require_permission("MANAGE_CART")
def clear_cart_route():
    try:
        cart_service.clear_cart(current_principal())
        return "", 204
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to clear cart")
