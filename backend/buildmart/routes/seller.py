# Overview: Seller dashboard routes.

from flask import Blueprint, jsonify

from ..decorators import current_principal, require_auth, require_permission
from ..errors import BuildmartError
from ..responses import internal_error, service_error
from ..services import order_service, products_service

seller_bp = Blueprint("seller", __name__, url_prefix="/api/seller")


@seller_bp.get("/products")
@require_auth
@require_permission("VIEW_SELLER_PRODUCTS")
def seller_products_route():
    """Caller's listings, hidden ones included."""
    try:
        products = products_service.list_by_seller(current_principal())
        return jsonify([p.to_dict() for p in products]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch seller products")


@seller_bp.get("/orders")
@require_auth
@require_permission("VIEW_SELLER_ORDERS")
def seller_orders_route():
    """Orders containing at least one of the caller's products."""
    try:
        orders = order_service.list_seller_orders(current_principal())
        return jsonify([o.to_dict(include_items=True) for o in orders]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch seller orders")
