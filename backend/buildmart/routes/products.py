# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

"""
Product catalog routes.

SECURITY:
- Listing, search and fetch-by-id are public
- Create requires a seller (or admin); update/delete also require ownership
- Prices and stock are validated before any write

Create and update accept JSON, or multipart form data with an optional
"image" file.
"""
from flask import Blueprint, current_app, jsonify, request

from ..decorators import current_principal, optional_auth, require_auth, require_permission
from ..errors import BuildmartError
from ..models import Product
from ..responses import internal_error, service_error
from ..services import file_storage_service, products_service
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "stock", "category", "is_active"},
    required_on_create={"name", "description", "price", "category"},
    aliases={"isActive": "is_active"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_payload() -> tuple[dict, object]:
    """(fields, image file or None) from JSON or multipart."""
    if request.files or request.form:
        fields = {k: v for k, v in request.form.items()}
        return fields, request.files.get("image")
    return request.get_json(silent=True) or {}, None


def _validated_patch(partial: bool) -> tuple[dict, object]:
    payload, image = _product_payload()
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    return patch, image


@products_bp.get("")
@optional_auth
@require_permission("VIEW_CATALOG")
def list_products():
    """
    Active products, most recent first.

    Query params:
    - search: str (optional) - case-insensitive substring of the name
    - category: str (optional) - exact category
    """
    try:
        search = request.args.get("search", "")
        category = request.args.get("category", "")
        products = products_service.search(search, category)
        return jsonify([p.to_dict() for p in products]), 200
    except Exception:
        return internal_error("Failed to fetch products")


@products_bp.get("/categories")
@optional_auth
@require_permission("VIEW_CATALOG")
def list_categories():
    try:
        return jsonify(products_service.list_categories()), 200
    except Exception:
        return internal_error("Failed to fetch categories")


@products_bp.get("/<product_id>")
@optional_auth
@require_permission("VIEW_CATALOG")
def get_product_route(product_id: str):
    """Hidden products are only visible to their seller and admins."""
    try:
        product = products_service.get_product(current_principal(), product_id)
        return jsonify(product.to_dict()), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch product")


@products_bp.post("")
@require_auth
@require_permission("CREATE_PRODUCT")
def create_product_route():
    """Create a product owned by the caller."""
    try:
        patch, image = _validated_patch(partial=False)
        with file_storage_service.staged_upload(image) as image_url:
            if image_url:
                patch["image_url"] = image_url
            product = products_service.create_product(current_principal(), patch=patch)
        return jsonify(product.to_dict()), 201

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to create product")


@products_bp.put("/<product_id>")
@require_auth
@require_permission("UPDATE_PRODUCT")
def update_product_route(product_id: str):
    """Owning seller or admin. Omitted fields are left unchanged."""
    try:
        patch, image = _validated_patch(partial=True)
        principal = current_principal()
        # Ownership before touching the disk
        products_service.product_for_update(principal, product_id)

        with file_storage_service.staged_upload(image) as image_url:
            if image_url:
                patch["image_url"] = image_url
            product = products_service.update_product(principal, product_id, patch=patch)
        return jsonify(product.to_dict()), 200

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to update product")


@products_bp.delete("/<product_id>")
@require_auth
@require_permission("DELETE_PRODUCT")
def delete_product_route(product_id: str):
    """Hard delete. Owning seller or admin."""
    try:
        principal = current_principal()
        products_service.delete_product(principal, product_id)
        current_app.logger.info("Product %s deleted by %s", product_id, principal.id)
        return "", 204

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to delete product")
