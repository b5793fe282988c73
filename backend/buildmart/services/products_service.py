# backend/buildmart/services/products_service.py
"""
Catalog Store

VISIBILITY:
- Public listing and search only ever return active products
- An inactive product is still addressable by id for its seller and admins
- Everyone else gets NotFound for an inactive product (no existence leak)

SEARCH: case-insensitive substring match on name; category is an exact
match. Blank query and blank category mean "not given", so an empty
search is exactly list_active().

ORDERING: most recent first (created_at desc, id desc as a stable tiebreak).
"""
from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product
from . import permission_service
from .permission_service import Principal

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price", "stock", "category", "image_url", "is_active"}


def _newest_first(query):
    return query.order_by(Product.created_at.desc(), Product.id.desc())


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_active() -> list[Product]:
    """All active products, most recent first."""
    return _newest_first(
        db.session.query(Product).filter(Product.is_active.is_(True))
    ).all()


def search(query: str | None = None, category: str | None = None) -> list[Product]:
    """
    Filter active products by name substring and/or exact category.

    Both arguments are whitespace-trimmed; blank means "no filter".
    """
    q = db.session.query(Product).filter(Product.is_active.is_(True))

    query = (query or "").strip()
    if query:
        q = q.filter(Product.name.ilike(f"%{_escape_like(query)}%", escape="\\"))

    category = (category or "").strip()
    if category:
        q = q.filter(Product.category == category)

    return _newest_first(q).all()


def list_categories() -> list[str]:
    """Distinct categories of active products, alphabetical."""
    rows = (
        db.session.query(Product.category)
        .filter(Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def find_product(product_id: str) -> Product | None:
    """Unfiltered lookup by id (no visibility rules)."""
    return db.session.query(Product).filter_by(id=product_id).first()


def get_product(principal: Principal | None, product_id: str) -> Product:
    """
    Fetch one product honouring visibility.

    Raises:
        NotFoundError: unknown id, or inactive and caller is neither the
            owning seller nor an admin
    """
    product = find_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")

    if not product.is_active:
        decision = permission_service.authorize(principal, "VIEW_INACTIVE_PRODUCT", owner_id=product.seller_id)
        if not decision.allowed:
            raise NotFoundError("Product not found")

    return product


def list_by_seller(principal: Principal) -> list[Product]:
    """Caller's own products, including inactive ones, most recent first."""
    permission_service.require(principal, "VIEW_SELLER_PRODUCTS")
    return _newest_first(
        db.session.query(Product).filter(Product.seller_id == principal.id)
    ).all()


def create_product(principal: Principal, *, patch: dict) -> Product:
    """
    Create product owned by the caller.

    patch must already be validated (validation.validate_payload +
    enforce_rules_product).
    """
    permission_service.require(principal, "CREATE_PRODUCT")

    product = Product(seller_id=principal.id, is_active=True, stock=0)
    apply_product_patch(product, patch)

    db.session.add(product)
    db.session.commit()
    return product


def _load_for_mutation(principal: Principal, product_id: str, action: str) -> Product:
    # Role pre-screen first so a buyer learns nothing about product ids
    permission_service.require(principal, action)

    product = find_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")

    permission_service.require(principal, action, owner_id=product.seller_id)
    return product


def product_for_update(principal: Principal, product_id: str) -> Product:
    """Ownership check for an update, run before any upload is stored."""
    return _load_for_mutation(principal, product_id, "UPDATE_PRODUCT")


def update_product(principal: Principal, product_id: str, *, patch: dict) -> Product:
    """Owning seller or admin only."""
    product = _load_for_mutation(principal, product_id, "UPDATE_PRODUCT")
    apply_product_patch(product, patch)
    db.session.commit()
    return product


def delete_product(principal: Principal, product_id: str) -> Product:
    """
    Hard delete. Owning seller or admin only.

    Cart lines and order lines referencing the product are left in place;
    order lines keep their name/price snapshot, cart lines become dangling.
    """
    product = _load_for_mutation(principal, product_id, "DELETE_PRODUCT")
    db.session.delete(product)
    db.session.commit()
    return product
